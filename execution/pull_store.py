"""Pull every sheet from the remote store into the local ledger."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kit_ledger.app import open_ledger, setup_logging
from kit_ledger.sync.sync_manager import SyncDisabledError


def main():
    setup_logging()
    ledger = open_ledger()

    try:
        summary = ledger.sync.pull()
    except SyncDisabledError as e:
        print(e)
        sys.exit(1)

    if summary["disconnected"]:
        print("Store unreachable; working from local data.")
        sys.exit(2)

    print(f"Assets:      {summary['assets']}")
    print(f"Cases:       {summary['cases']}")
    print(f"Maintenance: {summary['maintenance']}")
    print(f"Audits:      {summary['audits']}")
    print(f"Skipped:     {summary['skipped']}")
    if summary["errors"]:
        print(f"\nErrors ({len(summary['errors'])}):")
        for err in summary["errors"]:
            print(f"  - {err}")


if __name__ == "__main__":
    main()
