"""Standalone findings import: reconcile a batch of audit findings from CSV.

Usage:
    python import_findings.py <findings.csv> <inspector-id> <inspector-name> \
        <signature> [zone]

Also accepts ``--assets <assets.csv> [--update]`` to provision the registry.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kit_ledger.app import open_ledger, setup_logging
from kit_ledger.database.models import Actor
from kit_ledger.io.csv_handler import import_assets_csv, import_findings_csv
from kit_ledger.utils.constants import FULL_STORE


def _print_errors(errors):
    if errors:
        print(f"\nErrors ({len(errors)}):")
        for err in errors:
            print(f"  - {err}")


def main():
    setup_logging()
    ledger = open_ledger()

    if len(sys.argv) >= 3 and sys.argv[1] == "--assets":
        update = "--update" in sys.argv
        results = import_assets_csv(ledger.repo, sys.argv[2],
                                    update_existing=update)
        print(f"Imported: {results['imported']}")
        print(f"Updated:  {results['updated']}")
        print(f"Skipped:  {results['skipped']}")
        _print_errors(results["errors"])
        return

    if len(sys.argv) < 5:
        print(__doc__)
        sys.exit(1)

    filepath, inspector_id, inspector_name, signature = sys.argv[1:5]
    scope = sys.argv[5] if len(sys.argv) > 5 else FULL_STORE

    print(f"Reconciling findings from: {filepath}")
    results = import_findings_csv(
        ledger.engine, filepath, signature,
        Actor(inspector_id, inspector_name), scope=scope,
    )

    print(f"\nResults:")
    print(f"  Findings read:   {results['read']}")
    print(f"  Skipped:         {results['skipped']}")
    print(f"  Cases opened:    {len(results['cases'])}")
    print(f"  Repair tickets:  {len(results['maintenance'])}")
    for asset_id, parts in results["blocked"].items():
        print(f"  Already under open case ({asset_id}): {', '.join(parts)}")
    for asset_id, case_id in results["covered"].items():
        print(f"  Condition already under case {case_id} ({asset_id})")
    _print_errors(results["errors"])

    if ledger.sync.failed_writes:
        print(f"\n{len(ledger.sync.failed_writes)} store writes pending retry")


if __name__ == "__main__":
    main()
