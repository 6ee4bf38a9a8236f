"""Application entry point: wires the ledger database to its services."""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from kit_ledger.config import Config
from kit_ledger.database.connection import DatabaseConnection
from kit_ledger.database.repository import Repository
from kit_ledger.database.schema import initialize_database
from kit_ledger.ledger.escalation import EscalationService
from kit_ledger.ledger.maintenance import MaintenanceQueue
from kit_ledger.ledger.reconciliation import ReconciliationEngine
from kit_ledger.sync.sync_manager import SyncManager
from kit_ledger.utils.constants import APP_NAME, APP_VERSION
from kit_ledger.utils.formatters import format_currency

logger = logging.getLogger(__name__)


def setup_logging(level: Optional[str] = None):
    """Configure root logging from ``Config.LOG_LEVEL``."""
    level = (level or Config.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@dataclass
class Ledger:
    """Services sharing one repository and one sync manager."""
    repo: Repository
    sync: SyncManager
    maintenance: MaintenanceQueue
    engine: ReconciliationEngine
    escalation: EscalationService


def open_ledger(db_path: Optional[str | Path] = None,
                sync: Optional[SyncManager] = None) -> Ledger:
    """Open (creating if needed) the ledger database and build the services."""
    db = DatabaseConnection(db_path or Config.DATABASE_PATH)
    initialize_database(db)
    repo = Repository(db)
    sync = sync or SyncManager(repo)
    maintenance = MaintenanceQueue(repo, sync)
    return Ledger(
        repo=repo,
        sync=sync,
        maintenance=maintenance,
        engine=ReconciliationEngine(repo, sync, maintenance),
        escalation=EscalationService(repo, sync, maintenance),
    )


def main():
    """Print a one-screen summary of the ledger."""
    setup_logging()
    ledger = open_ledger()
    summary = ledger.repo.get_ledger_summary()
    open_cases = ledger.repo.get_open_cases()

    print(f"{APP_NAME} {APP_VERSION}  ({Config.DATABASE_PATH})")
    print(f"  Registry value:    {format_currency(summary['total_value'])}")
    print(f"  Flagged assets:    {summary['critical_count']}")
    print(f"  Outstanding items: {summary['outstanding_count']}")
    print(f"  Last inspection:   {summary['last_inspection'] or 'never'}")
    print(f"  Open cases:        {len(open_cases)}")
    for case in open_cases:
        print(
            f"    {case.id}  {case.tool_name}  x{case.quantity}  "
            f"{case.escalation_stage}/{case.escalation_status}  "
            f"{case.staff_name}"
        )
    if not ledger.sync.is_configured:
        logger.debug("Store sync disabled; summary is local only")
    return 0


if __name__ == "__main__":
    sys.exit(main())
