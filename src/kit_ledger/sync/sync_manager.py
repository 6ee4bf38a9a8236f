"""SyncManager: mirrors the local ledger to and from the remote store.

Local SQLite is written first. Each changed record is then pushed to the
store as a whole positional row. A push that fails after every retry is
logged and queued in ``failed_writes``; the local record is kept as it is.

Pulling replaces local records with the store's copy, except:
1. within the write-lock window after a local write, nothing is applied
   (the store may not reflect that write yet);
2. records whose push is still queued as failed are left alone.
"""

import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Callable, Optional

from kit_ledger.config import Config
from kit_ledger.database.models import Asset, AuditRecord, Case, MaintenanceRecord
from kit_ledger.database.repository import Repository
from kit_ledger.sync import codec
from kit_ledger.sync.store_client import StoreClient, SyncError
from kit_ledger.utils.constants import (
    SHEET_ASSETS,
    SHEET_AUDITS,
    SHEET_CASES,
    SHEET_MAINTENANCE,
)

logger = logging.getLogger(__name__)


class SyncDisabledError(SyncError):
    """Store sync is turned off or has no URL."""


@dataclass
class PendingWrite:
    sheet: str
    action: str
    record_id: str
    row: list


class SyncManager:
    """Pushes ledger records to the store and pulls the store back."""

    def __init__(self, repo: Repository, client: Optional[StoreClient] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.repo = repo
        self.client = client or StoreClient()
        self._sync_enabled = Config.SYNC_ENABLED
        self._write_lock_seconds = Config.WRITE_LOCK_SECONDS
        self._clock = clock
        self._last_write: Optional[float] = None
        self.failed_writes: list[PendingWrite] = []

    @property
    def is_configured(self) -> bool:
        return self._sync_enabled and self.client.is_configured

    @property
    def write_lock_active(self) -> bool:
        if self._last_write is None:
            return False
        return self._clock() - self._last_write < self._write_lock_seconds

    # ── Push ────────────────────────────────────────────────────

    def _send(self, sheet: str, action: str, record_id: str, row: list) -> bool:
        if not self.is_configured:
            logger.debug(f"Sync disabled; {sheet}/{record_id} kept locally")
            return False
        self._last_write = self._clock()
        # A newer push supersedes any queued failure for the same record
        self.failed_writes = [
            w for w in self.failed_writes
            if not (w.sheet == sheet and w.record_id == record_id)
        ]
        ok = self.client.send(sheet, action, record_id, row)
        if not ok:
            self.failed_writes.append(PendingWrite(sheet, action, record_id, row))
        return ok

    def push_asset(self, asset: Asset) -> bool:
        return self._send(SHEET_ASSETS, "update", asset.id,
                          codec.asset_to_row(asset))

    def push_case(self, case: Case) -> bool:
        return self._send(SHEET_CASES, "update", case.id,
                          codec.case_to_row(case))

    def push_maintenance(self, record: MaintenanceRecord) -> bool:
        return self._send(SHEET_MAINTENANCE, "update", record.id,
                          codec.maintenance_to_row(record))

    def push_audit(self, record: AuditRecord) -> bool:
        return self._send(SHEET_AUDITS, "create", record.id,
                          codec.audit_to_row(record))

    def retry_failed(self) -> int:
        """Re-send queued writes. Returns how many are still failing."""
        pending, self.failed_writes = self.failed_writes, []
        for write in pending:
            self._send(write.sheet, write.action, write.record_id, write.row)
        if self.failed_writes:
            logger.warning(f"{len(self.failed_writes)} store writes still pending")
        return len(self.failed_writes)

    # ── Pull ────────────────────────────────────────────────────

    def pull(self) -> dict:
        """Merge the store's sheets into the local ledger.

        Returns a summary dict with per-sheet counts and any row errors.
        """
        if not self.is_configured:
            raise SyncDisabledError(
                "Store sync is not configured. Set STORE_URL and SYNC_ENABLED."
            )

        summary = {"assets": 0, "cases": 0, "maintenance": 0, "audits": 0,
                   "skipped": 0, "errors": [], "disconnected": False,
                   "write_locked": False}

        if self.write_lock_active:
            logger.info("Recent local write; store pull deferred")
            summary["write_locked"] = True
            return summary

        data = self.client.fetch_all()
        if data is None:
            summary["disconnected"] = True
            return summary

        pending = {(w.sheet, w.record_id) for w in self.failed_writes}
        sheets = [
            (SHEET_ASSETS, "assets", codec.asset_from_record, self.repo.save_asset),
            (SHEET_CASES, "cases", codec.case_from_record, self.repo.save_case),
            (SHEET_MAINTENANCE, "maintenance", codec.maintenance_from_record,
             self.repo.save_maintenance_record),
            (SHEET_AUDITS, "audits", codec.audit_from_record,
             self.repo.save_audit_record),
        ]
        for sheet, key, decode, save in sheets:
            for i, record in enumerate(data.get(sheet) or [], start=1):
                if not isinstance(record, dict):
                    summary["errors"].append(f"{sheet} row {i}: not a record")
                    continue
                item = decode(record)
                if not item.id:
                    summary["skipped"] += 1
                    continue
                if (sheet, item.id) in pending:
                    summary["skipped"] += 1
                    continue
                try:
                    save(item)
                except (ValueError, sqlite3.Error) as e:
                    summary["errors"].append(f"{sheet} {item.id}: {e}")
                    continue
                summary[key] += 1

        logger.info(
            f"Store pull: {summary['assets']} assets, {summary['cases']} cases, "
            f"{summary['maintenance']} maintenance, {summary['audits']} audits"
        )
        return summary
