"""Repair tickets raised by damaged findings and damaged recoveries."""

import logging
from datetime import datetime
from typing import Optional

from kit_ledger.database.models import Actor, Asset, MaintenanceRecord
from kit_ledger.database.repository import Repository
from kit_ledger.utils.constants import (
    MAINTENANCE_DECOMMISSIONED,
    MAINTENANCE_IN_REPAIR,
    MAINTENANCE_RESTORED,
    MAINTENANCE_STAGED,
    MAINTENANCE_STATUSES,
)

logger = logging.getLogger(__name__)

# Repairability implied by each ticket outcome
_REPAIRABLE_BY_STATUS = {
    MAINTENANCE_IN_REPAIR: True,
    MAINTENANCE_RESTORED: True,
    MAINTENANCE_DECOMMISSIONED: False,
}


def millis(at: datetime) -> int:
    return int(at.timestamp() * 1000)


class MaintenanceQueue:
    """Creates and updates maintenance tickets.

    Tickets never touch the asset they describe; the registry is changed
    only by reconciliation and case recovery.
    """

    def __init__(self, repo: Repository, sync=None):
        self.repo = repo
        self.sync = sync

    def new_record(self, asset: Asset, reported_by: str, context: str,
                   assigned_staff_id: str = "", assigned_staff_name: str = "",
                   at: Optional[datetime] = None,
                   prefix: str = "MNT") -> MaintenanceRecord:
        """Build a Staged ticket without saving it."""
        at = at or datetime.now()
        return MaintenanceRecord(
            id=f"{prefix}-{millis(at)}-{asset.id}",
            tool_id=asset.id,
            tool_name=asset.name,
            reported_by=reported_by,
            reported_date=at.date().isoformat(),
            breakdown_context=context,
            status=MAINTENANCE_STAGED,
            assigned_staff_id=assigned_staff_id,
            assigned_staff_name=assigned_staff_name,
        )

    def stage(self, asset: Asset, reported_by: str, context: str,
              assigned_staff_id: str = "", assigned_staff_name: str = "",
              at: Optional[datetime] = None) -> MaintenanceRecord:
        record = self.new_record(asset, reported_by, context,
                                 assigned_staff_id, assigned_staff_name, at)
        self.repo.save_maintenance_record(record)
        logger.info(f"Staged maintenance {record.id} for {asset.id}")
        self._push(record)
        return record

    def escalate(self, record_id: str, actor: Actor, notes: str) -> MaintenanceRecord:
        """Flag a ticket for supervisor attention."""
        record = self._require(record_id)
        record.is_escalated_to_supervisor = True
        record.escalation_notes = f"[ESCALATED BY {actor.name}] {notes}"
        self.repo.save_maintenance_record(record)
        self._push(record)
        return record

    def reassign(self, record_id: str, staff_id: str, staff_name: str,
                 actor: Actor) -> MaintenanceRecord:
        record = self._require(record_id)
        record.assigned_staff_id = staff_id
        record.assigned_staff_name = staff_name
        stamp = f"[SUPERVISOR REASSIGNMENT TO {staff_name} BY {actor.name}]"
        record.technician_notes = " | ".join(
            n for n in (record.technician_notes, stamp) if n
        )
        self.repo.save_maintenance_record(record)
        self._push(record)
        return record

    def set_status(self, record_id: str, status: str,
                   technician_notes: Optional[str] = None,
                   estimated_cost: Optional[float] = None,
                   at: Optional[datetime] = None) -> MaintenanceRecord:
        """Move a ticket to In_Repair, Restored or Decommissioned."""
        if status not in MAINTENANCE_STATUSES:
            raise ValueError(f"Unknown maintenance status: {status}")
        record = self._require(record_id)
        if record.status in (MAINTENANCE_RESTORED, MAINTENANCE_DECOMMISSIONED):
            raise ValueError(f"Maintenance {record_id} is already {record.status}")
        record.status = status
        if status in _REPAIRABLE_BY_STATUS:
            record.is_repairable = _REPAIRABLE_BY_STATUS[status]
        if status in (MAINTENANCE_RESTORED, MAINTENANCE_DECOMMISSIONED):
            record.resolution_date = (at or datetime.now()).date().isoformat()
        if technician_notes is not None:
            record.technician_notes = technician_notes
        if estimated_cost is not None:
            if estimated_cost < 0:
                raise ValueError("Estimated cost cannot be negative")
            record.estimated_cost = estimated_cost
        self.repo.save_maintenance_record(record)
        self._push(record)
        return record

    def _require(self, record_id: str) -> MaintenanceRecord:
        record = self.repo.get_maintenance_record(record_id)
        if record is None:
            raise ValueError(f"Maintenance record {record_id} not found")
        return record

    def _push(self, record: MaintenanceRecord):
        if self.sync is not None:
            self.sync.push_maintenance(record)
