"""Repository layer: all CRUD operations and queries."""

import json
from dataclasses import asdict
from typing import Optional

from kit_ledger.utils.constants import (
    CRITICAL_CONDITIONS,
    FULL_STORE,
    ISSUANCE_OUTSTANDING,
    STATUS_RESOLVED,
)
from kit_ledger.utils.formatters import normalize_part_name

from .connection import DatabaseConnection
from .models import (
    ActionEntry,
    Asset,
    AuditRecord,
    Case,
    DefectTag,
    MaintenanceRecord,
)

_ASSET_COLUMNS = [
    "id", "serial_number", "name", "category", "zone", "asset_class",
    "quantity", "available", "condition", "responsible_staff_id",
    "monetary_value", "last_verified", "image_url", "composition",
    "submission_date", "added_by",
]

_CASE_COLUMNS = [
    "id", "batch_id", "tool_id", "tool_name", "quantity", "staff_id",
    "staff_name", "shift_type", "date", "time_out", "time_in",
    "is_returned", "condition_on_return", "attendant_id", "attendant_name",
    "issuance_type", "notes", "defects", "recipient_signature",
    "escalation_status", "discovery_date", "monetary_value",
    "evidence_image", "escalation_stage", "grace_expiry_date",
    "action_history", "audit_id", "resolution_pathway",
]

_MAINTENANCE_COLUMNS = [
    "id", "tool_id", "tool_name", "reported_by", "reported_date",
    "breakdown_context", "is_repairable", "status", "resolution_date",
    "technician_notes", "estimated_cost", "assigned_staff_id",
    "assigned_staff_name", "is_escalated_to_supervisor", "escalation_notes",
]

_AUDIT_COLUMNS = [
    "id", "date", "section", "inspector", "shift_type", "issues", "signature",
]


def _upsert_sql(table: str, columns: list[str]) -> str:
    """INSERT ... ON CONFLICT(id) DO UPDATE for a whole record."""
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")
    touch = ", updated_at = CURRENT_TIMESTAMP" if table != "audit_history" else ""
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}{touch}"
    )


def _check_availability(asset: Asset):
    if asset.quantity < 0:
        raise ValueError(f"Asset {asset.id}: quantity cannot be negative")
    if not 0 <= asset.available <= asset.quantity:
        raise ValueError(
            f"Asset {asset.id}: available {asset.available} is outside "
            f"0..{asset.quantity}"
        )


def _restore_composition(asset: Asset) -> Asset:
    """Drop every (MISSING)/(DAMAGED) suffix from the composition."""
    asset.composition = asset.canonical_parts
    return asset


def _row_to_asset(row) -> Asset:
    data = dict(row)
    data.pop("updated_at", None)
    data["composition"] = json.loads(data["composition"] or "[]")
    return Asset(**data)


def _row_to_case(row) -> Case:
    data = dict(row)
    data.pop("updated_at", None)
    data["is_returned"] = bool(data["is_returned"])
    data["defects"] = [
        DefectTag(d["part"], d["defect"])
        for d in json.loads(data["defects"] or "[]")
    ]
    data["action_history"] = [
        ActionEntry(**entry)
        for entry in json.loads(data["action_history"] or "[]")
    ]
    return Case(**data)


def _row_to_maintenance(row) -> MaintenanceRecord:
    data = dict(row)
    data.pop("updated_at", None)
    if data["is_repairable"] is not None:
        data["is_repairable"] = bool(data["is_repairable"])
    data["is_escalated_to_supervisor"] = bool(data["is_escalated_to_supervisor"])
    return MaintenanceRecord(**data)


def _row_to_audit(row) -> AuditRecord:
    data = dict(row)
    data["issues"] = json.loads(data["issues"] or "[]")
    return AuditRecord(**data)


class Repository:
    """Provides all ledger database operations."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    # ── Assets ──────────────────────────────────────────────────

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        rows = self.db.execute("SELECT * FROM assets WHERE id = ?", (asset_id,))
        return _row_to_asset(rows[0]) if rows else None

    def get_all_assets(self) -> list[Asset]:
        rows = self.db.execute("SELECT * FROM assets ORDER BY zone, name")
        return [_row_to_asset(r) for r in rows]

    def assets_in_zone(self, zone: str) -> list[Asset]:
        """Assets in one zone, or the whole registry for 'Full Store'."""
        if zone == FULL_STORE:
            return self.get_all_assets()
        rows = self.db.execute(
            "SELECT * FROM assets WHERE zone = ? ORDER BY name", (zone,)
        )
        return [_row_to_asset(r) for r in rows]

    def get_zones(self) -> list[str]:
        rows = self.db.execute(
            "SELECT DISTINCT zone FROM assets WHERE zone != '' ORDER BY zone"
        )
        return [r["zone"] for r in rows]

    def create_asset(self, asset: Asset) -> str:
        """Provision a new asset. Raises ValueError on a duplicate id."""
        _check_availability(asset)
        if self.get_asset(asset.id):
            raise ValueError(f"Asset {asset.id} already exists")
        with self.db.get_connection() as conn:
            self._write_asset(conn, asset)
        return asset.id

    def save_asset(self, asset: Asset):
        """Insert or replace a whole asset record."""
        _check_availability(asset)
        with self.db.get_connection() as conn:
            self._write_asset(conn, asset)

    def apply_reconciliation(self, asset_id: str, new_available: int,
                             new_condition: str) -> Asset:
        """Manual registry correction outside of an audit.

        The engine writes reconciled assets together with their case
        through ``commit_variance``; this is for one-off adjustments.
        """
        asset = self._require_asset(asset_id)
        asset.available = new_available
        asset.condition = new_condition
        self.save_asset(asset)
        return asset

    def strip_defect_tags(self, asset_id: str) -> Asset:
        """Restore canonical part names across the asset's composition."""
        asset = _restore_composition(self._require_asset(asset_id))
        self.save_asset(asset)
        return asset

    def _require_asset(self, asset_id: str) -> Asset:
        asset = self.get_asset(asset_id)
        if asset is None:
            raise ValueError(f"Asset {asset_id} not found")
        return asset

    @staticmethod
    def _write_asset(conn, asset: Asset):
        values = asdict(asset)
        values["composition"] = json.dumps(asset.composition)
        conn.execute(
            _upsert_sql("assets", _ASSET_COLUMNS),
            tuple(values[c] for c in _ASSET_COLUMNS),
        )

    # ── Cases ───────────────────────────────────────────────────

    def get_case(self, case_id: str) -> Optional[Case]:
        rows = self.db.execute("SELECT * FROM cases WHERE id = ?", (case_id,))
        return _row_to_case(rows[0]) if rows else None

    def get_all_cases(self) -> list[Case]:
        rows = self.db.execute("SELECT * FROM cases ORDER BY date DESC, id")
        return [_row_to_case(r) for r in rows]

    def get_cases_for_tool(self, tool_id: str) -> list[Case]:
        rows = self.db.execute(
            "SELECT * FROM cases WHERE tool_id = ? ORDER BY date, id",
            (tool_id,),
        )
        return [_row_to_case(r) for r in rows]

    def get_open_cases(self) -> list[Case]:
        """Accountability view: still out, or back Lost/Damaged."""
        rows = self.db.execute(
            "SELECT * FROM cases WHERE escalation_status != ? "
            "AND (is_returned = 0 "
            "     OR condition_on_return IN ('Lost', 'Damaged')) "
            "ORDER BY date, id",
            (STATUS_RESOLVED,),
        )
        return [_row_to_case(r) for r in rows]

    def create_case(self, case: Case) -> str:
        if self.get_case(case.id):
            raise ValueError(f"Case {case.id} already exists")
        with self.db.get_connection() as conn:
            self._write_case(conn, case)
        return case.id

    def save_case(self, case: Case):
        with self.db.get_connection() as conn:
            self._write_case(conn, case)

    def unresolved_variances(self, tool_id: str) -> list[Case]:
        """Outstanding, unreturned, unresolved cases against one tool."""
        rows = self.db.execute(
            "SELECT * FROM cases WHERE tool_id = ? AND issuance_type = ? "
            "AND is_returned = 0 AND escalation_status != ? ORDER BY date, id",
            (tool_id, ISSUANCE_OUTSTANDING, STATUS_RESOLVED),
        )
        return [_row_to_case(r) for r in rows]

    def leaked_qty(self, tool_id: str) -> int:
        return sum(c.quantity for c in self.unresolved_variances(tool_id))

    def locked_parts(self, tool_id: str) -> set[str]:
        """Normalized part names held by an unresolved case."""
        locked = set()
        for case in self.unresolved_variances(tool_id):
            locked.update(normalize_part_name(d.part) for d in case.defects)
        return locked

    @staticmethod
    def _write_case(conn, case: Case):
        values = asdict(case)
        values["is_returned"] = int(case.is_returned)
        values["defects"] = json.dumps(
            [{"part": d.part, "defect": d.defect} for d in case.defects]
        )
        values["action_history"] = json.dumps(
            [asdict(e) for e in case.action_history]
        )
        conn.execute(
            _upsert_sql("cases", _CASE_COLUMNS),
            tuple(values[c] for c in _CASE_COLUMNS),
        )

    # ── Maintenance ─────────────────────────────────────────────

    def get_maintenance_record(self, record_id: str) -> Optional[MaintenanceRecord]:
        rows = self.db.execute(
            "SELECT * FROM maintenance_records WHERE id = ?", (record_id,)
        )
        return _row_to_maintenance(rows[0]) if rows else None

    def get_maintenance_records(self, tool_id: str = None) -> list[MaintenanceRecord]:
        if tool_id:
            rows = self.db.execute(
                "SELECT * FROM maintenance_records WHERE tool_id = ? "
                "ORDER BY reported_date, id",
                (tool_id,),
            )
        else:
            rows = self.db.execute(
                "SELECT * FROM maintenance_records ORDER BY reported_date, id"
            )
        return [_row_to_maintenance(r) for r in rows]

    def save_maintenance_record(self, record: MaintenanceRecord):
        with self.db.get_connection() as conn:
            self._write_maintenance(conn, record)

    @staticmethod
    def _write_maintenance(conn, record: MaintenanceRecord):
        values = asdict(record)
        if record.is_repairable is not None:
            values["is_repairable"] = int(record.is_repairable)
        values["is_escalated_to_supervisor"] = int(
            record.is_escalated_to_supervisor
        )
        conn.execute(
            _upsert_sql("maintenance_records", _MAINTENANCE_COLUMNS),
            tuple(values[c] for c in _MAINTENANCE_COLUMNS),
        )

    # ── Audit history ───────────────────────────────────────────

    def get_audit_record(self, record_id: str) -> Optional[AuditRecord]:
        rows = self.db.execute(
            "SELECT * FROM audit_history WHERE id = ?", (record_id,)
        )
        return _row_to_audit(rows[0]) if rows else None

    def create_audit_record(self, record: AuditRecord) -> str:
        if self.get_audit_record(record.id):
            raise ValueError(f"Audit {record.id} already exists")
        self.save_audit_record(record)
        return record.id

    def save_audit_record(self, record: AuditRecord):
        """Upsert, used by the store pull."""
        values = asdict(record)
        values["issues"] = json.dumps(record.issues)
        with self.db.get_connection() as conn:
            conn.execute(
                _upsert_sql("audit_history", _AUDIT_COLUMNS),
                tuple(values[c] for c in _AUDIT_COLUMNS),
            )

    def get_audit_history(self) -> list[AuditRecord]:
        rows = self.db.execute(
            "SELECT * FROM audit_history ORDER BY date DESC, id DESC"
        )
        return [_row_to_audit(r) for r in rows]

    # ── Atomic multi-record writes ──────────────────────────────

    def commit_variance(self, asset: Asset, case: Optional[Case] = None,
                        maintenance: Optional[MaintenanceRecord] = None):
        """Write one reconciled asset with its case and ticket together.

        The case must be new; an existing case is only ever changed by
        the escalation transitions.
        """
        _check_availability(asset)
        with self.db.get_connection() as conn:
            if case is not None and conn.execute(
                "SELECT 1 FROM cases WHERE id = ?", (case.id,)
            ).fetchone():
                raise ValueError(f"Case {case.id} already exists")
            self._write_asset(conn, asset)
            if case is not None:
                self._write_case(conn, case)
            if maintenance is not None:
                self._write_maintenance(conn, maintenance)

    def commit_recovery(self, case: Case, asset: Optional[Asset] = None,
                        maintenance: Optional[MaintenanceRecord] = None):
        """Write a resolved case with the asset it restores.

        The asset's composition loses its defect suffixes.
        """
        if asset is not None:
            _check_availability(asset)
            _restore_composition(asset)
        with self.db.get_connection() as conn:
            self._write_case(conn, case)
            if asset is not None:
                self._write_asset(conn, asset)
            if maintenance is not None:
                self._write_maintenance(conn, maintenance)

    # ── Summary ─────────────────────────────────────────────────

    def get_ledger_summary(self) -> dict:
        """Registry value, flagged assets, open issuances, last inspection."""
        assets = self.get_all_assets()
        outstanding = self.db.execute(
            "SELECT COUNT(*) AS cnt FROM cases WHERE is_returned = 0"
        )
        last = self.db.execute("SELECT MAX(date) AS d FROM audit_history")
        last_date = last[0]["d"] if last and last[0]["d"] else ""
        return {
            "total_value": sum(a.total_value for a in assets),
            "critical_count": sum(
                1 for a in assets if a.condition in CRITICAL_CONDITIONS
            ),
            "outstanding_count": outstanding[0]["cnt"] if outstanding else 0,
            "last_inspection": last_date.split(" ")[0] if last_date else "",
        }
