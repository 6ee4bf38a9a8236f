"""Tests for the ledger repository."""

import sqlite3

import pytest

from kit_ledger.database.models import (
    ActionEntry,
    Asset,
    AuditRecord,
    Case,
    DefectTag,
    MaintenanceRecord,
)
from kit_ledger.utils.constants import (
    CONDITION_DAMAGED,
    CONDITION_LOST,
    FULL_STORE,
    ISSUANCE_OUTSTANDING,
    STAGE_SUPERVISOR,
    STATUS_RESOLVED,
)


def _variance(case_id, tool_id="T-001", quantity=1, defects=None, **kwargs):
    kwargs.setdefault("condition_on_return", CONDITION_LOST)
    return Case(
        id=case_id, tool_id=tool_id, tool_name="Impact Wrench Kit",
        staff_id="EMP-002", staff_name="Luis Ortega", quantity=quantity,
        issuance_type=ISSUANCE_OUTSTANDING, escalation_stage=STAGE_SUPERVISOR,
        defects=defects or [],
        date="2025-06-10", **kwargs,
    )


class TestAssets:
    """Asset registry CRUD."""

    def test_create_and_get(self, repo, kit):
        got = repo.get_asset("T-001")
        assert got.name == "Impact Wrench Kit"
        assert got.composition == ["Socket A", "Socket B", "Driver"]
        assert got.is_composite is True

    def test_get_missing_returns_none(self, repo):
        assert repo.get_asset("NOPE") is None

    def test_duplicate_id_rejected(self, repo, kit):
        with pytest.raises(ValueError, match="already exists"):
            repo.create_asset(Asset(id="T-001", name="Other", quantity=1,
                                    available=1))

    def test_available_cannot_exceed_quantity(self, repo):
        with pytest.raises(ValueError, match="outside"):
            repo.create_asset(Asset(id="X", name="X", quantity=2, available=3))

    def test_negative_available_rejected(self, repo, drill):
        drill.available = -1
        with pytest.raises(ValueError):
            repo.save_asset(drill)

    def test_assets_in_zone(self, repo, kit, drill, meter):
        assert {a.id for a in repo.assets_in_zone("Bay A")} == {"T-001", "T-002"}
        assert [a.id for a in repo.assets_in_zone("Bay B")] == ["T-004"]

    def test_full_store_returns_everything(self, repo, kit, drill, meter):
        assert len(repo.assets_in_zone(FULL_STORE)) == 3

    def test_get_zones_sorted_and_distinct(self, repo, kit, drill, meter):
        assert repo.get_zones() == ["Bay A", "Bay B"]

    def test_apply_reconciliation(self, repo, drill):
        updated = repo.apply_reconciliation("T-002", 6, CONDITION_LOST)
        assert updated.available == 6
        stored = repo.get_asset("T-002")
        assert stored.available == 6
        assert stored.condition == CONDITION_LOST

    def test_apply_reconciliation_unknown_asset(self, repo):
        with pytest.raises(ValueError, match="not found"):
            repo.apply_reconciliation("NOPE", 1, CONDITION_LOST)

    def test_apply_reconciliation_respects_bounds(self, repo, drill):
        with pytest.raises(ValueError):
            repo.apply_reconciliation("T-002", 9, CONDITION_LOST)
        assert repo.get_asset("T-002").available == 8

    def test_strip_defect_tags(self, repo, kit):
        kit.composition = ["Socket A", "Socket B (MISSING)", "Driver (DAMAGED)"]
        repo.save_asset(kit)
        stripped = repo.strip_defect_tags("T-001")
        assert stripped.composition == ["Socket A", "Socket B", "Driver"]
        assert repo.get_asset("T-001").composition == [
            "Socket A", "Socket B", "Driver",
        ]


class TestCases:
    """Usage ledger and the unresolved-variance index."""

    def test_roundtrip_defects_and_history(self, repo, kit):
        case = _variance(
            "C-1", defects=[DefectTag("SOCKET B", "MISSING")],
            action_history=[ActionEntry("Supervisor", "Dana", "GRANT GRACE",
                                        "2025-06-10 09:30:00", "ok")],
        )
        repo.create_case(case)
        got = repo.get_case("C-1")
        assert got.defects == [DefectTag("SOCKET B", "MISSING")]
        assert got.action_history[0].action == "GRANT GRACE"
        assert got.is_returned is False

    def test_duplicate_case_rejected(self, repo, kit):
        repo.create_case(_variance("C-1"))
        with pytest.raises(ValueError):
            repo.create_case(_variance("C-1"))

    def test_unresolved_variances_filter(self, repo, kit):
        repo.create_case(_variance("C-open"))
        repo.create_case(_variance("C-returned", is_returned=True))
        repo.create_case(_variance("C-resolved",
                                   escalation_status=STATUS_RESOLVED))
        repo.create_case(Case(id="C-standard", tool_id="T-001"))
        assert [c.id for c in repo.unresolved_variances("T-001")] == ["C-open"]

    def test_leaked_qty_sums_open_variances(self, repo, kit):
        repo.create_case(_variance("C-1", quantity=1))
        repo.create_case(_variance("C-2", quantity=2))
        repo.create_case(_variance("C-3", quantity=4,
                                   escalation_status=STATUS_RESOLVED))
        assert repo.leaked_qty("T-001") == 3
        assert repo.leaked_qty("T-002") == 0

    def test_locked_parts_normalized(self, repo, kit):
        repo.create_case(_variance(
            "C-1", defects=[DefectTag("socket  b", "MISSING"),
                            DefectTag("Driver", "DAMAGED")],
        ))
        assert repo.locked_parts("T-001") == {"SOCKET B", "DRIVER"}

    def test_resolved_case_releases_lock(self, repo, kit):
        repo.create_case(_variance(
            "C-1", defects=[DefectTag("SOCKET B", "MISSING")],
            escalation_status=STATUS_RESOLVED,
        ))
        assert repo.locked_parts("T-001") == set()

    def test_open_cases_include_damaged_returns(self, repo, kit):
        repo.create_case(_variance("C-out"))
        repo.create_case(_variance("C-back-damaged", is_returned=True,
                                   condition_on_return=CONDITION_DAMAGED))
        repo.create_case(_variance("C-back-good", is_returned=True,
                                   condition_on_return="Good"))
        repo.create_case(_variance("C-closed",
                                   escalation_status=STATUS_RESOLVED))
        ids = {c.id for c in repo.get_open_cases()}
        assert ids == {"C-out", "C-back-damaged"}

    def test_cases_for_tool(self, repo, kit, drill):
        repo.create_case(_variance("C-1"))
        repo.create_case(_variance("C-2", tool_id="T-002"))
        assert [c.id for c in repo.get_cases_for_tool("T-002")] == ["C-2"]


class TestMaintenanceAndAudits:
    def test_maintenance_roundtrip_keeps_unknown_repairability(self, repo):
        repo.save_maintenance_record(MaintenanceRecord(
            id="MNT-1", tool_id="T-001", reported_by="Dana",
        ))
        got = repo.get_maintenance_record("MNT-1")
        assert got.is_repairable is None
        assert got.status == "Staged"

    def test_maintenance_filter_by_tool(self, repo):
        repo.save_maintenance_record(MaintenanceRecord(id="M1", tool_id="A"))
        repo.save_maintenance_record(MaintenanceRecord(
            id="M2", tool_id="B", is_repairable=False,
        ))
        assert [m.id for m in repo.get_maintenance_records("B")] == ["M2"]
        assert repo.get_maintenance_record("M2").is_repairable is False
        assert len(repo.get_maintenance_records()) == 2

    def test_audit_history(self, repo):
        repo.create_audit_record(AuditRecord(
            id="AUD-1", date="2025-06-10 09:30:00", section="Bay A",
            inspector="Dana", issues=[{"toolId": "T-001"}], signature="DW",
        ))
        history = repo.get_audit_history()
        assert history[0].issues == [{"toolId": "T-001"}]


class TestAtomicWrites:
    """Reconciled records land together or not at all."""

    def test_commit_variance_writes_all(self, repo, kit):
        kit.available = 4
        repo.commit_variance(
            kit, _variance("C-1"),
            MaintenanceRecord(id="MNT-1", tool_id="T-001"),
        )
        assert repo.get_asset("T-001").available == 4
        assert repo.get_case("C-1") is not None
        assert repo.get_maintenance_record("MNT-1") is not None

    def test_commit_variance_rolls_back(self, repo, kit):
        kit.available = 4
        bad_ticket = MaintenanceRecord(id="MNT-1", tool_id="T-001",
                                       status="Bogus")
        with pytest.raises(sqlite3.IntegrityError):
            repo.commit_variance(kit, _variance("C-1"), bad_ticket)
        assert repo.get_asset("T-001").available == 5
        assert repo.get_case("C-1") is None

    def test_commit_recovery_validates_asset_first(self, repo, kit):
        kit.available = 6
        with pytest.raises(ValueError):
            repo.commit_recovery(_variance("C-1"), kit)
        assert repo.get_case("C-1") is None

    def test_commit_variance_never_overwrites_a_case(self, repo, kit):
        case = _variance("C-1")
        case.escalation_status = STATUS_RESOLVED
        repo.create_case(case)
        kit.available = 4
        with pytest.raises(ValueError):
            repo.commit_variance(kit, _variance("C-1"))
        assert repo.get_case("C-1").escalation_status == STATUS_RESOLVED
        assert repo.get_asset("T-001").available == 5

    def test_commit_recovery_restores_composition(self, repo, kit):
        kit.composition = ["Socket A", "Socket B (MISSING)", "Driver"]
        repo.save_asset(kit)
        case = _variance("C-1")
        repo.create_case(case)
        case.escalation_status = STATUS_RESOLVED
        repo.commit_recovery(case, repo.get_asset("T-001"))
        assert repo.get_asset("T-001").composition == [
            "Socket A", "Socket B", "Driver",
        ]

    def test_audit_ids_are_unique(self, repo):
        repo.create_audit_record(AuditRecord(id="AUD-1", section="Bay A"))
        with pytest.raises(ValueError):
            repo.create_audit_record(AuditRecord(id="AUD-1", section="Bay B"))
        repo.save_audit_record(AuditRecord(id="AUD-1", section="Yard"))
        assert repo.get_audit_record("AUD-1").section == "Yard"
        assert repo.get_audit_record("AUD-2") is None


class TestLedgerSummary:
    def test_summary(self, repo, kit, drill):
        kit.condition = CONDITION_LOST
        repo.save_asset(kit)
        repo.create_case(_variance("C-1"))
        repo.create_audit_record(AuditRecord(
            id="AUD-1", date="2025-06-10 09:30:00",
        ))
        summary = repo.get_ledger_summary()
        assert summary["total_value"] == pytest.approx(5 * 420.0 + 8 * 159.0)
        assert summary["critical_count"] == 1
        assert summary["outstanding_count"] == 1
        assert summary["last_inspection"] == "2025-06-10"

    def test_empty_summary(self, repo):
        summary = repo.get_ledger_summary()
        assert summary["total_value"] == 0
        assert summary["last_inspection"] == ""
