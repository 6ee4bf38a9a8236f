"""Tests for CSV import and export."""

import csv
from datetime import timedelta

import pytest

from kit_ledger.database.models import Case, DefectTag
from kit_ledger.io.csv_handler import (
    FINDING_CSV_COLUMNS,
    export_assets_csv,
    export_cases_csv,
    import_assets_csv,
    import_findings_csv,
    read_findings_csv,
)
from kit_ledger.ledger.reconciliation import ReconciliationEngine
from kit_ledger.utils.constants import ISSUANCE_OUTSTANDING, STATUS_RESOLVED


def _write_csv(path, fieldnames, rows):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


def _read_csv(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


class TestExport:
    def test_export_assets(self, repo, kit, drill, tmp_path):
        path = tmp_path / "out" / "assets.csv"
        assert export_assets_csv(repo, path) == 2
        rows = {r["id"]: r for r in _read_csv(path)}
        assert rows["T-001"]["composition"] == "Socket A; Socket B; Driver"
        assert rows["T-002"]["available"] == "8"

    def test_export_cases_with_tags(self, repo, kit, tmp_path):
        repo.create_case(Case(
            id="C-1", tool_id="T-001", issuance_type=ISSUANCE_OUTSTANDING,
            defects=[DefectTag("Socket B", "MISSING")],
        ))
        repo.create_case(Case(id="C-2", tool_id="T-001",
                              escalation_status=STATUS_RESOLVED,
                              is_returned=True))
        path = tmp_path / "cases.csv"
        assert export_cases_csv(repo, path) == 2
        assert export_cases_csv(repo, path, open_only=True) == 1
        row = _read_csv(path)[0]
        assert row["defects"] == "[MISSING: SOCKET B]"
        assert row["is_returned"] == "FALSE"


class TestImportAssets:
    COLUMNS = ["id", "name", "zone", "asset_class", "quantity", "available",
               "composition", "monetary_value"]

    def test_import_new(self, repo, tmp_path):
        path = _write_csv(tmp_path / "a.csv", self.COLUMNS, [
            {"id": "T-9", "name": "Level Kit", "zone": "Yard",
             "asset_class": "Toolbox", "quantity": "2", "available": "",
             "composition": "Laser; Tripod", "monetary_value": "540"},
        ])
        results = import_assets_csv(repo, path)
        assert results["imported"] == 1
        asset = repo.get_asset("T-9")
        assert asset.available == 2
        assert asset.composition == ["Laser", "Tripod"]

    def test_existing_skipped_or_updated(self, repo, drill, tmp_path):
        path = _write_csv(tmp_path / "a.csv", self.COLUMNS, [
            {"id": "T-002", "name": "Drill v2", "quantity": "8",
             "available": "8"},
        ])
        assert import_assets_csv(repo, path)["skipped"] == 1
        assert import_assets_csv(repo, path, update_existing=True)["updated"] == 1
        assert repo.get_asset("T-002").name == "Drill v2"

    def test_invalid_rows_reported(self, repo, tmp_path):
        path = _write_csv(tmp_path / "a.csv", self.COLUMNS, [
            {"id": "", "name": "No id"},
        ])
        results = import_assets_csv(repo, path)
        assert results["skipped"] == 1
        assert results["errors"] == ["Row 2: id is required"]

    def test_missing_file(self, repo, tmp_path):
        results = import_assets_csv(repo, tmp_path / "nope.csv")
        assert results["errors"][0].startswith("File error:")


class TestFindings:
    @pytest.fixture
    def findings_file(self, tmp_path):
        return _write_csv(tmp_path / "findings.csv", FINDING_CSV_COLUMNS, [
            {"asset_id": "T-001", "sighted_qty": "5",
             "missing_parts": "Socket B", "responsible_staff_id": "EMP-002",
             "responsible_staff_name": "Luis Ortega",
             "notes": "Socket B gone"},
            {"asset_id": "T-002", "sighted_qty": "6"},
            {"asset_id": "T-004", "sighted_qty": "6", "condition": "Damaged",
             "notes": "Cracked display"},
            {"asset_id": "T-002", "sighted_qty": "8"},
            {"asset_id": "GHOST", "sighted_qty": "1"},
        ])

    def test_read_findings(self, repo, kit, drill, meter, findings_file):
        findings, results = read_findings_csv(repo, findings_file)
        assert results["read"] == 3
        assert results["skipped"] == 2
        assert "Row 5: duplicate finding for T-002" in results["errors"]
        kit_finding = findings[0]
        assert kit_finding.piece_status == {
            "Socket A": "Present", "Socket B": "Missing", "Driver": "Present",
        }
        assert kit_finding.condition == "Lost"
        assert findings[1].condition == "Lost"
        assert findings[2].condition == "Damaged"

    def test_import_reconciles(self, repo, kit, drill, meter, inspector,
                               findings_file):
        engine = ReconciliationEngine(repo)
        results = import_findings_csv(engine, findings_file, "sig", inspector,
                                      scope="Bay A")
        assert len(results["cases"]) == 3
        assert len(results["maintenance"]) == 1
        assert repo.get_asset("T-002").available == 6
        assert repo.locked_parts("T-001") == {"SOCKET B"}

    def test_batch_respects_locks(self, repo, kit, drill, meter, inspector,
                                  findings_file):
        engine = ReconciliationEngine(repo)
        repo.create_case(Case(
            id="OLD", tool_id="T-001", issuance_type=ISSUANCE_OUTSTANDING,
            defects=[DefectTag("SOCKET B", "MISSING")],
        ))
        results = import_findings_csv(engine, findings_file, "sig", inspector)
        assert results["blocked"] == {"T-001": ["Socket B"]}
        assert len(repo.unresolved_variances("T-001")) == 1

    def test_reimport_does_not_duplicate_damage(self, repo, meter, inspector,
                                                audit_time, tmp_path):
        path = _write_csv(tmp_path / "damage.csv", FINDING_CSV_COLUMNS, [
            {"asset_id": "T-004", "sighted_qty": "6", "condition": "Damaged",
             "notes": "Cracked display"},
        ])
        engine = ReconciliationEngine(repo)
        first = import_findings_csv(engine, path, "sig", inspector,
                                    at=audit_time)
        again = import_findings_csv(engine, path, "sig", inspector,
                                    at=audit_time + timedelta(hours=1))
        assert again["cases"] == []
        assert again["maintenance"] == []
        assert again["covered"] == {"T-004": first["cases"][0]}
        assert len(repo.unresolved_variances("T-004")) == 1
        assert len(repo.get_maintenance_records("T-004")) == 1
