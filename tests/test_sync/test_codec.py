"""Tests for store row layouts and tolerant record reading."""

import json

from kit_ledger.database.models import (
    ActionEntry,
    Asset,
    AuditRecord,
    Case,
    DefectTag,
    MaintenanceRecord,
)
from kit_ledger.sync import codec


class TestReadingHelpers:
    def test_fuzzy_key_variants(self):
        record = {"Tool ID": "T-1", "monetary_value": "12.5", "IsReturned": "yes"}
        assert codec.get_fuzzy(record, "toolId") == "T-1"
        assert codec.get_fuzzy(record, "monetaryValue") == "12.5"
        assert codec.get_fuzzy(record, "is_returned") == "yes"

    def test_exact_match_wins_over_substring(self):
        record = {"toolId": "T-1", "id": "C-1"}
        assert codec.get_fuzzy(record, "id") == "C-1"

    def test_short_keys_never_substring_match(self):
        assert codec.get_fuzzy({"toolId": "T-1"}, "id") is None

    def test_substring_fallback(self):
        assert codec.get_fuzzy({"Tool Condition": "Good"}, "condition") == "Good"

    def test_parse_bool(self):
        assert codec.parse_bool("TRUE") is True
        assert codec.parse_bool("1") is True
        assert codec.parse_bool("no") is False
        assert codec.parse_bool(None) is False
        assert codec.parse_optional_bool("") is None

    def test_numbers_tolerate_junk(self):
        assert codec.parse_int("3.0") == 3
        assert codec.parse_int("n/a") == 0
        assert codec.parse_float(None) == 0.0

    def test_safe_parse(self):
        assert codec.safe_parse('["A", "B"]') == ["A", "B"]
        assert codec.safe_parse("Socket A") == ["Socket A"]
        assert codec.safe_parse("") == []
        assert codec.safe_parse(["x"]) == ["x"]


class TestAssets:
    def test_row_order(self):
        asset = Asset(id="T-1", name="Kit", zone="Bay A", quantity=5,
                      available=4, asset_class="Toolbox",
                      composition=["A", "B"])
        row = codec.asset_to_row(asset)
        assert row[0] == "T-1"
        assert row[5:7] == [5, 4]
        assert row[12] == "Toolbox"
        assert json.loads(row[13]) == ["A", "B"]
        assert len(row) == 16

    def test_piece_written_as_pc(self):
        assert codec.asset_to_row(Asset(id="T"))[12] == "Pc"

    def test_read_tolerates_store_spelling(self):
        asset = codec.asset_from_record({
            "ID": "T-1", "Name": "Kit", "Quantity": "5", "Available": "9",
            "asset_class": "pc", "Composition": "Socket A",
            "Monetary Value": "10",
        })
        assert asset.available == 5
        assert asset.asset_class == "Piece"
        assert asset.composition == ["Socket A"]
        assert asset.monetary_value == 10.0


class TestCases:
    def _case(self):
        return Case(
            id="C-1", tool_id="T-1", quantity=1, issuance_type="Outstanding",
            escalation_stage="Supervisor", notes="[AUDIT] gone",
            defects=[DefectTag("Socket B", "MISSING")],
            action_history=[ActionEntry("Supervisor", "Sam", "GRANT GRACE",
                                        "2025-06-12 14:15:00")],
            audit_id="AUD-1", attendant_name="Dana",
        )

    def test_comment_carries_tags(self):
        row = codec.case_to_row(self._case())
        assert row[15] == "[AUDIT] gone | [MISSING: SOCKET B]"
        assert row[11] == "FALSE"
        assert json.loads(row[23])[0]["actorName"] == "Sam"
        assert row[24] == "AUD-1"
        assert len(row) == 26

    def test_read_back_structured(self):
        record = {
            "id": "C-1", "toolId": "T-1", "quantity": "1",
            "isReturned": "FALSE", "issuanceType": "Outstanding",
            "comment": "[AUDIT] gone | [MISSING: SOCKET B]",
            "escalationStage": "Supervisor", "escalationStatus": "Bogus",
            "actionHistory": json.dumps([{"stage": "Supervisor",
                                          "actorName": "Sam",
                                          "action": "GRANT GRACE",
                                          "timestamp": "t", "notes": ""}]),
            "physicalArchiveId": "AUD-1",
        }
        case = codec.case_from_record(record)
        assert case.notes == "[AUDIT] gone"
        assert case.defects == [DefectTag("SOCKET B", "MISSING")]
        assert case.escalation_status == "Pending"
        assert case.action_history[0].actor_name == "Sam"
        assert case.audit_id == "AUD-1"
        assert case.is_unresolved_variance is True

    CASE_HEADERS = [
        "id", "batchId", "toolId", "toolName", "quantity", "staffId",
        "staffName", "shiftType", "date", "timeOut", "timeIn", "isReturned",
        "conditionOnReturn", "attendantId", "issuanceType", "comment",
        "signature", "escalationStatus", "discoveryDate", "monetaryValue",
        "evidenceImage", "escalationStage", "graceExpiryDate",
        "actionHistory", "physicalArchiveId", "attendantName",
    ]

    def _through_store(self, case):
        row = codec.case_to_row(case)
        return codec.case_from_record(dict(zip(self.CASE_HEADERS, row)))

    def test_hr_pathway_survives_store(self):
        closed = self._case()
        closed.notes += (
            " | [VERDICT AUTHORIZED BY: Hana | DATE: 2025-07-01 10:00:00] "
            "Resolution Protocol: [PAYROLL_DEDUCTION]. Notes: deduct"
        )
        closed.resolution_pathway = "PAYROLL_DEDUCTION"
        closed.escalation_status = "Resolved"
        closed.is_returned = True

        back = self._through_store(closed)
        assert back.resolution_pathway == "PAYROLL_DEDUCTION"
        assert back.notes == closed.notes
        assert back.defects == [DefectTag("SOCKET B", "MISSING")]
        assert back.escalation_status == "Resolved"

    def test_open_case_has_no_pathway(self):
        assert self._through_store(self._case()).resolution_pathway == ""

    def test_tag_words_in_notes_stay_notes(self):
        case = self._case()
        case.notes = "[AUDIT] bag tagged [missing: charger]"
        case.defects = []
        back = self._through_store(case)
        assert back.defects == []
        assert back.notes == "[AUDIT] bag tagged [missing: charger]"


class TestMaintenanceAndAudit:
    def test_unknown_repairability_is_blank(self):
        row = codec.maintenance_to_row(MaintenanceRecord(id="M-1"))
        assert row[6] == ""
        assert codec.maintenance_from_record(
            {"id": "M-1", "isRepairable": ""}
        ).is_repairable is None

    def test_maintenance_read(self):
        record = codec.maintenance_from_record({
            "id": "M-1", "toolId": "T-1", "isRepairable": "TRUE",
            "status": "In_Repair", "isEscalatedToSupervisor": "1",
            "estimatedCost": "35",
        })
        assert record.is_repairable is True
        assert record.status == "In_Repair"
        assert record.is_escalated_to_supervisor is True
        assert record.estimated_cost == 35.0

    def test_audit_row(self):
        row = codec.audit_to_row(AuditRecord(id="AUD-1", issues=[{"toolId": "T"}]))
        assert json.loads(row[5]) == [{"toolId": "T"}]
        audit = codec.audit_from_record({"id": "AUD-1", "issues": row[5]})
        assert audit.issues == [{"toolId": "T"}]
