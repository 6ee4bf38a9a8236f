"""Tests for model properties."""

from kit_ledger.database.models import Asset, Case, DefectTag, Finding
from kit_ledger.utils.constants import (
    CONDITION_DAMAGED,
    CONDITION_GOOD,
    ISSUANCE_OUTSTANDING,
    PIECE_DAMAGED,
    PIECE_MISSING,
    PIECE_PRESENT,
    STATUS_RESOLVED,
)


class TestAsset:
    def test_piece_is_never_composite(self):
        assert Asset(asset_class="Piece", composition=["A"]).is_composite is False

    def test_toolbox_without_parts_is_not_composite(self):
        assert Asset(asset_class="Toolbox").is_composite is False

    def test_canonical_parts(self):
        asset = Asset(asset_class="Set",
                      composition=["A (MISSING)", "B", "C (damaged)"])
        assert asset.canonical_parts == ["A", "B", "C"]

    def test_totals(self):
        asset = Asset(quantity=4, available=3, monetary_value=10.0)
        assert asset.total_value == 40.0
        assert asset.shortfall == 1


class TestCase:
    def test_unresolved_variance(self):
        case = Case(issuance_type=ISSUANCE_OUTSTANDING)
        assert case.is_unresolved_variance is True
        case.escalation_status = STATUS_RESOLVED
        assert case.is_unresolved_variance is False

    def test_standard_issuance_is_not_a_variance(self):
        assert Case().is_unresolved_variance is False

    def test_liability(self):
        assert Case(quantity=3, monetary_value=2.5).liability_value == 7.5


class TestFinding:
    def test_shortfall_is_variance(self):
        assert Finding("T", expected_qty=5, sighted_qty=4).is_variance is True

    def test_damaged_is_variance(self):
        finding = Finding("T", 5, 5, condition=CONDITION_DAMAGED)
        assert finding.is_variance is True

    def test_good_full_count_is_not_variance(self):
        assert Finding("T", 5, 5, condition=CONDITION_GOOD).is_variance is False

    def test_defects_follow_piece_order(self):
        finding = Finding("T", 1, 1, piece_status={
            "Driver": PIECE_DAMAGED,
            "Socket A": PIECE_PRESENT,
            "Socket B": PIECE_MISSING,
        })
        assert finding.defects == [
            DefectTag("Driver", "DAMAGED"),
            DefectTag("Socket B", "MISSING"),
        ]

    def test_to_issue(self):
        issue = Finding("T-1", 5, 4, notes="gone").to_issue()
        assert issue["toolId"] == "T-1"
        assert issue["expectedQty"] == 5
        assert issue["quantity"] == 4
