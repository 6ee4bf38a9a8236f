"""Tests for part status cycling and derived kit condition."""

import pytest

from kit_ledger.audit.conditions import derive_condition, next_piece_status


class TestNextPieceStatus:
    @pytest.mark.parametrize("current, expected", [
        (None, "Present"),
        ("Present", "Missing"),
        ("Missing", "Damaged"),
        ("Damaged", "Present"),
    ])
    def test_cycle(self, current, expected):
        assert next_piece_status(current) == expected

    def test_unknown_status_restarts_at_present(self):
        assert next_piece_status("Locked") == "Present"


class TestDeriveCondition:
    def test_missing_wins(self):
        assert derive_condition({"A": "Damaged", "B": "Missing"}) == "Lost"

    def test_damaged(self):
        assert derive_condition({"A": "Present", "B": "Damaged"}) == "Damaged"

    def test_all_present(self):
        assert derive_condition({"A": "Present", "B": "Present"}) == "Excellent"

    def test_empty(self):
        assert derive_condition({}) == "Excellent"
