"""Seed the ledger with realistic mock data for development and demos.

Creates:
  - 12 assets across 4 zones (pieces, sets and toolboxes with parts)
  - 1 signed-off audit with two variances (one lost part, one damaged set)
  - 1 historical issuance that was returned in good order

Run:
    python -m execution.seed_mock_data          (from project root)
    python execution/seed_mock_data.py          (direct)

WARNING: This script INSERTS data, so run against a fresh DB to avoid
duplicates. Delete data/kit_ledger.db first for a clean start.
"""

import os
import sys
from datetime import datetime

# Ensure project src is on the path
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(_ROOT, "src"))

from kit_ledger.database.models import Actor, Asset, Case, Finding
from kit_ledger.database.repository import Repository
from kit_ledger.ledger.reconciliation import ReconciliationEngine
from kit_ledger.utils.constants import (
    CONDITION_DAMAGED,
    CONDITION_GOOD,
    PIECE_MISSING,
    PIECE_PRESENT,
    STATUS_RESOLVED,
)

INSPECTOR = Actor("EMP-001", "Dana Whitfield")


def seed(repo: Repository):
    """Populate the ledger with mock data."""

    # ── 1. Asset registry ─────────────────────────────────────────
    print("Creating assets...")
    assets = [
        # id, name, category, zone, class, qty, value, composition
        ("T-001", "Impact Wrench Kit", "Power Tools", "Bay A", "Toolbox", 5,
         420.00, ["Socket A", "Socket B", "Driver"]),
        ("T-002", "Cordless Drill", "Power Tools", "Bay A", "Piece", 8,
         159.00, []),
        ("T-003", "Torque Wrench Set", "Hand Tools", "Bay A", "Set", 3,
         289.50, ["1/4in Drive", "3/8in Drive", "1/2in Drive"]),
        ("T-004", "Multimeter", "Test Equipment", "Bay B", "Piece", 6,
         95.00, []),
        ("T-005", "Insulation Tester", "Test Equipment", "Bay B", "Piece", 2,
         640.00, []),
        ("T-006", "Crimping Tool Set", "Hand Tools", "Bay B", "Set", 4,
         118.75, ["Ratchet Crimper", "Die Set", "Cable Cutter"]),
        ("T-007", "Safety Harness", "PPE", "Cage", "Piece", 10,
         210.00, []),
        ("T-008", "Gas Detector", "PPE", "Cage", "Piece", 3,
         780.00, []),
        ("T-009", "Pipe Threading Kit", "Plumbing", "Cage", "Toolbox", 1,
         1150.00, ["Die Head", "Ratchet Handle", "Oiler"]),
        ("T-010", "Extension Ladder", "Access", "Yard", "Piece", 4,
         310.00, []),
        ("T-011", "Hand Truck", "Access", "Yard", "Piece", 2,
         185.00, []),
        ("T-012", "Laser Level Kit", "Survey", "Yard", "Toolbox", 2,
         540.00, ["Laser Unit", "Tripod", "Receiver"]),
    ]
    for aid, name, category, zone, cls, qty, value, parts in assets:
        repo.create_asset(Asset(
            id=aid, name=name, category=category, zone=zone,
            asset_class=cls, quantity=qty, available=qty,
            composition=parts, monetary_value=value,
            added_by=INSPECTOR.name,
        ))
    print(f"  → {len(assets)} assets created")

    # ── 2. A returned issuance ────────────────────────────────────
    print("Creating issuance history...")
    repo.create_case(Case(
        id="ISS-20250310-T-002", tool_id="T-002", tool_name="Cordless Drill",
        staff_id="EMP-014", staff_name="Omar Haddad", quantity=1,
        is_returned=True, condition_on_return=CONDITION_GOOD,
        escalation_status=STATUS_RESOLVED, monetary_value=159.00,
        date="2025-03-10", time_out="07:40", time_in="16:05",
        attendant_id=INSPECTOR.id, attendant_name=INSPECTOR.name,
        notes="Routine issuance",
    ))

    # ── 3. Signed-off audit with variances ────────────────────────
    print("Reconciling a store audit...")
    engine = ReconciliationEngine(repo)
    findings = [
        Finding(
            asset_id="T-001", expected_qty=5, sighted_qty=4,
            piece_status={"Socket A": PIECE_PRESENT,
                          "Socket B": PIECE_MISSING,
                          "Driver": PIECE_PRESENT},
            responsible_staff_id="EMP-002",
            responsible_staff_name="Luis Ortega",
            notes="Socket B not returned after night shift",
        ),
        Finding(
            asset_id="T-008", expected_qty=3, sighted_qty=2,
            condition=CONDITION_DAMAGED,
            responsible_staff_id="EMP-007",
            responsible_staff_name="Priya Nair",
            notes="Sensor housing cracked",
        ),
        Finding(asset_id="T-004", expected_qty=6, sighted_qty=6),
    ]
    result = engine.reconcile(
        findings, signature="D. Whitfield", actor=INSPECTOR,
        at=datetime(2025, 6, 10, 9, 30),
    )
    print(f"  → {len(result.cases)} cases, "
          f"{len(result.maintenance)} maintenance tickets")

    # ── Done ──────────────────────────────────────────────────────
    summary = repo.get_ledger_summary()
    print("\n✓ Mock data seeded successfully!")
    print(f"  Assets: {len(assets)}")
    print(f"  Open cases: {len(repo.get_open_cases())}")
    print(f"  Flagged assets: {summary['critical_count']}")


def main():
    from kit_ledger.config import Config
    from kit_ledger.database.connection import DatabaseConnection
    from kit_ledger.database.schema import initialize_database

    db_path = Config.DATABASE_PATH
    print(f"Database: {db_path}")

    # Confirm if DB exists
    if os.path.exists(db_path):
        resp = input("Database already exists. Seed anyway? (y/N): ").strip().lower()
        if resp != "y":
            print("Aborted.")
            return

    db = DatabaseConnection(db_path)
    initialize_database(db)
    repo = Repository(db)
    seed(repo)


if __name__ == "__main__":
    main()
