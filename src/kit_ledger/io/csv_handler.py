"""CSV import and export for assets, ledger cases and audit findings."""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from kit_ledger.audit.conditions import derive_condition
from kit_ledger.database.models import Actor, Asset, Finding
from kit_ledger.database.repository import Repository
from kit_ledger.io.validators import (
    split_parts,
    validate_asset_row,
    validate_finding_row,
)
from kit_ledger.ledger.reconciliation import ReconciliationEngine
from kit_ledger.ledger.tags import format_defect_tags
from kit_ledger.utils.constants import (
    CONDITION_EXCELLENT,
    CONDITION_LOST,
    FULL_STORE,
    PIECE_DAMAGED,
    PIECE_MISSING,
    PIECE_PRESENT,
)
from kit_ledger.utils.formatters import normalize_part_name

logger = logging.getLogger(__name__)

ASSET_CSV_COLUMNS = [
    "id", "name", "category", "zone", "asset_class", "quantity",
    "available", "condition", "composition", "monetary_value",
    "last_verified",
]

CASE_CSV_COLUMNS = [
    "id", "tool_id", "tool_name", "staff_id", "staff_name", "quantity",
    "issuance_type", "is_returned", "condition_on_return",
    "escalation_stage", "escalation_status", "grace_expiry_date",
    "monetary_value", "defects", "notes", "resolution_pathway",
]

FINDING_CSV_COLUMNS = [
    "asset_id", "sighted_qty", "condition", "missing_parts",
    "damaged_parts", "responsible_staff_id", "responsible_staff_name",
    "notes",
]


def export_assets_csv(repo: Repository, filepath: str | Path) -> int:
    """Export the asset registry to CSV. Returns the number of rows written."""
    assets = repo.get_all_assets()
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=ASSET_CSV_COLUMNS)
        writer.writeheader()
        for asset in assets:
            writer.writerow({
                "id": asset.id,
                "name": asset.name,
                "category": asset.category,
                "zone": asset.zone,
                "asset_class": asset.asset_class,
                "quantity": asset.quantity,
                "available": asset.available,
                "condition": asset.condition,
                "composition": "; ".join(asset.composition),
                "monetary_value": asset.monetary_value,
                "last_verified": asset.last_verified,
            })
    return len(assets)


def export_cases_csv(repo: Repository, filepath: str | Path,
                     open_only: bool = False) -> int:
    """Export ledger cases to CSV. Returns the number of rows written."""
    cases = repo.get_open_cases() if open_only else repo.get_all_cases()
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CASE_CSV_COLUMNS)
        writer.writeheader()
        for case in cases:
            writer.writerow({
                "id": case.id,
                "tool_id": case.tool_id,
                "tool_name": case.tool_name,
                "staff_id": case.staff_id,
                "staff_name": case.staff_name,
                "quantity": case.quantity,
                "issuance_type": case.issuance_type,
                "is_returned": "TRUE" if case.is_returned else "FALSE",
                "condition_on_return": case.condition_on_return,
                "escalation_stage": case.escalation_stage,
                "escalation_status": case.escalation_status,
                "grace_expiry_date": case.grace_expiry_date,
                "monetary_value": case.monetary_value,
                "defects": format_defect_tags(case.defects),
                "notes": case.notes,
                "resolution_pathway": case.resolution_pathway,
            })
    return len(cases)


def import_assets_csv(
    repo: Repository,
    filepath: str | Path,
    update_existing: bool = False,
) -> dict:
    """Provision assets from CSV. Returns results dict with counts and errors."""
    filepath = Path(filepath)
    results = {"imported": 0, "updated": 0, "skipped": 0, "errors": []}

    try:
        with open(filepath, "r", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for row_num, row in enumerate(reader, start=2):
                errors = validate_asset_row(row, row_num)
                if errors:
                    results["errors"].extend(errors)
                    results["skipped"] += 1
                    continue

                asset_id = row["id"].strip()
                existing = repo.get_asset(asset_id)
                quantity = int(row.get("quantity") or 0)
                available = row.get("available") or ""

                asset = Asset(
                    id=asset_id,
                    name=row["name"].strip(),
                    category=(row.get("category") or "").strip(),
                    zone=(row.get("zone") or "").strip(),
                    asset_class=(row.get("asset_class") or "").strip() or "Piece",
                    quantity=quantity,
                    available=int(available) if available.strip() else quantity,
                    condition=(row.get("condition") or "").strip()
                    or CONDITION_EXCELLENT,
                    composition=split_parts(row.get("composition")),
                    monetary_value=float(row.get("monetary_value") or 0),
                    last_verified=(row.get("last_verified") or "").strip(),
                )

                if existing and update_existing:
                    repo.save_asset(asset)
                    results["updated"] += 1
                elif existing:
                    results["skipped"] += 1
                else:
                    repo.create_asset(asset)
                    results["imported"] += 1

    except (OSError, csv.Error) as e:
        results["errors"].append(f"File error: {e}")

    return results


def _finding_from_row(row: dict, asset: Asset) -> Finding:
    sighted = int(row["sighted_qty"])
    missing = {normalize_part_name(p) for p in split_parts(row.get("missing_parts"))}
    damaged = {normalize_part_name(p) for p in split_parts(row.get("damaged_parts"))}

    piece_status = {}
    if missing or damaged:
        for part in asset.canonical_parts:
            key = normalize_part_name(part)
            if key in missing:
                piece_status[part] = PIECE_MISSING
            elif key in damaged:
                piece_status[part] = PIECE_DAMAGED
            else:
                piece_status[part] = PIECE_PRESENT

    condition = (row.get("condition") or "").strip()
    if piece_status:
        condition = derive_condition(piece_status)
    elif not condition:
        condition = CONDITION_LOST if sighted < asset.available else CONDITION_EXCELLENT

    return Finding(
        asset_id=asset.id,
        expected_qty=asset.available,
        sighted_qty=sighted,
        condition=condition,
        piece_status=piece_status,
        responsible_staff_id=(row.get("responsible_staff_id") or "").strip(),
        responsible_staff_name=(row.get("responsible_staff_name") or "").strip(),
        notes=(row.get("notes") or "").strip(),
    )


def read_findings_csv(repo: Repository, filepath: str | Path) -> tuple[list[Finding], dict]:
    """Parse audit findings from CSV without applying them."""
    filepath = Path(filepath)
    results = {"read": 0, "skipped": 0, "errors": []}
    findings = []
    seen = set()

    try:
        with open(filepath, "r", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for row_num, row in enumerate(reader, start=2):
                asset_id = (row.get("asset_id") or "").strip()
                asset = repo.get_asset(asset_id)
                errors = validate_finding_row(row, row_num, asset)
                if not errors and asset_id in seen:
                    errors = [f"Row {row_num}: duplicate finding for {asset_id}"]
                if errors:
                    results["errors"].extend(errors)
                    results["skipped"] += 1
                    continue
                seen.add(asset_id)
                findings.append(_finding_from_row(row, asset))
                results["read"] += 1
    except (OSError, csv.Error) as e:
        results["errors"].append(f"File error: {e}")

    return findings, results


def import_findings_csv(
    engine: ReconciliationEngine,
    filepath: str | Path,
    signature: str,
    actor: Actor,
    scope: str = FULL_STORE,
    at: Optional[datetime] = None,
) -> dict:
    """Reconcile a batch of findings from CSV, as a signed-off audit.

    Goes through the same lock and shortfall checks as an interactive audit.
    """
    filepath = Path(filepath)
    findings, results = read_findings_csv(engine.repo, filepath)
    outcome = engine.reconcile(findings, signature, actor, scope=scope, at=at)
    results["cases"] = [c.id for c in outcome.cases]
    results["maintenance"] = [m.id for m in outcome.maintenance]
    results["blocked"] = outcome.blocked
    results["covered"] = outcome.covered
    results["skipped"] += len(outcome.skipped)
    logger.info(
        f"Imported {results['read']} findings from {filepath.name}: "
        f"{len(results['cases'])} cases opened"
    )
    return results
