"""Excel (XLSX) export for the asset registry and the case ledger."""

from pathlib import Path

from openpyxl import Workbook

from kit_ledger.database.repository import Repository
from kit_ledger.ledger.tags import format_defect_tags


def _autofit(ws):
    """Approximate column widths from cell contents."""
    for col in ws.columns:
        max_len = max(len(str(cell.value or "")) for cell in col)
        ws.column_dimensions[col[0].column_letter].width = min(max_len + 2, 40)


def export_assets_excel(repo: Repository, filepath: str | Path) -> int:
    """Export the asset registry to an Excel workbook. Returns row count."""
    assets = repo.get_all_assets()
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Assets"

    ws.append([
        "ID", "Name", "Category", "Zone", "Class", "Quantity",
        "Available", "Condition", "Composition", "Unit Value",
        "Last Verified",
    ])
    for asset in assets:
        ws.append([
            asset.id,
            asset.name,
            asset.category,
            asset.zone,
            asset.asset_class,
            asset.quantity,
            asset.available,
            asset.condition,
            "; ".join(asset.composition),
            asset.monetary_value,
            asset.last_verified,
        ])

    _autofit(ws)
    wb.save(filepath)
    return len(assets)


def export_cases_excel(repo: Repository, filepath: str | Path) -> int:
    """Export the case ledger, with each case's action history on a second sheet.

    Returns the number of cases written.
    """
    cases = repo.get_all_cases()
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Cases"
    ws.append([
        "Case", "Tool", "Custodian", "Qty", "Type", "Returned",
        "Condition", "Stage", "Status", "Grace Expiry", "Liability",
        "Defects", "Notes",
    ])
    for case in cases:
        ws.append([
            case.id,
            case.tool_name or case.tool_id,
            case.staff_name,
            case.quantity,
            case.issuance_type,
            "Yes" if case.is_returned else "No",
            case.condition_on_return,
            case.escalation_stage,
            case.escalation_status,
            case.grace_expiry_date,
            case.liability_value,
            format_defect_tags(case.defects),
            case.notes,
        ])
    _autofit(ws)

    history = wb.create_sheet("Action History")
    history.append(["Case", "Stage", "Actor", "Action", "Timestamp", "Notes"])
    for case in cases:
        for entry in case.action_history:
            history.append([
                case.id, entry.stage, entry.actor_name, entry.action,
                entry.timestamp, entry.notes,
            ])
    _autofit(history)

    wb.save(filepath)
    return len(cases)
