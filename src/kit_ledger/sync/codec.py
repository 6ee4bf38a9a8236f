"""Positional row layouts for the remote store, and tolerant record readers.

Writes are ordered field lists, one per sheet. Reads come back as dicts
keyed by whatever header text the sheet has, so every field is looked up
with ``get_fuzzy`` (case, underscore and whitespace insensitive).
"""

import json
import re
from typing import Any, Optional

from kit_ledger.database.models import (
    ActionEntry,
    Asset,
    AuditRecord,
    Case,
    MaintenanceRecord,
)
from kit_ledger.ledger.tags import compose_comment, split_comment
from kit_ledger.utils.constants import (
    ASSET_CLASS_ALIASES,
    CONDITION_EXCELLENT,
    ESCALATION_STAGES,
    ESCALATION_STATUSES,
    HR_PATHWAYS,
    ISSUANCE_STANDARD,
    MAINTENANCE_STAGED,
    MAINTENANCE_STATUSES,
    STAGE_STORE,
    STATUS_PENDING,
)

# ── Reading helpers ──────────────────────────────────────────────


def _norm_key(key: str) -> str:
    return "".join(str(key).lower().replace("_", "").split())


def get_fuzzy(record: dict, key: str, default: Any = None) -> Any:
    """Field lookup that tolerates header spelling.

    An exact match after normalization wins; otherwise the first header
    that contains the key, or is contained by it, is used. Two-letter
    names such as 'id' only ever match exactly.
    """
    if not record:
        return default
    target = _norm_key(key)
    normalized = [(k, _norm_key(k)) for k in record]
    for original, norm in normalized:
        if norm == target:
            return record[original]
    if len(target) <= 2:
        return default
    for original, norm in normalized:
        if len(norm) > 2 and (target in norm or norm in target):
            return record[original]
    return default


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or value == "":
        return False
    return str(value).strip().upper() in ("TRUE", "1", "YES")


def parse_optional_bool(value) -> Optional[bool]:
    if value is None or str(value).strip() == "":
        return None
    return parse_bool(value)


def parse_int(value, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def parse_float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def safe_parse(value, fallback=None) -> list:
    """Decode a JSON list cell; a plain non-empty string becomes [value]."""
    if fallback is None:
        fallback = []
    if not value:
        return fallback
    if not isinstance(value, str):
        return value if isinstance(value, list) else [value]
    text = value.strip()
    if not text:
        return fallback
    if text.startswith("data:image"):
        return [text]
    try:
        parsed = json.loads(text)
    except ValueError:
        return [text]
    return parsed if isinstance(parsed, list) else [parsed]


def _text(value) -> str:
    return "" if value is None else str(value)


def _pick(value: str, allowed: list[str], default: str) -> str:
    return value if value in allowed else default


# ── Assets (Tools_Master) ────────────────────────────────────────


def asset_to_row(asset: Asset) -> list:
    return [
        asset.id,
        asset.serial_number,
        asset.name,
        asset.category,
        asset.zone,
        asset.quantity,
        asset.available,
        asset.condition,
        asset.responsible_staff_id,
        asset.monetary_value,
        asset.last_verified,
        asset.image_url,
        "Pc" if asset.asset_class == "Piece" else asset.asset_class,
        json.dumps(asset.composition),
        asset.submission_date,
        asset.added_by,
    ]


def asset_from_record(record: dict) -> Asset:
    quantity = max(0, parse_int(get_fuzzy(record, "quantity")))
    available = min(quantity, max(0, parse_int(get_fuzzy(record, "available"))))
    asset_class = ASSET_CLASS_ALIASES.get(
        _text(get_fuzzy(record, "assetclass")).strip().lower(), "Piece"
    )
    last_verified = _text(
        get_fuzzy(record, "lastverified") or get_fuzzy(record, "date")
    )
    return Asset(
        id=_text(get_fuzzy(record, "id")),
        serial_number=_text(get_fuzzy(record, "serialnumber")),
        name=_text(get_fuzzy(record, "name")),
        category=_text(get_fuzzy(record, "category")),
        zone=_text(get_fuzzy(record, "zone")),
        asset_class=asset_class,
        quantity=quantity,
        available=available,
        condition=_text(get_fuzzy(record, "condition")) or CONDITION_EXCELLENT,
        responsible_staff_id=_text(get_fuzzy(record, "responsiblestaffid")),
        monetary_value=parse_float(get_fuzzy(record, "monetaryvalue")),
        last_verified=last_verified,
        image_url=_text(get_fuzzy(record, "imageurl")),
        composition=[str(p) for p in safe_parse(get_fuzzy(record, "composition"))],
        submission_date=_text(get_fuzzy(record, "submissiondate")) or last_verified,
        added_by=_text(get_fuzzy(record, "addedby")),
    )


# ── Cases (Tools_Usage_Logs) ─────────────────────────────────────


_VERDICT_RE = re.compile(r"Resolution Protocol: \[([A-Z_]+)\]")


def pathway_from_notes(notes: str) -> str:
    """The HR pathway named by the last verdict stamp in the notes.

    The sheet has no pathway column; the closeout stamp carries it.
    """
    found = [p for p in _VERDICT_RE.findall(notes or "") if p in HR_PATHWAYS]
    return found[-1] if found else ""


def _history_to_json(history: list[ActionEntry]) -> str:
    return json.dumps([
        {
            "stage": e.stage,
            "actorName": e.actor_name,
            "action": e.action,
            "timestamp": e.timestamp,
            "notes": e.notes,
        }
        for e in history
    ])


def _history_from_cell(value) -> list[ActionEntry]:
    entries = []
    for item in safe_parse(value):
        if not isinstance(item, dict):
            continue
        entries.append(ActionEntry(
            stage=_text(get_fuzzy(item, "stage")),
            actor_name=_text(get_fuzzy(item, "actorname")),
            action=_text(get_fuzzy(item, "action")),
            timestamp=_text(get_fuzzy(item, "timestamp")),
            notes=_text(get_fuzzy(item, "notes")),
        ))
    return entries


def case_to_row(case: Case) -> list:
    return [
        case.id,
        case.batch_id,
        case.tool_id,
        case.tool_name,
        case.quantity or 1,
        case.staff_id,
        case.staff_name,
        case.shift_type,
        case.date,
        case.time_out,
        case.time_in,
        "TRUE" if case.is_returned else "FALSE",
        case.condition_on_return,
        case.attendant_id,
        case.issuance_type,
        compose_comment(case.notes, case.defects),
        case.recipient_signature,
        case.escalation_status or STATUS_PENDING,
        case.discovery_date,
        case.monetary_value,
        case.evidence_image,
        case.escalation_stage or STAGE_STORE,
        case.grace_expiry_date,
        _history_to_json(case.action_history),
        case.audit_id,
        case.attendant_name,
    ]


def case_from_record(record: dict) -> Case:
    notes, defects = split_comment(_text(get_fuzzy(record, "comment")))
    return Case(
        id=_text(get_fuzzy(record, "id")),
        batch_id=_text(get_fuzzy(record, "batchid")),
        tool_id=_text(get_fuzzy(record, "toolid")),
        tool_name=_text(get_fuzzy(record, "toolname")),
        quantity=parse_int(get_fuzzy(record, "quantity")) or 1,
        staff_id=_text(get_fuzzy(record, "staffid")),
        staff_name=_text(get_fuzzy(record, "staffname")),
        shift_type=_text(get_fuzzy(record, "shifttype")),
        date=_text(get_fuzzy(record, "date")),
        time_out=_text(get_fuzzy(record, "timeout")),
        time_in=_text(get_fuzzy(record, "timein")),
        is_returned=parse_bool(get_fuzzy(record, "isreturned")),
        condition_on_return=_text(get_fuzzy(record, "conditiononreturn")),
        attendant_id=_text(get_fuzzy(record, "attendantid")),
        attendant_name=_text(get_fuzzy(record, "attendantname")),
        issuance_type=_text(get_fuzzy(record, "issuancetype")) or ISSUANCE_STANDARD,
        notes=notes,
        defects=defects,
        recipient_signature=_text(get_fuzzy(record, "recipientsignature")),
        escalation_status=_pick(
            _text(get_fuzzy(record, "escalationstatus")),
            ESCALATION_STATUSES, STATUS_PENDING,
        ),
        discovery_date=_text(get_fuzzy(record, "discoverydate")),
        monetary_value=parse_float(get_fuzzy(record, "monetaryvalue")),
        evidence_image=_text(get_fuzzy(record, "evidenceimage")),
        escalation_stage=_pick(
            _text(get_fuzzy(record, "escalationstage")),
            ESCALATION_STAGES, STAGE_STORE,
        ),
        grace_expiry_date=_text(get_fuzzy(record, "graceexpirydate")),
        action_history=_history_from_cell(get_fuzzy(record, "actionhistory")),
        audit_id=_text(get_fuzzy(record, "physicalarchiveid")),
        resolution_pathway=pathway_from_notes(notes),
    )


# ── Maintenance (Tools_Maintenance) ──────────────────────────────


def maintenance_to_row(record: MaintenanceRecord) -> list:
    if record.is_repairable is None:
        repairable = ""
    else:
        repairable = "TRUE" if record.is_repairable else "FALSE"
    return [
        record.id,
        record.tool_id,
        record.tool_name,
        record.reported_by,
        record.reported_date,
        record.breakdown_context,
        repairable,
        record.status,
        record.resolution_date,
        record.technician_notes,
        record.estimated_cost,
        record.assigned_staff_id,
        record.assigned_staff_name,
        "TRUE" if record.is_escalated_to_supervisor else "FALSE",
        record.escalation_notes,
    ]


def maintenance_from_record(record: dict) -> MaintenanceRecord:
    return MaintenanceRecord(
        id=_text(get_fuzzy(record, "id")),
        tool_id=_text(get_fuzzy(record, "toolid")),
        tool_name=_text(get_fuzzy(record, "toolname")),
        reported_by=_text(get_fuzzy(record, "reportedby")),
        reported_date=_text(get_fuzzy(record, "reporteddate")),
        breakdown_context=_text(get_fuzzy(record, "breakdowncontext")),
        is_repairable=parse_optional_bool(get_fuzzy(record, "isrepairable")),
        status=_pick(
            _text(get_fuzzy(record, "status")),
            MAINTENANCE_STATUSES, MAINTENANCE_STAGED,
        ),
        resolution_date=_text(get_fuzzy(record, "resolutiondate")),
        technician_notes=_text(get_fuzzy(record, "techniciannotes")),
        estimated_cost=parse_float(get_fuzzy(record, "estimatedcost")),
        assigned_staff_id=_text(get_fuzzy(record, "assignedstaffid")),
        assigned_staff_name=_text(get_fuzzy(record, "assignedstaffname")),
        is_escalated_to_supervisor=parse_bool(
            get_fuzzy(record, "isescalatedtosupervisor")
        ),
        escalation_notes=_text(get_fuzzy(record, "escalationnotes")),
    )


# ── Audit history (Tools_Audit_History) ──────────────────────────


def audit_to_row(record: AuditRecord) -> list:
    return [
        record.id,
        record.date,
        record.section,
        record.inspector,
        record.shift_type,
        json.dumps(record.issues),
        record.signature,
    ]


def audit_from_record(record: dict) -> AuditRecord:
    return AuditRecord(
        id=_text(get_fuzzy(record, "id")),
        date=_text(get_fuzzy(record, "date")),
        section=_text(get_fuzzy(record, "section")),
        inspector=_text(get_fuzzy(record, "inspector")),
        shift_type=_text(get_fuzzy(record, "shifttype")),
        issues=[i for i in safe_parse(get_fuzzy(record, "issues"))
                if isinstance(i, dict)],
        signature=_text(get_fuzzy(record, "signature")),
    )
