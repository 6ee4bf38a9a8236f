"""Data models for the database layer."""

from dataclasses import dataclass, field
from typing import Optional

from kit_ledger.utils.constants import (
    COMPOSITE_ASSET_CLASSES,
    CONDITION_EXCELLENT,
    DEFECT_DAMAGED,
    DEFECT_MISSING,
    ISSUANCE_OUTSTANDING,
    ISSUANCE_STANDARD,
    MAINTENANCE_STAGED,
    PIECE_DAMAGED,
    PIECE_MISSING,
    STAGE_STORE,
    STATUS_PENDING,
    STATUS_RESOLVED,
    VARIANCE_CONDITIONS,
)
from kit_ledger.utils.formatters import strip_part_annotation


@dataclass(frozen=True)
class Actor:
    """The person performing an audit or a case transition."""
    id: str
    name: str


@dataclass
class Asset:
    id: str = ""
    name: str = ""
    category: str = ""
    zone: str = ""
    asset_class: str = "Piece"
    quantity: int = 0
    available: int = 0
    condition: str = CONDITION_EXCELLENT
    composition: list[str] = field(default_factory=list)
    monetary_value: float = 0.0
    last_verified: str = ""
    serial_number: str = ""
    responsible_staff_id: str = ""
    image_url: str = ""
    submission_date: str = ""
    added_by: str = ""

    @property
    def is_composite(self) -> bool:
        return self.asset_class in COMPOSITE_ASSET_CLASSES and bool(self.composition)

    @property
    def canonical_parts(self) -> list[str]:
        """Composition with any (MISSING)/(DAMAGED) suffix removed."""
        return [strip_part_annotation(p) for p in self.composition]

    @property
    def total_value(self) -> float:
        return self.quantity * self.monetary_value

    @property
    def shortfall(self) -> int:
        return self.quantity - self.available


@dataclass(frozen=True)
class DefectTag:
    """One defective kit part recorded against a case."""
    part: str
    defect: str  # MISSING or DAMAGED


def defects_from_status(piece_status: dict[str, str]) -> list[DefectTag]:
    """Missing and damaged parts, in piece-status order."""
    tags = []
    for part, status in piece_status.items():
        if status == PIECE_MISSING:
            tags.append(DefectTag(part, DEFECT_MISSING))
        elif status == PIECE_DAMAGED:
            tags.append(DefectTag(part, DEFECT_DAMAGED))
    return tags


@dataclass
class ActionEntry:
    """One line of a case's append-only action history."""
    stage: str
    actor_name: str
    action: str
    timestamp: str
    notes: str = ""


@dataclass
class Case:
    id: str = ""
    tool_id: str = ""
    tool_name: str = ""
    staff_id: str = ""
    staff_name: str = ""
    quantity: int = 1
    issuance_type: str = ISSUANCE_STANDARD
    is_returned: bool = False
    condition_on_return: str = ""
    escalation_stage: str = STAGE_STORE
    escalation_status: str = STATUS_PENDING
    grace_expiry_date: str = ""
    monetary_value: float = 0.0
    notes: str = ""
    defects: list[DefectTag] = field(default_factory=list)
    action_history: list[ActionEntry] = field(default_factory=list)
    resolution_pathway: str = ""
    audit_id: str = ""
    # Issuance bookkeeping carried through from the store
    batch_id: str = ""
    shift_type: str = ""
    date: str = ""
    time_out: str = ""
    time_in: str = ""
    attendant_id: str = ""
    attendant_name: str = ""
    recipient_signature: str = ""
    discovery_date: str = ""
    evidence_image: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.escalation_status == STATUS_RESOLVED

    @property
    def is_unresolved_variance(self) -> bool:
        return (
            self.issuance_type == ISSUANCE_OUTSTANDING
            and not self.is_returned
            and not self.is_resolved
        )

    @property
    def liability_value(self) -> float:
        return self.quantity * self.monetary_value


@dataclass
class MaintenanceRecord:
    id: str = ""
    tool_id: str = ""
    tool_name: str = ""
    reported_by: str = ""
    reported_date: str = ""
    breakdown_context: str = ""
    is_repairable: Optional[bool] = None
    status: str = MAINTENANCE_STAGED
    resolution_date: str = ""
    technician_notes: str = ""
    estimated_cost: float = 0.0
    assigned_staff_id: str = ""
    assigned_staff_name: str = ""
    is_escalated_to_supervisor: bool = False
    escalation_notes: str = ""


@dataclass
class AuditRecord:
    id: str = ""
    date: str = ""
    section: str = ""
    inspector: str = ""
    shift_type: str = ""
    issues: list[dict] = field(default_factory=list)
    signature: str = ""


@dataclass
class Finding:
    """One audited asset's outcome. Never stored; reconciled immediately."""
    asset_id: str
    expected_qty: int
    sighted_qty: int
    condition: str = CONDITION_EXCELLENT
    piece_status: dict[str, str] = field(default_factory=dict)
    responsible_staff_id: str = ""
    responsible_staff_name: str = ""
    notes: str = ""

    @property
    def is_variance(self) -> bool:
        return (
            self.sighted_qty < self.expected_qty
            or self.condition in VARIANCE_CONDITIONS
        )

    @property
    def defects(self) -> list[DefectTag]:
        return defects_from_status(self.piece_status)

    def to_issue(self) -> dict:
        """Summary stored in the audit history record."""
        return {
            "toolId": self.asset_id,
            "expectedQty": self.expected_qty,
            "quantity": self.sighted_qty,
            "condition": self.condition,
            "pieceStatus": dict(self.piece_status),
            "responsibleStaffId": self.responsible_staff_id,
            "responsibleStaffName": self.responsible_staff_name,
            "notes": self.notes,
        }
