"""Zone-by-zone physical audit of the asset registry.

An ``AuditSession`` snapshots the assets in scope and the parts already
locked by unresolved cases, then records what the operator sights for each
asset. Zones are walked in sorted order; moving forward, or finalizing,
is refused while anything in the gating scope is still unverified.
``finalize`` turns the session into a ``CompletedAudit`` whose findings are
handed to the reconciliation engine.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from kit_ledger.audit.conditions import derive_condition, next_piece_status
from kit_ledger.database.models import Actor, Asset, Finding
from kit_ledger.database.repository import Repository
from kit_ledger.utils.constants import (
    CONDITION_DAMAGED,
    CONDITION_EXCELLENT,
    CONDITION_LOST,
    CONDITIONS,
    FULL_STORE,
    PIECE_LOCKED,
    PIECE_PRESENT,
    VARIANCE_CONDITIONS,
)
from kit_ledger.utils.formatters import normalize_part_name

logger = logging.getLogger(__name__)


class AuditGateError(ValueError):
    """Raised when assets in the gating scope are still unverified."""

    def __init__(self, asset_ids, zone: Optional[str] = None):
        self.asset_ids = frozenset(asset_ids)
        self.zone = zone
        where = f"zone '{zone}'" if zone is not None else "this audit"
        super().__init__(
            f"{len(self.asset_ids)} asset(s) in {where} are unverified: "
            f"{', '.join(sorted(self.asset_ids))}"
        )


class IncompleteFindingError(ValueError):
    """Raised when variance assets are missing an explanatory note."""

    def __init__(self, asset_ids):
        self.asset_ids = frozenset(asset_ids)
        super().__init__(
            "Variance notes required for: " + ", ".join(sorted(self.asset_ids))
        )


class LockedPartError(ValueError):
    """Raised when toggling a part that an unresolved case already covers."""

    def __init__(self, asset_id: str, part: str):
        self.asset_id = asset_id
        self.part = part
        super().__init__(
            f"Part '{part}' of asset {asset_id} is locked by an open case"
        )


class SignatureRequiredError(ValueError):
    """Raised when an audit is finalized without a signature."""


@dataclass
class AuditEntry:
    """Working state for one asset during the walkthrough."""
    asset: Asset
    sighted_qty: int
    locked_parts: frozenset = frozenset()
    verified: bool = False
    condition: Optional[str] = None
    piece_status: dict[str, str] = field(default_factory=dict)
    responsible_staff_id: str = ""
    responsible_staff_name: str = ""
    notes: str = ""

    @property
    def is_variance(self) -> bool:
        return self.verified and (
            self.sighted_qty < self.asset.available
            or self.condition in VARIANCE_CONDITIONS
        )


@dataclass
class UnitPrompt:
    """Pending 'how many units' question for a Damaged/Lost declaration."""
    asset_id: str
    condition: str
    minimum: int
    maximum: int


@dataclass
class CompletedAudit:
    scope: str
    inspector: Actor
    completed_at: datetime
    signature: str
    findings: list[Finding]

    @property
    def variances(self) -> list[Finding]:
        return [f for f in self.findings if f.is_variance]


class AuditSession:
    """One operator's walkthrough of a zone, or of the whole store."""

    def __init__(self, repo: Repository, scope: str, operator: Actor):
        self.scope = scope
        self.operator = operator
        assets = repo.assets_in_zone(scope)
        self.entries: dict[str, AuditEntry] = {}
        for asset in assets:
            self.entries[asset.id] = AuditEntry(
                asset=asset,
                sighted_qty=asset.available,
                locked_parts=frozenset(repo.locked_parts(asset.id)),
            )
        self.zones = sorted({a.zone for a in assets})
        self.zone_index = 0
        self.prompt: Optional[UnitPrompt] = None

    # ── Navigation ──────────────────────────────────────────────

    @property
    def current_zone(self) -> Optional[str]:
        return self.zones[self.zone_index] if self.zones else None

    @property
    def is_last_zone(self) -> bool:
        return self.zone_index >= len(self.zones) - 1

    def assets_in_current_zone(self) -> list[Asset]:
        return [e.asset for e in self.entries.values()
                if e.asset.zone == self.current_zone]

    def unverified_ids(self, zone: Optional[str] = None) -> set[str]:
        """Unverified asset ids in one zone, or in the whole session."""
        return {
            asset_id for asset_id, e in self.entries.items()
            if not e.verified and (zone is None or e.asset.zone == zone)
        }

    def _check_zone_complete(self):
        pending = self.unverified_ids(self.current_zone)
        if pending:
            logger.info(
                f"Zone '{self.current_zone}' has {len(pending)} unverified assets"
            )
            raise AuditGateError(pending, zone=self.current_zone)

    def next_zone(self) -> str:
        if self.is_last_zone:
            raise ValueError("Already at the last zone")
        self._check_zone_complete()
        self.zone_index += 1
        return self.current_zone

    def previous_zone(self) -> str:
        if self.zone_index > 0:
            self.zone_index -= 1
        return self.current_zone

    def go_to_zone(self, index: int) -> str:
        """Jump to a zone. Going back is always allowed."""
        if not 0 <= index < len(self.zones):
            raise ValueError(f"No zone at position {index}")
        if index > self.zone_index:
            self._check_zone_complete()
        self.zone_index = index
        return self.current_zone

    # ── Per-asset edits ─────────────────────────────────────────

    def entry(self, asset_id: str) -> AuditEntry:
        try:
            return self.entries[asset_id]
        except KeyError:
            raise ValueError(f"Asset {asset_id} is not in this audit") from None

    def _settle(self, entry: AuditEntry):
        """Kits with tracked parts always take the derived condition."""
        if entry.asset.is_composite and entry.piece_status:
            entry.condition = derive_condition(entry.piece_status)

    def toggle_verified(self, asset_id: str) -> bool:
        entry = self.entry(asset_id)
        entry.verified = not entry.verified
        return entry.verified

    def adjust_quantity(self, asset_id: str, delta: int) -> int:
        """Step the sighted count; see ``set_sighted``."""
        entry = self.entry(asset_id)
        return self.set_sighted(asset_id, entry.sighted_qty + delta)

    def set_sighted(self, asset_id: str, qty: int) -> int:
        """Record the sighted count, clamped to 0..available.

        A shortfall infers Lost unless Damaged was chosen; coming back to
        the full count clears an inferred Lost.
        """
        entry = self.entry(asset_id)
        available = entry.asset.available
        qty = min(available, max(0, qty))
        if qty < available:
            if entry.condition != CONDITION_DAMAGED:
                entry.condition = CONDITION_LOST
        elif entry.condition == CONDITION_LOST:
            entry.condition = CONDITION_EXCELLENT
        entry.sighted_qty = qty
        entry.verified = True
        self._settle(entry)
        return qty

    def set_condition(self, asset_id: str, condition: str) -> Optional[UnitPrompt]:
        """Choose a condition directly.

        Excellent and Good apply at once with the full count sighted.
        Damaged and Lost return a ``UnitPrompt``; nothing changes until
        ``confirm_units`` is called.
        """
        if condition not in CONDITIONS:
            raise ValueError(f"Unknown condition: {condition}")
        entry = self.entry(asset_id)
        if condition in (CONDITION_DAMAGED, CONDITION_LOST):
            if entry.asset.available < 1:
                raise ValueError(f"Asset {asset_id} has no units on hand")
            self.prompt = UnitPrompt(asset_id, condition, 1, entry.asset.available)
            return self.prompt
        entry.condition = condition
        entry.sighted_qty = entry.asset.available
        entry.verified = True
        self._settle(entry)
        return None

    def confirm_units(self, units: int):
        """Apply the pending Damaged/Lost declaration to *units* units."""
        if self.prompt is None:
            raise ValueError("No condition prompt is open")
        prompt = self.prompt
        if not prompt.minimum <= units <= prompt.maximum:
            raise ValueError(
                f"Units must be between {prompt.minimum} and {prompt.maximum}"
            )
        entry = self.entry(prompt.asset_id)
        entry.condition = prompt.condition
        entry.sighted_qty = max(0, entry.asset.available - units)
        entry.verified = True
        self.prompt = None
        self._settle(entry)

    def cancel_prompt(self):
        self.prompt = None

    def part_status(self, asset_id: str, part: str) -> Optional[str]:
        entry = self.entry(asset_id)
        if normalize_part_name(part) in entry.locked_parts:
            return PIECE_LOCKED
        return entry.piece_status.get(self._canonical_part(entry, part))

    def _canonical_part(self, entry: AuditEntry, part: str) -> str:
        key = normalize_part_name(part)
        for name in entry.asset.canonical_parts:
            if normalize_part_name(name) == key:
                return name
        raise ValueError(f"Asset {entry.asset.id} has no part '{part}'")

    def toggle_part(self, asset_id: str, part: str) -> str:
        """Cycle one kit part: unset, Present, Missing, Damaged, Present..."""
        entry = self.entry(asset_id)
        name = self._canonical_part(entry, part)
        if normalize_part_name(name) in entry.locked_parts:
            raise LockedPartError(asset_id, name)
        status = next_piece_status(entry.piece_status.get(name))
        entry.piece_status[name] = status
        entry.verified = True
        self._settle(entry)
        return status

    def mark_all_present(self, asset_id: str):
        """Every part not locked by an open case becomes Present."""
        entry = self.entry(asset_id)
        for name in entry.asset.canonical_parts:
            if normalize_part_name(name) not in entry.locked_parts:
                entry.piece_status[name] = PIECE_PRESENT
        entry.condition = CONDITION_EXCELLENT
        entry.verified = True
        self._settle(entry)

    def assign_responsible(self, asset_id: str, staff_id: str, staff_name: str):
        entry = self.entry(asset_id)
        entry.responsible_staff_id = staff_id
        entry.responsible_staff_name = staff_name

    def set_notes(self, asset_id: str, notes: str):
        self.entry(asset_id).notes = notes

    # ── Summary and sign-off ────────────────────────────────────

    def is_variance(self, asset_id: str) -> bool:
        return self.entry(asset_id).is_variance

    @property
    def verified_count(self) -> int:
        return sum(1 for e in self.entries.values() if e.verified)

    @property
    def flag_count(self) -> int:
        return sum(1 for e in self.entries.values() if e.is_variance)

    def finalize(self, signature: str, at: Optional[datetime] = None) -> CompletedAudit:
        """Sign off the audit and emit one finding per verified asset."""
        pending = self.unverified_ids()
        if pending:
            raise AuditGateError(pending)

        missing_notes = {
            asset_id for asset_id, e in self.entries.items()
            if e.is_variance and not e.notes.strip()
        }
        if missing_notes:
            raise IncompleteFindingError(missing_notes)

        if not signature:
            raise SignatureRequiredError("A signature is required to finalize")

        findings = []
        for asset_id, e in self.entries.items():
            finding = Finding(
                asset_id=asset_id,
                expected_qty=e.asset.available,
                sighted_qty=e.sighted_qty,
                condition=e.condition or CONDITION_EXCELLENT,
                piece_status=dict(e.piece_status),
                notes=e.notes.strip(),
            )
            if e.is_variance:
                finding.responsible_staff_id = (
                    e.responsible_staff_id or self.operator.id
                )
                finding.responsible_staff_name = (
                    e.responsible_staff_name or self.operator.name
                )
            findings.append(finding)

        logger.info(
            f"Audit of {self.scope} finalized by {self.operator.name}: "
            f"{len(findings)} findings, {self.flag_count} variances"
        )
        return CompletedAudit(
            scope=self.scope or FULL_STORE,
            inspector=self.operator,
            completed_at=at or datetime.now(),
            signature=signature,
            findings=findings,
        )
