"""Fold a signed-off audit into the registry, the ledger and the repair queue.

Each variance becomes exactly one Outstanding case. These rules keep a
defect from being escalated twice, whoever the caller is (interactive
audit, CSV batch, script):

* parts already held by an unresolved case for the same asset are dropped
  from the finding and reported back as ``blocked``;
* the shortfall is re-based on the registry as it is now, so units removed
  by an earlier reconciliation since the audit began are not counted again;
* a condition-only variance (nothing short, no part defects) already carried
  by an open case with the same condition is reported as ``covered``;
* an audit id that is already in the history is rejected with
  ``AuditReplayError``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from kit_ledger.audit.conditions import derive_condition
from kit_ledger.audit.session import CompletedAudit, SignatureRequiredError
from kit_ledger.database.models import (
    Actor,
    Asset,
    AuditRecord,
    Case,
    Finding,
    MaintenanceRecord,
    defects_from_status,
)
from kit_ledger.database.repository import Repository
from kit_ledger.ledger.maintenance import MaintenanceQueue, millis
from kit_ledger.utils.constants import (
    AUDIT_FALLBACK_STAFF_ID,
    AUDIT_FALLBACK_STAFF_NAME,
    CONDITION_DAMAGED,
    DEFECT_DAMAGED,
    DEFECT_MISSING,
    FULL_STORE,
    ISSUANCE_OUTSTANDING,
    PIECE_DAMAGED,
    PIECE_MISSING,
    STAGE_SUPERVISOR,
    STATUS_PENDING,
    VARIANCE_CONDITIONS,
)
from kit_ledger.utils.formatters import (
    annotate_part,
    format_timestamp,
    normalize_part_name,
    strip_part_annotation,
)

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_NOTE = "Unaccounted item state during store inspection."


@dataclass
class ReconciliationResult:
    audit_record: Optional[AuditRecord] = None
    cases: list[Case] = field(default_factory=list)
    maintenance: list[MaintenanceRecord] = field(default_factory=list)
    verified: list[str] = field(default_factory=list)
    blocked: dict[str, list[str]] = field(default_factory=dict)
    # asset id -> open case that already carries the same condition
    covered: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)


class AuditReplayError(ValueError):
    """The audit has already been reconciled."""


def annotate_composition(asset: Asset, piece_status: dict[str, str]) -> list[str]:
    """Composition with each audited part suffixed by its defect.

    Parts found Present lose any old suffix; parts the audit did not touch
    (such as those locked by an open case) are left as they are.
    """
    statuses = {normalize_part_name(p): s for p, s in piece_status.items()}
    annotated = []
    for entry in asset.composition:
        name = strip_part_annotation(entry)
        status = statuses.get(normalize_part_name(name))
        if status == PIECE_MISSING:
            annotated.append(annotate_part(name, DEFECT_MISSING))
        elif status == PIECE_DAMAGED:
            annotated.append(annotate_part(name, DEFECT_DAMAGED))
        elif status is not None:
            annotated.append(name)
        else:
            annotated.append(entry)
    return annotated


class ReconciliationEngine:
    """Commits audit findings exactly once per variance."""

    def __init__(self, repo: Repository, sync=None,
                 maintenance: Optional[MaintenanceQueue] = None):
        self.repo = repo
        self.sync = sync
        self.maintenance = maintenance or MaintenanceQueue(repo, sync)

    def reconcile_audit(self, audit: CompletedAudit) -> ReconciliationResult:
        return self.reconcile(
            audit.findings, audit.signature, audit.inspector,
            scope=audit.scope, at=audit.completed_at,
        )

    def reconcile(self, findings: list[Finding], signature: str, actor: Actor,
                  scope: str = FULL_STORE,
                  at: Optional[datetime] = None) -> ReconciliationResult:
        """Apply every finding; each asset is written in its own transaction."""
        result = ReconciliationResult()
        if not findings:
            return result
        if not signature:
            raise SignatureRequiredError("A signature is required to reconcile")

        at = at or datetime.now()
        audit = AuditRecord(
            id=f"AUD-{millis(at)}",
            date=format_timestamp(at),
            section=scope,
            inspector=actor.name,
            issues=[f.to_issue() for f in findings],
            signature=signature,
        )
        if self.repo.get_audit_record(audit.id) is not None:
            raise AuditReplayError(f"Audit {audit.id} has already been reconciled")
        self.repo.create_audit_record(audit)
        self._push("push_audit", audit)
        result.audit_record = audit

        seen = set()
        for finding in findings:
            if finding.asset_id in seen:
                logger.warning(
                    f"Duplicate finding for {finding.asset_id} in audit "
                    f"{audit.id} skipped"
                )
                result.skipped.append(finding.asset_id)
                continue
            seen.add(finding.asset_id)
            self._apply(finding, audit, actor, at, result)

        logger.info(
            f"Audit {audit.id} reconciled: {len(result.cases)} cases, "
            f"{len(result.maintenance)} maintenance tickets, "
            f"{len(result.skipped)} skipped"
        )
        return result

    def _apply(self, finding: Finding, audit: AuditRecord, actor: Actor,
               at: datetime, result: ReconciliationResult):
        asset = self.repo.get_asset(finding.asset_id)
        if asset is None:
            logger.warning(f"Finding for unknown asset {finding.asset_id} skipped")
            result.skipped.append(finding.asset_id)
            return

        asset.last_verified = at.date().isoformat()

        locked = self.repo.locked_parts(asset.id)
        piece_status = {
            part: status for part, status in finding.piece_status.items()
            if normalize_part_name(part) not in locked
        }
        blocked = [
            part for part in finding.piece_status
            if normalize_part_name(part) in locked
        ]
        if blocked:
            logger.warning(
                f"Asset {asset.id}: parts already under an open case "
                f"not re-escalated: {', '.join(blocked)}"
            )
            result.blocked[asset.id] = blocked

        if asset.is_composite and finding.piece_status:
            condition = derive_condition(piece_status)
        else:
            condition = finding.condition

        already_removed = max(0, finding.expected_qty - asset.available)
        shortfall = max(
            0, finding.expected_qty - finding.sighted_qty - already_removed
        )

        defects = defects_from_status(piece_status)
        has_part_defects = bool(defects)
        # Shortfall fully covered by units an earlier reconciliation removed
        absorbed = (
            finding.sighted_qty < finding.expected_qty and shortfall == 0
            and not has_part_defects
        )
        if absorbed:
            logger.info(
                f"Asset {asset.id}: shortfall already escalated "
                f"({already_removed} units out); no new case"
            )

        if shortfall == 0 and (condition not in VARIANCE_CONDITIONS or absorbed):
            self.repo.commit_variance(asset)
            self._push("push_asset", asset)
            result.verified.append(asset.id)
            return

        if shortfall == 0 and not has_part_defects:
            # Condition-only variance: one open case per condition per tool
            covering = next(
                (c for c in self.repo.unresolved_variances(asset.id)
                 if c.condition_on_return == condition),
                None,
            )
            if covering is not None:
                logger.warning(
                    f"Asset {asset.id}: {condition} already under open case "
                    f"{covering.id}; not re-escalated"
                )
                self.repo.commit_variance(asset)
                self._push("push_asset", asset)
                result.covered[asset.id] = covering.id
                return

        case = Case(
            id=f"AUD-VAR-{millis(at)}-{asset.id}",
            tool_id=asset.id,
            tool_name=asset.name,
            staff_id=finding.responsible_staff_id or AUDIT_FALLBACK_STAFF_ID,
            staff_name=finding.responsible_staff_name or AUDIT_FALLBACK_STAFF_NAME,
            quantity=shortfall or 1,
            issuance_type=ISSUANCE_OUTSTANDING,
            is_returned=False,
            condition_on_return=condition,
            escalation_stage=STAGE_SUPERVISOR,
            escalation_status=STATUS_PENDING,
            monetary_value=asset.monetary_value,
            notes=f"[AUDIT] {finding.notes or DEFAULT_AUDIT_NOTE}",
            defects=defects,
            audit_id=audit.id,
            date=at.date().isoformat(),
            time_out="00:00",
            discovery_date=at.date().isoformat(),
            attendant_id=actor.id,
            attendant_name=actor.name,
        )

        asset.available -= shortfall
        asset.condition = condition
        if asset.is_composite and piece_status:
            asset.composition = annotate_composition(asset, piece_status)

        ticket = None
        if condition == CONDITION_DAMAGED:
            ticket = self.maintenance.new_record(
                asset,
                reported_by=actor.name,
                context=(
                    f"[AUDIT {audit.id}] {finding.notes or DEFAULT_AUDIT_NOTE} "
                    f"Custodian: {case.staff_name} ({case.staff_id})"
                ),
                assigned_staff_id=case.staff_id,
                assigned_staff_name=case.staff_name,
                at=at,
            )

        self.repo.commit_variance(asset, case, ticket)
        logger.info(
            f"Case {case.id} opened against {case.staff_name} for "
            f"{case.quantity} x {asset.name} ({condition})"
        )
        result.cases.append(case)
        if ticket is not None:
            result.maintenance.append(ticket)

        self._push("push_asset", asset)
        self._push("push_case", case)
        if ticket is not None:
            self._push("push_maintenance", ticket)

    def _push(self, method: str, record):
        if self.sync is not None:
            getattr(self.sync, method)(record)
