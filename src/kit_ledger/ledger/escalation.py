"""Case lifecycle: grace periods, escalation tiers, recovery and HR closeout.

A case moves through ``escalation_stage`` (Store, Supervisor, Manager) and
``escalation_status`` (Pending, In-Grace-Period, Escalated-to-HR, Resolved).
Every transition appends one ``ActionEntry`` naming the stage the case was
in before the action. Resolved is terminal.

    service = EscalationService(repo, sync)
    service.grant_grace("AUD-VAR-1718000000000-T-001", actor)
    service.verify("AUD-VAR-1718000000000-T-001", actor)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from kit_ledger.database.models import (
    ActionEntry,
    Actor,
    Asset,
    Case,
    MaintenanceRecord,
)
from kit_ledger.database.repository import Repository
from kit_ledger.ledger.maintenance import MaintenanceQueue
from kit_ledger.utils.constants import (
    ACTION_CANCEL,
    ACTION_ESCALATE_MANAGER,
    ACTION_FURTHER_SEARCH,
    ACTION_GRANT_GRACE,
    ACTION_HR_CLOSEOUT,
    ACTION_HR_ESCALATE,
    ACTION_VERIFY,
    CONDITION_DAMAGED,
    CONDITION_GOOD,
    CONDITION_MAINTENANCE,
    DEFAULT_DIRECTIVE_NOTE,
    GRACE_PERIOD_DAYS,
    HR_PATHWAYS,
    PATHWAY_WAIVED,
    STAGE_MANAGER,
    STAGE_SUPERVISOR,
    STATUS_GRACE,
    STATUS_HR,
    STATUS_PENDING,
    STATUS_RESOLVED,
)
from kit_ledger.utils.formatters import format_timestamp

logger = logging.getLogger(__name__)


class TransitionError(ValueError):
    """The case is not in a state that allows this action."""


class CaseResolvedError(TransitionError):
    """The case is already Resolved."""


@dataclass
class RecoveryResult:
    case: Case
    asset: Optional[Asset] = None
    maintenance: Optional[MaintenanceRecord] = None


def action_label(action: str) -> str:
    """'GRANT_GRACE' -> 'GRANT GRACE'."""
    return action.upper().replace("_", " ")


class EscalationService:
    """Applies operator actions to ledger cases."""

    def __init__(self, repo: Repository, sync=None,
                 maintenance: Optional[MaintenanceQueue] = None):
        self.repo = repo
        self.sync = sync
        self.maintenance = maintenance or MaintenanceQueue(repo, sync)

    # ── Shared plumbing ─────────────────────────────────────────

    def _open_case(self, case_id: str) -> Case:
        case = self.repo.get_case(case_id)
        if case is None:
            raise ValueError(f"Case {case_id} not found")
        if case.is_resolved:
            raise CaseResolvedError(f"Case {case_id} is already resolved")
        return case

    @staticmethod
    def _record(case: Case, actor: Actor, action: str, notes: str,
                at: datetime):
        case.action_history.append(ActionEntry(
            stage=case.escalation_stage,
            actor_name=actor.name,
            action=action_label(action),
            timestamp=format_timestamp(at),
            notes=notes or DEFAULT_DIRECTIVE_NOTE,
        ))

    def _commit(self, case: Case, action: str):
        self.repo.save_case(case)
        logger.info(
            f"Case {case.id}: {action_label(action)} -> "
            f"{case.escalation_stage}/{case.escalation_status}"
        )
        if self.sync is not None:
            self.sync.push_case(case)

    # ── Transitions ─────────────────────────────────────────────

    def grant_grace(self, case_id: str, actor: Actor, notes: str = "",
                    at: Optional[datetime] = None) -> Case:
        """Give the custodian 30 days to produce the item."""
        at = at or datetime.now()
        case = self._open_case(case_id)
        self._record(case, actor, ACTION_GRANT_GRACE, notes, at)
        case.escalation_status = STATUS_GRACE
        case.grace_expiry_date = (
            at.date() + timedelta(days=GRACE_PERIOD_DAYS)
        ).isoformat()
        self._commit(case, ACTION_GRANT_GRACE)
        return case

    def escalate_to_manager(self, case_id: str, actor: Actor, notes: str = "",
                            at: Optional[datetime] = None) -> Case:
        at = at or datetime.now()
        case = self._open_case(case_id)
        self._record(case, actor, ACTION_ESCALATE_MANAGER, notes, at)
        case.escalation_stage = STAGE_MANAGER
        case.escalation_status = STATUS_PENDING
        self._commit(case, ACTION_ESCALATE_MANAGER)
        return case

    def hr_escalate(self, case_id: str, actor: Actor, notes: str = "",
                    at: Optional[datetime] = None) -> Case:
        at = at or datetime.now()
        case = self._open_case(case_id)
        if case.escalation_status == STATUS_HR:
            raise TransitionError(f"Case {case_id} is already with HR")
        self._record(case, actor, ACTION_HR_ESCALATE, notes, at)
        case.escalation_status = STATUS_HR
        self._commit(case, ACTION_HR_ESCALATE)
        return case

    def request_further_search(self, case_id: str, actor: Actor,
                               notes: str = "",
                               at: Optional[datetime] = None) -> Case:
        """Send the case back to the supervisor tier."""
        at = at or datetime.now()
        case = self._open_case(case_id)
        self._record(case, actor, ACTION_FURTHER_SEARCH, notes, at)
        case.escalation_stage = STAGE_SUPERVISOR
        case.escalation_status = STATUS_PENDING
        self._commit(case, ACTION_FURTHER_SEARCH)
        return case

    def cancel_case(self, case_id: str, actor: Actor, notes: str = "",
                    at: Optional[datetime] = None) -> Case:
        at = at or datetime.now()
        case = self._open_case(case_id)
        self._record(case, actor, ACTION_CANCEL, notes, at)
        case.escalation_status = STATUS_RESOLVED
        self._commit(case, ACTION_CANCEL)
        return case

    def verify(self, case_id: str, actor: Actor,
               condition_on_return: Optional[str] = None, notes: str = "",
               at: Optional[datetime] = None) -> RecoveryResult:
        """Record physical recovery of the item and restore the registry.

        A Damaged return parks the asset in Maintenance with a repair
        ticket and leaves ``available`` alone; any other return puts the
        case quantity back on the shelf, capped at the asset's quantity.
        """
        at = at or datetime.now()
        case = self._open_case(case_id)
        if condition_on_return:
            case.condition_on_return = condition_on_return
        damaged = case.condition_on_return == CONDITION_DAMAGED
        stamp = format_timestamp(at)

        if not notes:
            notes = (
                "Asset recovered in damaged condition. Staged for maintenance."
                if damaged else "Asset restored to master inventory."
            )
        case.action_history.append(ActionEntry(
            stage=case.escalation_stage,
            actor_name=actor.name,
            action="PHYSICAL RECOVERY",
            timestamp=stamp,
            notes=notes,
        ))
        case.escalation_status = STATUS_RESOLVED
        case.is_returned = True
        case.time_in = at.strftime("%H:%M")
        case.notes = f"{case.notes} | RECOVERY VERIFIED BY {actor.name} | {stamp}"

        asset = self.repo.get_asset(case.tool_id)
        ticket = None
        if asset is None:
            logger.warning(f"Case {case.id} refers to unknown asset {case.tool_id}")
        else:
            if damaged:
                asset.condition = CONDITION_MAINTENANCE
                ticket = self.maintenance.new_record(
                    asset,
                    reported_by=actor.name,
                    context=(
                        "[AUTO_PUSH] Resolution hub identified damage during "
                        f"final recovery. Original custodian: {case.staff_name}."
                    ),
                    at=at,
                    prefix="MNT-RES",
                )
            else:
                asset.available = min(asset.quantity,
                                      asset.available + case.quantity)
                asset.condition = CONDITION_GOOD
            asset.last_verified = at.date().isoformat()

        self.repo.commit_recovery(case, asset, ticket)
        logger.info(
            f"Case {case.id} recovered by {actor.name}"
            + (" (damaged, staged for maintenance)" if damaged else "")
        )
        if self.sync is not None:
            self.sync.push_case(case)
            if asset is not None:
                self.sync.push_asset(asset)
            if ticket is not None:
                self.sync.push_maintenance(ticket)
        return RecoveryResult(case=case, asset=asset, maintenance=ticket)

    def close_hr_case(self, case_id: str, actor: Actor, pathway: str,
                      notes: str = "", at: Optional[datetime] = None) -> Case:
        """Final HR verdict on a case escalated to HR."""
        if pathway not in HR_PATHWAYS:
            raise ValueError(f"Unknown resolution pathway: {pathway}")
        at = at or datetime.now()
        case = self._open_case(case_id)
        if case.escalation_status != STATUS_HR:
            raise TransitionError(
                f"Case {case_id} must be escalated to HR before closeout"
            )
        stamp = format_timestamp(at)
        self._record(case, actor, ACTION_HR_CLOSEOUT,
                     f"[{pathway}] {notes}".strip(), at)
        case.notes += (
            f" | [VERDICT AUTHORIZED BY: {actor.name} | DATE: {stamp}] "
            f"Resolution Protocol: [{pathway}]. Notes: {notes}"
        )
        case.resolution_pathway = pathway
        case.escalation_status = STATUS_RESOLVED
        if pathway != PATHWAY_WAIVED:
            case.is_returned = True
        self._commit(case, ACTION_HR_CLOSEOUT)
        return case

    # ── Dispatch by action name ─────────────────────────────────

    def apply(self, case_id: str, action: str, actor: Actor, notes: str = "",
              at: Optional[datetime] = None, **kwargs):
        """Run a transition by its action name, e.g. 'grant_grace'."""
        handlers = {
            ACTION_GRANT_GRACE: self.grant_grace,
            ACTION_ESCALATE_MANAGER: self.escalate_to_manager,
            ACTION_HR_ESCALATE: self.hr_escalate,
            ACTION_FURTHER_SEARCH: self.request_further_search,
            ACTION_CANCEL: self.cancel_case,
            ACTION_VERIFY: self.verify,
            ACTION_HR_CLOSEOUT: self.close_hr_case,
        }
        handler = handlers.get(action.upper())
        if handler is None:
            raise ValueError(f"Unknown action: {action}")
        return handler(case_id, actor, notes=notes, at=at, **kwargs)
