"""HierarchyCascadeEngine — manual reassignment cascade and account locking.

Each reassignment request is driven through an explicit state machine:

    Idle -> Evaluating -> {Confirmed, SplitWarned, LockOverrideWarned, Cancelled}
    {Confirmed, SplitWarned, LockOverrideWarned} -> Applied | Cancelled

Applied and Cancelled are terminal. The warned states need an explicit
confirmation to be applied. Applying touches every account of the plan or
none of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone

from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.entities.audit_entry import AuditEntry
from assignment_engine.domain.entities.proposal import AssignmentProposal, AssignmentWarning
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.errors import (
    InvalidLockReasonError,
    InvalidManualTargetError,
    InvalidTransitionError,
)
from assignment_engine.domain.policies.account_index import AccountIndex
from assignment_engine.domain.policies.confidence_scorer import finalize
from assignment_engine.domain.value_objects.enums import (
    AuditAction,
    CascadeState,
    HierarchyRole,
    RuleApplied,
    Severity,
    WarningType,
)

logger = logging.getLogger(__name__)

MAX_LOCK_REASON_LENGTH = 500

_TRANSITIONS: dict[CascadeState, frozenset[CascadeState]] = {
    CascadeState.IDLE: frozenset({CascadeState.EVALUATING}),
    CascadeState.EVALUATING: frozenset(
        {
            CascadeState.CONFIRMED,
            CascadeState.SPLIT_WARNED,
            CascadeState.LOCK_OVERRIDE_WARNED,
            CascadeState.CANCELLED,
        }
    ),
    CascadeState.CONFIRMED: frozenset({CascadeState.APPLIED, CascadeState.CANCELLED}),
    CascadeState.SPLIT_WARNED: frozenset({CascadeState.APPLIED, CascadeState.CANCELLED}),
    CascadeState.LOCK_OVERRIDE_WARNED: frozenset({CascadeState.APPLIED, CascadeState.CANCELLED}),
    CascadeState.APPLIED: frozenset(),
    CascadeState.CANCELLED: frozenset(),
}

_WARNED_STATES = frozenset({CascadeState.SPLIT_WARNED, CascadeState.LOCK_OVERRIDE_WARNED})


@dataclass(frozen=True)
class ReassignmentRequest:
    account_id: str
    new_owner_id: str
    include_children: bool = True
    move_only_this: bool = False
    override_locks: bool = False
    rationale: str | None = None


@dataclass
class CascadePlan:
    request: ReassignmentRequest
    target_role: HierarchyRole = HierarchyRole.STANDALONE
    state: CascadeState = CascadeState.IDLE
    moved_ids: list[str] = field(default_factory=list)
    skipped_locked_ids: list[str] = field(default_factory=list)
    overridden_lock_ids: list[str] = field(default_factory=list)
    blocking_ids: list[str] = field(default_factory=list)
    warning_types: list[WarningType] = field(default_factory=list)
    split: bool = False

    def transition(self, new_state: CascadeState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"Cannot move a cascade plan from {self.state.value} to {new_state.value}")
        self.state = new_state

    @property
    def requires_confirmation(self) -> bool:
        return self.state in _WARNED_STATES

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]


@dataclass
class CascadeResult:
    plan: CascadePlan
    accounts: list[Account]
    proposals: list[AssignmentProposal]
    audit_entry: AuditEntry


@dataclass
class LockResult:
    account: Account
    audit_entry: AuditEntry
    proposals: list[AssignmentProposal] = field(default_factory=list)


def refresh_hierarchy_split(index: AccountIndex, parent: Account, proposed_only: bool = False) -> list[str]:
    """Recompute split flags for one hierarchy; return the ids of differing children.

    With *proposed_only* the proposed owners are compared as they are, so an
    unassigned child counts as split from an owned parent.
    """

    def owner_of(account: Account) -> str | None:
        return account.proposed_owner_id if proposed_only else account.effective_owner_id

    children = index.children_of(parent.account_id)
    owner = owner_of(parent)
    differing = [c.account_id for c in children if owner_of(c) != owner]
    parent.has_split_ownership = bool(differing)
    for child in children:
        child.has_split_ownership = child.account_id in differing
    return differing


def locked_proposal(account: Account, owner: SalesRep | None) -> AssignmentProposal:
    reason = "Locked to current owner"
    if account.lock_reason:
        reason = f"{reason}: {account.lock_reason}"
    return AssignmentProposal(
        account_id=account.account_id,
        proposed_owner_id=account.current_owner_id,
        proposed_owner_name=account.current_owner_name,
        proposed_owner_region=owner.region if owner else None,
        rule_applied=RuleApplied.LOCKED,
        assignment_reason=reason,
    )


def standing_proposal(
    account: Account,
    reps_by_id: dict[str, SalesRep],
    reason: str,
    rule_applied: RuleApplied = RuleApplied.MANUAL_REASSIGNMENT,
) -> AssignmentProposal:
    """Proposal that keeps *account* with the owner it has right now."""
    if account.is_locked:
        return locked_proposal(account, reps_by_id.get(account.current_owner_id or ""))
    owner_id = account.effective_owner_id
    owner = reps_by_id.get(owner_id or "")
    return AssignmentProposal(
        account_id=account.account_id,
        proposed_owner_id=owner_id,
        proposed_owner_name=account.proposed_owner_name or account.current_owner_name,
        proposed_owner_region=owner.region if owner else None,
        rule_applied=rule_applied if owner_id else RuleApplied.UNASSIGNED,
        assignment_reason=reason,
    )


def sync_split_proposals(
    index: AccountIndex,
    top: Account,
    existing: dict[str, AssignmentProposal],
    fresh: dict[str, AssignmentProposal],
    reps_by_id: dict[str, SalesRep],
) -> list[AssignmentProposal]:
    """Bring the proposals of one hierarchy in line with its split flags.

    *fresh* holds the proposals just built for accounts that changed. Every
    other member is patched from a copy of its *existing* proposal, and only
    when its HIERARCHY_SPLIT warning no longer matches its flag. The result is
    every proposal that needs storing, finalized.
    """
    out = dict(fresh)
    for member in [top, *index.children_of(top.account_id)]:
        split = member is not top and member.has_split_ownership
        proposal = out.get(member.account_id)
        if proposal is None:
            stored = existing.get(member.account_id)
            flagged = stored is not None and stored.has_warning(WarningType.HIERARCHY_SPLIT)
            if split and not flagged:
                proposal = (
                    replace(stored, warnings=list(stored.warnings))
                    if stored is not None
                    else standing_proposal(member, reps_by_id, "Kept with current owner", RuleApplied.CONTINUITY_ANY_GEO)
                )
            elif flagged and not member.has_split_ownership:
                proposal = replace(stored, warnings=list(stored.warnings), force_low_confidence=False)
                proposal.drop_warnings(WarningType.HIERARCHY_SPLIT)
            else:
                continue
        if split and not proposal.has_warning(WarningType.HIERARCHY_SPLIT):
            proposal.add_warning(split_warning(index.parent_of(member) or top))
        out[member.account_id] = proposal
    return [finalize(proposal, index.get(account_id).cre_count) for account_id, proposal in out.items()]


def split_warning(parent: Account) -> AssignmentWarning:
    return AssignmentWarning(
        type=WarningType.HIERARCHY_SPLIT,
        severity=Severity.LOW,
        reason=f"Owner differs from parent {parent.name}",
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HierarchyCascadeEngine:
    def __init__(self, index: AccountIndex, reps: list[SalesRep]):
        self.index = index
        self.reps_by_id = {rep.rep_id: rep for rep in reps}

    def _target_rep(self, rep_id: str) -> SalesRep:
        rep = self.reps_by_id.get(rep_id)
        if rep is None:
            raise InvalidManualTargetError(rep_id, "rep does not exist")
        if not rep.is_active:
            raise InvalidManualTargetError(rep_id, "rep is inactive")
        if not rep.include_in_assignments:
            raise InvalidManualTargetError(rep_id, "rep is excluded from assignments")
        return rep

    def evaluate(self, request: ReassignmentRequest) -> CascadePlan:
        """Classify the target and decide which accounts move with it.

        Raises AccountNotFoundError or InvalidManualTargetError before any
        state is created. A locked target without ``override_locks`` yields a
        Cancelled plan carrying the blocking id.
        """
        target = self.index.get(request.account_id)
        self._target_rep(request.new_owner_id)

        plan = CascadePlan(request=request, target_role=self.index.role_of(target))
        plan.transition(CascadeState.EVALUATING)

        if target.is_locked and not request.override_locks:
            plan.blocking_ids = [target.account_id]
            plan.transition(CascadeState.CANCELLED)
            logger.info("Reassignment of %s blocked by its lock", target.account_id)
            return plan

        scope = self._scope(target, request, plan)
        for account in scope:
            if account.is_locked:
                if request.override_locks:
                    plan.overridden_lock_ids.append(account.account_id)
                else:
                    plan.skipped_locked_ids.append(account.account_id)
                    continue
            plan.moved_ids.append(account.account_id)

        if plan.split or plan.skipped_locked_ids:
            plan.warning_types.append(WarningType.HIERARCHY_SPLIT)
        if plan.overridden_lock_ids:
            plan.warning_types.append(WarningType.LOCK_OVERRIDE)
        if any(self._changes_customer_owner(self.index.get(a), request.new_owner_id) for a in plan.moved_ids):
            plan.warning_types.append(WarningType.CHANGING_CUSTOMER_OWNER)

        if plan.overridden_lock_ids:
            plan.transition(CascadeState.LOCK_OVERRIDE_WARNED)
        elif plan.split:
            plan.transition(CascadeState.SPLIT_WARNED)
        else:
            plan.transition(CascadeState.CONFIRMED)
        return plan

    def _scope(self, target: Account, request: ReassignmentRequest, plan: CascadePlan) -> list[Account]:
        role = plan.target_role
        if role == HierarchyRole.PARENT:
            if request.include_children:
                return [target, *self.index.children_of(target.account_id)]
            plan.split = True
            return [target]
        if role == HierarchyRole.CHILD:
            if request.move_only_this:
                plan.split = True
                return [target]
            parent = self.index.top_of(target)
            members = [parent, *self.index.children_of(parent.account_id)]
            # Target first so a lock on it is reported before its partners
            return [target, *[m for m in members if m.account_id != target.account_id]]
        return [target]

    @staticmethod
    def _changes_customer_owner(account: Account, new_owner_id: str) -> bool:
        return bool(account.is_customer and account.current_owner_id and account.current_owner_id != new_owner_id)

    def cancel(self, plan: CascadePlan) -> CascadePlan:
        plan.transition(CascadeState.CANCELLED)
        return plan

    def apply(
        self,
        plan: CascadePlan,
        confirmed: bool = False,
        proposals: dict[str, AssignmentProposal] | None = None,
    ) -> CascadeResult:
        """Move the planned accounts and return every proposal that changed.

        *proposals* are the stored proposals of the hierarchy; members that did
        not move get theirs patched when their split flag changes.
        """
        if plan.requires_confirmation and not confirmed:
            raise InvalidTransitionError(f"Plan in state {plan.state.value} needs explicit confirmation")
        if CascadeState.APPLIED not in _TRANSITIONS[plan.state]:
            raise InvalidTransitionError(f"Cannot apply a plan in state {plan.state.value}")

        request = plan.request
        rep = self._target_rep(request.new_owner_id)
        target = self.index.get(request.account_id)
        top = self.index.top_of(target)
        touched = {a.account_id: a for a in [top, *self.index.children_of(top.account_id)]}
        touched[target.account_id] = target
        snapshot = {account_id: replace(account) for account_id, account in touched.items()}
        previous_owner_id = target.effective_owner_id
        previous_owner_name = target.proposed_owner_name or target.current_owner_name

        try:
            for account_id in plan.moved_ids:
                account = self.index.get(account_id)
                account.proposed_owner_id = rep.rep_id
                account.proposed_owner_name = rep.name
                if account_id in plan.overridden_lock_ids:
                    account.exclude_from_reassignment = False
                    account.lock_reason = None
            differing = set(refresh_hierarchy_split(self.index, top)) if self.index.has_children(top.account_id) else set()
            fresh = {
                a: self._proposal(self.index.get(a), rep, plan, differing, snapshot[a].lock_reason)
                for a in plan.moved_ids
            }
            changed = sync_split_proposals(self.index, top, proposals or {}, fresh, self.reps_by_id)
        except Exception:
            logger.exception("Reassignment of %s failed, restoring %d accounts", request.account_id, len(snapshot))
            for account_id, original in snapshot.items():
                live = touched[account_id]
                for f in fields(Account):
                    setattr(live, f.name, getattr(original, f.name))
            raise

        plan.transition(CascadeState.APPLIED)
        audit = AuditEntry(
            id=None,
            account_id=target.account_id,
            action=self._audit_action(plan),
            previous_owner_id=previous_owner_id,
            previous_owner_name=previous_owner_name,
            new_owner_id=rep.rep_id,
            new_owner_name=rep.name,
            rationale=request.rationale,
            moved_account_ids=list(plan.moved_ids),
            skipped_locked_ids=list(plan.skipped_locked_ids),
            unlocked_account_ids=list(plan.overridden_lock_ids),
            warning_types=list(plan.warning_types),
            created_at=_now(),
        )
        logger.info(
            "Reassigned %s to %s: %d moved, %d locked skipped, %d locks overridden",
            target.account_id,
            rep.rep_id,
            len(plan.moved_ids),
            len(plan.skipped_locked_ids),
            len(plan.overridden_lock_ids),
        )
        return CascadeResult(
            plan=plan,
            accounts=[self.index.get(a) for a in plan.moved_ids],
            proposals=changed,
            audit_entry=audit,
        )

    def _audit_action(self, plan: CascadePlan) -> AuditAction:
        if plan.split:
            return AuditAction.HIERARCHY_SPLIT
        if len(plan.moved_ids) > 1 or plan.skipped_locked_ids:
            return AuditAction.HIERARCHY_REASSIGNMENT
        return AuditAction.MANUAL_REASSIGNMENT

    def _proposal(
        self,
        account: Account,
        rep: SalesRep,
        plan: CascadePlan,
        differing_children: set[str],
        lock_reason: str | None = None,
    ) -> AssignmentProposal:
        proposal = AssignmentProposal(
            account_id=account.account_id,
            proposed_owner_id=rep.rep_id,
            proposed_owner_name=rep.name,
            proposed_owner_region=rep.region,
            rule_applied=RuleApplied.MANUAL_REASSIGNMENT,
            assignment_reason=plan.request.rationale or "Manual reassignment",
            force_low_confidence=plan.split,
        )
        if account.account_id in differing_children or (plan.split and account.account_id == plan.request.account_id):
            proposal.add_warning(
                AssignmentWarning(
                    type=WarningType.HIERARCHY_SPLIT,
                    severity=Severity.LOW,
                    reason="Owner differs from the rest of its hierarchy",
                )
            )
        if account.account_id in plan.overridden_lock_ids:
            proposal.add_warning(
                AssignmentWarning(
                    type=WarningType.LOCK_OVERRIDE,
                    severity=Severity.MEDIUM,
                    reason="Lock overridden by manual reassignment",
                    details=lock_reason,
                )
            )
        if self._changes_customer_owner(account, rep.rep_id):
            proposal.add_warning(
                AssignmentWarning(
                    type=WarningType.CHANGING_CUSTOMER_OWNER,
                    severity=Severity.LOW,
                    reason=f"Customer moves away from {account.current_owner_name or account.current_owner_id}",
                )
            )
        return proposal

    def lock(
        self,
        account_id: str,
        locking: bool,
        reason: str | None = None,
        proposals: dict[str, AssignmentProposal] | None = None,
    ) -> LockResult:
        """Lock or unlock one account and rebuild the proposals it affects."""
        account = self.index.get(account_id)
        result = set_lock(account, locking, reason)
        fresh = {
            account_id: standing_proposal(account, self.reps_by_id, "Lock released, owner kept until the next pass")
        }
        top = self.index.top_of(account)
        if self.index.has_children(top.account_id):
            refresh_hierarchy_split(self.index, top)
        result.proposals = sync_split_proposals(self.index, top, proposals or {}, fresh, self.reps_by_id)
        return result


def set_lock(account: Account, locking: bool, reason: str | None = None) -> LockResult:
    """Lock *account* to its current owner, or clear the lock unconditionally."""
    previous_owner_id = account.effective_owner_id
    previous_owner_name = account.proposed_owner_name or account.current_owner_name

    if locking:
        reason = reason.strip() if reason else None
        if reason and len(reason) > MAX_LOCK_REASON_LENGTH:
            raise InvalidLockReasonError(f"Lock reason exceeds {MAX_LOCK_REASON_LENGTH} characters")
        account.exclude_from_reassignment = True
        account.lock_reason = reason or None
        account.proposed_owner_id = account.current_owner_id
        account.proposed_owner_name = account.current_owner_name
        action = AuditAction.LOCK
    else:
        account.exclude_from_reassignment = False
        account.lock_reason = None
        action = AuditAction.UNLOCK

    audit = AuditEntry(
        id=None,
        account_id=account.account_id,
        action=action,
        previous_owner_id=previous_owner_id,
        previous_owner_name=previous_owner_name,
        new_owner_id=account.effective_owner_id,
        new_owner_name=account.proposed_owner_name or account.current_owner_name,
        rationale=account.lock_reason,
        created_at=_now(),
    )
    return LockResult(account=account, audit_entry=audit)
