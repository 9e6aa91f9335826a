"""
Grant Lifecycle State Machine

Sequences eligibility, voting outcomes, tranche releases and reputation
changes. Every action is a function of (proposal, inputs) returning a new
Proposal, the possibly updated FounderProfile and the emitted events; the
input objects are never mutated. Oracle readings and vote outcomes are
passed in as already-resolved values.
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .calculators import adaptive_quorum, bond_amount, funding_cap
from .config import GrantConfig
from .eligibility import evaluate_founder, validate_amount
from .errors import (
    IneligibleSubmission,
    InvalidReputation,
    InvalidTransition,
    InvalidTurnout,
    MilestoneOutOfOrder,
    ValidationError,
)
from .models import (
    BondStatus,
    EventKind,
    FounderProfile,
    GrantEvent,
    Proposal,
    ProposalStatus,
    ProtocolState,
    Transition,
    finite_decimal,
)
from .tranches import MilestoneSchedule, TrancheLedger

logger = logging.getLogger(__name__)


class Action(Enum):
    """Lifecycle actions; values match the GrantLifecycle method names"""
    REVISE_REQUEST = "revise_request"
    SUBMIT = "submit"
    RESOLVE_INITIAL_VOTE = "resolve_initial_vote"
    RECORD_MILESTONE_SUCCESS = "record_milestone_success"
    RECORD_MILESTONE_DEFAULT = "record_milestone_default"
    RESOLVE_SLASHING_VOTE = "resolve_slashing_vote"
    DISCARD = "discard"


S = ProposalStatus

# (current status, action) -> statuses the action may lead to.
# Anything missing from this table is an InvalidTransition.
TRANSITIONS: Dict[Tuple[ProposalStatus, Action], FrozenSet[ProposalStatus]] = {
    (S.DRAFT, Action.REVISE_REQUEST): frozenset({S.DRAFT}),
    (S.DRAFT, Action.SUBMIT): frozenset({S.SUBMITTED}),
    (S.DRAFT, Action.DISCARD): frozenset({S.REJECTED}),
    (S.SUBMITTED, Action.RESOLVE_INITIAL_VOTE): frozenset({S.APPROVED, S.COMPLETED, S.DRAFT}),
    (S.APPROVED, Action.RECORD_MILESTONE_SUCCESS): frozenset({S.APPROVED, S.COMPLETED}),
    (S.APPROVED, Action.RECORD_MILESTONE_DEFAULT): frozenset({S.SLASHING_VOTE}),
    (S.SLASHING_VOTE, Action.RESOLVE_SLASHING_VOTE): frozenset({S.SLASHED, S.FORGIVEN}),
}


class GrantLifecycle:
    """
    Grant proposal state machine

    Flow:
        Draft -> Submitted -> Approved (milestone loop) -> Completed
                     |                  |
                     v                  v
                   Draft           SlashingVote -> Slashed | Forgiven
    """

    def __init__(
        self,
        config: Optional[GrantConfig] = None,
        schedule: Optional[MilestoneSchedule] = None
    ):
        self.config = config or GrantConfig.default()
        self.schedule = schedule or MilestoneSchedule.default()

    # ===== Queries =====

    def ledger(self, proposal: Proposal) -> TrancheLedger:
        """Tranche accounting view of a proposal"""
        return TrancheLedger(
            self.schedule,
            proposal.requested_amount_usd,
            proposal.completed_milestones
        )

    def available_actions(self, proposal: Proposal) -> List[Action]:
        """Actions that are legal for the proposal's current status"""
        actions = [a for (status, a) in TRANSITIONS if status == proposal.status]
        if proposal.completed_milestones >= len(self.schedule):
            actions = [
                a for a in actions
                if a not in (Action.RECORD_MILESTONE_SUCCESS, Action.RECORD_MILESTONE_DEFAULT)
            ]
        return actions

    def dispatch(self, action: Action, proposal: Proposal, **kwargs: Any) -> Transition:
        """Run an action by name (used by hosts that route requests generically)"""
        return getattr(self, Action(action).value)(proposal, **kwargs)

    # ===== Entry =====

    def draft(self, founder: FounderProfile, requested_amount_usd: Any) -> Transition:
        """Create a new proposal in Draft"""
        self.check_reputation(founder)
        amount = validate_amount(requested_amount_usd)
        proposal = Proposal(founder_id=founder.founder_id, requested_amount_usd=amount)

        logger.info(f"Drafted proposal {proposal.proposal_id} by {founder.founder_id} for ${amount}")
        return self._transition(proposal, founder, [
            (EventKind.PROPOSAL_DRAFTED, {
                "requested_amount": amount,
                "cap": funding_cap(founder.reputation, self.config),
            })
        ])

    def revise_request(self, proposal: Proposal, requested_amount_usd: Any) -> Transition:
        """Change the requested amount of a draft; yields a new proposal instance"""
        self._guard(proposal, Action.REVISE_REQUEST)
        amount = validate_amount(requested_amount_usd)
        revised = proposal.evolve(requested_amount_usd=amount)

        logger.info(
            f"Proposal {proposal.proposal_id} request revised "
            f"${proposal.requested_amount_usd} -> ${amount}"
        )
        return self._transition(revised, None, [
            (EventKind.REQUEST_REVISED, {
                "previous_amount": proposal.requested_amount_usd,
                "requested_amount": amount,
            })
        ])

    # ===== Submission and initial vote =====

    def submit(
        self,
        proposal: Proposal,
        founder: FounderProfile,
        protocol: ProtocolState
    ) -> Transition:
        """
        Submit a draft for the DAO vote and lock the builder bond

        The bond is sized at the current token price and never recomputed.

        Raises:
            IneligibleSubmission: If any eligibility rule is violated
        """
        self._guard(proposal, Action.SUBMIT)
        self._check_founder(proposal, founder)

        result = evaluate_founder(founder, proposal.requested_amount_usd, self.config)
        if not result.eligible:
            logger.warning(
                f"Submission of {proposal.proposal_id} rejected: "
                f"{sorted(r.value for r in result.reasons)}"
            )
            raise IneligibleSubmission(result.reasons)

        bond = bond_amount(protocol.token_price_usd, self.config)
        submitted = proposal.evolve(
            status=ProposalStatus.SUBMITTED,
            bond_amount_tokens=bond,
            bond_status=BondStatus.LOCKED,
            submission_count=proposal.submission_count + 1
        )

        logger.info(f"Proposal {proposal.proposal_id} submitted (bond: {bond} tokens)")
        return self._transition(submitted, founder, [
            (EventKind.PROPOSAL_SUBMITTED, {
                "bond_amount": bond,
                "token_price_usd": protocol.token_price_usd,
                "cap": result.cap,
                "required_quorum": adaptive_quorum(protocol.circulating_supply, self.config),
            })
        ])

    def resolve_initial_vote(
        self,
        proposal: Proposal,
        founder: FounderProfile,
        passed: bool,
        turnout: Any,
        protocol: ProtocolState
    ) -> Transition:
        """
        Apply the DAO vote outcome on a submitted proposal

        Quorum is not enforced here; the required quorum, the turnout and
        whether it was met are recorded in the event. A passed vote releases
        the first tranche, a failed one forfeits the bond and returns the
        proposal to Draft so it can be resubmitted.
        """
        self._guard(proposal, Action.RESOLVE_INITIAL_VOTE)
        self._check_outcome("passed", passed)
        self._check_founder(proposal, founder)
        turnout = self._check_turnout(turnout)
        required = adaptive_quorum(protocol.circulating_supply, self.config)
        vote = {
            "required_quorum": required,
            "turnout": turnout,
            "quorum_met": turnout >= required,
        }

        if not passed:
            rejected = proposal.evolve(
                status=ProposalStatus.DRAFT,
                bond_amount_tokens=None,
                bond_status=BondStatus.FORFEITED
            )
            logger.info(f"Proposal {proposal.proposal_id} vote failed, bond forfeited")
            return self._transition(rejected, founder, [
                (EventKind.VOTE_FAILED, dict(vote, forfeited_bond=proposal.bond_amount_tokens))
            ])

        approved = proposal.evolve(status=ProposalStatus.APPROVED, completed_milestones=1)
        events = [
            (EventKind.VOTE_PASSED, vote),
            (EventKind.MILESTONE_RELEASED, self._release_parameters(approved, 1)),
        ]
        logger.info(f"Proposal {proposal.proposal_id} approved, tranche 1 released")

        if approved.completed_milestones == len(self.schedule):
            return self._complete(approved, founder, events)
        return self._transition(approved, founder, events)

    # ===== Milestone loop =====

    def record_milestone_success(
        self,
        proposal: Proposal,
        founder: FounderProfile,
        expected_index: Optional[int] = None
    ) -> Transition:
        """
        Release the next tranche; the final one completes the grant

        Args:
            expected_index: 1-based index of the milestone being reported;
                checked against the milestone in flight when given
        """
        self._guard(proposal, Action.RECORD_MILESTONE_SUCCESS)
        self._check_milestone_in_flight(proposal, Action.RECORD_MILESTONE_SUCCESS)
        self._check_founder(proposal, founder)

        index = proposal.completed_milestones + 1
        if expected_index is not None and expected_index != index:
            raise MilestoneOutOfOrder(expected=index, received=expected_index)

        advanced = proposal.evolve(completed_milestones=index)
        events = [(EventKind.MILESTONE_RELEASED, self._release_parameters(advanced, index))]
        logger.info(f"Proposal {proposal.proposal_id} milestone {index}/{len(self.schedule)} released")

        if index == len(self.schedule):
            return self._complete(advanced, founder, events)
        return self._transition(advanced, founder, events)

    def record_milestone_default(self, proposal: Proposal) -> Transition:
        """Founder failed to deliver the milestone in flight; opens a slashing vote"""
        self._guard(proposal, Action.RECORD_MILESTONE_DEFAULT)
        self._check_milestone_in_flight(proposal, Action.RECORD_MILESTONE_DEFAULT)

        index = proposal.completed_milestones + 1
        defaulted = proposal.evolve(status=ProposalStatus.SLASHING_VOTE)

        logger.warning(f"Proposal {proposal.proposal_id} defaulted on milestone {index}")
        return self._transition(defaulted, None, [
            (EventKind.FOUNDER_DEFAULTED, {
                "index": index,
                "name": self.schedule[index - 1].name,
                "released_total": self.ledger(proposal).released_amount,
            })
        ])

    def resolve_slashing_vote(
        self,
        proposal: Proposal,
        founder: FounderProfile,
        slash: bool
    ) -> Transition:
        """
        Terminate a defaulted grant

        Slashing forfeits the bond and applies the reputation penalty;
        forgiveness returns the bond. Released tranches stay released either way.
        """
        self._guard(proposal, Action.RESOLVE_SLASHING_VOTE)
        self._check_outcome("slash", slash)
        self._check_founder(proposal, founder)
        released = self.ledger(proposal).released_amount

        if slash:
            reputation = self._clamp(founder.reputation - self.config.PENALTY)
            slashed = proposal.evolve(status=ProposalStatus.SLASHED, bond_status=BondStatus.FORFEITED)
            logger.info(
                f"Proposal {proposal.proposal_id} slashed; {founder.founder_id} "
                f"reputation {founder.reputation} -> {reputation}"
            )
            return self._transition(slashed, founder.with_reputation(reputation), [
                (EventKind.SLASHED, {
                    "previous_reputation": founder.reputation,
                    "new_reputation": reputation,
                    "forfeited_bond": proposal.bond_amount_tokens,
                    "released_total": released,
                })
            ])

        forgiven = proposal.evolve(status=ProposalStatus.FORGIVEN, bond_status=BondStatus.RETURNED)
        logger.info(f"Proposal {proposal.proposal_id} forgiven, bond returned")
        return self._transition(forgiven, founder, [
            (EventKind.FORGIVEN, {
                "returned_bond": proposal.bond_amount_tokens,
                "released_total": released,
            })
        ])

    def discard(self, proposal: Proposal) -> Transition:
        """Founder abandons a draft; terminal"""
        self._guard(proposal, Action.DISCARD)
        discarded = proposal.evolve(status=ProposalStatus.REJECTED)

        logger.info(f"Proposal {proposal.proposal_id} discarded")
        return self._transition(discarded, None, [
            (EventKind.PROPOSAL_DISCARDED, {"submission_count": proposal.submission_count})
        ])

    # ===== Internals =====

    def _complete(self, proposal: Proposal, founder: FounderProfile, events: list) -> Transition:
        reputation = self._clamp(founder.reputation + self.config.BOOST)
        completed = proposal.evolve(status=ProposalStatus.COMPLETED, bond_status=BondStatus.RETURNED)
        events.append((EventKind.GRANT_COMPLETED, {
            "previous_reputation": founder.reputation,
            "new_reputation": reputation,
            "released_total": completed.requested_amount_usd,
            "returned_bond": proposal.bond_amount_tokens,
        }))
        logger.info(
            f"Proposal {proposal.proposal_id} completed; {founder.founder_id} "
            f"reputation {founder.reputation} -> {reputation}"
        )
        return self._transition(completed, founder.with_reputation(reputation), events)

    def _release_parameters(self, proposal: Proposal, index: int) -> Dict[str, Any]:
        ledger = self.ledger(proposal)
        return {
            "index": index,
            "name": self.schedule[index - 1].name,
            "amount": ledger.tranche_amount(index),
            "released_total": ledger.released_amount,
            "remaining": ledger.remaining_amount,
        }

    def _transition(
        self,
        proposal: Proposal,
        founder: Optional[FounderProfile],
        events: List[Tuple[EventKind, Dict[str, Any]]]
    ) -> Transition:
        return Transition(
            proposal=proposal,
            founder=founder,
            events=tuple(
                GrantEvent(kind=kind, proposal_id=proposal.proposal_id, parameters=params)
                for kind, params in events
            )
        )

    def _guard(self, proposal: Proposal, action: Action) -> None:
        if (proposal.status, action) not in TRANSITIONS:
            logger.warning(
                f"Rejected {action.value} on proposal {proposal.proposal_id} "
                f"in status {proposal.status.value}"
            )
            raise InvalidTransition(proposal.status, action)

    def _check_milestone_in_flight(self, proposal: Proposal, action: Action) -> None:
        if proposal.completed_milestones >= len(self.schedule):
            raise InvalidTransition(proposal.status, action)

    def _check_founder(self, proposal: Proposal, founder: FounderProfile) -> None:
        if founder.founder_id != proposal.founder_id:
            raise ValidationError(
                f"Founder {founder.founder_id} does not own proposal {proposal.proposal_id}",
                "FOUNDER_MISMATCH",
                {"founder_id": founder.founder_id, "owner": proposal.founder_id}
            )
        self.check_reputation(founder)

    def check_reputation(self, founder: FounderProfile) -> None:
        """Reject founders scored above SCALE_MAX"""
        if founder.reputation > self.config.SCALE_MAX:
            raise InvalidReputation(founder.reputation, self.config.SCALE_MAX)

    @staticmethod
    def _check_outcome(name: str, value: Any) -> None:
        if not isinstance(value, bool):
            raise ValidationError(
                f"Vote outcome '{name}' must be a boolean (got {value!r})",
                "INVALID_VOTE_OUTCOME",
                {name: str(value)}
            )

    @staticmethod
    def _check_turnout(turnout: Any) -> Decimal:
        value = finite_decimal(turnout, InvalidTurnout)
        if not 0 <= value <= 1:
            raise InvalidTurnout(turnout)
        return value

    def _clamp(self, reputation: int) -> int:
        return max(self.config.MIN_REQUIRED, min(self.config.SCALE_MAX, reputation))
