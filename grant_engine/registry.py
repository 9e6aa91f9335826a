"""
Grant Registry - in-memory host for the lifecycle state machine

Serializes transitions per proposal. A request that arrives while another
transition on the same proposal is running is rejected with
ConcurrentTransitionError; requests are never queued or merged.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from .config import GrantConfig
from .errors import (
    ConcurrentTransitionError,
    FounderAlreadyRegistered,
    FounderNotFound,
    ProposalNotFound,
)
from .lifecycle import Action, GrantLifecycle
from .models import FounderProfile, GrantEvent, Proposal, ProposalStatus, ProtocolState, Transition
from .tranches import MilestoneSchedule

logger = logging.getLogger(__name__)

# actions whose handler takes the owning founder
_FOUNDER_ACTIONS = frozenset({
    Action.SUBMIT,
    Action.RESOLVE_INITIAL_VOTE,
    Action.RECORD_MILESTONE_SUCCESS,
    Action.RESOLVE_SLASHING_VOTE,
})


class GrantRegistry:
    """
    Tracks founders, proposals and their event history

    Features:
    - One lock per proposal, conflicting requests rejected
    - Atomic commit of proposal, founder and events
    - Audit trail of every emitted event
    """

    def __init__(
        self,
        config: Optional[GrantConfig] = None,
        schedule: Optional[MilestoneSchedule] = None
    ):
        self.lifecycle = GrantLifecycle(config, schedule)
        self._founders: Dict[str, FounderProfile] = {}
        self._proposals: Dict[UUID, Proposal] = {}
        self._history: Dict[UUID, List[GrantEvent]] = {}
        self._locks: Dict[UUID, asyncio.Lock] = {}
        logger.info("GrantRegistry initialized")

    # ===== Founders =====

    def register_founder(self, founder_id: str, reputation: int) -> FounderProfile:
        """
        Register a new founder profile

        Reputation only changes through lifecycle transitions afterwards.

        Raises:
            FounderAlreadyRegistered: If the founder id is already in use
        """
        if founder_id in self._founders:
            logger.warning(f"Founder {founder_id} is already registered")
            raise FounderAlreadyRegistered(founder_id)
        founder = FounderProfile(founder_id=founder_id, reputation=reputation)
        self.lifecycle.check_reputation(founder)
        self._founders[founder_id] = founder
        logger.info(f"Registered founder {founder_id} (reputation {reputation})")
        return founder

    def get_founder(self, founder_id: str) -> FounderProfile:
        founder = self._founders.get(founder_id)
        if founder is None:
            raise FounderNotFound(founder_id)
        return founder

    # ===== Proposals =====

    def open_proposal(self, founder_id: str, requested_amount_usd: Any) -> Proposal:
        """Create a draft for a registered founder"""
        transition = self.lifecycle.draft(self.get_founder(founder_id), requested_amount_usd)
        proposal = transition.proposal
        self._locks[proposal.proposal_id] = asyncio.Lock()
        self._history[proposal.proposal_id] = []
        self._commit(transition)
        return proposal

    def get_proposal(self, proposal_id: UUID) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFound(proposal_id)
        return proposal

    def list_proposals(self, status: Optional[ProposalStatus] = None) -> List[Proposal]:
        """Get all proposals, optionally filtered by status"""
        proposals = list(self._proposals.values())
        if status:
            proposals = [p for p in proposals if p.status == status]
        return proposals

    def history(self, proposal_id: UUID) -> List[GrantEvent]:
        """Events emitted for a proposal, oldest first"""
        self.get_proposal(proposal_id)
        return list(self._history[proposal_id])

    # ===== Transitions =====

    async def apply(self, proposal_id: UUID, action: Action, **kwargs: Any) -> Transition:
        """
        Run a lifecycle action on a stored proposal

        The founder is looked up automatically for actions that need it.

        Raises:
            ProposalNotFound: Unknown proposal
            ConcurrentTransitionError: Another transition is in flight
        """
        action = Action(action)
        proposal = self.get_proposal(proposal_id)
        lock = self._locks[proposal_id]
        if lock.locked():
            logger.warning(f"Conflicting {action.value} on proposal {proposal_id} rejected")
            raise ConcurrentTransitionError(proposal_id)

        async with lock:
            # concurrent callers interleave here and find the lock held
            await asyncio.sleep(0)
            # read, transition and commit without suspending in between
            proposal = self._proposals[proposal_id]
            if action in _FOUNDER_ACTIONS:
                kwargs["founder"] = self.get_founder(proposal.founder_id)
            transition = self.lifecycle.dispatch(action, proposal, **kwargs)
            self._commit(transition)
            return transition

    async def timeout_vote(self, proposal_id: UUID, protocol: ProtocolState) -> Transition:
        """Resolve an expired initial vote as failed with zero turnout"""
        logger.info(f"Voting period expired for proposal {proposal_id}")
        return await self.apply(
            proposal_id,
            Action.RESOLVE_INITIAL_VOTE,
            passed=False,
            turnout=Decimal("0"),
            protocol=protocol
        )

    def _commit(self, transition: Transition) -> None:
        proposal = transition.proposal
        self._proposals[proposal.proposal_id] = proposal
        if transition.founder is not None:
            self._founders[transition.founder.founder_id] = transition.founder
        self._history[proposal.proposal_id].extend(transition.events)

    # ===== Statistics =====

    def get_statistics(self) -> Dict[str, Any]:
        """Get registry statistics"""
        proposals = self.list_proposals()
        released = sum(
            (self.lifecycle.ledger(p).released_amount for p in proposals),
            Decimal("0")
        )
        return {
            "total_founders": len(self._founders),
            "total_proposals": len(proposals),
            "by_status": {
                status.value: len([p for p in proposals if p.status == status])
                for status in ProposalStatus
            },
            "total_released_usd": str(released),
        }
