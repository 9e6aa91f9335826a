"""
Data models for the Grant Engine
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple
from uuid import UUID, uuid4

from .errors import InvalidPrice, InvalidReputation, InvalidSupply, ValidationError


class ProposalStatus(Enum):
    """Proposal lifecycle statuses"""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    VOTING = "voting"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    DEFAULTED = "defaulted"
    SLASHING_VOTE = "slashing_vote"
    COMPLETED = "completed"
    SLASHED = "slashed"
    FORGIVEN = "forgiven"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    ProposalStatus.COMPLETED,
    ProposalStatus.SLASHED,
    ProposalStatus.FORGIVEN,
    ProposalStatus.REJECTED,
})


class BondStatus(Enum):
    """Builder bond custody state"""
    NONE = "none"
    LOCKED = "locked"
    FORFEITED = "forfeited"
    RETURNED = "returned"


class EventKind(Enum):
    """Kinds of lifecycle events emitted for presentation layers"""
    PROPOSAL_DRAFTED = "proposal_drafted"
    REQUEST_REVISED = "request_revised"
    PROPOSAL_SUBMITTED = "proposal_submitted"
    VOTE_PASSED = "vote_passed"
    VOTE_FAILED = "vote_failed"
    MILESTONE_RELEASED = "milestone_released"
    GRANT_COMPLETED = "grant_completed"
    FOUNDER_DEFAULTED = "founder_defaulted"
    SLASHED = "slashed"
    FORGIVEN = "forgiven"
    PROPOSAL_DISCARDED = "proposal_discarded"


def finite_decimal(value: Any, error: Callable[[Any], ValidationError]) -> Decimal:
    """
    Convert a plain number to Decimal, rejecting anything non-finite

    Floats go through str() so 0.5 becomes Decimal("0.5") rather than its
    binary expansion. Booleans and strings are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise error(value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise error(value)
    if not result.is_finite():
        raise error(value)
    return result


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FounderProfile:
    """Founder identity and reputation (D-Metric) score"""
    founder_id: str
    reputation: int

    def __post_init__(self):
        if isinstance(self.reputation, bool) or not isinstance(self.reputation, int):
            raise InvalidReputation(self.reputation)
        if self.reputation < 0:
            raise InvalidReputation(self.reputation)

    def with_reputation(self, reputation: int) -> 'FounderProfile':
        return replace(self, reputation=reputation)

    def to_dict(self) -> Dict[str, Any]:
        return {"founder_id": self.founder_id, "reputation": self.reputation}


@dataclass(frozen=True)
class ProtocolState:
    """Oracle readings supplied per evaluation"""
    circulating_supply: Decimal
    token_price_usd: Decimal

    def __post_init__(self):
        supply = finite_decimal(self.circulating_supply, InvalidSupply)
        if supply < 0:
            raise InvalidSupply(self.circulating_supply)
        price = finite_decimal(self.token_price_usd, InvalidPrice)
        if price <= 0:
            raise InvalidPrice(self.token_price_usd)
        object.__setattr__(self, "circulating_supply", supply)
        object.__setattr__(self, "token_price_usd", price)


@dataclass(frozen=True)
class Proposal:
    """Grant proposal; every transition produces a new instance"""
    founder_id: str
    requested_amount_usd: Decimal
    proposal_id: UUID = field(default_factory=uuid4)
    status: ProposalStatus = ProposalStatus.DRAFT
    bond_amount_tokens: Optional[int] = None
    bond_status: BondStatus = BondStatus.NONE
    completed_milestones: int = 0
    submission_count: int = 0
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def evolve(self, **changes: Any) -> 'Proposal':
        """Return a copy with the given fields replaced"""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "proposal_id": str(self.proposal_id),
            "founder_id": self.founder_id,
            "requested_amount_usd": str(self.requested_amount_usd),
            "status": self.status.value,
            "bond_amount_tokens": self.bond_amount_tokens,
            "bond_status": self.bond_status.value,
            "completed_milestones": self.completed_milestones,
            "submission_count": self.submission_count,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class GrantEvent:
    """Structured lifecycle event; rendering is left to the caller"""
    kind: EventKind
    proposal_id: UUID
    parameters: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "proposal_id": str(self.proposal_id),
            "parameters": {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.parameters.items()
            },
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Transition:
    """Result of a lifecycle action: new proposal, founder and events"""
    proposal: Proposal
    founder: Optional[FounderProfile]
    events: Tuple[GrantEvent, ...]

    @property
    def event(self) -> GrantEvent:
        """Primary event of the transition"""
        return self.events[0]
