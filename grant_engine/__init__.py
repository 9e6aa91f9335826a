"""
Depth Grant Engine

Reputation-gated grant governance:
- Funding caps scaled by founder reputation
- Builder bond sized from a fixed USD target
- Supply-adaptive voting quorum
- Milestone tranches with slashing on default
"""

from .config import GrantConfig
from .errors import (
    GrantEngineError,
    ValidationError,
    IneligibleSubmission,
    InvalidPrice,
    InvalidSupply,
    InvalidAmount,
    InvalidTurnout,
    InvalidReputation,
    ProtocolError,
    InvalidTransition,
    MilestoneOutOfOrder,
    ConcurrentTransitionError,
    ProposalNotFound,
    FounderNotFound,
    FounderAlreadyRegistered,
    InvariantViolation,
    ScheduleInvariantError,
    ConfigurationError
)
from .models import (
    BondStatus,
    EventKind,
    FounderProfile,
    GrantEvent,
    Proposal,
    ProposalStatus,
    ProtocolState,
    Transition
)
from .calculators import adaptive_quorum, bond_amount, funding_cap
from .eligibility import EligibilityResult, ReasonCode, evaluate, evaluate_founder
from .tranches import Milestone, MilestoneSchedule, TrancheLedger
from .lifecycle import Action, GrantLifecycle
from .registry import GrantRegistry

__version__ = "0.1.0"

__all__ = [
    'GrantConfig',
    'GrantEngineError',
    'ValidationError',
    'IneligibleSubmission',
    'InvalidPrice',
    'InvalidSupply',
    'InvalidAmount',
    'InvalidTurnout',
    'InvalidReputation',
    'ProtocolError',
    'InvalidTransition',
    'MilestoneOutOfOrder',
    'ConcurrentTransitionError',
    'ProposalNotFound',
    'FounderNotFound',
    'FounderAlreadyRegistered',
    'InvariantViolation',
    'ScheduleInvariantError',
    'ConfigurationError',
    'BondStatus',
    'EventKind',
    'FounderProfile',
    'GrantEvent',
    'Proposal',
    'ProposalStatus',
    'ProtocolState',
    'Transition',
    'adaptive_quorum',
    'bond_amount',
    'funding_cap',
    'EligibilityResult',
    'ReasonCode',
    'evaluate',
    'evaluate_founder',
    'Milestone',
    'MilestoneSchedule',
    'TrancheLedger',
    'Action',
    'GrantLifecycle',
    'GrantRegistry'
]
