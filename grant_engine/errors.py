"""
Error taxonomy for the grant engine

Validation errors are recoverable and leave state untouched, protocol errors
signal misuse of the lifecycle, invariant violations are fatal at construction.
"""

from typing import Any, Iterable, Optional


class GrantEngineError(Exception):
    """Base exception for grant engine errors"""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "UNKNOWN_ERROR"
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


# ===== Validation errors =====

class ValidationError(GrantEngineError):
    """Rejected input; no state was mutated"""


class InvalidPrice(ValidationError):
    def __init__(self, price: Any):
        super().__init__(
            f"Token price must be a positive finite number (got {price!r})",
            "INVALID_PRICE",
            {"price": str(price)}
        )


class InvalidSupply(ValidationError):
    def __init__(self, supply: Any):
        super().__init__(
            f"Circulating supply must be a non-negative finite number (got {supply!r})",
            "INVALID_SUPPLY",
            {"supply": str(supply)}
        )


class InvalidAmount(ValidationError):
    def __init__(self, amount: Any):
        super().__init__(
            f"Requested amount must be a non-negative finite number (got {amount!r})",
            "INVALID_AMOUNT",
            {"amount": str(amount)}
        )


class InvalidTurnout(ValidationError):
    def __init__(self, turnout: Any):
        super().__init__(
            f"Turnout must be a finite fraction between 0 and 1 (got {turnout!r})",
            "INVALID_TURNOUT",
            {"turnout": str(turnout)}
        )


class InvalidReputation(ValidationError):
    def __init__(self, reputation: Any, scale_max: Optional[int] = None):
        bounds = f" in [0, {scale_max}]" if scale_max is not None else " >= 0"
        super().__init__(
            f"Reputation must be an integer{bounds} (got {reputation!r})",
            "INVALID_REPUTATION",
            {"reputation": str(reputation), "scale_max": scale_max}
        )


class IneligibleSubmission(ValidationError):
    """Submission blocked by one or more eligibility rules"""

    def __init__(self, reasons: Iterable[Any]):
        self.reasons = frozenset(reasons)
        codes = sorted(getattr(r, "value", str(r)) for r in self.reasons)
        super().__init__(
            f"Proposal is not eligible for submission: {', '.join(codes)}",
            "INELIGIBLE_SUBMISSION",
            {"reasons": codes}
        )


# ===== Protocol errors =====

class ProtocolError(GrantEngineError):
    """Action not valid for the current lifecycle state"""


class InvalidTransition(ProtocolError):
    def __init__(self, current_state: Any, attempted_action: Any):
        self.current_state = current_state
        self.attempted_action = attempted_action
        state = getattr(current_state, "value", current_state)
        action = getattr(attempted_action, "value", attempted_action)
        super().__init__(
            f"Cannot {action} while proposal is {state}",
            "INVALID_TRANSITION",
            {"current_state": state, "attempted_action": action}
        )


class MilestoneOutOfOrder(ProtocolError):
    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Milestone {received} reported but milestone {expected} is in flight",
            "MILESTONE_OUT_OF_ORDER",
            {"expected": expected, "received": received}
        )


class ConcurrentTransitionError(ProtocolError):
    def __init__(self, proposal_id: Any):
        super().__init__(
            f"Another transition is already in progress for proposal {proposal_id}",
            "CONCURRENT_TRANSITION",
            {"proposal_id": str(proposal_id)}
        )


class ProposalNotFound(ProtocolError):
    def __init__(self, proposal_id: Any):
        super().__init__(
            f"Proposal not found: {proposal_id}",
            "PROPOSAL_NOT_FOUND",
            {"proposal_id": str(proposal_id)}
        )


class FounderNotFound(ProtocolError):
    def __init__(self, founder_id: str):
        super().__init__(
            f"Founder not found: {founder_id}",
            "FOUNDER_NOT_FOUND",
            {"founder_id": founder_id}
        )


class FounderAlreadyRegistered(ProtocolError):
    def __init__(self, founder_id: str):
        super().__init__(
            f"Founder already registered: {founder_id}",
            "FOUNDER_ALREADY_REGISTERED",
            {"founder_id": founder_id}
        )


# ===== Invariant violations =====

class InvariantViolation(GrantEngineError):
    """Object cannot be constructed in a violated form"""


class ScheduleInvariantError(InvariantViolation):
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, "SCHEDULE_INVARIANT", details)


class ConfigurationError(InvariantViolation):
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)
