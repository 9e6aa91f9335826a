"""
Eligibility evaluation for proposal submission

All rules are independent; every violated rule is reported.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from .calculators import funding_cap
from .config import GrantConfig
from .errors import InvalidAmount, InvalidReputation
from .models import FounderProfile, finite_decimal


class ReasonCode(Enum):
    """Why a request is not eligible"""
    BELOW_REPUTATION_FLOOR = "below_reputation_floor"
    BELOW_MINIMUM_REQUEST = "below_minimum_request"
    EXCEEDS_CAP = "exceeds_cap"


@dataclass(frozen=True)
class EligibilityResult:
    """Admit/reject decision with the violated rules"""
    reasons: FrozenSet[ReasonCode]
    cap: int
    requested_amount_usd: Decimal

    @property
    def eligible(self) -> bool:
        return not self.reasons

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eligible": self.eligible,
            "reasons": sorted(r.value for r in self.reasons),
            "cap": self.cap,
            "requested_amount_usd": str(self.requested_amount_usd),
        }


def validate_amount(requested_amount_usd: Any) -> Decimal:
    """Requested USD amount as a non-negative finite Decimal"""
    amount = finite_decimal(requested_amount_usd, InvalidAmount)
    if amount < 0:
        raise InvalidAmount(requested_amount_usd)
    return amount


def evaluate(
    reputation: int,
    requested_amount_usd: Any,
    cap: int,
    config: Optional[GrantConfig] = None
) -> EligibilityResult:
    """
    Check a request against the reputation floor, minimum request and cap

    Equality is allowed on both the floor (reputation == MIN_REQUIRED) and
    the cap (requested == cap). Has no side effects.

    Raises:
        InvalidAmount: If the requested amount is negative or not finite
        InvalidReputation: If the reputation is not an integer
    """
    config = config or GrantConfig.default()
    if isinstance(reputation, bool) or not isinstance(reputation, int):
        raise InvalidReputation(reputation, config.SCALE_MAX)
    amount = validate_amount(requested_amount_usd)

    reasons = set()
    if reputation < config.MIN_REQUIRED:
        reasons.add(ReasonCode.BELOW_REPUTATION_FLOOR)
    if amount < config.MIN_GRANT_REQUEST:
        reasons.add(ReasonCode.BELOW_MINIMUM_REQUEST)
    if amount > cap:
        reasons.add(ReasonCode.EXCEEDS_CAP)

    return EligibilityResult(
        reasons=frozenset(reasons),
        cap=cap,
        requested_amount_usd=amount
    )


def evaluate_founder(
    founder: FounderProfile,
    requested_amount_usd: Any,
    config: Optional[GrantConfig] = None
) -> EligibilityResult:
    """Evaluate a founder's request against the cap derived from their reputation"""
    config = config or GrantConfig.default()
    cap = funding_cap(founder.reputation, config)
    return evaluate(founder.reputation, requested_amount_usd, cap, config)
