"""
Pure calculators: funding cap, builder bond and adaptive quorum
"""

from decimal import Decimal, ROUND_CEILING
from typing import Any, Optional

from .config import GrantConfig
from .errors import InvalidPrice, InvalidReputation, InvalidSupply
from .models import finite_decimal


def funding_cap(reputation: int, config: Optional[GrantConfig] = None) -> int:
    """
    Maximum USD request allowed for a reputation score

    Below MIN_REQUIRED the cap is 0, from SCALE_MAX upward it is MAX_CAP,
    in between it is interpolated linearly from MIN_CAP and floored.
    Any integer is accepted; out-of-range scores clamp to the boundaries.
    """
    config = config or GrantConfig.default()
    if isinstance(reputation, bool) or not isinstance(reputation, int):
        raise InvalidReputation(reputation, config.SCALE_MAX)

    if reputation < config.MIN_REQUIRED:
        return 0
    if reputation >= config.SCALE_MAX:
        return config.MAX_CAP

    cap_range = config.MAX_CAP - config.MIN_CAP
    scale_range = config.SCALE_MAX - config.MIN_REQUIRED
    # integer floor division keeps the result exact
    return config.MIN_CAP + (cap_range * (reputation - config.MIN_REQUIRED)) // scale_range


def bond_amount(token_price_usd: Any, config: Optional[GrantConfig] = None) -> int:
    """
    Tokens required for the builder bond at the given token price

    Returns ceil(BOND_USD / price).

    Raises:
        InvalidPrice: If the price is not a positive finite number
    """
    config = config or GrantConfig.default()
    price = finite_decimal(token_price_usd, InvalidPrice)
    if price <= 0:
        raise InvalidPrice(token_price_usd)
    return int((config.BOND_USD / price).to_integral_value(rounding=ROUND_CEILING))


def adaptive_quorum(circulating_supply: Any, config: Optional[GrantConfig] = None) -> Decimal:
    """
    Required voter turnout fraction for the circulating supply

    min(AQ_CEILING, AQ_BASE + supply * AQ_SENSITIVITY)

    Raises:
        InvalidSupply: If the supply is negative or not finite
    """
    config = config or GrantConfig.default()
    supply = finite_decimal(circulating_supply, InvalidSupply)
    if supply < 0:
        raise InvalidSupply(circulating_supply)
    return min(config.AQ_CEILING, config.AQ_BASE + supply * config.AQ_SENSITIVITY)


def supply_at_ceiling(config: Optional[GrantConfig] = None) -> Optional[Decimal]:
    """Supply from which the quorum stays flat at AQ_CEILING (None if it never rises)"""
    config = config or GrantConfig.default()
    if config.AQ_SENSITIVITY == 0:
        return None
    return (config.AQ_CEILING - config.AQ_BASE) / config.AQ_SENSITIVITY
