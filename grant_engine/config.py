"""
Grant Engine Configuration
"""

import logging
import os
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from dotenv import load_dotenv, find_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class GrantConfig:
    """Configuration for the grant engine"""

    # Funding cap scaling
    MIN_CAP: int = 1000                     # cap at MIN_REQUIRED reputation (USD)
    MAX_CAP: int = 10000                    # cap at SCALE_MAX reputation (USD)
    SCALE_MAX: int = 250                    # reputation ceiling
    MIN_REQUIRED: int = 10                  # reputation floor to submit

    # Reputation mutation
    BOOST: int = 20                         # on final milestone
    PENALTY: int = 10                       # on slashing

    # Bonding
    BOND_USD: Decimal = Decimal("300")
    MIN_GRANT_REQUEST: Decimal = Decimal("100")

    # Adaptive quorum
    AQ_BASE: Decimal = Decimal("0.05")      # 5%
    AQ_SENSITIVITY: Decimal = Decimal("1e-8")
    AQ_CEILING: Decimal = Decimal("0.15")   # 15%

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type is Decimal and not isinstance(value, Decimal):
                setattr(self, f.name, _to_decimal(f.name, value))
            elif f.type is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise ConfigurationError(
                    f"{f.name} must be an integer (got {value!r})",
                    {"field": f.name}
                )
        self._validate()

    def _validate(self) -> None:
        if self.MIN_REQUIRED < 0:
            raise ConfigurationError("MIN_REQUIRED must be non-negative")
        if self.SCALE_MAX <= self.MIN_REQUIRED:
            raise ConfigurationError(
                f"SCALE_MAX ({self.SCALE_MAX}) must exceed MIN_REQUIRED ({self.MIN_REQUIRED})"
            )
        if not 0 <= self.MIN_CAP <= self.MAX_CAP:
            raise ConfigurationError(
                f"Expected 0 <= MIN_CAP <= MAX_CAP (got {self.MIN_CAP}, {self.MAX_CAP})"
            )
        if self.BOOST < 0 or self.PENALTY < 0:
            raise ConfigurationError("BOOST and PENALTY must be non-negative")
        if self.BOND_USD <= 0:
            raise ConfigurationError("BOND_USD must be positive")
        if self.MIN_GRANT_REQUEST < 0:
            raise ConfigurationError("MIN_GRANT_REQUEST must be non-negative")
        if self.AQ_SENSITIVITY < 0:
            raise ConfigurationError("AQ_SENSITIVITY must be non-negative")
        if not 0 <= self.AQ_BASE <= self.AQ_CEILING <= 1:
            raise ConfigurationError(
                f"Expected 0 <= AQ_BASE <= AQ_CEILING <= 1 (got {self.AQ_BASE}, {self.AQ_CEILING})"
            )

    @classmethod
    def default(cls) -> 'GrantConfig':
        """Get default configuration"""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "DGE_", env: Optional[Dict[str, str]] = None) -> 'GrantConfig':
        """
        Build a configuration from environment variables

        A .env file found upward from the working directory is loaded first
        (existing variables win). Every field can be overridden as
        <prefix><FIELD>, e.g. DGE_MAX_CAP=20000.

        Args:
            prefix: Variable name prefix
            env: Mapping to read instead of os.environ (skips .env loading)
        """
        if env is None:
            env_path = find_dotenv(usecwd=True)
            if env_path:
                load_dotenv(env_path)
                logger.debug(f"Loaded environment from {env_path}")
            env = dict(os.environ)

        overrides: Dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(prefix + f.name)
            if raw is None or raw.strip() == "":
                continue
            if f.type is int:
                try:
                    overrides[f.name] = int(raw)
                except ValueError:
                    raise ConfigurationError(
                        f"{prefix}{f.name} must be an integer (got {raw!r})",
                        {"field": f.name}
                    )
            else:
                overrides[f.name] = _to_decimal(f.name, raw)

        if overrides:
            logger.info(f"Configuration overrides from environment: {sorted(overrides)}")
        return cls(**overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            f.name: str(getattr(self, f.name)) if f.type is Decimal else getattr(self, f.name)
            for f in fields(self)
        }


def _to_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be numeric (got {value!r})", {"field": name})
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ConfigurationError(f"{name} must be numeric (got {value!r})", {"field": name})
    if not result.is_finite():
        raise ConfigurationError(f"{name} must be finite (got {value!r})", {"field": name})
    return result
