#!/usr/bin/env python3
"""
Configuration tests
"""

from decimal import Decimal

import pytest

from grant_engine.config import GrantConfig
from grant_engine.errors import ConfigurationError


class TestGrantConfig:
    """GrantConfig tests"""

    def test_defaults(self):
        config = GrantConfig.default()
        assert config.MIN_CAP == 1000
        assert config.MAX_CAP == 10000
        assert config.SCALE_MAX == 250
        assert config.MIN_REQUIRED == 10
        assert config.BOOST == 20
        assert config.PENALTY == 10
        assert config.BOND_USD == Decimal("300")
        assert config.MIN_GRANT_REQUEST == Decimal("100")
        assert config.AQ_CEILING == Decimal("0.15")

    def test_float_coerced_to_decimal(self):
        config = GrantConfig(AQ_BASE=0.04)
        assert config.AQ_BASE == Decimal("0.04")

    def test_rejects_non_integer_cap(self):
        with pytest.raises(ConfigurationError):
            GrantConfig(MAX_CAP=10000.5)

    @pytest.mark.parametrize("overrides", [
        {"MIN_CAP": 5000, "MAX_CAP": 4000},
        {"SCALE_MAX": 10},
        {"AQ_BASE": Decimal("0.2")},
        {"BOND_USD": 0},
        {"PENALTY": -1},
        {"AQ_CEILING": "nan"},
    ])
    def test_inconsistent_values(self, overrides):
        with pytest.raises(ConfigurationError):
            GrantConfig(**overrides)

    def test_from_env_overrides(self):
        config = GrantConfig.from_env(env={
            "DGE_MAX_CAP": "20000",
            "DGE_AQ_BASE": "0.04",
            "DGE_BOOST": "",
            "UNRELATED": "x",
        })
        assert config.MAX_CAP == 20000
        assert config.AQ_BASE == Decimal("0.04")
        assert config.BOOST == 20

    def test_from_env_custom_prefix(self):
        config = GrantConfig.from_env(prefix="GRANTS_", env={"GRANTS_PENALTY": "25"})
        assert config.PENALTY == 25

    def test_from_env_bad_integer(self):
        with pytest.raises(ConfigurationError) as exc_info:
            GrantConfig.from_env(env={"DGE_MAX_CAP": "lots"})
        assert exc_info.value.details["field"] == "MAX_CAP"

    def test_from_env_bad_decimal(self):
        with pytest.raises(ConfigurationError):
            GrantConfig.from_env(env={"DGE_BOND_USD": "three hundred"})

    def test_to_dict(self):
        data = GrantConfig.default().to_dict()
        assert data["MAX_CAP"] == 10000
        assert data["BOND_USD"] == "300"
        assert data["AQ_SENSITIVITY"] == "1E-8"
