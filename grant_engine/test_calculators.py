#!/usr/bin/env python3
"""
Funding cap, builder bond and adaptive quorum tests
"""

from decimal import Decimal

import pytest

from grant_engine.calculators import adaptive_quorum, bond_amount, funding_cap, supply_at_ceiling
from grant_engine.config import GrantConfig
from grant_engine.errors import InvalidPrice, InvalidReputation, InvalidSupply


class TestFundingCap:
    """funding_cap tests"""

    @pytest.mark.parametrize("reputation", [-10**9, -1, 0, 5, 9])
    def test_below_floor_is_zero(self, reputation):
        assert funding_cap(reputation) == 0

    @pytest.mark.parametrize("reputation", [250, 251, 10**9])
    def test_at_or_above_scale_is_max(self, reputation):
        assert funding_cap(reputation) == 10000

    def test_boundaries(self):
        assert funding_cap(10) == 1000
        assert funding_cap(250) == 10000

    def test_interpolation_is_floored(self):
        # 1000 + 9000 * 1 / 240 = 1037.5
        assert funding_cap(11) == 1037
        assert funding_cap(130) == 5500
        assert funding_cap(240) == 9625

    def test_monotonic_over_scale(self):
        caps = [funding_cap(r) for r in range(10, 251)]
        assert caps == sorted(caps)

    def test_rejects_non_integer(self):
        with pytest.raises(InvalidReputation):
            funding_cap(True)
        with pytest.raises(InvalidReputation):
            funding_cap(12.5)

    def test_uses_overridden_constants(self):
        config = GrantConfig(MIN_CAP=500, MAX_CAP=20000)
        assert funding_cap(10, config) == 500
        assert funding_cap(250, config) == 20000


class TestBondAmount:
    """bond_amount tests"""

    @pytest.mark.parametrize("price,expected", [
        (0.5, 600),
        (1.0, 300),
        (1.5, 200),
        (0.7, 429),
        (Decimal("0.3"), 1000),
        (3, 100),
    ])
    def test_bond_sizes(self, price, expected):
        assert bond_amount(price) == expected

    @pytest.mark.parametrize("price", [0, -1, 0.0, float("nan"), float("inf"), "1.0", None, True])
    def test_invalid_prices(self, price):
        with pytest.raises(InvalidPrice):
            bond_amount(price)

    def test_custom_bond_target(self):
        assert bond_amount(0.5, GrantConfig(BOND_USD=Decimal("500"))) == 1000


class TestAdaptiveQuorum:
    """adaptive_quorum tests"""

    def test_base_at_zero_supply(self):
        assert adaptive_quorum(0) == Decimal("0.05")

    def test_linear_region(self):
        assert adaptive_quorum(5_000_000) == Decimal("0.10")

    def test_ceiling_reached_exactly(self):
        assert adaptive_quorum(10_000_000) == Decimal("0.15")

    def test_flat_above_ceiling(self):
        assert adaptive_quorum(10**12) == Decimal("0.15")

    def test_monotonic_and_bounded(self):
        values = [adaptive_quorum(s) for s in range(0, 20_000_001, 500_000)]
        assert values == sorted(values)
        assert all(Decimal("0.05") <= v <= Decimal("0.15") for v in values)

    @pytest.mark.parametrize("supply", [-1, float("nan"), float("-inf"), "100"])
    def test_invalid_supply(self, supply):
        with pytest.raises(InvalidSupply):
            adaptive_quorum(supply)

    def test_supply_at_ceiling(self):
        assert supply_at_ceiling() == Decimal("10000000")
        assert supply_at_ceiling(GrantConfig(AQ_SENSITIVITY=Decimal("0"))) is None
