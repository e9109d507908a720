"""Unit tests for gas price tier selection."""
from decimal import Decimal

import pytest

from timenode.economics.gas_oracle import GasPriceEstimation
from timenode.economics.normalized_times import NormalizedTimes
from timenode.models import TemporalUnit

GWEI = 10**9


def estimation(waits, block_time=Decimal(1)) -> GasPriceEstimation:
    safe_low_wait, avg_wait, fast_wait, fastest_wait = (Decimal(str(w)) for w in waits)
    return GasPriceEstimation(
        safe_low=1 * GWEI,
        average=2 * GWEI,
        fast=3 * GWEI,
        fastest=4 * GWEI,
        safe_low_wait=safe_low_wait,
        avg_wait=avg_wait,
        fast_wait=fast_wait,
        fastest_wait=fastest_wait,
        block_time=block_time,
    )


class TestPickGasPrice:
    """Test NormalizedTimes.pick_gas_price."""

    def test_normalized_thresholds_example(self):
        times = NormalizedTimes(estimation([1, 2, 3, 4]), TemporalUnit.BLOCK)

        assert times.pick_gas_price(Decimal("2.5")) == 2 * GWEI
        assert times.pick_gas_price(Decimal("0.5")) is None

    def test_threshold_must_be_strictly_exceeded(self):
        times = NormalizedTimes(estimation([1, 2, 3, 4]), TemporalUnit.BLOCK)

        assert times.pick_gas_price(2) == 1 * GWEI
        assert times.pick_gas_price(1) is None

    def test_block_unit_divides_by_block_time(self):
        times = NormalizedTimes(estimation([2, 4, 6, 8], block_time=Decimal(2)), TemporalUnit.BLOCK)

        assert times.pick_gas_price(Decimal("2.5")) == 2 * GWEI

    def test_timestamp_unit_scales_by_ten(self):
        times = NormalizedTimes(estimation(["0.1", "0.2", "0.3", "0.4"]), TemporalUnit.TIMESTAMP)

        assert times.pick_gas_price(Decimal("2.5")) == 2 * GWEI
        assert times.pick_gas_price(Decimal("0.5")) is None

    def test_picks_most_patient_fitting_tier(self):
        # Slower tiers carry longer waits
        times = NormalizedTimes(estimation([30, 10, 3, 1]), TemporalUnit.BLOCK)

        assert times.pick_gas_price(60) == 1 * GWEI
        assert times.pick_gas_price(15) == 2 * GWEI
        assert times.pick_gas_price(5) == 3 * GWEI
        assert times.pick_gas_price(2) == 4 * GWEI
        assert times.pick_gas_price(1) is None

    def test_equal_thresholds_prefer_slower_tier(self):
        times = NormalizedTimes(GasPriceEstimation.flat(20 * GWEI), TemporalUnit.TIMESTAMP)

        assert times.pick_gas_price(1) == 20 * GWEI
        assert times.pick_gas_price(0) is None

    @pytest.mark.parametrize("unit", [TemporalUnit.BLOCK, TemporalUnit.TIMESTAMP])
    def test_tiers_are_ordered_safe_low_to_fastest(self, unit):
        tiers = NormalizedTimes(estimation([4, 3, 2, 1]), unit).tiers()

        assert [price for _, price in tiers] == [1 * GWEI, 2 * GWEI, 3 * GWEI, 4 * GWEI]
