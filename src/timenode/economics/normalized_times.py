"""Gas price tier selection by time left until a deadline."""
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from ..models import TemporalUnit
from .gas_oracle import GasPriceEstimation

TIMESTAMP_SCALE = 10


class NormalizedTimes:
    """
    Picks the cheapest gas price tier that still fits before a deadline.

    Tier wait thresholds are normalized into the unit of the deadline: divided
    by the block time for block-based windows, scaled by TIMESTAMP_SCALE for
    timestamp-based windows.
    """

    def __init__(self, gas_stats: GasPriceEstimation, temporal_unit: TemporalUnit):
        self.gas_stats = gas_stats
        self.temporal_unit = temporal_unit

    @property
    def is_block(self) -> bool:
        return self.temporal_unit == TemporalUnit.BLOCK

    def pick_gas_price(self, time_left: Union[int, Decimal]) -> Optional[int]:
        """
        Price of the most patient tier whose normalized threshold is below ``time_left``.

        Returns None when even the fastest tier does not fit.
        """
        time_left = Decimal(time_left)
        fitting = [
            (threshold, price) for threshold, price in self.tiers()
            if time_left > threshold
        ]
        if not fitting:
            return None

        # max() keeps the first of equal thresholds, i.e. the slower tier
        return max(fitting, key=lambda tier: tier[0])[1]

    def tiers(self) -> List[Tuple[Decimal, int]]:
        """(normalized threshold, price) from safeLow to fastest."""
        stats = self.gas_stats
        return [
            (self.normalize(stats.safe_low_wait), stats.safe_low),
            (self.normalize(stats.avg_wait), stats.average),
            (self.normalize(stats.fast_wait), stats.fast),
            (self.normalize(stats.fastest_wait), stats.fastest),
        ]

    def normalize(self, value: Decimal) -> Decimal:
        if self.is_block:
            return Decimal(value) / self.gas_stats.block_time
        return Decimal(value) * TIMESTAMP_SCALE
