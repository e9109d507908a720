"""Economic strategy engine: gas pricing, profitability and claim/execute decisions."""
from .gas_oracle import ChainGasPriceOracle, GasPriceEstimation, GasPriceOracle, GasStationOracle
from .manager import EconomicAction, EconomicDecision, EconomicStrategyManager
from .normalized_times import NormalizedTimes
from .profitability import (
    CLAIMING_GAS_ESTIMATE,
    EXECUTION_GAS_OVERHEAD,
    ProfitabilityCalculator,
    estimated_execution_gas,
)

__all__ = [
    "ChainGasPriceOracle",
    "GasPriceEstimation",
    "GasPriceOracle",
    "GasStationOracle",
    "EconomicAction",
    "EconomicDecision",
    "EconomicStrategyManager",
    "NormalizedTimes",
    "ProfitabilityCalculator",
    "CLAIMING_GAS_ESTIMATE",
    "EXECUTION_GAS_OVERHEAD",
    "estimated_execution_gas",
]
