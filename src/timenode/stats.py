"""
Claim and execution outcome statistics.

The node records one StatRecord per claim or execution attempt. Storage is
pluggable through StatsStore; InMemoryStatsStore keeps records for the
lifetime of the process.
"""
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class StatAction(str, Enum):
    CLAIM = "claim"
    EXECUTE = "execute"


@dataclass
class StatRecord:
    """Outcome of a single claim or execute attempt."""
    from_address: str
    tx_address: str
    action: StatAction
    success: bool
    cost: int = 0
    bounty: int = 0
    timestamp: float = field(default_factory=time.time)


class StatsStore(ABC):
    """Sink for claim/execute outcomes."""

    @abstractmethod
    def record_claim(self, from_address: str, tx_address: str, cost: int, success: bool) -> None:
        ...

    @abstractmethod
    def record_execution(
        self,
        from_address: str,
        tx_address: str,
        cost: int,
        bounty: int,
        success: bool
    ) -> None:
        ...

    @abstractmethod
    def clear_all(self) -> None:
        ...


class InMemoryStatsStore(StatsStore):
    """StatsStore keeping every record in a list."""

    def __init__(self):
        self.records: List[StatRecord] = []

    def record_claim(self, from_address: str, tx_address: str, cost: int, success: bool) -> None:
        self._append(StatRecord(from_address.lower(), tx_address.lower(), StatAction.CLAIM, success, cost))

    def record_execution(
        self,
        from_address: str,
        tx_address: str,
        cost: int,
        bounty: int,
        success: bool
    ) -> None:
        self._append(
            StatRecord(from_address.lower(), tx_address.lower(), StatAction.EXECUTE, success, cost, bounty)
        )

    def clear_all(self) -> None:
        self.records.clear()
        logger.info("Stats cleared")

    def get_records(
        self,
        from_address: Optional[str] = None,
        action: Optional[StatAction] = None
    ) -> List[StatRecord]:
        return [
            record for record in self.records
            if (from_address is None or record.from_address == from_address.lower())
            and (action is None or record.action == action)
        ]

    def get_stats(self, from_address: Optional[str] = None) -> Dict[str, Any]:
        """
        Aggregate counters, optionally for a single account.

        Returns:
            Dict with claim/execute success and failure counts, total cost and
            total bounty earned by successful executions
        """
        records = self.get_records(from_address)
        claims = [r for r in records if r.action == StatAction.CLAIM]
        executions = [r for r in records if r.action == StatAction.EXECUTE]

        return {
            "claimed": sum(1 for r in claims if r.success),
            "failed_claims": sum(1 for r in claims if not r.success),
            "executed": sum(1 for r in executions if r.success),
            "failed_executions": sum(1 for r in executions if not r.success),
            "total_cost": sum(r.cost for r in records),
            "total_bounty": sum(r.bounty for r in executions if r.success),
        }

    def _append(self, record: StatRecord) -> None:
        self.records.append(record)
        outcome = "✅" if record.success else "❌"
        logger.debug(f"{outcome} {record.action.value} {record.tx_address} from {record.from_address}")
