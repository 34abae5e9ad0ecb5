from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from onchain_stats.config import settings



# Configuration model

@dataclass(frozen=True)
class AggregationConfig:
    """
    Run configuration for one aggregation request.
    """

    balance_workers: int = settings.BALANCE_FETCH_WORKERS
    balance_deadline_sec: Optional[float] = settings.BALANCE_FETCH_DEADLINE_SEC
    tolerate_missing_trace_calls: bool = settings.TRACE_MISSING_CALLS_AS_EMPTY
    top: int = 0    # 0 = unlimited



# Result models

@dataclass(frozen=True)
class RankedEntry:

    address: str
    value: int      # interaction count or balance in wei
