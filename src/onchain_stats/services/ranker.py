from __future__ import annotations

from typing import List, Mapping, Tuple

from onchain_stats.core.models import RankedEntry


def _rank_key(item: Tuple[str, int]) -> Tuple[int, str]:
    # value desc, then address asc
    address, value = item
    return (-value, address)


def rank(values: Mapping[str, int], limit: int = 0) -> List[RankedEntry]:
    ordered = sorted(values.items(), key=_rank_key)
    if limit > 0:
        ordered = ordered[:limit]
    return [RankedEntry(address=a, value=v) for a, v in ordered]
