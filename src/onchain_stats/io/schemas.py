from __future__ import annotations

from typing import Any, Dict, List, Sequence

from onchain_stats.core.dto import Block, TransactionTrace
from onchain_stats.core.models import RankedEntry


def ranked_to_list(entries: Sequence[RankedEntry], value_key: str) -> List[Dict[str, Any]]:
    # values as strings: balances overflow JSON-safe integer range
    return [
        {
            "rank": i,
            "address": e.address,
            value_key: str(e.value),
        }
        for i, e in enumerate(entries, start=1)
    ]


def block_to_dict(b: Block) -> Dict[str, Any]:
    return {
        "number": b.number,
        "hash": b.block_hash,
        "transactions": [
            {
                "hash": t.tx_hash,
                "from": t.from_address,
                "to": t.to_address,
                "contractAddress": t.contract_address,
            }
            for t in b.transactions
        ],
    }


def trace_to_dict(t: TransactionTrace) -> Dict[str, Any]:
    return {
        "tx_hash": t.tx_hash,
        "calls": None if t.calls is None else [
            {
                "from": c.from_address,
                "to": c.to_address,
                "type": c.call_type,
            }
            for c in t.calls
        ],
    }
