from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from onchain_stats.core.dto import Block, TransactionTrace
from onchain_stats.core.models import AggregationConfig, RankedEntry
from onchain_stats.ports.ledger_port import BlockTag, LedgerPort, to_block_tag
from onchain_stats.services.address_classifier import AddressClassifier
from onchain_stats.services.balance_aggregator import BalanceAggregator, decode_balance
from onchain_stats.services.interaction_extractor import InteractionExtractor
from onchain_stats.services.ranker import rank
from onchain_stats.services.wallet_extractor import WalletExtractor

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, Dict[str, Any]], None]


class StatsService:
    """
    Block-range aggregations over a ledger node.

    - Contracts: interaction counts (direct calls, creations, traced internal calls)
    - Wallets: EOAs of a reference block ranked by their balance at that block
    """

    def __init__(self, ledger: LedgerPort, cfg: Optional[AggregationConfig] = None) -> None:
        self.ledger = ledger
        self.cfg = cfg or AggregationConfig()

    def get_contract_interactions(
        self,
        start_block: int,
        end_block: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[RankedEntry]:
        if start_block < 0 or end_block < 0:
            raise ValueError("Block numbers must be >= 0")
        if start_block > end_block:
            raise ValueError(f"start_block {start_block} is after end_block {end_block}")

        emit = on_progress or _noop
        emit("start", {"kind": "contracts", "start": start_block, "end": end_block})

        blocks = self.ledger.get_blocks_in_range(start_block, end_block)
        emit("fetched_blocks", {"blocks": len(blocks), "txs": _tx_count(blocks)})

        extractor = InteractionExtractor(
            self.ledger,
            AddressClassifier(self.ledger),
            tolerate_missing_trace_calls=self.cfg.tolerate_missing_trace_calls,
        )
        counts = extractor.extract(blocks)
        logger.info("blocks %d-%d: %d contracts", start_block, end_block, len(counts))

        ranked = rank(counts, limit=self.cfg.top)
        emit("done", {"entries": len(ranked)})
        return ranked

    def get_richest_wallets(
        self,
        reference_block: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[RankedEntry]:
        if reference_block < 0:
            raise ValueError("Block numbers must be >= 0")

        emit = on_progress or _noop
        emit("start", {"kind": "richest", "block": reference_block})

        # balances at the reference block already reflect all prior history
        blocks = self.ledger.get_blocks_in_range(reference_block, reference_block)
        emit("fetched_blocks", {"blocks": len(blocks), "txs": _tx_count(blocks)})

        wallet_extractor = WalletExtractor(AddressClassifier(self.ledger))
        wallets = wallet_extractor.extract(blocks)
        emit("wallets", {"wallets": len(wallets), "skipped": wallet_extractor.skipped})

        aggregator = BalanceAggregator(
            self.ledger,
            max_workers=self.cfg.balance_workers,
            deadline_sec=self.cfg.balance_deadline_sec,
        )
        balances = aggregator.fetch_balances(
            wallets,
            to_block_tag(reference_block),
            on_done=lambda ok, failed: emit("balances", {"fetched": ok, "failed": failed}),
        )
        logger.info("block %d: %d of %d wallet balances fetched", reference_block, len(balances), len(wallets))

        ranked = rank(balances, limit=self.cfg.top)
        emit("done", {"entries": len(ranked)})
        return ranked

    # -------------------------
    # Node passthroughs
    # -------------------------

    def get_latest_block(self) -> int:
        return self.ledger.get_block_number()

    def get_block(self, block_ref: BlockTag) -> Block:
        return self.ledger.get_block(block_ref)

    def get_balance(self, address: str, block_ref: BlockTag = "latest") -> int:
        return decode_balance(self.ledger.get_balance(address, block_ref))

    def get_transaction_trace(self, tx_hash: str) -> TransactionTrace:
        return self.ledger.get_transaction_trace(tx_hash)

    def get_accounts(self) -> List[str]:
        return self.ledger.get_accounts()


def _noop(event: str, data: Dict[str, Any]) -> None:
    return None


def _tx_count(blocks: List[Block]) -> int:
    return sum(len(b.transactions) for b in blocks)
