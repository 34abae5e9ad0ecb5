from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable

from onchain_stats.core.dto import Block, Transaction
from onchain_stats.core.errors import UpstreamError
from onchain_stats.ports.ledger_port import LedgerPort
from onchain_stats.services.address_classifier import AddressClassifier

logger = logging.getLogger(__name__)


class InteractionExtractor:
    """
    Counts interactions per contract address over a set of blocks.

    Each transaction adds:
    - +1 to the deployed address when it is a contract creation
    - +1 to `to` when `to` holds code
    - +1 per internal call target listed in its execution trace

    Any ledger failure aborts the whole extraction.
    """

    def __init__(
        self,
        ledger: LedgerPort,
        classifier: AddressClassifier,
        tolerate_missing_trace_calls: bool = False,
    ) -> None:
        self.ledger = ledger
        self.classifier = classifier
        self.tolerate_missing_trace_calls = tolerate_missing_trace_calls

    def extract(self, blocks: Iterable[Block]) -> Dict[str, int]:
        counts: Counter = Counter()
        for block in blocks:
            for tx in block.transactions:
                self._count_direct(tx, counts)
                self._count_internal(tx, counts)
        return dict(counts)

    def _count_direct(self, tx: Transaction, counts: Counter) -> None:
        if tx.is_creation:
            if tx.contract_address:
                counts[tx.contract_address] += 1
            return

        if self.classifier.is_contract(tx.to_address):
            counts[tx.to_address] += 1

    def _count_internal(self, tx: Transaction, counts: Counter) -> None:
        trace = self.ledger.get_transaction_trace(tx.tx_hash)

        if not trace.has_call_list:
            if not self.tolerate_missing_trace_calls:
                where = f" (block {tx.block_number})" if tx.block_number is not None else ""
                raise UpstreamError(f"Trace for {tx.tx_hash}{where} has no call list")
            logger.debug("trace for %s has no call list, counting zero internal calls", tx.tx_hash)
            return

        for call in trace.calls:
            counts[call.to_address] += 1


def extract_contract_interactions(
    ledger: LedgerPort,
    blocks: Iterable[Block],
    tolerate_missing_trace_calls: bool = False,
) -> Dict[str, int]:
    extractor = InteractionExtractor(
        ledger,
        AddressClassifier(ledger),
        tolerate_missing_trace_calls=tolerate_missing_trace_calls,
    )
    return extractor.extract(blocks)
