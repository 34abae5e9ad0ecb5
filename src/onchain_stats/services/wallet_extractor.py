from __future__ import annotations

import logging
from typing import Iterable, Set

from onchain_stats.core.dto import Block
from onchain_stats.ports.ledger_port import LedgerPort
from onchain_stats.services.address_classifier import AddressClassifier

logger = logging.getLogger(__name__)


class WalletExtractor:
    """
    Collects the externally-owned accounts seen in a set of blocks.

    Senders are always kept. Receivers are kept only when they hold no
    code; a receiver whose code lookup fails is left out.
    """

    def __init__(self, classifier: AddressClassifier) -> None:
        self.classifier = classifier
        self.skipped = 0

    def extract(self, blocks: Iterable[Block]) -> Set[str]:
        wallets: Set[str] = set()
        for block in blocks:
            for tx in block.transactions:
                if tx.from_address:
                    wallets.add(tx.from_address)

                to = tx.to_address
                if not to:
                    continue

                try:
                    is_contract = self.classifier.is_contract(to)
                except Exception as e:
                    self.skipped += 1
                    logger.debug("skipping %s: classification failed: %s", to, e)
                    continue

                if not is_contract:
                    wallets.add(to)
        return wallets


def extract_wallets(ledger: LedgerPort, blocks: Iterable[Block]) -> Set[str]:
    return WalletExtractor(AddressClassifier(ledger)).extract(blocks)
