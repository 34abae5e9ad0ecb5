from __future__ import annotations

from typing import Dict

from onchain_stats.ports.ledger_port import LedgerPort

# what nodes return for an address without deployed code
EMPTY_CODE = ("", "0x", "0x0")


class AddressClassifier:
    """
    Tells contracts from externally-owned accounts by their deployed code.

    One instance per request: positive and negative answers are memoized,
    failed lookups are not, so a later call retries the node.
    """

    def __init__(self, ledger: LedgerPort) -> None:
        self.ledger = ledger
        self._cache: Dict[str, bool] = {}

    def is_contract(self, address: str) -> bool:
        if address in self._cache:
            return self._cache[address]

        code = self.ledger.get_code(address, "latest")
        is_c = (code or "") not in EMPTY_CODE
        self._cache[address] = is_c
        return is_c
