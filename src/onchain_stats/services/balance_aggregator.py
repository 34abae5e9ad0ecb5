from __future__ import annotations

import logging
import string
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, Optional

from onchain_stats.core.errors import DecodeError
from onchain_stats.ports.ledger_port import BlockTag, LedgerPort

logger = logging.getLogger(__name__)

MAX_IN_FLIGHT = 8

_HEX_DIGITS = set(string.hexdigits)


def decode_balance(raw: str) -> int:
    """
    Decode a hex balance ("0x1bc16d674ec80000") into wei.

    The `0x` prefix is optional; anything that isn't one or more hex
    digits after it is rejected.
    """
    if not isinstance(raw, str):
        raise DecodeError(f"Balance is not a string: {raw!r}")
    digits = raw[2:] if raw[:2] in ("0x", "0X") else raw
    if not digits or not set(digits) <= _HEX_DIGITS:
        raise DecodeError(f"Balance is not a hex quantity: {raw!r}")
    return int(digits, 16)


class BalanceAggregator:
    """
    Fetches wallet balances at one block with at most `max_workers`
    requests in flight.

    Wallets whose fetch or decode fails are left out of the result; the
    caller only sees a smaller mapping. With `deadline_sec` set, wallets
    still pending when it runs out are left out the same way.
    """

    def __init__(
        self,
        ledger: LedgerPort,
        max_workers: int = MAX_IN_FLIGHT,
        deadline_sec: Optional[float] = None,
    ) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        self.ledger = ledger
        self.max_workers = min(int(max_workers), MAX_IN_FLIGHT)
        self.deadline_sec = deadline_sec
        self.failed = 0

    def _fetch_one(self, address: str, block_tag: BlockTag) -> int:
        return decode_balance(self.ledger.get_balance(address, block_tag))

    def fetch_balances(
        self,
        wallets: Iterable[str],
        block_tag: BlockTag,
        on_done: Optional[Callable[[int, int], None]] = None,
    ) -> Dict[str, int]:
        # sorted for stable submission order; results don't depend on it
        unique = sorted(set(wallets))
        balances: Dict[str, int] = {}
        self.failed = 0
        if not unique:
            return balances

        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="balance")
        try:
            futures: Dict[Future, str] = {
                pool.submit(self._fetch_one, addr, block_tag): addr for addr in unique
            }
            done, pending = wait(futures, timeout=self.deadline_sec)

            for fut in done:
                addr = futures[fut]
                try:
                    balances[addr] = fut.result()
                except Exception as e:
                    self.failed += 1
                    logger.debug("dropping %s: balance fetch failed: %s", addr, e)

            for fut in pending:
                fut.cancel()
                self.failed += 1
                logger.debug("dropping %s: balance fetch missed the %.1fs deadline", futures[fut], self.deadline_sec)
        finally:
            # don't block on stragglers once the deadline has passed
            pool.shutdown(wait=self.deadline_sec is None, cancel_futures=True)

        if on_done is not None:
            on_done(len(balances), self.failed)
        return balances


def fetch_balances(
    ledger: LedgerPort,
    wallets: Iterable[str],
    block_tag: BlockTag,
    max_workers: int = MAX_IN_FLIGHT,
) -> Dict[str, int]:
    return BalanceAggregator(ledger, max_workers=max_workers).fetch_balances(wallets, block_tag)
