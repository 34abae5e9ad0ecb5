from onchain_stats.core.dto import Block, TraceCall, TransactionTrace
from onchain_stats.core.errors import UpstreamError
from onchain_stats.ports.ledger_port import LedgerPort
from typing import Dict, Iterable, List, Optional, Sequence, Set


class StaticLedgerAdapter(LedgerPort):
    def __init__(self,
                 blocks: Optional[Iterable[Block]] = None,
                 code: Optional[Dict[str, str]] = None,
                 balances: Optional[Dict[str, str]] = None,
                 traces: Optional[Dict[str, Optional[Sequence[str]]]] = None,
                 accounts: Optional[List[str]] = None,
                 failing_code: Optional[Set[str]] = None,
                 failing_balances: Optional[Set[str]] = None,
                 failing_traces: Optional[Set[str]] = None,
                 ):
        self._blocks = {b.number: b for b in (blocks or [])}
        self._code = dict(code or {})
        self._balances = dict(balances or {})
        # tx hash -> list of internal call targets; None = no call list
        self._traces = dict(traces or {})
        self._accounts = list(accounts or [])
        self._failing_code = set(failing_code or ())
        self._failing_balances = set(failing_balances or ())
        self._failing_traces = set(failing_traces or ())

    def get_block_number(self):
        return max(self._blocks) if self._blocks else 0

    def get_block(self, block_ref):
        if block_ref == "latest":
            number = self.get_block_number()
        elif isinstance(block_ref, str):
            number = int(block_ref, 16)
        else:
            number = int(block_ref)
        # unknown numbers come back empty, as a quiet dev chain would return
        return self._blocks.get(number, Block(number=number))

    def get_code(self, address, block_tag="latest"):
        if address in self._failing_code:
            raise UpstreamError(f"eth_getCode failed for {address}")
        return self._code.get(address, "0x")

    def get_balance(self, address, block_tag="latest"):
        if address in self._failing_balances:
            raise UpstreamError(f"eth_getBalance failed for {address}")
        return self._balances.get(address, "0x0")

    def get_accounts(self):
        return list(self._accounts)

    def get_transaction_trace(self, tx_hash):
        if tx_hash in self._failing_traces:
            raise UpstreamError(f"debug_traceTransaction failed for {tx_hash}")
        if tx_hash not in self._traces:
            return TransactionTrace(tx_hash=tx_hash, calls=())
        targets = self._traces[tx_hash]
        if targets is None:
            return TransactionTrace(tx_hash=tx_hash, calls=None)
        return TransactionTrace(tx_hash=tx_hash, calls=tuple(TraceCall(to_address=t) for t in targets))
