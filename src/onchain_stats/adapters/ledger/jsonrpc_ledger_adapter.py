import itertools
import logging
import re
import string
import threading
from typing import Any, Dict, List, Optional

import requests

from onchain_stats.config.settings import (
    RPC_URL,
    RPC_TIMEOUT_SEC,
    RPC_MAX_RETRIES,
    RPC_REQUESTS_PER_SEC,
    TRACE_TRACER,
)

from onchain_stats.adapters.ledger.rate_limiter import SimpleRateLimiter, backoff_sleep
from onchain_stats.core.dto import Block, TraceCall, Transaction, TransactionTrace
from onchain_stats.core.errors import DecodeError, RateLimitError, UpstreamError
from onchain_stats.ports.ledger_port import BlockTag, LedgerPort, to_block_tag

logger = logging.getLogger(__name__)

# JSON-RPC error codes nodes use for throttling
_RATE_LIMIT_CODES = {429, -32005}
_HEX_DIGITS = set(string.hexdigits)
_RATE_LIMIT_RE = re.compile(r"\brate[\s_-]?limit|\btoo many requests\b", re.IGNORECASE)


def parse_quantity(value: Any) -> int:
    """Decode a JSON-RPC hex quantity ("0x1a") into an int."""
    if (
        not isinstance(value, str)
        or not value.startswith("0x")
        or len(value) < 3
        or not set(value[2:]) <= _HEX_DIGITS
    ):
        raise DecodeError(f"Invalid hex quantity: {value!r}")
    return int(value[2:], 16)


class JsonRpcLedgerAdapter(LedgerPort):
    """
    Reads a node over JSON-RPC.

    Safe to share between balance workers: each thread gets its own
    requests.Session, the rate limiter is shared.
    """

    def __init__(
        self,
        rpc_url: str = RPC_URL,
        timeout_sec: float = RPC_TIMEOUT_SEC,
        max_retries: int = RPC_MAX_RETRIES,
        requests_per_sec: float = RPC_REQUESTS_PER_SEC,
        tracer: str = TRACE_TRACER,
    ) -> None:
        self._rpc_url = rpc_url
        self._timeout = timeout_sec
        self._max_retries = max(1, int(max_retries))
        self._tracer = tracer

        self._rl = SimpleRateLimiter(requests_per_sec)
        self._local = threading.local()
        self._ids = itertools.count(1)

    # ---------- internal ----------

    @property
    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    def _call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        last_err: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                self._rl.wait()
                resp = self._session.post(
                    self._rpc_url,
                    json=payload,
                    timeout=self._timeout,
                )
                if resp.status_code == 429:
                    raise RateLimitError(f"{method}: HTTP 429")
                resp.raise_for_status()
                data = resp.json()

                if not isinstance(data, dict):
                    raise DecodeError(f"{method}: response is not a JSON object")

                err = data.get("error")
                if err:
                    code = err.get("code") if isinstance(err, dict) else None
                    message = err.get("message", "") if isinstance(err, dict) else str(err)
                    if code in _RATE_LIMIT_CODES or _RATE_LIMIT_RE.search(str(message)):
                        raise RateLimitError(f"{method}: {message}")
                    # node rejected the call; retrying won't change that
                    raise UpstreamError(f"{method} failed: [{code}] {message}")

                return data.get("result")

            except (RateLimitError, requests.RequestException, ValueError) as e:
                last_err = e
                logger.debug("%s attempt %d failed: %s", method, attempt + 1, e)
                if attempt + 1 < self._max_retries:
                    backoff_sleep(attempt)

        if isinstance(last_err, UpstreamError):
            raise last_err
        raise UpstreamError(f"{method} failed after {self._max_retries} attempt(s): {last_err}") from last_err

    @staticmethod
    def _decode_transaction(raw: Any, block_number: int) -> Transaction:
        if not isinstance(raw, dict):
            raise DecodeError(f"Block {block_number}: expected full transaction objects, got {raw!r}")

        tx_hash = raw.get("hash")
        from_address = raw.get("from")
        if not isinstance(tx_hash, str) or not isinstance(from_address, str):
            raise DecodeError(f"Block {block_number}: transaction missing hash/from: {raw!r}")

        return Transaction(
            tx_hash=tx_hash,
            from_address=from_address,
            to_address=raw.get("to") or None,
            contract_address=raw.get("contractAddress") or None,
            block_number=block_number,
        )

    @classmethod
    def _decode_block(cls, raw: Any, block_tag: str) -> Block:
        if raw is None:
            raise UpstreamError(f"Block {block_tag} not found")
        if not isinstance(raw, dict):
            raise DecodeError(f"Invalid block result for {block_tag}: {raw!r}")

        number = parse_quantity(raw.get("number"))
        txs = raw.get("transactions")
        if not isinstance(txs, list):
            raise DecodeError(f"Block {number} has no transaction list")

        return Block(
            number=number,
            transactions=tuple(cls._decode_transaction(t, number) for t in txs),
            block_hash=raw.get("hash"),
        )

    @staticmethod
    def _decode_trace(raw: Any, tx_hash: str) -> TransactionTrace:
        if not isinstance(raw, dict):
            raise DecodeError(f"Invalid trace result for {tx_hash}: {raw!r}")

        raw_calls = raw.get("calls")
        if raw_calls is None:
            return TransactionTrace(tx_hash=tx_hash, calls=None)
        if not isinstance(raw_calls, list):
            raise DecodeError(f"Trace for {tx_hash} has a malformed call list")

        calls: List[TraceCall] = []
        for c in raw_calls:
            to = c.get("to") if isinstance(c, dict) else None
            if not isinstance(to, str) or not to:
                raise DecodeError(f"Trace for {tx_hash} has a call without a target: {c!r}")
            calls.append(TraceCall(to_address=to, from_address=c.get("from"), call_type=c.get("type")))

        return TransactionTrace(tx_hash=tx_hash, calls=tuple(calls))

    @staticmethod
    def _expect_str(method: str, result: Any) -> str:
        if not isinstance(result, str):
            raise DecodeError(f"{method}: expected a hex string, got {result!r}")
        return result

    # ---------- port methods ----------

    def get_block_number(self) -> int:
        return parse_quantity(self._call("eth_blockNumber", []))

    def get_block(self, block_ref: BlockTag) -> Block:
        tag = to_block_tag(block_ref)
        raw = self._call("eth_getBlockByNumber", [tag, True])
        return self._decode_block(raw, tag)

    def get_code(self, address: str, block_tag: BlockTag = "latest") -> str:
        result = self._call("eth_getCode", [address, to_block_tag(block_tag)])
        return self._expect_str("eth_getCode", result)

    def get_balance(self, address: str, block_tag: BlockTag = "latest") -> str:
        result = self._call("eth_getBalance", [address, to_block_tag(block_tag)])
        return self._expect_str("eth_getBalance", result)

    def get_accounts(self) -> List[str]:
        result = self._call("eth_accounts", [])
        if not isinstance(result, list):
            raise DecodeError(f"eth_accounts: expected a list, got {result!r}")
        return [str(a) for a in result]

    def get_transaction_trace(self, tx_hash: str) -> TransactionTrace:
        opts: Dict[str, Any] = {"tracer": self._tracer}
        raw = self._call("debug_traceTransaction", [tx_hash, opts])
        return self._decode_trace(raw, tx_hash)
