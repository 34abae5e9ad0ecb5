from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Transaction:
    tx_hash: str
    from_address: str
    to_address: Optional[str] = None          # None = contract creation
    contract_address: Optional[str] = None    # only set on creations
    block_number: Optional[int] = None

    @property
    def is_creation(self) -> bool:
        return not self.to_address


@dataclass(frozen=True)
class Block:
    number: int
    transactions: Tuple[Transaction, ...] = ()
    block_hash: Optional[str] = None


@dataclass(frozen=True)
class TraceCall:
    to_address: str
    from_address: Optional[str] = None
    call_type: Optional[str] = None


@dataclass(frozen=True)
class TransactionTrace:
    tx_hash: str
    # None when the node returned no call list at all (distinct from empty)
    calls: Optional[Tuple[TraceCall, ...]] = None

    @property
    def has_call_list(self) -> bool:
        return self.calls is not None
