from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Union

from onchain_stats.core.dto import Block, TransactionTrace

BlockTag = Union[int, str]     # block number, hex quantity or "latest"


def to_block_tag(block_ref: BlockTag) -> str:
    if isinstance(block_ref, bool):
        raise ValueError(f"Invalid block reference: {block_ref!r}")
    if isinstance(block_ref, int):
        if block_ref < 0:
            raise ValueError(f"Block number must be >= 0, got {block_ref}")
        return hex(block_ref)
    return block_ref


class LedgerPort(ABC):
    """
    Abstract Class for reading blocks, code, balances and traces from a node.
    """

    # --- Blocks ---

    @abstractmethod
    def get_block_number(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_block(self, block_ref: BlockTag) -> Block:
        raise NotImplementedError

    def get_blocks_in_range(self, start: int, end: int) -> List[Block]:
        # inclusive on both ends
        return [self.get_block(n) for n in range(start, end + 1)]

    # --- Accounts ---

    @abstractmethod
    def get_code(self, address: str, block_tag: BlockTag = "latest") -> str:
        raise NotImplementedError

    @abstractmethod
    def get_balance(self, address: str, block_tag: BlockTag = "latest") -> str:
        raise NotImplementedError

    @abstractmethod
    def get_accounts(self) -> List[str]:
        raise NotImplementedError

    # --- Traces ---

    @abstractmethod
    def get_transaction_trace(self, tx_hash: str) -> TransactionTrace:
        raise NotImplementedError
