import unittest
from collections import Counter

from onchain_stats.adapters.ledger.static_ledger_adapter import StaticLedgerAdapter
from onchain_stats.core.dto import Block, Transaction
from onchain_stats.core.errors import UpstreamError
from onchain_stats.services.address_classifier import AddressClassifier
from onchain_stats.services.interaction_extractor import InteractionExtractor, extract_contract_interactions
from onchain_stats.services.wallet_extractor import WalletExtractor, extract_wallets

CODE = "0x6080604052"


class _CountingLedger(StaticLedgerAdapter):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.code_calls = Counter()

    def get_code(self, address, block_tag="latest"):
        self.code_calls[address] += 1
        return super().get_code(address, block_tag)


class AddressClassifierTests(unittest.TestCase):
    def test_empty_code_sentinels_are_eoas(self) -> None:
        chain = StaticLedgerAdapter(code={"0xa": "0x", "0xb": "0x0", "0xc": "", "0xd": CODE})
        clf = AddressClassifier(chain)

        self.assertFalse(clf.is_contract("0xa"))
        self.assertFalse(clf.is_contract("0xb"))
        self.assertFalse(clf.is_contract("0xc"))
        self.assertTrue(clf.is_contract("0xd"))

    def test_results_memoized_per_instance(self) -> None:
        chain = _CountingLedger(code={"0xd": CODE})
        clf = AddressClassifier(chain)

        clf.is_contract("0xd")
        clf.is_contract("0xd")
        AddressClassifier(chain).is_contract("0xd")

        self.assertEqual(chain.code_calls["0xd"], 2)

    def test_failure_propagates(self) -> None:
        clf = AddressClassifier(StaticLedgerAdapter(failing_code={"0xd"}))
        with self.assertRaises(UpstreamError):
            clf.is_contract("0xd")


class InteractionExtractorTests(unittest.TestCase):
    def _blocks(self):
        return [
            Block(number=1, transactions=(
                Transaction(tx_hash="0x1", from_address="0xe1", to_address="0xc1"),
                Transaction(tx_hash="0x2", from_address="0xe1", to_address="0xe2"),
            )),
            Block(number=2, transactions=(
                Transaction(tx_hash="0x3", from_address="0xe2", to_address=None, contract_address="0xc3"),
                Transaction(tx_hash="0x4", from_address="0xe2", to_address="0xc1"),
            )),
        ]

    def _chain(self, traces=None, **overrides):
        default_traces = {"0x1": ["0xc2", "0xc2"], "0x2": ["0xc1"], "0x3": ["0xc1"], "0x4": []}
        kwargs = dict(
            code={"0xc1": CODE, "0xc2": CODE, "0xc3": CODE},
            traces={**default_traces, **(traces or {})},
        )
        kwargs.update(overrides)
        return StaticLedgerAdapter(**kwargs)

    def test_counts(self) -> None:
        counts = extract_contract_interactions(self._chain(), self._blocks())
        self.assertEqual(counts, {"0xc1": 4, "0xc2": 2, "0xc3": 1})

    def test_union_of_blocks_is_keywise_sum(self) -> None:
        chain = self._chain()
        first, second = self._blocks()

        whole = Counter(extract_contract_interactions(chain, [first, second]))
        parts = Counter(extract_contract_interactions(chain, [first]))
        parts.update(extract_contract_interactions(chain, [second]))

        self.assertEqual(whole, parts)

    def test_creation_counts_once_regardless_of_trace(self) -> None:
        blocks = [Block(number=1, transactions=(
            Transaction(tx_hash="0x9", from_address="0xe1", to_address=None, contract_address="0xnew"),
        ))]
        chain = StaticLedgerAdapter(traces={"0x9": ["0xother", "0xother"]})

        counts = extract_contract_interactions(chain, blocks)

        self.assertEqual(counts["0xnew"], 1)

    def test_creation_without_address_counts_nothing_directly(self) -> None:
        blocks = [Block(number=1, transactions=(
            Transaction(tx_hash="0x9", from_address="0xe1", to_address=None),
        ))]
        self.assertEqual(extract_contract_interactions(StaticLedgerAdapter(), blocks), {})

    def test_eoa_target_still_counts_internal_calls(self) -> None:
        blocks = [Block(number=1, transactions=(
            Transaction(tx_hash="0x9", from_address="0xe1", to_address="0xe2"),
        ))]
        chain = StaticLedgerAdapter(traces={"0x9": ["0xc7"]})

        counts = extract_contract_interactions(chain, blocks)

        self.assertEqual(counts, {"0xc7": 1})

    def test_classification_failure_aborts(self) -> None:
        chain = self._chain(failing_code={"0xe2"})
        with self.assertRaises(UpstreamError):
            extract_contract_interactions(chain, self._blocks())

    def test_missing_call_list(self) -> None:
        chain = self._chain(traces={"0x1": None})
        with self.assertRaises(UpstreamError):
            extract_contract_interactions(chain, self._blocks())

        tolerant = InteractionExtractor(chain, AddressClassifier(chain), tolerate_missing_trace_calls=True)
        self.assertEqual(tolerant.extract(self._blocks()), {"0xc1": 4, "0xc3": 1})

    def test_missing_call_list_error_names_block(self) -> None:
        blocks = [Block(number=42, transactions=(
            Transaction(tx_hash="0x9", from_address="0xe1", to_address="0xe2", block_number=42),
        ))]
        chain = StaticLedgerAdapter(traces={"0x9": None})

        with self.assertRaisesRegex(UpstreamError, r"0x9 \(block 42\)"):
            extract_contract_interactions(chain, blocks)


class WalletExtractorTests(unittest.TestCase):
    def test_senders_always_receivers_only_if_eoa(self) -> None:
        blocks = [Block(number=1, transactions=(
            Transaction(tx_hash="0x1", from_address="0xe1", to_address="0xc1"),
            Transaction(tx_hash="0x2", from_address="0xe2", to_address="0xe3"),
            Transaction(tx_hash="0x3", from_address="0xe1", to_address=None, contract_address="0xc2"),
        ))]
        chain = StaticLedgerAdapter(code={"0xc1": CODE})

        wallets = extract_wallets(chain, blocks)

        self.assertEqual(wallets, {"0xe1", "0xe2", "0xe3"})

    def test_classification_failure_drops_only_that_receiver(self) -> None:
        blocks = [Block(number=1, transactions=(
            Transaction(tx_hash="0x1", from_address="0xe1", to_address="0xbad"),
            Transaction(tx_hash="0x2", from_address="0xe2", to_address="0xe3"),
        ))]
        chain = StaticLedgerAdapter(failing_code={"0xbad"})
        extractor = WalletExtractor(AddressClassifier(chain))

        wallets = extractor.extract(blocks)

        self.assertEqual(wallets, {"0xe1", "0xe2", "0xe3"})
        self.assertEqual(extractor.skipped, 1)

    def test_senders_never_classified(self) -> None:
        blocks = [Block(number=1, transactions=(
            Transaction(tx_hash="0x1", from_address="0xe1", to_address=None),
        ))]
        chain = _CountingLedger(failing_code={"0xe1"})

        self.assertEqual(extract_wallets(chain, blocks), {"0xe1"})
        self.assertEqual(sum(chain.code_calls.values()), 0)


if __name__ == "__main__":
    unittest.main()
