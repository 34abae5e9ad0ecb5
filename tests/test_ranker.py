import unittest

from onchain_stats.core.models import RankedEntry
from onchain_stats.services.ranker import rank


class RankerTests(unittest.TestCase):
    def test_empty_and_single(self) -> None:
        self.assertEqual(rank({}), [])
        self.assertEqual(rank({"0xa": 3}), [RankedEntry("0xa", 3)])

    def test_descending_by_value(self) -> None:
        ranked = rank({"0xa": 1, "0xb": 10**30, "0xc": 7})
        values = [e.value for e in ranked]
        self.assertEqual(values, sorted(values, reverse=True))
        self.assertEqual(ranked[0].address, "0xb")

    def test_ties_broken_by_address(self) -> None:
        ranked = rank({"0xc": 2, "0xa": 2, "0xb": 5, "0xd": 2})
        self.assertEqual([e.address for e in ranked], ["0xb", "0xa", "0xc", "0xd"])

    def test_tie_order_independent_of_insertion(self) -> None:
        forward = {"0x%02x" % i: i % 3 for i in range(30)}
        backward = dict(reversed(list(forward.items())))
        self.assertEqual(rank(forward), rank(backward))

    def test_limit(self) -> None:
        ranked = rank({"0xa": 1, "0xb": 2, "0xc": 3}, limit=2)
        self.assertEqual([e.address for e in ranked], ["0xc", "0xb"])
        self.assertEqual(len(rank({"0xa": 1}, limit=0)), 1)


if __name__ == "__main__":
    unittest.main()
