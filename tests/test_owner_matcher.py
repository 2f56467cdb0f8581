import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / 'src'))

from make_ready.core.owner_matcher import OwnerMatcher


class TestOwnerMatcher(unittest.TestCase):

    def setUp(self):
        self.matcher = OwnerMatcher()

    def test_matches_known_variants(self):
        self.assertTrue(self.matcher.matches("Charter"))
        self.assertTrue(self.matcher.matches("SPECTRUM"))
        self.assertTrue(self.matcher.matches("Charter Communications LLC"))
        self.assertTrue(self.matcher.matches({"id": "Charter/Spectrum", "industry": "COMMUNICATION"}))

    def test_rejects_other_owners(self):
        self.assertFalse(self.matcher.matches("AT&T"))
        self.assertFalse(self.matcher.matches({"id": "CPS Energy"}))
        self.assertFalse(self.matcher.matches(""))
        self.assertFalse(self.matcher.matches(None))

    def test_callable(self):
        self.assertTrue(self.matcher("charter"))

    def test_custom_aliases(self):
        matcher = OwnerMatcher(["Zayo"])
        self.assertTrue(matcher.matches("ZAYO GROUP"))
        self.assertFalse(matcher.matches("Charter"))

    def test_owner_name(self):
        self.assertEqual(OwnerMatcher.owner_name({"id": "CPS Energy", "industry": "UTILITY"}), "CPS Energy")
        self.assertEqual(OwnerMatcher.owner_name({"industry": "UTILITY"}), "UTILITY")
        self.assertEqual(OwnerMatcher.owner_name("  Charter "), "Charter")
        self.assertEqual(OwnerMatcher.owner_name(None), "")

    def test_contains_utility(self):
        self.assertTrue(OwnerMatcher.contains_utility("CPS Energy", "CPS"))
        self.assertTrue(OwnerMatcher.contains_utility({"id": "cps energy"}, "CPS"))
        self.assertFalse(OwnerMatcher.contains_utility("AEP", "CPS"))
        self.assertFalse(OwnerMatcher.contains_utility("CPS Energy", ""))


if __name__ == '__main__':
    unittest.main()
