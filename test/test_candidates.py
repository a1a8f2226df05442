import unittest

from cloneprune.candidates import NameMatcher, PredicateMatcher, select


class TestSelect(unittest.TestCase):
    def test_first_base_wins(self):
        registry = {"foo": object(), "basefn": object(), "basefn2": object()}
        self.assertEqual(select(registry)[0], "basefn")

    def test_order_independent_of_registration(self):
        registry = {"basefn2": object(), "foo": object(), "basefn": object()}
        self.assertEqual(select(registry)[0], "basefn")

    def test_clone(self):
        registry = {"basefn": object(), "basefn_clone_1": object(), "other": object()}
        self.assertEqual(select(registry), ("basefn", "basefn_clone_1"))

    def test_no_base(self):
        self.assertEqual(select({"foo": object(), "bar": object()}), (None, None))

    def test_no_clone(self):
        self.assertEqual(select({"basefn": object()}), ("basefn", None))

    def test_clone_of_other_base_does_not_match(self):
        registry = {"base_a": object(), "base_b_clone": object()}
        self.assertEqual(select(registry), ("base_a", None))

    def test_custom_markers(self):
        registry = {"compute": object(), "orig_compute": object(), "orig_compute.constprop.0": object()}
        self.assertEqual(select(registry, NameMatcher("orig_", ".constprop")), ("orig_compute", "orig_compute.constprop.0"))

    def test_predicate_matcher(self):
        attributes = {"f": {"cloned_from": None}, "g": {"cloned_from": "f"}}
        matcher = PredicateMatcher(
            lambda name: attributes[name]["cloned_from"] is None,
            lambda name, base: attributes[name]["cloned_from"] == base,
        )
        self.assertEqual(select(attributes, matcher), ("f", "g"))
