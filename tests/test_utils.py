import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / 'src'))

from make_ready.core.utils import Utils


class TestUtils(unittest.TestCase):

    def test_meters_to_feet(self):
        self.assertEqual(Utils.meters_to_feet(0), 0.0)
        self.assertAlmostEqual(Utils.meters_to_feet(1), 3.28084)
        self.assertAlmostEqual(Utils.meters_to_feet(-5), -16.4042)
        self.assertIsNone(Utils.meters_to_feet(None))
        self.assertIsNone(Utils.meters_to_feet("abc"))

    def test_parse_imperial_height(self):
        self.assertEqual(Utils.parse_imperial_height("10' 6\""), 10.5)
        self.assertEqual(Utils.parse_imperial_height("25'6\""), 25.5)
        self.assertEqual(Utils.parse_imperial_height("25'-6\""), 25.5)
        self.assertEqual(Utils.parse_imperial_height("25'"), 25.0)
        self.assertEqual(Utils.parse_imperial_height("18.25"), 18.25)
        self.assertEqual(Utils.parse_imperial_height(32), 32.0)

    def test_parse_imperial_height_invalid(self):
        self.assertIsNone(Utils.parse_imperial_height("garbage"))
        self.assertIsNone(Utils.parse_imperial_height(""))
        self.assertIsNone(Utils.parse_imperial_height(None))
        self.assertIsNone(Utils.parse_imperial_height(True))

    def test_to_float(self):
        self.assertEqual(Utils.to_float("3.5"), 3.5)
        self.assertIsNone(Utils.to_float(False))
        self.assertIsNone(Utils.to_float(float("nan")))
        self.assertIsNone(Utils.to_float(float("inf")))
        self.assertIsNone(Utils.to_float({}))

    def test_format_height_and_percent(self):
        self.assertEqual(Utils.format_height(21.99999), "22.0'")
        self.assertEqual(Utils.format_height(None), "N/A")
        self.assertEqual(Utils.format_percent(0.65), "65.0%")
        self.assertEqual(Utils.format_percent(None), "--")
        self.assertEqual(Utils.format_percent_value("72.31%"), "72.3%")
        self.assertEqual(Utils.format_percent_value(""), "--")

    def test_get_nested_value(self):
        tree = {"a": {"b": [{"c": 1}, {"c": None}]}}
        self.assertEqual(Utils.get_nested_value(tree, ["a", "b", 0, "c"]), 1)
        self.assertEqual(Utils.get_nested_value(tree, ["a", "b", 1, "c"], "x"), "x")
        self.assertEqual(Utils.get_nested_value(tree, ["a", "b", 5, "c"], "x"), "x")
        self.assertEqual(Utils.get_nested_value(tree, ["a", "missing"], 7), 7)
        self.assertIsNone(Utils.get_nested_value(None, ["a"]))
        self.assertEqual(Utils.get_nested_value("text", ["a"], "d"), "d")

    def test_normalize_pole_number(self):
        self.assertEqual(Utils.normalize_pole_number("PL-0001", ["PL"]), "1")
        self.assertEqual(Utils.normalize_pole_number("pl410620", ["PL"]), "410620")
        self.assertEqual(Utils.normalize_pole_number("1-PL410620", ["PL"]), "410620")
        self.assertEqual(Utils.normalize_pole_number("PLANT7", ["PL"]), "plant7")
        self.assertEqual(Utils.normalize_pole_number(" 12 A "), "12a")
        self.assertEqual(Utils.normalize_pole_number("000"), "0")
        self.assertEqual(Utils.normalize_pole_number(None), "")

    def test_haversine(self):
        self.assertEqual(Utils.haversine_m((29.0, -98.0), (29.0, -98.0)), 0.0)
        # One thousandth of a degree of latitude is about 111 m
        self.assertAlmostEqual(Utils.haversine_m((29.0, -98.0), (29.001, -98.0)), 111.19, delta=0.1)

    def test_valid_coordinates(self):
        self.assertTrue(Utils.valid_coordinates(29.4, -98.5))
        self.assertFalse(Utils.valid_coordinates(None, -98.5))
        self.assertFalse(Utils.valid_coordinates(95, 10))

    def test_extract_numeric_part(self):
        self.assertEqual(Utils.extract_numeric_part("PL12A"), (12, "A"))
        self.assertEqual(Utils.extract_numeric_part("none"), (float('inf'), ''))


if __name__ == '__main__':
    unittest.main()
