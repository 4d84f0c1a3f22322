"""
VShield utility Test Suite
"""

import unittest

from vshield.util import MAX_TTL_MS, iso_from_ms, normalize_address, parse_instant_ms, parse_ttl_ms

DEFAULT = 7_200_000


class TestParseTtl(unittest.TestCase):

    def test_positive_integers_accepted(self):
        self.assertEqual(parse_ttl_ms("600000", DEFAULT), 600_000)
        self.assertEqual(parse_ttl_ms(" 600000 ", DEFAULT), 600_000)
        self.assertEqual(parse_ttl_ms(600_000, DEFAULT), 600_000)
        self.assertEqual(parse_ttl_ms(600_000.0, DEFAULT), 600_000)
        self.assertEqual(parse_ttl_ms("1", DEFAULT), 1)
        self.assertEqual(parse_ttl_ms(MAX_TTL_MS, DEFAULT), MAX_TTL_MS)

    def test_values_above_ceiling_fall_back(self):
        for raw in (MAX_TTL_MS + 1, "100000000000000000", "1e17", 1e17, "1e400"):
            self.assertEqual(parse_ttl_ms(raw, DEFAULT), DEFAULT, raw)

    def test_invalid_values_fall_back(self):
        for raw in (None, "", "abc", "0", "-1", "1.5", "1_000", 0, -10, 0.5, float("nan"), float("inf"), True, [], {}):
            self.assertEqual(parse_ttl_ms(raw, DEFAULT), DEFAULT, raw)


class TestParseInstant(unittest.TestCase):

    def test_numeric_values(self):
        self.assertEqual(parse_instant_ms(1_700_000_000_000), 1_700_000_000_000)
        self.assertEqual(parse_instant_ms("1700000000000"), 1_700_000_000_000)
        self.assertEqual(parse_instant_ms(b"1700000000000"), 1_700_000_000_000)

    def test_non_numeric_values(self):
        for raw in (None, "not-a-number", "", float("nan"), object()):
            self.assertIsNone(parse_instant_ms(raw))


class TestNormalizeAddress(unittest.TestCase):

    def test_ip_literals(self):
        self.assertEqual(normalize_address("203.0.113.10"), "203.0.113.10")
        self.assertEqual(normalize_address("2001:DB8:0::1"), "2001:db8::1")
        self.assertEqual(normalize_address("::ffff:203.0.113.10"), "203.0.113.10")

    def test_other_strings_are_stripped(self):
        self.assertEqual(normalize_address("  unix:socket "), "unix:socket")

    def test_missing(self):
        self.assertEqual(normalize_address(None), "")
        self.assertEqual(normalize_address("   "), "")


class TestIso(unittest.TestCase):

    def test_utc_with_milliseconds(self):
        self.assertEqual(iso_from_ms(1_700_000_010_000), "2023-11-14T22:13:30.000Z")
        self.assertEqual(iso_from_ms(1_700_000_000_123), "2023-11-14T22:13:20.123Z")


if __name__ == "__main__":
    unittest.main()
