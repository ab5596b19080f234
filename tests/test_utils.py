import json
import os
import unittest
from unittest import mock

from statsor import config
from statsor.utils import parse_input_date


class TestUtils(unittest.TestCase):
    def test_parse_input_date(self):
        """Test parsing user-entered dates to ISO"""
        self.assertEqual(parse_input_date("2025-10-23"), "2025-10-23")
        self.assertEqual(parse_input_date("23 Oct 2025"), "2025-10-23")
        self.assertEqual(parse_input_date("23 October 2025"), "2025-10-23")
        self.assertEqual(parse_input_date("23/10/2025"), "2025-10-23")
        self.assertEqual(parse_input_date("Oct 23, 2025"), "2025-10-23")
        self.assertEqual(parse_input_date("  2025/10/23 "), "2025-10-23")

    def test_parse_input_date_keeps_timestamps(self):
        self.assertEqual(parse_input_date("2025-10-23T15:30:00"), "2025-10-23T15:30:00")
        self.assertIsNone(parse_input_date("2025-10-23Tnoon"))

    def test_parse_input_date_invalid(self):
        for value in ("", "   ", "invalid date", "2025-13-40", None, 20251023):
            with self.subTest(value=value):
                self.assertIsNone(parse_input_date(value))


class TestPlanLimits(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {'STATSOR_PLAN_LIMITS': ''}):
            limits = config.load_plan_limits()
        self.assertEqual(limits, config.PLAN_LIMITS)
        # A copy, never the module table itself
        limits['free']['teams'] = 99
        self.assertEqual(config.PLAN_LIMITS['free']['teams'], 2)

    def test_default_tier_is_most_restrictive(self):
        free = config.PLAN_LIMITS['free']
        for tier, limits in config.PLAN_LIMITS.items():
            for kind, limit in limits.items():
                if limit != config.UNLIMITED:
                    self.assertGreaterEqual(limit, free[kind], f"{tier}.{kind}")

    def test_override_from_environment(self):
        table = {'basic': {'teams': 1}, 'club': {'teams': -1, 'players': 50}}
        with mock.patch.dict(os.environ, {'STATSOR_PLAN_LIMITS': json.dumps(table)}):
            self.assertEqual(config.load_plan_limits(), table)

    def test_invalid_overrides(self):
        bad_values = [
            "not json",
            "[]",
            "{}",
            json.dumps({'free': 3}),
            json.dumps({'free': {'teams': -2}}),
            json.dumps({'free': {'teams': "2"}}),
            json.dumps({'free': {'teams': True}}),
        ]
        for raw in bad_values:
            with self.subTest(raw=raw):
                with self.assertRaises(RuntimeError):
                    config.load_plan_limits(raw)


if __name__ == '__main__':
    unittest.main()
