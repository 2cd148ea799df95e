import unittest

from kardex.errors import InsufficientStockError
from kardex.services.stock_policy import StockPolicy


class StockPolicyTests(unittest.TestCase):
    def test_withdrawal_within_stock_passes(self):
        StockPolicy().check_withdrawal(product_id=1, product_name="Hammer", available=5, requested=5)

    def test_withdrawal_above_stock_raises(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            StockPolicy().check_withdrawal(product_id=1, product_name="Hammer", available=5, requested=10)
        err = ctx.exception
        self.assertEqual(err.available, 5)
        self.assertEqual(err.requested, 10)
        self.assertEqual(err.status_code, 409)
        self.assertIn('"Hammer"', err.message)
        self.assertIn("Available: 5, requested: 10", err.message)

    def test_negative_stock_allowed(self):
        policy = StockPolicy(allow_negative_stock=True)
        policy.check_withdrawal(product_id=1, product_name="Hammer", available=0, requested=3)
        self.assertTrue(policy.is_override(available=0, requested=3))
        self.assertFalse(policy.is_override(available=3, requested=3))

    def test_override_only_counts_when_allowed(self):
        self.assertFalse(StockPolicy().is_override(available=0, requested=3))

    def test_low_stock(self):
        policy = StockPolicy(low_stock_threshold=5)
        self.assertTrue(policy.is_low(5))
        self.assertTrue(policy.is_low(-2))
        self.assertFalse(policy.is_low(6))
        self.assertEqual(policy.missing_units(2), 3)
        self.assertEqual(policy.missing_units(-2), 7)
        self.assertEqual(policy.missing_units(9), 0)

    def test_default_threshold_outside_app(self):
        self.assertEqual(StockPolicy.from_config().low_stock_threshold, 5)


if __name__ == "__main__":
    unittest.main()
