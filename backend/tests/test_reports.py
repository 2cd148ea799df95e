"""
Read-only report tests.
"""

from decimal import Decimal

import pytest

from kardex.errors import ValidationError
from kardex.requests import SaleLineRequest, SaleRequest
from kardex.services import reporting_service
from kardex.services.sales_service import record_sale
from kardex.services.stock_policy import StockPolicy
from kardex.time_utils import utcnow


def _sell(seller, customer, product, quantity, unit_price_cents, total_cents):
    return record_sale(SaleRequest(
        customer_id=customer.id,
        seller_id=seller.id,
        lines=(SaleLineRequest(product_id=product.id, quantity=quantity, unit_price_cents=unit_price_cents),),
        total_cents=total_cents,
    ))


class TestCriticalStock:

    def test_lists_low_main_stock_lowest_first(self, db_session, make_product):
        make_product(name="Plenty", stock=50)
        three = make_product(name="Three", stock=3, cost_price_cents=200)
        zero = make_product(name="Zero", stock=0, cost_price_cents=100)

        report = reporting_service.critical_stock()

        assert [row["id"] for row in report] == [zero.id, three.id]
        assert report[0]["missing_units"] == 5
        assert report[0]["replenishment_cost_cents"] == 500
        assert report[1]["missing_units"] == 2
        assert report[1]["replenishment_cost_cents"] == 400

    def test_threshold_comes_from_policy(self, db_session, make_product):
        make_product(name="Three", stock=3)
        eight = make_product(name="Eight", stock=8)
        make_product(name="Twelve", stock=12)

        report = reporting_service.critical_stock(StockPolicy(low_stock_threshold=10))

        assert [row["stock"] for row in report] == [3, 8]
        assert report[1]["id"] == eight.id
        assert report[1]["missing_units"] == 2


class TestProfitToday:

    def test_revenue_cost_and_profit(self, db_session, seller, customer, make_product):
        product = make_product(stock=10, cost_price_cents=600)
        _sell(seller, customer, product, 3, 1000, 3000)
        _sell(seller, customer, product, 1, 1000, 1000)

        report = reporting_service.profit_today()

        assert report["total_sales"] == 2
        assert report["revenue_cents"] == 4000
        assert report["cost_of_goods_cents"] == 2400
        assert report["net_profit_cents"] == 1600

    def test_empty_day(self, db_session):
        report = reporting_service.profit_today()
        assert report["total_sales"] == 0
        assert report["net_profit_cents"] == 0


class TestCommissions:

    def test_sales_by_seller(self, db_session, seller, manager, customer, make_product):
        product = make_product(stock=10)
        _sell(seller, customer, product, 1, 1000, 1005)
        _sell(seller, customer, product, 1, 1000, 1000)
        today = utcnow().date().isoformat()

        report = reporting_service.sales_by_seller(today, today, "5")

        by_user = {row["user_id"]: row for row in report["sellers"]}
        assert by_user[seller.id]["sales"] == 2
        assert by_user[seller.id]["gross_total_cents"] == 2005
        # 100.25 rounds half-up to 100
        assert by_user[seller.id]["commission_cents"] == 100
        assert by_user[manager.id]["sales"] == 0
        assert by_user[manager.id]["commission_cents"] == 0

    def test_commission_rounds_half_up(self):
        assert reporting_service.commission_cents(1010, Decimal("5")) == 51
        assert reporting_service.commission_cents(1009, Decimal("5")) == 50

    @pytest.mark.parametrize(
        "start,end,percentage",
        [
            ("not-a-date", "2026-01-01", "5"),
            ("2026-01-02", "2026-01-01", "5"),
            ("2026-01-01", "2026-01-01", "abc"),
            ("2026-01-01", "2026-01-01", "150"),
        ],
    )
    def test_invalid_arguments(self, db_session, start, end, percentage):
        with pytest.raises(ValidationError):
            reporting_service.sales_by_seller(start, end, percentage)


class TestTopProducts:

    def test_ranked_by_revenue(self, db_session, seller, customer, make_product):
        cheap = make_product(name="Cheap", stock=100)
        pricey = make_product(name="Pricey", stock=100)
        _sell(seller, customer, cheap, 10, 100, 1000)
        _sell(seller, customer, pricey, 1, 5000, 5000)

        top = reporting_service.top_products(limit=5)

        assert [row["product_id"] for row in top] == [pricey.id, cheap.id]
        assert top[1]["units_sold"] == 10
        assert top[0]["revenue_cents"] == 5000
