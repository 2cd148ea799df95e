"""
Adjustment tests.

Verifies:
- ENTRADA / SALIDA lines in any warehouse, with rows created on demand
- Insufficient stock on SALIDA rolls back every line
- Line validation and direction inference
"""

import pytest

from kardex.errors import InsufficientStockError, NotFoundError, ValidationError
from kardex.models import (
    DAMAGED_WAREHOUSE_ID,
    MAIN_WAREHOUSE_ID,
    Adjustment,
    AdjustmentLine,
    Movement,
    StockEntry,
)
from kardex.models.ledger import KIND_ADJUSTMENT_IN, KIND_ADJUSTMENT_OUT
from kardex.requests import AdjustmentLineRequest, AdjustmentRequest
from kardex.services import stock_ledger
from kardex.services.adjustment_service import record_adjustment
from kardex.validation import parse_adjustment_request


class TestRecordAdjustment:

    def test_entrada_creates_missing_row(self, db_session, manager, make_product):
        product = make_product()
        db_session.query(StockEntry).filter_by(product_id=product.id, warehouse_id=DAMAGED_WAREHOUSE_ID).delete()
        db_session.commit()

        processed = record_adjustment(AdjustmentRequest(
            lines=(AdjustmentLineRequest(product.id, 4, "ENTRADA", DAMAGED_WAREHOUSE_ID),),
            reason="Broken on delivery",
            user_id=manager.id,
        ))

        assert processed == 1
        assert stock_ledger.get_quantity(db_session, product.id, DAMAGED_WAREHOUSE_ID) == 4
        movement = db_session.query(Movement).filter_by(
            product_id=product.id, warehouse_id=DAMAGED_WAREHOUSE_ID
        ).one()
        assert movement.kind == KIND_ADJUSTMENT_IN
        assert movement.quantity == 4
        assert movement.reference_kind == "adjustment"
        assert movement.reference_id is None
        assert movement.comment == f"Adjustment: Broken on delivery. User: {manager.id}"

        line = db_session.query(AdjustmentLine).one()
        assert line.movement_id == movement.id
        assert line.direction == "ENTRADA"

    def test_reclassification_between_warehouses(self, db_session, make_product):
        product = make_product(stock=10)

        record_adjustment(AdjustmentRequest(lines=(
            AdjustmentLineRequest(product.id, 3, "SALIDA", MAIN_WAREHOUSE_ID),
            AdjustmentLineRequest(product.id, 3, "ENTRADA", DAMAGED_WAREHOUSE_ID),
        )))

        assert stock_ledger.get_quantity(db_session, product.id, MAIN_WAREHOUSE_ID) == 7
        assert stock_ledger.get_quantity(db_session, product.id, DAMAGED_WAREHOUSE_ID) == 3
        out = db_session.query(Movement).filter_by(product_id=product.id, kind=KIND_ADJUSTMENT_OUT).one()
        assert out.quantity == -3
        assert out.comment == "Adjustment: Manual adjustment. User: system"

    def test_salida_beyond_stock_rolls_back_everything(self, db_session, make_product):
        first = make_product(stock=10)
        second = make_product(stock=1)

        with pytest.raises(InsufficientStockError):
            record_adjustment(AdjustmentRequest(lines=(
                AdjustmentLineRequest(first.id, 5, "ENTRADA"),
                AdjustmentLineRequest(second.id, 2, "SALIDA"),
            )))

        assert stock_ledger.get_quantity(db_session, first.id, MAIN_WAREHOUSE_ID) == 10
        assert stock_ledger.get_quantity(db_session, second.id, MAIN_WAREHOUSE_ID) == 1
        assert db_session.query(Adjustment).count() == 0

    def test_salida_with_negative_stock_allowed(self, db_session, make_product):
        product = make_product(stock=1)

        record_adjustment(AdjustmentRequest(
            lines=(AdjustmentLineRequest(product.id, 3, "SALIDA"),),
            reason="Shrinkage",
            allow_negative_stock=True,
        ))

        assert stock_ledger.get_quantity(db_session, product.id, MAIN_WAREHOUSE_ID) == -2
        out = db_session.query(Movement).filter_by(product_id=product.id, kind=KIND_ADJUSTMENT_OUT).one()
        assert out.comment == "Adjustment: Shrinkage. User: system (negative stock allowed)"

    def test_zero_quantity_line_records_empty_movement(self, db_session, make_product):
        product = make_product(stock=2)

        processed = record_adjustment(AdjustmentRequest(lines=(AdjustmentLineRequest(product.id, 0, "ENTRADA"),)))

        assert processed == 1
        assert stock_ledger.get_quantity(db_session, product.id, MAIN_WAREHOUSE_ID) == 2
        movement = db_session.query(Movement).filter_by(product_id=product.id, kind=KIND_ADJUSTMENT_IN).filter(
            Movement.comment != "Initial stock"
        ).one()
        assert movement.quantity == 0

    def test_unknown_user(self, db_session, make_product):
        product = make_product()
        with pytest.raises(NotFoundError):
            record_adjustment(AdjustmentRequest(
                lines=(AdjustmentLineRequest(product.id, 1, "ENTRADA"),),
                user_id=9999,
            ))

    def test_unknown_warehouse(self, db_session, make_product):
        product = make_product()
        with pytest.raises(NotFoundError):
            record_adjustment(AdjustmentRequest(lines=(AdjustmentLineRequest(product.id, 1, "ENTRADA", 99),)))
        assert db_session.query(StockEntry).filter_by(warehouse_id=99).count() == 0

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            record_adjustment(AdjustmentRequest(lines=(AdjustmentLineRequest(424242, 1, "ENTRADA"),)))

    def test_no_lines(self, db_session):
        with pytest.raises(ValidationError, match="No adjustment lines"):
            record_adjustment(AdjustmentRequest(lines=()))

    def test_unknown_direction(self, db_session, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            record_adjustment(AdjustmentRequest(lines=(AdjustmentLineRequest(product.id, 1, "SIDEWAYS"),)))


class TestParseAdjustmentRequest:

    def test_direction_from_sign(self):
        request = parse_adjustment_request({"lines": [
            {"product_id": 1, "quantity": -4},
            {"product_id": 2, "quantity": 6},
        ]})
        assert [(l.direction, l.quantity) for l in request.lines] == [("SALIDA", 4), ("ENTRADA", 6)]
        assert request.reason == "Manual adjustment"
        assert request.user_id is None

    def test_kind_is_case_insensitive(self):
        request = parse_adjustment_request({"lines": [
            {"product_id": 1, "quantity": 4, "kind": "salida", "warehouse_id": "3"},
        ]})
        line = request.lines[0]
        assert (line.direction, line.quantity, line.warehouse_id) == ("SALIDA", 4, 3)

    def test_zero_quantity_is_entrada(self):
        request = parse_adjustment_request({"lines": [{"product_id": 1, "quantity": 0}]})
        line = request.lines[0]
        assert (line.direction, line.quantity) == ("ENTRADA", 0)

    def test_kind_overrides_sign(self):
        request = parse_adjustment_request({"lines": [{"product_id": 1, "quantity": -4, "kind": "ENTRADA"}]})
        assert request.lines[0].signed_quantity == 4

    @pytest.mark.parametrize(
        "line",
        [
            {"quantity": 1},
            {"product_id": 1},
            {"product_id": 1, "quantity": "abc"},
            {"product_id": 1, "quantity": 2, "kind": "SIDEWAYS"},
        ],
    )
    def test_invalid_lines(self, line):
        with pytest.raises(ValidationError):
            parse_adjustment_request({"lines": [line]})

    def test_empty_lines(self):
        with pytest.raises(ValidationError, match="No adjustment lines"):
            parse_adjustment_request({"lines": []})
