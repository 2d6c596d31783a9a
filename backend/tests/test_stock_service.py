"""
Stock ledger tests: reconciliation invariant, negative-stock policy, reads,
movement queries and the verify/rebuild repair tools.
"""

import uuid

import pytest

from stockledger.extensions import db
from stockledger.models import Stock, StockMovement
from stockledger.models.inventory import (
    MOVEMENT_INVENTORY_ADJUSTMENT,
    MOVEMENT_PURCHASE,
    MOVEMENT_SALE,
    MOVEMENT_TRANSFER_OUT,
)
from stockledger.services import stock_service
from stockledger.validation import MAX_QUANTITY, InsufficientStockError, NotFoundError, ValidationError


def _adjust(product, location, delta, movement_type=MOVEMENT_INVENTORY_ADJUSTMENT, **kwargs):
    result = stock_service.adjust_stock(
        product_id=product.id,
        location_id=location.id,
        delta=delta,
        movement_type=movement_type,
        **kwargs,
    )
    db.session.commit()
    return result


def test_adjust_creates_row_and_movement(db_session, product, warehouse, user):
    result = _adjust(product, warehouse, 12, MOVEMENT_PURCHASE, user_id=user.id, note="opening")

    assert result.stock.quantity == 12
    assert result.movement.quantity_change == 12
    assert result.movement.movement_type == MOVEMENT_PURCHASE
    assert result.movement.user_id == user.id
    assert result.movement.note == "opening"

    rows = db_session.query(Stock).filter_by(product_id=product.id, location_id=warehouse.id).all()
    assert len(rows) == 1


def test_ledger_matches_movement_sum_after_sequence(db_session, product, warehouse):
    for delta in (10, -3, 7, -14, 5):
        _adjust(product, warehouse, delta)

    stock = stock_service.get_stock(product.id, warehouse.id)
    assert stock["quantity"] == 5
    assert stock_service.movement_total(product.id, warehouse.id) == 5
    assert stock_service.verify_ledger() == []


def test_inventory_adjustment_may_go_negative(db_session, product, warehouse):
    _adjust(product, warehouse, -4)
    assert stock_service.get_stock(product.id, warehouse.id)["quantity"] == -4


def test_sale_beyond_on_hand_is_rejected(db_session, product, warehouse):
    _adjust(product, warehouse, 5, MOVEMENT_PURCHASE)

    with pytest.raises(InsufficientStockError) as exc_info:
        stock_service.adjust_stock(
            product_id=product.id,
            location_id=warehouse.id,
            delta=-10,
            movement_type=MOVEMENT_SALE,
        )
    db_session.rollback()

    assert exc_info.value.on_hand == 5
    assert exc_info.value.requested == 10
    assert stock_service.get_stock(product.id, warehouse.id)["quantity"] == 5
    assert db_session.query(StockMovement).filter_by(movement_type=MOVEMENT_SALE).count() == 0


def test_rejection_on_missing_row_creates_nothing(db_session, product, warehouse):
    with pytest.raises(InsufficientStockError):
        stock_service.adjust_stock(
            product_id=product.id,
            location_id=warehouse.id,
            delta=-1,
            movement_type=MOVEMENT_TRANSFER_OUT,
        )
    db_session.rollback()

    assert db_session.query(Stock).count() == 0
    assert db_session.query(StockMovement).count() == 0


def test_negative_policy_is_configurable(app, db_session, product, warehouse, monkeypatch):
    monkeypatch.setitem(app.config, "STOCK_REJECT_NEGATIVE_TYPES", "TRANSFER_OUT")

    _adjust(product, warehouse, -2, MOVEMENT_SALE)
    assert stock_service.get_stock(product.id, warehouse.id)["quantity"] == -2


@pytest.mark.parametrize(
    "movement_type, delta",
    [
        (MOVEMENT_PURCHASE, -1),
        (MOVEMENT_SALE, 1),
        (MOVEMENT_TRANSFER_OUT, 3),
    ],
)
def test_sign_must_match_movement_type(db_session, product, warehouse, movement_type, delta):
    with pytest.raises(ValidationError):
        stock_service.adjust_stock(
            product_id=product.id, location_id=warehouse.id, delta=delta, movement_type=movement_type
        )


def test_zero_delta_and_unknown_type_rejected(db_session, product, warehouse):
    with pytest.raises(ValidationError):
        stock_service.adjust_stock(product_id=product.id, location_id=warehouse.id, delta=0)
    with pytest.raises(ValidationError):
        stock_service.adjust_stock(
            product_id=product.id, location_id=warehouse.id, delta=1, movement_type="SHRINKAGE"
        )


def test_missing_references_raise_not_found(db_session, product, warehouse):
    with pytest.raises(NotFoundError):
        stock_service.adjust_stock(product_id=uuid.uuid4(), location_id=warehouse.id, delta=1)
    with pytest.raises(NotFoundError):
        stock_service.adjust_stock(product_id=product.id, location_id=uuid.uuid4(), delta=1)
    with pytest.raises(NotFoundError):
        stock_service.adjust_stock(
            product_id=product.id, location_id=warehouse.id, delta=1, user_id=uuid.uuid4()
        )
    assert db_session.query(StockMovement).count() == 0


def test_get_stock_for_unseen_pair_reads_zero_without_creating(db_session, product, warehouse):
    first = stock_service.get_stock(product.id, warehouse.id)
    second = stock_service.get_stock(product.id, warehouse.id)

    assert first == second
    assert first["quantity"] == 0
    assert first["last_updated"] is None
    assert db_session.query(Stock).count() == 0


def test_get_stock_rereads_existing_row_unchanged(db_session, product, warehouse):
    _adjust(product, warehouse, 7, MOVEMENT_PURCHASE)
    movements = db_session.query(StockMovement).count()

    first = stock_service.get_stock(product.id, warehouse.id)
    db_session.commit()
    second = stock_service.get_stock(product.id, warehouse.id)

    assert first == second
    assert second["quantity"] == 7
    assert second["last_updated"] is not None
    assert db_session.query(Stock).one().version_id == 1
    assert db_session.query(StockMovement).count() == movements


def test_resulting_quantity_must_stay_in_range(db_session, product, warehouse):
    _adjust(product, warehouse, MAX_QUANTITY, MOVEMENT_PURCHASE)

    with pytest.raises(ValidationError):
        stock_service.adjust_stock(
            product_id=product.id, location_id=warehouse.id, delta=1, movement_type=MOVEMENT_PURCHASE
        )
    with pytest.raises(ValidationError):
        stock_service.adjust_stock(product_id=product.id, location_id=warehouse.id, delta=-(10 ** 20))
    db_session.rollback()

    assert stock_service.get_stock(product.id, warehouse.id)["quantity"] == MAX_QUANTITY
    assert stock_service.verify_ledger() == []


def test_total_for_product_sums_locations(db_session, product, warehouse, bar):
    _adjust(product, warehouse, 10, MOVEMENT_PURCHASE)
    _adjust(product, bar, 4, MOVEMENT_PURCHASE)

    assert stock_service.total_for_product(product.id) == 14

    _adjust(product, bar, -1)
    assert stock_service.total_for_product(product.id) == 13


def test_list_low_stock_is_strictly_below_threshold(db_session, product, other_product, warehouse):
    _adjust(product, warehouse, 5, MOVEMENT_PURCHASE)
    _adjust(other_product, warehouse, 2, MOVEMENT_PURCHASE)

    low = stock_service.list_low_stock(5)
    assert [s.product_id for s in low] == [other_product.id]


def test_list_movements_filters(db_session, product, other_product, warehouse, user):
    ref = uuid.uuid4()
    _adjust(product, warehouse, 5, MOVEMENT_PURCHASE, reference_id=ref, user_id=user.id)
    _adjust(product, warehouse, -1, MOVEMENT_SALE)
    _adjust(other_product, warehouse, 3, MOVEMENT_PURCHASE)

    by_product = stock_service.list_movements(product_id=product.id)
    assert len(by_product) == 2

    purchases = stock_service.list_movements(movement_type=MOVEMENT_PURCHASE)
    assert {m.product_id for m in purchases} == {product.id, other_product.id}

    by_ref = stock_service.list_movements(reference_id=ref)
    assert len(by_ref) == 1
    assert by_ref[0].user_id == user.id

    with pytest.raises(ValidationError):
        stock_service.list_movements(movement_type="BOGUS")


def test_verify_and_rebuild_repair_drift(db_session, product, warehouse):
    _adjust(product, warehouse, 8, MOVEMENT_PURCHASE)

    # Simulate drift written outside the ledger service
    stock = db_session.query(Stock).one()
    stock.quantity = 3
    db_session.commit()

    mismatches = stock_service.verify_ledger()
    assert len(mismatches) == 1
    assert mismatches[0].stock_quantity == 3
    assert mismatches[0].movement_total == 8

    fixed = stock_service.rebuild_stock_from_movements()
    db_session.commit()

    assert fixed == 1
    assert stock_service.get_stock(product.id, warehouse.id)["quantity"] == 8
    assert stock_service.verify_ledger() == []
