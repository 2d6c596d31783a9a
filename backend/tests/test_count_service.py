"""
Inventory reconciliation: session lifecycle, snapshots and close-time
adjustments.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from stockledger.extensions import db
from stockledger.models import InventorySession, StockMovement
from stockledger.models.counts import SESSION_STATUS_CLOSED, SESSION_STATUS_OPEN
from stockledger.models.inventory import MOVEMENT_INVENTORY_ADJUSTMENT, MOVEMENT_PURCHASE
from stockledger.services import count_service, products_service, stock_service
from stockledger.validation import DuplicateResourceError, NotFoundError, ValidationError


def _stock(product, location, quantity):
    stock_service.adjust_stock(
        product_id=product.id,
        location_id=location.id,
        delta=quantity,
        movement_type=MOVEMENT_PURCHASE,
    )
    db.session.commit()


def _open(location, user):
    session = count_service.open_session(location.id, user.id)
    db.session.commit()
    return session


def test_close_posts_only_counted_discrepancies(db_session, product, other_product, warehouse, user):
    _stock(product, warehouse, 100)
    _stock(other_product, warehouse, 50)

    session = _open(warehouse, user)
    counted_line = count_service.add_line(session.id, product.id)
    uncounted_line = count_service.add_line(session.id, other_product.id)
    db_session.commit()

    assert counted_line.expected_quantity == 100
    assert uncounted_line.expected_quantity == 50

    count_service.record_count(counted_line.id, 95)
    db_session.commit()

    count_service.close_session(session.id, user.id)
    db_session.commit()

    adjustments = db_session.query(StockMovement).filter_by(movement_type=MOVEMENT_INVENTORY_ADJUSTMENT).all()
    assert len(adjustments) == 1
    assert adjustments[0].quantity_change == -5
    assert adjustments[0].reference_id == counted_line.id
    assert adjustments[0].product_id == product.id

    assert stock_service.get_stock(product.id, warehouse.id)["quantity"] == 95
    assert stock_service.get_stock(other_product.id, warehouse.id)["quantity"] == 50

    db_session.refresh(session)
    db_session.refresh(counted_line)
    assert session.status == SESSION_STATUS_CLOSED
    assert session.end_time is not None
    assert session.closed_by_user_id == user.id
    assert counted_line.adjustment_movement_id == adjustments[0].id
    assert stock_service.verify_ledger() == []


def test_second_open_session_rejected(db_session, warehouse, user):
    _open(warehouse, user)

    with pytest.raises(DuplicateResourceError):
        count_service.open_session(warehouse.id, user.id)
    db_session.rollback()

    assert db_session.query(InventorySession).filter_by(location_id=warehouse.id).count() == 1


def test_open_sessions_allowed_at_different_locations(db_session, warehouse, bar, user):
    _open(warehouse, user)
    _open(bar, user)
    assert db_session.query(InventorySession).filter_by(status=SESSION_STATUS_OPEN).count() == 2


def test_partial_unique_index_backs_the_precheck(db_session, warehouse, user):
    db_session.add(InventorySession(location_id=warehouse.id, started_by_user_id=user.id, status=SESSION_STATUS_OPEN))
    db_session.flush()
    db_session.add(InventorySession(location_id=warehouse.id, started_by_user_id=user.id, status=SESSION_STATUS_OPEN))
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_reopen_after_close(db_session, warehouse, user):
    first = _open(warehouse, user)
    count_service.close_session(first.id, user.id)
    db_session.commit()

    second = _open(warehouse, user)
    assert second.id != first.id


def test_close_twice_rejected(db_session, warehouse, user):
    session = _open(warehouse, user)
    count_service.close_session(session.id)
    db_session.commit()

    with pytest.raises(ValidationError):
        count_service.close_session(session.id)


def test_lines_and_counts_require_open_session(db_session, product, other_product, warehouse, user):
    session = _open(warehouse, user)
    line = count_service.add_line(session.id, product.id)
    count_service.close_session(session.id)
    db_session.commit()

    with pytest.raises(ValidationError):
        count_service.add_line(session.id, other_product.id)
    with pytest.raises(ValidationError):
        count_service.record_count(line.id, 3)


def test_duplicate_product_on_session(db_session, product, warehouse, user):
    session = _open(warehouse, user)
    count_service.add_line(session.id, product.id)
    db_session.commit()

    with pytest.raises(DuplicateResourceError):
        count_service.add_line(session.id, product.id)


def test_record_count_validation_and_last_write_wins(db_session, product, warehouse, user):
    session = _open(warehouse, user)
    line = count_service.add_line(session.id, product.id)
    db_session.commit()

    with pytest.raises(ValidationError):
        count_service.record_count(line.id, -1)

    count_service.record_count(line.id, 7)
    count_service.record_count(line.id, 4, note="recount")
    db_session.commit()

    db_session.refresh(line)
    assert line.counted_quantity == 4
    assert line.note == "recount"
    assert line.counted_at is not None


def test_expected_snapshot_is_not_updated_by_later_movements(db_session, product, warehouse, user):
    _stock(product, warehouse, 10)
    session = _open(warehouse, user)
    line = count_service.add_line(session.id, product.id)
    db_session.commit()

    _stock(product, warehouse, 5)

    db_session.refresh(line)
    assert line.expected_quantity == 10


def test_surplus_on_unstocked_product(db_session, product, warehouse, user):
    session = _open(warehouse, user)
    line = count_service.add_line(session.id, product.id)
    count_service.record_count(line.id, 3)
    count_service.close_session(session.id)
    db_session.commit()

    assert stock_service.get_stock(product.id, warehouse.id)["quantity"] == 3


def test_summary_totals(db_session, product, other_product, warehouse, user):
    _stock(product, warehouse, 10)
    _stock(other_product, warehouse, 4)
    session = _open(warehouse, user)
    a = count_service.add_line(session.id, product.id)
    count_service.add_line(session.id, other_product.id)
    count_service.record_count(a.id, 12)
    db_session.commit()

    summary = count_service.get_session_summary(session.id)
    totals = summary["totals"]
    assert totals["line_count"] == 2
    assert totals["counted_count"] == 1
    assert totals["uncounted_count"] == 1
    assert totals["total_expected"] == 14
    assert totals["total_counted"] == 12
    assert totals["total_discrepancy"] == 2
    assert totals["surplus_lines"] == 1
    assert totals["shortage_lines"] == 0
    assert [line.id for line in count_service.list_discrepancies(session.id)] == [a.id]


def test_list_sessions_filters(db_session, warehouse, bar, user):
    closed = _open(warehouse, user)
    count_service.close_session(closed.id)
    _open(bar, user)
    db_session.commit()

    assert len(count_service.list_sessions(status=SESSION_STATUS_OPEN)) == 1
    assert len(count_service.list_sessions(location_id=warehouse.id)) == 1
    with pytest.raises(ValidationError):
        count_service.list_sessions(status="PAUSED")


def test_unknown_session(db_session):
    with pytest.raises(NotFoundError):
        count_service.get_session_summary(uuid.uuid4())


def test_product_on_count_cannot_be_deleted_and_session_still_closes(
    db_session, other_product, warehouse, user
):
    session = _open(warehouse, user)
    line = count_service.add_line(session.id, other_product.id)
    count_service.record_count(line.id, 3)
    db_session.commit()

    with pytest.raises(ValidationError, match="inventory count lines"):
        products_service.delete_product(other_product.id)
    db_session.rollback()

    count_service.close_session(session.id, user.id)
    db_session.commit()

    db_session.refresh(session)
    assert session.status == SESSION_STATUS_CLOSED
    assert stock_service.get_stock(other_product.id, warehouse.id)["quantity"] == 3

    reopened = _open(warehouse, user)
    assert reopened.status == SESSION_STATUS_OPEN
