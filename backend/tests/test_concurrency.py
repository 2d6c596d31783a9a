"""
Retry helper tests: transient conflicts are retried, exhaustion surfaces as
a 409-class conflict.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from stockledger.extensions import db
from stockledger.models import Stock, StockMovement
from stockledger.models.inventory import MOVEMENT_PURCHASE, MOVEMENT_SALE
from stockledger.services import stock_service
from stockledger.services.concurrency import run_with_retry
from stockledger.validation import StockConflictError, ValidationError


def _flaky(failures):
    calls = {"n": 0}

    def op():
        calls["n"] += 1
        if failures:
            raise failures.pop(0)
        return "done"

    return op, calls


def test_retries_then_succeeds(db_session):
    op, calls = _flaky([
        OperationalError("UPDATE stock", {}, Exception("database is locked")),
        StaleDataError("version mismatch"),
    ])

    assert run_with_retry(op, attempts=3, backoff_base=0) == "done"
    assert calls["n"] == 3


def test_exhaustion_raises_conflict(db_session):
    op, calls = _flaky([IntegrityError("INSERT", {}, Exception("unique")) for _ in range(5)])

    with pytest.raises(StockConflictError) as exc_info:
        run_with_retry(op, attempts=2, backoff_base=0)

    assert calls["n"] == 2
    assert isinstance(exc_info.value.__cause__, IntegrityError)


def test_domain_errors_are_not_retried(db_session):
    op, calls = _flaky([ValidationError("bad input")])

    with pytest.raises(ValidationError):
        run_with_retry(op, attempts=3, backoff_base=0)
    assert calls["n"] == 1


def test_attempts_default_from_config(app, db_session, monkeypatch):
    monkeypatch.setitem(app.config, "STOCK_RETRY_ATTEMPTS", 1)
    op, calls = _flaky([StaleDataError("version mismatch")])

    with pytest.raises(StockConflictError):
        run_with_retry(op)
    assert calls["n"] == 1


def _concurrent_sale(stock_id, quantity):
    """Sell from the row in a separate session, as another worker would."""
    other = Session(bind=db.engine)
    try:
        row = other.get(Stock, stock_id)
        row.quantity -= quantity
        other.add(StockMovement(
            product_id=row.product_id,
            location_id=row.location_id,
            quantity_change=-quantity,
            movement_type=MOVEMENT_SALE,
        ))
        other.commit()
    finally:
        other.close()


def test_stale_stock_write_is_rejected(db_session, product, warehouse):
    stock_service.adjust_stock(
        product_id=product.id, location_id=warehouse.id, delta=10, movement_type=MOVEMENT_PURCHASE
    )
    db_session.commit()

    stock = db_session.query(Stock).one()
    assert stock.version_id == 1

    _concurrent_sale(stock.id, 4)

    stock.quantity = 42
    with pytest.raises(StaleDataError):
        db_session.flush()
    db_session.rollback()

    db_session.refresh(stock)
    assert stock.quantity == 6
    assert stock.version_id == 2


def test_retried_adjustment_keeps_ledger_reconciled(db_session, product, warehouse):
    stock_service.adjust_stock(
        product_id=product.id, location_id=warehouse.id, delta=10, movement_type=MOVEMENT_PURCHASE
    )
    db_session.commit()

    calls = {"n": 0}

    def op():
        calls["n"] += 1
        stock = db_session.query(Stock).one()
        if calls["n"] == 1:
            _concurrent_sale(stock.id, 4)
            stock.quantity += 5
            db_session.flush()
        return stock_service.apply_adjustment(
            product_id=product.id, location_id=warehouse.id, delta=5, movement_type=MOVEMENT_PURCHASE
        )

    result = run_with_retry(op, attempts=3, backoff_base=0)
    db_session.commit()

    assert calls["n"] == 2
    assert result.stock.quantity == 11
    assert stock_service.movement_total(product.id, warehouse.id) == 11
    assert stock_service.verify_ledger() == []
