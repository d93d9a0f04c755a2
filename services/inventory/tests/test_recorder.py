import pytest
from sqlalchemy.exc import OperationalError
from stock_ledger.application.errors import LedgerErrorCode
from stock_ledger.application.recorder import MovementRecorder
from stock_ledger.domain.models import MovementType

def test_sale_updates_snapshot_and_appends_one_movement(db, make_product, stock_of, movements_for):
    product = make_product(stock=10)

    result = MovementRecorder(db).record_movement(
        product.id, -3, MovementType.SALE, reference_id="ORD-1", notes="Order ORD-1", performed_by="user-7"
    )

    assert result.success
    assert result.new_stock == 7
    assert stock_of(product.id) == 7
    [movement] = movements_for(product.id)
    assert movement.id == result.movement_id
    assert movement.type is MovementType.SALE
    assert (movement.quantity, movement.previous_stock, movement.new_stock) == (-3, 10, 7)
    assert movement.reference_id == "ORD-1"
    assert movement.performed_by == "user-7"

@pytest.mark.parametrize("movement_type", [
    MovementType.SALE, MovementType.RESERVATION, MovementType.TRANSFER, MovementType.DAMAGED,
])
def test_debit_beyond_available_is_rejected(db, make_product, stock_of, movements_for, movement_type):
    product = make_product(stock=2)

    result = MovementRecorder(db).record_movement(product.id, -5, movement_type)

    assert not result.success
    assert result.error.code == LedgerErrorCode.INSUFFICIENT_STOCK
    assert (result.error.available, result.error.requested) == (2, 5)
    assert result.new_stock == 2
    assert stock_of(product.id) == 2
    assert movements_for(product.id) == []

def test_debit_of_exactly_available_stock_succeeds(db, make_product, stock_of):
    product = make_product(stock=4)

    result = MovementRecorder(db).record_movement(product.id, -4, MovementType.SALE)

    assert result.success
    assert stock_of(product.id) == 0

def test_adjustment_past_zero_is_clamped_not_rejected(db, make_product, stock_of, movements_for):
    product = make_product(stock=3)

    result = MovementRecorder(db).record_movement(product.id, -10, MovementType.ADJUSTMENT, notes="Shrinkage")

    assert result.success
    assert result.new_stock == 0
    assert stock_of(product.id) == 0
    [movement] = movements_for(product.id)
    assert (movement.quantity, movement.previous_stock, movement.new_stock) == (-10, 3, 0)

def test_unknown_product(db):
    result = MovementRecorder(db).record_movement(9999, -1, MovementType.SALE)

    assert not result.success
    assert result.error.code == LedgerErrorCode.PRODUCT_NOT_FOUND
    assert result.new_stock == 0

def test_unknown_product_adjustment(db):
    result = MovementRecorder(db).record_movement(9999, 4, MovementType.ADJUSTMENT)

    assert result.error.code == LedgerErrorCode.PRODUCT_NOT_FOUND

@pytest.mark.parametrize("movement_type,quantity", [
    (MovementType.RESTOCK, -2),
    (MovementType.RETURN, -1),
    (MovementType.CANCELLATION, -1),
    (MovementType.SALE, 3),
    (MovementType.DAMAGED, 1),
    (MovementType.TRANSFER, 0),
])
def test_quantity_sign_rules_per_movement_type(db, make_product, stock_of, movements_for, movement_type, quantity):
    product = make_product(stock=10)

    result = MovementRecorder(db).record_movement(product.id, quantity, movement_type)

    assert result.error.code == LedgerErrorCode.INVALID_QUANTITY
    assert result.new_stock == 10
    assert stock_of(product.id) == 10
    assert movements_for(product.id) == []

def test_movement_type_accepts_plain_strings(db, make_product):
    product = make_product(stock=1)

    result = MovementRecorder(db).record_movement(product.id, 2, "restock")

    assert result.success
    assert result.new_stock == 3

def test_only_adjustment_clamps():
    assert [t for t in MovementType if t.clamps_at_zero] == [MovementType.ADJUSTMENT]
    assert MovementType.TRANSFER.quantity_problem(-3) is None
    assert MovementType.RESERVATION.quantity_problem(3) is None

def test_snapshot_matches_replay_of_accepted_movements(db, make_product, stock_of, movements_for):
    product = make_product(stock=5)
    recorder = MovementRecorder(db)
    steps = [
        (-2, MovementType.SALE),
        (-9, MovementType.SALE),        # rejected
        (4, MovementType.RESTOCK),
        (1, MovementType.RETURN),
        (-20, MovementType.ADJUSTMENT),  # clamps to zero
        (6, MovementType.RESTOCK),
        (-7, MovementType.RESERVATION),  # rejected
        (-1, MovementType.DAMAGED),
    ]

    expected = 5
    for quantity, movement_type in steps:
        result = recorder.record_movement(product.id, quantity, movement_type)
        if result.success:
            expected = max(0, expected + quantity)
        assert result.new_stock == expected

    assert stock_of(product.id) == expected == 5
    movements = movements_for(product.id)
    assert len(movements) == 6
    for prior, current in zip(movements, movements[1:]):
        assert current.previous_stock == prior.new_stock
    assert all(m.new_stock == max(0, m.previous_stock + m.quantity) for m in movements)
    assert movements[-1].new_stock == stock_of(product.id)

def test_failed_ledger_append_rolls_back_snapshot(db, make_product, stock_of, movements_for, monkeypatch):
    product = make_product(stock=10)

    def failing_commit():
        raise OperationalError("INSERT INTO inventory_movements", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", failing_commit)
    result = MovementRecorder(db).record_movement(product.id, -4, MovementType.SALE)
    monkeypatch.undo()

    assert not result.success
    assert result.error.code == LedgerErrorCode.PERSISTENCE_FAILURE
    assert result.error.retryable
    assert stock_of(product.id) == 10
    assert movements_for(product.id) == []

def test_movements_are_append_only(db, make_product, movements_for):
    product = make_product(stock=10)
    MovementRecorder(db).record_movement(product.id, -1, MovementType.SALE)
    [movement] = movements_for(product.id)

    movement.notes = "rewritten"
    with pytest.raises(ValueError, match="append-only"):
        db.commit()
    db.rollback()

    db.delete(movement)
    with pytest.raises(ValueError, match="append-only"):
        db.commit()
    db.rollback()

    assert len(movements_for(product.id)) == 1
