from sqlalchemy import text, update
from stock_ledger.application.audit import LedgerAuditor
from stock_ledger.application.adjustments import StockAdjustmentService
from stock_ledger.application.recorder import MovementRecorder
from stock_ledger.domain.models import Product, MovementType

def test_ledger_consistent_after_normal_operations(db, make_product):
    product = make_product(stock=10)
    recorder = MovementRecorder(db)
    recorder.record_movement(product.id, -4, MovementType.SALE)
    recorder.record_movement(product.id, -9, MovementType.SALE)
    recorder.record_movement(product.id, 2, MovementType.RETURN)
    StockAdjustmentService(db).adjust_stock(product.id, 1)

    audit = LedgerAuditor(db).audit_product(product.id)

    assert audit.consistent
    assert audit.movement_count == 3
    assert audit.snapshot_stock == audit.ledger_stock == 1
    assert audit.broken_links == []

def test_snapshot_drift_is_reported(db, make_product):
    product = make_product(stock=10)
    MovementRecorder(db).record_movement(product.id, -1, MovementType.SALE)
    db.execute(update(Product).where(Product.id == product.id).values(stock_quantity=50))
    db.commit()

    audit = LedgerAuditor(db).audit_product(product.id)

    assert not audit.consistent
    assert (audit.snapshot_stock, audit.ledger_stock) == (50, 9)
    assert audit.broken_links == []

def test_tampered_movement_breaks_the_chain(db, make_product):
    product = make_product(stock=10)
    recorder = MovementRecorder(db)
    recorder.record_movement(product.id, -1, MovementType.SALE)
    second = recorder.record_movement(product.id, -1, MovementType.SALE)
    recorder.record_movement(product.id, -1, MovementType.SALE)
    db.execute(
        text("UPDATE inventory_movements SET previous_stock = 40, new_stock = 39 WHERE id = :id"),
        {"id": second.movement_id},
    )
    db.commit()

    audit = LedgerAuditor(db).audit_product(product.id)

    assert not audit.consistent
    # the edited row no longer continues its predecessor, and its successor no longer continues it
    assert len(audit.broken_links) == 2
    assert audit.broken_links[0] == second.movement_id

def test_product_without_movements_is_consistent(db, make_product):
    product = make_product(stock=6)

    audit = LedgerAuditor(db).audit_product(product.id)

    assert audit.consistent
    assert audit.ledger_stock is None
    assert audit.movement_count == 0

def test_audit_unknown_product(db):
    assert LedgerAuditor(db).audit_product(5150) is None

def test_audit_seller_covers_only_their_products(db, make_product):
    a = make_product(seller_id=1)
    b = make_product(seller_id=1)
    make_product(seller_id=2)

    audits = LedgerAuditor(db).audit_seller(1)

    assert [audit.product_id for audit in audits] == [a.id, b.id]
