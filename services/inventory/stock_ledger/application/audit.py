from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from stock_ledger.domain.models import Product, InventoryMovement
from .schemas import LedgerAudit

class LedgerAuditor:
    """Replays the movement log and checks it against the stock snapshot.

    Read-only. A broken link is a movement whose own arithmetic is wrong
    or whose previous_stock does not continue the prior row's new_stock.
    Drift found here is corrected with an adjustment, never by editing rows.
    """

    def __init__(self, db: Session):
        self.db = db

    def audit_product(self, product_id: int) -> Optional[LedgerAudit]:
        snapshot = self.db.execute(
            select(Product.stock_quantity).where(Product.id == product_id)
        ).scalar_one_or_none()
        if snapshot is None:
            return None
        return self._replay(product_id, snapshot)

    def audit_seller(self, seller_id: int) -> list[LedgerAudit]:
        rows = self.db.execute(
            select(Product.id, Product.stock_quantity)
            .where(Product.seller_id == seller_id)
            .order_by(Product.id)
        ).all()
        return [self._replay(product_id, snapshot) for product_id, snapshot in rows]

    def _replay(self, product_id: int, snapshot: int) -> LedgerAudit:
        rows = self.db.execute(
            select(
                InventoryMovement.id,
                InventoryMovement.quantity,
                InventoryMovement.previous_stock,
                InventoryMovement.new_stock,
            )
            .where(InventoryMovement.product_id == product_id)
            .order_by(InventoryMovement.id)
        ).all()

        broken = []
        last_new = None
        for movement_id, quantity, previous, new in rows:
            chained = last_new is None or previous == last_new
            if not chained or new != max(0, previous + quantity):
                broken.append(movement_id)
            last_new = new

        return LedgerAudit(
            product_id=product_id,
            snapshot_stock=snapshot,
            ledger_stock=last_new,
            movement_count=len(rows),
            broken_links=broken,
            consistent=not broken and (last_new is None or last_new == snapshot),
        )
