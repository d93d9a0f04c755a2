from typing import Iterable, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from shared.core import get_logger
from stock_ledger.domain.models import Product, MovementType
from . import errors
from .recorder import MovementRecorder
from .schemas import MovementResult, StockUpdate, LineItemResult, BulkUpdateResult

logger = get_logger(__name__)

class StockAdjustmentService:
    """Manual restocks and inventory-count corrections"""

    def __init__(self, db: Session, recorder: Optional[MovementRecorder] = None):
        self.db = db
        self.recorder = recorder or MovementRecorder(db)

    def restock_product(
        self,
        product_id: int,
        quantity: int,
        notes: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> MovementResult:
        if quantity <= 0:
            return MovementResult(
                success=False,
                product_id=product_id,
                new_stock=self.recorder.current_stock(product_id) or 0,
                error=errors.invalid_quantity("Quantity must be positive"),
            )
        return self.recorder.record_movement(
            product_id,
            quantity,
            MovementType.RESTOCK,
            notes=notes or "Manual restock",
            performed_by=performed_by,
        )

    def adjust_stock(
        self,
        product_id: int,
        target_quantity: int,
        reason: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> MovementResult:
        # A count that already matches writes no movement, so reconciliation
        # runs can be repeated safely.
        return self.recorder.set_stock(
            product_id,
            target_quantity,
            notes=reason or "Manual adjustment",
            performed_by=performed_by,
        )

    def bulk_stock_update(
        self,
        updates: Iterable[StockUpdate],
        performed_by: Optional[str] = None,
        seller_id: Optional[int] = None,
    ) -> BulkUpdateResult:
        updates = list(updates)
        owned = self._owned_product_ids(seller_id, [u.product_id for u in updates]) if seller_id is not None else None

        results = []
        for entry in updates:
            if owned is not None and entry.product_id not in owned:
                outcome = MovementResult(
                    success=False,
                    product_id=entry.product_id,
                    new_stock=0,
                    error=errors.product_not_found(entry.product_id),
                )
            else:
                outcome = self.adjust_stock(
                    entry.product_id,
                    entry.new_quantity,
                    reason=entry.reason or "Bulk update",
                    performed_by=performed_by,
                )
            results.append(LineItemResult(
                product_id=entry.product_id,
                success=outcome.success,
                new_stock=outcome.new_stock,
                error=outcome.error,
            ))

        succeeded = sum(1 for r in results if r.success)
        summary = BulkUpdateResult(success=succeeded, failed=len(results) - succeeded, results=results)
        logger.info(
            "Bulk stock update finished",
            extra={'extra_fields': {'seller_id': seller_id, 'success': summary.success, 'failed': summary.failed}}
        )
        return summary

    def _owned_product_ids(self, seller_id: int, product_ids: list[int]) -> set[int]:
        if not product_ids:
            return set()
        rows = self.db.execute(
            select(Product.id).where(Product.seller_id == seller_id, Product.id.in_(set(product_ids)))
        ).scalars()
        return set(rows)
