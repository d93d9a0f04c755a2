from typing import Iterable, Literal, Optional
from sqlalchemy import select, func
from sqlalchemy.orm import Session
from shared.core import get_logger
from stock_ledger.domain.models import InventoryMovement, MovementType
from .recorder import MovementRecorder
from .schemas import LineItem, LineItemResult, OrderStockResult

logger = get_logger(__name__)

CreditKind = Literal["return", "cancellation"]

class OrderStockCoordinator:
    """Debits and credits order line items through the recorder.

    Best-effort: each line is its own movement and its own transaction.
    When a line fails, lines already applied stay applied and the result
    says so. Callers abandoning such an order must hand the result to
    `release_partial_debit` (or credit the succeeded lines themselves).
    """

    def __init__(self, db: Session, recorder: Optional[MovementRecorder] = None):
        self.db = db
        self.recorder = recorder or MovementRecorder(db)

    def deduct_stock_for_order(
        self, order_id: str, items: Iterable[LineItem], performed_by: Optional[str] = None
    ) -> OrderStockResult:
        result = self._apply(
            order_id,
            items,
            MovementType.SALE,
            sign=-1,
            notes=f"Order {order_id}",
            performed_by=performed_by,
        )
        if not result.all_succeeded:
            logger.warning(
                f"Order {order_id} stock debit partially failed",
                extra={'extra_fields': {
                    'order_id': order_id,
                    'succeeded': [r.product_id for r in result.succeeded()],
                    'failed': [r.product_id for r in result.failed()],
                }}
            )
        return result

    def restore_stock_for_order(
        self,
        order_id: str,
        items: Iterable[LineItem],
        kind: CreditKind = "return",
        performed_by: Optional[str] = None,
    ) -> OrderStockResult:
        movement_type = MovementType(kind)
        label = "Return" if movement_type is MovementType.RETURN else "Cancellation"
        return self._apply(
            order_id,
            items,
            movement_type,
            sign=1,
            notes=f"{label} for order {order_id}",
            performed_by=performed_by,
        )

    def release_partial_debit(
        self, order_id: str, debit: OrderStockResult, performed_by: Optional[str] = None
    ) -> OrderStockResult:
        """Credit back the lines of `debit` that were actually deducted.

        `debit` only carries resulting stock, so the quantities are read back
        from the ledger rows the debit wrote for this order.
        """
        quantities = self._debited_quantities(order_id, [r.product_id for r in debit.succeeded()])
        items = [LineItem(product_id=pid, quantity=qty) for pid, qty in quantities.items()]
        logger.info(
            f"Releasing partial debit for order {order_id}",
            extra={'extra_fields': {'order_id': order_id, 'products': list(quantities)}}
        )
        return self.restore_stock_for_order(order_id, items, kind="cancellation", performed_by=performed_by)

    def _apply(
        self,
        order_id: str,
        items: Iterable[LineItem],
        movement_type: MovementType,
        sign: int,
        notes: str,
        performed_by: Optional[str],
    ) -> OrderStockResult:
        results = []
        for item in items:
            outcome = self.recorder.record_movement(
                item.product_id,
                sign * item.quantity,
                movement_type,
                reference_id=order_id,
                notes=notes,
                performed_by=performed_by,
            )
            results.append(LineItemResult(
                product_id=item.product_id,
                success=outcome.success,
                new_stock=outcome.new_stock,
                error=outcome.error,
            ))

        return OrderStockResult(
            order_id=order_id,
            all_succeeded=all(r.success for r in results),
            results=results,
        )

    def _debited_quantities(self, order_id: str, product_ids: list[int]) -> dict[int, int]:
        if not product_ids:
            return {}
        # Net of sales and earlier credits for this order, so a release is never applied twice
        rows = self.db.execute(
            select(InventoryMovement.product_id, func.sum(InventoryMovement.quantity))
            .where(
                InventoryMovement.reference_id == order_id,
                InventoryMovement.product_id.in_(set(product_ids)),
                InventoryMovement.type.in_([MovementType.SALE, MovementType.RETURN, MovementType.CANCELLATION]),
            )
            .group_by(InventoryMovement.product_id)
        ).all()
        return {pid: -net for pid, net in rows if net < 0}
