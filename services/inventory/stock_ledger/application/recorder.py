"""Movement Recorder: the single writer of product stock snapshots.

Every stock change goes through `MovementRecorder`. The snapshot update and
the ledger row it produces are committed in one transaction, and the
snapshot update itself is a single conditional UPDATE, so concurrent
writers for the same product are serialized by the database rather than by
a read-then-write in Python.

Two write strategies are used:

* guarded increment (every type except adjustment)::

    UPDATE products SET stock_quantity = stock_quantity + :q
    WHERE id = :id AND stock_quantity + :q >= 0
    RETURNING stock_quantity

  No row back means the product is missing or the debit would oversell.

* compare-and-swap (adjustment)::

    UPDATE products SET stock_quantity = :final
    WHERE id = :id AND stock_quantity = :current

  retried when another writer got there first. Adjustments clamp at zero
  instead of failing, so they need the exact prior value for the ledger row.
"""

from typing import Callable, Optional
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from shared.core import get_logger
from stock_ledger.core_settings import get_settings
from stock_ledger.domain.models import Product, InventoryMovement, MovementType
from . import errors
from .schemas import MovementResult

logger = get_logger(__name__)

class MovementRecorder:
    def __init__(self, db: Session, max_retries: Optional[int] = None):
        self.db = db
        self.max_retries = max_retries or get_settings().LEDGER_CAS_MAX_RETRIES

    def current_stock(self, product_id: int) -> Optional[int]:
        """Committed stock snapshot, or None when the product does not exist"""
        return self.db.execute(
            select(Product.stock_quantity).where(Product.id == product_id)
        ).scalar_one_or_none()

    def record_movement(
        self,
        product_id: int,
        quantity: int,
        movement_type: MovementType,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> MovementResult:
        movement_type = MovementType(movement_type)
        meta = {"reference_id": reference_id, "notes": notes, "performed_by": performed_by}

        problem = movement_type.quantity_problem(quantity)
        if problem:
            current = self.current_stock(product_id)
            if current is None:
                return self._failure(product_id, errors.product_not_found(product_id))
            return self._failure(product_id, errors.invalid_quantity(problem), current)

        try:
            if movement_type.clamps_at_zero:
                return self._compare_and_swap(product_id, movement_type, lambda current: quantity, meta)
            return self._guarded_increment(product_id, movement_type, quantity, meta)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                f"Failed to persist {movement_type.value} movement for product {product_id}",
                exc_info=True,
                extra={'extra_fields': {'product_id': product_id, 'type': movement_type.value, 'quantity': quantity}}
            )
            return self._failure(product_id, errors.persistence_failure())

    def set_stock(
        self,
        product_id: int,
        target_quantity: int,
        notes: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> MovementResult:
        """Bring the snapshot to `target_quantity` with one adjustment movement.

        The delta is derived from the row as it is swapped, so a concurrent
        sale between the caller's read and this write cannot make the
        correction overshoot. Writes nothing when there is no drift.
        """
        if target_quantity < 0:
            return self._failure(
                product_id, errors.invalid_quantity("Target quantity must be non-negative"), self.current_stock(product_id)
            )

        meta = {"reference_id": None, "notes": notes, "performed_by": performed_by}
        try:
            return self._compare_and_swap(
                product_id, MovementType.ADJUSTMENT, lambda current: target_quantity - current, meta
            )
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                f"Failed to persist stock correction for product {product_id}",
                exc_info=True,
                extra={'extra_fields': {'product_id': product_id, 'target_quantity': target_quantity}}
            )
            return self._failure(product_id, errors.persistence_failure())

    def _guarded_increment(self, product_id: int, movement_type: MovementType, quantity: int, meta: dict) -> MovementResult:
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity + quantity >= 0)
            .values(stock_quantity=Product.stock_quantity + quantity)
            .returning(Product.stock_quantity)
            .execution_options(synchronize_session=False)
        )
        new_stock = self.db.execute(stmt).scalar_one_or_none()
        if new_stock is not None:
            return self._append(product_id, movement_type, quantity, new_stock - quantity, new_stock, meta)

        current = self.current_stock(product_id)
        self.db.rollback()
        if current is None:
            return self._failure(product_id, errors.product_not_found(product_id))

        logger.info(
            f"Rejected {movement_type.value} for product {product_id}: insufficient stock",
            extra={'extra_fields': {
                'product_id': product_id,
                'type': movement_type.value,
                'available': current,
                'requested': -quantity,
            }}
        )
        return self._failure(product_id, errors.insufficient_stock(current, -quantity), current)

    def _compare_and_swap(
        self,
        product_id: int,
        movement_type: MovementType,
        delta_for: Callable[[int], int],
        meta: dict,
    ) -> MovementResult:
        current = None
        for attempt in range(1, self.max_retries + 1):
            current = self.current_stock(product_id)
            if current is None:
                return self._failure(product_id, errors.product_not_found(product_id))

            quantity = delta_for(current)
            if quantity == 0:
                return MovementResult(success=True, product_id=product_id, new_stock=current)

            final = max(0, current + quantity)
            stmt = (
                update(Product)
                .where(Product.id == product_id, Product.stock_quantity == current)
                .values(stock_quantity=final)
                .returning(Product.id)
                .execution_options(synchronize_session=False)
            )
            if self.db.execute(stmt).scalar_one_or_none() is not None:
                return self._append(product_id, movement_type, quantity, current, final, meta)

            self.db.rollback()
            logger.debug(
                f"Stock for product {product_id} changed during {movement_type.value}, retrying",
                extra={'extra_fields': {'product_id': product_id, 'attempt': attempt}}
            )

        logger.warning(
            f"Gave up {movement_type.value} for product {product_id} after {self.max_retries} attempts",
            extra={'extra_fields': {'product_id': product_id, 'attempts': self.max_retries}}
        )
        return self._failure(
            product_id, errors.persistence_failure("Stock changed concurrently, retry the request"), current
        )

    def _append(
        self,
        product_id: int,
        movement_type: MovementType,
        quantity: int,
        previous_stock: int,
        new_stock: int,
        meta: dict,
    ) -> MovementResult:
        movement = InventoryMovement(
            product_id=product_id,
            quantity=quantity,
            type=movement_type,
            previous_stock=previous_stock,
            new_stock=new_stock,
            **meta,
        )
        self.db.add(movement)
        # Snapshot and ledger row land together or not at all
        self.db.commit()

        logger.info(
            f"Recorded {movement_type.value} movement for product {product_id}",
            extra={'extra_fields': {
                'product_id': product_id,
                'movement_id': movement.id,
                'type': movement_type.value,
                'quantity': quantity,
                'previous_stock': previous_stock,
                'new_stock': new_stock,
                'reference_id': meta.get('reference_id'),
            }}
        )
        return MovementResult(success=True, product_id=product_id, new_stock=new_stock, movement_id=movement.id)

    @staticmethod
    def _failure(product_id: int, error: errors.LedgerError, current: Optional[int] = None) -> MovementResult:
        return MovementResult(success=False, product_id=product_id, new_stock=current or 0, error=error)
