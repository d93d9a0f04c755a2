from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from shared.core import get_logger
from stock_ledger.domain.models import Product
from . import errors
from .schemas import OperationResult

logger = get_logger(__name__)

class SKUThresholdManager:
    """Per-product identifiers and alert thresholds, scoped to the owning seller"""

    def __init__(self, db: Session):
        self.db = db

    def owns_product(self, product_id: int, seller_id: int) -> bool:
        return self.db.execute(
            select(Product.id).where(Product.id == product_id, Product.seller_id == seller_id)
        ).scalar_one_or_none() is not None

    def sku_taken(self, seller_id: int, sku: str, exclude_product_id: Optional[int] = None) -> bool:
        stmt = select(Product.id).where(Product.seller_id == seller_id, Product.sku == sku)
        if exclude_product_id is not None:
            stmt = stmt.where(Product.id != exclude_product_id)
        return self.db.execute(stmt.limit(1)).first() is not None

    def update_sku(self, product_id: int, seller_id: int, sku: str) -> OperationResult:
        sku = sku.strip()
        if not self.owns_product(product_id, seller_id):
            return OperationResult(success=False, error=errors.product_not_found(product_id))
        if self.sku_taken(seller_id, sku, exclude_product_id=product_id):
            return OperationResult(success=False, error=errors.duplicate_sku(sku))

        try:
            self._update(product_id, seller_id, sku=sku)
        except IntegrityError:
            # Lost a race with another writer claiming the same SKU
            self.db.rollback()
            return OperationResult(success=False, error=errors.duplicate_sku(sku))
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Failed to update SKU for product {product_id}", exc_info=True)
            return OperationResult(success=False, error=errors.persistence_failure("Failed to update SKU"))

        logger.info(
            f"SKU updated for product {product_id}",
            extra={'extra_fields': {'product_id': product_id, 'seller_id': seller_id, 'sku': sku}}
        )
        return OperationResult(success=True)

    def update_stock_threshold(self, product_id: int, seller_id: int, threshold: int) -> OperationResult:
        if threshold < 0:
            return OperationResult(success=False, error=errors.invalid_quantity("Threshold must be non-negative"))
        if not self.owns_product(product_id, seller_id):
            return OperationResult(success=False, error=errors.product_not_found(product_id))

        try:
            self._update(product_id, seller_id, low_stock_threshold=threshold)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Failed to update threshold for product {product_id}", exc_info=True)
            return OperationResult(success=False, error=errors.persistence_failure("Failed to update threshold"))

        logger.info(
            f"Low stock threshold updated for product {product_id}",
            extra={'extra_fields': {'product_id': product_id, 'seller_id': seller_id, 'threshold': threshold}}
        )
        return OperationResult(success=True)

    def _update(self, product_id: int, seller_id: int, **values) -> None:
        self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.seller_id == seller_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
