from datetime import datetime
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.orm import Session
from stock_ledger.core_settings import get_settings
from stock_ledger.domain.models import Product, InventoryMovement, MovementType
from .schemas import MovementRead, MovementPage

class HistoryQueryEngine:
    """Paginated read view over a seller's slice of the movement ledger"""

    def __init__(self, db: Session):
        self.db = db
        settings = get_settings()
        self.page_size = settings.HISTORY_PAGE_SIZE
        self.max_page_size = settings.HISTORY_MAX_PAGE_SIZE

    def get_movement_history(
        self,
        seller_id: int,
        product_id: Optional[int] = None,
        movement_type: Optional[MovementType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> MovementPage:
        # Tenant scope first: only movements of this seller's products are visible
        seller_products = set(self.db.execute(
            select(Product.id).where(Product.seller_id == seller_id)
        ).scalars())
        if not seller_products:
            return MovementPage(movements=[], total=0)

        conditions = [InventoryMovement.product_id.in_(seller_products)]
        if product_id is not None:
            conditions.append(InventoryMovement.product_id == product_id)
        if movement_type is not None:
            conditions.append(InventoryMovement.type == MovementType(movement_type))
        if start_date is not None:
            conditions.append(InventoryMovement.created_at >= start_date)
        if end_date is not None:
            conditions.append(InventoryMovement.created_at <= end_date)

        total = self.db.execute(
            select(func.count()).select_from(InventoryMovement).where(*conditions)
        ).scalar_one()

        limit = max(1, min(limit or self.page_size, self.max_page_size))
        offset = max(0, offset)
        movements = self.db.execute(
            select(InventoryMovement)
            .where(*conditions)
            .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        return MovementPage(movements=[self._to_read(m) for m in movements], total=total)

    @staticmethod
    def _to_read(movement: InventoryMovement) -> MovementRead:
        read = MovementRead.model_validate(movement)
        product = movement.product
        if product is not None:
            read.product_title = product.title
            read.product_sku = product.sku
            read.product_image = product.primary_image
        return read
