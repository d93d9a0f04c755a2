from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from stock_ledger.core_settings import get_settings
from stock_ledger.domain.models import Product
from .alerts import effective_threshold
from .schemas import InventorySummary, CategoryBreakdown, StockLevel

DEFAULT_CATEGORY = "Other"

def _round_half_up(value: Decimal, places: str = "1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)

class SummaryAggregator:
    def __init__(self, db: Session, default_threshold: Optional[int] = None):
        self.db = db
        self.default_threshold = (
            default_threshold if default_threshold is not None else get_settings().DEFAULT_LOW_STOCK_THRESHOLD
        )

    def _seller_products(self, seller_id: int) -> list[Product]:
        return list(self.db.execute(
            select(Product)
            .where(Product.seller_id == seller_id)
            .order_by(Product.id)
            .execution_options(populate_existing=True)
        ).scalars())

    def get_inventory_summary(self, seller_id: int) -> InventorySummary:
        products = self._seller_products(seller_id)
        if not products:
            return InventorySummary()

        total_stock = sum(p.stock_quantity for p in products)
        total_value = sum((p.stock_quantity * Decimal(p.price or 0) for p in products), Decimal("0"))

        low_stock = out_of_stock = 0
        categories: dict[str, CategoryBreakdown] = {}
        for p in products:
            if p.stock_quantity == 0:
                out_of_stock += 1
            elif p.stock_quantity <= effective_threshold(p, self.default_threshold):
                low_stock += 1

            name = p.category or DEFAULT_CATEGORY
            bucket = categories.setdefault(name, CategoryBreakdown(category=name, product_count=0, total_stock=0))
            bucket.product_count += 1
            bucket.total_stock += p.stock_quantity

        return InventorySummary(
            total_products=len(products),
            total_stock=total_stock,
            low_stock_count=low_stock,
            out_of_stock_count=out_of_stock,
            total_value=float(_round_half_up(total_value, "0.01")),
            average_stock=int(_round_half_up(Decimal(total_stock) / len(products))),
            categories=sorted(categories.values(), key=lambda c: c.total_stock, reverse=True),
        )

    def list_stock_levels(self, seller_id: int) -> list[StockLevel]:
        """Per-product stock table for the seller dashboard, lowest stock first"""
        levels = []
        for p in self._seller_products(seller_id):
            price = Decimal(p.price or 0)
            levels.append(StockLevel(
                product_id=p.id,
                title=p.title,
                stock=p.stock_quantity,
                threshold=effective_threshold(p, self.default_threshold),
                sku=p.sku,
                price=float(price),
                category=p.category or DEFAULT_CATEGORY,
                image=p.primary_image,
                value=float(_round_half_up(p.stock_quantity * price, "0.01")),
            ))
        return sorted(levels, key=lambda level: level.stock)
