from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from stock_ledger.core_settings import get_settings
from stock_ledger.domain.models import Product
from .schemas import StockAlert

def effective_threshold(product: Product, default: int) -> int:
    return product.low_stock_threshold if product.low_stock_threshold is not None else default

def classify(stock: int, threshold: int) -> Optional[str]:
    """Severity of a stock level against its threshold, None when not low"""
    if stock > threshold:
        return None
    if stock == 0:
        return "critical"
    if stock <= threshold // 2:
        return "warning"
    return "info"

class AlertEngine:
    def __init__(self, db: Session, default_threshold: Optional[int] = None):
        self.db = db
        self.default_threshold = (
            default_threshold if default_threshold is not None else get_settings().DEFAULT_LOW_STOCK_THRESHOLD
        )

    def get_low_stock_alerts(self, seller_id: int) -> list[StockAlert]:
        products = self.db.execute(
            select(Product)
            .where(Product.seller_id == seller_id)
            .order_by(Product.id)
            .execution_options(populate_existing=True)
        ).scalars()

        alerts = []
        for product in products:
            threshold = effective_threshold(product, self.default_threshold)
            severity = classify(product.stock_quantity, threshold)
            if severity is None:
                continue
            alerts.append(StockAlert(
                product_id=product.id,
                title=product.title,
                sku=product.sku,
                current_stock=product.stock_quantity,
                threshold=threshold,
                severity=severity,
                image=product.primary_image,
            ))

        # Most urgent first
        return sorted(alerts, key=lambda a: a.current_stock)
