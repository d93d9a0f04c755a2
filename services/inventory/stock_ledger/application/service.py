from datetime import datetime
from typing import Iterable, Optional
from sqlalchemy.orm import Session
from stock_ledger.domain.models import MovementType
from .adjustments import StockAdjustmentService
from .alerts import AlertEngine
from .audit import LedgerAuditor
from .catalog import SKUThresholdManager
from .coordinator import OrderStockCoordinator, CreditKind
from .history import HistoryQueryEngine
from .recorder import MovementRecorder
from .summary import SummaryAggregator
from .schemas import (
    LineItem, StockUpdate, MovementResult, OrderStockResult, BulkUpdateResult,
    OperationResult, StockAlert, MovementPage, InventorySummary, StockLevel, LedgerAudit,
)

class InventoryService:
    """Ledger operations consumed by the order service, seller dashboard and admin tools.

    Writes all funnel into one MovementRecorder; reads go straight to the
    snapshot table or the movement log.
    """

    def __init__(self, db: Session):
        self.db = db
        self.recorder = MovementRecorder(db)
        self.orders = OrderStockCoordinator(db, self.recorder)
        self.adjustments = StockAdjustmentService(db, self.recorder)
        self.catalog = SKUThresholdManager(db)

    # Writes

    def record_movement(
        self,
        product_id: int,
        quantity: int,
        movement_type: MovementType,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> MovementResult:
        return self.recorder.record_movement(product_id, quantity, movement_type, reference_id, notes, performed_by)

    def deduct_stock_for_order(
        self, order_id: str, items: Iterable[LineItem], performed_by: Optional[str] = None
    ) -> OrderStockResult:
        return self.orders.deduct_stock_for_order(order_id, items, performed_by)

    def restore_stock_for_order(
        self,
        order_id: str,
        items: Iterable[LineItem],
        kind: CreditKind = "return",
        performed_by: Optional[str] = None,
    ) -> OrderStockResult:
        return self.orders.restore_stock_for_order(order_id, items, kind, performed_by)

    def release_partial_debit(
        self, order_id: str, debit: OrderStockResult, performed_by: Optional[str] = None
    ) -> OrderStockResult:
        return self.orders.release_partial_debit(order_id, debit, performed_by)

    def restock_product(
        self, product_id: int, quantity: int, notes: Optional[str] = None, performed_by: Optional[str] = None
    ) -> MovementResult:
        return self.adjustments.restock_product(product_id, quantity, notes, performed_by)

    def adjust_stock(
        self, product_id: int, target_quantity: int, reason: Optional[str] = None, performed_by: Optional[str] = None
    ) -> MovementResult:
        return self.adjustments.adjust_stock(product_id, target_quantity, reason, performed_by)

    def bulk_stock_update(
        self, updates: Iterable[StockUpdate], performed_by: Optional[str] = None, seller_id: Optional[int] = None
    ) -> BulkUpdateResult:
        return self.adjustments.bulk_stock_update(updates, performed_by, seller_id)

    def update_sku(self, product_id: int, seller_id: int, sku: str) -> OperationResult:
        return self.catalog.update_sku(product_id, seller_id, sku)

    def update_stock_threshold(self, product_id: int, seller_id: int, threshold: int) -> OperationResult:
        return self.catalog.update_stock_threshold(product_id, seller_id, threshold)

    # Reads

    def owns_product(self, product_id: int, seller_id: int) -> bool:
        return self.catalog.owns_product(product_id, seller_id)

    def get_low_stock_alerts(self, seller_id: int) -> list[StockAlert]:
        return AlertEngine(self.db).get_low_stock_alerts(seller_id)

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
        return HistoryQueryEngine(self.db).get_movement_history(
            seller_id, product_id, movement_type, start_date, end_date, limit, offset
        )

    def get_inventory_summary(self, seller_id: int) -> InventorySummary:
        return SummaryAggregator(self.db).get_inventory_summary(seller_id)

    def list_stock_levels(self, seller_id: int) -> list[StockLevel]:
        return SummaryAggregator(self.db).list_stock_levels(seller_id)

    def audit_product(self, product_id: int) -> Optional[LedgerAudit]:
        return LedgerAuditor(self.db).audit_product(product_id)

    def audit_seller(self, seller_id: int) -> list[LedgerAudit]:
        return LedgerAuditor(self.db).audit_seller(seller_id)
