from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Literal, Optional
from stock_ledger.domain.models import MovementType
from .errors import LedgerError

# Requests

class MovementCreate(BaseModel):
    product_id: int
    quantity: int
    type: MovementType
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    performed_by: Optional[str] = None

class LineItem(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)

class OrderStockRequest(BaseModel):
    items: list[LineItem]
    performed_by: Optional[str] = None

class OrderCreditRequest(OrderStockRequest):
    kind: Literal["return", "cancellation"] = "return"

class RestockRequest(BaseModel):
    quantity: int
    notes: Optional[str] = None
    performed_by: Optional[str] = None

class AdjustRequest(BaseModel):
    target_quantity: int = Field(ge=0)
    reason: Optional[str] = None
    performed_by: Optional[str] = None

class StockUpdate(BaseModel):
    product_id: int
    new_quantity: int = Field(ge=0)
    reason: Optional[str] = None

class BulkUpdateRequest(BaseModel):
    updates: list[StockUpdate] = Field(min_length=1)
    performed_by: Optional[str] = None

class SKUUpdate(BaseModel):
    sku: str

    @field_validator("sku")
    @classmethod
    def _strip_sku(cls, value: str) -> str:
        value = value.strip()
        if not value or len(value) > 64:
            raise ValueError("SKU must be 1-64 characters")
        return value

class ThresholdUpdate(BaseModel):
    threshold: int

# Results

class MovementResult(BaseModel):
    success: bool
    product_id: int
    new_stock: int
    movement_id: Optional[int] = None
    error: Optional[LedgerError] = None

class LineItemResult(BaseModel):
    product_id: int
    success: bool
    new_stock: int
    error: Optional[LedgerError] = None

class OrderStockResult(BaseModel):
    """Per-line outcome of an order debit or credit.

    Lines are applied independently: a failed line never undoes an earlier
    successful one. A caller that abandons a partially debited order must
    credit back the lines in `succeeded()`.
    """
    order_id: str
    all_succeeded: bool
    results: list[LineItemResult]

    def succeeded(self) -> list[LineItemResult]:
        return [r for r in self.results if r.success]

    def failed(self) -> list[LineItemResult]:
        return [r for r in self.results if not r.success]

class BulkUpdateResult(BaseModel):
    success: int
    failed: int
    results: list[LineItemResult]

class OperationResult(BaseModel):
    success: bool
    error: Optional[LedgerError] = None

class StockAlert(BaseModel):
    product_id: int
    title: str
    sku: Optional[str] = None
    current_stock: int
    threshold: int
    severity: Literal["critical", "warning", "info"]
    image: Optional[str] = None

class MovementRead(BaseModel):
    id: int
    product_id: int
    product_title: Optional[str] = None
    product_sku: Optional[str] = None
    product_image: Optional[str] = None
    quantity: int
    type: MovementType
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    previous_stock: int
    new_stock: int
    performed_by: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)

class MovementPage(BaseModel):
    movements: list[MovementRead]
    total: int

class CategoryBreakdown(BaseModel):
    category: str
    product_count: int
    total_stock: int

class InventorySummary(BaseModel):
    total_products: int = 0
    total_stock: int = 0
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    total_value: float = 0.0
    average_stock: int = 0
    categories: list[CategoryBreakdown] = []

class StockLevel(BaseModel):
    product_id: int
    title: str
    stock: int
    threshold: int
    sku: Optional[str] = None
    price: float
    category: str
    image: Optional[str] = None
    value: float

class LedgerAudit(BaseModel):
    product_id: int
    snapshot_stock: int
    ledger_stock: Optional[int] = None
    movement_count: int
    broken_links: list[int] = []
    consistent: bool

class InventoryOverview(BaseModel):
    seller_id: int
    generated_at: datetime
    summary: Optional[InventorySummary] = None
    alerts: Optional[list[StockAlert]] = None
    movements: Optional[MovementPage] = None
    products: Optional[list[StockLevel]] = None
