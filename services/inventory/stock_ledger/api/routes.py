from datetime import datetime, timezone
from typing import Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from shared.core import set_request_context
from stock_ledger.infrastructure.db import get_db
from stock_ledger.application.service import InventoryService
from stock_ledger.application.errors import LedgerError, LedgerErrorCode
from stock_ledger.application.schemas import (
    MovementCreate, OrderStockRequest, OrderCreditRequest, RestockRequest, AdjustRequest,
    BulkUpdateRequest, SKUUpdate, ThresholdUpdate, MovementResult, OrderStockResult,
    BulkUpdateResult, OperationResult, StockAlert, MovementPage, InventorySummary,
    StockLevel, LedgerAudit, InventoryOverview,
)
from stock_ledger.domain.models import MovementType

router = APIRouter(tags=["inventory"])

_STATUS_BY_CODE = {
    LedgerErrorCode.PRODUCT_NOT_FOUND: 404,
    LedgerErrorCode.INSUFFICIENT_STOCK: 409,
    LedgerErrorCode.DUPLICATE_SKU: 409,
    LedgerErrorCode.INVALID_QUANTITY: 400,
    LedgerErrorCode.PERSISTENCE_FAILURE: 503,
}

def get_service(db: Session = Depends(get_db)) -> InventoryService:
    return InventoryService(db)

def seller_scope(seller_id: int) -> int:
    set_request_context(seller_id=str(seller_id))
    return seller_id

def _raise_for_error(error: Optional[LedgerError]) -> None:
    if error is not None:
        raise HTTPException(status_code=_STATUS_BY_CODE[error.code], detail=error.model_dump(mode="json"))

def _require_product(service: InventoryService, seller_id: int, product_id: int) -> None:
    if not service.owns_product(product_id, seller_id):
        raise HTTPException(status_code=404, detail="Product not found or access denied")

# Movements and orders

@router.post("/inventory/movements", response_model=MovementResult, status_code=201)
def record_movement(payload: MovementCreate, service: InventoryService = Depends(get_service)):
    result = service.record_movement(
        payload.product_id,
        payload.quantity,
        payload.type,
        reference_id=payload.reference_id,
        notes=payload.notes,
        performed_by=payload.performed_by,
    )
    _raise_for_error(result.error)
    return result

@router.post("/orders/{order_id}/stock/debit", response_model=OrderStockResult)
def deduct_stock_for_order(order_id: str, payload: OrderStockRequest, service: InventoryService = Depends(get_service)):
    """Debit every line; inspect `all_succeeded` and per-line results, nothing is rolled back."""
    return service.deduct_stock_for_order(order_id, payload.items, payload.performed_by)

@router.post("/orders/{order_id}/stock/credit", response_model=OrderStockResult)
def restore_stock_for_order(order_id: str, payload: OrderCreditRequest, service: InventoryService = Depends(get_service)):
    return service.restore_stock_for_order(order_id, payload.items, payload.kind, payload.performed_by)

@router.post("/orders/{order_id}/stock/release", response_model=OrderStockResult)
def release_partial_debit(order_id: str, payload: OrderStockResult, service: InventoryService = Depends(get_service)):
    """Credit back the succeeded lines of a debit result for an abandoned order."""
    if payload.order_id != order_id:
        raise HTTPException(status_code=400, detail="Debit result belongs to a different order")
    return service.release_partial_debit(order_id, payload)

# Seller stock management

@router.post("/sellers/{seller_id}/products/{product_id}/restock", response_model=MovementResult)
def restock_product(
    product_id: int,
    payload: RestockRequest,
    seller_id: int = Depends(seller_scope),
    service: InventoryService = Depends(get_service),
):
    _require_product(service, seller_id, product_id)
    result = service.restock_product(product_id, payload.quantity, payload.notes, payload.performed_by)
    _raise_for_error(result.error)
    return result

@router.post("/sellers/{seller_id}/products/{product_id}/adjust", response_model=MovementResult)
def adjust_stock(
    product_id: int,
    payload: AdjustRequest,
    seller_id: int = Depends(seller_scope),
    service: InventoryService = Depends(get_service),
):
    _require_product(service, seller_id, product_id)
    result = service.adjust_stock(product_id, payload.target_quantity, payload.reason, payload.performed_by)
    _raise_for_error(result.error)
    return result

@router.post("/sellers/{seller_id}/inventory/bulk-update", response_model=BulkUpdateResult)
def bulk_stock_update(
    payload: BulkUpdateRequest,
    seller_id: int = Depends(seller_scope),
    service: InventoryService = Depends(get_service),
):
    return service.bulk_stock_update(payload.updates, payload.performed_by, seller_id=seller_id)

@router.put("/sellers/{seller_id}/products/{product_id}/sku", response_model=OperationResult)
def update_sku(
    product_id: int,
    payload: SKUUpdate,
    seller_id: int = Depends(seller_scope),
    service: InventoryService = Depends(get_service),
):
    result = service.update_sku(product_id, seller_id, payload.sku)
    _raise_for_error(result.error)
    return result

@router.put("/sellers/{seller_id}/products/{product_id}/threshold", response_model=OperationResult)
def update_stock_threshold(
    product_id: int,
    payload: ThresholdUpdate,
    seller_id: int = Depends(seller_scope),
    service: InventoryService = Depends(get_service),
):
    result = service.update_stock_threshold(product_id, seller_id, payload.threshold)
    _raise_for_error(result.error)
    return result

# Seller read views

@router.get("/sellers/{seller_id}/inventory/summary", response_model=InventorySummary)
def get_inventory_summary(seller_id: int = Depends(seller_scope), service: InventoryService = Depends(get_service)):
    return service.get_inventory_summary(seller_id)

@router.get("/sellers/{seller_id}/inventory/alerts", response_model=list[StockAlert])
def get_low_stock_alerts(seller_id: int = Depends(seller_scope), service: InventoryService = Depends(get_service)):
    return service.get_low_stock_alerts(seller_id)

@router.get("/sellers/{seller_id}/inventory/movements", response_model=MovementPage)
def get_movement_history(
    seller_id: int = Depends(seller_scope),
    product_id: Optional[int] = None,
    type: Optional[MovementType] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    service: InventoryService = Depends(get_service),
):
    return service.get_movement_history(seller_id, product_id, type, start_date, end_date, limit, offset)

@router.get("/sellers/{seller_id}/inventory/products", response_model=list[StockLevel])
def list_stock_levels(seller_id: int = Depends(seller_scope), service: InventoryService = Depends(get_service)):
    return service.list_stock_levels(seller_id)

@router.get("/sellers/{seller_id}/inventory/audit", response_model=list[LedgerAudit])
def audit_seller(seller_id: int = Depends(seller_scope), service: InventoryService = Depends(get_service)):
    return service.audit_seller(seller_id)

@router.get("/sellers/{seller_id}/inventory", response_model=InventoryOverview, response_model_exclude_none=True)
def get_inventory_overview(
    seller_id: int = Depends(seller_scope),
    section: Literal["all", "summary", "alerts", "movements", "products"] = "all",
    product_id: Optional[int] = None,
    type: Optional[MovementType] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    service: InventoryService = Depends(get_service),
):
    overview = InventoryOverview(seller_id=seller_id, generated_at=datetime.now(timezone.utc))
    if section in ("all", "summary"):
        overview.summary = service.get_inventory_summary(seller_id)
    if section in ("all", "alerts"):
        overview.alerts = service.get_low_stock_alerts(seller_id)
    if section in ("all", "movements"):
        overview.movements = service.get_movement_history(
            seller_id, product_id=product_id, movement_type=type, limit=limit, offset=offset
        )
    if section in ("all", "products"):
        overview.products = service.list_stock_levels(seller_id)
    return overview
