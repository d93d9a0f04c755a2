"""Typed failure outcomes returned by ledger operations.

Business outcomes (insufficient stock, duplicate SKU, ...) are values, not
exceptions: every operation hands back a result carrying one of these.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel

class LedgerErrorCode(str, Enum):
    PRODUCT_NOT_FOUND = "product_not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_QUANTITY = "invalid_quantity"
    DUPLICATE_SKU = "duplicate_sku"
    PERSISTENCE_FAILURE = "persistence_failure"

class LedgerError(BaseModel):
    code: LedgerErrorCode
    message: str
    available: Optional[int] = None
    requested: Optional[int] = None

    @property
    def retryable(self) -> bool:
        return self.code == LedgerErrorCode.PERSISTENCE_FAILURE

def product_not_found(product_id: int) -> LedgerError:
    return LedgerError(code=LedgerErrorCode.PRODUCT_NOT_FOUND, message=f"Product {product_id} not found")

def insufficient_stock(available: int, requested: int) -> LedgerError:
    return LedgerError(
        code=LedgerErrorCode.INSUFFICIENT_STOCK,
        message=f"Insufficient stock. Available: {available}, Requested: {requested}",
        available=available,
        requested=requested,
    )

def invalid_quantity(message: str) -> LedgerError:
    return LedgerError(code=LedgerErrorCode.INVALID_QUANTITY, message=message)

def duplicate_sku(sku: str) -> LedgerError:
    return LedgerError(code=LedgerErrorCode.DUPLICATE_SKU, message=f"SKU '{sku}' already exists for another product")

def persistence_failure(message: str = "Failed to persist stock change") -> LedgerError:
    return LedgerError(code=LedgerErrorCode.PERSISTENCE_FAILURE, message=message)
