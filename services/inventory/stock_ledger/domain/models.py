from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import (
    String, Integer, Numeric, Text, DateTime, JSON, ForeignKey,
    CheckConstraint, UniqueConstraint, Enum as SAEnum, event, func,
)
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

class Base(DeclarativeBase):
    pass

class MovementType(str, Enum):
    """Closed set of ledger movement kinds.

    Each variant carries its own quantity rule; only ADJUSTMENT may drive
    a reconciliation past zero (the result is clamped, not rejected).
    """
    SALE = "sale"
    RESTOCK = "restock"
    RETURN = "return"
    ADJUSTMENT = "adjustment"
    RESERVATION = "reservation"
    CANCELLATION = "cancellation"
    DAMAGED = "damaged"
    TRANSFER = "transfer"

    @property
    def clamps_at_zero(self) -> bool:
        return self is MovementType.ADJUSTMENT

    @property
    def is_inbound(self) -> bool:
        return self in (MovementType.RESTOCK, MovementType.RETURN, MovementType.CANCELLATION)

    @property
    def is_outbound(self) -> bool:
        return self in (MovementType.SALE, MovementType.DAMAGED)

    def quantity_problem(self, quantity: int) -> Optional[str]:
        """Return why `quantity` is not valid for this variant, or None."""
        if quantity == 0:
            return "Movement quantity must be non-zero"
        if self.is_inbound and quantity < 0:
            return f"{self.value} movements must add stock"
        if self.is_outbound and quantity > 0:
            return f"{self.value} movements must remove stock"
        return None

class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("seller_id", "sku", name="uq_products_seller_sku"),
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("low_stock_threshold >= 0", name="ck_products_threshold_non_negative"),
    )
    id: Mapped[int] = mapped_column(primary_key=True)
    # Seller (tenant) id - sellers live in another service
    seller_id: Mapped[int] = mapped_column(Integer, index=True)
    title: Mapped[str] = mapped_column(String(200))
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    images: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    sku: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # Cached projection of the movement ledger; written only by the recorder
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0)
    low_stock_threshold: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=5)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def primary_image(self) -> Optional[str]:
        return self.images[0] if self.images else None

class InventoryMovement(Base):
    __tablename__ = "inventory_movements"
    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), index=True)
    # Signed delta: positive adds stock, negative removes it
    quantity: Mapped[int] = mapped_column(Integer)
    type: Mapped[MovementType] = mapped_column(
        SAEnum(
            MovementType,
            name="movement_type",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [m.value for m in enum],
        ),
        index=True,
    )
    reference_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    previous_stock: Mapped[int] = mapped_column(Integer)
    new_stock: Mapped[int] = mapped_column(Integer)
    performed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
    product: Mapped[Product] = relationship("Product", lazy="joined")

@event.listens_for(InventoryMovement, "before_update")
def _reject_movement_update(mapper, connection, target):
    raise ValueError(f"Inventory movement {target.id} is append-only and cannot be modified")

@event.listens_for(InventoryMovement, "before_delete")
def _reject_movement_delete(mapper, connection, target):
    raise ValueError(f"Inventory movement {target.id} is append-only and cannot be deleted")
