# storefront/models/order.py
import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class DeliveryStatus(str, enum.Enum):
    PENDING = "Pending"
    DISPATCHED = "Dispatched"
    OUT_FOR_DELIVERY = "Out for delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMode(str, enum.Enum):
    COD = "COD"
    RAZORPAY = "RAZORPAY"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


def _money(description: str, default: Decimal | None = None):
    return Field(
        default=default,
        max_digits=12,
        decimal_places=2,
        description=description,
    )


class Order(SQLModel, table=True):
    """
    Customer order; one row per checkout attempt, never deleted.

    Payment fields:
      - gateway_* and payment_captured_at are only set on RAZORPAY orders
        once the receipt signature has been verified (gateway_order_id is
        attached at creation).

    Stock:
      - stock_reserved is true exactly while the order holds stock: COD
        orders from creation, gateway orders from verified payment.
        Status edits never touch it, so cancelling only puts back what
        was actually taken.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # snapshot of the user at checkout
    user_name: str = Field(default="Unknown")
    user_email: str = Field(default="N/A")

    address: dict = Field(
        sa_column=Column(JSON, nullable=False),
        description="Delivery address as submitted at checkout",
    )

    status: DeliveryStatus = Field(
        default=DeliveryStatus.PENDING,
        index=True,
        description="Delivery status lifecycle",
    )

    total: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Declared order total",
    )
    subtotal: Decimal | None = _money("Items subtotal")
    shipping_charge: Decimal | None = _money("Shipping charge")
    tax_amount: Decimal | None = _money("Tax")
    discount: Decimal | None = _money("Discount applied")
    coupon_code: str | None = Field(default=None, max_length=50)
    final_amount: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Amount charged; equals total at creation",
    )

    payment_mode: PaymentMode = Field(index=True)
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        index=True,
    )

    gateway_order_id: str | None = Field(default=None, index=True)
    gateway_payment_id: str | None = None
    gateway_signature: str | None = None
    payment_captured_at: datetime | None = None

    stock_reserved: bool = Field(
        default=False,
        description="Set when StockLedger took stock for this order; cleared on restock",
    )

    # fulfilment
    tracking_id: str | None = None
    courier_name: str | None = None
    delivered_at: datetime | None = None

    # anti-fraud meta (gateway checkout only)
    ip_address: str | None = None
    user_agent: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Frozen copy of a product at purchase time.

    Rows are written once by the snapshot builder and never updated;
    product_id is kept for reference only (no FK) so later product edits
    or deletes leave the order intact.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    position: int = Field(default=0, ge=0)

    product_id: uuid.UUID = Field(index=True)
    title: str
    images: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    thumbnail: str = ""
    brand_name: str = ""
    description: str = ""

    unit_price: Decimal = Field(max_digits=12, decimal_places=2)
    quantity: int = Field(gt=0)
    size: str | None = None
    price_at_purchase: Decimal = Field(max_digits=12, decimal_places=2)

    # optional analytics metadata
    sku: str | None = None
    weight: float | None = None
    category_name: str | None = None
