# storefront/schemas/order.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, field_validator
from pydantic import Field as PydanticField
from sqlmodel import SQLModel, Field

from storefront.models.order import DeliveryStatus, PaymentMode, PaymentStatus

Size = Literal[
    "XS", "S", "M", "L", "XL", "XXL", "3XL",
    "6", "7", "8", "9", "10", "11", "12",
    "One Size",
]


class ShippingAddress(SQLModel):
    """
    Delivery address, stored on the order as submitted.
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str
    phone_number: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str = "India"
    landmark: str | None = None

    @field_validator("full_name", "phone_number", "street", "city", "state", "postal_code")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class OrderLineIn(SQLModel):
    """One requested line: which product, how many, which size."""

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(gt=0)
    size: Size | None = None


class _CheckoutBase(SQLModel):
    model_config = ConfigDict(extra="forbid")

    items: list[OrderLineIn]
    address: ShippingAddress

    subtotal: Decimal | None = Field(default=None, ge=0)
    shipping_charge: Decimal | None = Field(default=None, ge=0)
    tax_amount: Decimal | None = Field(default=None, ge=0)
    discount: Decimal | None = Field(default=None, ge=0)
    coupon_code: str | None = None

    @field_validator("items")
    @classmethod
    def at_least_one_item(cls, v: list[OrderLineIn]) -> list[OrderLineIn]:
        if not v:
            raise ValueError("order must contain at least one item")
        return v


class CodOrderCreate(_CheckoutBase):
    """
    Payload for a cash-on-delivery checkout.

    Backend derives:
      - user from token
      - status = 'Pending', payment_status = 'PENDING'
      - final_amount = total when omitted
    """

    payment_mode: str = "COD"
    total: Decimal = Field(ge=0)
    final_amount: Decimal | None = Field(default=None, ge=0)


class GatewayOrderCreate(_CheckoutBase):
    """
    Payload for an online (gateway) checkout. `final_amount` is what the
    gateway will charge.
    """

    final_amount: Decimal = Field(gt=0)


class GatewayOrderCreated(SQLModel):
    """
    What the client needs to open the gateway checkout widget.
    Never includes the merchant secret.
    """

    order_id: uuid.UUID
    gateway_order_id: str
    amount: int
    currency: str
    key_id: str | None


class PaymentVerify(BaseModel):
    """
    Gateway callback data forwarded by the client.

    Accepts the gateway's own field names (razorpay_order_id, ...) too.
    """

    order_id: uuid.UUID = PydanticField(
        validation_alias=AliasChoices("order_id", "orderId"),
    )
    gateway_order_id: str = PydanticField(
        validation_alias=AliasChoices("gateway_order_id", "razorpay_order_id"),
    )
    gateway_payment_id: str = PydanticField(
        validation_alias=AliasChoices("gateway_payment_id", "razorpay_payment_id"),
    )
    signature: str = PydanticField(
        validation_alias=AliasChoices("signature", "razorpay_signature"),
    )


class OrderUpdate(SQLModel):
    """
    Admin payload. Every field is optional; transitions are validated.
    """

    model_config = ConfigDict(extra="forbid")

    status: DeliveryStatus | None = None
    payment_status: PaymentStatus | None = None
    tracking_id: str | None = None
    courier_name: str | None = None


class BrandRead(SQLModel):
    name: str


class ProductSnapshotRead(SQLModel):
    """
    Product as it looked when the order was placed.
    """

    id: uuid.UUID | None
    title: str
    images: list[str]
    thumbnail: str
    brand: BrandRead
    description: str
    price: Decimal


class OrderItemRead(SQLModel):
    product: ProductSnapshotRead
    quantity: int
    size: str | None
    price_at_purchase: Decimal
    line_total: Decimal
    sku: str | None = None
    weight: float | None = None
    brand_name: str | None = None
    category_name: str | None = None


class OrderRead(SQLModel):
    """
    Full order view including normalized items.
    """

    id: uuid.UUID
    user_id: uuid.UUID
    user_name: str
    user_email: str
    address: dict
    status: DeliveryStatus
    total: Decimal
    subtotal: Decimal | None
    shipping_charge: Decimal | None
    tax_amount: Decimal | None
    discount: Decimal | None
    coupon_code: str | None
    final_amount: Decimal
    payment_mode: PaymentMode
    payment_status: PaymentStatus
    gateway_order_id: str | None
    gateway_payment_id: str | None
    payment_captured_at: datetime | None
    tracking_id: str | None
    courier_name: str | None
    delivered_at: datetime | None
    created_at: datetime
    items: list[OrderItemRead] = []
