# storefront/models/product.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Brand(SQLModel, table=True):
    """
    Brand catalog entry.

    Orders never reference a brand row; the display name is copied into
    each line-item snapshot at purchase time.
    """

    __tablename__ = "brands"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        unique=True,
        description="Brand display name",
    )


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    `stock_on_hand` is only ever mutated through StockLedger
    (conditional decrement / unconditional increment).
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    title: str = Field(
        max_length=200,
        index=True,
        description="Display title",
    )

    description: str = Field(
        default="",
        description="Long description",
    )

    brand_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="brands.id",
        index=True,
    )

    price: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        ge=0,
        description="Current unit price (major currency units)",
    )

    stock_on_hand: int = Field(
        default=0,
        ge=0,
        description="How many units currently in stock",
    )

    thumbnail: str = Field(
        default="",
        description="Thumbnail image URL",
    )

    images: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Gallery image URLs",
    )

    # optional metadata copied into order snapshots
    sku: str | None = Field(default=None, max_length=64)
    weight: float | None = Field(default=None, ge=0)
    category_name: str | None = Field(default=None, max_length=100)

    is_deleted: bool = Field(
        default=False,
        index=True,
        description="Soft-delete flag; deleted products cannot be ordered",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
