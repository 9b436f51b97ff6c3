# storefront/services/snapshot.py
"""
Order line-item snapshots.

A snapshot freezes the product fields an order needs for display and
fulfilment at the moment of purchase, so later product edits or soft
deletes never rewrite order history.
"""
import uuid
from decimal import Decimal
from typing import Callable

from pydantic import ConfigDict
from sqlmodel import SQLModel

from storefront.models.order import OrderItem
from storefront.models.product import Brand, Product
from storefront.schemas.order import BrandRead, OrderItemRead, ProductSnapshotRead


class OrderItemSnapshot(SQLModel):
    """Fixed-shape, immutable copy of a product line."""

    model_config = ConfigDict(frozen=True)

    product_id: uuid.UUID
    title: str
    images: tuple[str, ...] = ()
    thumbnail: str = ""
    brand_name: str = ""
    description: str = ""
    unit_price: Decimal
    quantity: int
    size: str | None = None
    price_at_purchase: Decimal
    sku: str | None = None
    weight: float | None = None
    category_name: str | None = None


BrandLookup = Callable[[uuid.UUID], Brand | None]


def resolve_brand_name(
    brand: Brand | str | uuid.UUID | None,
    brand_lookup: BrandLookup | None = None,
) -> str:
    """
    Display name for a brand given as an expanded Brand, a plain name or
    an id. Ids go through `brand_lookup`; without one, or when the brand
    is gone, the name is "".
    """
    if isinstance(brand, uuid.UUID):
        brand = brand_lookup(brand) if brand_lookup is not None else None
    if isinstance(brand, Brand):
        return brand.name or ""
    if isinstance(brand, str):
        return brand
    return ""


def build_snapshot(
    product: Product,
    quantity: int,
    size: str | None = None,
    brand: Brand | str | uuid.UUID | None = None,
    price_at_purchase: Decimal | None = None,
    brand_lookup: BrandLookup | None = None,
) -> OrderItemSnapshot:
    """
    Copy `product` into an OrderItemSnapshot. Does not touch `product`.

    `brand` defaults to the product's brand_id. An id is resolved with
    `brand_lookup` (see ProductRepository.brand_lookup). `price_at_purchase`
    defaults to the product's current price.
    """
    if brand is None:
        brand = product.brand_id

    images = list(product.images or [])
    thumbnail = product.thumbnail or (images[0] if images else "")

    return OrderItemSnapshot(
        product_id=product.id,
        title=product.title,
        images=tuple(images),
        thumbnail=thumbnail,
        brand_name=resolve_brand_name(brand, brand_lookup),
        description=product.description or "",
        unit_price=product.price,
        quantity=quantity,
        size=size or None,
        price_at_purchase=product.price if price_at_purchase is None else price_at_purchase,
        sku=product.sku,
        weight=product.weight,
        category_name=product.category_name,
    )


def normalize_item(item: OrderItem) -> OrderItemRead:
    """
    Client-facing shape of a stored line item.

    Images fall back to [thumbnail] and thumbnail to images[0] so the UI
    always has something to render.
    """
    images = list(item.images) if item.images else [item.thumbnail or ""]
    thumbnail = item.thumbnail or images[0]
    price_at_purchase = item.price_at_purchase if item.price_at_purchase is not None else item.unit_price

    return OrderItemRead(
        product=ProductSnapshotRead(
            id=item.product_id,
            title=item.title or "Product no longer available",
            images=images,
            thumbnail=thumbnail,
            brand=BrandRead(name=item.brand_name or ""),
            description=item.description or "",
            price=item.unit_price if item.unit_price is not None else price_at_purchase,
        ),
        quantity=item.quantity,
        size=item.size,
        price_at_purchase=price_at_purchase,
        line_total=price_at_purchase * item.quantity,
        sku=item.sku,
        weight=item.weight,
        brand_name=item.brand_name or None,
        category_name=item.category_name,
    )
