"""Tests for line-item snapshots."""

import uuid
from decimal import Decimal

import pydantic
import pytest

from storefront.models.order import OrderItem
from storefront.models.product import Brand, Product
from storefront.repositories.product_repo import ProductRepository
from storefront.services.snapshot import build_snapshot, normalize_item, resolve_brand_name


@pytest.fixture
def product():
    return Product(
        id=uuid.uuid4(),
        title="Air Max 90",
        description="Classic comfort sneakers.",
        brand_id=uuid.uuid4(),
        price=Decimal("129.00"),
        stock_on_hand=5,
        thumbnail="thumb.jpg",
        images=["a.jpg", "b.jpg"],
        sku="NK-AM90",
        weight=0.8,
        category_name="Footwear",
    )


class TestBuildSnapshot:
    def test_copies_product_fields(self, product):
        snap = build_snapshot(product, 2, "L", brand=Brand(name="Nike"))

        assert snap.product_id == product.id
        assert snap.title == "Air Max 90"
        assert snap.images == ("a.jpg", "b.jpg")
        assert snap.thumbnail == "thumb.jpg"
        assert snap.brand_name == "Nike"
        assert snap.unit_price == Decimal("129.00")
        assert snap.price_at_purchase == Decimal("129.00")
        assert snap.quantity == 2
        assert snap.size == "L"
        assert snap.sku == "NK-AM90"
        assert snap.weight == 0.8
        assert snap.category_name == "Footwear"

    def test_price_override(self, product):
        snap = build_snapshot(product, 1, price_at_purchase=Decimal("99.00"))

        assert snap.price_at_purchase == Decimal("99.00")
        assert snap.unit_price == Decimal("129.00")

    def test_does_not_mutate_product(self, product):
        before = product.model_dump()

        snap = build_snapshot(product, 3, brand="Nike")

        assert product.model_dump() == before
        assert snap.images is not product.images

    def test_snapshot_is_frozen(self, product):
        snap = build_snapshot(product, 1)

        with pytest.raises(pydantic.ValidationError):
            snap.title = "changed"

    def test_later_product_edits_do_not_leak(self, product):
        snap = build_snapshot(product, 1, brand="Nike")

        product.title = "Air Max 90 (2025)"
        product.price = Decimal("149.00")
        product.images.append("c.jpg")

        assert snap.title == "Air Max 90"
        assert snap.price_at_purchase == Decimal("129.00")
        assert snap.images == ("a.jpg", "b.jpg")

    def test_thumbnail_falls_back_to_first_image(self, product):
        product.thumbnail = ""

        assert build_snapshot(product, 1).thumbnail == "a.jpg"

    def test_empty_size_is_none(self, product):
        assert build_snapshot(product, 1, "").size is None


class TestBrandName:
    def test_expanded_brand(self):
        assert resolve_brand_name(Brand(name="Nike")) == "Nike"

    def test_plain_name(self):
        assert resolve_brand_name("Levi's") == "Levi's"

    def test_bare_id_resolves_through_lookup(self):
        nike = Brand(id=uuid.uuid4(), name="Nike")
        lookup = {nike.id: nike}.get

        assert resolve_brand_name(nike.id, lookup) == "Nike"
        assert resolve_brand_name(uuid.uuid4(), lookup) == ""

    def test_unresolvable(self):
        assert resolve_brand_name(uuid.uuid4()) == ""
        assert resolve_brand_name(None) == ""

    def test_default_brand_is_products_brand_id(self, product):
        nike = Brand(id=product.brand_id, name="Nike")

        snap = build_snapshot(product, 1, brand_lookup={nike.id: nike}.get)

        assert snap.brand_name == "Nike"

    def test_repository_lookup(self, session, catalog):
        lookup = ProductRepository().brand_lookup(session)

        assert build_snapshot(catalog["shoe"], 1, brand_lookup=lookup).brand_name == "Nike"
        assert build_snapshot(catalog["jeans"], 1, brand_lookup=lookup).brand_name == ""


class TestNormalizeItem:
    def _item(self, **overrides):
        fields = dict(
            order_id=uuid.uuid4(),
            product_id=uuid.uuid4(),
            title="Logo Tee",
            images=[],
            thumbnail="tee.jpg",
            brand_name="Nike",
            description="Cotton tee.",
            unit_price=Decimal("20.00"),
            quantity=3,
            size="M",
            price_at_purchase=Decimal("18.00"),
        )
        fields.update(overrides)
        return OrderItem(**fields)

    def test_client_shape(self):
        read = normalize_item(self._item())

        assert read.product.title == "Logo Tee"
        assert read.product.brand.name == "Nike"
        assert read.product.price == Decimal("20.00")
        assert read.price_at_purchase == Decimal("18.00")
        assert read.line_total == Decimal("54.00")
        assert read.size == "M"

    def test_images_fall_back_to_thumbnail(self):
        read = normalize_item(self._item())

        assert read.product.images == ["tee.jpg"]
        assert read.product.thumbnail == "tee.jpg"

    def test_thumbnail_falls_back_to_first_image(self):
        read = normalize_item(self._item(images=["x.jpg"], thumbnail=""))

        assert read.product.thumbnail == "x.jpg"
