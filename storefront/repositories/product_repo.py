# storefront/repositories/product_repo.py
import uuid
from typing import Callable

from sqlmodel import Session, select

from storefront.models.product import Brand, Product


class ProductRepository:
    """
    Read-side access to Product & Brand for the order flow.

    - Pure DB operations, no business logic.
    - Stock changes go through StockLedger, never through here.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_brand(self, session: Session, brand_id: uuid.UUID | None) -> Brand | None:
        if brand_id is None:
            return None
        return session.get(Brand, brand_id)

    def get_brand_by_name(self, session: Session, name: str) -> Brand | None:
        return session.exec(select(Brand).where(Brand.name == name)).first()

    def brand_lookup(
        self,
        session: Session,
    ) -> Callable[[uuid.UUID], Brand | None]:
        """
        Brand-by-id resolver bound to `session`, for the snapshot builder.
        Each brand is fetched at most once per lookup.
        """
        cache: dict[uuid.UUID, Brand | None] = {}

        def lookup(brand_id: uuid.UUID) -> Brand | None:
            if brand_id not in cache:
                cache[brand_id] = self.get_brand(session, brand_id)
            return cache[brand_id]

        return lookup

    def current_stock(self, session: Session, product_id: uuid.UUID) -> int:
        """Read stock straight from the table (bypasses the identity map)."""
        stmt = select(Product.stock_on_hand).where(Product.id == product_id)
        return session.exec(stmt).first() or 0

    def create_brand(self, session: Session, brand: Brand) -> Brand:
        session.add(brand)
        session.commit()
        session.refresh(brand)
        return brand

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product
