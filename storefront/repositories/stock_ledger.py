# storefront/repositories/stock_ledger.py
import logging
import uuid
from typing import Iterable, NamedTuple

from sqlalchemy import update
from sqlalchemy.orm.util import identity_key
from sqlmodel import Session

from storefront.core.errors import InsufficientStockError
from storefront.models.product import Product
from storefront.repositories.product_repo import ProductRepository

logger = logging.getLogger(__name__)


class StockLine(NamedTuple):
    product_id: uuid.UUID
    quantity: int
    title: str


class StockLedger:
    """
    Atomic stock counter operations on products.stock_on_hand.

    NOTE:
      - No commits here; callers own the transaction.
      - reserve() is a single conditional UPDATE, so two checkouts racing
        for the last unit cannot both succeed.
    """

    def __init__(self, product_repo: ProductRepository | None = None):
        self.product_repo = product_repo or ProductRepository()

    def reserve(self, session: Session, product_id: uuid.UUID, quantity: int) -> bool:
        """
        Decrement stock by `quantity` if at least that much remains.

        Returns False (and changes nothing) when stock is insufficient or
        the product does not exist.
        """
        if quantity <= 0:
            raise ValueError("quantity must be positive")

        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .where(Product.stock_on_hand >= quantity)
            .values(stock_on_hand=Product.stock_on_hand - quantity)
            .execution_options(synchronize_session=False)
        )
        result = session.exec(stmt)
        self._expire(session, product_id)
        return result.rowcount == 1

    def release(self, session: Session, product_id: uuid.UUID, quantity: int) -> None:
        """Unconditionally put `quantity` units back."""
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock_on_hand=Product.stock_on_hand + quantity)
            .execution_options(synchronize_session=False)
        )
        session.exec(stmt)
        self._expire(session, product_id)

    def reserve_all(self, session: Session, lines: Iterable[StockLine]) -> None:
        """
        Reserve every line or none of them.

        On the first line that cannot be reserved, lines already reserved
        are released again before InsufficientStockError is raised.
        """
        reserved: list[StockLine] = []
        for line in lines:
            if self.reserve(session, line.product_id, line.quantity):
                reserved.append(line)
                continue

            for done in reversed(reserved):
                self.release(session, done.product_id, done.quantity)

            remaining = self.product_repo.current_stock(session, line.product_id)
            logger.info(
                "Reservation failed for %s (requested %d, remaining %d); "
                "released %d earlier line(s)",
                line.product_id,
                line.quantity,
                remaining,
                len(reserved),
            )
            raise InsufficientStockError(line.title, remaining)

    def release_all(self, session: Session, lines: Iterable[StockLine]) -> None:
        for line in lines:
            self.release(session, line.product_id, line.quantity)

    def _expire(self, session: Session, product_id: uuid.UUID) -> None:
        # keep loaded Product instances from serving a stale counter
        obj = session.identity_map.get(identity_key(Product, product_id))
        if obj is not None:
            session.expire(obj, ["stock_on_hand"])
