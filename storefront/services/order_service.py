# storefront/services/order_service.py
import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import Session

from storefront.core.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ProductUnavailableError,
    SignatureMismatchError,
    ValidationError,
)
from storefront.core.payment_gateway import RazorpayGateway, to_minor_units
from storefront.models.order import (
    DeliveryStatus,
    Order,
    OrderItem,
    PaymentMode,
    PaymentStatus,
)
from storefront.models.product import Product
from storefront.models.user import User
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.stock_ledger import StockLedger, StockLine
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.order import (
    CodOrderCreate,
    GatewayOrderCreate,
    GatewayOrderCreated,
    OrderLineIn,
    OrderRead,
    OrderUpdate,
    PaymentVerify,
)
from storefront.services.order_state import (
    apply_delivery_status,
    apply_payment_status,
    ensure_delivery_transition,
    ensure_payment_transition,
)
from storefront.services.invoice_pdf import invoice_to_pdf
from storefront.services.snapshot import OrderItemSnapshot, build_snapshot, normalize_item

logger = logging.getLogger(__name__)


class OrderService:
    """
    Order lifecycle: checkout, payment verification, cancellation.

    Responsibilities:
      - Snapshot products into line items at checkout
      - Reserve stock through StockLedger
          * COD: at order creation
          * gateway: only after the payment signature is verified
      - Drive payment / delivery status through the transition tables
      - Release stock when an order holding stock is cancelled

    Every write path commits once at the end and rolls the session back
    on failure, so callers never see a half-written order.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        user_repo: UserRepository,
        ledger: StockLedger,
        gateway: RazorpayGateway,
        currency: str = "INR",
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.user_repo = user_repo
        self.ledger = ledger
        self.gateway = gateway
        self.currency = currency

    # -------- Checkout --------

    def create_cod_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CodOrderCreate,
    ) -> OrderRead:
        """
        Cash-on-delivery checkout.

        Steps:
          1. Validate payload (mode, items, final_amount == total).
          2. Load user and every live product (404 / 410).
          3. Snapshot each line.
          4. Reserve stock for all lines (all or nothing).
          5. Persist Order + items, commit.
        """
        if (payload.payment_mode or "").upper() != PaymentMode.COD.value:
            raise ValidationError("Use the online payment endpoints for gateway orders")
        self._validate_lines(payload.items)

        final_amount = payload.total if payload.final_amount is None else payload.final_amount
        if final_amount != payload.total:
            raise ValidationError("final_amount must equal total")

        user = self._get_user(session, user_id)

        try:
            lines = self._load_lines(session, payload.items)
            snapshots = self._snapshot_lines(session, lines)
            self.ledger.reserve_all(session, self._stock_lines(snapshots))

            order = Order(
                user_id=user.id,
                user_name=user.name or "Unknown",
                user_email=user.email or "N/A",
                address=payload.address.model_dump(),
                total=payload.total,
                subtotal=payload.subtotal,
                shipping_charge=payload.shipping_charge,
                tax_amount=payload.tax_amount,
                discount=payload.discount,
                coupon_code=payload.coupon_code,
                final_amount=final_amount,
                status=DeliveryStatus.PENDING,
                payment_mode=PaymentMode.COD,
                payment_status=PaymentStatus.PENDING,
                stock_reserved=True,
            )
            order = self.order_repo.create_order(session, order)
            self.order_repo.create_items(session, order.id, snapshots)
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info(
            "COD order %s placed by %s: %d line(s), total %s",
            order.id,
            user.id,
            len(snapshots),
            payload.total,
        )
        return self._load_dto(session, order)

    def create_gateway_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: GatewayOrderCreate,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> GatewayOrderCreated:
        """
        Online checkout: create the gateway order and a PENDING local order.

        Stock is only checked here, not reserved; it is committed in
        verify_gateway_payment so abandoned checkouts don't eat stock.
        """
        self._validate_lines(payload.items)
        user = self._get_user(session, user_id)

        lines = self._load_lines(session, payload.items)

        requested: Counter = Counter()
        for product, line in lines:
            requested[product.id] += line.quantity
        for product, _ in lines:
            if product.stock_on_hand < requested[product.id]:
                raise InsufficientStockError(
                    product.title,
                    product.stock_on_hand,
                    f"Only {product.stock_on_hand} left for {product.title}",
                )

        snapshots = self._snapshot_lines(session, lines)

        order = Order(
            user_id=user.id,
            user_name=user.name or "Unknown",
            user_email=user.email or "N/A",
            address=payload.address.model_dump(),
            total=payload.final_amount,
            subtotal=payload.subtotal,
            shipping_charge=payload.shipping_charge,
            tax_amount=payload.tax_amount,
            discount=payload.discount,
            coupon_code=payload.coupon_code,
            final_amount=payload.final_amount,
            status=DeliveryStatus.PENDING,
            payment_mode=PaymentMode.RAZORPAY,
            payment_status=PaymentStatus.PENDING,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        remote = self.gateway.create_remote_order(
            to_minor_units(payload.final_amount),
            self.currency,
            receipt=f"rcpt_{order.id.hex}",
        )
        order.gateway_order_id = remote.gateway_order_id

        try:
            order = self.order_repo.create_order(session, order)
            self.order_repo.create_items(session, order.id, snapshots)
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info(
            "Gateway order %s created for local order %s (%d %s)",
            remote.gateway_order_id,
            order.id,
            remote.amount,
            remote.currency,
        )
        return GatewayOrderCreated(
            order_id=order.id,
            gateway_order_id=remote.gateway_order_id,
            amount=remote.amount,
            currency=remote.currency,
            key_id=self.gateway.key_id,
        )

    def verify_gateway_payment(
        self,
        session: Session,
        payload: PaymentVerify,
        user_id: uuid.UUID | None = None,
    ) -> OrderRead:
        """
        Verify a checkout receipt and commit stock for the order.

          - bad signature  -> payment FAILED (if still pending), 400
          - good signature -> reserve every line, payment PAID, capture time

        A repeat call for an already PAID order with the same payment id
        returns the order unchanged.
        """
        order = self._get_order(session, payload.order_id, user_id)

        if order.payment_mode != PaymentMode.RAZORPAY:
            raise ValidationError("Order is not an online payment order")
        if order.gateway_order_id != payload.gateway_order_id:
            raise ValidationError("Gateway order id does not match this order")

        items = self.order_repo.list_items_for_order(session, order.id)

        if (
            order.payment_status == PaymentStatus.PAID
            and order.gateway_payment_id == payload.gateway_payment_id
        ):
            return self._build_dto(order, items)

        if not self.gateway.verify_signature(
            payload.gateway_order_id,
            payload.gateway_payment_id,
            payload.signature,
        ):
            if order.payment_status == PaymentStatus.PENDING:
                self._mark_failed(session, order)
            logger.warning("Signature mismatch for order %s", order.id)
            raise SignatureMismatchError()

        if order.status == DeliveryStatus.CANCELLED:
            raise ValidationError("Order has been cancelled")
        if not ensure_payment_transition(order.payment_status, PaymentStatus.PAID):
            # already PAID under a different payment id
            raise InvalidTransitionError(
                "payment status", order.payment_status.value, PaymentStatus.PAID.value
            )

        for item in items:
            product = self.product_repo.get_by_id(session, item.product_id)
            if product is None or product.is_deleted:
                self._mark_failed(session, order)
                raise ProductUnavailableError(item.title)

        try:
            self.ledger.reserve_all(session, self._stock_lines(items))
            apply_payment_status(order, PaymentStatus.PAID)
            order.gateway_payment_id = payload.gateway_payment_id
            order.gateway_signature = payload.signature
            order.payment_captured_at = datetime.now(timezone.utc)
            order.stock_reserved = True
            self.order_repo.update_order(session, order)
            session.commit()
        except InsufficientStockError:
            session.rollback()
            logger.error(
                "Payment %s verified for order %s but stock ran out; refund required",
                payload.gateway_payment_id,
                payload.order_id,
            )
            raise
        except Exception:
            session.rollback()
            raise

        logger.info("Payment verified for order %s", order.id)
        return self._load_dto(session, order)

    # -------- Admin: status changes --------

    def cancel_order(self, session: Session, order_id: uuid.UUID) -> OrderRead:
        """
        Cancel an order and put its stock back (when stock was taken).
        Cancelling an already cancelled order is a no-op.
        """
        order = self._get_order(session, order_id)
        try:
            if self._cancel(session, order):
                self.order_repo.update_order(session, order)
                session.commit()
        except Exception:
            session.rollback()
            raise
        return self._load_dto(session, order)

    def update_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderUpdate,
    ) -> OrderRead:
        """
        Admin update of delivery status, payment status and tracking data.

        status=Cancelled takes the same path as cancel_order (restock).
        Online orders can't be set PAID here: only verify_gateway_payment
        pays them, because that is where their stock is taken.
        """
        order = self._get_order(session, order_id)

        try:
            if payload.status is not None:
                if payload.status == DeliveryStatus.CANCELLED:
                    self._cancel(session, order)
                elif apply_delivery_status(order, payload.status):
                    if payload.status == DeliveryStatus.DELIVERED:
                        order.delivered_at = datetime.now(timezone.utc)

            if payload.payment_status is not None:
                if (
                    payload.payment_status == PaymentStatus.PAID
                    and order.payment_mode == PaymentMode.RAZORPAY
                    and order.payment_status != PaymentStatus.PAID
                ):
                    raise ValidationError(
                        "Online payments are marked PAID only by payment verification"
                    )
                apply_payment_status(order, payload.payment_status)

            if payload.tracking_id is not None:
                order.tracking_id = payload.tracking_id
            if payload.courier_name is not None:
                order.courier_name = payload.courier_name

            self.order_repo.update_order(session, order)
            session.commit()
        except Exception:
            session.rollback()
            raise

        return self._load_dto(session, order)

    # -------- Read side --------

    def get_order(self, session: Session, order_id: uuid.UUID) -> OrderRead:
        return self._load_dto(session, self._get_order(session, order_id))

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderRead:
        """404 if the order does not exist or belongs to someone else."""
        return self._load_dto(session, self._get_order(session, order_id, user_id))

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return self._build_many(session, orders)

    def list_all_orders(
        self,
        session: Session,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[list[OrderRead], int]:
        """
        Newest first. Without page/limit every order is returned.

        Returns (orders, total_count).
        """
        skip = (page - 1) * limit if page and limit else 0
        total = self.order_repo.count_all(session)
        orders = self.order_repo.list_all(session, skip, limit)
        return self._build_many(session, orders), total

    def render_invoice(
        self,
        session: Session,
        order_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
    ) -> str:
        """Plain-text invoice for an order."""
        order = self._get_order(session, order_id, user_id)
        items = self.order_repo.list_items_for_order(session, order.id)

        def money(value: Decimal | None) -> str:
            return f"{(value or Decimal('0')):.2f}"

        lines = [
            "INVOICE",
            "",
            f"Order ID: {order.id}",
            f"Date: {order.created_at:%a %b %d %Y}",
            "",
            f"Customer: {order.user_name or ''}",
            f"Email: {order.user_email or ''}",
            "",
            "Items",
        ]
        for idx, item in enumerate(items, start=1):
            size = f" ({item.size})" if item.size else ""
            lines.append(
                f"{idx}) {item.title}{size} x {item.quantity} = "
                f"{money(item.price_at_purchase * item.quantity)} {self.currency}"
            )
        lines += [
            "",
            f"Subtotal: {money(order.subtotal)}",
            f"Shipping: {money(order.shipping_charge)}",
            f"Tax: {money(order.tax_amount)}",
        ]
        if order.discount:
            lines.append(f"Discount: -{money(order.discount)}")
        lines += ["", f"Total: {money(order.final_amount)} {self.currency}"]
        return "\n".join(lines) + "\n"

    def render_invoice_pdf(
        self,
        session: Session,
        order_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
    ) -> bytes:
        """PDF invoice for an order (same content as render_invoice)."""
        text = self.render_invoice(session, order_id, user_id)
        return invoice_to_pdf(text, title=f"Invoice {order_id}")

    # -------- Helpers --------

    def _validate_lines(self, items: list[OrderLineIn]) -> None:
        if not items:
            raise ValidationError("Order must contain at least one item")
        seen: set[tuple[uuid.UUID, str | None]] = set()
        for idx, line in enumerate(items):
            if line.quantity < 1:
                raise ValidationError(f"Item {idx}: quantity must be a positive integer")
            key = (line.product_id, line.size)
            if key in seen:
                raise ValidationError(f"Item {idx}: duplicate product {line.product_id}")
            seen.add(key)

    def _load_lines(
        self,
        session: Session,
        items: list[OrderLineIn],
    ) -> list[tuple[Product, OrderLineIn]]:
        """Live product for each requested line (404 / 410)."""
        lines = []
        for line in items:
            product = self.product_repo.get_by_id(session, line.product_id)
            if product is None:
                raise NotFoundError(f"Product {line.product_id} not found")
            if product.is_deleted:
                raise ProductUnavailableError(product.title)
            lines.append((product, line))
        return lines

    def _snapshot_lines(
        self,
        session: Session,
        lines: list[tuple[Product, OrderLineIn]],
    ) -> list[OrderItemSnapshot]:
        brand_lookup = self.product_repo.brand_lookup(session)
        return [
            build_snapshot(product, line.quantity, line.size, brand_lookup=brand_lookup)
            for product, line in lines
        ]

    @staticmethod
    def _stock_lines(items: list[OrderItemSnapshot] | list[OrderItem]) -> list[StockLine]:
        return [StockLine(it.product_id, it.quantity, it.title) for it in items]

    def _get_user(self, session: Session, user_id: uuid.UUID) -> User:
        user = self.user_repo.get_by_id(session, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _get_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
    ) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if order is None or (user_id is not None and order.user_id != user_id):
            raise NotFoundError("Order not found")
        return order

    def _cancel(self, session: Session, order: Order) -> bool:
        if not ensure_delivery_transition(order.status, DeliveryStatus.CANCELLED):
            return False

        restocked = 0
        if order.stock_reserved:
            items = self.order_repo.list_items_for_order(session, order.id)
            self.ledger.release_all(session, self._stock_lines(items))
            order.stock_reserved = False
            restocked = len(items)
        order.status = DeliveryStatus.CANCELLED
        logger.info("Order %s cancelled, restocked %d line(s)", order.id, restocked)
        return True

    def _mark_failed(self, session: Session, order: Order) -> None:
        try:
            apply_payment_status(order, PaymentStatus.FAILED)
            self.order_repo.update_order(session, order)
            session.commit()
        except Exception:
            session.rollback()
            raise

    def _load_dto(self, session: Session, order: Order) -> OrderRead:
        session.refresh(order)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_dto(order, items)

    def _build_many(self, session: Session, orders: list[Order]) -> list[OrderRead]:
        grouped = self.order_repo.list_items_for_orders(session, [o.id for o in orders])
        return [self._build_dto(o, grouped[o.id]) for o in orders]

    def _build_dto(self, order: Order, items: list[OrderItem]) -> OrderRead:
        return OrderRead.model_validate(
            order,
            update={"items": [normalize_item(it) for it in items]},
        )
