# storefront/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel import Session

from storefront.core.auth import require_admin, require_user
from storefront.core.config import get_settings
from storefront.core.payment_gateway import RazorpayGateway, get_payment_gateway
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.stock_ledger import StockLedger
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.order import (
    CodOrderCreate,
    GatewayOrderCreate,
    GatewayOrderCreated,
    OrderRead,
    OrderUpdate,
    PaymentVerify,
)
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
user_repo = UserRepository()
ledger = StockLedger(product_repo)


def get_order_service(
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> OrderService:
    """
    Build the service around the injected gateway adapter.
    """
    return OrderService(
        order_repo,
        product_repo,
        user_repo,
        ledger,
        gateway,
        currency=get_settings().PAYMENT_CURRENCY,
    )


# -------- Customer endpoints --------


@router.post(
    "",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
)
def create_cod_order(
    payload: CodOrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Place a cash-on-delivery order. Stock is reserved immediately.
    """
    return service.create_cod_order(session, current_user.id, payload)


@router.post(
    "/razorpay/create",
    response_model=GatewayOrderCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_gateway_order(
    payload: GatewayOrderCreate,
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Start an online payment. Returns what the checkout widget needs;
    stock is reserved only once the payment is verified.
    """
    return service.create_gateway_order(
        session,
        current_user.id,
        payload,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.post("/razorpay/verify", response_model=OrderRead)
def verify_gateway_payment(
    payload: PaymentVerify,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Verify the gateway receipt and mark the order PAID.
    """
    return service.verify_gateway_payment(session, payload, current_user.id)


@router.get("/me", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
    skip: int = 0,
    limit: int = 50,
):
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get("/me/{order_id}", response_model=OrderRead)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
):
    return service.get_user_order(session, current_user.id, order_id)


@router.get(
    "/me/{order_id}/invoice",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
)
def download_my_invoice(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Download the invoice for one of your orders as a PDF.
    """
    pdf = service.render_invoice_pdf(session, order_id, current_user.id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=Invoice_{order_id}.pdf"},
    )


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    response: Response,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    page: int | None = None,
    limit: int | None = None,
):
    """
    List all orders, newest first (admin only).

    Total count is returned in the X-Total-Count header.
    """
    orders, total = service.list_all_orders(session, page, limit)
    response.headers["X-Total-Count"] = str(total)
    return orders


@router.get(
    "/{order_id}",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.get_order(session, order_id)


@router.patch(
    "/{order_id}",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_order(
    order_id: uuid.UUID,
    payload: OrderUpdate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Update delivery status, payment status or tracking data (admin only).

      Pending          -> Dispatched, Cancelled

      Dispatched       -> Out for delivery, Cancelled

      Out for delivery -> Delivered, Cancelled

    Cancelling restores stock for orders that hold it.
    """
    return service.update_order(session, order_id, payload)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def cancel_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.cancel_order(session, order_id)
