# storefront/services/order_state.py
"""
Allowed status transitions for orders.

Every write of `payment_status` or `status` goes through apply_* so an
illegal edge raises InvalidTransitionError instead of silently
overwriting. Writing the current value again is a no-op.
"""
from storefront.core.errors import InvalidTransitionError
from storefront.models.order import DeliveryStatus, Order, PaymentStatus

PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}

DELIVERY_TRANSITIONS: dict[DeliveryStatus, set[DeliveryStatus]] = {
    DeliveryStatus.PENDING: {DeliveryStatus.DISPATCHED, DeliveryStatus.CANCELLED},
    DeliveryStatus.DISPATCHED: {DeliveryStatus.OUT_FOR_DELIVERY, DeliveryStatus.CANCELLED},
    DeliveryStatus.OUT_FOR_DELIVERY: {DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED},
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.CANCELLED: set(),
}


def ensure_payment_transition(current: PaymentStatus, new: PaymentStatus) -> bool:
    """True if `current -> new` is a real change; raises if it is illegal."""
    if current == new:
        return False
    if new not in PAYMENT_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError("payment status", current.value, new.value)
    return True


def ensure_delivery_transition(current: DeliveryStatus, new: DeliveryStatus) -> bool:
    if current == new:
        return False
    if new not in DELIVERY_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError("status", current.value, new.value)
    return True


def apply_payment_status(order: Order, new: PaymentStatus) -> bool:
    changed = ensure_payment_transition(order.payment_status, new)
    if changed:
        order.payment_status = new
    return changed


def apply_delivery_status(order: Order, new: DeliveryStatus) -> bool:
    changed = ensure_delivery_transition(order.status, new)
    if changed:
        order.status = new
    return changed
