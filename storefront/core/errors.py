# storefront/core/errors.py
"""
Error taxonomy for the order / payment flow.

Every error is an HTTPException so services can raise them directly and
FastAPI renders `{"detail": ...}` with the right status code. Anything
that is not one of these is turned into a generic 500 by the handler
registered in `storefront.main`.
"""
from fastapi import HTTPException, status


class OrderFlowError(HTTPException):
    """Base class: subclasses pin the HTTP status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class ValidationError(OrderFlowError):
    """Missing or malformed request fields."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(OrderFlowError):
    status_code = status.HTTP_404_NOT_FOUND


class ProductUnavailableError(OrderFlowError):
    """Product exists but has been soft-deleted."""

    status_code = status.HTTP_410_GONE

    def __init__(self, title: str | None):
        super().__init__(f"Product '{title or 'Item'}' is no longer available")


class InsufficientStockError(OrderFlowError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, title: str, remaining: int, message: str | None = None):
        self.title = title
        self.remaining = remaining
        super().__init__(
            message or f"Insufficient stock for: {title} (only {remaining} left)"
        )


class SignatureMismatchError(OrderFlowError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str = "Invalid signature"):
        super().__init__(detail)


class InvalidTransitionError(OrderFlowError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, field: str, current: str, new: str):
        self.current = current
        self.new = new
        super().__init__(f"Invalid {field} transition: {current} -> {new}")


class GatewayUnavailableError(OrderFlowError):
    """Gateway credentials are not configured."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "Payment gateway not configured"):
        super().__init__(detail)


class GatewayError(OrderFlowError):
    """Transport failure or error response from the gateway."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
