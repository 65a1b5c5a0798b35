"""Domain exceptions shared by the booking services and HTTP layer."""
from __future__ import annotations


class SalonBookError(Exception):
    """Base error rendered as ``{"error": ..., "message": ...}``."""

    status_code = 400
    error = "bad_request"
    message = "The request could not be processed."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "message": self.message}


class ValidationError(SalonBookError):
    error = "invalid_payload"
    message = "Invalid request payload."


class NotFoundError(SalonBookError):
    status_code = 404
    error = "not_found"
    message = "Resource not found."


class InvalidTransition(SalonBookError):
    status_code = 409
    error = "invalid_transition"
    message = "This status change is not allowed."


class PaymentError(SalonBookError):
    """The payment processor could not authorize the payment."""

    status_code = 502
    error = "payment_error"
    message = "An error occurred while processing the payment."


class PaymentsUnavailable(PaymentError):
    status_code = 500
    error = "server_error"
    message = "Payments are not currently available. Please contact support."
