# Overview: Error taxonomy surfaced through the RPC envelope.

"""
Every failure a caller can observe is an ArbError subclass.

The RPC boundary turns these into {"status": "error", "code", "message"}.
`code` is stable and meant for programmatic matching; `message` is for humans
and may change wording.
"""

from __future__ import annotations


class ArbError(Exception):
    """Base class for errors reported to RPC callers."""
    code = "InternalError"
    http_status = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details or {}

    def to_envelope(self) -> dict:
        envelope = {"status": "error", "code": self.code, "message": self.message}
        if self.details:
            envelope["details"] = self.details
        return envelope


# --- Licensing ---

class InvalidToken(ArbError):
    code = "InvalidToken"
    http_status = 401
    default_message = "Invalid Token"


class TokenInactive(ArbError):
    code = "TokenInactive"
    http_status = 403
    default_message = "Token is inactive"


class TokenExpired(ArbError):
    code = "TokenExpired"
    http_status = 403
    default_message = "Token has expired"


class DeviceMismatch(ArbError):
    code = "DeviceMismatch"
    http_status = 403
    default_message = "Access Denied: Token is locked to another device."


class TokenNotFound(ArbError):
    code = "TokenNotFound"
    http_status = 404
    default_message = "Token not found"


class InvalidDuration(ArbError):
    code = "InvalidDuration"
    default_message = "Unknown plan duration"


# --- Operator auth ---

class UnauthorizedAdminAction(ArbError):
    code = "UnauthorizedAdminAction"
    http_status = 401
    default_message = "Unauthorized Admin Action"


class InvalidAdminCredentials(ArbError):
    code = "InvalidAdminCredentials"
    http_status = 401
    default_message = "Invalid Admin Username or Password"


# --- Input ---

class ValidationError(ArbError):
    code = "ValidationError"
    default_message = "Invalid request payload"


class MissingFields(ArbError):
    code = "MissingFields"
    default_message = "Missing fields"


# --- Orders ---

class OrderNotFound(ArbError):
    code = "OrderNotFound"
    http_status = 404
    default_message = "Order not found"


class InvalidOrderAction(ArbError):
    code = "InvalidOrderAction"
    default_message = "Order action must be APPROVE or REJECT"


class OrderAlreadyProcessed(ArbError):
    code = "OrderAlreadyProcessed"
    http_status = 409
    default_message = "Order has already been processed"


# --- Ledger ---

class ProductNotFound(ArbError):
    code = "ProductNotFound"
    http_status = 404
    default_message = "Product not found"


class InvalidProductAction(ArbError):
    code = "InvalidProductAction"
    default_message = "Product action must be ADD, UPDATE or DELETE"


class CustomerNotFound(ArbError):
    code = "CustomerNotFound"
    http_status = 404
    default_message = "Customer not found"


class CustomerNameRequired(ArbError):
    code = "CustomerNameRequired"
    default_message = "Customer Name is required for Debt"


class InvalidPaymentType(ArbError):
    code = "InvalidPaymentType"
    default_message = "Payment type must be CASH or DEBT"


class InvalidCart(ArbError):
    code = "InvalidCart"
    default_message = "Cart is empty or malformed"


class InvalidAmount(ArbError):
    code = "InvalidAmount"
    default_message = "Amount must be a positive whole number"


# --- Dispatch ---

class UnknownAction(ArbError):
    code = "UnknownAction"
    http_status = 404
    default_message = "Unknown action"


class LockTimeout(ArbError):
    code = "LockTimeout"
    http_status = 503
    default_message = "Server busy, please retry"
