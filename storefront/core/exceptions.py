from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base error rendered to clients as ``{"error": message, **extra}``."""

    status_code: int = 400

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(StorefrontError):
    """Missing or malformed request data (coupon code, pincode, payload)."""


class CouponRejected(StorefrontError):
    """Coupon absent or not eligible for this cart / user."""


class NotFound(StorefrontError):
    status_code = 404


class UpstreamUnavailable(StorefrontError):
    """A third-party API (carrier, payment gateway) failed or timed out."""

    status_code = 502
