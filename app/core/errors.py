"""
Failure taxonomy for calls made against the catalog platform.

Every remote failure is raised as a ``CatalogError`` subclass tagged with the
stage it happened in, so the storefront form can offer the right retry.
"""
from enum import Enum
from typing import Any, Optional


class ErrorStage(str, Enum):
    VARIANT = "variant"
    CART = "cart"
    UNKNOWN = "unknown"


class CatalogError(Exception):
    """Base class for catalog platform failures."""

    status_code = 500
    default_message = "Catalog request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        stage: ErrorStage = ErrorStage.VARIANT,
        details: Any = None,
    ):
        self.message = message or self.default_message
        self.stage = stage
        self.details = details
        super().__init__(self.message)


class CatalogTransportError(CatalogError):
    default_message = "Could not reach the catalog platform"


class CatalogResponseStatusError(CatalogError):
    default_message = "Catalog platform returned an error status"

    def __init__(self, status: int, message: Optional[str] = None, **kwargs):
        self.status = status
        super().__init__(message or f"Catalog platform returned HTTP {status}", **kwargs)


class CatalogMalformedResponseError(CatalogError):
    default_message = "Catalog response could not be parsed"


class CatalogUserError(CatalogError):
    status_code = 400
    default_message = "Catalog platform rejected the request"

    @classmethod
    def from_user_errors(cls, user_errors: list, **kwargs) -> "CatalogUserError":
        message = ", ".join(
            str(e.get("message", e)) if isinstance(e, dict) else str(e)
            for e in user_errors
        )
        return cls(message or None, details=user_errors, **kwargs)


class CatalogMissingPayloadError(CatalogError):
    default_message = "Catalog response is missing the expected result"


class ReservationConflictError(CatalogError):
    status_code = 409
    default_message = "A variant with these dimensions is already being created, please try again"
