from __future__ import annotations

from typing import Any


class SalesboardError(Exception):
    """Base error for salesboard."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(SalesboardError):
    """Rejected write: out-of-range weight, empty required name, bad transition."""

    code = "VALIDATION_ERROR"


class CrossTenantReferenceError(SalesboardError):
    """A foreign key would point at a row owned by another tenant."""

    code = "CROSS_TENANT_REFERENCE"


class NotFoundError(SalesboardError):
    """Target entity is missing or outside the caller's tenant."""

    code = "NOT_FOUND"


class ReferentialConflictError(SalesboardError):
    """Deletion blocked by live, non-cascaded dependents."""

    code = "REFERENTIAL_CONFLICT"


class DatabaseError(SalesboardError):
    """Database layer failure."""

    code = "DATABASE_ERROR"


def error_payload(exc: SalesboardError) -> dict[str, Any]:
    # Mirror the API error envelope: machine-readable code plus human message.
    detail: dict[str, Any] = {"code": exc.code, "message": exc.message}
    if exc.details:
        detail["details"] = {key: str(value) for key, value in exc.details.items()}
    return {"error": detail}
