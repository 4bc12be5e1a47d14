"""
Error taxonomy shared by the store, the auth layer and the HTTP handlers.

Every error carries the HTTP status it maps to; `app.py` turns them into
`{"error": message}` responses so no backend exception reaches a client.
"""

from __future__ import annotations

from typing import Any, Sequence


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    status_code = 400


class InvalidIdentifier(ValidationError):
    """Raised before any query when an id is malformed for the active backend."""

    def __init__(self, label: str):
        super().__init__(f"Invalid {label} ID")


class UploadError(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404

    @classmethod
    def for_label(cls, label: str) -> "NotFound":
        return cls(f"{label[:1].upper()}{label[1:]} not found")


class DuplicateKey(ApiError):
    status_code = 409

    def __init__(self, message: str = "Duplicate entry. Resource already exists."):
        super().__init__(message)


def describe_validation_errors(errors: Sequence[dict[str, Any]]) -> str:
    """Collapse pydantic/FastAPI error details into one client-facing message."""
    missing = [
        str(err["loc"][-1])
        for err in errors
        if err.get("type") == "missing" and err.get("loc")
    ]
    if missing:
        return "Missing required fields: " + ", ".join(dict.fromkeys(missing))
    if errors:
        return str(errors[0].get("msg", "Invalid request"))
    return "Invalid request"
