"""
Domain error taxonomy for the GlobeTrotter API.

Services raise these; the exception handlers in ``globetrotter.main`` turn them
into structured JSON responses. Expected failures carry a kind and a
human-readable message, validation failures additionally carry one entry per
offending field.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError


class GlobeTrotterError(Exception):
    """Base class for all expected domain failures."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "kind": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}')"


class ValidationFailed(GlobeTrotterError):
    status_code = 400
    kind = "validation_failed"

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailed":
        return cls([{"field": field, "message": message}], message=message)

    @classmethod
    def from_pydantic(cls, exc: ValidationError, prefix: str = "") -> "ValidationFailed":
        return cls(errors_from_pydantic(exc.errors(), prefix))

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


class NotFound(GlobeTrotterError):
    status_code = 404
    kind = "not_found"

    def __init__(self, entity: str, message: Optional[str] = None):
        super().__init__(message or f"{entity.replace('_', ' ').capitalize()} not found")
        self.entity = entity

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["entity"] = self.entity
        return body


class Conflict(GlobeTrotterError):
    status_code = 409
    kind = "conflict"


class Forbidden(GlobeTrotterError):
    status_code = 403
    kind = "forbidden"


class Unauthorized(GlobeTrotterError):
    status_code = 401
    kind = "unauthorized"


def errors_from_pydantic(errors, prefix: str = "") -> List[Dict[str, str]]:
    """Flatten pydantic/FastAPI error dicts into ``{field, message}`` pairs."""
    flattened = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc)
        if prefix:
            field = f"{prefix}.{field}" if field else prefix
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        flattened.append({"field": field, "message": message})
    return flattened
