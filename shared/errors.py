"""
Shared error handling for the Catalog Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class CatalogException(Exception):
    """Base exception for catalog services."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(CatalogException):
    """Malformed input, e.g. an item without an identity."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class RepositoryError(CatalogException):
    """Local store failure, normalized at the repository boundary."""

    def __init__(self, message: str = "Repository error", details: Optional[Dict[str, Any]] = None):
        super().__init__("REPOSITORY_ERROR", message, details)


class SourceUnavailableError(CatalogException):
    """Remote provider transport or protocol failure."""

    def __init__(self, service: str, message: str = "Source unavailable", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("SOURCE_UNAVAILABLE", f"{service}: {message}", details)


class NotFoundError(CatalogException):
    """No record exists locally or upstream."""

    def __init__(self, resource: str, identity: str, details: Optional[Dict[str, Any]] = None):
        merged = {"resource": resource, "identity": identity}
        if details:
            merged.update(details)
        super().__init__("NOT_FOUND", f"{resource} '{identity}' not found", merged)


class LookupTimeoutError(CatalogException):
    """Lookup deadline expired before the store read or remote fetch finished."""

    def __init__(self, identity: str, timeout: float):
        super().__init__(
            "LOOKUP_TIMEOUT",
            f"Lookup for '{identity}' exceeded {timeout:g}s",
            {"identity": identity, "timeout_seconds": timeout},
        )
