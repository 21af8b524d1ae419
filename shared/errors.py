"""
Shared error handling for the metrics push gateway.
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


class GatewayException(Exception):
    """Base exception for gateway errors."""

    status_code = 500

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


class DecodeError(GatewayException):
    """Malformed structured input."""

    status_code = 400

    def __init__(self, message: str = "Decode failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("DECODE_ERROR", message, details)


class ValidationError(GatewayException):
    """Well-formed input with an invalid field."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class StoredObjectDecodeError(DecodeError):
    """A stored object is not a well-formed metric file."""

    status_code = 502


class StoredObjectValidationError(ValidationError):
    """A stored object holds an invalid metric file."""

    status_code = 502


class AuthenticationError(GatewayException):
    """Missing or invalid bearer token."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class StoreError(GatewayException):
    """Object store list/get/put failure."""

    status_code = 502

    def __init__(self, message: str = "Object store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_ERROR", message, details)


class ConfigError(GatewayException):
    """Runtime configuration could not be loaded."""

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIG_ERROR", message, details)
