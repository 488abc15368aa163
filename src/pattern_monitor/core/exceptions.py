"""
Pattern Monitor Domain-Specific Exceptions
==========================================

Exception Hierarchy:
    PatternMonitorError (base)
    ├── RecoverableError (transient, redelivery may succeed)
    ├── IrrecoverableError (permanent, retrying cannot help)
    ├── ConfigurationError
    ├── EncodeError
    │   ├── ParseError          (body is not valid JSON)
    │   └── ShapeError          (valid JSON, but not an object)
    ├── VectorError
    │   ├── DimensionMismatchError
    │   ├── VectorOperationError
    │   └── SerializeError
    ├── StoreError
    │   ├── NoSuchStoreError    (named bucket does not exist)
    │   ├── AccessDeniedError
    │   └── StoreOtherError
    ├── RetrievalError
    └── MessagingError      (pub/sub subscribe or publish failed)

Usage Guidelines:
    - Parse/shape errors are recovered by the handler (logged, message acked)
    - Store and serialize errors propagate to the host for redelivery
    - Always include context in error messages
"""

from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """Categories for error classification."""
    ENCODING = "ENCODING"
    VECTOR = "VECTOR"
    STORE = "STORE"
    CONFIG = "CONFIG"
    RETRIEVAL = "RETRIEVAL"
    MESSAGING = "MESSAGING"
    SYSTEM = "SYSTEM"


class PatternMonitorError(Exception):
    """
    Base exception for all pattern-monitor errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        context: Additional context about the error
        recoverable: Whether redelivering the message may succeed
    """

    error_code: str = "PATTERN_MONITOR_ERROR"
    recoverable: bool = True
    category: ErrorCategory = ErrorCategory.SYSTEM

    def __init__(
        self,
        message: str,
        context: Optional[dict] = None,
        error_code: Optional[str] = None,
        recoverable: Optional[bool] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        if error_code is not None:
            self.error_code = error_code
        if recoverable is not None:
            self.recoverable = recoverable

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to a dictionary for structured logs."""
        result = {
            "error": self.message,
            "code": self.error_code,
            "category": self.category.value,
            "recoverable": self.recoverable,
        }
        if self.context:
            result["context"] = self.context
        return result


class RecoverableError(PatternMonitorError):
    """Transient errors that may succeed when the host redelivers."""
    recoverable = True


class IrrecoverableError(PatternMonitorError):
    """Permanent errors; redelivering the same message cannot fix them."""
    recoverable = False


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(IrrecoverableError):
    """Raised when configuration is invalid or missing."""
    error_code = "CONFIGURATION_ERROR"
    category = ErrorCategory.CONFIG

    def __init__(self, config_key: str, reason: str, context: Optional[dict] = None):
        ctx = {"config_key": config_key}
        if context:
            ctx.update(context)
        super().__init__(f"Configuration error for '{config_key}': {reason}", ctx)
        self.config_key = config_key


# =============================================================================
# Encoding Errors
# =============================================================================

class EncodeError(IrrecoverableError):
    """Base exception for message-body encoding failures."""
    error_code = "ENCODE_ERROR"
    category = ErrorCategory.ENCODING


class ParseError(EncodeError):
    """Raised when the message body is not syntactically valid JSON."""
    error_code = "PARSE_ERROR"

    def __init__(self, reason: str, context: Optional[dict] = None):
        super().__init__(f"JSON parse error: {reason}", context)
        self.reason = reason


class ShapeError(EncodeError):
    """Raised when the message body is valid JSON but not a JSON object."""
    error_code = "SHAPE_ERROR"

    def __init__(self, actual_type: str, context: Optional[dict] = None):
        ctx = {"actual_type": actual_type}
        if context:
            ctx.update(context)
        super().__init__(f"message body is not a JSON object (got {actual_type})", ctx)
        self.actual_type = actual_type


# =============================================================================
# Vector Errors
# =============================================================================

class VectorError(IrrecoverableError):
    """Base exception for hypervector operations."""
    error_code = "VECTOR_ERROR"
    category = ErrorCategory.VECTOR


class DimensionMismatchError(VectorError):
    """Raised when vector dimensions do not match."""
    error_code = "DIMENSION_MISMATCH_ERROR"

    def __init__(self, expected: int, actual: int, operation: str = "operation", context: Optional[dict] = None):
        ctx = {"expected": expected, "actual": actual, "operation": operation}
        if context:
            ctx.update(context)
        super().__init__(
            f"Dimension mismatch in {operation}: expected {expected}, got {actual}",
            ctx
        )
        self.expected = expected
        self.actual = actual
        self.operation = operation


class VectorOperationError(VectorError):
    """Raised when a vector operation receives unusable input."""
    error_code = "VECTOR_OPERATION_ERROR"

    def __init__(self, operation: str, reason: str, context: Optional[dict] = None):
        ctx = {"operation": operation}
        if context:
            ctx.update(context)
        super().__init__(f"Vector operation '{operation}' failed: {reason}", ctx)
        self.operation = operation


class SerializeError(VectorError):
    """Raised when a vector cannot be encoded to or decoded from bytes."""
    error_code = "SERIALIZE_ERROR"

    def __init__(self, operation: str, reason: str, context: Optional[dict] = None):
        ctx = {"operation": operation}
        if context:
            ctx.update(context)
        super().__init__(f"vector {operation} error: {reason}", ctx)
        self.operation = operation


# =============================================================================
# Store Errors
# =============================================================================

class StoreError(PatternMonitorError):
    """Base exception for key-value store failures."""
    error_code = "STORE_ERROR"
    category = ErrorCategory.STORE


class NoSuchStoreError(IrrecoverableError, StoreError):
    """Raised when the named bucket does not exist."""
    error_code = "NO_SUCH_STORE"

    def __init__(self, bucket: str, context: Optional[dict] = None):
        ctx = {"bucket": bucket}
        if context:
            ctx.update(context)
        super().__init__("keyvalue error: no such store", ctx)
        self.bucket = bucket


class AccessDeniedError(IrrecoverableError, StoreError):
    """Raised when the store rejects the operation as unauthorized."""
    error_code = "ACCESS_DENIED"

    def __init__(self, bucket: str, context: Optional[dict] = None):
        ctx = {"bucket": bucket}
        if context:
            ctx.update(context)
        super().__init__("keyvalue error: access denied", ctx)
        self.bucket = bucket


class StoreOtherError(RecoverableError, StoreError):
    """Raised for every other backend failure (connection, timeout, protocol)."""
    error_code = "STORE_OTHER"

    def __init__(self, detail: str, context: Optional[dict] = None):
        super().__init__(f"keyvalue error: {detail}", context)
        self.detail = detail


# =============================================================================
# Retrieval Errors
# =============================================================================

class RetrievalError(IrrecoverableError):
    """Raised when the inverted index is misused or a search fails."""
    error_code = "RETRIEVAL_ERROR"
    category = ErrorCategory.RETRIEVAL

    def __init__(self, operation: str, reason: str, context: Optional[dict] = None):
        ctx = {"operation": operation}
        if context:
            ctx.update(context)
        super().__init__(f"Retrieval '{operation}' failed: {reason}", ctx)
        self.operation = operation


# =============================================================================
# Messaging Errors
# =============================================================================

class MessagingError(RecoverableError):
    """Raised when subscribing to or publishing on the message bus fails."""
    error_code = "MESSAGING_ERROR"
    category = ErrorCategory.MESSAGING

    def __init__(self, operation: str, reason: str, context: Optional[dict] = None):
        ctx = {"operation": operation}
        if context:
            ctx.update(context)
        super().__init__(f"messaging error: {operation} failed: {reason}", ctx)
        self.operation = operation


__all__ = [
    "ErrorCategory",
    "PatternMonitorError",
    "RecoverableError",
    "IrrecoverableError",
    "ConfigurationError",
    "EncodeError",
    "ParseError",
    "ShapeError",
    "VectorError",
    "DimensionMismatchError",
    "VectorOperationError",
    "SerializeError",
    "StoreError",
    "NoSuchStoreError",
    "AccessDeniedError",
    "StoreOtherError",
    "RetrievalError",
    "MessagingError",
]
