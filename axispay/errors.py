"""
Error taxonomy for axispay.

Every error raised by the envelope pipeline derives from AxisPayError and
carries a stable ``kind`` code, a ``retryable`` flag and an optional
correlation id. Messages never include payload values.
"""

from typing import Optional


class AxisPayError(Exception):
    """Base class for all axispay errors."""

    kind = "AXISPAY_ERROR"
    retryable = False

    def __init__(self, message: str = "", correlation_id: Optional[str] = None):
        self.message = message or self.kind
        self.correlation_id = correlation_id
        super().__init__(self.message)

    def with_correlation_id(self, correlation_id: str) -> "AxisPayError":
        """Attach a correlation id if none is set yet; returns self."""
        if not self.correlation_id:
            self.correlation_id = correlation_id
        return self

    def to_dict(self) -> dict:
        return {"error": self.kind, "correlation_id": self.correlation_id}


class KeyLoadError(AxisPayError):
    """Certificate store unreadable, bad passphrase or missing key entry."""

    kind = "KEY_LOAD_FAILED"

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{message} ({path})"
        super().__init__(message)


class ChecksumMismatchError(AxisPayError):
    """Recomputed checksum disagrees with the value stored in the body."""

    kind = "CHECKSUM_MISMATCH"


class SignatureInvalidError(AxisPayError):
    """Inbound token signature did not verify."""

    kind = "SIGNATURE_INVALID"


class DecryptionError(AxisPayError):
    """Inbound content failed its integrity check or uses a disallowed algorithm."""

    kind = "DECRYPTION_FAILED"


class MalformedPayloadError(AxisPayError):
    """Decrypted content is not valid JSON. The raw text is never attached."""

    kind = "MALFORMED_PAYLOAD"


class ValidationError(AxisPayError):
    """Raised when input validation fails."""

    kind = "VALIDATION_FAILED"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class ConfigurationError(AxisPayError):
    """Missing or invalid settings."""

    kind = "CONFIGURATION_INVALID"


class TransportError(AxisPayError):
    """Network failure or non-2xx response from the bank."""

    kind = "TRANSPORT_FAILED"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
        timeout: bool = False,
        correlation_id: Optional[str] = None,
    ):
        self.status_code = status_code
        self.retryable = retryable
        self.timeout = timeout
        super().__init__(message, correlation_id=correlation_id)
