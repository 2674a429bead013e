"""
axispay: Axis Bank Corporate API Integration Client

Version: 0.3.0

Every request to the bank's corporate payments API travels in a secure
envelope:

    body --checksum--> {"Data": {..., "checksum"}} --JWE--> --JWS--> wire

and every response comes back through the inverse:

    wire --verify JWS--> --decrypt JWE--> {"Data": ...} --verify checksum--> body

A response that fails any step is rejected with a typed error; it is never
passed on as if it were trustworthy.

Usage:
    from axispay import AxisCorporateClient, load_settings

    with AxisCorporateClient(load_settings()) as client:
        result = client.transfer_payment({
            "txnPaymode": "NE",
            "custUniqRef": "INV-2041",
            "txnAmount": "1500.00",
            "beneCode": "VEND001",
            "beneName": "Acme Supplies",
            "beneAccNum": "123456789012",
            "beneIfscCode": "UTIB0000123",
            "valueDate": "2026-01-15",
        })
        print(result.correlation_id, result.data)

    # Checksum only
    from axispay import digest, verify_checksum
    body["checksum"] = digest(body)
    assert verify_checksum(body)
"""

__version__ = "0.3.0"

# Checksum
from .checksum import (
    canonicalize,
    digest,
    verify,
    verify_checksum,
    with_checksum,
    require_valid_checksum,
)

# Envelope
from .envelope import (
    SecureEnvelopeCodec,
    seal_and_sign,
    verify_and_open,
)

# Keys
from .keys import (
    KeyMaterial,
    KeyMaterialService,
    KeyProvider,
    Pkcs12KeyProvider,
    PemKeyProvider,
    StaticKeyProvider,
    get_key_provider,
    get_default_key_service,
)

# Configuration
from .config import Settings, load_settings

# Client
from .client import AxisCorporateClient, ApiResponse

# Errors
from .errors import (
    AxisPayError,
    KeyLoadError,
    ChecksumMismatchError,
    SignatureInvalidError,
    DecryptionError,
    MalformedPayloadError,
    ValidationError,
    ConfigurationError,
    TransportError,
)


__all__ = [
    # Version
    "__version__",

    # Checksum
    "canonicalize",
    "digest",
    "verify",
    "verify_checksum",
    "with_checksum",
    "require_valid_checksum",

    # Envelope
    "SecureEnvelopeCodec",
    "seal_and_sign",
    "verify_and_open",

    # Keys
    "KeyMaterial",
    "KeyMaterialService",
    "KeyProvider",
    "Pkcs12KeyProvider",
    "PemKeyProvider",
    "StaticKeyProvider",
    "get_key_provider",
    "get_default_key_service",

    # Configuration
    "Settings",
    "load_settings",

    # Client
    "AxisCorporateClient",
    "ApiResponse",

    # Errors
    "AxisPayError",
    "KeyLoadError",
    "ChecksumMismatchError",
    "SignatureInvalidError",
    "DecryptionError",
    "MalformedPayloadError",
    "ValidationError",
    "ConfigurationError",
    "TransportError",
]
