"""
Secure envelope codec.

Outbound bodies are encrypted for the bank (JWE, RSA-OAEP-256 + A256GCM) and
the resulting compact JWE text is signed with this system's key (JWS, RS256).
Inbound tokens go the other way: verify the bank's signature first, then
decrypt the inner JWE. Nothing is decrypted before the signature checks out.
"""

import json
import logging
import threading
from typing import Any, Iterable, Optional, Tuple

from jose import jwe, jws
from jose.exceptions import JOSEError
from jose.utils import base64url_decode, base64url_encode

from .errors import (
    AxisPayError,
    DecryptionError,
    MalformedPayloadError,
    SignatureInvalidError,
)
from .keys import KeyMaterialService, get_default_key_service
from .logging_config import audit_log

logger = logging.getLogger(__name__)

SIGNING_ALGORITHM = "RS256"
KEY_ALGORITHM = "RSA-OAEP-256"
CONTENT_ALGORITHM = "A256GCM"


def serialize_body(body: Any) -> bytes:
    """Compact JSON, key order preserved, UTF-8."""
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _segments(token: str) -> int:
    return len(token.split("."))


def _is_canonical(token: str) -> bool:
    """Every segment must re-encode to itself; spare padding bits must be zero."""
    try:
        for segment in token.split("."):
            raw = segment.encode("ascii")
            if base64url_encode(base64url_decode(raw)) != raw:
                return False
    except ValueError:
        return False
    return True


class SecureEnvelopeCodec:
    """
    Encrypt-then-sign / verify-then-decrypt over one KeyMaterialService.

    The inbound allowlists are enforced against the protected headers before
    any cryptographic work, so a token announcing any other algorithm is
    rejected even if it would otherwise verify.
    """

    def __init__(
        self,
        key_service: KeyMaterialService,
        inbound_signing_algorithms: Iterable[str] = (SIGNING_ALGORITHM,),
        inbound_key_algorithms: Iterable[str] = (KEY_ALGORITHM,),
        inbound_content_algorithms: Iterable[str] = (CONTENT_ALGORITHM,),
    ):
        self._key_service = key_service
        self._signing_algorithms: Tuple[str, ...] = tuple(inbound_signing_algorithms)
        self._key_algorithms: Tuple[str, ...] = tuple(inbound_key_algorithms)
        self._content_algorithms: Tuple[str, ...] = tuple(inbound_content_algorithms)

    @property
    def key_service(self) -> KeyMaterialService:
        return self._key_service

    def seal_and_sign(self, body: Any) -> str:
        """
        Encrypt ``body`` for the bank and sign the ciphertext.

        Returns:
            Compact JWS text, used verbatim as the HTTP request body
        """
        material = self._key_service.get()
        encrypted = jwe.encrypt(
            serialize_body(body),
            material.counterparty_public_key,
            encryption=CONTENT_ALGORITHM,
            algorithm=KEY_ALGORITHM,
        )
        if isinstance(encrypted, str):
            encrypted = encrypted.encode("ascii")
        return jws.sign(encrypted, material.private_key, algorithm=SIGNING_ALGORITHM)

    def verify_and_open(self, token: str) -> Any:
        """
        Verify the bank's signature on ``token`` and decrypt its payload.

        Raises:
            SignatureInvalidError: signature, structure or signing algorithm rejected
            DecryptionError: inner token malformed, disallowed or fails to decrypt
            MalformedPayloadError: plaintext is not JSON
        """
        try:
            return self._open(token)
        except AxisPayError as e:
            audit_log.envelope_rejected(e.kind)
            raise

    def _open(self, token: str) -> Any:
        if isinstance(token, bytes):
            try:
                token = token.decode("ascii")
            except UnicodeDecodeError:
                raise SignatureInvalidError("Token is not ASCII")
        if not isinstance(token, str):
            raise SignatureInvalidError("Token must be text")
        token = token.strip()

        if _segments(token) != 3:
            raise SignatureInvalidError("Token is not a compact JWS")
        if not _is_canonical(token):
            raise SignatureInvalidError("Token is not canonical base64url")

        try:
            header = jws.get_unverified_header(token)
        except JOSEError as e:
            raise SignatureInvalidError("Unreadable signature header") from e
        if header.get("alg") not in self._signing_algorithms:
            raise SignatureInvalidError("Signing algorithm not allowed")

        material = self._key_service.get()
        try:
            payload = jws.verify(
                token,
                material.counterparty_public_key,
                algorithms=list(self._signing_algorithms),
            )
        except (JOSEError, ValueError) as e:
            raise SignatureInvalidError("Signature verification failed") from e

        try:
            inner = payload.decode("ascii").strip()
        except UnicodeDecodeError as e:
            raise DecryptionError("Signed payload is not a compact JWE") from e
        if _segments(inner) != 5:
            raise DecryptionError("Signed payload is not a compact JWE")
        if not _is_canonical(inner):
            raise DecryptionError("Signed payload is not canonical base64url")

        try:
            inner_header = jwe.get_unverified_header(inner)
        except (JOSEError, ValueError) as e:
            raise DecryptionError("Unreadable encryption header") from e
        if inner_header.get("alg") not in self._key_algorithms:
            raise DecryptionError("Key management algorithm not allowed")
        if inner_header.get("enc") not in self._content_algorithms:
            raise DecryptionError("Content encryption algorithm not allowed")

        try:
            plaintext = jwe.decrypt(inner, material.private_key)
        except (JOSEError, ValueError) as e:
            raise DecryptionError("Decryption failed") from e
        if plaintext is None:
            raise DecryptionError("Decryption failed")

        try:
            return json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            # Plaintext stays off the traceback.
            raise MalformedPayloadError("Decrypted content is not JSON") from None


# ============================================================
# Default codec
# ============================================================

_default_codec: Optional[SecureEnvelopeCodec] = None
_default_lock = threading.Lock()


def get_default_codec() -> SecureEnvelopeCodec:
    """Return the process-wide codec bound to the default key service."""
    global _default_codec
    with _default_lock:
        if _default_codec is None:
            _default_codec = SecureEnvelopeCodec(get_default_key_service())
        return _default_codec


def reset_default_codec() -> None:
    global _default_codec
    with _default_lock:
        _default_codec = None


def seal_and_sign(body: Any, codec: Optional[SecureEnvelopeCodec] = None) -> str:
    """Encrypt and sign ``body`` with the given or default codec."""
    return (codec or get_default_codec()).seal_and_sign(body)


def verify_and_open(token: str, codec: Optional[SecureEnvelopeCodec] = None) -> Any:
    """Verify and decrypt ``token`` with the given or default codec."""
    return (codec or get_default_codec()).verify_and_open(token)
