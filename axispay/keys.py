"""
Key management module for axispay.

Loads this system's RSA private key and the bank's RSA public key from a
certificate store, and holds them for the life of the process behind a
thread-safe, load-once service.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from .config import Settings, load_settings
from .errors import ConfigurationError, KeyLoadError
from .logging_config import audit_log
from .util import sha256_hex

logger = logging.getLogger(__name__)

PKCS12_SUFFIXES = (".p12", ".pfx")


def key_thumbprint(public_key: rsa.RSAPublicKey) -> str:
    """Short SHA-256 thumbprint of a public key (SPKI DER). Safe to log."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return sha256_hex(der)[:16]


@dataclass(frozen=True)
class KeyMaterial:
    """
    The two key pairs the envelope needs.

    The private key signs outbound envelopes (RS256) and unwraps inbound
    content keys (RSA-OAEP-256). The counterparty public key wraps outbound
    content keys and verifies inbound signatures.
    """
    private_key: rsa.RSAPrivateKey
    counterparty_public_key: rsa.RSAPublicKey
    client_certificate: Optional[x509.Certificate] = None
    counterparty_certificate: Optional[x509.Certificate] = None

    @property
    def key_id(self) -> str:
        return key_thumbprint(self.private_key.public_key())

    @property
    def counterparty_key_id(self) -> str:
        return key_thumbprint(self.counterparty_public_key)

    def private_key_pem(self) -> bytes:
        """Unencrypted PKCS#8 PEM of the private key."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def client_certificate_pem(self) -> Optional[bytes]:
        if self.client_certificate is None:
            return None
        return self.client_certificate.public_bytes(serialization.Encoding.PEM)


class KeyProvider(ABC):
    """Abstract source of key material."""

    @abstractmethod
    def load(self) -> KeyMaterial:
        """
        Read and parse the key material.

        Raises:
            KeyLoadError: store unreadable, bad passphrase or missing key
        """
        pass


def _read_bytes(path: str, what: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise KeyLoadError(f"Cannot read {what}", path=path) from e


def _require_rsa_private(key, path: str) -> rsa.RSAPrivateKey:
    if key is None:
        raise KeyLoadError("No private key entry found", path=path)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyLoadError("Private key is not an RSA key", path=path)
    return key


def load_certificate(data: bytes) -> x509.Certificate:
    """Parse a PEM or DER X.509 certificate."""
    if b"-----BEGIN CERTIFICATE-----" in data:
        return x509.load_pem_x509_certificate(data)
    return x509.load_der_x509_certificate(data)


def load_counterparty_key(path: str) -> Tuple[rsa.RSAPublicKey, Optional[x509.Certificate]]:
    """
    Load the bank's public key from its certificate (PEM or DER) or from a
    bare PUBLIC KEY PEM.
    """
    data = _read_bytes(path, "counterparty certificate")
    certificate = None
    try:
        if b"-----BEGIN PUBLIC KEY-----" in data:
            public_key = serialization.load_pem_public_key(data)
        else:
            certificate = load_certificate(data)
            public_key = certificate.public_key()
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyLoadError("Cannot parse counterparty certificate", path=path) from e

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise KeyLoadError("Counterparty key is not an RSA key", path=path)
    return public_key, certificate


class Pkcs12KeyProvider(KeyProvider):
    """
    Key provider backed by a PKCS#12 store (.p12/.pfx) holding the client
    private key and certificate, plus the bank's certificate file.
    """

    def __init__(self, p12_path: str, p12_password: str, counterparty_cert_path: str):
        self._p12_path = p12_path
        self._p12_password = p12_password
        self._counterparty_cert_path = counterparty_cert_path

    def load(self) -> KeyMaterial:
        data = _read_bytes(self._p12_path, "certificate store")
        password = self._p12_password.encode("utf-8") if self._p12_password else None
        try:
            key, certificate, _ = pkcs12.load_key_and_certificates(data, password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyLoadError(
                "Cannot open certificate store (wrong passphrase or corrupt file)",
                path=self._p12_path,
            ) from e

        private_key = _require_rsa_private(key, self._p12_path)
        public_key, counterparty_cert = load_counterparty_key(self._counterparty_cert_path)
        return KeyMaterial(
            private_key=private_key,
            counterparty_public_key=public_key,
            client_certificate=certificate,
            counterparty_certificate=counterparty_cert,
        )


class PemKeyProvider(KeyProvider):
    """
    Key provider backed by a PEM private key (plaintext or passphrase
    protected), an optional client certificate and the bank's certificate.
    """

    def __init__(
        self,
        private_key_path: str,
        passphrase: str,
        counterparty_cert_path: str,
        client_cert_path: Optional[str] = None,
    ):
        self._private_key_path = private_key_path
        self._passphrase = passphrase
        self._counterparty_cert_path = counterparty_cert_path
        self._client_cert_path = client_cert_path

    def load(self) -> KeyMaterial:
        data = _read_bytes(self._private_key_path, "private key")
        password = self._passphrase.encode("utf-8") if self._passphrase else None
        try:
            key = serialization.load_pem_private_key(data, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyLoadError(
                "Cannot open private key (wrong passphrase or corrupt file)",
                path=self._private_key_path,
            ) from e

        private_key = _require_rsa_private(key, self._private_key_path)

        certificate = None
        if self._client_cert_path:
            cert_data = _read_bytes(self._client_cert_path, "client certificate")
            try:
                certificate = load_certificate(cert_data)
            except ValueError as e:
                raise KeyLoadError("Cannot parse client certificate", path=self._client_cert_path) from e

        public_key, counterparty_cert = load_counterparty_key(self._counterparty_cert_path)
        return KeyMaterial(
            private_key=private_key,
            counterparty_public_key=public_key,
            client_certificate=certificate,
            counterparty_certificate=counterparty_cert,
        )


class StaticKeyProvider(KeyProvider):
    """Key provider returning already-parsed material."""

    def __init__(self, material: KeyMaterial):
        self._material = material

    def load(self) -> KeyMaterial:
        return self._material


class KeyMaterialService:
    """
    Process-wide owner of the loaded key material.

    The first caller of initialize() (or get()) loads the store; concurrent
    callers during that window wait on the lock and reuse the result, so the
    store is parsed at most once. Reads after that take no lock.
    """

    def __init__(self, provider: KeyProvider):
        self._provider = provider
        self._lock = threading.Lock()
        self._material: Optional[KeyMaterial] = None

    @property
    def initialized(self) -> bool:
        return self._material is not None

    def initialize(self) -> KeyMaterial:
        """Load the key material once; later calls return the cached value."""
        material = self._material
        if material is not None:
            return material

        with self._lock:
            if self._material is None:
                material = self._provider.load()
                audit_log.key_material_loaded(material.key_id, material.counterparty_key_id)
                self._material = material
            return self._material

    def get(self) -> KeyMaterial:
        return self.initialize()

    def shutdown(self) -> None:
        """Drop the cached key material. A later get() reloads it."""
        with self._lock:
            self._material = None


def get_key_provider(settings: Settings) -> KeyProvider:
    """
    Factory function to create the key provider the settings describe.

    A configured PKCS#12 store wins over a PEM private key.
    """
    if not settings.bank_cert_path:
        raise ConfigurationError("AXISPAY_BANK_CERT_PATH is required")

    if settings.client_p12_path:
        if not settings.client_p12_path.lower().endswith(PKCS12_SUFFIXES):
            logger.warning("Certificate store does not have a .p12/.pfx suffix; reading as PKCS#12")
        return Pkcs12KeyProvider(
            p12_path=settings.client_p12_path,
            p12_password=settings.client_p12_password,
            counterparty_cert_path=settings.bank_cert_path,
        )

    if settings.private_key_path:
        return PemKeyProvider(
            private_key_path=settings.private_key_path,
            passphrase=settings.private_key_passphrase,
            counterparty_cert_path=settings.bank_cert_path,
            client_cert_path=settings.client_cert_path or None,
        )

    raise ConfigurationError("Either AXISPAY_CLIENT_P12_PATH or AXISPAY_PRIVATE_KEY_PATH is required")


# ============================================================
# Default process-wide service
# ============================================================

_default_service: Optional[KeyMaterialService] = None
_default_lock = threading.Lock()


def get_default_key_service(settings: Optional[Settings] = None) -> KeyMaterialService:
    """Return the process-wide key service, creating it on first use."""
    global _default_service
    with _default_lock:
        if _default_service is None:
            _default_service = KeyMaterialService(get_key_provider(settings or load_settings()))
        return _default_service


def reset_default_key_service() -> None:
    """Shut down and forget the process-wide key service."""
    global _default_service
    with _default_lock:
        if _default_service is not None:
            _default_service.shutdown()
        _default_service = None
