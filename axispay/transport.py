"""
HTTPS transport to the bank gateway.

Sends envelope tokens as ``text/plain`` over mutual TLS with the bank's
header set. Only connection establishment is retried; a request that reached
the bank is never replayed.
"""

import logging
import os
import shutil
import tempfile
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import Settings, is_production
from .errors import ConfigurationError, TransportError
from .keys import KeyMaterialService
from .logging_config import audit_log
from .util import generate_uuid, now_epoch_millis

logger = logging.getLogger(__name__)

CONTENT_TYPE = "text/plain"


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)


def build_headers(
    settings: Settings,
    correlation_id: Optional[str] = None,
    epoch_millis: Optional[int] = None,
) -> Dict[str, str]:
    """
    Headers the bank requires on every call.

    Args:
        settings: Provides channel, service and client credentials
        correlation_id: Value for x-fapi-uuid (generated when omitted)
        epoch_millis: Value for x-fapi-epoch-millis (now when omitted)
    """
    return {
        "Content-Type": CONTENT_TYPE,
        "x-fapi-epoch-millis": str(epoch_millis if epoch_millis is not None else now_epoch_millis()),
        "x-fapi-channel-id": settings.channel_id,
        "x-fapi-uuid": correlation_id or generate_uuid(),
        "x-fapi-serviceId": settings.service_id,
        "x-fapi-serviceVersion": settings.service_version,
        "X-IBM-Client-Id": settings.client_id,
        "X-IBM-Client-Secret": settings.client_secret,
    }


def connect_retry(retries: int, backoff: float) -> Retry:
    """Retry policy covering connection errors only."""
    return Retry(
        total=retries,
        connect=retries,
        read=0,
        status=0,
        other=0,
        backoff_factor=backoff,
        allowed_methods=None,
        raise_on_status=False,
    )


class AxisTransport:
    """
    requests.Session wrapper bound to one Settings instance.

    The TLS client certificate comes from AXISPAY_TLS_CERT_PATH and
    AXISPAY_TLS_KEY_PATH when both are set; otherwise it is written from the
    loaded key material into a private temporary directory on first use and
    removed on close().
    """

    def __init__(
        self,
        settings: Settings,
        key_service: Optional[KeyMaterialService] = None,
        session: Optional[requests.Session] = None,
    ):
        if settings.tls_verify is False and is_production(settings):
            raise ConfigurationError("TLS verification cannot be disabled in production")
        if settings.tls_verify is False:
            audit_log.security_event("tls_verification_disabled", severity="high", env=settings.env)

        self._settings = settings
        self._key_service = key_service
        self._lock = threading.Lock()
        self._tempdir: Optional[str] = None
        self._cert_files: Optional[Tuple[str, str]] = None

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=connect_retry(settings.http_retries, settings.http_backoff))
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self._session = session

    @property
    def session(self) -> requests.Session:
        return self._session

    def client_cert(self) -> Optional[Tuple[str, str]]:
        """(cert, key) file paths for mutual TLS, or None when unavailable."""
        if self._settings.tls_cert_path and self._settings.tls_key_path:
            return (self._settings.tls_cert_path, self._settings.tls_key_path)
        if self._key_service is None:
            return None

        with self._lock:
            if self._cert_files is None:
                material = self._key_service.get()
                cert_pem = material.client_certificate_pem()
                if cert_pem is None:
                    logger.warning("No client certificate available; sending without mutual TLS")
                    return None
                self._tempdir = tempfile.mkdtemp(prefix="axispay-tls-")
                cert_path = os.path.join(self._tempdir, "client.crt")
                key_path = os.path.join(self._tempdir, "client.key")
                _write_private(cert_path, cert_pem)
                _write_private(key_path, material.private_key_pem())
                self._cert_files = (cert_path, key_path)
            return self._cert_files

    def post(self, url: str, token: str, headers: Dict[str, str]) -> TransportResponse:
        """
        POST an envelope token.

        Raises:
            TransportError: connection failure, timeout or non-2xx status
        """
        try:
            response = self._session.post(
                url,
                data=token.encode("ascii"),
                headers=headers,
                timeout=self._settings.http_timeout,
                verify=self._settings.tls_verify,
                cert=self.client_cert(),
            )
        except requests.exceptions.Timeout as e:
            raise TransportError("Request to bank timed out", retryable=True, timeout=True) from e
        except requests.exceptions.ConnectionError as e:
            raise TransportError("Cannot connect to bank", retryable=True) from e
        except requests.exceptions.RequestException as e:
            raise TransportError("Request to bank failed") from e

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"Bank returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return TransportResponse(
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
        )

    def close(self) -> None:
        self._session.close()
        with self._lock:
            if self._tempdir is not None:
                shutil.rmtree(self._tempdir, ignore_errors=True)
            self._tempdir = None
            self._cert_files = None

    def __enter__(self) -> "AxisTransport":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _write_private(path: str, data: bytes) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
