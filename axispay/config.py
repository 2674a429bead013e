"""
Configuration module for axispay.

Centralizes all configuration with environment variable support,
validation, and caching.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from .errors import ConfigurationError
from .util import parse_bool

# ============================================================
# Environment Defaults
# ============================================================

ENVIRONMENTS = ("uat", "prod")

DEFAULT_BASE_URLS = {
    "uat": "https://sakshamuat.axisbank.co.in/gateway/api/txb/v3",
    "prod": "",
}

DEFAULT_PATHS = {
    "get_balance": "/acct-recon/get-balance",
    "bene_registration": "/payee-mgmt/beneficiary-registration",
    "bene_enquiry": "/payee-mgmt/beneficiary-enquiry",
    "transfer_payment": "/payments/transfer-payment",
    "get_status": "/acct-recon/get-status",
}

PATH_ENV_VARS = {
    "get_balance": "AXISPAY_PATH_GET_BALANCE",
    "bene_registration": "AXISPAY_PATH_BENE_REGISTRATION",
    "bene_enquiry": "AXISPAY_PATH_BENE_ENQUIRY",
    "transfer_payment": "AXISPAY_PATH_TRANSFER_PAYMENT",
    "get_status": "AXISPAY_PATH_GET_STATUS",
}


@dataclass(frozen=True)
class Settings:
    """Process configuration for the bank integration."""
    env: str = "uat"
    base_url: str = DEFAULT_BASE_URLS["uat"]
    paths: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PATHS))

    # Bank-issued credentials and identifiers
    client_id: str = ""
    client_secret: str = ""
    channel_id: str = ""
    corp_code: str = ""
    user_id: str = ""
    corp_acc_num: str = ""
    service_id: str = ""
    service_version: str = ""

    # Key material
    client_p12_path: str = ""
    client_p12_password: str = ""
    private_key_path: str = ""
    private_key_passphrase: str = ""
    client_cert_path: str = ""
    bank_cert_path: str = ""

    # Transport
    tls_cert_path: str = ""
    tls_key_path: str = ""
    tls_verify: Union[bool, str] = True
    http_timeout: float = 30.0
    http_retries: int = 2
    http_backoff: float = 0.5

    # Behaviour
    verify_response_checksum: bool = True
    callback_aes_key_hex: str = ""
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables."""
        env_vars = os.environ if environ is None else environ
        get = env_vars.get

        env = get("AXISPAY_ENV", "uat").lower()
        if env not in ENVIRONMENTS:
            raise ConfigurationError(f"AXISPAY_ENV must be one of {ENVIRONMENTS}, got {env!r}")

        paths = {
            name: get(var, DEFAULT_PATHS[name])
            for name, var in PATH_ENV_VARS.items()
        }

        try:
            timeout = float(get("AXISPAY_HTTP_TIMEOUT", "30"))
            retries = int(get("AXISPAY_HTTP_RETRIES", "2"))
            backoff = float(get("AXISPAY_HTTP_BACKOFF", "0.5"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid HTTP setting: {e}") from e

        return cls(
            env=env,
            base_url=get("AXISPAY_BASE_URL", DEFAULT_BASE_URLS[env]).rstrip("/"),
            paths=paths,
            client_id=get("AXISPAY_CLIENT_ID", ""),
            client_secret=get("AXISPAY_CLIENT_SECRET", ""),
            channel_id=get("AXISPAY_CHANNEL_ID", ""),
            corp_code=get("AXISPAY_CORP_CODE", ""),
            user_id=get("AXISPAY_USER_ID", ""),
            corp_acc_num=get("AXISPAY_CORP_ACC_NUM", ""),
            service_id=get("AXISPAY_SERVICE_ID", ""),
            service_version=get("AXISPAY_SERVICE_VERSION", ""),
            client_p12_path=get("AXISPAY_CLIENT_P12_PATH", ""),
            client_p12_password=get("AXISPAY_CLIENT_P12_PASSWORD", ""),
            private_key_path=get("AXISPAY_PRIVATE_KEY_PATH", ""),
            private_key_passphrase=get("AXISPAY_PRIVATE_KEY_PASSPHRASE", ""),
            client_cert_path=get("AXISPAY_CLIENT_CERT_PATH", ""),
            bank_cert_path=get("AXISPAY_BANK_CERT_PATH", ""),
            tls_cert_path=get("AXISPAY_TLS_CERT_PATH", ""),
            tls_key_path=get("AXISPAY_TLS_KEY_PATH", ""),
            tls_verify=_parse_tls_verify(get("AXISPAY_TLS_VERIFY", "true")),
            http_timeout=timeout,
            http_retries=retries,
            http_backoff=backoff,
            verify_response_checksum=parse_bool(get("AXISPAY_VERIFY_RESPONSE_CHECKSUM"), default=True),
            callback_aes_key_hex=get("AXISPAY_CALLBACK_AES_KEY_HEX", ""),
            log_level=get("AXISPAY_LOG_LEVEL", "INFO").upper(),
            log_json=parse_bool(get("AXISPAY_LOG_JSON"), default=True),
        )

    def endpoint_url(self, name: str) -> str:
        """Absolute URL of a named bank endpoint."""
        if not self.base_url:
            raise ConfigurationError(f"No base URL configured for environment {self.env!r}")
        try:
            path = self.paths[name]
        except KeyError:
            raise ConfigurationError(f"Unknown endpoint: {name}")
        return self.base_url + path


def _parse_tls_verify(value: str) -> Union[bool, str]:
    """`true`/`false` or a CA bundle path."""
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on", ""):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return value


# ============================================================
# Cached Settings
# ============================================================

@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load settings from the process environment (cached)."""
    return Settings.from_env()


def invalidate_settings_cache() -> None:
    """Forget cached settings so the next load re-reads the environment."""
    load_settings.cache_clear()


# ============================================================
# Validation
# ============================================================

def validate_config(settings: Settings) -> Dict[str, bool]:
    """
    Validate that all configured key and certificate files exist.
    Returns dict of name -> exists.
    """
    paths = {
        "client_p12": settings.client_p12_path,
        "private_key": settings.private_key_path,
        "client_cert": settings.client_cert_path,
        "bank_cert": settings.bank_cert_path,
        "tls_cert": settings.tls_cert_path,
        "tls_key": settings.tls_key_path,
    }
    if isinstance(settings.tls_verify, str):
        paths["tls_ca_bundle"] = settings.tls_verify

    return {name: Path(path).exists() for name, path in paths.items() if path}


# ============================================================
# Feature Flags
# ============================================================

def is_production(settings: Settings) -> bool:
    """Check if running against the production gateway."""
    return settings.env == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("AXISPAY_DEBUG", "").lower() in ("1", "true", "yes")
