"""
Utility functions for axispay.

Provides encoding, hashing, time and masking helpers shared by the
envelope pipeline and the API client.
"""

import hashlib
import hmac
import time
import uuid
from typing import Union


def md5_hex(data: Union[bytes, str]) -> str:
    """Compute MD5 and return lowercase hex. Used for the bank checksum only."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def sha256_hex(data: Union[bytes, str]) -> str:
    """Compute SHA-256 hash and return as hex string."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def now_epoch_millis() -> int:
    """Get current Unix time in milliseconds."""
    return int(time.time() * 1000)


def generate_uuid() -> str:
    """Generate a random UUID4 string (hyphenated)."""
    return str(uuid.uuid4())


def constant_time_compare(a: Union[str, bytes], b: Union[str, bytes]) -> bool:
    """
    Compare two strings/bytes in constant time to prevent timing attacks.
    """
    if isinstance(a, str):
        a = a.encode('utf-8')
    if isinstance(b, str):
        b = b.encode('utf-8')
    return hmac.compare_digest(a, b)


def mask_sensitive(value: str, visible_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only the last N characters.
    Useful for logging account numbers.
    """
    if len(value) <= visible_chars:
        return '*' * len(value)
    return '*' * (len(value) - visible_chars) + value[-visible_chars:]


def parse_bool(value: str, default: bool = False) -> bool:
    """Interpret an environment flag."""
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
