"""
Legacy callback decryption.

The bank pushes transfer status callbacks as hex-encoded AES-128 ciphertext
under a shared 16-byte key: CBC with the fixed IV 00 01 .. 0f, or ECB on
older channels. Both use PKCS7 padding.
"""

import binascii
import json
import logging
from typing import Any, Dict

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from . import checksum
from .errors import ConfigurationError, DecryptionError, MalformedPayloadError
from .payloads import unwrap_data

logger = logging.getLogger(__name__)

FIXED_IV = bytes(range(16))
MODES = ("cbc", "ecb")


def _key_bytes(key_hex: str) -> bytes:
    try:
        key = bytes.fromhex(key_hex or "")
    except ValueError:
        raise ConfigurationError("Callback AES key must be hex")
    if len(key) != 16:
        raise ConfigurationError("Callback AES key must be 16 bytes (32 hex chars)")
    return key


def _cipher(key_hex: str, mode: str) -> Cipher:
    key = _key_bytes(key_hex)
    if mode == "cbc":
        return Cipher(algorithms.AES(key), modes.CBC(FIXED_IV))
    if mode == "ecb":
        return Cipher(algorithms.AES(key), modes.ECB())
    raise ConfigurationError(f"Unknown callback mode: {mode}")


def _encrypt(plaintext: str, key_hex: str, mode: str) -> str:
    cipher = _cipher(key_hex, mode)
    padder = padding.PKCS7(128).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = cipher.encryptor()
    return (encryptor.update(padded) + encryptor.finalize()).hex()


def _decrypt(hex_ciphertext: str, key_hex: str, mode: str) -> str:
    cipher = _cipher(key_hex, mode)
    try:
        data = binascii.unhexlify((hex_ciphertext or "").strip())
    except (binascii.Error, ValueError) as e:
        raise DecryptionError("Callback payload is not hex") from e
    if not data or len(data) % 16:
        raise DecryptionError("Callback payload is not a whole number of blocks")

    decryptor = cipher.decryptor()
    padded = decryptor.update(data) + decryptor.finalize()
    try:
        unpadder = padding.PKCS7(128).unpadder()
        plain = unpadder.update(padded) + unpadder.finalize()
        return plain.decode("utf-8")
    except ValueError as e:
        # UnicodeDecodeError is a ValueError too
        raise DecryptionError("Callback payload failed to decrypt") from e


def encrypt_hex_aes128_cbc(plaintext: str, key_hex: str) -> str:
    return _encrypt(plaintext, key_hex, "cbc")


def decrypt_hex_aes128_cbc(hex_ciphertext: str, key_hex: str) -> str:
    return _decrypt(hex_ciphertext, key_hex, "cbc")


def encrypt_hex_aes128_ecb(plaintext: str, key_hex: str) -> str:
    return _encrypt(plaintext, key_hex, "ecb")


def decrypt_hex_aes128_ecb(hex_ciphertext: str, key_hex: str) -> str:
    return _decrypt(hex_ciphertext, key_hex, "ecb")


def open_callback(
    hex_ciphertext: str,
    key_hex: str,
    mode: str = "cbc",
    verify: bool = True,
) -> Dict[str, Any]:
    """
    Decrypt a callback notification and return its body.

    The body is unwrapped from ``Data`` when present. With ``verify`` set, a
    non-empty embedded checksum must match.

    Raises:
        ConfigurationError: bad key or unknown mode
        DecryptionError: payload cannot be decrypted
        MalformedPayloadError: plaintext is not a JSON object
        ChecksumMismatchError: embedded checksum disagrees
    """
    mode = (mode or "cbc").lower()
    if mode not in MODES:
        raise ConfigurationError(f"Unknown callback mode: {mode}")

    text = _decrypt(hex_ciphertext, key_hex, mode)
    try:
        parsed = json.loads(text)
    except ValueError:
        raise MalformedPayloadError("Callback content is not JSON") from None

    body = unwrap_data(parsed)
    if not isinstance(body, dict):
        raise MalformedPayloadError("Callback content is not a JSON object")

    if verify and body.get(checksum.CHECKSUM_FIELD):
        checksum.require_valid_checksum(body)
    logger.info("Callback opened (mode=%s)", mode)
    return body
