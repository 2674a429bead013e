"""
Sandbox key material generator.

Writes a throwaway client PKCS#12 store plus a simulated bank key pair and
certificate, so the envelope pipeline can run end to end without bank-issued
material. Not for production use.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

DEFAULT_KEY_SIZE = 2048
DEFAULT_VALIDITY_DAYS = 365


@dataclass(frozen=True)
class SandboxMaterial:
    """Paths of the generated files."""
    client_p12_path: str
    client_cert_path: str
    client_key_path: str
    bank_key_path: str
    bank_cert_path: str


def generate_rsa_key(key_size: int = DEFAULT_KEY_SIZE) -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=key_size)


def self_signed_certificate(
    private_key: rsa.RSAPrivateKey,
    common_name: str,
    days: int = DEFAULT_VALIDITY_DAYS,
) -> x509.Certificate:
    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    now = datetime.now(timezone.utc)
    return x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        issuer
    ).public_key(
        private_key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        now - timedelta(minutes=5)
    ).not_valid_after(
        now + timedelta(days=days)
    ).sign(private_key, hashes.SHA256())


def pkcs12_bytes(
    private_key: rsa.RSAPrivateKey,
    certificate: x509.Certificate,
    password: str = "",
    name: str = "client",
) -> bytes:
    if password:
        encryption = serialization.BestAvailableEncryption(password.encode("utf-8"))
    else:
        encryption = serialization.NoEncryption()
    return pkcs12.serialize_key_and_certificates(
        name.encode("utf-8"), private_key, certificate, None, encryption
    )


def private_key_pem(private_key: rsa.RSAPrivateKey, passphrase: str = "") -> bytes:
    if passphrase:
        encryption = serialization.BestAvailableEncryption(passphrase.encode("utf-8"))
    else:
        encryption = serialization.NoEncryption()
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=encryption,
    )


def certificate_pem(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.PEM)


def write_file(path: str, data: bytes, private: bool = False) -> None:
    mode = 0o600 if private else 0o644
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


def generate_sandbox_material(
    output_dir: str,
    password: str = "",
    key_size: int = DEFAULT_KEY_SIZE,
) -> SandboxMaterial:
    """
    Generate client and simulated-bank material under ``output_dir``.

    Files:
        client.p12  client key + certificate (protected by ``password``)
        client.crt  client certificate
        client.key  client private key (PEM, protected by ``password``)
        bank.key    simulated bank private key (PEM, unencrypted)
        bank.crt    simulated bank certificate
    """
    os.makedirs(output_dir, exist_ok=True)

    client_key = generate_rsa_key(key_size)
    client_cert = self_signed_certificate(client_key, "axispay-sandbox-client")
    bank_key = generate_rsa_key(key_size)
    bank_cert = self_signed_certificate(bank_key, "axispay-sandbox-bank")

    material = SandboxMaterial(
        client_p12_path=os.path.join(output_dir, "client.p12"),
        client_cert_path=os.path.join(output_dir, "client.crt"),
        client_key_path=os.path.join(output_dir, "client.key"),
        bank_key_path=os.path.join(output_dir, "bank.key"),
        bank_cert_path=os.path.join(output_dir, "bank.crt"),
    )

    write_file(material.client_p12_path, pkcs12_bytes(client_key, client_cert, password), private=True)
    write_file(material.client_cert_path, certificate_pem(client_cert))
    write_file(material.client_key_path, private_key_pem(client_key, password), private=True)
    write_file(material.bank_key_path, private_key_pem(bank_key), private=True)
    write_file(material.bank_cert_path, certificate_pem(bank_cert))
    return material
