"""
Throwaway signing material and sample assets for the test suite.
"""

import base64
import datetime
from functools import lru_cache
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from .signer import SigningCredentials

TEST_PASSPHRASE = "correct horse battery staple"

# 1x1 transparent PNG
ICON_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def _name(common_name: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "TEST123456"),
    ])


def _certificate(subject_key, subject: str, issuer_key, issuer: str, ca: bool) -> x509.Certificate:
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer))
        .public_key(subject_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(issuer_key, hashes.SHA256())
    )


@lru_cache(maxsize=None)
def _keys():
    return (
        rsa.generate_private_key(public_exponent=65537, key_size=2048),
        rsa.generate_private_key(public_exponent=65537, key_size=2048),
    )


@lru_cache(maxsize=None)
def make_credentials(passphrase: Optional[str] = TEST_PASSPHRASE,
                     mismatched_key: bool = False) -> SigningCredentials:
    """WWDR-like CA plus a pass certificate it issued, with an encrypted key"""
    wwdr_key, signer_key = _keys()
    wwdr_cert = _certificate(wwdr_key, "Test WWDR CA", wwdr_key, "Test WWDR CA", ca=True)
    signer_cert = _certificate(signer_key, "Pass Type ID: pass.com.example.test", wwdr_key, "Test WWDR CA", ca=False)

    encryption = (
        serialization.BestAvailableEncryption(passphrase.encode("utf-8"))
        if passphrase else serialization.NoEncryption()
    )
    key_to_store = wwdr_key if mismatched_key else signer_key
    return SigningCredentials(
        signer_cert_pem=signer_cert.public_bytes(serialization.Encoding.PEM),
        wwdr_cert_pem=wwdr_cert.public_bytes(serialization.Encoding.PEM),
        private_key_pem=key_to_store.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            encryption,
        ),
        passphrase=passphrase,
    )


def with_passphrase(credentials: SigningCredentials, passphrase: Optional[str]) -> SigningCredentials:
    return SigningCredentials(
        signer_cert_pem=credentials.signer_cert_pem,
        wwdr_cert_pem=credentials.wwdr_cert_pem,
        private_key_pem=credentials.private_key_pem,
        passphrase=passphrase,
    )
