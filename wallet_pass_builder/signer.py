"""
Signature engine: detached PKCS#7 signature over manifest.json.

The signature carries the pass certificate and the Apple WWDR intermediate
certificate, with content-type, message-digest and signing-time as
authenticated attributes.
"""

import json
import logging
import os
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7

from .exceptions import STAGE_SIGNATURE, CredentialReadError, DecryptionError, SigningError

logger = logging.getLogger(__name__)

_HEX_DIGEST = re.compile(r"^[0-9a-f]{40}$")

SUPPORTED_HASHES = (hashes.SHA224, hashes.SHA256, hashes.SHA384, hashes.SHA512)


def _read_credential(path: Union[str, os.PathLike], label: str) -> bytes:
    path = Path(path)
    if not path.is_file():
        raise CredentialReadError(f"Missing {label}: {path}", stage=STAGE_SIGNATURE)
    try:
        return path.read_bytes()
    except OSError as e:
        raise CredentialReadError(f"Cannot read {label} {path}: {e}", stage=STAGE_SIGNATURE) from e


@dataclass(frozen=True)
class SigningCredentials:
    """PEM material used to sign a pass"""

    signer_cert_pem: bytes
    wwdr_cert_pem: bytes
    private_key_pem: bytes
    passphrase: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_files(cls, signer_cert_path, wwdr_cert_path, private_key_path,
                   passphrase: Optional[str] = None) -> "SigningCredentials":
        return cls(
            signer_cert_pem=_read_credential(signer_cert_path, "signer certificate"),
            wwdr_cert_pem=_read_credential(wwdr_cert_path, "WWDR certificate"),
            private_key_pem=_read_credential(private_key_path, "private key"),
            passphrase=passphrase,
        )


def check_manifest(manifest_data: bytes) -> dict:
    """Reject manifest bytes that are not a non-empty name -> SHA-1 mapping"""
    try:
        entries = json.loads(manifest_data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SigningError(f"Manifest is not valid JSON: {e}", stage=STAGE_SIGNATURE) from e
    if not isinstance(entries, dict) or not entries:
        raise SigningError("Manifest must be a non-empty JSON object", stage=STAGE_SIGNATURE)
    for name, digest in entries.items():
        if not isinstance(digest, str) or not _HEX_DIGEST.match(digest):
            raise SigningError(f"Manifest entry '{name}' is not a SHA-1 hex digest", stage=STAGE_SIGNATURE)
    return entries


def load_private_key(private_key_pem: bytes, passphrase: Optional[str]):
    password = passphrase.encode("utf-8") if passphrase else None
    try:
        return serialization.load_pem_private_key(private_key_pem, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.error("Failed to decrypt private key. Check your passphrase.")
        raise DecryptionError(f"Failed to decrypt private key: {e}", stage=STAGE_SIGNATURE) from e


def load_certificate(pem: bytes, label: str) -> x509.Certificate:
    try:
        return x509.load_pem_x509_certificate(pem)
    except ValueError as e:
        raise SigningError(f"Invalid {label}: {e}", stage=STAGE_SIGNATURE) from e


def _public_key_der(key) -> bytes:
    return key.public_bytes(serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)


def sign_manifest(manifest_data: bytes, credentials: SigningCredentials,
                  hash_algorithm: Optional[hashes.HashAlgorithm] = None) -> bytes:
    """Create a DER-encoded detached signature over the manifest bytes"""
    hash_algorithm = hash_algorithm or hashes.SHA256()
    if not isinstance(hash_algorithm, SUPPORTED_HASHES):
        raise SigningError(f"Unsupported signature digest {hash_algorithm.name}", stage=STAGE_SIGNATURE)

    check_manifest(manifest_data)
    private_key = load_private_key(credentials.private_key_pem, credentials.passphrase)
    signer_cert = load_certificate(credentials.signer_cert_pem, "signer certificate")
    wwdr_cert = load_certificate(credentials.wwdr_cert_pem, "WWDR certificate")

    if _public_key_der(signer_cert.public_key()) != _public_key_der(private_key.public_key()):
        raise SigningError("Private key does not match the signer certificate", stage=STAGE_SIGNATURE)

    try:
        signature = (
            pkcs7.PKCS7SignatureBuilder()
            .set_data(manifest_data)
            .add_signer(signer_cert, private_key, hash_algorithm)
            .add_certificate(wwdr_cert)
            .sign(serialization.Encoding.DER, [pkcs7.PKCS7Options.DetachedSignature, pkcs7.PKCS7Options.Binary])
        )
    except (ValueError, TypeError) as e:
        raise SigningError(f"Signing failed: {e}", stage=STAGE_SIGNATURE) from e

    logger.info(f"Manifest signed ({len(signature)} bytes, {hash_algorithm.name})")
    return signature


def signature_certificates(signature: bytes) -> List[x509.Certificate]:
    """Certificates embedded in a DER signature"""
    try:
        return pkcs7.load_der_pkcs7_certificates(signature)
    except ValueError as e:
        raise SigningError(f"Malformed signature: {e}", stage=STAGE_SIGNATURE) from e


def verify_signature(signature: bytes, manifest_data: bytes, wwdr_cert_pem: bytes) -> None:
    """Verify a detached signature against manifest bytes with the openssl CLI.

    Only the signature itself is checked; the certificate chain is not
    (``-noverify``).
    """
    openssl = shutil.which("openssl")
    if openssl is None:
        raise SigningError("openssl executable not found, cannot verify signature", stage=STAGE_SIGNATURE)

    with tempfile.TemporaryDirectory() as temp_dir:
        sig_path = Path(temp_dir) / "signature"
        manifest_path = Path(temp_dir) / "manifest.json"
        wwdr_path = Path(temp_dir) / "wwdr.pem"
        sig_path.write_bytes(signature)
        manifest_path.write_bytes(manifest_data)
        wwdr_path.write_bytes(wwdr_cert_pem)

        proc = subprocess.run(
            [
                openssl, "smime", "-verify", "-binary",
                "-in", str(sig_path), "-inform", "DER",
                "-content", str(manifest_path),
                "-certfile", str(wwdr_path), "-noverify",
                "-out", os.devnull,
            ],
            stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True,
        )
    if proc.returncode != 0:
        logger.error(f"Signature verification failed: {proc.stdout.strip()}")
        raise SigningError("Signature verification failed", stage=STAGE_SIGNATURE)
    logger.info("Signature OK")
