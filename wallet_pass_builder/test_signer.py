"""
Tests for the signature engine.
"""

import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from cryptography import x509

from wallet_pass_builder.exceptions import CredentialReadError, DecryptionError, SigningError
from wallet_pass_builder.fixtures import make_credentials, with_passphrase
from wallet_pass_builder.manifest import build_manifest
from wallet_pass_builder.signer import SigningCredentials, check_manifest, sign_manifest, signature_certificates, verify_signature

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')

HAS_OPENSSL = shutil.which("openssl") is not None


class TestSignManifest(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.credentials = make_credentials()
        cls.manifest = build_manifest({"pass.json": b'{"serialNumber": "1"}', "icon.png": b"\x89PNG"}).data

    def test_signature_carries_both_certificates(self):
        signature = sign_manifest(self.manifest, self.credentials)
        self.assertTrue(signature.startswith(b"\x30"))
        subjects = {cert.subject for cert in signature_certificates(signature)}
        signer = x509.load_pem_x509_certificate(self.credentials.signer_cert_pem)
        wwdr = x509.load_pem_x509_certificate(self.credentials.wwdr_cert_pem)
        self.assertEqual(subjects, {signer.subject, wwdr.subject})

    def test_signature_is_detached(self):
        signature = sign_manifest(self.manifest, self.credentials)
        self.assertNotIn(self.manifest, signature)

    def test_wrong_passphrase(self):
        with self.assertRaises(DecryptionError) as ctx:
            sign_manifest(self.manifest, with_passphrase(self.credentials, "wrong"))
        self.assertEqual(ctx.exception.stage, "signature")

    def test_missing_passphrase(self):
        with self.assertRaises(DecryptionError):
            sign_manifest(self.manifest, with_passphrase(self.credentials, None))

    def test_key_certificate_mismatch(self):
        with self.assertRaises(SigningError):
            sign_manifest(self.manifest, make_credentials(mismatched_key=True))

    def test_malformed_certificate(self):
        credentials = SigningCredentials(
            signer_cert_pem=b"-----BEGIN CERTIFICATE-----\nnope\n-----END CERTIFICATE-----\n",
            wwdr_cert_pem=self.credentials.wwdr_cert_pem,
            private_key_pem=self.credentials.private_key_pem,
            passphrase=self.credentials.passphrase,
        )
        with self.assertRaises(SigningError):
            sign_manifest(self.manifest, credentials)

    def test_malformed_manifest(self):
        for data in (b"", b"not json", b"[]", b"{}", b'{"pass.json": "xyz"}'):
            with self.assertRaises(SigningError):
                sign_manifest(data, self.credentials)

    def test_check_manifest(self):
        entries = check_manifest(self.manifest)
        self.assertEqual(set(entries), {"pass.json", "icon.png"})

    @unittest.skipUnless(HAS_OPENSSL, "openssl executable not available")
    def test_verify_signature(self):
        signature = sign_manifest(self.manifest, self.credentials)
        verify_signature(signature, self.manifest, self.credentials.wwdr_cert_pem)

    @unittest.skipUnless(HAS_OPENSSL, "openssl executable not available")
    def test_flipped_manifest_byte_fails_verification(self):
        signature = sign_manifest(self.manifest, self.credentials)
        for index in (0, len(self.manifest) // 2, len(self.manifest) - 1):
            tampered = bytearray(self.manifest)
            tampered[index] ^= 0x01
            with self.assertRaises(SigningError):
                verify_signature(signature, bytes(tampered), self.credentials.wwdr_cert_pem)


class TestSigningCredentials(unittest.TestCase):

    def test_from_files(self):
        credentials = make_credentials()
        with tempfile.TemporaryDirectory() as temp_dir:
            base = Path(temp_dir)
            (base / "passcertificate.pem").write_bytes(credentials.signer_cert_pem)
            (base / "WWDR.pem").write_bytes(credentials.wwdr_cert_pem)
            (base / "passkey.pem").write_bytes(credentials.private_key_pem)
            loaded = SigningCredentials.from_files(
                base / "passcertificate.pem", base / "WWDR.pem", base / "passkey.pem", credentials.passphrase
            )
        self.assertEqual(loaded, credentials)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            base = Path(temp_dir)
            with self.assertRaises(CredentialReadError) as ctx:
                SigningCredentials.from_files(base / "a.pem", base / "b.pem", base / "c.pem", "x")
        self.assertIsInstance(ctx.exception, IOError)

    def test_passphrase_not_in_repr(self):
        self.assertNotIn("correct horse", repr(make_credentials()))


if __name__ == "__main__":
    unittest.main()
