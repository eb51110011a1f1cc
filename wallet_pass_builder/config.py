"""
Build configuration.

The pipeline takes an explicit PassConfig; ``PassConfig.from_env`` is a
convenience for deployments that keep settings in environment variables or
a ``.env`` file.

Environment Variables:
    - PKPASS_PASS_TYPE_IDENTIFIER: Pass type identifier (pass.com.example.x)
    - PKPASS_TEAM_IDENTIFIER: Apple Developer team ID
    - PKPASS_CERTIFICATE_PATH: Path to the signer certificate (PEM)
    - PKPASS_KEY_PATH: Path to the encrypted private key (PEM)
    - PKPASS_KEY_PASSPHRASE: Passphrase for the private key
    - APPLE_WWDR_CERT_PATH: Path to Apple WWDR certificate (PEM)
    - PKPASS_ASSETS_DIR: Directory holding icon.png and other images (optional)
    - PKPASS_OUTPUT_DIR: Directory for generated .pkpass files (optional)
    - PKPASS_HASH_WORKERS: Concurrent hashing tasks (optional, default 8)
    - PKPASS_VERIFY_SIGNATURE: "true" to verify with openssl after signing (optional)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import dotenv_values

from .exceptions import ConfigurationError
from .manifest import DEFAULT_HASH_WORKERS
from .signer import SigningCredentials

logger = logging.getLogger(__name__)

REQUIRED_ENV = {
    "pass_type_identifier": "PKPASS_PASS_TYPE_IDENTIFIER",
    "team_identifier": "PKPASS_TEAM_IDENTIFIER",
    "certificate_path": "PKPASS_CERTIFICATE_PATH",
    "key_path": "PKPASS_KEY_PATH",
    "wwdr_cert_path": "APPLE_WWDR_CERT_PATH",
}


@dataclass(frozen=True)
class PassConfig:
    pass_type_identifier: str
    team_identifier: str
    certificate_path: Path
    key_path: Path
    wwdr_cert_path: Path
    key_passphrase: Optional[str] = field(default=None, repr=False)
    assets_dir: Optional[Path] = None
    output_dir: Optional[Path] = None
    hash_workers: int = DEFAULT_HASH_WORKERS
    verify_signature: bool = False

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, os.PathLike]] = None,
                 environ: Optional[Mapping[str, str]] = None) -> "PassConfig":
        """Read configuration from the environment, with env_file values underneath it.

        Variables already set in the process take precedence over the file; the
        process environment itself is left untouched.
        """
        if environ is None:
            environ = os.environ
            if env_file is not None and Path(env_file).exists():
                file_values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
                environ = {**file_values, **os.environ}
                logger.info(f"Loaded environment variables from: {env_file}")

        values = {}
        missing = []
        for attr, name in REQUIRED_ENV.items():
            value = environ.get(name)
            if not value:
                missing.append(name)
            values[attr] = value
        if missing:
            raise ConfigurationError(f"Environment variables not set: {', '.join(missing)}")

        try:
            hash_workers = int(environ.get("PKPASS_HASH_WORKERS", DEFAULT_HASH_WORKERS))
        except ValueError as e:
            raise ConfigurationError(f"PKPASS_HASH_WORKERS must be an integer: {e}") from e

        assets_dir = environ.get("PKPASS_ASSETS_DIR")
        output_dir = environ.get("PKPASS_OUTPUT_DIR")
        return cls(
            pass_type_identifier=values["pass_type_identifier"],
            team_identifier=values["team_identifier"],
            certificate_path=Path(values["certificate_path"]),
            key_path=Path(values["key_path"]),
            wwdr_cert_path=Path(values["wwdr_cert_path"]),
            key_passphrase=environ.get("PKPASS_KEY_PASSPHRASE"),
            assets_dir=Path(assets_dir) if assets_dir else None,
            output_dir=Path(output_dir) if output_dir else None,
            hash_workers=hash_workers,
            verify_signature=environ.get("PKPASS_VERIFY_SIGNATURE", "false").lower() == "true",
        )

    def load_credentials(self) -> SigningCredentials:
        return SigningCredentials.from_files(
            self.certificate_path, self.wwdr_cert_path, self.key_path, self.key_passphrase
        )
