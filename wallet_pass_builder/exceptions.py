"""
Error types raised by the pass package pipeline.

Every error carries the pipeline stage it was raised in so callers can tell
credential problems from document, asset and archive problems.
"""

from typing import Optional

STAGE_DOCUMENT = "document"
STAGE_MANIFEST = "manifest"
STAGE_SIGNATURE = "signature"
STAGE_PACKAGE = "package"


class PassBuildError(Exception):
    """Base class for all pass build failures"""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ValidationError(PassBuildError, ValueError):
    """Pass document is missing required attributes or is malformed"""


class ConfigurationError(ValidationError):
    """Required configuration value is missing"""


class AssetReadError(PassBuildError, IOError):
    """A package member or asset file could not be read"""


class CredentialReadError(AssetReadError):
    """A certificate or key file could not be read"""


class DecryptionError(PassBuildError):
    """The passphrase does not unlock the private key"""


class SigningError(PassBuildError):
    """The manifest could not be signed or the signature does not verify"""


class PackagingError(PassBuildError):
    """The archive could not be written or finalized"""
