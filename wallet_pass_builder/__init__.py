"""
Apple Wallet pass package builder

Builds signed, localized .pkpass archives: a pass.json document with
per-locale string tables, a SHA-1 manifest of every member, a detached
PKCS#7 signature over that manifest, and the final ZIP package.
"""

__version__ = "1.0.0"
__author__ = "Wallet Pass Builder"

from .exceptions import (
    AssetReadError,
    ConfigurationError,
    CredentialReadError,
    DecryptionError,
    PackagingError,
    PassBuildError,
    SigningError,
    ValidationError,
)
from .models import (
    NFC,
    Barcode,
    Beacon,
    BoardingPassFields,
    Location,
    PassField,
    PassFields,
    PassStyle,
    PKBarcodeFormat,
    PKDataDetectorType,
    PKDateStyle,
    PKNumberStyle,
    PKTextAlignment,
    PKTransitType,
    RGBColor,
    SupportedLocale,
)
from .translations import TranslationRegistry
from .pass_builder import PassBuilder, PassOutput
from .manifest import Manifest, build_manifest
from .signer import SigningCredentials, sign_manifest, verify_signature
from .packager import package_bytes, read_package, write_package
from .config import PassConfig
from .pkpass_creator import PassPackage, PKPassCreator, collect_assets

__all__ = [
    "AssetReadError",
    "ConfigurationError",
    "CredentialReadError",
    "DecryptionError",
    "PackagingError",
    "PassBuildError",
    "SigningError",
    "ValidationError",
    "NFC",
    "Barcode",
    "Beacon",
    "BoardingPassFields",
    "Location",
    "PassField",
    "PassFields",
    "PassStyle",
    "PKBarcodeFormat",
    "PKDataDetectorType",
    "PKDateStyle",
    "PKNumberStyle",
    "PKTextAlignment",
    "PKTransitType",
    "RGBColor",
    "SupportedLocale",
    "TranslationRegistry",
    "PassBuilder",
    "PassOutput",
    "Manifest",
    "build_manifest",
    "SigningCredentials",
    "sign_manifest",
    "verify_signature",
    "package_bytes",
    "read_package",
    "write_package",
    "PassConfig",
    "PassPackage",
    "PKPassCreator",
    "collect_assets",
]
