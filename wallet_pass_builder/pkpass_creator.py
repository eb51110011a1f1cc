"""
PKPass Creator - End-to-end .pkpass generation

Runs the four build stages strictly in order:

    pass document -> manifest.json -> signature -> .pkpass archive

Each stage only starts once the previous one has completed, and the first
failure aborts the build without producing a package.
"""

import json
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

from .config import PassConfig
from .exceptions import (
    STAGE_DOCUMENT,
    STAGE_MANIFEST,
    STAGE_PACKAGE,
    STAGE_SIGNATURE,
    AssetReadError,
    PackagingError,
    PassBuildError,
    SigningError,
    ValidationError,
)
from .manifest import DEFAULT_HASH_WORKERS, MANIFEST_NAME, SIGNATURE_NAME, Manifest, MemberSource, build_manifest
from .pass_builder import PASS_JSON_NAME, PassBuilder
from .packager import package_bytes, write_package_bytes
from .signer import SigningCredentials, sign_manifest, verify_signature

logger = logging.getLogger(__name__)

REQUIRED_ASSETS = ("icon.png",)
OPTIONAL_ASSETS = tuple(
    f"{image}{scale}.png"
    for image in ("icon", "logo", "background", "strip", "thumbnail", "footer")
    for scale in ("", "@2x", "@3x")
    if f"{image}{scale}.png" not in REQUIRED_ASSETS
)


def collect_assets(assets_dir: Union[str, os.PathLike]) -> Dict[str, Path]:
    """Find the image assets that will be included in the pass.

    icon.png is required; other known images are picked up when present, as
    are files inside ``*.lproj`` directories (localized images). Hidden
    files are skipped. Files are only read later, while hashing.
    """
    base_dir = Path(assets_dir)
    if not base_dir.is_dir():
        raise AssetReadError(f"Assets directory not found: {base_dir}", stage=STAGE_MANIFEST)

    assets: Dict[str, Path] = {}
    for name in REQUIRED_ASSETS:
        src = base_dir / name
        if not src.is_file():
            raise AssetReadError(f"Required asset missing: {name} in {base_dir}", stage=STAGE_MANIFEST)
        assets[name] = src

    for name in OPTIONAL_ASSETS:
        src = base_dir / name
        if src.is_file():
            assets[name] = src
            logger.debug(f"Added optional asset: {name}")

    for lproj in sorted(base_dir.glob("*.lproj")):
        if not lproj.is_dir():
            continue
        for item in sorted(lproj.iterdir()):
            if item.is_file() and not item.name.startswith("."):
                assets[f"{lproj.name}/{item.name}"] = item

    logger.info(f"Collected {len(assets)} asset(s) from {base_dir}")
    return assets


@dataclass(frozen=True)
class PassPackage:
    """Result of a successful build"""

    members: Mapping[str, bytes]
    manifest: Manifest
    signature: bytes
    data: bytes

    @property
    def serial_number(self) -> str:
        return self.pass_document()["serialNumber"]

    def pass_document(self) -> Dict:
        return json.loads(self.members[PASS_JSON_NAME].decode("utf-8"))

    def save(self, out_path: Union[str, os.PathLike]) -> Path:
        return write_package_bytes(self.data, out_path)


@contextmanager
def _stage(name: str, error_cls=PassBuildError):
    logger.debug(f"Stage '{name}' started")
    try:
        yield
    except PassBuildError as e:
        if e.stage is None:
            e.stage = name
        logger.error(f"Stage '{name}' failed: {e.message}")
        raise
    except Exception as e:
        logger.error(f"Stage '{name}' failed: {e}")
        raise error_cls(f"Unexpected failure: {e}", stage=name) from e
    logger.debug(f"Stage '{name}' finished")


class PKPassCreator:
    """Creates signed .pkpass packages from a PassBuilder and image assets"""

    def __init__(self, credentials: SigningCredentials, pass_type_identifier: Optional[str] = None,
                 team_identifier: Optional[str] = None, hash_workers: int = DEFAULT_HASH_WORKERS,
                 verify: bool = False, output_dir: Optional[Union[str, os.PathLike]] = None):
        self.credentials = credentials
        self.pass_type_identifier = pass_type_identifier
        self.team_identifier = team_identifier
        self.hash_workers = hash_workers
        self.verify = verify
        self.output_dir = Path(output_dir) if output_dir else None

    @classmethod
    def from_config(cls, config: PassConfig) -> "PKPassCreator":
        return cls(
            credentials=config.load_credentials(),
            pass_type_identifier=config.pass_type_identifier,
            team_identifier=config.team_identifier,
            hash_workers=config.hash_workers,
            verify=config.verify_signature,
            output_dir=config.output_dir,
        )

    def new_pass(self, serial_number: str, description: str, organization_name: str) -> PassBuilder:
        """Start a pass pre-filled with the configured identifiers"""
        return PassBuilder(
            pass_type_identifier=self.pass_type_identifier,
            team_identifier=self.team_identifier,
            serial_number=serial_number,
            description=description,
            organization_name=organization_name,
        )

    def build(self, pass_builder: PassBuilder,
              assets: Optional[Mapping[str, MemberSource]] = None) -> PassPackage:
        """Run every stage and return the finished package in memory"""
        assets = dict(assets or {})

        with _stage(STAGE_DOCUMENT, ValidationError):
            output = pass_builder.output()
            members: Dict[str, MemberSource] = dict(output.members())
            clashes = sorted(set(members) & set(assets))
            if clashes:
                raise ValidationError(f"Assets clash with generated members: {', '.join(clashes)}")
            members.update(assets)

        with _stage(STAGE_MANIFEST):
            manifest = build_manifest(members, max_workers=self.hash_workers)

        with _stage(STAGE_SIGNATURE, SigningError):
            signature = sign_manifest(manifest.data, self.credentials)
            if self.verify:
                verify_signature(signature, manifest.data, self.credentials.wwdr_cert_pem)

        with _stage(STAGE_PACKAGE, PackagingError):
            final_members = dict(manifest.members)
            final_members[MANIFEST_NAME] = manifest.data
            final_members[SIGNATURE_NAME] = signature
            data = package_bytes(final_members)

        return PassPackage(
            members=MappingProxyType(final_members),
            manifest=manifest,
            signature=signature,
            data=data,
        )

    def generate_pkpass(self, pass_builder: PassBuilder,
                        assets: Optional[Mapping[str, MemberSource]] = None,
                        output_path: Optional[Union[str, os.PathLike]] = None) -> Path:
        """Build the package and write it to disk.

        Args:
            pass_builder: Pass document to package
            assets: Member name to bytes or file path for static images
            output_path: Destination file; defaults to <output_dir>/<serialNumber>.pkpass

        Returns:
            Path to the generated .pkpass file
        """
        package = self.build(pass_builder, assets)

        if output_path is None:
            if self.output_dir is None:
                raise PackagingError("No output path or output directory configured", stage=STAGE_PACKAGE)
            output_path = self.output_dir / f"{package.serial_number}.pkpass"

        with _stage(STAGE_PACKAGE, PackagingError):
            path = package.save(output_path)
        logger.info(f"PKPass created successfully: {path}")
        return path
