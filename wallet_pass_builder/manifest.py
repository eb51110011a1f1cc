"""
Manifest builder: SHA-1 digests of every package member.

Members are read and hashed concurrently; the manifest is only serialized
after every hashing task has finished.
"""

import hashlib
import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Tuple, Union

from .exceptions import STAGE_MANIFEST, AssetReadError, ValidationError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
SIGNATURE_NAME = "signature"
RESERVED_NAMES = (MANIFEST_NAME, SIGNATURE_NAME)

DEFAULT_HASH_WORKERS = 8

MemberSource = Union[bytes, bytearray, str, os.PathLike]


def sha1_hexdigest(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


@dataclass(frozen=True)
class Manifest:
    """Digest of every package member except the manifest and signature"""

    entries: Mapping[str, str]
    members: Mapping[str, bytes]
    data: bytes

    def __len__(self) -> int:
        return len(self.entries)


def _read_member(name: str, source: MemberSource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    path = Path(source)
    try:
        return path.read_bytes()
    except OSError as e:
        raise AssetReadError(f"Cannot read member '{name}' from {path}: {e}", stage=STAGE_MANIFEST) from e


def _hash_member(name: str, source: MemberSource) -> Tuple[str, bytes, str]:
    content = _read_member(name, source)
    return name, content, sha1_hexdigest(content)


def serialize_manifest(entries: Mapping[str, str]) -> bytes:
    # Sorted keys keep the bytes independent of member insertion order
    return json.dumps(dict(entries), sort_keys=True, indent=2).encode("utf-8")


def build_manifest(members: Mapping[str, MemberSource], max_workers: int = DEFAULT_HASH_WORKERS) -> Manifest:
    """Hash every member and serialize the name -> digest mapping.

    Args:
        members: member name to bytes, or to a path read by the hashing task
        max_workers: upper bound on concurrent read/hash tasks

    Returns:
        Manifest with the digests, the resolved member bytes and manifest.json bytes
    """
    if not members:
        raise ValidationError("Cannot build a manifest without members", stage=STAGE_MANIFEST)
    reserved = [name for name in members if name in RESERVED_NAMES]
    if reserved:
        raise ValidationError(f"Reserved member names cannot be hashed: {', '.join(reserved)}", stage=STAGE_MANIFEST)
    if max_workers < 1:
        raise ValidationError("max_workers must be at least 1", stage=STAGE_MANIFEST)

    workers = min(max_workers, len(members))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="manifest-hash") as pool:
        futures = [pool.submit(_hash_member, name, source) for name, source in members.items()]
        # Barrier: every task joins before anything is serialized; the first failure aborts
        results = [future.result() for future in futures]

    entries: Dict[str, str] = {}
    contents: Dict[str, bytes] = {}
    for name, content, digest in results:
        entries[name] = digest
        contents[name] = content
        logger.debug(f"{name}: {digest}")

    data = serialize_manifest(entries)
    logger.info(f"manifest.json created ({len(entries)} items, {len(data)} bytes)")
    return Manifest(entries=MappingProxyType(entries), members=MappingProxyType(contents), data=data)
