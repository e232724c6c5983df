"""
Asset resolver: maps an image reference to a file under one of several
candidate roots.

Two entry points:
- name-only: a bare filename, probed under each name root in priority order
- full-path: a path (checked directly, must stay inside a configured root) or a
  bare name searched under the path roots

References are validated before any filesystem access. Probes are read-only
and sequential; the first hit wins.
"""

import asyncio
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from allion_voice.config import DeploymentContext
from allion_voice.errors import AssetNotFound, InvalidReference, UnexpectedIOError

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".bmp": "image/bmp",
    ".ico": "image/x-icon",
}
DEFAULT_CONTENT_TYPE = "image/png"


@dataclass(frozen=True)
class ResolvedAsset:
    path: Path
    content_type: str


def content_type_for(path: Path) -> str:
    return CONTENT_TYPES.get(path.suffix.lower(), DEFAULT_CONTENT_TYPE)


def validate_name(name: Optional[str]) -> str:
    """Accept bare filenames only."""
    if not name:
        raise InvalidReference("Image name is required")
    if ".." in name or "/" in name or "\\" in name or "\x00" in name:
        raise InvalidReference("Invalid image name", details={"name": name})
    return name


def validate_path(value: Optional[str]) -> str:
    """Accept a path with no parent-directory components."""
    if not value:
        raise InvalidReference("Image path is required")
    if "\x00" in value:
        raise InvalidReference("Invalid image path", details={"path": value})
    parts = value.replace("\\", "/").split("/")
    if ".." in parts:
        raise InvalidReference("Invalid image path", details={"path": value})
    return value


def looks_like_path(value: str) -> bool:
    return "/" in value or "\\" in value


def _probe(candidate: Path) -> bool:
    """True if `candidate` is an existing regular file. Absence is a miss."""
    try:
        st = os.stat(candidate)
    except (FileNotFoundError, NotADirectoryError):
        logger.debug(f"Image not found at: {candidate}")
        return False
    except OSError as e:
        raise UnexpectedIOError(f"Cannot access {candidate.name}: {e.strerror or e}",
                                details={"path": str(candidate)}) from e
    return stat.S_ISREG(st.st_mode)


def _probe_within(candidate: Path, roots: tuple[Path, ...]) -> bool:
    """Like _probe, but a hit whose real path leaves every root is a miss."""
    if not _probe(candidate):
        return False
    resolved = candidate.resolve()
    if not any(resolved.is_relative_to(root) for root in roots):
        logger.warning(f"Ignoring {candidate}: resolves outside the asset roots to {resolved}")
        return False
    return True


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except (FileNotFoundError, NotADirectoryError) as e:
        raise AssetNotFound("Image not found", details={"path": str(path)}) from e
    except OSError as e:
        raise UnexpectedIOError(f"Cannot read {path.name}: {e.strerror or e}",
                                details={"path": str(path)}) from e


class AssetResolver:
    def __init__(self, context: DeploymentContext):
        self.context = context

    # Candidate generation

    def _name_candidates(self, name: str) -> Iterator[Path]:
        for root in self.context.name_roots:
            yield root / name

    def _direct_path(self, value: str) -> Path:
        try:
            resolved = Path(value).resolve()
        except (OSError, RuntimeError) as e:
            raise UnexpectedIOError(f"Cannot resolve path: {e}", details={"path": value}) from e
        if not any(resolved.is_relative_to(root) for root in self.context.allowed_roots):
            raise InvalidReference("Path is outside the configured asset roots", details={"path": value})
        return resolved

    def _path_candidates(self, value: str) -> Iterator[Path]:
        if looks_like_path(value):
            yield self._direct_path(value)
            return
        for root in self.context.path_roots:
            yield root / value

    def _found(self, candidate: Path) -> ResolvedAsset:
        logger.info(f"Serving image from: {candidate}")
        return ResolvedAsset(path=candidate, content_type=content_type_for(candidate))

    def _not_found(self, reference: str) -> AssetNotFound:
        logger.warning(f"Image {reference} not found in any candidate root")
        return AssetNotFound("Image not found", details={"reference": reference})

    # Sync entry points

    def resolve_name(self, name: Optional[str]) -> ResolvedAsset:
        name = validate_name(name)
        for candidate in self._name_candidates(name):
            if _probe_within(candidate, self.context.allowed_roots):
                return self._found(candidate)
        raise self._not_found(name)

    def resolve_path(self, value: Optional[str]) -> ResolvedAsset:
        value = validate_path(value)
        for candidate in self._path_candidates(value):
            if _probe_within(candidate, self.context.allowed_roots):
                return self._found(candidate)
        raise self._not_found(value)

    def read(self, asset: ResolvedAsset) -> bytes:
        return _read(asset.path)

    # Async entry points. Each probe runs in a worker thread; cancelling the
    # awaiting task abandons the remaining probes.

    async def aresolve_name(self, name: Optional[str]) -> ResolvedAsset:
        name = validate_name(name)
        for candidate in self._name_candidates(name):
            if await asyncio.to_thread(_probe_within, candidate, self.context.allowed_roots):
                return self._found(candidate)
        raise self._not_found(name)

    async def aresolve_path(self, value: Optional[str]) -> ResolvedAsset:
        value = validate_path(value)
        for candidate in self._path_candidates(value):
            if await asyncio.to_thread(_probe_within, candidate, self.context.allowed_roots):
                return self._found(candidate)
        raise self._not_found(value)

    async def aread(self, asset: ResolvedAsset) -> bytes:
        return await asyncio.to_thread(_read, asset.path)
