from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import requests

from .config import DEFAULT_REPOSITORY
from .models import Dependency, LocalArtifact
from .utils import dump_json, ensure_directory, load_json, sha256_file

logger = logging.getLogger(__name__)

INDEX_FILENAME = ".artifacts.json"
CHUNK_SIZE = 1024 * 64

DependencyLike = Union[str, Dependency]


class FetchError(RuntimeError):
    """Raised when a dependency cannot be downloaded or verified."""


class ArtifactIndex:
    """Per-directory record of downloaded files and their SHA256 digests."""

    def __init__(self, directory: Path) -> None:
        self.path = directory / INDEX_FILENAME
        self._entries: Dict[str, Dict[str, str]] = self._load()

    def _load(self) -> Dict[str, Dict[str, str]]:
        try:
            raw = load_json(self.path, default={})
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable artifact index %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed artifact index %s", self.path)
            return {}
        return {
            name: entry
            for name, entry in raw.items()
            if isinstance(entry, dict) and isinstance(entry.get("sha256"), str)
        }

    def checksum(self, filename: str) -> Optional[str]:
        entry = self._entries.get(filename)
        return entry.get("sha256") if entry else None

    def record(self, filename: str, coordinate: str, checksum: str) -> None:
        self._entries[filename] = {"coordinate": coordinate, "sha256": checksum}

    def save(self) -> None:
        dump_json(self.path, self._entries)


class Fetcher:
    """Resolve artifact coordinates to local files, downloading what is missing.

    Downloads go through a single ``requests`` GET against
    ``<repository>/<coordinate>``. A file already present in the target
    directory is reused when its digest matches the pinned checksum or the one
    recorded in the directory's ``.artifacts.json`` index; otherwise it is
    downloaded again.
    """

    def __init__(
        self,
        repository: str = DEFAULT_REPOSITORY,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.repository = repository
        self.session = session if session is not None else requests.Session()
        self.timeout_s = timeout_s

    def artifact_url(self, dependency: Dependency) -> str:
        coordinate = dependency.coordinate.lstrip("/")
        if not coordinate or coordinate.endswith("/"):
            raise FetchError(f"Malformed artifact coordinate: {dependency.coordinate!r}")
        return f"{self.repository.rstrip('/')}/{coordinate}"

    def fetch(self, target_dir: str | Path, dependencies: Sequence[DependencyLike]) -> List[Path]:
        return [artifact.path for artifact in self.resolve(target_dir, dependencies)]

    def resolve(
        self, target_dir: str | Path, dependencies: Sequence[DependencyLike]
    ) -> List[LocalArtifact]:
        directory = ensure_directory(target_dir)
        index = ArtifactIndex(directory)
        resolved: List[LocalArtifact] = []
        try:
            for value in dependencies:
                dependency = Dependency.from_value(value)
                resolved.append(self._resolve_one(directory, index, dependency))
        finally:
            if resolved:
                index.save()
        return resolved

    def _resolve_one(
        self, directory: Path, index: ArtifactIndex, dependency: Dependency
    ) -> LocalArtifact:
        url = self.artifact_url(dependency)
        destination = directory / dependency.filename

        checksum = self._cached_checksum(destination, index, dependency)
        if checksum is None:
            logger.info(" << %s", destination)
            checksum = self._download(url, destination, dependency.sha256)
        else:
            logger.debug("cache hit: %s", destination)

        index.record(dependency.filename, dependency.coordinate, checksum)
        return LocalArtifact(dependency.coordinate, destination, checksum)

    def _cached_checksum(
        self, destination: Path, index: ArtifactIndex, dependency: Dependency
    ) -> Optional[str]:
        if not destination.is_file():
            return None
        actual = sha256_file(destination)
        expected = dependency.sha256 or index.checksum(dependency.filename)
        if expected is None or actual == expected:
            return actual
        logger.warning(
            "Checksum mismatch for %s (expected %s, found %s); downloading again",
            destination,
            expected,
            actual,
        )
        return None

    def _download(self, url: str, destination: Path, expected: Optional[str]) -> str:
        partial = destination.with_name(destination.name + ".part")
        try:
            with self.session.get(url, stream=True, timeout=self.timeout_s) as response:
                response.raise_for_status()
                with open(partial, "wb") as handle:
                    for chunk in response.iter_content(CHUNK_SIZE):
                        handle.write(chunk)
            checksum = sha256_file(partial)
            if expected is not None and checksum != expected:
                raise FetchError(
                    f"Checksum mismatch for {url}: expected {expected}, downloaded {checksum}"
                )
            os.replace(partial, destination)
        except requests.RequestException as exc:
            raise FetchError(f"Failed to download {url}: {exc}") from exc
        except OSError as exc:
            raise FetchError(f"Failed to write {destination}: {exc}") from exc
        finally:
            if partial.exists():
                partial.unlink()
        return checksum
