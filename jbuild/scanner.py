from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator, List, Optional

PathFilter = Callable[[Path], bool]

JAVA_SUFFIX = ".java"


def has_suffix(suffix: str) -> PathFilter:
    def _matches(path: Path) -> bool:
        return path.is_file() and path.name.endswith(suffix)

    return _matches


def _walk(directory: Path) -> Iterator[Path]:
    # Directories are yielded before their contents; siblings by name.
    for child in sorted(directory.iterdir(), key=lambda p: p.name):
        yield child
        if child.is_dir() and not child.is_symlink():
            yield from _walk(child)


def scan(root: str | Path, predicate: Optional[PathFilter] = None) -> List[Path]:
    """Return every path below ``root`` (root excluded) accepted by ``predicate``."""

    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Source root not found: {root}")
    return [path for path in _walk(root) if predicate is None or predicate(path)]


def java_sources(root: str | Path) -> List[Path]:
    return scan(root, has_suffix(JAVA_SUFFIX))
