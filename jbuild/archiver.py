from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
import zipfile
from pathlib import Path
from typing import List, Tuple

from .scanner import scan
from .utils import ensure_directory

logger = logging.getLogger(__name__)

MANIFEST_NAME = "META-INF/MANIFEST.MF"
MANIFEST_VERSION = "1.0"
CREATED_BY = "jbuild"
# Zip timestamps cannot predate 1980-01-01.
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def build_manifest(main_class: str) -> str:
    lines = [
        f"Manifest-Version: {MANIFEST_VERSION}",
        f"Main-Class: {main_class}",
        f"Created-By: {CREATED_BY}",
    ]
    return "\r\n".join(lines) + "\r\n\r\n"


def archive_entries(output_dir: str | Path) -> List[Tuple[str, Path]]:
    """Map every path under ``output_dir`` to its archive entry name."""

    output_dir = Path(output_dir)
    entries: List[Tuple[str, Path]] = []
    for path in scan(output_dir):
        name = path.relative_to(output_dir).as_posix()
        if path.is_dir() and not name.endswith("/"):
            name += "/"
        entries.append((name, path))
    return entries


def _entry_time(path: Path) -> Tuple[int, int, int, int, int, int]:
    stamp = time.localtime(path.stat().st_mtime)[:6]
    return max(stamp, ZIP_EPOCH)


def _write_entry(jar: zipfile.ZipFile, name: str, source: Path) -> None:
    info = zipfile.ZipInfo(name, date_time=_entry_time(source))
    if name.endswith("/"):
        info.external_attr = 0o40755 << 16 | 0x10
        jar.writestr(info, b"")
        return
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o100644 << 16
    with open(source, "rb") as src, jar.open(info, "w") as dst:
        shutil.copyfileobj(src, dst)


def create_archive(output_dir: str | Path, archive_path: str | Path, main_class: str) -> Path:
    """Package ``output_dir`` into an executable jar at ``archive_path``.

    The jar is rebuilt from scratch every time: the manifest comes first,
    followed by one entry per file and directory in the output tree. It is
    written next to the destination and moved into place once complete.
    """

    output_dir = Path(output_dir)
    archive_path = Path(archive_path)
    entries = archive_entries(output_dir)
    ensure_directory(archive_path.parent)

    handle, temp_name = tempfile.mkstemp(
        prefix=f".{archive_path.name}.", suffix=".tmp", dir=archive_path.parent
    )
    os.close(handle)
    try:
        with zipfile.ZipFile(temp_name, "w", compression=zipfile.ZIP_DEFLATED) as jar:
            jar.writestr(
                zipfile.ZipInfo(MANIFEST_NAME, date_time=time.localtime()[:6]),
                build_manifest(main_class),
                compress_type=zipfile.ZIP_DEFLATED,
            )
            for name, path in entries:
                if name == MANIFEST_NAME:
                    logger.warning("Ignoring %s from %s", MANIFEST_NAME, output_dir)
                    continue
                _write_entry(jar, name, path)
        os.chmod(temp_name, 0o644)
        os.replace(temp_name, archive_path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise

    logger.info("Packaged %d entries into %s", len(entries), archive_path)
    return archive_path
