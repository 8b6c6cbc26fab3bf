from __future__ import annotations

import codecs
import hashlib
import json
import locale
import os
import shutil
import subprocess
import sys
import tempfile
import threading
from pathlib import Path
from typing import IO, Any, Dict, Mapping, Optional, Sequence

CHUNK_SIZE = 8192


class CommandError(RuntimeError):
    """Raised when a subprocess exits with a non-zero status code."""

    def __init__(self, command: Sequence[str], returncode: int, stdout: str, stderr: str) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Command {' '.join(command)} failed with exit code {returncode}\nSTDOUT:{stdout}\nSTDERR:{stderr}"
        )


def _merged_env(env: Mapping[str, str] | None) -> Dict[str, str]:
    process_env = os.environ.copy()
    if env:
        process_env.update(env)
    return process_env


def run_command(
    command: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a subprocess command and return the completed process."""

    result = subprocess.run(
        list(command),
        cwd=str(cwd) if cwd else None,
        env=_merged_env(env),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )
    if check and result.returncode != 0:
        raise CommandError(command, result.returncode, result.stdout, result.stderr)
    return result


def _drain(stream: IO[bytes], sink: IO[str]) -> None:
    # Bytes go straight to a binary sink; text sinks get a lossy decode so
    # undecodable child output never stops the pipe from being emptied.
    raw = getattr(sink, "buffer", None)
    decoder = codecs.getincrementaldecoder(locale.getpreferredencoding(False))(errors="replace")
    for chunk in iter(lambda: stream.read1(CHUNK_SIZE), b""):
        if raw is not None:
            sink.flush()
            raw.write(chunk)
            raw.flush()
        else:
            sink.write(decoder.decode(chunk))
            sink.flush()
    if raw is None:
        sink.write(decoder.decode(b"", final=True))
        sink.flush()


def stream_command(
    command: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    sink: Optional[IO[str]] = None,
) -> int:
    """Run a command, copying its combined stdout/stderr to ``sink`` as it arrives.

    The output pipe is drained on a reader thread while this thread waits for
    the child to exit, so a chatty child can never block on a full pipe. The
    reader is joined before the exit code is returned, so all output has been
    written to ``sink`` by then.
    """

    target = sink if sink is not None else sys.stdout
    with subprocess.Popen(
        list(command),
        cwd=str(cwd) if cwd else None,
        env=_merged_env(env),
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
    ) as process:
        assert process.stdout is not None
        reader = threading.Thread(target=_drain, args=(process.stdout, target), daemon=True)
        reader.start()
        returncode = process.wait()
        reader.join()
    return returncode


def ensure_directory(path: str | Path) -> Path:
    """Create a directory and return its Path object."""

    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def remove_path(path: str | Path) -> bool:
    """Delete a file or directory tree; return False when nothing was there."""

    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def sha256_file(path: str | Path) -> str:
    """Compute the SHA256 hash of the provided file."""

    digest = hashlib.sha256()
    with open(path, "rb") as file_handle:
        for chunk in iter(lambda: file_handle.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()


def load_json(path: str | Path, default: Any = None) -> Any:
    path = Path(path)
    if not path.exists():
        return default
    return json.loads(path.read_text(encoding="utf-8"))


def dump_json(path: str | Path, payload: Mapping[str, object], *, indent: int = 2) -> None:
    """Write structured JSON to disk atomically, with a trailing newline."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handle, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            stream.write(json.dumps(payload, indent=indent, sort_keys=True) + "\n")
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise
