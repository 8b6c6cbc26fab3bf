from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
import requests

from jbuild.config import ProjectConfig
from jbuild.fetcher import Fetcher
from jbuild.models import CompilationUnit, CompileResult
from jbuild.pipeline import BuildContext, BuildPipeline


class FakeResponse:
    def __init__(self, body: Optional[bytes], status: int = 200) -> None:
        self.body = body or b""
        self.status = status

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Client Error")

    def iter_content(self, chunk_size: int = 1):
        for offset in range(0, len(self.body), chunk_size):
            yield self.body[offset : offset + chunk_size]


class FakeSession:
    """Stands in for ``requests.Session``; records every requested URL."""

    def __init__(self, payloads: Optional[Dict[str, Optional[bytes]]] = None) -> None:
        self.payloads = payloads or {}
        self.requests: List[str] = []

    def get(self, url: str, stream: bool = False, timeout: Optional[float] = None) -> FakeResponse:
        self.requests.append(url)
        if url in self.payloads and self.payloads[url] is None:
            return FakeResponse(None, status=404)
        return FakeResponse(self.payloads.get(url, b"jar:" + url.encode()))


class FakeCompiler:
    """Writes one ``.class`` file per source instead of invoking javac."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.units: List[CompilationUnit] = []
        self.classpath_present: List[List[bool]] = []

    def compile(self, unit: CompilationUnit) -> CompileResult:
        self.units.append(unit)
        self.classpath_present.append([Path(entry).exists() for entry in unit.classpath])
        if self.fail:
            return CompileResult(False, 1, "Main.java:1: error: ';' expected")
        for source in unit.files:
            relative = Path(source).relative_to(unit.source_root).with_suffix(".class")
            target = Path(unit.output_dir) / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"\xca\xfe\xba\xbe" + relative.as_posix().encode())
        return CompileResult(True, 0, "")


class FakeRunner:
    def __init__(self, returncode: int = 0, output: str = "Hello, World!\n") -> None:
        self.returncode = returncode
        self.output = output
        self.commands: List[List[str]] = []

    def __call__(self, command, *, cwd=None, sink=None) -> int:
        self.commands.append(list(command))
        if sink is not None:
            sink.write(self.output)
        return self.returncode


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_pipeline(
    tmp_path: Path, session: FakeSession, compiler: FakeCompiler, runner: FakeRunner
) -> Callable[..., BuildPipeline]:
    def _make(config: Optional[ProjectConfig] = None, **kwargs) -> BuildPipeline:
        context = BuildContext(project_dir=tmp_path, config=config or ProjectConfig())
        fetcher = Fetcher(context.config.repository, session=session)
        return BuildPipeline(context, compiler=compiler, fetcher=fetcher, runner=runner, **kwargs)

    return _make
