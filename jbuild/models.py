from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union


@dataclass(frozen=True)
class Dependency:
    """A repository-relative artifact coordinate, optionally pinned to a checksum."""

    coordinate: str
    sha256: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.coordinate.rsplit("/", 1)[-1]

    @classmethod
    def from_value(cls, value: Union[str, Dict[str, Any], "Dependency"]) -> "Dependency":
        if isinstance(value, Dependency):
            return value
        if isinstance(value, str):
            return cls(coordinate=value)
        if isinstance(value, dict) and "coordinate" in value:
            checksum = value.get("sha256")
            return cls(
                coordinate=str(value["coordinate"]),
                sha256=str(checksum).lower() if checksum else None,
            )
        raise ValueError(f"Unsupported dependency declaration: {value!r}")


@dataclass(frozen=True)
class LocalArtifact:
    """A dependency resolved to a file in a library directory."""

    coordinate: str
    path: Path
    sha256: str


@dataclass
class Layout:
    """Project-relative locations of sources, compiled output and libraries."""

    source_root: str = "src"
    test_source_root: str = "test"
    output_root: str = "out"
    test_output_root: str = "test-out"
    lib_root: str = "lib"
    test_lib_root: str = "lib/test"
    archive_name: str = "app.jar"
    preset: str = "simple"

    @classmethod
    def simple(cls) -> "Layout":
        return cls()

    @classmethod
    def split(cls) -> "Layout":
        return cls(
            preset="split",
            source_root="src/main",
            test_source_root="src/test",
            output_root="out/main",
            test_output_root="out/test",
            lib_root="lib/main",
            test_lib_root="lib/test",
        )

    @classmethod
    def from_preset(cls, name: str) -> "Layout":
        presets = {"simple": cls.simple, "split": cls.split}
        try:
            return presets[name]()
        except KeyError as exc:
            raise ValueError(f"Unknown layout preset: {name}") from exc

    @classmethod
    def from_value(cls, value: Union[str, Dict[str, Any], None]) -> "Layout":
        if value is None:
            return cls.simple()
        if isinstance(value, str):
            return cls.from_preset(value)
        if not isinstance(value, dict):
            raise ValueError(f"Unsupported layout declaration: {value!r}")
        base = cls.from_preset(value.get("preset", "simple"))
        known = {f.name for f in fields(cls)}
        overrides = {key: str(val) for key, val in value.items() if key in known}
        return replace(base, **overrides)


@dataclass(frozen=True)
class CompilationUnit:
    """Everything the compiler needs for one invocation."""

    source_root: Path
    files: Sequence[Path]
    classpath: Sequence[Path]
    output_dir: Path


@dataclass
class CompileResult:
    success: bool
    returncode: int
    diagnostics: str
    command: List[str] = field(default_factory=list)


@dataclass
class ActionResult:
    """Summary emitted by a pipeline action."""

    name: str
    status: str
    details: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.name, "status": self.status, "details": self.details}
