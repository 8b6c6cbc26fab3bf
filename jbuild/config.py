from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

try:  # pragma: no cover - tomllib is stdlib from 3.11 onwards
    import tomllib  # type: ignore
except ModuleNotFoundError:  # pragma: no cover - fallback for 3.10
    import tomli as tomllib  # type: ignore

from .models import Dependency, Layout

DEFAULT_REPOSITORY = "https://repo1.maven.org/maven2/"
DEFAULT_TEST_RUNNER = (
    "org/junit/platform/junit-platform-console-standalone/1.10.1/"
    "junit-platform-console-standalone-1.10.1.jar"
)
DEFAULT_COMPILER_OPTIONS = ("--enable-preview", "--source", "21")
DEFAULT_RUNTIME_OPTIONS = ("--enable-preview",)
CONFIG_FILENAMES = ("jbuild.yaml", "jbuild.yml", "jbuild.json", "jbuild.toml")
REPOSITORY_ENV = "JBUILD_REPOSITORY"


class ConfigError(RuntimeError):
    """Raised when the project configuration cannot be parsed."""


@dataclass
class ProjectConfig:
    """Build settings for one project, loaded from ``jbuild.{yaml,json,toml}``."""

    main_class: str = "Main"
    repository: str = DEFAULT_REPOSITORY
    layout: Layout = field(default_factory=Layout.simple)
    dependencies: List[Dependency] = field(default_factory=list)
    test_dependencies: List[Dependency] = field(default_factory=list)
    test_runner: Dependency = field(default_factory=lambda: Dependency(DEFAULT_TEST_RUNNER))
    compiler_options: List[str] = field(default_factory=lambda: list(DEFAULT_COMPILER_OPTIONS))
    runtime_options: List[str] = field(default_factory=lambda: list(DEFAULT_RUNTIME_OPTIONS))
    javac: str = "javac"
    java: str = "java"
    timeout_s: Optional[float] = None
    source: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, source: Optional[Path] = None) -> "ProjectConfig":
        defaults = cls()
        try:
            config = cls(
                main_class=str(data.get("main_class", defaults.main_class)),
                repository=str(data.get("repository", defaults.repository)),
                layout=Layout.from_value(data.get("layout")),
                dependencies=[
                    Dependency.from_value(d) for d in _list_value(data, "dependencies", [])
                ],
                test_dependencies=[
                    Dependency.from_value(d) for d in _list_value(data, "test_dependencies", [])
                ],
                test_runner=Dependency.from_value(data.get("test_runner", defaults.test_runner)),
                compiler_options=[
                    str(o) for o in _list_value(data, "compiler_options", defaults.compiler_options)
                ],
                runtime_options=[
                    str(o) for o in _list_value(data, "runtime_options", defaults.runtime_options)
                ],
                javac=str(data.get("javac", defaults.javac)),
                java=str(data.get("java", defaults.java)),
                timeout_s=data.get("timeout_s"),
                source=source,
            )
        except (TypeError, ValueError) as exc:
            location = f" in {source}" if source else ""
            raise ConfigError(f"Invalid configuration{location}: {exc}") from exc
        return config.with_environment()

    @classmethod
    def from_file(cls, path: str | Path) -> "ProjectConfig":
        path = Path(path)
        return cls.from_dict(_parse(path), source=path)

    @classmethod
    def discover(cls, project_dir: str | Path) -> "ProjectConfig":
        """Load the first config file found in ``project_dir``, or the defaults."""

        project_dir = Path(project_dir)
        for name in CONFIG_FILENAMES:
            candidate = project_dir / name
            if candidate.is_file():
                return cls.from_file(candidate)
        return cls().with_environment()

    def with_environment(self, environ: Optional[Mapping[str, str]] = None) -> "ProjectConfig":
        environ = os.environ if environ is None else environ
        override = environ.get(REPOSITORY_ENV)
        if override:
            self.repository = override
        return self


def _list_value(data: Mapping[str, Any], key: str, default: List[Any]) -> List[Any]:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{key}' must be a list, got {type(value).__name__}")
    return list(value)


def _parse(path: Path) -> Dict[str, Any]:
    raw_text = path.read_text(encoding="utf-8")
    if path.suffix == ".toml":
        try:
            raw_data: Any = tomllib.loads(raw_text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Malformed TOML in {path}: {exc}") from exc
    else:
        try:
            raw_data = json.loads(raw_text)
        except json.JSONDecodeError:
            try:
                raw_data = yaml.safe_load(raw_text)
            except yaml.YAMLError as exc:
                raise ConfigError(f"Malformed YAML in {path}: {exc}") from exc

    if raw_data is None:
        return {}
    if not isinstance(raw_data, dict):
        raise ConfigError(f"Configuration in {path} must be a mapping")
    return raw_data
