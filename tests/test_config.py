from __future__ import annotations

from pathlib import Path

import pytest

from jbuild.config import DEFAULT_REPOSITORY, REPOSITORY_ENV, ConfigError, ProjectConfig
from jbuild.models import Dependency, Layout


@pytest.fixture(autouse=True)
def _no_repository_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(REPOSITORY_ENV, raising=False)


def test_config_loads_json_yaml_subset(tmp_path: Path) -> None:
    config_path = tmp_path / "jbuild.yaml"
    config_path.write_text(
        """
{
  \"main_class\": \"com.example.App\",
  \"dependencies\": [\"org/example/lib/1.0/lib-1.0.jar\"]
}
"""
    )
    config = ProjectConfig.from_file(config_path)
    assert config.main_class == "com.example.App"
    assert config.dependencies == [Dependency("org/example/lib/1.0/lib-1.0.jar")]
    assert config.source == config_path


def test_config_loads_yaml(tmp_path: Path) -> None:
    (tmp_path / "jbuild.yml").write_text(
        """
layout: split
repository: https://mirror.example.org/maven2/
dependencies:
  - coordinate: org/example/lib/1.0/lib-1.0.jar
    sha256: ABCDEF
test_dependencies:
  - org/example/mock/2.0/mock-2.0.jar
runtime_options: []
"""
    )
    config = ProjectConfig.discover(tmp_path)

    assert config.layout == Layout.split()
    assert config.repository == "https://mirror.example.org/maven2/"
    assert config.dependencies[0].sha256 == "abcdef"
    assert config.dependencies[0].filename == "lib-1.0.jar"
    assert config.test_dependencies == [Dependency("org/example/mock/2.0/mock-2.0.jar")]
    assert config.runtime_options == []


def test_config_loads_toml_with_layout_overrides(tmp_path: Path) -> None:
    (tmp_path / "jbuild.toml").write_text(
        """
main_class = "App"
compiler_options = ["--release", "17"]

[layout]
preset = "split"
archive_name = "demo.jar"
"""
    )
    config = ProjectConfig.discover(tmp_path)

    assert config.layout.source_root == "src/main"
    assert config.layout.archive_name == "demo.jar"
    assert config.layout.preset == "split"
    assert config.compiler_options == ["--release", "17"]


def test_defaults_without_config_file(tmp_path: Path) -> None:
    config = ProjectConfig.discover(tmp_path)

    assert config.main_class == "Main"
    assert config.repository == DEFAULT_REPOSITORY
    assert config.layout == Layout.simple()
    assert config.dependencies == []
    assert config.test_runner.filename == "junit-platform-console-standalone-1.10.1.jar"
    assert config.source is None


def test_environment_overrides_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(REPOSITORY_ENV, "https://proxy.example.org/")

    assert ProjectConfig.discover(tmp_path).repository == "https://proxy.example.org/"


def test_unknown_layout_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "jbuild.json"
    config_path.write_text('{"layout": "maven"}')

    with pytest.raises(ConfigError, match="Unknown layout preset"):
        ProjectConfig.from_file(config_path)


def test_non_mapping_config_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "jbuild.yaml"
    config_path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigError, match="must be a mapping"):
        ProjectConfig.from_file(config_path)


def test_malformed_yaml_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "jbuild.yaml"
    config_path.write_text("main_class: [unterminated\n")

    with pytest.raises(ConfigError, match="Malformed YAML"):
        ProjectConfig.from_file(config_path)


def test_empty_config_uses_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "jbuild.yaml"
    config_path.write_text("")

    assert ProjectConfig.from_file(config_path).main_class == "Main"


@pytest.mark.parametrize(
    "key, value",
    [
        ("dependencies", "org/example/lib/1.0/lib-1.0.jar"),
        ("test_dependencies", "org/example/mock/2.0/mock-2.0.jar"),
        ("compiler_options", "--enable-preview"),
        ("runtime_options", "-Xmx1g"),
    ],
)
def test_scalar_where_list_expected_is_rejected(tmp_path: Path, key: str, value: str) -> None:
    config_path = tmp_path / "jbuild.yaml"
    config_path.write_text(f"{key}: {value}\n")

    with pytest.raises(ConfigError, match=f"'{key}' must be a list"):
        ProjectConfig.from_file(config_path)
