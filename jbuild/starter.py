"""Starter sources written by the ``init`` action."""

from __future__ import annotations

from pathlib import Path
from typing import List

from .utils import ensure_directory

GREETING = "Hello, World!"

MAIN_TEMPLATE = """\
public class {main_class} {{
    public static String greeting() {{
        return "{greeting}";
    }}

    public static void main(String... args) {{
        System.out.println(greeting());
    }}
}}
"""

TEST_TEMPLATE = """\
import static org.junit.jupiter.api.Assertions.assertEquals;

import org.junit.jupiter.api.Test;

class {main_class}Test {{
    @Test
    void greeting() {{
        assertEquals("{greeting}", {main_class}.greeting());
    }}
}}
"""


def _class_path(root: Path, main_class: str, suffix: str = "") -> Path:
    *package, simple_name = main_class.split(".")
    return root.joinpath(*package, f"{simple_name}{suffix}.java")


def _render(template: str, main_class: str) -> str:
    *package, simple_name = main_class.split(".")
    header = f"package {'.'.join(package)};\n\n" if package else ""
    return header + template.format(main_class=simple_name, greeting=GREETING)


def write_main(source_root: Path, main_class: str) -> Path:
    path = _class_path(source_root, main_class)
    ensure_directory(path.parent)
    path.write_text(_render(MAIN_TEMPLATE, main_class), encoding="utf-8")
    return path


def write_test(test_root: Path, main_class: str) -> Path:
    path = _class_path(test_root, main_class, suffix="Test")
    ensure_directory(path.parent)
    path.write_text(_render(TEST_TEMPLATE, main_class), encoding="utf-8")
    return path


def write_starter(source_root: Path, main_class: str, test_root: Path | None = None) -> List[Path]:
    """Write the starter sources, replacing any files already at those paths."""

    written = [write_main(source_root, main_class)]
    if test_root is not None:
        written.append(write_test(test_root, main_class))
    return written
