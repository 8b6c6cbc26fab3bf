from __future__ import annotations

import logging
import os
from typing import Any, Callable, List, Optional, Sequence

from .config import DEFAULT_COMPILER_OPTIONS
from .models import CompilationUnit, CompileResult
from .utils import CommandError, ensure_directory, run_command

logger = logging.getLogger(__name__)


class CompilationError(RuntimeError):
    """Raised when the compiler rejects a compilation unit."""

    def __init__(self, message: str, result: Optional[CompileResult] = None) -> None:
        self.result = result
        if result is not None and result.diagnostics:
            message = f"{message}\n{result.diagnostics}"
        super().__init__(message)


class Javac:
    """Compiler invoker driving ``javac`` as a subprocess."""

    def __init__(
        self,
        executable: str = "javac",
        options: Sequence[str] = DEFAULT_COMPILER_OPTIONS,
        runner: Callable[..., Any] = run_command,
    ) -> None:
        self.executable = executable
        self.options = list(options)
        self.runner = runner

    def build_command(self, unit: CompilationUnit) -> List[str]:
        command = [self.executable, *self.options]
        command += ["-sourcepath", str(unit.source_root), "-d", str(unit.output_dir)]
        # An empty -classpath is not the same as no classpath at all.
        if unit.classpath:
            command += ["-classpath", os.pathsep.join(str(entry) for entry in unit.classpath)]
        command += [str(path) for path in unit.files]
        return command

    def compile(self, unit: CompilationUnit) -> CompileResult:
        ensure_directory(unit.output_dir)
        command = self.build_command(unit)
        logger.debug("Running: %s", " ".join(command))
        try:
            result = self.runner(command)
        except CommandError as exc:
            return CompileResult(
                success=False,
                returncode=exc.returncode,
                diagnostics=(exc.stdout + exc.stderr).strip(),
                command=command,
            )
        return CompileResult(
            success=True,
            returncode=result.returncode,
            diagnostics=(result.stdout + result.stderr).strip(),
            command=command,
        )


def compile_unit(compiler: Javac, unit: CompilationUnit) -> CompileResult:
    """Compile ``unit`` and raise :class:`CompilationError` unless it succeeds."""

    if not unit.files:
        raise CompilationError(f"No sources to compile under {unit.source_root}")
    logger.info("Compiling %d source file(s) from %s", len(unit.files), unit.source_root)
    result = compiler.compile(unit)
    if not result.success:
        raise CompilationError(
            f"Compilation of {unit.source_root} failed with exit code {result.returncode}", result
        )
    if result.diagnostics:
        logger.info("%s", result.diagnostics)
    return result
