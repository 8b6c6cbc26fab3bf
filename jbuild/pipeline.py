from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from graphlib import TopologicalSorter
from pathlib import Path
from typing import IO, Callable, Dict, Iterable, List, Optional, Sequence, Set

from .archiver import create_archive
from .compiler import Javac, compile_unit
from .config import ProjectConfig
from .fetcher import Fetcher
from .models import ActionResult, CompilationUnit
from .scanner import java_sources
from .starter import write_starter
from .utils import remove_path, stream_command

logger = logging.getLogger(__name__)


class Action(Enum):
    INIT = "init"
    CLEAN = "clean"
    BUILD = "build"
    TEST = "test"
    RUN = "run"

    @classmethod
    def parse(cls, tokens: Iterable[str]) -> List["Action"]:
        actions: List[Action] = []
        for token in tokens:
            try:
                actions.append(cls(token.lower()))
            except ValueError:
                logger.warning("Ignoring unknown action: %s", token)
        return actions


# Direct ordering constraints: an action runs after these when both are requested.
_RUNS_AFTER: Dict[Action, Sequence[Action]] = {
    Action.INIT: (),
    Action.CLEAN: (Action.INIT,),
    Action.BUILD: (Action.CLEAN,),
    Action.TEST: (Action.BUILD,),
    Action.RUN: (Action.BUILD, Action.TEST),
}


def _predecessors(action: Action) -> Set[Action]:
    found: Set[Action] = set()
    pending = list(_RUNS_AFTER[action])
    while pending:
        current = pending.pop()
        if current not in found:
            found.add(current)
            pending.extend(_RUNS_AFTER[current])
    return found


def plan_actions(requested: Iterable[Action]) -> List[Action]:
    """Order the requested actions; an empty request means ``build``."""

    selected = set(requested) or {Action.BUILD}
    graph = {action: _predecessors(action) & selected for action in selected}
    return list(TopologicalSorter(graph).static_order())


@dataclass
class BuildContext:
    project_dir: Path
    config: ProjectConfig

    def __post_init__(self) -> None:
        self.project_dir = Path(self.project_dir).resolve()

    @classmethod
    def from_directory(
        cls, project_dir: str | Path, config_path: str | Path | None = None
    ) -> "BuildContext":
        if config_path is not None:
            config = ProjectConfig.from_file(config_path)
        else:
            config = ProjectConfig.discover(project_dir)
        return cls(project_dir=Path(project_dir), config=config)

    def resolve(self, relative: str) -> Path:
        return self.project_dir / relative

    @property
    def source_root(self) -> Path:
        return self.resolve(self.config.layout.source_root)

    @property
    def test_source_root(self) -> Path:
        return self.resolve(self.config.layout.test_source_root)

    @property
    def output_root(self) -> Path:
        return self.resolve(self.config.layout.output_root)

    @property
    def test_output_root(self) -> Path:
        return self.resolve(self.config.layout.test_output_root)

    @property
    def lib_root(self) -> Path:
        return self.resolve(self.config.layout.lib_root)

    @property
    def test_lib_root(self) -> Path:
        return self.resolve(self.config.layout.test_lib_root)

    @property
    def archive_path(self) -> Path:
        return self.lib_root / self.config.layout.archive_name

    @property
    def clean_targets(self) -> List[Path]:
        return [self.output_root, self.test_output_root, self.archive_path]


ProcessRunner = Callable[..., int]
ActionHandler = Callable[["BuildPipeline"], ActionResult]


def _action_init(pipeline: "BuildPipeline") -> ActionResult:
    context = pipeline.context
    test_root = context.test_source_root if context.config.layout.preset == "split" else None
    written = write_starter(context.source_root, context.config.main_class, test_root)
    return ActionResult("init", "completed", {"written": [str(path) for path in written]})


def _action_clean(pipeline: "BuildPipeline") -> ActionResult:
    removed = [str(path) for path in pipeline.context.clean_targets if remove_path(path)]
    return ActionResult("clean", "completed", {"removed": removed})


def _action_build(pipeline: "BuildPipeline") -> ActionResult:
    context = pipeline.context
    config = context.config

    sources = java_sources(context.source_root)
    classpath = pipeline.fetcher.fetch(context.lib_root, config.dependencies)
    unit = CompilationUnit(context.source_root, sources, classpath, context.output_root)
    compile_unit(pipeline.compiler, unit)
    archive = create_archive(context.output_root, context.archive_path, config.main_class)

    details = {
        "sources": len(sources),
        "classpath": [str(path) for path in classpath],
        "archive": str(archive),
    }
    return ActionResult("build", "completed", details)


def _action_test(pipeline: "BuildPipeline") -> ActionResult:
    context = pipeline.context
    config = context.config

    main_libs = pipeline.fetcher.fetch(context.lib_root, config.dependencies)
    test_libs = pipeline.fetcher.fetch(
        context.test_lib_root, [*config.test_dependencies, config.test_runner]
    )
    runner_jar = test_libs[-1]
    classpath = [context.archive_path, *main_libs, *test_libs]

    sources = java_sources(context.test_source_root)
    unit = CompilationUnit(context.test_source_root, sources, classpath, context.test_output_root)
    compile_unit(pipeline.compiler, unit)

    runtime_classpath = os.pathsep.join(str(entry) for entry in [context.test_output_root, *classpath])
    command = [
        config.java,
        *config.runtime_options,
        "-jar",
        str(runner_jar),
        "execute",
        "--class-path",
        runtime_classpath,
        "--scan-class-path",
    ]
    returncode = pipeline.execute_process(command)
    details = {"sources": len(sources), "command": command, "returncode": returncode}
    return ActionResult("test", "completed", details)


def _action_run(pipeline: "BuildPipeline") -> ActionResult:
    context = pipeline.context
    config = context.config

    built = False
    if not context.archive_path.exists():
        pipeline.run_action(Action.BUILD)
        built = True

    classpath = os.path.join(str(context.archive_path.parent), "*")
    command = [config.java, *config.runtime_options, "-cp", classpath, config.main_class]
    returncode = pipeline.execute_process(command)
    details = {"built": built, "command": command, "returncode": returncode}
    return ActionResult("run", "completed", details)


_ACTION_HANDLERS: Dict[Action, ActionHandler] = {
    Action.INIT: _action_init,
    Action.CLEAN: _action_clean,
    Action.BUILD: _action_build,
    Action.TEST: _action_test,
    Action.RUN: _action_run,
}


class BuildPipeline:
    """Runs the requested actions for one project, each at most once."""

    def __init__(
        self,
        context: BuildContext,
        *,
        compiler: Optional[Javac] = None,
        fetcher: Optional[Fetcher] = None,
        runner: ProcessRunner = stream_command,
        stdout: Optional[IO[str]] = None,
    ) -> None:
        config = context.config
        self.context = context
        self.compiler = compiler or Javac(config.javac, config.compiler_options)
        self.fetcher = fetcher or Fetcher(config.repository, timeout_s=config.timeout_s)
        self.runner = runner
        self.stdout = stdout
        self.exit_code = 0
        self._completed: Dict[Action, ActionResult] = {}

    def execute(self, actions: Iterable[Action] = ()) -> List[ActionResult]:
        return [self.run_action(action) for action in plan_actions(actions)]

    def run_action(self, action: Action) -> ActionResult:
        if action in self._completed:
            return self._completed[action]
        logger.info("==> %s", action.value)
        result = _ACTION_HANDLERS[action](self)
        self._completed[action] = result
        logger.debug("%s", result.to_dict())
        return result

    def execute_process(self, command: Sequence[str]) -> int:
        logger.debug("Running: %s", " ".join(command))
        returncode = self.runner(command, cwd=self.context.project_dir, sink=self.stdout)
        self.exit_code = returncode
        return returncode
