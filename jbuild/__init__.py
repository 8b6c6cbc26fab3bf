"""Build pipeline for small Java projects: fetch, compile, package, run and test."""

from .config import ProjectConfig
from .pipeline import Action, BuildContext, BuildPipeline

__all__ = ["ProjectConfig", "Action", "BuildContext", "BuildPipeline"]
