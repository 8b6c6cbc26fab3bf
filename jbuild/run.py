from __future__ import annotations

import argparse
import logging
import sys

from .pipeline import Action, BuildContext, BuildPipeline


def configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch dependencies, compile, package, run and test a Java project."
    )
    parser.add_argument(
        "actions",
        nargs="*",
        metavar="action",
        help="Any of: " + ", ".join(action.value for action in Action) + " (default: build).",
    )
    parser.add_argument(
        "--project-dir",
        default=".",
        help="Project root containing sources, outputs and libraries.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Configuration file; defaults to jbuild.{yaml,yml,json,toml} in the project root.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    context = BuildContext.from_directory(args.project_dir, args.config)
    pipeline = BuildPipeline(context)
    pipeline.execute(Action.parse(args.actions))
    return pipeline.exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
