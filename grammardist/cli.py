"""CLI entrypoint for grammardist."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_config
from .context import BuildContext
from .logging import configure_logging, get_logger
from .orchestrator import Orchestrator

MODES = ("dist", "readme")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grammardist",
        description="Build ANTLR grammars into bundled modules and document them.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=False,
        help="Only report warnings and errors.",
    )
    parser.add_argument(
        "--root",
        default=".",
        help="Project root containing .grammardist.yml (defaults to current directory).",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore the incremental build cache and rebuild every grammar.",
    )
    parser.add_argument(
        "mode",
        nargs="?",
        metavar="{dist,readme}",
        help="dist: build every grammar; readme: refresh the README only.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for grammardist."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.mode not in MODES:
        parser.print_usage(sys.stderr)
        detail = f"unknown mode '{args.mode}'" if args.mode else "a mode is required"
        parser.exit(1, f"grammardist: error: {detail} (choose from {', '.join(MODES)})\n")

    try:
        config = load_config(Path(args.root))
    except (RuntimeError, OSError) as exc:
        parser.exit(1, f"{exc}\n")

    configure_logging(
        verbose=bool(args.verbose), quiet=bool(args.quiet), log_file=config.log_file
    )
    logger = get_logger("cli")

    context = BuildContext(config=config, use_cache=not args.no_cache)
    orchestrator = Orchestrator(context)

    try:
        if args.mode == "dist":
            outcome = orchestrator.run_dist()
            readme_path = outcome.readme_path
        else:
            readme_path = orchestrator.run_readme()
    except (RuntimeError, OSError) as exc:
        logger.debug("grammardist %s failed", args.mode, exc_info=True)
        parser.exit(1, f"grammardist {args.mode} failed: {exc}\nRun with --verbose for more details.\n")

    if readme_path is not None:
        print(f"README written to {_relativize(readme_path)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
