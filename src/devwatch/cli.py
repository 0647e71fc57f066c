"""CLI entry point for devwatch: auto-generates default config and runs builds or watchers."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from devwatch import __version__
from devwatch.controller import BuildController
from devwatch.retest import RetestController
from devwatch_core.config import DEFAULT_CONFIG_NAME, load_devwatch_config
from devwatch_core.models import DevwatchConfig
from devwatch_core.rerun import CommandRerun
from devwatch_core.sinks import ConsoleSink, LogSink
from devwatch_core.supervisor import StepFailed

# Default config template for Python development workflows
DEFAULT_CONFIG_TEMPLATE = """\
# Auto-generated devwatch.toml

[variables]
changed = ""

[[build.step]]
label = "lint"
command = "ruff check ."

[[build.step]]
label = "types"
command = "mypy src"
watch_command = "mypy src"
error_pattern = ': error:'

[[mirror]]
patterns = ["src/**/*.{json,css,html,toml}"]
destinations = ["_build"]

[watch]
patterns = ["src/**/*.py", "tests/**/*.py"]
command = "Tests"
debounce_ms = 0

[[command]]
name = "Tests"
command = "pytest {{ changed }}"
triggers = []
"""


def create_default_config(config_path: Path) -> bool:
    """
    Create a default devwatch.toml if it doesn't exist.

    Args:
        config_path: Path where config should be created

    Returns:
        True if config was created, False if it already exists

    Raises:
        PermissionError: If unable to write to the directory
        OSError: If other file system errors occur
    """
    if config_path.exists():
        return False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_TEMPLATE)
    return True


def parse_args() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="devwatch",
        description="Build, watch and re-run a development project.",
        epilog="Examples:\n"
        "  devwatch build                  # One-shot build\n"
        "  devwatch build --watch          # Run compilers in watch mode and mirror resources\n"
        "  devwatch watch --debounce 50    # Re-run tests when files change\n"
        "  devwatch -c other.toml build    # Use custom config",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_NAME,
        help=f"Path to config file (default: {DEFAULT_CONFIG_NAME})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    build = subparsers.add_parser("build", help="Build the project, optionally keep watching")
    build.add_argument(
        "-w",
        "--watch",
        action="store_true",
        help="Run the watch commands and mirror resources until interrupted",
    )

    watch = subparsers.add_parser("watch", help="Re-run the test command when watched files change")
    watch.add_argument(
        "--debounce",
        type=int,
        metavar="MS",
        help="Quiescence window in milliseconds (overrides [watch] debounce_ms)",
    )

    args = parser.parse_args()
    if args.command is None:
        args.command = "build"
        args.watch = False
    return args


def configure_logging(verbose: bool) -> None:
    """Route devwatch diagnostics through rich on stderr."""
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    level = logging.DEBUG if verbose else logging.WARNING
    for name in ("devwatch", "devwatch_core"):
        logger = logging.getLogger(name)
        logger.setLevel(level)
        if not logger.handlers:
            logger.addHandler(handler)


async def run_build(config: DevwatchConfig, sink: LogSink, watch: bool) -> None:
    controller = BuildController(config, sink)
    if watch:
        await controller.watch()
    else:
        await controller.build()


async def run_retest(config: DevwatchConfig, sink: LogSink, debounce_ms: int | None) -> None:
    retest = config.retest
    if retest is None:
        raise ValueError(f"No [watch] section in {config.path}")
    if debounce_ms is not None:
        retest.debounce_ms = debounce_ms

    rerun = CommandRerun.from_config(config.path, retest.command, variable=retest.variable, sink=sink)
    controller = RetestController(retest, rerun, root=config.root, sink=sink)
    await controller.run()


def main() -> None:
    """
    Main entry point for the devwatch CLI.

    Handles:
    - Argument parsing
    - Auto-creation of devwatch.toml
    - Running the build or the watcher
    - Error handling and exit codes
    """
    args = parse_args()
    configure_logging(args.verbose)

    config_path = Path(args.config).resolve()
    sink = ConsoleSink()

    try:
        if create_default_config(config_path):
            print(f"Created default config at: {config_path}")

        config = load_devwatch_config(config_path)

        if args.command == "watch":
            asyncio.run(run_retest(config, sink, args.debounce))
        else:
            asyncio.run(run_build(config, sink, args.watch))

    except KeyboardInterrupt:
        # Gracefully handle Ctrl+C
        sys.exit(130)
    except StepFailed as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(e.returncode)
    except (PermissionError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
