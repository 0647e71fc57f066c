"""Configuration parsing for devwatch."""

import logging
import re
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from devwatch_core.classifier import compile_error_pattern
from devwatch_core.models import BuildStep, DevwatchConfig, RetestConfig
from devwatch_core.watchers import WatchSession

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "devwatch.toml"


def _string_list(value, what: str) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{what} must be a string or a list of strings")
    return value


def _parse_step(raw: dict, index: int) -> BuildStep:
    label = raw.get("label")
    if not label:
        raise ValueError(f"build.step #{index + 1} is missing 'label'")

    try:
        error_pattern = compile_error_pattern(raw.get("error_pattern"))
    except re.error as e:
        raise ValueError(f"Invalid error_pattern for step '{label}': {e}") from e

    step = BuildStep(
        label=label,
        command=raw.get("command"),
        watch_command=raw.get("watch_command"),
        error_pattern=error_pattern,
    )
    if not step.command and not step.watch_command:
        logger.warning(f"Step '{label}' has neither 'command' nor 'watch_command'")
    return step


def _parse_mirror(raw: dict, index: int, root: Path) -> WatchSession:
    where = f"mirror #{index + 1}"
    if "patterns" not in raw or "destinations" not in raw:
        raise ValueError(f"{where} needs 'patterns' and 'destinations'")
    patterns = _string_list(raw["patterns"], f"{where} patterns")
    if not patterns:
        raise ValueError(f"{where} has no patterns")
    destinations = [root / d for d in _string_list(raw["destinations"], f"{where} destinations")]
    return WatchSession(patterns=patterns, destinations=destinations, root=root)


def _parse_retest(raw: dict) -> RetestConfig:
    if "patterns" not in raw or "command" not in raw:
        raise ValueError("[watch] needs 'patterns' and 'command'")
    debounce_ms = raw.get("debounce_ms", 0)
    if not isinstance(debounce_ms, int) or debounce_ms < 0:
        raise ValueError("[watch] debounce_ms must be a non-negative integer")
    return RetestConfig(
        patterns=_string_list(raw["patterns"], "[watch] patterns"),
        command=raw["command"],
        debounce_ms=debounce_ms,
        variable=raw.get("variable", "changed"),
    )


def load_devwatch_config(path: str | Path) -> DevwatchConfig:
    """Load ``devwatch.toml``.

    Relative paths in the file are resolved against the file's directory.

    Args:
        path: Path to TOML config file

    Returns:
        Parsed configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file cannot be parsed or has invalid entries
    """
    path = Path(path)

    # Check file exists with helpful error
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\nRun 'devwatch' without --config to auto-create a default config."
        )

    try:
        with open(path, encoding="utf-8") as f:
            raw = tomllib.loads(f.read())
    except Exception as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e

    root = path.parent.resolve()

    try:
        steps = [_parse_step(s, i) for i, s in enumerate(raw.get("build", {}).get("step", []))]
        mirrors = [_parse_mirror(m, i, root) for i, m in enumerate(raw.get("mirror", []))]
        retest = _parse_retest(raw["watch"]) if "watch" in raw else None
    except ValueError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e

    return DevwatchConfig(root=root, steps=steps, mirrors=mirrors, retest=retest, path=path)
