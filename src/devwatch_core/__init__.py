"""devwatch-core: Building blocks for build/watch orchestration."""

__version__ = "0.1.0"

# Building blocks
from devwatch_core.classifier import ClassifiedLine, classify_chunk
from devwatch_core.debounce import DebouncedTrigger, PendingBatch
from devwatch_core.file_mirror import FileMirror, mirror

# Models and config
from devwatch_core.config import load_devwatch_config
from devwatch_core.models import BuildStep, DevwatchConfig, ProcessSession, RetestConfig
from devwatch_core.sinks import ConsoleSink, LoggingSink, LogSink, NoOpSink
from devwatch_core.supervisor import ProcessSupervisor, StepFailed, run_to_completion, supervise
from devwatch_core.watchers import GlobWatcher, WatchSession

__all__ = [
    "__version__",
    # Building blocks
    "ClassifiedLine",
    "classify_chunk",
    "DebouncedTrigger",
    "PendingBatch",
    "FileMirror",
    "mirror",
    "GlobWatcher",
    "ProcessSupervisor",
    "StepFailed",
    "run_to_completion",
    "supervise",
    # Models
    "BuildStep",
    "DevwatchConfig",
    "ProcessSession",
    "RetestConfig",
    "WatchSession",
    # Sinks
    "LogSink",
    "ConsoleSink",
    "LoggingSink",
    "NoOpSink",
    # Config
    "load_devwatch_config",
]
