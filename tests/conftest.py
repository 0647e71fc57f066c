"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


class RecordingSink:
    """Log sink that keeps every line for assertions."""

    def __init__(self):
        self.lines: list[tuple[str, bool]] = []

    def log(self, message: str, *, error: bool = False) -> None:
        self.lines.append((message, error))

    @property
    def messages(self) -> list[str]:
        return [message for message, _ in self.lines]

    @property
    def errors(self) -> list[str]:
        return [message for message, error in self.lines if error]


@pytest.fixture
def sink():
    """A sink recording every logged line."""
    return RecordingSink()


@pytest.fixture
def project(tmp_path):
    """A project directory with a few source files."""
    src = tmp_path / "src"
    (src / "ui").mkdir(parents=True)
    (src / "main.styl").write_text("body {}")
    (src / "ui" / "button.styl").write_text(".btn {}")
    (src / "ui" / "page.html").write_text("<p></p>")
    (src / "app.py").write_text("print('hi')")
    return tmp_path
