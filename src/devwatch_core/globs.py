"""Glob pattern matching with brace alternation and recursive wildcards.

Supported syntax:

- ``*`` matches within one path segment, ``?`` one character
- ``**`` matches any number of directories (including none)
- ``[abc]`` / ``[!abc]`` character classes
- ``{a,b}`` alternation, nestable (``src/**/*.{js,{d.,}ts}``)
- a leading ``!`` negates a pattern in a pattern list

Paths are matched relative to a root directory. Files outside the root
never match, so patterns reaching above it (``../assets/*.png``) are
reported with a warning.
"""

import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

_MAGIC_CHARS = set("*?[{")


def _split_alternatives(body: str) -> list[str]:
    """Split brace contents on top-level commas."""
    parts: list[str] = []
    depth = 0
    current = []
    for char in body:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternations into plain glob patterns.

    Braces without a top-level comma are kept literally.

    >>> expand_braces("src/*.{js,ts}")
    ['src/*.js', 'src/*.ts']
    """
    depth = 0
    start = -1
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                alternatives = _split_alternatives(pattern[start + 1 : index])
                if len(alternatives) < 2:
                    continue
                prefix, suffix = pattern[:start], pattern[index + 1 :]
                expanded: list[str] = []
                for alternative in alternatives:
                    for result in expand_braces(prefix + alternative + suffix):
                        if result not in expanded:
                            expanded.append(result)
                return expanded
    return [pattern]


def _normalize(pattern: str) -> str:
    pattern = pattern.replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern


def translate(pattern: str) -> re.Pattern[str]:
    """Compile a brace-free glob into a regex matching POSIX relative paths."""
    pattern = _normalize(pattern)
    parts: list[str] = []
    index = 0
    length = len(pattern)

    while index < length:
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
        elif pattern.startswith("**", index):
            parts.append(".*")
            index += 2
        else:
            char = pattern[index]
            if char == "*":
                parts.append("[^/]*")
            elif char == "?":
                parts.append("[^/]")
            elif char == "[":
                end = pattern.find("]", index + 2)
                if end == -1:
                    parts.append(re.escape(char))
                else:
                    body = pattern[index + 1 : end]
                    if body.startswith("!"):
                        body = "^" + body[1:]
                    parts.append("[" + body.replace("\\", "\\\\") + "]")
                    index = end
            else:
                parts.append(re.escape(char))
            index += 1

    return re.compile("".join(parts) + r"\Z")


def glob_base(pattern: str) -> str:
    """Return the leading directories of a pattern that contain no glob characters.

    >>> glob_base("src/**/*.styl")
    'src'
    >>> glob_base("*.md")
    '.'
    """
    segments = _normalize(pattern).split("/")
    base: list[str] = []
    for segment in segments[:-1]:
        if _MAGIC_CHARS & set(segment):
            break
        base.append(segment)
    return "/".join(base) or "."


@dataclass(frozen=True)
class _CompiledGlob:
    source: str
    base: str
    regex: re.Pattern[str]


class GlobSet:
    """An ordered set of glob patterns matched against paths under a root.

    Patterns starting with ``!`` exclude whatever they match. Files under
    ``exclude_dirs`` never match, whatever the patterns say.
    """

    def __init__(
        self,
        patterns: Sequence[str],
        root: str | Path | None = None,
        exclude_dirs: Sequence[str | Path] = (),
    ):
        if isinstance(patterns, str):
            patterns = [patterns]
        self.patterns = list(patterns)
        self.root = Path(root or Path.cwd()).resolve()
        self._includes: list[_CompiledGlob] = []
        self._excludes: list[re.Pattern[str]] = []
        self.exclude_dirs = [self._resolve(d) for d in exclude_dirs]

        for pattern in self.patterns:
            negated = pattern.startswith("!")
            if negated:
                pattern = pattern[1:]
            for expanded in expand_braces(pattern):
                if negated:
                    self._excludes.append(translate(expanded))
                else:
                    self._includes.append(
                        _CompiledGlob(source=expanded, base=glob_base(expanded), regex=translate(expanded))
                    )

        for compiled in self._includes:
            if self.relative(self.root / compiled.base) is None:
                logger.warning(f"Pattern {compiled.source} points outside {self.root} and will never match")

    def _resolve(self, path: str | Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self.root / path
        return path.resolve()

    def relative(self, path: str | Path) -> str | None:
        """Return ``path`` relative to the root as a POSIX string, or None if outside it."""
        try:
            return self._resolve(path).relative_to(self.root).as_posix()
        except ValueError:
            return None

    def _match(self, path: str | Path) -> _CompiledGlob | None:
        if self.exclude_dirs:
            resolved = self._resolve(path)
            if any(resolved.is_relative_to(d) for d in self.exclude_dirs):
                return None
        rel = self.relative(path)
        if rel is None:
            return None
        if any(regex.match(rel) for regex in self._excludes):
            return None
        for compiled in self._includes:
            if compiled.regex.match(rel):
                return compiled
        return None

    def matches(self, path: str | Path) -> bool:
        """Check whether a path is matched by the include patterns and not excluded."""
        return self._match(path) is not None

    def relative_to_base(self, path: str | Path) -> PurePosixPath | None:
        """Path of a matched file relative to the static base of the first matching pattern."""
        compiled = self._match(path)
        if compiled is None:
            return None
        rel = PurePosixPath(self.relative(path))
        if compiled.base == ".":
            return rel
        return rel.relative_to(compiled.base)

    def base_dirs(self) -> list[Path]:
        """Distinct absolute static base directories, in pattern order."""
        dirs: list[Path] = []
        for compiled in self._includes:
            directory = (self.root / compiled.base).resolve()
            if directory not in dirs:
                dirs.append(directory)
        return dirs

    def iter_matches(self) -> Iterator[Path]:
        """Yield existing files matched by the patterns, sorted per base directory."""
        seen: set[Path] = set()
        for directory in self.base_dirs():
            if not directory.is_dir():
                continue
            for path in sorted(directory.rglob("*")):
                if path in seen or not path.is_file():
                    continue
                if self.matches(path):
                    seen.add(path)
                    yield path
