from __future__ import annotations

import os
import re
import stat
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePath
from typing import Optional

from .config import SortOrder


_GLOB_SPECIAL = re.compile(r"([*?\[\]{}\\,])")


class MatcherError(ValueError):
    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"invalid pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


def _translate_class(pattern: str, i: int) -> tuple[str, int]:
    n = len(pattern)
    negate = False
    if i < n and pattern[i] in "!^":
        negate = True
        i += 1
    items: list[str] = []
    first = True
    while True:
        if i >= n:
            raise MatcherError(pattern, "unclosed character class")
        c = pattern[i]
        if c == "]" and not first:
            i += 1
            break
        first = False
        i += 1
        if i + 1 < n and pattern[i] == "-" and pattern[i + 1] != "]":
            end = pattern[i + 1]
            if end < c:
                raise MatcherError(pattern, f"invalid range {c}-{end}")
            items.append(f"{re.escape(c)}-{re.escape(end)}")
            i += 2
        else:
            items.append(re.escape(c))
    return ("[^" if negate else "[") + "".join(items) + "]", i


def translate_glob(pattern: str) -> str:
    """Translate one glob pattern into an (unanchored) regular expression."""
    out: list[str] = []
    in_alt = False
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        i += 1
        if c == "\\":
            if i >= n:
                raise MatcherError(pattern, "dangling escape")
            out.append(re.escape(pattern[i]))
            i += 1
        elif c == "*":
            while i < n and pattern[i] == "*":
                i += 1
            out.append(".*")
        elif c == "?":
            out.append(".")
        elif c == "[":
            cls, i = _translate_class(pattern, i)
            out.append(cls)
        elif c == "{":
            if in_alt:
                raise MatcherError(pattern, "nested alternation")
            in_alt = True
            out.append("(?:")
        elif c == "}" and in_alt:
            in_alt = False
            out.append(")")
        elif c == "," and in_alt:
            out.append("|")
        else:
            out.append(re.escape(c))
    if in_alt:
        raise MatcherError(pattern, "unclosed alternation")
    return "".join(out)


def file_name(path: str | os.PathLike[str]) -> Optional[str]:
    name = PurePath(path).name
    if not name or name == "..":
        return None
    return name


class Matcher:
    """Set of glob patterns matched against the final component of a path."""

    def __init__(self, patterns: tuple[str, ...], regex: Optional[re.Pattern[str]]) -> None:
        self.patterns = patterns
        self._regex = regex

    @classmethod
    def build(cls, patterns: Iterable[str]) -> "Matcher":
        patterns = tuple(patterns)
        if not patterns:
            return cls.empty()
        joined = "|".join(f"(?:{translate_glob(p)})" for p in patterns)
        return cls(patterns, re.compile(joined, re.DOTALL))

    @classmethod
    def any(cls) -> "Matcher":
        return cls.build(["*"])

    @classmethod
    def empty(cls) -> "Matcher":
        return cls((), None)

    @staticmethod
    def escape(name: str) -> str:
        return _GLOB_SPECIAL.sub(r"\\\1", name)

    def is_match(self, path: str | os.PathLike[str]) -> bool:
        if self._regex is None:
            return False
        name = file_name(path)
        if name is None:
            return False
        return self._regex.fullmatch(name) is not None

    def __repr__(self) -> str:
        return f"Matcher({list(self.patterns)!r})"


def sort_paths(paths: Iterable[Path], sort_order: SortOrder) -> list[Path]:
    paths = list(paths)
    if sort_order is SortOrder.MOD_TIME:
        keyed = [(path.stat().st_mtime_ns, path.name, path) for path in paths]
        keyed.sort(key=lambda item: (item[0], item[1]))
        return [path for _, _, path in keyed]
    return sorted(paths, key=lambda path: path.name)


class Selection:
    """Include/exclude matchers for item files and item directories.

    A path is selected when it matches the include matcher for its type and
    does not match the exclude matcher for its type.
    """

    def __init__(
        self,
        include_files: Matcher,
        exclude_files: Matcher,
        include_dirs: Matcher,
        exclude_dirs: Matcher,
    ) -> None:
        self.include_files = include_files
        self.exclude_files = exclude_files
        self.include_dirs = include_dirs
        self.exclude_dirs = exclude_dirs

    @classmethod
    def default(cls) -> "Selection":
        return cls(Matcher.any(), Matcher.empty(), Matcher.any(), Matcher.empty())

    @classmethod
    def from_patterns(
        cls,
        include_files: Iterable[str],
        exclude_files: Iterable[str],
        include_dirs: Iterable[str],
        exclude_dirs: Iterable[str],
    ) -> "Selection":
        return cls(
            Matcher.build(include_files),
            Matcher.build(exclude_files),
            Matcher.build(include_dirs),
            Matcher.build(exclude_dirs),
        )

    def is_file_pattern_match(self, path: str | os.PathLike[str]) -> bool:
        return self.include_files.is_match(path) and not self.exclude_files.is_match(path)

    def is_dir_pattern_match(self, path: str | os.PathLike[str]) -> bool:
        return self.include_dirs.is_match(path) and not self.exclude_dirs.is_match(path)

    def is_selected(self, path: str | os.PathLike[str]) -> bool:
        """Stat the path (following links) and match it as a file or directory."""
        mode = os.stat(path).st_mode
        if stat.S_ISREG(mode):
            return self.is_file_pattern_match(path)
        if stat.S_ISDIR(mode):
            return self.is_dir_pattern_match(path)
        return False

    def select_in_dir(self, dir_path: Path) -> "SelectedSubPaths":
        # Opening the directory happens here, so a bad directory fails before iteration.
        return SelectedSubPaths(os.scandir(dir_path), self)

    def select_in_dir_sorted(self, dir_path: Path, sort_order: SortOrder) -> list[Path]:
        with self.select_in_dir(dir_path) as selected:
            paths = list(selected)
        return sort_paths(paths, sort_order)


class SelectedSubPaths(Iterator[Path]):
    """Selected entries of one directory, in filesystem enumeration order.

    ``__next__`` raises ``OSError`` for an entry that cannot be inspected; the
    iterator stays usable and the next call moves on to the following entry.
    """

    def __init__(self, entries: "os._ScandirIterator[str]", selection: Selection) -> None:
        self._entries = entries
        self._selection = selection

    def __iter__(self) -> "SelectedSubPaths":
        return self

    def __next__(self) -> Path:
        while True:
            entry = next(self._entries)
            path = Path(entry.path)
            if self._selection.is_selected(path):
                return path

    def close(self) -> None:
        self._entries.close()

    def __enter__(self) -> "SelectedSubPaths":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
