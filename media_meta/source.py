from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterable, Iterator
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import MetaFormat
from .selection import Selection

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """Raised when a metadata file location cannot be resolved."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(message)
        self.path = path

    def is_fatal(self) -> bool:
        return True


class NotADirectory(SourceError):
    def __init__(self, path: Path) -> None:
        super().__init__(path, f"not a directory: {path}")

    def is_fatal(self) -> bool:
        return False


class NotAFile(SourceError):
    def __init__(self, path: Path) -> None:
        super().__init__(path, f"not a file: {path}")


class ItemAccessFailure(SourceError):
    def __init__(self, path: Path, io_error: OSError) -> None:
        super().__init__(path, f'cannot access item path "{path}": {io_error}')
        self.io_error = io_error


class MetaAccessFailure(SourceError):
    def __init__(self, path: Path, io_error: OSError) -> None:
        super().__init__(path, f'cannot access meta path "{path}": {io_error}')
        self.io_error = io_error

    def is_fatal(self) -> bool:
        # A missing metadata file just means this source does not apply.
        return not isinstance(self.io_error, FileNotFoundError)


class MissingItemParent(SourceError):
    def __init__(self, path: Path) -> None:
        super().__init__(path, f"item path does not have a parent: {path}")

    def is_fatal(self) -> bool:
        return False


class MissingMetaParent(SourceError):
    def __init__(self, path: Path) -> None:
        super().__init__(path, f"meta path does not have a parent: {path}")


class DirectoryIterationFailure(SourceError):
    def __init__(self, path: Path, io_error: OSError) -> None:
        super().__init__(path, f"unable to read item directory {path}: {io_error}")
        self.io_error = io_error


class InvalidSourceName(ValueError):
    pass


class Anchor(str, Enum):
    """Where a metadata file sits relative to the items it describes."""

    # Beside the item, in the item's parent directory.
    EXTERNAL = "external"
    # Inside the item, which must be a directory.
    INTERNAL = "internal"


def validate_item_name(name: str) -> str:
    if not name:
        raise InvalidSourceName("name is empty")
    if name in (".", ".."):
        raise InvalidSourceName(f"name is a special path component: {name!r}")
    separators = {"/", os.sep} | ({os.altsep} if os.altsep else set())
    if any(sep in name for sep in separators):
        raise InvalidSourceName(f"name contains a path separator: {name!r}")
    return name


def _parent(path: Path) -> Optional[Path]:
    parent = path.parent
    if parent == path:
        return None
    return parent


class Source:
    """One metadata file candidate: a validated file name plus an anchor."""

    __slots__ = ("name", "anchor")

    def __init__(self, name: str, anchor: Anchor) -> None:
        self.name = validate_item_name(name)
        self.anchor = anchor

    @classmethod
    def from_name(cls, name: str, anchor: Anchor) -> "Source":
        return cls(name, anchor)

    @classmethod
    def from_stub(cls, stub: str, meta_format: MetaFormat, anchor: Anchor) -> "Source":
        return cls(f"{validate_item_name(stub)}.{meta_format.file_extension}", anchor)

    def __repr__(self) -> str:
        return f"Source({self.name!r}, {self.anchor.value})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Source):
            return NotImplemented
        return (self.name, self.anchor) == (other.name, other.anchor)

    def __hash__(self) -> int:
        return hash((self.name, self.anchor))

    def meta_path(self, item_path: Path) -> Path:
        """Return the metadata file that would describe ``item_path``.

        The item is always stat'ed first so that permission problems and
        missing items surface with the item path attached.
        """
        item_path = Path(item_path)
        try:
            item_mode = os.stat(item_path).st_mode
        except OSError as exc:
            raise ItemAccessFailure(item_path, exc) from exc

        if self.anchor is Anchor.EXTERNAL:
            meta_dir = _parent(item_path)
            if meta_dir is None:
                raise MissingItemParent(item_path)
        else:
            if not stat.S_ISDIR(item_mode):
                raise NotADirectory(item_path)
            meta_dir = item_path

        meta_path = meta_dir / self.name
        try:
            meta_mode = os.stat(meta_path).st_mode
        except OSError as exc:
            raise MetaAccessFailure(meta_path, exc) from exc

        if not stat.S_ISREG(meta_mode):
            raise NotAFile(meta_path)
        return meta_path

    def item_paths(self, meta_path: Path) -> Iterator[Path]:
        """Item paths the metadata file is positioned to describe.

        No filtering or sorting happens here. For an external anchor the
        directory is opened before this returns; the listing is read lazily.
        """
        meta_path = Path(meta_path)
        try:
            meta_mode = os.stat(meta_path).st_mode
        except OSError as exc:
            raise MetaAccessFailure(meta_path, exc) from exc
        if not stat.S_ISREG(meta_mode):
            raise NotAFile(meta_path)

        parent = _parent(meta_path)
        if parent is None:
            raise MissingMetaParent(meta_path)

        if self.anchor is Anchor.INTERNAL:
            return iter([parent])
        try:
            entries = os.scandir(parent)
        except OSError as exc:
            raise DirectoryIterationFailure(parent, exc) from exc
        return _entry_paths(entries)

    def selected_item_paths(self, meta_path: Path, selection: Selection) -> Iterator[Path]:
        for path in self.item_paths(meta_path):
            if selection.is_selected(path):
                yield path


def _entry_paths(entries: "os._ScandirIterator[str]") -> Iterator[Path]:
    with entries:
        for entry in entries:
            yield Path(entry.path)


class Sourcer:
    """Ordered sources for an item; later sources take precedence when merged."""

    def __init__(self, sources: Iterable[Source] = ()) -> None:
        self._sources: list[Source] = list(sources)

    def source(self, source: Source) -> "Sourcer":
        self._sources.append(source)
        return self

    def __iter__(self) -> Iterator[Source]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def meta_paths(self, item_path: Path) -> Iterator[tuple[Path, Source]]:
        """Yield ``(meta_path, source)`` for every source that resolves.

        Non-fatal resolution errors skip to the next source; a fatal one is
        raised and ends the iteration.
        """
        for source in self._sources:
            try:
                meta_path = source.meta_path(item_path)
            except SourceError as exc:
                if exc.is_fatal():
                    raise
                logger.debug("Skipping %s for %s: %s", source, item_path, exc)
                continue
            yield meta_path, source
