from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import List, Optional

from .config import SortOrder
from .models import ItemMeta
from .processor import MetaProcessor
from .selection import Selection
from .source import DirectoryIterationFailure, Sourcer
from .values import MetaBlock, MetaVal

logger = logging.getLogger(__name__)


class FixedBlockProducer(Iterator[ItemMeta]):
    """Yields literal ``(path, block)`` pairs."""

    def __init__(self, pairs: Iterable[tuple[Path, MetaBlock]]) -> None:
        self._pairs = deque(ItemMeta(Path(path), block) for path, block in pairs)

    def __iter__(self) -> "FixedBlockProducer":
        return self

    def __next__(self) -> ItemMeta:
        if not self._pairs:
            raise StopIteration
        return self._pairs.popleft()


class FileBlockProducer(Iterator[ItemMeta]):
    """Walks ``root`` and its selected descendants, yielding each item's merged block.

    The walk is pre-order with every directory level sorted, and is lazy: a
    directory is only listed after it has been yielded. A failure for one
    item is raised from ``__next__`` and the walk carries on with the next
    item on the following call.
    """

    def __init__(
        self,
        root: Path,
        processor: MetaProcessor,
        sourcer: Sourcer,
        selection: Optional[Selection] = None,
        sort_order: SortOrder = SortOrder.NAME,
    ) -> None:
        self.processor = processor
        self.sourcer = sourcer
        self.selection = selection or processor.selection
        self.sort_order = sort_order
        self._stack: List[Path] = [Path(root)]
        self._to_expand: Optional[Path] = None

    def __iter__(self) -> "FileBlockProducer":
        return self

    def _expand(self) -> None:
        dir_path, self._to_expand = self._to_expand, None
        if dir_path is None:
            return
        try:
            children = self.selection.select_in_dir_sorted(dir_path, self.sort_order)
        except OSError as exc:
            raise DirectoryIterationFailure(dir_path, exc) from exc
        self._stack.extend(reversed(children))

    def __next__(self) -> ItemMeta:
        self._expand()
        if not self._stack:
            raise StopIteration
        path = self._stack.pop()
        if path.is_dir():
            self._to_expand = path
        logger.debug("Reading metadata for %s", path)
        block = self.processor.composite_item_file(path, self.sourcer)
        return ItemMeta(path, block)


class MetaValueStream(Iterator[tuple[Path, MetaVal]]):
    """Values of one key across a block producer, skipping blocks without it."""

    def __init__(self, key: str, blocks: Iterator[ItemMeta]) -> None:
        self.key = key
        self._blocks = blocks

    def __iter__(self) -> "MetaValueStream":
        return self

    def __next__(self) -> tuple[Path, MetaVal]:
        while True:
            path, block = next(self._blocks)
            value = block.get(self.key)
            if value is not None:
                return path, value
