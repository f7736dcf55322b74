from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from .config import FallbackMethod, SortOrder
from .processor import MetaProcessor
from .selection import Selection
from .source import DirectoryIterationFailure, Sourcer
from .values import MetaBlock, MetaVal

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)


class FallbackComposer:
    """Propagates metadata between hierarchy levels according to per-key methods.

    ``inherit`` fills a missing key from the nearest ancestor that has it,
    ``override`` replaces the key with the outermost ancestor's value,
    ``collect`` gathers the values of a directory's selected descendants into
    a sequence, and ``none`` leaves the key where it was defined.
    """

    def __init__(
        self,
        processor: MetaProcessor,
        sourcer: Sourcer,
        selection: Optional[Selection] = None,
        sort_order: SortOrder = SortOrder.NAME,
        fallbacks: Optional[Mapping[str, FallbackMethod]] = None,
        default_fallback: FallbackMethod = FallbackMethod.NONE,
    ) -> None:
        self.processor = processor
        self.sourcer = sourcer
        self.selection = selection or processor.selection
        self.sort_order = sort_order
        self.fallbacks: Dict[str, FallbackMethod] = dict(fallbacks or {})
        self.default_fallback = default_fallback

    @classmethod
    def from_settings(cls, settings: "Settings", processor: MetaProcessor) -> "FallbackComposer":
        return cls(
            processor,
            settings.build_sourcer(),
            selection=processor.selection,
            sort_order=settings.sort_order,
            fallbacks=settings.fallbacks,
            default_fallback=settings.default_fallback,
        )

    def method_for(self, key: str) -> FallbackMethod:
        return self.fallbacks.get(key, self.default_fallback)

    def compose(self, item_path: Path, root: Path) -> MetaBlock:
        item_path = Path(item_path)
        root = Path(root)
        if item_path != root and root not in item_path.parents:
            raise ValueError(f"{item_path} is not inside {root}")

        block = self.processor.composite_item_file(item_path, self.sourcer)
        own_keys = set(block)

        for ancestor in _ancestors(item_path, root):
            ancestor_block = self.processor.composite_item_file(ancestor, self.sourcer)
            for key, value in ancestor_block.items():
                method = self.method_for(key)
                if method is FallbackMethod.INHERIT:
                    block.setdefault(key, value)
                elif method is FallbackMethod.OVERRIDE:
                    block[key] = value

        if item_path.is_dir() and self._collects():
            for key, values in self._collect(item_path).items():
                if key in own_keys:
                    continue
                block[key] = MetaVal.of_seq(values)
        return block

    def _collects(self) -> bool:
        if self.default_fallback is FallbackMethod.COLLECT:
            return True
        return any(method is FallbackMethod.COLLECT for method in self.fallbacks.values())

    def _collect(self, dir_path: Path) -> Dict[str, List[MetaVal]]:
        collected: Dict[str, List[MetaVal]] = {}
        for path in self.descendants(dir_path):
            sub_block = self.processor.composite_item_file(path, self.sourcer)
            for key, value in sub_block.items():
                if self.method_for(key) is FallbackMethod.COLLECT:
                    collected.setdefault(key, []).append(value)
        logger.debug("Collected %d key(s) below %s", len(collected), dir_path)
        return collected

    def descendants(self, dir_path: Path) -> Iterator[Path]:
        """Selected paths below ``dir_path``, depth first, each level sorted."""
        try:
            children = self.selection.select_in_dir_sorted(dir_path, self.sort_order)
        except OSError as exc:
            raise DirectoryIterationFailure(dir_path, exc) from exc
        for child in children:
            yield child
            if child.is_dir():
                yield from self.descendants(child)


def _ancestors(item_path: Path, root: Path) -> Iterator[Path]:
    if item_path == root:
        return
    for parent in item_path.parents:
        yield parent
        if parent == root:
            return
