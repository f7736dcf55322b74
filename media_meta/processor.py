from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional

from .cache import PlexedMeta, ProcessedCache
from .config import SortOrder
from .models import ItemNotInMetaFile
from .plexer import plex
from .reader import MetaReader, reader_for_format
from .selection import Selection
from .source import DirectoryIterationFailure, Source, Sourcer
from .values import MetaBlock

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)


class MetaProcessor:
    """Turns metadata files into per-item blocks.

    The reader is injected once, chosen from the configured format. Passing a
    ``ProcessedCache`` memoises parsed files across calls.
    """

    def __init__(
        self,
        reader: MetaReader,
        selection: Optional[Selection] = None,
        sort_order: SortOrder = SortOrder.NAME,
        cache: Optional[ProcessedCache] = None,
    ) -> None:
        self.reader = reader
        self.selection = selection or Selection.default()
        self.sort_order = sort_order
        self.cache = cache

    @classmethod
    def from_settings(
        cls, settings: "Settings", cache: Optional[ProcessedCache] = None
    ) -> "MetaProcessor":
        return cls(
            reader_for_format(settings.meta_format),
            selection=settings.build_selection(),
            sort_order=settings.sort_order,
            cache=cache,
        )

    def _process(self, meta_path: Path, source: Source) -> PlexedMeta:
        logger.debug("Processing meta file %s (%s)", meta_path, source.anchor.value)
        structure = self.reader.from_file(meta_path, source.anchor)
        item_paths = source.selected_item_paths(meta_path, self.selection)
        try:
            return plex(structure, item_paths, self.sort_order)
        except OSError as exc:
            raise DirectoryIterationFailure(meta_path.parent, exc) from exc

    def process_meta_file(
        self, meta_path: Path, source: Source, force: bool = False
    ) -> Dict[Path, MetaBlock]:
        meta_path = Path(meta_path)
        if self.cache is None:
            plexed = self._process(meta_path, source)
        else:
            plexed = self.cache.get_or_process(
                meta_path, lambda: self._process(meta_path, source), force=force
            )
        # Callers own what they get back; the cached copy stays untouched.
        return {path: dict(block) for path, block in plexed.items()}

    def process_item_file(self, item_path: Path, source: Source, force: bool = False) -> MetaBlock:
        item_path = Path(item_path)
        meta_path = source.meta_path(item_path)
        plexed = self.process_meta_file(meta_path, source, force=force)
        try:
            return plexed[item_path]
        except KeyError:
            raise ItemNotInMetaFile(item_path, meta_path) from None

    def composite_item_file(
        self,
        item_path: Path,
        sources: Sourcer | Iterable[Source],
        force: bool = False,
    ) -> MetaBlock:
        """Merge every resolvable source for the item, later sources winning per key."""
        item_path = Path(item_path)
        sourcer = sources if isinstance(sources, Sourcer) else Sourcer(sources)
        merged: MetaBlock = {}
        for meta_path, source in sourcer.meta_paths(item_path):
            plexed = self.process_meta_file(meta_path, source, force=force)
            block = plexed.get(item_path)
            if block is None:
                logger.debug("%s has no entry for %s", meta_path, item_path)
                continue
            merged.update(block)
        return merged
