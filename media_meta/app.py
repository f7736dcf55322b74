from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .blocks import FileBlockProducer, MetaValueStream
from .cache import ProcessedCache
from .config import Settings
from .fallback import FallbackComposer
from .processor import MetaProcessor
from .selection import Selection
from .source import Sourcer
from .stream.ops import Arg, Op
from .stream.producers import Source
from .values import MetaBlock


@dataclass
class MediaMetaApp:
    settings: Settings
    cache: ProcessedCache
    selection: Selection
    sourcer: Sourcer
    processor: MetaProcessor
    _composer: FallbackComposer | None = None

    @classmethod
    def create(cls, settings: Settings) -> "MediaMetaApp":
        cache = ProcessedCache()
        processor = MetaProcessor.from_settings(settings, cache=cache)
        return cls(
            settings=settings,
            cache=cache,
            selection=processor.selection,
            sourcer=settings.build_sourcer(),
            processor=processor,
        )

    def get_composer(self) -> FallbackComposer:
        if self._composer is None:
            self._composer = FallbackComposer.from_settings(self.settings, self.processor)
        return self._composer

    def item_meta(self, item_path: Path, root: Optional[Path] = None) -> MetaBlock:
        """Merged block for one item, with fallbacks applied when ``root`` is given."""
        if root is None:
            return self.processor.composite_item_file(item_path, self.sourcer)
        return self.get_composer().compose(item_path, root)

    def block_producer(self, root: Path) -> FileBlockProducer:
        return FileBlockProducer(
            root,
            self.processor,
            self.sourcer,
            selection=self.selection,
            sort_order=self.settings.sort_order,
        )

    def value_stream(self, key: str, root: Path) -> Source:
        return Source(MetaValueStream(key, self.block_producer(root)))

    def query(self, key: str, root: Path, ops: Iterable[Op]) -> Arg:
        result: Arg = self.value_stream(key, root)
        for op in ops:
            result = op.process(result)
        return result

    def close(self) -> None:
        self.cache.invalidate()
