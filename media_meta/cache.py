from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Dict, Optional

from .values import MetaBlock

logger = logging.getLogger(__name__)

PlexedMeta = Dict[Path, MetaBlock]


class ProcessedCache:
    """In-memory memo of processed metadata files, keyed by metadata path.

    Not thread-safe: callers sharing a cache serialize access themselves.
    """

    def __init__(self) -> None:
        self._entries: Dict[Path, PlexedMeta] = {}

    def get(self, meta_path: Path) -> Optional[PlexedMeta]:
        return self._entries.get(Path(meta_path))

    def get_or_process(
        self,
        meta_path: Path,
        process: Callable[[], PlexedMeta],
        force: bool = False,
    ) -> PlexedMeta:
        key = Path(meta_path)
        if force:
            self._entries.pop(key, None)
        cached = self._entries.get(key)
        if cached is not None:
            logger.debug("Using cached metadata for %s", key)
            return cached
        # Nothing is stored when processing raises.
        result = process()
        self._entries[key] = result
        return result

    def invalidate(self, meta_path: Optional[Path] = None) -> None:
        if meta_path is None:
            self._entries.clear()
            return
        self._entries.pop(Path(meta_path), None)

    def __contains__(self, meta_path: object) -> bool:
        return isinstance(meta_path, (str, Path)) and Path(meta_path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
