from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Dict

from .config import SortOrder
from .reader import MetaStructure, StructureKind
from .selection import sort_paths
from .values import MetaBlock

logger = logging.getLogger(__name__)


def plex(
    structure: MetaStructure,
    item_paths: Iterable[Path],
    sort_order: SortOrder,
) -> Dict[Path, MetaBlock]:
    """Attribute the blocks of a parsed metadata file to concrete item paths.

    ``item_paths`` must already be filtered by the selection. Blocks that
    cannot be attributed, and items left without a block, are logged and
    dropped.
    """
    item_paths = list(item_paths)
    plexed: Dict[Path, MetaBlock] = {}

    if structure.kind is StructureKind.ONE:
        if not item_paths:
            logger.warning("No selected item path for self metadata block")
            return plexed
        if len(item_paths) > 1:
            logger.warning("Expected one item path, found %d; using %s", len(item_paths), item_paths[0])
        plexed[item_paths[0]] = dict(structure.one)
        return plexed

    if structure.kind is StructureKind.SEQ:
        ordered = sort_paths(item_paths, sort_order)
        for path, block in zip(ordered, structure.seq):
            plexed[path] = dict(block)
        if len(structure.seq) > len(ordered):
            logger.warning(
                "Unused metadata blocks: %d block(s) for %d item(s)",
                len(structure.seq),
                len(ordered),
            )
        for path in ordered[len(structure.seq):]:
            logger.warning("Item path %s has no positional metadata block", path)
        return plexed

    by_name = {path.name: path for path in item_paths}
    for name, block in structure.map.items():
        path = by_name.get(name)
        if path is None:
            logger.warning("No selected item path named %r for metadata block", name)
            continue
        plexed[path] = dict(block)
    return plexed
