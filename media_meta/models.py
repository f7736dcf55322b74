from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from .values import MetaBlock


@dataclass(slots=True)
class ItemMeta:
    path: Path
    block: MetaBlock = field(default_factory=dict)

    def __iter__(self):
        # Allows `path, block = item_meta`.
        yield self.path
        yield self.block

    def to_record(self) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "meta": {key: value.to_python() for key, value in self.block.items()},
        }


class ProcessingError(Exception):
    """Raised when a located metadata file cannot be turned into item metadata."""


class ItemNotInMetaFile(ProcessingError):
    def __init__(self, item_path: Path, meta_path: Path) -> None:
        super().__init__(f'item path not found in processed metadata "{meta_path}": {item_path}')
        self.item_path = item_path
        self.meta_path = meta_path
