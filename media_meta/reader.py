from __future__ import annotations

import datetime
import json
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Protocol

import yaml

from .config import MetaFormat
from .source import Anchor
from .values import MetaBlock, MetaVal


class MetaReaderError(Exception):
    def __init__(self, message: str, path: Path | None = None) -> None:
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path


class StructureKind(str, Enum):
    ONE = "one"
    SEQ = "seq"
    MAP = "map"


@dataclass
class MetaStructure:
    """Parsed contents of one metadata file, before association with items."""

    kind: StructureKind
    one: MetaBlock = field(default_factory=dict)
    seq: List[MetaBlock] = field(default_factory=list)
    map: Dict[str, MetaBlock] = field(default_factory=dict)

    @classmethod
    def of_one(cls, block: MetaBlock) -> "MetaStructure":
        return cls(StructureKind.ONE, one=block)

    @classmethod
    def of_seq(cls, blocks: List[MetaBlock]) -> "MetaStructure":
        return cls(StructureKind.SEQ, seq=blocks)

    @classmethod
    def of_map(cls, blocks: Dict[str, MetaBlock]) -> "MetaStructure":
        return cls(StructureKind.MAP, map=blocks)


class MetaReader(Protocol):
    def from_str(self, text: str, anchor: Anchor) -> MetaStructure: ...

    def from_file(self, path: Path, anchor: Anchor) -> MetaStructure: ...


def _plain(value: Any) -> Any:
    # YAML timestamps are kept as their ISO text.
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _to_block(raw: Any) -> MetaBlock:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise MetaReaderError(f"expected a mapping of metadata keys, got {type(raw).__name__}")
    block: MetaBlock = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            raise MetaReaderError(f"metadata keys must be strings, got {key!r}")
        try:
            block[key] = MetaVal.from_python(_plain(value))
        except (TypeError, ValueError, OverflowError) as exc:
            raise MetaReaderError(f"invalid value for key {key!r}: {exc}") from exc
    return block


def _reject_constant(name: str) -> Any:
    raise MetaReaderError(f"non-finite number {name} is not allowed")


def build_structure(raw: Any, anchor: Anchor) -> MetaStructure:
    if anchor is Anchor.INTERNAL:
        return MetaStructure.of_one(_to_block(raw))
    if raw is None:
        return MetaStructure.of_seq([])
    if isinstance(raw, list):
        return MetaStructure.of_seq([_to_block(item) for item in raw])
    if isinstance(raw, dict):
        blocks: Dict[str, MetaBlock] = {}
        for name, item in raw.items():
            if not isinstance(name, str):
                raise MetaReaderError(f"item names must be strings, got {name!r}")
            blocks[name] = _to_block(item)
        return MetaStructure.of_map(blocks)
    raise MetaReaderError(
        f"expected a sequence or mapping of item blocks, got {type(raw).__name__}"
    )


class _TextMetaReader:
    def _load(self, text: str) -> Any:
        raise NotImplementedError

    def from_str(self, text: str, anchor: Anchor) -> MetaStructure:
        return build_structure(self._load(text), anchor)

    def from_file(self, path: Path, anchor: Anchor) -> MetaStructure:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise MetaReaderError(f"cannot read metadata file: {exc}", path) from exc
        try:
            return self.from_str(text, anchor)
        except MetaReaderError as exc:
            raise MetaReaderError(str(exc), path) from exc


class YamlMetaReader(_TextMetaReader):
    def _load(self, text: str) -> Any:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise MetaReaderError(f"invalid YAML: {exc}") from exc


class JsonMetaReader(_TextMetaReader):
    def _load(self, text: str) -> Any:
        if not text.strip():
            return None
        try:
            return json.loads(text, parse_float=Decimal, parse_constant=_reject_constant)
        except json.JSONDecodeError as exc:
            raise MetaReaderError(f"invalid JSON: {exc}") from exc


def reader_for_format(meta_format: MetaFormat) -> MetaReader:
    readers = {
        MetaFormat.YAML: YamlMetaReader,
        MetaFormat.JSON: JsonMetaReader,
    }
    return readers[meta_format]()
