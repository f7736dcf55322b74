from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

if TYPE_CHECKING:
    from .selection import Selection
    from .source import Sourcer


class SortOrder(str, Enum):
    NAME = "name"
    MOD_TIME = "mod_time"


class MetaFormat(str, Enum):
    YAML = "yaml"
    JSON = "json"

    @property
    def file_extension(self) -> str:
        return {MetaFormat.YAML: "yml", MetaFormat.JSON: "json"}[self]


class FallbackMethod(str, Enum):
    INHERIT = "inherit"
    COLLECT = "collect"
    OVERRIDE = "override"
    NONE = "none"


ITEM_STUB = "item"
SELF_STUB = "self"


class SelectionSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    exclude_sources: bool = True
    include_files: List[str] = Field(default_factory=lambda: ["*"])
    exclude_files: List[str] = Field(default_factory=list)
    include_dirs: List[str] = Field(default_factory=lambda: ["*"])
    exclude_dirs: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _file_shorthand(cls, data: Any) -> Any:
        # `include`/`exclude` are accepted as shorthand for the file matchers.
        if isinstance(data, dict):
            data = dict(data)
            for short, full in (("include", "include_files"), ("exclude", "exclude_files")):
                if short in data:
                    data.setdefault(full, data.pop(short))
        return data

    @field_validator(
        "include_files", "exclude_files", "include_dirs", "exclude_dirs", mode="before"
    )
    @classmethod
    def _one_or_many(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    selection: SelectionSettings = Field(default_factory=SelectionSettings)
    sort_order: SortOrder = SortOrder.NAME
    item_fn: Optional[str] = None
    self_fn: Optional[str] = None
    meta_format: MetaFormat = MetaFormat.YAML
    fallbacks: Dict[str, FallbackMethod] = Field(default_factory=dict)
    default_fallback: FallbackMethod = FallbackMethod.NONE

    @model_validator(mode="after")
    def _default_file_names(self) -> "Settings":
        ext = self.meta_format.file_extension
        if self.item_fn is None:
            self.item_fn = f"{ITEM_STUB}.{ext}"
        if self.self_fn is None:
            self.self_fn = f"{SELF_STUB}.{ext}"
        if self.item_fn == self.self_fn:
            raise ValueError(f"item_fn and self_fn must differ, both are {self.item_fn!r}")
        return self

    def fallback_for(self, key: str) -> FallbackMethod:
        return self.fallbacks.get(key, self.default_fallback)

    def build_selection(self) -> "Selection":
        from .selection import Matcher, Selection

        sel = self.selection
        exclude_files = list(sel.exclude_files)
        if sel.exclude_sources:
            exclude_files.extend(Matcher.escape(name) for name in (self.item_fn, self.self_fn))
        return Selection.from_patterns(
            sel.include_files, exclude_files, sel.include_dirs, sel.exclude_dirs
        )

    def build_sourcer(self) -> "Sourcer":
        """Item file first, self file second: a directory's own file wins."""
        from .source import Anchor, Source, Sourcer

        return Sourcer(
            [
                Source.from_name(self.item_fn, Anchor.EXTERNAL),
                Source.from_name(self.self_fn, Anchor.INTERNAL),
            ]
        )

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    return None
