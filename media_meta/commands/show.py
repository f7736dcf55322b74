from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..app import MediaMetaApp
from .output import render_block


def run(app: MediaMetaApp, item: Path, *, root: Optional[Path] = None) -> None:
    block = app.item_meta(item, root=root)
    print(render_block(block), end="")
