from __future__ import annotations

from collections.abc import Iterator, Sequence
from pathlib import Path

from ..app import MediaMetaApp
from ..stream.consumers import collect
from ..stream.ops import Op
from .output import render_value


def run(app: MediaMetaApp, key: str, root: Path, *, op_names: Sequence[str] = ()) -> None:
    ops = [Op.parse(name) for name in op_names]
    result = app.query(key, root, ops)
    # A trailing stream transform leaves a producer behind.
    if isinstance(result, Iterator):
        result = collect(result)
    print(render_value(result), end="")
