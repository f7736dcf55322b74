from __future__ import annotations

from decimal import Decimal
from typing import Any

import yaml

from ..values import MetaBlock, MetaVal


class MetaDumper(yaml.SafeDumper):
    pass


def _represent_decimal(dumper: yaml.SafeDumper, value: Decimal) -> yaml.Node:
    # Written as a YAML float without going through binary floating point.
    return dumper.represent_scalar("tag:yaml.org,2002:float", str(value))


MetaDumper.add_representer(Decimal, _represent_decimal)


def dump(data: Any) -> str:
    return yaml.dump(data, Dumper=MetaDumper, sort_keys=False, allow_unicode=True)


def render_block(block: MetaBlock) -> str:
    if not block:
        return "{}\n"
    return dump({key: value.to_python() for key, value in block.items()})


def render_value(value: MetaVal) -> str:
    return dump(value.to_python())
