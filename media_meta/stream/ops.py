from __future__ import annotations

from collections.abc import Callable, Iterator
from enum import Enum
from typing import Dict

from ..values import MetaVal, Number, ValKind
from . import consumers
from .errors import NotBoolean, NotNumeric
from .producers import Dedup, Flatten, IterableLike, Unique

Arg = IterableLike


class UnknownOperator(ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unknown operator: {name!r}")
        self.name = name


class Op(str, Enum):
    """Named single-argument operations of the query surface."""

    COLLECT = "collect"
    COUNT = "count"
    FIRST = "first"
    LAST = "last"
    MIN_IN = "min_in"
    MAX_IN = "max_in"
    REV = "rev"
    SORT = "sort"
    SUM = "sum"
    PROD = "prod"
    ALL_EQUAL = "all_equal"
    FLATTEN = "flatten"
    DEDUP = "dedup"
    UNIQUE = "unique"
    NEG = "neg"
    ABS = "abs"
    NOT = "not"

    @classmethod
    def parse(cls, name: str) -> "Op":
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise UnknownOperator(name) from None

    @property
    def is_stream_transform(self) -> bool:
        return self in _TRANSFORMS

    def process(self, arg: Arg) -> Arg:
        """Apply the operation.

        Stream transforms stay lazy for a producer and are collected for a
        sequence value; reducers always drain their input.
        """
        reducer = _REDUCERS.get(self)
        if reducer is not None:
            return reducer(arg)
        transform = _TRANSFORMS.get(self)
        if transform is not None:
            stream = transform(arg)
            if isinstance(arg, MetaVal):
                return MetaVal.of_seq(list(stream))
            return stream
        if self is Op.NOT:
            return _not(arg)
        return _numeric(self, arg)


def _not(arg: Arg) -> MetaVal:
    if not isinstance(arg, MetaVal) or arg.kind is not ValKind.BOOL:
        raise NotBoolean(arg)
    return MetaVal.of_bool(not arg.value)


def _numeric(op: Op, arg: Arg) -> MetaVal:
    if not isinstance(arg, MetaVal):
        raise NotNumeric(arg)
    number = Number.from_val(arg)
    if op is Op.NEG:
        return (-number).to_val()
    return abs(number).to_val()


_REDUCERS: Dict[Op, Callable[[Arg], MetaVal]] = {
    Op.COLLECT: consumers.collect,
    Op.COUNT: consumers.count,
    Op.FIRST: consumers.first,
    Op.LAST: consumers.last,
    Op.MIN_IN: consumers.min_in,
    Op.MAX_IN: consumers.max_in,
    Op.REV: consumers.rev,
    Op.SORT: consumers.sort,
    Op.SUM: consumers.sum_of,
    Op.PROD: consumers.prod,
    Op.ALL_EQUAL: consumers.all_equal,
}

_TRANSFORMS: Dict[Op, Callable[[Arg], Iterator[MetaVal]]] = {
    Op.FLATTEN: Flatten,
    Op.DEDUP: Dedup,
    Op.UNIQUE: Unique,
}
