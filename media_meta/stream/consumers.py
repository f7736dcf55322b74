"""Operations that drain a value stream into a single result.

Every function accepts either a sequence ``MetaVal`` or a live producer.
Errors raised by a producer abort the operation and propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import List, Optional

from ..values import MetaVal, Number
from .errors import EmptyIterable, ItemNotFound, OutOfBounds
from .producers import IterableLike, as_iterable

Predicate = Callable[[MetaVal], bool]


def collect(arg: IterableLike) -> MetaVal:
    return MetaVal.of_seq(list(as_iterable(arg)))


def count(arg: IterableLike) -> MetaVal:
    total = 0
    for _ in as_iterable(arg):
        total += 1
    return MetaVal.of_int(total)


def first(arg: IterableLike) -> MetaVal:
    for value in as_iterable(arg):
        return value
    raise EmptyIterable("first")


def last(arg: IterableLike) -> MetaVal:
    found: Optional[MetaVal] = None
    for value in as_iterable(arg):
        found = value
    if found is None:
        raise EmptyIterable("last")
    return found


def _extreme(arg: IterableLike, op: str, better: Callable[[int], bool]) -> MetaVal:
    best: Optional[Number] = None
    for value in as_iterable(arg):
        num = Number.from_val(value)
        # Ties keep the earlier item.
        if best is None or better(num.val_cmp(best)):
            best = num
    if best is None:
        raise EmptyIterable(op)
    return best.to_val()


def min_in(arg: IterableLike) -> MetaVal:
    return _extreme(arg, "min_in", lambda order: order < 0)


def max_in(arg: IterableLike) -> MetaVal:
    return _extreme(arg, "max_in", lambda order: order > 0)


def rev(arg: IterableLike) -> MetaVal:
    values: List[MetaVal] = list(as_iterable(arg))
    values.reverse()
    return MetaVal.of_seq(values)


def sort(arg: IterableLike) -> MetaVal:
    return MetaVal.of_seq(sorted(as_iterable(arg), key=MetaVal.sort_key))


def sum_of(arg: IterableLike) -> MetaVal:
    total = Number(0)
    for value in as_iterable(arg):
        total = total + Number.from_val(value)
    return total.to_val()


def prod(arg: IterableLike) -> MetaVal:
    total = Number(1)
    for value in as_iterable(arg):
        total = total * Number.from_val(value)
    return total.to_val()


def all_equal(arg: IterableLike) -> MetaVal:
    it = as_iterable(arg)
    try:
        head = next(it)
    except StopIteration:
        return MetaVal.of_bool(True)
    for value in it:
        if value != head:
            return MetaVal.of_bool(False)
    return MetaVal.of_bool(True)


def nth(arg: IterableLike, n: int) -> MetaVal:
    for index, value in enumerate(as_iterable(arg)):
        if index == n:
            return value
    raise OutOfBounds(n)


def all_of(arg: IterableLike, pred: Predicate) -> bool:
    for value in as_iterable(arg):
        if not pred(value):
            return False
    return True


def any_of(arg: IterableLike, pred: Predicate) -> bool:
    for value in as_iterable(arg):
        if pred(value):
            return True
    return False


def find(arg: IterableLike, pred: Predicate) -> MetaVal:
    for value in as_iterable(arg):
        if pred(value):
            return value
    raise ItemNotFound()


def position(arg: IterableLike, pred: Predicate) -> int:
    for index, value in enumerate(as_iterable(arg)):
        if pred(value):
            return index
    raise ItemNotFound()
