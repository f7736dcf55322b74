"""Lazy, single-pass producers of metadata values.

A producer is an iterator of ``MetaVal``. An item that failed is signalled by
raising from ``__next__``; the producer stays usable afterwards, so a caller
that wants to skip past a failure can simply call ``next`` again. Combinators
never swallow such an error: they raise it unchanged before any predicate or
converter sees it. A combinator also accepts a sequence value in place of a
producer and iterates its elements.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Iterator
from typing import Optional, Set, Union

from ..models import ProcessingError
from ..reader import MetaReaderError
from ..source import SourceError
from ..values import MetaVal
from .errors import NotIterable, StreamError, ValueStreamError

IterableLike = Union[MetaVal, Iterator[MetaVal]]
Predicate = Callable[[MetaVal], bool]
Converter = Callable[[MetaVal], MetaVal]

# Errors a block stream may raise for a single item.
_BLOCK_ERRORS = (SourceError, MetaReaderError, ProcessingError, StreamError)


class Producer(Iterator[MetaVal]):
    def __iter__(self) -> "Producer":
        return self

    def __next__(self) -> MetaVal:
        raise NotImplementedError


class Fixed(Producer):
    """Yields an already materialised sequence of values."""

    def __init__(self, values: Iterable[MetaVal]) -> None:
        self._values = deque(values)

    def __next__(self) -> MetaVal:
        if not self._values:
            raise StopIteration
        return self._values.popleft()


class Raw(Producer):
    """Yields values and raises exceptions, in the order given."""

    def __init__(self, items: Iterable[Union[MetaVal, Exception]]) -> None:
        self._items = deque(items)

    def __next__(self) -> MetaVal:
        if not self._items:
            raise StopIteration
        item = self._items.popleft()
        if isinstance(item, Exception):
            raise item
        return item


class Source(Producer):
    """Values of a ``MetaValueStream`` with the item paths dropped."""

    def __init__(self, value_stream: Iterator[tuple]) -> None:
        self._stream = value_stream

    def __next__(self) -> MetaVal:
        try:
            _, value = next(self._stream)
        except _BLOCK_ERRORS as exc:
            raise ValueStreamError(exc) from exc
        return value


def as_iterable(arg: IterableLike) -> Iterator[MetaVal]:
    """A sequence value becomes a ``Fixed`` producer; producers pass through."""
    if isinstance(arg, MetaVal):
        if not arg.is_seq:
            raise NotIterable(arg)
        return Fixed(arg.value)
    if isinstance(arg, Iterator):
        return arg
    raise NotIterable(arg)


class Filter(Producer):
    def __init__(self, upstream: IterableLike, pred: Predicate) -> None:
        self._upstream = as_iterable(upstream)
        self._pred = pred

    def __next__(self) -> MetaVal:
        while True:
            value = next(self._upstream)
            if self._pred(value):
                return value


class Map(Producer):
    def __init__(self, upstream: IterableLike, conv: Converter) -> None:
        self._upstream = as_iterable(upstream)
        self._conv = conv

    def __next__(self) -> MetaVal:
        return self._conv(next(self._upstream))


class Flatten(Producer):
    """Unwraps sequence values one level, yielding their elements in order."""

    def __init__(self, upstream: IterableLike) -> None:
        self._upstream = as_iterable(upstream)
        self._queue: deque[MetaVal] = deque()

    def __next__(self) -> MetaVal:
        while not self._queue:
            value = next(self._upstream)
            if not value.is_seq:
                return value
            self._queue.extend(value.value)
        return self._queue.popleft()


class Dedup(Producer):
    """Drops values equal to the value yielded immediately before."""

    def __init__(self, upstream: IterableLike) -> None:
        self._upstream = as_iterable(upstream)
        self._last: Optional[MetaVal] = None

    def __next__(self) -> MetaVal:
        while True:
            value = next(self._upstream)
            if self._last is not None and value == self._last:
                continue
            self._last = value
            return value


class Unique(Producer):
    """Yields each distinct value the first time it is seen."""

    def __init__(self, upstream: IterableLike) -> None:
        self._upstream = as_iterable(upstream)
        self._seen: Set[MetaVal] = set()

    def __next__(self) -> MetaVal:
        while True:
            value = next(self._upstream)
            if value in self._seen:
                continue
            self._seen.add(value)
            return value


class StepBy(Producer):
    """Yields every ``step``-th item, starting with the first.

    Errors are raised wherever they occur, and still count as a position.
    """

    def __init__(self, upstream: IterableLike, step: int) -> None:
        if step < 1:
            raise ValueError("step must be at least 1")
        self._upstream = as_iterable(upstream)
        self._step = step
        self._counter = 0

    def _emitting(self) -> bool:
        emit = self._counter == 0
        self._counter = (self._counter + 1) % self._step
        return emit

    def __next__(self) -> MetaVal:
        while True:
            try:
                value = next(self._upstream)
            except StopIteration:
                raise
            except Exception:
                self._emitting()
                raise
            if self._emitting():
                return value


class Chain(Producer):
    def __init__(self, first: IterableLike, second: IterableLike) -> None:
        self._first = as_iterable(first)
        self._second = as_iterable(second)
        self._on_second = False

    def __next__(self) -> MetaVal:
        if not self._on_second:
            try:
                return next(self._first)
            except StopIteration:
                self._on_second = True
        return next(self._second)


class Zip(Producer):
    """Pairs up items of two producers as two-element sequences.

    Both sides are pulled before either error is raised; the left error wins,
    and is raised even when the right side has run out on the same step.
    """

    def __init__(self, left: IterableLike, right: IterableLike) -> None:
        self._left = as_iterable(left)
        self._right = as_iterable(right)

    def __next__(self) -> MetaVal:
        left_error: Optional[Exception] = None
        try:
            left = next(self._left)
        except StopIteration:
            raise
        except Exception as exc:
            left_error = exc
        try:
            right = next(self._right)
        except Exception:
            # Covers the right side running out, too.
            if left_error is not None:
                raise left_error from None
            raise
        if left_error is not None:
            raise left_error
        return MetaVal.of_seq([left, right])


class Skip(Producer):
    def __init__(self, upstream: IterableLike, n: int) -> None:
        self._upstream = as_iterable(upstream)
        self._remaining = n

    def __next__(self) -> MetaVal:
        while self._remaining > 0:
            self._remaining -= 1
            next(self._upstream)
        return next(self._upstream)


class Take(Producer):
    def __init__(self, upstream: IterableLike, n: int) -> None:
        self._upstream = as_iterable(upstream)
        self._remaining = n

    def __next__(self) -> MetaVal:
        if self._remaining <= 0:
            raise StopIteration
        self._remaining -= 1
        return next(self._upstream)


class SkipWhile(Producer):
    def __init__(self, upstream: IterableLike, pred: Predicate) -> None:
        self._upstream = as_iterable(upstream)
        self._pred = pred
        self._skipping = True

    def __next__(self) -> MetaVal:
        while self._skipping:
            value = next(self._upstream)
            if not self._pred(value):
                self._skipping = False
                return value
        return next(self._upstream)


class TakeWhile(Producer):
    """Yields items while the predicate holds; ends at the first item that fails it.

    An upstream or predicate error is raised and also ends the stream.
    """

    def __init__(self, upstream: IterableLike, pred: Predicate) -> None:
        self._upstream = as_iterable(upstream)
        self._pred = pred
        self._done = False

    def __next__(self) -> MetaVal:
        if self._done:
            raise StopIteration
        try:
            value = next(self._upstream)
            keep = self._pred(value)
        except BaseException:
            self._done = True
            raise
        if not keep:
            self._done = True
            raise StopIteration
        return value


class InBetween(Producer):
    """Places a fixed value between consecutive upstream items."""

    _NOTHING = object()

    def __init__(self, upstream: IterableLike, separator: MetaVal) -> None:
        self._upstream = as_iterable(upstream)
        self._separator = separator
        self._started = False
        self._pending: object = self._NOTHING

    def __next__(self) -> MetaVal:
        if self._pending is not self._NOTHING:
            value = self._pending
            self._pending = self._NOTHING
            return value  # type: ignore[return-value]
        if not self._started:
            value = next(self._upstream)
            self._started = True
            return value
        # Look one item ahead so no separator trails the last item.
        self._pending = next(self._upstream)
        return self._separator


class Mix(Producer):
    """Alternates between two producers, draining whichever outlasts the other."""

    def __init__(self, first: IterableLike, second: IterableLike) -> None:
        self._first = as_iterable(first)
        self._second = as_iterable(second)
        self._flag = False

    def __next__(self) -> MetaVal:
        self._flag = not self._flag
        preferred, other = (self._first, self._second) if self._flag else (self._second, self._first)
        try:
            return next(preferred)
        except StopIteration:
            return next(other)
