import unittest
from pathlib import Path

from media_meta.blocks import FixedBlockProducer, MetaValueStream
from media_meta.models import ItemMeta
from media_meta.source import MetaAccessFailure
from media_meta.stream.errors import NotIterable, NotNumeric, StreamError, ValueStreamError
from media_meta.stream.producers import (
    Chain,
    Dedup,
    Filter,
    Fixed,
    Flatten,
    InBetween,
    Map,
    Mix,
    Raw,
    Skip,
    SkipWhile,
    Source,
    StepBy,
    Take,
    TakeWhile,
    Unique,
    Zip,
)
from media_meta.values import MetaVal, Number


class Sentinel(StreamError):
    pass


def i(n: int) -> MetaVal:
    return MetaVal.of_int(n)


def ints(*values: int) -> list:
    return [i(n) for n in values]


def drain(producer) -> list:
    """Pull every item, recording raised errors by type in place of values."""
    out = []
    while True:
        try:
            out.append(next(producer))
        except StopIteration:
            return out
        except StreamError as exc:
            out.append(type(exc))


def is_even(mv: MetaVal) -> bool:
    return Number.from_val(mv).value % 2 == 0


class TestBasicProducers(unittest.TestCase):
    def test_fixed_and_raw(self) -> None:
        self.assertEqual(list(Fixed(ints(1, 2))), ints(1, 2))
        self.assertEqual(drain(Raw([i(1), Sentinel(), i(2)])), [i(1), Sentinel, i(2)])

    def test_source_drops_paths_and_wraps_errors(self) -> None:
        blocks = RaisingBlocks(
            [
                ("a", {"k": i(1)}),
                MetaAccessFailure(Path("a"), PermissionError("denied")),
                ("b", {"k": i(2)}),
            ]
        )
        producer = Source(MetaValueStream("k", blocks))
        self.assertEqual(next(producer), i(1))
        with self.assertRaises(ValueStreamError) as ctx:
            next(producer)
        self.assertIsInstance(ctx.exception.cause, MetaAccessFailure)
        self.assertEqual(next(producer), i(2))

    def test_source_over_fixed_blocks(self) -> None:
        blocks = FixedBlockProducer([("a", {"k": i(1)}), ("b", {}), ("c", {"k": i(3)})])
        self.assertEqual(list(Source(MetaValueStream("k", blocks))), ints(1, 3))


class RaisingBlocks:
    """Block producer test double that can raise between items."""

    def __init__(self, items) -> None:
        self._items = list(items)

    def __iter__(self):
        return self

    def __next__(self):
        if not self._items:
            raise StopIteration
        item = self._items.pop(0)
        if isinstance(item, Exception):
            raise item
        path, block = item
        return ItemMeta(Path(path), block)


class CountingPulls:
    def __init__(self, upstream) -> None:
        self._upstream = upstream
        self.pulls = 0

    def __iter__(self):
        return self

    def __next__(self):
        self.pulls += 1
        return next(self._upstream)


class TestCombinators(unittest.TestCase):
    def test_filter_and_map(self) -> None:
        self.assertEqual(list(Filter(Fixed(ints(1, 2, 3, 4)), is_even)), ints(2, 4))
        doubled = Map(Fixed(ints(1, 2)), lambda mv: (Number.from_val(mv) + Number.from_val(mv)).to_val())
        self.assertEqual(list(doubled), ints(2, 4))

    def test_filter_and_map_pass_errors_through(self) -> None:
        calls = []

        def pred(mv: MetaVal) -> bool:
            calls.append(mv)
            return True

        self.assertEqual(drain(Filter(Raw([Sentinel(), i(1)]), pred)), [Sentinel, i(1)])
        self.assertEqual(calls, [i(1)])
        self.assertEqual(
            drain(Filter(Fixed([i(2), MetaVal.of_str("x"), i(4)]), is_even)),
            [i(2), NotNumeric, i(4)],
        )
        self.assertEqual(drain(Map(Raw([Sentinel()]), lambda mv: mv)), [Sentinel])

    def test_flatten(self) -> None:
        nested = MetaVal.from_python([1, [2, 3]])
        producer = Flatten(Fixed([i(0), nested, MetaVal.of_seq([]), i(4)]))
        self.assertEqual(list(producer), [i(0), i(1), MetaVal.from_python([2, 3]), i(4)])

    def test_flatten_on_flat_input_is_identity(self) -> None:
        flat = [i(1), MetaVal.of_str("a"), MetaVal.nil(), MetaVal.of_bool(True)]
        self.assertEqual(list(Flatten(Fixed(flat))), flat)

    def test_dedup_is_adjacent_and_idempotent(self) -> None:
        values = ints(1, 1, 2, 2, 1, 3, 3)
        once = list(Dedup(Fixed(values)))
        self.assertEqual(once, ints(1, 2, 1, 3))
        self.assertEqual(list(Dedup(Dedup(Fixed(values)))), once)
        self.assertEqual(drain(Dedup(Raw([i(1), Sentinel(), i(1), i(2)]))), [i(1), Sentinel, i(2)])

    def test_unique_keeps_first_occurrences(self) -> None:
        values = [i(3), i(1), i(3), MetaVal.of_dec(1), i(1), MetaVal.from_python([1]), MetaVal.from_python([1])]
        out = list(Unique(Fixed(values)))
        self.assertEqual(out, [i(3), i(1), MetaVal.of_dec(1), MetaVal.from_python([1])])
        self.assertEqual(len(out), len(set(out)))

    def test_unique_passes_errors_through(self) -> None:
        self.assertEqual(
            drain(Unique(Raw([i(1), Sentinel(), i(1), Sentinel(), i(2)]))),
            [i(1), Sentinel, Sentinel, i(2)],
        )

    def test_step_by(self) -> None:
        self.assertEqual(list(StepBy(Fixed(ints(0, 1, 2, 3, 4, 5, 6)), 3)), ints(0, 3, 6))
        # Errors surface even on skipped positions, and still occupy a position.
        self.assertEqual(
            drain(StepBy(Raw([i(0), Sentinel(), i(2), i(3)]), 2)),
            [i(0), Sentinel, i(2)],
        )
        with self.assertRaises(ValueError):
            StepBy(Fixed([]), 0)

    def test_chain(self) -> None:
        self.assertEqual(list(Chain(Fixed(ints(1)), Fixed(ints(2, 3)))), ints(1, 2, 3))
        self.assertEqual(drain(Chain(Raw([Sentinel()]), Fixed(ints(1)))), [Sentinel, i(1)])

    def test_chain_surfaces_errors_from_both_sides(self) -> None:
        producer = Chain(Raw([i(1), Sentinel()]), Raw([Sentinel(), i(2)]))
        self.assertEqual(drain(producer), [i(1), Sentinel, Sentinel, i(2)])

    def test_chain_does_not_pull_an_exhausted_first_producer_again(self) -> None:
        first = CountingPulls(Fixed(ints(1)))
        producer = Chain(first, Fixed(ints(2, 3)))
        self.assertEqual(list(producer), ints(1, 2, 3))
        self.assertEqual(first.pulls, 2)

    def test_zip(self) -> None:
        out = list(Zip(Fixed(ints(1, 2, 3)), Fixed([MetaVal.of_str("a"), MetaVal.of_str("b")])))
        self.assertEqual(out, [MetaVal.from_python([1, "a"]), MetaVal.from_python([2, "b"])])

    def test_zip_left_error_wins(self) -> None:
        class Other(StreamError):
            pass

        producer = Zip(Raw([Sentinel(), i(1)]), Raw([Other(), Other()]))
        with self.assertRaises(Sentinel):
            next(producer)
        with self.assertRaises(Other):
            next(producer)

    def test_zip_left_error_survives_exhausted_right(self) -> None:
        with self.assertRaises(Sentinel):
            next(Zip(Raw([Sentinel()]), Fixed([])))
        self.assertEqual(drain(Zip(Raw([i(1), Sentinel()]), Fixed(ints(2)))), [MetaVal.from_python([1, 2]), Sentinel])

    def test_zip_right_error(self) -> None:
        self.assertEqual(drain(Zip(Fixed(ints(1, 2)), Raw([Sentinel(), i(3)]))), [Sentinel, MetaVal.from_python([2, 3])])

    def test_skip_and_take(self) -> None:
        self.assertEqual(list(Skip(Fixed(ints(1, 2, 3)), 2)), ints(3))
        self.assertEqual(list(Skip(Fixed(ints(1)), 5)), [])
        self.assertEqual(drain(Skip(Raw([Sentinel(), i(1), i(2)]), 2)), [Sentinel, i(2)])
        self.assertEqual(list(Take(Fixed(ints(1, 2, 3)), 2)), ints(1, 2))
        self.assertEqual(drain(Take(Raw([Sentinel(), i(1), i(2)]), 2)), [Sentinel, i(1)])

    def test_skip_while(self) -> None:
        producer = SkipWhile(Fixed(ints(2, 4, 5, 6, 7)), is_even)
        self.assertEqual(list(producer), ints(5, 6, 7))
        self.assertEqual(drain(SkipWhile(Raw([i(2), Sentinel(), i(3)]), is_even)), [Sentinel, i(3)])

    def test_take_while(self) -> None:
        self.assertEqual(list(TakeWhile(Fixed(ints(2, 4, 5, 6)), is_even)), ints(2, 4))
        self.assertEqual(drain(TakeWhile(Raw([i(2), Sentinel(), i(4)]), is_even)), [i(2), Sentinel])

    def test_in_between(self) -> None:
        sep = MetaVal.of_str("|")
        self.assertEqual(list(InBetween(Fixed(ints(1, 2, 3)), sep)), [i(1), sep, i(2), sep, i(3)])
        self.assertEqual(list(InBetween(Fixed([]), sep)), [])
        self.assertEqual(list(InBetween(Fixed(ints(1)), sep)), ints(1))

    def test_in_between_passes_errors_through(self) -> None:
        sep = MetaVal.of_str("|")
        # An error on the look-ahead pull is raised in place of the separator.
        self.assertEqual(
            drain(InBetween(Raw([i(1), Sentinel(), i(2)]), sep)),
            [i(1), Sentinel, sep, i(2)],
        )
        self.assertEqual(drain(InBetween(Raw([Sentinel(), i(1)]), sep)), [Sentinel, i(1)])

    def test_mix(self) -> None:
        out = list(Mix(Fixed(ints(1, 3)), Fixed(ints(2, 4, 6, 8))))
        self.assertEqual(out, ints(1, 2, 3, 4, 6, 8))
        self.assertEqual(list(Mix(Fixed([]), Fixed(ints(1, 2)))), ints(1, 2))

    def test_mix_passes_errors_through(self) -> None:
        self.assertEqual(
            drain(Mix(Raw([Sentinel(), i(3)]), Raw([i(2), Sentinel()]))),
            [Sentinel, i(2), i(3), Sentinel],
        )
        self.assertEqual(drain(Mix(Fixed([]), Raw([Sentinel(), i(1)]))), [Sentinel, i(1)])


class TestSequenceInputs(unittest.TestCase):
    def test_combinators_accept_sequence_values(self) -> None:
        values = MetaVal.from_python([1, 2, 3, 4])
        self.assertEqual(list(Filter(values, is_even)), ints(2, 4))
        self.assertEqual(list(StepBy(values, 2)), ints(1, 3))
        self.assertEqual(list(Skip(values, 3)), ints(4))
        self.assertEqual(list(Take(values, 1)), ints(1))
        sep = MetaVal.of_str("|")
        self.assertEqual(list(InBetween(MetaVal.from_python([1, 2]), sep)), [i(1), sep, i(2)])
        self.assertEqual(list(Mix(MetaVal.from_python([1, 3]), Fixed(ints(2)))), ints(1, 2, 3))

    def test_scalar_inputs_are_rejected(self) -> None:
        with self.assertRaises(NotIterable):
            Map(i(1), lambda mv: mv)
        with self.assertRaises(NotIterable):
            Zip(Fixed([]), MetaVal.of_str("x"))


if __name__ == "__main__":
    unittest.main()
