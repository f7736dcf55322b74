from __future__ import annotations

import functools
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable

from .stream.errors import NotNumeric

INT_MIN = -(2**63)
INT_MAX = 2**63 - 1


def _check_int(value: int) -> int:
    if not INT_MIN <= value <= INT_MAX:
        raise OverflowError(f"integer out of range: {value}")
    return value


class ValKind(str, Enum):
    NIL = "nil"
    BOOL = "bool"
    INT = "int"
    DEC = "dec"
    STR = "str"
    SEQ = "seq"


_KIND_RANK = {
    ValKind.NIL: 0,
    ValKind.BOOL: 1,
    ValKind.INT: 2,
    ValKind.DEC: 2,
    ValKind.STR: 3,
    ValKind.SEQ: 4,
}


@dataclass(frozen=True, slots=True)
class MetaVal:
    """A dynamically typed metadata value.

    Equality and hashing are structural and variant-sensitive, so ``INT 1``,
    ``DEC 1`` and ``BOOL true`` are three distinct values. Use ``Number`` for
    numeric comparison across the integer/decimal split.
    """

    kind: ValKind
    value: Any = None

    @classmethod
    def nil(cls) -> "MetaVal":
        return cls(ValKind.NIL)

    @classmethod
    def of_bool(cls, value: bool) -> "MetaVal":
        return cls(ValKind.BOOL, bool(value))

    @classmethod
    def of_int(cls, value: int) -> "MetaVal":
        return cls(ValKind.INT, _check_int(int(value)))

    @classmethod
    def of_dec(cls, value: Decimal | str | int) -> "MetaVal":
        value = Decimal(value)
        if not value.is_finite():
            raise ValueError(f"decimal must be finite: {value}")
        return cls(ValKind.DEC, value)

    @classmethod
    def of_str(cls, value: str) -> "MetaVal":
        return cls(ValKind.STR, str(value))

    @classmethod
    def of_seq(cls, values: Iterable["MetaVal"]) -> "MetaVal":
        return cls(ValKind.SEQ, tuple(values))

    @classmethod
    def from_python(cls, obj: Any) -> "MetaVal":
        if isinstance(obj, MetaVal):
            return obj
        if obj is None:
            return cls.nil()
        # bool must be checked before int.
        if isinstance(obj, bool):
            return cls.of_bool(obj)
        if isinstance(obj, int):
            return cls.of_int(obj)
        if isinstance(obj, float):
            return cls.of_dec(Decimal(repr(obj)))
        if isinstance(obj, Decimal):
            return cls.of_dec(obj)
        if isinstance(obj, str):
            return cls.of_str(obj)
        if isinstance(obj, (list, tuple)):
            return cls.of_seq(cls.from_python(item) for item in obj)
        raise TypeError(f"unsupported metadata value: {type(obj).__name__}")

    def to_python(self) -> Any:
        if self.kind is ValKind.SEQ:
            return [item.to_python() for item in self.value]
        return self.value

    @property
    def is_seq(self) -> bool:
        return self.kind is ValKind.SEQ

    @property
    def is_number(self) -> bool:
        return self.kind in (ValKind.INT, ValKind.DEC)

    def sort_key(self) -> Any:
        return functools.cmp_to_key(compare_vals)(self)

    def __repr__(self) -> str:
        if self.kind is ValKind.NIL:
            return "MetaVal.nil()"
        if self.kind is ValKind.SEQ:
            return f"MetaVal.of_seq([{', '.join(repr(v) for v in self.value)}])"
        return f"MetaVal.of_{self.kind.value}({self.value!r})"


MetaBlock = Dict[str, MetaVal]


def compare_vals(left: MetaVal, right: MetaVal) -> int:
    """Natural ordering used by sorting: nil < bool < number < str < seq."""
    lrank = _KIND_RANK[left.kind]
    rrank = _KIND_RANK[right.kind]
    if lrank != rrank:
        return -1 if lrank < rrank else 1
    if left.is_number:
        return Number.from_val(left).val_cmp(Number.from_val(right))
    if left.kind is ValKind.SEQ:
        for litem, ritem in zip(left.value, right.value):
            result = compare_vals(litem, ritem)
            if result:
                return result
        return _cmp(len(left.value), len(right.value))
    return _cmp(left.value, right.value)


def _cmp(left: Any, right: Any) -> int:
    return (left > right) - (left < right)


@functools.total_ordering
class Number:
    """Numeric view over integer and decimal metadata values.

    Mixed operations promote the integer to a decimal of the same value, and
    a whole-valued decimal compares equal to its integer counterpart.
    Integer-only arithmetic stays integral.
    """

    __slots__ = ("value",)

    def __init__(self, value: int | Decimal) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
            raise TypeError(f"not a number: {value!r}")
        self.value = _check_int(value) if isinstance(value, int) else value

    @classmethod
    def from_val(cls, mv: MetaVal) -> "Number":
        if not mv.is_number:
            raise NotNumeric(mv)
        return cls(mv.value)

    @property
    def is_decimal(self) -> bool:
        return isinstance(self.value, Decimal)

    def to_val(self) -> MetaVal:
        if self.is_decimal:
            return MetaVal.of_dec(self.value)
        return MetaVal.of_int(self.value)

    def _promoted(self, other: "Number") -> tuple[int | Decimal, int | Decimal]:
        if self.is_decimal or other.is_decimal:
            return Decimal(self.value), Decimal(other.value)
        return self.value, other.value

    def val_cmp(self, other: "Number") -> int:
        left, right = self._promoted(other)
        return _cmp(left, right)

    def val_eq(self, other: "Number") -> bool:
        return self.val_cmp(other) == 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Number):
            return NotImplemented
        return self.val_eq(other)

    def __lt__(self, other: "Number") -> bool:
        return self.val_cmp(other) < 0

    def __hash__(self) -> int:
        # Decimal hashes agree with int hashes for whole values.
        return hash(self.value)

    def __add__(self, other: "Number") -> "Number":
        left, right = self._promoted(other)
        return Number(left + right)

    def __mul__(self, other: "Number") -> "Number":
        left, right = self._promoted(other)
        return Number(left * right)

    def __neg__(self) -> "Number":
        if self.is_decimal and self.value == 0:
            return Number(self.value)
        return Number(-self.value)

    def __abs__(self) -> "Number":
        return Number(abs(self.value))

    def __repr__(self) -> str:
        return f"Number({self.value!r})"
