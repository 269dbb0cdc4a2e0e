"""Constant values of the language: names, strings, numbers and structured data."""

from __future__ import annotations

import enum
import math
import struct as _struct
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Iterator, Mapping, Optional, Tuple, Union

_MASK64 = (1 << 64) - 1
_FNV64_OFFSET = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3


class ConstantError(ValueError):
    """Raised when a constant is malformed or of an unexpected kind."""


class ConstantType(enum.IntEnum):
    """The run-time type or shape of a constant."""

    NAME = 0
    STRING = 1
    NUMBER = 2
    FLOAT64 = 3
    PAIR = 4
    LIST = 5
    MAP = 6
    STRUCT = 7


def _to_int64(value: int) -> int:
    value &= _MASK64
    return value - (1 << 64) if value >= (1 << 63) else value


def hash_bytes(data: bytes) -> int:
    """Return the 64-bit FNV-1 hash of the given bytes."""
    h = _FNV64_OFFSET
    for byte in data:
        h = (h * _FNV64_PRIME) & _MASK64
        h ^= byte
    return h


def _szudzik_pair(fst: int, snd: int) -> int:
    if fst >= snd:
        return (fst * fst + fst + snd) & _MASK64
    return (snd * snd + fst) & _MASK64


def _hash_pair(fst: "Constant", snd: Optional["Constant"], tpe: ConstantType) -> int:
    left = (fst.hash_code() << int(tpe)) & _MASK64
    if snd is None:
        return _to_int64(left)
    return _to_int64(_szudzik_pair(left, snd.hash_code()))


def format_number(value: int) -> str:
    """Format a number constant's value."""
    return str(value)


def format_float64(value: float) -> str:
    """Format a float in the shortest decimal form, without exponent."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _float_bits(value: float) -> int:
    return _struct.unpack("<q", _struct.pack("<d", value))[0]


def _bits_float(bits: int) -> float:
    return _struct.unpack("<d", _struct.pack("<q", _to_int64(bits)))[0]


@dataclass(frozen=True, eq=False, repr=False, slots=True)
class Constant:
    """A constant symbol or structured value.

    Structured values (pairs, lists, maps, structs) are linked through
    ``fst`` and ``snd``; for other kinds ``num_value`` carries the number,
    the float bits or a hash of the symbol.
    """

    type: ConstantType
    symbol: str = ""
    num_value: int = 0
    fst: Optional["Constant"] = None
    snd: Optional["Constant"] = None

    def name_value(self) -> str:
        if self.type != ConstantType.NAME:
            raise ConstantError(f"not a name constant {self}")
        return self.symbol

    def string_value(self) -> str:
        if self.type != ConstantType.STRING:
            raise ConstantError(f"not a string constant {self}")
        return self.symbol

    def number_value(self) -> int:
        if self.type != ConstantType.NUMBER:
            raise ConstantError(f"not a number constant {self}")
        return self.num_value

    def float64_value(self) -> float:
        if self.type != ConstantType.FLOAT64:
            raise ConstantError(f"not a float64 constant {self}")
        return _bits_float(self.num_value)

    def pair_value(self) -> Tuple["Constant", "Constant"]:
        if self.type != ConstantType.PAIR:
            raise ConstantError(f"not a pair value {self}")
        return self.fst, self.snd

    def cons_value(self) -> Tuple["Constant", "Constant"]:
        if self.type != ConstantType.LIST or self.is_list_nil():
            raise ConstantError(f"not a cons value {self}")
        return self.fst, self.snd

    def list_values(self) -> Iterator["Constant"]:
        """Yield the elements of a list constant."""
        if self.type != ConstantType.LIST:
            raise ConstantError(f"not a list constant {self}")
        return self._iter_list()

    def _iter_list(self) -> Iterator["Constant"]:
        c = self
        while not c.is_list_nil():
            yield c.fst
            c = c.snd

    def map_items(self) -> Iterator[Tuple["Constant", "Constant"]]:
        """Yield the (key, value) entries of a map constant."""
        if self.type != ConstantType.MAP:
            raise ConstantError(f"not a map constant {self}")
        return self._iter_entries(ConstantType.MAP)

    def struct_items(self) -> Iterator[Tuple["Constant", "Constant"]]:
        """Yield the (label, value) fields of a struct constant."""
        if self.type != ConstantType.STRUCT:
            raise ConstantError(f"not a struct constant {self}")
        return self._iter_entries(ConstantType.STRUCT)

    def _iter_entries(self, shape: ConstantType) -> Iterator[Tuple["Constant", "Constant"]]:
        c = self
        while not (c.type == shape and c.fst is None):
            entry = c.fst
            if entry.type != ConstantType.PAIR:
                raise ConstantError(f"not an entry {entry}")
            yield entry.fst, entry.snd
            c = c.snd

    def is_list_nil(self) -> bool:
        return self.type == ConstantType.LIST and self.fst is None

    def is_map_nil(self) -> bool:
        return self.type == ConstantType.MAP and self.fst is None

    def is_struct_nil(self) -> bool:
        return self.type == ConstantType.STRUCT and self.fst is None

    def hash_code(self) -> int:
        """Return the unsigned 64-bit hash code of this constant."""
        return self.num_value & _MASK64

    def apply_subst(self, subst) -> "Constant":
        """Constants are unaffected by substitutions."""
        return self

    def __hash__(self) -> int:
        return hash(self.num_value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Constant):
            return NotImplemented
        a, b = self, other
        while True:
            if a.type != b.type or a.num_value != b.num_value:
                return False
            if a.type in (ConstantType.NAME, ConstantType.STRING):
                return a.symbol == b.symbol
            if a.type in (ConstantType.NUMBER, ConstantType.FLOAT64):
                return True
            if a.type == ConstantType.PAIR:
                return a.fst == b.fst and a.snd == b.snd
            if a.fst is None or b.fst is None:
                return a.fst is None and b.fst is None
            if a.fst != b.fst:
                return False
            a, b = a.snd, b.snd

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __repr__(self) -> str:
        return f"Constant({self})"

    def __str__(self) -> str:
        t = self.type
        if t == ConstantType.NAME:
            return self.symbol
        if t == ConstantType.STRING:
            text = self.symbol
            if "\n" in text:
                return f"`{text}`"
            text = text.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{text}"'
        if t == ConstantType.NUMBER:
            return format_number(self.num_value)
        if t == ConstantType.FLOAT64:
            return format_float64(_bits_float(self.num_value))
        if t == ConstantType.PAIR:
            return f"<{self.fst}; {self.snd}>"
        if t == ConstantType.LIST:
            return "[" + ", ".join(str(e) for e in self._iter_list()) + "]"
        if t == ConstantType.MAP:
            if self.is_map_nil():
                return "fn:map()"
            body = ", ".join(f"{k} : {v}" for k, v in self._iter_entries(t))
            return f"[{body}]"
        if t == ConstantType.STRUCT:
            if self.is_struct_nil():
                return "{}"
            body = ", ".join(f"{k} : {v}" for k, v in self._iter_entries(t))
            return "{" + body + "}"
        return "?"


def name(symbol: str) -> Constant:
    """Construct a name constant such as ``/foo/bar``."""
    if len(symbol) <= 1:
        raise ConstantError("constant symbol must be a non-empty string starting with '/'")
    if symbol[0] != "/":
        raise ConstantError("constant symbol must start with '/'")
    if '"' in symbol:
        raise ConstantError(f'this constructor does not handle string content "{symbol}"')
    if any(part == "" for part in symbol[1:].split("/")):
        raise ConstantError(f'constant symbol "{symbol}" contains empty part')
    return Constant(ConstantType.NAME, symbol, _to_int64(hash_bytes(symbol.encode())))


def string(text: str) -> Constant:
    """Construct a string constant."""
    return Constant(ConstantType.STRING, text, _to_int64(hash_bytes(text.encode())))


def number(value: int) -> Constant:
    """Construct a number constant."""
    return Constant(ConstantType.NUMBER, "", value)


def float64(value: float) -> Constant:
    """Construct a float64 constant."""
    return Constant(ConstantType.FLOAT64, "", _float_bits(float(value)))


def _make_pair(tpe: ConstantType, fst: Constant, snd: Optional[Constant]) -> Constant:
    return Constant(tpe, "", _hash_pair(fst, snd, tpe), fst, snd)


def pair(fst: Constant, snd: Optional[Constant]) -> Constant:
    """Construct a pair constant."""
    return _make_pair(ConstantType.PAIR, fst, snd)


def list_cons(fst: Constant, snd: Constant) -> Constant:
    """Construct a list cell with head ``fst`` and tail ``snd``."""
    return _make_pair(ConstantType.LIST, fst, snd)


def map_cons(key: Constant, val: Constant, rest: Constant) -> Constant:
    """Prepend an entry to a map constant."""
    return _make_pair(ConstantType.MAP, pair(key, val), rest)


def struct_cons(label: Constant, val: Constant, rest: Constant) -> Constant:
    """Prepend a field to a struct constant."""
    return _make_pair(ConstantType.STRUCT, pair(label, val), rest)


LIST_NIL = Constant(ConstantType.LIST)
MAP_NIL = Constant(ConstantType.MAP)
STRUCT_NIL = Constant(ConstantType.STRUCT)


def list_of(constants: Iterable[Constant]) -> Constant:
    """Construct a list constant from the given elements."""
    result = LIST_NIL
    for c in reversed(list(constants)):
        result = list_cons(c, result)
    return result


def sort_index(keys: Iterable[Constant]) -> list:
    """Return the indices of ``keys`` stably sorted by hash code."""
    hashes = [k.hash_code() for k in keys]
    return sorted(range(len(hashes)), key=hashes.__getitem__)


_Entries = Union[Mapping[Constant, Constant], Iterable[Tuple[Constant, Constant]]]


def _entries(entries: _Entries) -> list:
    if isinstance(entries, Mapping):
        return list(entries.items())
    return list(entries)


def map_of(entries: _Entries) -> Constant:
    """Construct a map constant; entries are ordered canonically by key hash."""
    items = _entries(entries)
    result = MAP_NIL
    for i in sort_index(k for k, _ in items):
        key, val = items[i]
        result = map_cons(key, val, result)
    return result


def struct_of(entries: _Entries) -> Constant:
    """Construct a struct constant; fields are ordered canonically by label hash."""
    items = _entries(entries)
    result = STRUCT_NIL
    for i in sort_index(k for k, _ in items):
        label, val = items[i]
        result = struct_cons(label, val, result)
    return result


ANY_BOUND = name("/any")
BOT_BOUND = name("/bot")
FLOAT64_BOUND = name("/float64")
NAME_BOUND = name("/name")
NUMBER_BOUND = name("/number")
STRING_BOUND = name("/string")
TRUE_CONSTANT = name("/true")
FALSE_CONSTANT = name("/false")