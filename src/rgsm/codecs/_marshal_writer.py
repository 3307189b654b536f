"""Internal Ruby Marshal (format 4.8) writer.

Private module for the codec; public API is in `rgss_bundle.py`.

Python values map to Ruby values as follows:
- None/True/False -> nil/true/false
- int -> Fixnum (or Bignum outside the 31-bit Fixnum range)
- bytes -> binary String (no encoding ivar)
- str -> UTF-8 String (`I"` with `:E => true`)
- Symbol -> Symbol
- list/tuple -> Array
- dict -> Hash; `str` keys are written as Symbols when
  `hash_str_keys_as_symbols=True`, which is what the engine's loader expects
"""

from __future__ import annotations

from typing import Any

from rgsm.codecs._marshal_reader import MARSHAL_MAJOR, MARSHAL_MINOR, Symbol

_FIXNUM_MIN = -(1 << 30)
_FIXNUM_MAX = (1 << 30) - 1


def _w_long(x: int) -> bytes:
    """Encode `x` with Marshal's compact long format."""
    if x == 0:
        return b"\x00"
    if 0 < x < 123:
        return bytes([x + 5])
    if -124 < x < 0:
        return bytes([(x - 5) & 0xFF])
    out = bytearray()
    for i in range(1, 5):
        out.append(x & 0xFF)
        x >>= 8
        if x == 0:
            return bytes([i]) + bytes(out)
        if x == -1:
            return bytes([(-i) & 0xFF]) + bytes(out)
    raise ValueError("long out of 32-bit range")


class _Writer:
    def __init__(self, *, hash_str_keys_as_symbols: bool) -> None:
        self._out = bytearray()
        self._symbols: dict[str, int] = {}
        self._hash_str_keys_as_symbols = hash_str_keys_as_symbols

    def _bytes(self, data: bytes) -> None:
        self._out += _w_long(len(data))
        self._out += data

    def symbol(self, name: str) -> None:
        index = self._symbols.get(name)
        if index is not None:
            self._out += b";"
            self._out += _w_long(index)
            return
        self._symbols[name] = len(self._symbols)
        self._out += b":"
        self._bytes(name.encode("utf-8"))

    def integer(self, x: int) -> None:
        if _FIXNUM_MIN <= x <= _FIXNUM_MAX:
            self._out += b"i"
            self._out += _w_long(x)
            return
        self._out += b"l"
        self._out += b"+" if x >= 0 else b"-"
        magnitude = abs(x)
        size = (magnitude.bit_length() + 15) // 16
        self._out += _w_long(size)
        self._out += magnitude.to_bytes(size * 2, "little")

    def value(self, obj: Any) -> None:
        if obj is None:
            self._out += b"0"
        elif obj is True:
            self._out += b"T"
        elif obj is False:
            self._out += b"F"
        elif isinstance(obj, int):
            self.integer(obj)
        elif isinstance(obj, Symbol):
            self.symbol(str(obj))
        elif isinstance(obj, str):
            self._out += b'I"'
            self._bytes(obj.encode("utf-8"))
            self._out += _w_long(1)
            self.symbol("E")
            self._out += b"T"
        elif isinstance(obj, (bytes, bytearray, memoryview)):
            self._out += b'"'
            self._bytes(bytes(obj))
        elif isinstance(obj, (list, tuple)):
            self._out += b"["
            self._out += _w_long(len(obj))
            for item in obj:
                self.value(item)
        elif isinstance(obj, dict):
            self._out += b"{"
            self._out += _w_long(len(obj))
            for key, item in obj.items():
                if self._hash_str_keys_as_symbols and isinstance(key, str):
                    self.symbol(str(key))
                else:
                    self.value(key)
                self.value(item)
        else:
            raise TypeError(f"cannot marshal {type(obj).__name__}")

    def getvalue(self) -> bytes:
        return bytes(self._out)


def _dump(obj: Any, *, hash_str_keys_as_symbols: bool = True) -> bytes:
    """Serialize `obj` as a complete Marshal 4.8 stream."""
    writer = _Writer(hash_str_keys_as_symbols=hash_str_keys_as_symbols)
    writer.value(obj)
    return bytes([MARSHAL_MAJOR, MARSHAL_MINOR]) + writer.getvalue()
