"""Internal Ruby Marshal (format 4.8) reader.

Private module for the codec; public API is in `rgss_bundle.py` and
`crash_report.py`.

Only the subset of the format found in script bundles and loader crash logs
is understood:

- `0` nil, `T` true, `F` false
- `i` Fixnum, `l` Bignum
- `"` String, returned as `bytes` (encoding ivars are read and dropped)
- `:` Symbol / `;` symbol link, returned as `Symbol`
- `[` Array, `{` Hash, `}` Hash with default (default is dropped)
- `I` instance variables wrapper
- `@` object link

Anything else raises `MarshalFormatError`.
"""

from __future__ import annotations

from typing import Any

MARSHAL_MAJOR = 4
MARSHAL_MINOR = 8


class MarshalFormatError(ValueError):
    """Raised when the byte stream is not a readable Marshal graph."""


class Symbol(str):
    """A Ruby Symbol. Compares equal to the plain `str` of its name."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f":{str(self)}"


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0
        self._symbols: list[Symbol] = []
        self._objects: list[Any] = []

    # ----------------------------
    # Primitive readers
    # ----------------------------

    def _byte(self) -> int:
        if self._pos >= len(self._data):
            raise MarshalFormatError(f"unexpected end of data at offset {self._pos}")
        b = self._data[self._pos]
        self._pos += 1
        return b

    def _take(self, n: int) -> bytes:
        if n < 0:
            raise MarshalFormatError(f"negative length {n} at offset {self._pos}")
        end = self._pos + n
        if end > len(self._data):
            raise MarshalFormatError(f"unexpected end of data: need {n} bytes at offset {self._pos}")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _long(self) -> int:
        c = self._byte()
        if c > 127:
            c -= 256
        if c == 0:
            return 0
        if 4 < c < 128:
            return c - 5
        if -129 < c < -4:
            return c + 5
        n = abs(c)
        raw = self._take(n)
        value = int.from_bytes(raw, "little", signed=False)
        if c < 0:
            value -= 1 << (8 * n)
        return value

    def _bytes(self) -> bytes:
        return self._take(self._long())

    def _remember(self, obj: Any) -> int:
        self._objects.append(obj)
        return len(self._objects) - 1

    # ----------------------------
    # Object graph
    # ----------------------------

    def header(self) -> None:
        major = self._byte()
        minor = self._byte()
        if major != MARSHAL_MAJOR or minor > MARSHAL_MINOR:
            raise MarshalFormatError(f"unsupported Marshal version {major}.{minor}")

    def symbol(self) -> Symbol:
        tag = self._byte()
        if tag == ord(":"):
            sym = Symbol(self._bytes().decode("utf-8", errors="replace"))
            self._symbols.append(sym)
            return sym
        if tag == ord(";"):
            index = self._long()
            if not 0 <= index < len(self._symbols):
                raise MarshalFormatError(f"symbol link {index} out of range")
            return self._symbols[index]
        raise MarshalFormatError(f"expected a Symbol, got tag {chr(tag)!r} at offset {self._pos - 1}")

    def value(self) -> Any:
        start = self._pos
        tag = chr(self._byte())

        if tag == "0":
            return None
        if tag == "T":
            return True
        if tag == "F":
            return False
        if tag == "i":
            return self._long()
        if tag in (":", ";"):
            self._pos = start
            return self.symbol()
        if tag == "@":
            index = self._long()
            if not 0 <= index < len(self._objects):
                raise MarshalFormatError(f"object link {index} out of range")
            return self._objects[index]
        if tag == '"':
            data = self._bytes()
            self._remember(data)
            return data
        if tag == "l":
            sign = chr(self._byte())
            if sign not in "+-":
                raise MarshalFormatError(f"invalid Bignum sign {sign!r} at offset {self._pos - 1}")
            raw = self._take(self._long() * 2)
            number = int.from_bytes(raw, "little", signed=False)
            if sign == "-":
                number = -number
            self._remember(number)
            return number
        if tag == "[":
            out: list[Any] = []
            self._remember(out)
            for _ in range(self._long()):
                out.append(self.value())
            return out
        if tag in ("{", "}"):
            table: dict[Any, Any] = {}
            self._remember(table)
            for _ in range(self._long()):
                key = self.value()
                try:
                    table[key] = self.value()
                except TypeError as e:
                    raise MarshalFormatError(f"unhashable Hash key at offset {start}") from e
            if tag == "}":
                self.value()
            return table
        if tag == "I":
            obj = self.value()
            for _ in range(self._long()):
                self.symbol()
                self.value()
            return obj

        raise MarshalFormatError(f"unsupported Marshal type tag {tag!r} at offset {start}")

    def done(self) -> None:
        if self._pos != len(self._data):
            raise MarshalFormatError(f"{len(self._data) - self._pos} trailing bytes after the object graph")


def _load(data: bytes) -> Any:
    """Load one Marshal graph from `data`."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"_load: expected bytes, got {type(data).__name__}")
    reader = _Reader(bytes(data))
    reader.header()
    obj = reader.value()
    reader.done()
    return obj
