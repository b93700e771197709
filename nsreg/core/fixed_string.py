"""Fixed-capacity UTF-8 strings used for every stored name.

A FixedCapacityString keeps its text in a 32-byte buffer plus an explicit
length. Validation happens before any byte is written, so an instance always
holds well-formed text and downstream code never re-checks it.

The serialized layout is the 32-byte buffer followed by the length as a
little-endian u64, which matches records written by the original on-chain
program.
"""

from __future__ import annotations

import struct

CAPACITY = 32

_LENGTH = struct.Struct("<Q")
LAYOUT_SIZE = CAPACITY + _LENGTH.size


class StringValidationError(ValueError):
    """Base class for rejected FixedCapacityString input."""


class TooLong(StringValidationError):
    """Input is longer than the string capacity."""

    def __init__(self, length: int, capacity: int = CAPACITY):
        super().__init__(
            f"source is too long, maximum allowed is {capacity} bytes, "
            f"received {length} bytes"
        )
        self.length = length
        self.capacity = capacity


class InvalidEncoding(StringValidationError):
    """Input is not valid UTF-8."""

    def __init__(self, reason: str):
        super().__init__(f"source is not valid UTF-8: {reason}")
        self.reason = reason


def _validate(source: bytes) -> bytes:
    if isinstance(source, str):
        raise TypeError("FixedCapacityString expects bytes, use from_text() for str")
    source = bytes(source)
    if len(source) > CAPACITY:
        raise TooLong(len(source))
    try:
        source.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidEncoding(str(exc)) from exc
    return source


class FixedCapacityString:
    """Bounded UTF-8 text stored in a zero-padded 32-byte buffer."""

    __slots__ = ("_buffer", "_length")

    def __init__(self) -> None:
        self._buffer = bytes(CAPACITY)
        self._length = 0

    @classmethod
    def construct(cls, source: bytes) -> FixedCapacityString:
        """Build a string from raw bytes.

        Raises ``TooLong`` or ``InvalidEncoding`` when ``source`` does not fit.
        """
        value = cls()
        value._store(_validate(source))
        return value

    @classmethod
    def from_text(cls, text: str) -> FixedCapacityString:
        return cls.construct(text.encode("utf-8"))

    @classmethod
    def from_layout(cls, raw: bytes) -> FixedCapacityString:
        """Decode the 40-byte ``buffer || u64 length`` layout."""
        if len(raw) != LAYOUT_SIZE:
            raise ValueError(f"expected {LAYOUT_SIZE} bytes, received {len(raw)}")
        (length,) = _LENGTH.unpack_from(raw, CAPACITY)
        if length > CAPACITY:
            raise TooLong(length)
        buffer = raw[:CAPACITY]
        if any(buffer[length:]):
            raise ValueError("bytes beyond the string length must be zero")
        return cls.construct(buffer[:length])

    def update(self, source: bytes) -> None:
        """Replace the contents in place.

        On failure the current value is left exactly as it was.
        """
        self._store(_validate(source))

    def _store(self, source: bytes) -> None:
        self._buffer = source + bytes(CAPACITY - len(source))
        self._length = len(source)

    @property
    def buffer(self) -> bytes:
        return self._buffer

    @property
    def length(self) -> int:
        return self._length

    def as_bytes(self) -> bytes:
        """The meaningful bytes, ``buffer[:length]``."""
        return self._buffer[: self._length]

    def view_as_text(self) -> str:
        return self.as_bytes().decode("utf-8")

    def to_layout(self) -> bytes:
        return self._buffer + _LENGTH.pack(self._length)

    def __str__(self) -> str:
        return self.view_as_text()

    def __repr__(self) -> str:
        return f"FixedCapacityString({self.view_as_text()!r})"

    def __len__(self) -> int:
        return self._length

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FixedCapacityString):
            return self.as_bytes() == other.as_bytes()
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]
