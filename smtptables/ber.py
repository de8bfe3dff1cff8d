"""BER element model and object identifier helpers."""

from __future__ import annotations

import dataclasses
import enum
import re
from typing import Iterable, Union

__all__ = [
    "BerClass",
    "BerType",
    "BerElement",
    "encode_oid",
    "decode_oid",
    "parse_oid",
]

MIN_OID_LEN = 2
MAX_OID_LEN = 32
_UINT32_MAX = 0xFFFFFFFF
_LLONG_MIN = -(1 << 63)
_LLONG_MAX = (1 << 63) - 1
_CLASS_MASK = 0x3

_OID_COMPONENT = re.compile(r"\s*[+-]?\d+")
_OID_SEPARATORS = re.compile(r"[._-]")


class BerClass(enum.IntEnum):
    UNIVERSAL = 0
    APPLICATION = 1
    CONTEXT = 2
    PRIVATE = 3


class BerType(enum.IntEnum):
    EOC = 0
    BOOLEAN = 1
    INTEGER = 2
    BITSTRING = 3
    OCTETSTRING = 4
    NULL = 5
    OBJECT = 6
    ENUMERATED = 10
    SEQUENCE = 16
    SET = 17


def _as_type(encoding: int) -> int:
    try:
        return BerType(encoding)
    except ValueError:
        return encoding


Value = Union[None, int, bytes, tuple]


@dataclasses.dataclass(frozen=True)
class BerElement:
    """One BER element: its encoding, header and payload.

    ``value`` is an int for booleans, integers and enumerations, bytes for
    strings, bit strings and object identifiers, a tuple of elements for
    sequences and sets, and None otherwise. ``tag`` defaults to the encoding.
    """

    encoding: int
    value: Value = None
    ber_class: int = BerClass.UNIVERSAL
    tag: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "encoding", _as_type(self.encoding))
        object.__setattr__(self, "ber_class", BerClass(self.ber_class & _CLASS_MASK))
        if self.tag is None:
            object.__setattr__(self, "tag", int(self.encoding))

    # constructors

    @classmethod
    def integer(cls, value: int) -> "BerElement":
        return cls(BerType.INTEGER, _check_llong(value))

    @classmethod
    def enumerated(cls, value: int) -> "BerElement":
        return cls(BerType.ENUMERATED, _check_llong(value))

    @classmethod
    def boolean(cls, value: bool) -> "BerElement":
        return cls(BerType.BOOLEAN, 0xFF if value else 0)

    @classmethod
    def string(cls, value: str | bytes) -> "BerElement":
        if isinstance(value, str):
            value = value.encode("utf-8")
        return cls(BerType.OCTETSTRING, bytes(value))

    @classmethod
    def bitstring(cls, value: bytes) -> "BerElement":
        return cls(BerType.BITSTRING, bytes(value))

    @classmethod
    def null(cls) -> "BerElement":
        return cls(BerType.NULL)

    @classmethod
    def eoc(cls) -> "BerElement":
        return cls(BerType.EOC)

    @classmethod
    def oid(cls, ids: Iterable[int]) -> "BerElement":
        return cls(BerType.OBJECT, encode_oid(ids))

    @classmethod
    def sequence(cls, children: Iterable["BerElement"]) -> "BerElement":
        return cls(BerType.SEQUENCE, tuple(children))

    @classmethod
    def set(cls, children: Iterable["BerElement"]) -> "BerElement":
        return cls(BerType.SET, tuple(children))

    def with_header(self, ber_class: int, tag: int | None) -> "BerElement":
        """Return a copy with another class and tag; a None tag means the encoding."""
        return dataclasses.replace(
            self,
            ber_class=ber_class & _CLASS_MASK,
            tag=int(self.encoding) if tag is None else tag,
        )

    # accessors

    @property
    def is_constructed(self) -> bool:
        return self.encoding in (BerType.SEQUENCE, BerType.SET)

    @property
    def children(self) -> tuple:
        if not self.is_constructed:
            raise ValueError(f"{self._kind()} element has no children")
        return self.value or ()

    def as_integer(self) -> int:
        self._expect(BerType.INTEGER)
        return self.value

    def as_enumerated(self) -> int:
        self._expect(BerType.ENUMERATED)
        return self.value

    def as_boolean(self) -> bool:
        self._expect(BerType.BOOLEAN)
        return self.value != 0

    def as_bytes(self) -> bytes:
        self._expect(BerType.OCTETSTRING, BerType.BITSTRING)
        return self.value

    def as_oid(self) -> tuple[int, ...]:
        self._expect(BerType.OBJECT)
        return decode_oid(self.value)

    def is_eoc(self) -> bool:
        return self.encoding == BerType.EOC

    def _kind(self) -> str:
        enc = self.encoding
        return enc.name if isinstance(enc, BerType) else f"type {enc}"

    def _expect(self, *encodings: BerType) -> None:
        if self.encoding not in encodings:
            wanted = " or ".join(e.name for e in encodings)
            raise ValueError(f"expected {wanted}, got {self._kind()}")


def _check_llong(value: int) -> int:
    value = int(value)
    if not _LLONG_MIN <= value <= _LLONG_MAX:
        raise ValueError(f"integer {value} does not fit in 64 bits")
    return value


def encode_oid(ids: Iterable[int]) -> bytes:
    """Encode object identifier components into BER content octets."""
    ids = tuple(ids)
    if (
        not MIN_OID_LEN <= len(ids) <= MAX_OID_LEN
        or ids[0] > 2
        or ids[1] > 40
    ):
        raise ValueError(f"invalid object identifier {ids!r}")
    for component in ids:
        if not 0 <= component <= _UINT32_MAX:
            raise ValueError(f"object identifier component {component} out of range")

    out = bytearray()
    for v in (ids[0] * 40 + ids[1], *ids[2:]):
        for shift in (28, 21, 14, 7):
            if v >= 1 << shift:
                out.append(((v >> shift) & 0x7F) | 0x80)
        out.append(v & 0x7F)
    return bytes(out)


def decode_oid(data: bytes) -> tuple[int, ...]:
    """Decode BER object identifier content octets into components."""
    if not data or data[0] == 0:
        raise ValueError("invalid object identifier encoding")
    ids = [data[0] // 40, data[0] % 40]
    current = 0
    for byte in data[1:]:
        if len(ids) >= MAX_OID_LEN:
            break
        current = ((current << 7) + (byte & 0x7F)) & _UINT32_MAX
        if byte & 0x80:
            continue
        ids.append(current)
        current = 0
    return tuple(ids)


def parse_oid(text: str) -> tuple[int, ...]:
    """Parse an OID written as n.n.n, n_n_n or n-n-n."""
    ids = []
    for part in _OID_SEPARATORS.split(text):
        if not _OID_COMPONENT.fullmatch(part):
            raise ValueError(f"invalid object identifier component {part!r}")
        number = int(part)
        if not 0 <= number <= _UINT32_MAX:
            raise ValueError(f"object identifier component {part!r} out of range")
        ids.append(number)
        if len(ids) > MAX_OID_LEN:
            raise ValueError("object identifier too long")
    return tuple(ids)