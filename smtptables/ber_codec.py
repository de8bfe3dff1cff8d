"""Encoding and decoding of BER elements in the definite-length form."""

from __future__ import annotations

import io
from typing import BinaryIO, Callable

from .ber import BerClass, BerElement, BerType

__all__ = ["BerDecodeError", "encoded_length", "encode", "decode", "read_element"]

_CONSTRUCTED = 0x20
_SINGLE_MAX = 30
_TAG_MASK = 0x1F
_MORE = 0x80
_LOW7 = 0x7F
_CLASS_SHIFT = 6
_MAX_TAG_OCTETS = 8
_MAX_LENGTH_OCTETS = 8
_MAX_INTEGER_OCTETS = 8


class BerDecodeError(ValueError):
    """Raised when BER data is malformed, truncated or unsupported."""


def _integer_length(value: int) -> int:
    """Number of content octets of a two's complement 64-bit integer."""
    length = 0
    last = 0
    for i in range(_MAX_INTEGER_OCTETS):
        cur = value & 0xFF
        if cur not in (0, 0xFF):
            length = i
        if (cur == 0 and last & 0x80) or (cur == 0xFF and not last & 0x80):
            length = i
        value >>= 8
        last = cur
    return length + 1


def _content_length(element: BerElement) -> int:
    encoding = element.encoding
    if encoding == BerType.BOOLEAN:
        return 1
    if encoding in (BerType.INTEGER, BerType.ENUMERATED):
        return _integer_length(element.value)
    if element.is_constructed:
        return sum(encoded_length(child) for child in element.children)
    if isinstance(element.value, (bytes, bytearray)):
        return len(element.value)
    return 0


def _is_empty_eoc(element: BerElement, content_length: int) -> bool:
    return element.encoding == BerType.EOC and content_length == 0


def encoded_length(element: BerElement) -> int:
    """Return the number of octets ``encode(element)`` produces."""
    content = _content_length(element)
    if _is_empty_eoc(element, content):
        return 0
    size = 2
    if element.tag > _SINGLE_MAX:
        size += (element.tag.bit_length() + 6) // 7
    if content >= _MORE:
        size += (content.bit_length() + 7) // 8
    return size + content


def _header(element: BerElement, content: int) -> bytes:
    out = bytearray()
    ident = int(element.ber_class) << _CLASS_SHIFT
    if element.is_constructed:
        ident |= _CONSTRUCTED
    if element.tag <= _SINGLE_MAX:
        out.append(ident | element.tag)
    else:
        out.append(ident | _TAG_MASK)
        groups = []
        tag = element.tag
        while tag > 0:
            groups.append(tag & _LOW7)
            tag >>= 7
        groups.reverse()
        out.extend(g | _MORE for g in groups[:-1])
        out.append(groups[-1])
    if content < _MORE:
        out.append(content)
    else:
        raw = content.to_bytes((content.bit_length() + 7) // 8, "big")
        out.append(len(raw) | _MORE)
        out.extend(raw)
    return bytes(out)


def _dump(element: BerElement, out: bytearray) -> None:
    content = _content_length(element)
    if _is_empty_eoc(element, content):
        return
    encoding = element.encoding
    if encoding == BerType.BITSTRING:
        raise ValueError("bit strings cannot be encoded")
    out += _header(element, content)
    if encoding in (BerType.BOOLEAN, BerType.INTEGER, BerType.ENUMERATED):
        mask = (1 << (8 * content)) - 1
        out += (element.value & mask).to_bytes(content, "big")
    elif element.is_constructed:
        for child in element.children:
            _dump(child, out)
    elif isinstance(element.value, (bytes, bytearray)):
        out += element.value


def encode(element: BerElement) -> bytes:
    """Encode an element tree into BER octets."""
    out = bytearray()
    _dump(element, out)
    return bytes(out)


def _taker(read: Callable[[int], bytes]) -> Callable[[int], bytes]:
    def take(count: int) -> bytes:
        chunks = []
        remaining = count
        while remaining > 0:
            chunk = read(remaining)
            if not chunk:
                raise BerDecodeError("unexpected end of data")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    return take


def _read_element(take: Callable[[int], bytes], first: int) -> tuple[BerElement, int]:
    ber_class = (first >> _CLASS_SHIFT) & 0x3
    constructed = bool(first & _CONSTRUCTED)
    consumed = 1

    tag = first & _TAG_MASK
    if tag == _TAG_MASK:
        tag = 0
        count = 0
        while True:
            octet = take(1)[0]
            count += 1
            tag = (tag << 7) | (octet & _LOW7)
            if not octet & _MORE:
                break
        if count > _MAX_TAG_OCTETS:
            raise BerDecodeError("tag too large")
        consumed += count

    octet = take(1)[0]
    consumed += 1
    if octet & _MORE:
        count = octet & _LOW7
        if count > _MAX_LENGTH_OCTETS:
            raise BerDecodeError("length too large")
        length = int.from_bytes(take(count), "big")
        consumed += count
        if length >> 63:
            raise BerDecodeError("length overflow")
        if length == 0:
            raise BerDecodeError("invalid length encoding")
    else:
        length = octet
    consumed += length

    if constructed:
        encoding = BerType.SEQUENCE
    elif ber_class == BerClass.UNIVERSAL:
        encoding = tag
    else:
        encoding = BerType.NULL

    value: object = None
    if encoding == BerType.EOC:
        take(length)
    elif encoding in (BerType.BOOLEAN, BerType.INTEGER, BerType.ENUMERATED):
        if length > _MAX_INTEGER_OCTETS:
            raise BerDecodeError("integer too large")
        raw = take(length)
        value = int.from_bytes(raw, "big", signed=True) if raw else 0
        if encoding == BerType.BOOLEAN:
            value = 0xFF if value else 0
    elif encoding in (BerType.BITSTRING, BerType.OCTETSTRING, BerType.OBJECT):
        value = take(length)
    elif encoding == BerType.NULL:
        if length != 0:
            raise BerDecodeError("null element with payload")
    elif encoding in (BerType.SEQUENCE, BerType.SET):
        children = []
        remaining = length
        while remaining > 0:
            child, used = _read_element(take, take(1)[0])
            remaining -= used
            if remaining < 0:
                raise BerDecodeError("element overruns its container")
            children.append(child)
        value = tuple(children)
    else:
        value = take(length)

    element = BerElement(encoding, value, ber_class=ber_class, tag=tag)
    return element, consumed


def decode(data: bytes) -> BerElement:
    """Decode the first BER element found in ``data``."""
    if not data:
        raise BerDecodeError("no data")
    take = _taker(io.BytesIO(bytes(data)).read)
    element, _ = _read_element(take, take(1)[0])
    return element


def read_element(stream: BinaryIO) -> BerElement | None:
    """Read one element from a binary stream; return None at end of stream."""
    first = stream.read(1)
    if not first:
        return None
    element, _ = _read_element(_taker(stream.read), first[0])
    return element