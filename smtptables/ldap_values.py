"""Helpers for LDAP filter values and directory strings."""

from __future__ import annotations

import re

__all__ = ["parse_value", "utf8_to_ascii"]

_HEX_PREFIX = re.compile(rb"[0-9a-fA-F]*")
_C_SPACE = b" \t\n\v\f\r"


def _hex_byte(chunk: bytes) -> int:
    """Value of a hex escape, parsed leniently the way strtoumax does."""
    text = chunk.lstrip(_C_SPACE)
    negative = False
    if text[:1] in (b"+", b"-"):
        negative = text[:1] == b"-"
        text = text[1:]
    digits = _HEX_PREFIX.match(text).group()
    value = int(digits, 16) if digits else 0
    if negative:
        value = -value
    return value & 0xFF


def parse_value(text: str | bytes) -> bytes:
    """Decode backslash hex escapes (``\\2a``) in an LDAP filter value.

    The result ends at the first NUL octet, as the filter encoder does.
    """
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    out = bytearray()
    pos = 0
    while pos < len(data):
        if data[pos] == ord("\\"):
            out.append(_hex_byte(data[pos + 1 : pos + 3]))
            pos += 3
        else:
            out.append(data[pos])
            pos += 1
    return bytes(out).split(b"\0", 1)[0]


def utf8_to_ascii(data: bytes | str) -> str:
    """Turn UTF-8 into ASCII, writing each multi-byte sequence as ``?``.

    Input ends at the first NUL octet.
    """
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    raw = raw.split(b"\0", 1)[0]
    out = []
    pos = 0
    while pos < len(raw):
        lead = raw[pos]
        if lead & 0xF0 == 0xF0:
            out.append("?")
            pos += 4
        elif lead & 0xE0 == 0xE0:
            out.append("?")
            pos += 3
        elif lead & 0xC0 == 0xC0:
            out.append("?")
            pos += 2
        else:
            out.append(chr(lead))
            pos += 1
    return "".join(out)