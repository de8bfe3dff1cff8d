"""Translation of RFC 4515 search filter strings into BER element trees."""

from __future__ import annotations

import enum

from .ber import BerClass, BerElement
from .ldap_values import parse_value

__all__ = ["FilterSyntaxError", "parse_filter"]

_DESC_STOP = b"()<>~="
_VALUE_STOP = b"*)"


class FilterSyntaxError(ValueError):
    """Raised when a search filter string cannot be parsed."""


class _Filter(enum.IntEnum):
    AND = 0
    OR = 1
    NOT = 2
    EQ = 3
    SUBS = 4
    GE = 5
    LE = 6
    PRES = 7
    APPR = 8


class _Substring(enum.IntEnum):
    INIT = 0
    ANY = 1
    FIN = 2


def _context(element: BerElement, tag: int) -> BerElement:
    return element.with_header(BerClass.CONTEXT, int(tag))


class _Parser:
    """Recursive descent over the filter octets; the end reads as NUL."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def _at(self, index: int) -> int:
        if index > len(self.data):
            raise FilterSyntaxError("unexpected end of filter")
        return self.data[index] if index < len(self.data) else 0

    def peek(self) -> int:
        return self._at(self.pos)

    def _span(self, stop: bytes) -> int:
        index = self.pos
        while True:
            octet = self._at(index)
            if octet == 0 or octet in stop:
                return index - self.pos
            index += 1

    def parse(self) -> BerElement:
        if self.peek() != ord("("):
            raise FilterSyntaxError(f"expected '(' at offset {self.pos}")
        self.pos += 1
        octet = self.peek()
        if octet in (ord("&"), ord("|")):
            kind = _Filter.AND if octet == ord("&") else _Filter.OR
            self.pos += 1
            if self.peek() != ord("("):
                raise FilterSyntaxError(f"expected '(' at offset {self.pos}")
            children = []
            while self.peek() == ord("("):
                children.append(self.parse())
            if self.peek() != ord(")"):
                raise FilterSyntaxError(f"expected ')' at offset {self.pos}")
            element = _context(BerElement.set(children), kind)
        elif octet == ord("!"):
            self.pos += 1
            child = self.parse()
            if self.peek() != ord(")"):
                raise FilterSyntaxError(f"expected ')' at offset {self.pos}")
            element = _context(BerElement.sequence([child]), _Filter.NOT)
        else:
            element = self._item()
        self.pos += 1
        return element

    def _item(self) -> BerElement:
        start = self.pos
        length = self._span(_DESC_STOP)
        desc = self.data[start : start + length]
        self.pos += length

        operator = self.peek()
        if operator == ord("~"):
            kind = _Filter.APPR
            self.pos += 1
        elif operator == ord("<"):
            kind = _Filter.LE
            self.pos += 1
        elif operator == ord(">"):
            kind = _Filter.GE
            self.pos += 1
        elif operator == ord("="):
            kind = _Filter.EQ
        else:
            raise FilterSyntaxError(f"missing operator at offset {self.pos}")
        self.pos += 1
        value_start = self.pos

        if self.data[value_start : value_start + 2] == b"*)":
            self.pos += 1
            return _context(BerElement.string(desc), _Filter.PRES)

        length = self._span(_VALUE_STOP)
        if length == 0 and self.peek() != ord("*"):
            raise FilterSyntaxError(f"missing value at offset {self.pos}")
        self.pos += length
        if self.peek() == 0:
            raise FilterSyntaxError("unterminated filter")

        if self.peek() == ord("*"):
            return self._substrings(desc, value_start)

        value = parse_value(self.data[value_start : self.pos])
        return _context(
            BerElement.sequence([BerElement.string(desc), BerElement.string(value)]),
            kind,
        )

    def _substrings(self, desc: bytes, value_start: int) -> BerElement:
        self.pos = value_start
        parts = []
        initial = True
        while True:
            part_start = self.pos
            length = self._span(_VALUE_STOP)
            if length == 0:
                if self.peek() == ord(")"):
                    break
                self.pos += 1
                initial = False
                continue
            self.pos += length
            octet = self.peek()
            if octet == 0:
                raise FilterSyntaxError("unterminated substring filter")
            if initial:
                sub = _Substring.INIT
            elif octet == ord(")"):
                sub = _Substring.FIN
            else:
                sub = _Substring.ANY
            value = parse_value(self.data[part_start : self.pos])
            parts.append(_context(BerElement.string(value), sub))
            if sub == _Substring.FIN:
                break
            self.pos += 1
            initial = False
        return _context(
            BerElement.sequence([BerElement.string(desc), BerElement.sequence(parts)]),
            _Filter.SUBS,
        )


def parse_filter(text: str | bytes) -> BerElement:
    """Parse a search filter such as ``(&(uid=joe)(mail=*))`` into BER elements."""
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    data = data.split(b"\0", 1)[0]
    if not data:
        raise FilterSyntaxError("empty filter")
    parser = _Parser(data)
    element = parser.parse()
    if parser.pos != len(data):
        raise FilterSyntaxError(f"trailing data at offset {parser.pos}")
    return element