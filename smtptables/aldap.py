"""A small LDAPv3 client: request encoding and response parsing."""

from __future__ import annotations

import dataclasses
import enum
import logging
import socket
from typing import Iterable, Iterator, Sequence

from .ber import BerClass, BerElement, BerType
from .ber_codec import decode, encode, read_element
from .ldap_filter import FilterSyntaxError, parse_filter
from .ldap_url import Scope
from .ldap_values import utf8_to_ascii

__all__ = [
    "ProtocolOp",
    "ResultCode",
    "LdapError",
    "PageControl",
    "LdapMessage",
    "LdapClient",
    "build_page_control",
    "parse_page_control",
    "LDAP_VERSION",
    "PAGED_RESULTS_OID",
]

LDAP_VERSION = 3
PAGED_RESULTS_OID = "1.2.840.113556.1.4.319"
_PAGE_SIZE = 50
_DEREF_NEVER = 0
_AUTH_SIMPLE = 0
_CONTROLS_TAG = 0

_log = logging.getLogger(__name__)


class ProtocolOp(enum.IntEnum):
    BIND_REQUEST = 0
    BIND_RESPONSE = 1
    UNBIND_REQUEST = 2
    SEARCH_REQUEST = 3
    SEARCH_ENTRY = 4
    SEARCH_RESULT = 5
    MODIFY_REQUEST = 6
    MODIFY_RESPONSE = 7
    ADD_REQUEST = 8
    ADD_RESPONSE = 9
    DELETE_REQUEST = 10
    DELETE_RESPONSE = 11
    MODRDN_REQUEST = 12
    MODRDN_RESPONSE = 13
    COMPARE_REQUEST = 14
    COMPARE_RESPONSE = 15
    ABANDON_REQUEST = 16
    SEARCH_REFERENCE = 19


class ResultCode(enum.IntEnum):
    SUCCESS = 0
    OPERATIONS_ERROR = 1
    PROTOCOL_ERROR = 2
    TIMELIMIT_EXCEEDED = 3
    SIZELIMIT_EXCEEDED = 4
    COMPARE_FALSE = 5
    COMPARE_TRUE = 6
    STRONG_AUTH_NOT_SUPPORTED = 7
    STRONG_AUTH_REQUIRED = 8
    REFERRAL = 10
    ADMINLIMIT_EXCEEDED = 11
    UNAVAILABLE_CRITICAL_EXTENSION = 12
    CONFIDENTIALITY_REQUIRED = 13
    SASL_BIND_IN_PROGRESS = 14
    NO_SUCH_ATTRIBUTE = 16
    UNDEFINED_TYPE = 17
    INAPPROPRIATE_MATCHING = 18
    CONSTRAINT_VIOLATION = 19
    TYPE_OR_VALUE_EXISTS = 20
    INVALID_SYNTAX = 21
    NO_SUCH_OBJECT = 32
    ALIAS_PROBLEM = 33
    INVALID_DN_SYNTAX = 34
    ALIAS_DEREF_PROBLEM = 36
    INAPPROPRIATE_AUTH = 48
    INVALID_CREDENTIALS = 49
    INSUFFICIENT_ACCESS = 50
    BUSY = 51
    UNAVAILABLE = 52
    UNWILLING_TO_PERFORM = 53
    LOOP_DETECT = 54
    NAMING_VIOLATION = 64
    OBJECT_CLASS_VIOLATION = 65
    NOT_ALLOWED_ON_NONLEAF = 66
    NOT_ALLOWED_ON_RDN = 67
    ALREADY_EXISTS = 68
    NO_OBJECT_CLASS_MODS = 69
    AFFECTS_MULTIPLE_DSAS = 71
    OTHER = 80


_RESULT_OPS = frozenset(
    {
        ProtocolOp.BIND_RESPONSE,
        ProtocolOp.MODIFY_RESPONSE,
        ProtocolOp.ADD_RESPONSE,
        ProtocolOp.DELETE_RESPONSE,
        ProtocolOp.MODRDN_RESPONSE,
        ProtocolOp.COMPARE_RESPONSE,
        ProtocolOp.SEARCH_RESULT,
    }
)


class LdapError(Exception):
    """Raised when a request cannot be sent or a response cannot be parsed."""


@dataclasses.dataclass(frozen=True)
class PageControl:
    """State of a simple paged results search."""

    size: int
    cookie: bytes = b""


def build_page_control(page: PageControl | None) -> BerElement:
    """Build the controls element asking for paged results."""
    cookie = page.cookie if page is not None else b""
    value = encode(
        BerElement.sequence([BerElement.integer(_PAGE_SIZE), BerElement.string(cookie)])
    )
    control = BerElement.sequence(
        [BerElement.string(PAGED_RESULTS_OID), BerElement.string(value)]
    )
    return BerElement.sequence([control]).with_header(BerClass.CONTEXT, _CONTROLS_TAG)


def parse_page_control(control: BerElement) -> PageControl | None:
    """Read a paged results control; return None when it is malformed."""
    try:
        oid, encoded = control.children[:2]
        oid.as_bytes()
        inner = decode(encoded.as_bytes())
        size, cookie = inner.children[:2]
        return PageControl(size.as_integer(), cookie.as_bytes())
    except (ValueError, TypeError):
        return None


def _op(tag: int) -> int:
    try:
        return ProtocolOp(tag)
    except ValueError:
        return tag


def _code(value: int) -> int:
    try:
        return ResultCode(value)
    except ValueError:
        return value


def _string_set(elements: Iterable[BerElement]) -> tuple[str, ...] | None:
    values = []
    for element in elements:
        if element.encoding != BerType.OCTETSTRING:
            break
        values.append(utf8_to_ascii(element.value))
    return tuple(values) or None


def _text(element: BerElement | None) -> str | None:
    if element is None or element.encoding != BerType.OCTETSTRING:
        return None
    return utf8_to_ascii(element.value)


def _parts(element: BerElement) -> tuple[BerElement, ...]:
    if not element.is_constructed or not element.children:
        raise LdapError("parser failed: expected a non-empty sequence")
    return element.children


def _scan_attribute(attr: BerElement) -> tuple[bytes, Sequence[BerElement]] | None:
    if not attr.is_constructed or len(attr.children) < 2:
        return None
    key, values = attr.children[:2]
    if key.encoding != BerType.OCTETSTRING:
        return None
    if not values.is_constructed or not values.children:
        return None
    return key.value, values.children


@dataclasses.dataclass
class LdapMessage:
    """A parsed LDAP response."""

    msgid: int
    message_type: int
    protocol_op: BerElement
    dn: str | None = None
    result_code: int | None = None
    diagnostic_message: str | None = None
    references: tuple[str, ...] | None = None
    attrs: tuple[BerElement, ...] = ()
    page: PageControl | None = None

    @classmethod
    def from_element(cls, element: BerElement) -> "LdapMessage":
        """Interpret a decoded LDAPMessage element; raise LdapError if malformed."""
        if not element.is_constructed or len(element.children) < 2:
            raise LdapError("parser failed: malformed message envelope")
        msgid_element, op = element.children[:2]
        try:
            msgid = msgid_element.as_integer()
        except ValueError as exc:
            raise LdapError(f"parser failed: {exc}") from exc
        message = cls(msgid, _op(op.tag), op)

        if op.tag in _RESULT_OPS:
            parts = _parts(op)
            try:
                message.result_code = _code(parts[0].as_enumerated())
            except ValueError as exc:
                raise LdapError(f"parser failed: {exc}") from exc
            message.dn = _text(parts[1]) if len(parts) > 1 else None
            message.diagnostic_message = _text(parts[2]) if len(parts) > 2 else None
            if message.result_code == ResultCode.REFERRAL:
                referral = parts[3] if len(parts) > 3 else None
                if referral is None or not referral.is_constructed or not referral.children:
                    raise LdapError("parser failed: malformed referral")
                message.references = _string_set(referral.children)
            for child in element.children:
                if (
                    child.ber_class == BerClass.CONTEXT
                    and child.tag == _CONTROLS_TAG
                    and child.is_constructed
                    and child.children
                ):
                    message.page = parse_page_control(child.children[0])
        elif op.tag == ProtocolOp.SEARCH_ENTRY:
            parts = _parts(op)
            if len(parts) < 2 or not parts[1].is_constructed or not parts[1].children:
                raise LdapError("parser failed: search entry without attributes")
            message.dn = _text(parts[0])
            message.attrs = parts[1].children
        elif op.tag == ProtocolOp.SEARCH_REFERENCE:
            message.references = _string_set(_parts(op))
        return message

    def attributes(self) -> Iterator[tuple[str, tuple[str, ...]]]:
        """Yield (name, values) for each attribute of a search entry."""
        for attr in self.attrs:
            if attr.is_eoc():
                return
            scanned = _scan_attribute(attr)
            if scanned is None:
                return
            values = _string_set(scanned[1])
            if values is None:
                return
            yield utf8_to_ascii(scanned[0]), values

    def match_attr(self, key: str) -> tuple[str, ...] | None:
        """Return the values of attribute ``key`` (case-insensitive), or None."""
        wanted = key.encode("utf-8").lower()
        for attr in self.attrs:
            if attr.is_eoc():
                return None
            scanned = _scan_attribute(attr)
            if scanned is None:
                return None
            if scanned[0].lower() == wanted:
                return _string_set(scanned[1])
        return None


class LdapClient:
    """Sends requests and reads responses over a connected stream socket."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._reader = sock.makefile("rb")
        self.msgid = 0

    def __enter__(self) -> "LdapClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _send(self, op: BerElement, *extra: BerElement) -> int:
        self.msgid += 1
        root = BerElement.sequence([BerElement.integer(self.msgid), op, *extra])
        try:
            self._sock.sendall(encode(root))
        except (OSError, ValueError) as exc:
            raise LdapError(f"operation failed: {exc}") from exc
        return self.msgid

    def bind(self, dn: str | None, password: str | None) -> int:
        """Send a simple bind request; return its message id."""
        op = BerElement.sequence(
            [
                BerElement.integer(LDAP_VERSION),
                BerElement.string(dn or ""),
                BerElement.string(password or "").with_header(
                    BerClass.CONTEXT, _AUTH_SIMPLE
                ),
            ]
        ).with_header(BerClass.APPLICATION, ProtocolOp.BIND_REQUEST)
        return self._send(op)

    def unbind(self) -> int:
        """Send an unbind request; return its message id."""
        op = BerElement.sequence([]).with_header(
            BerClass.APPLICATION, ProtocolOp.UNBIND_REQUEST
        )
        return self._send(op)

    def search(
        self,
        basedn: str | None,
        scope: Scope,
        filter: str,
        attrs: Iterable[str] | None,
        typesonly: bool,
        sizelimit: int,
        timelimit: int,
        page: PageControl | None,
    ) -> int:
        """Send a search request with a paged results control; return its id."""
        try:
            filter_element = parse_filter(filter or "")
        except FilterSyntaxError as exc:
            raise LdapError(f"parser failed: {exc}") from exc
        op = BerElement.sequence(
            [
                BerElement.string(basedn or ""),
                BerElement.enumerated(int(scope)),
                BerElement.enumerated(_DEREF_NEVER),
                BerElement.integer(sizelimit),
                BerElement.integer(timelimit),
                BerElement.boolean(bool(typesonly)),
                filter_element,
                BerElement.sequence(BerElement.string(a) for a in (attrs or ())),
            ]
        ).with_header(BerClass.APPLICATION, ProtocolOp.SEARCH_REQUEST)
        return self._send(op, build_page_control(page))

    def read_message(self) -> LdapMessage:
        """Read and parse the next response; raise LdapError on failure."""
        try:
            element = read_element(self._reader)
        except (OSError, ValueError) as exc:
            raise LdapError(f"parser failed: {exc}") from exc
        if element is None:
            raise LdapError("connection closed")
        return LdapMessage.from_element(element)

    def close(self) -> None:
        self._reader.close()
        self._sock.close()