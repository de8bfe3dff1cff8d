"""Parsing of ``ldap://host:port/dn?attributes?scope?filter`` URLs."""

from __future__ import annotations

import dataclasses
import enum
import re

__all__ = ["Scope", "LdapUrl", "parse_url"]

LDAP_URL_PREFIX = "ldap://"
LDAP_PORT = 389
MAX_ATTRIBUTES = 1024
_PORT_MAX = 0xFFFF
_NUMBER = re.compile(r"[ \t\n\v\f\r]*[+-]?[0-9]+")


class Scope(enum.IntEnum):
    BASE = 0
    ONELEVEL = 1
    SUBTREE = 2


_SCOPES = {"base": Scope.BASE, "one": Scope.ONELEVEL, "sub": Scope.SUBTREE}


@dataclasses.dataclass(frozen=True)
class LdapUrl:
    """The parts of an LDAP URL; absent parts are None or empty."""

    host: str
    port: int = LDAP_PORT
    dn: str | None = None
    attributes: tuple[str, ...] = ()
    scope: Scope | None = None
    filter: str | None = None
    protocol: str = "ldap"


def _parse_port(text: str) -> int:
    if not _NUMBER.fullmatch(text):
        raise ValueError(f"invalid port {text!r}")
    port = int(text)
    if not 0 <= port <= _PORT_MAX:
        raise ValueError(f"port {text!r} out of range")
    return port


def _split_attributes(text: str) -> tuple[str, ...]:
    parts = text.split(",")
    if len(parts) > MAX_ATTRIBUTES:
        return tuple(parts[:MAX_ATTRIBUTES])
    if parts[-1] == "":
        parts.pop()
    return tuple(parts)


def parse_url(url: str) -> LdapUrl:
    """Parse an LDAP URL; raise ValueError when it is malformed."""
    if url[: len(LDAP_URL_PREFIX)].lower() != LDAP_URL_PREFIX:
        raise ValueError(f"not an ldap URL: {url!r}")
    rest = url[len(LDAP_URL_PREFIX) :]

    hostport, slash, rest = rest.partition("/")
    host, colon, port_text = hostport.partition(":")
    port = _parse_port(port_text) if colon and port_text else LDAP_PORT
    if not host:
        raise ValueError(f"no host in {url!r}")
    if not slash or not rest:
        return LdapUrl(host, port)

    dn, mark, rest = rest.partition("?")
    if not mark or not rest:
        return LdapUrl(host, port, dn)

    attr_text, mark, rest = rest.partition("?")
    attributes = _split_attributes(attr_text)
    if not mark or not rest:
        return LdapUrl(host, port, dn, attributes)

    scope_text, mark, rest = rest.partition("?")
    try:
        scope = _SCOPES[scope_text]
    except KeyError:
        raise ValueError(f"invalid scope {scope_text!r}") from None
    if not mark or not rest:
        return LdapUrl(host, port, dn, attributes, scope)

    return LdapUrl(host, port, dn, attributes, scope, rest)