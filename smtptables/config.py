"""Reading of ``key value`` configuration files shared by the tables."""

from __future__ import annotations

import os
import re
from typing import Iterable

__all__ = [
    "ConfigError",
    "parse_config_line",
    "read_config",
    "load_config",
    "parse_bounded_int",
]

_C_SPACE = " \t\n\v\f\r"
_KEY_END = re.compile(r"[ \t:]")
_VALUE_LEAD = re.compile(r"(?:[ \t\n\v\f\r]|:(?=[ \t\n\v\f\r]))*")
_NUMBER = re.compile(r"[ \t\n\v\f\r]*[+-]?[0-9]+")


class ConfigError(ValueError):
    """Raised when a configuration file or value is invalid."""


def parse_config_line(line: str) -> tuple[str, str] | None:
    """Split a line into (key, value); return None for blank and comment lines.

    The key ends at the first space, tab or colon; blanks and a colon followed
    by a blank are skipped before the value.
    """
    if line.endswith("\n"):
        line = line[:-1]
    text = line.strip(_C_SPACE)
    if not text or text.startswith("#"):
        return None
    match = _KEY_END.search(text)
    if match is None:
        raise ConfigError(f"missing value for key {text}")
    key, rest = text[: match.start()], text[match.end() :]
    value = rest[_VALUE_LEAD.match(rest).end() :]
    if not value:
        raise ConfigError(f"missing value for key {key}")
    return key, value


def read_config(lines: Iterable[str]) -> dict[str, str]:
    """Read configuration lines into a dict; duplicate keys are an error."""
    conf: dict[str, str] = {}
    for number, line in enumerate(lines, 1):
        try:
            entry = parse_config_line(line)
        except ConfigError as exc:
            raise ConfigError(f"line {number}: {exc}") from exc
        if entry is None:
            continue
        key, value = entry
        if key in conf:
            raise ConfigError(f"line {number}: duplicate key {key}")
        conf[key] = value
    return conf


def load_config(path: str | os.PathLike) -> dict[str, str]:
    """Read a configuration file; raise ConfigError when it cannot be used."""
    try:
        with open(path, "rb") as fh:
            data = fh.read()
    except OSError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    text = data.decode("utf-8", "surrogateescape")
    try:
        return read_config(text.split("\n"))
    except ConfigError as exc:
        raise ConfigError(f"{path}: {exc}") from exc


def parse_bounded_int(value: str, low: int, high: int) -> int:
    """Parse a decimal integer that must lie within [low, high]."""
    if low > high or not _NUMBER.fullmatch(value):
        raise ConfigError(f"bad value {value!r}: invalid")
    number = int(value)
    if number < low:
        raise ConfigError(f"bad value {value!r}: too small")
    if number > high:
        raise ConfigError(f"bad value {value!r}: too large")
    return number