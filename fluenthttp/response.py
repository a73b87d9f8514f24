"""Response value object and raw header parsing.

A :class:`Response` is built once from what the transport hands back: the
status line, the raw header block and the body. Every ``with_*`` method
returns a new response and leaves the receiver untouched, so responses can be
shared freely between callers.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Iterator, Mapping
from http import HTTPStatus
from typing import Dict, List, Optional, Sequence, Tuple, Union

HeaderValue = Union[str, Sequence[str]]

# Field-value trimming covers horizontal whitespace only.
_HWS = " \t"
_STATUS_LINE = re.compile(r"^HTTP/(?P<version>\d+(?:\.\d+)?)\s+(?P<code>\d{3})(?:\s+(?P<reason>.*))?$")
_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

DEFAULT_PROTOCOL_VERSION = "1.1"


class Headers(Mapping):
    """Case-insensitive multi-map of header names to ordered value lists.

    Iteration yields each name as first spelled; lookups ignore case and
    return a fresh list so callers cannot reach the internal state.
    """

    def __init__(self, items: Optional[Iterable[Tuple[str, str]]] = None) -> None:
        self._entries: Dict[str, Tuple[str, List[str]]] = {}
        for name, value in items or ():
            self._append(name, value)

    def _append(self, name: str, value: str) -> None:
        key = name.lower()
        if key in self._entries:
            self._entries[key][1].append(value)
        else:
            self._entries[key] = (name, [value])

    def __getitem__(self, name: str) -> List[str]:
        if not isinstance(name, str):
            raise KeyError(name)
        return list(self._entries[name.lower()][1])

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        return (display for display, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return {k: v for k, (_, v) in self._entries.items()} == {
                k: v for k, (_, v) in other._entries.items()
            }
        return super().__eq__(other)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def line(self, name: str) -> str:
        """Return all values for ``name`` joined with ``", "``; empty if absent."""

        entry = self._entries.get(name.lower())
        return ", ".join(entry[1]) if entry else ""

    def items_flat(self) -> Iterator[Tuple[str, str]]:
        """Yield one ``(name, value)`` pair per value, in insertion order."""

        for display, values in self._entries.values():
            for value in values:
                yield display, value

    def copy(self) -> "Headers":
        return Headers(self.items_flat())

    # The helpers below mutate in place and are only used on fresh copies.

    def _replace(self, name: str, values: List[str]) -> None:
        key = name.lower()
        if key in self._entries:
            self._entries[key] = (self._entries[key][0], values)
        else:
            self._entries[key] = (name, values)

    def _remove(self, name: str) -> None:
        del self._entries[name.lower()]


def _split_lines(raw: Union[str, bytes, Iterable[str]]) -> Iterable[str]:
    if isinstance(raw, bytes):
        raw = raw.decode("iso-8859-1")
    if isinstance(raw, str):
        return raw.strip("\r\n").split("\r\n")
    return raw


def parse_headers(raw: Union[str, bytes, Iterable[str]]) -> Headers:
    """Parse a CRLF-delimited header block into a :class:`Headers` map.

    Lines without a colon, including an HTTP status line, are skipped. Names
    and values are trimmed of spaces and tabs; repeated names accumulate their
    values in order of appearance.
    """

    headers = Headers()
    for line in _split_lines(raw):
        if ":" not in line:
            continue
        name, value = line.split(":", 1)
        name = name.strip(_HWS)
        if not name:
            continue
        headers._append(name, value.strip(_HWS))
    return headers


def render_headers(headers: Headers) -> str:
    """Render headers back into a CRLF-terminated raw block."""

    return "".join(f"{name}: {value}\r\n" for name, value in headers.items_flat())


def parse_status_line(status_line: str) -> Tuple[str, int, str]:
    """Split ``"HTTP/1.1 200 OK"`` into ``("1.1", 200, "OK")``."""

    match = _STATUS_LINE.match(status_line.strip())
    if match is None:
        raise ValueError(f"Malformed HTTP status line: {status_line!r}")
    return match.group("version"), int(match.group("code")), (match.group("reason") or "").strip()


def standard_reason(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


def _validate_name(name: object) -> str:
    if not isinstance(name, str) or not _TOKEN.match(name):
        raise ValueError(f"Invalid header name {name!r}")
    return name


def _validate_values(value: object) -> List[str]:
    values = [value] if isinstance(value, str) else value
    if not isinstance(values, (list, tuple)) or not values:
        raise ValueError("Header value must be a string or a non-empty list of strings")
    cleaned: List[str] = []
    for item in values:
        if not isinstance(item, str) or "\r" in item or "\n" in item:
            raise ValueError(f"Invalid header value {item!r}")
        cleaned.append(item.strip(_HWS))
    return cleaned


def _validate_status(code: object, upper: int = 599) -> int:
    if isinstance(code, bool) or not isinstance(code, int) or not 100 <= code <= upper:
        raise ValueError(f"Invalid HTTP status code {code!r}; expected an integer in 100..{upper}")
    return code


def _status_line(version: str, code: int, reason: str) -> str:
    return f"HTTP/{version} {code} {reason}".rstrip()


class Response:
    """Immutable HTTP response.

    ``status_line`` and ``raw_headers`` hold the text the transport received.
    ``headers`` is the parsed view. Copies made by the ``with_*`` methods
    regenerate both texts from the changed fields.

    The constructor accepts any three-digit status a server may send (999
    included); :meth:`with_status` only accepts 100..599.
    """

    __slots__ = (
        "_status_line",
        "_raw_headers",
        "_headers",
        "_body",
        "_status_code",
        "_reason_phrase",
        "_protocol_version",
    )

    def __init__(
        self,
        status_line: str = "",
        raw_headers: str = "",
        body: str = "",
        status_code: int = 200,
        reason_phrase: Optional[str] = None,
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
    ) -> None:
        self._status_line = status_line
        self._raw_headers = raw_headers
        self._headers = parse_headers(raw_headers)
        self._body = body
        self._status_code = _validate_status(status_code, upper=999)
        self._reason_phrase = standard_reason(status_code) if reason_phrase is None else reason_phrase
        self._protocol_version = protocol_version

    @classmethod
    def from_status_line(cls, status_line: str, raw_headers: str = "", body: str = "") -> "Response":
        """Build a response, taking code, reason and version from ``status_line``."""

        version, code, reason = parse_status_line(status_line)
        return cls(
            status_line=status_line,
            raw_headers=raw_headers,
            body=body,
            status_code=code,
            reason_phrase=reason,
            protocol_version=version,
        )

    # -- accessors -----------------------------------------------------------

    @property
    def status_line(self) -> str:
        return self._status_line

    @property
    def raw_headers(self) -> str:
        return self._raw_headers

    @property
    def protocol_version(self) -> str:
        return self._protocol_version

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def reason_phrase(self) -> str:
        return self._reason_phrase

    @property
    def body(self) -> str:
        return self._body

    @property
    def headers(self) -> Headers:
        return self._headers.copy()

    def has_header(self, name: str) -> bool:
        return name in self._headers

    def get_header(self, name: str) -> List[str]:
        """Return every value of ``name``; an empty list when absent."""

        return self._headers.get(name, [])

    def get_header_line(self, name: str) -> str:
        return self._headers.line(name)

    # -- copies ------------------------------------------------------------

    def _clone(self, **changes: object) -> "Response":
        clone = copy.copy(self)
        clone._headers = self._headers.copy()
        for attr, value in changes.items():
            setattr(clone, f"_{attr}", value)
        if {"status_code", "reason_phrase", "protocol_version"} & changes.keys():
            clone._status_line = _status_line(clone._protocol_version, clone._status_code, clone._reason_phrase)
        return clone

    def _with_headers(self, clone: "Response") -> "Response":
        clone._raw_headers = render_headers(clone._headers)
        return clone

    def with_header(self, name: str, value: HeaderValue) -> "Response":
        """Return a copy where ``name`` carries only ``value``."""

        clone = self._clone()
        clone._headers._replace(_validate_name(name), _validate_values(value))
        return self._with_headers(clone)

    def with_added_header(self, name: str, value: HeaderValue) -> "Response":
        """Return a copy with ``value`` appended to any existing values of ``name``."""

        values = _validate_values(value)
        clone = self._clone()
        clone._headers._replace(_validate_name(name), self.get_header(name) + values)
        return self._with_headers(clone)

    def without_header(self, name: str) -> "Response":
        """Return a copy lacking ``name``, or this very instance if it is absent."""

        if not self.has_header(name):
            return self
        clone = self._clone()
        clone._headers._remove(name)
        return self._with_headers(clone)

    def with_body(self, body: str) -> "Response":
        if not isinstance(body, str):
            raise ValueError("Response body must be a string")
        return self._clone(body=body)

    def with_status(self, code: int, reason_phrase: str = "") -> "Response":
        code = _validate_status(code)
        return self._clone(status_code=code, reason_phrase=reason_phrase or standard_reason(code))

    def with_protocol_version(self, version: str) -> "Response":
        if not isinstance(version, str) or not re.match(r"^\d+(?:\.\d+)?$", version):
            raise ValueError(f"Invalid HTTP protocol version {version!r}")
        return self._clone(protocol_version=version)

    def __str__(self) -> str:
        return self._body

    def __repr__(self) -> str:
        return f"<Response [{self._status_code} {self._reason_phrase}] HTTP/{self._protocol_version}>"


__all__ = [
    "DEFAULT_PROTOCOL_VERSION",
    "Headers",
    "Response",
    "parse_headers",
    "parse_status_line",
    "render_headers",
    "standard_reason",
]
