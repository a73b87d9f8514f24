"""Translate fluenthttp options into a single ``requests`` call.

Everything network related (connections, TLS, redirects, timeouts) is done
by ``requests``; this module only maps the option table onto its keyword
arguments and maps its results and exceptions back.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit, urlunsplit

try:
    import requests
    from requests import exceptions as requests_exceptions
    from requests.auth import AuthBase, HTTPBasicAuth, HTTPDigestAuth
except ImportError:  # pragma: no cover - checked by Client at construction
    requests = None  # type: ignore[assignment]

from .options import AuthType, ErrorCode, HttpVersion, Option
from .response import DEFAULT_PROTOCOL_VERSION, Response, render_headers, parse_headers

LOGGER = logging.getLogger(__name__)

# urllib3 reports the protocol as an integer (10, 11, 20).
_PROTOCOL_VERSIONS: Dict[int, str] = {9: "0.9", 10: "1.0", 11: "1.1", 20: "2", 30: "3"}


def is_available() -> bool:
    """Return ``True`` when the ``requests`` engine can be used."""

    return requests is not None and hasattr(requests, "Session")


class TransportFailure(Exception):
    """Internal signal carrying an error code and message out of :func:`perform`."""

    def __init__(self, code: int, message: str, info: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.info = info or {}


@dataclass
class TransportCall:
    """Everything needed to issue one request through ``requests``."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None
    auth: Optional["AuthBase"] = None
    proxies: Dict[str, str] = field(default_factory=dict)
    verify: Union[bool, str] = True
    timeout: Union[float, Tuple[float, float], None] = None
    allow_redirects: bool = False
    max_redirects: int = 30
    fail_on_error: bool = False
    no_body: bool = False

    def request_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "headers": self.headers,
            "allow_redirects": self.allow_redirects,
            "verify": self.verify,
            "timeout": self.timeout,
        }
        if self.data is not None:
            kwargs["data"] = self.data
        if self.auth is not None:
            kwargs["auth"] = self.auth
        if self.proxies:
            kwargs["proxies"] = self.proxies
        return kwargs


@dataclass
class TransportResult:
    response: Response
    info: Dict[str, Any]


def _header_lines(lines: Any) -> List[Tuple[str, str]]:
    if isinstance(lines, Mapping):
        return [(str(name), str(value)) for name, value in lines.items()]
    if isinstance(lines, str):
        lines = [lines]
    pairs: List[Tuple[str, str]] = []
    for line in lines or ():
        if ":" not in line:
            LOGGER.debug("Skipping request header line without a colon: %r", line)
            continue
        name, value = line.split(":", 1)
        pairs.append((name.strip(), value.strip()))
    return pairs


def _credentials(value: str) -> Tuple[str, str]:
    username, _, password = str(value).partition(":")
    return username, password


def _auth(options: Mapping[Option, Any]) -> Optional["AuthBase"]:
    userpwd = options.get(Option.USERPWD)
    if not userpwd:
        return None
    username, password = _credentials(userpwd)
    if options.get(Option.HTTPAUTH) == AuthType.DIGEST:
        return HTTPDigestAuth(username, password)
    return HTTPBasicAuth(username, password)


def _proxies(options: Mapping[Option, Any]) -> Dict[str, str]:
    host = options.get(Option.PROXY)
    if not host:
        return {}
    host = str(host)
    if "://" not in host:
        host = f"http://{host}"
    parts = urlsplit(host)
    netloc = parts.netloc
    port = options.get(Option.PROXYPORT)
    if port and parts.port is None:
        netloc = f"{netloc}:{int(port)}"
    userpwd = options.get(Option.PROXYUSERPWD)
    if userpwd and "@" not in netloc:
        netloc = f"{userpwd}@{netloc}"
    proxy_url = urlunsplit((parts.scheme, netloc, parts.path, "", ""))
    return {"http": proxy_url, "https": proxy_url}


def _with_port(url: str, port: Any) -> str:
    if not port:
        return url
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{int(port)}"
    if parts.username is not None:
        userinfo = parts.username if parts.password is None else f"{parts.username}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def _method(options: Mapping[Option, Any]) -> str:
    custom = options.get(Option.CUSTOMREQUEST)
    if custom:
        return str(custom).upper()
    if options.get(Option.NOBODY):
        return "HEAD"
    if options.get(Option.POST):
        return "POST"
    return "GET"


def _timeout(options: Mapping[Option, Any]) -> Union[float, Tuple[float, float], None]:
    total = options.get(Option.TIMEOUT)
    connect = options.get(Option.CONNECTTIMEOUT)
    if connect and total:
        return float(connect), float(total)
    if connect:
        return float(connect), None  # type: ignore[return-value]
    if total:
        return float(total)
    return None


def build_call(url: str, options: Mapping[Option, Any]) -> TransportCall:
    """Map an option table onto a :class:`TransportCall`."""

    headers: Dict[str, str] = {}
    for name, value in _header_lines(options.get(Option.HTTPHEADER)):
        if name in headers:
            headers[name] = f"{headers[name]}, {value}"
        else:
            headers[name] = value
    if options.get(Option.COOKIE):
        headers.setdefault("Cookie", str(options[Option.COOKIE]))
    if options.get(Option.USERAGENT):
        headers.setdefault("User-Agent", str(options[Option.USERAGENT]))
    if options.get(Option.REFERER):
        headers.setdefault("Referer", str(options[Option.REFERER]))
    if options.get(Option.HTTP_VERSION) == HttpVersion.HTTP_1_0:
        # The engine always speaks HTTP/1.1; 1.0 callers get non-persistent connections.
        headers.setdefault("Connection", "close")

    if options.get(Option.SSL_VERIFYPEER) is False:
        verify: Union[bool, str] = False
    else:
        verify = options.get(Option.CAINFO) or True

    max_redirects = options.get(Option.MAXREDIRS)
    if max_redirects is None:
        max_redirects = 30

    method = _method(options)
    data = options.get(Option.POSTFIELDS)
    if method in {"GET", "HEAD"} and not options.get(Option.CUSTOMREQUEST):
        data = None

    return TransportCall(
        method=method,
        url=_with_port(url, options.get(Option.PORT)),
        headers=headers,
        data=data,
        auth=_auth(options),
        proxies=_proxies(options),
        verify=verify,
        timeout=_timeout(options),
        allow_redirects=bool(options.get(Option.FOLLOWLOCATION)),
        max_redirects=int(max_redirects),
        fail_on_error=bool(options.get(Option.FAILONERROR)),
        no_body=bool(options.get(Option.NOBODY)),
    )


def error_code_for(error: Exception) -> int:
    """Map a ``requests`` exception onto an :class:`ErrorCode`."""

    if isinstance(error, requests_exceptions.ProxyError):
        return ErrorCode.COULDNT_RESOLVE_PROXY
    if isinstance(error, requests_exceptions.SSLError):
        return ErrorCode.SSL_CACERT
    if isinstance(error, requests_exceptions.Timeout):
        return ErrorCode.OPERATION_TIMEDOUT
    if isinstance(error, requests_exceptions.TooManyRedirects):
        return ErrorCode.TOO_MANY_REDIRECTS
    if isinstance(error, (requests_exceptions.InvalidSchema,)):
        return ErrorCode.UNSUPPORTED_PROTOCOL
    if isinstance(error, (requests_exceptions.MissingSchema, requests_exceptions.InvalidURL)):
        return ErrorCode.URL_MALFORMAT
    if isinstance(error, requests_exceptions.ConnectionError):
        return ErrorCode.COULDNT_CONNECT
    return ErrorCode.OK


def _raw_header_pairs(response: "requests.Response") -> List[Tuple[str, str]]:
    raw_headers = getattr(getattr(response, "raw", None), "headers", None)
    if raw_headers is not None:
        if hasattr(raw_headers, "iteritems"):
            return [(str(k), str(v)) for k, v in raw_headers.iteritems()]
        if hasattr(raw_headers, "items"):
            return [(str(k), str(v)) for k, v in raw_headers.items()]
    return [(str(k), str(v)) for k, v in response.headers.items()]


def protocol_version_of(response: "requests.Response") -> str:
    version = getattr(getattr(response, "raw", None), "version", None)
    if isinstance(version, int) and version in _PROTOCOL_VERSIONS:
        return _PROTOCOL_VERSIONS[version]
    return DEFAULT_PROTOCOL_VERSION


def to_response(response: "requests.Response", *, include_body: bool = True) -> Response:
    """Rebuild the raw status line and header block and wrap them in a :class:`Response`."""

    version = protocol_version_of(response)
    reason = response.reason or ""
    status_line = f"HTTP/{version} {response.status_code} {reason}".rstrip()
    raw_headers = render_headers(parse_headers([f"{k}: {v}" for k, v in _raw_header_pairs(response)]))
    return Response(
        status_line=status_line,
        raw_headers=raw_headers,
        body=response.text if include_body else "",
        status_code=response.status_code,
        reason_phrase=reason,
        protocol_version=version,
    )


def _info(call: TransportCall, response: "requests.Response", elapsed: float, raw_headers: str) -> Dict[str, Any]:
    final = urlsplit(response.url or call.url)
    port = final.port or (443 if final.scheme == "https" else 80)
    return {
        "url": response.url or call.url,
        "http_code": response.status_code,
        "content_type": response.headers.get("Content-Type"),
        "total_time": elapsed,
        "redirect_count": len(response.history),
        "size_download": len(response.content or b""),
        "header_size": len(raw_headers.encode("iso-8859-1", errors="replace")),
        "primary_port": port,
        "request_method": call.method,
    }


def perform(call: TransportCall) -> TransportResult:
    """Run ``call`` in a fresh session, raising :class:`TransportFailure` on errors."""

    started = time.perf_counter()
    with requests.Session() as session:
        session.max_redirects = call.max_redirects
        try:
            response = session.request(call.method, call.url, **call.request_kwargs())
        except requests_exceptions.RequestException as error:
            raise TransportFailure(error_code_for(error), str(error)) from error
    elapsed = time.perf_counter() - started

    result = to_response(response, include_body=not call.no_body)
    info = _info(call, response, elapsed, result.raw_headers)
    LOGGER.debug(
        "%s %s -> %s in %.3fs", call.method, info["url"], response.status_code, elapsed
    )
    if call.fail_on_error and response.status_code >= 400:
        raise TransportFailure(
            ErrorCode.HTTP_RETURNED_ERROR,
            f"The requested URL returned error: {response.status_code} {response.reason or ''}".rstrip(),
            info,
        )
    return TransportResult(response=result, info=info)


__all__ = [
    "TransportCall",
    "TransportFailure",
    "TransportResult",
    "build_call",
    "error_code_for",
    "is_available",
    "perform",
    "protocol_version_of",
    "to_response",
]
