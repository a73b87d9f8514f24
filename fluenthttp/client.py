"""Chainable HTTP client built on top of ``requests``.

A :class:`Client` collects a URL, headers and transport options through
chained calls, performs exactly one request in :meth:`Client.execute`, and
then resets itself. Transport failures do not raise: ``execute`` returns
``None`` and the details stay readable through :attr:`Client.error_code`,
:attr:`Client.error_message` and :meth:`Client.get_error` until the next call.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import quote, urlencode, urlsplit

from . import transport
from .config import DEFAULT_MAX_REDIRECTS, DEFAULT_STRICT_MODE, DEFAULT_TIMEOUT
from .exceptions import ClientError
from .metrics import record_request
from .options import (
    AuthType,
    HttpMethod,
    HttpVersion,
    Option,
    OptionKey,
    resolve_auth_type,
    resolve_http_version,
    resolve_method,
    resolve_option,
)
from .response import Headers, Response, parse_headers

LOGGER = logging.getLogger(__name__)

DEFAULT_PORT = 80

Payload = Union[Mapping[str, Any], Sequence[Tuple[str, Any]], str, bytes, None]


class Client:
    """Fluent wrapper that turns chained settings into a single HTTP request."""

    def __init__(self, config: Optional[Mapping[str, Any]] = None) -> None:
        if not transport.is_available():
            raise ClientError(
                f"The requests library has to be installed to use the {type(self).__name__} class."
            )

        self.timeout: float = DEFAULT_TIMEOUT
        self.strict_mode: bool = DEFAULT_STRICT_MODE
        self.max_redirects: int = DEFAULT_MAX_REDIRECTS
        self.http_version: Optional[HttpVersion] = None

        self.url = ""
        self.port: int = DEFAULT_PORT
        self.headers: List[str] = []
        self.options: Dict[Option, Any] = {}
        self._error_code: int = 0
        self._error_message = ""
        self._info: Dict[str, Any] = {}

        self._initialize(config or {})

    def _initialize(self, config: Mapping[str, Any]) -> None:
        if not isinstance(config, Mapping):
            raise ClientError(
                f"Invalid configuration passed to {type(self).__name__}; expected a mapping."
            )
        if config.get("timeout") is not None:
            self.timeout = self._number(config["timeout"], "timeout")
        if config.get("strict_mode") is not None:
            self.strict_mode = bool(config["strict_mode"])
        if config.get("max_redirects") is not None:
            self.max_redirects = int(self._number(config["max_redirects"], "max_redirects"))
        if config.get("http_version") is not None:
            self.http_version = resolve_http_version(config["http_version"])

    @staticmethod
    def _number(value: Any, name: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ClientError(f"Configuration value '{name}' must be a number; received {value!r}")
        if value < 0:
            raise ClientError(f"Configuration value '{name}' must not be negative")
        return value

    # -- verb shortcuts ------------------------------------------------------

    def get(self, url: str, data: Payload = None, options: Optional[Mapping[OptionKey, Any]] = None) -> Optional[Response]:
        return self.send_request(HttpMethod.GET, url, data, options)

    def post(self, url: str, data: Payload = None, options: Optional[Mapping[OptionKey, Any]] = None) -> Optional[Response]:
        return self.send_request(HttpMethod.POST, url, data, options)

    def put(self, url: str, data: Payload = None, options: Optional[Mapping[OptionKey, Any]] = None) -> Optional[Response]:
        return self.send_request(HttpMethod.PUT, url, data, options)

    def patch(self, url: str, data: Payload = None, options: Optional[Mapping[OptionKey, Any]] = None) -> Optional[Response]:
        return self.send_request(HttpMethod.PATCH, url, data, options)

    def delete(self, url: str, data: Payload = None, options: Optional[Mapping[OptionKey, Any]] = None) -> Optional[Response]:
        return self.send_request(HttpMethod.DELETE, url, data, options)

    def head(self, url: str, data: Payload = None, options: Optional[Mapping[OptionKey, Any]] = None) -> Optional[Response]:
        return self.send_request(HttpMethod.HEAD, url, data, options)

    def options_request(
        self, url: str, data: Payload = None, options: Optional[Mapping[OptionKey, Any]] = None
    ) -> Optional[Response]:
        """Send an ``OPTIONS`` request (``options`` is taken by the attribute)."""

        return self.send_request(HttpMethod.OPTIONS, url, data, options)

    # -- dispatch ------------------------------------------------------------

    def send_request(
        self,
        method: Union[HttpMethod, str],
        url: str,
        data: Payload = None,
        options: Optional[Mapping[OptionKey, Any]] = None,
    ) -> Optional[Response]:
        """Prepare a request for ``method`` and execute it.

        Body methods (POST, PUT, PATCH, DELETE) send ``data`` as the request
        body; the others append it to the URL query string. Unsupported verbs
        raise :class:`ClientError` before anything is sent.
        """

        verb = resolve_method(method)
        if options is not None and not isinstance(options, Mapping):
            raise ClientError(
                f"Invalid argument passed to 'send_request' method of {type(self).__name__} class."
            )
        self.set_url(url)

        if verb is HttpMethod.GET:
            self.options[Option.HTTPGET] = True
        elif verb is HttpMethod.POST:
            self.options[Option.POST] = True
        elif verb is HttpMethod.HEAD:
            self.http_method(verb)
            self.options[Option.HEADER] = True
            self.options[Option.NOBODY] = True
        elif verb is HttpMethod.OPTIONS:
            self.http_method(verb)
            self.options[Option.HEADER] = True
        else:
            self.http_method(verb)

        # A rejected URL leaves self.url empty; execute() reports it.
        if data and self.url:
            if verb.sends_body:
                self.options[Option.POSTFIELDS] = data
            else:
                self._append_query(data)

        try:
            self.set_options(options or {})
        except ClientError:
            self.clear()
            raise
        return self.execute()

    def _append_query(self, data: Payload) -> None:
        if isinstance(data, bytes):
            query = data.decode("utf-8")
        elif isinstance(data, str):
            query = data
        else:
            query = urlencode(data, doseq=True)
        separator = "&" if urlsplit(self.url).query else "?"
        self.url = f"{self.url}{separator}{query}"

    def get_headers(
        self, url: str, data: Payload = None, options: Optional[Mapping[OptionKey, Any]] = None
    ) -> Headers:
        """Issue a HEAD request and return the parsed response headers."""

        response = self.head(url, data, options)
        if response is None:
            return Headers()
        return response.headers

    # -- configuration -------------------------------------------------------

    def set_option(self, option: OptionKey, value: Any) -> "Client":
        self.options[resolve_option(option)] = value
        return self

    def set_options(self, options: Mapping[OptionKey, Any]) -> "Client":
        if not isinstance(options, Mapping):
            raise ClientError(
                f"Invalid argument passed to 'set_options' method of {type(self).__name__} class."
            )
        for option, value in options.items():
            self.set_option(option, value)
        return self

    def set_cookies(self, data: Union[Mapping[str, Any], str]) -> "Client":
        if isinstance(data, Mapping):
            data = "; ".join(f"{quote(str(k))}={quote(str(v))}" for k, v in data.items())
        elif not isinstance(data, str):
            raise ClientError("Cookies must be given as a mapping or a string")
        self.options[Option.COOKIE] = data
        return self

    def http_method(self, method: Union[HttpMethod, str]) -> "Client":
        """Force a custom request verb and advertise it via ``X-HTTP-Method-Override``."""

        verb = method.value if isinstance(method, HttpMethod) else str(method).upper()
        self.options[Option.CUSTOMREQUEST] = verb
        self.headers.append(f"X-HTTP-Method-Override: {verb}")
        return self

    def http_headers(self, header: Union[Mapping[str, Any], str], content: Optional[str] = None) -> "Client":
        """Add request headers.

        ``header`` is either a mapping of names to values or a single name. A
        value of ``None`` appends the name as a complete raw header line.
        """

        items = header.items() if isinstance(header, Mapping) else [(header, content)]
        for name, value in items:
            self.headers.append(name if value is None else f"{name}: {value}")
        return self

    def http_login(
        self,
        username: str,
        password: str,
        http_auth: bool = False,
        auth_type: Union[AuthType, str] = AuthType.ANY,
    ) -> "Client":
        if http_auth:
            self.options[Option.HTTPAUTH] = resolve_auth_type(auth_type)
        self.options[Option.USERPWD] = f"{username}:{password}"
        return self

    def proxy(self, host: str, port: int = 80, use_connect: bool = False) -> "Client":
        if use_connect:
            self.options[Option.HTTPPROXYTUNNEL] = True
        self.options[Option.PROXY] = host
        self.options[Option.PROXYPORT] = port
        return self

    def proxy_login(self, username: str, password: str) -> "Client":
        self.options[Option.PROXYUSERPWD] = f"{username}:{password}"
        return self

    def secure(self, verify_peer: bool = True, path_to_cert: str = "", verify_host: Union[int, bool] = 2) -> "Client":
        if verify_peer:
            self.options[Option.SSL_VERIFYPEER] = True
            self.options[Option.SSL_VERIFYHOST] = verify_host
            if path_to_cert:
                self.options[Option.CAINFO] = os.path.realpath(path_to_cert)
        else:
            self.options[Option.SSL_VERIFYPEER] = False
            if isinstance(verify_host, bool):
                self.options[Option.SSL_VERIFYHOST] = verify_host
        return self

    def set_url(self, url: str, port: Optional[int] = None) -> "Client":
        """Normalize ``url`` to ``scheme://host[path][?query]``.

        A port in the URL (or ``port``) moves into :attr:`Option.PORT` and
        ``user:pass@`` credentials move into :meth:`http_login`.
        """

        if not url:
            return self
        try:
            parts = urlsplit(url)
            url_port = parts.port
        except ValueError:
            parts = None
        if parts is None or not parts.scheme or not parts.hostname:
            self._error_message = "Invalid URL format."
            LOGGER.debug("Rejected URL %s", url)
            return self

        host = parts.netloc.rpartition("@")[2]
        if url_port is not None:
            host = host.rsplit(":", 1)[0]
        self.url = f"{parts.scheme}://{host}{parts.path}"
        if parts.query:
            self.url += f"?{parts.query}"

        if port:
            self.set_port(port)
        elif url_port:
            self.set_port(url_port)

        if parts.username and parts.password is not None:
            self.http_login(parts.username, parts.password)
        return self

    def set_port(self, port: int) -> "Client":
        if port and int(port) != DEFAULT_PORT:
            self.options[Option.PORT] = int(port)
        self.port = int(port) if port else DEFAULT_PORT
        return self

    # -- execution -------------------------------------------------------------

    def _apply_defaults(self) -> None:
        self.options.setdefault(Option.RETURNTRANSFER, True)
        self.options.setdefault(Option.TIMEOUT, self.timeout)
        self.options.setdefault(Option.FAILONERROR, self.strict_mode)
        self.options.setdefault(Option.FOLLOWLOCATION, True)
        if self.options[Option.FOLLOWLOCATION]:
            self.options.setdefault(Option.MAXREDIRS, self.max_redirects)
        if self.headers:
            self.options.setdefault(Option.HTTPHEADER, list(self.headers))
        if self.http_version is not None:
            self.options.setdefault(Option.HTTP_VERSION, self.http_version)

    def execute(self, url: str = "") -> Optional[Response]:
        """Perform the configured request and reset the working state.

        Returns the :class:`Response` on success and ``None`` when the
        transport fails; see :meth:`get_error` for the reason.
        """

        self.set_url(url)

        if not self.url:
            message = self._error_message or "URL not provided."
            self.clear()
            self._error_message = message
            return None

        target = f"{self.url}:{self.port}"
        try:
            self._apply_defaults()
            call = transport.build_call(self.url, self.options)
        except (TypeError, ValueError) as exc:
            raise ClientError(f"Invalid option value passed to {type(self).__name__} class: {exc}") from exc
        finally:
            self.clear()

        started = time.perf_counter()
        try:
            result = transport.perform(call)
        except transport.TransportFailure as failure:
            self._error_code = int(failure.code)
            self._error_message = failure.message
            self._info = failure.info or {"url": call.url, "http_code": 0, "request_method": call.method}
            LOGGER.warning("%s %s failed: %s", call.method, target, failure.message)
            record_request(call.method, "error", time.perf_counter() - started)
            return None

        self._info = result.info
        record_request(call.method, "success", time.perf_counter() - started)
        return result.response

    def clear(self) -> None:
        """Reset URL, port, headers, options and the last error."""

        self.url = ""
        self.port = DEFAULT_PORT
        self.headers = []
        self.options = {}
        self._error_code = 0
        self._error_message = ""

    # -- inspection ------------------------------------------------------------

    def get_info(self, key: Optional[str] = None) -> Any:
        """Return transfer details of the last call, or one entry of them.

        Failed calls store what is known about them too: the failing status
        code when a response arrived, otherwise the URL with ``http_code`` 0.
        """

        if key is None:
            return dict(self._info)
        return self._info.get(key)

    @property
    def error_code(self) -> int:
        return self._error_code

    @property
    def error_message(self) -> str:
        return self._error_message

    def get_error(self) -> str:
        if not (self._error_code or self._error_message):
            return ""
        return f"{type(self).__name__} Class Error {self._error_code}: {self._error_message}"

    @staticmethod
    def parse_header(raw_header: str) -> Headers:
        return parse_headers(raw_header)


__all__ = ["Client"]
