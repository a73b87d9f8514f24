"""Symbolic transport options understood by :class:`fluenthttp.client.Client`."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Dict, Union

from .exceptions import ClientError


class Option(str, Enum):
    """Transport options, keyed by their configuration names."""

    HTTPGET = "httpget"
    POST = "post"
    POSTFIELDS = "postfields"
    CUSTOMREQUEST = "customrequest"
    HEADER = "header"
    NOBODY = "nobody"
    HTTPHEADER = "httpheader"
    COOKIE = "cookie"
    HTTPAUTH = "httpauth"
    USERPWD = "userpwd"
    PROXY = "proxy"
    PROXYPORT = "proxyport"
    HTTPPROXYTUNNEL = "httpproxytunnel"
    PROXYUSERPWD = "proxyuserpwd"
    SSL_VERIFYPEER = "ssl_verifypeer"
    SSL_VERIFYHOST = "ssl_verifyhost"
    CAINFO = "cainfo"
    PORT = "port"
    TIMEOUT = "timeout"
    CONNECTTIMEOUT = "connecttimeout"
    FAILONERROR = "failonerror"
    FOLLOWLOCATION = "followlocation"
    MAXREDIRS = "maxredirs"
    HTTP_VERSION = "http_version"
    RETURNTRANSFER = "returntransfer"
    USERAGENT = "useragent"
    REFERER = "referer"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @property
    def sends_body(self) -> bool:
        """Whether a payload travels as the request body rather than the query."""

        return self in _BODY_METHODS


_BODY_METHODS = frozenset(
    {HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH, HttpMethod.DELETE}
)


class HttpVersion(str, Enum):
    HTTP_1_0 = "1.0"
    HTTP_1_1 = "1.1"


class AuthType(str, Enum):
    ANY = "any"
    BASIC = "basic"
    DIGEST = "digest"


class ErrorCode(IntEnum):
    """Transport error codes, numbered like libcurl's so logs stay familiar."""

    OK = 0
    UNSUPPORTED_PROTOCOL = 1
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_PROXY = 5
    COULDNT_CONNECT = 7
    HTTP_RETURNED_ERROR = 22
    OPERATION_TIMEDOUT = 28
    TOO_MANY_REDIRECTS = 47
    SSL_CACERT = 60


OptionKey = Union[Option, str]

_OPTION_TABLE: Dict[str, Option] = {option.value: option for option in Option}


def resolve_option(option: OptionKey) -> Option:
    """Return the :class:`Option` for an enum member or a configuration name."""

    if isinstance(option, Option):
        return option
    if not isinstance(option, str):
        raise ClientError(f"Option names must be strings; received {option!r}")
    try:
        return _OPTION_TABLE[option.strip().lower()]
    except KeyError:
        raise ClientError(f"Unknown transport option '{option}'") from None


def resolve_method(method: Union[HttpMethod, str]) -> HttpMethod:
    if isinstance(method, HttpMethod):
        return method
    try:
        return HttpMethod(str(method).upper())
    except ValueError:
        raise ClientError(f"Method '{method}' not supported by Client class.") from None


def resolve_http_version(version: Union[HttpVersion, str]) -> HttpVersion:
    if isinstance(version, HttpVersion):
        return version
    try:
        return HttpVersion(str(version))
    except ValueError:
        supported = ", ".join(item.value for item in HttpVersion)
        raise ClientError(
            f"HTTP version '{version}' is not supported; expected one of {supported}"
        ) from None


def resolve_auth_type(auth_type: Union[AuthType, str]) -> AuthType:
    if isinstance(auth_type, AuthType):
        return auth_type
    try:
        return AuthType(str(auth_type).lower())
    except ValueError:
        raise ClientError(f"Unsupported auth type '{auth_type}'") from None


__all__ = [
    "AuthType",
    "ErrorCode",
    "HttpMethod",
    "HttpVersion",
    "Option",
    "OptionKey",
    "resolve_auth_type",
    "resolve_http_version",
    "resolve_method",
    "resolve_option",
]
