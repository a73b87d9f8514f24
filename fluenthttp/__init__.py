"""fluenthttp: a chainable wrapper around the requests HTTP engine."""

from __future__ import annotations

from .client import Client
from .exceptions import ClientError
from .options import AuthType, ErrorCode, HttpMethod, HttpVersion, Option
from .response import Headers, Response, parse_headers

__all__ = [
    "AuthType",
    "Client",
    "ClientError",
    "ErrorCode",
    "Headers",
    "HttpMethod",
    "HttpVersion",
    "Option",
    "Response",
    "__version__",
    "parse_headers",
]

# Semantic version for package consumers.
__version__ = "0.1.0"
