"""Unit tests for the option-to-requests translation layer."""

from __future__ import annotations

import io

import pytest
import requests
from requests.auth import HTTPBasicAuth, HTTPDigestAuth
from requests.structures import CaseInsensitiveDict
from urllib3 import HTTPResponse
from urllib3._collections import HTTPHeaderDict

from fluenthttp.options import AuthType, ErrorCode, HttpVersion, Option
from fluenthttp.transport import build_call, error_code_for, to_response


def _requests_response(version: int = 11) -> requests.Response:
    raw_headers = HTTPHeaderDict()
    raw_headers.add("Content-Type", "text/plain")
    raw_headers.add("Set-Cookie", "a=1")
    raw_headers.add("Set-Cookie", "b=2")
    raw = HTTPResponse(
        body=io.BytesIO(b"hello"),
        headers=raw_headers,
        status=200,
        reason="OK",
        version=version,
        preload_content=False,
    )
    response = requests.Response()
    response.raw = raw
    response.status_code = 200
    response.reason = "OK"
    response.url = "http://example.com/"
    response.headers = CaseInsensitiveDict({"Content-Type": "text/plain", "Set-Cookie": "a=1, b=2"})
    response._content = b"hello"  # type: ignore[attr-defined]
    response.encoding = "utf-8"
    return response


def test_build_call_defaults_to_get():
    call = build_call("http://example.com/", {})

    assert call.method == "GET"
    assert call.verify is True
    assert call.allow_redirects is False
    assert call.timeout is None
    assert call.request_kwargs() == {
        "headers": {},
        "allow_redirects": False,
        "verify": True,
        "timeout": None,
    }


@pytest.mark.parametrize(
    "options,method",
    [
        ({Option.POST: True}, "POST"),
        ({Option.NOBODY: True}, "HEAD"),
        ({Option.CUSTOMREQUEST: "put", Option.POST: True}, "PUT"),
        ({Option.HTTPGET: True}, "GET"),
    ],
)
def test_build_call_picks_method(options, method):
    assert build_call("http://example.com/", options).method == method


@pytest.mark.parametrize("configured,expected", [(None, 30), (0, 0), (5, 5)])
def test_build_call_keeps_configured_redirect_limit(configured, expected):
    options = {} if configured is None else {Option.MAXREDIRS: configured}

    assert build_call("http://example.com/", options).max_redirects == expected


def test_build_call_drops_body_for_plain_get():
    call = build_call("http://example.com/", {Option.HTTPGET: True, Option.POSTFIELDS: {"a": "1"}})

    assert call.data is None


def test_build_call_maps_headers_cookies_and_agent():
    call = build_call(
        "http://example.com/",
        {
            Option.HTTPHEADER: ["Accept: text/html", "Accept: */*", "no colon here", "X-Id:  7 "],
            Option.COOKIE: "a=1; b=2",
            Option.USERAGENT: "fluent/1",
            Option.REFERER: "http://ref/",
            Option.HTTP_VERSION: HttpVersion.HTTP_1_0,
        },
    )

    assert call.headers == {
        "Accept": "text/html, */*",
        "X-Id": "7",
        "Cookie": "a=1; b=2",
        "User-Agent": "fluent/1",
        "Referer": "http://ref/",
        "Connection": "close",
    }


def test_build_call_maps_auth_types():
    basic = build_call("http://example.com/", {Option.USERPWD: "user:pa:ss"}).auth
    digest = build_call(
        "http://example.com/", {Option.USERPWD: "user:secret", Option.HTTPAUTH: AuthType.DIGEST}
    ).auth

    assert isinstance(basic, HTTPBasicAuth)
    assert (basic.username, basic.password) == ("user", "pa:ss")
    assert isinstance(digest, HTTPDigestAuth)


def test_build_call_maps_proxy_settings():
    call = build_call(
        "http://example.com/",
        {Option.PROXY: "proxy.local", Option.PROXYPORT: 3128, Option.PROXYUSERPWD: "bob:pw"},
    )

    assert call.proxies == {"http": "http://bob:pw@proxy.local:3128", "https": "http://bob:pw@proxy.local:3128"}


def test_build_call_maps_tls_and_timeouts():
    insecure = build_call("https://example.com/", {Option.SSL_VERIFYPEER: False, Option.CAINFO: "/ca.pem"})
    pinned = build_call(
        "https://example.com/",
        {Option.SSL_VERIFYPEER: True, Option.CAINFO: "/ca.pem", Option.TIMEOUT: 5, Option.CONNECTTIMEOUT: 2},
    )

    assert insecure.verify is False
    assert pinned.verify == "/ca.pem"
    assert pinned.timeout == (2.0, 5.0)


def test_build_call_applies_port_and_redirect_policy():
    call = build_call(
        "http://example.com/path?q=1",
        {Option.PORT: 8080, Option.FOLLOWLOCATION: True, Option.MAXREDIRS: 3, Option.FAILONERROR: True},
    )

    assert call.url == "http://example.com:8080/path?q=1"
    assert call.allow_redirects is True
    assert call.max_redirects == 3
    assert call.fail_on_error is True


@pytest.mark.parametrize(
    "error,code",
    [
        (requests.exceptions.ConnectTimeout("slow"), ErrorCode.OPERATION_TIMEDOUT),
        (requests.exceptions.ReadTimeout("slow"), ErrorCode.OPERATION_TIMEDOUT),
        (requests.exceptions.ProxyError("proxy"), ErrorCode.COULDNT_RESOLVE_PROXY),
        (requests.exceptions.SSLError("tls"), ErrorCode.SSL_CACERT),
        (requests.exceptions.TooManyRedirects("loop"), ErrorCode.TOO_MANY_REDIRECTS),
        (requests.exceptions.InvalidSchema("ftp"), ErrorCode.UNSUPPORTED_PROTOCOL),
        (requests.exceptions.InvalidURL("bad"), ErrorCode.URL_MALFORMAT),
        (requests.exceptions.ConnectionError("refused"), ErrorCode.COULDNT_CONNECT),
        (requests.exceptions.RequestException("other"), ErrorCode.OK),
    ],
)
def test_error_code_for_maps_engine_exceptions(error, code):
    assert error_code_for(error) == code


def test_to_response_rebuilds_raw_status_and_headers():
    response = to_response(_requests_response())

    assert response.status_line == "HTTP/1.1 200 OK"
    assert response.raw_headers == "Content-Type: text/plain\r\nSet-Cookie: a=1\r\nSet-Cookie: b=2\r\n"
    assert response.get_header("set-cookie") == ["a=1", "b=2"]
    assert response.body == "hello"


def test_to_response_reads_protocol_version_and_can_drop_body():
    response = to_response(_requests_response(version=10), include_body=False)

    assert response.protocol_version == "1.0"
    assert response.body == ""


def test_to_response_defaults_unknown_protocol_version():
    assert to_response(_requests_response(version=0)).protocol_version == "1.1"
