"""Command-line interface for fluenthttp."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from . import __version__
from .client import Client
from .config import load_environment, settings_from_env
from .exceptions import ClientError
from .logging_utils import configure_logging
from .options import HttpMethod, HttpVersion
from .response import Response


def _pair(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {value!r}")
    key, _, item = value.partition("=")
    return key, item


def _header(value: str) -> str:
    if ":" not in value:
        raise argparse.ArgumentTypeError(f"Expected 'Name: value', got {value!r}")
    return value


def _credentials(value: str) -> Tuple[str, str]:
    if ":" not in value:
        raise argparse.ArgumentTypeError("Credentials must look like user:password")
    username, _, password = value.partition(":")
    return username, password


def _proxy(value: str) -> Tuple[str, int]:
    host, sep, port = value.rpartition(":")
    if not sep or not port.isdigit():
        return value, 80
    return host, int(port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fluenthttp",
        description="Send a single HTTP request and print the response.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "method",
        type=str.upper,
        choices=[method.value for method in HttpMethod],
        help="HTTP method to use",
    )
    parser.add_argument("url", help="Target URL")
    parser.add_argument(
        "-d", "--data", action="append", type=_pair, default=[], metavar="KEY=VALUE",
        help="Payload field; sent as the body for POST/PUT/PATCH/DELETE, else as query",
    )
    parser.add_argument(
        "-H", "--header", action="append", type=_header, default=[], metavar="'NAME: VALUE'",
        help="Extra request header",
    )
    parser.add_argument(
        "--cookie", action="append", type=_pair, default=[], metavar="NAME=VALUE", help="Cookie to send"
    )
    parser.add_argument("--user", type=_credentials, help="Credentials as user:password")
    parser.add_argument("--digest", action="store_true", help="Use digest instead of basic auth")
    parser.add_argument("--proxy", type=_proxy, help="Proxy as host[:port]")
    parser.add_argument("--proxy-user", type=_credentials, help="Proxy credentials as user:password")
    parser.add_argument("--insecure", action="store_true", help="Skip TLS certificate verification")
    parser.add_argument("--cacert", type=Path, help="CA bundle used to verify the peer")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument("--max-redirects", type=int, help="Maximum redirects to follow")
    parser.add_argument("--strict", action="store_true", help="Treat HTTP error statuses as failures")
    parser.add_argument(
        "--http-version", choices=[version.value for version in HttpVersion], help="HTTP protocol version"
    )
    parser.add_argument("-i", "--include", action="store_true", help="Print the status line and headers")
    parser.add_argument("--log-json", action="store_true", help="Emit structured JSON logs to the log file")
    parser.add_argument("--log-file", type=Path, help="Write logs to the specified path")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", action="store_true", help="Enable debug logging")
    verbosity.add_argument("--quiet", action="store_true", help="Reduce logging output")
    return parser


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(list(argv) if argv is not None else None)


def configure_cli_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    configure_logging(level=level, json_logs=args.log_json, logfile=args.log_file)


def client_config(args: argparse.Namespace) -> Dict[str, object]:
    """Merge ``FLUENTHTTP_*`` settings with command-line overrides."""

    config: Dict[str, object] = dict(settings_from_env())
    if args.timeout is not None:
        config["timeout"] = args.timeout
    if args.max_redirects is not None:
        config["max_redirects"] = args.max_redirects
    if args.strict:
        config["strict_mode"] = True
    if args.http_version:
        config["http_version"] = args.http_version
    return config


def prepare_client(client: Client, args: argparse.Namespace) -> Client:
    for line in args.header:
        client.http_headers(line)
    if args.cookie:
        client.set_cookies(dict(args.cookie))
    if args.user:
        client.http_login(*args.user, http_auth=True, auth_type="digest" if args.digest else "basic")
    if args.proxy:
        client.proxy(*args.proxy)
        if args.proxy_user:
            client.proxy_login(*args.proxy_user)
    if args.insecure:
        client.secure(verify_peer=False)
    elif args.cacert:
        client.secure(path_to_cert=str(args.cacert))
    return client


def render_response(console: Console, response: Response, include: bool) -> None:
    if include:
        console.print(escape(f"HTTP/{response.protocol_version} {response.status_code} {response.reason_phrase}"))
        for name, value in response.headers.items_flat():
            console.print(f"[bold]{escape(name)}[/bold]: {escape(value)}")
        console.print()
    if response.body:
        console.print(response.body, markup=False, highlight=False, soft_wrap=True)


def main(argv: Optional[Iterable[str]] = None) -> int:
    load_environment()
    args = parse_args(argv)

    configure_cli_logging(args)
    logger = logging.getLogger("fluenthttp.cli")
    console = Console(highlight=False)

    try:
        client = prepare_client(Client(client_config(args)), args)
        # Repeated keys are all sent, in order.
        data: List[Tuple[str, str]] = list(args.data)
        response = client.send_request(args.method, args.url, data or None)
    except ClientError as exc:
        logger.error("Invalid request: %s", exc)
        return 1

    if response is None:
        logger.error("%s", client.get_error())
        return 1

    render_response(console, response, args.include)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
