"""Configuration helpers and .env loading for fluenthttp."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from dotenv import load_dotenv

from .exceptions import ClientError

DEFAULT_ENV_FILES: tuple[Path, ...] = (
    Path(".env"),
    Path("config/.env"),
)

ENV_PREFIX = "FLUENTHTTP_"

DEFAULT_TIMEOUT = 28
DEFAULT_STRICT_MODE = False
DEFAULT_MAX_REDIRECTS = 10

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@lru_cache(maxsize=1)
def load_environment(*, extra_files: Iterable[Path] | None = None) -> dict[str, str]:
    """Load environment variables from .env files once per process."""

    candidates = list(DEFAULT_ENV_FILES)
    if extra_files:
        candidates = [*candidates, *extra_files]

    for path in candidates:
        try:
            if path.exists():
                load_dotenv(path, override=False)
        except OSError:
            continue

    load_dotenv(override=False)
    return dict(os.environ)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ClientError(f"Environment variable '{name}' must be a boolean; received {value!r}")


def _parse_number(name: str, value: str, kind: type) -> Any:
    try:
        return kind(value.strip())
    except ValueError:
        raise ClientError(
            f"Environment variable '{name}' must be {kind.__name__}; received {value!r}"
        ) from None


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Build a :class:`~fluenthttp.client.Client` config from ``FLUENTHTTP_*`` variables.

    Only variables that are set end up in the result, so the client keeps its
    own defaults for the rest.
    """

    env = os.environ if environ is None else environ
    settings: Dict[str, Any] = {}

    raw = env.get(f"{ENV_PREFIX}TIMEOUT")
    if raw is not None:
        settings["timeout"] = _parse_number(f"{ENV_PREFIX}TIMEOUT", raw, float)
    raw = env.get(f"{ENV_PREFIX}STRICT_MODE")
    if raw is not None:
        settings["strict_mode"] = _parse_bool(f"{ENV_PREFIX}STRICT_MODE", raw)
    raw = env.get(f"{ENV_PREFIX}MAX_REDIRECTS")
    if raw is not None:
        settings["max_redirects"] = _parse_number(f"{ENV_PREFIX}MAX_REDIRECTS", raw, int)
    raw = env.get(f"{ENV_PREFIX}HTTP_VERSION")
    if raw:
        settings["http_version"] = raw.strip()
    return settings


__all__ = [
    "DEFAULT_ENV_FILES",
    "DEFAULT_MAX_REDIRECTS",
    "DEFAULT_STRICT_MODE",
    "DEFAULT_TIMEOUT",
    "load_environment",
    "settings_from_env",
]
