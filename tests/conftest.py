import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    for name in (
        "FLUENTHTTP_TIMEOUT",
        "FLUENTHTTP_STRICT_MODE",
        "FLUENTHTTP_MAX_REDIRECTS",
        "FLUENTHTTP_HTTP_VERSION",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def client():
    from fluenthttp import Client

    return Client()
