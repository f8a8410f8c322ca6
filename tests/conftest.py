"""Pytest config: project root on sys.path and per-test counter stores.

Some environments run pytest with a different working directory which
can lead to "No module named 'countdown_api'" import errors, so the
repository root is inserted explicitly.
"""
import os
import sys

import pytest

_HERE = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(_HERE, ".."))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from countdown_api.app.core.config import Settings  # noqa: E402
from countdown_api.app.main import create_app  # noqa: E402
from countdown_api.app.services.counter_service import CounterStore  # noqa: E402


@pytest.fixture
def counters_file(tmp_path):
    return tmp_path / "data" / "counters.json"


@pytest.fixture
def settings(counters_file):
    return Settings(counters_file=str(counters_file), start_empty_on_corrupt=False)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def store(counters_file):
    s = CounterStore(counters_file)
    s.load()
    return s
