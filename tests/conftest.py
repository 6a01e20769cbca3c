"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/

Transport doubles live in tests/fixtures/transports.py; the fixtures below
hand out fresh instances and close any CollectorConnection a test started,
so no "collector-connect" thread outlives its test.
"""

import os
from collections.abc import Iterator

import pytest
from hypothesis import Phase, Verbosity, settings

from probe_listener.collector.connection import CollectorConnection
from tests.fixtures.transports import FlakyTransport, RecordingTransport

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


@pytest.fixture(autouse=True)
def _auto_close_connections() -> Iterator[None]:
    """Close every CollectorConnection created during the test."""
    created: list[CollectorConnection] = []
    original_init = CollectorConnection.__init__

    def tracking_init(self: CollectorConnection, *args, **kwargs) -> None:
        original_init(self, *args, **kwargs)
        created.append(self)

    CollectorConnection.__init__ = tracking_init  # type: ignore[method-assign]
    try:
        yield
    finally:
        CollectorConnection.__init__ = original_init  # type: ignore[method-assign]
        for connection in created:
            connection.close()


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def failing_transport() -> FlakyTransport:
    """Transport whose connect() never succeeds."""
    return FlakyTransport(failures=None)


@pytest.fixture
def sample_probes() -> dict[str, dict]:
    """One probe of each kind, as raw declarations."""
    return {
        "counter1": {"kind": "counter", "increasers": ["a"], "decreasers": ["b"]},
        "monitor1": {"kind": "monitor", "hooks": ["a", "c"]},
        "watcher1": {"kind": "watcher", "index": "shop", "collection": "orders", "collects": ["total"]},
        "sampler1": {"kind": "sampler", "index": "shop", "collection": "orders", "sampleSize": 10},
    }
