"""Shared fixtures for unit tests that never touch the network.

The module silences log output, provides duck-typed stand-ins for
``requests`` sessions and responses, and a small IPMA-shaped station
catalog and observation snapshot.

Classes:
    _NullHandler: No-op logging handler for silencing loggers during tests.
    DummyResponse: Minimal HTTP response with status, text, json() and elapsed.
    DummyHttpSession: Session stub that replays queued responses and records calls.
    DummyResult: A lightweight representation of a database result.
    DummySession: Database session stub for snapshot write unit tests.

Fixtures:
    make_http_session: Factory building a DummyHttpSession from responses.
    make_response: Factory building a DummyResponse.
    station_features: Raw ``stations.json`` feature list.
    observation_snapshot: Raw ``observations.json`` body.
    dummy_session: Dummy database session.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, List, Optional

import pytest


# ---------------------------------------------------------------------------
#
# ---------------------------------------------------------------------------

class _NullHandler(logging.Handler):
    """Configure logging so tests don't try writing to pytest's closed streams."""

    def emit(self, record):  # pragma: no cover
        """Ignore log records to keep test output clean."""
        pass


_null_handler = _NullHandler()
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)
root_logger.handlers = [_null_handler]

logging.getLogger("urllib3").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# HTTP stand-ins
# ---------------------------------------------------------------------------


class DummyResponse:
    """Response stub; ``payload`` is serialised to ``text`` unless text is given."""

    def __init__(
        self,
        payload: Any = None,
        status_code: int = 200,
        text: Optional[str] = None,
        elapsed: Optional[timedelta] = None,
    ) -> None:
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.elapsed = elapsed if elapsed is not None else timedelta(milliseconds=250)

    def json(self):
        return json.loads(self.text)


class DummyHttpSession:
    """Session stub that replays queued responses (or raises ``error``)."""

    def __init__(self, responses: Optional[List[DummyResponse]] = None, error: Exception = None):
        self.headers = {}
        self.mounted = {}
        self.responses = list(responses or [])
        self.error = error
        self.calls: List[tuple] = []

    def mount(self, prefix, adapter):
        self.mounted[prefix] = adapter

    def request(self, method, url, **kwargs):
        return self.get(url, **kwargs)

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


@pytest.fixture
def make_response():
    """Build DummyResponse objects."""
    return DummyResponse


@pytest.fixture
def make_http_session():
    """Build DummyHttpSession objects from a list of responses or an error."""
    def factory(*responses: DummyResponse, error: Exception = None) -> DummyHttpSession:
        return DummyHttpSession(list(responses), error=error)

    return factory


# ---------------------------------------------------------------------------
# IPMA-shaped sample payloads
# ---------------------------------------------------------------------------


def _feature(station_id, name, lon, lat):
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": {"idEstacao": station_id, "localEstacao": name},
    }


@pytest.fixture
def station_features():
    """Seven catalog stations: three in the Algarve box plus one per named region."""
    return [
        _feature(1210881, "Faro (Aeroporto)", -7.97, 37.02),
        _feature(1210883.0, "Tavira", -7.65, 37.12),
        _feature(1210863, "Sagres", -8.95, 37.01),
        _feature(1200545, "Porto, Pedras Rubras", -8.68, 41.23),
        _feature(1200548, "Coimbra, Cernache", -8.47, 40.16),
        _feature(1200558, "Évora (C. Coord)", -7.89, 38.54),
        _feature(1200575, "Lisboa (Geofísico)", -9.15, 38.72),
    ]


@pytest.fixture
def observation_snapshot():
    """Two hourly periods; Sagres is offline in the first and has a dead sensor in the second."""
    return {
        "2025-08-10T13:00": {
            "1210881": {
                "temperatura": 29.0, "humidade": 55.0, "pressao": 1012.0,
                "intensidadeVentoKM": 12.0, "radiacao": 800.0, "precAcumulada": 0.0,
            },
            "1210883": {
                "temperatura": 31.0, "humidade": 50.0, "pressao": 1011.0,
                "intensidadeVentoKM": 8.0, "radiacao": 820.0, "precAcumulada": 0.0,
            },
            "1210863": None,
            "1200545": {
                "temperatura": 22.0, "humidade": 75.0, "pressao": 1015.0,
                "intensidadeVentoKM": 18.0, "radiacao": 600.0, "precAcumulada": 0.2,
            },
        },
        "2025-08-10T14:00": {
            "1210881": {
                "temperatura": 32.0, "humidade": 45.0, "pressao": 1011.5,
                "intensidadeVentoKM": 14.0, "radiacao": 850.0, "precAcumulada": 0.0,
            },
            "1210883": {
                "temperatura": 36.0, "humidade": 40.0, "pressao": 1010.0,
                "intensidadeVentoKM": 9.0, "radiacao": -99.0, "precAcumulada": 0.0,
            },
            "1210863": {
                "temperatura": -99.0, "humidade": 70.0, "pressao": 1013.0,
                "intensidadeVentoKM": 22.0, "radiacao": -99.0, "precAcumulada": 0.4,
            },
        },
    }


# ---------------------------------------------------------------------------
# Helper session used by DB unit tests
# ---------------------------------------------------------------------------


@dataclass
class DummyResult:
    """Lightweight result wrapper that returns a configured scalar value."""

    value: Any

    def scalar_one_or_none(self):
        return self.value


@dataclass
class DummySession:
    """In-memory stub for a database session used in unit tests."""

    results: List[Any] = field(default_factory=list)
    added: List[Any] = field(default_factory=list)
    flushed: int = 0

    def execute(self, _stmt):
        value: Any = self.results.pop(0) if self.results else None
        return DummyResult(value)

    def add(self, obj: Any):
        self.added.append(obj)

    def flush(self):
        self.flushed += 1


@pytest.fixture
def dummy_session():
    """Provide a dummy database session fixture for unit tests."""
    return DummySession()
