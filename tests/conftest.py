"""Test configuration and fixtures."""

import sys
import time
from pathlib import Path

import numpy as np
import pytest

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from emolody_recs.config import EngineConfig, load_tables
from emolody_recs.features import Track
from emolody_recs.recommender import RecommendationEngine
from emolody_recs.session import AuthSession, ConnectedService

FIXED_NOW = 1_700_000_000.75


class FakeCatalog:
    """
    Deterministic catalog.

    `responses` maps a query to a list of tracks or an exception instance;
    unmapped queries get `default(term)`. `delays` maps a query to seconds
    slept before answering.
    """

    def __init__(self, responses=None, default=None, delays=None):
        self.responses = responses or {}
        self.default = default or (lambda term: [])
        self.delays = delays or {}
        self.calls = []

    def search(self, term, limit):
        self.calls.append((term, limit))
        if term in self.delays:
            time.sleep(self.delays[term])
        answer = self.responses.get(term)
        if answer is None:
            answer = self.default(term)
        if isinstance(answer, Exception):
            raise answer
        return list(answer)


class FakeLibrary:
    def __init__(self, history=None, error=None):
        self.history = history or []
        self.error = error
        self.limits = []

    def fetch_recent_items(self, limit):
        self.limits.append(limit)
        if self.error is not None:
            raise self.error
        return list(self.history)


class RecordingSink:
    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.created = []
        self.opened = []

    def create_playlist(self, tracks, name):
        if self.error is not None:
            raise self.error
        self.created.append((list(tracks), name))
        return self.result

    def open_playlist(self, name):
        self.opened.append(name)


def unique_tracks(term, count=5):
    return [Track(f"{term} song {i}", f"{term} artist", "3:00") for i in range(count)]


@pytest.fixture()
def tables():
    return load_tables()


@pytest.fixture()
def signed_in():
    return AuthSession(
        is_authenticated=True,
        connected_service=ConnectedService.SPOTIFY,
        user_name="Listener",
    )


@pytest.fixture()
def signed_out():
    return AuthSession()


@pytest.fixture()
def make_engine(signed_in):
    """Factory building an engine with a fixed clock and seeded shuffle."""
    def _make(catalog=None, auth=signed_in, seed=7, **config):
        return RecommendationEngine(
            catalog=catalog,
            auth=auth,
            config=EngineConfig(**config),
            rng=np.random.default_rng(seed),
            clock=lambda: FIXED_NOW,
        )
    return _make
