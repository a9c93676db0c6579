"""
Pytest fixtures for testing
"""
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from clinic_loyalty.services.ledger.ledger_engine import LedgerEngine
from clinic_loyalty.services.ledger.loyalty_policy import LoyaltyPolicy
from clinic_loyalty.services.ledger.seed import demo_snapshot


class FixedClock:
    """Clock that advances one minute per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


@pytest.fixture
def policy():
    return LoyaltyPolicy()


@pytest.fixture
def make_engine(clock, id_factory, policy):
    """Build an engine over the given snapshot (empty by default)."""
    def _make(snapshot=None):
        if snapshot is None:
            return LedgerEngine(policy=policy, clock=clock, id_factory=id_factory)
        return LedgerEngine.from_snapshot(
            snapshot, policy=policy, clock=clock, id_factory=id_factory
        )
    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def seeded_engine(make_engine):
    return make_engine(demo_snapshot())
