"""
Shared fixtures for allocation tests.

The default round starts at t=1000 with a 10 second voting delay, a 100
second voting period, a 50 second timelock and a 200 second grace period:

    voting window      1010 .. 1110 (inclusive)
    finalize           > 1110
    redemption window  finalize + 50 .. finalize + 250
"""

import logging

logger = logging.getLogger(__name__)
import pytest

from quadalloc.allocation import (
    AllocationConfig,
    AllocationEngine,
    ManualClock,
    QuadraticVotingStrategy,
)
from quadalloc.assets import InMemoryToken

OWNER = "0x" + "a" * 40
KEEPER = "0x" + "b" * 40
MANAGEMENT = "0x" + "c" * 40
EMERGENCY = "0x" + "9" * 40
MECHANISM = "0x" + "e" * 40

ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40
CAROL = "0x" + "3" * 40
OUTSIDER = "0x" + "4" * 40

RECIPIENT_1 = "0x" + "d" * 39 + "1"
RECIPIENT_2 = "0x" + "d" * 39 + "2"
RECIPIENT_3 = "0x" + "d" * 39 + "3"

START = 1000
VOTING_START = 1010
VOTING_END = 1110
TIMELOCK = 50
GRACE = 200


def make_config(**overrides) -> AllocationConfig:
    """Round configuration used across tests."""
    params = dict(
        owner=OWNER,
        name="Test Allocation",
        symbol="TALLOC",
        voting_delay=10,
        voting_period=100,
        timelock_delay=TIMELOCK,
        grace_period=GRACE,
        start_time=START,
        quorum_shares=1,
        management=MANAGEMENT,
        keeper=KEEPER,
        emergency_admin=EMERGENCY,
    )
    params.update(overrides)
    return AllocationConfig(**params)


def fund_and_signup(engine: AllocationEngine, user: str, amount: int) -> int:
    """Mint ``amount`` to ``user``, approve the engine and sign up."""
    engine.asset.mint(user, amount)
    engine.asset.approve(user, engine.address, amount)
    return engine.signup(user, amount)


@pytest.fixture
def clock():
    """Manual clock at the round's start time."""
    return ManualClock(START)


@pytest.fixture
def token():
    """18-decimal underlying asset."""
    return InMemoryToken("USDC", 18, address="0x" + "f" * 40)


@pytest.fixture
def config():
    """Default round configuration."""
    return make_config()


@pytest.fixture
def engine(config, token, clock):
    """Quadratic voting engine at a fixed address."""
    return AllocationEngine(
        config, token, QuadraticVotingStrategy(), clock=clock, address=MECHANISM
    )
