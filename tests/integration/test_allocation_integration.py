"""
Integration tests for the allocation mechanism.

This module runs complete rounds end to end: deployment through the factory,
signups, proposals, voting, alpha tuning, finalization, queuing, redemption
and sweeping.
"""

import logging

logger = logging.getLogger(__name__)
import pytest

from conftest import (
    ALICE,
    BOB,
    CAROL,
    GRACE,
    KEEPER,
    OUTSIDER,
    OWNER,
    RECIPIENT_1,
    RECIPIENT_2,
    RECIPIENT_3,
    START,
    TIMELOCK,
    VOTING_END,
    VOTING_START,
    fund_and_signup,
    make_config,
)
from quadalloc.allocation import (
    EventType,
    ManualClock,
    MechanismFactory,
    ProposalState,
    VoteType,
)
from quadalloc.assets import InMemoryToken
from quadalloc.errors.exceptions import AuthorizationError, StateTransitionError

DEPLOYER = "0x" + "7" * 40
FINALIZE_AT = VOTING_END + 1
REDEMPTION_START = FINALIZE_AT + TIMELOCK
REDEMPTION_END = REDEMPTION_START + GRACE


class TestAllocationIntegration:
    """Test complete allocation rounds."""

    @pytest.fixture
    def clock(self):
        """Shared manual clock."""
        return ManualClock(START)

    @pytest.fixture
    def token(self):
        """Underlying asset."""
        return InMemoryToken("USDC", 18, address="0x" + "f" * 40)

    @pytest.fixture
    def engine(self, clock, token):
        """Mechanism deployed through the factory."""
        factory = MechanismFactory(clock=clock)
        return factory.deploy_quadratic_voting_mechanism(make_config(), token, DEPLOYER)

    def _run_voting(self, engine, clock):
        """Three voters and three projects.

        Project 1: weights 6, 6, 9 -> sqrt sum 21, contributions 153
        Project 2: weight 8        -> sqrt sum 8, contributions 64
        Project 3: weight 5        -> sqrt sum 5, contributions 25
        Q = 441 + 64 + 25 = 530, L = 153 + 64 + 25 = 242
        """
        for voter in (ALICE, BOB, CAROL):
            fund_and_signup(engine, voter, 100)
        engine.propose(KEEPER, RECIPIENT_1, "Docs")
        engine.propose(KEEPER, RECIPIENT_2, "Tooling")
        engine.propose(KEEPER, RECIPIENT_3, "Research")

        clock.set(VOTING_START)
        engine.cast_vote(ALICE, 1, VoteType.FOR, 6)
        engine.cast_vote(ALICE, 2, VoteType.FOR, 8)
        engine.cast_vote(BOB, 1, VoteType.FOR, 6)
        engine.cast_vote(BOB, 3, VoteType.FOR, 5)
        engine.cast_vote(CAROL, 1, VoteType.FOR, 9)

    def test_full_round_with_optimal_alpha(self, engine, clock, token):
        """Test a round whose alpha is tuned to spend exactly the deposits."""
        self._run_voting(engine, clock)
        assert engine.voting_power(ALICE) == 0
        assert engine.voting_power(BOB) == 39
        assert engine.voting_power(CAROL) == 19
        assert engine.state.tally.total_quadratic_sum == 530
        assert engine.state.tally.total_linear_sum == 242

        clock.set(FINALIZE_AT)
        engine.finalize_vote_tally(OWNER)
        assert engine.total_assets == 300

        alpha = engine.calculate_optimal_alpha(0, engine.total_assets)
        assert alpha == (58, 288)
        engine.set_alpha(OWNER, *alpha)
        assert engine.state.tally.total_funding == 299

        shares = [engine.queue_proposal(OUTSIDER, pid) for pid in (1, 2, 3)]
        assert shares == [210, 63, 24]
        assert engine.total_supply == 297
        for pid in (1, 2, 3):
            assert engine.proposal_state(pid) == ProposalState.QUEUED
            assert engine.proposal_eta(pid) == REDEMPTION_START

        with pytest.raises(StateTransitionError):
            engine.redeem(RECIPIENT_1, 210, RECIPIENT_1, RECIPIENT_1)

        clock.set(REDEMPTION_START)
        redeemed = {}
        for recipient, amount in ((RECIPIENT_1, 210), (RECIPIENT_2, 63), (RECIPIENT_3, 24)):
            redeemed[recipient] = engine.redeem(recipient, amount, recipient, recipient)

        assert redeemed[RECIPIENT_1] == 212
        assert sum(redeemed.values()) == 300
        assert token.balance_of(engine.address) == 0
        assert engine.total_supply == 0
        assert engine.total_assets == 0

        assert engine.events.verify_chain() is True
        assert len(engine.events.get_events(EventType.REDEEMED)) == 3

    def test_matching_pool_round_with_sweep(self, engine, clock, token):
        """Test a funded matching pool, a partial redemption and a sweep."""
        token.mint(engine.address, 1000)
        self._run_voting(engine, clock)

        clock.set(FINALIZE_AT)
        engine.finalize_vote_tally(OWNER)
        assert engine.total_assets == 1300
        assert engine.calculate_optimal_alpha(1000, 300) == (1, 1)

        assert engine.queue_proposal(CAROL, 1) == 441
        assert engine.queue_proposal(CAROL, 2) == 64

        with pytest.raises(StateTransitionError):
            engine.set_alpha(OWNER, 1, 2)

        clock.set(REDEMPTION_START)
        engine.transfer(RECIPIENT_2, CAROL, 14)
        received = engine.redeem(RECIPIENT_1, 441, RECIPIENT_1, RECIPIENT_1)
        assert received == 441 * 1300 // 505

        clock.set(REDEMPTION_END + 1)
        assert engine.proposal_state(1) == ProposalState.EXPIRED
        assert engine.proposal_state(3) == ProposalState.SUCCEEDED
        with pytest.raises(StateTransitionError):
            engine.queue_proposal(CAROL, 3)
        with pytest.raises(StateTransitionError):
            engine.redeem(RECIPIENT_2, 50, RECIPIENT_2, RECIPIENT_2)

        leftover = token.balance_of(engine.address)
        assert leftover == 1300 - received
        assert engine.sweep(OWNER, token, OWNER) == leftover
        assert token.balance_of(OWNER) == leftover
        assert engine.total_assets == 0

    def test_allow_listed_round(self, clock, token):
        """Test an allow-listed mechanism from deployment to queue."""
        factory = MechanismFactory(clock=clock)
        engine = factory.deploy_with_allow_list(make_config(), token, DEPLOYER, [ALICE])

        fund_and_signup(engine, ALICE, 100)
        with pytest.raises(AuthorizationError):
            fund_and_signup(engine, BOB, 100)

        engine.propose(KEEPER, RECIPIENT_1)
        clock.set(VOTING_START)
        engine.cast_vote(ALICE, 1, VoteType.FOR, 10)

        clock.set(FINALIZE_AT)
        engine.finalize_vote_tally(OWNER)
        assert engine.queue_proposal(OUTSIDER, 1) == 100

        clock.set(REDEMPTION_START)
        assert engine.redeem(RECIPIENT_1, 100, RECIPIENT_1, RECIPIENT_1) == 100
        assert token.balance_of(RECIPIENT_1) == 100

    def test_paused_round_resumes(self, engine, clock):
        """Test an emergency pause mid-round blocks voting until lifted."""
        self._run_voting(engine, clock)
        engine.pause(OWNER, "investigating")
        with pytest.raises(StateTransitionError):
            engine.cast_vote(BOB, 2, VoteType.FOR, 1)

        clock.set(FINALIZE_AT)
        with pytest.raises(StateTransitionError):
            engine.finalize_vote_tally(OWNER)

        engine.unpause(OWNER)
        engine.finalize_vote_tally(OWNER)
        assert engine.tally_finalized is True
