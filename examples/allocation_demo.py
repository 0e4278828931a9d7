"""
Quadratic-funding allocation round demonstration.

This script walks one round through every phase: deployment, signups,
proposals, quadratic voting, alpha tuning, finalization, queuing,
redemption and the final sweep of leftovers.
"""

import logging

logger = logging.getLogger(__name__)
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from quadalloc.allocation import (
    AllocationConfig,
    ManualClock,
    MechanismFactory,
    VoteType,
)
from quadalloc.assets import InMemoryToken
from quadalloc.errors import AllocationError
from quadalloc.logging import LogConfig, LogLevel, setup_logging

OWNER = "0x" + "a" * 40
KEEPER = "0x" + "b" * 40
VOTERS = {name: "0x" + digit * 40 for name, digit in (("alice", "1"), ("bob", "2"), ("carol", "3"))}
PROJECTS = {name: "0x" + "d" * 39 + digit for name, digit in (("docs", "1"), ("tooling", "2"), ("research", "3"))}


def print_section(title: str):
    """Print a section header."""
    logger.info(f"\n{'='*60}")
    logger.info(f"🎯 {title}")
    logger.info('='*60)


def demo_deployment(clock: ManualClock, token: InMemoryToken):
    """Deploy a mechanism and fund its matching pool."""
    print_section("Deployment")

    config = AllocationConfig(
        owner=OWNER,
        keeper=KEEPER,
        voting_delay=60,
        voting_period=3600,
        timelock_delay=600,
        grace_period=7200,
        start_time=clock.now(),
        quorum_shares=10,
    )
    engine = MechanismFactory(clock=clock).deploy_quadratic_voting_mechanism(
        config, token, deployer=OWNER
    )
    token.mint(engine.address, 5_000)

    logger.info(f"✅ Mechanism deployed at {engine.address}")
    logger.info(f"   - Voting: {engine.state.voting_start}..{engine.state.voting_end}")
    logger.info(f"   - Matching pool: {token.balance_of(engine.address)} {token.symbol}")
    return engine


def demo_signup_and_proposals(engine):
    """Sign up voters and register one proposal per project."""
    print_section("Signup and Proposals")

    for name, deposit in (("alice", 400), ("bob", 900), ("carol", 100)):
        address = VOTERS[name]
        engine.asset.mint(address, deposit)
        engine.asset.approve(address, engine.address, deposit)
        power = engine.signup(address, deposit)
        logger.info(f"   {name}: deposited {deposit}, voting power {power}")

    for name, recipient in PROJECTS.items():
        proposal_id = engine.propose(KEEPER, recipient, f"Fund {name}")
        logger.info(f"   proposal {proposal_id}: {name} -> {recipient}")


def demo_voting(engine, clock: ManualClock):
    """Cast quadratic votes: weight w costs w^2 voting power."""
    print_section("Quadratic Voting")

    clock.set(engine.state.voting_start)
    ballots = [
        ("alice", 1, 12),
        ("alice", 2, 16),
        ("bob", 1, 20),
        ("bob", 3, 20),
        ("carol", 1, 10),
    ]
    for name, proposal_id, weight in ballots:
        remaining = engine.cast_vote(VOTERS[name], proposal_id, VoteType.FOR, weight)
        logger.info(
            f"   {name} -> proposal {proposal_id}: weight {weight}, cost {weight * weight}, "
            f"remaining {remaining}"
        )

    for proposal_id in range(1, engine.proposal_count + 1):
        tally = engine.get_tally(proposal_id)
        logger.info(
            f"   proposal {proposal_id}: sqrt sum {tally.sum_square_roots}, "
            f"contributions {tally.sum_contributions}, funding {tally.total_funding}"
        )


def demo_finalize_and_queue(engine, clock: ManualClock):
    """Finalize the tally, tune alpha to the pool and queue every winner."""
    print_section("Finalization and Queuing")

    clock.set(engine.state.voting_end + 1)
    engine.finalize_vote_tally(OWNER)
    logger.info(f"   total assets: {engine.total_assets}")

    deposits = engine.total_assets - 5_000
    numerator, denominator = engine.calculate_optimal_alpha(5_000, deposits)
    engine.set_alpha(OWNER, numerator, denominator)
    logger.info(f"   optimal alpha: {numerator}/{denominator}")

    for proposal_id in range(1, engine.proposal_count + 1):
        state = engine.proposal_state(proposal_id)
        logger.info(f"   proposal {proposal_id} is {state.value}")
        shares = engine.queue_proposal(OWNER, proposal_id)
        logger.info(f"   queued proposal {proposal_id}: {shares} shares")


def demo_redemption(engine, clock: ManualClock):
    """Redeem shares once the timelock has passed, then sweep leftovers."""
    print_section("Redemption and Sweep")

    clock.set(engine.global_redemption_start)
    for name, recipient in PROJECTS.items():
        shares = engine.balance_of(recipient)
        assets = engine.redeem(recipient, shares, recipient, recipient)
        logger.info(f"   {name}: redeemed {shares} shares for {assets}")

    clock.set(engine.global_redemption_start + engine.config.grace_period + 1)
    leftover = engine.asset.balance_of(engine.address)
    if leftover:
        engine.sweep(OWNER, engine.asset, OWNER)
    logger.info(f"   swept {leftover} to the owner")
    logger.info(f"   event trail intact: {engine.events.verify_chain()}")


def main():
    """Main demonstration function."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    setup_logging(LogConfig(level=LogLevel.WARNING, format_type="text"))

    logger.info("🚀 Quadratic Funding Allocation Demonstration")

    clock = ManualClock(1_700_000_000)
    token = InMemoryToken("USDC", 18)

    try:
        engine = demo_deployment(clock, token)
        demo_signup_and_proposals(engine)
        demo_voting(engine, clock)
        demo_finalize_and_queue(engine, clock)
        demo_redemption(engine, clock)
    except AllocationError as e:
        logger.error(f"\n❌ Demonstration failed: {e}")
        return 1

    logger.info("\n🎉 Round complete")
    return 0


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
