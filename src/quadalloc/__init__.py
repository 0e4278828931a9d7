"""
quadalloc: quadratic-funding allocation rounds.

Participants deposit an asset for voting power, vote on recipient proposals
under a quadratic-cost rule, and successful proposals receive vault shares
redeemable for a share of the pooled funds.
"""

__version__ = "0.1.0"

from .allocation import (
    AllocationConfig,
    AllocationEngine,
    AllowListFilter,
    ManualClock,
    MechanismFactory,
    ProposalState,
    QuadraticTally,
    QuadraticVotingStrategy,
    VoteType,
    calculate_optimal_alpha,
)
from .assets import InMemoryToken, NativeToken

__all__ = [
    "AllocationConfig",
    "AllocationEngine",
    "AllowListFilter",
    "InMemoryToken",
    "ManualClock",
    "MechanismFactory",
    "NativeToken",
    "ProposalState",
    "QuadraticTally",
    "QuadraticVotingStrategy",
    "VoteType",
    "calculate_optimal_alpha",
]
