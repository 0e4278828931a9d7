"""
Voting strategies for the allocation engine.

The engine owns all state and calls into a strategy at fixed hook points
(signup, propose, vote, quorum, conversion, distribution, withdraw limit,
total assets). A strategy reads and updates the engine's MechanismState only
through the arguments it is handed, so one engine implementation serves
every strategy while each mechanism keeps its own state.
"""

import logging

logger = logging.getLogger(__name__)
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Type

from ..assets.token import FungibleAsset
from ..errors.exceptions import (
    EconomicInvariantError,
    StateTransitionError,
    ValidationError,
)
from .core import MechanismState, VoteType

CANONICAL_DECIMALS = 18


class VotingStrategy(ABC):
    """Abstract base class for voting strategies."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize voting strategy with configuration."""
        self.config = config or {}
        self.name = self.__class__.__name__

    def allows_multiple_signups(self, state: MechanismState) -> bool:
        """Whether a user may sign up more than once and accumulate power."""
        return self.config.get(
            "allow_multiple_signups", state.config.allow_multiple_signups
        )

    def before_signup(self, state: MechanismState, user: str) -> bool:
        """Return False to reject ``user``'s signup."""
        voter = state.voters.get(user)
        if voter is not None and voter.signups > 0:
            return self.allows_multiple_signups(state)
        return True

    @abstractmethod
    def get_voting_power(
        self, state: MechanismState, asset: FungibleAsset, user: str, deposit: int
    ) -> int:
        """Voting power granted for ``deposit``."""
        pass

    @abstractmethod
    def before_propose(self, state: MechanismState, proposer: str) -> bool:
        """Return True if ``proposer`` may create proposals."""
        pass

    def validate_proposal(self, state: MechanismState, proposal_id: int) -> bool:
        return proposal_id in state.proposals

    @abstractmethod
    def process_vote(
        self,
        state: MechanismState,
        proposal_id: int,
        voter: str,
        choice: VoteType,
        weight: int,
        old_power: int,
    ) -> int:
        """Record a vote and return the voter's remaining power.

        Only the tally entry of ``proposal_id`` and ``voter``'s record may
        change here; those are what the engine restores if the vote fails.
        """
        pass

    @abstractmethod
    def has_quorum(self, state: MechanismState, proposal_id: int) -> bool:
        pass

    @abstractmethod
    def convert_votes_to_shares(self, state: MechanismState, proposal_id: int) -> int:
        pass

    def before_finalize_vote_tally(self, state: MechanismState, current_time: int) -> bool:
        return True

    def get_recipient_address(self, state: MechanismState, proposal_id: int) -> str:
        proposal = state.get_proposal(proposal_id)
        if proposal is None:
            raise ValidationError(
                f"Proposal {proposal_id} not found", field="proposal_id", value=proposal_id
            )
        return proposal.recipient

    def request_custom_distribution(
        self,
        state: MechanismState,
        recipient: str,
        shares: int,
        available_assets: int,
    ) -> Tuple[bool, int]:
        """Return (handled, assets) for a queued proposal.

        handled=False mints ``shares`` to the recipient. handled=True makes the
        engine pay ``assets`` (at most ``available_assets``) to the recipient
        directly instead; the hook itself never moves funds.
        """
        return False, 0

    def available_withdraw_limit(
        self, state: MechanismState, owner: str, current_time: int
    ) -> int:
        return state.window.withdraw_limit(current_time)

    @abstractmethod
    def calculate_total_assets(
        self, state: MechanismState, asset: FungibleAsset, mechanism_address: str
    ) -> int:
        pass

    def get_strategy_info(self) -> Dict[str, Any]:
        """Get information about this voting strategy."""
        return {
            "name": self.name,
            "config": self.config,
            "description": self.__doc__ or "No description available",
        }


def normalize_to_canonical(amount: int, decimals: int) -> int:
    """Rescale ``amount`` from ``decimals`` to 18-decimal fixed point."""
    if decimals == CANONICAL_DECIMALS:
        return amount
    if decimals < CANONICAL_DECIMALS:
        return amount * 10 ** (CANONICAL_DECIMALS - decimals)
    return amount // 10 ** (decimals - CANONICAL_DECIMALS)


class QuadraticVotingStrategy(VotingStrategy):
    """Quadratic-cost voting feeding a quadratic-funding tally.

    Casting weight w costs w^2 voting power; the vote contributes w^2 to the
    project's linear sum and w to its sum of square roots.
    """

    def get_voting_power(
        self, state: MechanismState, asset: FungibleAsset, user: str, deposit: int
    ) -> int:
        return normalize_to_canonical(deposit, asset.decimals())

    def before_propose(self, state: MechanismState, proposer: str) -> bool:
        return proposer in (state.keeper, state.management)

    def process_vote(
        self,
        state: MechanismState,
        proposal_id: int,
        voter: str,
        choice: VoteType,
        weight: int,
        old_power: int,
    ) -> int:
        if choice != VoteType.FOR:
            raise ValidationError(
                "Quadratic voting only supports votes in favor",
                field="choice",
                value=choice.value,
                expected=VoteType.FOR.value,
            )

        record = state.get_voter(voter)
        if record.has_voted(proposal_id):
            raise StateTransitionError(
                f"{voter} already voted on proposal {proposal_id}",
                current_state="voted",
            )

        cost = weight * weight
        if cost > old_power:
            raise EconomicInvariantError(
                f"Vote cost {cost} exceeds remaining voting power {old_power}",
                metadata={"weight": weight, "cost": cost, "power": old_power},
            )

        # contribution == weight^2 by construction
        state.tally.process_vote_unchecked(proposal_id, cost, weight)
        record.voted_proposals.add(proposal_id)

        return old_power - cost

    def has_quorum(self, state: MechanismState, proposal_id: int) -> bool:
        return state.tally.get_tally(proposal_id).total_funding >= state.config.quorum_shares

    def convert_votes_to_shares(self, state: MechanismState, proposal_id: int) -> int:
        return state.tally.get_tally(proposal_id).total_funding

    def calculate_total_assets(
        self, state: MechanismState, asset: FungibleAsset, mechanism_address: str
    ) -> int:
        # Covers both the pre-funded matching pool and signup deposits.
        return asset.balance_of(mechanism_address)


class StrategyFactory:
    """Factory for creating voting strategies."""

    _strategies: Dict[str, Type[VotingStrategy]] = {
        "quadratic_voting": QuadraticVotingStrategy,
    }

    @classmethod
    def create_strategy(
        cls, strategy_name: str, config: Optional[Dict[str, Any]] = None
    ) -> VotingStrategy:
        """Create a voting strategy by name."""
        if strategy_name not in cls._strategies:
            raise ValidationError(f"Unknown voting strategy: {strategy_name}")

        strategy_class = cls._strategies[strategy_name]
        return strategy_class(config or {})

    @classmethod
    def get_available_strategies(cls) -> List[str]:
        """Get list of available voting strategies."""
        return list(cls._strategies.keys())

    @classmethod
    def register_strategy(cls, name: str, strategy_class: type) -> None:
        """Register a new voting strategy."""
        if not isinstance(strategy_class, type) or not issubclass(
            strategy_class, VotingStrategy
        ):
            raise ValidationError("Strategy must inherit from VotingStrategy")

        cls._strategies[name] = strategy_class
