"""
Allow-list gating for signups.

AllowListFilter wraps any voting strategy and adds one check to its signup
hook; every other hook is forwarded unchanged. The list itself lives in the
engine-owned MechanismState and is edited through the engine by its owner.
"""

import logging

logger = logging.getLogger(__name__)
from typing import Any, Dict, Tuple

from ..assets.token import FungibleAsset
from .core import MechanismState, VoteType
from .strategies import VotingStrategy


class AllowListFilter(VotingStrategy):
    """Only allow-listed addresses may sign up."""

    def __init__(self, inner: VotingStrategy):
        super().__init__(inner.config)
        self.inner = inner
        self.name = f"AllowListFilter({inner.name})"

    @staticmethod
    def is_allowed(state: MechanismState, address: str) -> bool:
        return address in state.allow_list

    # Hooks

    def allows_multiple_signups(self, state: MechanismState) -> bool:
        return self.inner.allows_multiple_signups(state)

    def before_signup(self, state: MechanismState, user: str) -> bool:
        if not self.is_allowed(state, user):
            logger.warning(f"Signup rejected for {user}: not on allow list")
            return False
        return self.inner.before_signup(state, user)

    def get_voting_power(
        self, state: MechanismState, asset: FungibleAsset, user: str, deposit: int
    ) -> int:
        return self.inner.get_voting_power(state, asset, user, deposit)

    def before_propose(self, state: MechanismState, proposer: str) -> bool:
        return self.inner.before_propose(state, proposer)

    def validate_proposal(self, state: MechanismState, proposal_id: int) -> bool:
        return self.inner.validate_proposal(state, proposal_id)

    def process_vote(
        self,
        state: MechanismState,
        proposal_id: int,
        voter: str,
        choice: VoteType,
        weight: int,
        old_power: int,
    ) -> int:
        return self.inner.process_vote(
            state, proposal_id, voter, choice, weight, old_power
        )

    def has_quorum(self, state: MechanismState, proposal_id: int) -> bool:
        return self.inner.has_quorum(state, proposal_id)

    def convert_votes_to_shares(self, state: MechanismState, proposal_id: int) -> int:
        return self.inner.convert_votes_to_shares(state, proposal_id)

    def before_finalize_vote_tally(self, state: MechanismState, current_time: int) -> bool:
        return self.inner.before_finalize_vote_tally(state, current_time)

    def get_recipient_address(self, state: MechanismState, proposal_id: int) -> str:
        return self.inner.get_recipient_address(state, proposal_id)

    def request_custom_distribution(
        self,
        state: MechanismState,
        recipient: str,
        shares: int,
        available_assets: int,
    ) -> Tuple[bool, int]:
        return self.inner.request_custom_distribution(
            state, recipient, shares, available_assets
        )

    def available_withdraw_limit(
        self, state: MechanismState, owner: str, current_time: int
    ) -> int:
        return self.inner.available_withdraw_limit(state, owner, current_time)

    def calculate_total_assets(
        self, state: MechanismState, asset: FungibleAsset, mechanism_address: str
    ) -> int:
        return self.inner.calculate_total_assets(state, asset, mechanism_address)

    def get_strategy_info(self) -> Dict[str, Any]:
        info = self.inner.get_strategy_info()
        info["name"] = self.name
        info["wraps"] = self.inner.name
        return info
