"""
Core allocation types and data structures.

This module defines the proposal, voter and configuration types used by the
allocation engine, and the single state object the engine owns.
"""

import logging

logger = logging.getLogger(__name__)
import json
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Set, Union

from ..assets.token import ZERO_ADDRESS
from ..errors.exceptions import ConfigurationError, ValidationError
from .shares import ShareLedger
from .tally import QuadraticTally
from .timelock import PauseManager, RedemptionWindow


class ProposalState(Enum):
    """Lifecycle state of a proposal."""

    PENDING = "pending"
    ACTIVE = "active"
    CANCELED = "canceled"
    DEFEATED = "defeated"
    SUCCEEDED = "succeeded"
    QUEUED = "queued"
    REDEEMABLE = "redeemable"
    EXPIRED = "expired"


class VoteType(Enum):
    """Vote choices."""

    AGAINST = "against"
    FOR = "for"
    ABSTAIN = "abstain"


@dataclass
class Proposal:
    """A funding proposal naming a recipient."""

    proposal_id: int
    proposer: str
    recipient: str
    description: str = ""
    created_at: int = 0
    canceled: bool = False

    def __post_init__(self):
        """Validate proposal after initialization."""
        if self.proposal_id <= 0:
            raise ValidationError(
                "Proposal id must be positive", field="proposal_id", value=self.proposal_id
            )
        if not self.recipient or self.recipient == ZERO_ADDRESS:
            raise ValidationError("Proposal must have a recipient", field="recipient")
        if not self.proposer:
            raise ValidationError("Proposal must have a proposer", field="proposer")

    def to_dict(self) -> Dict[str, Any]:
        """Convert proposal to dictionary."""
        return {
            "proposal_id": self.proposal_id,
            "proposer": self.proposer,
            "recipient": self.recipient,
            "description": self.description,
            "created_at": self.created_at,
            "canceled": self.canceled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        """Create proposal from dictionary."""
        return cls(
            proposal_id=data["proposal_id"],
            proposer=data["proposer"],
            recipient=data["recipient"],
            description=data.get("description", ""),
            created_at=data.get("created_at", 0),
            canceled=data.get("canceled", False),
        )


@dataclass
class VoterRecord:
    """Remaining voting power and the proposals already voted on."""

    address: str
    voting_power: int = 0
    signups: int = 0
    voted_proposals: Set[int] = field(default_factory=set)

    def has_voted(self, proposal_id: int) -> bool:
        return proposal_id in self.voted_proposals


@dataclass
class AllocationConfig:
    """Configuration for an allocation round."""

    owner: str = ""
    name: str = "Allocation Shares"
    symbol: str = "ALLOC"

    # Timeline (seconds)
    voting_delay: int = 0
    voting_period: int = 7 * 24 * 3600
    timelock_delay: int = 24 * 3600
    grace_period: int = 7 * 24 * 3600
    start_time: Optional[int] = None

    # Funding
    quorum_shares: int = 0
    alpha_numerator: int = 1
    alpha_denominator: int = 1

    # Roles; default to the owner
    management: Optional[str] = None
    keeper: Optional[str] = None
    emergency_admin: Optional[str] = None

    # Signup policy
    allow_multiple_signups: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.management = self.management or self.owner
        self.keeper = self.keeper or self.owner
        self.emergency_admin = self.emergency_admin or self.owner
        self.validate()

    def validate(self) -> None:
        """Validate configuration."""
        if not self.owner or self.owner == ZERO_ADDRESS:
            raise ConfigurationError("Owner address is required", config_key="owner")

        for key in ("management", "keeper", "emergency_admin"):
            if getattr(self, key) == ZERO_ADDRESS:
                raise ConfigurationError(
                    f"{key} cannot be the zero address", config_key=key
                )

        if self.voting_delay < 0:
            raise ConfigurationError(
                "Voting delay cannot be negative",
                config_key="voting_delay",
                config_value=self.voting_delay,
            )

        if self.voting_period <= 0:
            raise ConfigurationError(
                "Voting period must be positive",
                config_key="voting_period",
                config_value=self.voting_period,
            )

        if self.timelock_delay < 0:
            raise ConfigurationError(
                "Timelock delay cannot be negative",
                config_key="timelock_delay",
                config_value=self.timelock_delay,
            )

        if self.grace_period <= 0:
            raise ConfigurationError(
                "Grace period must be positive",
                config_key="grace_period",
                config_value=self.grace_period,
            )

        if self.quorum_shares < 0:
            raise ConfigurationError(
                "Quorum cannot be negative",
                config_key="quorum_shares",
                config_value=self.quorum_shares,
            )

        if self.start_time is not None and self.start_time < 0:
            raise ConfigurationError(
                "Start time cannot be negative",
                config_key="start_time",
                config_value=self.start_time,
            )

        if self.alpha_denominator <= 0:
            raise ConfigurationError(
                "Alpha denominator must be positive",
                config_key="alpha_denominator",
                config_value=self.alpha_denominator,
            )

        if not 0 <= self.alpha_numerator <= self.alpha_denominator:
            raise ConfigurationError(
                "Alpha numerator must be between 0 and the denominator",
                config_key="alpha_numerator",
                config_value=self.alpha_numerator,
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AllocationConfig":
        """Create configuration from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(sorted(unknown))}",
                config_key=sorted(unknown)[0],
            )
        return cls(**data)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "AllocationConfig":
        """Load configuration from a JSON file."""
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot load configuration from {path}: {e}", cause=e
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration in {path} must be an object")
        return cls.from_dict(data)


@dataclass
class MechanismState:
    """Everything the engine mutates. Strategies read and update it through hooks."""

    config: AllocationConfig
    start_time: int
    tally: QuadraticTally
    shares: ShareLedger
    window: RedemptionWindow
    pause: PauseManager = field(default_factory=PauseManager)

    # Roles
    owner: str = ""
    pending_owner: Optional[str] = None
    management: str = ""
    keeper: str = ""
    emergency_admin: str = ""

    # Proposals
    proposals: Dict[int, Proposal] = field(default_factory=dict)
    proposal_count: int = 0
    used_recipients: Set[str] = field(default_factory=set)
    proposal_shares: Dict[int, int] = field(default_factory=dict)
    proposal_eta: Dict[int, int] = field(default_factory=dict)

    # Voters
    voters: Dict[str, VoterRecord] = field(default_factory=dict)
    allow_list: Set[str] = field(default_factory=set)

    # Round
    tally_finalized: bool = False
    total_assets: int = 0

    @property
    def voting_start(self) -> int:
        return self.start_time + self.config.voting_delay

    @property
    def voting_end(self) -> int:
        return self.voting_start + self.config.voting_period

    def get_voter(self, address: str) -> VoterRecord:
        """Voter record for ``address``, created on first access."""
        if address not in self.voters:
            self.voters[address] = VoterRecord(address=address)
        return self.voters[address]

    def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        return self.proposals.get(proposal_id)

    def add_proposal(self, proposal: Proposal) -> None:
        self.proposals[proposal.proposal_id] = proposal
        self.used_recipients.add(proposal.recipient)
        self.proposal_count = max(self.proposal_count, proposal.proposal_id)
