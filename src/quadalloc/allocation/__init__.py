"""
Round-based quadratic-funding allocation mechanism.

This module provides:
- Incremental quadratic-funding tally with alpha-weighted funding
- Proposal lifecycle state machine with permissionless queuing
- Quadratic-cost voting strategy and allow-list signup filter
- Vault-share accounting with timelocked, bounded redemption
- Pause, two-step ownership and role rotation
- Hash-chained event log and deterministic mechanism factory
"""

from .access import AllowListFilter
from .clock import Clock, ManualClock, SystemClock
from .core import (
    AllocationConfig,
    MechanismState,
    Proposal,
    ProposalState,
    VoterRecord,
    VoteType,
)
from .engine import AllocationEngine
from .factory import MechanismFactory
from .observability import EventLog, EventType, MechanismEvent
from .shares import ShareLedger
from .strategies import (
    QuadraticVotingStrategy,
    StrategyFactory,
    VotingStrategy,
    normalize_to_canonical,
)
from .tally import (
    MAX_UINT256,
    ProjectTally,
    QuadraticTally,
    TallyResult,
    calculate_optimal_alpha,
    isqrt,
)
from .timelock import PauseManager, RedemptionWindow

__all__ = [
    # Core
    "AllocationConfig",
    "AllocationEngine",
    "MechanismState",
    "Proposal",
    "ProposalState",
    "VoterRecord",
    "VoteType",

    # Tally
    "MAX_UINT256",
    "ProjectTally",
    "QuadraticTally",
    "TallyResult",
    "calculate_optimal_alpha",
    "isqrt",

    # Strategies
    "VotingStrategy",
    "QuadraticVotingStrategy",
    "AllowListFilter",
    "StrategyFactory",
    "normalize_to_canonical",

    # Vault and timing
    "ShareLedger",
    "RedemptionWindow",
    "PauseManager",
    "Clock",
    "ManualClock",
    "SystemClock",

    # Observability
    "EventLog",
    "EventType",
    "MechanismEvent",

    # Factory
    "MechanismFactory",
]
