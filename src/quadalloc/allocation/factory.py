"""
Mechanism factory with deterministic identifiers.

A mechanism's identifier is the SHA-256 of its creation parameters plus the
deployer, so the same deployer cannot create two identical mechanisms.
"""

import logging

logger = logging.getLogger(__name__)
from typing import Any, Dict, Iterable, List, Optional

from ..assets.token import ZERO_ADDRESS, FungibleAsset
from ..crypto.hashing import SHA256Hasher
from ..errors.exceptions import ValidationError
from .access import AllowListFilter
from .clock import Clock
from .core import AllocationConfig
from .engine import AllocationEngine
from .strategies import StrategyFactory, VotingStrategy


class MechanismFactory:
    """Creates allocation engines and keeps a registry keyed by identifier."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock
        self.registry: Dict[str, AllocationEngine] = {}

    @staticmethod
    def compute_mechanism_id(
        config: AllocationConfig,
        asset: FungibleAsset,
        deployer: str,
        strategy_name: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Deterministic identifier for a deployment."""
        payload = {
            "config": config.to_dict(),
            "asset": {"address": asset.address, "decimals": asset.decimals()},
            "deployer": deployer,
            "strategy": strategy_name,
            "extra": extra or {},
        }
        return SHA256Hasher.hash_canonical(payload).to_hex()

    def deploy_quadratic_voting_mechanism(
        self,
        config: AllocationConfig,
        asset: FungibleAsset,
        deployer: str,
        clock: Optional[Clock] = None,
        strategy_config: Optional[Dict[str, Any]] = None,
    ) -> AllocationEngine:
        """Create an engine running the quadratic voting strategy.

        ``clock`` overrides the factory's clock for this mechanism.
        """
        strategy = StrategyFactory.create_strategy("quadratic_voting", strategy_config)
        mechanism_id = self.compute_mechanism_id(
            config, asset, deployer, "quadratic_voting", {"strategy_config": strategy.config}
        )
        return self._deploy(mechanism_id, config, asset, strategy, clock)

    def deploy_with_allow_list(
        self,
        config: AllocationConfig,
        asset: FungibleAsset,
        deployer: str,
        allowed: Iterable[str],
        clock: Optional[Clock] = None,
        strategy_config: Optional[Dict[str, Any]] = None,
    ) -> AllocationEngine:
        """Create a quadratic voting engine whose signups are allow-listed.

        The initial list is recorded in the engine through its owner, so the
        same owner-gated operation manages it afterwards.
        """
        allowed = sorted(set(allowed))
        if any(not address or address == ZERO_ADDRESS for address in allowed):
            raise ValidationError("Cannot allow-list the zero address", field="allowed")
        inner = StrategyFactory.create_strategy("quadratic_voting", strategy_config)
        strategy = AllowListFilter(inner)
        mechanism_id = self.compute_mechanism_id(
            config,
            asset,
            deployer,
            "quadratic_voting+allow_list",
            {"strategy_config": inner.config, "allowed": allowed},
        )
        engine = self._deploy(mechanism_id, config, asset, strategy, clock)
        if allowed:
            engine.add_to_allow_list(config.owner, allowed)
        return engine

    def _deploy(
        self,
        mechanism_id: str,
        config: AllocationConfig,
        asset: FungibleAsset,
        strategy: VotingStrategy,
        clock: Optional[Clock] = None,
    ) -> AllocationEngine:
        if mechanism_id in self.registry:
            raise ValidationError(
                f"Mechanism {mechanism_id} already deployed",
                field="mechanism_id",
                value=mechanism_id,
            )

        engine = AllocationEngine(
            config,
            asset,
            strategy,
            clock=clock or self.clock,
            address="0x" + mechanism_id[:40],
        )
        self.registry[mechanism_id] = engine
        logger.info(f"Deployed mechanism {mechanism_id} at {engine.address}")
        return engine

    def get_mechanism(self, mechanism_id: str) -> Optional[AllocationEngine]:
        return self.registry.get(mechanism_id)

    def list_mechanisms(self) -> List[str]:
        return list(self.registry.keys())
