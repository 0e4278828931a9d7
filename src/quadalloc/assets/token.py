"""
Fungible asset interface and in-memory ledgers.

The allocation engine treats the underlying asset as an external
collaborator with transfer/transfer_from/approve/balance_of/decimals
semantics. Any failure is raised as AssetTransferError and aborts the
calling operation.
"""

import logging

logger = logging.getLogger(__name__)
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple
from uuid import uuid4

from ..errors.exceptions import AssetTransferError, ValidationError

ZERO_ADDRESS = "0x" + "0" * 40


class FungibleAsset(ABC):
    """Abstract fungible asset."""

    symbol: str = ""
    address: str = ZERO_ADDRESS

    @abstractmethod
    def decimals(self) -> int:
        """Number of decimals of the asset's smallest unit."""
        pass

    @abstractmethod
    def balance_of(self, account: str) -> int:
        """Balance held by ``account``."""
        pass

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move ``amount`` from ``sender`` to ``recipient``."""
        pass

    @abstractmethod
    def transfer_from(
        self, spender: str, owner: str, recipient: str, amount: int
    ) -> None:
        """Move ``amount`` from ``owner`` to ``recipient`` using ``spender``'s allowance."""
        pass

    @abstractmethod
    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set ``spender``'s allowance over ``owner``'s balance."""
        pass

    @abstractmethod
    def allowance(self, owner: str, spender: str) -> int:
        """Remaining allowance of ``spender`` over ``owner``'s balance."""
        pass


class InMemoryToken(FungibleAsset):
    """Fungible token ledger kept in memory."""

    def __init__(
        self, symbol: str = "TKN", decimals: int = 18, address: Optional[str] = None
    ):
        if decimals < 0 or decimals > 77:
            raise ValidationError(
                "Token decimals out of range", field="decimals", value=decimals
            )
        self.symbol = symbol
        self.address = address or "0x" + uuid4().hex + uuid4().hex[:8]
        self._decimals = decimals
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self.total_supply = 0

    def decimals(self) -> int:
        return self._decimals

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def mint(self, account: str, amount: int) -> None:
        """Create ``amount`` new units for ``account``."""
        if account == ZERO_ADDRESS:
            raise AssetTransferError("Cannot mint to zero address", token=self.symbol)
        if amount < 0:
            raise AssetTransferError(
                "Mint amount cannot be negative", token=self.symbol, amount=amount
            )
        self.balances[account] = self.balance_of(account) + amount
        self.total_supply += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if spender == ZERO_ADDRESS:
            raise AssetTransferError("Cannot approve zero address", token=self.symbol)
        if amount < 0:
            raise AssetTransferError(
                "Allowance cannot be negative", token=self.symbol, amount=amount
            )
        self.allowances[(owner, spender)] = amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self._move(sender, recipient, amount)

    def transfer_from(
        self, spender: str, owner: str, recipient: str, amount: int
    ) -> None:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise AssetTransferError(
                f"Insufficient allowance: {allowed} < {amount}",
                token=self.symbol,
                amount=amount,
            )
        self._move(owner, recipient, amount)
        self.allowances[(owner, spender)] = allowed - amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if recipient == ZERO_ADDRESS:
            raise AssetTransferError(
                "Cannot transfer to zero address", token=self.symbol, amount=amount
            )
        if amount < 0:
            raise AssetTransferError(
                "Transfer amount cannot be negative", token=self.symbol, amount=amount
            )
        balance = self.balance_of(sender)
        if balance < amount:
            raise AssetTransferError(
                f"Insufficient balance: {balance} < {amount}",
                token=self.symbol,
                amount=amount,
            )
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        logger.debug(f"{self.symbol}: {sender} -> {recipient} {amount}")


class NativeToken(InMemoryToken):
    """The chain's native asset, modelled as an 18-decimal ledger."""

    def __init__(self, symbol: str = "ETH", address: Optional[str] = None):
        super().__init__(symbol=symbol, decimals=18, address=address)
