"""
Vault-share ledger and share/asset conversions.

Shares are minted to recipients of queued proposals and redeemed for the
underlying asset once the redemption window opens. Until then they cannot
be transferred.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from ..assets.token import ZERO_ADDRESS
from ..errors.exceptions import (
    EconomicInvariantError,
    StateTransitionError,
    ValidationError,
)


def mul_div(x: int, y: int, denominator: int, round_up: bool = False) -> int:
    """Compute x * y / denominator with floor (default) or ceiling rounding."""
    if denominator <= 0:
        raise ValidationError("Division by non-positive denominator", value=denominator)
    quotient, remainder = divmod(x * y, denominator)
    if round_up and remainder:
        quotient += 1
    return quotient


def convert_to_shares(
    assets: int, total_supply: int, total_assets: int, round_up: bool = False
) -> int:
    """Shares worth ``assets``; 1:1 while nothing is minted or backed."""
    if total_supply == 0 or total_assets == 0:
        return assets
    return mul_div(assets, total_supply, total_assets, round_up)


def convert_to_assets(
    shares: int, total_supply: int, total_assets: int, round_up: bool = False
) -> int:
    """Assets backing ``shares``; 1:1 while nothing is minted."""
    if total_supply == 0:
        return shares
    return mul_div(shares, total_assets, total_supply, round_up)


@dataclass
class ShareLedger:
    """Balances, allowances and total supply of vault shares."""

    name: str = "Allocation Shares"
    symbol: str = "ALLOC"
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[Tuple[str, str], int] = field(default_factory=dict)
    total_supply: int = 0

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def mint(self, account: str, amount: int) -> None:
        if account == ZERO_ADDRESS:
            raise ValidationError("Cannot mint shares to zero address", field="account")
        if amount <= 0:
            raise ValidationError("Mint amount must be positive", field="amount", value=amount)
        self.balances[account] = self.balance_of(account) + amount
        self.total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        balance = self.balance_of(account)
        if amount > balance:
            raise EconomicInvariantError(
                f"Burn of {amount} shares exceeds balance {balance}"
            )
        self.balances[account] = balance - amount
        self.total_supply -= amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if spender == ZERO_ADDRESS:
            raise ValidationError("Cannot approve zero address", field="spender")
        if amount < 0:
            raise ValidationError("Allowance cannot be negative", field="amount", value=amount)
        self.allowances[(owner, spender)] = amount

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        """Consume allowance unless the spender is the owner."""
        if owner == spender:
            return
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise EconomicInvariantError(
                f"Insufficient share allowance: {allowed} < {amount}"
            )
        self.allowances[(owner, spender)] = allowed - amount

    def transfer(
        self, sender: str, recipient: str, amount: int, transfers_enabled: bool
    ) -> None:
        """Move shares; rejected while the redemption window has not opened."""
        if not transfers_enabled:
            raise StateTransitionError(
                "Share transfers are disabled until redemption starts",
                current_state="locked",
                expected_state="redeemable",
            )
        if recipient == ZERO_ADDRESS:
            raise ValidationError("Cannot transfer shares to zero address", field="recipient")
        if amount < 0:
            raise ValidationError("Transfer amount cannot be negative", field="amount", value=amount)
        balance = self.balance_of(sender)
        if balance < amount:
            raise EconomicInvariantError(
                f"Insufficient share balance: {balance} < {amount}"
            )
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
