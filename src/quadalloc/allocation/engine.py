"""
Allocation engine: proposal lifecycle, voting and vault-share accounting.

Participants sign up by depositing the underlying asset, authorized actors
propose recipients, participants vote during the voting window, the owner
finalizes the tally, anyone queues successful proposals, and recipients
redeem their shares once the timelock has elapsed and before the grace
period ends. Leftover funds can be swept by the owner after that.

Every state-mutating operation is all-or-nothing: it runs under a
re-entrancy guard, validates before it mutates, and records the prior value
of each field it touches so a late failure restores exactly those fields.
Nothing is copied wholesale, so a vote costs the same in a round of any size.
"""

import logging

logger = logging.getLogger(__name__)
import copy
from contextlib import contextmanager
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
    Union,
)
from uuid import uuid4

from ..assets.token import ZERO_ADDRESS, FungibleAsset
from ..crypto.hashing import SHA256Hasher
from ..errors.exceptions import (
    AuthorizationError,
    EconomicInvariantError,
    ReentrancyError,
    StateTransitionError,
    ValidationError,
    create_authorization_error,
)
from .clock import Clock, SystemClock
from .core import (
    AllocationConfig,
    MechanismState,
    Proposal,
    ProposalState,
    VoteType,
)
from .observability import EventLog, EventType
from .shares import ShareLedger, convert_to_assets, convert_to_shares
from .strategies import VotingStrategy
from .tally import (
    MAX_UINT256,
    QuadraticTally,
    TallyResult,
    calculate_optimal_alpha,
    require_int,
)
from .timelock import RedemptionWindow

_MISSING = object()


class UndoLog:
    """Prior values of the fields one operation has touched, newest last."""

    def __init__(self):
        self._undo: List[Callable[[], None]] = []

    def save_attrs(self, obj: Any, *names: str) -> None:
        for name in names:
            value = getattr(obj, name)
            self._undo.append(lambda obj=obj, name=name, value=value: setattr(obj, name, value))

    def save_item(self, mapping: Dict[Any, Any], key: Any) -> None:
        """Remember ``mapping[key]`` (a shallow copy) or that it was absent."""
        value = mapping.get(key, _MISSING)
        if value is _MISSING:
            self._undo.append(lambda: mapping.pop(key, None))
        else:
            saved = copy.copy(value)
            self._undo.append(lambda: mapping.__setitem__(key, saved))

    def save_member(self, members: Set[Any], item: Any) -> None:
        if item in members:
            self._undo.append(lambda: members.add(item))
        else:
            self._undo.append(lambda: members.discard(item))

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()

    def __len__(self) -> int:
        return len(self._undo)


class AllocationEngine:
    """Round-based allocation mechanism driven by a pluggable voting strategy."""

    def __init__(
        self,
        config: AllocationConfig,
        asset: FungibleAsset,
        strategy: VotingStrategy,
        clock: Optional[Clock] = None,
        address: Optional[str] = None,
        event_log: Optional[EventLog] = None,
    ):
        """Initialize allocation engine."""
        config.validate()
        self.config = config
        self.asset = asset
        self.strategy = strategy
        self.clock = clock or SystemClock()
        self.address = address or "0x" + SHA256Hasher.hash(uuid4().hex).to_hex()[:40]
        self.events = event_log or EventLog()

        start_time = config.start_time if config.start_time is not None else self.clock.now()
        self.state = MechanismState(
            config=config,
            start_time=start_time,
            tally=QuadraticTally(config.alpha_numerator, config.alpha_denominator),
            shares=ShareLedger(name=config.name, symbol=config.symbol),
            window=RedemptionWindow(config.timelock_delay, config.grace_period),
            owner=config.owner,
            management=config.management,
            keeper=config.keeper,
            emergency_admin=config.emergency_admin,
        )

        self._operation_in_progress = False
        self._pending_events = []
        self._undo = UndoLog()

        logger.info(
            f"Allocation engine {self.address} created with {strategy.name}; "
            f"voting {self.state.voting_start}..{self.state.voting_end}"
        )

    # ------------------------------------------------------------------
    # Operation guard
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str, caller: str, pausable: bool = True) -> Iterator[int]:
        """Run one atomic operation; yields the current time."""
        if self._operation_in_progress:
            raise ReentrancyError(
                f"Re-entrant call to {name}", current_state="operation_in_progress"
            )
        self._operation_in_progress = True
        self._undo = UndoLog()
        self._pending_events = []
        try:
            if pausable:
                self.state.pause.require_not_paused(name)
            yield self.clock.now()
        except Exception as e:
            self._undo.rollback()
            logger.warning(f"{name} by {caller} rejected: {e}")
            raise
        else:
            for event_type, timestamp, data in self._pending_events:
                self.events.emit(event_type, timestamp, **data)
        finally:
            self._pending_events = []
            self._undo = UndoLog()
            self._operation_in_progress = False

    def _emit(self, event_type: EventType, timestamp: int, **data: Any) -> None:
        self._pending_events.append((event_type, timestamp, data))

    def _require_owner(self, caller: str, operation: str) -> None:
        if caller != self.state.owner:
            raise create_authorization_error(caller, "owner", operation)

    def _require_proposal(self, proposal_id: int) -> Proposal:
        require_int(proposal_id, "proposal_id")
        if not self.strategy.validate_proposal(self.state, proposal_id):
            raise ValidationError(
                f"Invalid proposal {proposal_id}", field="proposal_id", value=proposal_id
            )
        return self.state.proposals[proposal_id]

    @staticmethod
    def _require_address(address: str, field: str) -> None:
        if not address or address == ZERO_ADDRESS:
            raise ValidationError(f"{field} cannot be the zero address", field=field)

    # ------------------------------------------------------------------
    # Participation
    # ------------------------------------------------------------------

    def signup(self, user: str, deposit: int) -> int:
        """Deposit the underlying asset for voting power; returns the user's power."""
        with self._operation("signup", user) as now:
            state = self.state
            self._require_address(user, "user")
            require_int(deposit, "deposit")
            if deposit <= 0:
                raise ValidationError("Deposit must be positive", field="deposit", value=deposit)
            if now > state.voting_end:
                raise StateTransitionError(
                    "Signup closed: voting has ended", current_state="ended"
                )
            if not self.strategy.before_signup(state, user):
                raise AuthorizationError(
                    f"Signup rejected for {user}", caller=user, required_role="eligible voter"
                )

            power = require_int(
                self.strategy.get_voting_power(state, self.asset, user, deposit), "voting_power"
            )
            if power <= 0:
                raise ValidationError(
                    "Deposit too small to grant voting power", field="deposit", value=deposit
                )

            voter = state.voters.get(user)
            new_power = (voter.voting_power if voter else 0) + power
            if new_power > MAX_UINT256:
                raise ValidationError("Voting power overflow", field="deposit", value=deposit)

            self.asset.transfer_from(self.address, user, self.address, deposit)

            voter = state.get_voter(user)
            voter.voting_power = new_power
            voter.signups += 1
            state.total_assets += deposit

            self._emit(
                EventType.USER_REGISTERED,
                now,
                user=user,
                deposit=deposit,
                voting_power=new_power,
            )
            logger.info(f"{user} signed up with {deposit}; voting power {new_power}")
            return new_power

    def propose(self, proposer: str, recipient: str, description: str = "") -> int:
        """Create a proposal for ``recipient``; returns its id."""
        with self._operation("propose", proposer) as now:
            state = self.state
            if not self.strategy.before_propose(state, proposer):
                raise create_authorization_error(proposer, "an authorized proposer", "propose")
            self._require_address(recipient, "recipient")
            if recipient in state.used_recipients:
                raise EconomicInvariantError(
                    f"Recipient {recipient} already has a proposal"
                )
            if now > state.voting_end:
                raise StateTransitionError(
                    "Proposals closed: voting has ended", current_state="ended"
                )

            proposal_id = state.proposal_count + 1
            proposal = Proposal(
                proposal_id=proposal_id,
                proposer=proposer,
                recipient=recipient,
                description=description,
                created_at=now,
            )
            state.add_proposal(proposal)

            self._emit(
                EventType.PROPOSAL_CREATED,
                now,
                proposal_id=proposal_id,
                proposer=proposer,
                recipient=recipient,
                description=description,
            )
            logger.info(f"Proposal {proposal_id} created by {proposer} for {recipient}")
            return proposal_id

    def cast_vote(
        self,
        voter: str,
        proposal_id: int,
        choice: Union[VoteType, str],
        weight: int,
    ) -> int:
        """Vote on an active proposal; returns the voter's remaining power."""
        with self._operation("cast_vote", voter) as now:
            state = self.state
            self._require_proposal(proposal_id)
            current = self._state_at(proposal_id, now)
            if current != ProposalState.ACTIVE:
                raise StateTransitionError(
                    f"Proposal {proposal_id} is not active",
                    current_state=current.value,
                    expected_state=ProposalState.ACTIVE.value,
                )
            require_int(weight, "weight")
            if weight <= 0:
                raise ValidationError("Vote weight must be positive", field="weight", value=weight)
            try:
                choice = VoteType(choice)
            except ValueError as e:
                raise ValidationError(
                    f"Unknown vote choice {choice!r}", field="choice", value=choice
                ) from e

            self._save_vote_entries(proposal_id, voter)
            old_power = state.get_voter(voter).voting_power
            new_power = require_int(
                self.strategy.process_vote(state, proposal_id, voter, choice, weight, old_power),
                "remaining_power",
            )
            if new_power > old_power or new_power < 0:
                raise EconomicInvariantError(
                    f"Strategy returned power {new_power} from {old_power}"
                )
            state.get_voter(voter).voting_power = new_power

            self._emit(
                EventType.VOTE_CAST,
                now,
                voter=voter,
                proposal_id=proposal_id,
                choice=choice.value,
                weight=weight,
                remaining_power=new_power,
            )
            logger.info(
                f"{voter} voted {weight} on proposal {proposal_id}; power {old_power} -> {new_power}"
            )
            return new_power

    def _save_vote_entries(self, proposal_id: int, voter: str) -> None:
        """Record the tally entry and voter record a vote may change."""
        state = self.state
        self._undo.save_attrs(
            state.tally, "total_quadratic_sum", "total_linear_sum", "total_funding"
        )
        self._undo.save_item(state.tally.projects, proposal_id)
        self._undo.save_item(state.voters, voter)
        record = state.voters.get(voter)
        if record is not None:
            self._undo.save_member(record.voted_proposals, proposal_id)

    def cancel_proposal(self, caller: str, proposal_id: int) -> None:
        """Cancel a proposal before it is queued. Only its proposer may cancel."""
        with self._operation("cancel_proposal", caller) as now:
            proposal = self._require_proposal(proposal_id)
            if caller != proposal.proposer:
                raise create_authorization_error(caller, "the proposer", "cancel proposal")
            current = self._state_at(proposal_id, now)
            if current == ProposalState.CANCELED:
                raise StateTransitionError(
                    f"Proposal {proposal_id} already canceled", current_state=current.value
                )
            if proposal_id in self.state.proposal_eta:
                raise StateTransitionError(
                    f"Proposal {proposal_id} is queued and cannot be canceled",
                    current_state=current.value,
                )

            proposal.canceled = True
            self._emit(EventType.PROPOSAL_CANCELED, now, proposal_id=proposal_id)
            logger.info(f"Proposal {proposal_id} canceled by {caller}")

    # ------------------------------------------------------------------
    # Tally and distribution
    # ------------------------------------------------------------------

    def finalize_vote_tally(self, caller: str) -> None:
        """Freeze the tally after voting ends and schedule the redemption window."""
        with self._operation("finalize_vote_tally", caller) as now:
            state = self.state
            self._require_owner(caller, "finalize vote tally")
            if state.tally_finalized:
                raise StateTransitionError("Tally already finalized", current_state="finalized")
            if now <= state.voting_end:
                raise StateTransitionError(
                    "Voting has not ended", current_state="voting", expected_state="ended"
                )
            if not self.strategy.before_finalize_vote_tally(state, now):
                raise StateTransitionError("Strategy blocked finalization", current_state="voting")

            total_assets = require_int(
                self.strategy.calculate_total_assets(state, self.asset, self.address),
                "total_assets",
            )
            redemption_start = state.window.schedule(now)
            state.total_assets = total_assets
            state.tally_finalized = True

            self._emit(
                EventType.VOTE_TALLY_FINALIZED,
                now,
                total_assets=state.total_assets,
                total_funding=state.tally.total_funding,
                global_redemption_start=redemption_start,
            )
            logger.info(
                f"Tally finalized: total assets {state.total_assets}, "
                f"redemption opens at {redemption_start}"
            )

    def queue_proposal(self, caller: str, proposal_id: int) -> int:
        """Convert a succeeded proposal's tally into shares. Anyone may call."""
        with self._operation("queue_proposal", caller) as now:
            state = self.state
            self._require_proposal(proposal_id)
            if not state.tally_finalized:
                raise StateTransitionError(
                    "Tally not finalized", current_state="voting", expected_state="finalized"
                )
            if proposal_id in state.proposal_eta:
                raise StateTransitionError(
                    f"Proposal {proposal_id} already queued",
                    current_state=ProposalState.QUEUED.value,
                )
            current = self._state_at(proposal_id, now)
            if current != ProposalState.SUCCEEDED:
                raise StateTransitionError(
                    f"Proposal {proposal_id} has not succeeded",
                    current_state=current.value,
                    expected_state=ProposalState.SUCCEEDED.value,
                )
            if state.window.has_expired(now):
                raise StateTransitionError(
                    "Redemption window has closed", current_state="expired"
                )

            shares = require_int(
                self.strategy.convert_votes_to_shares(state, proposal_id), "shares"
            )
            if shares <= 0:
                raise EconomicInvariantError(f"Proposal {proposal_id} has no allocation")

            recipient = self.strategy.get_recipient_address(state, proposal_id)
            self._require_address(recipient, "recipient")
            handled, assets_paid = self.strategy.request_custom_distribution(
                state, recipient, shares, state.total_assets
            )
            if handled:
                require_int(assets_paid, "assets")
                if assets_paid < 0 or assets_paid > state.total_assets:
                    raise EconomicInvariantError(
                        f"Custom distribution of {assets_paid} outside "
                        f"0..{state.total_assets} total assets"
                    )

            self._undo.save_item(state.proposal_shares, proposal_id)
            self._undo.save_item(state.proposal_eta, proposal_id)
            state.proposal_shares[proposal_id] = shares
            state.proposal_eta[proposal_id] = state.window.global_redemption_start

            if handled:
                self._undo.save_attrs(state, "total_assets")
                state.total_assets -= assets_paid
                if assets_paid:
                    self.asset.transfer(self.address, recipient, assets_paid)
            else:
                state.shares.mint(recipient, shares)

            self._emit(
                EventType.PROPOSAL_QUEUED,
                now,
                proposal_id=proposal_id,
                recipient=recipient,
                shares=shares,
                eta=state.window.global_redemption_start,
                custom_distribution=bool(handled),
                assets_paid=assets_paid if handled else 0,
            )
            logger.info(f"Proposal {proposal_id} queued by {caller}: {shares} shares to {recipient}")
            return shares

    def set_alpha(self, caller: str, numerator: int, denominator: int) -> None:
        """Change the quadratic/linear blend. Not allowed once shares are issued."""
        with self._operation("set_alpha", caller) as now:
            self._require_owner(caller, "set alpha")
            if self.state.proposal_eta:
                raise StateTransitionError(
                    "Alpha is fixed once a proposal is queued", current_state="queued"
                )
            old_numerator, old_denominator = self.state.tally.set_alpha(numerator, denominator)
            self._emit(
                EventType.ALPHA_UPDATED,
                now,
                old_numerator=old_numerator,
                old_denominator=old_denominator,
                new_numerator=numerator,
                new_denominator=denominator,
            )

    def calculate_optimal_alpha(self, matching_pool: int, user_deposits: int) -> Tuple[int, int]:
        """Alpha spending exactly ``matching_pool + user_deposits`` on the current tally."""
        return calculate_optimal_alpha(
            matching_pool,
            self.state.tally.total_quadratic_sum,
            self.state.tally.total_linear_sum,
            user_deposits,
        )

    # ------------------------------------------------------------------
    # Vault
    # ------------------------------------------------------------------

    def convert_to_shares(self, assets: int) -> int:
        return convert_to_shares(assets, self.state.shares.total_supply, self.state.total_assets)

    def convert_to_assets(self, shares: int) -> int:
        return convert_to_assets(shares, self.state.shares.total_supply, self.state.total_assets)

    def preview_deposit(self, assets: int) -> int:
        return self.convert_to_shares(assets)

    def preview_mint(self, shares: int) -> int:
        return convert_to_assets(
            shares, self.state.shares.total_supply, self.state.total_assets, round_up=True
        )

    def preview_withdraw(self, assets: int) -> int:
        return convert_to_shares(
            assets, self.state.shares.total_supply, self.state.total_assets, round_up=True
        )

    def preview_redeem(self, shares: int) -> int:
        return self.convert_to_assets(shares)

    def max_redeem(self, owner: str) -> int:
        limit = self.strategy.available_withdraw_limit(self.state, owner, self.clock.now())
        if limit == 0:
            return 0
        balance = self.state.shares.balance_of(owner)
        if limit >= MAX_UINT256:
            return balance
        return min(balance, self.convert_to_shares(limit))

    def max_withdraw(self, owner: str) -> int:
        limit = self.strategy.available_withdraw_limit(self.state, owner, self.clock.now())
        if limit == 0:
            return 0
        return min(self.convert_to_assets(self.state.shares.balance_of(owner)), limit)

    def redeem(self, caller: str, shares: int, receiver: str, owner: str) -> int:
        """Burn ``owner``'s shares for assets sent to ``receiver``; returns assets."""
        with self._operation("redeem", caller) as now:
            require_int(shares, "shares")
            if shares <= 0:
                raise ValidationError("Shares must be positive", field="shares", value=shares)
            self._require_address(receiver, "receiver")
            self._check_redeemable(owner, shares, now)

            assets = self.preview_redeem(shares)
            if assets == 0:
                raise ValidationError("Redemption yields zero assets", field="shares", value=shares)
            self._burn_and_pay(caller, owner, receiver, shares, assets, now)
            return assets

    def withdraw(self, caller: str, assets: int, receiver: str, owner: str) -> int:
        """Withdraw exactly ``assets`` by burning ``owner``'s shares; returns shares burned."""
        with self._operation("withdraw", caller) as now:
            require_int(assets, "assets")
            if assets <= 0:
                raise ValidationError("Assets must be positive", field="assets", value=assets)
            self._require_address(receiver, "receiver")

            shares = self.preview_withdraw(assets)
            self._check_redeemable(owner, shares, now)
            self._burn_and_pay(caller, owner, receiver, shares, assets, now)
            return shares

    def _check_redeemable(self, owner: str, shares: int, current_time: int) -> None:
        limit = self.strategy.available_withdraw_limit(self.state, owner, current_time)
        if limit == 0:
            raise StateTransitionError(
                "Redemption window is not open", current_state="closed", expected_state="open"
            )
        if shares > self.max_redeem(owner):
            raise EconomicInvariantError(
                f"Redeem of {shares} shares exceeds maximum {self.max_redeem(owner)}"
            )

    def _burn_and_pay(
        self, caller: str, owner: str, receiver: str, shares: int, assets: int, now: int
    ) -> None:
        state = self.state
        if assets > state.total_assets:
            raise EconomicInvariantError(
                f"Withdrawal of {assets} exceeds total assets {state.total_assets}"
            )
        ledger = state.shares
        self._undo.save_item(ledger.allowances, (owner, caller))
        self._undo.save_item(ledger.balances, owner)
        self._undo.save_attrs(ledger, "total_supply")
        self._undo.save_attrs(state, "total_assets")
        ledger.spend_allowance(owner, caller, shares)
        ledger.burn(owner, shares)
        state.total_assets -= assets
        self.asset.transfer(self.address, receiver, assets)

        self._emit(
            EventType.REDEEMED,
            now,
            caller=caller,
            owner=owner,
            receiver=receiver,
            shares=shares,
            assets=assets,
        )
        logger.info(f"{owner} redeemed {shares} shares for {assets} to {receiver}")

    # ------------------------------------------------------------------
    # Share transfers
    # ------------------------------------------------------------------

    def transfers_enabled(self) -> bool:
        return self.state.window.has_started(self.clock.now())

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        with self._operation("transfer", sender) as now:
            require_int(amount, "amount")
            self.state.shares.transfer(sender, recipient, amount, self.transfers_enabled())
            self._emit(
                EventType.SHARES_TRANSFERRED, now, sender=sender, recipient=recipient, amount=amount
            )

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        with self._operation("transfer_from", spender) as now:
            require_int(amount, "amount")
            shares = self.state.shares
            self._undo.save_item(shares.allowances, (owner, spender))
            shares.spend_allowance(owner, spender, amount)
            shares.transfer(owner, recipient, amount, self.transfers_enabled())
            self._emit(
                EventType.SHARES_TRANSFERRED, now, sender=owner, recipient=recipient, amount=amount
            )

    def approve(self, owner: str, spender: str, amount: int) -> None:
        with self._operation("approve", owner):
            require_int(amount, "amount")
            self.state.shares.approve(owner, spender, amount)

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def sweep(self, caller: str, token: FungibleAsset, receiver: str) -> int:
        """Recover all of ``token`` held by the mechanism after the grace period."""
        with self._operation("sweep", caller) as now:
            state = self.state
            self._require_owner(caller, "sweep")
            self._require_address(receiver, "receiver")
            if not state.window.has_expired(now):
                raise StateTransitionError(
                    "Grace period has not ended", current_state="redeemable", expected_state="expired"
                )

            balance = token.balance_of(self.address)
            if balance == 0:
                raise ValidationError("Nothing to sweep", field="token", value=token.symbol)
            if token is self.asset:
                self._undo.save_attrs(state, "total_assets")
                state.total_assets = 0
            token.transfer(self.address, receiver, balance)

            self._emit(
                EventType.SWEPT, now, token=token.symbol, receiver=receiver, amount=balance
            )
            logger.info(f"Swept {balance} {token.symbol} to {receiver}")
            return balance

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def pause(self, caller: str, reason: str = "") -> None:
        with self._operation("pause", caller, pausable=False) as now:
            if caller not in (self.state.owner, self.state.emergency_admin):
                raise create_authorization_error(caller, "owner or emergency admin", "pause")
            self.state.pause.pause(reason, now, caller)
            self._emit(EventType.PAUSED, now, caller=caller, reason=reason)
            logger.warning(f"Mechanism paused by {caller}: {reason}")

    def unpause(self, caller: str) -> None:
        with self._operation("unpause", caller, pausable=False) as now:
            if caller not in (self.state.owner, self.state.emergency_admin):
                raise create_authorization_error(caller, "owner or emergency admin", "unpause")
            self.state.pause.resume()
            self._emit(EventType.UNPAUSED, now, caller=caller)
            logger.info(f"Mechanism unpaused by {caller}")

    @property
    def paused(self) -> bool:
        return self.state.pause.is_paused

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Start a two-step ownership transfer."""
        with self._operation("transfer_ownership", caller, pausable=False) as now:
            self._require_owner(caller, "transfer ownership")
            self._require_address(new_owner, "new_owner")
            self.state.pending_owner = new_owner
            self._emit(
                EventType.OWNERSHIP_TRANSFER_STARTED, now, owner=caller, pending_owner=new_owner
            )

    def accept_ownership(self, caller: str) -> None:
        with self._operation("accept_ownership", caller, pausable=False) as now:
            state = self.state
            if state.pending_owner is None or caller != state.pending_owner:
                raise create_authorization_error(caller, "pending owner", "accept ownership")
            previous = state.owner
            state.owner = caller
            state.pending_owner = None
            self._emit(
                EventType.OWNERSHIP_TRANSFERRED, now, previous_owner=previous, new_owner=caller
            )
            logger.info(f"Ownership transferred from {previous} to {caller}")

    def cancel_ownership_transfer(self, caller: str) -> None:
        with self._operation("cancel_ownership_transfer", caller, pausable=False) as now:
            self._require_owner(caller, "cancel ownership transfer")
            if self.state.pending_owner is None:
                raise StateTransitionError("No pending ownership transfer", current_state="none")
            canceled = self.state.pending_owner
            self.state.pending_owner = None
            self._emit(EventType.OWNERSHIP_TRANSFER_CANCELED, now, pending_owner=canceled)

    def set_management(self, caller: str, new_management: str) -> None:
        self._set_role(caller, "management", new_management)

    def set_keeper(self, caller: str, new_keeper: str) -> None:
        self._set_role(caller, "keeper", new_keeper)

    def set_emergency_admin(self, caller: str, new_admin: str) -> None:
        self._set_role(caller, "emergency_admin", new_admin)

    def _set_role(self, caller: str, role: str, address: str) -> None:
        with self._operation(f"set_{role}", caller, pausable=False) as now:
            self._require_owner(caller, f"set {role}")
            self._require_address(address, role)
            previous = getattr(self.state, role)
            setattr(self.state, role, address)
            self._emit(EventType.ROLE_UPDATED, now, role=role, previous=previous, new=address)
            logger.info(f"{role} changed from {previous} to {address}")

    def add_to_allow_list(self, caller: str, addresses: Iterable[str]) -> None:
        """Allow ``addresses`` to sign up where the strategy gates signups."""
        self._update_allow_list(caller, addresses, allowed=True)

    def remove_from_allow_list(self, caller: str, addresses: Iterable[str]) -> None:
        self._update_allow_list(caller, addresses, allowed=False)

    def _update_allow_list(self, caller: str, addresses: Iterable[str], allowed: bool) -> None:
        operation = "add_to_allow_list" if allowed else "remove_from_allow_list"
        with self._operation(operation, caller) as now:
            self._require_owner(caller, operation.replace("_", " "))
            addresses = list(addresses)
            for address in addresses:
                self._require_address(address, "address")

            allow_list = self.state.allow_list
            for address in addresses:
                if allowed:
                    allow_list.add(address)
                else:
                    allow_list.discard(address)
                self._emit(EventType.ALLOW_LIST_UPDATED, now, address=address, allowed=allowed)
            logger.info(
                f"Allow list {'extended' if allowed else 'reduced'} by {len(addresses)} "
                f"address(es) by {caller}"
            )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def proposal_state(self, proposal_id: int) -> ProposalState:
        self._require_proposal(proposal_id)
        return self._state_at(proposal_id, self.clock.now())

    def _state_at(self, proposal_id: int, current_time: int) -> ProposalState:
        state = self.state
        proposal = state.proposals[proposal_id]

        if proposal.canceled:
            return ProposalState.CANCELED
        if current_time < state.voting_start:
            return ProposalState.PENDING
        if current_time <= state.voting_end:
            return ProposalState.ACTIVE
        if not state.tally_finalized:
            return ProposalState.PENDING

        if proposal_id in state.proposal_eta:
            if not state.window.has_started(current_time):
                return ProposalState.QUEUED
            if state.window.has_expired(current_time):
                return ProposalState.EXPIRED
            return ProposalState.REDEEMABLE

        if self.strategy.has_quorum(state, proposal_id):
            return ProposalState.SUCCEEDED
        return ProposalState.DEFEATED

    def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        return self.state.get_proposal(proposal_id)

    def get_tally(self, proposal_id: int) -> TallyResult:
        return self.state.tally.get_tally(proposal_id)

    @property
    def proposal_count(self) -> int:
        return self.state.proposal_count

    @property
    def owner(self) -> str:
        return self.state.owner

    @property
    def tally_finalized(self) -> bool:
        return self.state.tally_finalized

    @property
    def global_redemption_start(self) -> int:
        return self.state.window.global_redemption_start

    @property
    def total_assets(self) -> int:
        return self.state.total_assets

    @property
    def total_supply(self) -> int:
        return self.state.shares.total_supply

    def balance_of(self, account: str) -> int:
        return self.state.shares.balance_of(account)

    def is_allowed(self, address: str) -> bool:
        return address in self.state.allow_list

    def voting_power(self, user: str) -> int:
        voter = self.state.voters.get(user)
        return voter.voting_power if voter else 0

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        record = self.state.voters.get(voter)
        return record is not None and record.has_voted(proposal_id)

    def proposal_shares(self, proposal_id: int) -> int:
        return self.state.proposal_shares.get(proposal_id, 0)

    def proposal_eta(self, proposal_id: int) -> int:
        return self.state.proposal_eta.get(proposal_id, 0)

    def get_status(self) -> Dict[str, Any]:
        """Summary of the round."""
        now = self.clock.now()
        state = self.state
        return {
            "address": self.address,
            "strategy": self.strategy.name,
            "current_time": now,
            "voting_start": state.voting_start,
            "voting_end": state.voting_end,
            "proposal_count": state.proposal_count,
            "voter_count": len(state.voters),
            "tally_finalized": state.tally_finalized,
            "total_funding": state.tally.total_funding,
            "alpha": state.tally.alpha,
            "total_assets": state.total_assets,
            "total_supply": state.shares.total_supply,
            "redemption_window": state.window.get_status(now),
            "is_paused": state.pause.is_paused,
        }
