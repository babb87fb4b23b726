"""Configurable rights pool: the controller and its pool share token.

The controller owns a weighted pool engine and issues pool shares against
it. Every mutating entry point runs atomically under the controller's lock;
rights, ownership and lifecycle phase are checked before any state changes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from smartpool.chain import Chain
from smartpool.config import DEFAULT_CONTROLLER_CONFIG, ControllerConfig
from smartpool.constants import MAX_UINT
from smartpool.controller import liquidity, token_set, weights
from smartpool.controller.guard import Guard, guarded, view
from smartpool.controller.lifecycle import Active, PoolPhase, Uninitialized, create_pool, require_engine
from smartpool.controller.token_set import NewTokenParams
from smartpool.controller.weights import GradualUpdate
from smartpool.engine import Engine, EngineFactory, WeightedPool
from smartpool.errors import (
    ExternalCallError,
    GradualUpdateActiveError,
    LimitError,
    NotBoundError,
    NotControllerError,
    PendingTokenAddError,
    PermissionDeniedError,
    ValidationError,
)
from smartpool.events import CapChanged, Event, LogCall, NewTokenCommitted
from smartpool.math.bnum import badd, bsub
from smartpool.models.params import PoolParams
from smartpool.models.rights import DEFAULT_RIGHTS, Rights
from smartpool.models.types import is_valid_address
from smartpool.tokens import PoolShareToken, Token

logger = structlog.get_logger()


@dataclass(frozen=True)
class TokenState:
    """One asset as seen by the controller."""

    address: str
    symbol: str
    balance: int
    denorm: int


@dataclass(frozen=True)
class PoolSnapshot:
    """Point-in-time view of a controller and its engine."""

    address: str
    controller: str
    phase: str
    total_supply: int
    cap: int
    swap_fee: int
    public_swap: bool
    total_weight: int
    tokens: tuple[TokenState, ...]
    rights: Rights
    gradual_update: GradualUpdate | None
    new_token: NewTokenParams | None


class ConfigurableRightsPool(PoolShareToken):
    """Smart pool controller.

    Args:
        chain: Execution environment shared with the engine and tokens
        params: Share token identity and initial assets
        rights: Which administrative powers the owner holds
        config: Timelocks and exit fee routing
        sender: Creator; becomes the owner
        engine_factory: Builds the engine at create_pool time
    """

    def __init__(
        self,
        chain: Chain,
        params: PoolParams,
        rights: Rights = DEFAULT_RIGHTS,
        config: ControllerConfig = DEFAULT_CONTROLLER_CONFIG,
        *,
        sender: str,
        engine_factory: EngineFactory = WeightedPool,
    ) -> None:
        params.validate()
        super().__init__(chain, params.pool_token_symbol, params.pool_token_name)
        for token in params.constituent_tokens:
            token_set.verify_token_compliance(self, token, sender)

        self.rights = rights
        self.config = config
        self._engine_factory = engine_factory
        self._guard = Guard()

        self._owner = sender
        self._phase: PoolPhase = Uninitialized(
            tokens=tuple(params.constituent_tokens),
            balances=tuple(params.token_balances),
            weights=tuple(params.token_weights),
            swap_fee=params.swap_fee,
        )
        self._bsp_cap = MAX_UINT
        self._gradual_update: GradualUpdate | None = None
        self._new_token: NewTokenParams | None = None
        self._whitelist: set[str] = set()
        self.minimum_weight_change_block_period = config.minimum_weight_change_block_period
        self.add_token_time_lock_in_blocks = config.add_token_time_lock_in_blocks
        self.events: list[Event] = []

        logger.info(
            "controller_constructed",
            pool=self.address,
            owner=sender,
            symbol=params.pool_token_symbol,
            rights=rights.to_flags(),
        )

    def __repr__(self) -> str:
        return f"ConfigurableRightsPool({self.symbol}, {self.address})"

    # --- Journal ---

    def _snapshot(self) -> Any:
        return (
            super()._snapshot(),
            self._owner,
            self._phase,
            self._bsp_cap,
            self._gradual_update,
            self._new_token,
            set(self._whitelist),
            self.minimum_weight_change_block_period,
            self.add_token_time_lock_in_blocks,
            len(self.events),
        )

    def _restore(self, state: Any) -> None:
        (
            share_state,
            self._owner,
            self._phase,
            self._bsp_cap,
            self._gradual_update,
            self._new_token,
            self._whitelist,
            self.minimum_weight_change_block_period,
            self.add_token_time_lock_in_blocks,
            event_count,
        ) = state
        super()._restore(share_state)
        del self.events[event_count:]

    # --- Lifecycle ---

    @guarded
    def create_pool(
        self,
        initial_supply: int,
        minimum_weight_change_block_period: int | None = None,
        add_token_time_lock_in_blocks: int | None = None,
        *,
        sender: str,
    ) -> None:
        """Create the engine and mint the initial supply to the owner.

        The timelock parameters are either both given or both omitted; when
        given they replace the configured defaults.
        """
        self._require_owner(sender)
        if (minimum_weight_change_block_period is None) != (add_token_time_lock_in_blocks is None):
            raise ValidationError(
                "ERR_INCONSISTENT_TOKEN_TIME_LOCK", "give both timelock parameters or neither"
            )
        if minimum_weight_change_block_period is not None and add_token_time_lock_in_blocks is not None:
            if minimum_weight_change_block_period < add_token_time_lock_in_blocks:
                raise ValidationError(
                    "ERR_INCONSISTENT_TOKEN_TIME_LOCK",
                    f"{minimum_weight_change_block_period} < {add_token_time_lock_in_blocks}",
                )
            self.minimum_weight_change_block_period = minimum_weight_change_block_period
            self.add_token_time_lock_in_blocks = add_token_time_lock_in_blocks

        self._phase = create_pool(self, initial_supply, sender)

    # --- Weights ---

    @guarded
    def update_weight(self, token: Token, new_weight: int, *, sender: str) -> None:
        self._require_owner(sender)
        self._require_right(self.rights.can_change_weights, "ERR_NOT_CONFIGURABLE_WEIGHTS")
        engine = require_engine(self._phase)
        self._require_no_gradual_update()
        if not engine.is_bound(token):
            raise NotBoundError(detail=token.address)
        weights.update_weight(self, engine, token, new_weight, sender)

    @guarded
    def update_weights_gradually(
        self,
        new_weights: Sequence[int],
        start_block: int,
        end_block: int,
        *,
        sender: str,
    ) -> None:
        """Schedule a linear ramp to new_weights, replacing any existing ramp."""
        self._require_owner(sender)
        self._require_right(self.rights.can_change_weights, "ERR_NOT_CONFIGURABLE_WEIGHTS")
        engine = require_engine(self._phase)
        if self._new_token is not None and self._new_token.is_committed:
            raise PendingTokenAddError(detail="apply the committed token before ramping weights")

        self._gradual_update = weights.schedule_gradual_update(
            engine,
            new_weights,
            start_block,
            end_block,
            self.chain.block_number,
            self.minimum_weight_change_block_period,
        )
        logger.info(
            "gradual_update_scheduled",
            start_block=self._gradual_update.start_block,
            end_block=end_block,
            end_weights=list(new_weights),
        )

    @guarded
    def poke_weights(self, *, sender: str) -> None:
        """Advance the scheduled ramp to the current block. Anyone may call."""
        self._require_right(self.rights.can_change_weights, "ERR_NOT_CONFIGURABLE_WEIGHTS")
        engine = require_engine(self._phase)
        if self._gradual_update is None:
            logger.debug("poke_weights_no_plan", block=self.chain.block_number)
            return
        self._gradual_update = weights.poke_weights(
            self, engine, self._gradual_update, self.chain.block_number
        )

    # --- Token set ---

    @guarded
    def commit_add_token(self, token: Token, balance: int, denormalized_weight: int, *, sender: str) -> None:
        self._require_owner(sender)
        self._require_right(self.rights.can_add_remove_tokens, "ERR_CANNOT_ADD_REMOVE_TOKENS")
        engine = require_engine(self._phase)
        self._require_no_gradual_update()

        self._new_token = token_set.commit_add_token(
            self, engine, token, balance, denormalized_weight, self.chain.block_number, sender
        )
        self._emit(NewTokenCommitted(token=token.address, pool=self.address, caller=sender))

    @guarded
    def apply_add_token(self, *, sender: str) -> int:
        """Bind the committed token once the timelock has elapsed.

        Returns:
            Pool shares minted to the caller
        """
        self._require_owner(sender)
        self._require_right(self.rights.can_add_remove_tokens, "ERR_CANNOT_ADD_REMOVE_TOKENS")
        engine = require_engine(self._phase)
        self._require_no_gradual_update()

        applied, pool_shares = token_set.apply_add_token(
            self,
            engine,
            self._new_token,
            self.add_token_time_lock_in_blocks,
            self.chain.block_number,
            sender,
        )
        self._new_token = applied
        return pool_shares

    @guarded
    def remove_token(self, token: Token, *, sender: str) -> int:
        """Unbind token and burn the owner's proportional shares.

        Returns:
            Pool shares burned
        """
        self._require_owner(sender)
        self._require_right(self.rights.can_add_remove_tokens, "ERR_CANNOT_ADD_REMOVE_TOKENS")
        engine = require_engine(self._phase)
        self._require_no_gradual_update()
        if self._new_token is not None and self._new_token.is_committed:
            raise PendingTokenAddError("ERR_REMOVE_WITH_ADD_PENDING", "a token add is pending")
        return token_set.remove_token(self, engine, token, sender)

    # --- Liquidity ---

    @guarded
    def join_pool(self, pool_amount_out: int, max_amounts_in: Sequence[int], *, sender: str) -> list[int]:
        engine = require_engine(self._phase)
        return liquidity.join_pool(self, engine, pool_amount_out, max_amounts_in, sender)

    @guarded
    def exit_pool(self, pool_amount_in: int, min_amounts_out: Sequence[int], *, sender: str) -> list[int]:
        engine = require_engine(self._phase)
        return liquidity.exit_pool(self, engine, pool_amount_in, min_amounts_out, sender)

    @guarded
    def joinswap_extern_amount_in(
        self, token_in: Token, token_amount_in: int, min_pool_amount_out: int, *, sender: str
    ) -> int:
        engine = require_engine(self._phase)
        return liquidity.joinswap_extern_amount_in(
            self, engine, token_in, token_amount_in, min_pool_amount_out, sender
        )

    @guarded
    def joinswap_pool_amount_out(
        self, token_in: Token, pool_amount_out: int, max_amount_in: int, *, sender: str
    ) -> int:
        engine = require_engine(self._phase)
        return liquidity.joinswap_pool_amount_out(self, engine, token_in, pool_amount_out, max_amount_in, sender)

    @guarded
    def exitswap_pool_amount_in(
        self, token_out: Token, pool_amount_in: int, min_amount_out: int, *, sender: str
    ) -> int:
        engine = require_engine(self._phase)
        return liquidity.exitswap_pool_amount_in(self, engine, token_out, pool_amount_in, min_amount_out, sender)

    @guarded
    def exitswap_extern_amount_out(
        self, token_out: Token, token_amount_out: int, max_pool_amount_in: int, *, sender: str
    ) -> int:
        engine = require_engine(self._phase)
        return liquidity.exitswap_extern_amount_out(
            self, engine, token_out, token_amount_out, max_pool_amount_in, sender
        )

    # --- Administration ---

    @guarded
    def set_swap_fee(self, swap_fee: int, *, sender: str) -> None:
        self._require_owner(sender)
        engine = require_engine(self._phase)
        self._require_right(self.rights.can_change_swap_fee, "ERR_NOT_CONFIGURABLE_SWAP_FEE")
        engine.set_swap_fee(swap_fee, sender=self.address)
        logger.info("swap_fee_set", swap_fee=swap_fee)

    @guarded
    def set_public_swap(self, public: bool, *, sender: str) -> None:
        self._require_owner(sender)
        engine = require_engine(self._phase)
        self._require_right(self.rights.can_pause_swapping, "ERR_NOT_PAUSABLE_SWAP")
        engine.set_public_swap(public, sender=self.address)
        logger.info("public_swap_set", public=public)

    @guarded
    def set_cap(self, new_cap: int, *, sender: str) -> None:
        self._require_owner(sender)
        require_engine(self._phase)
        self._require_right(self.rights.can_change_cap, "ERR_CANNOT_CHANGE_CAP")
        self._emit(CapChanged(caller=sender, old_cap=self._bsp_cap, new_cap=new_cap))
        self._bsp_cap = new_cap

    @guarded
    def whitelist_liquidity_provider(self, provider: str, *, sender: str) -> None:
        self._require_owner(sender)
        self._require_right(self.rights.can_whitelist_lps, "ERR_CANNOT_WHITELIST_LPS")
        if not is_valid_address(provider):
            raise ValidationError("ERR_INVALID_ADDRESS", provider)
        self._whitelist.add(provider)
        logger.info("lp_whitelisted", provider=provider)

    @guarded
    def remove_whitelisted_liquidity_provider(self, provider: str, *, sender: str) -> None:
        self._require_owner(sender)
        self._require_right(self.rights.can_whitelist_lps, "ERR_CANNOT_WHITELIST_LPS")
        if provider not in self._whitelist:
            raise ValidationError("ERR_LP_NOT_WHITELISTED", provider)
        self._whitelist.remove(provider)
        logger.info("lp_removed_from_whitelist", provider=provider)

    @guarded
    def set_controller(self, new_owner: str, *, sender: str) -> None:
        self._require_owner(sender)
        if not is_valid_address(new_owner):
            raise ValidationError("ERR_INVALID_ADDRESS", new_owner)
        logger.info("controller_changed", old=self._owner, new=new_owner)
        self._owner = new_owner

    # --- Views ---

    @view
    def get_controller(self) -> str:
        return self._owner

    @view
    def can_provide_liquidity(self, provider: str) -> bool:
        return self._can_provide_liquidity(provider)

    @view
    def is_public_swap(self) -> bool:
        return require_engine(self._phase).is_public_swap()

    @view
    def get_swap_fee(self) -> int:
        return require_engine(self._phase).get_swap_fee()

    @view
    def get_denormalized_weight(self, token: Token) -> int:
        return require_engine(self._phase).get_denormalized_weight(token)

    @view
    def get_balance(self, token: Token) -> int:
        return require_engine(self._phase).get_balance(token)

    @view
    def get_current_tokens(self) -> list[Token]:
        return require_engine(self._phase).get_current_tokens()

    @view
    def total_supply(self) -> int:
        return self._total_supply

    @view
    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    @view
    def bsp_cap(self) -> int:
        return self._bsp_cap

    @view
    def gradual_update(self) -> GradualUpdate | None:
        return self._gradual_update

    @view
    def new_token(self) -> NewTokenParams | None:
        return self._new_token

    @property
    def is_created(self) -> bool:
        return isinstance(self._phase, Active)

    @property
    def engine(self) -> Engine:
        """The bound engine. Raises NotCreatedError before create_pool."""
        return require_engine(self._phase)

    @view
    def snapshot(self) -> PoolSnapshot:
        """Collect controller and engine state in one read."""
        phase = self._phase
        if isinstance(phase, Active):
            engine = phase.engine
            tokens = tuple(
                TokenState(
                    address=token.address,
                    symbol=token.symbol,
                    balance=engine.get_balance(token),
                    denorm=engine.get_denormalized_weight(token),
                )
                for token in engine.get_current_tokens()
            )
            return PoolSnapshot(
                address=self.address,
                controller=self._owner,
                phase="active",
                total_supply=self._total_supply,
                cap=self._bsp_cap,
                swap_fee=engine.get_swap_fee(),
                public_swap=engine.is_public_swap(),
                total_weight=engine.get_total_denormalized_weight(),
                tokens=tokens,
                rights=self.rights,
                gradual_update=self._gradual_update,
                new_token=self._new_token,
            )

        tokens = tuple(
            TokenState(address=token.address, symbol=token.symbol, balance=balance, denorm=weight)
            for token, balance, weight in zip(phase.tokens, phase.balances, phase.weights, strict=True)
        )
        return PoolSnapshot(
            address=self.address,
            controller=self._owner,
            phase="uninitialized",
            total_supply=self._total_supply,
            cap=self._bsp_cap,
            swap_fee=phase.swap_fee,
            public_swap=False,
            total_weight=sum(phase.weights),
            tokens=tokens,
            rights=self.rights,
            gradual_update=None,
            new_token=None,
        )

    # --- Internals used by the controller modules ---

    def _log_call(self, method: str, sender: str) -> None:
        self.chain.touch(self)
        self.events.append(LogCall(caller=sender, method=method))
        logger.debug("controller_call", method=method, caller=sender)

    def _emit(self, event: Event) -> None:
        self.events.append(event)

    def _require_owner(self, sender: str) -> None:
        if sender != self._owner:
            raise NotControllerError(detail=f"{sender} is not the controller")

    def _require_right(self, granted: bool, code: str) -> None:
        if not granted:
            raise PermissionDeniedError(code, "right not granted")

    def _require_no_gradual_update(self) -> None:
        if self._gradual_update is not None:
            raise GradualUpdateActiveError(detail="a gradual weight update is scheduled")

    def _can_provide_liquidity(self, provider: str) -> bool:
        if self.rights.can_whitelist_lps:
            return provider in self._whitelist
        return is_valid_address(provider)

    def _set_cap_value(self, cap: int) -> None:
        self._bsp_cap = cap

    def _set_new_token(self, new_token: NewTokenParams) -> None:
        self._new_token = new_token

    def _pull_token(self, token: Token, src: str, amount: int) -> None:
        if not token.transfer_from(src, self.address, amount, sender=self.address):
            raise ExternalCallError(detail=f"pull {amount} {token.symbol} from {src}")

    def _push_token(self, token: Token, dst: str, amount: int) -> None:
        if not token.transfer(dst, amount, sender=self.address):
            raise ExternalCallError(detail=f"push {amount} {token.symbol} to {dst}")

    def _pull_underlying(self, engine: Engine, token: Token, src: str, amount: int) -> None:
        # Caller -> controller -> engine, weight unchanged
        balance = engine.get_balance(token)
        self._pull_token(token, src, amount)
        engine.rebind(token, badd(balance, amount), engine.get_denormalized_weight(token), sender=self.address)

    def _push_underlying(self, engine: Engine, token: Token, dst: str, amount: int) -> None:
        balance = engine.get_balance(token)
        engine.rebind(token, bsub(balance, amount), engine.get_denormalized_weight(token), sender=self.address)
        self._push_token(token, dst, amount)

    def _mint_pool_share(self, amount: int) -> None:
        if badd(self._total_supply, amount) > self._bsp_cap:
            raise LimitError("ERR_CAP_LIMIT_REACHED", f"{badd(self._total_supply, amount)} > {self._bsp_cap}")
        self._mint(amount)

    def _burn_pool_share(self, amount: int) -> None:
        self._burn(amount)

    def _push_pool_share(self, to: str, amount: int) -> None:
        self._push(to, amount)

    def _pull_pool_share(self, src: str, amount: int) -> None:
        self._pull(src, amount)
