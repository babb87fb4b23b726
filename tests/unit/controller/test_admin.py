"""Tests for owner administration: fees, pausing, cap, whitelist and ownership."""

import pytest

from smartpool.constants import BONE, MAX_FEE, MAX_UINT, MIN_FEE
from smartpool.errors import (
    LimitError,
    NotControllerError,
    NotCreatedError,
    PermissionDeniedError,
    ValidationError,
)
from smartpool.events import CapChanged
from smartpool.models.rights import Rights
from tests.helpers import (
    INITIAL_BALANCE,
    INITIAL_SUPPLY,
    INITIAL_WEIGHT,
    SWAP_FEE,
    make_created_pool,
    make_pool,
)

ALL_RIGHTS = Rights(
    can_pause_swapping=True,
    can_change_swap_fee=True,
    can_change_weights=True,
    can_add_remove_tokens=True,
    can_whitelist_lps=True,
    can_change_cap=True,
)


@pytest.fixture
def admin_pool(chain, owner, alice, token_a, token_b):
    """Created pool with every right granted."""
    return make_created_pool(chain, owner, [token_a, token_b], rights=ALL_RIGHTS, funded=[alice])


class TestSwapFee:
    def test_set(self, pool, owner):
        pool.set_swap_fee(MAX_FEE, sender=owner)
        assert pool.get_swap_fee() == MAX_FEE

    def test_bounds_enforced_by_engine(self, pool, owner):
        with pytest.raises(ValidationError) as exc_info:
            pool.set_swap_fee(MAX_FEE + 1, sender=owner)
        assert exc_info.value.code == "ERR_MAX_FEE"
        with pytest.raises(ValidationError) as exc_info:
            pool.set_swap_fee(MIN_FEE - 1, sender=owner)
        assert exc_info.value.code == "ERR_MIN_FEE"
        assert pool.get_swap_fee() == SWAP_FEE

    def test_requires_right(self, chain, owner, token_a, token_b):
        pool = make_created_pool(chain, owner, [token_a, token_b], rights=Rights(can_change_swap_fee=False))
        with pytest.raises(PermissionDeniedError) as exc_info:
            pool.set_swap_fee(MAX_FEE, sender=owner)
        assert exc_info.value.code == "ERR_NOT_CONFIGURABLE_SWAP_FEE"

    def test_owner_only(self, pool, alice):
        with pytest.raises(NotControllerError):
            pool.set_swap_fee(MAX_FEE, sender=alice)

    def test_requires_created_pool(self, chain, owner, token_a, token_b):
        pool = make_pool(chain, owner, [token_a, token_b])
        with pytest.raises(NotCreatedError):
            pool.set_swap_fee(MAX_FEE, sender=owner)


class TestPublicSwap:
    def test_pause_and_resume(self, admin_pool, owner):
        admin_pool.set_public_swap(False, sender=owner)
        assert not admin_pool.is_public_swap()
        admin_pool.set_public_swap(True, sender=owner)
        assert admin_pool.is_public_swap()

    def test_requires_right(self, pool, owner):
        with pytest.raises(PermissionDeniedError) as exc_info:
            pool.set_public_swap(False, sender=owner)
        assert exc_info.value.code == "ERR_NOT_PAUSABLE_SWAP"
        assert pool.is_public_swap()


class TestCap:
    def test_cap_pinned_at_creation(self, admin_pool):
        """With the cap right, the cap starts at the initial supply."""
        assert admin_pool.bsp_cap() == INITIAL_SUPPLY

    def test_unbounded_without_right(self, pool):
        assert pool.bsp_cap() == MAX_UINT

    def test_mint_above_cap_rejected(self, admin_pool, owner, alice):
        admin_pool.whitelist_liquidity_provider(alice, sender=owner)
        with pytest.raises(LimitError) as exc_info:
            admin_pool.join_pool(BONE, [MAX_UINT, MAX_UINT], sender=alice)
        assert exc_info.value.code == "ERR_CAP_LIMIT_REACHED"
        assert admin_pool.total_supply() == INITIAL_SUPPLY

    def test_raise_cap(self, admin_pool, owner, alice):
        admin_pool.set_cap(200 * BONE, sender=owner)

        assert admin_pool.bsp_cap() == 200 * BONE
        assert admin_pool.events[-1] == CapChanged(caller=owner, old_cap=INITIAL_SUPPLY, new_cap=200 * BONE)

        admin_pool.whitelist_liquidity_provider(alice, sender=owner)
        admin_pool.join_pool(BONE, [MAX_UINT, MAX_UINT], sender=alice)
        assert admin_pool.total_supply() == INITIAL_SUPPLY + BONE

    def test_cap_below_supply_allowed(self, admin_pool, owner):
        """Lowering the cap never burns; it only blocks further mints."""
        admin_pool.set_cap(BONE, sender=owner)
        assert admin_pool.total_supply() == INITIAL_SUPPLY
        admin_pool.exit_pool(10 * BONE, [0, 0], sender=owner)
        assert admin_pool.total_supply() == 90 * BONE

    def test_requires_right(self, pool, owner):
        with pytest.raises(PermissionDeniedError) as exc_info:
            pool.set_cap(200 * BONE, sender=owner)
        assert exc_info.value.code == "ERR_CANNOT_CHANGE_CAP"

    def test_owner_only(self, admin_pool, alice):
        with pytest.raises(NotControllerError):
            admin_pool.set_cap(200 * BONE, sender=alice)


class TestWhitelist:
    def test_add_and_remove(self, admin_pool, owner, alice):
        assert not admin_pool.can_provide_liquidity(alice)
        admin_pool.whitelist_liquidity_provider(alice, sender=owner)
        assert admin_pool.can_provide_liquidity(alice)
        admin_pool.remove_whitelisted_liquidity_provider(alice, sender=owner)
        assert not admin_pool.can_provide_liquidity(alice)

    def test_open_pool_accepts_any_address(self, pool, alice, bob):
        assert pool.can_provide_liquidity(alice)
        assert pool.can_provide_liquidity(bob)
        assert not pool.can_provide_liquidity("not-an-address")

    def test_invalid_address(self, admin_pool, owner):
        with pytest.raises(ValidationError) as exc_info:
            admin_pool.whitelist_liquidity_provider("0x1234", sender=owner)
        assert exc_info.value.code == "ERR_INVALID_ADDRESS"

    def test_remove_unlisted(self, admin_pool, owner, alice):
        with pytest.raises(ValidationError) as exc_info:
            admin_pool.remove_whitelisted_liquidity_provider(alice, sender=owner)
        assert exc_info.value.code == "ERR_LP_NOT_WHITELISTED"

    def test_allowed_before_creation(self, chain, owner, alice, token_a, token_b):
        pool = make_pool(chain, owner, [token_a, token_b], rights=ALL_RIGHTS)
        pool.whitelist_liquidity_provider(alice, sender=owner)
        assert pool.can_provide_liquidity(alice)

    def test_requires_right(self, pool, owner, alice):
        with pytest.raises(PermissionDeniedError) as exc_info:
            pool.whitelist_liquidity_provider(alice, sender=owner)
        assert exc_info.value.code == "ERR_CANNOT_WHITELIST_LPS"

    def test_owner_only(self, admin_pool, alice):
        with pytest.raises(NotControllerError):
            admin_pool.whitelist_liquidity_provider(alice, sender=alice)


class TestSetController:
    def test_transfers_ownership(self, pool, owner, alice, token_a):
        pool.set_controller(alice, sender=owner)

        assert pool.get_controller() == alice
        with pytest.raises(NotControllerError):
            pool.set_swap_fee(MAX_FEE, sender=owner)
        pool.set_swap_fee(MAX_FEE, sender=alice)
        assert pool.get_swap_fee() == MAX_FEE

    def test_engine_stays_with_controller(self, pool, owner, alice):
        pool.set_controller(alice, sender=owner)
        assert pool.engine.get_controller() == pool.address

    def test_invalid_address(self, pool, owner):
        with pytest.raises(ValidationError) as exc_info:
            pool.set_controller("nobody", sender=owner)
        assert exc_info.value.code == "ERR_INVALID_ADDRESS"

    def test_owner_only(self, pool, alice):
        with pytest.raises(NotControllerError):
            pool.set_controller(alice, sender=alice)


class TestSnapshot:
    def test_active(self, pool, owner, token_a, token_b):
        snapshot = pool.snapshot()

        assert snapshot.phase == "active"
        assert snapshot.controller == owner
        assert snapshot.total_supply == INITIAL_SUPPLY
        assert snapshot.swap_fee == SWAP_FEE
        assert snapshot.public_swap
        assert snapshot.total_weight == 2 * INITIAL_WEIGHT
        assert [token.symbol for token in snapshot.tokens] == ["AAA", "BBB"]
        assert snapshot.tokens[0].balance == INITIAL_BALANCE
        assert snapshot.tokens[0].address == token_a.address
        assert snapshot.gradual_update is None
        assert snapshot.new_token is None

    def test_uninitialized(self, chain, owner, token_a, token_b):
        pool = make_pool(chain, owner, [token_a, token_b])
        snapshot = pool.snapshot()

        assert snapshot.phase == "uninitialized"
        assert snapshot.total_supply == 0
        assert not snapshot.public_swap
        assert snapshot.total_weight == 2 * INITIAL_WEIGHT
        assert [token.denorm for token in snapshot.tokens] == [INITIAL_WEIGHT, INITIAL_WEIGHT]

    def test_includes_plan(self, pool, owner):
        pool.update_weights_gradually([20 * BONE, 5 * BONE], 10, 110, sender=owner)
        assert pool.snapshot().gradual_update.end_weights == (20 * BONE, 5 * BONE)
