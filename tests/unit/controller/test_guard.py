"""Tests for the reentrancy guard and call atomicity."""

import pytest

from smartpool.constants import BONE, MAX_UINT
from smartpool.controller.guard import Guard
from smartpool.errors import ExternalCallError, LimitError, ReentrancyError
from tests.helpers import INITIAL_BALANCE, INITIAL_SUPPLY, WALLET_BALANCE, HookedToken, make_created_pool, make_token
from tests.helpers.factories import fund


class TestGuard:
    def test_starts_free(self):
        guard = Guard()
        assert not guard.locked
        guard.check_free()

    def test_hold_locks(self):
        guard = Guard()
        with guard.hold():
            assert guard.locked
            with pytest.raises(ReentrancyError):
                guard.check_free()
        assert not guard.locked

    def test_nested_hold_rejected(self):
        guard = Guard()
        with guard.hold():
            with pytest.raises(ReentrancyError) as exc_info:
                with guard.hold():
                    pass
            assert exc_info.value.code == "ERR_REENTRY"
            assert guard.locked

    def test_released_after_exception(self):
        guard = Guard()
        with pytest.raises(RuntimeError):
            with guard.hold():
                raise RuntimeError("boom")
        assert not guard.locked


@pytest.fixture
def hooked(chain):
    return make_token(chain, "HKD", HookedToken)


@pytest.fixture
def hooked_pool(chain, owner, alice, hooked, token_b):
    return make_created_pool(chain, owner, [hooked, token_b], funded=[alice])


class TestReentrancy:
    def test_reentrant_join_rejected(self, hooked_pool, hooked, alice):
        """A token calling back into the pool aborts the outer call."""

        def reenter():
            hooked_pool.join_pool(BONE, [MAX_UINT, MAX_UINT], sender=alice)

        hooked.hook = reenter
        with pytest.raises(ReentrancyError):
            hooked_pool.join_pool(10 * BONE, [MAX_UINT, MAX_UINT], sender=alice)

        assert hooked_pool.balance_of(alice) == 0
        assert hooked_pool.total_supply() == INITIAL_SUPPLY
        assert hooked_pool.get_balance(hooked) == INITIAL_BALANCE
        assert hooked.balance_of(alice) == WALLET_BALANCE
        assert hooked_pool.is_public_swap()

    def test_lock_released_after_rejection(self, hooked_pool, hooked, alice):
        hooked.hook = lambda: hooked_pool.join_pool(BONE, [MAX_UINT, MAX_UINT], sender=alice)
        with pytest.raises(ReentrancyError):
            hooked_pool.join_pool(10 * BONE, [MAX_UINT, MAX_UINT], sender=alice)

        hooked.hook = None
        hooked_pool.join_pool(10 * BONE, [MAX_UINT, MAX_UINT], sender=alice)
        assert hooked_pool.balance_of(alice) == 10 * BONE

    def test_view_during_call_rejected(self, hooked_pool, hooked, alice):
        hooked.hook = hooked_pool.total_supply
        with pytest.raises(ReentrancyError) as exc_info:
            hooked_pool.join_pool(10 * BONE, [MAX_UINT, MAX_UINT], sender=alice)
        assert exc_info.value.code == "ERR_REENTRY"

    def test_reentrant_admin_call_rejected(self, hooked_pool, hooked, owner, alice):
        hooked.hook = lambda: hooked_pool.set_controller(alice, sender=owner)
        with pytest.raises(ReentrancyError):
            hooked_pool.join_pool(10 * BONE, [MAX_UINT, MAX_UINT], sender=alice)
        assert hooked_pool.get_controller() == owner


class TestAtomicity:
    def test_failed_call_leaves_no_events(self, pool, owner):
        events_before = list(pool.events)
        with pytest.raises(LimitError):
            pool.exit_pool(10 * BONE, [MAX_UINT, 0], sender=owner)
        assert pool.events == events_before

    def test_failure_after_transfers_rolls_back(self, pool, bob, token_a):
        """The first asset is pulled before the second pull fails."""
        fund(token_a, bob, pool.address)
        with pytest.raises(ExternalCallError):
            pool.join_pool(10 * BONE, [MAX_UINT, MAX_UINT], sender=bob)

        assert token_a.balance_of(bob) == WALLET_BALANCE
        assert pool.get_balance(token_a) == INITIAL_BALANCE
        assert pool.balance_of(bob) == 0
        assert pool.is_public_swap()

    def test_successful_calls_log(self, pool, owner, alice):
        count = len(pool.events)
        pool.poke_weights(sender=alice)
        pool.set_controller(owner, sender=owner)
        assert len(pool.events) == count + 2
