"""Tests for the in-memory weighted pool engine."""

import pytest

from smartpool.constants import BONE, MAX_FEE, MAX_UINT, MIN_BALANCE, MIN_FEE, MIN_WEIGHT
from smartpool.engine import WeightedPool
from smartpool.errors import (
    AlreadyBoundError,
    ExternalCallError,
    LimitError,
    NotBoundError,
    NotControllerError,
    PermissionDeniedError,
    ValidationError,
)
from smartpool.math import calc_out_given_in
from tests.helpers import INITIAL_BALANCE, INITIAL_WEIGHT, WALLET_BALANCE, make_token
from tests.helpers.factories import fund


@pytest.fixture
def controller(chain):
    return chain.new_address("controller")


@pytest.fixture
def engine(chain, controller):
    return WeightedPool(chain, controller)


@pytest.fixture
def tokens(chain, controller, engine, alice):
    tokens = [make_token(chain, "AAA"), make_token(chain, "BBB")]
    for token in tokens:
        fund(token, controller, engine.address)
        fund(token, alice, engine.address)
    return tokens


@pytest.fixture
def bound(engine, tokens, controller):
    for token in tokens:
        engine.bind(token, INITIAL_BALANCE, INITIAL_WEIGHT, sender=controller)
    return engine


class TestBinding:
    def test_bind_pulls_balance(self, bound, tokens, controller):
        token_a, _ = tokens
        assert bound.is_bound(token_a)
        assert bound.get_balance(token_a) == INITIAL_BALANCE
        assert token_a.balance_of(bound.address) == INITIAL_BALANCE
        assert token_a.balance_of(controller) == WALLET_BALANCE - INITIAL_BALANCE
        assert bound.get_total_denormalized_weight() == 2 * INITIAL_WEIGHT

    def test_normalized_weight(self, bound, tokens):
        assert bound.get_normalized_weight(tokens[0]) == BONE // 2

    def test_bind_twice_rejected(self, bound, tokens, controller):
        with pytest.raises(AlreadyBoundError):
            bound.bind(tokens[0], INITIAL_BALANCE, INITIAL_WEIGHT, sender=controller)

    def test_only_controller(self, engine, tokens, alice):
        with pytest.raises(NotControllerError):
            engine.bind(tokens[0], INITIAL_BALANCE, INITIAL_WEIGHT, sender=alice)

    def test_bind_without_funds_leaves_nothing_bound(self, chain, engine, controller):
        """A failed pull undoes the half-finished bind."""
        token = make_token(chain, "EMPTY")
        token.approve(engine.address, MAX_UINT, sender=controller)
        with pytest.raises(ExternalCallError):
            engine.bind(token, INITIAL_BALANCE, INITIAL_WEIGHT, sender=controller)
        assert not engine.is_bound(token)
        assert engine.get_num_tokens() == 0
        assert engine.get_total_denormalized_weight() == 0

    def test_unbound_token_rejected(self, engine, tokens):
        with pytest.raises(NotBoundError):
            engine.get_balance(tokens[0])


class TestRebind:
    def test_weight_below_min(self, bound, tokens, controller):
        with pytest.raises(ValidationError) as exc_info:
            bound.rebind(tokens[0], INITIAL_BALANCE, MIN_WEIGHT - 1, sender=controller)
        assert exc_info.value.code == "ERR_MIN_WEIGHT"

    def test_balance_below_min(self, bound, tokens, controller):
        with pytest.raises(ValidationError) as exc_info:
            bound.rebind(tokens[0], MIN_BALANCE - 1, INITIAL_WEIGHT, sender=controller)
        assert exc_info.value.code == "ERR_MIN_BALANCE"

    def test_total_weight_cap(self, bound, tokens, controller):
        """Two tokens cannot sum past the total weight cap."""
        with pytest.raises(ValidationError) as exc_info:
            bound.rebind(tokens[0], INITIAL_BALANCE, 41 * BONE, sender=controller)
        assert exc_info.value.code == "ERR_MAX_TOTAL_WEIGHT"

    def test_lower_balance_pushes_to_controller(self, bound, tokens, controller):
        token_a, _ = tokens
        bound.rebind(token_a, INITIAL_BALANCE // 2, INITIAL_WEIGHT, sender=controller)
        assert bound.get_balance(token_a) == INITIAL_BALANCE // 2
        assert token_a.balance_of(controller) == WALLET_BALANCE - INITIAL_BALANCE // 2

    def test_weight_change_updates_total(self, bound, tokens, controller):
        bound.rebind(tokens[0], INITIAL_BALANCE, 15 * BONE, sender=controller)
        assert bound.get_total_denormalized_weight() == 25 * BONE


class TestUnbind:
    def test_unbind_returns_balance(self, bound, tokens, controller):
        token_a, token_b = tokens
        bound.unbind(token_a, sender=controller)
        assert not bound.is_bound(token_a)
        assert bound.get_current_tokens() == [token_b]
        assert token_a.balance_of(controller) == WALLET_BALANCE
        assert bound.get_total_denormalized_weight() == INITIAL_WEIGHT

    def test_last_token_moves_into_slot(self, chain, bound, tokens, controller):
        token_c = make_token(chain, "CCC")
        fund(token_c, controller, bound.address)
        bound.bind(token_c, INITIAL_BALANCE, INITIAL_WEIGHT, sender=controller)
        bound.unbind(tokens[0], sender=controller)
        assert bound.get_current_tokens() == [token_c, tokens[1]]


class TestSwapFee:
    def test_bounds(self, engine, controller):
        with pytest.raises(ValidationError, match="ERR_MIN_FEE"):
            engine.set_swap_fee(MIN_FEE - 1, sender=controller)
        with pytest.raises(ValidationError, match="ERR_MAX_FEE"):
            engine.set_swap_fee(MAX_FEE + 1, sender=controller)
        engine.set_swap_fee(MAX_FEE, sender=controller)
        assert engine.get_swap_fee() == MAX_FEE


class TestSwaps:
    def test_swap_requires_public_swap(self, bound, tokens, alice):
        token_a, token_b = tokens
        with pytest.raises(PermissionDeniedError, match="ERR_SWAP_NOT_PUBLIC"):
            bound.swap_exact_amount_in(token_a, BONE, token_b, 0, MAX_UINT, sender=alice)

    def test_swap_exact_amount_in(self, bound, tokens, controller, alice):
        token_a, token_b = tokens
        bound.set_public_swap(True, sender=controller)
        amount_in = 10 * BONE
        expected = calc_out_given_in(
            INITIAL_BALANCE, INITIAL_WEIGHT, INITIAL_BALANCE, INITIAL_WEIGHT, amount_in, MIN_FEE
        )

        amount_out, _ = bound.swap_exact_amount_in(token_a, amount_in, token_b, 0, MAX_UINT, sender=alice)

        assert amount_out == expected
        assert bound.get_balance(token_a) == INITIAL_BALANCE + amount_in
        assert bound.get_balance(token_b) == INITIAL_BALANCE - amount_out
        assert token_b.balance_of(alice) == WALLET_BALANCE + amount_out

    def test_swap_exact_amount_out(self, bound, tokens, controller, alice):
        token_a, token_b = tokens
        bound.set_public_swap(True, sender=controller)
        amount_in, _ = bound.swap_exact_amount_out(token_a, MAX_UINT, token_b, 10 * BONE, MAX_UINT, sender=alice)
        assert amount_in > 10 * BONE
        assert token_b.balance_of(alice) == WALLET_BALANCE + 10 * BONE

    def test_failed_swap_changes_nothing(self, bound, tokens, controller, alice):
        token_a, token_b = tokens
        bound.set_public_swap(True, sender=controller)
        with pytest.raises(LimitError, match="ERR_LIMIT_OUT"):
            bound.swap_exact_amount_in(token_a, 10 * BONE, token_b, 10 * BONE, MAX_UINT, sender=alice)
        assert bound.get_balance(token_a) == INITIAL_BALANCE
        assert token_a.balance_of(alice) == WALLET_BALANCE

    def test_max_in_ratio(self, bound, tokens, controller, alice):
        token_a, token_b = tokens
        bound.set_public_swap(True, sender=controller)
        with pytest.raises(LimitError, match="ERR_MAX_IN_RATIO"):
            bound.swap_exact_amount_in(token_a, INITIAL_BALANCE, token_b, 0, MAX_UINT, sender=alice)
