"""Tests for asset tokens, safe_approve and the pool share ledger."""

import pytest

from smartpool.constants import MAX_UINT
from smartpool.errors import LimitError, PermissionDeniedError
from smartpool.tokens import PoolShareToken, Token, safe_approve
from tests.helpers import make_token


class ApproveOnceToken(Token):
    """Token that refuses to change a nonzero allowance to another nonzero value."""

    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        if amount != 0 and self.allowance(sender, spender) != 0:
            return False
        return super().approve(spender, amount, sender=sender)


@pytest.fixture
def token(chain):
    return make_token(chain, "AAA")


class TestToken:
    """Boolean-returning transfer semantics."""

    def test_transfer(self, token, alice, bob):
        token.mint(alice, 100)
        assert token.transfer(bob, 40, sender=alice) is True
        assert token.balance_of(alice) == 60
        assert token.balance_of(bob) == 40

    def test_transfer_insufficient_balance_returns_false(self, token, alice, bob):
        """An overdraft reports failure and moves nothing."""
        token.mint(alice, 10)
        assert token.transfer(bob, 11, sender=alice) is False
        assert token.balance_of(alice) == 10
        assert token.balance_of(bob) == 0

    def test_zero_transfer_succeeds(self, token, alice, bob):
        assert token.transfer(bob, 0, sender=alice) is True

    def test_transfer_from_requires_allowance(self, token, alice, bob):
        token.mint(alice, 100)
        assert token.transfer_from(alice, bob, 10, sender=bob) is False
        token.approve(bob, 30, sender=alice)
        assert token.transfer_from(alice, bob, 10, sender=bob) is True
        assert token.allowance(alice, bob) == 20

    def test_infinite_allowance_not_decremented(self, token, alice, bob):
        token.mint(alice, 100)
        token.approve(bob, MAX_UINT, sender=alice)
        token.transfer_from(alice, bob, 10, sender=bob)
        assert token.allowance(alice, bob) == MAX_UINT


class TestSafeApprove:
    def test_sets_allowance(self, token, alice, bob):
        assert safe_approve(token, bob, 50, sender=alice)
        assert token.allowance(alice, bob) == 50

    def test_equal_allowance_is_noop(self, chain, alice, bob):
        """No approve call is made when the allowance already matches."""
        token = make_token(chain, "AAA", ApproveOnceToken)
        token.approve(bob, 50, sender=alice)
        assert safe_approve(token, bob, 50, sender=alice)
        assert token.allowance(alice, bob) == 50

    def test_resets_nonzero_allowance_first(self, chain, alice, bob):
        """Tokens that refuse nonzero -> nonzero changes still get the new allowance."""
        token = make_token(chain, "AAA", ApproveOnceToken)
        token.approve(bob, 50, sender=alice)
        assert token.approve(bob, 60, sender=alice) is False
        assert safe_approve(token, bob, 60, sender=alice)
        assert token.allowance(alice, bob) == 60


class TestPoolShareToken:
    @pytest.fixture
    def shares(self, chain):
        return PoolShareToken(chain, "SPT", "Smart Pool Token")

    def test_mint_and_push(self, shares, alice):
        shares._mint(100)
        shares._push(alice, 40)
        assert shares.total_supply() == 100
        assert shares.balance_of(alice) == 40
        assert shares.balance_of(shares.address) == 60

    def test_pull_and_burn(self, shares, alice):
        shares._mint(100)
        shares._push(alice, 100)
        shares._pull(alice, 30)
        shares._burn(30)
        assert shares.total_supply() == 70
        assert shares.balance_of(alice) == 70

    def test_burn_more_than_held_rejected(self, shares):
        shares._mint(10)
        with pytest.raises(LimitError):
            shares._burn(11)

    def test_transfer_overdraft_raises(self, shares, alice, bob):
        """Share transfers raise instead of returning False."""
        with pytest.raises(LimitError) as exc_info:
            shares.transfer(bob, 1, sender=alice)
        assert exc_info.value.code == "ERR_INSUFFICIENT_BAL"

    def test_transfer_from_without_allowance(self, shares, alice, bob):
        shares._mint(10)
        shares._push(alice, 10)
        with pytest.raises(PermissionDeniedError) as exc_info:
            shares.transfer_from(alice, bob, 5, sender=bob)
        assert exc_info.value.code == "ERR_PCTOKEN_BAD_CALLER"

    def test_transfer_from_with_allowance(self, shares, alice, bob):
        shares._mint(10)
        shares._push(alice, 10)
        shares.approve(bob, 6, sender=alice)
        assert shares.transfer_from(alice, bob, 5, sender=bob)
        assert shares.allowance(alice, bob) == 1
        assert shares.balance_of(bob) == 5

    def test_increase_and_decrease_approval(self, shares, alice, bob):
        shares.increase_approval(bob, 10, sender=alice)
        shares.increase_approval(bob, 5, sender=alice)
        assert shares.allowance(alice, bob) == 15
        shares.decrease_approval(bob, 20, sender=alice)
        assert shares.allowance(alice, bob) == 0
