"""Pytest configuration and fixtures."""

import pytest

from smartpool.chain import Chain
from smartpool.controller.pool import ConfigurableRightsPool
from smartpool.tokens import Token
from tests.helpers import make_created_pool, make_token


@pytest.fixture
def chain() -> Chain:
    """Fresh chain at block 1."""
    return Chain()


@pytest.fixture
def owner(chain: Chain) -> str:
    """Pool creator and controller."""
    return chain.new_address("owner")


@pytest.fixture
def alice(chain: Chain) -> str:
    """Liquidity provider."""
    return chain.new_address("alice")


@pytest.fixture
def bob(chain: Chain) -> str:
    """Second liquidity provider, never funded."""
    return chain.new_address("bob")


@pytest.fixture
def token_a(chain: Chain) -> Token:
    return make_token(chain, "AAA")


@pytest.fixture
def token_b(chain: Chain) -> Token:
    return make_token(chain, "BBB")


@pytest.fixture
def token_c(chain: Chain) -> Token:
    """Token outside the default pool, for add-token tests."""
    return make_token(chain, "CCC")


@pytest.fixture
def pool(chain: Chain, owner: str, alice: str, token_a: Token, token_b: Token) -> ConfigurableRightsPool:
    """Created two-asset pool with default rights and config.

    Weights 10/10, balances 1000/1000, supply 100 held by the owner.
    The owner and alice hold and have approved both tokens.
    """
    return make_created_pool(chain, owner, [token_a, token_b], funded=[alice])
