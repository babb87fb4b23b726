"""Configurable rights smart pool controller."""

from smartpool.chain import Chain
from smartpool.config import DEFAULT_CONTROLLER_CONFIG, ControllerConfig
from smartpool.controller import ConfigurableRightsPool
from smartpool.engine import WeightedPool
from smartpool.errors import SmartPoolError
from smartpool.models.params import PoolParams
from smartpool.models.rights import DEFAULT_RIGHTS, Rights
from smartpool.tokens import Token

__version__ = "0.1.0"
__all__ = [
    "Chain",
    "ConfigurableRightsPool",
    "ControllerConfig",
    "DEFAULT_CONTROLLER_CONFIG",
    "DEFAULT_RIGHTS",
    "PoolParams",
    "Rights",
    "SmartPoolError",
    "Token",
    "WeightedPool",
    "__version__",
]
