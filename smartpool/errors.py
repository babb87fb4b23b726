"""Smart pool error classes.

Every error carries a stable code (e.g. ``ERR_MIN_BALANCE``) so callers and
the HTTP layer can match on it without parsing messages. Errors are grouped
by category: validation, permission, phase, external call, precision and limit.
"""

from __future__ import annotations


class SmartPoolError(Exception):
    """Base error for controller and engine operations."""

    code: str = "ERR_SMART_POOL"

    def __init__(self, code: str | None = None, detail: str | None = None) -> None:
        if code is not None:
            self.code = code
        self.detail = detail
        message = self.code if detail is None else f"{self.code}: {detail}"
        super().__init__(message)


# =============================================================================
# Validation
# =============================================================================


class ValidationError(SmartPoolError):
    """Malformed input: mismatched lengths, out-of-range weights, fees or balances."""

    code = "ERR_INVALID_PARAMETER"


class NotBoundError(ValidationError):
    """Token is not bound to the engine."""

    code = "ERR_NOT_BOUND"


class AlreadyBoundError(ValidationError):
    """Token is already bound to the engine."""

    code = "ERR_IS_BOUND"


# =============================================================================
# Permissions
# =============================================================================


class PermissionDeniedError(SmartPoolError):
    """Caller lacks the right, ownership or whitelist entry for the operation."""

    code = "ERR_PERMISSION_DENIED"


class NotControllerError(PermissionDeniedError):
    """Caller is not the controller (owner)."""

    code = "ERR_NOT_CONTROLLER"


class NotWhitelistedError(PermissionDeniedError):
    """Caller is not on the liquidity provider whitelist."""

    code = "ERR_NOT_ON_WHITELIST"


# =============================================================================
# Lifecycle phase
# =============================================================================


class PhaseError(SmartPoolError):
    """Operation attempted in the wrong lifecycle phase."""

    code = "ERR_WRONG_PHASE"


class NotCreatedError(PhaseError):
    """The engine has not been created yet."""

    code = "ERR_NOT_CREATED"


class AlreadyCreatedError(PhaseError):
    """The engine was already created."""

    code = "ERR_IS_CREATED"


class GradualUpdateActiveError(PhaseError):
    """A gradual weight update is in progress."""

    code = "ERR_NO_UPDATE_DURING_GRADUAL"


class PendingTokenAddError(PhaseError):
    """A token add has been committed but not applied."""

    code = "ERR_PENDING_TOKEN_ADD"


class TimelockError(PhaseError):
    """The add-token timelock has not elapsed."""

    code = "ERR_TIMELOCK_STILL_COUNTING"


class ReentrancyError(SmartPoolError):
    """The controller is already executing a call."""

    code = "ERR_REENTRY"


# =============================================================================
# External calls
# =============================================================================


class ExternalCallError(SmartPoolError):
    """A token transfer or approval reported failure."""

    code = "ERR_ERC20_FALSE"


class NonConformingTokenError(ExternalCallError):
    """Token failed the zero-value transfer probe."""

    code = "ERR_NONCONFORMING_TOKEN"


# =============================================================================
# Math
# =============================================================================


class PrecisionError(SmartPoolError):
    """A proportional amount rounded to zero."""

    code = "ERR_MATH_APPROX"


class LimitError(SmartPoolError):
    """Slippage bound, ratio cap or supply cap exceeded."""

    code = "ERR_LIMIT"
