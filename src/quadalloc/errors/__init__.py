"""quadalloc error handling.

Structured exceptions for the allocation mechanism, grouped by the kind of
failure: input validation, authorization, state-machine violations,
arithmetic safety, economic invariants, and asset transfers.
"""

from .exceptions import (
    AllocationError,
    ArithmeticSafetyError,
    AssetTransferError,
    AuthorizationError,
    ConfigurationError,
    EconomicInvariantError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    FatalError,
    PausedError,
    ReentrancyError,
    StateTransitionError,
    ValidationError,
    create_authorization_error,
    create_validation_error,
)

__all__ = [
    "AllocationError",
    "ArithmeticSafetyError",
    "AssetTransferError",
    "AuthorizationError",
    "ConfigurationError",
    "EconomicInvariantError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "FatalError",
    "PausedError",
    "ReentrancyError",
    "StateTransitionError",
    "ValidationError",
    "create_authorization_error",
    "create_validation_error",
]
