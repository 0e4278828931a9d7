"""Exception hierarchy for quadalloc.

This module defines the structured exceptions raised by the allocation
mechanism. Every failure aborts the whole operation; the category tells the
caller whether the input, the caller's role, the mechanism's state, or the
accounting itself was at fault.
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    STATE = "state"
    ARITHMETIC = "arithmetic"
    ECONOMIC = "economic"
    ASSET = "asset"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    mechanism_id: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    caller: Optional[str] = None
    proposal_id: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "mechanism_id": self.mechanism_id,
            "component": self.component,
            "operation": self.operation,
            "caller": self.caller,
            "proposal_id": self.proposal_id,
            "metadata": self.metadata,
        }


class AllocationError(Exception):
    """Base exception for all quadalloc errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        if self.category != ErrorCategory.SYSTEM:
            parts.append(f"Category: {self.category.value}")

        return " | ".join(parts)


class ValidationError(AllocationError):
    """Malformed input: zero amounts, zero addresses, bad weight/contribution pairs."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.VALIDATION, **kwargs)
        self.field = field
        self.value = value
        self.expected = expected

    def to_dict(self) -> Dict[str, Any]:
        """Convert validation error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "field": self.field,
                "value": str(self.value) if self.value is not None else None,
                "expected": str(self.expected) if self.expected is not None else None,
            }
        )
        return data


class AuthorizationError(AllocationError):
    """Caller lacks the role required for an operation."""

    def __init__(
        self,
        message: str,
        caller: Optional[str] = None,
        required_role: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            category=ErrorCategory.AUTHORIZATION,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.caller = caller
        self.required_role = required_role

    def to_dict(self) -> Dict[str, Any]:
        """Convert authorization error to dictionary."""
        data = super().to_dict()
        data.update({"caller": self.caller, "required_role": self.required_role})
        return data


class StateTransitionError(AllocationError):
    """Operation not legal in the mechanism's or proposal's current state."""

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        expected_state: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.STATE, **kwargs)
        self.current_state = current_state
        self.expected_state = expected_state

    def to_dict(self) -> Dict[str, Any]:
        """Convert state error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "current_state": self.current_state,
                "expected_state": self.expected_state,
            }
        )
        return data


class ReentrancyError(StateTransitionError):
    """A state-mutating operation was entered while another was in progress."""


class PausedError(StateTransitionError):
    """The mechanism is paused."""


class EconomicInvariantError(AllocationError):
    """Vote cost exceeds remaining power, recipient reuse, and similar."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, category=ErrorCategory.ECONOMIC, **kwargs)


class AssetTransferError(AllocationError):
    """A fungible asset transfer failed."""

    def __init__(
        self,
        message: str,
        token: Optional[str] = None,
        amount: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            category=ErrorCategory.ASSET,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.token = token
        self.amount = amount

    def to_dict(self) -> Dict[str, Any]:
        """Convert asset error to dictionary."""
        data = super().to_dict()
        data.update({"token": self.token, "amount": self.amount})
        return data


class ConfigurationError(AllocationError):
    """Configuration error."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.MEDIUM,
            **kwargs,
        )
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "config_key": self.config_key,
                "config_value": str(self.config_value)
                if self.config_value is not None
                else None,
            }
        )
        return data


class FatalError(AllocationError):
    """Fatal error that cannot be recovered from."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message, **kwargs)


class ArithmeticSafetyError(FatalError):
    """Overflow or underflow in tally arithmetic; indicates an accounting bug."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        super().__init__(message, category=ErrorCategory.ARITHMETIC, **kwargs)
        self.operation = operation

    def to_dict(self) -> Dict[str, Any]:
        """Convert arithmetic error to dictionary."""
        data = super().to_dict()
        data.update({"operation": self.operation})
        return data


# Convenience functions for common error patterns
def create_validation_error(
    field: str, value: Any, expected: Any, message: Optional[str] = None
) -> ValidationError:
    """Create a validation error."""
    if message is None:
        message = f"Invalid value for field '{field}': expected {expected}, got {value}"

    return ValidationError(message=message, field=field, value=value, expected=expected)


def create_authorization_error(
    caller: str, required_role: str, operation: Optional[str] = None
) -> AuthorizationError:
    """Create an authorization error."""
    message = f"Caller {caller} is not {required_role}"
    if operation:
        message = f"{message}; cannot {operation}"
    return AuthorizationError(
        message=message, caller=caller, required_role=required_role
    )
