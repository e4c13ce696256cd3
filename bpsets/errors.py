"""Structured error taxonomy for BPSets."""
#
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional
# PURPOSE:
# Gives every failure the framework raises a searchable error code, a
# human-readable message and an optional details dictionary.
#
# ERROR CODE FORMAT:
# - BPSET_XXX: Rule lookup, check and fix errors
# - FIX_XXX: Caller-supplied remediation parameter errors
# - CONFIG_XXX: Configuration and metadata source errors
# - SYSTEM_XXX: Anything else
#
# USAGE:
#   from bpsets.errors import BPSetsError, ErrorCode
#
#   raise BPSetsError(
#       ErrorCode.BPSET_NOT_FOUND,
#       "No BPSet named 'EC2Imdsv2Check'",
#       details={"name": "EC2Imdsv2Check"}
#   )
#
class ErrorCode(Enum):
    # BPSet Errors
    BPSET_NOT_FOUND = "BPSET_001"
    BPSET_DUPLICATE = "BPSET_002"
    BPSET_CHECK_FAILED = "BPSET_003"
    BPSET_CHECK_TIMEOUT = "BPSET_004"
    BPSET_FIX_FAILED = "BPSET_005"

    # Fix Parameter Errors
    FIX_PARAMETER_MISSING = "FIX_001"
    FIX_PARAMETER_INVALID = "FIX_002"

    # Config Errors
    CONFIG_INVALID = "CONFIG_001"
    CONFIG_FILE_NOT_FOUND = "CONFIG_002"
    CONFIG_PARSE_ERROR = "CONFIG_003"

    # System Errors
    SYSTEM_INTERNAL_ERROR = "SYSTEM_001"


class BPSetsError(Exception):
    """
    Base exception class for BPSets with structured error information.

    Attributes:
        code: ErrorCode enum value (e.g., "BPSET_001")
        message: Human-readable error message
        details: Optional dictionary with additional context
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}

        # Build exception message with code for easy debugging
        super().__init__(f"[{code.value}] {message}")


class UnknownBPSetError(BPSetsError, KeyError):
    """Raised when a caller names a BPSet that is not registered."""

    def __init__(self, name: str):
        super().__init__(
            ErrorCode.BPSET_NOT_FOUND,
            f"No BPSet named '{name}' is registered",
            details={"name": name},
        )
        self.name = name

    def __str__(self) -> str:
        # KeyError would otherwise wrap the message in quotes
        return Exception.__str__(self)


class DuplicateBPSetError(BPSetsError):
    """Raised when two rules register under the same name."""

    def __init__(self, name: str):
        super().__init__(
            ErrorCode.BPSET_DUPLICATE,
            f"A BPSet named '{name}' is already registered",
            details={"name": name},
        )
        self.name = name


class MissingFixParameterError(BPSetsError, ValueError):
    """Raised by fix() when a declared required parameter was not supplied."""

    def __init__(self, bpset: str, parameter: str):
        super().__init__(
            ErrorCode.FIX_PARAMETER_MISSING,
            f"Required parameter '{parameter}' is missing.",
            details={"bpset": bpset, "parameter": parameter},
        )
        self.parameter = parameter


class InvalidFixParameterError(BPSetsError, ValueError):
    """Raised when a supplied fix parameter cannot be used as given."""

    def __init__(self, bpset: str, parameter: str, reason: str):
        super().__init__(
            ErrorCode.FIX_PARAMETER_INVALID,
            f"Parameter '{parameter}' is invalid: {reason}",
            details={"bpset": bpset, "parameter": parameter},
        )
        self.parameter = parameter


class ConfigError(BPSetsError):
    """Configuration or declarative metadata could not be loaded."""


# ============================================================================
# Convenience Functions
# ============================================================================

def handle_error(
    error: Exception,
    context: Optional[str] = None,
    code: ErrorCode = ErrorCode.SYSTEM_INTERNAL_ERROR,
) -> BPSetsError:
    """
    Convert a generic exception to a BPSetsError.

    Args:
        error: The original exception
        context: Optional context string (e.g., "while checking EC2Imdsv2Check")
        code: Code for errors that are not already BPSetsErrors

    Returns:
        BPSetsError with appropriate code and message
    """
    if isinstance(error, BPSetsError):
        return error

    error_type = type(error).__name__
    message = str(error) or error_type
    if context:
        message = f"{context}: {message}"

    return BPSetsError(
        code=code,
        message=message,
        details={
            "original_type": error_type,
            "original_message": str(error),
        },
    )


__all__ = [
    "ErrorCode",
    "BPSetsError",
    "UnknownBPSetError",
    "DuplicateBPSetError",
    "MissingFixParameterError",
    "InvalidFixParameterError",
    "ConfigError",
    "handle_error",
]
