"""Exception classes raised by the invoker and its collaborators.

Construction-time errors propagate to the caller. Errors raised by user code
during execution never leave ``Invoker.handle``; they are turned into a
logged message plus a 500 response instead.
"""

from __future__ import annotations

from typing import Any


class FunctionShimError(Exception):
    """Base exception for invoker errors."""


class InvalidTarget(FunctionShimError, ValueError):
    """Raised when a target is neither a registered name nor callable."""

    def __init__(self, target: Any):
        super().__init__(f'Function target is not callable: "{target}"')
        self.target = target


class InvalidSignatureType(FunctionShimError, ValueError):
    """Raised when the signature type is missing or not recognised."""

    def __init__(self, signature_type: str | None):
        shown = "" if signature_type is None else signature_type
        super().__init__(f'Invalid signature type: "{shown}"')
        self.signature_type = signature_type


class InvalidFunctionSignature(FunctionShimError, TypeError):
    """Raised when a callable does not accept the arguments its signature type passes."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            "Wrong number of parameters to your function, "
            f"must be exactly {expected} (got {actual})"
        )
        self.expected = expected
        self.actual = actual


class FunctionSourceNotFound(FunctionShimError, FileNotFoundError):
    """Raised when the configured function source file does not exist."""

    def __init__(self, path: Any):
        super().__init__(f"Function source file not found: {path}")
        self.path = path


class InvalidCloudEvent(FunctionShimError, ValueError):
    """Raised when an inbound request cannot be decoded into a CloudEvent."""


class EventConversionError(InvalidCloudEvent):
    """Raised when a legacy background event cannot be mapped to a CloudEvent."""
