"""Custom exceptions for the envelope_kv package."""

from __future__ import annotations


class EnvelopeError(Exception):
    """Base exception for all envelope_kv errors."""


class ValidationError(EnvelopeError):
    """Raised when the configured validator rejects a value."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__("Validation failed")


class AccessDeniedError(EnvelopeError):
    """Raised by a plugin hook to veto an operation."""

    def __init__(self, action: str, key: str, reason: str = "") -> None:
        self.action = action
        self.key = key
        self.reason = reason
        msg = f"Access denied for {action} operation on key: {key}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class DecodeError(EnvelopeError):
    """Raised when a stored payload cannot be turned back into an envelope."""


class TransformError(EnvelopeError):
    """Raised when an encryption transform cannot encrypt or decrypt a payload."""


class SubstrateError(EnvelopeError):
    """Raised when a substrate operation fails."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        msg = f"Substrate error during '{operation}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class QuotaExceededError(SubstrateError):
    """Raised when a write would exceed the substrate's capacity."""

    def __init__(self, key: str, quota: int) -> None:
        self.key = key
        self.quota = quota
        super().__init__("set_item", f"quota of {quota} bytes exceeded writing '{key}'")


class PluginError(EnvelopeError):
    """Raised when a plugin cannot be registered."""


class ConfigError(EnvelopeError):
    """Raised when engine configuration is invalid."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"Invalid configuration for '{field}': {message}")
