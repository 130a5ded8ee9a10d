"""Custom exceptions for the mix request application."""

from typing import Dict, Optional


class MixCraftError(Exception):
    """Base exception for all mix request errors."""

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ValidationError(MixCraftError):
    """Raised when required submission fields are missing or malformed."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, str]] = None,
        details: str = None,
    ):
        super().__init__(message, details)
        self.field_errors = dict(field_errors or {})


class SerializationError(MixCraftError):
    """Raised when the serialized song or transition list cannot be parsed."""

    def __init__(self, message: str, field: str = None, details: str = None):
        super().__init__(message, details)
        self.field = field


class StorageError(MixCraftError):
    """Raised when the row store cannot append or read rows."""

    def __init__(self, message: str, operation: str = None, details: str = None):
        super().__init__(message, details)
        self.operation = operation


class TransportError(MixCraftError):
    """Raised when the media transport reports a playback failure."""

    def __init__(self, message: str, state: str = None, details: str = None):
        super().__init__(message, details)
        self.state = state


class TransportNotReady(TransportError):
    """Raised when the transport cannot report its position yet."""


class ConfigurationError(MixCraftError):
    """Raised when there are configuration issues."""

    def __init__(self, message: str, parameter: str = None, details: str = None):
        super().__init__(message, details)
        self.parameter = parameter
