"""
Allion error types.
"""

from typing import Any, Optional


class AllionError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class InvalidReference(AllionError):
    """Asset identifier failed validation (traversal, disallowed separator)."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("invalid_reference", message, details)


class AssetNotFound(AllionError):
    """No candidate root contains the referenced file."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("asset_not_found", message, details)


class UnexpectedIOError(AllionError):
    """Filesystem access failed for a reason other than absence."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("unexpected_io", message, details)


class ChannelDecodeError(AllionError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("channel_decode_error", message, details)


class ConfigError(AllionError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("config_error", message, details)


class ConnectionError(AllionError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
