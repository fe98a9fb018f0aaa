"""
Tabber error types.

Every error carries a stable `code` for callers that branch on the failure
kind and an optional `details` dict with the context the message summarizes.
"""

from typing import Any, Optional


class TabberError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class OptionsError(TabberError):
    """An options change the controller cannot accept; nothing was changed."""

    def __init__(self, message: str, code: str = "options_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class RemoteStoreError(TabberError):
    """Reading or writing the remote key-value store failed."""

    def __init__(self, message: str, code: str = "remote_store_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)

    @property
    def status_code(self) -> Optional[int]:
        return (self.details or {}).get("status_code")


class ProviderError(TabberError):
    """A tab provider call failed. `operation` names the call when known."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__("provider_error", message, {"operation": operation} if operation else None)

    @property
    def operation(self) -> Optional[str]:
        return (self.details or {}).get("operation")
