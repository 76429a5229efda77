from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    MISSING_TITLE = "missing_title"
    PROVIDER_FAILURE = "provider_failure"


class ExtractionError(Exception):
    """Terminal failure of a single extraction call.

    Callers branch on `kind` rather than on the message text.
    """

    def __init__(self, kind: ErrorKind, detail: str = "", cause: Optional[BaseException] = None):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail
        self.cause = cause


class ProviderError(Exception):
    """Transport or provider-side failure raised by a completion provider."""

    def __init__(self, message: str, status_code: Optional[int] = None, transient: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


class ProviderConfigError(RuntimeError):
    """Provider cannot be constructed from the current configuration."""
