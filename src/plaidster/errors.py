"""
Plaidster error taxonomy.

Every round trip ends in exactly one outcome. Failures are carried as
instances of the classes below inside a ``Failed`` outcome; they are only
raised when the caller asks for it (``outcome.raise_for_error()``) or when
the caller breaks the login session contract (``SessionStateError``).
"""

from enum import IntEnum
from typing import Any, Optional


# ============================================================================
# SERVER ERROR CODES
# ============================================================================

class PlaidErrorCode(IntEnum):
    """Server-defined error codes with a stable meaning."""
    BAD_ACCESS_TOKEN = 1105
    INVALID_CREDENTIALS = 1200
    INSTITUTION_DOWN = 1300
    PRODUCT_NOT_FOUND = 1600
    ITEM_NOT_FOUND = 1601


# ============================================================================
# BASE CLASSES
# ============================================================================

class PlaidsterError(Exception):
    """
    Base exception for all Plaidster errors.

    Errors compare by type and arguments so that outcomes carrying them can
    be compared as values.
    """

    def __eq__(self, other):
        if not isinstance(other, PlaidsterError):
            return NotImplemented
        return type(self) is type(other) and self.args == other.args

    def __hash__(self):
        return hash((type(self), self.args))


class ConfigurationError(PlaidsterError):
    """Client id or secret could not be resolved."""
    pass


class SessionStateError(PlaidsterError):
    """A login session method was called in a state that does not allow it."""
    pass


class TransportFailure(PlaidsterError):
    """Network error, timeout, cancellation or an empty response."""

    def __init__(self, description: str):
        self.description = description
        super().__init__(description)


class ApiError(PlaidsterError):
    """The server answered, but the answer is an error or unusable."""
    pass


# ============================================================================
# SERVER-DECLARED ERRORS
# ============================================================================

class ServerError(ApiError):
    """An error the server declared through the ``{code, message}`` envelope."""

    def __init__(self, code: Any, message: Optional[str] = None):
        self.code = code
        self.message = message
        super().__init__(f"Plaid error {code}: {message or 'no message'}")


class InstitutionDown(ServerError):
    pass


class BadAccessToken(ServerError):
    pass


class ItemNotFound(ServerError):
    pass


class GenericError(ServerError):
    """Any server code without a dedicated class. Keeps the raw code and message."""

    @property
    def kind(self) -> Optional[PlaidErrorCode]:
        """The known ``PlaidErrorCode`` for this code, if there is one."""
        try:
            return PlaidErrorCode(self.code)
        except ValueError:
            return None


_NAMED_ERRORS = {
    PlaidErrorCode.INSTITUTION_DOWN: InstitutionDown,
    PlaidErrorCode.BAD_ACCESS_TOKEN: BadAccessToken,
    PlaidErrorCode.ITEM_NOT_FOUND: ItemNotFound,
}


def error_for_code(code: Any, message: Optional[str] = None) -> ServerError:
    """
    Map a non-null server ``code`` to its error.

    Integer codes and numeric strings are compared against the named codes;
    anything else becomes a ``GenericError`` carrying the raw value.

    Args:
        code: The ``code`` field of the response envelope (never None)
        message: The ``message`` field, if any

    Returns:
        The matching ``ServerError`` instance
    """
    normalized = code
    if isinstance(code, str) and code.strip().lstrip("-").isdigit():
        normalized = int(code)

    if isinstance(normalized, int) and not isinstance(normalized, bool):
        error_class = _NAMED_ERRORS.get(normalized)
        if error_class is not None:
            return error_class(normalized, message)

    return GenericError(normalized, message)


# ============================================================================
# PROTOCOL ERRORS
# ============================================================================

class JSONDecodingFailed(ApiError):
    """Response body is not valid JSON or not of the expected JSON type."""

    def __init__(self, detail: str = "Failed to decode JSON response"):
        self.detail = detail
        super().__init__(detail)


class InconsistentMFAPayload(ApiError):
    """Only one of the ``type`` and ``mfa`` fields was present."""

    def __init__(self, detail: str = "Missing MFA information"):
        self.detail = detail
        super().__init__(detail)


class MissingResponseData(ApiError):
    """A success envelope lacked the data its endpoint always returns."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ChallengeLimitExceeded(ApiError):
    """The server kept issuing challenges past the configured round limit."""

    def __init__(self, rounds: int):
        self.rounds = rounds
        super().__init__(f"Gave up after {rounds} challenge rounds")


# ============================================================================
# PER-RECORD DECODE ERRORS
# ============================================================================

class EntityDecodeSkipped(PlaidsterError):
    """A single record failed to decode and was left out of its batch."""

    def __init__(self, model: str, reason: str):
        self.model = model
        self.reason = reason
        super().__init__(f"Skipped malformed {model} record: {reason}")
