"""
Session outcomes: the single value every Plaidster round trip resolves to.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, List, Optional, Union

from .errors import PlaidsterError
from .models import Account, Challenge, Transaction


@dataclass(frozen=True)
class Authenticated:
    """
    The round trip succeeded.

    ``accounts`` and ``transactions`` are None when the response did not
    include them. Reference-data endpoints fill ``records`` instead, and the
    long-tail listing also sets ``total_count``.
    """
    access_token: Optional[str] = None
    accounts: Optional[List[Account]] = None
    transactions: Optional[List[Transaction]] = None
    records: Optional[List[Any]] = None
    total_count: Optional[int] = None
    message: Optional[str] = None

    ok: ClassVar[bool] = True

    def raise_for_error(self):
        return None


@dataclass(frozen=True)
class ChallengeRequired:
    """The server wants one more answer before it completes the login."""
    challenge: Challenge
    access_token: Optional[str] = None

    ok: ClassVar[bool] = True

    def raise_for_error(self):
        return None


@dataclass(frozen=True)
class Failed:
    """The round trip failed; ``error`` says why."""
    error: PlaidsterError

    ok: ClassVar[bool] = False

    def raise_for_error(self):
        raise self.error


SessionOutcome = Union[Authenticated, ChallengeRequired, Failed]
