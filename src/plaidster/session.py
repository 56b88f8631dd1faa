"""
Multi-factor login flow.

A ``LoginSession`` drives one login from the first credential submission
through any number of challenge rounds to a terminal success or failure:

    IDLE --submit--> AWAITING_CREDENTIALS
    AWAITING_CREDENTIALS --Authenticated--> AUTHENTICATED
    AWAITING_CREDENTIALS --ChallengeRequired--> AWAITING_CHALLENGE_RESPONSE
    AWAITING_CHALLENGE_RESPONSE --submit_response--> AWAITING_CREDENTIALS
    any round trip --Failed--> FAILED

Calling a method in a state that does not allow it raises
``SessionStateError``. The session is not meant to be shared between
concurrent callers.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .errors import ChallengeLimitExceeded, SessionStateError
from .models import Challenge, ChallengeResponseKind, CredentialSubmission, Product
from .outcomes import Authenticated, ChallengeRequired, Failed, SessionOutcome

if TYPE_CHECKING:
    from .api import PlaidsterClient

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_CREDENTIALS = "awaiting_credentials"
    AWAITING_CHALLENGE_RESPONSE = "awaiting_challenge_response"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class LoginSession:
    """
    State machine for one login attempt.

    Args:
        client: Client used for the round trips
        max_challenge_rounds: Fail instead of surfacing a challenge beyond
            this many rounds. None means no limit.
    """

    def __init__(self, client: "PlaidsterClient", max_challenge_rounds: Optional[int] = None):
        self._client = client
        self._max_challenge_rounds = max_challenge_rounds
        self._log = client.config.logger or logger
        self._state = SessionState.IDLE
        self._product = Product.CONNECT
        self._access_token: Optional[str] = None
        self._challenge: Optional[Challenge] = None
        self._challenge_rounds = 0
        self._outcome: Optional[SessionOutcome] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def challenge(self) -> Optional[Challenge]:
        """The pending challenge, set only while awaiting a response."""
        return self._challenge

    @property
    def challenge_rounds(self) -> int:
        return self._challenge_rounds

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        """Outcome of the most recent round trip."""
        return self._outcome

    @property
    def is_finished(self) -> bool:
        return self._state in (SessionState.AUTHENTICATED, SessionState.FAILED)

    async def submit(self, credentials: CredentialSubmission) -> SessionOutcome:
        """
        Submit the user's credentials.

        Raises:
            SessionStateError: If credentials were already submitted
        """
        self._require(SessionState.IDLE, "submit credentials")
        self._product = credentials.product
        self._state = SessionState.AWAITING_CREDENTIALS
        self._log.debug("Submitting credentials for %s", credentials.institution_type)
        return self._apply(await self._client.login(credentials))

    async def submit_response(self, kind: ChallengeResponseKind, value: str) -> SessionOutcome:
        """
        Answer the pending challenge.

        The kind is passed through as given; the server decides whether it
        fits the challenge.

        Raises:
            SessionStateError: If no challenge is pending
        """
        self._require(SessionState.AWAITING_CHALLENGE_RESPONSE, "submit a challenge response")
        self._state = SessionState.AWAITING_CREDENTIALS
        self._challenge = None
        self._log.debug("Submitting %s response for challenge round %d", kind.value, self._challenge_rounds)
        outcome = await self._client.submit_challenge_response(
            self._access_token, kind, value, product=self._product,
        )
        return self._apply(outcome)

    def _require(self, state: SessionState, action: str):
        if self._state is not state:
            raise SessionStateError(f"Cannot {action} while session is {self._state.value}")

    def _apply(self, outcome: SessionOutcome) -> SessionOutcome:
        if isinstance(outcome, ChallengeRequired):
            self._challenge_rounds += 1
            if self._max_challenge_rounds is not None and self._challenge_rounds > self._max_challenge_rounds:
                outcome = Failed(ChallengeLimitExceeded(self._max_challenge_rounds))
            else:
                # The step endpoint may omit the token; the one from login stays valid.
                self._access_token = outcome.access_token or self._access_token
                self._challenge = outcome.challenge
                self._state = SessionState.AWAITING_CHALLENGE_RESPONSE

        if isinstance(outcome, Authenticated):
            self._access_token = outcome.access_token or self._access_token
            self._state = SessionState.AUTHENTICATED
        elif isinstance(outcome, Failed):
            self._log.info("Login failed: %s", outcome.error)
            self._state = SessionState.FAILED

        self._outcome = outcome
        return outcome
