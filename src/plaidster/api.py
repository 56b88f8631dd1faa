"""
Plaidster API Client - Handles all communication with the Plaid connect API.

SECURITY AUDIT NOTES:
- All requests go ONLY to the base URL of the configured environment
- Client secret, user passwords and PINs are NEVER logged in clear text
- Access tokens are handed to the caller and never stored by the library
- Every operation resolves to exactly one outcome value; failures are
  returned, not raised

Legacy API documentation: https://plaid.com/docs/legacy/api/
"""

import asyncio
import json
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Optional, Union

import httpx

from .classifier import ResponseShape, classify
from .config import ClientConfig
from .errors import TransportFailure
from .models import ChallengeResponseKind, CredentialSubmission, Product
from .outcomes import Failed, SessionOutcome
from .session import LoginSession
from .transport import Transport

logger = logging.getLogger(__name__)


# ============================================================================
# WIRE HELPERS
# ============================================================================

def format_json_date(value: Union[date, datetime]) -> str:
    """
    Format a date the way the API expects it: ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Plain dates are taken as midnight UTC and naive datetimes as UTC.
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def encode_options(options: Dict[str, Any]) -> str:
    """Serialize an ``options`` field to the JSON string sent on the wire."""
    return json.dumps(options, separators=(",", ":"))


# ============================================================================
# SEARCH HANDLE
# ============================================================================

class SearchHandle:
    """
    An in-flight institution search.

    Await the handle (or ``result()``) for the outcome. ``cancel()`` aborts
    the request; the outcome is then a transport failure.
    """

    def __init__(self, task: "asyncio.Task[SessionOutcome]"):
        self._task = task

    def cancel(self) -> bool:
        return self._task.cancel()

    def done(self) -> bool:
        return self._task.done()

    async def result(self) -> SessionOutcome:
        await asyncio.wait({self._task})
        if self._task.cancelled():
            return Failed(TransportFailure("Request cancelled"))
        return self._task.result()

    def __await__(self):
        return self.result().__await__()


# ============================================================================
# API CLIENT
# ============================================================================

class PlaidsterClient:
    """
    Async client for the Plaid connect API.

    All methods in this class:
    - Only contact the configured environment
    - Return one outcome (Authenticated, ChallengeRequired or Failed)
    - Never raise for transport or server errors
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Plaidster client.

        Args:
            config: Client configuration. If not provided, loaded from the environment.
            http_client: Optional httpx client to send requests with. The caller
                keeps ownership of a client passed in here.
        """
        self.config = config or ClientConfig.from_environment()
        self._transport = Transport(self.config, http_client)
        self._log = self.config.logger or logger

    async def close(self):
        """Close HTTP client."""
        await self._transport.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    def _url(self, path: str) -> str:
        return f"{self.config.base_url}{path}"

    def _auth_fields(self, **fields) -> Dict[str, Any]:
        """Client credentials plus the operation's own fields."""
        return {"client_id": self.config.client_id, "secret": self.config.secret, **fields}

    async def _round_trip(
        self,
        shape: ResponseShape,
        method: str,
        path: str,
        form: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> SessionOutcome:
        """
        Make one request and classify its result.

        Args:
            shape: Expected response shape
            method: HTTP method (GET, POST, DELETE)
            path: Path relative to the environment base URL
            form: Form body fields
            params: Query parameters

        Returns:
            The outcome of the round trip
        """
        result = await self._transport.execute(method, self._url(path), form=form, params=params)
        classification = classify(result.content, result.error, shape, self._log)
        if classification.benign_empty:
            self._log.debug("%s %s returned an empty body, treating as no results", method, path)
        return classification.outcome

    # ========================================================================
    # LOGIN AND MFA
    # ========================================================================

    def start_login(self) -> LoginSession:
        """Create a login session that tracks challenge rounds for one user."""
        return LoginSession(self, max_challenge_rounds=self.config.max_challenge_rounds)

    async def login(self, credentials: CredentialSubmission) -> SessionOutcome:
        """Submit user credentials for an institution."""
        form = self._auth_fields(
            username=credentials.username,
            password=credentials.password,
            type=credentials.institution_type,
            options=encode_options({"list": True}),
        )
        if credentials.pin is not None:
            form["pin"] = credentials.pin

        return await self._round_trip(ResponseShape.LOGIN, "POST", credentials.product.value, form=form)

    async def submit_challenge_response(
        self,
        access_token: str,
        kind: ChallengeResponseKind,
        value: str,
        product: Product = Product.CONNECT,
    ) -> SessionOutcome:
        """
        Answer a challenge with the access token issued alongside it.

        Codes and question answers are sent as ``mfa``; device choices are
        sent as a ``send_method`` option, by device type or by mask.
        """
        form = self._auth_fields(access_token=access_token)
        if kind in (ChallengeResponseKind.CODE, ChallengeResponseKind.QUESTION):
            form["mfa"] = value
        elif kind is ChallengeResponseKind.DEVICE_TYPE:
            form["options"] = encode_options({"send_method": {"type": value}})
        else:
            form["options"] = encode_options({"send_method": {"mask": value}})

        return await self._round_trip(ResponseShape.MFA_STEP, "POST", f"{product.value}/step", form=form)

    async def remove_user(self, access_token: str) -> SessionOutcome:
        """Unlink a user. The outcome's ``message`` holds the server's confirmation."""
        form = self._auth_fields(access_token=access_token)
        return await self._round_trip(ResponseShape.REMOVE_USER, "DELETE", "connect", form=form)

    # ========================================================================
    # ACCOUNT AND TRANSACTION OPERATIONS
    # ========================================================================

    async def fetch_balances(self, access_token: str) -> SessionOutcome:
        """Get current balances for every account of a user."""
        params = self._auth_fields(access_token=access_token)
        return await self._round_trip(ResponseShape.BALANCE, "GET", "balance", params=params)

    async def fetch_transactions(
        self,
        access_token: str,
        include_pending: bool = True,
        begin: Optional[Union[date, datetime]] = None,
        end: Optional[Union[date, datetime]] = None,
    ) -> SessionOutcome:
        """Get transactions for a user, optionally within a date range."""
        options: Dict[str, Any] = {"pending": include_pending}
        if begin is not None:
            options["gte"] = format_json_date(begin)
        if end is not None:
            options["lte"] = format_json_date(end)

        params = self._auth_fields(access_token=access_token, options=encode_options(options))
        return await self._round_trip(ResponseShape.TRANSACTIONS, "GET", "connect", params=params)

    # ========================================================================
    # REFERENCE DATA
    # ========================================================================

    async def fetch_categories(self) -> SessionOutcome:
        """Get the full category hierarchy."""
        return await self._round_trip(ResponseShape.CATEGORIES, "GET", "categories")

    async def fetch_institutions(self) -> SessionOutcome:
        """Get the major supported institutions."""
        return await self._round_trip(ResponseShape.INSTITUTIONS, "GET", "institutions")

    async def fetch_longtail_institutions(self, count: int, offset: int) -> SessionOutcome:
        """Get one page of long-tail institutions; ``total_count`` is set on success."""
        form = self._auth_fields(count=count, offset=offset)
        return await self._round_trip(ResponseShape.LONGTAIL_INSTITUTIONS, "POST", "institutions/longtail", form=form)

    def search_institutions(
        self,
        query: Optional[str] = None,
        product: Optional[Product] = None,
        institution_id: Optional[str] = None,
    ) -> SearchHandle:
        """
        Search institutions by name, or look one up by id.

        Must be called from a running event loop. No matches is an empty
        success, not an error.

        Raises:
            ValueError: Unless exactly one of query and institution_id is given
        """
        if (query is None) == (institution_id is None):
            raise ValueError("Pass exactly one of query or institution_id")

        if institution_id is not None:
            coro = self._round_trip(
                ResponseShape.SEARCH_BY_ID, "GET", "institutions/search", params={"id": institution_id},
            )
        else:
            params: Dict[str, Any] = {"q": query}
            if product is not None:
                params["p"] = product.value
            coro = self._round_trip(ResponseShape.SEARCH, "GET", "institutions/search", params=params)

        return SearchHandle(asyncio.create_task(coro))
