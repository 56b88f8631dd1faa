"""
Response classification.

``classify`` turns the raw result of one request into exactly one outcome:
a transport failure, an API error, a pending challenge, or a success. It is a
pure function of its inputs apart from the warnings logged for skipped
records.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Type

from pydantic import ValidationError

from .errors import (
    InconsistentMFAPayload,
    JSONDecodingFailed,
    MissingResponseData,
    TransportFailure,
    error_for_code,
)
from .models import (
    Account,
    Category,
    EntityModel,
    Institution,
    MFAType,
    SearchInstitution,
    Transaction,
    build_challenge,
    decode_batch,
)
from .outcomes import Authenticated, ChallengeRequired, Failed, SessionOutcome

logger = logging.getLogger(__name__)


class ResponseShape(Enum):
    """What a response is expected to look like, one member per endpoint family."""
    LOGIN = "login"
    MFA_STEP = "mfa_step"
    REMOVE_USER = "remove_user"
    BALANCE = "balance"
    TRANSACTIONS = "transactions"
    CATEGORIES = "categories"
    INSTITUTIONS = "institutions"
    LONGTAIL_INSTITUTIONS = "longtail_institutions"
    SEARCH = "search"
    SEARCH_BY_ID = "search_by_id"

    @property
    def allows_empty_body(self) -> bool:
        """Search endpoints answer "no matches" with an empty body."""
        return self in (ResponseShape.SEARCH, ResponseShape.SEARCH_BY_ID)

    @property
    def is_list(self) -> bool:
        return self in (ResponseShape.CATEGORIES, ResponseShape.INSTITUTIONS, ResponseShape.SEARCH)

    @property
    def may_challenge(self) -> bool:
        return self in (ResponseShape.LOGIN, ResponseShape.MFA_STEP)


_LIST_RECORD_MODELS: Dict[ResponseShape, Type[EntityModel]] = {
    ResponseShape.CATEGORIES: Category,
    ResponseShape.INSTITUTIONS: Institution,
    ResponseShape.SEARCH: SearchInstitution,
}


class Classification(NamedTuple):
    outcome: SessionOutcome
    benign_empty: bool = False


# ============================================================================
# CLASSIFIER
# ============================================================================

def classify(
    body: Optional[bytes],
    error: Optional[str],
    shape: ResponseShape,
    log: Optional[logging.Logger] = None,
) -> Classification:
    """
    Classify the raw result of one request.

    Args:
        body: Response body, None or empty when nothing was received
        error: Transport error description, if the request failed
        shape: Expected response shape for the endpoint
        log: Logger for skipped records

    Returns:
        Classification holding the outcome, and whether it is a benign
        empty success
    """
    log = log or logger

    if error is not None:
        return Classification(Failed(TransportFailure(error)))

    if not body:
        if shape.allows_empty_body:
            return Classification(Authenticated(records=[]), benign_empty=True)
        return Classification(Failed(TransportFailure("no data")))

    try:
        payload = json.loads(body)
    except ValueError as e:
        return Classification(Failed(JSONDecodingFailed(f"Failed to decode JSON response: {e}")))

    if isinstance(payload, dict) and payload.get("code") is not None:
        message = payload.get("message")
        return Classification(Failed(error_for_code(payload["code"], message if isinstance(message, str) else None)))

    expected = list if shape.is_list else dict
    if not isinstance(payload, expected):
        return Classification(Failed(JSONDecodingFailed(
            f"Expected a JSON {expected.__name__} for {shape.value}, got {type(payload).__name__}"
        )))

    if shape.is_list:
        records = decode_batch(_LIST_RECORD_MODELS[shape], payload, log)
        return Classification(Authenticated(records=records))

    return Classification(_classify_object(payload, shape, log))


def _classify_object(payload: Dict[str, Any], shape: ResponseShape, log: logging.Logger) -> SessionOutcome:
    access_token = payload.get("access_token")
    if not isinstance(access_token, str):
        access_token = None

    if shape.may_challenge:
        challenge_outcome = _classify_challenge(payload, access_token)
        if challenge_outcome is not None:
            return challenge_outcome

    if shape is ResponseShape.REMOVE_USER:
        message = payload.get("message")
        return Authenticated(message=message if isinstance(message, str) else None)

    if shape is ResponseShape.LONGTAIL_INSTITUTIONS:
        total_count = payload.get("total_count")
        results = payload.get("results")
        if not isinstance(total_count, int) or isinstance(total_count, bool) or not isinstance(results, list):
            return Failed(JSONDecodingFailed("Long-tail response lacks total_count or results"))
        return Authenticated(records=decode_batch(Institution, results, log), total_count=total_count)

    if shape is ResponseShape.SEARCH_BY_ID:
        try:
            institution = SearchInstitution.model_validate(payload)
        except ValidationError as e:
            return Failed(JSONDecodingFailed(f"Malformed institution: {e.error_count()} validation error(s)"))
        return Authenticated(records=[institution])

    try:
        accounts = _decode_optional_list(payload, "accounts", Account, log)
        transactions = _decode_optional_list(payload, "transactions", Transaction, log)
    except JSONDecodingFailed as e:
        return Failed(e)

    if shape is ResponseShape.LOGIN and access_token is None:
        return Failed(MissingResponseData("No access token returned"))
    if shape is ResponseShape.BALANCE and accounts is None:
        return Failed(MissingResponseData("No accounts returned"))
    if shape is ResponseShape.TRANSACTIONS and transactions is None:
        return Failed(MissingResponseData("No transactions returned"))

    return Authenticated(access_token=access_token, accounts=accounts, transactions=transactions)


def _classify_challenge(payload: Dict[str, Any], access_token: Optional[str]) -> Optional[SessionOutcome]:
    """Outcome for the MFA fields, or None when the response carries none."""
    raw_type = payload.get("type")
    raw_mfa = payload.get("mfa")

    if raw_type is None and raw_mfa is None:
        return None
    if raw_type is None or raw_mfa is None:
        return Failed(InconsistentMFAPayload())

    try:
        mfa_type = MFAType(raw_type)
    except ValueError:
        return Failed(InconsistentMFAPayload(f"Unknown MFA type: {raw_type!r}"))

    # The step endpoint sometimes sends a bare object instead of a list of one.
    entries = [raw_mfa] if isinstance(raw_mfa, dict) else raw_mfa
    if not isinstance(entries, list) or not all(isinstance(entry, dict) for entry in entries):
        return Failed(JSONDecodingFailed("Malformed MFA payload"))

    try:
        challenge = build_challenge(mfa_type, entries)
    except ValidationError as e:
        return Failed(JSONDecodingFailed(f"Malformed MFA payload: {e.error_count()} validation error(s)"))

    return ChallengeRequired(challenge=challenge, access_token=access_token)


def _decode_optional_list(
    payload: Dict[str, Any],
    key: str,
    model: Type[EntityModel],
    log: logging.Logger,
) -> Optional[List[Any]]:
    raw = payload.get(key)
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise JSONDecodingFailed(f"'{key}' is not a list")
    return decode_batch(model, raw, log)
