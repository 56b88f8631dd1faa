"""
Plaidster - An async client for the Plaid connect API.

This package links end-user bank logins and retrieves their financial data:
- Submitting credentials and answering multi-factor challenges
- Reading balances and transactions for a linked user
- Listing categories and institutions, and searching institutions

Every operation resolves to exactly one outcome: ``Authenticated``,
``ChallengeRequired`` or ``Failed``. Errors are returned as values.
"""

from .api import PlaidsterClient, SearchHandle, format_json_date
from .classifier import Classification, ResponseShape, classify
from .config import ClientConfig, Environment
from .errors import (
    ApiError,
    BadAccessToken,
    ChallengeLimitExceeded,
    ConfigurationError,
    EntityDecodeSkipped,
    GenericError,
    InconsistentMFAPayload,
    InstitutionDown,
    ItemNotFound,
    JSONDecodingFailed,
    MissingResponseData,
    PlaidErrorCode,
    PlaidsterError,
    SessionStateError,
    TransportFailure,
)
from .models import (
    Account,
    Category,
    ChallengeResponseKind,
    CredentialSubmission,
    DeviceConfirmChallenge,
    DeviceListChallenge,
    Institution,
    Product,
    QuestionsChallenge,
    SearchInstitution,
    Transaction,
)
from .outcomes import Authenticated, ChallengeRequired, Failed, SessionOutcome
from .session import LoginSession, SessionState

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    "Account",
    "ApiError",
    "Authenticated",
    "BadAccessToken",
    "Category",
    "ChallengeLimitExceeded",
    "ChallengeRequired",
    "ChallengeResponseKind",
    "Classification",
    "ClientConfig",
    "ConfigurationError",
    "CredentialSubmission",
    "DeviceConfirmChallenge",
    "DeviceListChallenge",
    "EntityDecodeSkipped",
    "Environment",
    "Failed",
    "GenericError",
    "InconsistentMFAPayload",
    "Institution",
    "InstitutionDown",
    "ItemNotFound",
    "JSONDecodingFailed",
    "LoginSession",
    "MissingResponseData",
    "PlaidErrorCode",
    "PlaidsterClient",
    "PlaidsterError",
    "Product",
    "QuestionsChallenge",
    "ResponseShape",
    "SearchHandle",
    "SearchInstitution",
    "SessionOutcome",
    "SessionState",
    "Transaction",
    "TransportFailure",
    "classify",
    "format_json_date",
]
