"""
Pydantic models for Plaidster requests, challenges and decoded entities.

Entity models are lenient about which fields are present but strict about
their types: a record that does not validate is skipped on its own and never
takes the rest of its batch down with it.
"""

import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import EntityDecodeSkipped

logger = logging.getLogger(__name__)


# ============================================================================
# ENUMERATIONS
# ============================================================================

class Product(str, Enum):
    """Product requested when linking an institution."""
    CONNECT = "connect"
    AUTH = "auth"


class MFAType(str, Enum):
    """Value of the ``type`` field that accompanies an ``mfa`` payload."""
    QUESTIONS = "questions"
    LIST = "list"
    DEVICE = "device"


class ChallengeResponseKind(str, Enum):
    """Shape of the answer submitted for a pending challenge."""
    CODE = "code"
    QUESTION = "question"
    DEVICE_TYPE = "device_type"
    DEVICE_MASK = "device_mask"


# ============================================================================
# CREDENTIAL SUBMISSION
# ============================================================================

class CredentialSubmission(BaseModel):
    """End-user credentials for one login attempt."""
    model_config = ConfigDict(frozen=True)

    username: str = Field(..., min_length=1, description="Online banking username")
    password: str = Field(..., min_length=1, repr=False, description="Online banking password")
    pin: Optional[str] = Field(default=None, repr=False, description="PIN, for institutions that require one")
    institution_type: str = Field(..., min_length=1, description="Institution identifier, e.g. 'wells'")
    product: Product = Field(default=Product.CONNECT, description="Product to link")


# ============================================================================
# CHALLENGES
# ============================================================================

class ChallengeModel(BaseModel):
    """Base model for challenge variants."""
    model_config = ConfigDict(frozen=True)


class QuestionsChallenge(ChallengeModel):
    """Security questions, answered in order with free text."""
    questions: List[str] = Field(default_factory=list)


class Device(ChallengeModel):
    """A masked device the user can have a code sent to."""
    mask: Optional[str] = None
    type: Optional[str] = None


class DeviceListChallenge(ChallengeModel):
    """Choose one device to receive a code."""
    devices: List[Device] = Field(default_factory=list)


class DeviceConfirmChallenge(ChallengeModel):
    """A code was sent to a previously chosen device."""
    message: Optional[str] = None


Challenge = Union[QuestionsChallenge, DeviceListChallenge, DeviceConfirmChallenge]


def build_challenge(mfa_type: MFAType, entries: List[Dict[str, Any]]) -> Challenge:
    """
    Build a challenge from a normalized ``mfa`` list.

    A ``device`` payload listing masks is a device list in practice, so the
    entries decide between the two device variants.

    Raises:
        ValidationError: If an entry has the wrong field types
    """
    if mfa_type is MFAType.QUESTIONS:
        return QuestionsChallenge(questions=[entry.get("question") for entry in entries])

    if mfa_type is MFAType.LIST or any("mask" in entry for entry in entries):
        return DeviceListChallenge(devices=[Device.model_validate(entry) for entry in entries])

    message = entries[0].get("message") if entries else None
    return DeviceConfirmChallenge(message=message)


# ============================================================================
# FINANCIAL ENTITIES
# ============================================================================

class EntityModel(BaseModel):
    """Base model for records decoded from API responses."""
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Balance(EntityModel):
    available: Optional[float] = None
    current: Optional[float] = None


class AccountMeta(EntityModel):
    name: Optional[str] = None
    number: Optional[str] = None
    limit: Optional[float] = None
    official_name: Optional[str] = None


class Account(EntityModel):
    """A linked bank account."""
    id: str = Field(..., alias="_id")
    item: Optional[str] = Field(default=None, alias="_item")
    user: Optional[str] = Field(default=None, alias="_user")
    balance: Optional[Balance] = None
    meta: Optional[AccountMeta] = None
    institution_type: Optional[str] = None
    type: Optional[str] = None
    subtype: Optional[str] = None

    @property
    def name(self) -> Optional[str]:
        return self.meta.name if self.meta else None


class TransactionType(EntityModel):
    primary: Optional[str] = None


class Transaction(EntityModel):
    """A posted or pending transaction."""
    id: str = Field(..., alias="_id")
    account: Optional[str] = Field(default=None, alias="_account")
    amount: Optional[float] = None
    transaction_date: Optional[date] = Field(default=None, alias="date")
    name: Optional[str] = None
    pending: bool = False
    pending_transaction: Optional[str] = Field(default=None, alias="_pendingTransaction")
    category: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    type: Optional[TransactionType] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    score: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> Any:
        """The API sends null for uncategorized transactions."""
        if v is None:
            return []
        return v


class Category(EntityModel):
    """A node of the category hierarchy."""
    id: str
    type: Optional[str] = None
    hierarchy: List[str] = Field(default_factory=list)


class InstitutionCredentials(EntityModel):
    username: Optional[str] = None
    password: Optional[str] = None
    pin: Optional[str] = None


class Institution(EntityModel):
    """A supported institution, from the full or long-tail listing."""
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    has_mfa: Optional[bool] = None
    mfa: List[str] = Field(default_factory=list)
    products: List[str] = Field(default_factory=list)
    credentials: Optional[InstitutionCredentials] = None


class SearchInstitution(EntityModel):
    """An institution returned by the search endpoint."""
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    products: Dict[str, bool] = Field(default_factory=dict)
    forgotten_password: Optional[str] = Field(default=None, alias="forgottenPassword")
    account_locked: Optional[str] = Field(default=None, alias="accountLocked")
    account_setup: Optional[str] = Field(default=None, alias="accountSetup")
    video: Optional[str] = None
    logo: Optional[str] = None
    name_break: Optional[int] = Field(default=None, alias="nameBreak")
    colors: Dict[str, Any] = Field(default_factory=dict)
    login_fields: List[Dict[str, Any]] = Field(default_factory=list, alias="fields")


# ============================================================================
# ENTITY DECODING
# ============================================================================

EntityT = TypeVar("EntityT", bound=EntityModel)


def decode_batch(
    model: Type[EntityT],
    records: List[Any],
    log: Optional[logging.Logger] = None,
) -> List[EntityT]:
    """
    Decode a list of raw records, skipping the ones that do not validate.

    Args:
        model: Entity model to validate each record against
        records: Raw JSON values
        log: Logger receiving one warning per skipped record

    Returns:
        The successfully decoded records, in their original order
    """
    log = log or logger
    decoded: List[EntityT] = []
    for index, record in enumerate(records):
        try:
            decoded.append(model.model_validate(record))
        except ValidationError as e:
            skipped = EntityDecodeSkipped(model.__name__, f"record {index}: {e.error_count()} validation error(s)")
            log.warning("%s", skipped)
    return decoded
