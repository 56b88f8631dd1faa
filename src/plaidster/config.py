"""
Client configuration for Plaidster.

SECURITY NOTES:
- Requests go ONLY to the base URL of the selected environment
- The client secret is read from the environment or the OS keyring
- The secret, user passwords and PINs are NEVER logged in clear text
- End-user credentials and access tokens are never persisted
"""

import logging
import os
from enum import Enum
from typing import Optional

import keyring
from keyring.errors import KeyringError
from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError

# ============================================================================
# CONSTANTS
# ============================================================================

KEYRING_SERVICE = "plaidster"
KEYRING_USERNAME = "client_secret"
DEFAULT_TIMEOUT = 60.0  # seconds


class Environment(str, Enum):
    """API environment, each with a fixed base URL."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @property
    def base_url(self) -> str:
        if self is Environment.PRODUCTION:
            return "https://api.plaid.com/"
        return "https://tartan.plaid.com/"


# ============================================================================
# SECRET MANAGEMENT
# ============================================================================

def get_secret() -> str:
    """
    Retrieve the client secret from secure storage.

    Priority:
    1. Environment variable PLAID_SECRET
    2. OS keyring

    Raises:
        ConfigurationError: If no secret is found
    """
    secret = os.environ.get("PLAID_SECRET")
    if secret:
        return secret

    try:
        secret = keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME)
        if secret:
            return secret
    except KeyringError:
        pass  # no usable keyring backend

    raise ConfigurationError(
        "Plaid client secret not found. Set PLAID_SECRET environment variable "
        "or run 'plaidster store-secret' to save it securely."
    )


def store_secret(secret: str) -> bool:
    """
    Store the client secret in the OS keyring.

    Returns:
        True if stored successfully, False otherwise
    """
    try:
        keyring.set_password(KEYRING_SERVICE, KEYRING_USERNAME, secret)
        return True
    except KeyringError as e:
        logging.getLogger(__name__).error("Error storing secret: %s", e)
        return False


# ============================================================================
# CLIENT CONFIGURATION
# ============================================================================

class ClientConfig(BaseModel):
    """Immutable settings shared by every request a client makes."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    client_id: str = Field(..., min_length=1)
    secret: str = Field(..., min_length=1, repr=False)
    environment: Environment = Environment.DEVELOPMENT
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Per-request timeout in seconds")
    logger: Optional[logging.Logger] = Field(default=None, description="Receives library log records")
    raw_traffic_logger: Optional[logging.Logger] = Field(
        default=None,
        description="Receives raw request/response dumps; falls back to logger",
    )
    log_raw_traffic: bool = False
    max_challenge_rounds: Optional[int] = Field(
        default=None,
        ge=1,
        description="Fail a login after this many challenges; unbounded when unset",
    )

    @property
    def base_url(self) -> str:
        return self.environment.base_url

    @classmethod
    def from_environment(cls, **overrides) -> "ClientConfig":
        """
        Load configuration from environment variables.

        Reads PLAID_CLIENT_ID, PLAID_SECRET (or the keyring), PLAID_ENV and
        PLAID_TIMEOUT. Keyword arguments override what was read.

        Raises:
            ConfigurationError: If the client id or secret is missing
        """
        values = {}
        if "client_id" not in overrides:
            client_id = os.environ.get("PLAID_CLIENT_ID")
            if not client_id:
                raise ConfigurationError("PLAID_CLIENT_ID environment variable is required")
            values["client_id"] = client_id
        if "secret" not in overrides:
            values["secret"] = get_secret()

        env_name = os.environ.get("PLAID_ENV")
        if env_name:
            try:
                values["environment"] = Environment(env_name.lower())
            except ValueError:
                raise ConfigurationError(f"Unknown PLAID_ENV: {env_name}")

        timeout = os.environ.get("PLAID_TIMEOUT")
        if timeout:
            try:
                values["timeout"] = float(timeout)
            except ValueError:
                raise ConfigurationError(f"PLAID_TIMEOUT must be a number, got {timeout!r}")

        values.update(overrides)
        return cls(**values)
