"""
Credential providers for the FirstPromoter API.

Credentials are resolved at request time through a CredentialsProvider so
handlers never read process state directly and tests can inject fakes.
"""

from abc import ABC, abstractmethod
import json
import logging
import os
from typing import Mapping, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from common.exceptions import ServerMisconfigured

logger = logging.getLogger(__name__)

API_TOKEN_KEY = "FIRSTPROMOTER_API_TOKEN"
ACCOUNT_ID_KEY = "FIRSTPROMOTER_ACCOUNT_ID"
SECRET_ID_KEY = "FIRSTPROMOTER_SECRET_ID"

MISSING_CREDENTIALS_MESSAGE = (
    "API credentials missing. Please configure FIRSTPROMOTER_API_TOKEN and "
    "FIRSTPROMOTER_ACCOUNT_ID for this function."
)


class FirstPromoterCredentials:
    """API token and account id sent with every FirstPromoter request."""

    def __init__(self, api_token: str, account_id: str):
        self.api_token = api_token
        self.account_id = account_id

    def __repr__(self) -> str:
        return f"FirstPromoterCredentials(account_id={self.account_id!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, FirstPromoterCredentials):
            return NotImplemented
        return (self.api_token, self.account_id) == (other.api_token, other.account_id)


class CredentialsProvider(ABC):
    """Source of FirstPromoter credentials."""

    @abstractmethod
    def get_credentials(self) -> FirstPromoterCredentials:
        """
        Return the configured credentials.

        Raises:
            ServerMisconfigured: If either value is missing
        """
        pass

    @staticmethod
    def _build(
        api_token: Optional[str], account_id: Optional[str], source: str
    ) -> FirstPromoterCredentials:
        if not api_token or not account_id:
            missing = [
                key
                for key, value in ((API_TOKEN_KEY, api_token), (ACCOUNT_ID_KEY, account_id))
                if not value
            ]
            logger.error(
                "Server configuration error: %s not set in %s",
                ", ".join(missing),
                source,
            )
            raise ServerMisconfigured(
                MISSING_CREDENTIALS_MESSAGE, details={"missing": missing}
            )
        return FirstPromoterCredentials(api_token, account_id)


class EnvironmentCredentialsProvider(CredentialsProvider):
    """Reads credentials from environment variables."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def get_credentials(self) -> FirstPromoterCredentials:
        return self._build(
            self.environ.get(API_TOKEN_KEY),
            self.environ.get(ACCOUNT_ID_KEY),
            "environment",
        )


class SecretsManagerCredentialsProvider(CredentialsProvider):
    """
    Reads credentials from a JSON secret in AWS Secrets Manager.

    The secret string must be an object with FIRSTPROMOTER_API_TOKEN and
    FIRSTPROMOTER_ACCOUNT_ID keys.
    """

    def __init__(self, secret_id: str, client=None):
        self.secret_id = secret_id
        self._client = client

    @property
    def client(self):
        """Lazy initialization of the Secrets Manager client"""
        if self._client is None:
            self._client = boto3.client("secretsmanager")
        return self._client

    def get_credentials(self) -> FirstPromoterCredentials:
        try:
            response = self.client.get_secret_value(SecretId=self.secret_id)
            secret = json.loads(response.get("SecretString") or "{}")
        except (BotoCoreError, ClientError) as e:
            logger.error("Could not read secret %s: %s", self.secret_id, e)
            raise ServerMisconfigured(
                MISSING_CREDENTIALS_MESSAGE, details={"secret_id": self.secret_id}
            ) from e
        except json.JSONDecodeError as e:
            logger.error("Secret %s is not valid JSON", self.secret_id)
            raise ServerMisconfigured(
                MISSING_CREDENTIALS_MESSAGE, details={"secret_id": self.secret_id}
            ) from e

        if not isinstance(secret, dict):
            secret = {}
        return self._build(
            secret.get(API_TOKEN_KEY),
            secret.get(ACCOUNT_ID_KEY),
            f"secret {self.secret_id}",
        )


class StaticCredentialsProvider(CredentialsProvider):
    """Fixed credentials, for tests and local runs."""

    def __init__(self, api_token: Optional[str], account_id: Optional[str]):
        self.api_token = api_token
        self.account_id = account_id

    def get_credentials(self) -> FirstPromoterCredentials:
        return self._build(self.api_token, self.account_id, "static configuration")


def get_credentials_provider(
    environ: Optional[Mapping[str, str]] = None,
) -> CredentialsProvider:
    """
    Factory for the credentials provider used by Lambda handlers.

    Uses Secrets Manager when FIRSTPROMOTER_SECRET_ID is set, plain
    environment variables otherwise.
    """
    environ = os.environ if environ is None else environ
    secret_id = environ.get(SECRET_ID_KEY)
    if secret_id:
        return SecretsManagerCredentialsProvider(secret_id)
    return EnvironmentCredentialsProvider(environ)
