"""Secret lookup backed by AWS Secrets Manager."""

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class SecretError(Exception):
    """Exception raised when a secret cannot be retrieved."""

    def __init__(self, secret_name: str, message: str) -> None:
        super().__init__(f"Secret '{secret_name}': {message}")
        self.secret_name = secret_name


class SecretNotFound(SecretError):
    def __init__(self, secret_name: str) -> None:
        super().__init__(secret_name, "not found")


class SecretMalformed(SecretError):
    def __init__(self, secret_name: str) -> None:
        super().__init__(secret_name, "value is not a string")


class SecretsManagerProvider:
    """Fetch secret strings by name from AWS Secrets Manager.

    Retries are disabled; callers decide whether a failed lookup is worth
    repeating.
    """

    def __init__(self, region: str, *, timeout: int = 30, client: Any = None) -> None:
        """Initialize the provider.

        Args:
            region: AWS region the secret lives in.
            timeout: Connect and read timeout in seconds.
            client: Pre-built ``secretsmanager`` client (built from ``region`` when omitted).
        """
        if client is None:
            client = boto3.client(
                "secretsmanager",
                region_name=region,
                config=Config(
                    connect_timeout=timeout,
                    read_timeout=timeout,
                    retries={"total_max_attempts": 1, "mode": "standard"},
                ),
            )
        self._client = client

    def get_secret(self, name: str) -> str:
        """Return the string value of secret ``name``.

        Raises:
            SecretNotFound: If the secret does not exist.
            SecretMalformed: If the secret holds no string payload.
            SecretError: For any other backend failure.
        """
        try:
            response = self._client.get_secret_value(SecretId=name)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code == "ResourceNotFoundException":
                raise SecretNotFound(name) from e
            raise SecretError(name, f"lookup failed ({code or 'unknown error'})") from e
        except BotoCoreError as e:
            raise SecretError(name, f"lookup failed: {e}") from e

        value = response.get("SecretString")
        if not isinstance(value, str):
            raise SecretMalformed(name)

        logger.info(f"Retrieved secret {name}")
        return value
