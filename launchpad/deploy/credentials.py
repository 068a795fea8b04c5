"""
Federated Credentials

Exchanges a CI-issued OIDC token for short-lived role credentials scoped to
one environment. Long-lived keys are never read: the only inputs are the
role ARN from configuration and a web identity token.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, Field

from launchpad.core.error_recovery import CredentialExchangeFailed
from launchpad.core.logger import get_logger
from launchpad.environments.models import Environment

logger = get_logger("credentials")

SESSION_DURATION_SECONDS = 900  # STS minimum; a deploy never needs longer


class ShortLivedCredentials(BaseModel):
    """Temporary credentials for a single environment."""
    access_key_id: str = Field(..., repr=False)
    secret_access_key: str = Field(..., repr=False)
    session_token: str = Field(..., repr=False)
    expiration: Optional[datetime] = None
    role_arn: str
    environment: str


class CredentialProvider(ABC):
    """Source of per-environment credentials."""

    @abstractmethod
    async def get_credentials(self, environment: Environment) -> ShortLivedCredentials:
        """
        Raises:
            CredentialExchangeFailed: If no credentials can be obtained
        """


def session_name(environment: str, run_id: Optional[str] = None) -> str:
    """Role session name: [\\w+=,.@-]{2,64}."""
    raw = f"launchpad-{environment}-{run_id}" if run_id else f"launchpad-{environment}"
    return re.sub(r"[^\w+=,.@-]", "-", raw)[:64]


class WebIdentityCredentialProvider(CredentialProvider):
    """
    AssumeRoleWithWebIdentity using a token from:
    - a token file (AWS_WEB_IDENTITY_TOKEN_FILE), or
    - the GitHub Actions OIDC endpoint (ACTIONS_ID_TOKEN_REQUEST_URL/TOKEN)
    """

    def __init__(
        self,
        token_file: Optional[str] = None,
        request_url: Optional[str] = None,
        request_token: Optional[str] = None,
        audience: str = "sts.amazonaws.com",
        run_id: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_file = token_file
        self.request_url = request_url
        self.request_token = request_token
        self.audience = audience
        self.run_id = run_id
        self.timeout = timeout
        self.transport = transport

    async def fetch_token(self) -> str:
        """Obtain the OIDC token from the configured source."""
        if self.token_file:
            path = Path(self.token_file)
            try:
                token = path.read_text(encoding="utf-8").strip()
            except OSError as e:
                raise CredentialExchangeFailed(f"Cannot read web identity token file {path}: {e}")
            if not token:
                raise CredentialExchangeFailed(f"Web identity token file {path} is empty")
            return token

        if self.request_url and self.request_token:
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    response = await client.get(
                        self.request_url,
                        params={"audience": self.audience},
                        headers={"Authorization": f"bearer {self.request_token}"},
                    )
                    response.raise_for_status()
                    token = response.json().get("value")
            except (httpx.HTTPError, ValueError) as e:
                raise CredentialExchangeFailed(f"OIDC token request failed: {e}")
            if not token:
                raise CredentialExchangeFailed("OIDC token response did not contain a token")
            return token

        raise CredentialExchangeFailed(
            "No federated identity available: set AWS_WEB_IDENTITY_TOKEN_FILE or run "
            "with id-token permission in CI"
        )

    def _assume_role(self, environment: Environment, token: str) -> dict:
        sts = boto3.client("sts", region_name=environment.region)
        return sts.assume_role_with_web_identity(
            RoleArn=environment.credential_reference,
            RoleSessionName=session_name(environment.name, self.run_id),
            WebIdentityToken=token,
            DurationSeconds=SESSION_DURATION_SECONDS,
        )

    async def get_credentials(self, environment: Environment) -> ShortLivedCredentials:
        token = await self.fetch_token()

        try:
            response = await asyncio.to_thread(self._assume_role, environment, token)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise CredentialExchangeFailed(
                f"AssumeRoleWithWebIdentity for {environment.name} failed ({code})",
                details={"role_arn": environment.credential_reference, "code": code},
            )
        except BotoCoreError as e:
            raise CredentialExchangeFailed(f"AssumeRoleWithWebIdentity for {environment.name} failed: {e}")

        creds = response["Credentials"]
        logger.info(f"[CREDENTIALS] 🔑 Assumed {environment.credential_reference} for {environment.name}")
        return ShortLivedCredentials(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            expiration=creds.get("Expiration"),
            role_arn=environment.credential_reference,
            environment=environment.name,
        )
