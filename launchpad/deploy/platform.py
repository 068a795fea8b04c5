"""
Deployment Platform

The function-deployment API is an opaque collaborator behind a two-call
interface: submit an archive, then read the update status. LambdaPlatform
implements it with boto3 and maps SDK errors onto the transient/permanent
split the executor retries on.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)
from pydantic import BaseModel

from launchpad.core.error_recovery import (
    CredentialExchangeFailed,
    LaunchpadError,
    PermanentPlatformRejection,
    TransientPlatformError,
)
from launchpad.core.logger import get_logger
from launchpad.deploy.credentials import ShortLivedCredentials
from launchpad.environments.models import Environment

logger = get_logger("platform")


class PlatformState(str, Enum):
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Successful"
    FAILED = "Failed"


class Submission(BaseModel):
    """What the platform returned for an accepted archive."""
    function_name: str
    revision: Optional[str] = None
    version: Optional[str] = None
    code_sha256: Optional[str] = None


class PlatformStatus(BaseModel):
    state: PlatformState
    reason: str = ""


class DeploymentPlatform(ABC):
    """Function-deployment API."""

    @abstractmethod
    async def submit(self, function_name: str, archive: bytes) -> Submission:
        """Upload an archive. Raises Transient/PermanentPlatform errors."""

    @abstractmethod
    async def get_status(self, function_name: str) -> PlatformStatus:
        """Current update status. Raises Transient/PermanentPlatform errors."""


# ============================================================================
# ERROR CLASSIFICATION
# ============================================================================

TRANSIENT_ERROR_CODES = {
    "TooManyRequestsException",
    "ThrottlingException",
    "Throttling",
    "ServiceException",
    "ServiceUnavailable",
    "ServiceUnavailableException",
    "InternalFailure",
    "RequestTimeout",
    "RequestTimeoutException",
    "ResourceConflictException",  # previous update still in progress
    "EC2ThrottledException",
}

PERMANENT_ERROR_CODES = {
    "AccessDeniedException",
    "AccessDenied",
    "UnrecognizedClientException",
    "InvalidParameterValueException",
    "RequestEntityTooLargeException",
    "ResourceNotFoundException",
    "CodeStorageExceededException",
    "CodeVerificationFailedException",
    "InvalidCodeSignatureException",
    "ValidationException",
}

NETWORK_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)


def classify_client_error(error: ClientError, operation: str) -> LaunchpadError:
    """Map a botocore ClientError onto the retry taxonomy."""
    code = error.response.get("Error", {}).get("Code", "Unknown")
    message = error.response.get("Error", {}).get("Message", str(error))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
    details = {"code": code, "http_status": status, "operation": operation}

    if code in TRANSIENT_ERROR_CODES:
        return TransientPlatformError(f"{operation}: {code} - {message}", details)
    if code in PERMANENT_ERROR_CODES:
        return PermanentPlatformRejection(f"{operation}: {code} - {message}", details)
    if status >= 500:
        return TransientPlatformError(f"{operation}: {code} - {message}", details)
    return PermanentPlatformRejection(f"{operation}: {code} - {message}", details)


def classify_sdk_error(error: Exception, operation: str) -> LaunchpadError:
    """Map any SDK exception onto the retry taxonomy."""
    if isinstance(error, ClientError):
        return classify_client_error(error, operation)
    if isinstance(error, NoCredentialsError):
        return CredentialExchangeFailed(f"{operation}: no credentials available")
    if isinstance(error, NETWORK_ERRORS):
        return TransientPlatformError(f"{operation}: network error - {error}")
    return PermanentPlatformRejection(f"{operation}: {error}")


# ============================================================================
# AWS LAMBDA
# ============================================================================

class LambdaPlatform(DeploymentPlatform):
    """AWS Lambda via boto3."""

    def __init__(self, client):
        self.client = client

    @classmethod
    def from_credentials(
        cls,
        credentials: ShortLivedCredentials,
        region: str,
        read_timeout: float = 120.0,
    ) -> "LambdaPlatform":
        session = boto3.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token,
            region_name=region,
        )
        # One SDK attempt per call; the executor owns the retry policy
        config = Config(
            connect_timeout=10,
            read_timeout=read_timeout,
            retries={"max_attempts": 1, "mode": "standard"},
        )
        return cls(session.client("lambda", config=config))

    def _update_code(self, function_name: str, archive: bytes) -> dict:
        return self.client.update_function_code(
            FunctionName=function_name,
            ZipFile=archive,
            Publish=True,
        )

    def _get_configuration(self, function_name: str) -> dict:
        return self.client.get_function_configuration(FunctionName=function_name)

    async def submit(self, function_name: str, archive: bytes) -> Submission:
        try:
            response = await asyncio.to_thread(self._update_code, function_name, archive)
        except (ClientError, BotoCoreError) as e:
            raise classify_sdk_error(e, "UpdateFunctionCode")

        logger.info(f"[PLATFORM] 📤 Uploaded {len(archive):,} bytes to {function_name}")
        return Submission(
            function_name=function_name,
            revision=response.get("RevisionId"),
            version=response.get("Version"),
            code_sha256=response.get("CodeSha256"),
        )

    async def get_status(self, function_name: str) -> PlatformStatus:
        try:
            response = await asyncio.to_thread(self._get_configuration, function_name)
        except (ClientError, BotoCoreError) as e:
            raise classify_sdk_error(e, "GetFunctionConfiguration")

        # Missing status means no update has ever run: the function is stable
        raw = response.get("LastUpdateStatus", PlatformState.SUCCEEDED.value)
        try:
            state = PlatformState(raw)
        except ValueError:
            state = PlatformState.IN_PROGRESS
        return PlatformStatus(state=state, reason=response.get("LastUpdateStatusReason", "") or "")


def lambda_platform_factory(read_timeout: float = 120.0):
    """Build the default platform factory used by the executor."""

    def factory(environment: Environment, credentials: ShortLivedCredentials) -> DeploymentPlatform:
        return LambdaPlatform.from_credentials(credentials, environment.region, read_timeout=read_timeout)

    return factory
