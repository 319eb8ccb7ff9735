"""
Request signing for AWS-hosted Elasticsearch domains.

The signer produces an explicit credentials-and-region value that is threaded
into every outbound call; nothing is stored on a process-wide client.
"""

import asyncio
import logging
from typing import Generator, Optional

import boto3
import httpx
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.exceptions import ProfileNotFound

from .exceptions import CredentialsError
from .models import ProviderContext, RequestOptions, SignedRequestParams

logger = logging.getLogger(__name__)


class AwsSigV4Auth(httpx.Auth):
    """httpx auth flow that signs each request with SigV4."""

    requires_request_body = True

    def __init__(self, params: SignedRequestParams) -> None:
        self.params = params

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        aws_request = AWSRequest(
            method=request.method,
            url=str(request.url),
            data=request.content,
            headers={"Content-Type": request.headers.get("Content-Type", "")},
        )
        SigV4Auth(
            self.params.credentials, self.params.service, self.params.region
        ).add_auth(aws_request)
        for key, value in aws_request.headers.items():
            request.headers[key] = value
        yield request


class RequestSigner:
    """Builds the authentication parameters for outbound cluster calls."""

    def __init__(self, session_factory=boto3.Session) -> None:
        self._session_factory = session_factory

    async def build(self, context: ProviderContext) -> RequestOptions:
        """
        Build request options for the deployment's provider.

        Non-AWS providers need no signing and get empty options.

        Raises:
            CredentialsError: If no credentials are available for the profile
        """
        if not context.is_aws:
            return RequestOptions()

        try:
            session = self._session_factory(
                profile_name=context.profile, region_name=context.region
            )
        except ProfileNotFound as e:
            raise CredentialsError(
                f"AWS profile {context.profile} is not configured.",
                profile=context.profile,
                cause=e,
            ) from e
        credentials = await asyncio.to_thread(session.get_credentials)
        if credentials is None:
            raise CredentialsError(
                "No AWS credentials found for request signing.",
                profile=context.profile,
            )

        region: Optional[str] = context.region or session.region_name
        if not region:
            raise CredentialsError(
                "No AWS region configured for request signing.",
                profile=context.profile,
            )

        logger.debug(
            f"Signing requests for region {region} (profile: {context.profile or 'default'})"
        )
        return RequestOptions(
            auth_params=SignedRequestParams(
                credentials=credentials.get_frozen_credentials(), region=region
            )
        )
