"""
Host entry points for Elasticsearch setup.

The deployment pipeline calls ``validate()`` before the infrastructure stack
is updated and ``apply()`` after it. Validation only checks that an endpoint is
configured and aborts the deployment early otherwise; apply resolves stack
references against the updated stack and pushes templates, indices and
snapshot repositories to the cluster.
"""

import logging
from typing import Any, List, Optional

import httpx

from .aws.exports import ExportResolver, create_session
from .config_manager import EsSyncConfig
from .config_resolver import ConfigResolver
from .endpoint import ENDPOINT_NOT_SPECIFIED, resolve_config
from .exceptions import ConfigurationError
from .file_loader import load_json_body
from .http_client import ElasticsearchClient
from .logging_config import bind_run_context
from .models import ElasticsearchConfig, ProviderContext, ResolvedConfig, ResourceResult
from .repositories import setup_repositories
from .signing import RequestSigner
from .synchronizer import RepositorySetup, ResourceSynchronizer

logger = logging.getLogger(__name__)


class ElasticsearchSetup:
    """
    Resolves the Elasticsearch configuration of a deployment and applies it.

    Attributes:
        config: Raw configuration as authored by the operator (never modified)
        context: Provider context of the deployment
        endpoint: Normalized endpoint, set by the last ``apply()``
        resolved: Fully resolved configuration of the last ``apply()``
    """

    def __init__(
        self,
        config: ElasticsearchConfig,
        context: Optional[ProviderContext] = None,
        settings: Optional[EsSyncConfig] = None,
        export_resolver: Optional[ExportResolver] = None,
        signer: Optional[RequestSigner] = None,
        sts_client: Any = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        load_body=load_json_body,
        repository_setup: RepositorySetup = setup_repositories,
    ) -> None:
        self.config = config
        self.context = context or ProviderContext()
        self.settings = settings or EsSyncConfig()
        self.signer = signer or RequestSigner()
        self.load_body = load_body
        self.repository_setup = repository_setup
        self._export_resolver = export_resolver
        self._sts_client = sts_client
        self._transport = transport

        self.endpoint: Optional[str] = None
        self.resolved: Optional[ResolvedConfig] = None

    def _session(self):
        return create_session(self.context.profile, self.context.region)

    def _get_export_resolver(self) -> Optional[ExportResolver]:
        if self._export_resolver is None and ConfigResolver.needs_resolution(
            self.config, self.context
        ):
            self._export_resolver = ExportResolver.from_session(self._session())
        return self._export_resolver

    def _get_sts_client(self) -> Any:
        if self._sts_client is None and self.resolved and self.resolved.repositories:
            self._sts_client = self._session().client("sts")
        return self._sts_client

    def _check_endpoint_configured(self) -> None:
        if not self.config.endpoint and not self.config.stack_export_name:
            raise ConfigurationError(ENDPOINT_NOT_SPECIFIED, error_code="MISSING_ENDPOINT")

    async def _resolve(self) -> ResolvedConfig:
        self._check_endpoint_configured()
        resolved = await resolve_config(
            self.config, self.context, self._get_export_resolver()
        )
        self.resolved = resolved
        self.endpoint = resolved.endpoint
        logger.info(f"Elasticsearch endpoint: {self.endpoint}")
        return resolved

    async def validate(self) -> None:
        """
        Check that an endpoint is configured, without contacting AWS.

        Runs before the stack is updated, so exports and outputs the update
        is about to create are not looked up here.

        Raises:
            ConfigurationError: If neither ``endpoint`` nor ``cf-endpoint`` is set
        """
        self._check_endpoint_configured()
        logger.info("Elasticsearch configuration is valid")

    async def apply(self) -> List[ResourceResult]:
        """
        Push templates, indices and repositories to the cluster.

        Stack references and the endpoint are resolved on every call, against
        the stack as it is after the update.

        Returns:
            One ResourceResult per applied resource

        Raises:
            ConfigurationError: If no endpoint is configured
            ExportNotFoundError: If the endpoint export does not exist
            ResourceValidationError: If a resource entry is incomplete
            RemoteError: If the cluster rejects a resource
        """
        resolved = await self._resolve()
        bind_run_context(self.context.stack_name, resolved.endpoint)

        options = await self.signer.build(self.context)

        async with ElasticsearchClient(
            timeout=self.settings.http.timeout, transport=self._transport
        ) as client:
            synchronizer = ResourceSynchronizer(
                client,
                sts_client=self._get_sts_client(),
                load_body=self.load_body,
                repository_setup=self.repository_setup,
            )
            return await synchronizer.sync(resolved, options)
