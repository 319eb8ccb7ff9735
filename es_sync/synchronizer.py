"""
Resource synchronization against an Elasticsearch cluster.

Templates, indices and snapshot repositories are applied in that order. Within
the template and index collections every entry is validated and PUT in its own
task; all tasks of a collection are dispatched together and the collection
completes once every task has settled. The first failure (in declaration
order) is then re-raised.

Index creation is idempotent: a ``resource_already_exists_exception`` from the
cluster is recorded as a suppressed conflict. The same error on a template is
a failure like any other.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

import structlog

from .exceptions import (
    ALREADY_EXISTS_ERROR_TYPE,
    RemoteConflictError,
    RemoteError,
    ResourceValidationError,
)
from .file_loader import load_json_body
from .http_client import ElasticsearchClient
from .models import (
    IndexRef,
    RepoRef,
    RequestOptions,
    ResolvedConfig,
    ResourceRef,
    ResourceResult,
    SyncOutcome,
    TemplateRef,
)
from .repositories import setup_repositories

logger = structlog.get_logger(__name__)

RepositorySetup = Callable[..., Awaitable[List[ResourceResult]]]


def validate_resource(ref: ResourceRef) -> Tuple[str, str]:
    """Return the name and file of ``ref``, raising if either is missing."""
    if not ref.name:
        raise ResourceValidationError(
            f"{ref.kind} does not have a name.", resource_kind=ref.kind
        )
    if not ref.file:
        raise ResourceValidationError(
            f"{ref.kind} does not have a file location.",
            resource_kind=ref.kind,
            context={"name": ref.name},
        )
    return ref.name, ref.file


def collect_outcomes(
    refs: Sequence[ResourceRef], settled: Sequence[Any]
) -> List[ResourceResult]:
    """Pair settled tasks with their entries; exceptions become FAILED results."""
    results: List[ResourceResult] = []
    for ref, outcome in zip(refs, settled):
        if isinstance(outcome, BaseException):
            results.append(
                ResourceResult(
                    kind=ref.kind,
                    name=ref.name,
                    outcome=SyncOutcome.FAILED,
                    error=outcome,
                )
            )
        else:
            results.append(outcome)
    return results


def index_url(endpoint: str, name: str) -> str:
    return f"{endpoint}/{name}"


def template_url(endpoint: str, name: str) -> str:
    return f"{endpoint}/_template/{name}"


class ResourceSynchronizer:
    """Applies the declared resources of one configuration to the cluster."""

    def __init__(
        self,
        client: ElasticsearchClient,
        sts_client: Any = None,
        load_body: Callable[[str], Any] = load_json_body,
        repository_setup: RepositorySetup = setup_repositories,
    ) -> None:
        self.client = client
        self.sts_client = sts_client
        self.load_body = load_body
        self.repository_setup = repository_setup

    async def _apply(
        self,
        ref: ResourceRef,
        build_url: Callable[[str, str], str],
        endpoint: str,
        options: Optional[RequestOptions],
        tolerate_existing: bool,
    ) -> ResourceResult:
        name, file = validate_resource(ref)

        url = build_url(endpoint, name)
        body = self.load_body(file)
        try:
            await self.client.put(url, body, options)
        except RemoteError as e:
            if tolerate_existing and e.error_type == ALREADY_EXISTS_ERROR_TYPE:
                logger.info(f"{ref.kind} {name} already exists, leaving it as is")
                return ResourceResult(
                    kind=ref.kind,
                    name=name,
                    url=url,
                    outcome=SyncOutcome.SUPPRESSED_CONFLICT,
                    error=RemoteConflictError.from_remote_error(e),
                )
            logger.error(f"Failed to set up {ref.kind.lower()} {name}: {e}")
            raise

        logger.info(f"{ref.kind} {name} applied")
        return ResourceResult(kind=ref.kind, name=name, url=url)

    @staticmethod
    async def _fan_out(
        refs: Sequence[ResourceRef], tasks: Sequence[Awaitable[ResourceResult]]
    ) -> List[ResourceResult]:
        settled = await asyncio.gather(*tasks, return_exceptions=True)
        results = collect_outcomes(refs, settled)
        failed = [r for r in results if r.outcome is SyncOutcome.FAILED]
        if failed:
            logger.error(
                f"{len(failed)} of {len(results)} {failed[0].kind.lower()} entries failed",
                failed=[r.name for r in failed],
            )
            raise failed[0].error  # type: ignore[misc]
        return results

    async def setup_templates(
        self,
        endpoint: str,
        templates: Optional[Sequence[TemplateRef]] = None,
        options: Optional[RequestOptions] = None,
    ) -> List[ResourceResult]:
        """PUT every template to ``{endpoint}/_template/{name}`` concurrently."""
        templates = list(templates or [])
        return await self._fan_out(
            templates,
            [
                self._apply(template, template_url, endpoint, options, False)
                for template in templates
            ]
        )

    async def setup_indices(
        self,
        endpoint: str,
        indices: Optional[Sequence[IndexRef]] = None,
        options: Optional[RequestOptions] = None,
    ) -> List[ResourceResult]:
        """PUT every index to ``{endpoint}/{name}`` concurrently."""
        indices = list(indices or [])
        return await self._fan_out(
            indices,
            [
                self._apply(index, index_url, endpoint, options, True)
                for index in indices
            ]
        )

    async def setup_repositories(
        self,
        endpoint: str,
        repositories: Optional[List[RepoRef]] = None,
        options: Optional[RequestOptions] = None,
    ) -> List[ResourceResult]:
        return await self.repository_setup(
            endpoint, self.sts_client, repositories or [], options, self.client
        )

    async def sync(
        self, config: ResolvedConfig, options: Optional[RequestOptions] = None
    ) -> List[ResourceResult]:
        """Apply templates, then indices, then repositories."""
        results: List[ResourceResult] = []

        logger.info("Setting up templates...")
        results += await self.setup_templates(config.endpoint, config.templates, options)

        logger.info("Setting up indices...")
        results += await self.setup_indices(config.endpoint, config.indices, options)

        logger.info("Setting up repositories...")
        results += await self.setup_repositories(
            config.endpoint, config.repositories, options
        )

        suppressed = sum(
            1 for result in results if result.outcome is SyncOutcome.SUPPRESSED_CONFLICT
        )
        logger.info(
            "Elasticsearch setup complete.",
            applied=len(results) - suppressed,
            already_existed=suppressed,
        )
        return results
