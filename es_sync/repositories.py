"""
Snapshot repository registration.

Each repository is PUT to ``{base_url}/_snapshot/{name}``. For S3 repositories
a ``role_name`` setting is expanded into a full IAM role ARN using the
account of the caller's identity.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .exceptions import ResourceValidationError
from .http_client import ElasticsearchClient
from .models import RepoRef, RequestOptions, ResourceResult, SyncOutcome

logger = logging.getLogger(__name__)


async def _account_id(sts_client: Any) -> str:
    identity = await asyncio.to_thread(sts_client.get_caller_identity)
    return identity["Account"]


async def build_repository_body(
    repo: RepoRef, sts_client: Any, account_cache: Dict[str, str]
) -> Dict[str, Any]:
    """Build the ``{"type", "settings"}`` document for one repository."""
    settings = dict(repo.settings)
    role_name = settings.pop("role_name", None)
    if role_name and not settings.get("role_arn"):
        if "account" not in account_cache:
            account_cache["account"] = await _account_id(sts_client)
        settings["role_arn"] = f"arn:aws:iam::{account_cache['account']}:role/{role_name}"
    return {"type": repo.type, "settings": settings}


async def setup_repositories(
    base_url: str,
    sts_client: Any,
    repos: List[RepoRef],
    request_options: Optional[RequestOptions],
    client: ElasticsearchClient,
) -> List[ResourceResult]:
    """
    Register every snapshot repository, one after the other.

    Raises:
        ResourceValidationError: If a repository has no name
        RemoteError: If the cluster rejects a registration
    """
    results: List[ResourceResult] = []
    account_cache: Dict[str, str] = {}
    for repo in repos:
        if not repo.name:
            raise ResourceValidationError(
                "Repository does not have a name.", resource_kind="Repository"
            )
        url = f"{base_url}/_snapshot/{repo.name}"
        body = await build_repository_body(repo, sts_client, account_cache)
        await client.put(url, body, request_options)
        logger.info(f"Registered snapshot repository {repo.name}")
        results.append(
            ResourceResult(
                kind="Repository", name=repo.name, url=url, outcome=SyncOutcome.APPLIED
            )
        )
    return results
