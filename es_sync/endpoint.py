"""Derives the single cluster endpoint a run talks to."""

import asyncio
import logging
from typing import Optional

from .aws.exports import ExportResolver
from .config_resolver import ENDPOINT_NOT_FOUND, ConfigResolver
from .exceptions import ConfigurationError, ExportNotFoundError
from .models import ElasticsearchConfig, ProviderContext, ResolvedConfig

logger = logging.getLogger(__name__)

ENDPOINT_NOT_SPECIFIED = "Elasticsearch endpoint not specified."

SECURE_SCHEME = "https://"
KNOWN_SCHEMES = ("http://", "https://")


def with_scheme(value: str) -> str:
    """Prefix ``https://`` unless the value already starts with a known scheme."""
    if value.startswith(KNOWN_SCHEMES):
        return value
    return f"{SECURE_SCHEME}{value}"


async def normalize_endpoint(
    config: ElasticsearchConfig, export_resolver: Optional[ExportResolver]
) -> str:
    """
    Determine the endpoint from a direct value or a CloudFormation export.

    Raises:
        ConfigurationError: If neither ``endpoint`` nor ``cf-endpoint`` is set
        ExportNotFoundError: If the named export does not exist
    """
    value = config.endpoint
    if not value and config.stack_export_name:
        if export_resolver is None:
            raise ConfigurationError(
                "An export resolver is required to look up cf-endpoint.",
                context={"export_name": config.stack_export_name},
            )
        value = await asyncio.to_thread(
            export_resolver.find_export, config.stack_export_name
        )
        if not value:
            raise ExportNotFoundError(
                ENDPOINT_NOT_FOUND, export_name=config.stack_export_name
            )
        logger.info(f"Endpoint resolved from export {config.stack_export_name}")

    if not value:
        raise ConfigurationError(ENDPOINT_NOT_SPECIFIED, error_code="MISSING_ENDPOINT")

    return with_scheme(value)


async def resolve_config(
    raw: ElasticsearchConfig,
    context: ProviderContext,
    export_resolver: Optional[ExportResolver],
) -> ResolvedConfig:
    """Resolve stack references, then pin the normalized endpoint."""
    config = raw
    if export_resolver is not None:
        config = await ConfigResolver(export_resolver).resolve(
            context.stack_name, raw, context
        )
    endpoint = await normalize_endpoint(config, export_resolver)
    data = config.model_dump(by_alias=True)
    data["endpoint"] = endpoint
    return ResolvedConfig.model_validate(data)
