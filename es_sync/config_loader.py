"""
Deployment descriptor loader.

Reads a serverless-style YAML descriptor and extracts the two things the core
needs: the ``custom.elasticsearch`` block and the provider context (provider
name, stack name, AWS profile and region).

Stack name priority:
1. ``provider.stackName``
2. ``{service}-{stage}`` (stage defaults to ``dev``)
"""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from .config_manager import AwsConfig
from .exceptions import ConfigurationError
from .models import ElasticsearchConfig, ProviderContext

DEFAULT_STAGE = "dev"


def _service_name(descriptor: Dict[str, Any]) -> Optional[str]:
    service = descriptor.get("service")
    if isinstance(service, dict):
        return service.get("name")
    return service


def provider_context(
    descriptor: Dict[str, Any],
    aws_defaults: Optional[AwsConfig] = None,
    stage: Optional[str] = None,
) -> ProviderContext:
    """Derive the provider context from a parsed descriptor."""
    aws_defaults = aws_defaults or AwsConfig()
    provider = descriptor.get("provider") or {}
    if isinstance(provider, str):
        provider = {"name": provider}

    stage = stage or provider.get("stage") or DEFAULT_STAGE
    stack_name = provider.get("stackName")
    service = _service_name(descriptor)
    if not stack_name and service:
        stack_name = f"{service}-{stage}"

    return ProviderContext(
        provider_name=provider.get("name"),
        stack_name=stack_name,
        profile=provider.get("profile") or aws_defaults.profile,
        region=provider.get("region") or aws_defaults.region,
    )


def parse_descriptor(
    descriptor: Dict[str, Any],
    aws_defaults: Optional[AwsConfig] = None,
    stage: Optional[str] = None,
) -> Tuple[ElasticsearchConfig, ProviderContext]:
    """
    Split a parsed descriptor into Elasticsearch config and provider context.

    Raises:
        ConfigurationError: If the ``custom.elasticsearch`` block is malformed
    """
    custom = descriptor.get("custom") or {}
    try:
        config = ElasticsearchConfig.model_validate(custom.get("elasticsearch") or {})
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid custom.elasticsearch configuration: {e}",
            error_code="INVALID_DESCRIPTOR",
            cause=e,
        ) from e
    return config, provider_context(descriptor, aws_defaults, stage)


def load_descriptor(
    path: Path,
    aws_defaults: Optional[AwsConfig] = None,
    stage: Optional[str] = None,
) -> Tuple[ElasticsearchConfig, ProviderContext]:
    """
    Load a deployment descriptor from a YAML file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        with open(path) as f:
            descriptor = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in {path}: {e}", error_code="INVALID_DESCRIPTOR", cause=e
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read deployment descriptor {path}: {e}",
            error_code="INVALID_DESCRIPTOR",
            cause=e,
        ) from e

    if not isinstance(descriptor, dict):
        raise ConfigurationError(
            f"Deployment descriptor {path} must be a mapping",
            error_code="INVALID_DESCRIPTOR",
        )
    return parse_descriptor(descriptor, aws_defaults, stage)
