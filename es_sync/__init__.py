"""Synchronize Elasticsearch templates, indices and snapshot repositories."""

from .exceptions import (
    ConfigurationError,
    EsSyncError,
    ExportNotFoundError,
    RemoteConflictError,
    RemoteError,
    ResourceValidationError,
)
from .models import (
    ElasticsearchConfig,
    IndexRef,
    ProviderContext,
    RepoRef,
    ResolvedConfig,
    ResourceResult,
    SyncOutcome,
    TemplateRef,
)
from .plugin import ElasticsearchSetup

__all__ = [
    "ConfigurationError",
    "ElasticsearchConfig",
    "ElasticsearchSetup",
    "EsSyncError",
    "ExportNotFoundError",
    "IndexRef",
    "ProviderContext",
    "RemoteConflictError",
    "RemoteError",
    "RepoRef",
    "ResolvedConfig",
    "ResourceResult",
    "ResourceValidationError",
    "SyncOutcome",
    "TemplateRef",
]
