"""
Data models for Elasticsearch resource synchronization.

Operator-authored configuration is validated with pydantic; values produced
during a run (signing parameters, per-resource results) are plain dataclasses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from botocore.credentials import ReadOnlyCredentials
from pydantic import BaseModel, ConfigDict, Field


class ResourceRef(BaseModel):
    """A named cluster resource and the location of its JSON body on disk."""

    kind: ClassVar[str] = "Resource"

    name: Optional[str] = None
    file: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class IndexRef(ResourceRef):
    """Index mapping, PUT to ``{endpoint}/{name}``."""

    kind: ClassVar[str] = "Index"


class TemplateRef(ResourceRef):
    """Index template, PUT to ``{endpoint}/_template/{name}``."""

    kind: ClassVar[str] = "Template"


class RepoRef(BaseModel):
    """Snapshot repository definition, handed to the repository setup as-is."""

    name: Optional[str] = None
    type: str = "s3"
    settings: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")


class ElasticsearchConfig(BaseModel):
    """The ``custom.elasticsearch`` block of a deployment descriptor."""

    endpoint: Optional[str] = None
    stack_export_name: Optional[str] = Field(default=None, alias="cf-endpoint")
    indices: List[IndexRef] = Field(default_factory=list)
    templates: List[TemplateRef] = Field(default_factory=list)
    repositories: List[RepoRef] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ResolvedConfig(ElasticsearchConfig):
    """Configuration with every stack reference substituted and an endpoint."""

    endpoint: str


@dataclass(frozen=True)
class ProviderContext:
    """Where the deployment runs: provider, stack and AWS credential scope."""

    provider_name: Optional[str] = None
    stack_name: Optional[str] = None
    profile: Optional[str] = None
    region: Optional[str] = None

    @property
    def is_aws(self) -> bool:
        return self.provider_name == "aws"


@dataclass(frozen=True)
class SignedRequestParams:
    credentials: ReadOnlyCredentials
    region: str
    service: str = "es"


@dataclass
class RequestOptions:
    """Per-request options threaded into every outbound call."""

    auth_params: Optional[SignedRequestParams] = None


class SyncOutcome(Enum):
    """Per-entry result; FAILED entries are logged before the first failure is re-raised."""

    APPLIED = "applied"
    SUPPRESSED_CONFLICT = "suppressed_conflict"
    FAILED = "failed"


@dataclass
class ResourceResult:
    """Outcome of synchronizing a single resource."""

    kind: str
    name: Optional[str]
    url: Optional[str] = None
    outcome: SyncOutcome = SyncOutcome.APPLIED
    error: Optional[BaseException] = field(default=None, repr=False)
