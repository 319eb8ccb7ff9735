"""
Resolution of ``${cf:...}`` stack references in the Elasticsearch configuration.

A reference names an output of the stack being deployed (``${cf:OutputKey}``)
or of another stack (``${cf:other-stack.OutputKey}``). Resolution produces a
new configuration object; the raw configuration is never modified.
"""

import asyncio
import logging
import re
from typing import Any, Dict, Optional, Set, Tuple

from .aws.exports import ExportResolver
from .exceptions import ExportNotFoundError
from .models import ElasticsearchConfig, ProviderContext

logger = logging.getLogger(__name__)

STACK_REFERENCE = re.compile(r"\$\{cf:([^}.]+)(?:\.([^}]+))?\}")

ENDPOINT_NOT_FOUND = "Endpoint not found at cloudformation export."

Reference = Tuple[Optional[str], str]


def _reference(match: "re.Match[str]", stack_id: Optional[str]) -> Reference:
    if match.group(2):
        return match.group(1), match.group(2)
    return stack_id, match.group(1)


def find_references(value: Any, stack_id: Optional[str]) -> Set[Reference]:
    """Collect every (stack, output) pair referenced anywhere in ``value``."""
    found: Set[Reference] = set()
    if isinstance(value, str):
        for match in STACK_REFERENCE.finditer(value):
            found.add(_reference(match, stack_id))
    elif isinstance(value, dict):
        for item in value.values():
            found |= find_references(item, stack_id)
    elif isinstance(value, list):
        for item in value:
            found |= find_references(item, stack_id)
    return found


def substitute(
    value: Any, stack_id: Optional[str], resolved: Dict[Reference, Optional[str]]
) -> Any:
    """Return a copy of ``value`` with references replaced by resolved values.

    A string containing an unresolved reference becomes None.
    """
    if isinstance(value, str):
        if not STACK_REFERENCE.search(value):
            return value
        parts = []
        position = 0
        for match in STACK_REFERENCE.finditer(value):
            replacement = resolved.get(_reference(match, stack_id))
            if replacement is None:
                return None
            parts.append(value[position : match.start()])
            parts.append(replacement)
            position = match.end()
        parts.append(value[position:])
        return "".join(parts)
    if isinstance(value, dict):
        return {key: substitute(item, stack_id, resolved) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute(item, stack_id, resolved) for item in value]
    return value


class ConfigResolver:
    """Turns a raw Elasticsearch configuration into a fully resolved one."""

    def __init__(self, export_resolver: ExportResolver) -> None:
        self.export_resolver = export_resolver

    @staticmethod
    def needs_resolution(raw: ElasticsearchConfig, context: ProviderContext) -> bool:
        """Stack introspection is only worth it on AWS or with an explicit export."""
        return context.is_aws or bool(raw.stack_export_name)

    async def resolve(
        self,
        stack_id: Optional[str],
        raw: ElasticsearchConfig,
        context: ProviderContext,
    ) -> ElasticsearchConfig:
        """
        Resolve every stack reference in ``raw``.

        Args:
            stack_id: Name of the stack being deployed
            raw: Configuration as authored by the operator
            context: Provider context of the deployment

        Returns:
            A new configuration; ``raw`` itself when no resolution is needed

        Raises:
            ExportNotFoundError: If the endpoint references a missing output
            ExportLookupTransportError: If a CloudFormation call fails
        """
        if not self.needs_resolution(raw, context):
            return raw.model_copy(deep=True)

        data = raw.model_dump(by_alias=True)
        references = find_references(data, stack_id)
        resolved: Dict[Reference, Optional[str]] = {}
        for stack, output in sorted(references, key=lambda ref: (ref[0] or "", ref[1])):
            if stack is None:
                logger.warning(
                    f"Cannot resolve ${{cf:{output}}} without a stack name"
                )
                resolved[(stack, output)] = None
                continue
            resolved[(stack, output)] = await asyncio.to_thread(
                self.export_resolver.resolve, stack, output
            )
            if resolved[(stack, output)] is None:
                logger.warning(f"Stack {stack} does not declare output {output}")

        result = substitute(data, stack_id, resolved)
        if raw.endpoint and result.get("endpoint") is None:
            raise ExportNotFoundError(ENDPOINT_NOT_FOUND, context={"endpoint": raw.endpoint})

        logger.debug(f"Resolved {len(references)} stack reference(s)")
        return ElasticsearchConfig.model_validate(result)
