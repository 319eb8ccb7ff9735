"""CloudFormation stack output and export lookups."""

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import ExportLookupTransportError

logger = logging.getLogger(__name__)


def create_session(
    profile: Optional[str] = None, region: Optional[str] = None
) -> boto3.Session:
    """Build an explicit boto3 session instead of touching the default one."""
    return boto3.Session(profile_name=profile, region_name=region)


class ExportResolver:
    """
    Looks up values published by previously deployed CloudFormation stacks.

    Lookups never raise for a missing value, they return ``None`` and leave it
    to the caller to decide whether absence is fatal. API failures are raised
    as ExportLookupTransportError.
    """

    def __init__(self, cloudformation_client: Any) -> None:
        self.client = cloudformation_client

    @classmethod
    def from_session(cls, session: boto3.Session) -> "ExportResolver":
        return cls(session.client("cloudformation"))

    def resolve(self, stack_id: str, export_name: str) -> Optional[str]:
        """
        Look up one output of ``stack_id`` by its output key or export name.

        Args:
            stack_id: Stack name or ARN
            export_name: OutputKey or ExportName of the wanted output

        Returns:
            The output value, or None when the stack does not declare it
        """
        try:
            response = self.client.describe_stacks(StackName=stack_id)
        except (ClientError, BotoCoreError) as e:
            raise ExportLookupTransportError(
                f"Failed to describe stack {stack_id}: {e}",
                stack_name=stack_id,
                cause=e,
            ) from e

        for stack in response.get("Stacks", []):
            for output in stack.get("Outputs", []):
                if export_name in (output.get("OutputKey"), output.get("ExportName")):
                    return output.get("OutputValue")

        logger.debug(f"Output {export_name} not declared by stack {stack_id}")
        return None

    def find_export(self, export_name: str) -> Optional[str]:
        """Find a region-wide CloudFormation export by name."""
        try:
            paginator = self.client.get_paginator("list_exports")
            for page in paginator.paginate():
                for export in page.get("Exports", []):
                    if export.get("Name") == export_name:
                        return export.get("Value")
        except (ClientError, BotoCoreError) as e:
            raise ExportLookupTransportError(
                f"Failed to list CloudFormation exports: {e}",
                cause=e,
                context={"export_name": export_name},
            ) from e

        logger.debug(f"CloudFormation export {export_name} not found")
        return None
