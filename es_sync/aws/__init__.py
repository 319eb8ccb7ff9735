"""AWS collaborators: stack export lookups."""

from .exports import ExportResolver, create_session

__all__ = ["ExportResolver", "create_session"]
