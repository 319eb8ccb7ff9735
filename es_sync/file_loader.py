import json
from pathlib import Path
from typing import Any

from .exceptions import ResourceFileError


def load_json_body(path: str) -> Any:
    """Load a resource body, resolving ``path`` against the working directory."""
    resolved = Path.cwd() / path
    try:
        with open(resolved, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ResourceFileError(
            f"Invalid JSON in {path}: {e}", path=str(resolved), cause=e
        ) from e
    except OSError as e:
        raise ResourceFileError(
            f"Cannot read resource file {path}: {e}", path=str(resolved), cause=e
        ) from e
