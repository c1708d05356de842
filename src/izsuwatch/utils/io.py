"""I/O utilities for data paths and JSON documents."""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Project root is 4 levels up from this file
_PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


def get_data_path(document: str) -> Path:
    """Get standardized path for a static data document.

    Args:
        document: One of 'history', 'locations', 'cache'

    Returns:
        Path to the document (parent directory is created if missing)

    Example:
        >>> path = get_data_path("history")
        >>> path
        PosixPath('.../izsuwatch/data/history.json')
    """
    filenames = {
        "history": "history.json",
        "locations": "locations.json",
        "cache": "cache.duckdb",
    }

    if document not in filenames:
        raise ValueError(f"Invalid document: {document}. Must be one of {set(filenames)}")

    path = _PROJECT_ROOT / "data" / filenames[document]
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_project_root() -> Path:
    """Get the project root directory."""
    return _PROJECT_ROOT


def read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON file, returning ``default`` if it is missing or malformed."""
    if not path.exists():
        logger.warning(f"JSON document not found: {path}")
        return default
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read JSON document {path}: {e}")
        return default


def write_json(path: Path, payload: Any) -> None:
    """Write ``payload`` as indented UTF-8 JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
