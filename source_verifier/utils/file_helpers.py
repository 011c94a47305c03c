"""
JSON file I/O for domain pattern files and CLI reports.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Union


JsonPayload = Union[Dict[str, Any], List[Any]]


def safe_read_json(path: Path) -> Dict[str, Any]:
    """
    Read a JSON file whose top level must be an object.

    Args:
        path: JSON file path

    Returns:
        Parsed JSON object

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is not valid JSON or not an object
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}")

    return data


def safe_write_json(path: Path, data: JsonPayload, indent: int = 2) -> None:
    """
    Atomic write of JSON file.

    Writes to a temp file beside the target, then renames over it.

    Args:
        path: File path to write
        data: Object or list to serialize
        indent: JSON indentation (default: 2)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    temp_path = path.with_suffix(path.suffix + ".tmp")
    with open(temp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)

    temp_path.replace(path)
