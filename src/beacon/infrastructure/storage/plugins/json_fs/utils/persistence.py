"""Asynchronous load/save of the JSON document backing ephemeral storage."""

import json
import os
from typing import Dict, Optional

import aiofiles


async def load_json_file(
    file_path: str, default: Optional[Dict[str, str]] = None
) -> Dict[str, str]:
    """Read the storage document.

    Args:
        file_path (str): Location of the document.
        default (Optional[Dict[str, str]]): Returned when the document does not
            exist yet. Without it a missing document is an error.

    Returns:
        Dict[str, str]: Stored key to serialized item.

    Raises:
        FileNotFoundError: If the document is missing and no default is given.
        OSError: If the document cannot be read or is not a JSON object.
    """
    if not os.path.exists(file_path):
        if default is None:
            raise FileNotFoundError(f"Storage document not found: {file_path}")
        return default

    async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
        raw = await f.read()
    try:
        document = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError as e:
        raise OSError(f"Corrupt storage document {file_path}: {e.msg}")
    if not isinstance(document, dict):
        raise OSError(f"Storage document {file_path} is not a JSON object")
    return document


async def save_json_file(file_path: str, data: Dict[str, str]) -> None:
    """Replace the storage document.

    The new content goes to ``<file>.tmp`` first and is renamed over the
    document, so readers see either the old or the new version.

    Raises:
        OSError: If the document cannot be written.
    """
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    staging = f"{file_path}.tmp"
    payload = json.dumps(data)
    async with aiofiles.open(staging, "w", encoding="utf-8") as f:
        await f.write(payload)
    os.replace(staging, file_path)
