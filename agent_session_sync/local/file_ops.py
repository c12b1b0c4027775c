"""
JSON and JSONL file primitives for session records and payload queues.

- Whole-file writes go through a hidden temp file in the target directory,
  are fsynced, then replace the target, so readers never see a partial file
- JSONL reads are lenient: a line torn by a crashed writer is skipped
- Archival is a rename that prepends a prefix to the basename
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import StorageIOError

logger = logging.getLogger(__name__)

_TEMP_PREFIX = ".tmp_"


async def ensure_directory(path: Path) -> None:
    """Create a directory and its parents if missing."""
    try:
        await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise StorageIOError("create_directory", str(path), e) from e


async def read_json(path: Path) -> dict[str, Any] | None:
    """Load a JSON document.

    Returns:
        The document, or None when the file is missing or empty

    Raises:
        StorageIOError: operation ``parse_json`` for invalid JSON,
            ``read_json`` for I/O failures
    """
    if not await aiofiles.os.path.exists(path):
        return None
    try:
        async with aiofiles.open(path, encoding="utf-8") as f:
            text = await f.read()
    except OSError as e:
        raise StorageIOError("read_json", str(path), e) from e

    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise StorageIOError("parse_json", str(path), e) from e


async def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Replace a JSON document (indented for inspection)."""
    try:
        text = _dumps(data, indent=2)
    except (TypeError, ValueError) as e:
        raise StorageIOError("serialize_json", str(path), e) from e
    await _replace_file(path, text, suffix=".json", operation="write_json")


async def read_jsonl(path: Path) -> list[dict[str, Any]]:
    """Load every parseable line of a JSONL file.

    A missing file has no records and blank lines are ignored. Any line
    that does not decode to a JSON object is logged and skipped; a writer
    killed mid-append can cut a line inside a multi-byte character.
    """
    if not await aiofiles.os.path.exists(path):
        return []

    records: list[dict[str, Any]] = []
    try:
        async with aiofiles.open(path, "rb") as f:
            line_number = 0
            async for raw in f:
                line_number += 1
                try:
                    text = raw.decode("utf-8").strip()
                    if not text:
                        continue
                    record = json.loads(text)
                except (UnicodeDecodeError, json.JSONDecodeError) as e:
                    logger.warning(f"Skipping malformed line {line_number} in {path}: {e}")
                    continue
                if not isinstance(record, dict):
                    logger.warning(
                        f"Skipping line {line_number} in {path}: "
                        f"expected an object, got {type(record).__name__}"
                    )
                    continue
                records.append(record)
    except OSError as e:
        raise StorageIOError("read_jsonl", str(path), e) from e
    return records


async def append_jsonl(path: Path, data: dict[str, Any]) -> None:
    """Append one record as a line, creating the file if needed."""
    await ensure_directory(path.parent)
    try:
        line = _dumps(data) + "\n"
    except (TypeError, ValueError) as e:
        raise StorageIOError("serialize_jsonl", str(path), e) from e

    try:
        async with aiofiles.open(path, "a", encoding="utf-8") as f:
            await f.write(line)
            await f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise StorageIOError("append_jsonl", str(path), e) from e


async def write_jsonl_atomic(path: Path, records: list[dict[str, Any]]) -> None:
    """Replace a JSONL file with the given records, one per line.

    A concurrent reader sees either the old file or the complete new one.
    """
    try:
        text = "".join(_dumps(record) + "\n" for record in records)
    except (TypeError, ValueError) as e:
        raise StorageIOError("serialize_jsonl", str(path), e) from e
    await _replace_file(path, text, suffix=".jsonl", operation="write_jsonl")


async def _replace_file(path: Path, text: str, *, suffix: str, operation: str) -> None:
    await ensure_directory(path.parent)

    handle, temp_name = tempfile.mkstemp(dir=path.parent, prefix=_TEMP_PREFIX, suffix=suffix)
    os.close(handle)
    try:
        async with aiofiles.open(temp_name, "w", encoding="utf-8") as f:
            await f.write(text)
            await f.flush()
            os.fsync(f.fileno())
        await aiofiles.os.replace(temp_name, path)
    except Exception as e:
        if await aiofiles.os.path.exists(temp_name):
            await aiofiles.os.remove(temp_name)
        raise StorageIOError(operation, str(path), e) from e


async def rename_with_prefix(path: Path, prefix: str) -> Path | None:
    """Rename ``dir/name`` to ``dir/{prefix}name``.

    Returns:
        The new path, or None when there was nothing to rename
    """
    if not await aiofiles.os.path.exists(path):
        return None

    target = path.with_name(prefix + path.name)
    try:
        await aiofiles.os.rename(path, target)
    except OSError as e:
        raise StorageIOError("rename", str(path), e) from e
    return target


async def file_exists(path: Path) -> bool:
    return await aiofiles.os.path.exists(path)


async def list_files(path: Path, suffix: str) -> list[Path]:
    """Files in a directory ending with ``suffix``, sorted by name."""
    if not await aiofiles.os.path.isdir(path):
        return []
    try:
        names = await aiofiles.os.listdir(path)
    except OSError as e:
        raise StorageIOError("list_files", str(path), e) from e
    return sorted(path / name for name in names if name.endswith(suffix))


def _dumps(data: Any, indent: int | None = None) -> str:
    return json.dumps(data, indent=indent, ensure_ascii=False, default=_encode_extra)


def _encode_extra(obj: Any) -> Any:
    # datetime, Path and record objects are the only non-JSON values written
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
