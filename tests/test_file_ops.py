"""Tests for atomic JSON/JSONL file operations."""

from __future__ import annotations

import json
from pathlib import Path

import aiofiles.os
import pytest

from agent_session_sync.exceptions import StorageIOError
from agent_session_sync.local.file_ops import (
    append_jsonl,
    file_exists,
    list_files,
    read_json,
    read_jsonl,
    rename_with_prefix,
    write_json_atomic,
    write_jsonl_atomic,
)


class TestReadJsonl:
    """Tests for read_jsonl."""

    async def test_missing_file_returns_empty(self, tmp_path: Path) -> None:
        """A queue that was never written has no records."""
        assert await read_jsonl(tmp_path / "missing.jsonl") == []

    async def test_skips_blank_and_malformed_lines(self, tmp_path: Path) -> None:
        """Torn lines from a crashed writer are skipped, not fatal."""
        path = tmp_path / "queue.jsonl"
        path.write_text('{"a": 1}\n\n{"b": 2\n{"c": 3}\n', encoding="utf-8")

        assert await read_jsonl(path) == [{"a": 1}, {"c": 3}]

    async def test_skips_line_cut_inside_multibyte_character(self, tmp_path: Path) -> None:
        """A line torn mid-character does not hide the lines around it."""
        path = tmp_path / "queue.jsonl"
        torn = '{"message": "café"}'.encode()[:-3]
        path.write_bytes(b'{"a": "d\xc3\xa9j\xc3\xa0"}\n' + torn + b"\n" + b'{"c": 3}\n')

        assert await read_jsonl(path) == [{"a": "déjà"}, {"c": 3}]

    async def test_skips_lines_that_are_not_objects(self, tmp_path: Path) -> None:
        """Valid JSON that is not an object is not a record."""
        path = tmp_path / "queue.jsonl"
        path.write_text('123\n"x"\n[1, 2]\nnull\n{"ok": true}\n', encoding="utf-8")

        assert await read_jsonl(path) == [{"ok": True}]

    async def test_append_then_read(self, tmp_path: Path) -> None:
        """Appended records are read back in order."""
        path = tmp_path / "nested" / "queue.jsonl"
        await append_jsonl(path, {"timestamp": 1})
        await append_jsonl(path, {"timestamp": 2})

        assert [r["timestamp"] for r in await read_jsonl(path)] == [1, 2]


class TestWriteJsonlAtomic:
    """Tests for write_jsonl_atomic."""

    async def test_creates_parent_directories(self, tmp_path: Path) -> None:
        """Parent directories are created as needed."""
        path = tmp_path / "a" / "b" / "queue.jsonl"
        await write_jsonl_atomic(path, [{"x": 1}])

        assert path.read_text(encoding="utf-8") == '{"x": 1}\n'

    async def test_replaces_existing_content(self, tmp_path: Path) -> None:
        """The whole file is replaced."""
        path = tmp_path / "queue.jsonl"
        path.write_text('{"old": true}\n{"old": true}\n', encoding="utf-8")

        await write_jsonl_atomic(path, [{"new": True}])

        assert await read_jsonl(path) == [{"new": True}]

    async def test_failed_rename_keeps_original(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A writer dying before the rename leaves the original intact."""
        path = tmp_path / "queue.jsonl"
        original = '{"status": "pending"}\n'
        path.write_text(original, encoding="utf-8")

        async def broken_replace(src, dst):
            raise OSError("disk gone")

        monkeypatch.setattr(aiofiles.os, "replace", broken_replace)

        with pytest.raises(StorageIOError) as exc_info:
            await write_jsonl_atomic(path, [{"status": "success"}])

        assert exc_info.value.operation == "write_jsonl"
        assert path.read_text(encoding="utf-8") == original
        assert [p.name for p in tmp_path.iterdir()] == ["queue.jsonl"]

    async def test_unserializable_record_keeps_original(self, tmp_path: Path) -> None:
        """Serialization errors are reported as StorageIOError."""
        path = tmp_path / "queue.jsonl"
        path.write_text('{"ok": 1}\n', encoding="utf-8")

        with pytest.raises(StorageIOError):
            await write_jsonl_atomic(path, [{"bad": object()}])

        assert await read_jsonl(path) == [{"ok": 1}]


class TestJsonDocuments:
    """Tests for read_json/write_json_atomic."""

    async def test_round_trip(self, tmp_path: Path) -> None:
        """Written documents are read back."""
        path = tmp_path / "record.json"
        await write_json_atomic(path, {"session_id": "s1", "path": tmp_path})

        data = await read_json(path)
        assert data == {"session_id": "s1", "path": str(tmp_path)}

    async def test_missing_returns_none(self, tmp_path: Path) -> None:
        """Missing documents read as None."""
        assert await read_json(tmp_path / "nope.json") is None

    async def test_malformed_raises(self, tmp_path: Path) -> None:
        """Corrupt documents raise StorageIOError."""
        path = tmp_path / "record.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageIOError) as exc_info:
            await read_json(path)
        assert exc_info.value.operation == "parse_json"

    async def test_written_json_is_pretty_printed(self, tmp_path: Path) -> None:
        """Documents are indented for human inspection."""
        path = tmp_path / "record.json"
        await write_json_atomic(path, {"a": 1})

        assert path.read_text(encoding="utf-8") == json.dumps({"a": 1}, indent=2)


class TestRenameWithPrefix:
    """Tests for rename_with_prefix."""

    async def test_renames_in_place(self, tmp_path: Path) -> None:
        """The prefix is prepended to the basename."""
        path = tmp_path / "s1.json"
        path.write_text("{}", encoding="utf-8")

        renamed = await rename_with_prefix(path, "completed_")

        assert renamed == tmp_path / "completed_s1.json"
        assert renamed.exists()
        assert not await file_exists(path)

    async def test_missing_source_returns_none(self, tmp_path: Path) -> None:
        """Nothing to rename is not an error."""
        assert await rename_with_prefix(tmp_path / "none.json", "completed_") is None


class TestListFiles:
    """Tests for list_files."""

    async def test_filters_by_suffix(self, tmp_path: Path) -> None:
        """Only files with the suffix are listed, sorted by name."""
        for name in ("b.json", "a.json", "a_metrics.jsonl"):
            (tmp_path / name).write_text("{}", encoding="utf-8")

        assert [p.name for p in await list_files(tmp_path, ".json")] == ["a.json", "b.json"]

    async def test_missing_directory(self, tmp_path: Path) -> None:
        """A missing directory has no files."""
        assert await list_files(tmp_path / "missing", ".json") == []
