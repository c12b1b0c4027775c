"""Tests for git branch detection."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from agent_session_sync.git_utils import detect_git_branch


class TestDetectGitBranch:
    """Tests for detect_git_branch."""

    async def test_missing_directory(self, tmp_path: Path) -> None:
        assert await detect_git_branch(tmp_path / "missing") is None

    async def test_file_is_not_a_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "file.txt"
        path.write_text("x", encoding="utf-8")

        assert await detect_git_branch(path) is None

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    async def test_reads_branch(self, tmp_path: Path) -> None:
        """The checked-out branch of a fresh repository is reported."""
        subprocess.run(
            ["git", "init", "-q", "-b", "feature-x", str(tmp_path)],
            check=True,
            capture_output=True,
        )
        subprocess.run(
            [
                "git", "-C", str(tmp_path),
                "-c", "user.name=t", "-c", "user.email=t@example.com",
                "commit", "-q", "--allow-empty", "-m", "init",
            ],
            check=True,
            capture_output=True,
        )

        assert await detect_git_branch(tmp_path) == "feature-x"
