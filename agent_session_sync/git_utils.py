"""Git repository utilities."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 5.0  # seconds


async def detect_git_branch(working_directory: str | Path) -> str | None:
    """Return the checked-out branch of the repository at a path.

    Returns None if:
    - The path does not exist
    - The path is not inside a git work tree
    - Git is not installed or does not answer in time
    - HEAD is detached

    Args:
        working_directory: Directory to inspect

    Returns:
        Branch name, or None
    """
    path = Path(working_directory)
    if not path.is_dir():
        return None

    try:
        process = await asyncio.create_subprocess_exec(
            "git",
            "-C",
            str(path),
            "rev-parse",
            "--abbrev-ref",
            "HEAD",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        logger.debug(f"git unavailable for {path}: {e}")
        return None

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=GIT_TIMEOUT)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.debug(f"git timed out for {path}")
        return None

    if process.returncode != 0:
        return None

    branch = stdout.decode("utf-8", errors="replace").strip()
    if not branch or branch == "HEAD":
        return None
    return branch
