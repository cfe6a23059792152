# ============================================================================
# REPOSITORY INSPECTOR
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Service - Repository state for discovery context
# PURPOSE: Read file tree, git status and recent commits of a job workspace
# CREATED: 17 OCT 2026
# ============================================================================
"""
Repository Inspector

Each job works in {WORKSPACE_ROOT}/{session_path}. When that checkout
exists, discovery gets a real file tree, git status and commit log;
otherwise it gets placeholder text.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

NO_WORKSPACE = "Workspace not available"


@dataclass
class RepositorySnapshot:
    file_tree: str = NO_WORKSPACE
    git_status: str = NO_WORKSPACE
    recent_commits: List[str] = field(default_factory=list)


class RepositoryInspector:
    """Run read-only git commands in a job's workspace."""

    def __init__(
        self,
        workspace_root: Optional[str],
        recent_commit_count: int = 10,
        file_tree_limit: int = 200,
        command_timeout_seconds: float = 30.0,
    ):
        self.workspace_root = workspace_root
        self.recent_commit_count = recent_commit_count
        self.file_tree_limit = file_tree_limit
        self.command_timeout_seconds = command_timeout_seconds

    def workspace_path(self, session_path: str) -> Optional[str]:
        if not self.workspace_root:
            return None
        return os.path.join(self.workspace_root, session_path)

    async def _git(self, cwd: str, *args: str) -> Tuple[int, str]:
        process = await asyncio.create_subprocess_exec(
            "git", *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.command_timeout_seconds
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        output = stdout if process.returncode == 0 else stderr
        return process.returncode, output.decode("utf-8", errors="replace").strip()

    async def inspect(self, session_path: str) -> RepositorySnapshot:
        """
        Snapshot the workspace. Individual command failures degrade to a
        message in the affected field.
        """
        path = self.workspace_path(session_path)
        if path is None or not os.path.isdir(path):
            return RepositorySnapshot()

        snapshot = RepositorySnapshot()
        try:
            code, files = await self._git(path, "ls-files")
            if code == 0:
                listed = files.splitlines()
                snapshot.file_tree = "\n".join(listed[: self.file_tree_limit])
                if len(listed) > self.file_tree_limit:
                    snapshot.file_tree += f"\n... ({len(listed) - self.file_tree_limit} more files)"
            else:
                snapshot.file_tree = f"git ls-files failed: {files}"

            code, status = await self._git(path, "status", "--short", "--branch")
            snapshot.git_status = status if code == 0 else f"git status failed: {status}"

            code, log = await self._git(path, "log", "--oneline", f"-n{self.recent_commit_count}")
            if code == 0 and log:
                snapshot.recent_commits = log.splitlines()
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Repository inspection failed for {path}: {e}")

        return snapshot


__all__ = ["RepositoryInspector", "RepositorySnapshot", "NO_WORKSPACE"]
