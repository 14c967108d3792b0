"""
Git Operations for Plugin Sources.

This module provides the git operations the installer and updater need.

Key features:
- Shallow clone of a plugin repository
- Fast-forward-only pull of an existing checkout
- GitFetcher wrapper so callers can swap in a different fetch backend
"""

import logging
import subprocess
from pathlib import Path

from pman.errors import PluginError

logger = logging.getLogger(__name__)


class GitError(PluginError):
    """Base exception for git-related errors."""

    pass


def _run_git(cmd: list[str], action: str, timeout: float | None) -> None:
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        raise GitError("git command not found. Please install git.") from e
    except subprocess.TimeoutExpired as e:
        raise GitError(f"Failed to {action}: timed out after {timeout} seconds") from e
    except OSError as e:
        raise GitError(f"Failed to {action}: {e}") from e

    if result.returncode != 0:
        raise GitError(
            f"Failed to {action}: {(result.stderr or result.stdout).strip()}"
        )


def clone_plugin(
    repo_url: str,
    target_dir: Path,
    depth: int | None = 1,
    timeout: float | None = None,
) -> None:
    """
    Clone a plugin repository.

    Args:
        repo_url: Git repository URL
        target_dir: Target directory for clone
        depth: History depth (None for a full clone)
        timeout: Seconds before the git process is abandoned

    Raises:
        GitError: If clone operation fails
    """
    # Ensure parent directory exists
    target_dir.parent.mkdir(parents=True, exist_ok=True)

    cmd = ["git", "clone"]
    if depth:
        cmd.extend(["--depth", str(depth)])
    cmd.extend([repo_url, str(target_dir)])

    _run_git(cmd, "clone repository", timeout)


def pull_ff_only(repo_dir: Path, timeout: float | None = None) -> None:
    """
    Fast-forward an existing checkout to its upstream.

    Args:
        repo_dir: Plugin repository directory
        timeout: Seconds before the git process is abandoned

    Raises:
        GitError: If the pull fails or would need a merge
    """
    _run_git(
        ["git", "-C", str(repo_dir), "pull", "--ff-only"],
        f"update {repo_dir.name}",
        timeout,
    )


class GitFetcher:
    """
    Fetch backend used by Installer and Updater.

    Args:
        depth: Clone depth passed to clone_plugin
        timeout: Per-command timeout in seconds
    """

    def __init__(self, depth: int | None = 1, timeout: float | None = None):
        self.depth = depth
        self.timeout = timeout

    def clone(self, url: str, target_dir: Path) -> None:
        clone_plugin(url, target_dir, depth=self.depth, timeout=self.timeout)

    def pull(self, repo_dir: Path) -> None:
        pull_ff_only(repo_dir, timeout=self.timeout)
