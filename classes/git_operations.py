"""
Local git plumbing used by the commit and pull request workflow.
"""

import logging
import re
import subprocess
from typing import List

from classes.exceptions import GitCommandError, ValidationError

logger = logging.getLogger(__name__)


def resolve_repository_name(remote_url: str) -> str:
    """
    Repository name from a remote URL: the last path segment without '.git'.

    Handles https://host/org/_git/repo, .../repo.git and scp-style
    git@host:v3/org/project/repo URLs.
    """
    cleaned = (remote_url or "").strip().rstrip("/")
    name = re.split(r"[/:]", cleaned)[-1] if cleaned else ""
    if name.endswith(".git"):
        name = name[:-len(".git")]
    if not name:
        raise ValidationError(f"Cannot determine repository name from remote URL '{remote_url}'")
    return name


class GitRepository:
    """Runs git commands in a working copy."""

    def __init__(self, path: str = ".", runner=subprocess.run):
        self.path = path
        self._runner = runner

    def _git(self, *args: str) -> str:
        command = ["git", *args]
        logger.debug("Running: %s", " ".join(command))
        try:
            result = self._runner(command, cwd=self.path, capture_output=True, text=True)
        except FileNotFoundError as err:
            raise GitCommandError(command, 127, "git executable not found") from err
        if result.returncode != 0:
            raise GitCommandError(command, result.returncode, (result.stderr or "").strip())
        return (result.stdout or "").strip()

    def staged_files(self) -> List[str]:
        output = self._git("diff", "--cached", "--name-only")
        return [line for line in output.splitlines() if line.strip()]

    def commit(self, message: str, allow_empty: bool = False) -> None:
        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self._git(*args)
        logger.info("Committed: %s", message)

    def current_branch(self) -> str:
        branch = self._git("rev-parse", "--abbrev-ref", "HEAD")
        if not branch or branch == "HEAD":
            raise ValidationError("Not on a branch (detached HEAD); check out a branch first")
        return branch

    def force_push(self, branch: str, remote: str = "origin") -> None:
        """Force-push `branch` to the remote branch with the same name."""
        self._git("push", "--force", remote, f"{branch}:{branch}")
        logger.info("Force-pushed %s to %s/%s", branch, remote, branch)

    def remote_url(self, remote: str = "origin") -> str:
        return self._git("remote", "get-url", remote)
