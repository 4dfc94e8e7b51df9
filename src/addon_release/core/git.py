"""Git operations service using GitPython."""

import logging
from pathlib import Path

from git import Git, Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, UnsafeProtocolError

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Exception raised for git operation failures."""

    pass


class GitService:
    """Service for local git operations.

    Wraps GitPython to provide a clean interface for the git operations a
    release needs. Commands are always passed as argument lists, never as
    shell strings. Commands that talk to the remote are killed after
    ``timeout`` seconds.
    """

    def __init__(self, *, timeout: int | None = None) -> None:
        """Initialize the git service.

        Args:
            timeout: Seconds before a network git command is killed (None for no limit).
        """
        self._timeout = timeout

    def clone(self, url: str, target_dir: Path) -> Repo:
        """Clone a repository.

        Args:
            url: Repository URL (HTTPS, SSH or local path).
            target_dir: Local directory to clone into.

        Returns:
            The cloned repository object.

        Raises:
            GitError: If clone fails.
        """
        try:
            Git.check_unsafe_protocols(url)
            logger.info(f"Cloning {url} to {target_dir}")
            Git().clone("--", url, str(target_dir), kill_after_timeout=self._timeout)
            return Repo(target_dir)
        except (GitCommandError, UnsafeProtocolError, InvalidGitRepositoryError, NoSuchPathError) as e:
            raise GitError(f"Failed to clone {url}: {e}") from e

    def fetch(self, repo: Repo, *, remote: str = "origin") -> None:
        """Fetch updates from remote without merging.

        Args:
            repo: Repository object.
            remote: Remote name.
        """
        try:
            repo.git.fetch(remote, "--prune", kill_after_timeout=self._timeout)
        except GitCommandError as e:
            raise GitError(f"Failed to fetch from {remote}: {e}") from e

    def checkout(
        self,
        repo: Repo,
        branch: str,
        *,
        create: bool = False,
    ) -> None:
        """Checkout a branch.

        Args:
            repo: Repository object.
            branch: Branch name.
            create: Create the branch if it doesn't exist.

        Raises:
            GitError: If checkout fails.
        """
        try:
            if create:
                repo.git.checkout("-b", branch)
                logger.info(f"Created and checked out branch: {branch}")
            else:
                repo.git.checkout(branch)
                logger.info(f"Checked out branch: {branch}")
        except GitCommandError as e:
            raise GitError(f"Failed to checkout {branch}: {e}") from e

    def reset_hard(self, repo: Repo, ref: str) -> None:
        """Hard-reset the current branch and working tree to ``ref``.

        Raises:
            GitError: If the reset fails.
        """
        try:
            repo.git.reset("--hard", ref)
            logger.info(f"Reset to {ref}")
        except GitCommandError as e:
            raise GitError(f"Failed to reset to {ref}: {e}") from e

    def branch_exists(self, repo: Repo, branch: str) -> bool:
        """Check whether a local branch exists."""
        return branch in [head.name for head in repo.heads]

    def delete_branch(self, repo: Repo, branch: str) -> None:
        """Force-delete a local branch.

        Raises:
            GitError: If the branch cannot be deleted.
        """
        try:
            repo.git.branch("-D", branch)
            logger.info(f"Deleted local branch: {branch}")
        except GitCommandError as e:
            raise GitError(f"Failed to delete branch {branch}: {e}") from e

    def commit(
        self,
        repo: Repo,
        message: str,
        *,
        all_changes: bool = False,
    ) -> str:
        """Create a commit.

        Args:
            repo: Repository object.
            message: Commit message.
            all_changes: Stage all changes before committing.

        Returns:
            The commit SHA.

        Raises:
            GitError: If commit fails.
        """
        try:
            if all_changes:
                repo.git.add("-A")

            commit = repo.index.commit(message)
            logger.info(f"Created commit: {commit.hexsha[:8]} - {message}")
            return commit.hexsha
        except (GitCommandError, OSError) as e:
            raise GitError(f"Failed to commit: {e}") from e

    def push(
        self,
        repo: Repo,
        *,
        remote: str = "origin",
        branch: str | None = None,
        set_upstream: bool = False,
        force_with_lease: bool = False,
    ) -> None:
        """Push commits to remote.

        Args:
            repo: Repository object.
            remote: Remote name.
            branch: Branch to push (default: current branch).
            set_upstream: Set upstream tracking.
            force_with_lease: Overwrite the remote branch only if it still
                matches our remote-tracking ref (or is absent when we have none).

        Raises:
            GitError: If push fails.
        """
        try:
            target_branch = branch or repo.active_branch.name

            args: list[str] = []
            if force_with_lease:
                args.append("--force-with-lease")
            if set_upstream:
                args.append("--set-upstream")
            repo.git.push(*args, remote, target_branch, kill_after_timeout=self._timeout)

            logger.info(f"Pushed {target_branch} to {remote}")
        except GitCommandError as e:
            raise GitError(f"Failed to push: {e}") from e
