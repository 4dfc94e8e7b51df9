"""Workspace manager for the transient clone of the marketplace repository."""

import logging
import shutil
from pathlib import Path

from git import Repo

from addon_release.core.git import GitError, GitService

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base exception for failures while preparing the release branch."""

    step = "repository"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.step}: {message}")


class CloneFailed(RepositoryError):
    step = "clone"


class BaseResetFailed(RepositoryError):
    step = "reset_to_base"


class BranchCreateFailed(RepositoryError):
    step = "create_feature_branch"


class PushRejected(RepositoryError):
    step = "commit_and_push"


class WorkspaceNotPrepared(RepositoryError):
    step = "workspace"


class ArtifactError(Exception):
    """Base exception for problems with the packaged addon artifact."""

    pass


class ArtifactMissing(ArtifactError):
    """The packaged artifact was not found where the packaging step puts it."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Packaged artifact not found: {path}")
        self.path = path


class RepositoryWorkspace:
    """Manages the local clone used for a single release.

    The clone lives at ``<workspace_dir>/<name>`` and is disposable: it is
    recreated by :meth:`prepare` and removed by :meth:`teardown`.
    """

    def __init__(self, workspace_dir: Path, name: str, git_service: GitService) -> None:
        """Initialize the workspace.

        Args:
            workspace_dir: Base directory for the clone.
            name: Directory name of the clone (usually the repository name).
            git_service: Git service instance.
        """
        self._workspace_dir = workspace_dir
        self._name = name
        self._git = git_service
        self._repo: Repo | None = None

    @property
    def path(self) -> Path:
        """Local path of the clone."""
        return self._workspace_dir / self._name

    @property
    def repo(self) -> Repo:
        """The cloned repository.

        Raises:
            WorkspaceNotPrepared: If :meth:`prepare` has not run.
        """
        if self._repo is None:
            raise WorkspaceNotPrepared(f"no clone at {self.path}, call prepare() first")
        return self._repo

    def prepare(self, repo_url: str) -> Repo:
        """Remove any stale clone and clone ``repo_url`` afresh.

        Raises:
            CloneFailed: If the directory cannot be recreated or the clone fails.
        """
        self._repo = None
        try:
            if self.path.exists():
                logger.info(f"Removing stale workspace {self.path}")
                shutil.rmtree(self.path)
            self.path.mkdir(parents=True)
        except OSError as e:
            raise CloneFailed(f"could not recreate {self.path}: {e}") from e

        try:
            self._repo = self._git.clone(repo_url, self.path)
        except GitError as e:
            raise CloneFailed(str(e)) from e
        return self._repo

    def reset_to_base(self, base_branch: str) -> None:
        """Check out ``base_branch`` and hard-reset it to the remote tip.

        Raises:
            BaseResetFailed: If fetching, checking out or resetting fails.
        """
        repo = self.repo
        try:
            self._git.fetch(repo)
            self._git.checkout(repo, base_branch)
            self._git.reset_hard(repo, f"origin/{base_branch}")
        except GitError as e:
            raise BaseResetFailed(str(e)) from e

    def create_feature_branch(self, head_branch: str) -> None:
        """Recreate ``head_branch`` from the current (just reset) base.

        A local branch with the same name left over from an earlier run is
        deleted first, so repeated releases of one addon need no manual
        cleanup.

        Raises:
            BranchCreateFailed: If the old branch cannot be removed or the new one created.
        """
        repo = self.repo
        try:
            if self._git.branch_exists(repo, head_branch):
                self._git.delete_branch(repo, head_branch)
            self._git.checkout(repo, head_branch, create=True)
        except GitError as e:
            raise BranchCreateFailed(str(e)) from e

    def stage_artifact(self, source_path: Path, dest_file_name: str) -> Path:
        """Copy the packaged artifact into the root of the clone.

        Returns:
            Path of the copied file inside the workspace.

        Raises:
            ArtifactMissing: If ``source_path`` is not an existing file.
            ArtifactError: If the copy fails.
        """
        if not source_path.is_file():
            raise ArtifactMissing(source_path)

        target = Path(self.repo.working_tree_dir) / dest_file_name
        try:
            shutil.copyfile(source_path, target)
        except OSError as e:
            raise ArtifactError(f"Could not copy {source_path} into the workspace: {e}") from e
        logger.info(f"Staged {source_path} as {target}")
        return target

    def commit_and_push(self, head_branch: str, message: str) -> str:
        """Commit every change and push ``head_branch`` with upstream tracking.

        A branch left on the remote by an earlier run of the same release is
        replaced; one that moved since the clone was made is not.

        Returns:
            SHA of the pushed commit.

        Raises:
            PushRejected: If the commit or the push fails.
        """
        repo = self.repo
        try:
            sha = self._git.commit(repo, message, all_changes=True)
            self._git.push(repo, branch=head_branch, set_upstream=True, force_with_lease=True)
        except GitError as e:
            raise PushRejected(str(e)) from e
        return sha

    def teardown(self, staging_dir: Path | None = None, *, staging_root: Path | None = None) -> None:
        """Remove the clone and, when given, the artifact staging directory.

        ``staging_dir`` is only removed if it resolves to a directory strictly
        inside ``staging_root`` (default: its own parent as written).

        Raises:
            ArtifactError: If ``staging_dir`` escapes ``staging_root``; the
                clone has been removed by then.
        """
        if self._repo is not None:
            self._repo.close()
            self._repo = None

        if self.path.exists():
            logger.info(f"Removing {self.path}")
            shutil.rmtree(self.path)

        if staging_dir is None:
            return
        root = (staging_root if staging_root is not None else staging_dir.parent).resolve()
        if root not in staging_dir.resolve().parents:
            raise ArtifactError(f"Refusing to remove {staging_dir}: not inside {root}")
        if staging_dir.exists():
            logger.info(f"Removing {staging_dir}")
            shutil.rmtree(staging_dir)
