"""Release pipeline: turn a packaged addon into a marketplace pull request."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from addon_release.core.github import (
    PullRequestAlreadyExists,
    PullRequestClient,
    PullRequestError,
    PullRequestInfo,
)
from addon_release.core.secrets import SecretError
from addon_release.core.workspace import ArtifactError, RepositoryError, RepositoryWorkspace
from addon_release.validators import is_valid_addon_name

logger = logging.getLogger(__name__)

_ERROR_FAMILIES: tuple[type[Exception], ...] = (SecretError, RepositoryError, ArtifactError, PullRequestError)


class ReleaseState(str, Enum):
    START = "start"
    CLONED = "cloned"
    BASE_RESET = "base_reset"
    BRANCH_CREATED = "branch_created"
    ARTIFACT_STAGED = "artifact_staged"
    PUSHED = "pushed"
    SECRET_FETCHED = "secret_fetched"
    PULL_REQUEST_OPENED = "pull_request_opened"
    CLEANED = "cleaned"


class SecretProvider(Protocol):
    def get_secret(self, name: str) -> str: ...


class PipelineError(Exception):
    """A release failed; the workspace has already been torn down.

    Attributes:
        kind: Error family of the cause (``SecretError``, ``RepositoryError``,
            ``ArtifactError``, ``PullRequestError``) or its own class name.
        step: Operation that failed (e.g. ``clone``, ``fetch_secret``).
        state: Last state the release reached before failing.
        cause: The underlying exception (also ``__cause__``).
        states: Every state the run went through, ending with ``CLEANED``
            when the teardown succeeded.
    """

    def __init__(
        self,
        step: str,
        state: ReleaseState,
        cause: BaseException,
        *,
        states: list[ReleaseState] | None = None,
    ) -> None:
        self.kind = next(
            (family.__name__ for family in _ERROR_FAMILIES if isinstance(cause, family)),
            type(cause).__name__,
        )
        super().__init__(f"Release failed during {step} ({self.kind}): {cause}")
        self.step = step
        self.state = state
        self.cause = cause
        self.states = states if states is not None else [state]


@dataclass(frozen=True)
class ReleaseTarget:
    """Repository the addon is submitted to."""

    owner: str
    repo: str
    base_branch: str = "main"
    secret_name: str = "github-access-token-secret"
    clone_url: str | None = None

    @property
    def url(self) -> str:
        return self.clone_url or f"https://github.com/{self.owner}/{self.repo}.git"


@dataclass(frozen=True)
class ReleaseRequest:
    """One addon release; the artifact must already be unpacked under ``staging_root``."""

    addon_name: str
    region: str
    staging_root: Path = Path(".")

    def __post_init__(self) -> None:
        if not is_valid_addon_name(self.addon_name):
            raise ValueError(f"Invalid addon name: {self.addon_name!r}")

    @property
    def staging_dir(self) -> Path:
        return self.staging_root / f"unzipped-{self.addon_name}"

    @property
    def artifact_path(self) -> Path:
        return self.staging_dir / f"{self.addon_name}.tgz"

    @property
    def head_branch(self) -> str:
        return f"feature/{self.addon_name}"


@dataclass
class ReleaseResult:
    addon_name: str
    head_branch: str
    base_branch: str
    commit_sha: str
    pull_request: PullRequestInfo | None
    already_existed: bool = False
    states: list[ReleaseState] = field(default_factory=list)


class ReleasePipeline:
    """Runs clone, branch, stage, push and pull request for one addon.

    Steps run strictly in order. The workspace and the artifact staging
    directory are removed once per run whatever the outcome, and any failure
    is re-raised as :class:`PipelineError` naming the step that failed.
    """

    def __init__(
        self,
        workspace: RepositoryWorkspace,
        secrets: SecretProvider,
        pull_requests: PullRequestClient,
        target: ReleaseTarget,
    ) -> None:
        self._workspace = workspace
        self._secrets = secrets
        self._pull_requests = pull_requests
        self._target = target

    def run(self, request: ReleaseRequest) -> ReleaseResult:
        """Release ``request.addon_name`` and return the opened pull request.

        Raises:
            PipelineError: If any step (or the teardown itself) fails.
        """
        target = self._target
        name = request.addon_name
        states = [ReleaseState.START]
        step = "clone"

        def reached(state: ReleaseState, next_step: str) -> None:
            nonlocal step
            states.append(state)
            step = next_step
            logger.debug(f"{name}: {state.value}")

        logger.info(f"Releasing {name} to {target.owner}/{target.repo} ({request.region})")
        try:
            result = self._release(request, reached)
        except Exception as e:
            logger.error(f"{name}: {step} failed: {e}")
            failure = PipelineError(step, states[-1], e, states=states)
            self._teardown(request, states, failed=True)
            raise failure from e
        except BaseException:
            self._teardown(request, states, failed=True)
            raise

        result.states = states
        self._teardown(request, states, failed=False)
        logger.info(f"{name}: released on {result.head_branch}")
        return result

    def _release(self, request: ReleaseRequest, reached: Callable[[ReleaseState, str], None]) -> ReleaseResult:
        target = self._target
        name = request.addon_name

        self._workspace.prepare(target.url)
        reached(ReleaseState.CLONED, "reset_to_base")

        self._workspace.reset_to_base(target.base_branch)
        reached(ReleaseState.BASE_RESET, "create_feature_branch")

        self._workspace.create_feature_branch(request.head_branch)
        reached(ReleaseState.BRANCH_CREATED, "stage_artifact")

        self._workspace.stage_artifact(request.artifact_path, request.artifact_path.name)
        reached(ReleaseState.ARTIFACT_STAGED, "commit_and_push")

        sha = self._workspace.commit_and_push(request.head_branch, f"Adding {name} Addon")
        reached(ReleaseState.PUSHED, "fetch_secret")

        credential = self._secrets.get_secret(target.secret_name)
        reached(ReleaseState.SECRET_FETCHED, "open_pull_request")

        already_existed = False
        try:
            pr = self._pull_requests.open_pull_request(
                credential,
                target.owner,
                target.repo,
                title=f"Adding {name} Addon",
                body=f"Adding {name} Addon to the repository",
                base=target.base_branch,
                head=request.head_branch,
            )
        except PullRequestAlreadyExists as e:
            logger.info(f"{e}; nothing to open")
            pr = e.existing
            already_existed = True
        reached(ReleaseState.PULL_REQUEST_OPENED, "teardown")

        return ReleaseResult(
            addon_name=name,
            head_branch=request.head_branch,
            base_branch=target.base_branch,
            commit_sha=sha,
            pull_request=pr,
            already_existed=already_existed,
        )

    def _teardown(self, request: ReleaseRequest, states: list[ReleaseState], *, failed: bool) -> None:
        """Remove the clone and staging directory, recording ``CLEANED`` on success.

        After a failed run a teardown error is only logged, so the step
        failure stays the one reported.
        """
        try:
            self._workspace.teardown(request.staging_dir, staging_root=request.staging_root)
        except Exception as e:
            if failed:
                logger.error(f"{request.addon_name}: teardown also failed: {e}")
                return
            raise PipelineError("teardown", states[-1], e, states=states) from e
        states.append(ReleaseState.CLEANED)
