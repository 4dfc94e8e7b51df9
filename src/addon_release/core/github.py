"""GitHub API service using PyGithub."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from github import Auth, BadCredentialsException, Github, GithubException
from github.PullRequest import PullRequest as GHPullRequest

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"


class PullRequestError(Exception):
    """Exception raised for pull request API failures."""

    pass


class AuthInvalid(PullRequestError):
    """The credential was rejected by GitHub."""

    pass


class HeadNotFound(PullRequestError):
    """GitHub does not know the head branch (it was never pushed)."""

    pass


class PullRequestAlreadyExists(PullRequestError):
    """An open pull request already exists for the head branch."""

    def __init__(self, message: str, existing: "PullRequestInfo | None" = None) -> None:
        super().__init__(message)
        self.existing = existing


@dataclass
class PullRequestInfo:
    """Information about a pull request."""

    number: int
    title: str
    state: str
    url: str
    html_url: str
    head_ref: str
    base_ref: str
    draft: bool
    created_at: datetime


class PullRequestClient:
    """Opens pull requests on GitHub.

    A fresh API client is built for every call from the credential passed in,
    so the token is only held for the duration of the request.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, *, timeout: int = 30) -> None:
        """Initialize the client.

        Args:
            base_url: GitHub API base URL (for GitHub Enterprise).
            timeout: Request timeout in seconds.
        """
        self._base_url = base_url
        self._timeout = timeout

    def _client(self, credential: str) -> Github:
        auth = Auth.Token(credential)
        if self._base_url == DEFAULT_BASE_URL:
            return Github(auth=auth, timeout=self._timeout)
        return Github(auth=auth, base_url=self._base_url, timeout=self._timeout)

    def open_pull_request(
        self,
        credential: str,
        owner: str,
        repo: str,
        *,
        title: str,
        body: str,
        base: str,
        head: str,
    ) -> PullRequestInfo:
        """Create a pull request.

        Args:
            credential: GitHub access token.
            owner: Repository owner.
            repo: Repository name.
            title: PR title.
            body: PR description.
            base: Base branch name.
            head: Head branch name.

        Returns:
            Pull request information.

        Raises:
            AuthInvalid: If the token is rejected.
            HeadNotFound: If GitHub does not know the head branch.
            PullRequestAlreadyExists: If a PR for ``head`` is already open.
            PullRequestError: For any other API failure.
        """
        repo_path = f"{owner}/{repo}"
        client = self._client(credential)
        try:
            gh_repo = client.get_repo(repo_path)
            pr = gh_repo.create_pull(title=title, body=body, head=head, base=base)
        except BadCredentialsException as e:
            raise AuthInvalid(f"GitHub rejected the access token for {repo_path}") from e
        except GithubException as e:
            if e.status in (401, 403):
                raise AuthInvalid(f"Access to {repo_path} denied: {_error_message(e)}") from e
            if e.status == 422 and _mentions_existing_pr(e.data):
                existing = self._find_open_pr(client, repo_path, owner, head, base)
                raise PullRequestAlreadyExists(
                    f"A pull request from {head} into {base} already exists in {repo_path}",
                    existing=existing,
                ) from e
            if e.status == 422 and _mentions_head_field(e.data):
                raise HeadNotFound(f"Head branch {head} not found in {repo_path}") from e
            raise PullRequestError(f"Failed to create PR in {repo_path}: {_error_message(e)}") from e
        finally:
            client.close()

        logger.info(f"Created PR #{pr.number}: {title}")
        return self._pr_to_info(pr)

    def _find_open_pr(
        self, client: Github, repo_path: str, owner: str, head: str, base: str
    ) -> PullRequestInfo | None:
        """Look up the open PR for ``head``; None when the lookup itself fails."""
        try:
            pulls = client.get_repo(repo_path).get_pulls(state="open", head=f"{owner}:{head}", base=base)
            for pr in pulls:
                return self._pr_to_info(pr)
        except GithubException as e:
            logger.warning(f"Could not look up existing PR for {head} in {repo_path}: {_error_message(e)}")
        return None

    def _pr_to_info(self, pr: GHPullRequest) -> PullRequestInfo:
        """Convert GitHub PR object to PullRequestInfo."""
        return PullRequestInfo(
            number=pr.number,
            title=pr.title,
            state=pr.state,
            url=pr.url,
            html_url=pr.html_url,
            head_ref=pr.head.ref,
            base_ref=pr.base.ref,
            draft=pr.draft,
            created_at=pr.created_at,
        )


def _validation_errors(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    errors = data.get("errors") or []
    return [err for err in errors if isinstance(err, dict)]


def _mentions_existing_pr(data: Any) -> bool:
    return any("already exists" in str(err.get("message", "")) for err in _validation_errors(data))


def _mentions_head_field(data: Any) -> bool:
    return any(err.get("field") == "head" for err in _validation_errors(data))


def _error_message(e: GithubException) -> str:
    if isinstance(e.data, dict) and e.data.get("message"):
        return str(e.data["message"])
    return str(e)
