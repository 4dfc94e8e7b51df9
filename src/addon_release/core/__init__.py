"""Core services - internal helpers for git, github, secrets, and file operations."""

from addon_release.core.files import FileService
from addon_release.core.git import GitService
from addon_release.core.github import PullRequestClient
from addon_release.core.secrets import SecretsManagerProvider
from addon_release.core.workspace import RepositoryWorkspace

__all__ = [
    "FileService",
    "GitService",
    "PullRequestClient",
    "RepositoryWorkspace",
    "SecretsManagerProvider",
]
