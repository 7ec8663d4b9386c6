"""
Cutover — Provider registry.

Ships 2 backends. Each declares its display label, what it calls a
change request, and which request fields it needs. The registry is
also where a fresh client is built for every release run.
"""

from __future__ import annotations

import httpx
from pydantic import BaseModel

from app.core.config import AppConfig
from app.errors import ConfigurationError
from app.models.release import ProviderKind, ReleaseRequest
from app.providers.base import ProviderClient
from app.providers.github import GitHubClient
from app.providers.gitlab import GitLabClient


class ProviderEntry(BaseModel):
    id: ProviderKind
    name: str
    change_request: str
    requires_mergeability_poll: bool
    requires_project_id: bool = False


PROVIDERS: dict[ProviderKind, ProviderEntry] = {
    ProviderKind.GITHUB: ProviderEntry(
        id=ProviderKind.GITHUB,
        name="GitHub",
        change_request="pull request",
        requires_mergeability_poll=False,
    ),
    ProviderKind.GITLAB: ProviderEntry(
        id=ProviderKind.GITLAB,
        name="GitLab",
        change_request="merge request",
        requires_mergeability_poll=True,
        requires_project_id=True,
    ),
}


def get_provider(kind: ProviderKind) -> ProviderEntry:
    return PROVIDERS[kind]


def list_providers() -> list[ProviderEntry]:
    return list(PROVIDERS.values())


def build_provider_client(
    kind: ProviderKind,
    request: ReleaseRequest,
    settings: AppConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderClient:
    """
    Build the client for one run, scoped to its repository and token.

    Raises ConfigurationError before any remote call if the backend
    cannot be reached with the current settings.
    """
    if kind == ProviderKind.GITHUB:
        if not settings.github.token:
            raise ConfigurationError("GitHub token is not configured (set GITHUB_TOKEN)")
        return GitHubClient(
            owner=request.repo_owner,
            repo=request.repo_name,
            token=settings.github.token,
            base_url=settings.github.base_url,
            timeout=settings.request_timeout,
            transport=transport,
        )

    if kind == ProviderKind.GITLAB:
        if not settings.gitlab.token:
            raise ConfigurationError("GitLab token is not configured (set GITLAB_TOKEN)")
        if not request.gitlab_project_id:
            raise ConfigurationError("GitLab project id is required")
        return GitLabClient(
            project_id=request.gitlab_project_id,
            repo=request.repo_name,
            token=settings.gitlab.token,
            base_url=settings.gitlab.base_url,
            timeout=settings.request_timeout,
            remove_source_branch=settings.gitlab.remove_source_branch,
            squash=settings.gitlab.squash,
            transport=transport,
        )

    raise ConfigurationError(f"Unsupported provider: {kind}")
