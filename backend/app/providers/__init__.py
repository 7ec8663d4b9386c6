"""Provider clients for GitHub and GitLab."""

from app.providers.base import ProviderClient
from app.providers.github import GitHubClient
from app.providers.gitlab import GitLabClient
from app.providers.registry import build_provider_client, get_provider, list_providers

__all__ = [
    "GitHubClient",
    "GitLabClient",
    "ProviderClient",
    "build_provider_client",
    "get_provider",
    "list_providers",
]
