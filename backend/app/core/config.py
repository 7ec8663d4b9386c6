"""
Cutover — Backend Configuration
Loads .env automatically, then reads all settings from environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)

_log = logging.getLogger("cutover")

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class GitHubConfig:
    """GitHub REST API endpoint and token."""
    base_url: str
    token: str


@dataclass(frozen=True)
class GitLabConfig:
    """GitLab API v4 endpoint, token, and merge request options."""
    base_url: str
    token: str
    remove_source_branch: bool = True
    squash: bool = False


@dataclass(frozen=True)
class PollConfig:
    """Mergeability polling budget."""
    max_attempts: int = 7
    delay: float = 1.0
    backoff: float = 2.0
    max_delay: float = 8.0


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""
    host: str
    port: int
    debug: bool
    github: GitHubConfig
    gitlab: GitLabConfig
    poll: PollConfig
    request_timeout: float
    slack_webhook_url: str
    version_store_path: str
    status_overrides: dict[str, int] = field(default_factory=dict)


def parse_status_overrides(raw: str) -> dict[str, int]:
    """Parse ``kind=status`` pairs, e.g. ``merge_conflict=409,provider_auth=401``."""
    overrides: dict[str, int] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        kind, sep, code = pair.partition("=")
        if not sep:
            _log.warning("Ignoring malformed status override %r", pair)
            continue
        try:
            overrides[kind.strip().lower()] = int(code.strip())
        except ValueError:
            _log.warning("Ignoring non-integer status override %r", pair)
    return overrides


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE


def _load_config() -> AppConfig:
    return AppConfig(
        host=os.getenv("APP_HOST", "0.0.0.0"),
        port=int(os.getenv("APP_PORT", "8000")),
        debug=_flag("APP_DEBUG", "false"),
        github=GitHubConfig(
            base_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            token=os.getenv("GITHUB_TOKEN", ""),
        ),
        gitlab=GitLabConfig(
            base_url=os.getenv("GITLAB_API_URL", "https://gitlab.com/api/v4"),
            token=os.getenv("GITLAB_TOKEN", ""),
            remove_source_branch=_flag("GITLAB_REMOVE_SOURCE_BRANCH", "true"),
            squash=_flag("GITLAB_SQUASH", "false"),
        ),
        poll=PollConfig(
            max_attempts=int(os.getenv("MERGE_POLL_MAX_ATTEMPTS", "7")),
            delay=float(os.getenv("MERGE_POLL_DELAY", "1.0")),
            backoff=float(os.getenv("MERGE_POLL_BACKOFF", "2.0")),
            max_delay=float(os.getenv("MERGE_POLL_MAX_DELAY", "8.0")),
        ),
        request_timeout=float(os.getenv("PROVIDER_TIMEOUT", "30.0")),
        slack_webhook_url=os.getenv("SLACK_WEBHOOK_URL", ""),
        version_store_path=os.getenv("VERSION_STORE_PATH", ""),
        status_overrides=parse_status_overrides(os.getenv("ERROR_STATUS_OVERRIDES", "")),
    )


def _validate_config(cfg: AppConfig) -> None:
    """Warn about missing provider tokens; runs that need them fail on their own."""
    if not cfg.github.token:
        _log.warning("GITHUB_TOKEN is not set — GitHub releases will be rejected")
    if not cfg.gitlab.token:
        _log.warning("GITLAB_TOKEN is not set — GitLab releases will be rejected")
    if not cfg.slack_webhook_url:
        _log.info("SLACK_WEBHOOK_URL is not set — notifications go to the log only")


settings = _load_config()
_validate_config(settings)
