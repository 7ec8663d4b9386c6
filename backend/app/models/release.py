"""
Cutover — Typed release data model.

The wire request, the provider objects it produces, and the backend tag
that selects a provider client. No raw dicts cross the provider boundary.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field, field_validator


class ProviderKind(str, enum.Enum):
    GITHUB = "github"
    GITLAB = "gitlab"


class MergeStatus(str, enum.Enum):
    UNRESOLVED = "unresolved"
    MERGEABLE = "mergeable"
    CONFLICTING = "conflicting"
    MERGED = "merged"


class ReleaseRequest(BaseModel):
    """
    Input to a single release run.

    Fields default to empty so that a sparse payload reaches the
    orchestrator's validate step and is reported as a 400, not a 422.
    """

    repo_owner: str = ""
    repo_name: str = ""
    branch_base: str = ""
    branch_head: str = ""
    release_version: str = ""
    release_body: str = ""
    hotfix: bool = False
    gitlab_project_id: str | None = None

    @field_validator("gitlab_project_id", mode="before")
    @classmethod
    def _coerce_project_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def repo_key(self) -> str:
        return f"{self.repo_owner}/{self.repo_name}"


class ChangeRequest(BaseModel):
    """An open pull request (GitHub) or merge request (GitLab)."""

    number: int
    status: MergeStatus = MergeStatus.UNRESOLVED
    url: str = ""


class ReleaseArtifact(BaseModel):
    tag_name: str = Field(min_length=1)
    name: str
    body: str = ""
    target: str
    url: str = ""
