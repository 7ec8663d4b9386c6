"""
Cutover — GitLab provider client.

Key endpoints used (API v4, project id URL-encoded):
  POST /projects/{id}/merge_requests             — open merge request
  GET  /projects/{id}/merge_requests/{iid}       — read merge_status
  PUT  /projects/{id}/merge_requests/{iid}/merge — accept merge request
  POST /projects/{id}/releases                   — create release

GitLab computes mergeability asynchronously after a merge request is
opened, so merge_status starts out "unchecked"/"checking" and must be
polled before the accept call.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx

from app.models.release import (
    ChangeRequest,
    MergeStatus,
    ProviderKind,
    ReleaseArtifact,
    ReleaseRequest,
)
from app.providers.auth import PrivateToken
from app.providers.base import ProviderClient, merge_commit_message
from app.utils.logging import logger, step_timer

_MERGEABLE = {"can_be_merged"}
_CONFLICTING = {"cannot_be_merged"}
_DETAILED_MERGEABLE = {"mergeable"}
_DETAILED_CONFLICTING = {"conflict", "broken_status"}


class GitLabClient(ProviderClient):
    kind = ProviderKind.GITLAB
    label = "GitLab"
    noun = "merge request"
    requires_mergeability_poll = True

    def __init__(
        self,
        project_id: str,
        repo: str,
        token: str,
        base_url: str = "https://gitlab.com/api/v4",
        timeout: float = 30.0,
        remove_source_branch: bool = True,
        squash: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(base_url, PrivateToken(token), timeout=timeout, transport=transport)
        self.project_id = project_id
        self.repo = repo
        self.remove_source_branch = remove_source_branch
        self.squash = squash

    @property
    def _project_path(self) -> str:
        return f"/projects/{quote(str(self.project_id), safe='')}"

    async def create_change_request(self, request: ReleaseRequest) -> ChangeRequest:
        action = "create merge request"
        with step_timer(f"GitLab — {action}"):
            data = await self._request(
                action,
                "POST",
                f"{self._project_path}/merge_requests",
                json={
                    "title": request.release_version,
                    "description": request.release_body,
                    "source_branch": request.branch_head,
                    "target_branch": request.branch_base,
                    "remove_source_branch": self.remove_source_branch,
                    "squash": self.squash,
                },
            )
            iid = int(self._field(data, "iid", action))
            logger.info("  Opened %s merge request !%d", self.repo, iid)
            return ChangeRequest(
                number=iid,
                status=_status_from_payload(data),
                url=data.get("web_url", ""),
            )

    async def query_mergeability(self, number: int) -> MergeStatus:
        data = await self._request(
            f"query merge request {number}",
            "GET",
            f"{self._project_path}/merge_requests/{number}",
            params={
                "render_html": "false",
                "include_diverged_commits_count": "false",
                "include_rebase_in_progress": "false",
            },
        )
        return _status_from_payload(data)

    async def merge_change_request(self, number: int) -> bool:
        action = f"accept merge request {number}"
        with step_timer(f"GitLab — {action}"):
            data = await self._request(
                action,
                "PUT",
                f"{self._project_path}/merge_requests/{number}/merge",
                json={
                    "merge_commit_message": merge_commit_message(number),
                    "squash": False,
                    "should_remove_source_branch": True,
                },
            )
            merged = isinstance(data, dict) and data.get("state") == "merged"
            if not merged:
                logger.error("  %s merge request %d not merged", self.repo, number)
            return merged

    async def create_release(self, request: ReleaseRequest) -> ReleaseArtifact:
        action = f"create release {request.release_version}"
        with step_timer(f"GitLab — {action}"):
            data = await self._request(
                action,
                "POST",
                f"{self._project_path}/releases",
                json={
                    "name": request.release_version,
                    "tag_name": request.release_version,
                    "description": request.release_body,
                    "ref": request.branch_base,
                },
            )
            url = ""
            if isinstance(data, dict):
                url = (data.get("_links") or {}).get("self", "")
            return ReleaseArtifact(
                tag_name=request.release_version,
                name=request.release_version,
                body=request.release_body,
                target=request.branch_base,
                url=url,
            )


def _status_from_payload(data) -> MergeStatus:
    """Map a merge request payload onto MergeStatus."""
    if not isinstance(data, dict):
        return MergeStatus.UNRESOLVED
    if data.get("state") == "merged":
        return MergeStatus.MERGED
    merge_status = data.get("merge_status") or ""
    detailed = data.get("detailed_merge_status") or ""
    if merge_status in _MERGEABLE or detailed in _DETAILED_MERGEABLE:
        return MergeStatus.MERGEABLE
    if merge_status in _CONFLICTING or detailed in _DETAILED_CONFLICTING:
        return MergeStatus.CONFLICTING
    return MergeStatus.UNRESOLVED
