"""
Cutover — GitHub provider client.

Key endpoints used (REST v3):
  POST /repos/{owner}/{repo}/pulls              — open pull request
  GET  /repos/{owner}/{repo}/pulls/{n}          — read mergeable flag
  PUT  /repos/{owner}/{repo}/pulls/{n}/merge    — merge pull request
  POST /repos/{owner}/{repo}/releases           — create release

GitHub runs conflict detection inside the merge call itself, so the
orchestrator goes straight from create to merge without polling.
"""

from __future__ import annotations

import httpx

from app.models.release import (
    ChangeRequest,
    MergeStatus,
    ProviderKind,
    ReleaseArtifact,
    ReleaseRequest,
)
from app.providers.auth import BearerToken
from app.providers.base import ProviderClient, merge_commit_message
from app.utils.logging import logger, step_timer

API_VERSION = "2022-11-28"


class GitHubClient(ProviderClient):
    kind = ProviderKind.GITHUB
    label = "GitHub"
    noun = "pull request"
    requires_mergeability_poll = False

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(base_url, BearerToken(token), timeout=timeout, transport=transport)
        self.owner = owner
        self.repo = repo

    def _headers(self) -> dict[str, str]:
        h = super()._headers()
        h["Accept"] = "application/vnd.github+json"
        h["X-GitHub-Api-Version"] = API_VERSION
        return h

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def create_change_request(self, request: ReleaseRequest) -> ChangeRequest:
        action = "create pull request"
        with step_timer(f"GitHub — {action}"):
            data = await self._request(
                action,
                "POST",
                f"{self._repo_path}/pulls",
                json={
                    "title": request.release_version,
                    "body": request.release_body,
                    "head": request.branch_head,
                    "base": request.branch_base,
                },
            )
            number = int(self._field(data, "number", action))
            logger.info("  Opened %s pull request #%d", self.repo, number)
            return ChangeRequest(number=number, url=data.get("html_url", ""))

    async def query_mergeability(self, number: int) -> MergeStatus:
        action = f"query pull request {number}"
        data = await self._request(action, "GET", f"{self._repo_path}/pulls/{number}")
        if not isinstance(data, dict):
            return MergeStatus.UNRESOLVED
        if data.get("merged"):
            return MergeStatus.MERGED
        mergeable = data.get("mergeable")
        if mergeable is True:
            return MergeStatus.MERGEABLE
        if mergeable is False:
            return MergeStatus.CONFLICTING
        return MergeStatus.UNRESOLVED

    async def merge_change_request(self, number: int) -> bool:
        action = f"merge pull request {number}"
        with step_timer(f"GitHub — {action}"):
            data = await self._request(
                action,
                "PUT",
                f"{self._repo_path}/pulls/{number}/merge",
                json={"commit_message": merge_commit_message(number)},
            )
            merged = bool(isinstance(data, dict) and data.get("merged"))
            if not merged:
                logger.error("  %s pull request %d not merged", self.repo, number)
            return merged

    async def create_release(self, request: ReleaseRequest) -> ReleaseArtifact:
        action = f"create release {request.release_version}"
        with step_timer(f"GitHub — {action}"):
            data = await self._request(
                action,
                "POST",
                f"{self._repo_path}/releases",
                json={
                    "tag_name": request.release_version,
                    "target_commitish": request.branch_base,
                    "name": request.release_version,
                    "body": request.release_body,
                    "prerelease": False,
                },
            )
            url = data.get("html_url", "") if isinstance(data, dict) else ""
            return ReleaseArtifact(
                tag_name=request.release_version,
                name=request.release_version,
                body=request.release_body,
                target=request.branch_base,
                url=url,
            )
