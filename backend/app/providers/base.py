"""
Cutover — Provider client interface.

Both backends speak JSON over HTTPS through httpx. Every failure is
classified here, at the call site, into ProviderAuthError or
ProviderRequestError so the orchestrator never sees httpx exceptions.
"""

from __future__ import annotations

import abc
from typing import Any, Protocol

import httpx

from app.errors import ProviderAuthError, ProviderRequestError
from app.models.release import (
    ChangeRequest,
    MergeStatus,
    ProviderKind,
    ReleaseArtifact,
    ReleaseRequest,
)
from app.utils.logging import logger

AUTH_FAILURE_CODES = {401, 403}


class Credentials(Protocol):
    def as_headers(self) -> dict[str, str]:
        ...


class ProviderClient(abc.ABC):
    """
    Change-request and release operations against one repository.

    A client is built per release run and never shared between runs.
    """

    kind: ProviderKind
    label: str
    noun: str
    requires_mergeability_poll: bool = False

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        h = {"Accept": "application/json", "User-Agent": "cutover"}
        h.update(self.credentials.as_headers())
        return h

    async def _request(
        self,
        action: str,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (or None)."""
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                resp = await client.request(
                    method, path, headers=self._headers(), json=json, params=params,
                )
        except httpx.TransportError as exc:
            logger.error("  %s %s — transport error: %s", self.label, action, exc)
            raise ProviderRequestError(self.label, action, None, str(exc)) from exc

        if resp.status_code in AUTH_FAILURE_CODES:
            logger.error(
                "  %s %s returned %d: %s", self.label, action, resp.status_code, resp.text,
            )
            raise ProviderAuthError(self.label, action, resp.status_code, resp.text)

        if not resp.is_success:
            logger.error(
                "  %s %s returned %d: %s", self.label, action, resp.status_code, resp.text,
            )
            raise ProviderRequestError(self.label, action, resp.status_code, resp.text)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderRequestError(
                self.label, action, resp.status_code, "response body was not JSON",
            ) from exc

    def _field(self, data: Any, key: str, action: str) -> Any:
        if not isinstance(data, dict) or key not in data:
            raise ProviderRequestError(
                self.label, action, None, f"response is missing '{key}'",
            )
        return data[key]

    @abc.abstractmethod
    async def create_change_request(self, request: ReleaseRequest) -> ChangeRequest:
        """Open a change request titled with the release version."""

    @abc.abstractmethod
    async def query_mergeability(self, number: int) -> MergeStatus:
        """Read the current merge status without changing it."""

    @abc.abstractmethod
    async def merge_change_request(self, number: int) -> bool:
        """Merge; True only if the provider actually applied the merge."""

    @abc.abstractmethod
    async def create_release(self, request: ReleaseRequest) -> ReleaseArtifact:
        """Tag the base branch and publish a release."""


def merge_commit_message(number: int) -> str:
    return f"Merging pull request number {number}"
