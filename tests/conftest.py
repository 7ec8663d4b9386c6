"""Shared test configuration and fixtures for the Cutover test suite."""

import sys
from pathlib import Path

import pytest

# Add backend to Python path so imports work
backend_dir = str(Path(__file__).parent.parent / "backend")
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from app.models.release import (  # noqa: E402
    ChangeRequest,
    MergeStatus,
    ProviderKind,
    ReleaseArtifact,
    ReleaseRequest,
)
from app.providers.base import ProviderClient  # noqa: E402


class _NoCredentials:
    def as_headers(self) -> dict[str, str]:
        return {}


class FakeProviderClient(ProviderClient):
    """
    Scripted provider: returns queued merge statuses and records calls.

    `errors` maps an operation name to the ReleaseError it should raise.
    """

    def __init__(
        self,
        kind: ProviderKind = ProviderKind.GITLAB,
        statuses: list[MergeStatus] | None = None,
        merged: bool = True,
        errors: dict | None = None,
        number: int = 42,
    ):
        super().__init__("https://provider.invalid", _NoCredentials())
        self.kind = kind
        self.label = "GitLab" if kind == ProviderKind.GITLAB else "GitHub"
        self.noun = "merge request" if kind == ProviderKind.GITLAB else "pull request"
        self.requires_mergeability_poll = kind == ProviderKind.GITLAB
        self.statuses = list(statuses or [])
        self.merged = merged
        self.errors = errors or {}
        self.number = number
        self.calls: list[str] = []

    def _maybe_fail(self, op: str):
        self.calls.append(op)
        if op in self.errors:
            raise self.errors[op]

    async def create_change_request(self, request: ReleaseRequest) -> ChangeRequest:
        self._maybe_fail("create_change_request")
        return ChangeRequest(number=self.number)

    async def query_mergeability(self, number: int) -> MergeStatus:
        self._maybe_fail("query_mergeability")
        if self.statuses:
            return self.statuses.pop(0)
        return MergeStatus.UNRESOLVED

    async def merge_change_request(self, number: int) -> bool:
        self._maybe_fail("merge_change_request")
        return self.merged

    async def create_release(self, request: ReleaseRequest) -> ReleaseArtifact:
        self._maybe_fail("create_release")
        return ReleaseArtifact(
            tag_name=request.release_version,
            name=request.release_version,
            body=request.release_body,
            target=request.branch_base,
        )


class RecordingNotifier:
    def __init__(self, error: Exception | None = None):
        self.messages: list[str] = []
        self.error = error

    async def send(self, text: str) -> None:
        self.messages.append(text)
        if self.error is not None:
            raise self.error


@pytest.fixture(scope="session")
def project_root():
    return Path(__file__).parent.parent


@pytest.fixture
def release_request():
    def _make(**overrides) -> ReleaseRequest:
        data = {
            "repo_owner": "acme",
            "repo_name": "svc",
            "branch_base": "main",
            "branch_head": "develop",
            "release_version": "v1.2.0",
            "release_body": "Bug fixes and improvements",
            "hotfix": False,
            "gitlab_project_id": "1234",
        }
        data.update(overrides)
        return ReleaseRequest(**data)

    return _make


@pytest.fixture
def fake_client():
    return FakeProviderClient


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def recording_notifier():
    return RecordingNotifier
