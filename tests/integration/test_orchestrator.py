"""Integration tests for the release orchestrator with scripted providers."""

import httpx
import pytest

from app.errors import (
    ConfigurationError,
    NotificationError,
    PersistenceError,
    ProviderAuthError,
    ProviderRequestError,
)
from app.models.outcome import RunState
from app.models.release import MergeStatus, ProviderKind
from app.providers.gitlab import GitLabClient
from app.release.orchestrator import ReleaseOrchestrator
from app.release.poller import MergeabilityPoller, PollPolicy
from app.store.versions import InMemoryVersionStore

U = MergeStatus.UNRESOLVED
M = MergeStatus.MERGEABLE
C = MergeStatus.CONFLICTING

CHANGE_REQUEST_OPS = {"create_change_request", "query_mergeability", "merge_change_request"}


class FailingStore:
    def put(self, repo_owner, repo_name, version):
        raise PersistenceError(f"{repo_owner}/{repo_name}", "table unavailable")

    def get(self, repo_owner, repo_name):
        return None


def _orchestrator(req, client, provider=None, **kwargs):
    kwargs.setdefault("poller", MergeabilityPoller(PollPolicy(delay=0.0)))
    return ReleaseOrchestrator(
        request=req,
        provider=provider or client.kind,
        client=client,
        **kwargs,
    )


class TestScenarios:
    async def test_a_mergeable_on_third_check(self, release_request, fake_client, notifier):
        client = fake_client(statuses=[U, U, M])
        store = InMemoryVersionStore()
        orch = _orchestrator(release_request(), client, version_store=store, notifier=notifier)

        outcome = await orch.run()

        assert outcome.status_code == 200
        assert outcome.message.startswith("Created svc release version v1.2.0")
        assert client.calls == [
            "create_change_request",
            "query_mergeability", "query_mergeability", "query_mergeability",
            "merge_change_request",
            "create_release",
        ]
        assert store.get("acme", "svc") == "v1.2.0"
        assert notifier.messages == [
            "Released svc version v1.2.0 on GitLab.\n\nBug fixes and improvements",
        ]
        assert orch.state == RunState.DONE

    async def test_b_conflict_on_first_check(self, release_request, fake_client, notifier):
        client = fake_client(statuses=[C])
        outcome = await _orchestrator(release_request(), client, notifier=notifier).run()

        assert outcome.status_code == 400
        assert "conflicts" in outcome.message
        assert "create_release" not in client.calls
        assert "merge_change_request" not in client.calls
        assert client.calls.count("query_mergeability") == 1
        assert notifier.messages == []
        assert outcome.state == RunState.FAILED

    async def test_c_hotfix_goes_straight_to_release(self, release_request, fake_client):
        client = fake_client(statuses=[C])
        req = release_request(release_version="v1.2.1", hotfix=True, branch_head="")
        outcome = await _orchestrator(req, client).run()

        assert outcome.status_code == 200
        assert outcome.message == "Created svc release version v1.2.1 on GitLab."
        assert client.calls == ["create_release"]
        assert not CHANGE_REQUEST_OPS & set(client.calls)
        for step in ("create_change_request", "poll_mergeability", "merge"):
            assert outcome.step(step).status == "skipped"

    async def test_d_never_mergeable(self, release_request, fake_client):
        client = fake_client(statuses=[U] * 7)
        outcome = await _orchestrator(release_request(), client).run()

        assert outcome.status_code == 400
        assert "never became mergeable" in outcome.message
        assert client.calls.count("query_mergeability") == 7
        assert "create_release" not in client.calls


class TestFailFast:
    async def test_create_failure_stops_everything(self, release_request, fake_client, notifier):
        err = ProviderRequestError("GitLab", "create merge request", 409)
        client = fake_client(errors={"create_change_request": err})
        store = InMemoryVersionStore()
        outcome = await _orchestrator(
            release_request(), client, version_store=store, notifier=notifier,
        ).run()

        assert outcome.status_code == 400
        assert client.calls == ["create_change_request"]
        assert outcome.message == (
            "Create merge request failed for svc, please check GitLab for further details."
        )
        assert store.get("acme", "svc") is None
        assert notifier.messages == []

    @pytest.mark.parametrize("kind", [ProviderKind.GITHUB, ProviderKind.GITLAB])
    async def test_release_only_after_merge(self, release_request, fake_client, kind):
        client = fake_client(kind=kind, statuses=[M], merged=False)
        outcome = await _orchestrator(release_request(), client).run()

        assert outcome.status_code == 400
        assert "merge_change_request" in client.calls
        assert "create_release" not in client.calls
        assert outcome.step("merge").status == "failed"

    async def test_merge_transport_error_is_merge_failure(self, release_request, fake_client):
        err = ProviderRequestError("GitHub", "merge pull request 42", 405, "not mergeable")
        client = fake_client(kind=ProviderKind.GITHUB, errors={"merge_change_request": err})
        outcome = await _orchestrator(release_request(), client).run()

        assert outcome.status_code == 400
        assert outcome.message.startswith("Merge pull request 42 failed for svc")
        assert "create_release" not in client.calls

    async def test_auth_failure_stays_auth(self, release_request, fake_client):
        err = ProviderAuthError("GitHub", "merge pull request 42", 401)
        client = fake_client(kind=ProviderKind.GITHUB, errors={"merge_change_request": err})
        outcome = await _orchestrator(release_request(), client).run()
        assert outcome.message.startswith("Unable to authenticate with GitHub")

    async def test_release_failure(self, release_request, fake_client, notifier):
        err = ProviderRequestError("GitLab", "create release v1.2.0", 409)
        client = fake_client(statuses=[M], errors={"create_release": err})
        outcome = await _orchestrator(release_request(), client, notifier=notifier).run()

        assert outcome.status_code == 400
        assert outcome.message.startswith("Create release v1.2.0 failed for svc")
        assert notifier.messages == []

    async def test_github_skips_polling(self, release_request, fake_client):
        client = fake_client(kind=ProviderKind.GITHUB)
        outcome = await _orchestrator(release_request(), client).run()

        assert outcome.status_code == 200
        assert "query_mergeability" not in client.calls
        assert outcome.step("poll_mergeability").status == "skipped"
        assert outcome.message.endswith("on GitHub.")


class TestValidation:
    async def test_missing_version(self, release_request, fake_client):
        client = fake_client()
        outcome = await _orchestrator(release_request(release_version="  "), client).run()
        assert outcome.status_code == 400
        assert outcome.message == "release_version is invalid"
        assert client.calls == []

    async def test_gitlab_needs_project_id(self, release_request, fake_client):
        client = fake_client()
        outcome = await _orchestrator(release_request(gitlab_project_id=None), client).run()
        assert outcome.message == "gitlab_project_id is invalid"
        assert client.calls == []

    async def test_github_ignores_project_id(self, release_request, fake_client):
        client = fake_client(kind=ProviderKind.GITHUB)
        outcome = await _orchestrator(release_request(gitlab_project_id=None), client).run()
        assert outcome.status_code == 200

    async def test_change_request_needs_head_branch(self, release_request, fake_client):
        client = fake_client()
        outcome = await _orchestrator(release_request(hotfix=False, branch_head=""), client).run()
        assert outcome.message == "branch_head is invalid"


class TestConstruction:
    async def test_factory_failure_is_fatal_before_remote_calls(self, release_request):
        def factory(kind, request):
            raise ConfigurationError("GitLab token is not configured (set GITLAB_TOKEN)")

        orch = ReleaseOrchestrator(
            request=release_request(), provider=ProviderKind.GITLAB, client_factory=factory,
        )
        outcome = await orch.run()
        assert outcome.status_code == 500
        assert "GITLAB_TOKEN" in outcome.message
        assert outcome.step("build_client").status == "failed"

    async def test_each_run_gets_its_own_context(self, release_request, fake_client):
        built = []

        def factory(kind, request):
            client = fake_client(kind=kind, statuses=[M])
            built.append(client)
            return client

        first = ReleaseOrchestrator(release_request(), ProviderKind.GITLAB, client_factory=factory,
                                    poller=MergeabilityPoller(PollPolicy(delay=0.0)))
        second = ReleaseOrchestrator(release_request(), ProviderKind.GITLAB, client_factory=factory,
                                     poller=MergeabilityPoller(PollPolicy(delay=0.0)))
        a = await first.run()
        b = await second.run()

        assert built[0] is not built[1]
        assert a.run_id != b.run_id
        assert a.status_code == b.status_code == 200


class TestPartialSuccess:
    async def test_version_record_failure_is_still_success(
        self, release_request, fake_client, notifier,
    ):
        client = fake_client(statuses=[M])
        outcome = await _orchestrator(
            release_request(), client, version_store=FailingStore(), notifier=notifier,
        ).run()

        assert outcome.status_code == 200
        assert "failed to record latest version" in outcome.message
        assert outcome.step("update_version_record").status == "warning"
        assert len(notifier.messages) == 1
        assert outcome.state == RunState.DONE

    async def test_notification_failure_is_still_success(
        self, release_request, fake_client, recording_notifier,
    ):
        failing = recording_notifier(error=NotificationError("HTTP 500", status=500))
        store = InMemoryVersionStore()
        outcome = await _orchestrator(
            release_request(hotfix=True), fake_client(), version_store=store, notifier=failing,
        ).run()

        assert outcome.status_code == 200
        assert outcome.message.endswith("; failed to send release notification.")
        assert store.get("acme", "svc") == "v1.2.0"


class TestGitLabEndToEnd:
    async def test_full_flow_over_http(self, release_request):
        statuses = iter(["checking", "unchecked", "can_be_merged"])
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(f"{request.method} {request.url.path}")
            path = request.url.path
            if request.method == "POST" and path.endswith("/merge_requests"):
                return httpx.Response(201, json={"iid": 3, "merge_status": "checking"})
            if request.method == "GET":
                return httpx.Response(200, json={"iid": 3, "state": "opened",
                                                 "merge_status": next(statuses)})
            if path.endswith("/merge"):
                return httpx.Response(200, json={"iid": 3, "state": "merged"})
            if path.endswith("/releases"):
                return httpx.Response(201, json={"tag_name": "v1.2.0"})
            return httpx.Response(404)

        client = GitLabClient("1234", "svc", "glpat", transport=httpx.MockTransport(handler))
        outcome = await _orchestrator(release_request(), client).run()

        assert outcome.status_code == 200
        assert seen == [
            "POST /api/v4/projects/1234/merge_requests",
            "GET /api/v4/projects/1234/merge_requests/3",
            "GET /api/v4/projects/1234/merge_requests/3",
            "GET /api/v4/projects/1234/merge_requests/3",
            "PUT /api/v4/projects/1234/merge_requests/3/merge",
            "POST /api/v4/projects/1234/releases",
        ]
