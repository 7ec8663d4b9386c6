"""
Cutover — Release Orchestrator.

Runs one release as a state machine:

  RECEIVED → VALIDATED → [CHANGE_REQUEST_OPENED → MERGEABLE → MERGED]
  → RELEASED → VERSION_RECORDED → NOTIFIED → DONE

The bracketed segment is skipped for hotfixes. Any failure up to and
including the release step aborts the run with nothing rolled back; an
opened but unmerged change request is left for a human. Failures after
the release only add a warning to the success message.
"""

from __future__ import annotations

import time
from typing import Callable

import httpx

from app.errors import (
    ErrorKind,
    MergeFailedError,
    ProviderRequestError,
    ReleaseError,
    ValidationError,
)
from app.models.outcome import OrchestrationOutcome, RunState, StepTiming
from app.models.release import MergeStatus, ProviderKind, ReleaseRequest
from app.notify.slack import LogNotifier, Notifier, release_message
from app.providers.base import ProviderClient
from app.providers.registry import build_provider_client, get_provider
from app.release.context import RunContext
from app.release.outcome import (
    NOTIFICATION_WARNING,
    PERSISTENCE_WARNING,
    failure_outcome,
    success_outcome,
)
from app.release.poller import MergeabilityPoller, PollPolicy
from app.store.versions import InMemoryVersionStore, VersionStore
from app.utils.logging import logger

ClientFactory = Callable[[ProviderKind, ReleaseRequest], ProviderClient]


def default_client_factory(
    transport: httpx.AsyncBaseTransport | None = None,
) -> ClientFactory:
    from app.core.config import settings

    def factory(kind: ProviderKind, request: ReleaseRequest) -> ProviderClient:
        return build_provider_client(kind, request, settings, transport=transport)

    return factory


class ReleaseOrchestrator:
    """
    Sequences one release against one provider.

    Collaborators are injected; anything left out falls back to a
    client built from settings, an in-memory version store, a log-only
    notifier, and the default poll policy.
    """

    def __init__(
        self,
        request: ReleaseRequest,
        provider: ProviderKind,
        client: ProviderClient | None = None,
        client_factory: ClientFactory | None = None,
        version_store: VersionStore | None = None,
        notifier: Notifier | None = None,
        poller: MergeabilityPoller | None = None,
        status_map: dict[ErrorKind, int] | None = None,
    ):
        self.ctx = RunContext(request=request, provider=ProviderKind(provider))
        self._client = client
        self._client_factory = client_factory
        self.version_store = version_store or InMemoryVersionStore()
        self.notifier = notifier or LogNotifier()
        self.poller = poller or MergeabilityPoller(PollPolicy())
        self.status_map = status_map

    @property
    def state(self) -> RunState:
        return self.ctx.state

    def _record_step(self, name: str, start: float, status: str = "ok", detail: str = ""):
        ms = int((time.perf_counter() - start) * 1000)
        self.ctx.steps.append(StepTiming(step=name, duration_ms=ms, status=status, detail=detail))
        symbol = {"ok": "✓", "skipped": "⊘", "warning": "!"}.get(status, "✗")
        logger.info("  %s %s — %dms %s", symbol, name, ms, detail)

    def _skip(self, name: str, detail: str):
        self._record_step(name, time.perf_counter(), "skipped", detail)

    async def run(self) -> OrchestrationOutcome:
        """Execute the release. Provider, merge and validation failures become an outcome."""
        req = self.ctx.request
        logger.info("=" * 60)
        logger.info(
            "[%s] Release starting — %s %s version %s (hotfix=%s)",
            self.ctx.run_id, self.ctx.provider.value, req.repo_name,
            req.release_version, req.hotfix,
        )
        logger.info("=" * 60)
        run_start = time.perf_counter()

        try:
            self._step_validate()
            self._step_build_client()

            if req.hotfix:
                self._skip("create_change_request", "hotfix")
                self._skip("poll_mergeability", "hotfix")
                self._skip("merge", "hotfix")
            else:
                await self._step_create_change_request()
                await self._step_poll_mergeability()
                await self._step_merge()

            await self._step_create_release()

        except ReleaseError as exc:
            self.ctx.state = RunState.FAILED
            logger.error(
                "[%s] Release of %s version %s failed at %s: %s",
                self.ctx.run_id, req.repo_name, req.release_version,
                self.ctx.steps[-1].step if self.ctx.steps else "start", exc.message,
            )
            return failure_outcome(exc, self.ctx, self.status_map)
        except Exception:
            self.ctx.state = RunState.FAILED
            raise

        self._step_update_version_record()
        await self._step_notify()
        self.ctx.state = RunState.DONE

        total_ms = int((time.perf_counter() - run_start) * 1000)
        logger.info("=" * 60)
        logger.info(
            "[%s] Release complete — %s %s in %dms (%d warnings)",
            self.ctx.run_id, req.repo_name, req.release_version, total_ms,
            len(self.ctx.warnings),
        )
        logger.info("=" * 60)
        return success_outcome(self.ctx)

    def _step_validate(self):
        t = time.perf_counter()
        req = self.ctx.request
        required = ["repo_owner", "repo_name", "branch_base", "release_version"]
        if not req.hotfix:
            required.append("branch_head")
        if get_provider(self.ctx.provider).requires_project_id:
            required.append("gitlab_project_id")

        invalid = [name for name in required if not (getattr(req, name) or "").strip()]
        if invalid:
            self._record_step("validate", t, "failed", ", ".join(invalid))
            raise ValidationError(invalid)

        self.ctx.state = RunState.VALIDATED
        self._record_step("validate", t)

    def _step_build_client(self):
        t = time.perf_counter()
        if self._client is None:
            factory = self._client_factory or default_client_factory()
            try:
                self._client = factory(self.ctx.provider, self.ctx.request)
            except ReleaseError as exc:
                self._record_step("build_client", t, "failed", exc.message)
                raise
        self.ctx.client = self._client
        self._record_step("build_client", t, detail=self._client.label)

    async def _step_create_change_request(self):
        t = time.perf_counter()
        try:
            self.ctx.change_request = await self.ctx.client.create_change_request(self.ctx.request)
        except ReleaseError as exc:
            self._record_step("create_change_request", t, "failed", exc.message)
            raise
        self.ctx.state = RunState.CHANGE_REQUEST_OPENED
        self._record_step(
            "create_change_request", t,
            detail=f"{self.ctx.client.noun} {self.ctx.change_request.number}",
        )

    async def _step_poll_mergeability(self):
        client = self.ctx.client
        if not client.requires_mergeability_poll:
            self._skip("poll_mergeability", f"{client.label} checks conflicts on merge")
            return

        t = time.perf_counter()
        number = self.ctx.change_request.number
        try:
            attempt = await self.poller.wait_until_mergeable(client, number)
        except ReleaseError as exc:
            self._record_step("poll_mergeability", t, "failed", exc.message)
            raise
        self.ctx.change_request = self.ctx.change_request.model_copy(
            update={"status": MergeStatus.MERGEABLE},
        )
        self.ctx.state = RunState.MERGEABLE
        self._record_step("poll_mergeability", t, detail=f"mergeable on check {attempt}")

    async def _step_merge(self):
        t = time.perf_counter()
        client = self.ctx.client
        number = self.ctx.change_request.number
        action = f"merge {client.noun} {number}"
        try:
            merged = await client.merge_change_request(number)
        except MergeFailedError as exc:
            self._record_step("merge", t, "failed", exc.message)
            raise
        except ProviderRequestError as exc:
            self._record_step("merge", t, "failed", exc.message)
            raise MergeFailedError(client.label, action, exc.status, str(exc.detail or "")) from exc
        except ReleaseError as exc:
            self._record_step("merge", t, "failed", exc.message)
            raise

        if not merged:
            self._record_step("merge", t, "failed", "provider reported not merged")
            raise MergeFailedError(client.label, action)

        self.ctx.change_request = self.ctx.change_request.model_copy(
            update={"status": MergeStatus.MERGED},
        )
        self.ctx.state = RunState.MERGED
        self._record_step("merge", t, detail=f"{client.noun} {number}")

    async def _step_create_release(self):
        t = time.perf_counter()
        try:
            self.ctx.artifact = await self.ctx.client.create_release(self.ctx.request)
        except ReleaseError as exc:
            self._record_step("create_release", t, "failed", exc.message)
            raise
        self.ctx.state = RunState.RELEASED
        self._record_step("create_release", t, detail=self.ctx.artifact.tag_name)

    def _step_update_version_record(self):
        t = time.perf_counter()
        req = self.ctx.request
        try:
            self.version_store.put(req.repo_owner, req.repo_name, req.release_version)
        except ReleaseError as exc:
            logger.warning(
                "[%s] %s released %s but the version record failed: %s",
                self.ctx.run_id, req.repo_name, req.release_version, exc.message,
            )
            self.ctx.warnings.append(PERSISTENCE_WARNING)
            self._record_step("update_version_record", t, "warning", exc.message)
            return
        self.ctx.state = RunState.VERSION_RECORDED
        self._record_step("update_version_record", t, detail=req.release_version)

    async def _step_notify(self):
        t = time.perf_counter()
        req = self.ctx.request
        text = release_message(req.repo_name, req.release_version, self.ctx.label, req.release_body)
        try:
            await self.notifier.send(text)
        except ReleaseError as exc:
            logger.warning(
                "[%s] %s released %s but the notification failed: %s",
                self.ctx.run_id, req.repo_name, req.release_version, exc.message,
            )
            self.ctx.warnings.append(NOTIFICATION_WARNING)
            self._record_step("notify", t, "warning", exc.message)
            return
        self.ctx.state = RunState.NOTIFIED
        self._record_step("notify", t)
