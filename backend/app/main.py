"""
Cutover — FastAPI Backend

Endpoints:
  POST /v1/releases/{provider}       — Open, merge, and release (github | gitlab)
  GET  /v1/providers                 — List supported providers
  GET  /v1/versions/{owner}/{name}   — Latest version recorded for a repository
  GET  /health                       — Health check
"""

import time

import httpx
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.errors import PersistenceError
from app.models.release import ProviderKind, ReleaseRequest
from app.notify.slack import Notifier, build_notifier
from app.providers.registry import list_providers
from app.release.orchestrator import ReleaseOrchestrator, default_client_factory
from app.release.outcome import build_status_map
from app.release.poller import MergeabilityPoller, PollPolicy
from app.store.versions import VersionStore, build_version_store
from app.utils.logging import logger

VERSION = "1.0.0"

app = FastAPI(
    title="Cutover API",
    description=(
        "Publish a release with one call: open a pull/merge request, wait "
        "until it is mergeable, merge it, tag the release, record the "
        "version, and notify the team."
    ),
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Pipeline-Duration-Ms", "X-Request-Id"],
)

_version_store = build_version_store(settings.version_store_path)
_notifier = build_notifier(settings.slack_webhook_url)
_status_map = build_status_map(settings.status_overrides)


@app.on_event("startup")
async def _startup_banner():
    logger.info("")
    logger.info("╔══════════════════════════════════════════════════╗")
    logger.info("║             Cutover  ·  API Server v1            ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  POST /v1/releases/{provider} → Release          ║")
    logger.info("║  GET  /v1/providers           → Providers        ║")
    logger.info("║  GET  /v1/versions/{o}/{n}    → Latest version   ║")
    logger.info("║  GET  /health                 → Health check     ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  GitHub API : %-35s║", settings.github.base_url)
    logger.info("║  GitLab API : %-35s║", settings.gitlab.base_url)
    logger.info("║  Poll       : %-35s║", f"{settings.poll.max_attempts} checks")
    logger.info("╚══════════════════════════════════════════════════╝")
    logger.info("")


# ──────────────────────────────────────────────────────────
# Dependencies (overridden in tests)
# ──────────────────────────────────────────────────────────

def get_version_store() -> VersionStore:
    return _version_store


def get_notifier() -> Notifier:
    return _notifier


def get_transport() -> httpx.AsyncBaseTransport | None:
    return None


def get_poller() -> MergeabilityPoller:
    return MergeabilityPoller(PollPolicy.from_config(settings.poll))


# ──────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok", "service": "cutover-api", "version": VERSION}


@app.get("/v1/providers")
async def get_providers():
    """List supported providers with their metadata."""
    return [p.model_dump(mode="json") for p in list_providers()]


@app.post("/v1/releases/{provider}")
async def create_release(
    provider: ProviderKind,
    req: ReleaseRequest,
    version_store: VersionStore = Depends(get_version_store),
    notifier: Notifier = Depends(get_notifier),
    transport: httpx.AsyncBaseTransport | None = Depends(get_transport),
    poller: MergeabilityPoller = Depends(get_poller),
):
    """
    Run the release workflow and report its outcome.

    Failures of the provider calls come back as 400 with a message;
    a release whose version record or notification failed is still 200.
    """
    start = time.perf_counter()
    logger.info(
        "POST /v1/releases/%s — %s/%s %s hotfix=%s",
        provider.value, req.repo_owner, req.repo_name, req.release_version, req.hotfix,
    )

    orchestrator = ReleaseOrchestrator(
        request=req,
        provider=provider,
        client_factory=default_client_factory(transport),
        version_store=version_store,
        notifier=notifier,
        poller=poller,
        status_map=_status_map,
    )
    try:
        outcome = await orchestrator.run()
    except Exception as exc:
        logger.exception("[%s] Release run crashed", orchestrator.ctx.run_id)
        raise HTTPException(status_code=500, detail=str(exc))

    elapsed_ms = (time.perf_counter() - start) * 1000
    headers = dict(outcome.headers)
    headers["X-Request-Id"] = outcome.run_id
    headers["X-Pipeline-Duration-Ms"] = f"{elapsed_ms:.0f}"

    return JSONResponse(
        status_code=outcome.status_code,
        content={"message": outcome.message, "status_code": outcome.status_code},
        headers=headers,
    )


@app.get("/v1/versions/{owner}/{name}")
async def get_latest_version(
    owner: str,
    name: str,
    version_store: VersionStore = Depends(get_version_store),
):
    try:
        version = version_store.get(owner, name)
    except PersistenceError as exc:
        logger.error("Version lookup for %s/%s failed: %s", owner, name, exc.message)
        raise HTTPException(status_code=500, detail=exc.to_dict())
    if version is None:
        raise HTTPException(status_code=404, detail=f"No release recorded for {owner}/{name}")
    return {"repo_owner": owner, "repo_name": name, "latest_version": version}
