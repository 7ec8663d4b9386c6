"""
Cutover — Error kind → user message and status mapping.

The same 400 is used for auth, request, conflict and timeout failures
by default. Individual kinds can be remapped through
ERROR_STATUS_OVERRIDES without touching the orchestrator.
"""

from __future__ import annotations

from app.errors import (
    ConfigurationError,
    ErrorKind,
    MergeConflictError,
    MergeTimeoutError,
    ProviderRequestError,
    ReleaseError,
    ValidationError,
)
from app.models.outcome import OrchestrationOutcome, RunState
from app.release.context import RunContext
from app.utils.logging import logger

SUCCESS_STATUS = 200

DEFAULT_STATUS_MAP: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.PROVIDER_AUTH: 400,
    ErrorKind.PROVIDER_REQUEST: 400,
    ErrorKind.MERGE_CONFLICT: 400,
    ErrorKind.MERGE_TIMEOUT: 400,
    ErrorKind.CONFIGURATION: 500,
}

PERSISTENCE_WARNING = "failed to record latest version"
NOTIFICATION_WARNING = "failed to send release notification"


def build_status_map(overrides: dict[str, int] | None = None) -> dict[ErrorKind, int]:
    status_map = dict(DEFAULT_STATUS_MAP)
    for name, code in (overrides or {}).items():
        try:
            kind = ErrorKind(name)
        except ValueError:
            logger.warning("Ignoring status override for unknown error kind %r", name)
            continue
        if kind not in DEFAULT_STATUS_MAP:
            logger.warning("Ignoring status override for post-release kind %r", name)
            continue
        status_map[kind] = code
    return status_map


def error_message(exc: ReleaseError, ctx: RunContext) -> str:
    repo = ctx.request.repo_name or "repository"

    if isinstance(exc, ValidationError):
        return exc.message
    if isinstance(exc, ConfigurationError):
        return f"Unable to start release for {repo}: {exc.reason}"
    if exc.kind == ErrorKind.PROVIDER_AUTH:
        return (
            f"Unable to authenticate with {ctx.label}, "
            f"please check the configured {ctx.label} credentials."
        )
    if isinstance(exc, MergeConflictError):
        return f"Unable to merge {repo} {ctx.noun} {exc.number}: merge request has conflicts."
    if isinstance(exc, MergeTimeoutError):
        return (
            f"Unable to merge {repo} {ctx.noun} {exc.number}: "
            "merge request never became mergeable."
        )
    if isinstance(exc, ProviderRequestError):
        action = exc.action[:1].upper() + exc.action[1:]
        return f"{action} failed for {repo}, please check {ctx.label} for further details."
    return f"Release of {repo} failed: {exc.message}"


def failure_outcome(
    exc: ReleaseError,
    ctx: RunContext,
    status_map: dict[ErrorKind, int] | None = None,
) -> OrchestrationOutcome:
    status_map = status_map or DEFAULT_STATUS_MAP
    return OrchestrationOutcome(
        message=error_message(exc, ctx),
        status_code=status_map.get(exc.kind, 400),
        run_id=ctx.run_id,
        state=RunState.FAILED,
        steps=list(ctx.steps),
        warnings=list(ctx.warnings),
    )


def success_outcome(ctx: RunContext) -> OrchestrationOutcome:
    req = ctx.request
    message = f"Created {req.repo_name} release version {req.release_version} on {ctx.label}"
    for warning in ctx.warnings:
        message += f"; {warning}"
    return OrchestrationOutcome(
        message=message + ".",
        status_code=SUCCESS_STATUS,
        run_id=ctx.run_id,
        state=RunState.DONE,
        steps=list(ctx.steps),
        warnings=list(ctx.warnings),
    )
