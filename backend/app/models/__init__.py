"""Cutover data models — typed contracts for the release workflow."""

from app.models.release import (
    ProviderKind,
    MergeStatus,
    ReleaseRequest,
    ChangeRequest,
    ReleaseArtifact,
)
from app.models.outcome import (
    RunState,
    StepTiming,
    OrchestrationOutcome,
)

__all__ = [
    "ProviderKind",
    "MergeStatus",
    "ReleaseRequest",
    "ChangeRequest",
    "ReleaseArtifact",
    "RunState",
    "StepTiming",
    "OrchestrationOutcome",
]
