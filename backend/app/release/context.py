"""Per-run state threaded through the release steps."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from app.models.outcome import RunState, StepTiming
from app.models.release import ChangeRequest, ProviderKind, ReleaseArtifact, ReleaseRequest
from app.providers.base import ProviderClient
from app.providers.registry import get_provider


@dataclass
class RunContext:
    """Built fresh for every run; never stored beyond it."""

    request: ReleaseRequest
    provider: ProviderKind
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    client: ProviderClient | None = None
    change_request: ChangeRequest | None = None
    artifact: ReleaseArtifact | None = None
    state: RunState = RunState.RECEIVED
    steps: list[StepTiming] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        if self.client is not None:
            return self.client.label
        return get_provider(self.provider).name

    @property
    def noun(self) -> str:
        if self.client is not None:
            return self.client.noun
        return get_provider(self.provider).change_request
