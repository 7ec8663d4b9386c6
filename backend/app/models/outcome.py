"""
Cutover — Run state and outcome contracts.

Every release run returns an OrchestrationOutcome: the user-facing
message and status, plus the step timings that produced it.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class RunState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    CHANGE_REQUEST_OPENED = "CHANGE_REQUEST_OPENED"
    MERGEABLE = "MERGEABLE"
    MERGED = "MERGED"
    RELEASED = "RELEASED"
    VERSION_RECORDED = "VERSION_RECORDED"
    NOTIFIED = "NOTIFIED"
    DONE = "DONE"
    FAILED = "FAILED"


class StepTiming(BaseModel):
    step: str
    duration_ms: int
    status: str = "ok"  # ok | skipped | failed | warning
    detail: str = ""


class OrchestrationOutcome(BaseModel):
    """Result handed back to the HTTP layer. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    message: str
    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    run_id: str = ""
    state: RunState = RunState.DONE
    steps: list[StepTiming] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.DONE

    def step(self, name: str) -> StepTiming | None:
        for timing in self.steps:
            if timing.step == name:
                return timing
        return None
