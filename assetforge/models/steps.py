"""Build step state models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StepState(str, Enum):
    """Lifecycle of one registered build step."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"  # a prior step failed


# Allowed transitions; PASSED, FAILED and SKIPPED are terminal.
VALID_TRANSITIONS: dict[StepState, set[StepState]] = {
    StepState.NOT_STARTED: {StepState.RUNNING, StepState.SKIPPED},
    StepState.RUNNING: {StepState.PASSED, StepState.FAILED},
    StepState.PASSED: set(),
    StepState.FAILED: set(),
    StepState.SKIPPED: set(),
}


class StepRecord(BaseModel):
    """Outcome of one step in a build run."""

    model_config = ConfigDict(frozen=True)

    name: str
    state: StepState
    entries_added: int = 0
    duration_seconds: float = 0.0
    error: str | None = None
