"""Sequential build-step executor.

Steps run strictly in registration order and never overlap.  A step may
parallelise its own work internally (see
:mod:`assetforge.core.worker_pool`).  The first failing step aborts the
run: later steps are marked skipped and the failure is raised as a
:class:`StepExecutionError` chained to the original exception.  Entries
already packed by earlier steps are not rolled back.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from assetforge.core.packer import Packer
from assetforge.errors import AssetforgeError, ConfigurationError
from assetforge.models.steps import VALID_TRANSITIONS, StepRecord, StepState

logger = logging.getLogger(__name__)

StepFunc = Callable[[Packer], None]


class StepExecutionError(AssetforgeError):
    """Raised when a build step fails; ``__cause__`` holds the original error."""

    def __init__(self, step: str, error: BaseException) -> None:
        self.step = step
        super().__init__(f"step {step!r} failed: {error}")


class InvalidTransitionError(AssetforgeError):
    """Raised when a step state change is not allowed."""


class StepExecutor:
    """Ordered registry and runner of named build steps."""

    def __init__(self) -> None:
        self._steps: list[tuple[str, StepFunc]] = []
        self._states: dict[str, StepState] = {}
        self._records: list[StepRecord] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, name: str, fn: StepFunc) -> None:
        """Append step *fn* under *name*.

        Raises
        ------
        ConfigurationError
            If a step with the same name is already registered.
        """
        if name in self._states:
            raise ConfigurationError(f"duplicate build step {name!r}")
        self._steps.append((name, fn))
        self._states[name] = StepState.NOT_STARTED

    @property
    def step_names(self) -> list[str]:
        return [name for name, _ in self._steps]

    def state(self, name: str) -> StepState:
        return self._states[name]

    @property
    def records(self) -> list[StepRecord]:
        """Records of every step that reached a terminal state, in order."""
        return list(self._records)

    def _transition(self, name: str, to_state: StepState) -> None:
        from_state = self._states[name]
        if to_state not in VALID_TRANSITIONS[from_state]:
            raise InvalidTransitionError(
                f"step {name!r}: cannot go from {from_state.value} to {to_state.value}"
            )
        self._states[name] = to_state

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, packer: Packer) -> list[StepRecord]:
        """Run every registered step in order against *packer*."""
        error: StepExecutionError | None = None
        for name, fn in self._steps:
            if error is not None:
                self._transition(name, StepState.SKIPPED)
                self._records.append(StepRecord(name=name, state=StepState.SKIPPED))
                continue

            self._transition(name, StepState.RUNNING)
            before = len(packer)
            start = time.monotonic()
            logger.info("running step %s", name)
            try:
                fn(packer)
            except Exception as exc:
                elapsed = time.monotonic() - start
                self._transition(name, StepState.FAILED)
                self._records.append(
                    StepRecord(
                        name=name,
                        state=StepState.FAILED,
                        entries_added=len(packer) - before,
                        duration_seconds=elapsed,
                        error=str(exc),
                    )
                )
                logger.error("step %s failed after %.2fs: %s", name, elapsed, exc)
                error = StepExecutionError(name, exc)
                error.__cause__ = exc
                continue

            elapsed = time.monotonic() - start
            self._transition(name, StepState.PASSED)
            self._records.append(
                StepRecord(
                    name=name,
                    state=StepState.PASSED,
                    entries_added=len(packer) - before,
                    duration_seconds=elapsed,
                )
            )
            logger.info("step %s passed in %.2fs", name, elapsed)

        if error is not None:
            raise error
        return self.records
