from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence, Tuple

from .config import InstallerConfig
from .lib.download import Downloader
from .request import InstallRequest

if TYPE_CHECKING:  # pragma: no cover
    from .cache import Resolution
    from .installer import RunOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
    """Everything a step needs that does not change during the run."""

    request: InstallRequest
    config: InstallerConfig
    downloader: Downloader
    dry_run: bool = False


@dataclass(frozen=True)
class RunState:
    resolution: Optional["Resolution"] = None
    outcome: Optional["RunOutcome"] = None
    completed_steps: Tuple[str, ...] = field(default_factory=tuple)

    def evolve(self, **changes) -> "RunState":
        return replace(self, **changes)


class Step(Protocol):
    """A single step of an installation run."""

    step_id: str

    def run(self, ctx: RunContext, state: RunState) -> RunState:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: RunState
    ran_steps: List[str]


def run_pipeline(*, ctx: RunContext, steps: Sequence[Step], state: Optional[RunState] = None) -> PipelineResult:
    """Run steps in order; each returns the state handed to the next one.

    A step failing raises and stops the run. The state reached so far is
    attached to the exception as ``run_state`` (unless the step already did)
    so the caller can still clean up and report.
    """

    state = state or RunState()
    ran: List[str] = []

    for step in steps:
        logger.info("Running step %s", step.step_id)
        try:
            state = step.run(ctx, state)
        except Exception as e:
            if not hasattr(e, "run_state"):
                e.run_state = state  # type: ignore[attr-defined]
            raise
        state = state.evolve(completed_steps=state.completed_steps + (step.step_id,))
        ran.append(step.step_id)

    return PipelineResult(state=state, ran_steps=ran)
