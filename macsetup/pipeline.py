from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence

from .errors import BestEffortSkipped, ManifestError, PrerequisiteMissing, SetupError
from .models import Stage, StageResult, StageState, StageStatus

if TYPE_CHECKING:
    from .context import SetupCtx

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single idempotent stage."""

    stage_id: str
    stage: Stage

    def run(self, ctx: "SetupCtx") -> List[StageResult]:
        ...


_TRANSITIONS = {
    StageState.NOT_STARTED: {StageState.RUNNING},
    StageState.RUNNING: {StageState.SKIPPED, StageState.SUCCEEDED, StageState.FAILED},
}


def state_for(results: Sequence[StageResult]) -> StageState:
    if any(r.failed for r in results):
        return StageState.FAILED
    if all(r.status is StageStatus.SKIPPED for r in results):
        return StageState.SKIPPED
    return StageState.SUCCEEDED


@dataclass
class StageRun:
    stage_id: str
    state: StageState = StageState.NOT_STARTED
    results: List[StageResult] = field(default_factory=list)

    def _move(self, new: StageState) -> None:
        if new not in _TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"Stage {self.stage_id}: illegal transition {self.state.value} -> {new.value}")
        self.state = new

    def start(self) -> None:
        self._move(StageState.RUNNING)

    def finish(self, results: Sequence[StageResult]) -> None:
        self.results = list(results)
        self._move(state_for(self.results))


@dataclass(frozen=True)
class PipelineResult:
    runs: List[StageRun]
    log_path: Optional[str] = None

    @property
    def results(self) -> List[StageResult]:
        return [r for run in self.runs for r in run.results]

    @property
    def failures(self) -> List[StageResult]:
        return [r for r in self.results if r.failed]

    @property
    def exit_code(self) -> int:
        return 1 if self.failures else 0


def _run_step(step: Step, ctx: "SetupCtx") -> List[StageResult]:
    def failed(detail: str) -> List[StageResult]:
        return [StageResult(stage=step.stage, status=StageStatus.FAILED, detail=detail, target=step.stage_id)]

    try:
        return list(step.run(ctx))
    except PrerequisiteMissing as e:
        logger.error("Stage %s: %s (remediation: %s)", step.stage_id, e.tool, e.remediation)
        return failed(str(e))
    except BestEffortSkipped as e:
        logger.info("Stage %s skipped: %s", step.stage_id, e)
        return [StageResult(stage=step.stage, status=StageStatus.SKIPPED, detail=str(e), target=step.stage_id)]
    except (SetupError, ManifestError) as e:
        logger.error("Stage %s failed: %s", step.stage_id, e)
        return failed(str(e))
    except Exception as e:
        logger.exception("Stage %s crashed", step.stage_id)
        return failed(f"{type(e).__name__}: {e}")


def run_pipeline(*, ctx: "SetupCtx", steps: Sequence[Step]) -> PipelineResult:
    """Run stages in order. A failing stage is recorded and the next one still runs."""

    runs: List[StageRun] = []
    for step in steps:
        run = StageRun(stage_id=step.stage_id)
        runs.append(run)

        run.start()
        logger.info("==> Stage %s", step.stage_id)
        run.finish(_run_step(step, ctx))
        logger.info("Stage %s %s", step.stage_id, run.state.value)

    return PipelineResult(runs=runs)
