from __future__ import annotations

import logging
from typing import List

from ..context import SetupCtx
from ..errors import CommandError, PrerequisiteMissing
from ..models import Stage, StageResult, StageStatus

logger = logging.getLogger(__name__)


class CleanStep:
    stage_id = "clean"
    stage = Stage.CLEAN

    def _clean(self, target: str, action) -> StageResult:
        try:
            action()
        except PrerequisiteMissing as e:
            logger.info("Nothing to clean for %s: %s", target, e)
            return StageResult(stage=self.stage, status=StageStatus.SKIPPED, detail=str(e), target=target)
        except CommandError as e:
            logger.error("Cleaning %s failed: %s", target, e)
            return StageResult(stage=self.stage, status=StageStatus.FAILED, detail=str(e), target=target)
        return StageResult(stage=self.stage, status=StageStatus.UPDATED, detail="caches cleaned", target=target)

    def run(self, ctx: SetupCtx) -> List[StageResult]:
        ctx.refresh_tools()
        return [
            self._clean("homebrew", lambda: ctx.brew().cleanup()),
            self._clean("env-manager", lambda: ctx.env_manager().clean()),
        ]
