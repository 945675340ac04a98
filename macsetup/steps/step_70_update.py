from __future__ import annotations

from typing import List

from ..context import SetupCtx
from ..models import Stage, StageResult
from ..update import update_all


class UpdateStep:
    stage_id = "update"
    stage = Stage.UPDATE

    def run(self, ctx: SetupCtx) -> List[StageResult]:
        ctx.refresh_tools()
        return update_all(ctx)
