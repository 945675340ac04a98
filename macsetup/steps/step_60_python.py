from __future__ import annotations

import dataclasses
import logging
from typing import List

from ..context import SetupCtx
from ..errors import CommandError, ManifestError, PrerequisiteMissing
from ..models import Stage, StageResult, StageStatus
from ..sync import sync_environment

logger = logging.getLogger(__name__)


class PythonStep:
    stage_id = "python"
    stage = Stage.ENV

    def run(self, ctx: SetupCtx) -> List[StageResult]:
        if not ctx.tools.package_manager:
            ctx.refresh_tools()

        logger.info("Installing Python tools...")
        results = [
            dataclasses.replace(r, stage=self.stage) for r in ctx.installer().ensure_all(ctx.config.python_tools)
        ]

        ctx.refresh_tools()
        try:
            conda = ctx.env_manager(fast=False)
            spec = ctx.environment()
        except (PrerequisiteMissing, ManifestError) as e:
            logger.error("Python environment: %s", e)
            results.append(StageResult(stage=self.stage, status=StageStatus.FAILED, detail=str(e), target="environment"))
            return results

        # Both are one-time shell setup; an already-initialized conda is fine.
        try:
            conda.shell_init(ctx.config.shell)
        except CommandError as e:
            logger.warning("conda init %s failed (ignored): %s", ctx.config.shell, e)
        try:
            conda.set_config("auto_activate_base", "false")
        except CommandError as e:
            logger.warning("Could not disable base auto-activation (ignored): %s", e)

        results.append(sync_environment(spec, conda=ctx.env_manager(), default_name=ctx.config.default_env_name))
        return results
