from __future__ import annotations

import logging
from typing import List

from ..context import SetupCtx
from ..errors import PrerequisiteMissing
from ..lib.brew import install_homebrew
from ..models import Stage, StageResult, StageStatus

logger = logging.getLogger(__name__)


class HomebrewStep:
    stage_id = "homebrew"
    stage = Stage.PROBER

    def run(self, ctx: SetupCtx) -> List[StageResult]:
        tools = ctx.refresh_tools()
        results: List[StageResult] = []

        if not tools.compiler_toolchain:
            logger.warning(
                "Xcode Command Line Tools not found; the Homebrew installer will ask for them "
                "(or run `xcode-select --install`)"
            )

        if tools.package_manager:
            logger.info("Homebrew is ready (%s)", tools.brew_path)
            results.append(
                StageResult(stage=self.stage, status=StageStatus.SKIPPED, detail="already installed", target="homebrew")
            )
        else:
            logger.info("Homebrew not found. Installing...")
            install_homebrew(runner=ctx.runner, dry_run=ctx.dry_run)
            tools = ctx.refresh_tools()
            if not tools.package_manager:
                if ctx.dry_run:
                    return [
                        StageResult(stage=self.stage, status=StageStatus.INSTALLED, detail="dry-run", target="homebrew")
                    ]
                raise PrerequisiteMissing("Homebrew", "The installer finished but brew was not found; see https://brew.sh")
            results.append(StageResult(stage=self.stage, status=StageStatus.INSTALLED, target="homebrew"))

        # Make brew available to future login shells.
        changed = ctx.profile.ensure_line(ctx.brew().shellenv_line(), comment="Homebrew")
        results.append(
            StageResult(
                stage=self.stage,
                status=StageStatus.UPDATED if changed else StageStatus.SKIPPED,
                detail=str(ctx.profile.path),
                target="shell-profile",
            )
        )
        return results
