from __future__ import annotations

import logging
from typing import List

from ..config import SetupConfig
from ..context import SetupCtx
from ..models import PackageSpec, Stage, StageResult

logger = logging.getLogger(__name__)


class _BundleStep:
    stage_id = ""
    stage = Stage.BUNDLE
    label = ""

    def specs(self, cfg: SetupConfig) -> List[PackageSpec]:
        raise NotImplementedError

    def run(self, ctx: SetupCtx) -> List[StageResult]:
        specs = self.specs(ctx.config)
        if not specs:
            logger.info("No %s specified in %s", self.label, ctx.config.path or "config")
            return []

        if not ctx.tools.package_manager:
            ctx.refresh_tools()

        logger.info("Ensuring %s: %s", self.label, " ".join(s.name for s in specs))
        return ctx.installer().ensure_all(specs)


class TapsStep(_BundleStep):
    stage_id = "taps"
    label = "Homebrew taps"

    def specs(self, cfg: SetupConfig) -> List[PackageSpec]:
        return cfg.taps


class ToolsStep(_BundleStep):
    stage_id = "tools"
    label = "CLI tools"

    def specs(self, cfg: SetupConfig) -> List[PackageSpec]:
        return cfg.tools


class AppsStep(_BundleStep):
    stage_id = "apps"
    label = "apps"

    def specs(self, cfg: SetupConfig) -> List[PackageSpec]:
        return cfg.apps


class FontsStep(_BundleStep):
    stage_id = "fonts"
    label = "fonts"

    def specs(self, cfg: SetupConfig) -> List[PackageSpec]:
        return cfg.fonts
