from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, List

from .errors import BestEffortSkipped, CommandError, ManifestError, PrerequisiteMissing
from .lib.command import CmdResult
from .models import Stage, StageResult, StageStatus
from .sync import sync_environment

if TYPE_CHECKING:
    from .context import SetupCtx

logger = logging.getLogger(__name__)

CASK_UPGRADE_COMMAND = "cu"
CASK_UPGRADE_TAP = "buo/cask-upgrade"


def _attempt(target: str, fn: Callable[[], CmdResult | None]) -> StageResult:
    try:
        fn()
    except BestEffortSkipped as e:
        logger.info("%s skipped: %s", target, e)
        return StageResult(stage=Stage.UPDATE, status=StageStatus.SKIPPED, detail=str(e), target=target)
    except PrerequisiteMissing as e:
        logger.error("%s: %s (remediation: %s)", target, e.tool, e.remediation)
        return StageResult(stage=Stage.UPDATE, status=StageStatus.FAILED, detail=str(e), target=target)
    except CommandError as e:
        logger.error("%s failed: %s", target, e)
        return StageResult(stage=Stage.UPDATE, status=StageStatus.FAILED, detail=str(e), target=target)
    return StageResult(stage=Stage.UPDATE, status=StageStatus.UPDATED, target=target)


def update_all(ctx: "SetupCtx") -> List[StageResult]:
    """Upgrade everything previously installed, in a fixed order.

    Order: package index, formulae, casks (best-effort), environment manager,
    environment. Each stage's failure is recorded and the rest still run.
    """

    def upgrade_casks() -> CmdResult:
        brew = ctx.brew()
        if not brew.has_command(CASK_UPGRADE_COMMAND):
            raise BestEffortSkipped(
                f"`brew {CASK_UPGRADE_COMMAND}` not available (brew tap {CASK_UPGRADE_TAP} to enable)"
            )
        return brew.upgrade_casks(include_auto_updating=ctx.config.greedy_casks)

    def upgrade_env_manager() -> CmdResult:
        conda = ctx.env_manager()
        packages = ["conda", "mamba"] if ctx.tools.fast_env_manager else ["conda"]
        return conda.self_update(packages)

    results = [
        _attempt("brew-update", lambda: ctx.brew().update()),
        _attempt("brew-upgrade-formulae", lambda: ctx.brew().upgrade_formulae()),
        _attempt("brew-upgrade-casks", upgrade_casks),
        _attempt("env-manager", upgrade_env_manager),
    ]

    try:
        conda = ctx.env_manager()
        spec = ctx.environment()
    except (PrerequisiteMissing, ManifestError) as e:
        logger.error("environment: %s", e)
        results.append(StageResult(stage=Stage.UPDATE, status=StageStatus.FAILED, detail=str(e), target="environment"))
        return results

    results.append(sync_environment(spec, conda=conda, default_name=ctx.config.default_env_name, upgrade=True))
    return results
