from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple

from .errors import CommandError, InstallFailed
from .lib.brew import Homebrew
from .models import PackageKind, PackageSpec, Stage, StageResult, StageStatus

logger = logging.getLogger(__name__)


class Installer:
    """Ensure declared Homebrew packages are present, one at a time.

    The installer remembers the outcome for every (name, kind) it handled
    during this run, so a package is never installed twice: a repeat request
    returns the earlier outcome. Fonts bypass that memory and always
    re-query Homebrew.
    """

    def __init__(self, brew: Homebrew, *, stage: Stage = Stage.BUNDLE) -> None:
        self.brew = brew
        self.stage = stage
        self._handled: Dict[Tuple[str, PackageKind], StageResult] = {}

    def _result(self, spec: PackageSpec, status: StageStatus, detail: str = "") -> StageResult:
        result = StageResult(stage=self.stage, status=status, detail=detail, target=spec.name)
        self._handled[spec.key] = result
        return result

    def ensure_installed(self, spec: PackageSpec) -> StageResult:
        previous = self._handled.get(spec.key)
        if previous is not None and spec.kind != PackageKind.FONT:
            if previous.failed:
                return previous
            return StageResult(
                stage=self.stage, status=StageStatus.SKIPPED, detail="already handled in this run", target=spec.name
            )

        if self.brew.is_installed(spec):
            logger.info("%s %s already installed", spec.kind.value, spec.name)
            return self._result(spec, StageStatus.SKIPPED, "already installed")

        logger.info("Installing %s %s", spec.kind.value, spec.name)
        try:
            self.brew.install(spec)
        except CommandError as e:
            err = InstallFailed(f"{spec.kind.value} {spec.name}: {e}")
            logger.error("%s", err)
            return self._result(spec, StageStatus.FAILED, str(err))

        return self._result(spec, StageStatus.INSTALLED)

    def ensure_all(self, specs: Iterable[PackageSpec]) -> List[StageResult]:
        """Install every spec independently; one failure never stops the batch."""

        results = [self.ensure_installed(s) for s in specs]
        failed = [str(r.target) for r in results if r.failed]
        if failed:
            logger.warning("Failed to install: %s", ", ".join(failed))
        return results
