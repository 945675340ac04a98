from __future__ import annotations

import logging
import os
import tempfile
from typing import Optional

from .errors import CommandError, SyncFailed
from .lib.conda import EnvManager
from .models import EnvironmentSpec, Stage, StageResult, StageStatus

logger = logging.getLogger(__name__)

DEFAULT_ENV_NAME = "datasci"


def resolve_env_name(spec: EnvironmentSpec, override: Optional[str] = None) -> str:
    """Pick the environment name: override, then the file's name, then the default."""

    for candidate in (override, spec.name):
        if candidate is not None and str(candidate).strip():
            return str(candidate).strip()
    return DEFAULT_ENV_NAME


def _require_file(spec: EnvironmentSpec) -> str:
    if not spec.path:
        raise SyncFailed("environment spec has no backing file")
    return spec.path


def _snapshot(conda: EnvManager, name: str) -> Optional[str]:
    """Export the environment to a temp file so a failed update can be undone."""

    if conda.dry_run:
        return None
    try:
        exported = conda.export_env(name)
    except CommandError as e:
        logger.warning("Could not snapshot environment %s before update: %s", name, e)
        return None
    fd, path = tempfile.mkstemp(prefix=f"{name}-", suffix=".yml")
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(exported)
    return path


def _restore(conda: EnvManager, name: str, snapshot: Optional[str]) -> None:
    if snapshot is None:
        logger.warning("No snapshot for %s; environment may be partially updated", name)
        return
    try:
        conda.update_env(name, snapshot, prune=True)
        logger.info("Restored environment %s from snapshot", name)
    except CommandError as e:
        logger.error("Restoring environment %s failed: %s", name, e)


def _discard(conda: EnvManager, name: str) -> None:
    try:
        conda.remove_env(name)
        logger.info("Removed partially created environment %s", name)
    except CommandError as e:
        logger.error("Removing partial environment %s failed: %s", name, e)


def _update(conda: EnvManager, name: str, env_file: str, *, upgrade: bool) -> None:
    snapshot = _snapshot(conda, name)
    try:
        conda.update_env(name, env_file, prune=True)
        if upgrade:
            conda.update_all(name)
    except CommandError as e:
        _restore(conda, name, snapshot)
        raise SyncFailed(f"updating environment {name} failed: {e}") from e
    finally:
        if snapshot is not None:
            os.unlink(snapshot)


def _create(conda: EnvManager, name: str, env_file: str) -> None:
    try:
        conda.create_env(name, env_file)
    except CommandError as e:
        _discard(conda, name)
        raise SyncFailed(f"creating environment {name} failed: {e}") from e


def sync_environment(
    spec: EnvironmentSpec,
    *,
    conda: EnvManager,
    default_name: Optional[str] = None,
    upgrade: bool = False,
) -> StageResult:
    """Create or update-with-prune the named environment.

    Either the environment ends up matching the file, or it is left as it
    was: a failed create removes the partial environment and a failed update
    is rolled back to a snapshot taken just before it. On success the package
    cache is cleaned; a failing clean is only logged.

    ``upgrade`` (update mode) additionally upgrades every package of an
    existing environment.
    """

    stage = Stage.UPDATE if upgrade else Stage.ENV
    name = resolve_env_name(spec, default_name)

    try:
        env_file = _require_file(spec)
        existing = conda.has_env(name)
        if existing:
            logger.info("Updating environment %s (prune) from %s", name, env_file)
            _update(conda, name, env_file, upgrade=upgrade)
            status = StageStatus.UPDATED
        else:
            logger.info("Creating environment %s from %s", name, env_file)
            _create(conda, name, env_file)
            status = StageStatus.INSTALLED
    except CommandError as e:
        # Listing environments failed; nothing was changed.
        logger.error("Environment sync for %s failed: %s", name, e)
        return StageResult(stage=stage, status=StageStatus.FAILED, detail=str(e), target=name)
    except SyncFailed as e:
        logger.error("%s", e)
        return StageResult(stage=stage, status=StageStatus.FAILED, detail=str(e), target=name)

    try:
        conda.clean()
    except CommandError as e:
        logger.warning("Cache clean after sync failed (ignored): %s", e)

    detail = f"{len(spec.dependencies)} dependencies"
    return StageResult(stage=stage, status=status, detail=detail, target=name)
