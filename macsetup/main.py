from __future__ import annotations

import argparse
import logging
import shutil
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence

from .config import DEFAULT_CONFIG_PATH, DEFAULT_ENV_PATH, load_config
from .context import SetupCtx
from .errors import ManifestError
from .lib.command import Runner, run_cmd
from .lib.probe import Which, is_executable
from .lib.shell_profile import ShellProfile
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import PipelineResult, Step, run_pipeline
from .steps import (
    AppsStep,
    CleanStep,
    FontsStep,
    HomebrewStep,
    PythonStep,
    TapsStep,
    ToolsStep,
    UpdateStep,
)

logger = logging.getLogger(__name__)


STAGES: Dict[str, Callable[[], Step]] = {
    "homebrew": HomebrewStep,
    "taps": TapsStep,
    "tools": ToolsStep,
    "apps": AppsStep,
    "fonts": FontsStep,
    "python": PythonStep,
    "update": UpdateStep,
    "clean": CleanStep,
}

# `all` mirrors a fresh machine setup; update and clean are separate entry points.
ALL_STAGES = ["homebrew", "taps", "tools", "apps", "fonts", "python"]
# Later stages rely on the side effects of earlier ones.
STAGE_ORDER = ALL_STAGES + ["update", "clean"]


def expand_stages(names: Optional[Sequence[str]]) -> List[str]:
    """Resolve stage names (and `all`) into the canonical run order, without repeats."""

    selected = set()
    for name in names or ["all"]:
        for n in ALL_STAGES if name == "all" else [name]:
            if n not in STAGES:
                raise ValueError(f"Unknown stage: {n}")
            selected.add(n)
    return [n for n in STAGE_ORDER if n in selected]


def build_steps(names: Optional[Sequence[str]] = None) -> List[Step]:
    return [STAGES[n]() for n in expand_stages(names)]


def summarize(result: PipelineResult) -> None:
    for run in result.runs:
        logger.info("Stage %-9s %s", run.stage_id, run.state.value)
    if result.failures:
        logger.error("%d failure(s):", len(result.failures))
        for r in result.failures:
            logger.error("  %s", r.describe())
    else:
        logger.info("Setup finished without failures.")
    if result.log_path:
        logger.info("Log written to %s", result.log_path)


def run(
    *,
    stages: Optional[Sequence[str]] = None,
    config_path: str = DEFAULT_CONFIG_PATH,
    env_path: str = DEFAULT_ENV_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    profile_path: Optional[str] = None,
    dry_run: bool = False,
    runner: Runner = run_cmd,
    which: Which = shutil.which,
    exists: Callable[[str], bool] = is_executable,
) -> PipelineResult:
    """Run the selected stages in order and return every recorded result."""

    actual_log = configure_logging(log_path=log_path)

    cfg = load_config(config_path)
    ctx = SetupCtx(
        config=cfg,
        env_path=env_path,
        profile=ShellProfile(profile_path or cfg.profile_path, dry_run=dry_run),
        runner=runner,
        which=which,
        exists=exists,
        dry_run=dry_run,
    )

    result = replace(run_pipeline(ctx=ctx, steps=build_steps(stages)), log_path=actual_log)
    summarize(result)
    return result


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="macsetup", description="Bootstrap a macOS workstation.")
    p.add_argument(
        "stages",
        nargs="*",
        metavar="stage",
        help=f"Stages to run: all, {', '.join(STAGES)} (default: all)",
    )
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Package manifest (config.yml or Brewfile)")
    p.add_argument("--env-file", default=DEFAULT_ENV_PATH, help="Conda environment file")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to the setup log")
    p.add_argument("--profile", default=None, help="Shell profile to edit (default: ~/.zprofile)")
    p.add_argument("--dry-run", action="store_true", help="Log commands without changing anything")

    args = p.parse_args(argv)

    try:
        stages = expand_stages(args.stages)
    except ValueError as e:
        p.error(str(e))

    try:
        result = run(
            stages=stages,
            config_path=args.config,
            env_path=args.env_file,
            log_path=args.log,
            profile_path=args.profile,
            dry_run=bool(args.dry_run),
        )
    except ManifestError as e:
        logger.error("Invalid manifest: %s", e)
        return 1
    return result.exit_code
