from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..models import ToolAvailability
from .command import Runner, run_cmd

logger = logging.getLogger(__name__)

# Apple Silicon first, then Intel.
BREW_PREFIXES = ("/opt/homebrew", "/usr/local")

Which = Callable[[str], Optional[str]]


def is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def find_tool(
    name: str,
    *,
    which: Which = shutil.which,
    extra_dirs: Sequence[str] = (),
    exists: Callable[[str], bool] = is_executable,
) -> Optional[str]:
    """Locate an executable on PATH, then in a few well-known directories."""

    found = which(name)
    if found:
        return found
    for d in extra_dirs:
        candidate = str(Path(d) / name)
        if exists(candidate):
            return candidate
    return None


def has_compiler_toolchain(*, runner: Runner = run_cmd) -> bool:
    # xcode-select -p prints the active developer dir and fails when CLT is absent.
    try:
        r = runner(["xcode-select", "-p"], check=False)
    except Exception:
        logger.debug("xcode-select lookup failed", exc_info=True)
        return False
    return r.returncode == 0


def probe(
    *,
    which: Which = shutil.which,
    runner: Runner = run_cmd,
    exists: Callable[[str], bool] = is_executable,
) -> ToolAvailability:
    """Detect prerequisite tools (read-only, best-effort, never raises)."""

    brew = find_tool(
        "brew", which=which, extra_dirs=[f"{p}/bin" for p in BREW_PREFIXES], exists=exists
    )
    # Miniforge installed through Homebrew lands in <prefix>/bin or <prefix>/Caskroom/miniforge/base/bin.
    env_dirs = [f"{p}/bin" for p in BREW_PREFIXES] + [
        f"{p}/Caskroom/miniforge/base/bin" for p in BREW_PREFIXES
    ]
    conda = find_tool("conda", which=which, extra_dirs=env_dirs, exists=exists)
    mamba = find_tool("mamba", which=which, extra_dirs=env_dirs, exists=exists)

    tools = ToolAvailability(
        compiler_toolchain=has_compiler_toolchain(runner=runner),
        package_manager=brew is not None,
        env_manager=conda is not None,
        fast_env_manager=mamba is not None,
        brew_path=brew,
        conda_path=conda,
        mamba_path=mamba,
    )
    logger.info("Probe: %s", tools.as_dict())
    return tools
