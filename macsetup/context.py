from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from typing import Callable, Optional

from .config import SetupConfig
from .errors import PrerequisiteMissing
from .installer import Installer
from .lib.brew import Homebrew
from .lib.command import Runner, run_cmd
from .lib.conda import EnvManager
from .lib.manifests import load_environment
from .lib.probe import Which, is_executable, probe
from .lib.shell_profile import ShellProfile
from .models import EnvironmentSpec, ToolAvailability

logger = logging.getLogger(__name__)


@dataclass
class SetupCtx:
    """Everything a stage needs. Tool availability is re-probed between stages."""

    config: SetupConfig
    env_path: str
    profile: ShellProfile
    runner: Runner = run_cmd
    which: Which = shutil.which
    exists: Callable[[str], bool] = is_executable
    dry_run: bool = False
    tools: ToolAvailability = field(default_factory=ToolAvailability)
    _installer: Optional[Installer] = field(default=None, repr=False)

    def refresh_tools(self) -> ToolAvailability:
        self.tools = probe(which=self.which, runner=self.runner, exists=self.exists)
        return self.tools

    def brew(self) -> Homebrew:
        if not self.tools.package_manager or not self.tools.brew_path:
            raise PrerequisiteMissing("Homebrew", "Run `macsetup homebrew` first.")
        return Homebrew(self.tools.brew_path, runner=self.runner, dry_run=self.dry_run)

    def env_manager(self, *, fast: bool = True) -> EnvManager:
        """mamba when available (fast=True), otherwise conda; fast=False prefers conda."""

        if fast:
            path = self.tools.env_manager_path
        else:
            path = self.tools.conda_path or self.tools.mamba_path
        if not path:
            raise PrerequisiteMissing("conda/mamba", "Run `macsetup python` to install Miniforge.")
        return EnvManager(path, runner=self.runner, dry_run=self.dry_run)

    def installer(self) -> Installer:
        # One installer per run so its memory of handled packages spans stages.
        if self._installer is None:
            self._installer = Installer(self.brew())
        return self._installer

    def environment(self) -> EnvironmentSpec:
        return load_environment(self.env_path)
