from __future__ import annotations

import logging
from typing import Mapping

from ..models import PackageKind, PackageSpec
from .command import CmdResult, Runner, run_cmd

logger = logging.getLogger(__name__)

INSTALL_SCRIPT_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"

# Brewfile/manifest options that steer this tool rather than `brew install`.
NON_FLAG_OPTIONS = {
    "url",
    "greedy",
    "auto_updates",
    "restart_service",
    "start_service",
    "link",
    "conflicts_with",
    "postinstall",
}


def option_flags(options: Mapping[str, str]) -> list[str]:
    """Render manifest options as brew flags.

    {"appdir": "~/Applications", "no_quarantine": "true"}
      -> ["--appdir=~/Applications", "--no-quarantine"]
    """

    flags: list[str] = []
    for key, value in options.items():
        if key in NON_FLAG_OPTIONS:
            continue
        flag = "--" + key.replace("_", "-")
        v = str(value)
        if v.lower() == "true":
            flags.append(flag)
        elif v.lower() == "false" or v == "":
            continue
        else:
            flags.append(f"{flag}={v}")
    return flags


def install_homebrew(*, runner: Runner = run_cmd, dry_run: bool = False) -> CmdResult:
    """Run the official Homebrew installer non-interactively."""

    return runner(
        ["/bin/bash", "-c", f'/bin/bash -c "$(curl -fsSL {INSTALL_SCRIPT_URL})"'],
        env={"NONINTERACTIVE": "1"},
        dry_run=dry_run,
    )


class Homebrew:
    """Command contract for the `brew` binary.

    Read-only queries always execute, even in dry-run, so that planning
    reflects the real machine. Mutating calls honour dry_run.
    """

    def __init__(self, executable: str = "brew", *, runner: Runner = run_cmd, dry_run: bool = False) -> None:
        self.executable = executable
        self.runner = runner
        self.dry_run = dry_run

    def _query(self, *args: str) -> CmdResult:
        return self.runner([self.executable, *args], check=False)

    def _run(self, *args: str) -> CmdResult:
        return self.runner([self.executable, *args], dry_run=self.dry_run)

    def installed_taps(self) -> list[str]:
        r = self._query("tap")
        if r.returncode != 0:
            return []
        return [line.strip().lower() for line in r.stdout.splitlines() if line.strip()]

    def is_installed(self, spec: PackageSpec) -> bool:
        if spec.kind == PackageKind.TAP:
            return spec.name.lower() in self.installed_taps()
        kind_flag = "--formula" if spec.kind == PackageKind.FORMULA else "--cask"
        return self._query("list", kind_flag, "--versions", spec.name).returncode == 0

    def install(self, spec: PackageSpec) -> CmdResult:
        if spec.kind == PackageKind.TAP:
            argv = ["tap", spec.name]
            if spec.options.get("url"):
                argv.append(spec.options["url"])
            return self._run(*argv)

        kind_flag = "--formula" if spec.kind == PackageKind.FORMULA else "--cask"
        return self._run("install", kind_flag, spec.name, *option_flags(spec.options))

    def update(self) -> CmdResult:
        return self._run("update")

    def upgrade_formulae(self) -> CmdResult:
        return self._run("upgrade", "--formula")

    def has_command(self, name: str) -> bool:
        r = self._query("commands", "--quiet")
        if r.returncode != 0:
            return False
        return name in {line.strip() for line in r.stdout.splitlines()}

    def upgrade_casks(self, *, include_auto_updating: bool = False) -> CmdResult:
        # `brew cu` comes from the buo/cask-upgrade tap.
        argv = ["cu", "--yes"]
        if include_auto_updating:
            argv.append("--all")
        return self._run(*argv)

    def cleanup(self) -> CmdResult:
        return self._run("cleanup")

    def shellenv_line(self) -> str:
        return f'eval "$({self.executable} shellenv)"'
