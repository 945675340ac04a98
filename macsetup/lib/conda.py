from __future__ import annotations

import json
import logging
from pathlib import PurePosixPath
from typing import Optional

from ..errors import CommandError
from .command import CmdResult, Runner, run_cmd

logger = logging.getLogger(__name__)


def env_name_from_prefix(prefix: str) -> str:
    """…/envs/<name> -> <name>; any other prefix is the base install."""

    p = PurePosixPath(prefix.rstrip("/"))
    if p.parent.name == "envs":
        return p.name
    return "base"


def parse_env_list(stdout: str) -> list[str]:
    if not stdout.strip():
        return []
    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise CommandError(["env", "list", "--json"], 0, f"unparseable env listing: {e}") from e
    if not isinstance(data, dict):
        return []
    envs = data.get("envs") or []
    return [env_name_from_prefix(str(prefix)) for prefix in envs]


class EnvManager:
    """Command contract for conda/mamba.

    The same subcommands are accepted by both binaries; mamba is simply faster.
    Read-only queries always execute, mutating calls honour dry_run.
    """

    def __init__(self, executable: str = "conda", *, runner: Runner = run_cmd, dry_run: bool = False) -> None:
        self.executable = executable
        self.runner = runner
        self.dry_run = dry_run

    def _run(self, *args: str) -> CmdResult:
        return self.runner([self.executable, *args], dry_run=self.dry_run)

    def list_envs(self) -> list[str]:
        r = self.runner([self.executable, "env", "list", "--json"], check=True)
        return parse_env_list(r.stdout)

    def has_env(self, name: str) -> bool:
        # Exact name comparison: "dev" must not match "dev-old".
        return name in self.list_envs()

    def export_env(self, name: str) -> str:
        r = self.runner([self.executable, "env", "export", "-n", name], check=True)
        return r.stdout

    def create_env(self, name: str, env_file: str) -> CmdResult:
        return self._run("env", "create", "-f", env_file, "-n", name, "--yes")

    def update_env(self, name: str, env_file: str, *, prune: bool = True) -> CmdResult:
        argv = ["env", "update", "-f", env_file, "-n", name]
        if prune:
            argv.append("--prune")
        argv.append("--yes")
        return self._run(*argv)

    def remove_env(self, name: str) -> CmdResult:
        return self._run("env", "remove", "-n", name, "--yes")

    def update_all(self, name: str) -> CmdResult:
        return self._run("update", "--all", "-n", name, "--yes")

    def self_update(self, packages: Optional[list[str]] = None) -> CmdResult:
        return self._run("update", "-n", "base", "-c", "conda-forge", *(packages or ["conda"]), "--yes")

    def clean(self) -> CmdResult:
        return self._run("clean", "--all", "--yes")

    def shell_init(self, shell: str) -> CmdResult:
        return self._run("init", shell)

    def set_config(self, key: str, value: str) -> CmdResult:
        return self._run("config", "--set", key, value)
