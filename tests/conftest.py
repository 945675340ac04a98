"""
Shared test fixtures: a fake macOS host that answers brew/conda commands.
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest
import yaml

from macsetup.config import SetupConfig
from macsetup.context import SetupCtx
from macsetup.errors import CommandError
from macsetup.lib.command import CmdResult
from macsetup.lib.manifests import load_environment
from macsetup.lib.shell_profile import ShellProfile

BREW = "/opt/homebrew/bin/brew"
CONDA = "/opt/homebrew/bin/conda"
MAMBA = "/opt/homebrew/bin/mamba"
CONDA_ROOT = "/opt/homebrew/Caskroom/miniforge/base"


class FakeMac:
    """In-memory stand-in for `run_cmd` that simulates Homebrew and conda state."""

    def __init__(self) -> None:
        self.has_brew = True
        self.has_conda = False
        self.has_mamba = False
        self.compiler = True
        self.formulae: Set[str] = set()
        self.casks: Set[str] = set()
        self.taps: Set[str] = set()
        self.brew_commands: Set[str] = {"install", "list", "tap", "update", "upgrade"}
        self.envs: Dict[str, Set[str]] = {"base": {"python", "conda"}}
        self.calls: List[List[str]] = []
        self._failing: List[Tuple[str, ...]] = []

    # -- test helpers -------------------------------------------------

    def fail_on(self, *prefix: str) -> None:
        self._failing.append(tuple(prefix))

    def calls_to(self, tool: str) -> List[List[str]]:
        return [c[1:] for c in self.calls if os.path.basename(c[0]) == tool]

    def which(self, name: str) -> Optional[str]:
        if name == "brew" and self.has_brew:
            return BREW
        if name == "conda" and (self.has_conda or "miniforge" in self.casks):
            return CONDA
        if name == "mamba" and self.has_mamba:
            return MAMBA
        return None

    # -- runner protocol ----------------------------------------------

    def __call__(self, argv, *, check=True, env=None, cwd=None, input_text=None, dry_run=False) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        if dry_run:
            return CmdResult(argv=argv, returncode=0, stdout="", stderr="")

        args = tuple(argv[1:])
        if any(args[: len(p)] == p for p in self._failing):
            rc, out, err = 1, "", "simulated failure"
        else:
            rc, out, err = self._dispatch(os.path.basename(argv[0]), list(args))

        if check and rc != 0:
            raise CommandError(argv, rc, err)
        return CmdResult(argv=argv, returncode=rc, stdout=out, stderr=err)

    def _dispatch(self, tool: str, args: List[str]) -> Tuple[int, str, str]:
        if tool == "xcode-select":
            return (0, "/Library/Developer/CommandLineTools\n", "") if self.compiler else (2, "", "no developer tools")
        if tool == "bash":
            self.has_brew = True
            return 0, "", ""
        if tool == "brew":
            if not self.has_brew:
                return 127, "", "brew: command not found"
            return self._brew(args)
        if tool in {"conda", "mamba"}:
            return self._conda(args)
        return 127, "", f"{tool}: command not found"

    def _brew(self, args: List[str]) -> Tuple[int, str, str]:
        if args[:1] == ["list"]:
            pool = self.formulae if args[1] == "--formula" else self.casks
            name = args[-1]
            return (0, f"{name} 1.0\n", "") if name in pool else (1, "", f"Error: No such keg: {name}")
        if args == ["tap"]:
            return 0, "".join(f"{t}\n" for t in sorted(self.taps)), ""
        if args[:1] == ["tap"]:
            self.taps.add(args[1].lower())
            return 0, "", ""
        if args[:1] == ["install"]:
            pool = self.formulae if args[1] == "--formula" else self.casks
            pool.add(args[2])
            return 0, "", ""
        if args == ["commands", "--quiet"]:
            return 0, "".join(f"{c}\n" for c in sorted(self.brew_commands)), ""
        if args[:1] in (["update"], ["upgrade"], ["cu"], ["cleanup"]):
            return 0, "", ""
        return 1, "", f"unexpected brew {args}"

    def _env_path(self, name: str) -> str:
        return CONDA_ROOT if name == "base" else f"{CONDA_ROOT}/envs/{name}"

    def _conda(self, args: List[str]) -> Tuple[int, str, str]:
        if args == ["env", "list", "--json"]:
            return 0, json.dumps({"envs": [self._env_path(n) for n in self.envs]}), ""
        if args[:2] == ["env", "export"]:
            name = args[args.index("-n") + 1]
            return 0, yaml.safe_dump({"name": name, "dependencies": sorted(self.envs[name])}), ""
        if args[:2] in (["env", "create"], ["env", "update"]):
            name = args[args.index("-n") + 1]
            declared = set(load_environment(args[args.index("-f") + 1]).dependency_names("conda"))
            if args[1] == "create":
                self.envs[name] = declared
            elif "--prune" in args:
                self.envs[name] = declared
            else:
                self.envs[name] = self.envs.get(name, set()) | declared
            return 0, "", ""
        if args[:2] == ["env", "remove"]:
            self.envs.pop(args[args.index("-n") + 1], None)
            return 0, "", ""
        if args[:1] in (["update"], ["clean"], ["init"], ["config"]):
            return 0, "", ""
        return 1, "", f"unexpected conda {args}"


@pytest.fixture
def mac() -> FakeMac:
    return FakeMac()


@pytest.fixture
def env_file(tmp_path: Path) -> Path:
    p = tmp_path / "environment.yml"
    p.write_text(
        "name: dev\nchannels:\n  - conda-forge\ndependencies:\n  - a\n  - b\n",
        encoding="utf-8",
    )
    return p


@pytest.fixture
def make_ctx(mac: FakeMac, env_file: Path, tmp_path: Path):
    def _make(raw: Optional[dict] = None, *, dry_run: bool = False) -> SetupCtx:
        ctx = SetupCtx(
            config=SetupConfig(raw=raw or {}),
            env_path=str(env_file),
            profile=ShellProfile(str(tmp_path / ".zprofile"), dry_run=dry_run),
            runner=mac,
            which=mac.which,
            exists=lambda path: False,
            dry_run=dry_run,
        )
        ctx.refresh_tools()
        return ctx

    return _make
