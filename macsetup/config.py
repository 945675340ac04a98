from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .lib.manifests import coerce_options, load_package_mapping, parse_entry, specs_from_mapping
from .models import PackageKind, PackageSpec

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yml"
DEFAULT_ENV_PATH = "environment.yml"
DEFAULT_PYTHON_TOOLS = [{"name": "miniforge", "cask": True}, "uv"]
DEFAULT_CASK_OPTIONS = {"no_quarantine": "true"}


@dataclass(frozen=True)
class SetupConfig:
    raw: Dict[str, Any] = field(default_factory=dict)
    path: Optional[str] = None
    specs: List[PackageSpec] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Parsed once; a malformed manifest raises here, before any stage runs.
        object.__setattr__(self, "specs", specs_from_mapping(self.raw))

    @property
    def packages(self) -> List[PackageSpec]:
        return list(self.specs)

    def of_kind(self, kind: PackageKind) -> List[PackageSpec]:
        specs = [s for s in self.packages if s.kind == kind]
        if kind == PackageKind.CASK:
            # Per-entry options win over cask_defaults.
            specs = [
                PackageSpec(name=s.name, kind=s.kind, options={**self.cask_defaults, **s.options})
                for s in specs
            ]
        return specs

    @property
    def taps(self) -> List[PackageSpec]:
        return self.of_kind(PackageKind.TAP)

    @property
    def tools(self) -> List[PackageSpec]:
        return self.of_kind(PackageKind.FORMULA)

    @property
    def apps(self) -> List[PackageSpec]:
        return self.of_kind(PackageKind.CASK)

    @property
    def fonts(self) -> List[PackageSpec]:
        return self.of_kind(PackageKind.FONT)

    @property
    def default_env_name(self) -> Optional[str]:
        name = self.raw.get("default_env_name")
        if name is None or not str(name).strip():
            return None
        return str(name).strip()

    @property
    def cask_defaults(self) -> Dict[str, str]:
        """`cask_defaults` (or --no-quarantine), with a Brewfile's `cask_args` on top."""

        raw = self.raw.get("cask_defaults")
        defaults = dict(DEFAULT_CASK_OPTIONS) if raw is None else coerce_options(raw, where="cask_defaults")
        defaults.update(coerce_options(self.raw.get("cask_args"), where="cask_args"))
        return defaults

    @property
    def python_tools(self) -> List[PackageSpec]:
        """Formulae by default; an entry with ``cask: true`` is a cask (miniforge is one)."""

        entries = self.raw.get("python_tools")
        if entries is None:
            entries = DEFAULT_PYTHON_TOOLS
        specs: List[PackageSpec] = []
        for entry in entries:
            spec = parse_entry(entry, PackageKind.FORMULA, where="python_tools")
            if spec.option_enabled("cask"):
                options = {k: v for k, v in spec.options.items() if k != "cask"}
                spec = PackageSpec(name=spec.name, kind=PackageKind.CASK, options=options)
            specs.append(spec)
        return specs

    @property
    def shell(self) -> str:
        return str(self.raw.get("shell") or "zsh")

    @property
    def profile_path(self) -> str:
        default = "~/.zprofile" if self.shell == "zsh" else "~/.bash_profile"
        return str(Path(str(self.raw.get("profile") or default)).expanduser())

    @property
    def greedy_casks(self) -> bool:
        return any(s.option_enabled("greedy") or s.option_enabled("auto_updates") for s in self.apps)


def load_config(path: str) -> SetupConfig:
    """Load config.yml (or a Brewfile). A missing file yields an empty config."""

    p = Path(path)
    if not p.exists():
        logger.info("No package manifest at %s; package stages have nothing to do", p)
        return SetupConfig(raw={}, path=str(p))

    return SetupConfig(raw=load_package_mapping(path), path=str(p))
