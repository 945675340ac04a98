from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


class PackageKind(str, enum.Enum):
    FORMULA = "formula"
    CASK = "cask"
    FONT = "font"
    TAP = "tap"


class Stage(str, enum.Enum):
    PROBER = "prober"
    BUNDLE = "bundle"
    ENV = "env"
    UPDATE = "update"
    CLEAN = "clean"


class StageStatus(str, enum.Enum):
    SKIPPED = "skipped"
    INSTALLED = "installed"
    UPDATED = "updated"
    FAILED = "failed"


class StageState(str, enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in {StageState.SKIPPED, StageState.SUCCEEDED, StageState.FAILED}


@dataclass(frozen=True)
class PackageSpec:
    name: str
    kind: PackageKind
    options: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, PackageKind]:
        return (self.name, self.kind)

    def option_enabled(self, key: str) -> bool:
        return str(self.options.get(key, "")).lower() == "true"


@dataclass(frozen=True)
class Dependency:
    """One entry of an environment file's dependency list."""

    name: str
    spec: str
    source: str = "conda"


@dataclass(frozen=True)
class EnvironmentSpec:
    name: Optional[str]
    dependencies: List[Dependency] = field(default_factory=list)
    channels: List[str] = field(default_factory=list)
    path: Optional[str] = None

    def dependency_names(self, source: Optional[str] = None) -> List[str]:
        return [d.name for d in self.dependencies if source is None or d.source == source]


@dataclass(frozen=True)
class StageResult:
    stage: Stage
    status: StageStatus
    detail: str = ""
    target: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is StageStatus.FAILED

    def describe(self) -> str:
        subject = f" {self.target}" if self.target else ""
        detail = f": {self.detail}" if self.detail else ""
        return f"[{self.stage.value}]{subject} {self.status.value}{detail}"


@dataclass(frozen=True)
class ToolAvailability:
    compiler_toolchain: bool = False
    package_manager: bool = False
    env_manager: bool = False
    fast_env_manager: bool = False
    brew_path: Optional[str] = None
    conda_path: Optional[str] = None
    mamba_path: Optional[str] = None

    @property
    def env_manager_path(self) -> Optional[str]:
        """Prefer mamba for environment work when it is installed."""
        return self.mamba_path or self.conda_path

    def as_dict(self) -> Dict[str, bool]:
        return {
            "compiler_toolchain": self.compiler_toolchain,
            "package_manager": self.package_manager,
            "env_manager": self.env_manager,
            "fast_env_manager": self.fast_env_manager,
        }
