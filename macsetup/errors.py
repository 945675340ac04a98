from __future__ import annotations

from typing import Sequence


class SetupError(RuntimeError):
    """Base class for everything the provisioning stages raise on purpose."""


class CommandError(SetupError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


class PrerequisiteMissing(SetupError):
    """A tool a stage depends on is absent. Only that stage is aborted."""

    def __init__(self, tool: str, remediation: str) -> None:
        self.tool = tool
        self.remediation = remediation
        super().__init__(f"{tool} is not available. {remediation}")


class InstallFailed(SetupError):
    pass


class SyncFailed(SetupError):
    pass


class BestEffortSkipped(SetupError):
    """Optional work that could not be done; never fails the run."""


class ManifestError(ValueError):
    pass
