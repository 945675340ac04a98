from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ShellProfile:
    """A shell startup file (~/.zprofile etc.) edited only by appending lines.

    Lines are compared after stripping surrounding whitespace; a line already
    present anywhere in the file is never appended again.
    """

    def __init__(self, path: str, *, dry_run: bool = False) -> None:
        self.path = Path(path).expanduser()
        self.dry_run = dry_run

    def lines(self) -> list[str]:
        if not self.path.exists():
            return []
        return [line.strip() for line in self.path.read_text(encoding="utf-8").splitlines()]

    def contains(self, line: str) -> bool:
        return line.strip() in self.lines()

    def ensure_line(self, line: str, *, comment: Optional[str] = None) -> bool:
        """Append ``line`` if absent. Returns True when the file was changed."""

        line = line.strip()
        if self.contains(line):
            logger.info("%s already contains: %s", self.path, line)
            return False

        if self.dry_run:
            logger.info("Would append to %s: %s", self.path, line)
            return True

        self.path.parent.mkdir(parents=True, exist_ok=True)
        existing = self.path.read_text(encoding="utf-8") if self.path.exists() else ""
        block = ""
        if existing and not existing.endswith("\n"):
            block += "\n"
        if comment:
            block += f"# {comment}\n"
        block += line + "\n"
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(block)
        logger.info("Appended to %s: %s", self.path, line)
        return True
