"""Leveled console output shared by the build stages."""
from __future__ import annotations

import sys


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < warning < info < debug
    Debug lines carry a running sequence number so a run can be traced.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warning": 2,
        "info": 3,
        "debug": 4,
    }

    def __init__(self, level: str = "info"):
        self.level_name = level if level in self.LEVELS else "info"
        self.level = self.LEVELS[self.level_name]
        self._trace = 0

    @classmethod
    def for_debug(cls, debug: bool) -> "Console":
        return cls("debug" if debug else "info")

    @property
    def debug_enabled(self) -> bool:
        return self.level >= self.LEVELS["debug"]

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"[INFO] {message}")

    def warning(self, message: str) -> None:
        if self.level >= self.LEVELS["warning"]:
            print(f"[WARNING] {message}", file=sys.stderr)

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"[ERROR] {message}", file=sys.stderr)

    def debug(self, message: str) -> None:
        if not self.debug_enabled:
            return
        self._trace += 1
        print(f"[DEBUG {self._trace}] {message}")
