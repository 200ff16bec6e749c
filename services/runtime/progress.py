"""Step-by-step progress lines shown while the runtime is set up."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, TextIO

__all__ = ["ProgressReporter", "StepStatus"]

_SUCCESS_GLYPH = "✓"
_FAILURE_GLYPH = "✗"
_ELLIPSIS = "…"


@dataclass
class StepStatus:
    """Mutable detail appended to the step's completion line."""

    detail: str | None = None


class ProgressReporter:
    """Write one success or failure line per pipeline step."""

    def __init__(self, stream: TextIO | None = None, *, enabled: bool = True) -> None:
        self._stream = stream
        self._enabled = enabled
        self.lines: list[str] = []

    @contextmanager
    def step(self, label: str) -> Iterator[StepStatus]:
        status = StepStatus()
        try:
            yield status
        except Exception as exc:
            self._write(f"{self._glyph(_FAILURE_GLYPH, 'x')} {label}{self._ellipsis()} failed!")
            self._write(f"  Error: {exc}")
            raise
        suffix = f" {status.detail}" if status.detail else ""
        self._write(f"{self._glyph(_SUCCESS_GLYPH, '+')} {label}{self._ellipsis()} done!{suffix}")

    def info(self, message: str) -> None:
        self._write(f"  {message}")

    def _ellipsis(self) -> str:
        return self._glyph(_ELLIPSIS, "...")

    def _glyph(self, glyph: str, fallback: str) -> str:
        encoding = getattr(self._target(), "encoding", None) or "utf-8"
        try:
            glyph.encode(encoding)
        except (UnicodeEncodeError, LookupError):
            return fallback
        return glyph

    def _target(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def _write(self, line: str) -> None:
        self.lines.append(line)
        if not self._enabled:
            return
        target = self._target()
        target.write(line + "\n")
        target.flush()
