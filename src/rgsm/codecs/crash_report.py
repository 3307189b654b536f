"""Reader for the crash log written by the loader script.

When the game dies during script loading, the loader dumps a Marshal Hash:

    {:type => "NameError", :mesg => "undefined ...", :back => ["file:line:in ...", ...]}

`read_crash_report()` turns that file into a `CrashReport`. Backtrace lines
follow Ruby's `file:line:message` shape; lines pointing at sections that
still live inside the bundle (no real file) can be filtered out.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rgsm.codecs._marshal_reader import MarshalFormatError, _load

_BACKTRACE_RE = re.compile(r"(.*):(\d+):(.*)")


@dataclass(frozen=True)
class BacktraceFrame:
    file: str
    line: int
    message: str

    def __str__(self) -> str:
        return f"{self.file}\n    at line {self.line}: {self.message}"


@dataclass(frozen=True)
class CrashReport:
    type: str
    message: str
    backtrace: list[str] = field(default_factory=list)

    def frames(self, *, only_existing: bool = False) -> list[BacktraceFrame]:
        """Parse backtrace lines; unparseable lines are dropped.

        With `only_existing`, keep frames whose file is an existing `.rb` file.
        """
        out: list[BacktraceFrame] = []
        for raw in self.backtrace:
            m = _BACKTRACE_RE.match(raw)
            if m is None:
                continue
            frame = BacktraceFrame(m.group(1), int(m.group(2)), m.group(3))
            if only_existing:
                p = Path(frame.file)
                if p.suffix.lower() != ".rb" or not p.is_file():
                    continue
            out.append(frame)
        return out

    def render(self, *, only_existing: bool = False) -> str:
        lines = [f"Game exception: {self.type}", f"  message: {self.message}"]
        for frame in self.frames(only_existing=only_existing):
            lines.append(f"  from: {frame}")
        return "\n".join(lines) + "\n"


def _text(value: Any, *, where: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return str(value)
    raise ValueError(f"{where}: expected String, got {type(value).__name__}")


def parse_crash_report(data: bytes) -> CrashReport:
    try:
        obj = _load(data)
    except MarshalFormatError as e:
        raise ValueError(f"crash report is not a valid Marshal stream: {e}") from e
    if not isinstance(obj, dict):
        raise ValueError(f"crash report: expected Hash, got {type(obj).__name__}")

    back = obj.get("back")
    if back is None:
        back = []
    if not isinstance(back, list):
        raise ValueError("crash report: back must be an Array")

    return CrashReport(
        type=_text(obj.get("type"), where="crash report: type"),
        message=_text(obj.get("mesg"), where="crash report: mesg"),
        backtrace=[_text(x, where="crash report: back[*]") for x in back],
    )


def read_crash_report(path: str | Path) -> CrashReport:
    return parse_crash_report(Path(path).read_bytes())
