"""Structured logging and observability helpers."""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

_LEVELS = {
    "section": logging.INFO,
    "info": logging.INFO,
    "step": logging.INFO,
    "detail": logging.DEBUG,
    "success": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(slots=True)
class BuildLogger:
    """Run-scoped logger that forwards to stdlib logging and keeps records.

    Each record is a flat dict (level, phase, core, message, extra) so a run
    can be exported as JSON lines after the fact.
    """

    name: str = "corecross"
    records: list[dict[str, Any]] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def log(
        self,
        *,
        level: str,
        message: str,
        phase: str | None = None,
        core: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "phase": phase,
            "core": core,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        with self._lock:
            self.records.append(record)
            logging.getLogger(self.name).log(_LEVELS.get(level, logging.INFO), message)

    def section(self, title: str) -> None:
        self.log(level="section", message=f"=== {title} ===", phase=title)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log(level="info", message=message, **kwargs)

    def step(self, message: str, **kwargs: Any) -> None:
        self.log(level="step", message=f"-> {message}", **kwargs)

    def detail(self, message: str, **kwargs: Any) -> None:
        self.log(level="detail", message=f"   {message}", **kwargs)

    def success(self, message: str, **kwargs: Any) -> None:
        self.log(level="success", message=message, **kwargs)

    def warn(self, message: str, **kwargs: Any) -> None:
        self.log(level="warn", message=message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(level="error", message=message, **kwargs)

    def summary(self, *, built: int, failed: int, skipped: int = 0) -> None:
        self.section("Build Summary")
        counts = {"built": built, "failed": failed, "skipped": skipped}
        if built > 0:
            self.success(f"Built: {built} cores", phase="summary", extra=counts)
        if failed > 0:
            self.error(f"Failed: {failed} cores", phase="summary", extra=counts)
        if skipped > 0:
            self.warn(f"Skipped: {skipped} cores", phase="summary", extra=counts)
        duration = time.monotonic() - self.started_at
        self.info(f"Duration: {format_duration(duration)}", phase="summary")

    def records_for_core(self, core: str) -> list[dict[str, Any]]:
        with self._lock:
            return [record for record in self.records if record.get("core") == core]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{round(seconds)}s"
    if seconds < 3600:
        minutes, secs = divmod(seconds, 60)
        return f"{int(minutes)}m {round(secs)}s"
    hours, rest = divmod(seconds, 3600)
    return f"{int(hours)}h {int(rest // 60)}m"


def configure_logging(
    *,
    verbose: bool = False,
    no_color: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """Install console (and optional file) handlers on the root logger."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console: logging.Handler
    if no_color or not sys.stdout.isatty():
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter("%(message)s"))
    else:
        console = RichHandler(show_path=False, markup=False, rich_tracebacks=False)
        console.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] [%(levelname)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)
