"""NDJSON status log with sequence numbers and daily rotation."""

from __future__ import annotations

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, TextIO


class NdjsonLogger:
    """Structured status/error log for the bridge, one JSON record per line.

    Only bridge state is written here (startup, pipeline counters, adapter
    and reporting failures). Readings go to stdout and statsd.
    """

    def __init__(self, log_dir: str, file_prefix: str = "switchbot", mode: str = "regular") -> None:
        self.log_dir = Path(log_dir)
        self.file_prefix = file_prefix
        self.mode = mode  # regular drops debug records

        self.log_dir.mkdir(parents=True, exist_ok=True)

        self._seq = 0
        self._current_file: Optional[TextIO] = None
        self._current_date: Optional[str] = None
        self._start_time_ns = time.monotonic_ns()

        self._rotate_if_needed()

    @property
    def current_path(self) -> Path:
        return self.log_dir / f"{self.file_prefix}_{self._current_date}.ndjson"

    def log(self, msg_type: str, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Append one record."""
        if msg_type == "debug" and self.mode == "regular":
            return

        self._rotate_if_needed()
        self._seq += 1

        ts_ms = (time.monotonic_ns() - self._start_time_ns) / 1_000_000
        record: Dict[str, Any] = {
            "seq": self._seq,
            "type": msg_type,
            "ts_ms": round(ts_ms, 3),
            "msg": msg,
        }
        if data is not None:
            record["data"] = data
        record["hms"] = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        if self._current_file:
            json.dump(record, self._current_file, separators=(",", ":"), ensure_ascii=False)
            self._current_file.write("\n")
            self._current_file.flush()

    def status(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.log("status", msg, data=data)

    def error(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.log("error", msg, data=data)

    def debug(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Log a debug record (dropped in regular mode)."""
        self.log("debug", msg, data=data)

    def close(self) -> None:
        if self._current_file:
            self._current_file.close()
            self._current_file = None

    def _rotate_if_needed(self) -> None:
        """Switch to a new file when the date changes."""
        current_date = datetime.now().strftime("%Y%m%d")
        if self._current_date == current_date and self._current_file:
            return

        if self._current_file:
            self._current_file.close()

        self._current_date = current_date
        self._current_file = self.current_path.open("a", encoding="utf-8", buffering=1)

    def __enter__(self) -> NdjsonLogger:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class NullLogger:
    """Stand-in used when no status log directory is configured."""

    def log(self, msg_type: str, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    def status(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    def error(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    def debug(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    def close(self) -> None:
        pass
