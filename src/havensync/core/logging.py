"""
Structured event logging for the sync layer.

Writes one JSON object per line for every API request, mutation and error:
    <log_dir>/havensync/requests_YYYY-MM-DD.jsonl
    <log_dir>/havensync/mutations_YYYY-MM-DD.jsonl
    <log_dir>/havensync/errors_YYYY-MM-DD.jsonl
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles


class EventLogger:
    """
    JSONL event logger for transport calls and mutation lifecycles.

    A logger without a directory is a no-op, so callers never need to check
    whether file logging is enabled. Write failures are reported through the
    standard ``logging`` module and never propagate.
    """

    def __init__(self, base_log_dir: Optional[Path] = None):
        self.log_dir = Path(base_log_dir) / "havensync" if base_log_dir else None
        self._write_locks: Dict[str, asyncio.Lock] = {}

    @property
    def enabled(self) -> bool:
        return self.log_dir is not None

    def _get_write_lock(self, kind: str) -> asyncio.Lock:
        if kind not in self._write_locks:
            self._write_locks[kind] = asyncio.Lock()
        return self._write_locks[kind]

    async def _append(self, kind: str, entry: Dict[str, Any]) -> None:
        if self.log_dir is None:
            return
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            today = datetime.now().strftime("%Y-%m-%d")
            log_file = self.log_dir / f"{kind}_{today}.jsonl"
            line = json.dumps({"timestamp": datetime.now().isoformat(), **entry}, ensure_ascii=False, default=str)
            async with self._get_write_lock(kind):
                async with aiofiles.open(log_file, "a", encoding="utf-8") as f:
                    await f.write(line + "\n")
        except Exception as e:
            logging.error(f"Failed to write {kind} log: {e}")

    async def log_request(
        self,
        method: str,
        path: str,
        status_code: Optional[int],
        duration_ms: float,
    ) -> None:
        """
        Log one completed API call.

        Args:
            method: HTTP method
            path: Path relative to the API base URL
            status_code: Response status, or None if the call never got one
            duration_ms: Wall time of the call
        """
        await self._append("requests", {
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 1),
        })

    async def log_mutation(self, mutation: str, phase: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Log a mutation lifecycle step.

        Args:
            mutation: Mutation name (e.g. "document_upload", "chat_send")
            phase: "started", "succeeded" or "failed"
            details: Extra context (document id, error message, ...)
        """
        await self._append("mutations", {
            "mutation": mutation,
            "phase": phase,
            "details": details or {},
        })

    async def log_error(
        self,
        operation: str,
        error_message: str,
        error_details: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._append("errors", {
            "operation": operation,
            "error_message": error_message,
            "error_details": error_details or {},
        })


def configure_logging(level: str = "INFO") -> None:
    """Configure the standard logging module for command line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# Global event logger instances, one per log directory
_event_loggers: Dict[Optional[Path], EventLogger] = {}


def get_event_logger(base_log_dir: Optional[Path] = None) -> EventLogger:
    """Get or create the event logger for a log directory."""
    key = Path(base_log_dir) if base_log_dir else None
    if key not in _event_loggers:
        _event_loggers[key] = EventLogger(key)
    return _event_loggers[key]
