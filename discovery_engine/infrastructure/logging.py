"""Structured logging: JSON lines with secret scrubbing."""

from __future__ import annotations

import json
import sys
import threading
import time
import uuid
from typing import Any, Optional


def _get_scrubber():
    """Deferred import keeps the key manager out of the import cycle."""
    try:
        from discovery_engine.security.key_manager import get_key_manager
        return get_key_manager()
    except Exception:
        return None


class StructuredLogger:
    """One JSON object per line. Safe to call from validation worker threads."""

    def __init__(self, trace_id: Optional[str] = None, output=None):
        self.trace_id = trace_id or str(uuid.uuid4())[:8]
        self._output = output or sys.stderr
        self._timers: dict[str, float] = {}
        self._lock = threading.Lock()

    def _scrub(self, text: str) -> str:
        km = _get_scrubber()
        if km:
            return km.scrub_text(text)
        return text

    def _emit(self, data: dict[str, Any]) -> None:
        data["trace_id"] = self.trace_id
        data["timestamp"] = time.time()
        try:
            line = self._scrub(json.dumps(data, ensure_ascii=False, default=str))
            with self._lock:
                self._output.write(line + "\n")
                self._output.flush()
        except Exception as exc:
            # Last-resort fallback to avoid silent logger failures.
            try:
                fallback = {
                    "event": "logger_internal_error",
                    "trace_id": self.trace_id,
                    "timestamp": time.time(),
                    "error": str(exc),
                }
                sys.stderr.write(json.dumps(fallback, ensure_ascii=False, default=str) + "\n")
                sys.stderr.flush()
            except Exception:
                return

    def session_start(self, session_id: str, **extra: Any) -> None:
        self._timers[session_id] = time.time()
        self._emit({"event": "session_start", "session_id": session_id, **extra})

    def session_end(self, session_id: str, *, state: str, **extra: Any) -> None:
        start = self._timers.pop(session_id, time.time())
        self._emit({
            "event": "session_end",
            "session_id": session_id,
            "state": state,
            "duration_ms": round((time.time() - start) * 1000, 1),
            **extra,
        })

    def generation(self, session_id: str, *, ok: bool, candidates: int = 0, **extra: Any) -> None:
        self._emit({"event": "generation", "session_id": session_id, "ok": ok, "candidates": candidates, **extra})

    def validation_dispatch(self, session_id: str, index: int, name: str, **extra: Any) -> None:
        self._emit({"event": "validation_dispatch", "session_id": session_id, "index": index, "name": name, **extra})

    def validation_result(
        self,
        session_id: str,
        index: int,
        *,
        status: str,
        latency_ms: float,
        **extra: Any,
    ) -> None:
        self._emit({
            "event": "validation_result",
            "session_id": session_id,
            "index": index,
            "status": status,
            "latency_ms": round(latency_ms, 1),
            **extra,
        })

    def action(self, session_id: str, intent: str, *, index: int, outcome: str = "", **extra: Any) -> None:
        self._emit({
            "event": "action",
            "session_id": session_id,
            "intent": intent,
            "index": index,
            "outcome": outcome,
            **extra,
        })

    def schedule(self, session_id: str, *, ok: bool, **extra: Any) -> None:
        self._emit({"event": "schedule", "session_id": session_id, "ok": ok, **extra})

    def error(self, where: str, error: str, **extra: Any) -> None:
        self._emit({"event": "error", "where": where, "error": self._scrub(error), **extra})

    def warning(self, where: str, message: str, **extra: Any) -> None:
        self._emit({"event": "warning", "where": where, "message": self._scrub(message), **extra})


_logger: Optional[StructuredLogger] = None


def get_logger(trace_id: Optional[str] = None) -> StructuredLogger:
    global _logger
    if _logger is None or (trace_id and _logger.trace_id != trace_id):
        _logger = StructuredLogger(trace_id=trace_id)
    return _logger
