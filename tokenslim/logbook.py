import json
import sys
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

EventWriter = Callable[[Dict[str, Any]], None]


class Logbook:
    """
    Structured record of what each rewrite session did:
    - bounded ring buffer (in-memory) for the final report and tests
    - optional writer called synchronously for every event (e.g. JSON lines on stderr)
    """
    def __init__(self, maxlen: int = 1000, writer: Optional[EventWriter] = None):
        self._buffer: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self._writer = writer

    def _now(self) -> float:
        return time.time()

    def _event(
        self,
        event: str,
        level: str = "INFO",
        path: Optional[str] = None,
        message: Optional[str] = None,
        **details: Any,
    ) -> Dict[str, Any]:
        return {
            "ts": self._now(),
            "level": level,
            "event": event,
            "path": path,
            "message": message,
            **({"details": details} if details else {}),
        }

    def append(self, ev: Dict[str, Any]) -> None:
        self._buffer.append(ev)
        if self._writer is not None:
            self._writer(ev)

    # Session events
    def session_started(self, path: str, model: str, **kw):
        self.append(self._event("SessionStarted", "INFO", path, None, model=model, **kw))

    def proposed(self, path: str, tokens_before: int, tokens_after: int, **kw):
        self.append(self._event("Proposed", "INFO", path, None, tokens_before=tokens_before, tokens_after=tokens_after, **kw))

    def decision(self, path: str, decision: str, **kw):
        self.append(self._event("Decision", "INFO", path, decision, **kw))

    def applied(self, path: str, tokens_saved: int, **kw):
        self.append(self._event("Applied", "INFO", path, None, tokens_saved=tokens_saved, **kw))

    def validation_passed(self, path: str, **kw):
        self.append(self._event("ValidationPassed", "INFO", path, None, **kw))

    def rolled_back(self, path: str, diagnostic: str, **kw):
        self.append(self._event("RolledBack", "WARN", path, diagnostic, **kw))

    def rejected(self, path: str, reason: str, **kw):
        self.append(self._event("Rejected", "INFO", path, reason, **kw))

    def skipped(self, path: str, reason: str, **kw):
        self.append(self._event("Skipped", "WARN", path, reason, **kw))

    def error(self, path: Optional[str], message: str, **kw):
        self.append(self._event("Error", "ERROR", path, message, **kw))

    # Batch events
    def batch_completed(self, **counts):
        self.append(self._event("BatchCompleted", "INFO", None, None, **counts))

    def batch_aborted(self, path: str, message: str, **kw):
        self.append(self._event("BatchAborted", "ERROR", path, message, **kw))

    def snapshot(self):
        return list(self._buffer)

    def events(self, name: str):
        return [ev for ev in self._buffer if ev["event"] == name]

    @staticmethod
    def json_writer(stream=None) -> EventWriter:
        out = stream or sys.stderr

        def _write(ev: Dict[str, Any]):
            print(json.dumps(ev, separators=(",", ":"), ensure_ascii=False), file=out, flush=True)
        return _write
