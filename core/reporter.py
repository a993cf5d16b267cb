"""Console trace of destination writes."""

import json
import sys
from typing import Any, Optional, TextIO


def _printable(raw: bytes) -> str:
    return raw.decode('utf-8', 'backslashreplace')


def format_payload(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, bytes):
        return _printable(payload)
    return json.dumps(payload, ensure_ascii=False, default=_printable)


class ProgressReporter:
    """Echoes every successful write; does nothing when disabled"""

    def __init__(self, enabled: bool = False, stream: Optional[TextIO] = None,
                 show_payload: bool = True):
        self.enabled = enabled
        self.stream = stream
        self.show_payload = show_payload
        self.reported = 0

    def _print(self, text: str = ""):
        print(text, file=self.stream or sys.stdout)

    def header(self):
        if self.enabled:
            self._print("\nRedis Keys: ")

    def key_written(self, write):
        if not self.enabled:
            return
        self.reported += 1
        if self.show_payload:
            self._print(f"{write.key} -> {format_payload(write.payload)}")
        else:
            self._print(write.key)

    def banner(self, message: str):
        """Completion banner, printed whether or not the trace is enabled"""
        self._print(f"\n{message}")
