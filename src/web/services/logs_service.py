from __future__ import annotations

from collections import deque
from typing import List, Optional


class LogsService:
    """Read-only access to the service log for the review dashboard."""

    @staticmethod
    def tail(path: Optional[str], lines: int = 200) -> List[str]:
        if not path:
            return ["(log_path not configured)"]
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return [line.rstrip("\n") for line in deque(f, maxlen=max(1, lines))]
        except FileNotFoundError:
            return [f"(log file not found: {path})"]
        except OSError as e:
            return [f"(failed to read log file: {e})"]
