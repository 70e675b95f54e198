"""
Toast notifications shown to dashboard users.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class Toast:
    level: str  # info | success | error
    title: str
    description: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)


class ToastNotifier:
    """Keeps the most recent toasts; every toast is also logged."""

    def __init__(self, maxlen: int = 50):
        self._toasts: deque[Toast] = deque(maxlen=maxlen)

    def _push(self, level: str, title: str, description: Optional[str]) -> Toast:
        toast = Toast(level=level, title=title, description=description)
        self._toasts.append(toast)
        log = logger.warning if level == "error" else logger.info
        log(f"[{level}] {title}" + (f" ({description})" if description else ""))
        return toast

    def info(self, title: str, description: Optional[str] = None) -> Toast:
        return self._push("info", title, description)

    def success(self, title: str, description: Optional[str] = None) -> Toast:
        return self._push("success", title, description)

    def error(self, title: str, description: Optional[str] = None) -> Toast:
        return self._push("error", title, description)

    @property
    def toasts(self) -> list[Toast]:
        return list(self._toasts)

    @property
    def latest(self) -> Optional[Toast]:
        return self._toasts[-1] if self._toasts else None

    def clear(self) -> None:
        self._toasts.clear()
