"""User-facing notices (toasts) and navigation requests.

The core never talks to a UI directly; it hands ``Notification`` objects
and navigation targets to a ``Notifier``. The Streamlit dashboard and the
tests provide their own implementations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

TONE_PROGRESS = "progress"
TONE_INFO = "info"
TONE_SUCCESS = "success"
TONE_ERROR = "error"

TOAST_ERROR_LIMIT = 3


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    tone: str = TONE_INFO


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...

    def navigate(self, path: str) -> None: ...


@dataclass
class RecordingNotifier:
    """Keeps everything it is told, in order. Used by tests and scripts."""

    notifications: list[Notification] = field(default_factory=list)
    navigations: list[str] = field(default_factory=list)

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def navigate(self, path: str) -> None:
        self.navigations.append(path)

    def tones(self) -> list[str]:
        return [n.tone for n in self.notifications]


def summarize_errors(errors: list[str], limit: int = TOAST_ERROR_LIMIT) -> str:
    """First *limit* messages, then ``(+N mais)`` for the rest."""
    shown = "; ".join(errors[:limit])
    hidden = len(errors) - limit
    if hidden > 0:
        return f"{shown} (+{hidden} mais)"
    return shown
