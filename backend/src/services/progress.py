from __future__ import annotations

from typing import Callable, Optional

from loguru import logger

ProgressCallback = Callable[[str, int], None]

LOCATING = 5
PLACES = 15
PROMPTING = 35
CALLING_MODEL = 60
PROCESSING = 80
FINALIZING = 90
DONE = 100


class ProgressReporter:
    """Forward milestones to a caller callback, never going backwards.

    A callback that raises is logged and otherwise ignored.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self.callback = callback
        self.last = 0

    def __call__(self, message: str, percent: int) -> None:
        percent = max(self.last, min(100, int(percent)))
        self.last = percent
        if self.callback is None:
            return
        try:
            self.callback(message, percent)
        except Exception as exc:
            logger.warning("progress callback failed at {}%: {}", percent, exc)


def as_reporter(callback: Optional[ProgressCallback]) -> ProgressReporter:
    if isinstance(callback, ProgressReporter):
        return callback
    return ProgressReporter(callback)
