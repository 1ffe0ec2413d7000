"""
Speech capture boundary.

Recognition itself happens elsewhere (in the browser, for the web app).
The controller only needs to tell the recognizer when to start and stop,
and to know whether recognition exists at all on this runtime.
"""

import enum
import logging
from typing import Optional, Protocol


logger = logging.getLogger(__name__)


class CaptureTarget(enum.Enum):
    """Pending input field a dictation result is routed into."""

    INITIAL = "initial"
    COMMAND = "command"


class SpeechCapture(Protocol):
    available: bool

    def start_capture(self, target: CaptureTarget) -> None:
        ...

    def stop_capture(self) -> None:
        ...


class BrowserCapture:
    """
    Capture driven by the browser's speech recognition.

    The page starts its recognizer when told to listen and posts the
    transcript back; this object just remembers what was asked of it.
    """

    def __init__(self, available: bool = True):
        self.available = available
        self.listening: Optional[CaptureTarget] = None

    def start_capture(self, target: CaptureTarget) -> None:
        self.listening = target
        logger.debug(f"Browser capture started for {target.value}")

    def stop_capture(self) -> None:
        if self.listening is not None:
            logger.debug(f"Browser capture stopped for {self.listening.value}")
        self.listening = None
