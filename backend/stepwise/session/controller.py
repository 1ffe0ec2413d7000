"""
Session controller.

Runs user intents against the step history and the transformation client:

    submit_initial  -> Busy -> start / start_failure
    submit_command  -> undo shortcut, or Busy -> append / append_failure
    undo, edit_equation, reset
    start/stop/toggle_dictation, receive_transcript

Only one transformation may be outstanding at a time. A second submission
while Busy is rejected, not queued. Busy is always released, whatever the
client does.
"""

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import DictationUnavailable, TransformError
from ..llm.transform import InitialRequest, RefineRequest, TransformationClient
from ..math.steps import Mode, StepHistory
from .capture import CaptureTarget, SpeechCapture


logger = logging.getLogger(__name__)

INITIAL_FAILURE_PLACEHOLDER = "Error: Could not convert. Please type."
COMMAND_FAILURE_PLACEHOLDER = "Error: Could not compute. Please edit."
UNDO_DIRECTIVE = "undo"


class SessionState(enum.Enum):
    IDLE_EMPTY = "idle_empty"
    IDLE_EDITING = "idle_editing"
    BUSY = "busy"


class SubmitOutcome(enum.Enum):
    APPLIED = "applied"
    FAILED = "failed"
    UNDONE = "undone"
    REJECTED_BUSY = "rejected_busy"
    REJECTED_MODE = "rejected_mode"
    IGNORED_BLANK = "ignored_blank"
    DISCARDED = "discarded"


@dataclass
class PendingInput:
    initial: str = ""
    command: str = ""

    def get(self, target: CaptureTarget) -> str:
        return getattr(self, target.value)

    def set(self, target: CaptureTarget, text: str) -> None:
        setattr(self, target.value, text)

    def clear(self) -> None:
        self.initial = ""
        self.command = ""


def is_undo_directive(command: str) -> bool:
    # Substring match: "please Undo that" counts, and so does "redundo".
    return UNDO_DIRECTIVE in command.strip().lower()


class SessionController:
    def __init__(self, client: TransformationClient, capture: SpeechCapture,
                 history: Optional[StepHistory] = None):
        self.client = client
        self.capture = capture
        self.history = history if history is not None else StepHistory()
        self.drafts = PendingInput()
        self.capture_target: Optional[CaptureTarget] = None
        self._busy = False
        self._busy_lock = threading.Lock()
        # Bumped by reset() so a request that outlives its session is dropped.
        self._generation = 0

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def mode(self) -> Mode:
        return self.history.mode

    @property
    def state(self) -> SessionState:
        if self._busy:
            return SessionState.BUSY
        if self.history.mode is Mode.EMPTY:
            return SessionState.IDLE_EMPTY
        return SessionState.IDLE_EDITING

    def _enter_busy(self) -> bool:
        with self._busy_lock:
            if self._busy:
                return False
            self._busy = True
            return True

    def _leave_busy(self) -> None:
        with self._busy_lock:
            self._busy = False

    # -- transformations ---------------------------------------------------

    def submit_initial(self, sentence: Optional[str] = None) -> SubmitOutcome:
        """Convert the user's opening sentence into the first step."""
        text = self.drafts.initial if sentence is None else sentence
        if not text.strip():
            return SubmitOutcome.IGNORED_BLANK
        if not self._enter_busy():
            logger.info("Rejected initial submission: a transformation is in flight")
            return SubmitOutcome.REJECTED_BUSY

        if self.history.mode is not Mode.EMPTY:
            self._leave_busy()
            return SubmitOutcome.REJECTED_MODE

        generation = self._generation
        try:
            try:
                raw = self.client.transform(InitialRequest(text))
            except TransformError as e:
                logger.error(f"Initial conversion failed: {e}")
                if generation != self._generation:
                    return SubmitOutcome.DISCARDED
                self.history.start_failure(INITIAL_FAILURE_PLACEHOLDER, text)
                return SubmitOutcome.FAILED
            if generation != self._generation:
                logger.info("Session was reset while converting; result discarded")
                return SubmitOutcome.DISCARDED
            self.history.start(raw, text)
            return SubmitOutcome.APPLIED
        finally:
            if generation == self._generation:
                self.drafts.initial = ""
            self._leave_busy()

    def submit_command(self, command: Optional[str] = None) -> SubmitOutcome:
        """Apply one natural-language command to the latest equation."""
        text = self.drafts.command if command is None else command
        if not text.strip():
            return SubmitOutcome.IGNORED_BLANK

        if is_undo_directive(text):
            if self.history.mode is Mode.EMPTY:
                return SubmitOutcome.REJECTED_MODE
            self.history.undo()
            self.drafts.command = ""
            return SubmitOutcome.UNDONE

        if not self._enter_busy():
            logger.info(f"Rejected command {text!r}: a transformation is in flight")
            return SubmitOutcome.REJECTED_BUSY

        if self.history.mode is Mode.EMPTY:
            self._leave_busy()
            return SubmitOutcome.REJECTED_MODE

        generation = self._generation
        try:
            previous = self.history.last.equation
            try:
                raw = self.client.transform(RefineRequest(previous, text))
            except TransformError as e:
                logger.error(f"Command {text!r} failed: {e}")
                if generation != self._generation:
                    return SubmitOutcome.DISCARDED
                self.history.append_failure(COMMAND_FAILURE_PLACEHOLDER, text)
                return SubmitOutcome.FAILED
            if generation != self._generation:
                logger.info("Session was reset while transforming; result discarded")
                return SubmitOutcome.DISCARDED
            self.history.append(raw, text)
            return SubmitOutcome.APPLIED
        finally:
            if generation == self._generation:
                self.drafts.command = ""
            self._leave_busy()

    # -- local edits ---------------------------------------------------------

    def undo(self) -> bool:
        if self.history.mode is Mode.EMPTY:
            return False
        return self.history.undo()

    def edit_equation(self, index: int, text: str) -> None:
        # Allowed while Busy; edits never touch the in-flight request.
        self.history.edit_equation(index, text)

    def set_draft(self, target: CaptureTarget, text: str) -> None:
        self.drafts.set(target, text)

    def reset(self) -> None:
        """Start over: empty history, empty drafts, no active capture."""
        self._generation += 1
        self.history.reset()
        self.drafts.clear()
        self.stop_dictation()

    # -- dictation -------------------------------------------------------------

    @property
    def listening(self) -> bool:
        return self.capture_target is not None

    def start_dictation(self, target: CaptureTarget) -> None:
        if not self.capture.available:
            raise DictationUnavailable()
        if self.capture_target is not None:
            self.stop_dictation()
        self.capture_target = target
        self.capture.start_capture(target)

    def stop_dictation(self) -> bool:
        if self.capture_target is None:
            return False
        self.capture.stop_capture()
        self.capture_target = None
        return True

    def toggle_dictation(self, target: CaptureTarget) -> bool:
        """Mic button behaviour: stop if listening, otherwise listen. Returns listening."""
        if self.listening:
            self.stop_dictation()
            return False
        self.start_dictation(target)
        return True

    def receive_transcript(self, text: str, target: Optional[CaptureTarget] = None) -> bool:
        """
        Route a finished transcript into the draft being dictated.

        A transcript arriving with no active capture, or tagged for a field
        other than the active one, is dropped. Recognition is one-shot, so
        the capture ends once a transcript is accepted.
        """
        active = self.capture_target
        if active is None:
            logger.warning("Dropped transcript: no capture is active")
            return False
        if target is not None and target is not active:
            logger.warning(f"Dropped transcript for {target.value}: capture is routed to {active.value}")
            return False
        self.drafts.set(active, text)
        self.stop_dictation()
        return True

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "mode": self.mode.value,
            "busy": self.busy,
            "steps": self.history.to_list(),
            "drafts": {"initial": self.drafts.initial, "command": self.drafts.command},
            "capture_target": self.capture_target.value if self.capture_target else None,
        }
