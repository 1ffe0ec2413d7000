"""
Exception types shared by the Stepwise components.

Transformation failures are recovered by the session controller and turned
into placeholder steps. Contract violations on the step history are
programmer errors and are never caught.
"""

from typing import Optional


class StepwiseError(Exception):
    """Base class for recoverable Stepwise errors."""


class TransformError(StepwiseError):
    """The model could not produce a usable equation."""


class RequestFailed(TransformError):
    """Transport failure or a non-success response from the model boundary."""

    def __init__(self, status: Optional[int], body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Model request failed with status {status}: {body}")


class EmptyResult(TransformError):
    """Well-formed response that carried no candidate text."""

    def __init__(self, message: str = "Model response contained no candidate text"):
        super().__init__(message)


class DictationUnavailable(StepwiseError):
    """Speech capture is not supported on this runtime."""

    NOTICE = "Speech recognition is not available on this browser."

    def __init__(self, message: str = NOTICE):
        super().__init__(message)


class HistoryContractError(AssertionError):
    """A step history operation was called outside its contract."""
