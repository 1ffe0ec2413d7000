import logging
from dataclasses import dataclass
from typing import Union

from ..errors import EmptyResult, RequestFailed
from ..prompts.transform_prompt import initial_prompt, refine_prompt
from .backends import ModelBackend, TransformMode


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitialRequest:
    sentence: str

    mode = TransformMode.INITIAL

    def prompt(self) -> str:
        return initial_prompt(self.sentence)


@dataclass(frozen=True)
class RefineRequest:
    previous_equation: str
    command: str

    mode = TransformMode.REFINE

    def prompt(self) -> str:
        return refine_prompt(self.previous_equation, self.command)


TransformRequest = Union[InitialRequest, RefineRequest]


class TransformationClient:
    """
    Turn one natural-language instruction into raw model text.

    The returned text is NOT normalized; callers decide what to do with
    delimiters. Failures raise RequestFailed or EmptyResult and are never
    retried here.
    """

    def __init__(self, backend: ModelBackend):
        self.backend = backend

    def transform(self, request: TransformRequest) -> str:
        mode = request.mode
        try:
            response = self.backend.generate(request.prompt(), mode)
        except Exception as e:
            logger.error(f"Model call raised during {mode.value} transform: {e}", exc_info=True)
            raise RequestFailed(None, str(e)) from e

        if not response.ok:
            logger.error(f"Model call failed during {mode.value} transform: "
                         f"status={response.status} body={response.body[:500]}")
            raise RequestFailed(response.status, response.body)
        if not response.candidates:
            logger.warning(f"Model returned no candidate text for {mode.value} transform")
            raise EmptyResult()

        text = response.candidates[0]
        logger.debug(f"Raw {mode.value} model output: {text!r}")
        return text
