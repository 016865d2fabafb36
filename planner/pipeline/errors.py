"""
Error kinds and stage results for the decor pipeline.

Stages report a ``StageResult`` instead of raising. Fail-soft stages only
ever return OK or FALLBACK; fail-loud stages return FAILED, and the
orchestrator turns that into a ``GenerationError`` via ``unwrap()``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

PLAN_FAILED_MESSAGE = (
    "Failed to generate the decor plan. The AI may be experiencing high traffic. "
    "Please try again later."
)
CANCELLED_MESSAGE = "Generation was cancelled by the user."
TOUR_FAILED_MESSAGE = "Failed to generate video tour."


class GenerationError(Exception):
    """A stage failed and the request has to be aborted."""


class GenerationCancelled(GenerationError):
    """The caller cancelled the request."""


class ImageGenerationError(GenerationError):
    pass


class VideoGenerationError(GenerationError):
    pass


class StageStatus(str, Enum):
    OK = "ok"
    FALLBACK = "fallback"
    FAILED = "failed"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    stage: str
    status: StageStatus
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, stage: str, value: T) -> "StageResult[T]":
        return cls(stage=stage, status=StageStatus.OK, value=value)

    @classmethod
    def fallback(cls, stage: str, value: T, error: str) -> "StageResult[T]":
        return cls(stage=stage, status=StageStatus.FALLBACK, value=value, error=error)

    @classmethod
    def failed(cls, stage: str, error: str) -> "StageResult[T]":
        return cls(stage=stage, status=StageStatus.FAILED, error=error)

    @property
    def is_fallback(self) -> bool:
        return self.status == StageStatus.FALLBACK

    def unwrap(self) -> T:
        if self.status == StageStatus.FAILED:
            raise GenerationError(f"{self.stage} failed: {self.error}")
        return self.value


def user_message(exc: BaseException, tour: bool = False) -> str:
    """Flatten any exception into the single string shown to the user."""
    if isinstance(exc, GenerationCancelled):
        return CANCELLED_MESSAGE
    if tour:
        return str(exc) or TOUR_FAILED_MESSAGE
    return PLAN_FAILED_MESSAGE
