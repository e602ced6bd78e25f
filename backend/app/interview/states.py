from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Initializing:
    name = "initializing"


@dataclass(frozen=True)
class AwaitingAnswer:
    index: int
    name = "awaiting_answer"


@dataclass(frozen=True)
class Evaluating:
    index: int
    name = "evaluating"


@dataclass(frozen=True)
class Completing:
    name = "completing"


@dataclass(frozen=True)
class Reviewing:
    name = "reviewing"


@dataclass(frozen=True)
class Done:
    name = "done"


@dataclass(frozen=True)
class Failed:
    """
    Failure of one step. `step` is the name of the state the failure
    happened in; a failure while reviewing is the degraded case where the
    session is completed and scored but has no review.
    """
    reason: str
    error_code: str
    step: str
    question_index: Optional[int] = None
    name = "failed"

    @property
    def review_failed(self) -> bool:
        return self.step == Reviewing.name


InterviewPhase = Union[
    Initializing,
    AwaitingAnswer,
    Evaluating,
    Completing,
    Reviewing,
    Done,
    Failed,
]
