from enum import StrEnum

from pydantic import BaseModel, Field

from supplier_onboarding.contracts.side_effects import SideEffect
from supplier_onboarding.contracts.submission import Submission


class WorkflowErrorKind(StrEnum):
    VALIDATION_ERROR = "validation_error"
    GUARD_VIOLATION = "guard_violation"
    TERMINAL_STATE_VIOLATION = "terminal_state_violation"
    INTEGRITY_ERROR = "integrity_error"


class WorkflowError(BaseModel):
    kind: WorkflowErrorKind
    code: str
    message: str
    missing: list[str] = Field(default_factory=list)

    @classmethod
    def validation(cls, message: str, missing: list[str]) -> "WorkflowError":
        return cls(
            kind=WorkflowErrorKind.VALIDATION_ERROR,
            code="SUBMISSION_INCOMPLETE",
            message=message,
            missing=list(missing),
        )

    @classmethod
    def guard(cls, code: str, message: str) -> "WorkflowError":
        return cls(kind=WorkflowErrorKind.GUARD_VIOLATION, code=code, message=message)

    @classmethod
    def terminal(cls, status: str) -> "WorkflowError":
        return cls(
            kind=WorkflowErrorKind.TERMINAL_STATE_VIOLATION,
            code="SUBMISSION_TERMINAL",
            message=f"submission is in a terminal state ({status})",
        )

    @classmethod
    def integrity(cls, code: str, message: str) -> "WorkflowError":
        return cls(kind=WorkflowErrorKind.INTEGRITY_ERROR, code=code, message=message)


class TransitionResult(BaseModel):
    """Outcome of a transition attempt.

    A refused attempt carries ``error`` and the untouched prior snapshot.
    """

    ok: bool
    submission: Submission
    side_effects: list[SideEffect] = Field(default_factory=list)
    error: WorkflowError | None = None

    @classmethod
    def accepted(
        cls, submission: Submission, side_effects: list[SideEffect] | None = None
    ) -> "TransitionResult":
        return cls(ok=True, submission=submission, side_effects=list(side_effects or []))

    @classmethod
    def refused(cls, submission: Submission, error: WorkflowError) -> "TransitionResult":
        return cls(ok=False, submission=submission, error=error)
