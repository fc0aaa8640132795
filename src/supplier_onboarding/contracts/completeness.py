from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SectionStatus = Literal["complete", "incomplete", "pending"]


class Requirement(BaseModel):
    """One unmet mandatory requirement, in the order the validator reports it."""

    model_config = ConfigDict(frozen=True)

    section: int
    field: str = Field(description="requesterFields key or documents key the requirement is about.")
    message: str = Field(description="Human-readable descriptor shown to the requester.")
    document: bool = False


class CompletenessReport(BaseModel):
    scope: str
    missing: list[str] = Field(default_factory=list)
    details: list[Requirement] = Field(default_factory=list)
    can_submit: bool
