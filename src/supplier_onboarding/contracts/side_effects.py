from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from supplier_onboarding.contracts.enums import Department


class NotificationType(StrEnum):
    NEW_SUBMISSION = "NEW_SUBMISSION"
    PBP_APPROVED = "PBP_APPROVED"
    REQUESTER_RESPONDED = "REQUESTER_RESPONDED"
    PROCUREMENT_APPROVED = "PROCUREMENT_APPROVED"
    OPW_REVIEW_REQUIRED = "OPW_REVIEW_REQUIRED"
    CONTRACT_REQUESTED = "CONTRACT_REQUESTED"
    CONTRACT_EXCHANGE = "CONTRACT_EXCHANGE"
    AP_VERIFICATION_REQUIRED = "AP_VERIFICATION_REQUIRED"
    PAYROLL_SETUP_REQUIRED = "PAYROLL_SETUP_REQUIRED"
    SDS_RESPONSE_RECEIVED = "SDS_RESPONSE_RECEIVED"
    DUPLICATE_SUPPLIER_FLAG = "DUPLICATE_SUPPLIER_FLAG"
    WATCHLIST_MATCH = "WATCHLIST_MATCH"
    CONFLICT_OF_INTEREST = "CONFLICT_OF_INTEREST"


class RequesterOutcome(StrEnum):
    INFO_REQUIRED = "info_required"
    CONTRACT_ACTION_REQUIRED = "contract_action_required"
    REJECTED = "rejected"
    COMPLETED = "completed"


class NotifyRequester(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["notify_requester"] = "notify_requester"
    submission_id: str
    outcome: RequesterOutcome
    reason: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


class NotifyDepartment(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["notify_department"] = "notify_department"
    submission_id: str
    department: Department
    notification_type: NotificationType
    payload: dict[str, Any] = Field(default_factory=dict)


class CloseExternalTicket(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["close_external_ticket"] = "close_external_ticket"
    submission_id: str
    reference: str
    outcome: str
    summary: str


SideEffect = Annotated[
    NotifyRequester | NotifyDepartment | CloseExternalTicket,
    Field(discriminator="type"),
]
