from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from supplier_onboarding.contracts.enums import (
    ContractExchangeKind,
    EmploymentStatus,
    Ir35Determination,
    OutcomeRoute,
    ReviewDecision,
    ReviewerRole,
    Stage,
    SubmissionStatus,
    SupplierClassification,
    WorkerClassification,
)
from supplier_onboarding.contracts.matching import DuplicateCheckReport


class DocumentDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    size: int = 0
    mime_type: str = ""
    present: bool = True


class SdsTracking(BaseModel):
    model_config = ConfigDict(frozen=True)

    issued: bool = False
    issued_date: date | None = None
    response_received: bool = False
    response_date: date | None = None


class _ReviewRecordBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: ReviewDecision
    rationale: str = ""
    rejection_reason: str = ""
    signer: str
    signature_date: date
    reviewed_at: datetime


class PbpReviewRecord(_ReviewRecordBase):
    role: Literal[ReviewerRole.PBP] = ReviewerRole.PBP


class ProcurementReviewRecord(_ReviewRecordBase):
    role: Literal[ReviewerRole.PROCUREMENT] = ReviewerRole.PROCUREMENT
    supplier_classification: SupplierClassification | None = None


class OpwReviewRecord(_ReviewRecordBase):
    role: Literal[ReviewerRole.OPW] = ReviewerRole.OPW
    worker_classification: WorkerClassification
    employment_status: EmploymentStatus | None = None
    ir35_determination: Ir35Determination | None = None
    contract_required: bool | None = None
    sds_tracking: SdsTracking | None = None
    agreement_template: str | None = None


class ContractReviewRecord(_ReviewRecordBase):
    role: Literal[ReviewerRole.CONTRACT_DRAFTER] = ReviewerRole.CONTRACT_DRAFTER
    signed_agreement_reference: str | None = None


class ApControlReviewRecord(_ReviewRecordBase):
    role: Literal[ReviewerRole.AP_CONTROL] = ReviewerRole.AP_CONTROL
    bank_details_verified: bool = False
    company_details_verified: bool = False
    vat_verified: bool = False
    cis_verified: bool = False
    insurance_verified: bool = False
    supplier_number: str | None = None


ReviewRecord = Annotated[
    PbpReviewRecord
    | ProcurementReviewRecord
    | OpwReviewRecord
    | ContractReviewRecord
    | ApControlReviewRecord,
    Field(discriminator="role"),
]


class RequesterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    updated_fields: list[str] = Field(default_factory=list)
    updated_documents: list[str] = Field(default_factory=list)
    responded_at: datetime


class ContractExchange(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ContractExchangeKind
    message: str
    author: str
    recorded_at: datetime


class Submission(BaseModel):
    """Versioned snapshot of one supplier onboarding request.

    Instances are never mutated; every accepted transition returns a new snapshot
    with ``version`` incremented.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    version: int = 0
    status: SubmissionStatus = SubmissionStatus.DRAFT
    stage: Stage = Stage.REQUESTER
    outcome_route: OutcomeRoute | None = None
    requester_fields: dict[str, Any] = Field(default_factory=dict)
    documents: dict[str, DocumentDescriptor] = Field(default_factory=dict)
    reviews: tuple[ReviewRecord, ...] = ()
    requester_responses: tuple[RequesterResponse, ...] = ()
    contract_exchanges: tuple[ContractExchange, ...] = ()
    sds_tracking: SdsTracking | None = None
    duplicate_report: DuplicateCheckReport | None = None
    conflict_of_interest: bool = False
    supplier_number: str | None = None
    alemba_reference: str | None = None
    submitted_by: str = ""
    created_at: datetime
    submission_date: datetime | None = None
    completed_at: datetime | None = None

    def final_review_for(self, role: ReviewerRole) -> ReviewRecord | None:
        for record in self.reviews:
            if record.role == role and record.decision != ReviewDecision.INFO_REQUIRED:
                return record
        return None


class SubmissionSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    status: SubmissionStatus
    stage: Stage
    submitted_by: str
    submission_date: datetime | None = None
