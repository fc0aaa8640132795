from datetime import date
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from supplier_onboarding.contracts.enums import (
    EmploymentStatus,
    Ir35Determination,
    ReviewDecision,
    ReviewerRole,
    SupplierClassification,
)


class _DecisionPayloadBase(BaseModel):
    decision: ReviewDecision | None = None
    signer: str = Field(default="", description="Full name used as the reviewer's digital signature.")
    signature_date: date | None = None
    rationale: str = ""
    rejection_reason: str = ""


class PbpDecision(_DecisionPayloadBase):
    role: Literal[ReviewerRole.PBP] = ReviewerRole.PBP


class ProcurementDecision(_DecisionPayloadBase):
    role: Literal[ReviewerRole.PROCUREMENT] = ReviewerRole.PROCUREMENT
    supplier_classification: SupplierClassification | None = None


class SdsTrackingInput(BaseModel):
    issued: bool = False
    issued_date: date | None = None
    response_received: bool = False
    response_date: date | None = None


class OpwDecision(_DecisionPayloadBase):
    """OPW panel determination.

    The panel answers exactly one of ``employment_status`` (personal-service sole
    traders) or ``ir35_determination`` (intermediaries); the branch is derived from
    the requester's answers, not chosen by the reviewer.
    """

    role: Literal[ReviewerRole.OPW] = ReviewerRole.OPW
    employment_status: EmploymentStatus | None = None
    ir35_determination: Ir35Determination | None = None
    contract_required: bool | None = None
    sds: SdsTrackingInput | None = None


class ContractDecision(_DecisionPayloadBase):
    role: Literal[ReviewerRole.CONTRACT_DRAFTER] = ReviewerRole.CONTRACT_DRAFTER
    signed_agreement_reference: str = ""


class ApControlDecision(_DecisionPayloadBase):
    role: Literal[ReviewerRole.AP_CONTROL] = ReviewerRole.AP_CONTROL
    bank_details_verified: bool = False
    company_details_verified: bool = False
    vat_verified: bool = False
    cis_verified: bool = False
    insurance_verified: bool = False
    supplier_number: str = ""


DecisionPayload = Annotated[
    PbpDecision | ProcurementDecision | OpwDecision | ContractDecision | ApControlDecision,
    Field(discriminator="role"),
]

_decision_adapter: TypeAdapter[DecisionPayload] = TypeAdapter(DecisionPayload)


def parse_decision_payload(role: ReviewerRole, body: dict[str, Any]) -> DecisionPayload:
    """Validate a raw decision body for ``role``; raises pydantic ``ValidationError``."""
    return _decision_adapter.validate_python({**body, "role": role})
