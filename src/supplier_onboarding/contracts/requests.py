from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from supplier_onboarding.contracts.enums import ContractExchangeKind
from supplier_onboarding.contracts.submission import DocumentDescriptor, SubmissionSummary


class _VersionedRequest(BaseModel):
    expected_version: int | None = Field(
        default=None,
        description="Reject the request with 409 unless the stored snapshot has this version.",
    )


class CreateSubmissionRequest(BaseModel):
    submitted_by: str = Field(min_length=1)
    requester_fields: dict[str, Any] = Field(default_factory=dict)
    documents: dict[str, DocumentDescriptor] = Field(default_factory=dict)
    alemba_reference: str | None = None


class UpdateRequesterFieldsRequest(_VersionedRequest):
    requester_fields: dict[str, Any] = Field(default_factory=dict)
    documents: dict[str, DocumentDescriptor] = Field(default_factory=dict)


class SubmitRequest(_VersionedRequest):
    acknowledged: bool = False


class ReviewRequest(_VersionedRequest):
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Role-specific decision payload (decision, signer, signature_date, ...).",
    )


class InformationResponseRequest(_VersionedRequest):
    message: str
    requester_fields: dict[str, Any] = Field(default_factory=dict)
    documents: dict[str, DocumentDescriptor] = Field(default_factory=dict)


class ContractExchangeRequest(_VersionedRequest):
    kind: ContractExchangeKind
    message: str
    author: str


class SdsResponseRequest(_VersionedRequest):
    response_date: date


class SupplierMatchRequest(BaseModel):
    supplier_name: str
    include_watchlist: bool = True


class EnvelopeResponse(BaseModel):
    correlation_id: str
    contract_version: str
    data: dict[str, Any]


class SubmissionIndexResponse(BaseModel):
    correlation_id: str
    contract_version: str
    items: list[SubmissionSummary]
