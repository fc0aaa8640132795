from fastapi import APIRouter, Query, status

from supplier_onboarding.clients.http_resilience import RetryPolicy
from supplier_onboarding.clients.side_effect_client import SideEffectClient
from supplier_onboarding.config import settings
from supplier_onboarding.contracts.enums import ReviewerRole
from supplier_onboarding.contracts.requests import (
    ContractExchangeRequest,
    CreateSubmissionRequest,
    EnvelopeResponse,
    InformationResponseRequest,
    ReviewRequest,
    SdsResponseRequest,
    SubmissionIndexResponse,
    SubmitRequest,
    UpdateRequesterFieldsRequest,
)
from supplier_onboarding.middleware.correlation import correlation_id_var
from supplier_onboarding.services.submission_repository import default_repository
from supplier_onboarding.services.submission_service import SubmissionService

router = APIRouter(prefix="/api/v1/submissions", tags=["submissions"])


def build_submission_service() -> SubmissionService:
    return SubmissionService(
        repository=default_repository,
        side_effect_client=SideEffectClient(
            webhook_url=settings.side_effect_webhook_url,
            policy=RetryPolicy(
                timeout_seconds=settings.upstream_timeout_seconds,
                max_retries=settings.upstream_max_retries,
                backoff_seconds=settings.upstream_retry_backoff_seconds,
            ),
        ),
        settings=settings,
    )


@router.post(
    "",
    response_model=EnvelopeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Draft Submission",
    description="Creates a Draft submission from the requester's current answers.",
)
async def create_submission(request: CreateSubmissionRequest) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.create_draft(
        submitted_by=request.submitted_by,
        requester_fields=request.requester_fields,
        documents=request.documents,
        alemba_reference=request.alemba_reference,
        correlation_id=correlation_id_var.get(),
    )


@router.get(
    "",
    response_model=SubmissionIndexResponse,
    summary="Submission Index",
    description="Lists submission summaries in creation order. Never includes requester answers.",
)
async def list_submissions() -> SubmissionIndexResponse:
    service = build_submission_service()
    return await service.list_submissions(correlation_id=correlation_id_var.get())


@router.get(
    "/{submission_id}",
    response_model=EnvelopeResponse,
    summary="Get Submission",
)
async def get_submission(submission_id: str) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.get_submission(submission_id, correlation_id=correlation_id_var.get())


@router.put(
    "/{submission_id}/requester-fields",
    response_model=EnvelopeResponse,
    summary="Update Requester Answers",
    description="Merges answers and documents while the submission is a Draft or awaiting the requester.",
)
async def update_requester_fields(
    submission_id: str, request: UpdateRequesterFieldsRequest
) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.update_requester_fields(
        submission_id,
        requester_fields=request.requester_fields,
        documents=request.documents,
        expected_version=request.expected_version,
        correlation_id=correlation_id_var.get(),
    )


@router.get(
    "/{submission_id}/completeness",
    response_model=EnvelopeResponse,
    summary="Completeness Check",
    description="Returns the ordered list of unmet requirements for a section (1-7) or 'all'.",
)
async def get_completeness(
    submission_id: str, scope: str = Query(default="all")
) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.get_completeness(
        submission_id, scope=scope, correlation_id=correlation_id_var.get()
    )


@router.post(
    "/{submission_id}/submit",
    response_model=EnvelopeResponse,
    summary="Submit For Review",
    description="Moves a complete, acknowledged Draft to PendingPBP and runs the duplicate check.",
)
async def submit_submission(submission_id: str, request: SubmitRequest) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.submit(
        submission_id,
        acknowledged=request.acknowledged,
        expected_version=request.expected_version,
        correlation_id=correlation_id_var.get(),
    )


@router.post(
    "/{submission_id}/reviews/{role}",
    response_model=EnvelopeResponse,
    summary="Record Review Decision",
    description="Applies a reviewer's decision payload for the stage the submission is in.",
)
async def record_review(
    submission_id: str, role: ReviewerRole, request: ReviewRequest
) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.review(
        submission_id,
        role=role,
        body=request.payload,
        expected_version=request.expected_version,
        correlation_id=correlation_id_var.get(),
    )


@router.post(
    "/{submission_id}/information-responses",
    response_model=EnvelopeResponse,
    summary="Respond To Information Request",
)
async def respond_to_information_request(
    submission_id: str, request: InformationResponseRequest
) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.respond_to_information_request(
        submission_id,
        message=request.message,
        requester_fields=request.requester_fields,
        documents=request.documents,
        expected_version=request.expected_version,
        correlation_id=correlation_id_var.get(),
    )


@router.post(
    "/{submission_id}/contract-exchanges",
    response_model=EnvelopeResponse,
    summary="Record Contract Negotiation Exchange",
)
async def record_contract_exchange(
    submission_id: str, request: ContractExchangeRequest
) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.record_contract_exchange(
        submission_id,
        kind=request.kind,
        message=request.message,
        author=request.author,
        expected_version=request.expected_version,
        correlation_id=correlation_id_var.get(),
    )


@router.post(
    "/{submission_id}/sds-response",
    response_model=EnvelopeResponse,
    summary="Record SDS Response",
    description="Completes an inside-IR35 submission once the worker responds to the SDS.",
)
async def record_sds_response(
    submission_id: str, request: SdsResponseRequest
) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.record_sds_response(
        submission_id,
        response_date=request.response_date,
        expected_version=request.expected_version,
        correlation_id=correlation_id_var.get(),
    )
