from fastapi import APIRouter

from supplier_onboarding.contracts.requests import EnvelopeResponse, SupplierMatchRequest
from supplier_onboarding.middleware.correlation import correlation_id_var
from supplier_onboarding.routers.submissions import build_submission_service

router = APIRouter(prefix="/api/v1", tags=["matching"])


@router.post(
    "/supplier-matches",
    response_model=EnvelopeResponse,
    summary="Preview Duplicate And Watchlist Matches",
    description=(
        "Scores a proposed supplier name against submitted suppliers and the "
        "prior-rejection watchlist without changing any submission."
    ),
)
async def preview_supplier_matches(request: SupplierMatchRequest) -> EnvelopeResponse:
    service = build_submission_service()
    return await service.preview_matches(
        request.supplier_name,
        include_watchlist=request.include_watchlist,
        correlation_id=correlation_id_var.get(),
    )
