import asyncio

import httpx
import pytest

from conftest import limited_company_documents, limited_company_fields
from supplier_onboarding.clients.http_resilience import RetryPolicy
from supplier_onboarding.clients.side_effect_client import SideEffectClient
from supplier_onboarding.config import Settings
from supplier_onboarding.contracts.enums import ReviewerRole, SubmissionStatus
from supplier_onboarding.services.submission_repository import InMemorySubmissionRepository
from supplier_onboarding.services.submission_service import (
    SubmissionNotFound,
    SubmissionRequestError,
    SubmissionService,
    VersionConflict,
)

SIGNED = {"signer": "Dana Okafor", "signature_date": "2026-03-02"}


class _RecordingAsyncClient:
    posts: list[dict] = []
    status_code = 202

    def __init__(self, timeout: float):
        _ = timeout

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url, headers=None, json=None):
        _RecordingAsyncClient.posts.append({"url": url, "headers": headers, "json": json})
        return httpx.Response(
            _RecordingAsyncClient.status_code,
            json={"accepted": True},
            request=httpx.Request("POST", url),
        )


@pytest.fixture
def recording_client(monkeypatch):
    _RecordingAsyncClient.posts = []
    _RecordingAsyncClient.status_code = 202
    monkeypatch.setattr("httpx.AsyncClient", _RecordingAsyncClient)
    return _RecordingAsyncClient


def _service(repository=None, webhook_url="http://notify.local/events", **overrides) -> SubmissionService:
    settings = Settings(**overrides)
    return SubmissionService(
        repository=repository or InMemorySubmissionRepository(),
        side_effect_client=SideEffectClient(
            webhook_url=webhook_url, policy=RetryPolicy(max_retries=0, backoff_seconds=0.0)
        ),
        settings=settings,
    )


async def _create(service: SubmissionService, **field_overrides) -> str:
    envelope = await service.create_draft(
        submitted_by="priya.shah@nhs.net",
        requester_fields=limited_company_fields(**field_overrides),
        documents=limited_company_documents(),
        alemba_reference="ALM-1",
        correlation_id="corr_1",
    )
    return envelope.data["id"]


async def _submit(service: SubmissionService, submission_id: str):
    return await service.submit(submission_id, True, expected_version=None, correlation_id="corr_1")


async def _review(service, submission_id, role, expected_version=None, **payload):
    return await service.review(
        submission_id, role, {**SIGNED, **payload}, expected_version=expected_version, correlation_id="corr_1"
    )


@pytest.mark.asyncio
async def test_submit_dispatches_side_effects_after_save(recording_client):
    service = _service()
    submission_id = await _create(service)

    envelope = await _submit(service, submission_id)

    assert envelope.data["status"] == SubmissionStatus.PENDING_PBP
    assert envelope.data["version"] == 1
    assert envelope.data["dispatch"][0]["delivered"] is True
    assert recording_client.posts[0]["json"]["notification_type"] == "NEW_SUBMISSION"
    assert recording_client.posts[0]["headers"]["X-Correlation-Id"] == "corr_1"


@pytest.mark.asyncio
async def test_dispatch_failure_is_not_rolled_back(recording_client):
    recording_client.status_code = 500
    service = _service()
    submission_id = await _create(service)

    envelope = await _submit(service, submission_id)
    stored = await service.get_submission(submission_id, correlation_id="corr_2")

    assert envelope.data["dispatch"][0]["delivered"] is False
    assert stored.data["status"] == SubmissionStatus.PENDING_PBP


@pytest.mark.asyncio
async def test_side_effects_are_logged_without_webhook():
    service = _service(webhook_url=None)
    submission_id = await _create(service)

    envelope = await _submit(service, submission_id)

    assert all(item["detail"] == "logged" for item in envelope.data["dispatch"])


@pytest.mark.asyncio
async def test_refused_transition_raises_with_missing_list():
    service = _service(webhook_url=None)
    submission_id = await _create(service, crn="")

    with pytest.raises(SubmissionRequestError) as exc_info:
        await _submit(service, submission_id)

    assert exc_info.value.status_code == 422
    assert exc_info.value.error_code == "SUBMISSION_INCOMPLETE"
    assert exc_info.value.missing == ["Company Registration Number"]


@pytest.mark.asyncio
async def test_unknown_submission_is_not_found():
    with pytest.raises(SubmissionNotFound) as exc_info:
        await _service().get_submission("SUP-missing", correlation_id="corr_1")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_stale_expected_version_is_a_conflict():
    service = _service(webhook_url=None)
    submission_id = await _create(service)
    await _submit(service, submission_id)

    with pytest.raises(VersionConflict):
        await _review(service, submission_id, ReviewerRole.PBP, expected_version=0, decision="approved")


@pytest.mark.asyncio
async def test_concurrent_reviews_are_serialized():
    service = _service(webhook_url=None)
    submission_id = await _create(service)
    await _submit(service, submission_id)

    results = await asyncio.gather(
        _review(service, submission_id, ReviewerRole.PBP, expected_version=1, decision="approved"),
        _review(
            service,
            submission_id,
            ReviewerRole.PBP,
            expected_version=1,
            decision="rejected",
            rejection_reason="No budget",
        ),
        return_exceptions=True,
    )

    assert sum(1 for result in results if isinstance(result, VersionConflict)) == 1
    stored = await service.get_submission(submission_id, correlation_id="corr_1")
    assert stored.data["version"] == 2
    assert len(stored.data["reviews"]) == 1


@pytest.mark.asyncio
async def test_terminal_submission_is_a_conflict():
    service = _service(webhook_url=None)
    submission_id = await _create(service)
    await _submit(service, submission_id)
    await _review(service, submission_id, ReviewerRole.PBP, decision="rejected", rejection_reason="No budget")

    with pytest.raises(SubmissionRequestError) as exc_info:
        await _review(service, submission_id, ReviewerRole.PBP, decision="approved")

    assert exc_info.value.status_code == 409
    assert exc_info.value.error_code == "SUBMISSION_TERMINAL"


@pytest.mark.asyncio
async def test_invalid_decision_payload_is_rejected():
    service = _service(webhook_url=None)
    submission_id = await _create(service)
    await _submit(service, submission_id)

    with pytest.raises(SubmissionRequestError) as exc_info:
        await _review(service, submission_id, ReviewerRole.PBP, decision="maybe")

    assert exc_info.value.error_code == "INVALID_DECISION_PAYLOAD"


@pytest.mark.asyncio
async def test_banking_fields_are_redacted_once_terminal():
    repository = InMemorySubmissionRepository()
    service = _service(repository=repository, webhook_url=None)
    submission_id = await _create(service)
    await _submit(service, submission_id)

    assert repository.get(submission_id).requester_fields["sortCode"] == "12-34-56"

    await _review(service, submission_id, ReviewerRole.PBP, decision="rejected", rejection_reason="No budget")
    stored = repository.get(submission_id)

    for key in ("sortCode", "accountNumber"):
        assert key not in stored.requester_fields
    assert stored.requester_fields["companyName"] == "Acme Health Ltd"


@pytest.mark.asyncio
async def test_index_tracks_every_transition():
    repository = InMemorySubmissionRepository()
    service = _service(repository=repository, webhook_url=None)
    first = await _create(service)
    second = await _create(service, companyName="Zenith Labs Ltd")
    await _submit(service, first)

    index = await service.list_submissions(correlation_id="corr_1")

    assert [item.id for item in index.items] == [first, second]
    assert index.items[0].status == SubmissionStatus.PENDING_PBP
    assert index.items[1].status == SubmissionStatus.DRAFT
    assert "requester_fields" not in index.items[0].model_dump()


@pytest.mark.asyncio
async def test_duplicate_corpus_and_watchlist_come_from_other_submissions():
    service = _service(webhook_url=None, supplier_watchlist=["Shadow Medical Supplies"])
    existing = await _create(service)
    await _submit(service, existing)
    rejected = await _create(service, companyName="Blacklisted Logistics Ltd")
    await _submit(service, rejected)
    await _review(service, rejected, ReviewerRole.PBP, decision="rejected", rejection_reason="Fraud")

    duplicate = await _create(service, companyName="ACME HEALTH")
    envelope = await _submit(service, duplicate)
    report = envelope.data["duplicate_report"]
    assert report["duplicate_matches"][0]["reference"] == existing

    preview = await service.preview_matches("Blacklisted Logistics", True, correlation_id="corr_1")
    assert preview.data["watchlist"]["flagged"] is True
    assert preview.data["flagged"] is True

    configured = await service.preview_matches("Shadow Medical Supply", True, correlation_id="corr_1")
    assert configured.data["watchlist"]["matches"][0]["matched_name"] == "Shadow Medical Supplies"


@pytest.mark.asyncio
async def test_completeness_scope_errors_are_bad_requests():
    service = _service(webhook_url=None)
    submission_id = await _create(service)

    report = await service.get_completeness(submission_id, "section 3", correlation_id="corr_1")
    assert report.data["missing"] == []

    with pytest.raises(SubmissionRequestError) as exc_info:
        await service.get_completeness(submission_id, "section 12", correlation_id="corr_1")
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_banking_fields_are_redacted_once_routed_to_payroll():
    repository = InMemorySubmissionRepository()
    service = _service(repository=repository, webhook_url=None)
    submission_id = await _create(service)
    await _submit(service, submission_id)
    await _review(service, submission_id, ReviewerRole.PBP, decision="approved")
    await _review(
        service,
        submission_id,
        ReviewerRole.PROCUREMENT,
        decision="approved",
        supplier_classification="opw_ir35",
    )

    envelope = await _review(
        service,
        submission_id,
        ReviewerRole.OPW,
        ir35_determination="inside",
        rationale="Client controls working hours",
        sds={"issued": True, "issued_date": "2026-03-02"},
    )
    stored = repository.get(submission_id)

    assert stored.status == SubmissionStatus.SDS_ISSUED_AWAITING_RESPONSE
    for key in ("sortCode", "accountNumber"):
        assert key not in stored.requester_fields
        assert key not in envelope.data["requester_fields"]


@pytest.mark.asyncio
async def test_transition_on_unknown_submission_leaves_no_lock_behind():
    repository = InMemorySubmissionRepository()
    service = _service(repository=repository, webhook_url=None)

    with pytest.raises(SubmissionNotFound):
        await _submit(service, "SUP-UNKNOWN")
    with pytest.raises(SubmissionNotFound):
        await _review(service, "SUP-UNKNOWN", ReviewerRole.PBP, decision="approved")

    assert repository._locks == {}
