import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from supplier_onboarding.clients.side_effect_client import SideEffectClient
from supplier_onboarding.config import Settings
from supplier_onboarding.contracts.decisions import parse_decision_payload
from supplier_onboarding.contracts.enums import (
    ContractExchangeKind,
    ReviewerRole,
    SubmissionStatus,
)
from supplier_onboarding.contracts.matching import DuplicateCheckReport, KnownSupplier
from supplier_onboarding.contracts.requests import EnvelopeResponse, SubmissionIndexResponse
from supplier_onboarding.contracts.submission import DocumentDescriptor, Submission
from supplier_onboarding.contracts.workflow import TransitionResult, WorkflowErrorKind
from supplier_onboarding.middleware.correlation import propagation_headers
from supplier_onboarding.services import completeness_service, name_matching_service
from supplier_onboarding.services import workflow_service
from supplier_onboarding.services.review_handlers import AgreementTemplates, default_handlers
from supplier_onboarding.services.sds_tracking import sds_window_flags
from supplier_onboarding.services.submission_repository import InMemorySubmissionRepository

logger = logging.getLogger(__name__)

_STATUS_FOR_ERROR_KIND = {
    WorkflowErrorKind.VALIDATION_ERROR: 422,
    WorkflowErrorKind.GUARD_VIOLATION: 422,
    WorkflowErrorKind.TERMINAL_STATE_VIOLATION: 409,
    WorkflowErrorKind.INTEGRITY_ERROR: 409,
}


class SubmissionRequestError(Exception):
    def __init__(
        self,
        status_code: int,
        error_code: str,
        detail: str,
        missing: list[str] | None = None,
    ):
        super().__init__(detail)
        self.status_code = status_code
        self.error_code = error_code
        self.detail = detail
        self.missing = list(missing or [])


class SubmissionNotFound(SubmissionRequestError):
    def __init__(self, submission_id: str):
        super().__init__(404, "SUBMISSION_NOT_FOUND", f"submission {submission_id} not found")


class VersionConflict(SubmissionRequestError):
    def __init__(self, submission_id: str, expected: int, actual: int):
        super().__init__(
            409,
            "VERSION_CONFLICT",
            f"submission {submission_id} is at version {actual}, expected {expected}",
        )


class SubmissionService:
    def __init__(
        self,
        repository: InMemorySubmissionRepository,
        side_effect_client: SideEffectClient,
        settings: Settings,
    ):
        self._repository = repository
        self._side_effect_client = side_effect_client
        self._settings = settings
        self._email_domains = tuple(settings.allowed_requester_email_domains)
        self._handlers = default_handlers(
            allowed_email_domains=self._email_domains,
            templates=AgreementTemplates(
                sole_trader=settings.sole_trader_agreement_template,
                consultancy=settings.consultancy_agreement_template,
            ),
        )
        self._thresholds = workflow_service.MatchThresholds(
            duplicate=settings.duplicate_match_threshold,
            watchlist=settings.watchlist_match_threshold,
            notify_pbp=settings.high_similarity_threshold,
        )

    async def create_draft(
        self,
        submitted_by: str,
        requester_fields: dict[str, Any],
        documents: dict[str, DocumentDescriptor],
        alemba_reference: str | None,
        correlation_id: str,
    ) -> EnvelopeResponse:
        draft = workflow_service.new_draft(
            requester_fields=requester_fields,
            documents=documents,
            submitted_by=submitted_by,
            alemba_reference=alemba_reference,
        )
        stored = self._repository.save(draft)
        logger.info("Submission draft created", extra={"submission_id": stored.id})
        return self._envelope(correlation_id, self._submission_view(stored))

    async def get_submission(self, submission_id: str, correlation_id: str) -> EnvelopeResponse:
        submission = self._load(submission_id)
        return self._envelope(correlation_id, self._submission_view(submission))

    async def list_submissions(self, correlation_id: str) -> SubmissionIndexResponse:
        return SubmissionIndexResponse(
            correlation_id=correlation_id,
            contract_version=self._settings.contract_version,
            items=self._repository.list_summaries(),
        )

    async def get_completeness(
        self, submission_id: str, scope: str, correlation_id: str
    ) -> EnvelopeResponse:
        submission = self._load(submission_id)
        try:
            report = completeness_service.completeness_report(
                scope,
                submission.requester_fields,
                submission.documents,
                allowed_email_domains=self._email_domains,
            )
        except ValueError as exc:
            raise SubmissionRequestError(400, "INVALID_SCOPE", str(exc)) from exc
        return self._envelope(correlation_id, report.model_dump(mode="json"))

    async def update_requester_fields(
        self,
        submission_id: str,
        requester_fields: dict[str, Any],
        documents: dict[str, DocumentDescriptor],
        expected_version: int | None,
        correlation_id: str,
    ) -> EnvelopeResponse:
        return await self._transition(
            submission_id,
            expected_version,
            correlation_id,
            lambda submission: workflow_service.update_draft(
                submission, requester_fields, documents
            ),
        )

    async def submit(
        self,
        submission_id: str,
        acknowledged: bool,
        expected_version: int | None,
        correlation_id: str,
    ) -> EnvelopeResponse:
        def _submit(submission: Submission) -> TransitionResult:
            known, watchlist = self._matching_corpora(exclude_id=submission.id)
            return workflow_service.submit(
                submission,
                acknowledged=acknowledged,
                known_suppliers=known,
                watchlist=watchlist,
                now=datetime.now(),
                thresholds=self._thresholds,
                allowed_email_domains=self._email_domains,
            )

        return await self._transition(submission_id, expected_version, correlation_id, _submit)

    async def review(
        self,
        submission_id: str,
        role: ReviewerRole,
        body: dict[str, Any],
        expected_version: int | None,
        correlation_id: str,
    ) -> EnvelopeResponse:
        try:
            payload = parse_decision_payload(role, body)
        except ValidationError as exc:
            raise SubmissionRequestError(
                422, "INVALID_DECISION_PAYLOAD", f"invalid {role} decision payload: {exc}"
            ) from exc

        return await self._transition(
            submission_id,
            expected_version,
            correlation_id,
            lambda submission: workflow_service.apply_review(
                submission, role, payload, now=datetime.now(), handlers=self._handlers
            ),
        )

    async def respond_to_information_request(
        self,
        submission_id: str,
        message: str,
        requester_fields: dict[str, Any],
        documents: dict[str, DocumentDescriptor],
        expected_version: int | None,
        correlation_id: str,
    ) -> EnvelopeResponse:
        return await self._transition(
            submission_id,
            expected_version,
            correlation_id,
            lambda submission: workflow_service.respond_to_information_request(
                submission,
                message,
                requester_fields,
                documents,
                now=datetime.now(),
                allowed_email_domains=self._email_domains,
            ),
        )

    async def record_contract_exchange(
        self,
        submission_id: str,
        kind: ContractExchangeKind,
        message: str,
        author: str,
        expected_version: int | None,
        correlation_id: str,
    ) -> EnvelopeResponse:
        return await self._transition(
            submission_id,
            expected_version,
            correlation_id,
            lambda submission: workflow_service.record_contract_exchange(
                submission, kind, message, author, now=datetime.now()
            ),
        )

    async def record_sds_response(
        self,
        submission_id: str,
        response_date: date,
        expected_version: int | None,
        correlation_id: str,
    ) -> EnvelopeResponse:
        return await self._transition(
            submission_id,
            expected_version,
            correlation_id,
            lambda submission: workflow_service.record_sds_response(
                submission, response_date, now=datetime.now()
            ),
        )

    async def preview_matches(
        self, supplier_name: str, include_watchlist: bool, correlation_id: str
    ) -> EnvelopeResponse:
        known, watchlist = self._matching_corpora(exclude_id=None)
        report = DuplicateCheckReport(
            supplier_name=supplier_name,
            duplicate_matches=name_matching_service.find_matches(
                supplier_name, known, threshold=self._thresholds.duplicate
            ),
        )
        if include_watchlist:
            report = report.model_copy(
                update={
                    "watchlist": name_matching_service.check_watchlist(
                        supplier_name, watchlist, threshold=self._thresholds.watchlist
                    )
                }
            )
        data = report.model_dump(mode="json")
        data["flagged"] = report.flagged
        return self._envelope(correlation_id, data)

    async def _transition(
        self,
        submission_id: str,
        expected_version: int | None,
        correlation_id: str,
        apply: Callable[[Submission], TransitionResult],
    ) -> EnvelopeResponse:
        self._load(submission_id)
        async with self._repository.lock_for(submission_id):
            submission = self._load(submission_id)
            if expected_version is not None and expected_version != submission.version:
                raise VersionConflict(submission_id, expected_version, submission.version)
            result = apply(submission)
            self._raise_for_refusal(result)
            stored = self._repository.save(result.submission)

        dispatched = await self._dispatch(result, correlation_id)
        data = self._submission_view(stored)
        data["side_effects"] = [effect.model_dump(mode="json") for effect in result.side_effects]
        data["dispatch"] = dispatched
        return self._envelope(correlation_id, data)

    async def _dispatch(self, result: TransitionResult, correlation_id: str) -> list[dict[str, Any]]:
        if not result.side_effects:
            return []
        try:
            outcomes = await self._side_effect_client.dispatch(
                result.side_effects, headers=propagation_headers(correlation_id)
            )
        except Exception:
            logger.exception(
                "Side effect dispatch failed", extra={"submission_id": result.submission.id}
            )
            return []
        return [outcome.model_dump() for outcome in outcomes]

    def _load(self, submission_id: str) -> Submission:
        submission = self._repository.get(submission_id)
        if submission is None:
            raise SubmissionNotFound(submission_id)
        return submission

    def _matching_corpora(
        self, exclude_id: str | None
    ) -> tuple[list[KnownSupplier], list[KnownSupplier]]:
        known: list[KnownSupplier] = []
        watchlist = [KnownSupplier(name=name) for name in self._settings.supplier_watchlist]
        for submission in self._repository.list_submissions():
            name = workflow_service.company_name(submission)
            if not name or submission.id == exclude_id:
                continue
            if submission.status == SubmissionStatus.REJECTED:
                watchlist.append(KnownSupplier(name=name, reference=submission.id))
            elif submission.status != SubmissionStatus.DRAFT:
                known.append(
                    KnownSupplier(name=name, reference=submission.supplier_number or submission.id)
                )
        return known, watchlist

    def _submission_view(self, submission: Submission) -> dict[str, Any]:
        view = submission.model_dump(mode="json")
        view["next_stage"] = str(workflow_service.required_next_stage(submission))
        view["sds_window"] = sds_window_flags(
            submission.sds_tracking,
            date.today(),
            response_window_days=self._settings.sds_response_window_days,
            escalation_window_days=self._settings.sds_escalation_window_days,
        ).model_dump()
        return view

    def _raise_for_refusal(self, result: TransitionResult) -> None:
        if result.ok or result.error is None:
            return
        error = result.error
        raise SubmissionRequestError(
            status_code=_STATUS_FOR_ERROR_KIND[error.kind],
            error_code=error.code,
            detail=error.message,
            missing=error.missing,
        )

    def _envelope(self, correlation_id: str, data: dict[str, Any]) -> EnvelopeResponse:
        return EnvelopeResponse(
            correlation_id=correlation_id,
            contract_version=self._settings.contract_version,
            data=data,
        )
