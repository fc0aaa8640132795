"""Submission lifecycle transitions.

Every operation takes a snapshot and returns a ``TransitionResult``. Refusals carry
a ``WorkflowError`` and the untouched input snapshot; nothing here raises for a
refused transition and nothing here performs I/O. Side effects are returned as
data for the hosting layer to dispatch.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from supplier_onboarding.contracts.decisions import DecisionPayload
from supplier_onboarding.contracts.enums import (
    CLOSED_STATUSES,
    TERMINAL_STATUSES,
    ContractExchangeKind,
    Department,
    EmploymentStatus,
    Ir35Determination,
    OutcomeRoute,
    ReviewDecision,
    ReviewerRole,
    Stage,
    SubmissionStatus,
    SupplierClassification,
)
from supplier_onboarding.contracts.matching import DuplicateCheckReport, KnownSupplier
from supplier_onboarding.contracts.side_effects import (
    CloseExternalTicket,
    NotificationType,
    NotifyDepartment,
    NotifyRequester,
    RequesterOutcome,
    SideEffect,
)
from supplier_onboarding.contracts.submission import (
    ContractExchange,
    DocumentDescriptor,
    OpwReviewRecord,
    ProcurementReviewRecord,
    RequesterResponse,
    ReviewRecord,
    Submission,
)
from supplier_onboarding.contracts.workflow import TransitionResult, WorkflowError
from supplier_onboarding.services import completeness_service, name_matching_service
from supplier_onboarding.services.field_formats import as_text, is_blank
from supplier_onboarding.services.review_handlers import ReviewStageHandler, default_handlers

logger = logging.getLogger(__name__)

S = SubmissionStatus

ALLOWED_TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    S.DRAFT: frozenset({S.PENDING_PBP}),
    S.PENDING_PBP: frozenset({S.PENDING_PROCUREMENT, S.REJECTED}),
    S.PENDING_PROCUREMENT: frozenset({S.PENDING_OPW, S.PENDING_AP, S.REJECTED}),
    S.PENDING_OPW: frozenset(
        {
            S.COMPLETED_PAYROLL,
            S.SDS_ISSUED_AWAITING_RESPONSE,
            S.PENDING_CONTRACT,
            S.PENDING_AP,
            S.REJECTED,
        }
    ),
    S.PENDING_CONTRACT: frozenset({S.PENDING_AP, S.REJECTED}),
    S.PENDING_AP: frozenset({S.COMPLETED_ORACLE, S.REJECTED}),
    S.SDS_ISSUED_AWAITING_RESPONSE: frozenset({S.COMPLETED_PAYROLL}),
    S.COMPLETED_ORACLE: frozenset(),
    S.COMPLETED_PAYROLL: frozenset(),
    S.REJECTED: frozenset(),
}

REVIEWER_FOR_STATUS: dict[SubmissionStatus, ReviewerRole] = {
    S.PENDING_PBP: ReviewerRole.PBP,
    S.PENDING_PROCUREMENT: ReviewerRole.PROCUREMENT,
    S.PENDING_OPW: ReviewerRole.OPW,
    S.PENDING_CONTRACT: ReviewerRole.CONTRACT_DRAFTER,
    S.PENDING_AP: ReviewerRole.AP_CONTROL,
}

_STAGE_FOR_STATUS: dict[SubmissionStatus, Stage] = {
    S.DRAFT: Stage.REQUESTER,
    S.PENDING_PBP: Stage.PBP,
    S.PENDING_PROCUREMENT: Stage.PROCUREMENT,
    S.PENDING_OPW: Stage.OPW,
    S.PENDING_CONTRACT: Stage.CONTRACT_DRAFTER,
    S.PENDING_AP: Stage.AP_CONTROL,
    S.SDS_ISSUED_AWAITING_RESPONSE: Stage.OPW,
    S.COMPLETED_ORACLE: Stage.CLOSED,
    S.COMPLETED_PAYROLL: Stage.CLOSED,
    S.REJECTED: Stage.CLOSED,
}

_PAYROLL_FORBIDDEN = frozenset({S.PENDING_CONTRACT, S.PENDING_AP})


class MatchThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    duplicate: int = name_matching_service.DUPLICATE_MATCH_THRESHOLD
    watchlist: int = name_matching_service.WATCHLIST_MATCH_THRESHOLD
    notify_pbp: int = name_matching_service.HIGH_SIMILARITY_THRESHOLD


class _Route(BaseModel):
    status: SubmissionStatus
    outcome_route: OutcomeRoute | None = None
    awaiting_requester: bool = False
    side_effects: list[SideEffect] = Field(default_factory=list)


def stage_for(status: SubmissionStatus, awaiting_requester: bool = False) -> Stage:
    if status == S.PENDING_PBP and awaiting_requester:
        return Stage.REQUESTER
    return _STAGE_FOR_STATUS[status]


def is_awaiting_requester(submission: Submission) -> bool:
    return submission.status == S.PENDING_PBP and submission.stage == Stage.REQUESTER


def required_next_stage(submission: Submission) -> Stage:
    return stage_for(submission.status, is_awaiting_requester(submission))


def _accept(
    previous: Submission,
    side_effects: list[SideEffect] | None = None,
    **updates: Any,
) -> TransitionResult:
    updated = previous.model_copy(update={**updates, "version": previous.version + 1})
    logger.info(
        "Submission transition accepted",
        extra={
            "submission_id": previous.id,
            "from_status": str(previous.status),
            "to_status": str(updated.status),
            "version": updated.version,
        },
    )
    return TransitionResult.accepted(updated, side_effects)


def _refuse(submission: Submission, error: WorkflowError) -> TransitionResult:
    logger.warning(
        "Submission transition refused",
        extra={
            "submission_id": submission.id,
            "status": str(submission.status),
            "error_code": error.code,
            "error_kind": str(error.kind),
        },
    )
    return TransitionResult.refused(submission, error)


def _merge_documents(
    current: Mapping[str, DocumentDescriptor],
    updates: Mapping[str, DocumentDescriptor | Mapping[str, Any]] | None,
) -> dict[str, DocumentDescriptor]:
    merged = dict(current)
    for key, descriptor in (updates or {}).items():
        if isinstance(descriptor, DocumentDescriptor):
            merged[key] = descriptor
        else:
            merged[key] = DocumentDescriptor.model_validate(descriptor)
    return merged


def _requester_closed(submission: Submission) -> WorkflowError | None:
    if submission.status in CLOSED_STATUSES:
        return WorkflowError.terminal(submission.status)
    return None


def _close_ticket(submission: Submission, outcome: str, summary: str) -> list[SideEffect]:
    if not submission.alemba_reference:
        return []
    return [
        CloseExternalTicket(
            submission_id=submission.id,
            reference=submission.alemba_reference,
            outcome=outcome,
            summary=summary,
        )
    ]


def _notify(
    submission: Submission,
    department: Department,
    notification_type: NotificationType,
    **payload: Any,
) -> NotifyDepartment:
    return NotifyDepartment(
        submission_id=submission.id,
        department=department,
        notification_type=notification_type,
        payload={"company_name": company_name(submission), **payload},
    )


def company_name(submission: Submission) -> str:
    return as_text(submission.requester_fields.get("companyName"))


def new_draft(
    requester_fields: Mapping[str, Any] | None = None,
    documents: Mapping[str, DocumentDescriptor | Mapping[str, Any]] | None = None,
    submitted_by: str = "",
    alemba_reference: str | None = None,
    submission_id: str | None = None,
    now: datetime | None = None,
) -> Submission:
    return Submission(
        id=submission_id or f"SUP-{uuid4().hex[:12].upper()}",
        requester_fields=dict(requester_fields or {}),
        documents=_merge_documents({}, documents),
        submitted_by=submitted_by,
        alemba_reference=alemba_reference,
        created_at=now or datetime.now(),
    )


def update_draft(
    submission: Submission,
    requester_fields: Mapping[str, Any] | None = None,
    documents: Mapping[str, DocumentDescriptor | Mapping[str, Any]] | None = None,
) -> TransitionResult:
    error = _requester_closed(submission)
    if error is not None:
        return _refuse(submission, error)
    if submission.status != S.DRAFT and not is_awaiting_requester(submission):
        return _refuse(
            submission,
            WorkflowError.guard(
                "REQUESTER_FIELDS_LOCKED",
                "requester answers are read-only once review has begun",
            ),
        )
    return _accept(
        submission,
        requester_fields={**submission.requester_fields, **(requester_fields or {})},
        documents=_merge_documents(submission.documents, documents),
    )


def check_duplicates(
    submission: Submission,
    known_suppliers: Iterable[KnownSupplier | str],
    watchlist: Iterable[KnownSupplier | str],
    thresholds: MatchThresholds | None = None,
) -> DuplicateCheckReport:
    thresholds = thresholds or MatchThresholds()
    name = company_name(submission)
    return DuplicateCheckReport(
        supplier_name=name,
        duplicate_matches=name_matching_service.find_matches(
            name, known_suppliers, threshold=thresholds.duplicate
        ),
        watchlist=name_matching_service.check_watchlist(
            name, watchlist, threshold=thresholds.watchlist
        ),
    )


def _submission_side_effects(
    submission: Submission,
    report: DuplicateCheckReport,
    conflict_of_interest: bool,
    thresholds: MatchThresholds,
) -> list[SideEffect]:
    effects: list[SideEffect] = [
        _notify(
            submission,
            Department.PBP,
            NotificationType.NEW_SUBMISSION,
            submitted_by=submission.submitted_by,
            duplicate_flagged=report.flagged,
            conflict_of_interest=conflict_of_interest,
        )
    ]

    for match in report.duplicate_matches:
        details = {
            "matched_name": match.matched_name,
            "similarity": match.similarity,
            "flag_reason": str(match.flag_reason),
            "reference": match.reference,
        }
        effects.append(
            _notify(submission, Department.ADMIN, NotificationType.DUPLICATE_SUPPLIER_FLAG, **details)
        )
        if match.similarity >= thresholds.notify_pbp:
            effects.append(
                _notify(submission, Department.PBP, NotificationType.DUPLICATE_SUPPLIER_FLAG, **details)
            )

    if report.watchlist.flagged:
        effects.append(
            _notify(
                submission,
                Department.ADMIN,
                NotificationType.WATCHLIST_MATCH,
                highest_similarity=report.watchlist.highest_similarity,
                matched_names=[match.matched_name for match in report.watchlist.matches],
            )
        )

    if conflict_of_interest:
        for department in (Department.ADMIN, Department.PBP):
            effects.append(
                _notify(
                    submission,
                    department,
                    NotificationType.CONFLICT_OF_INTEREST,
                    submitted_by=submission.submitted_by,
                    connection_details=as_text(
                        submission.requester_fields.get("connectionDetails")
                    ),
                )
            )
    return effects


def submit(
    submission: Submission,
    acknowledged: bool,
    known_suppliers: Iterable[KnownSupplier | str] = (),
    watchlist: Iterable[KnownSupplier | str] = (),
    now: datetime | None = None,
    thresholds: MatchThresholds | None = None,
    allowed_email_domains: tuple[str, ...] | None = None,
) -> TransitionResult:
    now = now or datetime.now()
    thresholds = thresholds or MatchThresholds()

    if submission.status in TERMINAL_STATUSES:
        return _refuse(submission, WorkflowError.terminal(submission.status))
    if submission.status != S.DRAFT:
        return _refuse(
            submission,
            WorkflowError.integrity("ALREADY_SUBMITTED", "submission has already been submitted"),
        )
    if not acknowledged:
        return _refuse(
            submission,
            WorkflowError.guard(
                "ACKNOWLEDGEMENT_REQUIRED", "the final acknowledgement must be accepted"
            ),
        )

    missing = completeness_service.missing_requirements(
        completeness_service.ALL_SCOPE,
        submission.requester_fields,
        submission.documents,
        today=now.date(),
        allowed_email_domains=allowed_email_domains,
    )
    if missing:
        return _refuse(submission, WorkflowError.validation("submission is incomplete", missing))

    report = check_duplicates(submission, known_suppliers, watchlist, thresholds)
    conflict = as_text(submission.requester_fields.get("supplierConnection")).lower() == "yes"
    return _accept(
        submission,
        _submission_side_effects(submission, report, conflict, thresholds),
        status=S.PENDING_PBP,
        stage=stage_for(S.PENDING_PBP),
        duplicate_report=report,
        conflict_of_interest=conflict,
        submission_date=now,
    )


def _rejection_route(submission: Submission, record: ReviewRecord) -> _Route:
    reason = record.rejection_reason
    return _Route(
        status=S.REJECTED,
        side_effects=[
            NotifyRequester(
                submission_id=submission.id,
                outcome=RequesterOutcome.REJECTED,
                reason=reason,
                payload={"rejected_by": str(record.role), "signer": record.signer},
            ),
            *_close_ticket(submission, "rejected", f"Rejected by {record.role}: {reason}"),
        ],
    )


def _to_ap_route(
    submission: Submission, notification_type: NotificationType, **payload: Any
) -> _Route:
    return _Route(
        status=S.PENDING_AP,
        outcome_route=OutcomeRoute.ORACLE_AP,
        side_effects=[_notify(submission, Department.AP_CONTROL, notification_type, **payload)],
    )


def _payroll_completion_route(submission: Submission, record: OpwReviewRecord) -> _Route:
    determination = record.employment_status or record.ir35_determination
    return _Route(
        status=S.COMPLETED_PAYROLL,
        outcome_route=OutcomeRoute.PAYROLL_ESR,
        side_effects=[
            _notify(
                submission,
                Department.PAYROLL,
                NotificationType.PAYROLL_SETUP_REQUIRED,
                worker_classification=str(record.worker_classification),
                determination=str(determination),
            ),
            NotifyRequester(
                submission_id=submission.id,
                outcome=RequesterOutcome.COMPLETED,
                payload={"outcome_route": str(OutcomeRoute.PAYROLL_ESR)},
            ),
            *_close_ticket(submission, "completed", "Routed to payroll (ESR)"),
        ],
    )


def _route_pbp(submission: Submission, record: ReviewRecord) -> _Route:
    if record.decision == ReviewDecision.INFO_REQUIRED:
        return _Route(
            status=S.PENDING_PBP,
            awaiting_requester=True,
            side_effects=[
                NotifyRequester(
                    submission_id=submission.id,
                    outcome=RequesterOutcome.INFO_REQUIRED,
                    reason=record.rationale,
                )
            ],
        )
    return _Route(
        status=S.PENDING_PROCUREMENT,
        side_effects=[
            _notify(submission, Department.PROCUREMENT, NotificationType.PBP_APPROVED)
        ],
    )


def _route_procurement(submission: Submission, record: ProcurementReviewRecord) -> _Route:
    if record.supplier_classification == SupplierClassification.OPW_IR35:
        return _Route(
            status=S.PENDING_OPW,
            side_effects=[
                _notify(submission, Department.OPW, NotificationType.OPW_REVIEW_REQUIRED)
            ],
        )
    return _to_ap_route(
        submission,
        NotificationType.PROCUREMENT_APPROVED,
        supplier_classification=str(record.supplier_classification),
    )


def _route_opw(submission: Submission, record: OpwReviewRecord) -> _Route:
    if record.employment_status == EmploymentStatus.EMPLOYED:
        return _payroll_completion_route(submission, record)

    if record.ir35_determination == Ir35Determination.INSIDE:
        sds = record.sds_tracking
        if sds is not None and sds.issued and not sds.response_received:
            return _Route(
                status=S.SDS_ISSUED_AWAITING_RESPONSE,
                outcome_route=OutcomeRoute.PAYROLL_ESR,
                side_effects=[
                    _notify(
                        submission,
                        Department.PAYROLL,
                        NotificationType.PAYROLL_SETUP_REQUIRED,
                        worker_classification=str(record.worker_classification),
                        determination=str(record.ir35_determination),
                        sds_issued_date=sds.issued_date.isoformat() if sds.issued_date else None,
                    )
                ],
            )
        return _payroll_completion_route(submission, record)

    if record.contract_required:
        return _Route(
            status=S.PENDING_CONTRACT,
            outcome_route=OutcomeRoute.ORACLE_AP,
            side_effects=[
                _notify(
                    submission,
                    Department.CONTRACT_DRAFTER,
                    NotificationType.CONTRACT_REQUESTED,
                    worker_classification=str(record.worker_classification),
                    agreement_template=record.agreement_template,
                ),
                NotifyRequester(
                    submission_id=submission.id,
                    outcome=RequesterOutcome.CONTRACT_ACTION_REQUIRED,
                    payload={"agreement_template": record.agreement_template},
                ),
            ],
        )
    return _to_ap_route(
        submission,
        NotificationType.AP_VERIFICATION_REQUIRED,
        worker_classification=str(record.worker_classification),
    )


def _route_contract(submission: Submission, record: ReviewRecord) -> _Route:
    return _to_ap_route(
        submission,
        NotificationType.AP_VERIFICATION_REQUIRED,
        signed_agreement_reference=record.signed_agreement_reference,
    )


def _route_ap_control(submission: Submission, record: ReviewRecord) -> _Route:
    return _Route(
        status=S.COMPLETED_ORACLE,
        outcome_route=OutcomeRoute.ORACLE_AP,
        side_effects=[
            NotifyRequester(
                submission_id=submission.id,
                outcome=RequesterOutcome.COMPLETED,
                payload={"supplier_number": record.supplier_number},
            ),
            *_close_ticket(
                submission, "completed", f"Supplier created with number {record.supplier_number}"
            ),
        ],
    )


_ROUTERS = {
    ReviewerRole.PBP: _route_pbp,
    ReviewerRole.PROCUREMENT: _route_procurement,
    ReviewerRole.OPW: _route_opw,
    ReviewerRole.CONTRACT_DRAFTER: _route_contract,
    ReviewerRole.AP_CONTROL: _route_ap_control,
}


def _ordering_error(submission: Submission, role: ReviewerRole) -> WorkflowError | None:
    expected = REVIEWER_FOR_STATUS.get(submission.status)
    if expected is None:
        return WorkflowError.integrity(
            "SUBMISSION_NOT_SUBMITTED", "submission has not been submitted for review"
        )
    if role != expected:
        return WorkflowError.integrity(
            "STAGE_OUT_OF_ORDER",
            f"{role} cannot review a submission in status {submission.status}",
        )
    if submission.final_review_for(role) is not None:
        return WorkflowError.integrity(
            "DUPLICATE_REVIEW_RECORD", f"a {role} review record already exists"
        )
    if is_awaiting_requester(submission):
        return WorkflowError.guard(
            "AWAITING_REQUESTER_RESPONSE",
            "the requester has not yet responded to the information request",
        )
    return None


def _route_error(submission: Submission, route: _Route) -> WorkflowError | None:
    if route.status != submission.status and route.status not in ALLOWED_TRANSITIONS[submission.status]:
        return WorkflowError.integrity(
            "ILLEGAL_TRANSITION",
            f"transition {submission.status} -> {route.status} is not allowed",
        )
    if (
        submission.outcome_route is not None
        and route.outcome_route is not None
        and route.outcome_route != submission.outcome_route
    ):
        return WorkflowError.integrity(
            "OUTCOME_ROUTE_IMMUTABLE",
            f"outcome route is already {submission.outcome_route}",
        )
    effective_route = submission.outcome_route or route.outcome_route
    if effective_route == OutcomeRoute.PAYROLL_ESR and route.status in _PAYROLL_FORBIDDEN:
        return WorkflowError.integrity(
            "PAYROLL_ROUTE_SKIPS_AP", "payroll-routed submissions never reach contract or AP"
        )
    return None


def apply_review(
    submission: Submission,
    role: ReviewerRole,
    payload: DecisionPayload,
    now: datetime | None = None,
    handlers: Mapping[ReviewerRole, ReviewStageHandler] | None = None,
) -> TransitionResult:
    now = now or datetime.now()
    role = ReviewerRole(role)

    if submission.status in CLOSED_STATUSES:
        return _refuse(submission, WorkflowError.terminal(submission.status))
    error = _ordering_error(submission, role)
    if error is not None:
        return _refuse(submission, error)

    handler = (handlers or default_handlers())[role]
    outcome = handler.review(submission, payload, now)
    if outcome.error is not None:
        return _refuse(submission, outcome.error)
    record = outcome.record

    if record.decision == ReviewDecision.REJECTED:
        route = _rejection_route(submission, record)
    else:
        route = _ROUTERS[role](submission, record)

    error = _route_error(submission, route)
    if error is not None:
        return _refuse(submission, error)

    updates: dict[str, Any] = {
        "status": route.status,
        "stage": stage_for(route.status, route.awaiting_requester),
        "reviews": (*submission.reviews, record),
        "outcome_route": submission.outcome_route or route.outcome_route,
    }
    if isinstance(record, OpwReviewRecord) and record.sds_tracking is not None:
        updates["sds_tracking"] = record.sds_tracking
    if record.role == ReviewerRole.AP_CONTROL and record.supplier_number:
        updates["supplier_number"] = record.supplier_number
    if route.status in TERMINAL_STATUSES:
        updates["completed_at"] = now
    return _accept(submission, route.side_effects, **updates)


def respond_to_information_request(
    submission: Submission,
    message: str,
    requester_fields: Mapping[str, Any] | None = None,
    documents: Mapping[str, DocumentDescriptor | Mapping[str, Any]] | None = None,
    now: datetime | None = None,
    allowed_email_domains: tuple[str, ...] | None = None,
) -> TransitionResult:
    now = now or datetime.now()
    error = _requester_closed(submission)
    if error is not None:
        return _refuse(submission, error)
    if not is_awaiting_requester(submission):
        return _refuse(
            submission,
            WorkflowError.guard(
                "NO_INFORMATION_REQUESTED", "no information request is awaiting a response"
            ),
        )
    if is_blank(message):
        return _refuse(
            submission,
            WorkflowError.guard("RESPONSE_MESSAGE_REQUIRED", "a response message is required"),
        )

    fields = {**submission.requester_fields, **(requester_fields or {})}
    merged_documents = _merge_documents(submission.documents, documents)
    missing = completeness_service.missing_requirements(
        completeness_service.ALL_SCOPE,
        fields,
        merged_documents,
        today=now.date(),
        allowed_email_domains=allowed_email_domains,
    )
    if missing:
        return _refuse(submission, WorkflowError.validation("submission is incomplete", missing))

    response = RequesterResponse(
        message=message.strip(),
        updated_fields=sorted((requester_fields or {}).keys()),
        updated_documents=sorted((documents or {}).keys()),
        responded_at=now,
    )
    return _accept(
        submission,
        [
            _notify(
                submission,
                Department.PBP,
                NotificationType.REQUESTER_RESPONDED,
                message=response.message,
                updated_fields=response.updated_fields,
            )
        ],
        requester_fields=fields,
        documents=merged_documents,
        requester_responses=(*submission.requester_responses, response),
        stage=stage_for(S.PENDING_PBP),
    )


def record_contract_exchange(
    submission: Submission,
    kind: ContractExchangeKind,
    message: str,
    author: str,
    now: datetime | None = None,
) -> TransitionResult:
    now = now or datetime.now()
    if submission.status in CLOSED_STATUSES:
        return _refuse(submission, WorkflowError.terminal(submission.status))
    if submission.status != S.PENDING_CONTRACT:
        return _refuse(
            submission,
            WorkflowError.guard(
                "CONTRACT_STAGE_REQUIRED", "contract negotiation is only open in PendingContract"
            ),
        )
    if is_blank(message) or is_blank(author):
        return _refuse(
            submission,
            WorkflowError.guard(
                "CONTRACT_EXCHANGE_INCOMPLETE", "a contract exchange needs a message and author"
            ),
        )

    kind = ContractExchangeKind(kind)
    exchange = ContractExchange(
        kind=kind, message=message.strip(), author=author.strip(), recorded_at=now
    )
    if kind == ContractExchangeKind.AGREEMENT_SENT:
        effect: SideEffect = NotifyRequester(
            submission_id=submission.id,
            outcome=RequesterOutcome.CONTRACT_ACTION_REQUIRED,
            reason=exchange.message,
        )
    else:
        effect = _notify(
            submission,
            Department.CONTRACT_DRAFTER,
            NotificationType.CONTRACT_EXCHANGE,
            kind=str(kind),
            author=exchange.author,
            message=exchange.message,
        )
    return _accept(
        submission,
        [effect],
        contract_exchanges=(*submission.contract_exchanges, exchange),
    )


def record_sds_response(
    submission: Submission,
    response_date: date,
    now: datetime | None = None,
) -> TransitionResult:
    now = now or datetime.now()
    if submission.status in TERMINAL_STATUSES:
        return _refuse(submission, WorkflowError.terminal(submission.status))
    tracking = submission.sds_tracking
    if submission.status != S.SDS_ISSUED_AWAITING_RESPONSE or tracking is None:
        return _refuse(
            submission,
            WorkflowError.guard(
                "SDS_NOT_AWAITING_RESPONSE", "no status determination statement is awaiting a response"
            ),
        )
    if tracking.issued_date is not None and response_date < tracking.issued_date:
        return _refuse(
            submission,
            WorkflowError.guard(
                "SDS_RESPONSE_BEFORE_ISSUE", "the SDS response date cannot precede the issue date"
            ),
        )

    updated_tracking = tracking.model_copy(
        update={"response_received": True, "response_date": response_date}
    )
    return _accept(
        submission,
        [
            _notify(
                submission,
                Department.PAYROLL,
                NotificationType.SDS_RESPONSE_RECEIVED,
                response_date=response_date.isoformat(),
            ),
            NotifyRequester(
                submission_id=submission.id,
                outcome=RequesterOutcome.COMPLETED,
                payload={"outcome_route": str(OutcomeRoute.PAYROLL_ESR)},
            ),
            *_close_ticket(submission, "completed", "SDS response received; routed to payroll (ESR)"),
        ],
        status=S.COMPLETED_PAYROLL,
        stage=stage_for(S.COMPLETED_PAYROLL),
        sds_tracking=updated_tracking,
        completed_at=now,
    )
