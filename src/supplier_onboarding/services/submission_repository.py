import asyncio
from typing import Any

from supplier_onboarding.contracts.enums import TERMINAL_STATUSES, OutcomeRoute
from supplier_onboarding.contracts.submission import Submission, SubmissionSummary
from supplier_onboarding.services.completeness_service import SENSITIVE_BANKING_FIELDS


def redact_for_storage(submission: Submission) -> Submission:
    """Drop banking details once a submission can no longer reach AP Control."""
    reaches_ap = (
        submission.status not in TERMINAL_STATUSES
        and submission.outcome_route != OutcomeRoute.PAYROLL_ESR
    )
    if reaches_ap:
        return submission
    if not any(key in submission.requester_fields for key in SENSITIVE_BANKING_FIELDS):
        return submission
    fields = {
        key: value
        for key, value in submission.requester_fields.items()
        if key not in SENSITIVE_BANKING_FIELDS
    }
    return submission.model_copy(update={"requester_fields": fields})


def summarize(submission: Submission) -> SubmissionSummary:
    return SubmissionSummary(
        id=submission.id,
        status=submission.status,
        stage=submission.stage,
        submitted_by=submission.submitted_by,
        submission_date=submission.submission_date,
    )


class InMemorySubmissionRepository:
    """Snapshot store keyed by submission id, with an ordered summary index.

    Records are held as flat JSON-compatible dicts so nothing outside the
    repository can mutate a stored snapshot.
    """

    def __init__(self):
        self._records: dict[str, dict[str, Any]] = {}
        self._index: dict[str, SubmissionSummary] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, submission_id: str) -> asyncio.Lock:
        return self._locks.setdefault(submission_id, asyncio.Lock())

    def get(self, submission_id: str) -> Submission | None:
        record = self._records.get(submission_id)
        if record is None:
            return None
        return Submission.model_validate(record)

    def save(self, submission: Submission) -> Submission:
        stored = redact_for_storage(submission)
        self._records[stored.id] = stored.model_dump(mode="json")
        self._index[stored.id] = summarize(stored)
        return stored

    def list_summaries(self) -> list[SubmissionSummary]:
        return list(self._index.values())

    def list_submissions(self) -> list[Submission]:
        return [Submission.model_validate(record) for record in self._records.values()]

    def clear(self) -> None:
        self._records.clear()
        self._index.clear()
        self._locks.clear()


default_repository = InMemorySubmissionRepository()
