from datetime import date

from pydantic import BaseModel, ConfigDict

from supplier_onboarding.contracts.submission import SdsTracking

SDS_RESPONSE_WINDOW_DAYS = 14
SDS_ESCALATION_WINDOW_DAYS = 45


class SdsWindowFlags(BaseModel):
    """Display facts for an issued Status Determination Statement.

    The windows are advisory; nothing in the workflow blocks or escalates on them.
    """

    model_config = ConfigDict(frozen=True)

    days_elapsed: int | None = None
    response_window_days: int = SDS_RESPONSE_WINDOW_DAYS
    escalation_window_days: int = SDS_ESCALATION_WINDOW_DAYS
    response_window_passed: bool = False
    escalation_window_passed: bool = False
    awaiting_response: bool = False


def sds_days_elapsed(tracking: SdsTracking | None, today: date) -> int | None:
    if tracking is None or not tracking.issued or tracking.issued_date is None:
        return None
    until = tracking.response_date if tracking.response_received and tracking.response_date else today
    return max(0, (until - tracking.issued_date).days)


def sds_window_flags(
    tracking: SdsTracking | None,
    today: date,
    response_window_days: int = SDS_RESPONSE_WINDOW_DAYS,
    escalation_window_days: int = SDS_ESCALATION_WINDOW_DAYS,
) -> SdsWindowFlags:
    elapsed = sds_days_elapsed(tracking, today)
    if elapsed is None:
        return SdsWindowFlags(
            response_window_days=response_window_days,
            escalation_window_days=escalation_window_days,
        )
    awaiting = not tracking.response_received
    return SdsWindowFlags(
        days_elapsed=elapsed,
        response_window_days=response_window_days,
        escalation_window_days=escalation_window_days,
        response_window_passed=awaiting and elapsed > response_window_days,
        escalation_window_passed=awaiting and elapsed > escalation_window_days,
        awaiting_response=awaiting,
    )
