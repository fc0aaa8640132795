import logging

from pydantic import BaseModel, ConfigDict

from supplier_onboarding.clients.http_resilience import RetryPolicy, request_with_retry
from supplier_onboarding.contracts.side_effects import SideEffect

logger = logging.getLogger(__name__)


class DispatchOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    submission_id: str
    delivered: bool
    status_code: int | None = None
    detail: str | None = None


class SideEffectClient:
    """Delivers side-effect requests to the notification/ticketing webhook.

    Without a configured webhook the requests are only logged.
    """

    def __init__(self, webhook_url: str | None, policy: RetryPolicy):
        self._webhook_url = webhook_url.rstrip("/") if webhook_url else None
        self._policy = policy

    async def dispatch(
        self,
        side_effects: list[SideEffect],
        headers: dict[str, str],
    ) -> list[DispatchOutcome]:
        outcomes: list[DispatchOutcome] = []
        for effect in side_effects:
            outcomes.append(await self._dispatch_one(effect, headers))
        return outcomes

    async def _dispatch_one(self, effect: SideEffect, headers: dict[str, str]) -> DispatchOutcome:
        if self._webhook_url is None:
            logger.info(
                "Side effect requested",
                extra={"submission_id": effect.submission_id, "side_effect": effect.type},
            )
            return DispatchOutcome(
                type=effect.type, submission_id=effect.submission_id, delivered=False, detail="logged"
            )

        status_code, payload = await request_with_retry(
            url=self._webhook_url,
            policy=self._policy,
            headers=headers,
            json_body=effect.model_dump(mode="json"),
        )
        if status_code >= 400:
            logger.error(
                "Side effect delivery failed",
                extra={
                    "submission_id": effect.submission_id,
                    "side_effect": effect.type,
                    "status_code": status_code,
                },
            )
            return DispatchOutcome(
                type=effect.type,
                submission_id=effect.submission_id,
                delivered=False,
                status_code=status_code,
                detail=str(payload.get("detail", "")),
            )
        return DispatchOutcome(
            type=effect.type,
            submission_id=effect.submission_id,
            delivered=True,
            status_code=status_code,
        )
