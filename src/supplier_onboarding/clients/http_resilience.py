import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    timeout_seconds: float = 3.0
    max_retries: int = 2
    backoff_seconds: float = 0.2
    retry_status_codes: frozenset[int] = Field(default_factory=lambda: frozenset({502, 503, 504}))

    def delay(self, attempt: int) -> float:
        return self.backoff_seconds * (2**attempt)


def _response_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        payload = {"detail": response.text}
    if isinstance(payload, dict):
        return payload
    return {"detail": payload}


async def request_with_retry(
    *,
    url: str,
    policy: RetryPolicy,
    headers: dict[str, str] | None = None,
    json_body: dict[str, Any] | None = None,
) -> tuple[int, dict[str, Any]]:
    """POST one request, retrying network failures and retryable status codes.

    Returns ``(status_code, payload)``; exhausted network retries surface as 503.
    """
    for attempt in range(policy.max_retries + 1):
        try:
            async with httpx.AsyncClient(timeout=policy.timeout_seconds) as client:
                response = await client.post(url, headers=headers, json=json_body)

            if response.status_code in policy.retry_status_codes and attempt < policy.max_retries:
                logger.warning(
                    "Retrying outbound request",
                    extra={"url": url, "status_code": response.status_code, "attempt": attempt + 1},
                )
                await asyncio.sleep(policy.delay(attempt))
                continue
            return response.status_code, _response_payload(response)
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            if attempt >= policy.max_retries:
                return 503, {"detail": f"upstream communication failure: {exc.__class__.__name__}"}
            logger.warning(
                "Retrying outbound request after %s",
                exc.__class__.__name__,
                extra={"url": url, "attempt": attempt + 1},
            )
            await asyncio.sleep(policy.delay(attempt))

    return 503, {"detail": "upstream communication failure: exhausted retries"}
