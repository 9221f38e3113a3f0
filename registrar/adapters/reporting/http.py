"""
HTTP registration reporter - logs terminal attempts to the registrar API.

Subscribed to the registration workflow, it posts confirmed
registrations to POST /v1/registrations and failures to
POST /v1/failures so the admin dashboard can aggregate them.
Reporting problems are logged and never change an attempt's outcome.
"""

import logging

import httpx

from registrar.domain.registration import StepChanged, WorkflowStep

logger = logging.getLogger(__name__)


class HttpRegistrationReporter:
    """Workflow observer that reports terminal attempts over HTTP."""

    def __init__(self, base_url: str, timeout: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __call__(self, event: StepChanged) -> None:
        if event.step == WorkflowStep.SUCCEEDED:
            await self._post("/v1/registrations", self._registration_payload(event))
        elif event.step == WorkflowStep.FAILED:
            await self._post("/v1/failures", self._failure_payload(event))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: dict) -> None:
        try:
            response = await self._client.post(f"{self.base_url}{path}", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to report %s to %s: %s", payload.get("domain_name"), path, e)

    @staticmethod
    def _registration_payload(event: StepChanged) -> dict:
        attempt = event.attempt
        result = attempt.result
        quote = attempt.quote
        return {
            "domain_name": attempt.name,
            "user_public_key": attempt.public_address,
            "signature": result.signature,
            "network": result.network.value,
            "status": "confirmed",
            "amount_paid": str(result.cost),
            "platform_fee": str(quote.base) if quote is not None else str(result.cost),
            "payment_method": result.payment_method,
        }

    @staticmethod
    def _failure_payload(event: StepChanged) -> dict:
        attempt = event.attempt
        error = attempt.error
        return {
            "domain_name": attempt.name,
            "user_public_key": attempt.public_address,
            "network": attempt.network.value if attempt.network is not None else None,
            "error_type": error.kind.value,
            "error_message": error.message,
        }
