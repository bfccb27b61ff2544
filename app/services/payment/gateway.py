"""
Client for the external payment gateway's order API.

Uses synchronous httpx so it can be called from the threadpool that runs the
sync FastAPI handlers. One client is built at application startup, kept on
app.state and injected into request handlers; tests pass an
httpx.MockTransport instead of talking to the network.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from app.core.config import Settings, settings as default_settings
from app.core.errors import GatewayError

logger = logging.getLogger(__name__)


class _RetryableGatewayError(Exception):
    """Transport failure or 5xx response; worth another attempt."""


class PaymentGatewayClient:
    """Creates orders with the gateway, retrying transient failures."""

    def __init__(
        self,
        base_url: str,
        key_id: str,
        key_secret: str,
        *,
        max_retries: int = 3,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        wait: Optional[wait_base] = None,
    ):
        self.key_id = key_id
        self._client = httpx.Client(
            base_url=base_url,
            auth=(key_id, key_secret),
            timeout=timeout,
            transport=transport,
        )
        self._max_attempts = max(1, max_retries)
        self._wait = wait or wait_exponential(multiplier=0.5, min=0.5, max=5)

    @classmethod
    def from_settings(cls, config: Settings = default_settings, **kwargs: Any) -> "PaymentGatewayClient":
        return cls(
            base_url=config.PAYMENT_GATEWAY_BASE_URL,
            key_id=config.PAYMENT_GATEWAY_KEY_ID,
            key_secret=config.PAYMENT_GATEWAY_KEY_SECRET,
            max_retries=config.PAYMENT_GATEWAY_MAX_RETRIES,
            timeout=config.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
            **kwargs,
        )

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        logger.warning(
            f"Payment gateway call failed (attempt {retry_state.attempt_number}): "
            f"{retry_state.outcome.exception()}"
        )

    def _post(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        try:
            response = self._client.post(path, json=body)
        except httpx.TransportError as exc:
            raise _RetryableGatewayError(f"{type(exc).__name__}: {exc}") from exc
        if response.status_code >= 500:
            raise _RetryableGatewayError(f"Gateway returned {response.status_code}")
        return response

    def create_order(self, amount: int, currency: str, reference: str) -> str:
        """Open an order for `amount` (smallest currency unit). Returns the gateway order id."""
        body = {
            "amount": amount,
            "currency": currency,
            "receipt": reference,
            "payment_capture": 1,
        }
        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(_RetryableGatewayError),
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            response = retrying(self._post, "/orders", body)
        except _RetryableGatewayError as exc:
            logger.error(f"Payment gateway unavailable after {self._max_attempts} attempts: {exc}")
            raise GatewayError(
                "Payment service is temporarily unavailable. Please try again later."
            ) from exc

        if response.is_error:
            logger.error(
                f"Payment gateway rejected order for {reference}: "
                f"{response.status_code} {response.text[:200]}"
            )
            raise GatewayError(f"Payment gateway rejected the order ({response.status_code})")

        try:
            order_id = response.json().get("id")
        except ValueError as exc:
            raise GatewayError("Payment gateway returned an unreadable response") from exc
        if not order_id:
            raise GatewayError("Payment gateway returned no order id")

        logger.info(f"Gateway order {order_id} created for {reference} ({amount} {currency})")
        return order_id

    def close(self) -> None:
        self._client.close()
