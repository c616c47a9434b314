from typing import Any, Optional

import httpx
from loguru import logger

from src.config import settings
from src.core.exceptions import RemoteCallError, ResponseStatus
from src.core.resilience import (
    CircuitBreakerRegistry,
    Deadline,
    RetryPolicy,
    circuit_breakers,
    default_retry_policy,
)


def _status_from_envelope(body: Any, fallback: ResponseStatus) -> ResponseStatus:
    if isinstance(body, dict) and body.get("responseStatus"):
        try:
            return ResponseStatus(body["responseStatus"])
        except ValueError:
            pass
    return fallback


class ServiceClient:
    """JSON client for one peer service.

    Every call goes through the retry policy and the circuit breaker of its
    call site (``<service>.<operation>``) and honours an optional deadline.
    """

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.Client] = None,
        retry_policy: Optional[RetryPolicy] = None,
        breakers: Optional[CircuitBreakerRegistry] = None,
        call_timeout: float = settings.REMOTE_CALL_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.http = http_client or httpx.Client()
        self.retry_policy = retry_policy or default_retry_policy()
        self.breakers = breakers or circuit_breakers
        self.call_timeout = call_timeout

    def call(
        self,
        operation: str,
        method: str,
        path: str,
        deadline: Optional[Deadline] = None,
        **kwargs,
    ) -> dict:
        """Perform a resilient request and return the decoded success envelope"""
        name = f"{self.service_name}.{operation}"
        breaker = self.breakers.get(name)

        def attempt() -> dict:
            timeout = deadline.timeout_for(self.call_timeout) if deadline else self.call_timeout
            return self._send(name, method, path, timeout, **kwargs)

        return self.retry_policy.run(name, attempt, breaker=breaker, deadline=deadline)

    def _send(self, name: str, method: str, path: str, timeout: float, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(method, url, timeout=timeout, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("{} timed out after {:.2f}s", name, timeout)
            raise RemoteCallError(
                ResponseStatus.SERVICE_UNAVAILABLE, f"{name} timed out: {e}", retryable=True
            )
        except httpx.HTTPError as e:
            logger.warning("{} transport error: {}", name, e)
            raise RemoteCallError(
                ResponseStatus.SERVICE_UNAVAILABLE, f"{name} unreachable: {e}", retryable=True
            )

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 500:
            raise RemoteCallError(
                _status_from_envelope(body, ResponseStatus.SERVICE_UNAVAILABLE),
                self._message(body, f"{name} answered {response.status_code}"),
                retryable=True,
                http_status=response.status_code,
            )
        if response.status_code >= 400:
            raise RemoteCallError(
                _status_from_envelope(body, ResponseStatus.INVALID_DATA),
                self._message(body, f"{name} rejected the request ({response.status_code})"),
                retryable=False,
                http_status=response.status_code,
            )
        if not isinstance(body, dict):
            raise RemoteCallError(
                ResponseStatus.SERVICE_UNAVAILABLE, f"{name} returned a malformed envelope", retryable=True
            )
        if body.get("status") is False:
            raise RemoteCallError(
                _status_from_envelope(body, ResponseStatus.INTERNAL_ERROR),
                self._message(body, f"{name} failed"),
                retryable=False,
                http_status=response.status_code,
            )
        return body

    @staticmethod
    def _message(body: Any, fallback: str) -> str:
        if isinstance(body, dict) and body.get("message"):
            return body["message"]
        return fallback

    def close(self) -> None:
        self.http.close()
