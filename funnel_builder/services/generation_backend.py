import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import ValidationError

from funnel_builder.core.config import settings
from funnel_builder.core.constants import AUTH_ERROR_MARKERS
from funnel_builder.core.exceptions import (
    AuthenticationFailureError,
    GenerationBackendError,
    GenerationTimeoutError,
)
from funnel_builder.schemas.funnel import BackendResult

logger = logging.getLogger(__name__)

_AUTH_STATUS_CODES = frozenset({401, 403})


class GenerationBackend(Protocol):
    """Anything that turns a prompt into a funnel payload."""

    async def generate(self, prompt: str, context: Dict[str, Any]) -> BackendResult:
        ...


class HttpGenerationBackend:
    """Calls a serverless generation function over HTTP.

    The function receives ``{"prompt", "context"}`` and answers with
    ``{"success": true, "funnel": {...}}`` or ``{"success": false,
    "error": "..."}``.  Authentication failures are raised as
    :class:`AuthenticationFailureError` so the orchestrator can skip
    retries; every other failure is a retryable
    :class:`GenerationBackendError` or :class:`GenerationTimeoutError`.

    Per-attempt timeouts are enforced by the orchestrator; the client
    timeout here is only a transport-level safety net.
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        extra_context: Optional[Dict[str, Any]] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport_timeout: float = 120.0,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._extra_context = extra_context or {}
        self._client = client
        self._transport_timeout = transport_timeout

    @property
    def url(self) -> str:
        return self._url

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def generate(self, prompt: str, context: Dict[str, Any]) -> BackendResult:
        payload = {"prompt": prompt, "context": {**context, **self._extra_context}}
        try:
            if self._client is not None:
                response = await self._client.post(
                    self._url, json=payload, headers=self._headers()
                )
            else:
                async with httpx.AsyncClient(timeout=self._transport_timeout) as client:
                    response = await client.post(
                        self._url, json=payload, headers=self._headers()
                    )
            response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("Generation backend timed out: %s", self._url)
            raise GenerationTimeoutError(f"Generation backend timed out: {self._url}")
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in _AUTH_STATUS_CODES:
                logger.error("Generation backend rejected credentials (%s)", status)
                raise AuthenticationFailureError(
                    f"Generation backend returned {status}: unauthorized"
                )
            logger.warning("Generation backend returned %s: %s", status, self._url)
            raise GenerationBackendError(f"Generation backend returned {status}")
        except httpx.HTTPError as exc:
            logger.warning("Generation backend unreachable: %s — %s", self._url, exc)
            raise GenerationBackendError(f"Generation backend unreachable: {exc}")

        try:
            result = BackendResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Unreadable generation payload from %s: %s", self._url, exc)
            raise GenerationBackendError("Generation backend returned an unreadable payload")

        return raise_for_result(result)


def raise_for_result(result: BackendResult) -> BackendResult:
    """Turn a ``success: false`` payload into the matching exception.

    Errors mentioning credentials become :class:`AuthenticationFailureError`;
    everything else, including a success without a funnel, is a retryable
    :class:`GenerationBackendError` carrying the backend's message.
    """
    if not result.success:
        error = result.error or "Generation failed"
        if any(marker in error.lower() for marker in AUTH_ERROR_MARKERS):
            raise AuthenticationFailureError(error)
        raise GenerationBackendError(error)

    if result.funnel is None:
        raise GenerationBackendError("Generation backend returned no funnel")

    return result


def build_primary_backend(client: Optional[httpx.AsyncClient] = None) -> HttpGenerationBackend:
    return HttpGenerationBackend(
        url=settings.GENERATION_SERVICE_URL,
        api_key=settings.GENERATION_API_KEY,
        client=client,
    )


def build_fallback_backend(client: Optional[httpx.AsyncClient] = None) -> HttpGenerationBackend:
    """Secondary, simpler generation path.

    Uses the dedicated fallback function when configured, otherwise the
    primary function in its simplified mode.
    """
    if settings.FALLBACK_GENERATION_SERVICE_URL:
        return HttpGenerationBackend(
            url=settings.FALLBACK_GENERATION_SERVICE_URL,
            api_key=settings.GENERATION_API_KEY,
            client=client,
        )
    return HttpGenerationBackend(
        url=settings.GENERATION_SERVICE_URL,
        api_key=settings.GENERATION_API_KEY,
        extra_context={"mode": "simplified"},
        client=client,
    )
