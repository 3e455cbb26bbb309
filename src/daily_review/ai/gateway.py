"""AI provider gateway.

One request in, one complete result out. Every call is a single attempt
bounded by a timeout; failures come back as ``AiFailure`` values rather
than exceptions so callers never branch on provider-specific errors.
"""

import asyncio
import contextlib
import json
import logging
from typing import Any

import httpx

from daily_review.ai.models import (
    AiFailure,
    AiFailureKind,
    AiRequest,
    AiResult,
    AiSuccess,
)
from daily_review.ai.providers import ProtocolError, ProviderAdapter, get_adapter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
_ERROR_PREVIEW_CHARS = 300


class AiGateway:
    """Dispatches AiRequests to the matching provider adapter over HTTP."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            timeout: Seconds allowed for a whole call
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self._transport = transport

    async def complete(
        self, request: AiRequest, cancel_event: asyncio.Event | None = None
    ) -> AiResult:
        """Send ``request`` to its provider and return the normalized outcome.

        Args:
            request: Self-contained request (provider, model, key, prompt)
            cancel_event: When set before the reply arrives, the HTTP call is
                abandoned and a ``canceled`` failure is returned

        Returns:
            AiSuccess with the reply text, or AiFailure
        """
        if cancel_event is not None and cancel_event.is_set():
            return AiFailure(kind=AiFailureKind.CANCELED, message="canceled before sending")

        adapter = get_adapter(request.provider)
        logger.info(
            f"Requesting completion from {request.provider.value} model {request.model} "
            f"({len(request.prompt)} prompt chars)"
        )

        if cancel_event is None:
            return await self._dispatch(adapter, request)

        call = asyncio.ensure_future(self._dispatch(adapter, request))
        canceled = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({call, canceled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            canceled.cancel()

        if call.done():
            return call.result()

        call.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await call
        logger.info(f"Request to {request.provider.value} canceled by caller")
        return AiFailure(kind=AiFailureKind.CANCELED, message="canceled by caller")

    def complete_sync(self, request: AiRequest) -> AiResult:
        """Synchronous version of complete for non-async contexts."""
        return asyncio.run(self.complete(request))

    async def _dispatch(self, adapter: ProviderAdapter, request: AiRequest) -> AiResult:
        provider = request.provider.value
        try:
            async with asyncio.timeout(self.timeout):
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    outbound = adapter.build_request(client, request)
                    # path only: gemini carries the key in the query string
                    logger.debug(
                        f"POST {outbound.url.scheme}://{outbound.url.host}{outbound.url.path}"
                    )
                    response = await client.send(outbound)
        except (TimeoutError, httpx.TimeoutException):
            logger.error(f"{provider} request timed out after {self.timeout:.0f}s")
            return AiFailure(
                kind=AiFailureKind.TIMEOUT,
                message=f"no reply from {provider} within {self.timeout:.0f}s",
            )
        except httpx.HTTPError as e:
            logger.error(f"{provider} request failed: {type(e).__name__}")
            return AiFailure(
                kind=AiFailureKind.PROVIDER_ERROR,
                message=f"could not reach {provider}: {type(e).__name__}: {e}",
            )

        return self._interpret(adapter, request, response)

    def _interpret(
        self, adapter: ProviderAdapter, request: AiRequest, response: httpx.Response
    ) -> AiResult:
        provider = request.provider.value
        payload: Any = None
        try:
            payload = response.json()
            parsed = True
        except (json.JSONDecodeError, UnicodeDecodeError):
            parsed = False

        if not response.is_success:
            message = adapter.error_message(payload) if parsed else None
            if not message:
                message = response.text[:_ERROR_PREVIEW_CHARS].strip() or response.reason_phrase
            logger.error(f"{provider} returned HTTP {response.status_code}: {message}")
            return AiFailure(
                kind=AiFailureKind.PROVIDER_ERROR,
                message=message,
                status_code=response.status_code,
            )

        if not parsed:
            logger.error(f"{provider} returned a body that is not JSON")
            return AiFailure(
                kind=AiFailureKind.PROTOCOL_ERROR,
                message=f"{provider} reply is not valid JSON",
            )

        embedded = adapter.embedded_error(payload)
        if embedded:
            logger.error(f"{provider} reported an error: {embedded}")
            return AiFailure(
                kind=AiFailureKind.PROVIDER_ERROR,
                message=embedded,
                status_code=response.status_code,
            )

        try:
            text = adapter.parse_text(payload)
        except ProtocolError as e:
            logger.error(f"{provider} reply has an unexpected shape: {e}")
            return AiFailure(kind=AiFailureKind.PROTOCOL_ERROR, message=str(e))

        logger.info(f"Received {len(text)} chars from {provider}")
        return AiSuccess(text=text.strip())
