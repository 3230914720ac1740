"""Upstream dispatch with API key failover.

This module provides the RequestDispatcher, which turns a resolved route and a
unified request into an upstream call and a unified response.
"""

import logging
import uuid

import httpx

from modelgate.core.error_types import ErrorType
from modelgate.core.errors import UpstreamError
from modelgate.core.provider.models import RouteResolution
from modelgate.core.provider.provider_registry import ProviderRegistry
from modelgate.models.unified import UnifiedChatRequest
from modelgate.transformers.base import UnifiedResponse

logger = logging.getLogger(__name__)

# Statuses that may succeed with a different key
RETRYABLE_STATUS_CODES = frozenset({401, 403, 429, 500, 502, 503, 504})


class RequestDispatcher:
    """Sends unified requests to their provider, failing over between keys.

    Responsibilities:
    1. Select an API key from the provider's KeySelector
    2. Build the wire request through the model's transformer chain
    3. Issue the upstream call
    4. On a retryable failure, report the failed key index and try another key
    5. Shape the upstream response back through the chain

    Attempts are capped by ``max_attempts`` (0 = one per configured key).
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        client: httpx.AsyncClient,
        max_attempts: int = 0,
    ) -> None:
        self.registry = registry
        self.client = client
        self.max_attempts = max_attempts
        self.logger = logging.getLogger(f"{__name__}.RequestDispatcher")

    def _attempts_for(self, provider_name: str) -> int:
        key_count = self.registry.get_api_key_count(provider_name)
        if self.max_attempts > 0:
            return self.max_attempts
        return max(1, key_count)

    async def dispatch(
        self,
        resolution: RouteResolution,
        request: UnifiedChatRequest,
        request_id: str | None = None,
    ) -> UnifiedResponse:
        """Send ``request`` to the provider of ``resolution``.

        Returns:
            The unified response. When every attempt got an HTTP error, the last
            upstream error response is returned, shaped by the chain.

        Raises:
            UpstreamError: If the last attempt failed at the transport level.
            UnknownProvider: If the provider was deleted after resolution.
        """
        request_id = request_id or str(uuid.uuid4())
        log_extra = {"correlation_id": request_id}
        provider = resolution.provider
        chain = provider.transformers.for_model(resolution.target_model)
        payload = request.to_payload(model=resolution.target_model)
        stream = bool(request.stream)

        attempts = self._attempts_for(provider.name)
        exclude_index = -1
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            selected = self.registry.select_api_key(provider.name, exclude_index)
            wire = chain.transform_request_in(payload, provider.with_selected_key(selected.key))
            url = wire.config.url or provider.base_url
            headers = wire.config.resolve_headers(
                {
                    "Authorization": f"Bearer {selected.key}",
                    "Content-Type": "application/json",
                }
            )

            self.logger.debug(
                f"Attempt {attempt}/{attempts}: {provider.name} key #{selected.index} -> {url}",
                extra=log_extra,
            )
            http_request = self.client.build_request("POST", url, json=wire.body, headers=headers)

            try:
                response = await self.client.send(http_request, stream=stream)
            except httpx.TransportError as e:
                error_type = (
                    ErrorType.UPSTREAM_TIMEOUT
                    if isinstance(e, httpx.TimeoutException)
                    else ErrorType.UPSTREAM_CONNECTION_ERROR
                )
                self.logger.warning(
                    f"{provider.name} key #{selected.index} failed ({error_type.value}): {e}",
                    extra=log_extra,
                )
                last_error = e
                exclude_index = selected.index
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < attempts:
                error_type = ErrorType.from_status(response.status_code)
                self.logger.warning(
                    f"{provider.name} key #{selected.index} got HTTP {response.status_code} "
                    f"({error_type.value}), trying another key",
                    extra=log_extra,
                )
                await response.aclose()
                exclude_index = selected.index
                continue

            if stream and response.status_code >= 400:
                await response.aread()

            self.logger.info(
                f"{request.model} -> {provider.name}/{resolution.target_model} "
                f"HTTP {response.status_code}",
                extra=log_extra,
            )
            raw = UnifiedResponse.from_httpx(response, stream=stream)
            return chain.transform_response_out(raw)

        raise UpstreamError(
            provider.name,
            f"All {attempts} attempt(s) to provider '{provider.name}' failed: {last_error}",
        )
