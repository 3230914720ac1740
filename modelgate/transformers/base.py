"""Base types for provider transformers.

This module defines the pieces every transformer chain is built from:
- TransformerSpec: Named / NamedWithConfig, one unresolved chain step
- WireRequest / RequestConfig: the provider-specific outbound request
- UnifiedResponse: a response travelling back through the chain
- Transformer: base class exposing the three chain hooks
"""

from __future__ import annotations

import copy
import dataclasses
import json
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, Union

import httpx

if TYPE_CHECKING:
    from modelgate.core.provider.models import Provider

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class Named:
    """Chain step referring to a transformer by name only."""

    name: str


@dataclasses.dataclass(frozen=True, slots=True)
class NamedWithConfig:
    """Chain step referring to a transformer by name, with instance configuration."""

    name: str
    config: dict[str, Any] = dataclasses.field(default_factory=dict)


TransformerSpec = Union[Named, NamedWithConfig]


@dataclasses.dataclass(frozen=True)
class RequestConfig:
    """Transport parameters produced by a transformer.

    Attributes:
        url: Target URL. None leaves the URL chosen by an earlier step (or the
            provider base URL) in place.
        headers: Headers to set. A value of None removes that header, including
            the default bearer header added by the dispatcher.
    """

    url: str | None = None
    headers: dict[str, str | None] = dataclasses.field(default_factory=dict)

    def merged_with(self, other: RequestConfig) -> RequestConfig:
        """Overlay another config on this one; the other config wins per field."""
        return RequestConfig(
            url=other.url if other.url is not None else self.url,
            headers={**self.headers, **other.headers},
        )

    def resolve_headers(self, defaults: dict[str, str]) -> dict[str, str]:
        """Apply these headers over ``defaults`` and drop removed ones."""
        merged: dict[str, str | None] = {**defaults, **self.headers}
        return {name: value for name, value in merged.items() if value is not None}


@dataclasses.dataclass(frozen=True)
class WireRequest:
    """Provider-specific request payload plus transport parameters."""

    body: dict[str, Any]
    config: RequestConfig = dataclasses.field(default_factory=RequestConfig)


async def _iter_upstream_lines(response: httpx.Response) -> AsyncIterator[str]:
    """Yield upstream lines, closing the response however iteration ends.

    Each line keeps its line terminator so a chain without transformers can
    relay the stream to the client unchanged.
    """
    try:
        async for line in response.aiter_lines():
            yield line + "\n"
    finally:
        await response.aclose()


@dataclasses.dataclass(frozen=True)
class UnifiedResponse:
    """A response on its way back from the provider to the client.

    Exactly one of ``body`` (non-streaming) or ``stream`` (streaming) is set.
    ``stream`` is a lazy, single-use async iterator of newline-terminated lines; closing it with
    ``aclose()`` releases the underlying upstream connection.
    """

    status_code: int
    headers: dict[str, str] = dataclasses.field(default_factory=dict)
    body: dict[str, Any] | None = None
    stream: AsyncIterator[str] | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def is_stream(self) -> bool:
        return self.stream is not None

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    @classmethod
    def from_httpx(cls, response: httpx.Response, *, stream: bool = False) -> UnifiedResponse:
        """Wrap a raw upstream response.

        Args:
            response: The upstream response. For streaming requests it must not
                have been read yet.
            stream: Whether the request asked for a streaming response.
        """
        headers = {"content-type": response.headers.get("content-type", "")}
        if stream and response.status_code < 400:
            return cls(
                status_code=response.status_code,
                headers=headers,
                stream=_iter_upstream_lines(response),
            )

        # Error responses of streaming calls must be read by the caller first.
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = {"error": {"message": response.text}}
        if not isinstance(body, dict):
            body = {"data": body}
        return cls(status_code=response.status_code, headers=headers, body=body)


class Transformer:
    """Base class for provider adapters.

    Subclasses override the hooks they need; the defaults pass data through
    unchanged. Hooks must not mutate their inputs.
    """

    name: str = ""
    end_point: str | None = None

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config: dict[str, Any] = dict(config or {})
        self.logger = logging.getLogger(f"{__name__}.{type(self).__name__}")

    def transform_request_in(self, request: dict[str, Any], provider: Provider) -> WireRequest:
        """Build the provider-specific request from a unified request."""
        return WireRequest(body=copy.deepcopy(request))

    def transform_request_out(self, request: dict[str, Any]) -> dict[str, Any]:
        """Convert a provider-native request back toward the unified shape."""
        return copy.deepcopy(request)

    def transform_response_out(self, response: UnifiedResponse) -> UnifiedResponse:
        """Convert a provider response into the unified response shape."""
        return response

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
