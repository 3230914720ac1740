"""Gemini transformer.

Adapts unified chat requests to the Gemini ``generateContent`` API.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin

from modelgate.transformers import gemini_util
from modelgate.transformers.base import RequestConfig, Transformer, UnifiedResponse, WireRequest

if TYPE_CHECKING:
    from modelgate.core.provider.models import Provider


class GeminiTransformer(Transformer):
    """Speaks the Gemini REST API.

    The credential is the first key on the provider handed in by the caller;
    key selection happens in the registry, not here. The key travels in the
    ``x-goog-api-key`` header and the default bearer header is removed.
    """

    name = "gemini"
    end_point = "/v1beta/models/:modelAndAction"

    def transform_request_in(self, request: dict[str, Any], provider: Provider) -> WireRequest:
        api_key = provider.api_keys[0]
        action = "streamGenerateContent?alt=sse" if request.get("stream") else "generateContent"
        return WireRequest(
            body=gemini_util.build_request_body(request),
            config=RequestConfig(
                url=urljoin(provider.base_url, f"./{request['model']}:{action}"),
                headers={
                    "x-goog-api-key": api_key,
                    "Authorization": None,
                },
            ),
        )

    def transform_request_out(self, request: dict[str, Any]) -> dict[str, Any]:
        return gemini_util.transform_request_out(request)

    def transform_response_out(self, response: UnifiedResponse) -> UnifiedResponse:
        return gemini_util.transform_response_out(response, self.name)
