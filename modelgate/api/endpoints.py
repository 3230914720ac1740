import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from modelgate.api.services.dispatcher import RequestDispatcher
from modelgate.api.services.error_handling import ErrorResponseBuilder
from modelgate.core.errors import NoKeysAvailable, UnknownProvider, UpstreamError
from modelgate.core.provider.provider_registry import ProviderRegistry
from modelgate.models.unified import UnifiedChatRequest

logger = logging.getLogger(__name__)

router = APIRouter()


async def validate_api_key(
    request: Request,
    x_api_key: str | None = Header(None),
    authorization: str | None = Header(None),
) -> None:
    """Validate the client's key from the x-api-key or Authorization header."""
    client_api_key = x_api_key
    if not client_api_key and authorization and authorization.startswith("Bearer "):
        client_api_key = authorization[len("Bearer ") :]

    if not request.app.state.config.validate_client_api_key(client_api_key):
        logger.warning("Invalid API key provided by client")
        raise HTTPException(status_code=401, detail="Invalid API key")


def _registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry


def _dispatcher(request: Request) -> RequestDispatcher:
    return request.app.state.dispatcher


@router.get("/v1/models")
async def list_models(
    http_request: Request, _: None = Depends(validate_api_key)
) -> dict[str, Any]:
    return _registry(http_request).get_available_models()


@router.post("/v1/chat/completions")
async def create_chat_completion(
    request: UnifiedChatRequest, http_request: Request, _: None = Depends(validate_api_key)
) -> Response:
    request_id = str(uuid.uuid4())
    resolution = _registry(http_request).resolve_model_route(request.model)
    if resolution is None:
        logger.info(f"No route for model '{request.model}'", extra={"correlation_id": request_id})
        return ErrorResponseBuilder.model_not_found(request.model)

    try:
        result = await _dispatcher(http_request).dispatch(resolution, request, request_id)
    except UnknownProvider:
        # Provider deleted between resolution and dispatch
        return ErrorResponseBuilder.model_not_found(request.model)
    except UpstreamError as e:
        logger.error(str(e), extra={"correlation_id": request_id})
        return ErrorResponseBuilder.upstream_error(e, context=f"calling '{e.provider_name}'")
    except NoKeysAvailable as e:
        logger.error(str(e), extra={"correlation_id": request_id})
        return ErrorResponseBuilder.internal_error(str(e), error_type="no_keys_available")

    headers = {"x-modelgate-provider": resolution.provider.name}
    if result.stream is not None:
        return StreamingResponse(
            result.stream,
            status_code=result.status_code,
            media_type="text/event-stream",
            headers={**headers, "Cache-Control": "no-cache"},
        )
    return JSONResponse(status_code=result.status_code, content=result.body, headers=headers)
