from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from modelgate import __version__
from modelgate.api.endpoints import router as api_router
from modelgate.api.services.dispatcher import RequestDispatcher
from modelgate.core.config import Config
from modelgate.core.provider.provider_registry import ProviderRegistry


def create_app(
    config: Config | None = None,
    registry: ProviderRegistry | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings to use; defaults to the module-level config.
        registry: Provider registry; defaults to the config's lazily loaded one.
        http_client: Upstream client; when omitted one is created for the
            lifetime of the app.
    """
    if config is None:
        from modelgate.core.config import config as default_config

        config = default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned_client = http_client is None
        client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout, connect=config.connect_timeout)
        )
        app.state.dispatcher = RequestDispatcher(
            app.state.registry, client, max_attempts=config.max_key_attempts
        )
        try:
            yield
        finally:
            if owned_client:
                await client.aclose()

    app = FastAPI(title="modelgate", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.registry = registry if registry is not None else config.provider_registry
    app.include_router(api_router)
    return app


def main() -> None:
    import uvicorn

    from modelgate.core.config import config
    from modelgate.core.logging import configure_root_logging

    log_level = configure_root_logging(config.log_level)
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=log_level.lower(),
    )


if __name__ == "__main__":
    main()
