import logging
import shlex
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from iptv_proxy.core.config import Settings, settings as default_settings
from iptv_proxy.core.db import create_engine, create_session_factory, init_models
from iptv_proxy.core.errors import ProxyError, proxy_error_handler, validation_error_handler
from iptv_proxy.core.middleware import RateLimitMiddleware
from iptv_proxy.modules.catalog.service import InMemoryStreamCatalog, SqlStreamCatalog, StreamCatalog
from iptv_proxy.modules.extraction.process import ExtractionProcessManager
from iptv_proxy.modules.playlist.router import router as playlist_router
from iptv_proxy.modules.relay.router import router as relay_router
from iptv_proxy.modules.relay.service import RelayService
from iptv_proxy.modules.tokens.router import router as tokens_router
from iptv_proxy.modules.tokens.store import TokenStore
from iptv_proxy.modules.tokens.sweeper import TokenSweeper

logger = logging.getLogger(__name__)

def create_app(
    settings: Optional[Settings] = None,
    catalog: Optional[StreamCatalog] = None,
    token_store: Optional[TokenStore] = None,
    process_manager: Optional[ExtractionProcessManager] = None,
    http_client: Optional[httpx.AsyncClient] = None
) -> FastAPI:
    """
    Builds the application. Shared objects are created once here and kept on
    app.state; pass any of them in to replace the defaults.
    """
    if settings is None:
        settings = default_settings

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_PREFIX}/openapi.json"
    )

    engine = None
    if catalog is None:
        if settings.CATALOG_BACKEND == "sql":
            engine = create_engine(settings.DATABASE_URL)
            catalog = SqlStreamCatalog(create_session_factory(engine))
        else:
            catalog = InMemoryStreamCatalog()

    # An empty TokenStore is falsy (__len__), so test against None
    if token_store is None:
        token_store = TokenStore()
    if process_manager is None:
        process_manager = ExtractionProcessManager(
            command=shlex.split(settings.STREAMLINK_BINARY),
            port_timeout=settings.PORT_DISCOVERY_TIMEOUT_SECONDS,
            kill_grace=settings.PROCESS_KILL_GRACE_SECONDS
        )
    if http_client is None:
        # No read timeout: a relay lasts as long as playback
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=settings.UPSTREAM_CONNECT_TIMEOUT_SECONDS)
        )

    app.state.settings = settings
    app.state.catalog = catalog
    app.state.token_store = token_store
    app.state.relay_service = RelayService(process_manager, http_client, content_type=settings.RELAY_CONTENT_TYPE)
    app.state.sweeper = TokenSweeper(token_store, interval=settings.TOKEN_SWEEP_INTERVAL_SECONDS)

    @app.on_event("startup")
    async def startup_event():
        if engine is not None:
            await init_models(engine)
        if settings.CATALOG_FILE and isinstance(catalog, InMemoryStreamCatalog):
            await catalog.load_file(settings.CATALOG_FILE)
        await app.state.sweeper.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.sweeper.stop()
        await http_client.aclose()
        if engine is not None:
            await engine.dispose()

    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME}", "docs": "/docs"}

    app.add_exception_handler(ProxyError, proxy_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        limit_per_minute=settings.RATE_LIMIT_PER_MINUTE,
        token_limit_per_minute=settings.TOKEN_RATE_LIMIT_PER_MINUTE
    )

    app.include_router(tokens_router, prefix=f"{settings.API_PREFIX}/proxy", tags=["tokens"])
    app.include_router(relay_router, prefix=f"{settings.API_PREFIX}/proxy", tags=["relay"])
    app.include_router(playlist_router, prefix=settings.API_PREFIX, tags=["playlist"])

    return app

app = create_app()

def run():
    logging.basicConfig(
        level=default_settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    logger.info(f"Streamlink relay listening on port {default_settings.PORT}")
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT, log_config=None)

if __name__ == "__main__":
    run()
