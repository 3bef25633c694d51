from typing import Optional
from fastapi import Depends, Query, Request

from iptv_proxy.core.config import Settings
from iptv_proxy.core.errors import InvalidToken, MissingToken
from iptv_proxy.modules.catalog.service import StreamCatalog
from iptv_proxy.modules.relay.service import RelayService
from iptv_proxy.modules.tokens.store import TokenStore

# Shared objects live on app.state, built once by create_app()

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_token_store(request: Request) -> TokenStore:
    return request.app.state.token_store

def get_catalog(request: Request) -> StreamCatalog:
    return request.app.state.catalog

def get_relay_service(request: Request) -> RelayService:
    return request.app.state.relay_service

async def require_relay_token(
    stream_id: str,
    token: Optional[str] = Query(None),
    store: TokenStore = Depends(get_token_store)
) -> str:
    """
    Checks the `token` query parameter against the requested stream.
    Returns the token when it is valid for `stream_id`.
    """
    if not token:
        raise MissingToken()

    if not store.validate(stream_id, token):
        raise InvalidToken()

    return token
