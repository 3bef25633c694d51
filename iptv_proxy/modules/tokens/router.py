import logging
from datetime import timedelta
from typing import Any, Optional
from fastapi import APIRouter, Body, Depends

from iptv_proxy.core import deps
from iptv_proxy.core.config import Settings
from iptv_proxy.core.errors import MissingStreamId, StreamNotFound
from iptv_proxy.modules.catalog.service import StreamCatalog
from iptv_proxy.modules.tokens import schemas, service
from iptv_proxy.modules.tokens.store import TokenStore

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/token", response_model=schemas.ProxyTokenResponse)
async def create_proxy_token(
    request: Optional[schemas.ProxyTokenRequest] = Body(None),
    store: TokenStore = Depends(deps.get_token_store),
    catalog: StreamCatalog = Depends(deps.get_catalog),
    settings: Settings = Depends(deps.get_settings)
) -> Any:
    """
    Mints a relay token for a stream and returns the URL a player should open.
    """
    stream_id = request.stream_id if request else None
    if not stream_id:
        raise MissingStreamId()

    stream = await catalog.get(stream_id)
    if not stream:
        raise StreamNotFound()

    record, proxy_url = service.mint_proxy_url(
        store,
        settings.proxy_base_url,
        stream.id,
        timedelta(hours=settings.RELAY_TOKEN_TTL_HOURS)
    )
    logger.info(f"[Tokens] Minted relay token for stream {stream.id}, expires {record.expires_at.isoformat()}")

    return {
        "proxyUrl": proxy_url,
        "relayUrl": proxy_url,
        "token": record.token,
        "expiresAt": record.expires_at,
    }
