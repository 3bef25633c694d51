import logging
from fastapi import APIRouter, Depends

from iptv_proxy.core import deps
from iptv_proxy.core.errors import StreamNotFound
from iptv_proxy.modules.catalog.service import StreamCatalog
from iptv_proxy.modules.relay.service import RelayService

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/streamlink/{stream_id}")
async def relay_stream(
    stream_id: str,
    token: str = Depends(deps.require_relay_token),
    catalog: StreamCatalog = Depends(deps.get_catalog),
    relay: RelayService = Depends(deps.get_relay_service)
):
    """
    Relays a stream decoded by streamlink. The token comes from POST /proxy/token
    or a playlist export and stays valid until it expires.
    """
    stream = await catalog.get(stream_id)
    if not stream:
        raise StreamNotFound()

    logger.info(f"[Relay] Stream {stream.id}: starting relay for {stream.url}")
    return await relay.open(stream)
