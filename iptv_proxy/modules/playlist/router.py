import logging
from datetime import date, timedelta
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from iptv_proxy.core import deps
from iptv_proxy.core.config import Settings
from iptv_proxy.modules.catalog.service import StreamCatalog
from iptv_proxy.modules.playlist import service
from iptv_proxy.modules.tokens.store import TokenStore

logger = logging.getLogger(__name__)

router = APIRouter()

M3U_MEDIA_TYPE = "audio/x-mpegurl"

@router.get("/generate-m3u")
async def generate_m3u(
    format: str = Query("m3u", pattern="^(m3u|json)$"),
    store: TokenStore = Depends(deps.get_token_store),
    catalog: StreamCatalog = Depends(deps.get_catalog),
    settings: Settings = Depends(deps.get_settings)
):
    """
    Exports all active streams as an M3U playlist.
    `format=json` returns {"content", "filename"} for the dashboard download button.
    """
    streams = await catalog.list_active()
    content = service.build_playlist(
        streams,
        store,
        settings.proxy_base_url,
        timedelta(hours=settings.PLAYLIST_TOKEN_TTL_HOURS)
    )
    filename = service.playlist_filename(date.today())
    logger.info(f"[Playlist] Generated {filename} with {len(streams)} streams")

    if format == "json":
        return JSONResponse({"content": content, "filename": filename})

    return Response(
        content=content,
        media_type=M3U_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
