from datetime import date, timedelta
from typing import Iterable, List

from iptv_proxy.modules.catalog.schemas import StreamRecord
from iptv_proxy.modules.tokens.service import mint_proxy_url
from iptv_proxy.modules.tokens.store import TokenStore

HEADER = "#EXTM3U"

def extinf_line(stream: StreamRecord) -> str:
    return (
        f'#EXTINF:-1 tvg-id="{stream.id}" tvg-name="{stream.name}" '
        f'tvg-logo="{stream.logo or ""}" group-title="{stream.category}",{stream.name}'
    )

def playlist_filename(today: date) -> str:
    return f"iptv-playlist-{today.isoformat()}.m3u"

def build_playlist(
    streams: Iterable[StreamRecord],
    store: TokenStore,
    proxy_base_url: str,
    token_ttl: timedelta
) -> str:
    """
    Renders an M3U playlist. Streams relayed with a secure token get a freshly
    minted relay URL and VLC options; all others keep their direct URL.
    """
    lines: List[str] = [HEADER]

    for stream in streams:
        url = stream.url
        if stream.uses_secure_proxy:
            _, url = mint_proxy_url(store, proxy_base_url, stream.id, token_ttl)
            lines.append(f"#EXTVLCOPT:http-referrer={stream.url}")
            lines.append("#EXTVLCOPT:network-caching=1000")

        lines.append(extinf_line(stream))
        lines.append(url)

    return "\n".join(lines) + "\n"
