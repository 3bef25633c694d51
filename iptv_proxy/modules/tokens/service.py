from datetime import timedelta
from typing import Tuple

from iptv_proxy.modules.tokens.store import AuthorizationToken, TokenStore

def build_proxy_url(base_url: str, stream_id: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/{stream_id}?token={token}"

def mint_proxy_url(store: TokenStore, base_url: str, stream_id: str, ttl: timedelta) -> Tuple[AuthorizationToken, str]:
    """
    Mints a token for `stream_id` and returns it with the relay URL players should open.
    """
    record = store.mint(stream_id, ttl)
    return record, build_proxy_url(base_url, stream_id, record.token)
