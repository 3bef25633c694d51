from typing import List, Optional

from iptv_proxy.modules.catalog.schemas import ExtractionOptions

DEFAULT_QUALITY = "best"

# Serve the decoded stream over HTTP on a port picked by the OS
PLAYER_HTTP_ARGS = [
    "--player-external-http",
    "--player-external-http-port=0",
]

def build_args(stream_url: str, options: Optional[ExtractionOptions] = None) -> List[str]:
    """
    Builds the streamlink argument vector for a stream.

    Order is fixed: URL, quality, player HTTP flags, User-Agent header, custom args.
    Custom args are split on whitespace and passed through unchecked; only
    administrators may set them.
    """
    options = options or ExtractionOptions()

    args = [
        stream_url,
        options.quality or DEFAULT_QUALITY,
        *PLAYER_HTTP_ARGS,
    ]

    user_agent = options.effective_user_agent
    if user_agent:
        args += ["--http-header", f"User-Agent={user_agent}"]

    if options.custom_args:
        args += options.custom_args.split()

    return args
