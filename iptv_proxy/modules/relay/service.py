import logging
from typing import Dict, Optional

import anyio
import httpx
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from iptv_proxy.core.errors import RelayIOError
from iptv_proxy.modules.catalog.schemas import StreamRecord
from iptv_proxy.modules.extraction.process import ExtractionProcess, ExtractionProcessManager

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"

# Not forwarded to the remote client; content-type is replaced
EXCLUDED_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "content-type",
}

def filter_headers(headers: httpx.Headers) -> Dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in EXCLUDED_HEADERS}

class RelaySession:
    """
    One relay: the extraction child plus the loopback connection to its player server.
    `aclose` stops both and is safe to call from every exit path.
    """

    def __init__(self, stream_id: str, process: ExtractionProcess):
        self.stream_id = stream_id
        self.process = process
        self.upstream: Optional[httpx.Response] = None
        self.bytes_relayed = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def connect(self, client: httpx.AsyncClient, port: int) -> httpx.Response:
        request = client.build_request("GET", f"http://{LOOPBACK_HOST}:{port}/")
        try:
            self.upstream = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"[Relay] Stream {self.stream_id}: loopback connect to port {port} failed: {e}")
            raise RelayIOError(f"Could not connect to extraction server: {e}") from e
        logger.info(f"[Relay] Stream {self.stream_id}: connected to port {port}, upstream status {self.upstream.status_code}")
        return self.upstream

    async def iter_body(self):
        try:
            async for chunk in self.upstream.aiter_raw():
                if not chunk:
                    continue
                self.bytes_relayed += len(chunk)
                yield chunk
        except httpx.HTTPError as e:
            logger.warning(f"[Relay] Stream {self.stream_id}: upstream read failed after {self.bytes_relayed} bytes: {e}")
            raise RelayIOError(f"Upstream read failed: {e}") from e
        finally:
            await self.aclose()

    async def aclose(self):
        if self._closed:
            return
        self._closed = True

        # Must finish even when the request task is being cancelled
        with anyio.CancelScope(shield=True):
            try:
                await self.process.stop()
            finally:
                if self.upstream is not None:
                    await self.upstream.aclose()
        logger.info(f"[Relay] Stream {self.stream_id}: closed after {self.bytes_relayed} bytes")

class RelayResponse(StreamingResponse):
    """Streams a RelaySession and closes it however the response ends."""

    def __init__(self, session: RelaySession, **kwargs):
        super().__init__(session.iter_body(), **kwargs)
        self.session = session

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.session.aclose()

class RelayService:
    def __init__(self, process_manager: ExtractionProcessManager, http_client: httpx.AsyncClient, content_type: str = "video/mp4"):
        self.process_manager = process_manager
        self.http_client = http_client
        self.content_type = content_type

    async def open(self, stream: StreamRecord) -> RelayResponse:
        """
        Starts extraction for `stream` and returns a response relaying its output.
        On any failure before streaming starts the child is stopped and the error re-raised.
        """
        process = await self.process_manager.start(stream.url, stream.options)
        session = RelaySession(stream.id, process)

        try:
            port = await process.wait_for_port()
            upstream = await session.connect(self.http_client, port)
        except BaseException:
            await session.aclose()
            raise

        return RelayResponse(
            session,
            status_code=upstream.status_code,
            headers=filter_headers(upstream.headers),
            media_type=self.content_type
        )
