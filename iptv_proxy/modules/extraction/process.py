import asyncio
import logging
import re
from typing import List, Optional, Sequence

from iptv_proxy.core.errors import ProcessSpawnError, ProcessStartTimeout
from iptv_proxy.modules.catalog.schemas import ExtractionOptions
from iptv_proxy.modules.extraction.args import build_args

logger = logging.getLogger(__name__)

PORT_PATTERNS = [
    re.compile(r"Player server started on port (\d+)"),
    # streamlink's own announcement: "[cli][info]  http://127.0.0.1:45678/"
    re.compile(r"https?://127\.0\.0\.1:(\d+)/"),
]

def parse_port(line: str) -> Optional[int]:
    for pattern in PORT_PATTERNS:
        match = pattern.search(line)
        if match:
            return int(match.group(1))
    return None

class ExtractionProcess:
    """
    A running extraction tool bound to one relay request.

    `port` resolves once, from whichever output line first announces the
    player server. Both pipes are read until EOF for the life of the child.
    """

    def __init__(self, process: asyncio.subprocess.Process, port_timeout: float = 10.0, kill_grace: float = 2.0):
        self.process = process
        self.port_timeout = port_timeout
        self.kill_grace = kill_grace
        self.port: asyncio.Future = asyncio.get_running_loop().create_future()
        self._readers: List[asyncio.Task] = [
            asyncio.create_task(self._drain(process.stdout, "stdout")),
            asyncio.create_task(self._drain(process.stderr, "stderr")),
        ]
        self._watcher = asyncio.create_task(self._watch_exit())

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    async def _drain(self, stream: Optional[asyncio.StreamReader], name: str):
        if stream is None:
            return
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                # Over-long line, already discarded by the reader
                continue
            if not line:
                break

            text = line.decode("utf-8", errors="replace").rstrip()
            logger.debug(f"[Extraction] pid={self.pid} {name}: {text}")

            if not self.port.done():
                port = parse_port(text)
                if port:
                    logger.info(f"[Extraction] pid={self.pid} player server on port {port}")
                    self.port.set_result(port)

    async def _watch_exit(self):
        await asyncio.gather(*self._readers, return_exceptions=True)
        returncode = await self.process.wait()
        logger.info(f"[Extraction] pid={self.pid} exited with code {returncode}")
        if not self.port.done():
            self.port.set_exception(
                ProcessSpawnError(f"Extraction process exited with code {returncode} before reporting a port")
            )

    async def wait_for_port(self) -> int:
        """
        Waits for the announced port. The child is stopped before any error propagates.
        """
        try:
            return await asyncio.wait_for(asyncio.shield(self.port), timeout=self.port_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[Extraction] pid={self.pid} reported no port within {self.port_timeout}s")
            await self.stop()
            raise ProcessStartTimeout(f"No player port reported within {self.port_timeout:g}s")
        except ProcessSpawnError:
            await self.stop()
            raise

    async def stop(self):
        """Terminates the child, escalating to kill after the grace period. Idempotent."""
        # Cancel first so the exit watcher does not record our own SIGTERM as a spawn failure
        if not self.port.done():
            self.port.cancel()

        if self.process.returncode is None:
            try:
                self.process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(self.process.wait(), timeout=self.kill_grace)
            except asyncio.TimeoutError:
                logger.warning(f"[Extraction] pid={self.pid} ignored SIGTERM, killing")
                try:
                    self.process.kill()
                except ProcessLookupError:
                    pass
                await self.process.wait()
            logger.info(f"[Extraction] pid={self.pid} stopped")

        if not self.port.cancelled():
            # Mark a stored failure as retrieved
            self.port.exception()

        # Grandchildren may still hold the pipes open
        done, _ = await asyncio.wait([self._watcher], timeout=self.kill_grace)
        if not done:
            for task in self._readers:
                task.cancel()
            self._watcher.cancel()
            await asyncio.gather(self._watcher, *self._readers, return_exceptions=True)

class ExtractionProcessManager:
    def __init__(self, command: Sequence[str] = ("streamlink",), port_timeout: float = 10.0, kill_grace: float = 2.0):
        self.command = list(command)
        self.port_timeout = port_timeout
        self.kill_grace = kill_grace

    async def start(self, stream_url: str, options: Optional[ExtractionOptions] = None) -> ExtractionProcess:
        """
        Spawns the extraction tool for `stream_url`.
        Raises ProcessSpawnError when the binary cannot be launched; never retries.
        """
        args = build_args(stream_url, options)
        logger.info(f"[Extraction] Starting {self.command[0]} with args: {args}")

        try:
            process = await asyncio.create_subprocess_exec(
                *self.command, *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            logger.error(f"[Extraction] Spawn failed: {e}")
            raise ProcessSpawnError(f"Could not launch {self.command[0]}: {e}") from e

        return ExtractionProcess(process, port_timeout=self.port_timeout, kill_grace=self.kill_grace)
