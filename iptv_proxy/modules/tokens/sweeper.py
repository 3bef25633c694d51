import asyncio
import logging
from typing import Optional

from iptv_proxy.modules.tokens.store import TokenStore

logger = logging.getLogger(__name__)

class TokenSweeper:
    def __init__(self, store: TokenStore, interval: float = 300.0):
        self.store = store
        self.interval = interval
        self.is_running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        """Starts the sweep loop."""
        if self.is_running:
            return
        self.is_running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"[TokenSweeper] Started (every {self.interval}s).")

    async def stop(self):
        """Stops the sweep loop."""
        self.is_running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("[TokenSweeper] Stopped.")

    def sweep(self) -> int:
        removed = self.store.purge_expired()
        if removed:
            logger.info(f"[TokenSweeper] Purged {removed} expired tokens, {len(self.store)} live.")
        return removed

    async def _run(self):
        while self.is_running:
            try:
                await asyncio.sleep(self.interval)
                self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"[TokenSweeper] Sweep Error: {e}", exc_info=True)
