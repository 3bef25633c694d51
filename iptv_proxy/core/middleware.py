import time
from collections import defaultdict
from typing import Callable
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

WINDOW_SECONDS = 60

class RateLimitMiddleware:
    """
    Sliding one-minute window per client IP.
    Plain ASGI: relay bodies are passed straight through, never wrapped.
    """
    def __init__(
        self,
        app: ASGIApp,
        limit_per_minute: int = 60,
        token_limit_per_minute: int = 30,
        token_path: str = "/proxy/token",
        clock: Callable[[], float] = time.time
    ):
        self.app = app
        self.limit = limit_per_minute
        self.token_limit = token_limit_per_minute
        self.token_path = token_path
        self.clock = clock
        # IP -> [timestamp1, timestamp2, ...]
        self.requests = defaultdict(list)
        self._last_prune = clock()

    def _prune(self, now: float):
        """Drops every client whose window has emptied."""
        for ip in list(self.requests):
            recent = [t for t in self.requests[ip] if now - t < WINDOW_SECONDS]
            if recent:
                self.requests[ip] = recent
            else:
                del self.requests[ip]
        self._last_prune = now

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        client_ip = client[0] if client else "unknown"
        now = self.clock()

        if now - self._last_prune >= WINDOW_SECONDS:
            self._prune(now)

        recent = [t for t in self.requests.get(client_ip, ()) if now - t < WINDOW_SECONDS]

        limit = self.limit
        if scope["path"].endswith(self.token_path) and scope["method"] == "POST":
            limit = self.token_limit

        if len(recent) >= limit:
            self.requests[client_ip] = recent
            response = JSONResponse(
                status_code=429,
                content={"error": "RateLimited", "detail": "Too many requests. Please try again later."}
            )
            await response(scope, receive, send)
            return

        recent.append(now)
        self.requests[client_ip] = recent
        await self.app(scope, receive, send)
