import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

@dataclass(frozen=True)
class AuthorizationToken:
    token: str
    stream_id: str
    issued_at: datetime
    expires_at: datetime

    def is_valid_for(self, stream_id: str, now: datetime) -> bool:
        return self.stream_id == stream_id and now < self.expires_at

class TokenStore:
    """
    In-process store of relay tokens.

    Tokens are reusable until they expire so a player can reconnect with the
    URL it was given. Nothing is deleted on validation; expired entries are
    dropped by `purge_expired` (see TokenSweeper).
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow, token_bytes: int = 32):
        self.clock = clock
        self.token_bytes = token_bytes
        self._tokens: Dict[str, AuthorizationToken] = {}
        self._lock = threading.Lock()

    def _generate(self) -> str:
        return secrets.token_urlsafe(self.token_bytes)

    def mint(self, stream_id: str, ttl: timedelta) -> AuthorizationToken:
        now = self.clock()
        record = AuthorizationToken(
            token=self._generate(),
            stream_id=stream_id,
            issued_at=now,
            expires_at=now + ttl,
        )
        with self._lock:
            self._tokens[record.token] = record
        return record

    def get(self, token: str) -> Optional[AuthorizationToken]:
        with self._lock:
            return self._tokens.get(token)

    def validate(self, stream_id: str, token: str) -> bool:
        record = self.get(token)
        if record is None:
            return False
        return record.is_valid_for(stream_id, self.clock())

    def purge_expired(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [t for t, r in self._tokens.items() if now >= r.expires_at]
            for t in expired:
                del self._tokens[t]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
