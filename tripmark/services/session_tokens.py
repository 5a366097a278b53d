"""
Places session tokens.

Google bills a user's lookup + detail calls as one session when they share a
token. Tokens are a pricing hint only: losing them (process restart, redis
flush) just means a new session is started.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from tripmark.config import settings
from tripmark.services.redis_client import RedisClient

logger = logging.getLogger(__name__)


@dataclass
class SessionToken:
    token: str
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class SessionStore(Protocol):
    def get(self, user_id: str) -> Optional[SessionToken]: ...

    def put(self, user_id: str, token: SessionToken) -> None: ...

    def delete(self, user_id: str) -> None: ...


class InMemorySessionStore:
    """Process-local mapping; stale entries stay until their user's next access."""

    def __init__(self) -> None:
        self._tokens: Dict[str, SessionToken] = {}

    def get(self, user_id: str) -> Optional[SessionToken]:
        return self._tokens.get(user_id)

    def put(self, user_id: str, token: SessionToken) -> None:
        self._tokens[user_id] = token

    def delete(self, user_id: str) -> None:
        self._tokens.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._tokens)


class RedisSessionStore:
    """Shares tokens across processes; redis expires keys on its own."""

    key_prefix = "places_session:"

    def __init__(self, redis_client: RedisClient) -> None:
        self.redis = redis_client

    def get(self, user_id: str) -> Optional[SessionToken]:
        data = self.redis.get_json(self.key_prefix + user_id)
        return SessionToken(**data) if data else None

    def put(self, user_id: str, token: SessionToken) -> None:
        ttl = max(1, int(token.expires_at - token.created_at))
        self.redis.set_json(self.key_prefix + user_id, token.__dict__, ttl_seconds=ttl)

    def delete(self, user_id: str) -> None:
        self.redis.delete(self.key_prefix + user_id)


class SessionTokenManager:
    """Hands out one live token per user, minting a new one after expiry."""

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store if store is not None else InMemorySessionStore()
        self.ttl_seconds = ttl_seconds or settings.session_token_ttl_seconds
        self._clock = clock

    def token_for(self, user_id: str) -> str:
        now = self._clock()
        current = self.store.get(user_id)
        if current is not None:
            if not current.is_expired(now):
                return current.token
            self.store.delete(user_id)

        token = SessionToken(
            token=str(uuid.uuid4()),
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )
        self.store.put(user_id, token)
        logger.debug(f"Issued places session token for user {user_id}")
        return token.token
