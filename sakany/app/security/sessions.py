# sakany/app/security/sessions.py
"""
Server-side session and MFA challenge records.

The browser only ever holds an opaque random id; the record it points to
(user id and expiry) stays in memory on the server. Records expire after
a fixed TTL. Expired records are dropped on lookup, whenever a new record
is stored, and by purge_expired().
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

from sakany.app.security.tokens import generate_token

T = TypeVar("T")


@dataclass
class SessionRecord:
    """An authenticated browser session."""
    user_id: int
    created_at: float
    expires_at: float


@dataclass
class MfaChallenge:
    """A login that passed the password check and still owes a TOTP code."""
    user_id: int
    expires_at: float
    failed_attempts: int = 0


class ExpiringStore(Generic[T]):
    """
    Token-keyed map whose values carry an ``expires_at`` timestamp.

    Mutations are serialized by an asyncio.Lock; reads of an expired
    entry delete it and report absence.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._items: Dict[str, T] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    async def put(self, value: T) -> str:
        """Store ``value`` under a fresh token, dropping entries that have expired."""
        key = generate_token()
        async with self._lock:
            self._drop_expired()
            self._items[key] = value
        return key

    async def get(self, key: Optional[str]) -> Optional[T]:
        if not key:
            return None
        async with self._lock:
            value = self._items.get(key)
            if value is None:
                return None
            if value.expires_at <= self.now():
                del self._items[key]
                return None
            return value

    async def pop(self, key: Optional[str]) -> Optional[T]:
        if not key:
            return None
        async with self._lock:
            value = self._items.pop(key, None)
        if value is None or value.expires_at <= self.now():
            return None
        return value

    async def discard_where(self, predicate: Callable[[T], bool]) -> int:
        async with self._lock:
            doomed = [k for k, v in self._items.items() if predicate(v)]
            for key in doomed:
                del self._items[key]
        return len(doomed)

    def _drop_expired(self) -> int:
        now = self.now()
        doomed = [k for k, v in self._items.items() if v.expires_at <= now]
        for key in doomed:
            del self._items[key]
        return len(doomed)

    async def purge_expired(self) -> int:
        async with self._lock:
            return self._drop_expired()

    def __len__(self) -> int:
        return len(self._items)


class SessionManager:
    """Creates, resolves and destroys browser sessions."""

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._store: ExpiringStore[SessionRecord] = ExpiringStore(clock)

    async def create(self, user_id: int) -> str:
        now = self._store.now()
        return await self._store.put(
            SessionRecord(user_id=user_id, created_at=now, expires_at=now + self.ttl_seconds)
        )

    async def resolve(self, session_id: Optional[str]) -> Optional[int]:
        record = await self._store.get(session_id)
        return record.user_id if record else None

    async def destroy(self, session_id: Optional[str]) -> None:
        await self._store.pop(session_id)

    async def destroy_for_user(self, user_id: int) -> int:
        return await self._store.discard_where(lambda r: r.user_id == user_id)

    async def purge_expired(self) -> int:
        return await self._store.purge_expired()

    def __len__(self) -> int:
        return len(self._store)


class ChallengeStore:
    """Pending MFA challenges, keyed by a short-lived random token."""

    def __init__(
        self,
        ttl_seconds: int,
        max_attempts: int,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self._store: ExpiringStore[MfaChallenge] = ExpiringStore(clock)

    async def open(self, user_id: int) -> str:
        return await self._store.put(
            MfaChallenge(user_id=user_id, expires_at=self._store.now() + self.ttl_seconds)
        )

    async def get(self, token: Optional[str]) -> Optional[MfaChallenge]:
        return await self._store.get(token)

    async def consume(self, token: Optional[str]) -> Optional[MfaChallenge]:
        return await self._store.pop(token)

    async def record_failure(self, token: str, challenge: MfaChallenge) -> int:
        """Count a wrong code; the challenge is dropped once attempts run out."""
        challenge.failed_attempts += 1
        remaining = self.max_attempts - challenge.failed_attempts
        if remaining <= 0:
            await self._store.pop(token)
        return max(0, remaining)

    async def discard_for_user(self, user_id: int) -> int:
        return await self._store.discard_where(lambda c: c.user_id == user_id)

    def __len__(self) -> int:
        return len(self._store)
