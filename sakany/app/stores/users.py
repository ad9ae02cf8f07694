# sakany/app/stores/users.py
"""
User store: the only code that reads or writes the users table.

Writes are serialized through a lock shared by every request of the
application, so a check-then-write (email uniqueness, token consumption)
never interleaves with another writer.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sakany.app.core.exceptions import Conflict, InternalError, NotFound
from sakany.app.models.user import User, utcnow
from sakany.app.security.permissions import normalize_email

logger = logging.getLogger(__name__)

# Columns callers may never set through create()/update()
_PROTECTED_FIELDS = {"id", "created_at", "updated_at"}


class UserStore:
    def __init__(self, db: AsyncSession, write_lock: asyncio.Lock):
        self.db = db
        self._lock = write_lock

    # ── reads ────────────────────────────────────────────────────

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalars().first()

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        """Exact token match whose expiry is still in the future."""
        if not token:
            return None
        result = await self.db.execute(
            select(User).where(
                User.password_reset_token == token,
                User.password_reset_expires > utcnow(),
            )
        )
        return result.scalars().first()

    async def list_all(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    # ── writes ───────────────────────────────────────────────────

    async def _commit(self) -> None:
        """Commit, mapping a unique-constraint race to Conflict and any other failure to InternalError."""
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Users table write failed: %s", exc.__class__.__name__)
            raise InternalError() from exc

    async def create(self, fields: Dict[str, Any]) -> User:
        data = {k: v for k, v in fields.items() if k not in _PROTECTED_FIELDS}
        data["email"] = normalize_email(data.get("email", ""))
        data.setdefault("is_admin", False)
        data.setdefault("is_landlord", False)
        data["two_factor_enabled"] = False
        data["two_factor_secret"] = None
        data["two_factor_last_counter"] = None
        data["password_reset_token"] = None
        data["password_reset_expires"] = None

        async with self._lock:
            if await self.get_by_email(data["email"]):
                raise Conflict()

            now = utcnow()
            user = User(**data, created_at=now, updated_at=now)
            self.db.add(user)
            await self._commit()
            await self.db.refresh(user)
            return user

    async def update(self, user_id: int, fields: Dict[str, Any]) -> User:
        data = {k: v for k, v in fields.items() if k not in _PROTECTED_FIELDS}

        async with self._lock:
            user = await self.get_by_id(user_id)
            if user is None:
                raise NotFound("User not found")

            if "email" in data:
                data["email"] = normalize_email(data["email"])
                if data["email"] != user.email:
                    other = await self.get_by_email(data["email"])
                    if other is not None and other.id != user.id:
                        raise Conflict()

            for key, value in data.items():
                setattr(user, key, value)
            user.updated_at = utcnow()

            await self._commit()
            await self.db.refresh(user)
            return user

    async def delete(self, user_id: int) -> None:
        """Remove the user; a missing id is a no-op."""
        async with self._lock:
            user = await self.get_by_id(user_id)
            if user is None:
                return
            await self.db.delete(user)
            await self._commit()

    async def set_reset_token(self, email: str, token: Optional[str], expires: Optional[datetime]) -> None:
        async with self._lock:
            user = await self.get_by_email(email)
            if user is None:
                raise NotFound("User not found")
            user.password_reset_token = token
            user.password_reset_expires = expires
            user.updated_at = utcnow()
            await self._commit()

    async def consume_reset_token(self, token: str, password_hash: str) -> Optional[User]:
        """
        Store a new password hash for the holder of ``token`` and clear it.

        A single conditional UPDATE, so of two requests racing on one token
        only the first to commit matches; the other gets None.
        """
        if not token:
            return None

        async with self._lock:
            now = utcnow()
            user = await self.get_by_reset_token(token)
            if user is None:
                return None

            result = await self.db.execute(
                update(User)
                .where(
                    User.id == user.id,
                    User.password_reset_token == token,
                    User.password_reset_expires > now,
                )
                .values(
                    password_hash=password_hash,
                    password_reset_token=None,
                    password_reset_expires=None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            await self._commit()
            if result.rowcount != 1:
                return None

            await self.db.refresh(user)
            return user

    async def set_two_factor_secret(self, user_id: int, secret: Optional[str]) -> None:
        """Replace the secret; codes accepted under the previous one no longer count."""
        async with self._lock:
            user = await self.get_by_id(user_id)
            if user is None:
                raise NotFound("User not found")
            user.two_factor_secret = secret
            user.two_factor_last_counter = None
            user.updated_at = utcnow()
            await self._commit()

    async def claim_totp_counter(self, user_id: int, counter: int) -> bool:
        """
        Record ``counter`` as the last accepted TOTP step for the user.

        A single conditional UPDATE: it only matches while the stored step
        is NULL or lower, so one code never opens two sessions.
        """
        async with self._lock:
            result = await self.db.execute(
                update(User)
                .where(
                    User.id == user_id,
                    or_(
                        User.two_factor_last_counter.is_(None),
                        User.two_factor_last_counter < counter,
                    ),
                )
                .values(two_factor_last_counter=counter)
                .execution_options(synchronize_session=False)
            )
            await self._commit()
            return result.rowcount == 1

    async def touch_last_login(self, user_id: int) -> Optional[User]:
        async with self._lock:
            user = await self.get_by_id(user_id)
            if user is None:
                return None
            user.last_login_at = utcnow()
            await self._commit()
            await self.db.refresh(user)
            return user
