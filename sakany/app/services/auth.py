# sakany/app/services/auth.py
"""
Authentication, session and account management.

A login moves through explicit states:

    ANONYMOUS → AUTHENTICATING → AUTHENTICATED
    ANONYMOUS → AUTHENTICATING → MFA_PENDING → AUTHENTICATED

MFA_PENDING holds no session: the caller only gets a challenge token,
which is exchanged for a session by verify_two_factor() together with a
valid TOTP code.

Security:
- Unknown email and wrong password fail identically (same error, same
  hashing cost)
- Password reset requests answer the same way whether or not the
  account exists
- Reset tokens are single-use and expire after PASSWORD_RESET_TTL_MINUTES
- Admin-gated operations check the requester before touching the store
"""
import enum
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from sakany.app.core.config import Settings
from sakany.app.core.exceptions import (
    CurrentPasswordMismatch,
    Forbidden,
    InvalidCredentials,
    InvalidToken,
)
from sakany.app.models.user import User, utcnow
from sakany.app.security import hashing, totp
from sakany.app.security.permissions import is_admin_email, require_admin
from sakany.app.security.sessions import ChallengeStore, SessionManager
from sakany.app.security.tokens import generate_token, generate_two_factor_secret
from sakany.app.stores.users import UserStore

logger = logging.getLogger(__name__)

PASSWORD_RESET_MESSAGE = "If an account exists, password reset instructions will be sent"


class AuthState(str, enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    MFA_PENDING = "mfa_pending"
    AUTHENTICATED = "authenticated"


@dataclass
class AuthResult:
    state: AuthState
    user: Optional[User] = None
    session_id: Optional[str] = None
    challenge_token: Optional[str] = None


@dataclass
class TwoFactorSetup:
    enabled: bool
    otpauth_uri: Optional[str] = None
    qr_code: Optional[str] = None


class AuthService:
    def __init__(
        self,
        users: UserStore,
        sessions: SessionManager,
        challenges: ChallengeStore,
        settings: Settings,
    ):
        self.users = users
        self.sessions = sessions
        self.challenges = challenges
        self.settings = settings

    # ── sessions ─────────────────────────────────────────────────

    async def resolve_session(self, session_id: Optional[str]) -> Optional[User]:
        """Current user for a session cookie, or None when anonymous."""
        user_id = await self.sessions.resolve(session_id)
        if user_id is None:
            return None

        user = await self.users.get_by_id(user_id)
        if user is None:
            # Account deleted under a live session
            await self.sessions.destroy(session_id)
        return user

    async def _establish(self, user: User, previous_session_id: Optional[str] = None) -> AuthResult:
        """Open a fresh session; a session the client already held is dropped."""
        await self.sessions.destroy(previous_session_id)
        user = await self.users.touch_last_login(user.id) or user
        session_id = await self.sessions.create(user.id)
        return AuthResult(state=AuthState.AUTHENTICATED, user=user, session_id=session_id)

    # ── registration / login ────────────────────────────────────

    async def register(
        self,
        email: str,
        password: str,
        display_name: str,
        is_landlord: bool = False,
        is_admin_requested: bool = False,
        preferences: Optional[Dict[str, Any]] = None,
        start_session: bool = True,
        session_id: Optional[str] = None,
    ) -> AuthResult:
        admin_allowed = is_admin_email(email, self.settings)
        if is_admin_requested and not admin_allowed:
            raise Forbidden("Admin accounts must use an authorized email address")

        password_hash = await run_in_threadpool(hashing.get_password_hash, password)
        user = await self.users.create(
            {
                "email": email,
                "password_hash": password_hash,
                "display_name": display_name,
                "is_landlord": is_landlord,
                "is_admin": admin_allowed,
                "preferences": preferences,
            }
        )
        logger.info("Registered user %s (admin=%s)", user.id, user.is_admin)

        if not start_session:
            return AuthResult(state=AuthState.ANONYMOUS, user=user)
        return await self._establish(user, session_id)

    async def login(self, email: str, password: str, session_id: Optional[str] = None) -> AuthResult:
        user = await self.users.get_by_email(email)

        # Unknown email still pays for one hash verification
        stored = user.password_hash if user else hashing.DUMMY_HASH
        password_ok = await run_in_threadpool(hashing.verify_password, password, stored)

        if user is None or not password_ok:
            logger.info("Failed login attempt")
            raise InvalidCredentials()

        if hashing.needs_rehash(user.password_hash):
            password_hash = await run_in_threadpool(hashing.get_password_hash, password)
            user = await self.users.update(user.id, {"password_hash": password_hash})

        if user.two_factor_enabled and user.two_factor_secret:
            challenge_token = await self.challenges.open(user.id)
            logger.info("Login for user %s awaiting second factor", user.id)
            return AuthResult(
                state=AuthState.MFA_PENDING,
                user=user,
                challenge_token=challenge_token,
            )

        logger.info("User %s logged in", user.id)
        return await self._establish(user, session_id)

    async def verify_two_factor(
        self,
        challenge_token: str,
        code: str,
        session_id: Optional[str] = None,
    ) -> AuthResult:
        challenge = await self.challenges.get(challenge_token)
        if challenge is None:
            raise InvalidToken("Invalid or expired login challenge")

        user = await self.users.get_by_id(challenge.user_id)
        if user is None or not user.two_factor_secret:
            await self.challenges.consume(challenge_token)
            raise InvalidToken("Invalid or expired login challenge")

        # Steps at or below the last accepted one are skipped, so a code works once
        counter = totp.match_totp_counter(
            user.two_factor_secret, code, after=user.two_factor_last_counter
        )
        if counter is None or not await self.users.claim_totp_counter(user.id, counter):
            remaining = await self.challenges.record_failure(challenge_token, challenge)
            logger.info("Wrong second factor for user %s (%d attempts left)", user.id, remaining)
            raise InvalidCredentials("Invalid verification code")

        if await self.challenges.consume(challenge_token) is None:
            # Another request finished this challenge first
            raise InvalidToken("Invalid or expired login challenge")

        logger.info("User %s logged in with second factor", user.id)
        return await self._establish(user, session_id)

    async def logout(self, session_id: Optional[str]) -> None:
        await self.sessions.destroy(session_id)

    # ── password reset ──────────────────────────────────────────

    async def request_password_reset(self, email: str) -> str:
        user = await self.users.get_by_email(email)
        if user is not None:
            token = generate_token()
            expires = utcnow() + timedelta(minutes=self.settings.PASSWORD_RESET_TTL_MINUTES)
            await self.users.set_reset_token(user.email, token, expires)
            # The token stays server-side and is never part of the response
            logger.info("Password reset requested for user %s", user.id)
        return PASSWORD_RESET_MESSAGE

    async def complete_password_reset(self, token: str, new_password: str) -> User:
        if await self.users.get_by_reset_token(token) is None:
            raise InvalidToken()

        password_hash = await run_in_threadpool(hashing.get_password_hash, new_password)
        user = await self.users.consume_reset_token(token, password_hash)
        if user is None:
            raise InvalidToken()

        logger.info("Password reset completed for user %s", user.id)
        return user

    # ── profile ─────────────────────────────────────────────────

    async def update_profile(
        self,
        user_id: int,
        fields: Dict[str, Any],
        current_password: Optional[str] = None,
    ) -> User:
        allowed = {"display_name", "email", "password", "preferences"}
        data = {
            k: v for k, v in fields.items()
            if k in allowed and (v is not None or k == "preferences")
        }

        if data.get("password"):
            user = await self.users.get_by_id(user_id)
            ok = user is not None and current_password is not None and await run_in_threadpool(
                hashing.verify_password, current_password, user.password_hash
            )
            if not ok:
                raise CurrentPasswordMismatch()
            data["password_hash"] = await run_in_threadpool(
                hashing.get_password_hash, data.pop("password")
            )
        else:
            data.pop("password", None)

        return await self.users.update(user_id, data)

    async def delete_account(self, user_id: int, session_id: Optional[str]) -> None:
        await self.users.delete(user_id)
        await self.sessions.destroy(session_id)
        await self.challenges.discard_for_user(user_id)
        logger.info("User %s deleted their account", user_id)

    async def toggle_two_factor(self, user_id: int, enabled: bool) -> TwoFactorSetup:
        if not enabled:
            await self.users.set_two_factor_secret(user_id, None)
            await self.users.update(user_id, {"two_factor_enabled": False})
            logger.info("Two-factor disabled for user %s", user_id)
            return TwoFactorSetup(enabled=False)

        secret = generate_two_factor_secret()
        await self.users.set_two_factor_secret(user_id, secret)
        user = await self.users.update(user_id, {"two_factor_enabled": True})

        issuer = self.settings.TOTP_ISSUER
        logger.info("Two-factor enabled for user %s", user_id)
        return TwoFactorSetup(
            enabled=True,
            otpauth_uri=totp.get_totp_uri(secret, user.email, issuer),
            qr_code=await run_in_threadpool(totp.generate_qr_code_base64, secret, user.email, issuer),
        )

    # ── admin ───────────────────────────────────────────────────

    async def list_users(self, requester: Optional[User]) -> List[User]:
        require_admin(requester)
        return await self.users.list_all()

    async def update_user(self, requester: Optional[User], user_id: int, fields: Dict[str, Any]) -> User:
        require_admin(requester)

        allowed = {"display_name", "email", "password", "is_admin", "is_landlord", "preferences"}
        data = {
            k: v for k, v in fields.items()
            if k in allowed and (v is not None or k == "preferences")
        }
        password = data.pop("password", None)
        if password:
            data["password_hash"] = await run_in_threadpool(hashing.get_password_hash, password)

        user = await self.users.update(user_id, data)
        logger.info("Admin %s updated user %s", requester.id, user_id)
        return user

    async def delete_user(self, requester: Optional[User], user_id: int) -> None:
        require_admin(requester)

        await self.users.delete(user_id)
        await self.sessions.destroy_for_user(user_id)
        await self.challenges.discard_for_user(user_id)
        logger.info("Admin %s deleted user %s", requester.id, user_id)
