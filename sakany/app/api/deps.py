# sakany/app/api/deps.py
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sakany.app.core.config import Settings
from sakany.app.core.exceptions import NotAuthenticated
from sakany.app.db.session import get_db
from sakany.app.models.user import User
from sakany.app.services.auth import AuthService
from sakany.app.services.properties import PropertyService
from sakany.app.stores.properties import PropertyStore
from sakany.app.stores.users import UserStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(request.app.state.settings.SESSION_COOKIE_NAME)


def get_auth_service(request: Request, db: AsyncSession = Depends(get_db)) -> AuthService:
    state = request.app.state
    return AuthService(
        users=UserStore(db, state.user_write_lock),
        sessions=state.sessions,
        challenges=state.challenges,
        settings=state.settings,
    )


def get_property_service(request: Request, db: AsyncSession = Depends(get_db)) -> PropertyService:
    return PropertyService(PropertyStore(db, request.app.state.property_write_lock))


async def get_optional_user(
        session_id: Optional[str] = Depends(get_session_id),
        auth: AuthService = Depends(get_auth_service),
) -> Optional[User]:
    return await auth.resolve_session(session_id)


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise NotAuthenticated()
    return user
