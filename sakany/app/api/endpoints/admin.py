# sakany/app/api/endpoints/admin.py
"""
Admin-only user management.

The requester is resolved but not required here: anonymous and
non-admin callers both get 403 from the service, before any write.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from sakany.app.api import deps
from sakany.app.models.user import User
from sakany.app.schemas.user import AdminUserUpdate, UserResponse
from sakany.app.services.auth import AuthService

router = APIRouter()


@router.get("/users", response_model=List[UserResponse])
async def list_users(
        requester: Optional[User] = Depends(deps.get_optional_user),
        auth: AuthService = Depends(deps.get_auth_service),
):
    return await auth.list_users(requester)


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
        user_id: int,
        body: AdminUserUpdate,
        requester: Optional[User] = Depends(deps.get_optional_user),
        auth: AuthService = Depends(deps.get_auth_service),
):
    return await auth.update_user(requester, user_id, body.model_dump(exclude_unset=True))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
        user_id: int,
        requester: Optional[User] = Depends(deps.get_optional_user),
        auth: AuthService = Depends(deps.get_auth_service),
):
    await auth.delete_user(requester, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
