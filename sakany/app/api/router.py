# sakany/app/api/router.py
from fastapi import APIRouter

from sakany.app.api.endpoints import admin, auth, properties, users

api_router = APIRouter()
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(users.router, prefix="/user", tags=["user"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(properties.router, prefix="/properties", tags=["properties"])
