# sakany/app/stores/properties.py
import asyncio
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sakany.app.models.property import Property
from sakany.app.models.user import utcnow

FEATURED_LIMIT = 3


class PropertyStore:
    def __init__(self, db: AsyncSession, write_lock: asyncio.Lock):
        self.db = db
        self._lock = write_lock

    async def create(self, fields: Dict[str, Any]) -> Property:
        data = dict(fields)
        data.pop("id", None)
        data.pop("created_at", None)
        data["features"] = list(data.get("features") or [])
        data["images"] = list(data.get("images") or [])

        async with self._lock:
            prop = Property(**data, created_at=utcnow())
            self.db.add(prop)
            await self.db.commit()
            await self.db.refresh(prop)
            return prop

    async def get(self, property_id: int) -> Optional[Property]:
        return await self.db.get(Property, property_id)

    async def list_all(self) -> List[Property]:
        result = await self.db.execute(select(Property).order_by(Property.id))
        return list(result.scalars().all())

    async def featured(self, limit: int = FEATURED_LIMIT) -> List[Property]:
        """First ``limit`` listings in store order."""
        result = await self.db.execute(select(Property).order_by(Property.id).limit(limit))
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(Property))
        return result.scalar_one()
