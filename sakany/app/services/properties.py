# sakany/app/services/properties.py
import logging
from typing import Any, Dict, List

from sakany.app.core.exceptions import NotFound
from sakany.app.models.property import Property
from sakany.app.models.user import User
from sakany.app.stores.properties import PropertyStore

logger = logging.getLogger(__name__)

SAMPLE_PROPERTIES: List[Dict[str, Any]] = [
    {
        "title": "Modern Downtown Apartment",
        "description": "Beautiful modern apartment in the heart of downtown",
        "price": 500000,
        "location": "Downtown",
        "bedrooms": 2,
        "bathrooms": 2,
        "area": 1200,
        "type": "apartment",
        "features": ["parking", "gym", "pool"],
        "images": ["https://placehold.co/600x400"],
    },
    {
        "title": "Suburban Family Home",
        "description": "Spacious family home in a quiet neighborhood",
        "price": 750000,
        "location": "Suburbs",
        "bedrooms": 4,
        "bathrooms": 3,
        "area": 2500,
        "type": "house",
        "features": ["garage", "garden", "fireplace"],
        "images": ["https://placehold.co/600x400"],
    },
]


class PropertyService:
    def __init__(self, properties: PropertyStore):
        self.properties = properties

    async def list_properties(self) -> List[Property]:
        return await self.properties.list_all()

    async def featured_properties(self) -> List[Property]:
        return await self.properties.featured()

    async def get_property(self, property_id: int) -> Property:
        prop = await self.properties.get(property_id)
        if prop is None:
            raise NotFound("Property not found")
        return prop

    async def create_property(self, owner: User, fields: Dict[str, Any]) -> Property:
        prop = await self.properties.create({**fields, "user_id": owner.id})
        logger.info("User %s listed property %s", owner.id, prop.id)
        return prop

    async def seed_samples(self) -> int:
        """Insert the sample listings into an empty table; returns how many."""
        if await self.properties.count():
            return 0
        for sample in SAMPLE_PROPERTIES:
            await self.properties.create(sample)
        logger.info("Seeded %d sample properties", len(SAMPLE_PROPERTIES))
        return len(SAMPLE_PROPERTIES)
