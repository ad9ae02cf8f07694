# sakany/app/schemas/property.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PropertyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str
    # Whole currency units
    price: int = Field(..., ge=0)
    location: str = Field(..., min_length=1, max_length=200)
    bedrooms: int = Field(..., ge=0)
    bathrooms: int = Field(..., ge=0)
    area: int = Field(..., ge=0)
    type: str = Field(..., min_length=1, max_length=50)
    features: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)


class PropertyResponse(BaseModel):
    id: int
    title: str
    description: str
    price: int
    location: str
    bedrooms: int
    bathrooms: int
    area: int
    type: str
    features: List[str] = []
    images: List[str] = []
    user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
