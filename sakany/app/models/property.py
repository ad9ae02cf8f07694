# sakany/app/models/property.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, JSON

from sakany.app.db.base import Base
from sakany.app.models.user import utcnow


class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)

    # Whole currency units
    price = Column(Integer, nullable=False)
    location = Column(String(200), nullable=False)
    bedrooms = Column(Integer, nullable=False)
    bathrooms = Column(Integer, nullable=False)
    area = Column(Integer, nullable=False)
    type = Column(String(50), nullable=False)

    # Ordered lists, empty rather than NULL
    features = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)

    # Owner; listings outlive a deleted user
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
