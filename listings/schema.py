"""Pydantic model for rental property records owned by the property store."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator


class PropertyCandidate(BaseModel):
    id: str
    title: str = ""
    location: str
    price: int  # monthly rent
    property_type: str  # apartment, house, studio, duplex, room
    bedrooms: int = 0
    bathrooms: float = 0
    amenities: list[str] = []
    rating: Optional[float] = None  # 0-5
    images: list[str] = []
    verified: bool = False
    is_featured: bool = False
    is_available: bool = True
    created_at: datetime
    description: str = ""
    deposit: Optional[int] = None
    size_sqm: Optional[int] = None
    nearby_places: list[str] = []
    agent_name: str = ""
    agent_phone: str = ""
    agent_email: str = ""

    @field_validator("amenities")
    @classmethod
    def _normalize_amenities(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in value:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @field_validator("created_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def summary(self) -> dict:
        """Compact fields for a result card; the transport renders the text."""
        return {
            "id": self.id,
            "title": self.title or self.property_type.title(),
            "location": self.location,
            "price": self.price,
            "property_type": self.property_type,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "amenities": self.amenities[:3],
            "image": self.images[0] if self.images else "",
            "verified": self.verified,
        }
