"""Pydantic models for structured search criteria.

Every field except ``intent`` is optional, and an absent field means
"unconstrained". Fields are never set to empty placeholders.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# Camel-case keys ("priceRange") are accepted alongside field names; unknown
# keys raise instead of being dropped.
SPARSE_RECORD_CONFIG = ConfigDict(populate_by_name=True, extra="forbid")


class PriceRange(BaseModel):
    model_config = SPARSE_RECORD_CONFIG

    min: Optional[int] = None
    max: Optional[int] = None

    @property
    def is_bounded(self) -> bool:
        return self.min is not None or self.max is not None


class BedroomRange(BaseModel):
    """Closed bedroom range; a single detected count has min == max."""

    model_config = SPARSE_RECORD_CONFIG

    min: int
    max: int


class SearchCriteria(BaseModel):
    model_config = SPARSE_RECORD_CONFIG

    location: Optional[str] = None
    property_type: Optional[str] = Field(default=None, alias="propertyType")
    price_range: Optional[PriceRange] = Field(default=None, alias="priceRange")
    bedrooms: Optional[BedroomRange] = None
    amenities: Optional[list[str]] = None
    intent: str = "search"

    def has_search_signal(self) -> bool:
        """True when anything beyond the intent was extracted."""
        return any(
            value is not None
            for value in (self.location, self.property_type, self.price_range, self.bedrooms, self.amenities)
        )

    def merged_with(self, newer: "SearchCriteria") -> "SearchCriteria":
        """Overlay ``newer`` on this record; fields absent in ``newer`` are kept."""
        data = self.model_dump(exclude_none=True)
        data.update(newer.model_dump(exclude_none=True))
        return SearchCriteria(**data)

    def to_record(self) -> dict[str, Any]:
        """Sparse dict form, omitting every unconstrained field."""
        return self.model_dump(exclude_none=True)
