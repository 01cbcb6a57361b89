"""Pydantic model for the learned user preference profile."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from rentals.models.criteria import SPARSE_RECORD_CONFIG, PriceRange


class UserPreferenceProfile(BaseModel):
    """Sparse preferences consumed as ranking input.

    Explicit settings come from the preferences flow; ``type_scores`` is
    reinforced implicitly by property actions.
    """

    model_config = SPARSE_RECORD_CONFIG

    preferred_property_types: list[str] = Field(default=[], alias="preferredPropertyTypes")
    price_range: Optional[PriceRange] = Field(default=None, alias="priceRange")
    preferred_amenities: list[str] = Field(default=[], alias="preferredAmenities")
    preferred_locations: list[str] = Field(default=[], alias="preferredLocations")
    type_scores: dict[str, float] = Field(default={}, alias="typeScores")
