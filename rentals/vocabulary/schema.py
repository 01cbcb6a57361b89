"""Pydantic models for the keyword vocabulary.

The vocabulary is the single declarative source for every rule table the
criteria extractor uses: canonical tag -> synonyms dictionaries, price
keyword bands, bedroom phrases, intent keyword sets and global commands.
Dictionary order is significant: the first tag with a matching synonym wins.
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator, model_validator


class PriceBand(BaseModel):
    """Fixed price bounds attached to a keyword such as "cheap"."""

    min: int | None = None
    max: int | None = None

    @model_validator(mode="after")
    def _has_a_bound(self) -> "PriceBand":
        if self.min is None and self.max is None:
            raise ValueError("price band needs at least one of min/max")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"price band min {self.min} is above max {self.max}")
        return self


def _lower_synonyms(table: dict[str, list[str]]) -> dict[str, list[str]]:
    cleaned: dict[str, list[str]] = {}
    for tag, synonyms in table.items():
        words = [s.strip().lower() for s in synonyms if s and s.strip()]
        if not words:
            raise ValueError(f"tag '{tag}' has no synonyms")
        cleaned[tag] = words
    return cleaned


class Vocabulary(BaseModel):
    """A complete keyword vocabulary for one market."""

    id: str
    currency: str = ""
    locations: dict[str, list[str]] = {}
    property_types: dict[str, list[str]] = {}
    amenities: dict[str, list[str]] = {}
    price_keywords: dict[str, PriceBand] = {}
    bedroom_keywords: dict[str, int] = {}
    intents: dict[str, list[str]] = {}
    global_commands: dict[str, list[str]] = {}
    example_queries: list[str] = []

    @field_validator("locations", "property_types", "amenities", "intents", "global_commands")
    @classmethod
    def _normalize_synonyms(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        return _lower_synonyms(value)

    @field_validator("price_keywords", "bedroom_keywords")
    @classmethod
    def _lower_keys(cls, value: dict) -> dict:
        return {k.strip().lower(): v for k, v in value.items()}

    def command_for(self, text: str) -> str | None:
        """Return the global command tag whose phrase equals ``text`` exactly."""
        normalized = " ".join(text.lower().split())
        for command, phrases in self.global_commands.items():
            if normalized in phrases:
                return command
        return None
