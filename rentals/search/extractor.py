"""Criteria extractor: free-text utterance -> sparse SearchCriteria.

Each field is resolved independently from the vocabulary tables:

  location       canonical tag via dictionary synonyms, then "in/at/near/around X" or
                 "X area/neighborhood" phrases of 3-29 characters
  property_type  dictionary synonyms (first tag in table order wins)
  price_range    price keyword bands, else the first numeric pattern in
                 priority order: range, under-qualified, over-qualified, bare
  bedrooms       bedroom phrases, else "N bedroom/bed/br"; always min == max
  amenities      every tag with a synonym anywhere in the text
  intent         first intent table with a matching keyword, else "search"

Matching is case-insensitive and anchored on word boundaries, so
punctuation around a synonym is ignored and "room" never matches inside
"bedroom". Fields that resolve to nothing are omitted.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from rentals.config import settings
from rentals.models.criteria import BedroomRange, PriceRange, SearchCriteria
from rentals.vocabulary import Vocabulary, default_vocabulary

log = logging.getLogger("rentals.search.extractor")

MIN_PHRASE_LEN = 3
MAX_PHRASE_LEN = 29
MAX_SUGGESTIONS = 5

_NUMBER = r"(\d{1,3}(?:,\d{3})+|\d+(?:\.\d+)?)(?:\s?(k)\b)?"
_CURRENCY = r"(?:fcfa|cfa|xaf|francs?|frs?)"

_RANGE_PATTERNS = [
    re.compile(rf"\b(?:between|from)\s+{_NUMBER}\s*(?:to|and|-)\s*{_NUMBER}"),
    re.compile(rf"(?<![\w.,]){_NUMBER}\s*(?:-|to)\s*{_NUMBER}"),
]
_UNDER_PATTERN = re.compile(
    rf"\b(?:under|below|less\s+than|less|cheaper\s+than|up\s+to|max(?:imum)?|at\s+most)\s+{_NUMBER}"
)
_OVER_PATTERN = re.compile(
    rf"\b(?:above|over|more\s+than|more|at\s+least|min(?:imum)?)\s+{_NUMBER}"
)
_BARE_PATTERN = re.compile(rf"(?<![\w.,]){_NUMBER}(?:\s*{_CURRENCY})?(?![\w])")
_BEDROOM_PATTERNS = [
    re.compile(r"(\d+)\s*-?\s*(?:bedrooms?|beds?|br)\b"),
    re.compile(r"\b(?:bedrooms?|beds?)\s*(\d+)"),
]
_BEDROOM_SPAN = re.compile(r"\d+\s*-?\s*(?:bedrooms?|beds?|br|bathrooms?|baths?)\b")

_PLACE_PATTERNS = [
    re.compile(
        r"\b(?:in|at|near|around)\s+([a-z][a-z'\s-]*?)"
        r"(?=\s+(?:under|below|less|above|over|more|between|from|with|for|and|or|at|in|near|around|that)\b"
        r"|\s*[,.!?;:]|\s*\d|$)"
    ),
    re.compile(r"\b([a-z][a-z'-]*(?:\s+[a-z][a-z'-]*)?)\s+(?:area|neighborhood|neighbourhood)\b"),
]
_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+")
_PLACE_STOPWORDS = {
    "the", "a", "an", "my", "your", "this", "that", "any", "some", "all",
    "town", "city", "here", "there", "it", "me", "mind", "total",
}


def _compile_term(term: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(term)}(?!\w)")


def _to_int(digits: str, suffix: Optional[str]) -> int:
    value = float(digits.replace(",", ""))
    if suffix:
        value *= 1000
    return int(value)


class CriteriaExtractor:
    """Deterministic, table-driven query parser."""

    def __init__(self, vocabulary: Vocabulary | None = None) -> None:
        self._vocab = vocabulary or default_vocabulary(settings.vocabulary_path)
        self._locations = self._compile_table(self._vocab.locations)
        self._types = self._compile_table(self._vocab.property_types)
        self._amenities = self._compile_table(self._vocab.amenities)
        self._intents = self._compile_table(self._vocab.intents)
        self._price_keywords = [
            (_compile_term(keyword), band) for keyword, band in self._vocab.price_keywords.items()
        ]
        self._bedroom_keywords = [
            (_compile_term(phrase), count) for phrase, count in self._vocab.bedroom_keywords.items()
        ]

    @staticmethod
    def _compile_table(table: dict[str, list[str]]) -> list[tuple[str, list[re.Pattern[str]]]]:
        return [(tag, [_compile_term(s) for s in synonyms]) for tag, synonyms in table.items()]

    @property
    def vocabulary(self) -> Vocabulary:
        return self._vocab

    # ── Public API ────────────────────────────────────────────

    def parse_query(self, utterance: str) -> SearchCriteria:
        """Turn an utterance into criteria. Never raises."""
        try:
            text = " ".join(str(utterance or "").lower().split())
            fields: dict = {"intent": self.extract_intent(text)}

            location = self.extract_location(text)
            if location:
                fields["location"] = location
            property_type = self.extract_property_type(text)
            if property_type:
                fields["property_type"] = property_type
            price_range = self.extract_price_range(text)
            if price_range:
                fields["price_range"] = price_range
            bedrooms = self.extract_bedrooms(text)
            if bedrooms:
                fields["bedrooms"] = bedrooms
            amenities = self.extract_amenities(text)
            if amenities:
                fields["amenities"] = amenities

            criteria = SearchCriteria(**fields)
        except Exception:
            log.exception("Criteria extraction failed; using neutral criteria")
            return SearchCriteria(intent="search")

        log.debug("Parsed %r -> %s", utterance, criteria.to_record())
        return criteria

    # ── Field extractors (text is already lower-cased) ────────

    @staticmethod
    def _first_tag(text: str, table: list[tuple[str, list[re.Pattern[str]]]]) -> Optional[str]:
        for tag, patterns in table:
            for pattern in patterns:
                if pattern.search(text):
                    return tag
        return None

    def extract_location(self, text: str) -> Optional[str]:
        tag = self._first_tag(text, self._locations)
        if tag:
            return tag

        for pattern in _PLACE_PATTERNS:
            for match in pattern.finditer(text):
                phrase = _LEADING_ARTICLE.sub("", " ".join(match.group(1).split()))
                if phrase in _PLACE_STOPWORDS or self._is_vocabulary_word(phrase):
                    continue
                if MIN_PHRASE_LEN <= len(phrase) <= MAX_PHRASE_LEN:
                    return phrase
        return None

    def _is_vocabulary_word(self, phrase: str) -> bool:
        """Reject fallback phrases that are really a type, amenity or price word."""
        return (
            self._first_tag(phrase, self._types) is not None
            or self._first_tag(phrase, self._amenities) is not None
            or any(pattern.fullmatch(phrase) for pattern, _ in self._price_keywords)
        )

    def extract_property_type(self, text: str) -> Optional[str]:
        return self._first_tag(text, self._types)

    def extract_price_range(self, text: str) -> Optional[PriceRange]:
        for pattern, band in self._price_keywords:
            if pattern.search(text):
                return PriceRange(min=band.min, max=band.max)

        # Numbers that belong to a location name or a bedroom count are not prices.
        scrubbed = _BEDROOM_SPAN.sub(" ", text)
        for _, patterns in self._locations:
            for pattern in patterns:
                scrubbed = pattern.sub(" ", scrubbed)

        for pattern in _RANGE_PATTERNS:
            match = pattern.search(scrubbed)
            if match:
                low = _to_int(match.group(1), match.group(2))
                high = _to_int(match.group(3), match.group(4))
                if low > high:
                    low, high = high, low
                return PriceRange(min=low, max=high)

        match = _UNDER_PATTERN.search(scrubbed)
        if match:
            return PriceRange(max=_to_int(match.group(1), match.group(2)))

        match = _OVER_PATTERN.search(scrubbed)
        if match:
            return PriceRange(min=_to_int(match.group(1), match.group(2)))

        match = _BARE_PATTERN.search(scrubbed)
        if match:
            return PriceRange(max=_to_int(match.group(1), match.group(2)))
        return None

    def extract_bedrooms(self, text: str) -> Optional[BedroomRange]:
        for pattern, count in self._bedroom_keywords:
            if pattern.search(text):
                return BedroomRange(min=count, max=count)

        for pattern in _BEDROOM_PATTERNS:
            match = pattern.search(text)
            if match:
                count = int(match.group(1))
                return BedroomRange(min=count, max=count)
        return None

    def extract_amenities(self, text: str) -> Optional[list[str]]:
        found = [
            tag for tag, patterns in self._amenities
            if any(pattern.search(text) for pattern in patterns)
        ]
        return found or None

    def extract_intent(self, text: str) -> str:
        return self._first_tag(text, self._intents) or "search"

    # ── Suggestions ───────────────────────────────────────────

    def suggest_queries(self, partial: str) -> list[str]:
        """Query completions for a partial utterance, at most five."""
        query = " ".join(str(partial or "").lower().split())
        suggestions: list[str] = []

        if query:
            for tag, synonyms in self._vocab.locations.items():
                if any(query in synonym for synonym in synonyms):
                    suggestions.append(f"Properties in {tag.replace('_', ' ').title()}")
            for tag, synonyms in self._vocab.property_types.items():
                if any(query in synonym for synonym in synonyms):
                    suggestions.append(f"{tag.title()} properties")

        if len(query) < 3:
            suggestions.extend(self._vocab.example_queries)

        return suggestions[:MAX_SUGGESTIONS]


_default_extractor: CriteriaExtractor | None = None


def parse_query(utterance: str) -> SearchCriteria:
    """Parse with the default, lazily built extractor."""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = CriteriaExtractor()
    return _default_extractor.parse_query(utterance)
