"""Relevance ranker: additive, fixed-weight scoring of property candidates.

score = base
      + location  * fraction of criteria-location words matching a listing word
      + price     * closeness to the middle of the requested price range
      + preferred_type   if the listing type is in the user's preferred types
      + amenity   * fraction of requested amenities the listing has
      + rating    * rating
      + image     if the listing has at least one image
      + verified  if the listing is verified
      + recency   if the listing was created within ``recent_days``

Weights come from RankingWeights; nothing here is learned. Results are
ordered by descending score with ties kept in input order, and truncated.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional, Union

from listings.schema import PropertyCandidate
from rentals.config import RankingWeights, settings
from rentals.models.criteria import PriceRange, SearchCriteria
from rentals.models.profile import UserPreferenceProfile
from rentals.models.results import RankedResult

log = logging.getLogger("rentals.search.ranker")

CriteriaLike = Union[SearchCriteria, Mapping, None]
ProfileLike = Union[UserPreferenceProfile, Mapping, None]


def location_match(search_location: str, property_location: str) -> float:
    """Fraction of search words found in (or containing) a listing location word."""
    search_terms = search_location.lower().replace("_", " ").split()
    property_terms = property_location.lower().replace("_", " ").split()
    if not search_terms or not property_terms:
        return 0.0

    matches = sum(
        1 for term in search_terms
        if any(term in prop_term or prop_term in term for prop_term in property_terms)
    )
    return matches / len(search_terms)


def price_fit(price: int, price_range: PriceRange, unbounded: float = 0.5) -> float:
    """1.0 at the middle of [min, max], falling linearly to 0 at the bounds.

    A missing min is 0 and a missing max is twice the price, so a present
    price always lies inside a one-sided range.
    """
    if not price_range.is_bounded:
        return unbounded

    low = price_range.min if price_range.min is not None else 0
    high = price_range.max if price_range.max is not None else price * 2
    if price < low or price > high:
        return 0.0

    half_width = (high - low) / 2
    if half_width <= 0:
        return 1.0
    middle = (low + high) / 2
    return max(0.0, 1 - abs(price - middle) / half_width)


def amenity_overlap(requested: Iterable[str], available: Iterable[str]) -> float:
    requested = [a.lower() for a in requested]
    if not requested:
        return 0.0
    have = {a.lower() for a in available}
    return sum(1 for a in requested if a in have) / len(requested)


class RelevanceRanker:
    """Scores and orders candidates against criteria and a preference profile."""

    def __init__(
        self,
        weights: RankingWeights | None = None,
        limit: int | None = None,
    ) -> None:
        self._weights = weights or settings.ranking
        self._limit = limit or settings.max_ranked_results

    @property
    def weights(self) -> RankingWeights:
        return self._weights

    def rank(
        self,
        candidates: Iterable[PropertyCandidate],
        criteria: CriteriaLike = None,
        profile: ProfileLike = None,
        now: Optional[datetime] = None,
    ) -> list[RankedResult]:
        """Return at most ``limit`` results by descending score (stable)."""
        criteria = _as_criteria(criteria)
        profile = _as_profile(profile)
        now = now or datetime.now(timezone.utc)

        scored = [
            RankedResult(candidate=candidate, score=self.score(candidate, criteria, profile, now))
            for candidate in candidates
        ]
        ranked = sorted(scored, key=lambda r: -r.score)[: self._limit]

        log.debug(
            "Ranked %d candidates, returning %d (top score %.2f)",
            len(scored), len(ranked), ranked[0].score if ranked else 0.0,
        )
        return ranked

    def score(
        self,
        candidate: PropertyCandidate,
        criteria: SearchCriteria,
        profile: UserPreferenceProfile,
        now: datetime,
    ) -> float:
        w = self._weights
        score = w.base

        if criteria.location and candidate.location:
            score += location_match(criteria.location, candidate.location) * w.location

        if criteria.price_range is not None:
            score += price_fit(candidate.price, criteria.price_range, w.unbounded_price_fit) * w.price

        if candidate.property_type in profile.preferred_property_types:
            score += w.preferred_type

        if criteria.amenities:
            score += amenity_overlap(criteria.amenities, candidate.amenities) * w.amenity

        if candidate.rating:
            score += candidate.rating * w.rating
        if candidate.images:
            score += w.image
        if candidate.verified:
            score += w.verified

        if now - candidate.created_at < timedelta(days=w.recent_days):
            score += w.recency

        return score


def _as_criteria(criteria: CriteriaLike) -> SearchCriteria:
    if criteria is None:
        return SearchCriteria()
    if isinstance(criteria, SearchCriteria):
        return criteria
    return SearchCriteria(**dict(criteria))


def _as_profile(profile: ProfileLike) -> UserPreferenceProfile:
    if profile is None:
        return UserPreferenceProfile()
    if isinstance(profile, UserPreferenceProfile):
        return profile
    return UserPreferenceProfile(**dict(profile))
