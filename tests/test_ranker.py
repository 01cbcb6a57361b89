"""Tests for RelevanceRanker: additive scoring and ordering."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from listings.schema import PropertyCandidate
from rentals.config import RankingWeights
from rentals.models.criteria import PriceRange, SearchCriteria
from rentals.models.profile import UserPreferenceProfile
from rentals.search.ranker import RelevanceRanker, amenity_overlap, location_match, price_fit

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
OLD = NOW - timedelta(days=90)


def make(pid, **overrides):
    fields = dict(
        id=pid,
        location="Molyko",
        price=50000,
        property_type="apartment",
        created_at=OLD,
    )
    fields.update(overrides)
    return PropertyCandidate(**fields)


@pytest.fixture
def ranker():
    return RelevanceRanker(weights=RankingWeights(), limit=10)


# ── Scoring helpers ─────────────────────────────────────────────────


class TestLocationMatch:
    def test_full_match(self):
        assert location_match("great soppo", "Great Soppo") == 1.0

    def test_canonical_tag_matches_listing_words(self):
        assert location_match("great_soppo", "Great Soppo") == 1.0

    def test_partial_word_match(self):
        assert location_match("buea town", "Buea") == 0.5

    def test_substring_either_way(self):
        assert location_match("soppo", "Great Soppo Junction") == 1.0
        assert location_match("molykoville", "Molyko") == 1.0

    def test_no_match(self):
        assert location_match("molyko", "Mile 16") == 0.0

    def test_empty_location(self):
        assert location_match("molyko", "") == 0.0


class TestPriceFit:
    def test_midpoint_scores_one(self):
        assert price_fit(50, PriceRange(min=0, max=100)) == 1.0

    def test_boundaries_score_zero(self):
        assert price_fit(0, PriceRange(min=0, max=100)) == 0.0
        assert price_fit(100, PriceRange(min=0, max=100)) == 0.0

    def test_outside_range(self):
        assert price_fit(150, PriceRange(min=0, max=100)) == 0.0
        assert price_fit(10, PriceRange(min=20, max=100)) == 0.0

    def test_linear_falloff(self):
        assert price_fit(75, PriceRange(min=0, max=100)) == pytest.approx(0.5)

    def test_missing_min_defaults_to_zero(self):
        assert price_fit(30000, PriceRange(max=60000)) == 1.0

    def test_missing_max_defaults_to_twice_price(self):
        # range becomes [100, 300], midpoint 200
        assert price_fit(150, PriceRange(min=100)) == pytest.approx(0.5)

    def test_unbounded_range(self):
        assert price_fit(123, PriceRange()) == 0.5
        assert price_fit(123, PriceRange(), unbounded=0.25) == 0.25

    def test_zero_width_range(self):
        assert price_fit(100, PriceRange(min=100, max=100)) == 1.0

    @pytest.mark.parametrize("low,high", [(0, 100), (40000, 90000), (1, 2), (10, 1000)])
    def test_midpoint_never_beaten(self, low, high):
        price_range = PriceRange(min=low, max=high)
        middle = (low + high) / 2
        best = price_fit(middle, price_range)
        for price in range(low, high + 1, max(1, (high - low) // 20)):
            assert price_fit(price, price_range) <= best


class TestAmenityOverlap:
    def test_fraction(self):
        assert amenity_overlap(["parking", "wifi"], ["parking", "water"]) == 0.5

    def test_case_insensitive(self):
        assert amenity_overlap(["WiFi"], ["wifi"]) == 1.0

    def test_nothing_requested(self):
        assert amenity_overlap([], ["parking"]) == 0.0


# ── Ranking ─────────────────────────────────────────────────────────


class TestRank:
    def test_full_score(self, ranker):
        candidate = make(
            "A",
            location="Great Soppo",
            price=100000,
            property_type="house",
            amenities=["parking", "water"],
            rating=4,
            images=["a.jpg"],
            verified=True,
            created_at=NOW - timedelta(days=2),
        )
        criteria = SearchCriteria(
            location="great soppo",
            price_range=PriceRange(min=50000, max=150000),
            amenities=["parking", "wifi"],
        )
        profile = UserPreferenceProfile(preferred_property_types=["house"])

        [result] = ranker.rank([candidate], criteria, profile, now=NOW)
        # 10 base + 20 location + 15 price + 25 type + 5 amenity + 20 rating + 5 image + 10 verified + 5 recency
        assert result.score == pytest.approx(115)
        assert result.id == "A"

    def test_empty_criteria_uses_base_and_quality_only(self, ranker):
        plain = make("plain")
        verified = make("verified", verified=True)
        rated = make("rated", rating=5.0, images=["x.jpg"])
        results = ranker.rank([plain, verified, rated], {}, {}, now=NOW)

        assert [r.id for r in results] == ["rated", "verified", "plain"]
        assert [r.score for r in results] == [40, 20, 10]

    def test_idempotent(self, ranker):
        candidates = [make(str(i), rating=i % 5, verified=i % 2 == 0) for i in range(8)]
        first = ranker.rank(candidates, {}, {}, now=NOW)
        second = ranker.rank(candidates, {}, {}, now=NOW)
        assert [r.id for r in first] == [r.id for r in second]

    def test_ties_keep_input_order(self, ranker):
        candidates = [make(pid) for pid in ("c", "a", "b")]
        assert [r.id for r in ranker.rank(candidates, {}, {}, now=NOW)] == ["c", "a", "b"]

    def test_truncated_to_limit(self, ranker):
        candidates = [make(str(i)) for i in range(15)]
        results = ranker.rank(candidates, None, None, now=NOW)
        assert len(results) == 10
        assert [r.id for r in results] == [str(i) for i in range(10)]

    def test_custom_limit(self):
        candidates = [make(str(i)) for i in range(5)]
        assert len(RelevanceRanker(limit=2).rank(candidates, now=NOW)) == 2

    def test_empty_candidates(self, ranker):
        assert ranker.rank([], SearchCriteria(location="molyko"), None, now=NOW) == []

    def test_preferred_type_from_dict_profile(self, ranker):
        apartment = make("apt")
        house = make("house", property_type="house")
        results = ranker.rank([apartment, house], {}, {"preferred_property_types": ["house"]}, now=NOW)
        assert results[0].id == "house"
        assert results[0].score - results[1].score == 25

    def test_camel_case_mappings_accepted(self, ranker):
        studio = make("studio", property_type="studio", price=55000)
        house = make("house", property_type="house", price=55000)
        criteria = {"propertyType": "studio", "priceRange": {"max": 60000}}
        profile = {"preferredPropertyTypes": ["studio"]}

        from_mappings = ranker.rank([house, studio], criteria, profile, now=NOW)
        from_models = ranker.rank(
            [house, studio],
            SearchCriteria(property_type="studio", price_range=PriceRange(max=60000)),
            UserPreferenceProfile(preferred_property_types=["studio"]),
            now=NOW,
        )

        assert [(r.id, r.score) for r in from_mappings] == [(r.id, r.score) for r in from_models]
        assert from_mappings[0].id == "studio"

    @pytest.mark.parametrize("criteria,profile", [
        ({"price_rnage": {"max": 60000}}, {}),
        ({}, {"preferredTypes": ["house"]}),
    ])
    def test_unknown_mapping_keys_rejected(self, ranker, criteria, profile):
        with pytest.raises(ValidationError):
            ranker.rank([make("x")], criteria, profile, now=NOW)

    def test_location_match_outranks_quality(self, ranker):
        far = make("far", location="Mile 16", verified=True)
        near = make("near", location="Molyko")
        results = ranker.rank([far, near], SearchCriteria(location="molyko"), None, now=NOW)
        assert [r.id for r in results] == ["near", "far"]

    def test_no_price_range_scores_no_price_term(self, ranker):
        [result] = ranker.rank([make("x")], SearchCriteria(), None, now=NOW)
        assert result.score == 10

    def test_unbounded_price_range_scores_half(self, ranker):
        criteria = SearchCriteria(price_range=PriceRange())
        [result] = ranker.rank([make("x")], criteria, None, now=NOW)
        assert result.score == pytest.approx(10 + 7.5)

    def test_recency_window(self, ranker):
        fresh = make("fresh", created_at=NOW - timedelta(days=6))
        stale = make("stale", created_at=NOW - timedelta(days=8))
        results = ranker.rank([stale, fresh], {}, {}, now=NOW)
        assert [r.id for r in results] == ["fresh", "stale"]
        assert results[0].score - results[1].score == 5

    def test_custom_weights(self):
        weights = RankingWeights(base=0, verified=100)
        ranker = RelevanceRanker(weights=weights, limit=10)
        [result] = ranker.rank([make("v", verified=True)], {}, {}, now=NOW)
        assert result.score == 100

    def test_ranker_does_not_mutate_candidates(self, ranker):
        candidate = make("m", amenities=["Parking"])
        before = candidate.model_dump()
        ranker.rank([candidate], SearchCriteria(amenities=["parking"]), None, now=NOW)
        assert candidate.model_dump() == before
