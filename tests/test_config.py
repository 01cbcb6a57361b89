"""Tests for Settings: environment loading and startup validation."""

import logging

import pytest

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from rentals.config import LOG_FORMAT, RankingWeights, Settings, configure_logging
from rentals.errors import CollaboratorError, RentalsError, VocabularyError


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.results_page_size == 3
        assert s.max_ranked_results == 10
        assert s.ranking == RankingWeights()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RESULTS_PAGE_SIZE", "5")
        monkeypatch.setenv("RANKING__LOCATION", "30")
        s = Settings(_env_file=None)
        assert s.results_page_size == 5
        assert s.ranking.location == 30
        assert s.ranking.base == 10

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("SUPPORT_CONTACT=+237 699 000 000\nDEBUG=true\n", encoding="utf-8")
        s = Settings(_env_file=env)
        assert s.support_contact == "+237 699 000 000"
        assert s.debug is True


class TestValidateStartup:
    def test_valid_defaults(self):
        assert Settings(_env_file=None).validate_startup() == []

    def test_missing_vocabulary(self, tmp_path):
        s = Settings(_env_file=None, vocabulary_path=str(tmp_path / "nope.json"))
        with pytest.raises(ValueError, match="VOCABULARY_PATH"):
            s.validate_startup()

    @pytest.mark.parametrize("field", ["results_page_size", "candidate_limit", "max_ranked_results"])
    def test_non_positive_limits(self, field):
        s = Settings(_env_file=None, **{field: 0})
        with pytest.raises(ValueError, match=field.upper()):
            s.validate_startup()

    def test_page_larger_than_results(self):
        s = Settings(_env_file=None, results_page_size=12)
        with pytest.raises(ValueError, match="RESULTS_PAGE_SIZE"):
            s.validate_startup()

    def test_warnings(self):
        s = Settings(_env_file=None, candidate_limit=5, debug=True)
        warnings = s.validate_startup()
        assert len(warnings) == 2
        assert any("CANDIDATE_LIMIT" in w for w in warnings)


class TestLoggingAndErrors:
    def test_configure_logging(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))
        configure_logging("debug")
        assert calls == {"level": "DEBUG", "format": LOG_FORMAT}

    def test_error_hierarchy(self):
        err = CollaboratorError("search_candidates", "timeout")
        assert isinstance(err, RentalsError)
        assert issubclass(VocabularyError, RentalsError)
        assert err.operation == "search_candidates"
        assert str(err) == "search_candidates failed: timeout"
        assert str(CollaboratorError("send_text")) == "send_text failed"
