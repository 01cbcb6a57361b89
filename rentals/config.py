"""Application configuration via environment variables."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel
from pydantic_settings import BaseSettings

log = logging.getLogger("rentals.config")

LOG_FORMAT = "%(asctime)s %(name)-20s %(levelname)-7s %(message)s"


class RankingWeights(BaseModel):
    """Additive scoring constants for the relevance ranker."""

    base: float = 10.0
    location: float = 20.0
    price: float = 15.0
    preferred_type: float = 25.0
    amenity: float = 10.0
    rating: float = 5.0          # per rating point
    image: float = 5.0
    verified: float = 10.0
    recency: float = 5.0
    recent_days: int = 7
    unbounded_price_fit: float = 0.5  # price fit when a range is given with no bounds


class Settings(BaseSettings):
    # Vocabulary (empty = bundled default)
    vocabulary_path: str = ""

    # Result presentation
    results_page_size: int = 3
    candidate_limit: int = 20
    max_ranked_results: int = 10

    # Ranking
    ranking: RankingWeights = RankingWeights()

    # Support
    support_contact: str = "+237 600 000 000"

    # Diagnostics
    log_level: str = "INFO"
    debug: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if self.vocabulary_path and not Path(self.vocabulary_path).is_file():
            raise ValueError(
                f"VOCABULARY_PATH={self.vocabulary_path} does not exist. "
                "Unset it to use the bundled vocabulary."
            )

        for name in ("results_page_size", "candidate_limit", "max_ranked_results"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be positive")

        if self.results_page_size > self.max_ranked_results:
            raise ValueError(
                "RESULTS_PAGE_SIZE cannot exceed MAX_RANKED_RESULTS "
                f"({self.results_page_size} > {self.max_ranked_results})"
            )

        if self.candidate_limit < self.max_ranked_results:
            warnings.append(
                "CANDIDATE_LIMIT is below MAX_RANKED_RESULTS; searches will never "
                "fill a full ranked list."
            )

        if self.debug:
            warnings.append("DEBUG=true: trace events are retained for every conversation.")

        return warnings


def configure_logging(level: str | None = None) -> None:
    """Install the root log handler used by every rentals logger."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )


settings = Settings()
