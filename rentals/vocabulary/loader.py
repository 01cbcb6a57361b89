"""Load keyword vocabularies from JSON files."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError

from rentals.errors import VocabularyError
from rentals.vocabulary.schema import Vocabulary

log = logging.getLogger("rentals.vocabulary")

DEFAULT_VOCABULARY_PATH = Path(__file__).resolve().parent / "default.json"


def load_vocabulary(path: str | Path) -> Vocabulary:
    """Load and validate a vocabulary file.

    Raises VocabularyError if the file is missing, is not valid JSON, or
    does not match the Vocabulary schema.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise VocabularyError(f"Cannot read vocabulary {path}: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise VocabularyError(f"Vocabulary {path} is not valid JSON: {exc}") from exc

    try:
        vocabulary = Vocabulary(**data)
    except (TypeError, ValidationError) as exc:
        raise VocabularyError(f"Vocabulary {path} is invalid: {exc}") from exc

    log.info(
        "Vocabulary %s loaded: %d locations, %d property types, %d amenities",
        vocabulary.id,
        len(vocabulary.locations),
        len(vocabulary.property_types),
        len(vocabulary.amenities),
    )
    return vocabulary


@lru_cache(maxsize=None)
def _cached(path: str) -> Vocabulary:
    return load_vocabulary(path)


def default_vocabulary(path: str | Path | None = None) -> Vocabulary:
    """Return the configured vocabulary, loaded once per path."""
    if path is None or str(path) == "":
        path = DEFAULT_VOCABULARY_PATH
    return _cached(str(Path(path).resolve()))
