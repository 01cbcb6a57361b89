"""Declarative keyword vocabulary for query interpretation."""

from .loader import DEFAULT_VOCABULARY_PATH, default_vocabulary, load_vocabulary
from .schema import PriceBand, Vocabulary

__all__ = [
    "DEFAULT_VOCABULARY_PATH",
    "PriceBand",
    "Vocabulary",
    "default_vocabulary",
    "load_vocabulary",
]
