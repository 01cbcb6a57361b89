"""Query interpretation and relevance ranking."""

from .extractor import CriteriaExtractor, parse_query
from .ranker import RelevanceRanker

__all__ = ["CriteriaExtractor", "RelevanceRanker", "parse_query"]
