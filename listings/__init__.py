"""Rental listing records."""

from .schema import PropertyCandidate

__all__ = ["PropertyCandidate"]
