"""Persistence collaborators for the rentals core."""

from .base import CandidateFilter, RentalStore
from .memory import InMemoryRentalStore

__all__ = ["CandidateFilter", "InMemoryRentalStore", "RentalStore"]
