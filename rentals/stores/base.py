"""Abstract base class for the rentals persistence collaborator.

Defines everything the conversation core reads or writes: conversations,
preference profiles, property candidates, interactions, saved lists and
booking requests. Any backend (a document store, SQL, in-memory) implements
this ABC.

Lookups that find nothing return ``None`` (or an empty list); failures of
the backend itself surface as ``CollaboratorError``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from listings.schema import PropertyCandidate
from rentals.models.booking import BookingRequest
from rentals.models.conversation import Conversation
from rentals.models.criteria import SearchCriteria
from rentals.models.profile import UserPreferenceProfile


@dataclass
class CandidateFilter:
    """Hard filters applied by the store before ranking.

    Location and amenities are not filters here; the ranker scores them.
    """

    property_type: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    min_bedrooms: Optional[int] = None
    max_bedrooms: Optional[int] = None
    available_only: bool = True
    featured_only: bool = False
    limit: int = 20

    @classmethod
    def from_criteria(cls, criteria: SearchCriteria, limit: int = 20) -> "CandidateFilter":
        price = criteria.price_range
        bedrooms = criteria.bedrooms
        return cls(
            property_type=criteria.property_type,
            min_price=price.min if price else None,
            max_price=price.max if price else None,
            min_bedrooms=bedrooms.min if bedrooms else None,
            max_bedrooms=bedrooms.max if bedrooms else None,
            limit=limit,
        )

    def accepts(self, candidate: PropertyCandidate) -> bool:
        if self.available_only and not candidate.is_available:
            return False
        if self.featured_only and not candidate.is_featured:
            return False
        if self.property_type and candidate.property_type != self.property_type:
            return False
        if self.min_price is not None and candidate.price < self.min_price:
            return False
        if self.max_price is not None and candidate.price > self.max_price:
            return False
        if self.min_bedrooms is not None and candidate.bedrooms < self.min_bedrooms:
            return False
        if self.max_bedrooms is not None and candidate.bedrooms > self.max_bedrooms:
            return False
        return True


class RentalStore(ABC):
    """Abstract persistence backend for the rentals core."""

    # ── Conversations ─────────────────────────────────────────

    @abstractmethod
    async def get_conversation(self, user_id: str) -> Optional[Conversation]:
        """Return the user's conversation, or None if they have none yet."""

    @abstractmethod
    async def create_conversation(self, user_id: str) -> Conversation:
        """Create a fresh conversation (flow=welcome, no step) for the user."""

    @abstractmethod
    async def update_conversation(self, conversation_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update, refresh ``last_activity`` and bump ``version``.

        Args:
            conversation_id: The conversation to update.
            fields: Any of ``flow``, ``step``, ``context`` (JSON form).
        """

    # ── Users ─────────────────────────────────────────────────

    @abstractmethod
    async def get_preference_profile(self, user_id: str) -> Optional[UserPreferenceProfile]:
        """Return the stored preference profile, or None."""

    @abstractmethod
    async def update_preference_profile(self, user_id: str, profile: UserPreferenceProfile) -> None:
        """Replace the user's preference profile."""

    @abstractmethod
    async def set_opted_out(self, user_id: str, opted_out: bool) -> None:
        """Record whether the user asked to stop receiving messages."""

    # ── Properties ────────────────────────────────────────────

    @abstractmethod
    async def search_candidates(self, filters: CandidateFilter) -> list[PropertyCandidate]:
        """Return at most ``filters.limit`` listings passing every hard filter."""

    @abstractmethod
    async def get_property(self, property_id: str) -> Optional[PropertyCandidate]:
        """Return one listing by id, or None."""

    # ── Interactions ──────────────────────────────────────────

    @abstractmethod
    async def record_interaction(self, user_id: str, property_id: str, verb: str) -> None:
        """Append an interaction-tracking event."""

    @abstractmethod
    async def add_saved_property(self, user_id: str, property_id: str) -> None:
        """Add a listing to the user's saved list (idempotent)."""

    @abstractmethod
    async def get_saved_properties(self, user_id: str) -> list[PropertyCandidate]:
        """Return the user's saved listings, oldest first."""

    @abstractmethod
    async def create_booking_request(self, request: BookingRequest) -> str:
        """Persist a tour request and return its id.

        Idempotent on ``request.request_key``: a second request with the same
        non-empty key replaces the first and returns the same id.
        """
