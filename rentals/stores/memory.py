"""In-memory RentalStore used for demos and tests."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from listings.sample import SAMPLE_DATA_PATH, load_sample_properties
from listings.schema import PropertyCandidate
from rentals.errors import CollaboratorError
from rentals.models.booking import BookingRequest
from rentals.models.conversation import Conversation
from rentals.models.profile import UserPreferenceProfile
from rentals.stores.base import CandidateFilter, RentalStore

log = logging.getLogger("rentals.stores.memory")

_UPDATABLE_FIELDS = {"flow", "step", "context"}


class InMemoryRentalStore(RentalStore):
    """Dict-backed store. Every read returns a copy, never stored state."""

    def __init__(self, properties: Iterable[PropertyCandidate] = ()) -> None:
        self.properties: dict[str, PropertyCandidate] = {}
        self.conversations: dict[str, Conversation] = {}
        self.conversation_by_user: dict[str, str] = {}
        self.profiles: dict[str, UserPreferenceProfile] = {}
        self.saved: dict[str, list[str]] = {}
        self.interactions: list[dict[str, Any]] = []
        self.bookings: dict[str, BookingRequest] = {}
        self.booking_keys: dict[str, str] = {}
        self.opted_out: set[str] = set()

        for candidate in properties:
            self.add_property(candidate)

    @classmethod
    def from_sample_data(cls, path: str | Path = SAMPLE_DATA_PATH) -> "InMemoryRentalStore":
        return cls(load_sample_properties(path))

    def add_property(self, candidate: PropertyCandidate) -> None:
        self.properties[candidate.id] = candidate.model_copy(deep=True)

    # Conversations ----------------------------------------------------------
    async def get_conversation(self, user_id: str) -> Optional[Conversation]:
        conversation_id = self.conversation_by_user.get(user_id)
        if conversation_id is None:
            return None
        return self.conversations[conversation_id].model_copy(deep=True)

    async def create_conversation(self, user_id: str) -> Conversation:
        conversation = Conversation(id=uuid.uuid4().hex, user_id=user_id)
        self.conversations[conversation.id] = conversation
        self.conversation_by_user[user_id] = conversation.id
        log.debug("Conversation %s created", conversation.id)
        return conversation.model_copy(deep=True)

    async def update_conversation(self, conversation_id: str, fields: dict[str, Any]) -> None:
        current = self.conversations.get(conversation_id)
        if current is None:
            raise CollaboratorError("update_conversation", f"unknown conversation {conversation_id}")
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise CollaboratorError("update_conversation", f"fields not updatable: {sorted(unknown)}")

        data = current.model_dump()
        data.update(fields)
        data["last_activity"] = datetime.now(timezone.utc)
        data["version"] = current.version + 1
        self.conversations[conversation_id] = Conversation.model_validate(data)

    # Users ------------------------------------------------------------------
    async def get_preference_profile(self, user_id: str) -> Optional[UserPreferenceProfile]:
        profile = self.profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    async def update_preference_profile(self, user_id: str, profile: UserPreferenceProfile) -> None:
        self.profiles[user_id] = profile.model_copy(deep=True)

    async def set_opted_out(self, user_id: str, opted_out: bool) -> None:
        if opted_out:
            self.opted_out.add(user_id)
        else:
            self.opted_out.discard(user_id)

    # Properties -------------------------------------------------------------
    async def search_candidates(self, filters: CandidateFilter) -> list[PropertyCandidate]:
        matches = [c for c in self.properties.values() if filters.accepts(c)]
        return [c.model_copy(deep=True) for c in matches[: filters.limit]]

    async def get_property(self, property_id: str) -> Optional[PropertyCandidate]:
        candidate = self.properties.get(property_id)
        return candidate.model_copy(deep=True) if candidate else None

    # Interactions -----------------------------------------------------------
    async def record_interaction(self, user_id: str, property_id: str, verb: str) -> None:
        self.interactions.append({
            "user_id": user_id,
            "property_id": property_id,
            "verb": verb,
            "timestamp": datetime.now(timezone.utc),
        })

    async def add_saved_property(self, user_id: str, property_id: str) -> None:
        saved = self.saved.setdefault(user_id, [])
        if property_id not in saved:
            saved.append(property_id)

    async def get_saved_properties(self, user_id: str) -> list[PropertyCandidate]:
        return [
            self.properties[pid].model_copy(deep=True)
            for pid in self.saved.get(user_id, [])
            if pid in self.properties
        ]

    async def create_booking_request(self, request: BookingRequest) -> str:
        booking_id = self.booking_keys.get(request.request_key) if request.request_key else None
        if booking_id is None:
            booking_id = uuid.uuid4().hex
            if request.request_key:
                self.booking_keys[request.request_key] = booking_id
        else:
            log.info("Booking %s replaced by a repeated request", booking_id)
        self.bookings[booking_id] = request.model_copy(deep=True)
        return booking_id
