"""Pydantic models for per-user dialogue state.

A conversation is a value: handlers receive one and return an updated
copy, and the state machine persists the difference once per event.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from rentals.models.criteria import SearchCriteria
from rentals.models.profile import UserPreferenceProfile


class Flow(str, Enum):
    WELCOME = "welcome"
    PROPERTY_SEARCH = "property_search"
    BOOKING = "booking"
    PREFERENCES = "preferences"
    DEFAULT = "default"


class Step(str, Enum):
    # welcome
    MENU_SHOWN = "menu_shown"
    # property_search
    AWAITING_SEARCH_QUERY = "awaiting_search_query"
    AWAITING_SMART_SEARCH = "awaiting_smart_search"
    AWAITING_ADVANCED_SEARCH = "awaiting_advanced_search"
    VIEWING_RESULTS = "viewing_results"
    BROWSING_CAROUSEL = "browsing_carousel"
    # booking
    AWAITING_BOOKING_DETAILS = "awaiting_booking_details"
    # preferences
    COLLECTING_LOCATION = "collecting_location"
    COLLECTING_BUDGET = "collecting_budget"
    COLLECTING_TYPE = "collecting_type"
    COLLECTING_AMENITIES = "collecting_amenities"


# Steps each flow may set; anything else falls back to the flow default.
FLOW_STEPS: dict[str, frozenset[str]] = {
    Flow.WELCOME.value: frozenset({Step.MENU_SHOWN.value}),
    Flow.PROPERTY_SEARCH.value: frozenset({
        Step.AWAITING_SEARCH_QUERY.value,
        Step.AWAITING_SMART_SEARCH.value,
        Step.AWAITING_ADVANCED_SEARCH.value,
        Step.VIEWING_RESULTS.value,
        Step.BROWSING_CAROUSEL.value,
    }),
    Flow.BOOKING.value: frozenset({Step.AWAITING_BOOKING_DETAILS.value}),
    Flow.PREFERENCES.value: frozenset({
        Step.COLLECTING_LOCATION.value,
        Step.COLLECTING_BUDGET.value,
        Step.COLLECTING_TYPE.value,
        Step.COLLECTING_AMENITIES.value,
    }),
    Flow.DEFAULT.value: frozenset(),
}

SEARCH_PROMPT_STEPS = frozenset({
    Step.AWAITING_SEARCH_QUERY.value,
    Step.AWAITING_SMART_SEARCH.value,
    Step.AWAITING_ADVANCED_SEARCH.value,
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationContext(BaseModel):
    """Transient per-dialogue data carried between events."""

    search_results: list[str] = []        # full ranked ID list of the last search
    result_cursor: int = 0                # next index to page from
    carousel_index: int = 0
    current_property_id: Optional[str] = None
    last_criteria: Optional[SearchCriteria] = None
    last_query: str = ""
    pending_profile: Optional[UserPreferenceProfile] = None


class Conversation(BaseModel):
    id: str
    user_id: str
    flow: str = Flow.WELCOME.value
    step: Optional[str] = None
    context: ConversationContext = Field(default_factory=ConversationContext)
    last_activity: datetime = Field(default_factory=_utcnow)
    version: int = 0  # bumped by the store on every update

    @property
    def state_is_consistent(self) -> bool:
        """Whether (flow, step) is a pair the flow's handler recognizes."""
        if self.flow not in FLOW_STEPS:
            return False
        return self.step is None or self.step in FLOW_STEPS[self.flow]

    def moved_to(
        self,
        flow: Flow | str,
        step: Step | str | None = None,
        **context_updates: Any,
    ) -> "Conversation":
        """Return a copy in a new (flow, step) with context fields updated."""
        context = self.context.model_copy(update=context_updates, deep=True)
        return self.model_copy(
            update={
                "flow": Flow(flow).value,
                "step": Step(step).value if step is not None else None,
                "context": context,
            },
            deep=True,
        )

    def with_context(self, **context_updates: Any) -> "Conversation":
        """Return a copy with only context fields changed."""
        context = self.context.model_copy(update=context_updates, deep=True)
        return self.model_copy(update={"context": context}, deep=True)

    def revision(self) -> str:
        """Identifies the stored version; changes on every committed update."""
        return f"{self.id}:{self.version}"

    def phase_fields(self) -> dict[str, Any]:
        """The fields persisted when the dialogue phase changes."""
        return {
            "flow": self.flow,
            "step": self.step,
            "context": self.context.model_dump(mode="json"),
        }
