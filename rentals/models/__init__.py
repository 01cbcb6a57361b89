"""Data models for the rentals core."""

from .booking import BookingRequest
from .conversation import Conversation, ConversationContext, Flow, Step
from .criteria import BedroomRange, PriceRange, SearchCriteria
from .events import ActionVerb, EventType, InboundEvent, MenuSelection, PropertyAction
from .profile import UserPreferenceProfile
from .replies import Choice, ListSection, Reply, ReplyKind
from .results import RankedResult

__all__ = [
    "ActionVerb",
    "BedroomRange",
    "BookingRequest",
    "Choice",
    "Conversation",
    "ConversationContext",
    "EventType",
    "Flow",
    "InboundEvent",
    "ListSection",
    "MenuSelection",
    "PriceRange",
    "PropertyAction",
    "RankedResult",
    "Reply",
    "ReplyKind",
    "SearchCriteria",
    "Step",
    "UserPreferenceProfile",
]
