"""Inbound chat events, normalized at the transport boundary.

Button and list selections are parsed once, here, into either a
``PropertyAction`` (a verb scoped to one property) or a ``MenuSelection``.
Nothing downstream re-parses selection strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class EventType(str, Enum):
    TEXT = "text"
    BUTTON = "button"
    LIST = "list"
    MEDIA = "media"


class ActionVerb(str, Enum):
    VIEW = "view"
    GALLERY = "gallery"
    BOOK = "book"
    CONTACT = "contact"
    SAVE = "save"
    SHARE = "share"
    DETAILS = "details"


ACTION_PREFIXES = tuple(f"{verb.value}_" for verb in ActionVerb)


@dataclass(frozen=True)
class PropertyAction:
    """A user-triggered operation on one property."""

    verb: ActionVerb
    property_id: str

    @property
    def action_id(self) -> str:
        return f"{self.verb.value}_{self.property_id}"

    @classmethod
    def parse(cls, action_id: str) -> Optional["PropertyAction"]:
        """Parse ``<verb>_<propertyId>``; None for unknown verbs.

        The property id is everything after the first underscore, so ids
        that themselves contain underscores survive. An empty id is kept
        as "" for the router to reject.
        """
        verb, sep, property_id = action_id.strip().partition("_")
        if not sep:
            return None
        try:
            return cls(verb=ActionVerb(verb.lower()), property_id=property_id.strip())
        except ValueError:
            return None


@dataclass(frozen=True)
class MenuSelection:
    """Any non-property button or list selection."""

    selection_id: str


Selection = Union[PropertyAction, MenuSelection]


def parse_selection(selection_id: str) -> Selection:
    """Classify a button/list id as a property action or a menu selection."""
    if selection_id.strip().lower().startswith(ACTION_PREFIXES):
        action = PropertyAction.parse(selection_id)
        if action is not None:
            return action
    return MenuSelection(selection_id=selection_id.strip())


@dataclass
class InboundEvent:
    """One message delivered by the chat transport."""

    sender_id: str
    event_id: str
    type: EventType
    payload: str = ""  # text body, or the selected button/list id
    selection: Optional[Selection] = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.type = EventType(self.type)
        if self.type in (EventType.BUTTON, EventType.LIST):
            self.selection = parse_selection(self.payload)
