"""Action router: verbs scoped to one property (view, book, save, ...).

Actions are state-independent. A user can tap a button on any card shown
earlier in the dialogue, whatever flow they are in now. Each verb resolves
the property, applies its own state change, and returns replies. Interaction
tracking and preference reinforcement run afterwards as non-critical effects.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from listings.schema import PropertyCandidate
from rentals.config import Settings, settings as default_settings
from rentals.effects import EffectRunner
from rentals.models.conversation import Conversation, Flow, Step
from rentals.models.events import ActionVerb, PropertyAction
from rentals.models.profile import UserPreferenceProfile
from rentals.models.replies import Reply, choice
from rentals.preferences import reinforce
from rentals.stores.base import RentalStore

log = logging.getLogger("rentals.actions")

ActionOutcome = tuple[Conversation, list[Reply]]
_Handler = Callable[[PropertyCandidate, Conversation], Awaitable[ActionOutcome]]


class ActionRouter:
    """Dispatches a parsed ``PropertyAction`` to its verb handler."""

    def __init__(
        self,
        store: RentalStore,
        effects: Optional[EffectRunner] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._store = store
        self._effects = effects or EffectRunner()
        self._settings = settings or default_settings
        self._handlers: dict[ActionVerb, _Handler] = {
            ActionVerb.VIEW: self._view,
            ActionVerb.GALLERY: self._gallery,
            ActionVerb.BOOK: self._book,
            ActionVerb.CONTACT: self._contact,
            ActionVerb.SAVE: self._save,
            ActionVerb.SHARE: self._share,
            ActionVerb.DETAILS: self._details,
        }

    async def handle_action_id(self, action_id: str, conversation: Conversation) -> ActionOutcome:
        """Parse ``<verb>_<propertyId>`` and handle it."""
        action = PropertyAction.parse(action_id)
        if action is None:
            log.info("Unrecognized action id %r", action_id)
            return conversation, [_retry()]
        return await self.handle(action, conversation)

    async def handle(self, action: PropertyAction, conversation: Conversation) -> ActionOutcome:
        """Run one action. Not-found and malformed actions leave state unchanged."""
        if not action.property_id:
            return conversation, [_retry()]

        candidate = await self._store.get_property(action.property_id)
        if candidate is None:
            log.info("Action %s on missing property %s", action.verb.value, action.property_id)
            return conversation, [Reply.text("property_not_found", property_id=action.property_id)]

        handler = self._handlers[action.verb]
        conversation, replies = await handler(candidate, conversation)
        log.info("Action %s handled for property %s", action.verb.value, candidate.id)

        user_id = conversation.user_id
        self._effects.schedule(
            f"track:{action.action_id}",
            self._store.record_interaction(user_id, candidate.id, action.verb.value),
        )
        self._effects.schedule(
            f"reinforce:{action.action_id}",
            self._reinforce(user_id, candidate, action.verb),
        )
        return conversation, replies

    async def _reinforce(self, user_id: str, candidate: PropertyCandidate, verb: ActionVerb) -> None:
        profile = await self._store.get_preference_profile(user_id) or UserPreferenceProfile()
        updated = reinforce(profile, candidate, verb)
        if updated is not profile:
            await self._store.update_preference_profile(user_id, updated)

    # ── Verb handlers ─────────────────────────────────────────

    async def _view(self, candidate: PropertyCandidate, conversation: Conversation) -> ActionOutcome:
        reply = Reply.buttons(
            "property_card",
            [
                choice(f"book_{candidate.id}", "book_tour"),
                choice(f"gallery_{candidate.id}", "gallery"),
                choice(f"details_{candidate.id}", "more_details"),
            ],
            property=candidate.summary(),
        )
        return conversation.with_context(current_property_id=candidate.id), [reply]

    async def _gallery(self, candidate: PropertyCandidate, conversation: Conversation) -> ActionOutcome:
        if not candidate.images:
            return conversation, [Reply.text("gallery_empty", property_id=candidate.id)]
        return conversation, [
            Reply.text("property_gallery", property_id=candidate.id, images=list(candidate.images)),
            Reply.buttons(
                "gallery_actions",
                [choice(f"book_{candidate.id}", "book_tour"), choice(f"contact_{candidate.id}", "contact_agent")],
                property_id=candidate.id,
            ),
        ]

    async def _book(self, candidate: PropertyCandidate, conversation: Conversation) -> ActionOutcome:
        moved = conversation.moved_to(
            Flow.BOOKING,
            Step.AWAITING_BOOKING_DETAILS,
            current_property_id=candidate.id,
        )
        return moved, [Reply.text("booking_prompt", property=candidate.summary())]

    async def _contact(self, candidate: PropertyCandidate, conversation: Conversation) -> ActionOutcome:
        if candidate.agent_name or candidate.agent_phone:
            data = {
                "agent_name": candidate.agent_name,
                "agent_phone": candidate.agent_phone,
                "agent_email": candidate.agent_email,
            }
        else:
            data = {"support_contact": self._settings.support_contact}
        reply = Reply.buttons(
            "agent_contact",
            [choice(f"book_{candidate.id}", "book_tour"), choice(f"save_{candidate.id}", "save")],
            property=candidate.summary(),
            **data,
        )
        return conversation, [reply]

    async def _save(self, candidate: PropertyCandidate, conversation: Conversation) -> ActionOutcome:
        await self._store.add_saved_property(conversation.user_id, candidate.id)
        reply = Reply.buttons(
            "property_saved",
            [choice("saved_list"), choice(f"book_{candidate.id}", "book_tour"), choice("new_search")],
            property=candidate.summary(),
        )
        return conversation, [reply]

    async def _share(self, candidate: PropertyCandidate, conversation: Conversation) -> ActionOutcome:
        return conversation, [Reply.text("property_share", property=candidate.summary())]

    async def _details(self, candidate: PropertyCandidate, conversation: Conversation) -> ActionOutcome:
        reply = Reply.buttons(
            "property_details",
            [
                choice(f"book_{candidate.id}", "book_tour"),
                choice(f"contact_{candidate.id}", "contact_agent"),
                choice(f"save_{candidate.id}", "save"),
            ],
            property=candidate.summary(),
            description=candidate.description,
            deposit=candidate.deposit,
            size_sqm=candidate.size_sqm,
            nearby_places=list(candidate.nearby_places),
            amenities=list(candidate.amenities),
        )
        return conversation, [reply]


def _retry() -> Reply:
    return Reply.buttons("action_retry", [choice("main_menu")])
