"""Conversation state machine: routes every inbound chat event to a handler.

Each event is processed independently:
  1. Load (or create) the sender's Conversation
  2. Classify the event: text, button/list selection, or unsupported media
  3. Property actions go to the ActionRouter whatever the current flow;
     other selections go through a fixed menu table
  4. Text is checked against the global commands, then dispatched by flow,
     and within a flow by step (unknown steps fall back to the flow default)
  5. The handler returns an updated Conversation plus replies; the phase
     diff is persisted once, then the replies are delivered

Any failure inside steps 1-5 is logged and turned into a single apology
reply, and nothing is committed for that event.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from listings.schema import PropertyCandidate
from rentals.actions import ActionRouter
from rentals.channels.base import MessageChannel
from rentals.config import Settings, settings as default_settings
from rentals.debug_events import DebugBroadcaster
from rentals.effects import EffectRunner
from rentals.models.booking import BookingRequest
from rentals.models.conversation import SEARCH_PROMPT_STEPS, Conversation, Flow, Step
from rentals.models.criteria import SearchCriteria
from rentals.models.events import EventType, InboundEvent, PropertyAction
from rentals.models.profile import UserPreferenceProfile
from rentals.models.replies import Choice, ListSection, Reply, choice
from rentals.search.extractor import CriteriaExtractor
from rentals.search.ranker import RelevanceRanker
from rentals.stores.base import CandidateFilter, RentalStore

log = logging.getLogger("rentals.session")

Outcome = tuple[Conversation, list[Reply]]
_TextHandler = Callable[[str, Conversation], Awaitable[Outcome]]
_SelectionHandler = Callable[[Conversation], Awaitable[Outcome]]

_MORE_WORDS = {"more", "next", "show more", "see more"}
_NEXT_WORDS = {"next", "forward"}
_PREV_WORDS = {"previous", "prev", "back"}
_SKIP_WORDS = {"skip", "none", "any", "no preference"}
MAX_LIST_ROWS = 10


def redact_pii(value: str) -> str:
    """Mask PII for logging: show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]


def place_name(location: str) -> str:
    """Display form of a location tag ("great_soppo" -> "great soppo")."""
    return location.replace("_", " ")


class ConversationStateMachine:
    """Drives every user's dialogue from inbound events.

    Typical wiring::

        machine = ConversationStateMachine(store=store, channel=channel)

        # Transport adapter, once per webhook delivery
        machine.submit(InboundEvent(sender_id, event_id, "text", "studio in molyko"))

    The machine holds no per-user state of its own. Everything lives in the
    store, keyed by user, so events for different users never contend.
    Two concurrent events for the same user race, and the last write wins.
    """

    def __init__(
        self,
        store: RentalStore,
        channel: MessageChannel,
        extractor: Optional[CriteriaExtractor] = None,
        ranker: Optional[RelevanceRanker] = None,
        settings: Optional[Settings] = None,
        effects: Optional[EffectRunner] = None,
    ) -> None:
        self._store = store
        self._channel = channel
        self._settings = settings or default_settings
        self._extractor = extractor or CriteriaExtractor()
        self._ranker = ranker or RelevanceRanker(
            weights=self._settings.ranking,
            limit=self._settings.max_ranked_results,
        )
        self._effects = effects or EffectRunner()
        self._actions = ActionRouter(store, effects=self._effects, settings=self._settings)
        self._debug_broadcaster: DebugBroadcaster | None = None

        self._flow_handlers: dict[str, _TextHandler] = {
            Flow.WELCOME.value: self._handle_welcome_flow,
            Flow.PROPERTY_SEARCH.value: self._handle_search_flow,
            Flow.BOOKING.value: self._handle_booking_flow,
            Flow.PREFERENCES.value: self._handle_preferences_flow,
            Flow.DEFAULT.value: self._handle_default_flow,
        }
        self._search_steps: dict[str, _TextHandler] = {
            Step.AWAITING_SEARCH_QUERY.value: self._search_replacing,
            Step.AWAITING_SMART_SEARCH.value: self._search_replacing,
            Step.AWAITING_ADVANCED_SEARCH.value: self._search_merging,
            Step.VIEWING_RESULTS.value: self._handle_viewing_results,
            Step.BROWSING_CAROUSEL.value: self._handle_browsing_carousel,
        }
        self._preference_steps: dict[str, _TextHandler] = {
            Step.COLLECTING_LOCATION.value: self._collect_location,
            Step.COLLECTING_BUDGET.value: self._collect_budget,
            Step.COLLECTING_TYPE.value: self._collect_type,
            Step.COLLECTING_AMENITIES.value: self._collect_amenities,
        }
        self._commands: dict[str, _SelectionHandler] = {
            "start": self._command_start,
            "help": self._show_help,
            "menu": self._show_main_menu,
            "search": self._prompt_search,
            "preferences": self._start_preferences,
            "stop": self._command_stop,
            "saved": self._show_saved,
        }
        self._menu: dict[str, _SelectionHandler] = {
            "new_search": self._prompt_search,
            "smart_search": self._prompt_smart_search,
            "advanced_search": self._prompt_advanced_search,
            "show_more": self._show_more,
            "compare_properties": self._compare,
            "browse_carousel": self._start_carousel,
            "carousel_next": self._carousel_next,
            "carousel_prev": self._carousel_prev,
            "featured_properties": self._show_featured,
            "set_preferences": self._start_preferences,
            "saved_list": self._show_saved,
            "main_menu": self._show_main_menu,
            "help": self._show_help,
        }

    # ── Public API ────────────────────────────────────────────

    @property
    def effects(self) -> EffectRunner:
        return self._effects

    def attach_broadcaster(self, broadcaster: DebugBroadcaster) -> None:
        """Attach a debug broadcaster for real-time event streaming."""
        self._debug_broadcaster = broadcaster

    def submit(self, event: InboundEvent) -> asyncio.Task[list[Reply]]:
        """Process an event as an independent background task."""
        return asyncio.ensure_future(self.handle_event(event))

    async def handle_event(self, event: InboundEvent) -> list[Reply]:
        """Process one inbound event end to end and return the replies sent.

        Never raises. A failure before the state commit produces a single
        apology reply and leaves the stored conversation untouched.
        """
        sender = redact_pii(event.sender_id)
        try:
            conversation = await self._load_conversation(event.sender_id)
            self._emit("event_in", conversation, {
                "event_id": event.event_id,
                "type": event.type.value,
                "payload": event.payload[:200],
            })

            updated, replies = await self._dispatch(event, conversation)
            await self._commit(conversation, updated)
        except Exception as e:
            log.exception("Event %s from %s failed", event.event_id, sender)
            self._emit_raw("error", event.sender_id, "", {"event_id": event.event_id, "error": str(e)})
            replies = [Reply.text("apology")]

        await self._deliver(event.sender_id, replies)
        return replies

    async def drain_effects(self) -> None:
        """Wait for outstanding non-critical effects (tests, shutdown)."""
        await self._effects.drain()

    # ── Helpers ───────────────────────────────────────────────

    async def _load_conversation(self, user_id: str) -> Conversation:
        conversation = await self._store.get_conversation(user_id)
        if conversation is None:
            conversation = await self._store.create_conversation(user_id)
            log.info("New conversation for %s", redact_pii(user_id))
        return conversation

    async def _commit(self, before: Conversation, after: Conversation) -> None:
        """Persist the (flow, step, context) diff, if any, in one call."""
        old, new = before.phase_fields(), after.phase_fields()
        changed = {key: value for key, value in new.items() if old.get(key) != value}
        if not changed:
            return
        await self._store.update_conversation(before.id, changed)
        if old["flow"] != new["flow"] or old["step"] != new["step"]:
            log.info(
                "Conversation %s: %s/%s -> %s/%s",
                before.id, old["flow"], old["step"], new["flow"], new["step"],
            )
            self._emit("transition", after, {
                "from": f"{old['flow']}/{old['step'] or ''}",
                "to": f"{new['flow']}/{new['step'] or ''}",
            })

    async def _deliver(self, recipient_id: str, replies: list[Reply]) -> None:
        try:
            for reply in replies:
                await self._channel.deliver(recipient_id, reply)
        except Exception:
            log.exception("Sending replies to %s failed", redact_pii(recipient_id))
            try:
                await self._channel.deliver(recipient_id, Reply.text("apology"))
            except Exception:
                log.exception("Sending apology to %s failed", redact_pii(recipient_id))

    def _emit(self, event_type: str, conversation: Conversation, data: dict) -> None:
        state = f"{conversation.flow}/{conversation.step or ''}"
        self._emit_raw(event_type, conversation.user_id, state, data)

    def _emit_raw(self, event_type: str, user_id: str, state: str, data: dict) -> None:
        if self._debug_broadcaster:
            self._debug_broadcaster.emit(event_type, user_id, state, data)

    # ── Dispatch ──────────────────────────────────────────────

    async def _dispatch(self, event: InboundEvent, conversation: Conversation) -> Outcome:
        if event.type == EventType.MEDIA:
            return conversation, [_not_understood("unsupported_message")]

        if event.type in (EventType.BUTTON, EventType.LIST):
            selection = event.selection
            if isinstance(selection, PropertyAction):
                self._emit("action", conversation, {
                    "verb": selection.verb.value,
                    "property_id": selection.property_id,
                })
                return await self._actions.handle(selection, conversation)
            handler = self._menu.get(selection.selection_id)
            if handler is None:
                log.info("Unknown selection %r", selection.selection_id)
                return conversation, [_not_understood("unknown_selection")]
            return await handler(conversation)

        text = event.payload.strip()
        command = self._extractor.vocabulary.command_for(text)
        if command and command in self._commands:
            return await self._commands[command](conversation)

        # Inconsistent (flow, step) pairs land in the flow default or in default.
        handler = self._flow_handlers.get(conversation.flow, self._handle_default_flow)
        return await handler(text, conversation)

    # ── Flow handlers ─────────────────────────────────────────

    async def _handle_welcome_flow(self, text: str, conversation: Conversation) -> Outcome:
        if conversation.step != Step.MENU_SHOWN.value:
            return await self._command_start(conversation)

        criteria = self._extractor.parse_query(text)
        if criteria.has_search_signal():
            return await self._run_search(text, conversation, criteria)
        return await self._prompt_search(conversation)

    async def _handle_search_flow(self, text: str, conversation: Conversation) -> Outcome:
        handler = self._search_steps.get(conversation.step or "", self._search_replacing)
        return await handler(text, conversation)

    async def _handle_booking_flow(self, text: str, conversation: Conversation) -> Outcome:
        if conversation.step != Step.AWAITING_BOOKING_DETAILS.value:
            return conversation.moved_to(Flow.DEFAULT), [_booking_needs_property()]
        return await self._capture_booking(text, conversation)

    async def _handle_preferences_flow(self, text: str, conversation: Conversation) -> Outcome:
        handler = self._preference_steps.get(conversation.step or "")
        if handler is None:
            return await self._start_preferences(conversation)
        return await handler(text, conversation)

    async def _handle_default_flow(self, text: str, conversation: Conversation) -> Outcome:
        """Intent-driven free text: search if there is a signal, else answer."""
        criteria = self._extractor.parse_query(text)
        if criteria.has_search_signal():
            return await self._run_search(text, conversation, criteria)

        intent = criteria.intent
        vocab = self._extractor.vocabulary
        if intent == "help":
            return await self._show_help(conversation)
        if intent == "contact":
            return conversation, [Reply.text("support_contact", support_contact=self._settings.support_contact)]
        if intent == "book":
            return conversation, [Reply.buttons("booking_howto", [choice("new_search"), choice("saved_list")])]
        if intent == "price":
            bands = {k: band.model_dump(exclude_none=True) for k, band in vocab.price_keywords.items()}
            return conversation, [Reply.text("price_info", currency=vocab.currency, bands=bands)]
        if intent == "location":
            locations = [place_name(tag) for tag in vocab.locations]
            return conversation, [Reply.text("locations_info", locations=locations)]
        if intent == "info":
            return conversation, [Reply.buttons("about", [choice("new_search"), choice("help")])]
        return await self._prompt_search(conversation)

    # ── Search steps ──────────────────────────────────────────

    async def _search_replacing(self, text: str, conversation: Conversation) -> Outcome:
        return await self._run_search(text, conversation, self._extractor.parse_query(text))

    async def _search_merging(self, text: str, conversation: Conversation) -> Outcome:
        criteria = self._extractor.parse_query(text)
        previous = conversation.context.last_criteria
        if previous is not None:
            criteria = previous.merged_with(criteria)
        return await self._run_search(text, conversation, criteria)

    async def _handle_viewing_results(self, text: str, conversation: Conversation) -> Outcome:
        if text.lower() in _MORE_WORDS:
            return await self._show_more(conversation)
        return await self._search_replacing(text, conversation)

    async def _handle_browsing_carousel(self, text: str, conversation: Conversation) -> Outcome:
        word = text.lower()
        if word in _NEXT_WORDS:
            return await self._carousel_next(conversation)
        if word in _PREV_WORDS:
            return await self._carousel_prev(conversation)
        return await self._search_replacing(text, conversation)

    # ── Search pipeline ───────────────────────────────────────

    async def _run_search(self, text: str, conversation: Conversation, criteria: SearchCriteria) -> Outcome:
        """criteria -> profile -> candidates -> ranking -> first page."""
        self._emit("criteria", conversation, criteria.to_record())

        profile = await self._store.get_preference_profile(conversation.user_id) or UserPreferenceProfile()
        candidates = await self._store.search_candidates(
            CandidateFilter.from_criteria(criteria, limit=self._settings.candidate_limit)
        )
        ranked = self._ranker.rank(candidates, criteria, profile)
        self._emit("ranked", conversation, {
            "candidates": len(candidates),
            "results": [{"id": r.id, "score": round(r.score, 2)} for r in ranked],
        })

        if not ranked:
            # Stay in a search-prompting step so the next text is a new query.
            step = conversation.step if conversation.step in SEARCH_PROMPT_STEPS else Step.AWAITING_SEARCH_QUERY
            updated = conversation.moved_to(
                Flow.PROPERTY_SEARCH, step,
                search_results=[], result_cursor=0, carousel_index=0,
                last_criteria=criteria, last_query=text,
            )
            return updated, [self._no_results(criteria)]

        return self._present_results(
            conversation,
            [r.candidate for r in ranked],
            last_criteria=criteria,
            last_query=text,
        )

    def _present_results(self, conversation: Conversation, candidates: list[PropertyCandidate], **context) -> Outcome:
        """Show the first page and remember the full ID list for paging."""
        page_size = self._settings.results_page_size
        page = candidates[:page_size]
        replies = [_property_card(c, position=i + 1) for i, c in enumerate(page)]
        replies.append(_results_footer(shown=len(page), total=len(candidates)))

        updated = conversation.moved_to(
            Flow.PROPERTY_SEARCH, Step.VIEWING_RESULTS,
            search_results=[c.id for c in candidates],
            result_cursor=len(page),
            carousel_index=0,
            **context,
        )
        return updated, replies

    def _no_results(self, criteria: SearchCriteria) -> Reply:
        suggestions: list[dict] = []
        if criteria.location:
            nearby = [
                place_name(tag) for tag in self._extractor.vocabulary.locations
                if tag != criteria.location
            ][:3]
            suggestions.append({"kind": "location", "location": place_name(criteria.location), "alternatives": nearby})
        if criteria.price_range:
            suggestions.append({"kind": "price", "price_range": criteria.price_range.model_dump(exclude_none=True)})
        if criteria.property_type:
            suggestions.append({"kind": "property_type", "property_type": criteria.property_type})
        if not suggestions:
            suggestions.append({"kind": "broaden"})

        return Reply.buttons(
            "no_results",
            [choice("featured_properties"), choice("new_search")],
            criteria=criteria.to_record(),
            suggestions=suggestions,
        )

    async def _load_properties(self, ids: list[str]) -> list[PropertyCandidate]:
        """Resolve stored result ids, skipping listings removed since the search."""
        found = []
        for property_id in ids:
            candidate = await self._store.get_property(property_id)
            if candidate is not None:
                found.append(candidate)
        return found

    # ── Menu selections ───────────────────────────────────────

    async def _prompt_search(self, conversation: Conversation) -> Outcome:
        updated = conversation.moved_to(Flow.PROPERTY_SEARCH, Step.AWAITING_SEARCH_QUERY)
        return updated, [Reply.text("search_prompt", examples=self._extractor.suggest_queries(""))]

    async def _prompt_smart_search(self, conversation: Conversation) -> Outcome:
        updated = conversation.moved_to(Flow.PROPERTY_SEARCH, Step.AWAITING_SMART_SEARCH)
        return updated, [Reply.text("smart_search_prompt", examples=self._extractor.suggest_queries(""))]

    async def _prompt_advanced_search(self, conversation: Conversation) -> Outcome:
        last = conversation.context.last_criteria
        updated = conversation.moved_to(Flow.PROPERTY_SEARCH, Step.AWAITING_ADVANCED_SEARCH)
        return updated, [Reply.text("advanced_search_prompt", current=last.to_record() if last else {})]

    async def _show_more(self, conversation: Conversation) -> Outcome:
        ids = conversation.context.search_results
        cursor = conversation.context.result_cursor
        if not ids:
            return await self._prompt_search(conversation)

        if cursor >= len(ids):
            return conversation, [Reply.buttons("results_end", [choice("new_search"), choice("main_menu")], total=len(ids))]

        batch_ids = ids[cursor:cursor + self._settings.results_page_size]
        batch = await self._load_properties(batch_ids)
        new_cursor = cursor + len(batch_ids)

        replies = [_property_card(c, position=cursor + i + 1) for i, c in enumerate(batch)]
        replies.append(_results_footer(shown=new_cursor, total=len(ids)))
        updated = conversation.moved_to(Flow.PROPERTY_SEARCH, Step.VIEWING_RESULTS, result_cursor=new_cursor)
        return updated, replies

    async def _compare(self, conversation: Conversation) -> Outcome:
        ids = conversation.context.search_results
        cursor = max(conversation.context.result_cursor, 1)
        page_size = self._settings.results_page_size
        start = ((cursor - 1) // page_size) * page_size
        candidates = await self._load_properties(ids[start:start + page_size])

        if len(candidates) < 2:
            return conversation, [Reply.buttons("compare_needs_two", [choice("new_search"), choice("main_menu")])]

        sections = [
            ListSection(
                title=c.id,
                rows=[choice(f"view_{c.id}", "view"), choice(f"book_{c.id}", "book_tour")],
            )
            for c in candidates
        ]
        return conversation, [Reply.sectioned(
            "property_comparison",
            sections,
            properties=[c.summary() for c in candidates],
        )]

    async def _start_carousel(self, conversation: Conversation) -> Outcome:
        return await self._show_carousel(conversation, 0)

    async def _carousel_next(self, conversation: Conversation) -> Outcome:
        return await self._show_carousel(conversation, conversation.context.carousel_index + 1)

    async def _carousel_prev(self, conversation: Conversation) -> Outcome:
        return await self._show_carousel(conversation, conversation.context.carousel_index - 1)

    async def _show_carousel(self, conversation: Conversation, index: int) -> Outcome:
        ids = conversation.context.search_results
        if not ids:
            return await self._prompt_search(conversation)

        index = min(max(index, 0), len(ids) - 1)
        candidate = await self._store.get_property(ids[index])
        if candidate is None:
            return conversation, [Reply.text("property_not_found", property_id=ids[index])]

        choices: list[Choice] = []
        if index > 0:
            choices.append(choice("carousel_prev"))
        if index < len(ids) - 1:
            choices.append(choice("carousel_next"))
        choices.append(choice(f"view_{candidate.id}", "view"))

        updated = conversation.moved_to(Flow.PROPERTY_SEARCH, Step.BROWSING_CAROUSEL, carousel_index=index)
        return updated, [Reply.buttons(
            "carousel_card",
            choices,
            property=candidate.summary(),
            position=index + 1,
            total=len(ids),
        )]

    async def _show_featured(self, conversation: Conversation) -> Outcome:
        candidates = await self._store.search_candidates(
            CandidateFilter(featured_only=True, limit=self._settings.candidate_limit)
        )
        profile = await self._store.get_preference_profile(conversation.user_id) or UserPreferenceProfile()
        ranked = self._ranker.rank(candidates, SearchCriteria(), profile)
        if not ranked:
            return conversation, [Reply.buttons("no_featured", [choice("new_search"), choice("main_menu")])]
        return self._present_results(conversation, [r.candidate for r in ranked])

    async def _show_saved(self, conversation: Conversation) -> Outcome:
        saved = await self._store.get_saved_properties(conversation.user_id)
        if not saved:
            return conversation, [Reply.buttons("saved_empty", [choice("new_search"), choice("main_menu")])]
        rows = [choice(f"view_{c.id}", c.title or c.id) for c in saved[:MAX_LIST_ROWS]]
        return conversation, [Reply.sectioned("saved_properties", [ListSection(title="saved", rows=rows)], total=len(saved))]

    async def _show_main_menu(self, conversation: Conversation) -> Outcome:
        return conversation.moved_to(Flow.DEFAULT), [_main_menu()]

    async def _show_help(self, conversation: Conversation) -> Outcome:
        return conversation, [Reply.buttons(
            "help",
            [choice("new_search"), choice("featured_properties"), choice("main_menu")],
            support_contact=self._settings.support_contact,
        )]

    # ── Global commands ───────────────────────────────────────

    async def _command_start(self, conversation: Conversation) -> Outcome:
        await self._store.set_opted_out(conversation.user_id, False)
        updated = conversation.moved_to(Flow.WELCOME, Step.MENU_SHOWN)
        return updated, [
            Reply.buttons("welcome", [choice("new_search"), choice("featured_properties"), choice("help")]),
        ]

    async def _command_stop(self, conversation: Conversation) -> Outcome:
        await self._store.set_opted_out(conversation.user_id, True)
        log.info("User %s opted out", redact_pii(conversation.user_id))
        return conversation.moved_to(Flow.DEFAULT), [Reply.text("opted_out")]

    # ── Booking ───────────────────────────────────────────────

    async def _capture_booking(self, text: str, conversation: Conversation) -> Outcome:
        property_id = conversation.context.current_property_id
        if not property_id:
            return conversation.moved_to(Flow.DEFAULT), [_booking_needs_property()]

        candidate = await self._store.get_property(property_id)
        if candidate is None:
            return conversation.moved_to(Flow.DEFAULT), [Reply.text("property_not_found", property_id=property_id)]

        if not text:
            return conversation, [Reply.text("booking_prompt", property=candidate.summary())]

        request = BookingRequest(
            user_id=conversation.user_id,
            property_id=property_id,
            details=text,
            property_location=candidate.location,
            request_key=conversation.revision(),
        )
        booking_id = await self._store.create_booking_request(request)
        self._effects.schedule(
            f"track:book_request_{property_id}",
            self._store.record_interaction(conversation.user_id, property_id, "book_request"),
        )
        log.info("Booking request %s for property %s", booking_id, property_id)

        return conversation.moved_to(Flow.DEFAULT), [Reply.buttons(
            "booking_received",
            [choice(f"contact_{property_id}", "contact_agent"), choice("new_search"), choice("main_menu")],
            booking_id=booking_id,
            property=candidate.summary(),
            details=text,
        )]

    # ── Preferences ───────────────────────────────────────────

    async def _start_preferences(self, conversation: Conversation) -> Outcome:
        current = await self._store.get_preference_profile(conversation.user_id) or UserPreferenceProfile()
        updated = conversation.moved_to(
            Flow.PREFERENCES, Step.COLLECTING_LOCATION, pending_profile=current,
        )
        return updated, [Reply.text("preferences_location_prompt", current=current.preferred_locations)]

    def _pending(self, conversation: Conversation) -> UserPreferenceProfile:
        return conversation.context.pending_profile or UserPreferenceProfile()

    async def _collect_location(self, text: str, conversation: Conversation) -> Outcome:
        profile = self._pending(conversation)
        if text.lower() not in _SKIP_WORDS:
            location = self._extractor.extract_location(text.lower()) or " ".join(text.lower().split())
            if location:
                profile = profile.model_copy(update={"preferred_locations": [location]})
        updated = conversation.moved_to(Flow.PREFERENCES, Step.COLLECTING_BUDGET, pending_profile=profile)
        return updated, [Reply.text("preferences_budget_prompt", currency=self._extractor.vocabulary.currency)]

    async def _collect_budget(self, text: str, conversation: Conversation) -> Outcome:
        profile = self._pending(conversation)
        if text.lower() not in _SKIP_WORDS:
            price_range = self._extractor.extract_price_range(text.lower())
            if price_range is None:
                return conversation, [Reply.text("preferences_budget_retry")]
            profile = profile.model_copy(update={"price_range": price_range})

        updated = conversation.moved_to(Flow.PREFERENCES, Step.COLLECTING_TYPE, pending_profile=profile)
        types = list(self._extractor.vocabulary.property_types)
        return updated, [Reply.sectioned(
            "preferences_type_prompt",
            [ListSection(title="property_types", rows=[choice(t) for t in types])],
        )]

    async def _collect_type(self, text: str, conversation: Conversation) -> Outcome:
        profile = self._pending(conversation)
        if text.lower() not in _SKIP_WORDS:
            property_type = self._extractor.extract_property_type(text.lower())
            if property_type is None:
                return conversation, [Reply.text("preferences_type_retry")]
            preferred = [t for t in profile.preferred_property_types if t != property_type]
            profile = profile.model_copy(update={"preferred_property_types": [property_type] + preferred})

        updated = conversation.moved_to(Flow.PREFERENCES, Step.COLLECTING_AMENITIES, pending_profile=profile)
        return updated, [Reply.text("preferences_amenities_prompt", amenities=list(self._extractor.vocabulary.amenities))]

    async def _collect_amenities(self, text: str, conversation: Conversation) -> Outcome:
        profile = self._pending(conversation)
        if text.lower() not in _SKIP_WORDS:
            amenities = self._extractor.extract_amenities(text.lower())
            if amenities:
                profile = profile.model_copy(update={"preferred_amenities": amenities})

        await self._store.update_preference_profile(conversation.user_id, profile)
        updated = conversation.moved_to(Flow.DEFAULT, pending_profile=None)
        return updated, [Reply.buttons(
            "preferences_saved",
            [choice("new_search"), choice("main_menu")],
            profile=profile.model_dump(exclude_none=True),
        )]


# ── Reply builders ────────────────────────────────────────────


def _property_card(candidate: PropertyCandidate, position: int) -> Reply:
    return Reply.buttons(
        "property_card",
        [
            choice(f"view_{candidate.id}", "view"),
            choice(f"book_{candidate.id}", "book_tour"),
            choice(f"save_{candidate.id}", "save"),
        ],
        property=candidate.summary(),
        position=position,
    )


def _results_footer(shown: int, total: int) -> Reply:
    if shown < total:
        choices = [choice("show_more"), choice("compare_properties"), choice("new_search")]
    elif total >= 2:
        choices = [choice("compare_properties"), choice("new_search"), choice("main_menu")]
    else:
        choices = [choice("new_search"), choice("main_menu")]
    return Reply.buttons("results_footer", choices, shown=shown, total=total)


def _main_menu() -> Reply:
    return Reply.sectioned("main_menu", [
        ListSection(title="search", rows=[choice("new_search"), choice("smart_search"), choice("advanced_search")]),
        ListSection(title="explore", rows=[choice("featured_properties"), choice("browse_carousel"), choice("saved_list")]),
        ListSection(title="account", rows=[choice("set_preferences"), choice("help")]),
    ])


def _not_understood(template: str) -> Reply:
    return Reply.buttons(template, [choice("main_menu"), choice("help")])


def _booking_needs_property() -> Reply:
    return Reply.buttons("booking_needs_property", [choice("new_search"), choice("saved_list")])
