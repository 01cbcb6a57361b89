"""Tests for ActionRouter and PropertyAction parsing."""

from unittest.mock import AsyncMock

import pytest

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from rentals.actions import ActionRouter
from rentals.effects import EffectRunner
from rentals.models.conversation import Conversation
from rentals.models.events import ActionVerb, InboundEvent, MenuSelection, PropertyAction, parse_selection
from rentals.stores.memory import InMemoryRentalStore

USER = "237670000001"


@pytest.fixture
def store():
    return InMemoryRentalStore.from_sample_data()


@pytest.fixture
def effects():
    return EffectRunner()


@pytest.fixture
def router(store, effects):
    return ActionRouter(store, effects=effects)


@pytest.fixture
def conversation():
    return Conversation(id="c1", user_id=USER, flow="property_search", step="viewing_results")


# ── Parsing ────────────────────────────────────────────────────────


class TestPropertyActionParsing:
    def test_parse(self):
        assert PropertyAction.parse("book_P1") == PropertyAction(ActionVerb.BOOK, "P1")

    def test_property_id_may_contain_underscores(self):
        action = PropertyAction.parse("view_prop_2026_01")
        assert action.property_id == "prop_2026_01"
        assert action.action_id == "view_prop_2026_01"

    def test_unknown_verb(self):
        assert PropertyAction.parse("launch_P1") is None

    def test_no_separator(self):
        assert PropertyAction.parse("view") is None

    def test_empty_property_id_kept_for_router(self):
        assert PropertyAction.parse("save_") == PropertyAction(ActionVerb.SAVE, "")

    def test_menu_selection(self):
        assert parse_selection("show_more") == MenuSelection("show_more")
        assert parse_selection("saved_list") == MenuSelection("saved_list")

    def test_inbound_event_parses_selection_once(self):
        event = InboundEvent(sender_id=USER, event_id="e1", type="button", payload="gallery_P3")
        assert event.selection == PropertyAction(ActionVerb.GALLERY, "P3")

    def test_text_event_has_no_selection(self):
        event = InboundEvent(sender_id=USER, event_id="e1", type="text", payload="book_P1")
        assert event.selection is None


# ── Router ─────────────────────────────────────────────────────────


class TestActionRouter:
    @pytest.mark.asyncio
    async def test_book_moves_to_booking(self, router, conversation):
        updated, replies = await router.handle_action_id("book_P1", conversation)

        assert (updated.flow, updated.step) == ("booking", "awaiting_booking_details")
        assert updated.context.current_property_id == "P1"
        assert replies[0].template == "booking_prompt"
        # the input value is not modified
        assert conversation.flow == "property_search"

    @pytest.mark.asyncio
    async def test_missing_property(self, router, conversation):
        updated, replies = await router.handle_action_id("view_MISSING", conversation)

        assert updated == conversation
        assert [r.template for r in replies] == ["property_not_found"]
        assert replies[0].data == {"property_id": "MISSING"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action_id", ["launch_P1", "view", "save_", ""])
    async def test_malformed_ids_ask_to_retry(self, router, conversation, action_id):
        updated, replies = await router.handle_action_id(action_id, conversation)
        assert updated == conversation
        assert [r.template for r in replies] == ["action_retry"]

    @pytest.mark.asyncio
    async def test_save_adds_to_saved_list(self, router, store, effects, conversation):
        _, replies = await router.handle_action_id("save_P2", conversation)
        await router.handle_action_id("save_P2", conversation)
        await effects.drain()

        assert replies[0].template == "property_saved"
        assert store.saved[USER] == ["P2"]

    @pytest.mark.asyncio
    async def test_view_sets_current_property(self, router, conversation):
        updated, replies = await router.handle_action_id("view_P3", conversation)

        assert updated.context.current_property_id == "P3"
        assert (updated.flow, updated.step) == (conversation.flow, conversation.step)
        assert [c.id for c in replies[0].choices] == ["book_P3", "gallery_P3", "details_P3"]

    @pytest.mark.asyncio
    async def test_gallery(self, router, conversation):
        _, replies = await router.handle_action_id("gallery_P3", conversation)
        assert replies[0].template == "property_gallery"
        assert len(replies[0].data["images"]) == 3

    @pytest.mark.asyncio
    async def test_gallery_without_images(self, router, conversation):
        _, replies = await router.handle_action_id("gallery_P5", conversation)
        assert [r.template for r in replies] == ["gallery_empty"]

    @pytest.mark.asyncio
    async def test_contact_uses_agent_when_known(self, router, conversation):
        _, replies = await router.handle_action_id("contact_P3", conversation)
        assert replies[0].data["agent_name"] == "Eric T."
        assert replies[0].data["agent_email"] == "eric@example.com"

    @pytest.mark.asyncio
    async def test_contact_falls_back_to_support(self, router, conversation):
        _, replies = await router.handle_action_id("contact_P4", conversation)
        assert "support_contact" in replies[0].data
        assert "agent_name" not in replies[0].data

    @pytest.mark.asyncio
    async def test_share_and_details(self, router, conversation):
        _, share = await router.handle_action_id("share_P1", conversation)
        assert share[0].template == "property_share"
        assert share[0].data["property"]["id"] == "P1"

        _, details = await router.handle_action_id("details_P1", conversation)
        assert details[0].template == "property_details"
        assert details[0].data["description"].startswith("Self-contained studio")

    @pytest.mark.asyncio
    async def test_interaction_tracked(self, router, store, effects, conversation):
        await router.handle_action_id("view_P1", conversation)
        await effects.drain()

        assert [(i["property_id"], i["verb"]) for i in store.interactions] == [("P1", "view")]

    @pytest.mark.asyncio
    async def test_tracking_failure_is_not_surfaced(self, router, store, effects, conversation):
        store.record_interaction = AsyncMock(side_effect=RuntimeError("analytics down"))

        updated, replies = await router.handle_action_id("book_P1", conversation)
        results = await effects.drain()

        assert updated.step == "awaiting_booking_details"
        assert replies[0].template == "booking_prompt"
        failed = [r for r in results if not r.ok]
        assert [r.name for r in failed] == ["track:book_P1"]
        assert failed[0].error == "analytics down"

    @pytest.mark.asyncio
    async def test_actions_reinforce_preferences(self, router, store, effects, conversation):
        await router.handle_action_id("save_P3", conversation)
        await effects.drain()
        profile = await store.get_preference_profile(USER)
        assert profile.type_scores == {"apartment": 3}
        assert profile.preferred_property_types == []

        await router.handle_action_id("share_P6", conversation)
        await effects.drain()
        profile = await store.get_preference_profile(USER)
        assert profile.type_scores == {"apartment": 5}
        assert profile.preferred_property_types == ["apartment"]

    @pytest.mark.asyncio
    async def test_missing_property_schedules_nothing(self, router, store, effects, conversation):
        await router.handle_action_id("book_NOPE", conversation)
        assert effects.pending_count == 0
        assert await effects.drain() == []
