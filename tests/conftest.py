"""Shared fixtures: sample-data store, recording channel, state machine."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from rentals.channels.base import MessageChannel
from rentals.models.conversation import Conversation
from rentals.models.events import InboundEvent
from rentals.models.replies import Reply
from rentals.session import ConversationStateMachine
from rentals.stores.memory import InMemoryRentalStore


class RecordingChannel(MessageChannel):
    """Captures every delivered reply as (method, recipient, reply)."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, Reply]] = []

    async def send_text(self, recipient_id: str, reply: Reply) -> None:
        self.sent.append(("text", recipient_id, reply))

    async def send_buttons(self, recipient_id: str, reply: Reply) -> None:
        self.sent.append(("buttons", recipient_id, reply))

    async def send_list(self, recipient_id: str, reply: Reply) -> None:
        self.sent.append(("list", recipient_id, reply))

    @property
    def templates(self) -> list[str]:
        return [reply.template for _, _, reply in self.sent]


def text_event(sender: str, body: str, event_id: str = "evt") -> InboundEvent:
    return InboundEvent(sender_id=sender, event_id=event_id, type="text", payload=body)


def button_event(sender: str, selection_id: str, event_id: str = "evt") -> InboundEvent:
    return InboundEvent(sender_id=sender, event_id=event_id, type="button", payload=selection_id)


async def place(store: InMemoryRentalStore, user_id: str, flow: str, step=None, **context) -> Conversation:
    """Create a conversation for ``user_id`` already in (flow, step)."""
    conversation = await store.get_conversation(user_id) or await store.create_conversation(user_id)
    moved = conversation.moved_to(flow, step, **context)
    await store.update_conversation(conversation.id, moved.phase_fields())
    return await store.get_conversation(user_id)


@pytest.fixture
def store():
    return InMemoryRentalStore.from_sample_data()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def machine(store, channel):
    return ConversationStateMachine(store=store, channel=channel)
