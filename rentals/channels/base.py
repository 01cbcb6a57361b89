"""MessageChannel ABC: the outbound half of a chat transport.

The core never builds message text. It hands the channel a ``Reply``
(template key plus structured data) and the channel renders it for its
platform: WhatsApp interactive messages, a test recorder, and so on.

Implementors map the three reply kinds onto their transport:
  text     plain message
  buttons  up to three quick-reply buttons
  list     a sectioned selection list
"""

from abc import ABC, abstractmethod

from rentals.models.replies import Reply, ReplyKind


class MessageChannel(ABC):
    """Abstract outbound chat channel.

    Concrete channels raise ``CollaboratorError`` when the platform call
    fails; the state machine logs it and moves on.
    """

    @abstractmethod
    async def send_text(self, recipient_id: str, reply: Reply) -> None:
        """Send a plain text reply."""

    @abstractmethod
    async def send_buttons(self, recipient_id: str, reply: Reply) -> None:
        """Send a reply with at most three choice buttons (``reply.choices``)."""

    @abstractmethod
    async def send_list(self, recipient_id: str, reply: Reply) -> None:
        """Send a sectioned choice list (``reply.sections``)."""

    async def deliver(self, recipient_id: str, reply: Reply) -> None:
        """Dispatch a reply to the send method for its kind."""
        if reply.kind == ReplyKind.BUTTONS:
            await self.send_buttons(recipient_id, reply)
        elif reply.kind == ReplyKind.LIST:
            await self.send_list(recipient_id, reply)
        else:
            await self.send_text(recipient_id, reply)
