"""Outbound reply requests handed to the transport.

A reply names a message template and carries structured data; the
transport owns the literal wording, emoji and layout.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel

MAX_BUTTONS = 3


class ReplyKind(str, Enum):
    TEXT = "text"
    BUTTONS = "buttons"
    LIST = "list"


class Choice(BaseModel):
    id: str       # selection id returned by the transport when chosen
    label: str    # label key, rendered by the transport


class ListSection(BaseModel):
    title: str
    rows: list[Choice] = []


class Reply(BaseModel):
    kind: ReplyKind
    template: str
    data: dict[str, Any] = {}
    choices: list[Choice] = []
    sections: list[ListSection] = []

    @classmethod
    def text(cls, template: str, **data: Any) -> "Reply":
        return cls(kind=ReplyKind.TEXT, template=template, data=data)

    @classmethod
    def buttons(cls, template: str, choices: list[Choice], **data: Any) -> "Reply":
        if len(choices) > MAX_BUTTONS:
            raise ValueError(f"at most {MAX_BUTTONS} buttons per reply, got {len(choices)}")
        return cls(kind=ReplyKind.BUTTONS, template=template, data=data, choices=choices)

    @classmethod
    def sectioned(cls, template: str, sections: list[ListSection], **data: Any) -> "Reply":
        return cls(kind=ReplyKind.LIST, template=template, data=data, sections=sections)


def choice(selection_id: str, label: str | None = None) -> Choice:
    return Choice(id=selection_id, label=label or selection_id)
