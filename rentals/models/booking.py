"""Pydantic model for tour booking requests."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class BookingRequest(BaseModel):
    """Free-text tour request captured in the booking flow."""

    user_id: str
    property_id: str
    details: str  # preferred date/time and contact, as typed by the user
    property_location: str = ""
    request_key: str = ""  # conversation revision the request was made from
    requested_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
