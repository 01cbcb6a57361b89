"""Conversational rental property assistant core."""
