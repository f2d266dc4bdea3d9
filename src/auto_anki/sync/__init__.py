"""Delivery of flashcards to Anki."""

from .anki_connect import (
    AnkiConnectClient,
    FlashcardSyncClient,
    build_note,
    render_front,
)

__all__ = ["AnkiConnectClient", "FlashcardSyncClient", "build_note", "render_front"]
