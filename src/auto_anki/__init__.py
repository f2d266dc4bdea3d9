"""
auto-anki - Turn note text into Anki flashcards.

An LLM writes questions (optionally multiple choice) from your notes,
the answers are validated, and the cards are added to Anki through
the AnkiConnect add-on.
"""

__version__ = "0.1.0"
