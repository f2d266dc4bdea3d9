"""
Delivery of flashcard records to Anki through the AnkiConnect add-on.

AnkiConnect listens on http://localhost:8765 by default and accepts
JSON POSTs of the form {"action": ..., "version": 6, "params": {...}},
answering {"result": ..., "error": ...}.

Two layers:
- AnkiConnectClient: raw async transport, raises on any error
- FlashcardSyncClient: one note per record, never raises, returns a SyncOutcome
"""
from __future__ import annotations

import html
import logging
import random
import string
from typing import Any, Mapping, Optional

import httpx

from ..core.exceptions import AnkiConnectError, ControlApiUnreachableError
from ..core.models import FlashcardRecord, SyncOutcome

logger = logging.getLogger(__name__)

ANKI_CONNECT_VERSION = 6
DEFAULT_NOTE_TYPE = "Basic"
DEFAULT_TAGS = ("auto-anki",)


class AnkiConnectClient:
    def __init__(
        self,
        url: str = "http://localhost:8765",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def invoke(self, action: str, params: Mapping[str, Any] | None = None) -> Any:
        """Call an AnkiConnect action and return its result.

        Raises:
            ControlApiUnreachableError: If the connection itself fails
            AnkiConnectError: If AnkiConnect answers with an error, a non-2xx
                status or a malformed body
        """
        payload: dict[str, Any] = {
            "action": action,
            "version": ANKI_CONNECT_VERSION,
        }
        if params:
            payload["params"] = dict(params)

        try:
            resp = await self._http.post(self.url, json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise ControlApiUnreachableError(
                f"Could not connect to AnkiConnect at {self.url}: {e}", action=action
            )
        except httpx.HTTPError as e:
            raise AnkiConnectError(f"AnkiConnect request '{action}' failed: {e}", action=action)

        if resp.status_code >= 400:
            raise AnkiConnectError(
                f"AnkiConnect returned HTTP {resp.status_code} for '{action}'", action=action
            )
        try:
            parsed = resp.json()
        except ValueError:
            raise AnkiConnectError(f"AnkiConnect sent a non-JSON reply to '{action}'", action=action)
        if not isinstance(parsed, dict) or "result" not in parsed or "error" not in parsed:
            raise AnkiConnectError(
                f"Unexpected AnkiConnect reply to '{action}': {parsed!r}", action=action
            )

        if parsed["error"] is not None:
            raise AnkiConnectError(str(parsed["error"]), action=action)
        return parsed["result"]

    async def version(self) -> int:
        return int(await self.invoke("version"))

    async def add_note(self, note: Mapping[str, Any]) -> Optional[int]:
        return await self.invoke("addNote", {"note": dict(note)})

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "AnkiConnectClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def render_front(record: FlashcardRecord, rng: random.Random | None = None) -> str:
    """Render the front of a card.

    Multiple-choice records list the alternatives and the correct answer
    in shuffled order, lettered A, B, C...
    """
    question = html.escape(record.question)
    if not record.alternatives:
        return question

    options = list(record.alternatives) + [record.correct_answer]
    (rng or random).shuffle(options)
    items = "".join(
        f"<li>{letter}) {html.escape(option)}</li>"
        for letter, option in zip(string.ascii_uppercase, options)
    )
    return f"{question}<br><ul class=\"auto-anki-choices\">{items}</ul>"


def build_note(
    record: FlashcardRecord,
    note_type: str = DEFAULT_NOTE_TYPE,
    tags: tuple[str, ...] = DEFAULT_TAGS,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """AnkiConnect note payload for a record."""
    return {
        "deckName": record.deck_name,
        "modelName": note_type,
        "fields": {
            "Front": render_front(record, rng),
            "Back": html.escape(record.correct_answer),
        },
        "options": {
            # Let Anki reject duplicates; they show up as per-card rejections
            "allowDuplicate": False,
        },
        "tags": list(tags),
    }


class FlashcardSyncClient:
    """Adds one Anki note per flashcard record.

    sync() never raises for a per-record problem: Anki-side errors and
    connection failures come back as a rejected SyncOutcome, the latter
    flagged `unreachable`.
    """

    def __init__(
        self,
        client: AnkiConnectClient,
        note_type: str = DEFAULT_NOTE_TYPE,
        tags: tuple[str, ...] = DEFAULT_TAGS,
        rng: random.Random | None = None,
    ) -> None:
        self.client = client
        self.note_type = note_type
        self.tags = tags
        self.rng = rng

    @classmethod
    def for_port(cls, port: int, **kwargs: Any) -> "FlashcardSyncClient":
        return cls(AnkiConnectClient(f"http://localhost:{port}"), **kwargs)

    async def sync(self, record: FlashcardRecord) -> SyncOutcome:
        note = build_note(record, self.note_type, self.tags, self.rng)
        try:
            note_id = await self.client.add_note(note)
        except ControlApiUnreachableError as e:
            logger.warning(str(e))
            return SyncOutcome.rejected(record, str(e), unreachable=True)
        except AnkiConnectError as e:
            logger.warning(f"Anki rejected '{record.question}': {e}")
            return SyncOutcome.rejected(record, str(e))

        if note_id is None:
            return SyncOutcome.rejected(record, "addNote returned no note id")
        logger.debug(f"Added note {note_id} to deck '{record.deck_name}'")
        return SyncOutcome.delivered(record, note_id=note_id)

    async def aclose(self) -> None:
        await self.client.aclose()
