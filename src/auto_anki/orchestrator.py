"""Export pipeline: note text in, Anki notes out."""

import logging
from typing import Optional

from .core.exceptions import AutoAnkiError
from .core.models import ConfigSnapshot, FlashcardRecord, RunSummary, SyncOutcome
from .core.parsing import parse_response
from .generation.base import LLMProvider
from .generation.prompts import PromptTemplate
from .generation.request import build_request
from .status import StatusReporter
from .sync.anki_connect import FlashcardSyncClient

logger = logging.getLogger(__name__)


class ExportOrchestrator:
    """Runs one export at a time.

    build request -> generate -> parse -> deliver each record in order.
    Any failure before delivery ends the run in ERROR and is re-raised.
    Rejected records are collected in the summary; only a control API
    that is unreachable from the first call ends the run in ERROR.
    """

    def __init__(
        self,
        provider: LLMProvider,
        sync_client: FlashcardSyncClient,
        reporter: Optional[StatusReporter] = None,
        template: Optional[PromptTemplate] = None,
    ):
        self.provider = provider
        self.sync_client = sync_client
        self.reporter = reporter or StatusReporter()
        self.template = template

    async def run(self, source_text: str, snapshot: ConfigSnapshot) -> RunSummary:
        """Run one export.

        Args:
            source_text: Note text to turn into flashcards
            snapshot: Frozen configuration for this run

        Returns:
            RunSummary covering every validated record, in generation order

        Raises:
            PipelineBusyError: If another run is in progress (nothing is changed)
            EmptyInputError, AuthenticationError, ProviderError,
            TransportError, NoValidRecordsError: Fatal to the run
        """
        self.reporter.start()
        logger.info(
            f"Export started: {snapshot.num_questions} question(s), "
            f"{snapshot.num_alternatives} alternative(s), deck '{snapshot.deck_name}'"
        )

        try:
            summary = await self._run(source_text, snapshot)
        except AutoAnkiError as e:
            logger.error(f"Export failed: {e}")
            self.reporter.fail()
            raise
        except BaseException:
            # Cancelled or crashed: leave the reporter startable
            self.reporter.fail()
            raise

        if summary.unreachable:
            logger.error(
                f"AnkiConnect unreachable at {snapshot.control_api_url}; "
                f"{len(summary.skipped)} card(s) skipped"
            )
            self.reporter.fail()
        else:
            logger.info(
                f"Export finished: {summary.delivered}/{summary.attempted} delivered, "
                f"{len(summary.failed)} rejected"
            )
            self.reporter.finish()
        return summary

    async def _run(self, source_text: str, snapshot: ConfigSnapshot) -> RunSummary:
        request = build_request(source_text, snapshot, self.template)
        response = await self.provider.generate(request)
        logger.debug(f"Raw response preview: {response.content[:500]}")

        parsed = parse_response(
            response.content,
            expected_count=snapshot.num_questions,
            expected_alternatives=snapshot.num_alternatives,
            deck_name=snapshot.deck_name,
        )
        if len(parsed.records) != snapshot.num_questions:
            logger.warning(
                f"Requested {snapshot.num_questions} question(s), "
                f"got {len(parsed.records)} valid ({len(parsed.failures)} rejected)"
            )

        summary = RunSummary(requested=snapshot.num_questions, parse_failures=parsed.failures)
        for record in parsed.records:
            summary = await self._deliver(summary, record)
        return summary

    async def _deliver(self, summary: RunSummary, record: FlashcardRecord) -> RunSummary:
        """Fold step: add the outcome for one record to the summary."""
        if summary.unreachable:
            return summary.add(SyncOutcome.skipped(record, "AnkiConnect unreachable"))

        outcome = await self.sync_client.sync(record)
        if outcome.unreachable and not summary.outcomes:
            summary.unreachable = True
        return summary.add(outcome)
