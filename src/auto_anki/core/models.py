"""Core data models for the export pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class SamplingOptions:
    """Sampling parameters passed through to the provider."""
    temperature: float = 1.0            # 0..2
    top_p: float = 1.0                  # 0..1
    frequency_penalty: float = 0.0      # -2..2
    presence_penalty: float = 0.0       # -2..2
    max_tokens_per_question: int = 100


@dataclass(frozen=True)
class ConfigSnapshot:
    """Everything one export run needs, frozen for the run's duration."""
    source_text: str
    num_questions: int
    num_alternatives: int
    api_key: str = field(repr=False)
    deck_name: str = "Default"
    control_api_port: int = 8765
    sampling: SamplingOptions = field(default_factory=SamplingOptions)

    # Provider
    model: str = "gpt-3.5-turbo"
    api_base: Optional[str] = None
    timeout: float = 60.0

    @property
    def control_api_url(self) -> str:
        return f"http://localhost:{self.control_api_port}"


@dataclass(frozen=True)
class FlashcardRecord:
    """A single validated question ready for delivery."""
    question: str
    correct_answer: str
    alternatives: tuple[str, ...] = ()
    deck_name: str = "Default"

    def __post_init__(self):
        if not self.question or not self.question.strip():
            raise ValueError("question must not be empty")
        if not self.correct_answer or not self.correct_answer.strip():
            raise ValueError("correct_answer must not be empty")
        # Accept lists from callers, store an immutable tuple
        object.__setattr__(self, "alternatives", tuple(self.alternatives))

    @property
    def is_multiple_choice(self) -> bool:
        return bool(self.alternatives)


@dataclass(frozen=True)
class BlockResult:
    """Outcome of validating one candidate block of model output.

    Exactly one of `record` / `reason` is set. Use the `valid` and
    `invalid` constructors rather than the raw initializer.
    """
    index: int
    record: Optional[FlashcardRecord] = None
    reason: Optional[str] = None

    @classmethod
    def valid(cls, index: int, record: FlashcardRecord) -> "BlockResult":
        return cls(index=index, record=record)

    @classmethod
    def invalid(cls, index: int, reason: str) -> "BlockResult":
        return cls(index=index, reason=reason)

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass
class ParseResult:
    """Validated records plus the blocks that were rejected."""
    records: list[FlashcardRecord] = field(default_factory=list)
    failures: list[BlockResult] = field(default_factory=list)
    raw_response: str = ""

    @property
    def block_count(self) -> int:
        return len(self.records) + len(self.failures)


class SyncStatus(Enum):
    """Per-record delivery result."""
    DELIVERED = "delivered"
    REJECTED = "rejected"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one delivery attempt (or skip) for a record."""
    record: FlashcardRecord
    status: SyncStatus
    reason: Optional[str] = None
    note_id: Optional[int] = None
    unreachable: bool = False       # connection-level failure, not an Anki-side error

    @classmethod
    def delivered(cls, record: FlashcardRecord, note_id: Optional[int] = None) -> "SyncOutcome":
        return cls(record=record, status=SyncStatus.DELIVERED, note_id=note_id)

    @classmethod
    def rejected(
        cls,
        record: FlashcardRecord,
        reason: str,
        unreachable: bool = False,
    ) -> "SyncOutcome":
        return cls(record=record, status=SyncStatus.REJECTED, reason=reason, unreachable=unreachable)

    @classmethod
    def skipped(cls, record: FlashcardRecord, reason: Optional[str] = None) -> "SyncOutcome":
        return cls(record=record, status=SyncStatus.SKIPPED, reason=reason)


@dataclass
class RunSummary:
    """Aggregated outcome of one export run, in generation order."""
    requested: int = 0
    outcomes: list[SyncOutcome] = field(default_factory=list)
    parse_failures: list[BlockResult] = field(default_factory=list)
    unreachable: bool = False

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def delivered(self) -> int:
        return sum(1 for o in self.outcomes if o.status is SyncStatus.DELIVERED)

    @property
    def failed(self) -> list[tuple[FlashcardRecord, str]]:
        return [
            (o.record, o.reason or "")
            for o in self.outcomes
            if o.status is SyncStatus.REJECTED
        ]

    @property
    def skipped(self) -> list[FlashcardRecord]:
        return [o.record for o in self.outcomes if o.status is SyncStatus.SKIPPED]

    def add(self, outcome: SyncOutcome) -> "RunSummary":
        """Append an outcome and return self, so the delivery loop can fold."""
        self.outcomes.append(outcome)
        return self

    def to_dict(self) -> dict:
        return {
            "requested": self.requested,
            "attempted": self.attempted,
            "delivered": self.delivered,
            "failed": [
                {"question": record.question, "reason": reason}
                for record, reason in self.failed
            ],
            "skipped": len(self.skipped),
            "parse_failures": [
                {"block": f.index, "reason": f.reason} for f in self.parse_failures
            ],
            "unreachable": self.unreachable,
        }
