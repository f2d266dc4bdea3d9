"""Core models, configuration, parsing and exceptions."""

from .models import (
    SamplingOptions,
    ConfigSnapshot,
    FlashcardRecord,
    BlockResult,
    ParseResult,
    SyncStatus,
    SyncOutcome,
    RunSummary,
)
from .config import Settings, load_config, save_config
from .exceptions import (
    AutoAnkiError,
    EmptyInputError,
    AuthenticationError,
    ProviderError,
    TransportError,
    NoValidRecordsError,
    PipelineBusyError,
    ConfigError,
    AnkiConnectError,
    ControlApiUnreachableError,
)
from .parsing import parse_response

__all__ = [
    "SamplingOptions",
    "ConfigSnapshot",
    "FlashcardRecord",
    "BlockResult",
    "ParseResult",
    "SyncStatus",
    "SyncOutcome",
    "RunSummary",
    "Settings",
    "load_config",
    "save_config",
    "AutoAnkiError",
    "EmptyInputError",
    "AuthenticationError",
    "ProviderError",
    "TransportError",
    "NoValidRecordsError",
    "PipelineBusyError",
    "ConfigError",
    "AnkiConnectError",
    "ControlApiUnreachableError",
    "parse_response",
]
