"""Pipeline state shown by the status indicator."""

import logging
from enum import Enum
from typing import Callable

from .core.exceptions import PipelineBusyError

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"


Observer = Callable[[PipelineState], None]


class StatusReporter:
    """Holds the pipeline state and notifies observers on every change.

    IDLE -> RUNNING on start, RUNNING -> IDLE on finish, RUNNING -> ERROR on
    fail. ERROR is left only by the next start().
    """

    def __init__(self):
        self._state = PipelineState.IDLE
        self._observers: list[Observer] = []

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is PipelineState.RUNNING

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def start(self) -> None:
        if self.running:
            raise PipelineBusyError("An export is already running")
        self._set(PipelineState.RUNNING)

    def finish(self) -> None:
        self._require_running("finish")
        self._set(PipelineState.IDLE)

    def fail(self) -> None:
        self._require_running("fail")
        self._set(PipelineState.ERROR)

    def _require_running(self, transition: str) -> None:
        if not self.running:
            raise RuntimeError(f"Cannot {transition} from state {self._state.value}")

    def _set(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline state {self._state.value} -> {state.value}")
        self._state = state
        for observer in list(self._observers):
            observer(state)
