"""Rollout event notification.

The orchestrator emits one ``RolloutEvent`` per service. Formatting and
delivery (chat, annotations) belong to the sinks; ``BackgroundNotifier``
delivers on its own thread so a slow sink never holds up a rollout.
"""

from __future__ import annotations

import queue
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from src.core.manifest import Manifest

from .report import RolloutOutcome, RolloutState


@dataclass(frozen=True)
class RolloutEvent:
    """Structured outcome of one service's rollout."""

    service: str
    region: str
    mode: str
    state: RolloutState
    version: str | None = None
    elapsed: float = 0.0
    message: str = ""
    team: str | None = None
    contacts: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_outcome(
        cls, outcome: RolloutOutcome, mode: str, manifest: Manifest | None = None
    ) -> RolloutEvent:
        metadata = manifest.metadata if manifest is not None else None
        return cls(
            service=outcome.service,
            region=outcome.region,
            mode=mode,
            state=outcome.state,
            version=outcome.version,
            elapsed=outcome.elapsed,
            message=outcome.message,
            team=metadata.team if metadata else None,
            contacts=tuple(c.slack or c.name for c in metadata.contacts) if metadata else (),
        )


class Notifier(ABC):
    """Receives rollout events."""

    @abstractmethod
    def notify(self, event: RolloutEvent) -> None:
        """Deliver or enqueue an event. Must not block for long."""

    def close(self) -> None:
        """Flush pending events."""


class LoggingNotifier(Notifier):
    """Writes events to the log."""

    def notify(self, event: RolloutEvent) -> None:
        line = (
            f"{event.service} {event.mode} in {event.region}: {event.state.value}"
            f" ({event.elapsed:.0f}s)"
        )
        if event.state is RolloutState.SUCCEEDED:
            logger.info(line)
        else:
            logger.error(f"{line}: {event.message}")


class BackgroundNotifier(Notifier):
    """Fans events out to sinks from a dedicated thread.

    Example:
        >>> notifier = BackgroundNotifier([LoggingNotifier(), slack_sink])
        >>> orchestrator = RolloutOrchestrator(executor, notifier=notifier)
        >>> ...
        >>> notifier.close()
    """

    _STOP = object()

    def __init__(self, sinks: Sequence[Notifier]) -> None:
        self.sinks = list(sinks)
        self._queue: queue.Queue[object] = queue.Queue()
        self._thread = threading.Thread(
            target=self._deliver, name="rollout-notifier", daemon=True
        )
        self._thread.start()

    def notify(self, event: RolloutEvent) -> None:
        self._queue.put(event)

    def _deliver(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    return
                for sink in self.sinks:
                    try:
                        sink.notify(item)  # type: ignore[arg-type]
                    except Exception:
                        logger.exception(f"Notification sink {type(sink).__name__} failed")
            finally:
                self._queue.task_done()

    def close(self) -> None:
        """Deliver everything queued so far and stop the thread."""
        if not self._thread.is_alive():
            return
        self._queue.put(self._STOP)
        self._thread.join()
        for sink in self.sinks:
            sink.close()
