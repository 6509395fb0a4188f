"""Tests for rollout event notification."""

from collections.abc import Callable
from unittest.mock import MagicMock

from loguru import logger

from src.cli.deployment.rollout import (
    BackgroundNotifier,
    LoggingNotifier,
    Notifier,
    RolloutEvent,
    RolloutOutcome,
    RolloutState,
)
from src.core.manifest import Manifest


def _event(service: str = "payments", state: RolloutState = RolloutState.SUCCEEDED) -> RolloutEvent:
    return RolloutEvent(service=service, region="dev-uk", mode="upgrade", state=state)


class TestRolloutEvent:
    def test_from_outcome_carries_ownership(self, make_manifest: Callable[..., Manifest]) -> None:
        outcome = RolloutOutcome(
            "payments", "dev-uk", RolloutState.FAILED, version="1.2.3", message="boom", elapsed=12.5
        )

        event = RolloutEvent.from_outcome(outcome, "upgrade-wait", make_manifest())

        assert event.state is RolloutState.FAILED
        assert event.version == "1.2.3"
        assert event.message == "boom"
        assert event.elapsed == 12.5
        assert event.team == "payments"
        assert event.contacts == ("@ann",)

    def test_from_outcome_without_manifest(self) -> None:
        outcome = RolloutOutcome.skipped("payments", "dev-uk", "disabled")
        event = RolloutEvent.from_outcome(outcome, "upgrade")
        assert event.team is None
        assert event.contacts == ()


class TestBackgroundNotifier:
    def test_delivers_every_event_to_every_sink(self) -> None:
        first = MagicMock(spec=Notifier)
        second = MagicMock(spec=Notifier)
        notifier = BackgroundNotifier([first, second])

        for name in ("a", "b", "c"):
            notifier.notify(_event(name))
        notifier.close()

        for sink in (first, second):
            assert [c.args[0].service for c in sink.notify.call_args_list] == ["a", "b", "c"]
            sink.close.assert_called_once()

    def test_failing_sink_does_not_stop_delivery(self) -> None:
        broken = MagicMock(spec=Notifier)
        broken.notify.side_effect = RuntimeError("slack is down")
        healthy = MagicMock(spec=Notifier)
        notifier = BackgroundNotifier([broken, healthy])

        notifier.notify(_event("a"))
        notifier.notify(_event("b"))
        notifier.close()

        assert healthy.notify.call_count == 2

    def test_close_is_idempotent(self) -> None:
        sink = MagicMock(spec=Notifier)
        notifier = BackgroundNotifier([sink])

        notifier.close()
        notifier.close()

        sink.close.assert_called_once()


class TestLoggingNotifier:
    def test_logs_success_and_failure(self) -> None:
        messages: list[str] = []
        handler_id = logger.add(messages.append, format="{level} {message}")
        try:
            notifier = LoggingNotifier()
            notifier.notify(_event())
            notifier.notify(_event(state=RolloutState.TIMED_OUT))
        finally:
            logger.remove(handler_id)

        assert messages[0].startswith("INFO payments upgrade in dev-uk: succeeded")
        assert messages[1].startswith("ERROR payments upgrade in dev-uk: timed-out")
