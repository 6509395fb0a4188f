"""Rollout states, per-service outcomes and the aggregate report."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RolloutState(str, Enum):
    """Per-service rollout state machine.

    Pending -> Dispatched -> WaitingForRollout -> Succeeded | TimedOut | Failed
    Failed | TimedOut -> RolledBack (upgrade-wait-rollback only)
    Skipped is set before dispatch (disabled, invalid or unreconcilable).
    """

    PENDING = "pending"
    DISPATCHED = "dispatched"
    WAITING_FOR_ROLLOUT = "waiting-for-rollout"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed-out"
    FAILED = "failed"
    ROLLED_BACK = "rolled-back"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {
        RolloutState.SUCCEEDED,
        RolloutState.TIMED_OUT,
        RolloutState.FAILED,
        RolloutState.ROLLED_BACK,
        RolloutState.SKIPPED,
    }
)

_TRANSITIONS: dict[RolloutState, frozenset[RolloutState]] = {
    RolloutState.PENDING: frozenset({RolloutState.DISPATCHED, RolloutState.FAILED}),
    RolloutState.DISPATCHED: frozenset(
        {RolloutState.WAITING_FOR_ROLLOUT, RolloutState.SUCCEEDED, RolloutState.FAILED}
    ),
    RolloutState.WAITING_FOR_ROLLOUT: frozenset(
        {RolloutState.SUCCEEDED, RolloutState.TIMED_OUT, RolloutState.FAILED}
    ),
    RolloutState.FAILED: frozenset({RolloutState.ROLLED_BACK}),
    RolloutState.TIMED_OUT: frozenset({RolloutState.ROLLED_BACK}),
}


@dataclass
class RolloutOutcome:
    """Result of one service's rollout.

    Attributes:
        service: Service name
        region: Region rolled out to
        state: Terminal state
        version: Version dispatched (None if none could be determined)
        message: Failure reason, empty on success
        elapsed: Seconds between dispatch and the terminal state
        history: Every state the service passed through
    """

    service: str
    region: str
    state: RolloutState = RolloutState.PENDING
    version: str | None = None
    message: str = ""
    elapsed: float = 0.0
    history: list[RolloutState] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.state)

    def transition(self, state: RolloutState) -> None:
        """Move to ``state``.

        Raises:
            ValueError: On a transition the state machine does not allow
        """
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if state not in allowed:
            raise ValueError(
                f"{self.service}: invalid rollout transition {self.state.value} -> {state.value}"
            )
        self.state = state
        self.history.append(state)

    @classmethod
    def skipped(cls, service: str, region: str, reason: str) -> RolloutOutcome:
        return cls(
            service=service,
            region=region,
            state=RolloutState.SKIPPED,
            message=reason,
        )

    @property
    def succeeded(self) -> bool:
        return self.state is RolloutState.SUCCEEDED


@dataclass
class RolloutReport:
    """Every service's outcome for one orchestration run."""

    region: str
    mode: str
    outcomes: list[RolloutOutcome] = field(default_factory=list)

    def by_state(self, state: RolloutState) -> list[RolloutOutcome]:
        return [o for o in self.outcomes if o.state is state]

    @property
    def succeeded(self) -> list[RolloutOutcome]:
        return self.by_state(RolloutState.SUCCEEDED)

    @property
    def timed_out(self) -> list[RolloutOutcome]:
        return self.by_state(RolloutState.TIMED_OUT)

    @property
    def failed(self) -> list[RolloutOutcome]:
        return self.by_state(RolloutState.FAILED)

    @property
    def rolled_back(self) -> list[RolloutOutcome]:
        return self.by_state(RolloutState.ROLLED_BACK)

    @property
    def skipped(self) -> list[RolloutOutcome]:
        return self.by_state(RolloutState.SKIPPED)

    @property
    def ok(self) -> bool:
        """True when every service succeeded."""
        return all(o.succeeded for o in self.outcomes)

    def extend(self, other: RolloutReport) -> None:
        self.outcomes.extend(other.outcomes)

    def summary(self) -> dict[str, int]:
        counts = {state.value: 0 for state in TERMINAL_STATES}
        for outcome in self.outcomes:
            counts[outcome.state.value] = counts.get(outcome.state.value, 0) + 1
        return counts
