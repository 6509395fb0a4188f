"""Parallel rollout orchestration.

Each manifest runs its own state machine on a bounded thread pool. A failing
or timed out service never cancels the others: every service reaches a
terminal state and the report lists them all. Dependency order is the
caller's concern (pass one batch at a time).
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor

from loguru import logger

from src.core.manifest import Manifest

from .constants import RolloutConstants
from .errors import MissingRollingVersion, RolloutError, UpgradeTimeout
from .executor import RolloutExecutor
from .notifier import LoggingNotifier, Notifier, RolloutEvent
from .report import RolloutOutcome, RolloutReport, RolloutState
from .upgrade import UpgradeData, UpgradeMode, WaitTimeEstimator


class RolloutOrchestrator:
    """Drives many manifests through an executor with bounded parallelism.

    Attributes:
        executor: Helm (or fake) executor shared by all workers
        notifier: Receives one event per service
        estimator: Computes each service's wait budget
        constants: Poll interval and other tunables
    """

    def __init__(
        self,
        executor: RolloutExecutor,
        *,
        notifier: Notifier | None = None,
        estimator: WaitTimeEstimator | None = None,
        constants: RolloutConstants | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.executor = executor
        self.constants = constants or RolloutConstants()
        self.notifier = notifier or LoggingNotifier()
        self.estimator = estimator or WaitTimeEstimator(self.constants)
        self._sleep = sleep
        self._clock = clock

    # =========================================================================
    # Public API
    # =========================================================================

    def run(
        self,
        manifests: Sequence[Manifest],
        mode: UpgradeMode,
        max_parallel: int,
        *,
        region: str = "",
        skipped: Iterable[RolloutOutcome] = (),
    ) -> RolloutReport:
        """Roll out every manifest and wait for all of them to finish.

        Args:
            manifests: Completed, validated manifests
            mode: Requested action for every service
            max_parallel: Worker pool size; further services queue
            region: Region name for the report
            skipped: Outcomes of services excluded before dispatch

        Returns:
            Report with one outcome per manifest (plus the skipped ones)
        """
        if max_parallel < 1:
            raise ValueError(f"max_parallel must be at least 1, got {max_parallel}")

        report = RolloutReport(region=region, mode=mode.value, outcomes=list(skipped))
        if not manifests:
            return report

        logger.info(
            f"Rolling out {len(manifests)} services ({mode.value}) "
            f"with parallelism {max_parallel}"
        )
        with ThreadPoolExecutor(
            max_workers=max_parallel, thread_name_prefix="rollout"
        ) as pool:
            futures = [pool.submit(self._rollout, m, mode) for m in manifests]
            report.outcomes.extend(f.result() for f in futures)
        return report

    # =========================================================================
    # Per-service state machine
    # =========================================================================

    def _resolve_version(self, manifest: Manifest, mode: UpgradeMode) -> str | None:
        if manifest.version or not mode.requires_version:
            return manifest.version
        installed = self.executor.installed_version(manifest)
        if installed is None:
            raise MissingRollingVersion(manifest.name)
        logger.info(f"{manifest.name}: using installed version {installed}")
        return installed

    def _wait(self, data: UpgradeData, started: float) -> None:
        poll = self.constants.POLL_INTERVAL_SECONDS
        while True:
            if self.executor.rollout_status(data.manifest):
                return
            elapsed = self._clock() - started
            if elapsed >= data.wait_seconds:
                raise UpgradeTimeout(data.name, int(elapsed))
            self._sleep(min(poll, data.wait_seconds - elapsed))

    def _rollout(self, manifest: Manifest, mode: UpgradeMode) -> RolloutOutcome:
        outcome = RolloutOutcome(
            service=manifest.name, region=manifest.region, version=manifest.version
        )
        started = self._clock()
        data: UpgradeData | None = None
        try:
            version = self._resolve_version(manifest, mode)
            outcome.version = version
            data = UpgradeData(
                manifest=manifest,
                mode=mode,
                version=version,
                wait_seconds=self.estimator.estimate(manifest),
            )
            outcome.transition(RolloutState.DISPATCHED)
            self.executor.upgrade(data)

            if mode.waits:
                outcome.transition(RolloutState.WAITING_FOR_ROLLOUT)
                logger.debug(f"{manifest.name}: waiting up to {data.wait_seconds}s")
                self._wait(data, started)
            outcome.transition(RolloutState.SUCCEEDED)
        except UpgradeTimeout as e:
            outcome.transition(RolloutState.TIMED_OUT)
            outcome.message = e.message
        except RolloutError as e:
            outcome.transition(RolloutState.FAILED)
            outcome.message = e.message
            if e.details:
                logger.debug(f"{manifest.name}: {e.details}")
        except Exception as e:
            logger.exception(f"Unexpected error rolling out {manifest.name}")
            outcome.transition(RolloutState.FAILED)
            outcome.message = str(e)

        if mode.rolls_back and outcome.state in (
            RolloutState.FAILED,
            RolloutState.TIMED_OUT,
        ) and data is not None:
            self._rollback(manifest, outcome)

        outcome.elapsed = self._clock() - started
        if data is not None:
            data.outcome = outcome
        if outcome.state is not RolloutState.SUCCEEDED:
            logger.error(f"{manifest.name}: {outcome.state.value}: {outcome.message}")

        self._notify(outcome, mode, manifest)
        return outcome

    def _notify(
        self, outcome: RolloutOutcome, mode: UpgradeMode, manifest: Manifest
    ) -> None:
        try:
            event = RolloutEvent.from_outcome(outcome, mode.value, manifest)
            self.notifier.notify(event)
        except Exception:
            logger.exception(f"Notifier failed for {manifest.name}")

    def _rollback(self, manifest: Manifest, outcome: RolloutOutcome) -> None:
        try:
            self.executor.rollback(manifest)
        except RolloutError as e:
            outcome.message = f"{outcome.message}; {e.message}"
            return
        outcome.transition(RolloutState.ROLLED_BACK)
