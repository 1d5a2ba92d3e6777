"""Per-test-case result aggregation.

A :class:`ResultAggregator` listens to the lifecycle events of a single
test case, remembers which step went undefined and what snippets were
suggested, and renders the case's final result as a diagnostic.
"""

from __future__ import annotations

import logging
import threading

from scenario_verdict.errors import (
    SKIPPED_MESSAGE,
    AggregatorStateError,
    SkipError,
    UndefinedStepError,
)
from scenario_verdict.events import (
    EventPublisher,
    SnippetsSuggested,
    Subscription,
    TestCaseFinished,
    TestStepFinished,
)
from scenario_verdict.models import PickleStepTestStep, Result, Status, StepLocation
from scenario_verdict.snippets import PendingSnippets
from scenario_verdict.verdict import Diagnostic, Verdict

logger = logging.getLogger(__name__)


class ResultAggregator:
    """Collects one test case's events and renders its verdict.

    Subscribes to step-finished, case-finished and snippets-suggested
    events on construction. Call :meth:`finish` once the case is over to
    unsubscribe, then query :meth:`is_passed` and :meth:`describe_failure`.

    Example::

        aggregator = ResultAggregator(bus, strict=False)
        ...  # run the test case
        aggregator.finish()
        if not aggregator.is_passed():
            raise aggregator.describe_failure()
    """

    def __init__(self, bus: EventPublisher, strict: bool) -> None:
        self._bus = bus
        self._strict = strict
        self._lock = threading.Lock()
        self._pending_snippets = PendingSnippets()
        self._undefined_step: PickleStepTestStep | None = None
        self._result: Result | None = None
        self._undefined_error: UndefinedStepError | None = None
        self._finished = False
        self._subscriptions: list[Subscription] = [
            bus.subscribe(SnippetsSuggested, self._on_snippets_suggested),
            bus.subscribe(TestStepFinished, self._on_test_step_finished),
            bus.subscribe(TestCaseFinished, self._on_test_case_finished),
        ]

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def result(self) -> Result | None:
        """Final test case result, or ``None`` before the case finished."""
        with self._lock:
            return self._result

    @property
    def undefined_step(self) -> PickleStepTestStep | None:
        """The most recent pickle step that finished undefined."""
        with self._lock:
            return self._undefined_step

    @property
    def pending_snippets(self) -> dict[StepLocation, list[str]]:
        """Snapshot of the snippets not yet reported, in step location order."""
        with self._lock:
            return {
                location: list(self._pending_snippets.get(location) or [])
                for location in self._pending_snippets.locations()
            }

    def _on_test_step_finished(self, event: TestStepFinished) -> None:
        if event.status is not Status.UNDEFINED:
            return
        if not isinstance(event.test_step, PickleStepTestStep):
            return
        with self._lock:
            if self._finished:
                logger.debug("Ignoring step finished after finish()")
                return
            self._undefined_step = event.test_step
        logger.debug("Undefined step at %s", event.test_step.location)

    def _on_snippets_suggested(self, event: SnippetsSuggested) -> None:
        with self._lock:
            if self._finished:
                logger.debug("Ignoring snippets suggested after finish()")
                return
            stored = self._pending_snippets.add(event.location, event.snippets)
        if not stored:
            logger.debug("Snippets already suggested for %s", event.location)

    def _on_test_case_finished(self, event: TestCaseFinished) -> None:
        with self._lock:
            if self._finished:
                logger.debug("Ignoring test case finished after finish()")
                return
            if self._result is not None:
                logger.warning(
                    "Test case finished twice (%s, then %s)",
                    self._result.status,
                    event.result.status,
                )
            self._result = event.result
            self._undefined_error = None

    def finish(self) -> None:
        """Unsubscribe from the bus. Safe to call more than once."""
        with self._lock:
            if self._finished:
                return
            self._finished = True
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            self._bus.unsubscribe(subscription)

    def __enter__(self) -> ResultAggregator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.finish()

    def is_passed(self) -> bool:
        """Return ``True`` if the case passed or has not finished yet."""
        with self._lock:
            return self._result is None or self._result.status is Status.PASSED

    def describe_failure(self) -> BaseException | None:
        """Render the final result as an exception, or ``None`` if passed.

        Raises:
            AggregatorStateError: If the result status is not one this
                aggregator knows how to render, or the case finished
                undefined without an undefined step being reported.
        """
        with self._lock:
            result = self._result
            if result is None:
                return None
            status = result.status
            if status is Status.PASSED:
                return None
            if status in (Status.FAILED, Status.AMBIGUOUS):
                return result.error
            if status is Status.PENDING:
                return self._pending_error(result)
            if status is Status.SKIPPED:
                return self._skipped_error(result)
            if status is Status.UNDEFINED:
                return self._undefined_step_error()
            raise AggregatorStateError(
                f"Unexpected result status: {getattr(status, 'value', status)}"
            )

    def verdict(self) -> Verdict:
        """Return the neutral verdict for the finished case."""
        error = self.describe_failure()
        if error is None:
            return Verdict(passed=self.is_passed())
        return Verdict(passed=False, diagnostic=Diagnostic.from_error(error))

    def _pending_error(self, result: Result) -> BaseException | None:
        """Lenient mode wraps the error in a skip whose cause is that error itself."""
        error = result.error
        if self._strict:
            return error
        if error is None:
            return SkipError("This step is pending")
        return SkipError(str(error), cause=error)

    def _skipped_error(self, result: Result) -> BaseException:
        """A non-skip error is wrapped in a skip whose cause is that error itself."""
        error = result.error
        if error is None:
            return SkipError(SKIPPED_MESSAGE)
        if isinstance(error, SkipError):
            return error
        return SkipError(str(error), cause=error)

    def _undefined_step_error(self) -> UndefinedStepError:
        if self._undefined_error is not None:
            return self._undefined_error
        step = self._undefined_step
        if step is None:
            raise AggregatorStateError(
                "Test case finished undefined but no undefined step was reported"
            )
        snippets = self._pending_snippets.pop(step.location) or []
        self._undefined_error = UndefinedStepError(
            step.text,
            snippets,
            self._pending_snippets.groups(),
            self._strict,
        )
        return self._undefined_error
