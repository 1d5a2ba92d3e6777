"""Test lifecycle events and the bus that delivers them.

Events are plain dataclasses dispatched by their exact type. Anything that
only needs to listen depends on :class:`EventPublisher`; :class:`EventBus`
is the in-process implementation used by the replay driver and the tests.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

from scenario_verdict.models import Result, Status, StepLocation, TestCase, TestStep

logger = logging.getLogger(__name__)


@dataclass
class TestCaseStarted:
    """A test case is about to execute its steps."""

    __test__ = False

    test_case: TestCase
    timestamp: float = field(default_factory=time.time)


@dataclass
class TestStepFinished:
    """A step or hook of the current test case has finished."""

    __test__ = False

    test_step: TestStep
    result: Result
    timestamp: float = field(default_factory=time.time)

    @property
    def status(self) -> Status:
        return self.result.status


@dataclass
class TestCaseFinished:
    """The current test case has finished with its final result."""

    __test__ = False

    result: Result
    test_case: TestCase | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class SnippetsSuggested:
    """Code snippets were generated for an undefined step.

    Attributes:
        uri: Feature file of the undefined step.
        step_line: Line of the undefined step.
        snippets: Suggested implementations, in the order produced.
    """

    uri: str
    step_line: int
    snippets: list[str] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)

    @property
    def location(self) -> StepLocation:
        return StepLocation(self.uri, self.step_line)


EventHandler = Callable[[Any], None]


@dataclass(frozen=True)
class Subscription:
    """Token returned by :meth:`EventPublisher.subscribe`."""

    id: int
    event_type: type
    handler: EventHandler = field(compare=False)


@runtime_checkable
class EventPublisher(Protocol):
    """Subscribe/unsubscribe capability offered by an event bus."""

    def subscribe(self, event_type: type, handler: EventHandler) -> Subscription: ...

    def unsubscribe(self, subscription: Subscription) -> None: ...


class EventBus:
    """Synchronous publish/subscribe bus for lifecycle events.

    Handlers run on the publishing thread, in the order they subscribed.
    Exceptions in handlers are logged but do not prevent other handlers
    from running.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[type, list[Subscription]] = defaultdict(list)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, event_type: type, handler: EventHandler) -> Subscription:
        """Register *handler* for events of exactly *event_type*."""
        with self._lock:
            subscription = Subscription(next(self._ids), event_type, handler)
            self._subscriptions[event_type].append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove *subscription*; unknown subscriptions are ignored."""
        with self._lock:
            registered = self._subscriptions.get(subscription.event_type, [])
            if subscription in registered:
                registered.remove(subscription)

    def handler_count(self, event_type: type) -> int:
        """Return how many handlers are registered for *event_type*."""
        with self._lock:
            return len(self._subscriptions.get(event_type, []))

    def publish(self, event: Any) -> None:
        """Deliver *event* to every handler subscribed to its type."""
        with self._lock:
            subscriptions = list(self._subscriptions.get(type(event), []))
        for subscription in subscriptions:
            try:
                subscription.handler(event)
            except Exception as exc:
                logger.error(
                    "Event handler error for %s: %s",
                    type(event).__name__,
                    exc,
                )
