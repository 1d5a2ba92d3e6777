"""Replay recorded test lifecycle events and render a verdict per case.

The input is newline-delimited JSON, one event object per line, each with
a ``type`` of ``test_case_started``, ``test_step_finished``,
``snippets_suggested`` or ``test_case_finished``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from typing import Any

from scenario_verdict.aggregator import ResultAggregator
from scenario_verdict.errors import (
    PendingError,
    ReplayError,
    SkipError,
    StepFailedError,
    VerdictError,
)
from scenario_verdict.events import (
    EventBus,
    SnippetsSuggested,
    TestCaseFinished,
    TestCaseStarted,
    TestStepFinished,
)
from scenario_verdict.models import (
    DocStringArgument,
    HookTestStep,
    PickleStepTestStep,
    Result,
    Status,
    TestCase,
    TestStep,
)
from scenario_verdict.verdict import Verdict

logger = logging.getLogger(__name__)

_ERROR_KINDS: dict[str, type[VerdictError]] = {
    "failed": StepFailedError,
    "pending": PendingError,
    "skip": SkipError,
}


def _status(raw: Any) -> Status:
    try:
        return Status(str(raw).lower())
    except ValueError:
        raise ValueError(f"unknown status {raw!r}") from None


def _error(raw: dict[str, Any] | None) -> VerdictError | None:
    if raw is None:
        return None
    kind = raw.get("kind", "failed")
    error_type = _ERROR_KINDS.get(kind)
    if error_type is None:
        raise ValueError(f"unknown error kind {kind!r}")
    return error_type(raw.get("message", ""))


def _result(data: dict[str, Any]) -> Result:
    return Result(
        status=_status(data["status"]),
        duration=float(data.get("duration", 0.0)),
        error=_error(data.get("error")),
    )


def _test_step(raw: dict[str, Any]) -> TestStep:
    if raw.get("kind", "pickle") == "hook":
        return HookTestStep(
            hook_type=raw.get("hook_type", "before"),
            code_location=raw.get("code_location", ""),
        )
    doc_string = raw.get("doc_string")
    argument = None
    if doc_string is not None:
        argument = DocStringArgument(
            content=doc_string["content"],
            content_type=doc_string.get("content_type", ""),
            line=int(doc_string.get("line", 0)),
        )
    return PickleStepTestStep(
        uri=raw["uri"],
        line=int(raw["line"]),
        text=raw.get("text", ""),
        keyword=raw.get("keyword", ""),
        argument=argument,
    )


def decode_event(data: dict[str, Any]) -> Any:
    """Build an event object from its decoded JSON form."""
    event_type = data.get("type")
    if event_type == "test_case_started":
        return TestCaseStarted(
            test_case=TestCase(
                name=data.get("name", ""),
                uri=data.get("uri", ""),
                line=int(data.get("line", 0)),
                tags=tuple(data.get("tags", ())),
            )
        )
    if event_type == "test_step_finished":
        return TestStepFinished(test_step=_test_step(data["test_step"]), result=_result(data))
    if event_type == "snippets_suggested":
        return SnippetsSuggested(
            uri=data["uri"],
            step_line=int(data["step_line"]),
            snippets=list(data.get("snippets", [])),
        )
    if event_type == "test_case_finished":
        return TestCaseFinished(result=_result(data))
    raise ValueError(f"unknown event type {event_type!r}")


def read_events(lines: Iterable[str]) -> Iterator[tuple[int, Any]]:
    """Yield ``(line_number, event)`` for each non-blank line."""
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
            if not isinstance(data, dict):
                raise ValueError("event must be a JSON object")
            yield line_number, decode_event(data)
        except (ValueError, KeyError, TypeError) as exc:
            raise ReplayError(str(exc), line_number) from exc


def replay_events(
    lines: Iterable[str],
    strict: bool = False,
    bus: EventBus | None = None,
) -> Iterator[tuple[TestCase, Verdict]]:
    """Replay an event stream and yield each test case with its verdict.

    Raises:
        ReplayError: If the stream is malformed or an event arrives
            outside of a started test case.
    """
    bus = bus or EventBus()
    test_case: TestCase | None = None
    aggregator: ResultAggregator | None = None

    for line_number, event in read_events(lines):
        if isinstance(event, TestCaseStarted):
            if aggregator is not None:
                raise ReplayError(
                    f"test case '{event.test_case.name}' started before "
                    f"'{test_case.name if test_case else ''}' finished",
                    line_number,
                )
            test_case = event.test_case
            aggregator = ResultAggregator(bus, strict)
            logger.debug("Replaying test case %s", test_case.name)
            bus.publish(event)
            continue

        if aggregator is None or test_case is None:
            raise ReplayError(
                f"{type(event).__name__} outside of a started test case", line_number
            )
        if isinstance(event, TestCaseFinished):
            event.test_case = test_case
        bus.publish(event)
        if isinstance(event, TestCaseFinished):
            aggregator.finish()
            yield test_case, aggregator.verdict()
            test_case, aggregator = None, None

    if aggregator is not None and test_case is not None:
        logger.warning("Test case %s never finished", test_case.name)
        aggregator.finish()
        yield test_case, aggregator.verdict()
