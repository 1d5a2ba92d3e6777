"""Shared fixtures for scenario-verdict tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from scenario_verdict.events import EventBus, SnippetsSuggested, TestCaseFinished, TestStepFinished
from scenario_verdict.models import HookTestStep, PickleStepTestStep, Result, Status


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def step_finished() -> Callable[..., TestStepFinished]:
    """Return a factory for step finished events of a pickle step."""

    def make(
        uri: str = "file:features/a.feature",
        line: int = 3,
        text: str = "I have 5 cukes",
        status: Status = Status.UNDEFINED,
    ) -> TestStepFinished:
        return TestStepFinished(
            test_step=PickleStepTestStep(uri=uri, line=line, text=text, keyword="Given "),
            result=Result(status=status),
        )

    return make


@pytest.fixture()
def hook_finished() -> Callable[..., TestStepFinished]:
    def make(status: Status = Status.UNDEFINED) -> TestStepFinished:
        return TestStepFinished(test_step=HookTestStep(hook_type="before"), result=Result(status=status))

    return make


@pytest.fixture()
def case_finished() -> Callable[..., TestCaseFinished]:
    def make(status: Status, error: BaseException | None = None) -> TestCaseFinished:
        return TestCaseFinished(result=Result(status=status, error=error))

    return make


@pytest.fixture()
def snippets_suggested() -> Callable[..., SnippetsSuggested]:
    def make(uri: str, line: int, *snippets: str) -> SnippetsSuggested:
        return SnippetsSuggested(uri=uri, step_line=line, snippets=list(snippets))

    return make
