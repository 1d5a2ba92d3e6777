"""scenario-verdict - test case result aggregation.

Listens to the lifecycle events of a running test case and renders its
outcome as a framework-neutral verdict: passed, or a diagnostic explaining
a failure, a skip or an undefined step together with code snippets that
would implement it.
"""

from scenario_verdict.aggregator import ResultAggregator
from scenario_verdict.errors import (
    AggregatorStateError,
    OptionsError,
    PendingError,
    ReplayError,
    SkipError,
    StepFailedError,
    UndefinedStepError,
    VerdictError,
)
from scenario_verdict.events import (
    EventBus,
    EventPublisher,
    SnippetsSuggested,
    Subscription,
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
    StepLocation,
    TestCase,
)
from scenario_verdict.options import RuntimeOptions, load_options, parse_properties
from scenario_verdict.replay import replay_events
from scenario_verdict.snippets import PendingSnippets
from scenario_verdict.verdict import Diagnostic, DiagnosticKind, Verdict

__all__ = [
    "AggregatorStateError",
    "Diagnostic",
    "DiagnosticKind",
    "DocStringArgument",
    "EventBus",
    "EventPublisher",
    "HookTestStep",
    "OptionsError",
    "PendingError",
    "PendingSnippets",
    "PickleStepTestStep",
    "ReplayError",
    "Result",
    "ResultAggregator",
    "RuntimeOptions",
    "SkipError",
    "SnippetsSuggested",
    "Status",
    "StepFailedError",
    "StepLocation",
    "Subscription",
    "TestCase",
    "TestCaseFinished",
    "TestCaseStarted",
    "TestStepFinished",
    "UndefinedStepError",
    "Verdict",
    "VerdictError",
    "load_options",
    "parse_properties",
    "replay_events",
]
