"""Error hierarchy for scenario verdicts.

Diagnostics handed back for non-passing test cases are exceptions so a
host runner can raise them directly. Each carries an ``is_skip`` flag that
tells the host whether to report a skip or a hard failure. Internal
contract violations use :class:`AggregatorStateError` and are never
rendered as a verdict.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

SKIPPED_MESSAGE = "This scenario is skipped"


class VerdictError(Exception):
    """Base exception for all scenario-verdict errors."""

    def __init__(self, message: str = "", cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    @property
    def is_skip(self) -> bool:
        """Whether a host runner should report this as a skip."""
        return False


class SkipError(VerdictError):
    """The test case should be reported as skipped."""

    @property
    def is_skip(self) -> bool:
        return True


class PendingError(VerdictError):
    """Raised by step code that is still a work in progress."""

    def __init__(self, message: str = "TODO: implement me", cause: BaseException | None = None) -> None:
        super().__init__(message, cause)


class StepFailedError(VerdictError):
    """A step failed; used when a failure is known only by its message."""


class UndefinedStepError(VerdictError):
    """A step had no matching implementation.

    Attributes:
        step_text: Text of the step that halted execution.
        snippets: Suggested implementations for that step.
        other_snippets: Snippet groups for the other undefined steps in the
            same test case, in step location order.
        strict: Whether the run treats undefined steps as failures.
    """

    def __init__(
        self,
        step_text: str,
        snippets: Sequence[str],
        other_snippets: Iterable[Sequence[str]],
        strict: bool,
    ) -> None:
        self.step_text = step_text
        self.snippets = list(snippets)
        self.other_snippets = [list(group) for group in other_snippets]
        self.strict = strict
        super().__init__(
            _undefined_message(step_text, self.snippets, self.other_snippets)
        )

    @property
    def is_skip(self) -> bool:
        return not self.strict


class AggregatorStateError(VerdictError):
    """An event stream broke the contract the aggregator relies on."""


class OptionsError(VerdictError):
    """A runtime option could not be parsed."""


class ReplayError(VerdictError):
    """A recorded event stream could not be replayed."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


def _undefined_message(
    step_text: str,
    snippets: list[str],
    other_snippets: list[list[str]],
) -> str:
    if not snippets:
        return "This step is undefined"
    lines = [
        f"The step '{step_text}' is undefined. "
        "You can implement it using the snippet(s) below:",
        "",
    ]
    lines.extend(snippets)

    others: list[str] = []
    for group in other_snippets:
        for snippet in group:
            if snippet not in others:
                others.append(snippet)
    if others:
        lines.extend(["", "Some other steps were also undefined:", ""])
        lines.extend(others)
    return "\n".join(lines)
