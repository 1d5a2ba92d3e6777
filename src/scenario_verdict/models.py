"""Scenario execution data models.

Defines the value types observed while a test case runs: result statuses,
step locations, test steps and the results they finish with.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class Status(str, enum.Enum):
    """Lifecycle status reported for a test step or a whole test case."""

    PASSED = "passed"
    SKIPPED = "skipped"
    PENDING = "pending"
    UNDEFINED = "undefined"
    AMBIGUOUS = "ambiguous"
    FAILED = "failed"
    UNUSED = "unused"

    def is_ok(self, strict: bool) -> bool:
        """Return ``True`` if this status should not fail a run."""
        if self in (Status.PASSED, Status.SKIPPED):
            return True
        if self in (Status.PENDING, Status.UNDEFINED):
            return not strict
        return False


@dataclass(frozen=True, order=True)
class StepLocation:
    """Where a step occurs: ordered by ``uri`` then ``line``."""

    uri: str
    line: int

    def __str__(self) -> str:
        return f"{self.uri}:{self.line}"


@dataclass(frozen=True)
class DocStringArgument:
    """A doc string attached to a step.

    Attributes:
        content: The text between the delimiters.
        content_type: Optional media type after the opening delimiter.
        line: Line of the opening delimiter.
    """

    content: str
    content_type: str = ""
    line: int = 0


class TestStep:
    """Base class for anything a test case executes."""

    __test__ = False


@dataclass(frozen=True)
class HookTestStep(TestStep):
    """A before/after hook run as part of a test case."""

    hook_type: str = "before"
    code_location: str = ""


@dataclass(frozen=True)
class PickleStepTestStep(TestStep):
    """A concrete scenario step, as opposed to a hook.

    Attributes:
        uri: Feature file the step came from.
        line: Line of the step in that file.
        text: Step text without its keyword.
        keyword: Gherkin keyword (``Given``, ``When`` ...).
        argument: Optional doc string argument.
    """

    uri: str = ""
    line: int = 0
    text: str = ""
    keyword: str = ""
    argument: DocStringArgument | None = None

    @property
    def location(self) -> StepLocation:
        return StepLocation(self.uri, self.line)


@dataclass
class Result:
    """Outcome of a step or test case.

    Attributes:
        status: Final status.
        duration: Wall-clock seconds spent.
        error: Exception that explains a non-passing status, if any.
    """

    status: Status
    duration: float = 0.0
    error: BaseException | None = None


@dataclass(frozen=True)
class TestCase:
    """Identity of one executable run of a scenario."""

    __test__ = False

    name: str
    uri: str = ""
    line: int = 0
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def location(self) -> StepLocation:
        return StepLocation(self.uri, self.line)
