"""Framework-neutral verdict for a finished test case.

A host runner adapter maps a :class:`Verdict` onto its own pass, fail and
skip primitives; nothing here depends on a particular test framework.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from scenario_verdict.errors import UndefinedStepError


class DiagnosticKind(str, enum.Enum):
    """What kind of diagnostic explains a non-passing verdict."""

    ERROR = "error"
    SKIP = "skip"
    UNDEFINED_STEP = "undefined-step"


@dataclass(frozen=True)
class Diagnostic:
    """Explanation attached to a non-passing verdict.

    Attributes:
        kind: Diagnostic category.
        message: Human-readable message.
        error: The exception a host runner would raise.
        cause: Underlying cause of ``error``, if any.
        extra: For undefined steps, ``step_text``, ``snippets`` and
            ``other_snippets``; empty otherwise.
    """

    kind: DiagnosticKind
    message: str
    error: BaseException
    cause: BaseException | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_error(cls, error: BaseException) -> Diagnostic:
        """Classify *error* into a diagnostic."""
        if isinstance(error, UndefinedStepError):
            return cls(
                kind=DiagnosticKind.UNDEFINED_STEP,
                message=str(error),
                error=error,
                cause=error.__cause__,
                extra={
                    "step_text": error.step_text,
                    "snippets": list(error.snippets),
                    "other_snippets": [list(g) for g in error.other_snippets],
                },
            )
        kind = DiagnosticKind.SKIP if getattr(error, "is_skip", False) else DiagnosticKind.ERROR
        return cls(kind=kind, message=str(error), error=error, cause=error.__cause__)


@dataclass(frozen=True)
class Verdict:
    """Final, rendered outcome of one test case."""

    passed: bool
    diagnostic: Diagnostic | None = None

    @property
    def is_fatal(self) -> bool:
        """Whether the host runner should report a hard failure."""
        if self.passed:
            return False
        if self.diagnostic is None:
            return True
        return not getattr(self.diagnostic.error, "is_skip", False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"passed": self.passed, "diagnostic": None}
        if self.diagnostic is not None:
            data["diagnostic"] = {
                "kind": self.diagnostic.kind.value,
                "message": self.diagnostic.message,
                "cause": str(self.diagnostic.cause) if self.diagnostic.cause else None,
                "extra": dict(self.diagnostic.extra),
            }
        return data
