"""Tests for replaying NDJSON event streams."""

import json

import pytest

from scenario_verdict.errors import AggregatorStateError, ReplayError
from scenario_verdict.events import EventBus, TestCaseFinished, TestStepFinished
from scenario_verdict.models import PickleStepTestStep, Status
from scenario_verdict.replay import decode_event, read_events, replay_events
from scenario_verdict.verdict import DiagnosticKind


def _lines(*events: dict) -> list[str]:
    return [json.dumps(e) + "\n" for e in events]


def _started(name: str) -> dict:
    return {"type": "test_case_started", "name": name, "uri": "a.feature", "line": 1}


def _undefined_step(line: int, text: str) -> dict:
    return {
        "type": "test_step_finished",
        "status": "undefined",
        "test_step": {"kind": "pickle", "uri": "a.feature", "line": line, "text": text},
    }


class TestDecodeEvent:
    def test_pickle_step_with_doc_string(self) -> None:
        event = decode_event(
            {
                "type": "test_step_finished",
                "status": "passed",
                "test_step": {
                    "uri": "a.feature",
                    "line": 4,
                    "text": "a payload",
                    "keyword": "Given ",
                    "doc_string": {"content": "{}", "content_type": "json", "line": 5},
                },
            }
        )
        assert isinstance(event, TestStepFinished)
        assert isinstance(event.test_step, PickleStepTestStep)
        assert event.test_step.argument.content_type == "json"
        assert event.status is Status.PASSED

    def test_case_finished_with_error(self) -> None:
        event = decode_event(
            {
                "type": "test_case_finished",
                "status": "FAILED",
                "error": {"kind": "failed", "message": "expected 1"},
            }
        )
        assert isinstance(event, TestCaseFinished)
        assert event.result.status is Status.FAILED
        assert str(event.result.error) == "expected 1"

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "nope"},
            {"type": "test_case_finished", "status": "exploded"},
            {"type": "test_case_finished", "status": "failed", "error": {"kind": "odd"}},
            {"type": "snippets_suggested", "uri": "a.feature"},
        ],
    )
    def test_malformed_events(self, data) -> None:
        with pytest.raises((ValueError, KeyError)):
            decode_event(data)


class TestReadEvents:
    def test_blank_lines_are_skipped(self) -> None:
        lines = ["\n", json.dumps(_started("one")) + "\n", "   \n"]
        assert [n for n, _ in read_events(lines)] == [2]

    def test_invalid_json_names_the_line(self) -> None:
        with pytest.raises(ReplayError, match="line 2"):
            list(read_events([json.dumps(_started("one")), "{not json"]))

    def test_non_object_is_rejected(self) -> None:
        with pytest.raises(ReplayError, match="line 1"):
            list(read_events(["[1, 2]"]))


class TestReplayEvents:
    def test_verdict_per_test_case(self) -> None:
        lines = _lines(
            _started("passes"),
            {"type": "test_case_finished", "status": "passed"},
            _started("fails"),
            {
                "type": "test_case_finished",
                "status": "failed",
                "error": {"kind": "failed", "message": "boom"},
            },
            _started("pending"),
            {
                "type": "test_case_finished",
                "status": "pending",
                "error": {"kind": "pending", "message": "later"},
            },
        )
        results = list(replay_events(lines, strict=False))

        assert [case.name for case, _ in results] == ["passes", "fails", "pending"]
        assert results[0][1].passed is True
        assert results[1][1].diagnostic.kind == DiagnosticKind.ERROR
        assert results[2][1].diagnostic.kind == DiagnosticKind.SKIP

    def test_strict_pending_is_an_error(self) -> None:
        lines = _lines(
            _started("pending"),
            {
                "type": "test_case_finished",
                "status": "pending",
                "error": {"kind": "pending", "message": "later"},
            },
        )
        [(_, verdict)] = replay_events(lines, strict=True)
        assert verdict.diagnostic.kind == DiagnosticKind.ERROR
        assert verdict.is_fatal is True

    def test_undefined_case_collects_snippets(self) -> None:
        lines = _lines(
            _started("undefined"),
            _undefined_step(3, "I have 5 cukes"),
            {"type": "snippets_suggested", "uri": "a.feature", "step_line": 3, "snippets": ["s3"]},
            {"type": "snippets_suggested", "uri": "a.feature", "step_line": 9, "snippets": ["s9"]},
            {"type": "test_case_finished", "status": "undefined"},
        )
        [(_, verdict)] = replay_events(lines)
        assert verdict.diagnostic.kind == DiagnosticKind.UNDEFINED_STEP
        assert verdict.diagnostic.extra["snippets"] == ["s3"]
        assert verdict.diagnostic.extra["other_snippets"] == [["s9"]]

    def test_snippets_do_not_leak_between_cases(self) -> None:
        lines = _lines(
            _started("first"),
            _undefined_step(3, "first step"),
            {"type": "snippets_suggested", "uri": "a.feature", "step_line": 3, "snippets": ["s3"]},
            {"type": "test_case_finished", "status": "undefined"},
            _started("second"),
            _undefined_step(8, "second step"),
            {"type": "snippets_suggested", "uri": "a.feature", "step_line": 8, "snippets": ["s8"]},
            {"type": "test_case_finished", "status": "undefined"},
        )
        verdicts = [v for _, v in replay_events(lines)]
        assert verdicts[1].diagnostic.extra["step_text"] == "second step"
        assert verdicts[1].diagnostic.extra["other_snippets"] == []

    def test_aggregators_are_unsubscribed_after_each_case(self) -> None:
        bus = EventBus()
        lines = _lines(_started("one"), {"type": "test_case_finished", "status": "passed"})
        list(replay_events(lines, bus=bus))
        assert bus.handler_count(TestCaseFinished) == 0

    def test_unfinished_case_is_reported_as_passed(self) -> None:
        [(case, verdict)] = replay_events(_lines(_started("dangling")))
        assert case.name == "dangling"
        assert verdict.passed is True

    def test_event_outside_case_is_rejected(self) -> None:
        lines = _lines({"type": "test_case_finished", "status": "passed"})
        with pytest.raises(ReplayError, match="outside of a started test case"):
            list(replay_events(lines))

    def test_nested_start_is_rejected(self) -> None:
        with pytest.raises(ReplayError, match="line 2"):
            list(replay_events(_lines(_started("one"), _started("two"))))

    def test_undefined_without_step_is_a_contract_violation(self) -> None:
        lines = _lines(_started("broken"), {"type": "test_case_finished", "status": "undefined"})
        with pytest.raises(AggregatorStateError):
            list(replay_events(lines))
