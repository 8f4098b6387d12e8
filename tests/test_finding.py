import pytest

from schemaguard.planregression.finding import (
    CaptureResult,
    Finding,
    FindingKind,
    Severity,
    Thresholds,
    default_thresholds,
)


@pytest.mark.parametrize(
    "severity, text",
    [(Severity.INFO, "info"), (Severity.CAUTION, "caution"), (Severity.STOP, "stop")],
)
def test_severity_string_stable(severity, text):
    assert str(severity) == text


def test_findings_sort_by_severity():
    findings = [
        Finding(query_id="low", kind=FindingKind.COST_INCREASE, severity=Severity.INFO),
        Finding(query_id="high", kind=FindingKind.COST_INCREASE, severity=Severity.STOP),
        Finding(query_id="mid", kind=FindingKind.COST_INCREASE, severity=Severity.CAUTION),
    ]
    ordered = sorted(findings, key=lambda f: f.severity, reverse=True)
    assert [f.query_id for f in ordered] == ["high", "mid", "low"]


def test_finding_kinds_distinct():
    kinds = {
        Finding(query_id="q", kind=kind, severity=Severity.INFO).kind for kind in FindingKind
    }
    assert len(kinds) == 6
    assert FindingKind.QUERY_BROKEN in kinds
    assert FindingKind.BASELINE_BROKEN in kinds


def test_default_thresholds_match_decision():
    assert default_thresholds() == Thresholds(
        caution_cost_ratio=2.0,
        stop_cost_ratio=5.0,
        min_cost_delta=100.0,
        caution_rows_ratio=10.0,
        stop_rows_ratio=100.0,
        min_rows_delta=1000.0,
    )


def test_thresholds_constructor_defaults_equal_default_thresholds():
    assert Thresholds() == default_thresholds()


def test_capture_result_has_error():
    assert CaptureResult(query_id="q1", error=RuntimeError("boom")).has_error() is True
    assert CaptureResult(query_id="q1").has_error() is False


def test_finding_defaults_are_zero_and_empty():
    f = Finding(query_id="q1", kind=FindingKind.COST_INCREASE, severity=Severity.STOP)
    assert (f.baseline_cost, f.post_cost, f.baseline_rows, f.post_rows) == (0.0, 0.0, 0.0, 0.0)
    assert (f.relation, f.baseline_scan, f.post_scan, f.error_message) == ("", "", "", "")