from archkit.dependency_rules import Violation
from archkit.rule_evaluator import RuleResult
from archkit.task_planner import PlannedStep
from archspec.reporting import (
    RULE_RESULT_COLUMNS,
    plan_frame,
    render_text_table,
    rule_results_frame,
    summarize_results,
    violations_frame,
    write_csv,
)


def _result(rule_id: str, status: str, severity: str = "error") -> RuleResult:
    return RuleResult(
        rule_id=rule_id,
        layer="service",
        severity=severity,
        status=status,
        detail="",
        rule_set="required",
    )


def test_rule_results_frame_keeps_columns_when_empty():
    df = rule_results_frame([])
    assert df.empty
    assert list(df.columns) == list(RULE_RESULT_COLUMNS)
    assert render_text_table(df) == "<no rows>"


def test_summarize_results_counts_every_status():
    summary = summarize_results(
        [
            _result("a", "pass"),
            _result("b", "fail"),
            _result("c", "fail"),
            _result("d", "unevaluable", "warning"),
        ]
    )

    assert list(summary.columns) == ["pass", "fail", "unevaluable"]
    assert summary.loc["error", "fail"] == 2
    assert summary.loc["error", "unevaluable"] == 0
    assert summary.loc["warning", "unevaluable"] == 1


def test_violation_and_plan_frames(tmp_path):
    violations = violations_frame(
        [Violation("ImportForbidden", "controller", "repository", "listed in cannot_import")]
    )
    assert violations.iloc[0]["kind"] == "ImportForbidden"

    steps = plan_frame([PlannedStep(1, "service", "Implement OrderService", findings=("x", "y"))])
    assert steps.iloc[0]["findings"] == "x; y"
    assert steps.iloc[0]["template"] == ""

    path = write_csv(steps, str(tmp_path / "out" / "plan.csv"))
    content = (tmp_path / "out" / "plan.csv").read_text(encoding="utf-8")
    assert path.endswith("plan.csv")
    assert content.splitlines()[0] == "order,layer,description,template,validation,findings"
