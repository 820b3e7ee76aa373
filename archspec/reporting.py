from __future__ import annotations

import os
from typing import Iterable

import pandas as pd

from archkit.dependency_rules import Violation
from archkit.rule_evaluator import RuleResult
from archkit.task_planner import PlannedStep

RULE_RESULT_COLUMNS = ("rule_id", "rule_set", "layer", "severity", "category", "status", "detail")
VIOLATION_COLUMNS = ("kind", "from_layer", "to_layer", "detail")
PLAN_COLUMNS = ("order", "layer", "description", "template", "validation", "findings")


def rule_results_frame(results: Iterable[RuleResult]) -> pd.DataFrame:
    rows = [
        {
            "rule_id": r.rule_id,
            "rule_set": r.rule_set,
            "layer": r.layer,
            "severity": r.severity,
            "category": r.category or "",
            "status": r.status,
            "detail": r.detail,
        }
        for r in results
    ]
    return pd.DataFrame(rows, columns=list(RULE_RESULT_COLUMNS))


def violations_frame(violations: Iterable[Violation]) -> pd.DataFrame:
    rows = [
        {"kind": v.kind, "from_layer": v.from_layer, "to_layer": v.to_layer, "detail": v.detail}
        for v in violations
    ]
    return pd.DataFrame(rows, columns=list(VIOLATION_COLUMNS))


def plan_frame(steps: Iterable[PlannedStep]) -> pd.DataFrame:
    rows = [
        {
            "order": step.order,
            "layer": step.layer,
            "description": step.description,
            "template": step.template or "",
            "validation": step.validation or "",
            "findings": "; ".join(step.findings),
        }
        for step in steps
    ]
    return pd.DataFrame(rows, columns=list(PLAN_COLUMNS))


def summarize_results(results: Iterable[RuleResult]) -> pd.DataFrame:
    """Counts per severity x status, with every status column present."""

    df = rule_results_frame(results)
    statuses = ["pass", "fail", "unevaluable"]
    if df.empty:
        return pd.DataFrame(columns=statuses)
    table = pd.crosstab(df["severity"], df["status"])
    return table.reindex(columns=statuses, fill_value=0)


def write_csv(df: pd.DataFrame, path: str) -> str:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    df.to_csv(path, index=False)
    return os.path.abspath(path)


def render_text_table(df: pd.DataFrame) -> str:
    if df.empty:
        return "<no rows>"
    return df.to_string(index=False)
