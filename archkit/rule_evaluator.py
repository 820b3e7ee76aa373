"""Evaluate an architecture's required/forbidden rules against codebase facts.

The evaluator never reads source code. Callers hand it a facts object (anything
implementing `CodebaseFacts`) and a `PredicateRegistry` mapping rule ids to
predicate functions. A predicate answers "is this rule satisfied?"; for a
forbidden rule that means "is the forbidden thing absent?".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Mapping, Protocol, Sequence

from archkit.dependency_rules import check_graph, find_cycles
from archkit.spec_types import WILDCARD_LAYER, ArchitectureSpec, Rule

logger = logging.getLogger(__name__)

RuleStatus = Literal["pass", "fail", "unevaluable"]
RuleSet = Literal["required", "forbidden", "extra"]

MAX_FILE_LINES = 300


@dataclass(frozen=True)
class FileFacts:
    path: str
    layer: str
    line_count: int | None = None
    patterns: frozenset[str] = frozenset()
    imports: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "patterns", frozenset(self.patterns))
        object.__setattr__(self, "imports", tuple(self.imports))


class CodebaseFacts(Protocol):
    def files(self, layer: str = WILDCARD_LAYER) -> Sequence[FileFacts]: ...

    def import_edges(self) -> frozenset[tuple[str, str]]: ...

    def attribute(self, key: str) -> Any: ...


@dataclass(frozen=True)
class StaticFacts:
    """In-memory facts: per-file records plus free-form host attributes."""

    file_facts: tuple[FileFacts, ...] = ()
    attributes: Mapping[str, Any] = field(default_factory=dict)
    extra_edges: frozenset[tuple[str, str]] = frozenset()

    def files(self, layer: str = WILDCARD_LAYER) -> Sequence[FileFacts]:
        if layer == WILDCARD_LAYER:
            return self.file_facts
        return tuple(item for item in self.file_facts if item.layer == layer)

    def import_edges(self) -> frozenset[tuple[str, str]]:
        edges = {(item.layer, target) for item in self.file_facts for target in item.imports}
        return frozenset(edges) | frozenset(self.extra_edges)

    def attribute(self, key: str) -> Any:
        return self.attributes.get(key)


@dataclass(frozen=True)
class RuleOutcome:
    passed: bool
    detail: str = ""


Predicate = Callable[[Rule, CodebaseFacts, ArchitectureSpec], "RuleOutcome | bool"]


@dataclass(frozen=True)
class RuleResult:
    rule_id: str
    layer: str
    severity: str
    status: RuleStatus
    detail: str
    rule_set: RuleSet
    category: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == "fail"


class PredicateRegistry:
    """Predicate lookup by rule id. Hosts extend it with `register`."""

    def __init__(self, predicates: Mapping[str, Predicate] | None = None):
        self._by_id: dict[str, Predicate] = {}
        for rule_id, predicate in (predicates or {}).items():
            self.add(rule_id, predicate)

    def add(self, rule_id: str, predicate: Predicate) -> None:
        key = (rule_id or "").strip()
        if not key:
            raise ValueError("Predicate rule id must be a non-empty string")
        if not callable(predicate):
            raise TypeError(f"Predicate for {key} must be callable")
        if key in self._by_id:
            raise ValueError(f"Duplicate predicate for rule id: {key}")
        self._by_id[key] = predicate

    def register(self, rule_id: str) -> Callable[[Predicate], Predicate]:
        def decorator(fn: Predicate) -> Predicate:
            self.add(rule_id, fn)
            return fn

        return decorator

    def get(self, rule_id: str) -> Predicate | None:
        return self._by_id.get((rule_id or "").strip())

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_id.keys()))

    def copy(self) -> "PredicateRegistry":
        return PredicateRegistry(dict(self._by_id))

    def merged(self, other: "PredicateRegistry") -> "PredicateRegistry":
        combined = self.copy()
        for rule_id in other.available():
            combined.add(rule_id, other._by_id[rule_id])
        return combined


def _scoped_files(rule: Rule, facts: CodebaseFacts) -> Sequence[FileFacts]:
    return facts.files(rule.layer)


def _paths(files: Iterable[FileFacts], *, limit: int = 5) -> str:
    paths = [item.path for item in files]
    shown = ", ".join(paths[:limit])
    if len(paths) > limit:
        shown += f", ... (+{len(paths) - limit} more)"
    return shown


def requires_pattern(pattern: str) -> Predicate:
    """Every file in the rule's layer must exhibit `pattern`."""

    def predicate(rule: Rule, facts: CodebaseFacts, spec: ArchitectureSpec) -> RuleOutcome:
        missing = [item for item in _scoped_files(rule, facts) if pattern not in item.patterns]
        if missing:
            return RuleOutcome(False, f"missing {pattern}: {_paths(missing)}")
        return RuleOutcome(True, f"all {rule.layer} files exhibit {pattern}")

    return predicate


def forbids_pattern(pattern: str) -> Predicate:
    """No file in the rule's layer may exhibit `pattern`."""

    def predicate(rule: Rule, facts: CodebaseFacts, spec: ArchitectureSpec) -> RuleOutcome:
        offenders = [item for item in _scoped_files(rule, facts) if pattern in item.patterns]
        if offenders:
            return RuleOutcome(False, f"{pattern} found in: {_paths(offenders)}")
        return RuleOutcome(True, f"no {rule.layer} file exhibits {pattern}")

    return predicate


def forbids_imports(*targets: str) -> Predicate:
    """No file in the rule's layer may import any of `targets`."""

    banned = frozenset(targets)

    def predicate(rule: Rule, facts: CodebaseFacts, spec: ArchitectureSpec) -> RuleOutcome:
        offenders = [
            f"{item.path} -> {target}"
            for item in _scoped_files(rule, facts)
            for target in item.imports
            if target in banned
        ]
        if offenders:
            return RuleOutcome(False, "forbidden imports: " + ", ".join(offenders))
        return RuleOutcome(True, f"no imports of {', '.join(sorted(banned))}")

    return predicate


def max_file_lines(limit: int) -> Predicate:
    def predicate(rule: Rule, facts: CodebaseFacts, spec: ArchitectureSpec) -> RuleOutcome:
        counted = [item for item in _scoped_files(rule, facts) if item.line_count is not None]
        too_long = [item for item in counted if int(item.line_count or 0) > limit]
        if too_long:
            return RuleOutcome(False, f"files over {limit} lines: {_paths(too_long)}")
        return RuleOutcome(True, f"{len(counted)} files within {limit} lines")

    return predicate


def requires_attribute(key: str, expected: Any) -> Predicate:
    """Host-declared project policy, e.g. `repository_returns == "entity"`."""

    def predicate(rule: Rule, facts: CodebaseFacts, spec: ArchitectureSpec) -> RuleOutcome:
        actual = facts.attribute(key)
        if actual is None:
            raise LookupError(f"facts do not provide attribute {key!r}")
        if actual != expected:
            return RuleOutcome(False, f"{key} is {actual!r}, expected {expected!r}")
        return RuleOutcome(True, f"{key} is {expected!r}")

    return predicate


def _dependency_direction(rule: Rule, facts: CodebaseFacts, spec: ArchitectureSpec) -> RuleOutcome:
    violations = check_graph(spec, facts.import_edges())
    if violations:
        return RuleOutcome(False, "; ".join(v.describe() for v in violations))
    return RuleOutcome(True, "all import edges respect the declared layer dependencies")


def _no_circular_dependencies(rule: Rule, facts: CodebaseFacts, spec: ArchitectureSpec) -> RuleOutcome:
    cycles = find_cycles(facts.import_edges())
    if cycles:
        rendered = [" -> ".join(cycle + (cycle[0],)) for cycle in cycles]
        return RuleOutcome(False, "cycles: " + "; ".join(rendered))
    return RuleOutcome(True, "no layer cycles")


def default_predicates() -> PredicateRegistry:
    """Predicates for the shared rules that are decidable from generic facts."""

    registry = PredicateRegistry()
    registry.add("dependency-direction", _dependency_direction)
    registry.add("no-circular-dependencies", _no_circular_dependencies)
    registry.add("max-file-length", max_file_lines(MAX_FILE_LINES))
    registry.add("no-hardcoded-secrets", forbids_pattern("hardcoded-secret"))
    return registry


def _evaluate_rule(
    rule: Rule,
    rule_set: RuleSet,
    *,
    spec: ArchitectureSpec,
    facts: CodebaseFacts,
    predicates: PredicateRegistry,
) -> RuleResult:
    def result(status: RuleStatus, detail: str) -> RuleResult:
        return RuleResult(
            rule_id=rule.id,
            layer=rule.layer,
            severity=rule.severity,
            status=status,
            detail=detail,
            rule_set=rule_set,
            category=rule.category,
        )

    predicate = predicates.get(rule.id)
    if predicate is None:
        return result("unevaluable", f"no predicate registered for rule id {rule.id}")

    try:
        outcome = predicate(rule, facts, spec)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Predicate for rule %s raised %s: %s", rule.id, type(exc).__name__, exc)
        return result("unevaluable", f"predicate error: {type(exc).__name__}: {exc}")

    if isinstance(outcome, bool):
        outcome = RuleOutcome(outcome)
    if not isinstance(outcome, RuleOutcome):
        return result(
            "unevaluable",
            f"predicate returned {type(outcome).__name__}, expected bool or RuleOutcome",
        )
    return result("pass" if outcome.passed else "fail", outcome.detail)


def evaluate(
    spec: ArchitectureSpec,
    facts: CodebaseFacts,
    *,
    predicates: PredicateRegistry | None = None,
    extra_rules: Iterable[Rule] = (),
) -> tuple[RuleResult, ...]:
    """One result per rule: `required`, then `forbidden`, then `extra_rules`, in order."""

    registry = predicates if predicates is not None else default_predicates()
    batches: list[tuple[RuleSet, tuple[Rule, ...]]] = [
        ("required", spec.rules.required),
        ("forbidden", spec.rules.forbidden),
        ("extra", tuple(extra_rules)),
    ]

    results: list[RuleResult] = []
    for rule_set, rules in batches:
        for rule in rules:
            results.append(
                _evaluate_rule(rule, rule_set, spec=spec, facts=facts, predicates=registry)
            )

    failed = sum(1 for r in results if r.status == "fail")
    unevaluable = sum(1 for r in results if r.status == "unevaluable")
    logger.info(
        "Evaluated %d rules for %s: %d failed, %d unevaluable",
        len(results),
        spec.id,
        failed,
        unevaluable,
    )
    return tuple(results)
