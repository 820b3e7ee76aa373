"""Architecture spec engine: registry, placeholder resolver, dependency checker,
rule evaluator and task planner.

This package is intentionally independent of `archspec.*`. It does no file IO;
hosts load spec documents however they like and hand over mappings or
`ArchitectureSpec` values.
"""

from archkit.dependency_rules import Violation, check_edge, check_graph, check_import, find_cycles
from archkit.errors import (
    ArchkitError,
    BindingMissing,
    DuplicateSpecId,
    InvalidChoice,
    InvalidSpec,
    SpecNotFound,
    UnknownOption,
    UnresolvedPlaceholder,
)
from archkit.placeholders import Binding, RenderedFile, find_placeholders, render_layer_template, resolve
from archkit.rule_evaluator import (
    CodebaseFacts,
    FileFacts,
    PredicateRegistry,
    RuleOutcome,
    RuleResult,
    StaticFacts,
    default_predicates,
    evaluate,
)
from archkit.spec_parsing import spec_from_mapping
from archkit.spec_registry import DEFAULT_EXTERNAL_CATEGORIES, SpecRegistry, load_specs
from archkit.spec_types import (
    ArchitectureRules,
    ArchitectureSpec,
    BaseArchitecture,
    LayerDependencies,
    LayerSpec,
    LayerTemplate,
    OptionSpec,
    Rule,
    TaskStep,
    TaskTemplate,
)
from archkit.task_planner import PlannedStep, annotate_plan, plan

__all__ = [
    "ArchitectureRules",
    "ArchitectureSpec",
    "ArchkitError",
    "BaseArchitecture",
    "Binding",
    "BindingMissing",
    "CodebaseFacts",
    "DEFAULT_EXTERNAL_CATEGORIES",
    "DuplicateSpecId",
    "FileFacts",
    "InvalidChoice",
    "InvalidSpec",
    "LayerDependencies",
    "LayerSpec",
    "LayerTemplate",
    "OptionSpec",
    "PlannedStep",
    "PredicateRegistry",
    "RenderedFile",
    "Rule",
    "RuleOutcome",
    "RuleResult",
    "SpecNotFound",
    "SpecRegistry",
    "StaticFacts",
    "TaskStep",
    "TaskTemplate",
    "UnknownOption",
    "UnresolvedPlaceholder",
    "Violation",
    "annotate_plan",
    "check_edge",
    "check_graph",
    "check_import",
    "default_predicates",
    "evaluate",
    "find_cycles",
    "find_placeholders",
    "load_specs",
    "plan",
    "render_layer_template",
    "resolve",
    "spec_from_mapping",
]
