from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Mapping

from archkit.errors import InvalidSpec

Severity = Literal["error", "warning", "info"]
DependencyFlow = Literal["unidirectional", "bidirectional"]
ErrorHandlingMode = Literal["per-layer", "centralized-middleware", "hybrid"]
ConventionAspect = Literal["naming", "structure", "patterns", "dependencies"]
StyleGuide = Literal["airbnb", "standard", "google", "custom"]

SEVERITIES: tuple[str, ...] = ("error", "warning", "info")
DEPENDENCY_FLOWS: tuple[str, ...] = ("unidirectional", "bidirectional")
ERROR_HANDLING_MODES: tuple[str, ...] = ("per-layer", "centralized-middleware", "hybrid")
CONVENTION_ASPECTS: tuple[str, ...] = ("naming", "structure", "patterns", "dependencies")
STYLE_GUIDES: tuple[str, ...] = ("airbnb", "standard", "google", "custom")

WILDCARD_LAYER = "*"


def _text(owner: str, name: str, value: object, *, allow_empty: bool = False) -> str:
    if not isinstance(value, str):
        raise InvalidSpec(None, [f"{owner}.{name} must be a string (type={type(value).__name__})"])
    stripped = value.strip()
    if not stripped and not allow_empty:
        raise InvalidSpec(None, [f"{owner}.{name} must be a non-empty string"])
    return stripped


def _literal(owner: str, name: str, value: object, allowed: tuple[str, ...]) -> str:
    normalized = str(value).strip().lower()
    if normalized not in allowed:
        raise InvalidSpec(
            None, [f"{owner}.{name} must be one of: {', '.join(allowed)} (got {value!r})"]
        )
    return normalized


def _str_tuple(owner: str, name: str, values: object) -> tuple[str, ...]:
    if isinstance(values, str):
        raise InvalidSpec(None, [f"{owner}.{name} must be a sequence of strings, not a string"])
    return tuple(_text(owner, name, item) for item in (values or ()))


def _frozen_mapping(values: Mapping | None) -> Mapping:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class OptionSpec:
    choices: tuple[str, ...]
    default: str
    description: str = ""

    def __post_init__(self) -> None:
        choices = _str_tuple("OptionSpec", "choices", self.choices)
        if not choices:
            raise InvalidSpec(None, ["OptionSpec.choices cannot be empty"])
        if len(set(choices)) != len(choices):
            raise InvalidSpec(None, [f"OptionSpec.choices has duplicates: {', '.join(choices)}"])
        object.__setattr__(self, "choices", choices)
        default = _text("OptionSpec", "default", self.default)
        if default not in choices:
            raise InvalidSpec(
                None,
                [f"OptionSpec.default {default!r} is not one of: {', '.join(choices)}"],
            )
        object.__setattr__(self, "default", default)


@dataclass(frozen=True)
class BaseArchitecture:
    layers: tuple[str, ...]
    dependency_flow: DependencyFlow = "unidirectional"
    error_handling: ErrorHandlingMode = "per-layer"

    def __post_init__(self) -> None:
        layers = _str_tuple("base", "layers", self.layers)
        if not layers:
            raise InvalidSpec(None, ["base.layers cannot be empty"])
        if len(set(layers)) != len(layers):
            raise InvalidSpec(None, [f"base.layers has duplicates: {', '.join(layers)}"])
        object.__setattr__(self, "layers", layers)
        object.__setattr__(
            self,
            "dependency_flow",
            _literal("base", "dependency_flow", self.dependency_flow, DEPENDENCY_FLOWS),
        )
        object.__setattr__(
            self,
            "error_handling",
            _literal("base", "error_handling", self.error_handling, ERROR_HANDLING_MODES),
        )

    def position(self, layer: str) -> int | None:
        try:
            return self.layers.index(layer)
        except ValueError:
            return None


@dataclass(frozen=True)
class LayerDependencies:
    can_import: frozenset[str] = frozenset()
    cannot_import: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        can = frozenset(_str_tuple("dependencies", "can_import", self.can_import))
        cannot = frozenset(_str_tuple("dependencies", "cannot_import", self.cannot_import))
        overlap = can & cannot
        if overlap:
            raise InvalidSpec(
                None,
                [f"dependencies list {', '.join(sorted(overlap))} in both can_import and cannot_import"],
            )
        object.__setattr__(self, "can_import", can)
        object.__setattr__(self, "cannot_import", cannot)

    def referenced(self) -> frozenset[str]:
        return self.can_import | self.cannot_import


@dataclass(frozen=True)
class MethodPattern:
    pattern: str
    parameters: str = ""
    return_type: str = ""
    is_async: bool = False


@dataclass(frozen=True)
class InterfaceSpec:
    methods: tuple[MethodPattern, ...] = ()
    return_types: str | None = None
    error_handling: str | None = None


@dataclass(frozen=True)
class NamingConvention:
    pattern: str
    description: str = ""
    example: str | None = None


@dataclass(frozen=True)
class LayerSpec:
    name: str
    purpose: str = ""
    responsibilities: tuple[str, ...] = ()
    restrictions: tuple[str, ...] = ()
    dependencies: LayerDependencies = field(default_factory=LayerDependencies)
    interface: InterfaceSpec | None = None
    conventions: Mapping[str, NamingConvention] = field(default_factory=dict)
    ai_hints: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _text("LayerSpec", "name", self.name))
        object.__setattr__(
            self, "responsibilities", _str_tuple(self.name, "responsibilities", self.responsibilities)
        )
        object.__setattr__(self, "restrictions", _str_tuple(self.name, "restrictions", self.restrictions))
        object.__setattr__(self, "ai_hints", _str_tuple(self.name, "ai_hints", self.ai_hints))
        object.__setattr__(self, "conventions", _frozen_mapping(self.conventions))


@dataclass(frozen=True)
class ImportTemplate:
    statement: str
    condition: str | None = None


@dataclass(frozen=True)
class LayerTemplate:
    file_name_pattern: str
    template: str
    data_access_variants: Mapping[str, str] = field(default_factory=dict)
    context_hints: tuple[str, ...] = ()
    constraints: tuple[str, ...] = ()
    imports: tuple[ImportTemplate, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "file_name_pattern",
            _text("LayerTemplate", "file_name_pattern", self.file_name_pattern),
        )
        if not isinstance(self.template, str):
            raise InvalidSpec(None, ["LayerTemplate.template must be a string"])
        object.__setattr__(self, "data_access_variants", _frozen_mapping(self.data_access_variants))
        object.__setattr__(self, "imports", tuple(self.imports))


@dataclass(frozen=True)
class Rule:
    id: str
    layer: str
    rule: str
    severity: Severity = "error"
    category: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _text("Rule", "id", self.id))
        object.__setattr__(self, "layer", _text(f"Rule[{self.id}]", "layer", self.layer))
        object.__setattr__(self, "rule", _text(f"Rule[{self.id}]", "rule", self.rule))
        object.__setattr__(
            self, "severity", _literal(f"Rule[{self.id}]", "severity", self.severity, SEVERITIES)
        )

    def applies_to(self, layer: str) -> bool:
        return self.layer == WILDCARD_LAYER or self.layer == layer


@dataclass(frozen=True)
class Convention:
    aspect: ConventionAspect
    description: str
    examples: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "aspect", _literal("Convention", "aspect", self.aspect, CONVENTION_ASPECTS)
        )


@dataclass(frozen=True)
class ArchitectureRules:
    required: tuple[Rule, ...] = ()
    forbidden: tuple[Rule, ...] = ()
    conventions: tuple[Convention, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "required", tuple(self.required))
        object.__setattr__(self, "forbidden", tuple(self.forbidden))
        object.__setattr__(self, "conventions", tuple(self.conventions))

    def evaluable(self) -> tuple[Rule, ...]:
        return self.required + self.forbidden


@dataclass(frozen=True)
class TaskStep:
    order: int
    description: str
    layer: str
    template: str | None = None
    validation: str | None = None


@dataclass(frozen=True)
class TaskTemplate:
    id: str
    steps: tuple[TaskStep, ...]
    task_type: str = ""
    description: str = ""
    constraints: tuple[str, ...] = ()
    required_context: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _text("TaskTemplate", "id", self.id))
        steps = tuple(self.steps)
        previous: int | None = None
        for step in steps:
            if isinstance(step.order, bool) or not isinstance(step.order, int):
                raise InvalidSpec(None, [f"TaskTemplate[{self.id}] step order must be an int"])
            if previous is not None and step.order <= previous:
                raise InvalidSpec(
                    None,
                    [
                        f"TaskTemplate[{self.id}] step orders must be strictly increasing "
                        f"(got {step.order} after {previous})"
                    ],
                )
            previous = step.order
        object.__setattr__(self, "steps", steps)


@dataclass(frozen=True)
class StyleGuideReference:
    language: str
    guide: StyleGuide
    custom_rules: tuple[str, ...] = ()
    lint_config: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "guide", _literal("style", "guide", self.guide, STYLE_GUIDES))


@dataclass(frozen=True)
class AIGuidance:
    memories: tuple[str, ...] = ()
    conventions: tuple[str, ...] = ()
    preferred_libraries: Mapping[str, str] = field(default_factory=dict)
    anti_patterns: tuple[str, ...] = ()
    example_paths: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "preferred_libraries", _frozen_mapping(self.preferred_libraries))
        object.__setattr__(self, "example_paths", _frozen_mapping(self.example_paths))


@dataclass(frozen=True)
class ArchitectureSpec:
    id: str
    name: str
    base: BaseArchitecture
    layers: tuple[LayerSpec, ...]
    description: str = ""
    options: Mapping[str, OptionSpec] = field(default_factory=dict)
    templates: Mapping[str, LayerTemplate] = field(default_factory=dict)
    rules: ArchitectureRules = field(default_factory=ArchitectureRules)
    task_templates: tuple[TaskTemplate, ...] = ()
    style: StyleGuideReference | None = None
    ai_guidance: AIGuidance | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _text("ArchitectureSpec", "id", self.id))
        object.__setattr__(self, "name", _text(f"ArchitectureSpec[{self.id}]", "name", self.name))
        object.__setattr__(self, "layers", tuple(self.layers))
        object.__setattr__(self, "options", _frozen_mapping(self.options))
        object.__setattr__(self, "templates", _frozen_mapping(self.templates))
        object.__setattr__(self, "task_templates", tuple(self.task_templates))

    def layer_names(self) -> tuple[str, ...]:
        return tuple(layer.name for layer in self.layers)

    def layer(self, name: str) -> LayerSpec | None:
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def task_template(self, task_id: str) -> TaskTemplate:
        for task in self.task_templates:
            if task.id == task_id:
                return task
        available = ", ".join(task.id for task in self.task_templates) or "<none>"
        raise ValueError(f"Unknown task template for {self.id}: {task_id} (available: {available})")
