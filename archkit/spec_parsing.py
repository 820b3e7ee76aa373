"""Build `ArchitectureSpec` values from plain mappings (YAML/JSON documents).

Field names are snake_case. Unknown keys are rejected so typos in a catalog
file fail at load time instead of silently dropping data.
"""

from __future__ import annotations

from typing import Any, Mapping

from archkit.config_namespace import ConfigNamespace
from archkit.errors import InvalidSpec
from archkit.spec_types import (
    AIGuidance,
    ArchitectureRules,
    ArchitectureSpec,
    BaseArchitecture,
    Convention,
    ImportTemplate,
    InterfaceSpec,
    LayerDependencies,
    LayerSpec,
    LayerTemplate,
    MethodPattern,
    NamingConvention,
    OptionSpec,
    Rule,
    StyleGuideReference,
    TaskStep,
    TaskTemplate,
)


def _parse_option(ns: ConfigNamespace) -> OptionSpec:
    return OptionSpec(
        choices=tuple(ns.get_list_str("choices", allow_empty=False)),
        default=ns.get_str("default"),
        description=ns.get_str("description", default="", allow_empty=True),
    )


def _parse_interface(ns: ConfigNamespace) -> InterfaceSpec:
    methods = []
    for method_ns in ns.namespaces("methods", default=[]):
        methods.append(
            MethodPattern(
                pattern=method_ns.get_str("pattern"),
                parameters=method_ns.get_str("parameters", default="", allow_empty=True),
                return_type=method_ns.get_str("return_type", default="", allow_empty=True),
                is_async=method_ns.get_bool("async", default=False),
            )
        )
    return InterfaceSpec(
        methods=tuple(methods),
        return_types=ns.get_str("return_types", default=None),
        error_handling=ns.get_str("error_handling", default=None),
    )


def _parse_layer(ns: ConfigNamespace) -> LayerSpec:
    deps = ns.namespace("dependencies", default=None)
    dependencies = LayerDependencies(
        can_import=frozenset(deps.get_list_str("can_import", default=[])),
        cannot_import=frozenset(deps.get_list_str("cannot_import", default=[])),
    )

    interface_ns = ns.namespace("interface", default=None)
    interface = _parse_interface(interface_ns) if interface_ns.data else None

    conventions: dict[str, NamingConvention] = {}
    conventions_ns = ns.namespace("conventions", default=None)
    for key in conventions_ns.keys():
        conv_ns = conventions_ns.namespace(key)
        conventions[key] = NamingConvention(
            pattern=conv_ns.get_str("pattern"),
            description=conv_ns.get_str("description", default="", allow_empty=True),
            example=conv_ns.get_str("example", default=None),
        )

    return LayerSpec(
        name=ns.get_str("name"),
        purpose=ns.get_str("purpose", default="", allow_empty=True),
        responsibilities=tuple(ns.get_list_str("responsibilities", default=[])),
        restrictions=tuple(ns.get_list_str("restrictions", default=[])),
        dependencies=dependencies,
        interface=interface,
        conventions=conventions,
        ai_hints=tuple(ns.get_list_str("ai_hints", default=[])),
    )


def _parse_template(ns: ConfigNamespace) -> LayerTemplate:
    variants_ns = ns.namespace("data_access_variants", default=None)
    variants = {key: variants_ns.get_text(key) for key in variants_ns.keys()}
    imports = tuple(
        ImportTemplate(
            statement=import_ns.get_str("statement"),
            condition=import_ns.get_str("condition", default=None),
        )
        for import_ns in ns.namespaces("imports", default=[])
    )
    return LayerTemplate(
        file_name_pattern=ns.get_str("file_name_pattern"),
        template=ns.get_text("template"),
        data_access_variants=variants,
        context_hints=tuple(ns.get_list_str("context_hints", default=[])),
        constraints=tuple(ns.get_list_str("constraints", default=[])),
        imports=imports,
    )


def rule_from_namespace(ns: ConfigNamespace) -> Rule:
    return Rule(
        id=ns.get_str("id"),
        layer=ns.get_str("layer"),
        rule=ns.get_str("rule"),
        severity=ns.get_str("severity", default="error"),
        category=ns.get_str("category", default=None),
    )


def _parse_rules(ns: ConfigNamespace) -> ArchitectureRules:
    conventions = tuple(
        Convention(
            aspect=conv_ns.get_str("aspect"),
            description=conv_ns.get_str("description"),
            examples=tuple(conv_ns.get_list_str("examples", default=[])),
        )
        for conv_ns in ns.namespaces("conventions", default=[])
    )
    return ArchitectureRules(
        required=tuple(rule_from_namespace(r) for r in ns.namespaces("required", default=[])),
        forbidden=tuple(rule_from_namespace(r) for r in ns.namespaces("forbidden", default=[])),
        conventions=conventions,
    )


def _parse_task_template(ns: ConfigNamespace) -> TaskTemplate:
    steps = tuple(
        TaskStep(
            order=step_ns.get_int("order", min_value=0),
            description=step_ns.get_str("description"),
            layer=step_ns.get_str("layer"),
            template=step_ns.get_text("template", default=None),
            validation=step_ns.get_str("validation", default=None),
        )
        for step_ns in ns.namespaces("steps", default=[])
    )
    return TaskTemplate(
        id=ns.get_str("id"),
        steps=steps,
        task_type=ns.get_str("task_type", default="", allow_empty=True),
        description=ns.get_str("description", default="", allow_empty=True),
        constraints=tuple(ns.get_list_str("constraints", default=[])),
        required_context=tuple(ns.get_list_str("required_context", default=[])),
    )


def _parse_style(ns: ConfigNamespace) -> StyleGuideReference:
    return StyleGuideReference(
        language=ns.get_str("language"),
        guide=ns.get_str("guide"),
        custom_rules=tuple(ns.get_list_str("custom_rules", default=[])),
        lint_config=ns.get_str("lint_config", default=None),
    )


def _parse_ai_guidance(ns: ConfigNamespace) -> AIGuidance:
    return AIGuidance(
        memories=tuple(ns.get_list_str("memories", default=[])),
        conventions=tuple(ns.get_list_str("conventions", default=[])),
        preferred_libraries=ns.get_str_mapping("preferred_libraries", default={}),
        anti_patterns=tuple(ns.get_list_str("anti_patterns", default=[])),
        example_paths=ns.get_str_mapping("example_paths", default={}),
    )


def spec_from_mapping(data: Mapping[str, Any], *, path: str = "spec") -> ArchitectureSpec:
    """Parse one architecture spec document; raises `InvalidSpec` on any problem."""

    if not isinstance(data, Mapping):
        raise InvalidSpec(None, [f"{path} must be a mapping (type={type(data).__name__})"])

    raw_id = data.get("id")
    spec_id = raw_id.strip() if isinstance(raw_id, str) and raw_id.strip() else None
    ns = ConfigNamespace(dict(data), path=path)
    try:
        base_ns = ns.namespace("base")
        base = BaseArchitecture(
            layers=tuple(base_ns.get_list_str("layers", allow_empty=False)),
            dependency_flow=base_ns.get_str("dependency_flow", default="unidirectional"),
            error_handling=base_ns.get_str("error_handling", default="per-layer"),
        )

        options_ns = ns.namespace("options", default=None)
        options = {key: _parse_option(options_ns.namespace(key)) for key in options_ns.keys()}

        layers = tuple(_parse_layer(layer_ns) for layer_ns in ns.namespaces("layers"))

        templates_ns = ns.namespace("templates", default=None)
        templates = {key: _parse_template(templates_ns.namespace(key)) for key in templates_ns.keys()}

        rules = _parse_rules(ns.namespace("rules", default=None))
        task_templates = tuple(
            _parse_task_template(task_ns) for task_ns in ns.namespaces("task_templates", default=[])
        )

        style_ns = ns.namespace("style", default=None)
        style = _parse_style(style_ns) if style_ns.data else None
        guidance_ns = ns.namespace("ai_guidance", default=None)
        ai_guidance = _parse_ai_guidance(guidance_ns) if guidance_ns.data else None

        spec = ArchitectureSpec(
            id=ns.get_str("id"),
            name=ns.get_str("name"),
            description=ns.get_str("description", default="", allow_empty=True),
            base=base,
            layers=layers,
            options=options,
            templates=templates,
            rules=rules,
            task_templates=task_templates,
            style=style,
            ai_guidance=ai_guidance,
        )
        ns.assert_consumed()
    except InvalidSpec as exc:
        raise InvalidSpec(spec_id, exc.problems) from exc
    except (TypeError, ValueError) as exc:
        raise InvalidSpec(spec_id, [str(exc)]) from exc
    return spec
