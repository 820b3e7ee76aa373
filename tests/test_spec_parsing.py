import pytest

from archkit.errors import InvalidSpec
from archkit.spec_parsing import spec_from_mapping


def _minimal_doc() -> dict:
    return {
        "id": "two-tier",
        "name": "Two tier",
        "base": {"layers": ["web", "db"], "dependency_flow": "unidirectional"},
        "layers": [
            {"name": "web", "dependencies": {"can_import": ["db"]}},
            {"name": "db"},
        ],
    }


def test_parses_minimal_spec_with_defaults():
    spec = spec_from_mapping(_minimal_doc())

    assert spec.id == "two-tier"
    assert spec.base.error_handling == "per-layer"
    assert spec.layer_names() == ("web", "db")
    assert spec.layer("web").dependencies.can_import == frozenset({"db"})
    assert spec.rules.required == ()
    assert spec.style is None
    assert spec.ai_guidance is None


def test_unknown_top_level_key_is_rejected():
    doc = _minimal_doc()
    doc["layerz"] = []

    with pytest.raises(InvalidSpec, match=r"Unknown keys under spec: layerz") as excinfo:
        spec_from_mapping(doc)
    assert excinfo.value.spec_id == "two-tier"


def test_invalid_enum_value_is_rejected():
    doc = _minimal_doc()
    doc["base"]["dependency_flow"] = "sideways"

    with pytest.raises(InvalidSpec, match=r"dependency_flow must be one of"):
        spec_from_mapping(doc)


def test_option_default_must_be_a_choice():
    doc = _minimal_doc()
    doc["options"] = {"orm": {"choices": ["prisma", "knex"], "default": "typeorm"}}

    with pytest.raises(InvalidSpec, match=r"'typeorm' is not one of: prisma, knex"):
        spec_from_mapping(doc)


def test_layer_cannot_both_allow_and_forbid_a_target():
    doc = _minimal_doc()
    doc["layers"][0]["dependencies"] = {"can_import": ["db"], "cannot_import": ["db"]}

    with pytest.raises(InvalidSpec, match=r"db in both can_import and cannot_import"):
        spec_from_mapping(doc)


def test_task_step_orders_must_increase():
    doc = _minimal_doc()
    doc["task_templates"] = [
        {
            "id": "add-page",
            "steps": [
                {"order": 2, "description": "b", "layer": "web"},
                {"order": 1, "description": "a", "layer": "db"},
            ],
        }
    ]

    with pytest.raises(InvalidSpec, match=r"strictly increasing"):
        spec_from_mapping(doc)


def test_interface_methods_map_async_flag():
    doc = _minimal_doc()
    doc["layers"][0]["interface"] = {
        "methods": [{"pattern": "get{Resource}", "return_type": "Promise<void>", "async": True}],
    }

    spec = spec_from_mapping(doc)
    (method,) = spec.layer("web").interface.methods
    assert method.is_async is True
    assert method.return_type == "Promise<void>"


def test_non_mapping_document_is_rejected():
    with pytest.raises(InvalidSpec, match=r"must be a mapping"):
        spec_from_mapping(["not", "a", "spec"])
