import pytest

from archkit.config_namespace import ConfigNamespace


def test_get_bool_is_strict():
    ns = ConfigNamespace({"enabled": "false"}, path="catalog")
    with pytest.raises(TypeError, match=r"catalog.enabled must be a boolean"):
        ns.get_bool("enabled")


def test_get_int_is_strict_and_validates_min_value():
    ns = ConfigNamespace({"order": 2.0}, path="steps[0]")
    with pytest.raises(TypeError, match=r"must be an int"):
        ns.get_int("order")

    ns2 = ConfigNamespace({"order": -1}, path="steps[0]")
    with pytest.raises(ValueError, match=r"must be >= 0"):
        ns2.get_int("order", min_value=0)


def test_get_str_choices_and_missing_key():
    ns = ConfigNamespace({"guide": "pep9"}, path="style")
    with pytest.raises(ValueError, match=r"style.guide must be one of: google, pep8"):
        ns.get_str("guide", choices=("pep8", "google"))
    with pytest.raises(ValueError, match=r"Missing required key: style.language"):
        ns.get_str("language")


def test_get_text_keeps_whitespace():
    ns = ConfigNamespace({"template": "  line\n"}, path="templates.service")
    assert ns.get_text("template") == "  line\n"


def test_assert_consumed_reports_unknown_nested_keys():
    ns = ConfigNamespace({"base": {"layers": ["a"], "flow": "x"}}, path="")
    base = ns.namespace("base")
    base.get_list_str("layers")

    with pytest.raises(ValueError, match=r"Unknown keys under base: flow"):
        ns.assert_consumed()


def test_namespaces_track_list_items():
    ns = ConfigNamespace({"steps": [{"order": 1, "typo": True}]}, path="task")
    (step,) = ns.namespaces("steps")
    assert step.path == "task.steps[0]"
    step.get_int("order")

    with pytest.raises(ValueError, match=r"Unknown keys under task.steps\[0\]: typo"):
        ns.assert_consumed()


def test_get_str_mapping_rejects_non_string_values():
    ns = ConfigNamespace({"preferred_libraries": {"logging": 3}}, path="ai_guidance")
    with pytest.raises(TypeError, match=r"ai_guidance.preferred_libraries.logging must be a string"):
        ns.get_str_mapping("preferred_libraries")
