import logging

import pytest

from archspec.app_config import AppConfig


def test_defaults_from_empty_config():
    app, warnings = AppConfig.from_dict({})

    assert warnings == []
    assert app.catalog.include_builtin is True
    assert app.catalog.shared_rules is True
    assert app.catalog.paths == ()
    assert app.external_categories == ()
    assert app.logging.level_number == logging.INFO


def test_parses_every_section():
    app, warnings = AppConfig.from_dict(
        {
            "catalog": {"include_builtin": False, "paths": ["specs/"], "shared_rules": False},
            "registry": {"external_categories": ["graphql"]},
            "logging": {"level": "debug", "file": "logs/archspec.log"},
        }
    )

    assert warnings == []
    assert app.catalog.include_builtin is False
    assert app.catalog.paths == ("specs/",)
    assert app.external_categories == ("graphql",)
    assert app.logging.level == "DEBUG"
    assert app.logging.file == "logs/archspec.log"


def test_unknown_keys_warn_or_raise_in_strict_mode():
    _app, warnings = AppConfig.from_dict({"catalog": {"pathz": []}, "extra": 1})
    assert warnings == ["Unknown config key: extra", "Unknown config key: catalog.pathz"]

    with pytest.raises(ValueError, match=r"Unknown config keys: extra"):
        AppConfig.from_dict({"strict": True, "extra": 1})


def test_invalid_log_level_raises():
    with pytest.raises(ValueError, match=r"logging.level must be one of"):
        AppConfig.from_dict({"logging": {"level": "LOUD"}})


def test_type_errors_are_strict():
    with pytest.raises(TypeError, match=r"catalog.include_builtin must be a boolean"):
        AppConfig.from_dict({"catalog": {"include_builtin": "yes"}})
