import threading

import pytest

from archkit.errors import DuplicateSpecId, InvalidChoice, InvalidSpec, SpecNotFound, UnknownOption
from archkit.spec_parsing import spec_from_mapping
from archkit.spec_registry import SpecRegistry, load_specs


def _spec_doc(spec_id: str = "layered", **overrides) -> dict:
    doc = {
        "id": spec_id,
        "name": "Layered",
        "base": {"layers": ["api", "domain", "data"]},
        "options": {
            "style": {"choices": ["class", "functional"], "default": "class"},
        },
        "layers": [
            {"name": "api", "dependencies": {"can_import": ["domain", "dto"], "cannot_import": ["data"]}},
            {"name": "domain", "dependencies": {"can_import": ["data"]}},
            {"name": "data"},
        ],
    }
    doc.update(overrides)
    return doc


def test_register_and_get_round_trip():
    spec = spec_from_mapping(_spec_doc())
    registry = SpecRegistry()
    registry.register(spec)

    assert registry.get("layered") is spec
    assert registry.get("layered") == spec
    assert "layered" in registry
    assert registry.available() == ("layered",)


def test_register_duplicate_id_raises_and_keeps_first():
    first = spec_from_mapping(_spec_doc())
    second = spec_from_mapping(_spec_doc(name="Other"))
    registry = SpecRegistry.from_specs([first])

    with pytest.raises(DuplicateSpecId, match=r"layered"):
        registry.register(second)
    assert registry.get("layered").name == "Layered"


def test_register_rejects_base_layer_without_layer_spec():
    doc = _spec_doc(base={"layers": ["api", "domain", "data", "cache"]})
    spec = spec_from_mapping(doc)
    registry = SpecRegistry()

    with pytest.raises(InvalidSpec) as excinfo:
        registry.register(spec)

    assert excinfo.value.spec_id == "layered"
    assert any("cache" in problem for problem in excinfo.value.problems)
    assert len(registry) == 0


def test_register_rejects_unknown_dependency_target():
    doc = _spec_doc()
    doc["layers"][1]["dependencies"] = {"can_import": ["data", "warehouse"]}

    with pytest.raises(InvalidSpec, match=r"domain dependencies reference unknown layers: warehouse"):
        SpecRegistry().register(spec_from_mapping(doc))


def test_extra_external_categories_make_targets_legal():
    doc = _spec_doc()
    doc["layers"][1]["dependencies"] = {"can_import": ["data", "warehouse"]}

    registry = SpecRegistry(external_categories={"warehouse"})
    registry.register(spec_from_mapping(doc))
    assert "layered" in registry


def test_get_unknown_id_suggests_close_matches():
    registry = load_specs([_spec_doc()])

    with pytest.raises(SpecNotFound) as excinfo:
        registry.get("layerd")

    assert excinfo.value.suggestions == ("layered",)
    assert isinstance(excinfo.value, LookupError)


def test_option_validation_and_resolution():
    registry = load_specs([_spec_doc()])

    assert registry.resolve_options("layered") == {"style": "class"}
    assert registry.resolve_options("layered", {"style": "functional"}) == {"style": "functional"}

    with pytest.raises(UnknownOption, match=r"available: style"):
        registry.validate_option("layered", "flavour", "class")
    with pytest.raises(InvalidChoice, match=r"choices: class, functional"):
        registry.validate_option("layered", "style", "prototype")


def test_describe_lists_specs_sorted_by_id():
    registry = load_specs([_spec_doc("zeta"), _spec_doc("alpha")])

    rows = registry.describe()
    assert [row["spec_id"] for row in rows] == ["alpha", "zeta"]
    assert rows[0]["layers"] == ["api", "domain", "data"]
    assert rows[0]["options"] == {"style": "class"}


def test_concurrent_registration_admits_exactly_one_spec_per_id():
    registry = SpecRegistry()
    specs = [spec_from_mapping(_spec_doc()) for _ in range(8)]
    outcomes: list[str] = []
    lock = threading.Lock()

    def worker(spec):
        try:
            registry.register(spec)
            result = "ok"
        except DuplicateSpecId:
            result = "dup"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(spec,)) for spec in specs]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("dup") == 7
