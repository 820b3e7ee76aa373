import pytest

from archkit.errors import UnresolvedPlaceholder
from archkit.placeholders import (
    Binding,
    find_placeholders,
    kebab_case,
    pluralize,
    render_layer_template,
    resolve,
)
from archkit.spec_types import LayerTemplate


def test_casing_follows_token_shape():
    template = "{{ResourceName}} {{resourceName}} {{RESOURCE_NAME}} {resource_name} {resource-name}"
    out = resolve(template, {"ResourceName": "OrderItem"})
    assert out == "OrderItem orderItem ORDER_ITEM order_item order-item"


def test_plural_tokens():
    template = "{{ResourceNamePlural}} {{resourceNamePlural}} {resource-name-plural} {{RESOURCE_NAME_PLURAL}}"
    assert resolve(template, {"ResourceName": "Order"}) == "Orders orders orders ORDERS"
    assert resolve("{resource-name-plural}", {"ResourceName": "Box"}) == "boxes"


def test_single_word_binding_derives_lower_and_plural_forms():
    assert resolve("{resource}/{resourcePlural}", {"ResourceName": "Order"}) == "order/orders"


def test_pluralize_handles_sibilant_endings():
    assert pluralize("box") == "boxes"
    assert pluralize("batch") == "batches"
    assert pluralize("ORDER") == "ORDERS"
    assert pluralize("order") == "orders"


def test_kebab_case_splits_acronyms():
    assert kebab_case("HTTPRequest") == "http-request"
    assert kebab_case("OrderItem") == "order-item"


def test_resolve_is_idempotent():
    once = resolve("class {{ResourceName}}Service {}", {"ResourceName": "Order"})
    assert resolve(once, {"ResourceName": "Order"}) == once


def test_text_without_tokens_is_unchanged():
    text = "const x = { id };\nconst y = `${value}`;"
    assert resolve(text, {}) == text


def test_dollar_brace_and_spaced_braces_are_not_tokens():
    assert find_placeholders("`${queueName}` and { id } and {{ queueName }}")[0].name == "queueName"
    assert len(find_placeholders("`${queueName}` and { id }")) == 0


def test_unresolved_placeholder_lists_every_missing_token():
    with pytest.raises(UnresolvedPlaceholder) as excinfo:
        resolve("{{ResourceName}} {{QueueName}} {{Other}} {{QueueName}}", {"ResourceName": "Order"})

    assert excinfo.value.token == "QueueName"
    assert excinfo.value.tokens == ("QueueName", "Other")


def test_binding_rejects_empty_values():
    with pytest.raises(ValueError, match=r"ResourceName must be a non-empty string"):
        Binding({"ResourceName": "  "})


def test_binding_derive_exposes_all_forms():
    forms = Binding({"QueueName": "EmailQueue"}).derive("QueueName")

    assert forms["QueueName"] == "EmailQueue"
    assert forms["queueName"] == "emailQueue"
    assert forms["QUEUE_NAME"] == "EMAIL_QUEUE"
    assert forms["queue-name"] == "email-queue"
    assert forms["queue-name-plural"] == "email-queues"


def test_render_layer_template_uses_variant_body():
    layer_template = LayerTemplate(
        file_name_pattern="{resource}.repository.ts",
        template="interface {{ResourceName}}Repository {}",
        data_access_variants={"knex": "table = '{{resource_name_plural}}'"},
    )

    rendered = render_layer_template(
        layer_template, {"ResourceName": "OrderItem"}, template_name="repository", variant="knex"
    )
    assert rendered.file_name == "orderItem.repository.ts"
    assert rendered.body == "table = 'order_items'"
    assert rendered.variant == "knex"

    default = render_layer_template(layer_template, {"ResourceName": "OrderItem"})
    assert default.body == "interface OrderItemRepository {}"


def test_render_layer_template_rejects_unknown_variant():
    layer_template = LayerTemplate(file_name_pattern="x.ts", template="")
    with pytest.raises(ValueError, match=r"Unknown data access variant for repository: prisma"):
        render_layer_template(layer_template, {}, template_name="repository", variant="prisma")
