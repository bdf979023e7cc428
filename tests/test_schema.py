"""Tests for parameter schema normalization."""
import pytest

from toolbridge.tools.schema import normalize_default, normalize_parameters
from toolbridge.tools.tool_types import RawLiteralDefault, StringDefault

from conftest import CUSTOMER_SCHEMA


@pytest.mark.parametrize("raw_schema", [
    None,
    "not a schema",
    [],
    {},
    {"type": "object"},
    {"type": "object", "properties": None},
    {"type": "object", "properties": ["a", "b"]},
])
def test_missing_properties_gives_empty_mapping(raw_schema):
    assert normalize_parameters(raw_schema) == {}


def test_customer_schema_end_to_end():
    params = normalize_parameters(CUSTOMER_SCHEMA)

    assert set(params) == {"customerId", "includeOrders"}

    customer_id = params["customerId"]
    assert customer_id.type == "integer"
    assert customer_id.description == "The customer ID"
    assert customer_id.required is True
    assert customer_id.default is None

    include_orders = params["includeOrders"]
    assert include_orders.type == "boolean"
    assert include_orders.required is False
    assert include_orders.default == RawLiteralDefault(literal="false")
    assert include_orders.default.value() is False


def test_not_required_when_absent_from_required_array():
    params = normalize_parameters({
        "properties": {"a": {"type": "string"}, "b": {"type": "string"}},
        "required": ["a"],
    })
    assert params["a"].required is True
    assert params["b"].required is False


def test_malformed_required_is_ignored():
    params = normalize_parameters({
        "properties": {"a": {"type": "string"}},
        "required": "a",
    })
    assert params["a"].required is False

    params = normalize_parameters({
        "properties": {"a": {"type": "string"}},
        "required": [1, None, "a"],
    })
    assert params["a"].required is True


def test_required_names_without_property_are_inert():
    params = normalize_parameters({"properties": {"a": {}}, "required": ["a", "ghost"]})
    assert list(params) == ["a"]


def test_string_default_is_plain_string():
    params = normalize_parameters({
        "properties": {"name": {"type": "string", "default": "Alice"}},
    })
    default = params["name"].default
    assert isinstance(default, StringDefault)
    assert default.value == "Alice"


def test_integer_default_keeps_literal_text():
    params = normalize_parameters({
        "properties": {"limit": {"type": "integer", "default": 5}},
    })
    default = params["limit"].default
    assert isinstance(default, RawLiteralDefault)
    assert default.literal == "5"
    assert default.value() == 5


@pytest.mark.parametrize("type_tag,value,literal", [
    ("number", 1.5, "1.5"),
    ("array", [1, 2], "[1, 2]"),
    ("object", {"a": 1}, '{"a": 1}'),
    ("boolean", True, "true"),
    ("unknown", None, "null"),
])
def test_non_string_defaults_are_raw_literals(type_tag, value, literal):
    assert normalize_default(type_tag, value) == RawLiteralDefault(literal=literal)


def test_string_default_of_null_means_no_default():
    assert normalize_default("string", None) is None


def test_property_without_fields_gets_defaults():
    params = normalize_parameters({"properties": {"x": {}, "y": "junk"}})
    for name in ("x", "y"):
        assert params[name].type == "unknown"
        assert params[name].description == ""
        assert params[name].default is None
        assert params[name].required is False


def test_non_string_description_is_dropped():
    params = normalize_parameters({"properties": {"x": {"type": "string", "description": 42}}})
    assert params["x"].description == ""


@pytest.mark.parametrize("prop,expected", [
    ({"type": ["integer", "null"]}, "integer"),
    ({"type": ["null", "string"]}, "string"),
    ({"anyOf": [{"type": "string"}, {"type": "null"}]}, "string"),
    ({"oneOf": [{"type": "null"}, {"type": "number"}]}, "number"),
    ({"anyOf": [{"$ref": "#/defs/X"}]}, "unknown"),
])
def test_union_types_resolve_to_first_concrete_type(prop, expected):
    params = normalize_parameters({"properties": {"p": prop}})
    assert params["p"].type == expected


def test_descriptors_are_frozen():
    params = normalize_parameters(CUSTOMER_SCHEMA)
    with pytest.raises(Exception):
        params["customerId"].required = False
