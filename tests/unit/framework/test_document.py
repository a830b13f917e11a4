"""
Tests for structured document parsing, serialization and dot-path updates.
"""

import json

import pytest

from strata.framework.configuration.document import (
    DocumentFormat,
    StructuredDocument,
    get_path,
    is_valid_document,
    parse_document,
    serialize_document,
    set_path,
    try_parse_document
)
from strata.infrastructure.exceptions import FormatError, PathNotFoundError


class TestParse:

    def test_parse_object(self):
        doc = parse_document('{"database": {"host": "localhost", "port": 5432}}')
        assert doc.is_object()
        assert doc.get("database.port") == 5432

    def test_parse_scalars_and_arrays(self):
        assert parse_document("[1, 2.5, true, null]").root == [1, 2.5, True, None]
        assert parse_document('"text"').kind == "scalar"

    def test_parse_bytes_with_bom(self):
        doc = parse_document("\ufeff{\"a\": 1}".encode("utf-8"))
        assert doc.root == {"a": 1}

    def test_key_order_preserved(self):
        doc = parse_document('{"z": 1, "a": 2, "m": 3}')
        assert list(doc.root) == ["z", "a", "m"]

    def test_large_integers_are_exact(self):
        doc = parse_document('{"big": 123456789012345678901234567890}')
        assert doc.root["big"] == 123456789012345678901234567890

    @pytest.mark.parametrize("text", ['{"a": ', "{'a': 1}", "", '{"a": 1,}', "NaN", '{"a": Infinity}'])
    def test_malformed_json_raises_format_error(self, text):
        with pytest.raises(FormatError):
            parse_document(text)

    def test_format_error_carries_position(self):
        with pytest.raises(FormatError) as ex:
            parse_document('{\n  "a": }', source="app.json")
        assert ex.value.context["line"] == 2
        assert ex.value.context["source"] == "app.json"
        assert ex.value.error_code == "FORMAT_ERROR"

    def test_try_parse_and_is_valid(self):
        assert try_parse_document("{bad") is None
        assert try_parse_document("{}").root == {}
        assert is_valid_document('{"a": [1, 2]}')
        assert not is_valid_document("{bad")

    def test_parse_yaml(self):
        doc = parse_document("database:\n  host: localhost\n  port: 5432\n", DocumentFormat.YAML)
        assert doc.root == {"database": {"host": "localhost", "port": 5432}}

    def test_yaml_dates_stay_strings(self):
        doc = parse_document("released: 2024-01-01\n", DocumentFormat.YAML)
        assert doc.root == {"released": "2024-01-01"}

    def test_malformed_yaml_raises_format_error(self):
        with pytest.raises(FormatError):
            parse_document("a: [1, 2\n", DocumentFormat.YAML)

    def test_yaml_non_string_keys_rejected(self):
        with pytest.raises(FormatError):
            parse_document("1: one\n", DocumentFormat.YAML)

    def test_yaml_aliases_load_as_independent_nodes(self):
        doc = parse_document("a: &shared {k: 1}\nb: *shared\n", DocumentFormat.YAML)
        assert doc.root == {"a": {"k": 1}, "b": {"k": 1}}
        assert doc.root["a"] is not doc.root["b"]

        doc.set("b.k", 2)
        assert doc.get("a.k") == 1
        assert doc.get("b.k") == 2

    def test_recursive_yaml_alias_raises_format_error(self):
        with pytest.raises(FormatError):
            parse_document("a: &loop [*loop]\n", DocumentFormat.YAML)

    def test_deeply_nested_json_raises_format_error(self):
        text = "[" * 5000 + "]" * 5000
        with pytest.raises(FormatError):
            parse_document(text)
        assert try_parse_document(text) is None
        assert not is_valid_document(text)

    def test_format_for_path(self):
        assert DocumentFormat.for_path("app.yaml") is DocumentFormat.YAML
        assert DocumentFormat.for_path("app.YML") is DocumentFormat.YAML
        assert DocumentFormat.for_path("app.json") is DocumentFormat.JSON
        assert DocumentFormat.for_path("app.conf") is DocumentFormat.JSON


class TestSerialize:

    def test_indented_output(self):
        doc = StructuredDocument({"a": 1, "b": [True, None]})
        assert serialize_document(doc) == '{\n  "a": 1,\n  "b": [\n    true,\n    null\n  ]\n}\n'

    def test_compact_output(self):
        doc = StructuredDocument({"a": 1, "b": {"c": "x"}})
        assert serialize_document(doc, indented=False) == '{"a":1,"b":{"c":"x"}}'

    def test_serialize_is_deterministic(self):
        doc = StructuredDocument({"b": 1, "a": {"y": 2, "x": 3}})
        assert serialize_document(doc) == serialize_document(doc.copy())

    def test_round_trip_preserves_tree(self):
        tree = {"name": "café", "values": [1, 2.5, -3], "nested": {"flag": False, "none": None}}
        doc = StructuredDocument(tree)
        for indented in (True, False):
            assert parse_document(serialize_document(doc, indented=indented)) == doc

    def test_yaml_round_trip(self):
        doc = StructuredDocument({"server": {"hosts": ["a", "b"], "port": 80}})
        text = doc.serialize(format=DocumentFormat.YAML)
        assert parse_document(text, DocumentFormat.YAML) == doc

    def test_non_finite_numbers_rejected(self):
        with pytest.raises(FormatError):
            StructuredDocument({"a": float("nan")})

    def test_non_json_values_rejected(self):
        with pytest.raises(FormatError):
            serialize_document({"a": object()})


class TestDotPaths:

    def test_set_existing_leaf(self):
        tree = {"database": {"port": 5432}}
        set_path(tree, "database.port", 5433)
        assert tree == {"database": {"port": 5433}}

    def test_set_creates_leaf_in_existing_object(self):
        tree = {"database": {}}
        set_path(tree, "database.user", "admin")
        assert tree["database"] == {"user": "admin"}

    def test_set_top_level(self):
        tree = {}
        set_path(tree, "name", "app")
        assert tree == {"name": "app"}

    def test_set_replaces_subtree(self):
        tree = {"a": {"b": {"c": 1}}}
        set_path(tree, "a.b", [1, 2])
        assert tree == {"a": {"b": [1, 2]}}

    def test_missing_intermediate_raises(self):
        tree = {"a": {}}
        with pytest.raises(PathNotFoundError) as ex:
            set_path(tree, "a.missing.c", 1)
        assert ex.value.context["segment"] == "missing"
        assert tree == {"a": {}}

    def test_scalar_intermediate_raises(self):
        tree = {"a": 1}
        with pytest.raises(PathNotFoundError):
            set_path(tree, "a.b", 2)
        assert tree == {"a": 1}

    @pytest.mark.parametrize("dot_path", ["", "a..b", ".a", "a."])
    def test_empty_segments_rejected(self, dot_path):
        with pytest.raises(PathNotFoundError):
            set_path({"a": {}}, dot_path, 1)

    def test_non_object_root_rejected(self):
        with pytest.raises(PathNotFoundError):
            set_path([1, 2], "a", 1)

    def test_get_path(self):
        tree = {"a": {"b": {"c": 1}}, "list": [1]}
        assert get_path(tree, "a.b.c") == 1
        assert get_path(tree, "a.x", "default") == "default"
        assert get_path(tree, "list.0") is None

    def test_document_set_returns_self(self):
        doc = StructuredDocument({"a": {}})
        assert doc.set("a.b", True) is doc
        assert doc.get("a.b") is True


class TestDocumentValue:

    def test_default_root_is_empty_object(self):
        assert StructuredDocument().root == {}

    def test_copy_is_independent(self):
        doc = StructuredDocument({"a": {"b": 1}})
        clone = doc.copy()
        clone.set("a.b", 2)
        assert doc.get("a.b") == 1

    def test_equality_keeps_booleans_and_numbers_apart(self):
        assert StructuredDocument({"a": True}) != StructuredDocument({"a": 1})
        assert StructuredDocument({"a": 1}) == StructuredDocument({"a": 1})

    def test_to_python_returns_copy(self):
        doc = StructuredDocument({"a": [1]})
        tree = doc.to_python()
        tree["a"].append(2)
        assert doc.root == {"a": [1]}
        assert json.loads(doc.serialize()) == {"a": [1]}
