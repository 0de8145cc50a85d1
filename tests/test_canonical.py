import pytest

from srgitops.core.canonical import canonical_protobuf, canonical_schema
from srgitops.core.errors import StateError


def test_json_whitespace_is_insignificant():
    assert canonical_schema("AVRO", '{ "type" : "string" }') == '{"type":"string"}'


def test_json_key_order_is_insignificant():
    first = canonical_schema("JSON", '{"b": 1, "a": 2}')
    second = canonical_schema("JSON", '{"a": 2, "b": 1}')

    assert first == '{"a":2,"b":1}'
    assert first == second


def test_avro_attribute_order_is_insignificant():
    registry_order = (
        '{"type":"record","name":"Foo","namespace":"dev.x",'
        '"fields":[{"name":"a","type":"string"}]}'
    )
    file_order = (
        '{"namespace": "dev.x", "name": "Foo", "type": "record",'
        ' "fields": [{"type": "string", "name": "a"}]}'
    )

    assert canonical_schema("AVRO", registry_order) == canonical_schema("AVRO", file_order)


def test_avro_field_order_is_significant():
    ab = '{"type":"record","name":"Foo","fields":[{"name":"a","type":"int"},{"name":"b","type":"int"}]}'
    ba = '{"type":"record","name":"Foo","fields":[{"name":"b","type":"int"},{"name":"a","type":"int"}]}'

    assert canonical_schema("AVRO", ab) != canonical_schema("AVRO", ba)


def test_non_ascii_text_is_kept():
    assert canonical_schema("AVRO", '{"doc": "café"}') == '{"doc":"café"}'


def test_bare_avro_primitive_is_accepted():
    assert canonical_schema("AVRO", " string\n") == '"string"'


def test_invalid_json_schema_raises_state_error():
    with pytest.raises(StateError, match="Invalid AVRO schema"):
        canonical_schema("AVRO", "{not json")


def test_protobuf_comments_and_whitespace_are_removed():
    source = """
    syntax = "proto3";
    // a greeting
    message Hello {
      /* the text */
      string greeting = 1;
    }
    """

    assert canonical_protobuf(source) == 'syntax="proto3";message Hello{string greeting=1;}'


def test_protobuf_field_changes_are_significant():
    a = canonical_schema("PROTOBUF", "message A { string x = 1; }")
    b = canonical_schema("PROTOBUF", "message A { string x = 2; }")

    assert a != b
