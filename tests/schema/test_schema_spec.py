"""Tests for ingestbridge.schema.spec (compact and mapping forms)."""

import pytest

from ingestbridge.core.errors import SchemaError
from ingestbridge.schema.spec import encode_spec, is_mapping_form, parse_inline, parse_spec
from ingestbridge.schema.types import AttributeType


class TestCompactSpec:
    def test_parse(self):
        schema = parse_spec("id:String,ts:Timestamp,*geom:Point:srid=4326", type_name="obs")
        assert schema.type_name == "obs"
        assert schema.attribute_names == ("id", "ts", "geom")
        geom = schema.attribute("geom")
        assert geom.type is AttributeType.POINT
        assert geom.default_geometry is True
        assert geom.options == {"srid": "4326"}

    def test_user_data_suffix(self):
        schema = parse_spec("id:String;table.sharing=false,owner=ops", type_name="obs")
        assert schema.user_data == {"table.sharing": "false", "owner": "ops"}

    def test_encode_is_inverse(self):
        spec = "id:String,*geom:Point:srid=4326;owner=ops"
        assert encode_spec(parse_spec(spec, type_name="obs")) == spec

    @pytest.mark.parametrize(
        "spec",
        ["", "id", "id:", "id:Nope", "*id:String", "id:String;oops"],
    )
    def test_malformed(self, spec):
        with pytest.raises(SchemaError):
            parse_spec(spec, type_name="obs")


class TestMappingSpec:
    def test_yaml_block(self):
        text = (
            "type-name: obs\n"
            "attributes:\n"
            "  - {name: id, type: String}\n"
            "  - {name: geom, type: Point, default: true}\n"
            "user-data:\n"
            "  owner: ops\n"
        )
        schema = parse_inline(text)
        assert schema.type_name == "obs"
        assert schema.geometry_attribute.name == "geom"
        assert schema.user_data == {"owner": "ops"}

    def test_json_flow_mapping(self):
        schema = parse_inline('{"type-name": "obs", "spec": "id:String,*geom:Point"}')
        assert schema.attribute_names == ("id", "geom")

    def test_override_wins_over_type_name(self):
        schema = parse_inline('{"type-name": "obs", "spec": "id:String"}', type_name="renamed")
        assert schema.type_name == "renamed"

    def test_mapping_without_type_name(self):
        with pytest.raises(SchemaError):
            parse_inline('{"spec": "id:String"}')

    def test_both_spec_and_attributes(self):
        text = '{"type-name": "obs", "spec": "id:String", "attributes": [{"name": "x", "type": "Long"}]}'
        with pytest.raises(SchemaError):
            parse_inline(text)

    def test_unknown_key_rejected(self):
        with pytest.raises(SchemaError):
            parse_inline('{"type-name": "obs", "spec": "id:String", "bogus": 1}')

    def test_compact_form_needs_type_name(self):
        with pytest.raises(SchemaError):
            parse_inline("id:String")

    def test_is_mapping_form(self):
        assert is_mapping_form('{"a": 1}')
        assert is_mapping_form("a: 1\nb: 2")
        assert not is_mapping_form("id:String,*geom:Point")
