"""Tests for ingestbridge.schema.resolver."""

import pytest

from ingestbridge.core.errors import ConfigurationError, SchemaError
from ingestbridge.schema.registry import SchemaRegistry
from ingestbridge.schema.resolver import resolve_schema


@pytest.fixture
def registry(obs_schema):
    registry = SchemaRegistry()
    registry.register(obs_schema)
    return registry


class TestResolveSchema:
    def test_by_name(self, registry, obs_schema):
        assert resolve_schema("obs", None, registry=registry) is obs_schema

    def test_by_inline_spec_with_override(self, registry):
        schema = resolve_schema(None, "id:String,*geom:Point", "obs", registry=registry)
        assert schema.type_name == "obs"

    def test_override_renames_named_schema(self, registry):
        schema = resolve_schema("obs", None, "obs_2020", registry=registry)
        assert schema.type_name == "obs_2020"
        assert schema.attribute_names == ("id", "ts", "geom")

    @pytest.mark.parametrize("name,spec", [(None, None), ("", "  "), ("  ", None)])
    def test_neither_source(self, registry, name, spec):
        with pytest.raises(ConfigurationError, match="Must provide either"):
            resolve_schema(name, spec, registry=registry)

    def test_both_sources_rejected_when_strict(self, registry):
        with pytest.raises(ConfigurationError, match="only one"):
            resolve_schema("obs", "id:String", "obs", registry=registry)

    def test_name_wins_when_not_strict(self, registry, obs_schema):
        schema = resolve_schema("obs", "other:Long", registry=registry, strict=False)
        assert schema is obs_schema

    def test_unknown_name_is_configuration_error(self, registry):
        with pytest.raises(ConfigurationError, match="Could not resolve schema") as exc:
            resolve_schema("missing", None, registry=registry)
        assert isinstance(exc.value.cause, SchemaError)

    def test_unparseable_spec_is_configuration_error(self, registry):
        with pytest.raises(ConfigurationError):
            resolve_schema(None, "id:NotAType", "obs", registry=registry)

    def test_compact_spec_without_type_name(self, registry):
        with pytest.raises(ConfigurationError):
            resolve_schema(None, "id:String", registry=registry)

    def test_uses_global_registry_by_default(self, obs_schema):
        from ingestbridge.schema.registry import schema_registry

        schema_registry.register(obs_schema)
        assert resolve_schema("obs", None) is obs_schema
