"""Tests for the delimited-text converter."""

import io

import pytest

from ingestbridge.convert.config import ConverterConfig
from ingestbridge.convert.delimited import DelimitedTextConverter
from ingestbridge.core.errors import ConfigurationError, ParseError
from ingestbridge.schema.types import Point


def run(converter, data: bytes, globals=None):
    ctx = converter.create_evaluation_context(globals or {"inputFilePath": "/in/obs.csv"})
    return list(converter.process(io.BytesIO(data), ctx)), ctx


class TestDelimitedTextConverter:
    def test_obs_rows(self, obs_schema, obs_converter_config, obs_csv):
        converter = DelimitedTextConverter(obs_schema, obs_converter_config)
        records, ctx = run(converter, obs_csv)
        assert [r.id for r in records] == ["a", "b"]
        assert records[0].attributes[2] == Point(10.0, 20.0)
        assert records[1].attributes[1].day == 2
        assert records[0].user_data == {"source": "/in/obs.csv"}
        assert (ctx.success, ctx.failure) == (2, 0)

    def test_bad_line_raises_after_first_record(
        self, obs_schema, obs_converter_config, obs_csv_bad_second_line
    ):
        """Records before the bad line are still emitted."""
        converter = DelimitedTextConverter(obs_schema, obs_converter_config)
        ctx = converter.create_evaluation_context({"inputFilePath": "/in/bad.csv"})
        records = converter.process(io.BytesIO(obs_csv_bad_second_line), ctx)
        assert next(records).id == "a"
        with pytest.raises(ParseError) as exc:
            next(records)
        assert exc.value.context.line == 2
        assert exc.value.context.provenance == "/in/bad.csv"
        assert exc.value.context.type_name == "obs"
        assert ctx.failure == 1

    def test_skip_bad_records(self, obs_schema, obs_converter_yaml, obs_csv_bad_second_line):
        config = ConverterConfig.from_yaml(
            obs_converter_yaml + "options:\n  error-mode: skip-bad-records\n"
        )
        converter = DelimitedTextConverter(obs_schema, config)
        records, ctx = run(converter, obs_csv_bad_second_line + b"c,2020-01-03T00:00:00Z,1,2\n")
        assert [r.id for r in records] == ["a", "c"]
        assert (ctx.success, ctx.failure) == (2, 1)

    def test_skip_lines_and_blank_lines(self, obs_schema, obs_converter_yaml):
        config = ConverterConfig.from_yaml(obs_converter_yaml + "options:\n  skip-lines: 1\n")
        converter = DelimitedTextConverter(obs_schema, config)
        data = b"id,ts,lon,lat\n\na,2020-01-01T00:00:00Z,10,20\n"
        records, _ = run(converter, data)
        assert [r.id for r in records] == ["a"]

    def test_tab_delimiter_and_quotes(self, obs_schema, obs_converter_yaml):
        config = ConverterConfig.from_yaml(obs_converter_yaml + "options:\n  delimiter: \"\\t\"\n")
        converter = DelimitedTextConverter(obs_schema, config)
        records, _ = run(converter, b'"a,1"\t2020-01-01T00:00:00Z\t10\t20\n')
        assert records[0].id == "a,1"

    def test_uncoercible_value(self, obs_schema, obs_converter_config):
        converter = DelimitedTextConverter(obs_schema, obs_converter_config)
        with pytest.raises(ParseError):
            run(converter, b"a,not-a-date,10,20\n")

    def test_default_id_is_md5_of_raw(self, obs_schema, obs_converter_yaml):
        config = ConverterConfig.from_yaml(obs_converter_yaml.replace("id-field: $1\n", ""))
        converter = DelimitedTextConverter(obs_schema, config)
        records, _ = run(converter, b"a,2020-01-01T00:00:00Z,10,20\n")
        assert len(records[0].id) == 32

    def test_unmapped_attribute_is_null(self, obs_schema):
        config = ConverterConfig.from_mapping(
            {"type": "delimited-text", "id-field": "$1", "fields": [{"name": "id", "transform": "$1"}]}
        )
        converter = DelimitedTextConverter(obs_schema, config)
        records, _ = run(converter, b"a\n")
        assert records[0].attributes == ["a", None, None]

    def test_field_without_transform_rejected(self, obs_schema):
        config = ConverterConfig.from_mapping(
            {"type": "delimited-text", "fields": [{"name": "id"}]}
        )
        with pytest.raises(ConfigurationError):
            DelimitedTextConverter(obs_schema, config)

    def test_stream_not_closed_by_converter(self, obs_schema, obs_converter_config, obs_csv):
        converter = DelimitedTextConverter(obs_schema, obs_converter_config)
        stream = io.BytesIO(obs_csv)
        list(converter.process(stream, converter.create_evaluation_context()))
        assert not stream.closed
