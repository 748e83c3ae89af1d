"""Tests for the ingest-bridge CLI (typer CliRunner)."""

import json

import pytest
from typer.testing import CliRunner

from ingestbridge import __version__
from ingestbridge.cli.app import app

runner = CliRunner()


@pytest.fixture
def quiet(monkeypatch):
    """Keep log lines out of output that is parsed as JSON."""
    monkeypatch.setenv("INGEST_LOG_LEVEL", "CRITICAL")


@pytest.fixture
def converter_file(tmp_path, obs_converter_yaml):
    path = tmp_path / "obs-csv.yaml"
    path.write_text(obs_converter_yaml)
    return path


@pytest.fixture
def inputs(tmp_path, obs_csv, obs_csv_bad_second_line):
    good = tmp_path / "in" / "good.csv"
    bad = tmp_path / "in" / "bad.csv"
    empty = tmp_path / "in" / "empty.csv"
    good.parent.mkdir()
    good.write_bytes(obs_csv)
    bad.write_bytes(obs_csv_bad_second_line)
    empty.write_bytes(b"")
    return good, bad, empty


def run_args(obs_spec, converter_file, *extra):
    return [
        "run",
        "--schema-spec",
        obs_spec,
        "--feature-name",
        "obs",
        "--converter-spec",
        f"@{converter_file}",
        *extra,
    ]


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"ingest-bridge {__version__}" in result.output


class TestRun:
    def test_ingests_file(self, obs_spec, converter_file, inputs):
        good, _, _ = inputs
        result = runner.invoke(app, run_args(obs_spec, converter_file, str(good)))
        assert result.exit_code == 0, result.output
        assert "1 succeeded, 0 failed" in result.output

    def test_empty_file_counts_as_skipped(self, obs_spec, converter_file, inputs):
        good, _, empty = inputs
        result = runner.invoke(app, run_args(obs_spec, converter_file, str(good), str(empty)))
        assert result.exit_code == 0, result.output
        assert "1 succeeded, 0 failed, 1 skipped" in result.output

    def test_json_summary_and_routing(self, quiet, obs_spec, converter_file, inputs, tmp_path):
        good, bad, empty = inputs
        result = runner.invoke(
            app,
            run_args(
                obs_spec,
                converter_file,
                "--json",
                "--success-dir",
                str(tmp_path / "ok"),
                "--failure-dir",
                str(tmp_path / "failed"),
                str(good),
                str(bad),
                str(empty),
            ),
        )
        assert result.exit_code == 1
        rows = {row["file"]: row for row in json.loads(result.stdout)}

        assert rows[str(good)]["outcome"] == "success"
        assert rows[str(good)]["written"] == 2
        assert rows[str(bad)]["outcome"] == "failure"
        assert rows[str(bad)]["written"] == 1
        assert "line 2" in rows[str(bad)]["error"]
        assert rows[str(empty)]["outcome"] == "skipped"

        assert (tmp_path / "ok" / "good.csv").exists()
        assert (tmp_path / "failed" / "bad.csv").exists()
        assert empty.exists()

    def test_sqlite_backend_persists(self, obs_spec, converter_file, inputs, sqlite_url):
        from ingestbridge.sink.sql import SqlDataStore

        good, _, _ = inputs
        args = run_args(obs_spec, converter_file, "--backend-url", sqlite_url, str(good))
        assert runner.invoke(app, args).exit_code == 0
        store = SqlDataStore.connect(sqlite_url)
        assert [r.id for r in store.read("obs")] == ["a", "b"]
        store.dispose()

    def test_missing_converter(self, obs_spec, inputs):
        good, _, _ = inputs
        result = runner.invoke(app, ["run", "--schema-spec", obs_spec, "-f", "obs", str(good)])
        assert result.exit_code == 1
        assert "Must provide either converter_name or converter_spec" in result.output

    def test_both_sources_need_lenient(self, obs_spec, converter_file, inputs, tmp_path):
        good, _, _ = inputs
        schemas = tmp_path / "schemas.yaml"
        schemas.write_text(f"schemas:\n  obs: \"{obs_spec}\"\n")
        args = run_args(obs_spec, converter_file, "-s", "obs", "--schema-file", str(schemas))
        assert runner.invoke(app, [*args, str(good)]).exit_code == 1
        assert runner.invoke(app, [*args, "--lenient", str(good)]).exit_code == 0

    def test_settings_from_env(self, monkeypatch, obs_spec, converter_file, inputs):
        good, _, _ = inputs
        monkeypatch.setenv("INGEST_SCHEMA_SPEC", obs_spec)
        monkeypatch.setenv("INGEST_FEATURE_NAME_OVERRIDE", "obs")
        monkeypatch.setenv("INGEST_CONVERTER_FILES", json.dumps([str(converter_file.parent / "c.yaml")]))
        (converter_file.parent / "c.yaml").write_text(
            "converters:\n  obs-csv:\n"
            + "".join(f"    {line}\n" for line in converter_file.read_text().splitlines())
        )
        result = runner.invoke(app, ["run", "-c", "obs-csv", str(good)])
        assert result.exit_code == 0, result.output

    def test_unreadable_inline_file(self, obs_spec, inputs, tmp_path):
        good, _, _ = inputs
        result = runner.invoke(
            app, run_args(obs_spec, tmp_path / "nope.yaml", str(good))
        )
        assert result.exit_code == 1
        assert "Cannot read" in result.output


class TestListing:
    def test_schemas(self, quiet, tmp_path):
        path = tmp_path / "schemas.yaml"
        path.write_text(
            "schemas:\n"
            "  obs: \"id:String,*geom:Point\"\n"
        )
        result = runner.invoke(app, ["schemas", "--schema-file", str(path), "--json"])
        assert result.exit_code == 0
        rows = {row["name"]: row["spec"] for row in json.loads(result.stdout)}
        assert rows == {"obs": "id:String,*geom:Point"}

    def test_schemas_warns_on_invalid_entry(self, tmp_path):
        path = tmp_path / "schemas.yaml"
        path.write_text("schemas:\n  broken: \"id:Nope\"\n")
        result = runner.invoke(app, ["schemas", "--schema-file", str(path)])
        assert result.exit_code == 0
        assert "Warning" in result.output
        assert "broken" in result.output

    def test_converters(self, converter_file):
        path = converter_file.parent / "converters.yaml"
        path.write_text(
            "converters:\n  obs-csv:\n"
            + "".join(f"    {line}\n" for line in converter_file.read_text().splitlines())
        )
        result = runner.invoke(app, ["converters", "--converter-file", str(path)])
        assert result.exit_code == 0
        assert "obs-csv" in result.output
        assert "Types: delimited-text, json" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["converters", "--converter-file", str(tmp_path / "x.yaml")])
        assert result.exit_code == 1
        assert "Cannot read converter file" in result.output
