"""Tests for the bulkspine CLI — describe / settings / --version."""

from __future__ import annotations

from typer.testing import CliRunner

from bulkspine.cli.app import app

runner = CliRunner()


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("bulk-spine ")


class TestDescribe:
    def test_json(self):
        result = runner.invoke(app, ["describe", "tests._support.models:Product", "--json"])
        assert result.exit_code == 0
        assert '"row_type": "Product"' in result.output
        assert '"table": "products"' in result.output
        assert '"Name"' in result.output
        assert '"note"' not in result.output

    def test_table(self):
        result = runner.invoke(app, ["describe", "tests._support.models:Customer"])
        assert result.exit_code == 0
        assert "customers" in result.output
        assert "soft" in result.output

    def test_table_name_override(self):
        result = runner.invoke(
            app, ["describe", "tests._support.models:ArchivedProduct", "--json"]
        )
        assert result.exit_code == 0
        assert '"table": "products_archive"' in result.output

    def test_no_data_columns(self):
        result = runner.invoke(app, ["describe", "tests._support.models:Document"])
        assert result.exit_code == 1

    def test_malformed_target(self):
        result = runner.invoke(app, ["describe", "tests._support.models"])
        assert result.exit_code == 2

    def test_missing_module(self):
        result = runner.invoke(app, ["describe", "no_such_module:Thing"])
        assert result.exit_code == 1

    def test_missing_class(self):
        result = runner.invoke(app, ["describe", "tests._support.models:Nope"])
        assert result.exit_code == 1


class TestSettings:
    def test_json(self, monkeypatch):
        monkeypatch.setenv("BULKSPINE_CHUNK_SIZE", "250")
        result = runner.invoke(app, ["settings", "--json"])
        assert result.exit_code == 0
        assert '"chunk_size": 250' in result.output

    def test_table(self):
        result = runner.invoke(app, ["settings"])
        assert result.exit_code == 0
        assert "max_parallelism" in result.output

    def test_invalid_value(self, monkeypatch):
        monkeypatch.setenv("BULKSPINE_MAX_PARALLELISM", "0")
        result = runner.invoke(app, ["settings"])
        assert result.exit_code == 1
