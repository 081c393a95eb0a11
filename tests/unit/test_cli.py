"""
Tests for basesync.cli module.
"""

import json
import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from basesync.cli import _slugify, main


FULL_BASE = {
    "Accounts": ["Name", "Category", "Balance"],
    "Vendors": ["Name", "Default Account", "Notes"],
}


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("basesync")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def schema_file(tmp_path, source_schema_data):
    path = tmp_path / "schema.json"
    path.write_text(json.dumps(source_schema_data))
    return str(path)


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return {"AIRTABLE_API_KEY": "patTEST", "AIRTABLE_WORKSPACE_ID": None}


class TestInit:
    """Test the init command."""

    def test_creates_config(self, runner, tmp_path):
        output = tmp_path / "basesync.yaml"

        result = runner.invoke(main, ["init", "-o", str(output)])

        assert result.exit_code == 0
        assert output.exists()
        assert "AIRTABLE_API_KEY" in output.read_text()

    def test_keeps_existing_config_when_declined(self, runner, tmp_path):
        output = tmp_path / "basesync.yaml"
        output.write_text("debug: true\n")

        result = runner.invoke(main, ["init", "-o", str(output)], input="n\n")

        assert result.exit_code == 0
        assert output.read_text() == "debug: true\n"


class TestValidateSchema:
    """Test the validate-schema command."""

    def test_valid_schema(self, runner, schema_file):
        result = runner.invoke(main, ["validate-schema", schema_file])

        assert result.exit_code == 0
        assert "Schema is valid" in result.output

    def test_duplicate_names(self, runner, tmp_path):
        path = tmp_path / "dupes.json"
        path.write_text(
            json.dumps({"tables": [{"name": "Bills", "fields": []}, {"name": "BILLS", "fields": []}]})
        )

        result = runner.invoke(main, ["validate-schema", str(path)])

        assert result.exit_code == 1
        assert "Duplicate table name" in result.output

    def test_unparseable_schema(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")

        result = runner.invoke(main, ["validate-schema", str(path)])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestSync:
    """Test the sync command."""

    def test_creates_new_base(self, runner, schema_file, cli_env, fake_store):
        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(main, ["sync", schema_file], env=cli_env)

        assert result.exit_code == 0, result.output
        assert [c[0] for c in fake_store.calls] == ["create_destination"]
        assert "Synchronization complete" in result.output
        assert fake_store.closed

    def test_updates_existing_base(self, runner, schema_file, cli_env, fake_store):
        fake_store.seed_base("appTEST", {"Accounts": ["Name"]})

        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(main, ["sync", schema_file, "-b", "appTEST"], env=cli_env)

        assert result.exit_code == 0, result.output
        assert [c[0] for c in fake_store.mutation_calls()] == [
            "create_table",
            "add_field",
            "add_field",
        ]
        assert "Total changes: 3" in result.output

    def test_up_to_date_base(self, runner, schema_file, cli_env, fake_store):
        fake_store.seed_base("appTEST", FULL_BASE)

        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(main, ["sync", schema_file, "-b", "appTEST"], env=cli_env)

        assert result.exit_code == 0, result.output
        assert fake_store.mutation_calls() == []
        assert "already up to date" in result.output

    def test_partial_failure_exits_nonzero(self, runner, schema_file, cli_env, fake_store_factory):
        store = fake_store_factory(fail_fields={"Balance"})
        store.seed_base("appTEST", {"Accounts": ["Name"], "Vendors": FULL_BASE["Vendors"]})

        with patch("basesync.cli.create_store", return_value=store):
            result = runner.invoke(main, ["sync", schema_file, "-b", "appTEST"], env=cli_env)

        assert result.exit_code == 1
        assert "Synchronization incomplete" in result.output

    def test_dry_run(self, runner, schema_file, cli_env, fake_store):
        fake_store.seed_base("appTEST", {"Accounts": ["Name"]})

        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(
                main, ["sync", schema_file, "-b", "appTEST", "--dry-run"], env=cli_env
            )

        assert result.exit_code == 0, result.output
        assert "Dry run mode" in result.output
        assert fake_store.mutation_calls() == []

    def test_dry_run_new_base(self, runner, schema_file, cli_env, fake_store):
        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(main, ["sync", schema_file, "--dry-run"], env=cli_env)

        assert result.exit_code == 0, result.output
        assert "Would create a new base with 2 tables and 6 fields" in result.output
        assert fake_store.calls == []

    def test_writes_reports(self, runner, schema_file, cli_env, fake_store, tmp_path):
        report_dir = tmp_path / "reports"

        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(
                main, ["sync", schema_file, "--report-dir", str(report_dir)], env=cli_env
            )

        assert result.exit_code == 0, result.output
        assert (report_dir / "acme-bookkeeping-schema-sync.md").exists()
        assert len(list(report_dir.glob("acme-bookkeeping-schema-sync-*.json"))) == 1

    def test_missing_api_key(self, runner, schema_file, cli_env):
        cli_env["AIRTABLE_API_KEY"] = None

        result = runner.invoke(main, ["sync", schema_file], env=cli_env)

        assert result.exit_code == 1
        assert "API key is not configured" in result.output

    def test_store_failure(self, runner, schema_file, cli_env, fake_store):
        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(main, ["sync", schema_file, "-b", "appMISSING"], env=cli_env)

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_config_file(self, runner, schema_file, cli_env, fake_store, tmp_path):
        config = tmp_path / "basesync.yaml"
        config.write_text("airtable:\n  api_key: patFROMFILE\nsync:\n  base_name_prefix: Acme\n")
        cli_env["AIRTABLE_API_KEY"] = None

        with patch("basesync.cli.create_store", return_value=fake_store) as mock_create:
            result = runner.invoke(main, ["sync", schema_file, "-c", str(config)], env=cli_env)

        assert result.exit_code == 0, result.output
        settings = mock_create.call_args.args[0]
        assert settings.airtable.api_key == "patFROMFILE"
        assert settings.sync.base_name_prefix == "Acme"


class TestBracketedNames:
    """Names containing square brackets are printed literally."""

    @pytest.fixture
    def bracket_schema_file(self, tmp_path):
        path = tmp_path / "brackets.json"
        path.write_text(
            json.dumps(
                {
                    "name": "Rates [bold]",
                    "tables": [
                        {
                            "name": "Products",
                            "fields": [
                                {"name": "Name", "type": "singleLineText"},
                                {"name": "Price [/unit]", "type": "currency", "precision": 2},
                            ],
                        },
                        {"name": "Tiers [/x]", "fields": [{"name": "Name", "type": "singleLineText"}]},
                    ],
                }
            )
        )
        return str(path)

    def test_sync_reports_bracketed_field(self, runner, bracket_schema_file, cli_env, fake_store):
        fake_store.seed_base("appTEST", {"Products": ["Name"]})

        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(
                main, ["sync", bracket_schema_file, "-b", "appTEST"], env=cli_env
            )

        assert result.exit_code == 0, result.output
        assert "Unexpected error" not in result.output
        assert "Price [/unit]" in result.output
        assert "Total changes: 2" in result.output
        assert "Synchronization complete" in result.output

    def test_skipped_bracketed_field_is_listed(
        self, runner, bracket_schema_file, cli_env, fake_store_factory
    ):
        store = fake_store_factory(fail_fields={"Price [/unit]"})
        store.seed_base("appTEST", {"Products": ["Name"], "Tiers [/x]": ["Name"]})

        with patch("basesync.cli.create_store", return_value=store):
            result = runner.invoke(
                main, ["sync", bracket_schema_file, "-b", "appTEST"], env=cli_env
            )

        assert result.exit_code == 1
        assert "Unexpected error" not in result.output
        assert "Price [/unit]" in result.output
        assert "Synchronization incomplete" in result.output

    def test_diff_with_bracketed_names(self, runner, bracket_schema_file, cli_env, fake_store):
        fake_store.seed_base("appTEST", {"Products": ["Name"]})

        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(
                main, ["diff", bracket_schema_file, "-b", "appTEST"], env=cli_env
            )

        assert result.exit_code == 0, result.output
        assert "Tiers [/x]" in result.output
        assert "Price [/unit]" in result.output

    def test_validate_schema_with_bracketed_names(self, runner, bracket_schema_file):
        result = runner.invoke(main, ["validate-schema", bracket_schema_file])

        assert result.exit_code == 0, result.output
        assert "Rates [bold]" in result.output
        assert "Tiers [/x]" in result.output


class TestDiffAndVerify:
    """Test the diff and verify commands."""

    def test_diff(self, runner, schema_file, cli_env, fake_store):
        fake_store.seed_base("appTEST", {"Accounts": ["Name"]})

        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(main, ["diff", schema_file, "-b", "appTEST"], env=cli_env)

        assert result.exit_code == 0, result.output
        assert "Pending Changes (3)" in result.output
        assert fake_store.mutation_calls() == []

    def test_diff_requires_base(self, runner, schema_file, cli_env):
        result = runner.invoke(main, ["diff", schema_file], env=cli_env)

        assert result.exit_code == 2

    def test_verify_up_to_date(self, runner, schema_file, cli_env, fake_store):
        fake_store.seed_base("appTEST", FULL_BASE)

        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(main, ["verify", schema_file, "-b", "appTEST"], env=cli_env)

        assert result.exit_code == 0, result.output
        assert "is up to date" in result.output

    def test_verify_missing_items(self, runner, schema_file, cli_env, fake_store):
        fake_store.seed_base("appTEST", {"Accounts": FULL_BASE["Accounts"]})

        with patch("basesync.cli.create_store", return_value=fake_store):
            result = runner.invoke(main, ["verify", schema_file, "-b", "appTEST"], env=cli_env)

        assert result.exit_code == 1
        assert "is missing 1" in result.output
        assert fake_store.mutation_calls() == []


class TestHelpers:
    """Test CLI helpers."""

    def test_slugify(self):
        assert _slugify("Acme Bookkeeping, LLC") == "acme-bookkeeping-llc"
        assert _slugify("!!!") == "base"

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output
