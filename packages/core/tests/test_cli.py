"""Tests for the sqlite-mcp command line."""

import json

import pytest
from click.testing import CliRunner

from sqlite_mcp.cli import main


@pytest.fixture()
def runner():
    return CliRunner()


def call(runner, name, arguments):
    return runner.invoke(main, ["call", name, json.dumps(arguments)])


class TestMainGroup:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "sqlite" in result.output.lower()

    def test_version(self, runner):
        assert runner.invoke(main, ["--version"]).exit_code == 0

    def test_commands_registered(self):
        assert {"start", "tools", "call", "import-json", "traces"} <= set(main.commands)

    def test_tools_table(self, runner):
        result = runner.invoke(main, ["tools"])
        assert result.exit_code == 0
        assert "test_tool" in result.output


class TestCall:
    def test_echo(self, runner):
        result = call(runner, "test_tool", {"message": "hi"})
        assert result.exit_code == 0
        assert "Test succeeded: hi" in result.output

    def test_create_and_select(self, runner, db_path):
        created = call(
            runner,
            "create_table",
            {
                "dbPath": db_path,
                "tableName": "notes",
                "columns": [{"name": "body", "type": "TEXT"}],
            },
        )
        assert created.exit_code == 0
        assert "Table 'notes' created" in created.output

        call(runner, "insert_data", {"dbPath": db_path, "tableName": "notes", "data": {"body": "x"}})
        selected = call(runner, "select_data", {"dbPath": db_path, "query": "SELECT body FROM notes"})
        assert selected.exit_code == 0
        assert '"body": "x"' in selected.output

    def test_unknown_tool_exits_1(self, runner):
        result = call(runner, "nope", {})
        assert result.exit_code == 1
        assert "TOOL_NOT_FOUND" in result.output

    def test_invalid_json_exits_2(self, runner):
        result = runner.invoke(main, ["call", "test_tool", "{not json"])
        assert result.exit_code == 2
        assert "Invalid JSON arguments" in result.output


class TestImportJson:
    @pytest.fixture
    def items_db(self, executor, db_path):
        executor.execute(db_path, "CREATE TABLE items (id INTEGER PRIMARY KEY, label TEXT UNIQUE)")
        return db_path

    def test_imports_in_batches(self, runner, executor, items_db, tmp_path):
        source = tmp_path / "items.json"
        source.write_text(json.dumps([{"id": i, "label": f"item {i}"} for i in range(1, 6)]))

        result = runner.invoke(
            main, ["import-json", items_db, "items", str(source), "--batch-size", "2"]
        )

        assert result.exit_code == 0, result.output
        assert "Inserted 5 row(s) into items" in result.output
        count = executor.execute(items_db, "SELECT COUNT(*) AS n FROM items")
        assert count.data == [{"n": 5}]

    def test_failed_batch_is_rolled_back(self, runner, executor, items_db, tmp_path):
        source = tmp_path / "items.json"
        records = [
            {"id": 1, "label": "a"},
            {"id": 2, "label": "b"},
            {"id": 3, "label": "c"},
            {"id": 4, "label": "c"},
        ]
        source.write_text(json.dumps(records))

        result = runner.invoke(
            main, ["import-json", items_db, "items", str(source), "--batch-size", "2"]
        )

        assert result.exit_code == 1
        assert "CONSTRAINT_VIOLATION" in result.output
        labels = executor.execute(items_db, "SELECT label FROM items ORDER BY id")
        assert labels.data == [{"label": "a"}, {"label": "b"}]

    def test_nested_values_stored_as_json_text(self, runner, executor, db_path, tmp_path):
        executor.execute(
            db_path,
            "CREATE TABLE docs (id INTEGER PRIMARY KEY, meta TEXT, tags TEXT, done INTEGER)",
        )
        source = tmp_path / "docs.json"
        source.write_text(
            json.dumps([{"id": 1, "meta": {"a": 1}, "tags": ["x", "y"], "done": True}])
        )

        result = runner.invoke(main, ["import-json", db_path, "docs", str(source)])

        assert result.exit_code == 0, result.output
        rows = executor.execute(db_path, "SELECT meta, tags, done FROM docs")
        assert rows.data == [
            {"meta": json.dumps({"a": 1}), "tags": json.dumps(["x", "y"]), "done": 1}
        ]

    def test_rejects_malformed_json(self, runner, items_db, tmp_path):
        source = tmp_path / "items.json"
        source.write_text('[{"id": 1,')
        result = runner.invoke(main, ["import-json", items_db, "items", str(source)])
        assert result.exit_code == 2
        assert "Invalid JSON file" in result.output

    def test_rejects_non_array(self, runner, items_db, tmp_path):
        source = tmp_path / "items.json"
        source.write_text(json.dumps({"id": 1}))
        result = runner.invoke(main, ["import-json", items_db, "items", str(source)])
        assert result.exit_code == 2

    def test_rejects_invalid_table_name(self, runner, items_db, tmp_path):
        source = tmp_path / "items.json"
        source.write_text(json.dumps([{"id": 1}]))
        result = runner.invoke(main, ["import-json", items_db, "bad name", str(source)])
        assert result.exit_code == 2
        assert "Invalid table name" in result.output


class TestTraces:
    def test_disabled(self, runner):
        result = runner.invoke(main, ["traces"])
        assert result.exit_code == 0
        assert "Trace export is disabled." in result.output

    def test_empty_directory(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("SQLITE_MCP_TRACES_DIR", str(tmp_path / "traces"))
        result = runner.invoke(main, ["traces"])
        assert result.exit_code == 0
        assert "No spans recorded." in result.output
