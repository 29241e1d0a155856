"""Tests for the CLI entry point."""

from __future__ import annotations

import io
import json

import pytest

from openmemory.cli import main

HOOKS = "react hooks are great"
ZEBRAS = "Zebras graze on savanna grass"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "OPENMEMORY_DB_PATH",
        "OPENMEMORY_STORAGE_KEY",
        "OPENMEMORY_MAX_MEMORIES",
        "OPENMEMORY_LOCATION",
        "OPENMEMORY_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def run(tmp_path, capsys):
    """Invoke the CLI against a throwaway store; returns (rc, stdout, stderr)."""

    def _run(*args: str):
        rc = main(["--db", str(tmp_path / "db"), *args])
        captured = capsys.readouterr()
        return rc, captured.out, captured.err

    return _run


def _saved_id(out: str) -> str:
    # "Saved memory <id> [<category>]"
    return out.split()[2]


class TestSave:
    def test_count_empty(self, run):
        assert run("count") == (0, "0\n", "")

    def test_save_and_list(self, run):
        rc, out, _ = run("save", HOOKS)
        assert rc == 0
        assert out.startswith("Saved memory ")
        assert out.strip().endswith("[coding]")

        rc, out, _ = run("list", "--json")
        entries = json.loads(out)
        assert [e["content"] for e in entries] == [HOOKS]

    def test_memories_persist_between_invocations(self, run, tmp_path):
        run("save", HOOKS)
        run("save", ZEBRAS)
        assert run("count")[1].strip() == "2"
        assert (tmp_path / "db" / "openmemory_data.json").exists()

    def test_duplicate_is_skipped(self, run):
        run("save", HOOKS)
        rc, out, _ = run("save", HOOKS)
        assert rc == 0
        assert "Skipped" in out
        assert run("count")[1].strip() == "1"

    def test_reads_stdin(self, run, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(HOOKS + "\n"))
        rc, out, _ = run("save")
        assert rc == 0
        assert "Saved memory" in out

    def test_missing_text_returns_error(self, run, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        rc, _, err = run("save")
        assert rc == 1
        assert "no text" in err

    def test_bad_meta_returns_error(self, run):
        rc, _, err = run("save", HOOKS, "--meta", "novalue")
        assert rc == 1
        assert "KEY=VALUE" in err

    def test_type_platform_and_meta(self, run):
        run("save", HOOKS, "--type", "note", "--platform", "claude", "--meta", "tag=ui")
        entry = json.loads(run("list", "--json")[1])[0]
        assert entry["type"] == "note"
        assert entry["platform"] == "claude"
        assert entry["tag"] == "ui"


class TestLocation:
    def test_platform_detected_from_location(self, tmp_path, capsys):
        db = str(tmp_path / "db")
        main(["--db", db, "--location", "https://claude.ai/chat/42", "save", HOOKS])
        capsys.readouterr()
        main(["--db", db, "list", "--json"])
        entry = json.loads(capsys.readouterr().out)[0]
        assert entry["platform"] == "claude"
        assert entry["source"] == "claude.ai"
        assert entry["url"] == "https://claude.ai/chat/42"

    def test_custom_storage_key(self, tmp_path, capsys):
        db = tmp_path / "db"
        main(["--db", str(db), "--key", "work", "save", HOOKS])
        assert (db / "work.json").exists()
        capsys.readouterr()
        main(["--db", str(db), "count"])
        assert capsys.readouterr().out.strip() == "0"


class TestIngest:
    def test_chatter_is_ignored(self, run):
        assert run("ingest", "Hello")[1].strip() == "Nothing worth saving."

    def test_ingest_saves(self, run):
        rc, out, _ = run("ingest", "My name is Alexandra and I love climbing")
        assert rc == 0
        assert out.startswith("Saved 1 memory record(s)")


class TestRetrieve:
    def test_query_empty_store(self, run):
        rc, out, _ = run("query", "anything")
        assert rc == 0
        assert "No memories found" in out

    def test_query_json(self, run):
        run("save", ZEBRAS)
        run("save", HOOKS)
        hits = json.loads(run("query", "react hooks", "--json")[1])
        assert [h["content"] for h in hits] == [HOOKS]
        assert hits[0]["score"] > 0

    def test_query_text_output(self, run):
        run("save", HOOKS)
        out = run("query", "react hooks")[1]
        assert "category=coding" in out
        assert HOOKS in out

    def test_search_by_category(self, run):
        run("save", ZEBRAS)
        run("save", HOOKS)
        hits = json.loads(run("search", "--category", "coding", "--json")[1])
        assert [h["content"] for h in hits] == [HOOKS]

    def test_search_without_matches(self, run):
        run("save", ZEBRAS)
        assert "No memories found" in run("search", "--category", "finance")[1]

    def test_list_empty(self, run):
        assert "No memories stored" in run("list")[1]


class TestManage:
    def test_update(self, run):
        memory_id = _saved_id(run("save", ZEBRAS)[1])
        rc, out, _ = run("update", memory_id, "--content", HOOKS)
        assert rc == 0
        assert out.strip() == f"Updated memory {memory_id} [coding]"

    def test_update_unknown(self, run):
        rc, _, err = run("update", "nope", "--content", "x")
        assert rc == 1
        assert "nope" in err

    def test_delete(self, run):
        memory_id = _saved_id(run("save", HOOKS)[1])
        rc, out, _ = run("delete", memory_id)
        assert rc == 0
        assert out.strip() == f"Deleted memory {memory_id}."
        assert run("count")[1].strip() == "0"

    def test_delete_unknown(self, run):
        rc, _, err = run("delete", "nope")
        assert rc == 1
        assert "No memory with id nope" in err

    def test_clear_with_yes(self, run):
        run("save", HOOKS)
        assert run("clear", "--yes")[1].strip() == "Cleared all memories."
        assert run("count")[1].strip() == "0"

    def test_clear_declined(self, run, monkeypatch):
        run("save", HOOKS)
        monkeypatch.setattr("builtins.input", lambda prompt: "n")
        rc, out, _ = run("clear")
        assert rc == 1
        assert "Aborted" in out
        assert run("count")[1].strip() == "1"

    def test_dedupe(self, run, tmp_path):
        records = [
            {"id": "a", "content": "alpha beta gamma delta", "timestamp": 3.0},
            {"id": "b", "content": "delta, gamma; beta alpha!", "timestamp": 2.0},
            {"id": "c", "content": "zebra grass", "timestamp": 1.0},
        ]
        source = tmp_path / "seed.json"
        source.write_text(json.dumps(records), encoding="utf-8")
        run("import", str(source))
        assert run("dedupe")[1].strip() == "Removed 1 duplicate(s); 2 remaining."

    def test_stats(self, run):
        run("save", HOOKS)
        run("save", ZEBRAS)
        out = run("stats")[1]
        assert "total: 2" in out
        assert "  cli: 2" in out

    def test_analytics(self, run):
        run("save", HOOKS)
        report = json.loads(run("analytics")[1])
        assert report["total_memories"] == 1
        assert report["categories"] == {"coding": 1}


class TestExchange:
    def test_export_json_to_stdout(self, run):
        run("save", HOOKS)
        data = json.loads(run("export")[1])
        assert [m["content"] for m in data] == [HOOKS]

    def test_export_csv_to_file(self, run, tmp_path):
        run("save", HOOKS)
        target = tmp_path / "out.csv"
        rc, out, _ = run("export", "--format", "csv", "-o", str(target))
        assert rc == 0
        assert "Exported 1 memories" in out
        lines = target.read_text(encoding="utf-8").split("\n")
        assert lines[0] == "Timestamp,Category,Platform,Type,Summary,Content"
        assert len(lines) == 2

    def test_export_import_round_trip(self, run, tmp_path):
        run("save", HOOKS)
        run("save", ZEBRAS)
        dump = tmp_path / "dump.json"
        run("export", "-o", str(dump))
        run("clear", "--yes")

        rc, out, _ = run("import", str(dump))
        assert rc == 0
        assert out.strip() == "Imported 2 memories; 2 total."
        assert run("count")[1].strip() == "2"

    def test_import_from_stdin_replace(self, run, monkeypatch):
        run("save", HOOKS)
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps([{"id": "z", "content": "only"}])))
        rc, out, _ = run("import", "-", "--replace")
        assert rc == 0
        assert out.strip() == "Imported 1 memories; 1 total."

    def test_import_malformed(self, run, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"not": "a list"}', encoding="utf-8")
        rc, _, err = run("import", str(bad))
        assert rc == 1
        assert "Import failed" in err
