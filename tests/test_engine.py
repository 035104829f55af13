import threading

import pytest

from luaguard.core.config import GuardConfig
from luaguard.core.engine import EditGuardEngine
from luaguard.core.models import EditDescriptor, EditOperation
from luaguard.healing.history import HistoryStore

ORIGINAL = (
    "local function greet(name)\n"
    "  print(\"hello \" .. name)\n"
    "end\n"
)


@pytest.fixture
def engine(workspace, clock):
    return EditGuardEngine(workspace, history=HistoryStore(clock=clock))


def insert(line, text):
    return EditDescriptor(EditOperation.INSERT, line_start=line, new_text=text)


def test_valid_edit_is_written_and_recorded(engine, workspace):
    result = engine.apply_edit("main.lua", insert(4, "greet(\"world\")"))

    assert result["status"] == "APPLIED"
    assert result["written"] is True
    assert (workspace / "main.lua").read_text(encoding="utf-8") == ORIGINAL + "greet(\"world\")\n"
    assert len(engine.history("main.lua")) == 1


def test_rejected_edit_writes_and_records_nothing(engine, workspace):
    result = engine.apply_edit("main.lua", EditDescriptor(EditOperation.DELETE, line_start=3))

    assert result["status"] == "REJECTED"
    assert result["written"] is False
    assert result["report"].valid is False
    assert (workspace / "main.lua").read_text(encoding="utf-8") == ORIGINAL
    assert engine.history("main.lua") == []


def test_accepted_fix_is_committed(engine, workspace):
    edit = EditDescriptor(EditOperation.DELETE, line_start=3)
    result = engine.apply_edit("main.lua", edit, accept_fix=True)

    assert result["status"] == "FIXED"
    assert result["auto_fixed"] is True
    assert (workspace / "main.lua").read_text(encoding="utf-8") == ORIGINAL


def test_dry_run_leaves_disk_alone(engine, workspace):
    result = engine.apply_edit("main.lua", insert(1, "-- header"), dry_run=True)

    assert result["status"] == "PREVIEW"
    assert result["success"] is True
    assert result["content"].startswith("-- header\n")
    assert (workspace / "main.lua").read_text(encoding="utf-8") == ORIGINAL
    assert engine.history("main.lua") == []


def test_preview_edit_returns_candidate(engine):
    preview = engine.preview_edit("main.lua", insert(1, "-- header"))
    assert preview["status"] == "PREVIEW"
    assert preview["original"] == ORIGINAL
    assert preview["candidate"] == "-- header\n" + ORIGINAL


def test_rollback_restores_file(engine, workspace):
    engine.apply_edit("main.lua", insert(1, "-- one"))
    engine.apply_edit("main.lua", insert(1, "-- two"))

    result = engine.rollback("main.lua", steps=2)

    assert result["status"] == "ROLLED_BACK"
    assert result["remaining"] == 0
    assert (workspace / "main.lua").read_text(encoding="utf-8") == ORIGINAL


def test_rollback_refuses_after_outside_change(engine, workspace):
    engine.apply_edit("main.lua", insert(1, "-- one"))
    (workspace / "main.lua").write_text("-- rewritten elsewhere\n", encoding="utf-8")

    result = engine.rollback("main.lua")

    assert result["status"] == "FILE_CHANGED"
    assert (workspace / "main.lua").read_text(encoding="utf-8") == "-- rewritten elsewhere\n"
    assert len(engine.history("main.lua")) == 1


def test_rollback_beyond_history(engine):
    engine.apply_edit("main.lua", insert(1, "-- one"))
    result = engine.rollback("main.lua", steps=3)
    assert result["status"] == "INSUFFICIENT_HISTORY"
    assert len(engine.history("main.lua")) == 1


def test_out_of_range_edit_is_reported(engine):
    result = engine.apply_edit("main.lua", EditDescriptor(EditOperation.DELETE, line_start=9))
    assert result["status"] == "INVALID_EDIT"
    assert result["success"] is False


def test_paths_outside_workspace_are_refused(engine):
    result = engine.apply_edit("../escape.lua", insert(1, "x"))
    assert result["status"] == "OUTSIDE_WORKSPACE"


def test_missing_file_is_a_read_error(engine):
    assert engine.check_file("nope.lua")["status"] == "READ_ERROR"


def test_file_keys_are_normalized(engine, workspace):
    (workspace / "lib").mkdir()
    (workspace / "lib" / "util.lua").write_text("return {}\n", encoding="utf-8")
    engine.apply_edit("lib/../lib/util.lua", insert(1, "-- util"))
    assert len(engine.history("lib/util.lua")) == 1


def test_scan_directory_checks_lua_sources_only(engine, workspace):
    (workspace / "broken.luau").write_text("function f()\n", encoding="utf-8")
    (workspace / "notes.txt").write_text("function\n", encoding="utf-8")
    ticks = []

    reports = engine.scan_directory(progress_callback=lambda done, total: ticks.append((done, total)))

    by_name = {r["file_path"]: r for r in reports}
    assert set(by_name) == {"main.lua", "broken.luau"}
    assert by_name["main.lua"]["status"] == "VALID"
    assert by_name["broken.luau"]["status"] == "INVALID"
    assert by_name["broken.luau"]["fixable"] is True
    assert ticks == [(1, 2), (2, 2)]

    summary = engine.generate_summary(reports)
    assert (summary["total_files"], summary["valid"], summary["invalid"]) == (2, 1, 1)


def test_history_survives_a_new_engine(workspace):
    first = EditGuardEngine(workspace)
    first.apply_edit("main.lua", insert(1, "-- one"))
    first.save_history()

    second = EditGuardEngine(workspace)
    assert second.load_history() is True
    assert second.rollback("main.lua")["status"] == "ROLLED_BACK"
    assert (workspace / "main.lua").read_text(encoding="utf-8") == ORIGINAL


def test_history_capacity_comes_from_config(workspace):
    engine = EditGuardEngine(workspace, GuardConfig(history_capacity=2))
    for n in range(3):
        engine.apply_edit("main.lua", insert(1, f"-- {n}"))
    assert len(engine.history("main.lua")) == 2


def test_concurrent_edits_on_one_file_are_serialized(workspace):
    """STRESS TEST: every commit must see the text the previous one wrote."""
    engine = EditGuardEngine(workspace)
    threads = [
        threading.Thread(target=engine.apply_edit, args=("main.lua", insert(1, f"-- note {n}")))
        for n in range(5)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    text = (workspace / "main.lua").read_text(encoding="utf-8")
    assert text.count("-- note") == 5
    assert len(engine.history("main.lua")) == 5
    assert engine.rollback("main.lua", steps=5)["status"] == "ROLLED_BACK"
    assert (workspace / "main.lua").read_text(encoding="utf-8") == ORIGINAL


def test_commit_to_crlf_file_writes_no_bare_lf(engine, workspace):
    target = workspace / "win.lua"
    target.write_bytes(b"local function f()\r\n  return 1\r\nend\r\n")

    result = engine.apply_edit("win.lua", insert(2, "  local x = 2"))

    assert result["status"] == "APPLIED"
    data = target.read_bytes()
    assert data == b"local function f()\r\n  local x = 2\r\n  return 1\r\nend\r\n"
    assert engine.rollback("win.lua")["status"] == "ROLLED_BACK"
    assert target.read_bytes() == b"local function f()\r\n  return 1\r\nend\r\n"
