from luaguard.cli.main import EXIT_INVALID, EXIT_OK, EXIT_USAGE, LuaGuardCLI


def run(*argv):
    return LuaGuardCLI().run(list(argv))


def test_no_arguments_prints_help(capsys):
    assert run() == EXIT_OK
    assert "luaguard" in capsys.readouterr().out


def test_check_clean_directory(workspace, capsys):
    assert run("check", str(workspace)) == EXIT_OK
    out = capsys.readouterr().out
    assert "main.lua" in out
    assert "VALID" in out


def test_check_reports_errors_with_exit_code(workspace, capsys):
    (workspace / "broken.lua").write_text("function f()\n  print((1)\n", encoding="utf-8")
    assert run("check", str(workspace)) == EXIT_INVALID
    out = capsys.readouterr().out
    assert "UnclosedBracket" in out
    assert "UnclosedBlock" in out


def test_check_single_file_as_json(workspace, capsys):
    (workspace / "broken.lua").write_text("function f()\n", encoding="utf-8")
    assert run("check", str(workspace / "broken.lua"), "--json") == EXIT_INVALID
    out = capsys.readouterr().out
    assert '"status": "INVALID"' in out
    assert '"fixable": true' in out


def test_check_missing_path(tmp_path):
    assert run("check", str(tmp_path / "absent")) == EXIT_USAGE


def test_edit_applies_and_undo_restores(workspace, capsys):
    original = (workspace / "main.lua").read_text(encoding="utf-8")

    code = run("-w", str(workspace), "edit", "main.lua", "--op", "insert", "--line", "1",
               "--text", "-- greeting helpers", "-y")
    assert code == EXIT_OK
    assert (workspace / "main.lua").read_text(encoding="utf-8") == "-- greeting helpers\n" + original
    assert (workspace / ".luaguard" / "history.json").exists()

    assert run("-w", str(workspace), "history", "main.lua") == EXIT_OK
    assert "Edit History" in capsys.readouterr().out

    assert run("-w", str(workspace), "undo", "main.lua", "-y") == EXIT_OK
    assert (workspace / "main.lua").read_text(encoding="utf-8") == original


def test_rejected_edit_exits_non_zero(workspace, capsys):
    original = (workspace / "main.lua").read_text(encoding="utf-8")
    code = run("-w", str(workspace), "edit", "main.lua", "--op", "delete", "--line", "3", "-y")

    assert code == EXIT_INVALID
    assert "rejected" in capsys.readouterr().out
    assert (workspace / "main.lua").read_text(encoding="utf-8") == original


def test_accept_fix_commits_fixed_text(workspace):
    original = (workspace / "main.lua").read_text(encoding="utf-8")
    code = run("-w", str(workspace), "edit", "main.lua", "--op", "delete", "--line", "3",
               "--accept-fix", "-y")
    assert code == EXIT_OK
    assert (workspace / "main.lua").read_text(encoding="utf-8") == original


def test_edit_text_from_file_with_dry_run(workspace, tmp_path_factory):
    snippet = tmp_path_factory.mktemp("snippets") / "body.lua"
    snippet.write_text("  return name\n", encoding="utf-8")
    original = (workspace / "main.lua").read_text(encoding="utf-8")

    code = run("-w", str(workspace), "edit", "main.lua", "--op", "replace", "--line", "2",
               "--text-file", str(snippet), "--dry-run", "--diff")
    assert code == EXIT_OK
    assert (workspace / "main.lua").read_text(encoding="utf-8") == original


def test_edit_confirmation_can_be_declined(workspace, monkeypatch):
    monkeypatch.setattr("luaguard.cli.main.console.input", lambda prompt: "n")
    original = (workspace / "main.lua").read_text(encoding="utf-8")

    code = run("-w", str(workspace), "edit", "main.lua", "--op", "insert", "--line", "1", "--text", "-- x")
    assert code == EXIT_OK
    assert (workspace / "main.lua").read_text(encoding="utf-8") == original


def test_out_of_range_edit_is_a_usage_error(workspace):
    code = run("-w", str(workspace), "edit", "main.lua", "--op", "delete", "--line", "40", "-y")
    assert code == EXIT_USAGE


def test_undo_without_history(workspace, capsys):
    assert run("-w", str(workspace), "undo", "main.lua", "-y") == EXIT_INVALID
    assert "INSUFFICIENT_HISTORY" in capsys.readouterr().out


def test_invalid_config_is_reported(workspace, capsys):
    (workspace / ".luaguard.yaml").write_text("history_capacity: 0\n", encoding="utf-8")
    assert run("-w", str(workspace), "history", "main.lua") == EXIT_USAGE
    assert "CONFIG ERROR" in capsys.readouterr().out
