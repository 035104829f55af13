import pytest

from luaguard.core.errors import InsufficientHistory, LuaGuardError
from luaguard.core.models import EditDescriptor, EditOperation
from luaguard.healing.history import HistoryStore, apply_reverse_diff, compute_reverse_diff
from luaguard.healing.patcher import simulate

KEY = "src/main.lua"


def replace(line, text):
    return EditDescriptor(EditOperation.REPLACE, line_start=line, new_text=text)


@pytest.fixture
def store(clock):
    return HistoryStore(capacity=3, clock=clock)


def test_rollback_right_after_commit_restores_before(store):
    before = "a\nb\nc\n"
    store.record_commit(KEY, before, replace(2, "B"))
    assert store.head(KEY) == "a\nB\nc\n"
    assert store.rollback(KEY) == before
    assert store.history(KEY) == []


@pytest.mark.parametrize("before, edit", [
    ("a\nb\n", EditDescriptor(EditOperation.INSERT, line_start=2, new_text="x\ny")),
    ("a\nb\nc\nd\n", EditDescriptor(EditOperation.REPLACE, line_start=2, line_end=3, new_text="X\nY\nZ")),
    ("a\nb\nc\nd", EditDescriptor(EditOperation.REPLACE, line_start=1, line_end=3, new_text="q")),
    ("a\nb\nc\n", EditDescriptor(EditOperation.DELETE, line_start=1, line_end=2)),
    ("only", EditDescriptor(EditOperation.DELETE, line_start=1)),
])
def test_reverse_diff_undoes_any_line_edit(before, edit):
    after = simulate(before, edit)
    assert apply_reverse_diff(after, compute_reverse_diff(before, after)) == before


def test_reverse_diff_records_modifications_by_line(store):
    entry = store.record_commit(KEY, "a\nb\n", replace(2, "B"))
    assert entry.reverse_diff.modifications == {1: "b"}
    assert entry.reverse_diff.additions == {}
    assert entry.reverse_diff.deletions == {}
    assert entry.size_cost == 1


def test_capacity_keeps_most_recent_entries(store):
    text = "v0\n"
    for n in range(1, 5):
        store.record_commit(KEY, text, replace(1, f"v{n}"))
        text = f"v{n}\n"

    entries = store.history(KEY)
    assert len(entries) == 3
    assert [e.edit.new_text for e in entries] == ["v4", "v3", "v2"]
    assert [e.timestamp for e in entries] == [1003.0, 1002.0, 1001.0]


def test_insufficient_history_leaves_store_unchanged(store):
    store.record_commit(KEY, "a\n", replace(1, "b"))

    with pytest.raises(InsufficientHistory) as exc_info:
        store.rollback(KEY, steps=2)

    assert exc_info.value.available == 1
    assert exc_info.value.requested == 2
    assert len(store.history(KEY)) == 1
    assert store.head(KEY) == "b\n"


def test_unknown_key_has_no_history(store):
    with pytest.raises(InsufficientHistory):
        store.rollback("never/edited.lua")


def test_multi_step_rollback_consumes_in_order(store):
    texts = ["one\n", "one\ntwo\n", "one\ntwo\nthree\n", "ONE\ntwo\nthree\n"]
    store.record_commit(KEY, texts[0], EditDescriptor(EditOperation.INSERT, line_start=2, new_text="two"))
    store.record_commit(KEY, texts[1], EditDescriptor(EditOperation.INSERT, line_start=3, new_text="three"))
    store.record_commit(KEY, texts[2], replace(1, "ONE"))
    assert store.head(KEY) == texts[3]

    assert store.rollback(KEY, steps=2) == texts[1]
    assert len(store.history(KEY)) == 1
    assert store.rollback(KEY) == texts[0]


def test_preview_does_not_consume(store):
    store.record_commit(KEY, "a\n", replace(1, "b"))
    assert store.preview_rollback(KEY) == "a\n"
    assert len(store.history(KEY)) == 1


def test_rollback_against_explicit_current_text(store):
    store.record_commit(KEY, "a\nb\n", replace(2, "B"))
    assert store.rollback(KEY, current_text="a\nB\n") == "a\nb\n"


def test_after_text_overrides_simulated_result(store):
    before = "function f()\n"
    edit = EditDescriptor(EditOperation.INSERT, line_start=2, new_text="  return 1")
    fixed = "function f()\n  return 1\nend\n"
    store.record_commit(KEY, before, edit, after_text=fixed)
    assert store.head(KEY) == fixed
    assert store.rollback(KEY) == before


def test_zero_steps_is_rejected(store):
    store.record_commit(KEY, "a\n", replace(1, "b"))
    with pytest.raises(ValueError):
        store.rollback(KEY, steps=0)


def test_export_import_round_trip(store, clock):
    store.record_commit(KEY, "a\nb\n", replace(2, "B"))
    store.record_commit("other.lua", "x\n", replace(1, "y"))
    dump = store.export_json()

    restored = HistoryStore(capacity=3, clock=clock)
    restored.import_json(dump)

    assert restored.summaries(KEY) == store.summaries(KEY)
    assert restored.head(KEY) == "a\nB\n"
    assert restored.rollback(KEY) == "a\nb\n"
    assert restored.total_size_cost() == store.total_size_cost() - 1


def test_import_rejects_garbage(store):
    with pytest.raises(LuaGuardError):
        store.import_json("{not json")


def test_clear_and_summaries(store):
    store.record_commit(KEY, "a\n", replace(1, "b"))
    store.record_commit("other.lua", "x\n", replace(1, "y"))

    summary = store.summaries(KEY)[0]
    assert summary["operation"] == "replace"
    assert summary["modifications"] == 1

    store.clear(KEY)
    assert store.history(KEY) == []
    assert store.head(KEY) is None
    assert len(store.history("other.lua")) == 1

    store.clear()
    assert store.total_size_cost() == 0


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        HistoryStore(capacity=0)
