#!/usr/bin/env python3
"""
LUAGUARD HISTORY STORE - The Undo Log
-------------------------------------
Keeps, per file key, the last N accepted edits as reverse diffs (most
recent first). A rollback replays reverse diffs from the newest entry
and consumes them.

Besides the bounded entry list the store remembers each key's head, the
text written by the latest commit, so a rollback needs no input beyond
the key. Mutations are not synchronized: callers serialize
validate/commit pairs per key.

Author: LuaGuard Team
Date: 2026-10-17
"""

import difflib
import json
import logging
import math
import time
from typing import Callable, Dict, List, Optional

from luaguard.core.errors import InsufficientHistory, LuaGuardError
from luaguard.core.models import EditDescriptor, HistoryEntry, ReverseDiff
from luaguard.healing.patcher import PatchSimulator, join_lines, split_lines

logger = logging.getLogger("luaguard.history")

DEFAULT_CAPACITY = 5


def compute_reverse_diff(before_text: str, after_text: str) -> ReverseDiff:
    """Builds the recipe that turns ``after_text`` back into ``before_text``."""
    before, trailing = split_lines(before_text)
    after, _ = split_lines(after_text)
    diff = ReverseDiff(trailing_newline=trailing)

    matcher = difflib.SequenceMatcher(None, after, before, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        paired = min(i2 - i1, j2 - j1) if tag == "replace" else 0
        for k in range(paired):
            diff.modifications[i1 + k] = before[j1 + k]
        for i in range(i1 + paired, i2):
            diff.deletions[i] = after[i]
        for j in range(j1 + paired, j2):
            diff.additions[j] = before[j]
    return diff


def apply_reverse_diff(after_text: str, diff: ReverseDiff) -> str:
    lines, _ = split_lines(after_text)
    for index, text in diff.modifications.items():
        lines[index] = text
    kept = [line for index, line in enumerate(lines) if index not in diff.deletions]
    for index in sorted(diff.additions):
        kept.insert(index, diff.additions[index])
    return join_lines(kept, diff.trailing_newline)


class HistoryStore:
    """
    Per-file bounded LIFO of reverse diffs. Intended to be created once
    per process and handed to whoever commits edits.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, clock: Callable[[], float] = time.time):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._clock = clock
        self._simulator = PatchSimulator()
        self._entries: Dict[str, List[HistoryEntry]] = {}
        self._heads: Dict[str, str] = {}

    def record_commit(self, file_key: str, before_text: str, edit: EditDescriptor,
                      after_text: Optional[str] = None) -> HistoryEntry:
        """
        Records an accepted edit. ``after_text`` defaults to the simulated
        result of ``edit``; pass it when the written text differs (e.g. an
        accepted auto-fix).
        """
        if after_text is None:
            after_text = self._simulator.simulate(before_text, edit)

        diff = compute_reverse_diff(before_text, after_text)
        entry = HistoryEntry(
            timestamp=self._clock(),
            reverse_diff=diff,
            size_cost=math.ceil(diff.stored_chars / 4),
            edit=edit,
        )

        entries = self._entries.setdefault(file_key, [])
        entries.insert(0, entry)
        if len(entries) > self.capacity:
            entries.pop()
            logger.debug(f"History for {file_key} at capacity {self.capacity}; oldest entry evicted")
        self._heads[file_key] = after_text
        return entry

    def rollback(self, file_key: str, steps: int = 1, current_text: Optional[str] = None) -> str:
        """
        Undoes the latest ``steps`` commits and returns the restored text.
        Fails with InsufficientHistory, leaving the store untouched, when
        fewer entries exist.
        """
        text = self.preview_rollback(file_key, steps, current_text)
        entries = self._entries[file_key]
        del entries[:steps]
        self._heads[file_key] = text
        logger.info(f"Rolled back {steps} edit(s) on {file_key}; {len(entries)} remaining")
        return text

    def preview_rollback(self, file_key: str, steps: int = 1, current_text: Optional[str] = None) -> str:
        """Computes what ``rollback`` would return without consuming any entry."""
        if steps < 1:
            raise ValueError("Rollback steps must be at least 1")
        entries = self._entries.get(file_key, [])
        if steps > len(entries):
            raise InsufficientHistory(file_key, steps, len(entries))

        text = current_text if current_text is not None else self._heads.get(file_key)
        if text is None:
            raise LuaGuardError(f"No current text known for '{file_key}'")

        for entry in entries[:steps]:
            text = apply_reverse_diff(text, entry.reverse_diff)
        return text

    def history(self, file_key: str) -> List[HistoryEntry]:
        """Entries for ``file_key``, most recent first (a copy)."""
        return list(self._entries.get(file_key, []))

    def head(self, file_key: str) -> Optional[str]:
        """Text written by the latest recorded commit, if any."""
        return self._heads.get(file_key)

    def summaries(self, file_key: str) -> List[Dict]:
        return [entry.summary() for entry in self.history(file_key)]

    def clear(self, file_key: Optional[str] = None):
        if file_key is None:
            self._entries.clear()
            self._heads.clear()
        else:
            self._entries.pop(file_key, None)
            self._heads.pop(file_key, None)

    def total_size_cost(self) -> int:
        return sum(entry.size_cost for entries in self._entries.values() for entry in entries)

    def export_json(self) -> str:
        payload = {
            "capacity": self.capacity,
            "files": {
                key: {
                    "head": self._heads.get(key),
                    "entries": [entry.to_dict() for entry in entries],
                }
                for key, entries in self._entries.items()
            },
        }
        return json.dumps(payload, indent=2)

    def import_json(self, raw: str):
        """Replaces the store's content with a previous ``export_json`` dump."""
        try:
            payload = json.loads(raw)
            files = payload.get("files", {})
            entries = {
                key: [HistoryEntry.from_dict(e) for e in data.get("entries", [])][:self.capacity]
                for key, data in files.items()
            }
            heads = {key: data["head"] for key, data in files.items() if data.get("head") is not None}
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise LuaGuardError(f"Unable to import history: {e}")

        self._entries = entries
        self._heads = heads
