#!/usr/bin/env python3
"""
LUAGUARD ENGINE - The Edit Gatekeeper
-------------------------------------
EditGuardEngine wires the pure core (simulator, validator) to a file
store and one HistoryStore. An edit request flows:

    read -> simulate + validate -> (accepted) record reverse diff -> write

A rejected edit writes nothing and records nothing. Validate/commit
pairs on the same file key run under that key's lock so concurrent
requests cannot interleave undo entries.

Author: LuaGuard Team
Date: 2026-10-17
"""

import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from luaguard.core.config import GuardConfig
from luaguard.core.errors import InsufficientHistory, InvalidEditError, LuaGuardError
from luaguard.core.models import EditDescriptor
from luaguard.core.storage import LocalFileStore
from luaguard.healing.history import HistoryStore
from luaguard.validator.validator import LuaValidator

logger = logging.getLogger("luaguard.engine")


class EditGuardEngine:
    """
    Principal orchestrator. Holds the workspace, the validator and the
    process-wide history store (constructor-injected so tests and hosts
    can share or isolate it).
    """

    def __init__(self, workspace_path: Union[str, Path], config: Optional[GuardConfig] = None,
                 history: Optional[HistoryStore] = None, store: Optional[LocalFileStore] = None):
        self.config = config or GuardConfig()
        self.store = store or LocalFileStore(workspace_path)
        self.workspace = self.store.workspace
        self.validator = LuaValidator(self.config)
        self.history_store = history or HistoryStore(capacity=self.config.history_capacity)
        self.history_path = self.workspace / self.config.history_file

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, file_key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(file_key, threading.Lock())

    # -- read-only -----------------------------------------------------------

    def check_file(self, relative_path: str) -> Dict[str, Any]:
        """Validates a file as it currently is on disk."""
        try:
            text = self.store.read(relative_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Unable to read {relative_path}: {e}")
            return self._file_error(relative_path, "READ_ERROR", str(e))

        report = self.validator.validate_text(text)
        return {
            "file_path": str(relative_path),
            "success": report.valid,
            "status": "VALID" if report.valid else "INVALID",
            "report": report,
            "error_count": len(report.errors),
            "warning_count": len(report.warnings),
            "fixable": report.auto_fixed,
            "timestamp": time.time(),
        }

    def scan_directory(self, max_depth: int = 10,
                       progress_callback: Optional[Callable[[int, int], None]] = None) -> List[Dict[str, Any]]:
        """Checks every source file under the workspace."""
        files = self.store.discover(self.config.extensions, max_depth=max_depth)
        reports = []
        for processed, file_path in enumerate(files, 1):
            reports.append(self.check_file(str(file_path.relative_to(self.workspace))))
            if progress_callback:
                progress_callback(processed, len(files))
        return reports

    def preview_edit(self, relative_path: str, edit: EditDescriptor) -> Dict[str, Any]:
        """Candidate text plus its report; never writes."""
        try:
            original = self.store.read(relative_path)
            report = self.validator.validate(original, edit)
        except InvalidEditError as e:
            return self._file_error(relative_path, "INVALID_EDIT", str(e))
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Unable to read {relative_path}: {e}")
            return self._file_error(relative_path, "READ_ERROR", str(e))

        return {
            "file_path": str(relative_path),
            "success": report.valid,
            "status": "PREVIEW",
            "original": original,
            "candidate": report.candidate,
            "report": report,
            "written": False,
        }

    # -- mutating ------------------------------------------------------------

    def apply_edit(self, relative_path: str, edit: EditDescriptor,
                   accept_fix: bool = False, dry_run: bool = False) -> Dict[str, Any]:
        """
        Validates and, when accepted, commits ``edit``. With ``accept_fix``
        an auto-fixed candidate is committed in place of a rejected one.
        """
        try:
            file_key = self.store.file_key(relative_path)
        except PermissionError as e:
            return self._file_error(relative_path, "OUTSIDE_WORKSPACE", str(e))

        with self._lock_for(file_key):
            try:
                original = self.store.read(relative_path)
                report = self.validator.validate(original, edit)
            except InvalidEditError as e:
                return self._file_error(relative_path, "INVALID_EDIT", str(e))
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Unable to read {relative_path}: {e}")
                return self._file_error(relative_path, "READ_ERROR", str(e))

            result = {
                "file_path": str(relative_path),
                "file_key": file_key,
                "success": False,
                "status": "REJECTED",
                "original": original,
                "report": report,
                "content": report.candidate,
                "written": False,
                "auto_fixed": False,
            }

            if report.valid:
                final_text = report.candidate
            elif accept_fix and report.fixed_text is not None:
                final_text = report.fixed_text
                result["auto_fixed"] = True
            else:
                logger.info(f"Edit on {file_key} rejected with {len(report.errors)} error(s)")
                return result

            result["content"] = final_text
            result["success"] = True
            if dry_run:
                result["status"] = "PREVIEW"
                return result

            try:
                self.store.write(relative_path, final_text)
            except (OSError, IOError) as e:
                logger.error(f"Write failed for {file_key}: {e}")
                result["success"] = False
                result["status"] = "WRITE_ERROR"
                result["write_error"] = str(e)
                return result

            # Recorded only once the new text is really on disk
            self.history_store.record_commit(file_key, original, edit, after_text=final_text)
            result["written"] = True
            result["status"] = "FIXED" if result["auto_fixed"] else "APPLIED"
            logger.info(f"Committed {edit.operation.value} on {file_key} (line {edit.line_start})")
            return result

    def rollback(self, relative_path: str, steps: int = 1) -> Dict[str, Any]:
        """Restores the text from ``steps`` commits ago and writes it back."""
        try:
            file_key = self.store.file_key(relative_path)
        except PermissionError as e:
            return self._file_error(relative_path, "OUTSIDE_WORKSPACE", str(e))

        with self._lock_for(file_key):
            try:
                current = self.store.read(relative_path)
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Unable to read {relative_path}: {e}")
                return self._file_error(relative_path, "READ_ERROR", str(e))

            head = self.history_store.head(file_key)
            if head is not None and head != current:
                return self._file_error(
                    relative_path, "FILE_CHANGED",
                    "File changed since the last recorded edit; refusing to roll back")

            try:
                restored = self.history_store.preview_rollback(file_key, steps, current_text=current)
            except (InsufficientHistory, ValueError) as e:
                return self._file_error(relative_path, "INSUFFICIENT_HISTORY", str(e))

            try:
                self.store.write(relative_path, restored)
            except (OSError, IOError) as e:
                logger.error(f"Write failed during rollback of {file_key}: {e}")
                return self._file_error(relative_path, "WRITE_ERROR", str(e))

            # Entries are consumed only after the restored text is on disk
            self.history_store.rollback(file_key, steps, current_text=current)

            return {
                "file_path": str(relative_path),
                "success": True,
                "status": "ROLLED_BACK",
                "steps": steps,
                "content": restored,
                "remaining": len(self.history_store.history(file_key)),
                "written": True,
            }

    def history(self, relative_path: str) -> List[Dict[str, Any]]:
        return self.history_store.summaries(self.store.file_key(relative_path))

    # -- persistence ---------------------------------------------------------

    def load_history(self) -> bool:
        if not self.history_path.exists():
            return False
        try:
            self.history_store.import_json(self.history_path.read_text(encoding="utf-8"))
        except (OSError, LuaGuardError) as e:
            logger.error(f"Ignoring unreadable history file {self.history_path}: {e}")
            return False
        return True

    def save_history(self):
        self.history_path.parent.mkdir(parents=True, exist_ok=True)
        self.history_path.write_text(self.history_store.export_json(), encoding="utf-8")

    # -- reporting -----------------------------------------------------------

    def generate_summary(self, reports: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not reports:
            return {"total_files": 0, "valid": 0, "invalid": 0, "fixable": 0,
                    "system_errors": 0, "success_rate": 0}

        total = len(reports)
        valid = sum(1 for r in reports if r.get("success"))
        system_errors = sum(1 for r in reports if "error" in r)
        return {
            "total_files": total,
            "valid": valid,
            "invalid": total - valid - system_errors,
            "fixable": sum(1 for r in reports if r.get("fixable")),
            "errors": sum(r.get("error_count", 0) for r in reports),
            "warnings": sum(r.get("warning_count", 0) for r in reports),
            "system_errors": system_errors,
            "success_rate": valid / total,
            "summary_timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        }

    def _file_error(self, path: str, status: str, error: str) -> Dict[str, Any]:
        return {"file_path": str(path), "status": status, "error": error,
                "success": False, "written": False}
