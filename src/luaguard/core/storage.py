#!/usr/bin/env python3
"""
LUAGUARD LOCAL FILE STORE
-------------------------
The default storage collaborator: reads and atomically writes files
inside one workspace and derives the stable file key used by the
history store.

Author: LuaGuard Team
Date: 2026-10-17
"""

import os
from pathlib import Path
from typing import Iterable, List, Union


class LocalFileStore:

    def __init__(self, workspace: Union[str, Path]):
        self.workspace = Path(workspace).resolve()

    def resolve(self, path: Union[str, Path]) -> Path:
        full_path = (self.workspace / path).resolve()
        if full_path != self.workspace and self.workspace not in full_path.parents:
            raise PermissionError(f"{path} is outside the workspace {self.workspace}")
        return full_path

    def file_key(self, path: Union[str, Path]) -> str:
        """Workspace-relative POSIX path; identical for every spelling of the same file."""
        return self.resolve(path).relative_to(self.workspace).as_posix()

    def read(self, path: Union[str, Path]) -> str:
        # utf-8-sig drops a BOM; newline="" keeps CRLF so line numbers match the editor
        with open(self.resolve(path), "r", encoding="utf-8-sig", newline="") as f:
            return f.read()

    def write(self, path: Union[str, Path], text: str):
        target_path = self.resolve(path)
        if not os.access(target_path.parent, os.W_OK):
            raise PermissionError(f"No write access to {target_path.parent}")
        temp_file = target_path.with_name(target_path.name + ".luaguard.tmp")
        try:
            with open(temp_file, "w", encoding="utf-8", newline="") as f:
                f.write(text)
            os.replace(temp_file, target_path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise IOError(f"Atomic write failed: {e}")

    def discover(self, extensions: Iterable[str], max_depth: int = 10) -> List[Path]:
        """Source files under the workspace, skipping symlinks and overly deep paths."""
        suffixes = {ext.lower() for ext in extensions}
        found = []
        for candidate in sorted(self.workspace.rglob("*")):
            if candidate.is_symlink() or not candidate.is_file():
                continue
            if candidate.suffix.lower() not in suffixes:
                continue
            if len(candidate.relative_to(self.workspace).parts) > max_depth:
                continue
            found.append(candidate)
        return found
