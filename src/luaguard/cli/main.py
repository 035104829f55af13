#!/usr/bin/env python3
"""
LUAGUARD CLI - Edit Gatekeeper Console
--------------------------------------
Command-line front end over EditGuardEngine:

    luaguard check PATH                       validate files as they are
    luaguard edit FILE --op replace --line 3  validate, then commit an edit
    luaguard undo FILE [--steps N]            roll back committed edits
    luaguard history FILE                     list the undo log

Exit code 0 on success, 1 when validation rejects or finds errors,
2 for usage, config or I/O problems.

Author: LuaGuard Team
Date: 2026-10-17
"""

import sys
import json
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    BarColumn,
    TaskProgressColumn
)

from luaguard.cli.formatter import LuaFormatter
from luaguard.core.config import CONFIG_FILENAME, GuardConfig, load_config
from luaguard.core.engine import EditGuardEngine
from luaguard.core.errors import ConfigError
from luaguard.core.models import EditDescriptor, EditOperation

console = Console()

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_USAGE = 2


class LuaGuardCLI:
    """
    Translates user commands into engine calls and renders the outcome.
    Every write goes through a confirmation gate unless -y is given.
    """

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="luaguard",
            description="LuaGuard - structural validation and undo log for Lua/Luau edits",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.formatter = LuaFormatter()
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("-v", "--version", action="version", version="luaguard v1.0.0")
        self.parser.add_argument("-w", "--workspace", default=".", help="Workspace root (default: cwd)")
        self.parser.add_argument("-c", "--config", help=f"Config file (default: <workspace>/{CONFIG_FILENAME})")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        check_parser = subparsers.add_parser("check", help="🔍 Validate Lua files as they are on disk")
        check_parser.add_argument("path", help="Path to a Lua file or directory")
        check_parser.add_argument("--ext", action="append", help="Extension filter, repeatable (default: from config)")
        check_parser.add_argument("--json", action="store_true", help="Emit machine-readable reports")
        check_parser.add_argument("--no-snippets", action="store_true", help="Hide code context for errors")

        edit_parser = subparsers.add_parser("edit", help="✏️  Validate and commit a line edit")
        edit_parser.add_argument("file", help="File to edit, relative to the workspace")
        edit_parser.add_argument("--op", required=True, choices=[op.value for op in EditOperation])
        edit_parser.add_argument("--line", type=int, required=True, help="First line (1-based)")
        edit_parser.add_argument("--end", type=int, help="Last line, inclusive (default: --line)")
        text_group = edit_parser.add_mutually_exclusive_group()
        text_group.add_argument("--text", help="Replacement/inserted text")
        text_group.add_argument("--text-file", help="Read the new text from a file ('-' for stdin)")
        edit_parser.add_argument("--dry-run", action="store_true", help="Validate only, never write")
        edit_parser.add_argument("--accept-fix", action="store_true", help="Commit the auto-fixed text if offered")
        edit_parser.add_argument("--diff", action="store_true", help="Show the proposed change")
        edit_parser.add_argument("--json", action="store_true", help="Emit the validation report as JSON")
        edit_parser.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")

        undo_parser = subparsers.add_parser("undo", help="⏪ Roll back committed edits")
        undo_parser.add_argument("file", help="File to restore, relative to the workspace")
        undo_parser.add_argument("--steps", type=int, default=1, help="Number of edits to undo")
        undo_parser.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")

        history_parser = subparsers.add_parser("history", help="📜 Show the undo log of a file")
        history_parser.add_argument("file", help="File, relative to the workspace")

    def print_header(self, subtitle: str):
        console.print(Panel.fit(
            "[bold cyan]LuaGuard v1.0.0[/bold cyan]\n"
            "══════════════════════════════════════════════",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def _confirm_action(self, prompt: str, args: argparse.Namespace) -> bool:
        """Safety gate: ensures the user wants to proceed with a write."""
        if getattr(args, "dry_run", False) or args.yes:
            return True
        choice = console.input(f"\n[bold yellow]{prompt} (y/N): [/bold yellow]").lower()
        return choice == "y"

    def _load_config(self, args: argparse.Namespace, workspace: Path) -> GuardConfig:
        config_path = Path(args.config) if args.config else workspace / CONFIG_FILENAME
        return load_config(config_path)

    # -- commands ------------------------------------------------------------

    def _cmd_check(self, args: argparse.Namespace, config: GuardConfig) -> int:
        input_path = Path(args.path).resolve()
        if not input_path.exists():
            console.print(f"[bold red]Error:[/bold red] Path '{args.path}' not found.")
            return EXIT_USAGE
        if args.ext:
            config.extensions = args.ext

        if input_path.is_file():
            engine = EditGuardEngine(input_path.parent, config)
            reports = [engine.check_file(input_path.name)]
        else:
            engine = EditGuardEngine(input_path, config)
            reports = self._scan_with_progress(engine, args.json)
            if not reports:
                console.print("\n[bold yellow]⚠️  No Lua files found.[/bold yellow]")
                return EXIT_OK

        if args.json:
            payload = [self._jsonable(r) for r in reports]
            console.print_json(json.dumps(payload))
        else:
            for r in reports:
                if "report" in r and not r["success"]:
                    self.formatter.show_report(r["report"], r["file_path"], with_snippets=not args.no_snippets)
                elif "error" in r:
                    console.print(f"[bold red]Error in {r['file_path']}:[/bold red] {r['error']}")
            self.formatter.print_final_table(reports)
            self.formatter.print_summary(engine.generate_summary(reports))

        return EXIT_OK if all(r.get("success") for r in reports) else EXIT_INVALID

    def _scan_with_progress(self, engine: EditGuardEngine, quiet: bool) -> List[dict]:
        if quiet:
            return engine.scan_directory()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console
        ) as progress:
            task_id = progress.add_task("Checking Lua files...", total=None)

            def advance(processed: int, total: int):
                progress.update(task_id, completed=processed, total=total)

            return engine.scan_directory(progress_callback=advance)

    def _cmd_edit(self, args: argparse.Namespace, engine: EditGuardEngine) -> int:
        try:
            new_text = self._read_new_text(args)
        except OSError as e:
            console.print(f"[bold red]Error:[/bold red] Unable to read new text: {e}")
            return EXIT_USAGE

        edit = EditDescriptor(EditOperation(args.op), args.line, args.end, new_text)
        preview = engine.preview_edit(args.file, edit)
        if "error" in preview:
            console.print(f"[bold red]{preview['status']}:[/bold red] {preview['error']}")
            return EXIT_USAGE

        report = preview["report"]
        if args.json:
            console.print_json(json.dumps(report.to_dict()))
        else:
            if args.diff:
                self.formatter.display_diff(preview["original"], report.candidate, args.file)
            self.formatter.show_report(report, args.file)

        use_fix = not report.valid and args.accept_fix and report.fixed_text is not None
        if not report.valid and not use_fix:
            console.print("[bold red]Edit rejected; nothing was written.[/bold red]")
            return EXIT_INVALID
        if use_fix and args.diff and not args.json:
            self.formatter.display_diff(preview["original"], report.fixed_text, args.file)

        if args.dry_run:
            console.print("[dim]Dry run: nothing was written.[/dim]")
            return EXIT_OK
        if not self._confirm_action(f"Apply edit to {args.file}?", args):
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            return EXIT_OK

        result = engine.apply_edit(args.file, edit, accept_fix=args.accept_fix)
        if not result.get("written"):
            console.print(f"[bold red]{result['status']}:[/bold red] {result.get('error') or result.get('write_error', '')}")
            return EXIT_INVALID if result["status"] == "REJECTED" else EXIT_USAGE

        engine.save_history()
        label = "auto-fixed edit" if result["auto_fixed"] else "edit"
        console.print(f"[bold green]✅ Committed {label} to {result['file_key']}[/bold green]")
        return EXIT_OK

    def _cmd_undo(self, args: argparse.Namespace, engine: EditGuardEngine) -> int:
        if not self._confirm_action(f"Undo {args.steps} edit(s) on {args.file}?", args):
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            return EXIT_OK

        result = engine.rollback(args.file, args.steps)
        if not result["success"]:
            console.print(f"[bold red]{result['status']}:[/bold red] {result['error']}")
            return EXIT_INVALID

        engine.save_history()
        console.print(
            f"[bold green]⏪ Rolled back {result['steps']} edit(s) on {args.file}; "
            f"{result['remaining']} left in history[/bold green]"
        )
        return EXIT_OK

    def _cmd_history(self, args: argparse.Namespace, engine: EditGuardEngine) -> int:
        try:
            entries = engine.history(args.file)
        except PermissionError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return EXIT_USAGE
        if not entries:
            console.print(f"[dim]No recorded edits for {args.file}.[/dim]")
            return EXIT_OK
        self.formatter.show_history(entries, args.file)
        return EXIT_OK

    # -- helpers -------------------------------------------------------------

    def _read_new_text(self, args: argparse.Namespace) -> Optional[str]:
        if args.text_file == "-":
            return sys.stdin.read()
        if args.text_file:
            return Path(args.text_file).read_text(encoding="utf-8")
        return args.text

    def _jsonable(self, result: dict) -> dict:
        data = {k: v for k, v in result.items() if k != "report"}
        if "report" in result:
            data["report"] = result["report"].to_dict()
        return data

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point; returns the process exit code."""
        argv = sys.argv[1:] if argv is None else argv
        if not argv:
            self.print_header("Lua Edit Gatekeeper")
            self.parser.print_help()
            return EXIT_OK

        args = self.parser.parse_args(argv)
        if not args.command:
            self.parser.print_help()
            return EXIT_USAGE

        workspace = Path(args.workspace).resolve()
        try:
            config = self._load_config(args, workspace)
        except ConfigError as e:
            console.print(f"[bold red]CONFIG ERROR:[/bold red] {e}")
            return EXIT_USAGE
        logging.basicConfig(
            level=getattr(logging, config.log_level.upper(), logging.WARNING),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )

        if args.command == "check":
            return self._cmd_check(args, config)

        engine = EditGuardEngine(workspace, config)
        engine.load_history()
        if args.command == "edit":
            return self._cmd_edit(args, engine)
        if args.command == "undo":
            return self._cmd_undo(args, engine)
        return self._cmd_history(args, engine)


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(LuaGuardCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
