# src/luaguard/cli/formatter.py
import difflib
from datetime import datetime
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from luaguard.core.models import Finding, ValidationReport

# Initialize the Rich console for high-quality terminal output
console = Console()

SNIPPET_CONTEXT = 3


class LuaFormatter:
    """
    LuaFormatter: the visual side of the CLI.
    Renders diffs, findings with code context, history and run summaries.
    """

    def display_diff(self, original_text: str, new_text: str, file_name: str):
        """Renders a colorized unified diff between the file and the candidate."""
        diff_list = list(difflib.unified_diff(
            original_text.splitlines(),
            new_text.splitlines(),
            fromfile=f"a/{file_name}",
            tofile=f"b/{file_name}",
            lineterm=""
        ))

        if not diff_list:
            console.print(f"[dim]ℹ No changes for {file_name}.[/dim]")
            return

        syntax = Syntax("\n".join(diff_list), "diff", theme="monokai", line_numbers=True)
        console.print(Panel(syntax, title=f"Proposed Edit: {file_name}", border_style="green"))

    def snippet(self, text: str, finding: Finding) -> Syntax:
        """Source lines around a finding, with the offending line highlighted."""
        total = max(1, len(text.splitlines()))
        start = max(1, finding.line - SNIPPET_CONTEXT)
        end = min(total, finding.line + SNIPPET_CONTEXT)
        return Syntax(text, "lua", theme="monokai", line_numbers=True,
                      line_range=(start, end), highlight_lines={finding.line})

    def show_report(self, report: ValidationReport, file_name: str, with_snippets: bool = True):
        """Errors (with code context), then warnings, then the block tally."""
        if report.valid:
            console.print(f"[bold green]✅ {file_name}: structurally valid[/bold green]")
        else:
            console.print(f"[bold red]❌ {file_name}: {len(report.errors)} error(s)[/bold red]")

        for finding in report.errors:
            location = self._location(finding)
            console.print(f"[bold red]{finding.kind.value}[/bold red] {location}: {finding.message}")
            if with_snippets:
                console.print(Panel(self.snippet(report.candidate, finding), border_style="red", expand=False))

        for finding in report.warnings:
            console.print(f"[yellow]⚠ {finding.kind.value}[/yellow] {self._location(finding)}: {finding.message}")

        blocks = report.block_analysis
        console.print(
            f"[dim]Blocks: expected {blocks.expected_closers} 'end', found {blocks.found_closers}; "
            f"unclosed {len(blocks.unclosed)}, extra closers {len(blocks.extra_closer_lines)}[/dim]"
        )
        if report.fixed_text is not None:
            console.print(
                f"[bold cyan]🔧 Auto-fix available:[/bold cyan] appending "
                f"{blocks.missing_closers} 'end' makes the buffer valid (use --accept-fix)."
            )

    def show_history(self, entries: List[Dict[str, Any]], file_name: str):
        table = Table(title=f"Edit History: {file_name}", show_header=True, header_style="bold magenta")
        table.add_column("Step", justify="right")
        table.add_column("When")
        table.add_column("Operation")
        table.add_column("+/-/~", justify="center")
        table.add_column("Cost", justify="right")

        for step, entry in enumerate(entries, 1):
            when = datetime.fromtimestamp(entry["timestamp"]).strftime("%Y-%m-%d %H:%M:%S")
            operation = f"{entry['operation']} @{entry['line_start']}" if entry.get("operation") else "-"
            table.add_row(
                str(step), when, operation,
                f"{entry['additions']}/{entry['deletions']}/{entry['modifications']}",
                str(entry["size_cost"]),
            )
        console.print(table)

    def print_final_table(self, reports: List[Dict[str, Any]]):
        """Builds the summary table shown at the end of a check run."""
        table = Table(title="LuaGuard Check Report", show_lines=True, header_style="bold magenta")
        table.add_column("File Path", style="cyan")
        table.add_column("Status", style="bold")
        table.add_column("Errors", justify="right")
        table.add_column("Warnings", justify="right")
        table.add_column("Result", justify="center")

        for r in reports:
            success = r.get("success", False)
            status_color = "green" if success else "yellow" if r.get("fixable") else "red"
            result_icon = "✅" if success else "🔧" if r.get("fixable") else "❌"
            table.add_row(
                str(r.get("file_path")),
                f"[{status_color}]{r.get('status')}[/{status_color}]",
                str(r.get("error_count", "-")),
                str(r.get("warning_count", "-")),
                result_icon,
            )
        console.print(table)

    def print_summary(self, summary: Dict[str, Any]):
        console.print(Panel(
            f"[bold white]Summary Report[/bold white]\n"
            f"════════════════════════════════════════\n"
            f"Total Files:    {summary['total_files']}\n"
            f"Valid:          [green]{summary['valid']}[/green]\n"
            f"Invalid:        [red]{summary['invalid']}[/red]\n"
            f"Auto-fixable:   [cyan]{summary['fixable']}[/cyan]\n"
            f"System Errors:  [red]{summary['system_errors']}[/red]",
            border_style="dim"
        ))

    def _location(self, finding: Finding) -> str:
        location = f"line {finding.line}"
        if finding.column:
            location += f", col {finding.column}"
        if finding.related_line:
            location += f" (opened at line {finding.related_line}, col {finding.related_column})"
        return location
