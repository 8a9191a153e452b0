"""Rich console helpers for CLI output."""

from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.context import WorkflowContext
from ..models.schemas import QualityChecks

console = Console()


def print_banner() -> None:
    console.print(
        Panel(
            "[bold cyan]LearnHub — Content Quality Pipeline[/bold cyan]\n"
            "[dim]Generate  •  Validate  •  Enhance[/dim]",
            border_style="bright_blue",
        )
    )


def print_step(step: str, description: str) -> None:
    console.print(f"\n[bold green]▶ {step}[/bold green]  {description}")


def print_questions(context: WorkflowContext) -> None:
    table = Table(title="Generated Questions", show_lines=True)
    table.add_column("#", style="bold")
    table.add_column("Question")
    table.add_column("Answer", justify="right")
    table.add_column("Enhanced", style="cyan")
    enhanced = context.enhanced_questions or []
    for i, q in enumerate(context.questions or [], 1):
        story = ""
        if i <= len(enhanced) and enhanced[i - 1].context_type != "none":
            story = enhanced[i - 1].enhanced_text
        table.add_row(str(i), q.text, f"{q.answer:g}", story or "—")
    console.print(table)


def _mark(ok: bool) -> str:
    return "✅" if ok else "❌"


def print_quality_checks(checks: Optional[QualityChecks]) -> None:
    if checks is None:
        console.print("  [yellow]No quality checks were produced.[/yellow]")
        return
    console.print(
        f"  Math {_mark(checks.mathematical_accuracy)}  "
        f"Age {_mark(checks.age_appropriateness)}  "
        f"Pedagogy {_mark(checks.pedagogical_soundness)}  "
        f"Diversity [bold]{checks.diversity_score:.2f}[/bold]"
    )
    for issue in checks.issues:
        console.print(f"    • {issue}")


def print_diagnostics(errors: List[str], warnings: List[str]) -> None:
    for err in errors:
        console.print(f"  [bold red]error:[/bold red] {err}")
    if not errors and not warnings:
        console.print("  [green]No workflow diagnostics.[/green]")
    elif warnings:
        console.print(f"  [yellow]{len(warnings)} warning(s) recorded.[/yellow]")
