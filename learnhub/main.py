"""LearnHub CLI entrypoint — ``python -m learnhub.main``."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from .errors import GenerationRequestError
from .llm_client import get_language_model
from .models.schemas import QUESTION_TYPES
from .observability.logging_setup import configure_logging
from .orchestration.workflow import build_default_workflow
from .util.console import (
    console,
    print_banner,
    print_diagnostics,
    print_quality_checks,
    print_questions,
    print_step,
)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="learnhub")
    parser.add_argument("--type", dest="question_type", choices=QUESTION_TYPES, default="addition")
    parser.add_argument("--grade", type=int, default=2)
    parser.add_argument("--difficulty", choices=["easy", "medium", "hard"], default="easy")
    parser.add_argument("--count", type=int, default=3)
    parser.add_argument("--offline", action="store_true", help="use templated questions, no model calls")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging()
    print_banner()

    language_model = None
    if not args.offline:
        language_model = get_language_model()
        if language_model is None:
            console.print("[yellow]No model configuration — switching to offline mode.[/yellow]")

    workflow = build_default_workflow(language_model)

    print_step("1/2", "Running generation pipeline")
    try:
        context = workflow.run(
            {
                "question_type": args.question_type,
                "grade": args.grade,
                "difficulty": args.difficulty,
                "count": args.count,
            }
        )
    except GenerationRequestError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        return 2

    print_questions(context)
    print_step("2/2", "Quality checks")
    print_quality_checks(context.quality_checks)
    print_diagnostics(context.workflow.errors, context.workflow.warnings)
    return 1 if context.workflow.errors else 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console.print("\n[dim]Cancelled.[/dim]")
        sys.exit(0)
