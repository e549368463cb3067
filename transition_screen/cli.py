#!/usr/bin/env python3
"""Transition Screen - assess a financing project for greenwashing and DNSH risk.

Runs the rule detector, the AI dimension rubrics and the safeguard screen,
then prints the combined result.

Usage:
    transition-screen assess project.json                          # Mode from SCORING_MODE (default hybrid)
    transition-screen assess project.json --document proposal.txt  # Evaluate document text with AI
    transition-screen assess project.json --mode rule              # Rules only, no provider calls
    transition-screen assess project.json --output /tmp/result.json
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from transition_screen.config import load_config, parse_scoring_mode
from transition_screen.engine import AssessmentEngine
from transition_screen.schemas.assessment import CombinedAssessment
from transition_screen.schemas.project import ProjectInput
from transition_screen.utils.logger import configure_global_logging

console = Console()
# Status lines go to stderr so --json output stays parseable
status_console = Console(stderr=True)
logger = logging.getLogger(__name__)

RISK_COLORS = {"low": "green", "medium": "yellow", "high": "red"}
SAFEGUARD_COLORS = {"compliant": "green", "partial": "yellow", "non_compliant": "red"}


def load_project(path: Path) -> ProjectInput:
    """Load and validate a project JSON file.

    Raises:
        ValueError: If the file is not valid JSON or fails validation
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e}") from e
    try:
        return ProjectInput.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"{path} is not a valid project: {e}") from e


def display_result(result: CombinedAssessment, verbose: bool = False) -> None:
    """Display the combined assessment in a nice format."""
    console.print()

    color = RISK_COLORS[result.risk_level.value]
    summary = (
        f"Risk level: [{color}]{result.risk_level.value.upper()}[/{color}]\n"
        f"Combined penalty: {result.combined_penalty}/20\n"
        f"Mode: {result.effective_mode.value} (configured: {result.configured_mode.value})\n"
        f"AI evaluation used: {'yes' if result.ai_evaluation_used else 'no'}\n"
        f"Rule risk score: {result.rule_risk_score}/100"
    )
    if result.ai_result is not None:
        summary += f"\n{escape(result.ai_result.summary)}"
    console.print(Panel(summary, title="Greenwashing Risk", border_style="blue"))

    if result.rule_flags:
        table = Table(title="Red Flags")
        table.add_column("Flag", style="cyan")
        table.add_column("Severity", justify="center")
        table.add_column("Category")
        table.add_column("Description")
        for flag in result.rule_flags:
            sev_color = RISK_COLORS[flag.severity.value]
            table.add_row(
                flag.id,
                f"[{sev_color}]{flag.severity.value}[/{sev_color}]",
                flag.category.value,
                escape(flag.description),
            )
        console.print(table)

    if verbose and result.ai_result is not None and result.ai_result.components:
        table = Table(title="AI Dimensions")
        table.add_column("Dimension", style="cyan")
        table.add_column("Score", justify="right")
        table.add_column("Confidence", justify="right")
        table.add_column("Assessment")
        for component in result.ai_result.components:
            table.add_row(
                component.component_name,
                f"{component.score}/25",
                f"{component.confidence}%",
                escape(component.assessment),
            )
        console.print(table)

    safeguard = result.safeguard_assessment
    if safeguard is not None:
        sg_color = SAFEGUARD_COLORS[safeguard.overall_status.value]
        body = (
            f"Status: [{sg_color}]{safeguard.overall_status.value}[/{sg_color}] "
            f"({safeguard.normalized_score}/100, source: {safeguard.source})\n"
            f"{escape(safeguard.summary)}"
        )
        if safeguard.is_fundamentally_incompatible and safeguard.incompatibility_reason:
            body += f"\n[red]{escape(safeguard.incompatibility_reason)}[/red]"
        console.print(Panel(body, title="Safeguard (DNSH)", border_style="magenta"))

        if verbose:
            table = Table(title="Safeguard Objectives")
            table.add_column("Objective", style="cyan")
            table.add_column("Status")
            table.add_column("Score", justify="right")
            table.add_column("Evidence")
            for criterion in safeguard.criteria:
                table.add_row(
                    criterion.objective_name,
                    criterion.status.value,
                    f"{criterion.score}/{criterion.max_score}",
                    escape(criterion.evidence),
                )
            console.print(table)

    if result.recommendations:
        console.print("\n[bold]Recommendations[/bold]")
        for rec in result.recommendations:
            console.print(f"  • {escape(rec)}")

    if result.positive_indicators:
        console.print("\n[bold]Positive indicators[/bold]")
        for indicator in result.positive_indicators:
            console.print(f"  [green]✓[/green] {escape(indicator)}")


def cmd_assess(args: argparse.Namespace) -> int:
    try:
        project = load_project(args.project)
    except (OSError, ValueError) as e:
        status_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 2

    document: Optional[str] = None
    if args.document:
        try:
            document = args.document.read_text(encoding="utf-8")
        except OSError as e:
            status_console.print(f"[red]Error:[/red] cannot read document: {escape(str(e))}")
            return 2

    try:
        config = load_config()
        if args.mode:
            config = dataclasses.replace(config, scoring_mode=parse_scoring_mode(args.mode))
    except ValueError as e:
        status_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        return 2

    if config.providers:
        status_console.print(f"Providers: {' -> '.join(config.provider_names)}")
    else:
        status_console.print("[yellow]No provider API keys configured - AI evaluation unavailable[/yellow]")

    logger.info(f"Assessing '{project.project_name}' ({project.sector.value}) in {config.scoring_mode.value} mode")
    engine = AssessmentEngine(config)
    result = engine.assess(project, document)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        display_result(result, verbose=args.verbose)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(json.dumps(result.to_dict(), indent=2))
        status_console.print(f"\nResult saved to: {args.output}")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transition-screen",
        description="Screen financing projects for greenwashing and environmental harm",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    assess = subparsers.add_parser("assess", help="Assess one project JSON file")
    assess.add_argument("project", type=Path, help="Project JSON file")
    assess.add_argument("--document", type=Path, help="Plain-text project document to evaluate")
    assess.add_argument(
        "--mode",
        choices=["rule", "ai", "hybrid"],
        help="Scoring mode (default: SCORING_MODE env var, else hybrid)",
    )
    assess.add_argument("--output", type=Path, help="Save result to JSON file")
    assess.add_argument("--json", action="store_true", help="Print the result as JSON instead of tables")
    assess.add_argument("--verbose", "-v", action="store_true", help="Show per-dimension and per-objective detail")
    assess.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )
    assess.add_argument("--log-file", type=Path, help="Also write DEBUG logs to this file")
    assess.set_defaults(func=cmd_assess)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_global_logging(args.log_level, log_file=args.log_file)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
