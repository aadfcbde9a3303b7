"""
Command-Line Interface for FIOpt.

Purpose
-------
Runs the baseline plan, the scenario optimizer and the minimum-investment
search from the shell, reading inputs from a JSON file or options.

Commands
--------
- plan: Yearly breakdown of the current plan and its FI age
- optimize: Improving scenarios and the recommended one
- min-investment: Smallest monthly investment for a target FI age
- config show: Effective assumptions, optimizer and advisory settings
- info: Version and dependency information

Example Usage
-------------
    # Baseline plan from options
    $ fiopt plan --age 30 --expense 50000 --investment 50000

    # Optimize from an inputs file, local scoring only, save a report
    $ fiopt optimize --input inputs.json --no-advisor --output report.json

    # Show version
    $ fiopt --version
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import AppSettings, AssumptionsConfig, OptimizerConfig
from .exceptions import FIOptError
from .inputs import PlanningInputs
from .utils import format_inr

logger = logging.getLogger(__name__)

HEALTH_CHOICES = ["needs_improvement", "generally_healthy", "very_healthy"]


def _configure_logging(settings: AppSettings, verbose: bool, quiet: bool) -> None:
    if verbose or settings.debug:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = getattr(logging, settings.log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def input_options(func):
    """Shared options describing PlanningInputs."""
    options = [
        click.option("--input", "-i", "input_file",
                     type=click.Path(exists=True, path_type=Path), default=None,
                     help="Planning inputs file (JSON)"),
        click.option("--age", type=int, default=None, help="Current age"),
        click.option("--expense", type=float, default=None, help="Monthly expense today"),
        click.option("--investment", type=float, default=None, help="Current monthly investment"),
        click.option("--health", type=click.Choice(HEALTH_CHOICES), default="generally_healthy",
                     help="Health status (sets max age 70/80/90)"),
        click.option("--fixed-income", type=float, default=0.0,
                     help="Existing fixed-income corpus (default: 0)"),
        click.option("--growth", type=float, default=0.0,
                     help="Existing growth-asset corpus (default: 0)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _resolve_inputs(
    input_file: Optional[Path],
    age: Optional[int],
    expense: Optional[float],
    investment: Optional[float],
    health: str,
    fixed_income: float,
    growth: float,
) -> PlanningInputs:
    from .serialization import inputs_from_dict, load_inputs

    try:
        if input_file is not None:
            return load_inputs(input_file)
        if age is None or expense is None or investment is None:
            click.echo("Error: provide --input or all of --age, --expense, --investment", err=True)
            sys.exit(1)
        return inputs_from_dict({
            "current_age": age,
            "monthly_expense": expense,
            "monthly_investment": investment,
            "health_status": health,
            "existing_fixed_income_corpus": fixed_income,
            "existing_growth_corpus": growth,
        })
    except (FIOptError, ValueError, OSError) as e:
        click.echo(f"Error loading inputs: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="fiopt")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, quiet: bool, verbose: bool) -> None:
    """
    FIOpt - Financial Independence Projection and Optimization.

    Projects when your investments can sustain your lifestyle until end of
    life, and which savings changes bring that age forward.

    Use 'fiopt COMMAND --help' for command-specific help.
    """
    settings = AppSettings()
    _configure_logging(settings, verbose, quiet)

    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["settings"] = settings
    ctx.obj["console"] = Console()


# ---------------------------------------------------------------------------
# plan
# ---------------------------------------------------------------------------

@main.command()
@input_options
@click.option("--format", "-f", "fmt", type=click.Choice(["table", "json"]), default="table")
@click.option("--every", type=int, default=1, help="Show every N-th age in the table (default: 1)")
@click.pass_context
def plan(
    ctx: click.Context,
    input_file: Optional[Path],
    age: Optional[int],
    expense: Optional[float],
    investment: Optional[float],
    health: str,
    fixed_income: float,
    growth: float,
    fmt: str,
    every: int,
) -> None:
    """
    Show the baseline plan.

    Example:
        fiopt plan --age 30 --expense 50000 --investment 50000 --every 5
    """
    console = ctx.obj["console"]
    quiet = ctx.obj["quiet"]

    from .planner import FinancialIndependencePlanner

    inputs = _resolve_inputs(input_file, age, expense, investment, health, fixed_income, growth)
    result = FinancialIndependencePlanner().plan(inputs)

    if fmt == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    click.echo(result.message)
    if quiet or not result.yearly_breakdown:
        return

    table = Table(title="Current Plan", show_header=True)
    table.add_column("Age", style="cyan", justify="right")
    table.add_column("Corpus", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Target Withdrawal", justify="right")
    table.add_column("Years in FI", justify="right")
    table.add_column("Final Corpus %", justify="right")
    table.add_column("Sustainable", justify="center")

    step = max(1, every)
    for row in result.yearly_breakdown[::step]:
        table.add_row(
            str(row.age),
            format_inr(row.corpus),
            f"{row.accumulation_rate*100:.0f}%",
            format_inr(row.target_withdrawal),
            str(row.years_in_fi),
            f"{row.final_corpus_percentage:.1f}%",
            "[green]yes[/green]" if row.sustainable else "[red]no[/red]",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# optimize
# ---------------------------------------------------------------------------

@main.command()
@input_options
@click.option("--no-advisor", is_flag=True, help="Use local scoring only")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None,
              help="Write the full report (JSON)")
@click.option("--format", "-f", "fmt", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def optimize(
    ctx: click.Context,
    input_file: Optional[Path],
    age: Optional[int],
    expense: Optional[float],
    investment: Optional[float],
    health: str,
    fixed_income: float,
    growth: float,
    no_advisor: bool,
    output: Optional[Path],
    fmt: str,
) -> None:
    """
    Find savings changes that bring the FI age forward.

    Example:
        fiopt optimize -i inputs.json --no-advisor -o report.json
    """
    console = ctx.obj["console"]
    quiet = ctx.obj["quiet"]
    settings = ctx.obj["settings"]

    from .advisory import AdvisoryChain
    from .host import ConcurrencyHost
    from .planner import FinancialIndependencePlanner
    from .serialization import report_to_dict, save_report

    inputs = _resolve_inputs(input_file, age, expense, investment, health, fixed_income, growth)

    advisor = None
    if not no_advisor:
        advisor = AdvisoryChain.from_config(
            settings.advisory_config(), openrouter_api_key=settings.openrouter_api_key
        )
    planner = FinancialIndependencePlanner(advisor=advisor)
    with ConcurrencyHost(planner.make_optimizer, timeout=settings.worker_timeout) as host:
        report = planner.run(inputs, host=host)
    result = report.optimization

    if output:
        save_report(report, output)
        if not quiet:
            click.echo(f"Report saved to {output}")

    if fmt == "json":
        click.echo(json.dumps(report_to_dict(report), indent=2, ensure_ascii=False))
        return

    click.echo(report.plan.message)
    if result.skip_optimization:
        click.echo(result.skip_reason)
        return
    if result.error:
        click.echo(result.error)
        return

    recommended = result.recommended_solution
    if not quiet:
        table = Table(title="Improvement Options", show_header=True)
        table.add_column("", justify="center")
        table.add_column("FI Age", style="cyan", justify="right")
        table.add_column("Step-up", justify="right")
        table.add_column("SIP Increase", justify="right")
        table.add_column("Monthly SIP", justify="right")
        table.add_column("Years Earlier", justify="right")
        for solution in result.solutions:
            table.add_row(
                "*" if solution == recommended else "",
                str(solution.fi_age),
                f"{solution.step_up_percent:g}%",
                f"{solution.sip_increase_percent:g}%",
                format_inr(solution.new_monthly_sip),
                str(solution.improvement_years),
            )
        console.print(table)

    recommendation = result.recommendation
    lines = [
        f"FI at age {recommended.fi_age} with {recommended.step_up_percent:g}% step-up "
        f"and {recommended.sip_increase_percent:g}% SIP increase",
        recommendation.explanation,
        f"Difficulty: {recommendation.difficulty.value}",
    ]
    lines.extend(f"- {alt}" for alt in recommendation.alternatives)
    if quiet:
        click.echo(lines[0])
    else:
        console.print(Panel("\n".join(lines), title=f"Recommendation ({result.recommendation_source})",
                            border_style="green"))


# ---------------------------------------------------------------------------
# min-investment
# ---------------------------------------------------------------------------

@main.command("min-investment")
@input_options
@click.option("--target-age", "-t", type=int, default=60, help="Target FI age (default: 60)")
@click.pass_context
def min_investment(
    ctx: click.Context,
    input_file: Optional[Path],
    age: Optional[int],
    expense: Optional[float],
    investment: Optional[float],
    health: str,
    fixed_income: float,
    growth: float,
    target_age: int,
) -> None:
    """
    Smallest monthly investment that makes a target FI age sustainable.

    Example:
        fiopt min-investment --age 30 --expense 50000 --investment 1 -t 50
    """
    from .solver import minimum_investment_for_fi

    inputs = _resolve_inputs(input_file, age, expense, investment, health, fixed_income, growth)
    result = minimum_investment_for_fi(inputs, target_fi_age=target_age)
    if result is None:
        click.echo(
            f"Error: target age {target_age} must be after age {inputs.current_age} "
            f"and before max age {inputs.max_age}",
            err=True,
        )
        sys.exit(1)

    click.echo(f"Minimum monthly investment for FI at {target_age}: "
               f"{format_inr(result.minimum_investment)}")
    if not ctx.obj["quiet"]:
        click.echo(f"Required corpus at {target_age}: {format_inr(result.required_corpus)}")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------

@main.group()
def config() -> None:
    """
    Configuration commands.

    Display the assumptions and settings a run would use.
    """
    pass


@config.command("show")
@click.option("--format", "-f", "fmt", type=click.Choice(["json", "table"]), default="table")
@click.pass_context
def config_show(ctx: click.Context, fmt: str) -> None:
    """
    Display effective configuration.

    Example:
        fiopt config show --format json
    """
    console = ctx.obj["console"]
    settings = ctx.obj["settings"]

    data = {
        "assumptions": AssumptionsConfig().model_dump(),
        "optimizer": OptimizerConfig().model_dump(),
        "advisory": settings.advisory_config().model_dump(),
        "settings": settings.model_dump(exclude={"openrouter_api_key"}),
    }
    data["settings"]["openrouter_api_key_set"] = bool(settings.openrouter_api_key)

    if fmt == "json":
        click.echo(json.dumps(data, indent=2, default=str))
        return

    for section, values in data.items():
        table = Table(title=section.capitalize(), show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", justify="right")
        for key, value in values.items():
            table.add_row(key, str(value))
        console.print(table)


# ---------------------------------------------------------------------------
# info
# ---------------------------------------------------------------------------

@main.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """
    Display system and package information.

    Shows version numbers and installed dependencies.
    """
    console = ctx.obj["console"]

    info_lines = [
        f"FIOpt Version: {__version__}",
        f"Python: {sys.version.split()[0]}",
    ]

    dependencies = {
        "numpy": "numpy",
        "pandas": "pandas",
        "pydantic": "pydantic",
        "requests": "requests",
        "rich": "rich",
        "click": "click",
    }

    for name, module in dependencies.items():
        try:
            mod = __import__(module)
            version = getattr(mod, "__version__", "installed")
            info_lines.append(f"{name}: {version}")
        except ImportError:
            info_lines.append(f"{name}: not installed")

    if ctx.obj["quiet"]:
        for line in info_lines:
            click.echo(line)
    else:
        console.print(Panel("\n".join(info_lines), title="System Information"))


if __name__ == "__main__":
    main()
