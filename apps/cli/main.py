"""CLI application for maintcost."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from maintcost.analyzer import analyze_package, analyze_project
from maintcost.config import Settings
from maintcost.exceptions import ManifestError
from maintcost.logging_setup import setup_logging
from maintcost.models import PackageAnalysis, ProjectSummary, RiskLevel
from maintcost.parse_node import read_package_json
from maintcost.reporting import save_results

console = Console()

RULE = "=" * 80
HEAVY_RULE = "═" * 80
MAX_HIGH_RISK_PACKAGES = 3

RISK_STYLES = {
    RiskLevel.LOW: "bold green",
    RiskLevel.MEDIUM: "bold yellow",
    RiskLevel.ELEVATED: "bold dark_orange",
    RiskLevel.HIGH: "bold red",
    RiskLevel.CRITICAL: "bold white on red",
}


def format_score(score: int) -> str:
    """Color a 0-100 score by band."""
    if score >= 80:
        style = "bold green"
    elif score >= 60:
        style = "bold yellow"
    elif score >= 40:
        style = "bold dark_orange"
    else:
        style = "bold red"
    return f"[{style}]{score}[/]"


def format_risk(risk: RiskLevel) -> str:
    return f"[{RISK_STYLES.get(risk, 'white')}]{risk.value}[/]"


def format_quick_summary(result: PackageAnalysis) -> str:
    """One-line summary for a package."""
    name = escape(result.name)
    if not result.found or result.score is None:
        return f"[grey50]{name}: Not found[/]"

    cves = result.cve_metrics.total_cves if result.cve_metrics else 0
    return f"{name}: {format_score(result.score.total_score)} {format_risk(result.score.risk_level)} ({cves} CVEs)"


def format_package_result(result: PackageAnalysis) -> str:
    """Detailed breakdown for a package."""
    if not result.found or result.score is None:
        return f"\n[grey50]❌ {escape(result.name)} - Not found or error[/]"

    score = result.score
    cve = result.cve_metrics
    maintenance = result.maintenance
    complexity = result.complexity
    parts = score.breakdown

    def weight(name: str) -> str:
        return f"{parts[name].weight * 100:g}%"

    lines = [
        "",
        RULE,
        f"[bold cyan]📦 {escape(result.name)}[/]",
        RULE,
        "",
        f"[bold]Overall Score:[/] {format_score(score.total_score)}/100",
        f"[bold]Risk Level:[/] {format_risk(score.risk_level)}",
        f"[bold]Est. Annual Maintenance:[/] ~{score.estimated_annual_maintenance_hours} hours/year",
        "",
        "[bold underline]Score Breakdown:[/]",
        "",
        "[yellow]📊 Historical Vulnerabilities (incl. transitive deps):[/]",
        f"   Score: {format_score(parts['historical_cves'].score)}/100 (Weight: {weight('historical_cves')})",
        f"   Total CVEs: {cve.total_cves}",
        f"   Avg CVEs/year: {cve.avg_cves_per_year}",
        f"   Critical/year: {cve.critical_cves_per_year}",
        f"   High/year: {cve.high_cves_per_year}",
    ]
    if cve.oldest_cve:
        lines.append(f"   Data range: {cve.oldest_cve} to {cve.newest_cve}")

    lines += [
        "",
        "[green]🔧 Maintenance Health:[/]",
        f"   Score: {format_score(maintenance.score)}/100 (Weight: {weight('maintenance_health')})",
        f"   Last release: {maintenance.last_release_date or 'Unknown'}",
        f"   Release frequency: {maintenance.release_frequency}",
        f"   Actively maintained: {'✅ Yes' if maintenance.actively_maintained else '❌ No'}",
        "",
        "[blue]🔗 Dependency Complexity:[/]",
        f"   Score: {format_score(complexity.score)}/100 (Weight: {weight('dependency_complexity')})",
        f"   Direct dependencies: {complexity.direct_dependencies}",
        f"   Total packages in tree: {result.tree.total_packages_in_tree}",
        f"   Transitive dependencies: {result.tree.indirect_count}",
        f"   Complexity level: {complexity.complexity_level}",
        "",
        "[magenta]⏱️  Technical Lag:[/]",
        f"   Score: {format_score(parts['technical_lag'].score)}/100 (Weight: {weight('technical_lag')})",
        f"   Days since last release: {maintenance.days_since_last_release or 'Unknown'}",
    ]
    if result.graph is not None and result.graph.used_fallback:
        lines.append(f"   [grey50]Dependency tree taken from version {result.graph.version}[/]")
    lines.append("")
    return "\n".join(lines)


def format_project_summary(summary: ProjectSummary | None, project_name: str) -> str:
    if summary is None:
        return "\n[yellow]⚠️  No valid packages to analyze[/]\n"

    lines = [
        "",
        HEAVY_RULE,
        f"[bold cyan underline]📊 PROJECT SUMMARY: {escape(project_name)}[/]",
        HEAVY_RULE,
        "",
        f"[bold]Overall Score:[/] {format_score(summary.average_score)}/100",
        f"[bold]Total Annual Maintenance Effort:[/] ~{summary.total_maintenance_hours} hours",
        f"[bold]Total Known CVEs:[/] {summary.total_cves}",
        f"[bold]Critical CVEs:[/] [red]{summary.total_critical_cves}[/]",
        "",
        "[bold underline]Risk Distribution:[/]",
    ]
    for level in RiskLevel:
        lines.append(f"   {format_risk(level)}: {summary.risk_distribution.get(level.value, 0)} packages")
    lines.append("")

    if summary.highest_risk_packages:
        lines.append("[bold underline]⚠️  Highest Risk Packages:[/]")
        for entry in summary.highest_risk_packages:
            lines.append(f"   {escape(entry.name)}: {format_score(entry.score)} - {format_risk(entry.risk)}")
        lines.append("")

    lines.append(HEAVY_RULE)
    return "\n".join(lines)


def risk_warning(summary: ProjectSummary | None) -> str | None:
    """Warning for a project that should fail the run, or None."""
    if summary is None:
        return None
    if summary.risk_distribution.get(RiskLevel.CRITICAL.value, 0) > 0:
        return "Critical risk packages detected!"
    if summary.risk_distribution.get(RiskLevel.HIGH.value, 0) > MAX_HIGH_RISK_PACKAGES:
        return "Multiple high-risk packages detected!"
    return None


app = typer.Typer(
    name="maintcost",
    help="maintcost - Predict maintenance cost and vulnerability risk of npm dependencies",
    add_completion=False,
)


@app.command()
def analyze(
    path: str = typer.Option("package.json", "--path", "-p", help="Path to package.json"),
    output: str | None = typer.Option(None, "--output", "-o", help="Output file for JSON results"),
    dev: bool = typer.Option(False, "--dev", "-d", help="Include devDependencies"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed results for each package"),
    concurrency: int | None = typer.Option(None, "--concurrency", "-c", help="Max concurrent API requests"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
    log_file: str | None = typer.Option(None, "--log-file", help="Also write logs to this file"),
) -> None:
    """Analyze the dependencies declared in a package.json."""
    setup_logging(log_level, log_file)

    try:
        settings = Settings.from_env(max_concurrency=concurrency, include_dev=dev)
        manifest_path = Path(path).resolve()

        console.print("\n[bold cyan]🔍 maintcost[/]\n")
        console.print(f"[grey50]Analyzing: {escape(str(manifest_path))}[/]\n")

        manifest = read_package_json(manifest_path, include_dev=settings.include_dev)
        report = asyncio.run(analyze_project(manifest, settings))

        if verbose:
            for package in report.packages:
                console.print(format_package_result(package))
        else:
            console.print("\n[bold]📦 Package Scores:[/]\n")
            for package in report.packages:
                console.print("  " + format_quick_summary(package))

        console.print(format_project_summary(report.summary, report.project_name))

        if output:
            written = save_results(report, Path(output).resolve())
            console.print(f"[green]Results saved to {escape(str(written))}[/]")

        warning = risk_warning(report.summary)
        if warning:
            console.print(f"\n[bold red]⚠️  WARNING: {warning}[/]\n")
            raise typer.Exit(1)

        console.print("\n[bold green]✅ Analysis complete![/]\n")

    except typer.Exit:
        raise
    except ManifestError as e:
        console.print(f"Error: {e.message}", style="red")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)


@app.command()
def check(
    package: str = typer.Argument(help="Package name to analyze"),
    version: str | None = typer.Option(None, "--version", "-v", help="Version or range to check"),
    shallow: bool = typer.Option(False, "--shallow", "-s", help="Only analyze the package itself, not its dependencies"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """Check a single package."""
    setup_logging(log_level)

    try:
        console.print("\n[bold cyan]🔍 maintcost - Single Package Check[/]\n")
        result = asyncio.run(analyze_package(package, version, Settings.from_env(), shallow=shallow))
        console.print(format_package_result(result))

        if not result.found or result.score is None:
            console.print("\n[red]❌ Package not found or error occurred[/]\n")
            raise typer.Exit(1)

        if result.score.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            console.print("\n[bold red]⚠️  WARNING: High-risk package detected![/]\n")
            raise typer.Exit(1)

        console.print("\n[bold green]✅ Analysis complete![/]\n")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
