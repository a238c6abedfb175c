"""terminal summaries of coverage reports"""

import json
from typing import Any, Dict, List

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .model import CoverageReport, CoverageStatistics

DEPTH_MODULE = "module"
DEPTH_NAMESPACE = "namespace"
DEPTH_CLASS = "class"
DEPTHS = (DEPTH_MODULE, DEPTH_NAMESPACE, DEPTH_CLASS)

# indentation per tree level in the summary table
LEVEL_INDENT = "  "


def coverage_percentage(covered: int, not_covered: int) -> float:
    """covered share in percent, 0.0 when nothing was instrumented"""
    total = covered + not_covered
    if total == 0:
        return 0.0
    return covered * 100.0 / total


def _row(kind: str, name: str, level: int, stats: CoverageStatistics) -> Dict[str, Any]:
    lines_total_covered = stats.lines_covered + stats.lines_partially_covered
    return {
        "kind": kind,
        "name": name,
        "level": level,
        "blocks_covered": stats.blocks_covered,
        "blocks_not_covered": stats.blocks_not_covered,
        "lines_covered": stats.lines_covered,
        "lines_not_covered": stats.lines_not_covered,
        "lines_partially_covered": stats.lines_partially_covered,
        "block_coverage": round(
            coverage_percentage(stats.blocks_covered, stats.blocks_not_covered), 1
        ),
        # partially covered lines count as touched
        "line_coverage": round(
            coverage_percentage(lines_total_covered, stats.lines_not_covered), 1
        ),
    }


def _generate_summary_data(
    report: CoverageReport, name: str, depth: str = DEPTH_MODULE
) -> Dict[str, Any]:
    """flatten the report into rows down to the requested depth"""
    if depth not in DEPTHS:
        raise ValueError(f"depth must be one of {', '.join(DEPTHS)}, got {depth!r}")

    rows: List[Dict[str, Any]] = []
    for module in report.modules:
        rows.append(_row(DEPTH_MODULE, module.name, 0, module))
        if depth == DEPTH_MODULE:
            continue
        for ns in module.namespaces:
            rows.append(_row(DEPTH_NAMESPACE, ns.name, 1, ns))
            if depth == DEPTH_NAMESPACE:
                continue
            for cls in ns.classes:
                rows.append(_row(DEPTH_CLASS, cls.name, 2, cls))

    return {
        "filename": name,
        "modules": len(report.modules),
        "files": len(report.files),
        "total": _row("report", name, 0, report),
        "rows": rows,
    }


def print_report_summary(report: CoverageReport, name: str, depth: str = DEPTH_MODULE):
    """display coverage counters per module, namespace or class using Rich"""
    console = Console()
    data = _generate_summary_data(report, name, depth)

    title = f"[bold cyan]Coverage Report[/bold cyan]\n[dim]{name}[/dim]"
    console.print(Panel(title, expand=False))
    console.print()

    table = Table(title="[bold]Coverage by " + depth + "[/bold]")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Blocks", justify="right", style="yellow")
    table.add_column("Missed", justify="right", style="yellow")
    table.add_column("Block %", justify="right", style="green")
    table.add_column("Lines", justify="right", style="yellow")
    table.add_column("Partial", justify="right", style="yellow")
    table.add_column("Missed", justify="right", style="yellow")
    table.add_column("Line %", justify="right", style="green")

    for row in data["rows"] + [data["total"]]:
        label = LEVEL_INDENT * row["level"] + row["name"]
        if row["kind"] == "report":
            label = "[bold]total[/bold]"
        table.add_row(
            label,
            f"{row['blocks_covered']:,}",
            f"{row['blocks_not_covered']:,}",
            f"{row['block_coverage']:.1f}%",
            f"{row['lines_covered']:,}",
            f"{row['lines_partially_covered']:,}",
            f"{row['lines_not_covered']:,}",
            f"{row['line_coverage']:.1f}%",
        )

    console.print(table)
    console.print()
    typer.echo(f"{data['modules']} modules, {data['files']} source files")


def print_report_summary_json(report: CoverageReport, name: str, depth: str = DEPTH_MODULE):
    """output the summary rows as JSON"""
    data = _generate_summary_data(report, name, depth)
    print(json.dumps(data, indent=2))
