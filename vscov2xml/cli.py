"""command line interface for vscov2xml"""

from typing import List, Optional
from pathlib import Path

import typer

from .analysis import DEPTH_MODULE, print_report_summary, print_report_summary_json
from .convert import generate_report, write_dataset_xml, write_xml
from .source import split_search_paths
from .tasks import convert_coverage_files
from .xmlreport import DEFAULT_ROOT_NAME, ReportOptions


app = typer.Typer(
    help="convert visual studio coverage files to xml reports",
    no_args_is_help=True,
    context_settings=dict(help_option_names=["-h", "--help"]),
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

# global state for verbose option
verbose_enabled = False


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="enable verbose output for all operations"
    ),
):
    """global options for vscov2xml"""
    global verbose_enabled
    verbose_enabled = verbose


def _print_paths(name: str, paths: List[str]):
    if not paths:
        typer.echo(f"{name}: /")
        return
    typer.echo(f"{name}:")
    for path in paths:
        typer.echo(f"\t{path}")


def _report_error(message: str, e: Exception):
    typer.echo(f"error: {message}: {e}", err=True)
    if verbose_enabled:
        import traceback

        traceback.print_exc()


@app.command()
def convert(
    input_file: Path = typer.Argument(..., help="coverage file to convert"),
    output: Path = typer.Option(..., "--output", "-o", help="xml output file"),
    executables: Optional[str] = typer.Option(
        None, "--executables", "-x", help="semicolon-delimited executable paths"
    ),
    symbols: Optional[str] = typer.Option(
        None, "--symbols", "-s", help="semicolon-delimited symbol paths"
    ),
    dataset: bool = typer.Option(
        False, "--dataset", help="write the decoder's own dataset xml"
    ),
    root_name: str = typer.Option(
        DEFAULT_ROOT_NAME, "--root-name", help="name of the xml root element"
    ),
    indent: bool = typer.Option(True, "--indent/--no-indent", help="indent xml output"),
):
    """convert a coverage file to xml"""
    executable_paths = split_search_paths(executables)
    symbol_paths = split_search_paths(symbols)

    typer.echo(f"generating coverage report from {input_file} ...")
    _print_paths("symbols", symbol_paths)
    _print_paths("executables", executable_paths)

    try:
        typer.echo(f"generating xml at {output} ...")
        if dataset:
            write_dataset_xml(str(input_file), str(output), executable_paths, symbol_paths)
        else:
            report = write_xml(
                str(input_file),
                str(output),
                executable_paths,
                symbol_paths,
                ReportOptions(root_name=root_name, indent=indent),
            )
            if verbose_enabled:
                typer.echo(
                    f"wrote {len(report.modules)} modules, {len(report.files)} source files"
                )
        typer.echo("done")
    except Exception as e:
        _report_error(f"converting {input_file}", e)
        raise typer.Exit(1)


@app.command()
def batch(
    files: List[Path] = typer.Argument(..., help="coverage files to convert"),
    symbols_dir: Optional[Path] = typer.Option(
        None,
        "--symbols-dir",
        "-s",
        help="symbol and executable directory (defaults to each file's directory)",
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="directory for the xml files"
    ),
    dataset: bool = typer.Option(
        False, "--dataset", help="write the decoder's own dataset xml"
    ),
):
    """convert several coverage files next to the originals or into a directory"""
    result = convert_coverage_files(files, symbols_dir, output_dir, dataset)

    typer.echo(
        f"converted {len(result.converted)} of {len(files)} files"
        f" ({len(result.skipped)} skipped, {len(result.errors)} failed)"
    )
    if not result.succeeded:
        raise typer.Exit(1)


@app.command()
def summary(
    input_file: Path = typer.Argument(..., help="coverage file to summarize"),
    executables: Optional[str] = typer.Option(
        None, "--executables", "-x", help="semicolon-delimited executable paths"
    ),
    symbols: Optional[str] = typer.Option(
        None, "--symbols", "-s", help="semicolon-delimited symbol paths"
    ),
    depth: str = typer.Option(
        DEPTH_MODULE, "--depth", "-d", help="module, namespace or class"
    ),
    json_output: bool = typer.Option(False, "--json", help="output summary as JSON"),
):
    """display coverage counters for a coverage file"""
    try:
        report = generate_report(
            str(input_file), split_search_paths(executables), split_search_paths(symbols)
        )
        if json_output:
            print_report_summary_json(report, input_file.name, depth)
        else:
            print_report_summary(report, input_file.name, depth)
    except Exception as e:
        _report_error(f"analyzing {input_file}", e)
        raise typer.Exit(1)


def main():
    """entry point for console script"""
    app()


if __name__ == "__main__":
    main()
