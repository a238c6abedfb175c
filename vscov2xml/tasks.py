"""batch conversion of several coverage files, as run from build scripts"""

import dataclasses
import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import typer

from .convert import write_dataset_xml, write_xml


@dataclasses.dataclass
class ConversionResult:
    """outcome of a batch conversion"""

    converted: List[Path] = dataclasses.field(default_factory=list)
    skipped: List[Path] = dataclasses.field(default_factory=list)
    errors: List[Tuple[Path, Exception]] = dataclasses.field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


def get_output_file(coverage_file: Path, output_directory: Optional[Path] = None) -> Path:
    """coverage file with an .xml extension, optionally moved to another directory"""
    result = coverage_file.with_suffix(".xml")
    if output_directory is not None:
        result = output_directory / result.name
    return result


def get_symbols_directory(
    coverage_file: Path, symbols_directory: Optional[Path] = None
) -> Path:
    if symbols_directory is not None:
        return symbols_directory
    return coverage_file.parent


def convert_coverage_files(
    coverage_files: Sequence[Path],
    symbols_directory: Optional[Path] = None,
    output_directory: Optional[Path] = None,
    use_dataset_format: bool = False,
) -> ConversionResult:
    """convert every existing file, reporting failures instead of raising"""
    result = ConversionResult()

    for coverage_file in coverage_files:
        coverage_file = Path(coverage_file)
        if not coverage_file.exists():
            typer.echo(f"skipping non-existent file {coverage_file}")
            result.skipped.append(coverage_file)
            continue

        try:
            typer.echo(f"converting coverage file {coverage_file}")
            output_file = get_output_file(coverage_file, output_directory)
            search_dir = os.fspath(get_symbols_directory(coverage_file, symbols_directory))

            if use_dataset_format:
                write_dataset_xml(
                    str(coverage_file), str(output_file), [search_dir], [search_dir]
                )
            else:
                write_xml(str(coverage_file), str(output_file), [search_dir], [search_dir])

            result.converted.append(output_file)
            typer.echo(f"wrote xml coverage file {output_file}")
        except Exception as e:
            typer.echo(f"error converting {coverage_file}: {e}", err=True)
            result.errors.append((coverage_file, e))

    return result
