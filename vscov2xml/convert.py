"""high-level conversion from coverage files to xml"""

from typing import Optional, Sequence

from .builder import create_report
from .model import CoverageReport
from .source import open_source
from .xmlreport import ReportOptions, save


def generate_report(
    coverage_file: str,
    executable_paths: Optional[Sequence[str]] = None,
    symbol_paths: Optional[Sequence[str]] = None,
) -> CoverageReport:
    """decode a coverage file into a report, the decoder is always released"""
    if not coverage_file:
        raise ValueError("coverage file must be a non-empty path")

    with open_source(coverage_file, executable_paths, symbol_paths) as source:
        return create_report(source)


def write_xml(
    coverage_file: str,
    output_file: str,
    executable_paths: Optional[Sequence[str]] = None,
    symbol_paths: Optional[Sequence[str]] = None,
    options: Optional[ReportOptions] = None,
) -> CoverageReport:
    """
    Converts a coverage file to the module/namespace/class/method xml report.

    Args:
        coverage_file: Path to the coverage file.
        output_file: Path of the xml file to write.
        executable_paths: Directories searched for binaries, defaults to the
            coverage file's directory.
        symbol_paths: Directories searched for symbols, same default.
        options: Output options.

    Returns:
        The report that was written.

    Raises:
        ValueError: If either path is empty.
        DecoderError: If the coverage file cannot be decoded.
        OSError: If the output cannot be written.
    """
    if not coverage_file:
        raise ValueError("coverage file must be a non-empty path")
    if not output_file:
        raise ValueError("output file must be a non-empty path")

    report = generate_report(coverage_file, executable_paths, symbol_paths)
    save(report, output_file, options)
    return report


def write_dataset_xml(
    coverage_file: str,
    output_file: str,
    executable_paths: Optional[Sequence[str]] = None,
    symbol_paths: Optional[Sequence[str]] = None,
) -> None:
    """write the decoder's own dataset xml instead of the report tree"""
    if not coverage_file:
        raise ValueError("coverage file must be a non-empty path")
    if not output_file:
        raise ValueError("output file must be a non-empty path")

    with open_source(coverage_file, executable_paths, symbol_paths) as source:
        source.write_dataset_xml(output_file)
