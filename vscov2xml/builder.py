"""build statistics trees from decoder records"""

from typing import Dict, List, Optional, Sequence

from .model import (
    BlockCoverage,
    CoverageReport,
    CoverageStatus,
    FileSpecList,
    MethodStatistics,
    ModuleStatistics,
    Statistics,
)
from .source import CoverageSource, DecoderError, LineKey, LineRange, ModuleRecord


def _block_status(coverage_buffer: bytes, block_index: int) -> CoverageStatus:
    if not 0 <= block_index < len(coverage_buffer):
        raise DecoderError(
            f"block index {block_index} outside coverage buffer "
            f"of {len(coverage_buffer)} bytes"
        )
    # any non-zero hit byte means the block executed
    if coverage_buffer[block_index] == 0:
        return CoverageStatus.NOT_COVERED
    return CoverageStatus.COVERED


def get_block_coverage_map(
    coverage_buffer: bytes, lines: Sequence[LineRange]
) -> Dict[LineKey, CoverageStatus]:
    """
    coverage status per source range

    a range covered by blocks that disagree is partially covered, and stays so
    whatever blocks follow. invalid ranges are ignored.
    """
    line_coverage: Dict[LineKey, CoverageStatus] = {}
    for line in lines:
        if not line.is_valid:
            continue

        block_status = _block_status(coverage_buffer, line.block_index)
        current = line_coverage.get(line.key)
        if current is None or current == block_status:
            line_coverage[line.key] = block_status
        else:
            line_coverage[line.key] = CoverageStatus.PARTIALLY_COVERED
    return line_coverage


def compute_method_statistics(
    coverage_buffer: bytes, lines: Sequence[LineRange]
) -> Statistics:
    """derive method counters for decoders that do not supply a summary"""
    block_indices = {line.block_index for line in lines if line.is_valid}
    blocks_covered = sum(
        1
        for index in block_indices
        if _block_status(coverage_buffer, index) == CoverageStatus.COVERED
    )

    line_statuses = list(get_block_coverage_map(coverage_buffer, lines).values())
    return Statistics(
        blocks_covered=blocks_covered,
        blocks_not_covered=len(block_indices) - blocks_covered,
        lines_covered=line_statuses.count(CoverageStatus.COVERED),
        lines_not_covered=line_statuses.count(CoverageStatus.NOT_COVERED),
        lines_partially_covered=line_statuses.count(CoverageStatus.PARTIALLY_COVERED),
    )


def create_block_coverages(
    coverage_buffer: bytes, lines: Sequence[LineRange], files: FileSpecList
) -> List[BlockCoverage]:
    """one block per valid range, in range order, files interned in the registry"""
    block_coverage_map = get_block_coverage_map(coverage_buffer, lines)

    blocks = []
    for line in lines:
        if not line.is_valid:
            continue
        blocks.append(
            BlockCoverage(
                file=files.get_or_add(line.source_file),
                line_start=line.start_line,
                line_end=line.end_line,
                column_start=line.start_column,
                column_end=line.end_column,
                coverage=block_coverage_map[line.key],
            )
        )
    return blocks


def add_module_statistics(
    report: CoverageReport, module: ModuleRecord
) -> ModuleStatistics:
    """add one decoded module and all of its methods to a report"""
    module_stats = ModuleStatistics(
        module.name, module.image_size, module.image_link_time, module.signature
    )
    report.add_module(module_stats)

    buffer = module.coverage_buffer
    for record in module.methods:
        namespace_stats = module_stats.get_or_add_namespace(record.namespace_name)
        class_stats = namespace_stats.get_or_add_class(record.class_name)

        statistics = record.statistics
        if statistics is None:
            statistics = compute_method_statistics(buffer, record.lines)

        method_stats = MethodStatistics(
            record.method_id, record.name, record.full_name, statistics
        )
        class_stats.add_method(method_stats)

        for block in create_block_coverages(buffer, record.lines, report.files):
            method_stats.add_block(block)

    return module_stats


def create_report(source: CoverageSource) -> CoverageReport:
    """consume every module of an open source into a new report"""
    if source is None:
        raise ValueError("coverage source is required")

    report = CoverageReport()
    for module in source.modules():
        add_module_statistics(report, module)
    return report


class ReportBuilder:
    """Builder pattern for fluently creating CoverageReport objects."""

    def __init__(self):
        self._report = CoverageReport()
        self._module: Optional[ModuleStatistics] = None
        self._method: Optional[MethodStatistics] = None

    def add_module(
        self,
        name: str,
        image_size: int = 0,
        image_link_time: int = 0,
        signature: Optional[str] = None,
    ) -> "ReportBuilder":
        """Adds a module; following methods are placed in it."""
        self._module = ModuleStatistics(name, image_size, image_link_time, signature)
        self._report.add_module(self._module)
        self._method = None
        return self

    def add_method(
        self,
        namespace: str,
        class_name: str,
        method_id: int,
        name: str,
        full_name: Optional[str] = None,
        statistics: Optional[Statistics] = None,
    ) -> "ReportBuilder":
        """Adds a method to the current module; following blocks go to it."""
        if self._module is None:
            raise ValueError("add_module must be called before add_method")

        class_stats = self._module.get_or_add_namespace(namespace).get_or_add_class(
            class_name
        )
        self._method = MethodStatistics(
            method_id,
            name,
            full_name or name,
            statistics if statistics is not None else Statistics(),
        )
        class_stats.add_method(self._method)
        return self

    def add_block(
        self,
        file_name: str,
        line_start: int,
        line_end: int,
        column_start: int,
        column_end: int,
        coverage: CoverageStatus = CoverageStatus.COVERED,
    ) -> "ReportBuilder":
        """Adds a line block to the current method."""
        if self._method is None:
            raise ValueError("add_method must be called before add_block")

        file = self._report.get_or_add_file(file_name)
        self._method.add_block(
            BlockCoverage(file, line_start, line_end, column_start, column_end, coverage)
        )
        return self

    def build(self) -> CoverageReport:
        """Returns the assembled report."""
        return self._report


def builder() -> ReportBuilder:
    """Returns a new ReportBuilder instance for creating reports."""
    return ReportBuilder()
