"""vscov2xml - convert visual studio coverage files to xml reports"""

from .model import (
    CoverageReport,
    CoverageReportError,
    CoverageStatistics,
    CoverageStatus,
    Statistics,
    FileSpec,
    FileSpecList,
    BlockCoverage,
    MethodStatistics,
    ClassStatistics,
    NamespaceStatistics,
    ModuleStatistics,
)
from .source import (
    CoverageSource,
    JsonCoverageSource,
    LineRange,
    MethodRecord,
    ModuleRecord,
    DecoderError,
    DatasetNotSupportedError,
    open_source,
)
from .builder import builder, ReportBuilder, create_report
from .xmlreport import ReportOptions
from .convert import generate_report, write_xml, write_dataset_xml

__all__ = [
    "CoverageReport",
    "CoverageReportError",
    "CoverageStatistics",
    "CoverageStatus",
    "Statistics",
    "FileSpec",
    "FileSpecList",
    "BlockCoverage",
    "MethodStatistics",
    "ClassStatistics",
    "NamespaceStatistics",
    "ModuleStatistics",
    "CoverageSource",
    "JsonCoverageSource",
    "LineRange",
    "MethodRecord",
    "ModuleRecord",
    "DecoderError",
    "DatasetNotSupportedError",
    "open_source",
    "builder",
    "ReportBuilder",
    "create_report",
    "ReportOptions",
    "generate_report",
    "write_xml",
    "write_dataset_xml",
]
