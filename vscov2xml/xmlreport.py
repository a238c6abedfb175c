"""xml serialization of coverage reports

every node writes its fields as child elements in a fixed order, collections
are nested in insertion order and blocks reference files by id:

    <Coverage>
      <Module> ... <Namespaces><Namespace> ... <Classes><Class> ...
        <Methods><Method> ... <Lines><Line>...</Line></Lines>
      <File><FileID/><FileName/></File>
    </Coverage>
"""

import dataclasses
import re
import xml.etree.ElementTree as ET
from typing import Iterable, Optional

from .model import (
    BlockCoverage,
    ClassStatistics,
    CoverageReport,
    CoverageStatistics,
    FileSpec,
    MethodStatistics,
    ModuleStatistics,
    NamespaceStatistics,
)

DEFAULT_ROOT_NAME = "Coverage"

# characters xml 1.0 cannot represent, even escaped
_ILLEGAL_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

_INDENT = "  "


@dataclasses.dataclass
class ReportOptions:
    """options controlling the xml output"""

    root_name: str = DEFAULT_ROOT_NAME
    indent: bool = True


def format_link_time(module: ModuleStatistics) -> str:
    """iso-8601 timestamp with a Z suffix, e.g. 1969-12-31T16:00:04Z"""
    return module.image_link_time.isoformat().replace("+00:00", "Z")


class _Writer:
    @staticmethod
    def write_report(report: CoverageReport, root_name: str) -> ET.Element:
        if not root_name:
            raise ValueError("root element name must be a non-empty string")

        root = ET.Element(root_name)
        for module in report.modules:
            _Writer.write_module(ET.SubElement(root, "Module"), module)
        for file in report.files:
            _Writer.write_file(ET.SubElement(root, "File"), file)
        return root

    @staticmethod
    def write_module(parent: ET.Element, module: ModuleStatistics):
        _Writer._field(parent, "ModuleName", module.name)
        if module.signature is not None:
            _Writer._field(parent, "Signature", module.signature)
        _Writer._field(parent, "ImageSize", module.image_size)
        _Writer._field(parent, "ImageLinkTime", format_link_time(module))
        _Writer.write_coverage(parent, module)
        _Writer._collection(
            parent, "Namespaces", "Namespace", module.namespaces, _Writer.write_namespace
        )

    @staticmethod
    def write_namespace(parent: ET.Element, namespace: NamespaceStatistics):
        _Writer._field(parent, "NamespaceName", namespace.name)
        _Writer.write_coverage(parent, namespace)
        _Writer._collection(
            parent, "Classes", "Class", namespace.classes, _Writer.write_class
        )

    @staticmethod
    def write_class(parent: ET.Element, cls: ClassStatistics):
        _Writer._field(parent, "ClassName", cls.name)
        _Writer.write_coverage(parent, cls)
        _Writer._collection(
            parent, "Methods", "Method", cls.methods, _Writer.write_method
        )

    @staticmethod
    def write_method(parent: ET.Element, method: MethodStatistics):
        _Writer._field(parent, "MethodID", method.method_id)
        _Writer._field(parent, "MethodName", method.name)
        _Writer._field(parent, "MethodFullName", method.full_name)
        _Writer.write_coverage(parent, method)
        _Writer._collection(parent, "Lines", "Line", method.blocks, _Writer.write_block)

    @staticmethod
    def write_block(parent: ET.Element, block: BlockCoverage):
        _Writer._field(parent, "LineStart", block.line_start)
        _Writer._field(parent, "LineEnd", block.line_end)
        _Writer._field(parent, "ColumnStart", block.column_start)
        _Writer._field(parent, "ColumnEnd", block.column_end)
        _Writer._field(parent, "Coverage", int(block.coverage))
        _Writer._field(parent, "FileID", block.file.id)

    @staticmethod
    def write_file(parent: ET.Element, file: FileSpec):
        _Writer._field(parent, "FileID", file.id)
        _Writer._field(parent, "FileName", file.file_name)

    @staticmethod
    def write_coverage(parent: ET.Element, stats: CoverageStatistics):
        _Writer._field(parent, "BlocksCovered", stats.blocks_covered)
        _Writer._field(parent, "BlocksNotCovered", stats.blocks_not_covered)
        _Writer._field(parent, "LinesCovered", stats.lines_covered)
        _Writer._field(parent, "LinesNotCovered", stats.lines_not_covered)
        _Writer._field(parent, "LinesPartiallyCovered", stats.lines_partially_covered)

    @staticmethod
    def _field(parent: ET.Element, name: str, value) -> None:
        text = str(value)
        if _ILLEGAL_XML_CHARS.search(text):
            raise ValueError(f"{name} contains characters not allowed in xml: {text!r}")
        ET.SubElement(parent, name).text = text

    @staticmethod
    def _collection(
        parent: ET.Element, list_name: str, item_name: str, items: Iterable, write_item
    ) -> None:
        # always emitted, an empty list serializes as <Lines />
        container = ET.SubElement(parent, list_name)
        for item in items:
            write_item(ET.SubElement(container, item_name), item)


# --- Public API Functions ---

write_module = _Writer.write_module
write_namespace = _Writer.write_namespace
write_class = _Writer.write_class
write_method = _Writer.write_method
write_block = _Writer.write_block
write_file = _Writer.write_file
write_coverage = _Writer.write_coverage


def write_report(report: CoverageReport, root_name: str = DEFAULT_ROOT_NAME) -> ET.Element:
    """build the element tree for a whole report"""
    return _Writer.write_report(report, root_name)


def _build_tree(report: CoverageReport, options: ReportOptions) -> ET.ElementTree:
    tree = ET.ElementTree(write_report(report, options.root_name))
    if options.indent:
        ET.indent(tree, space=_INDENT)
    return tree


def to_string(report: CoverageReport, options: Optional[ReportOptions] = None) -> str:
    """serialize a report to an xml string without declaration"""
    options = options or ReportOptions()
    return ET.tostring(_build_tree(report, options).getroot(), encoding="unicode")


def save(
    report: CoverageReport, filepath: str, options: Optional[ReportOptions] = None
) -> None:
    """
    Writes a report to an xml file.

    Args:
        report: The report to serialize.
        filepath: Destination path, created or truncated.
        options: Output options, defaults to ReportOptions().

    Raises:
        ValueError: If the path or root element name is empty, or a name
            holds characters xml cannot represent.
        OSError: If the file cannot be written.
    """
    if not filepath:
        raise ValueError("output file must be a non-empty path")
    options = options or ReportOptions()

    tree = _build_tree(report, options)
    with open(filepath, "wb") as f:
        tree.write(f, encoding="utf-8", xml_declaration=True)
