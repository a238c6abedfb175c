"""tests for building statistics trees from decoder records"""

import pytest

from vscov2xml.builder import (
    add_module_statistics,
    builder,
    compute_method_statistics,
    create_block_coverages,
    create_report,
    get_block_coverage_map,
)
from vscov2xml.model import CoverageReport, CoverageStatus, FileSpecList, Statistics
from vscov2xml.source import (
    CoverageSource,
    DecoderError,
    LineRange,
    MethodRecord,
    ModuleRecord,
)


class InMemorySource(CoverageSource):
    """source handing out prepared module records"""

    def __init__(self, modules):
        super().__init__("memory.coverage")
        self._modules = modules
        self.closed = False

    def modules(self):
        return iter(self._modules)

    def close(self):
        self.closed = True


def line(start, block_index, file="a.cs", valid=True, columns=(1, 10)):
    return LineRange(file, start, start, columns[0], columns[1], block_index, valid)


def method(method_id, name, cls="Program", ns="App", lines=None, statistics=None):
    return MethodRecord(
        method_id=method_id,
        name=name,
        full_name=f"{ns}.{cls}.{name}()",
        class_name=cls,
        namespace_name=ns,
        lines=lines or [],
        statistics=statistics,
    )


class TestBlockCoverageMap:
    """test per-line status computation"""

    def test_single_block_status(self):
        """test non-zero byte is covered, zero is not covered"""
        buffer = bytes([5, 0])
        lines = [line(1, 0), line(2, 1)]

        result = get_block_coverage_map(buffer, lines)

        assert result[lines[0].key] == CoverageStatus.COVERED
        assert result[lines[1].key] == CoverageStatus.NOT_COVERED

    def test_agreeing_blocks_keep_status(self):
        """test a line whose blocks all executed is covered"""
        buffer = bytes([1, 1, 0, 0])
        lines = [line(1, 0), line(1, 1), line(2, 2), line(2, 3)]

        result = get_block_coverage_map(buffer, lines)

        assert result[lines[0].key] == CoverageStatus.COVERED
        assert result[lines[2].key] == CoverageStatus.NOT_COVERED

    @pytest.mark.parametrize(
        "hits",
        [
            [1, 0],
            [0, 1],
            [1, 0, 1],
            [0, 1, 0],
            [1, 1, 0],
            [0, 0, 1, 1],
        ],
    )
    def test_mixed_blocks_partially_covered(self, hits):
        """test partial coverage is sticky whatever the order"""
        buffer = bytes(hits)
        lines = [line(7, i) for i in range(len(hits))]

        result = get_block_coverage_map(buffer, lines)

        assert result == {lines[0].key: CoverageStatus.PARTIALLY_COVERED}

    def test_invalid_ranges_ignored(self):
        """test invalid ranges neither appear nor affect other ranges"""
        buffer = bytes([1, 0])
        lines = [line(3, 0), line(3, 1, valid=False), line(9, 1, valid=False)]

        result = get_block_coverage_map(buffer, lines)

        assert result == {lines[0].key: CoverageStatus.COVERED}

    def test_ranges_differ_by_file_and_columns(self):
        """test keys include file and column bounds"""
        buffer = bytes([1, 0, 0])
        lines = [line(1, 0), line(1, 1, file="b.cs"), line(1, 2, columns=(11, 20))]

        result = get_block_coverage_map(buffer, lines)

        assert len(result) == 3
        assert result[lines[0].key] == CoverageStatus.COVERED

    def test_block_index_outside_buffer(self):
        """test bad block index is a decoder error"""
        with pytest.raises(DecoderError):
            get_block_coverage_map(bytes([1]), [line(1, 4)])


class TestMethodStatisticsComputation:
    """test counters derived from the coverage buffer"""

    def test_counts_blocks_and_lines(self):
        """test distinct blocks and lines are counted by status"""
        buffer = bytes([1, 0, 1, 0, 0])
        lines = [
            line(1, 0),
            line(2, 1),
            line(3, 2),
            line(3, 3),  # partial line
            line(4, 0),  # block 0 shared with line 1
            line(5, 4, valid=False),
        ]

        stats = compute_method_statistics(buffer, lines)

        assert stats == Statistics(
            blocks_covered=2,
            blocks_not_covered=2,
            lines_covered=2,
            lines_not_covered=1,
            lines_partially_covered=1,
        )

    def test_no_lines(self):
        assert compute_method_statistics(b"", []) == Statistics()


class TestCreateBlockCoverages:
    """test block creation and file interning"""

    def test_one_block_per_valid_range(self):
        """test duplicate ranges share the aggregated status"""
        files = FileSpecList()
        buffer = bytes([1, 0, 1])
        lines = [line(1, 0), line(1, 1), line(2, 2, file="b.cs"), line(3, 0, valid=False)]

        blocks = create_block_coverages(buffer, lines, files)

        assert len(blocks) == 3
        assert blocks[0].coverage == CoverageStatus.PARTIALLY_COVERED
        assert blocks[1] == blocks[0]
        assert blocks[2].file.file_name == "b.cs"
        assert [f.file_name for f in files] == ["a.cs", "b.cs"]


class TestTreeConstruction:
    """test building modules from records"""

    def create_module_record(self):
        buffer = bytes([1, 0, 1, 1])
        return ModuleRecord(
            name="App.dll",
            image_size=4096,
            image_link_time=4,
            coverage_buffer=buffer,
            signature="0f8fad5b-d9cb-469f-a165-70867728950e",
            methods=[
                method(1, "Main", lines=[line(10, 0), line(10, 1), line(11, 2)]),
                method(2, "Run", lines=[line(20, 3, file="b.cs")]),
                method(3, "Helper", cls="Util", lines=[line(30, 3, file="c.cs")]),
                method(
                    4,
                    "Parse",
                    ns="App.Io",
                    cls="Reader",
                    statistics=Statistics(7, 8, 9, 10, 11),
                ),
            ],
        )

    def test_add_module_statistics(self):
        """test namespaces and classes are shared by name"""
        report = CoverageReport()

        module = add_module_statistics(report, self.create_module_record())

        assert report.modules == [module]
        assert module.signature == "0f8fad5b-d9cb-469f-a165-70867728950e"
        assert [ns.name for ns in module.namespaces] == ["App", "App.Io"]
        app = module.namespaces[0]
        assert [c.name for c in app.classes] == ["Program", "Util"]
        assert [m.name for m in app.classes[0].methods] == ["Main", "Run"]

    def test_lines_and_files(self):
        """test method blocks and report files"""
        report = CoverageReport()

        module = add_module_statistics(report, self.create_module_record())
        main = module.namespaces[0].classes[0].methods[0]

        assert len(main.blocks) == 2
        assert main.blocks[0].coverage == CoverageStatus.PARTIALLY_COVERED
        assert main.blocks[1].coverage == CoverageStatus.COVERED
        assert [(f.id, f.file_name) for f in report.files] == [
            (1, "a.cs"),
            (2, "b.cs"),
            (3, "c.cs"),
        ]

    def test_supplied_statistics_used(self):
        """test decoder summaries win over computed counters"""
        report = CoverageReport()

        module = add_module_statistics(report, self.create_module_record())
        parse = module.namespaces[1].classes[0].methods[0]

        assert parse.totals() == Statistics(7, 8, 9, 10, 11)
        assert parse.blocks == []

    def test_module_aggregates(self):
        """test module counters include computed and supplied method counters"""
        report = CoverageReport()

        module = add_module_statistics(report, self.create_module_record())

        # Main: blocks 2/1, lines 1 covered + 1 partial; Run, Helper: 1 block, 1 line each
        assert module.blocks_covered == 2 + 1 + 1 + 7
        assert module.blocks_not_covered == 1 + 8
        assert module.lines_covered == 1 + 1 + 1 + 9
        assert module.lines_not_covered == 10
        assert module.lines_partially_covered == 1 + 11

    def test_repeated_method_records_not_merged(self):
        """test each record yields a method even for the same symbol"""
        record = ModuleRecord(
            "App.dll",
            0,
            0,
            bytes([1]),
            methods=[method(1, "Main", lines=[line(1, 0)]), method(1, "Main", lines=[line(1, 0)])],
        )
        report = CoverageReport()

        module = add_module_statistics(report, record)

        assert len(module.namespaces[0].classes[0].methods) == 2

    def test_negative_link_time_fails(self):
        record = ModuleRecord("App.dll", 0, -5, b"")
        with pytest.raises(ValueError):
            add_module_statistics(CoverageReport(), record)

    def test_create_report_consumes_all_modules(self):
        """test every module lands in one report with one registry"""
        source = InMemorySource(
            [
                self.create_module_record(),
                ModuleRecord(
                    "Lib.dll",
                    10,
                    0,
                    bytes([0]),
                    methods=iter([method(9, "Go", ns="Lib", lines=[line(1, 0)])]),
                ),
            ]
        )

        report = create_report(source)

        assert [m.name for m in report.modules] == ["App.dll", "Lib.dll"]
        assert len(report.files) == 3
        lib_method = report.modules[1].namespaces[0].classes[0].methods[0]
        assert lib_method.blocks[0].file is report.files.get_or_add("a.cs")
        assert lib_method.lines_not_covered == 1

    def test_create_report_requires_source(self):
        with pytest.raises(ValueError):
            create_report(None)


class TestReportBuilder:
    """test the fluent report builder"""

    def test_build_report(self):
        report = (
            builder()
            .add_module("App.dll", 100, 4)
            .add_method("App", "Program", 1, "Main", statistics=Statistics(1, 0, 1, 0, 0))
            .add_block("a.cs", 1, 1, 1, 5)
            .add_block("a.cs", 1, 1, 1, 5, CoverageStatus.NOT_COVERED)
            .add_method("App", "Program", 2, "Stop")
            .build()
        )

        methods = report.modules[0].namespaces[0].classes[0].methods
        assert [m.name for m in methods] == ["Main", "Stop"]
        assert methods[0].full_name == "Main"
        assert len(methods[0].blocks) == 1
        assert report.blocks_covered == 1

    def test_method_before_module_fails(self):
        with pytest.raises(ValueError):
            builder().add_method("App", "Program", 1, "Main")

    def test_block_before_method_fails(self):
        with pytest.raises(ValueError):
            builder().add_module("App.dll").add_block("a.cs", 1, 1, 1, 5)
