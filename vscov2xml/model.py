"""statistics tree for visual studio coverage reports

the tree mirrors the structure the decoder reports: module -> namespace ->
class -> method -> line block. methods hold the counters supplied by the
decoder, every level above sums its children on read.
"""

import dataclasses
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Iterator, List, Optional

# image link times are seconds from this point, see ICoverageModule.ImageLinkTime
EPOCH = datetime(1969, 12, 31, 16, 0, 0, tzinfo=timezone.utc)


class CoverageReportError(Exception):
    """base exception for coverage report generation"""

    pass


class CoverageStatus(IntEnum):
    """coverage status of a line block, the value is written to xml"""

    COVERED = 0
    NOT_COVERED = 1
    PARTIALLY_COVERED = 2


@dataclasses.dataclass(frozen=True)
class Statistics:
    """plain set of the five coverage counters"""

    blocks_covered: int = 0
    blocks_not_covered: int = 0
    lines_covered: int = 0
    lines_not_covered: int = 0
    lines_partially_covered: int = 0


class CoverageStatistics(ABC):
    """counters exposed by every node of the statistics tree"""

    @property
    @abstractmethod
    def blocks_covered(self) -> int: ...

    @property
    @abstractmethod
    def blocks_not_covered(self) -> int: ...

    @property
    @abstractmethod
    def lines_covered(self) -> int: ...

    @property
    @abstractmethod
    def lines_not_covered(self) -> int: ...

    @property
    @abstractmethod
    def lines_partially_covered(self) -> int: ...

    def totals(self) -> Statistics:
        """snapshot of the current counters"""
        return Statistics(
            blocks_covered=self.blocks_covered,
            blocks_not_covered=self.blocks_not_covered,
            lines_covered=self.lines_covered,
            lines_not_covered=self.lines_not_covered,
            lines_partially_covered=self.lines_partially_covered,
        )


class _AggregateStatistics(CoverageStatistics):
    """node whose counters are the sum over its immediate children"""

    def _children(self) -> List[CoverageStatistics]:
        raise NotImplementedError

    @property
    def blocks_covered(self) -> int:
        return sum(child.blocks_covered for child in self._children())

    @property
    def blocks_not_covered(self) -> int:
        return sum(child.blocks_not_covered for child in self._children())

    @property
    def lines_covered(self) -> int:
        return sum(child.lines_covered for child in self._children())

    @property
    def lines_not_covered(self) -> int:
        return sum(child.lines_not_covered for child in self._children())

    @property
    def lines_partially_covered(self) -> int:
        return sum(child.lines_partially_covered for child in self._children())


def _require_name(value: Optional[str], what: str) -> str:
    if not value:
        raise ValueError(f"{what} must be a non-empty string")
    return value


@dataclasses.dataclass(frozen=True)
class FileSpec:
    """source file referenced by line blocks"""

    file_name: str
    id: int

    def __post_init__(self):
        _require_name(self.file_name, "file name")
        if self.id < 1:
            raise ValueError(f"file id must be positive, got {self.id}")

    def __str__(self) -> str:
        return f"{self.file_name} ({self.id})"


class FileSpecList:
    """registry of source files, one id per distinct path"""

    def __init__(self):
        self._files: List[FileSpec] = []

    def get_or_add(self, file_name: str) -> FileSpec:
        """return the file registered under this exact path, adding it if new"""
        _require_name(file_name, "file name")

        for file in self._files:
            if file.file_name == file_name:
                return file

        file = FileSpec(file_name, len(self._files) + 1)
        self._files.append(file)
        return file

    def __iter__(self) -> Iterator[FileSpec]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)


@dataclasses.dataclass(frozen=True)
class BlockCoverage:
    """coverage status of one line/column range in a source file"""

    file: FileSpec
    line_start: int
    line_end: int
    column_start: int
    column_end: int
    # two blocks over the same range are the same block whatever their status
    coverage: CoverageStatus = dataclasses.field(compare=False)

    def __str__(self) -> str:
        return (
            f"{self.file.file_name} ({self.line_start}:{self.column_start} - "
            f"{self.line_end}:{self.column_end})"
        )


class MethodStatistics(CoverageStatistics):
    """one method, its decoder-supplied counters and its line blocks"""

    def __init__(
        self,
        method_id: int,
        name: str,
        full_name: str,
        statistics: Optional[Statistics],
    ):
        _require_name(name, "method name")
        _require_name(full_name, "method full name")
        if statistics is None:
            raise ValueError("method statistics are required")

        self.method_id = method_id
        self.name = name
        self.full_name = full_name
        self._statistics = statistics
        self._blocks: List[BlockCoverage] = []

    @property
    def blocks(self) -> List[BlockCoverage]:
        return self._blocks

    @property
    def blocks_covered(self) -> int:
        return self._statistics.blocks_covered

    @property
    def blocks_not_covered(self) -> int:
        return self._statistics.blocks_not_covered

    @property
    def lines_covered(self) -> int:
        return self._statistics.lines_covered

    @property
    def lines_not_covered(self) -> int:
        return self._statistics.lines_not_covered

    @property
    def lines_partially_covered(self) -> int:
        return self._statistics.lines_partially_covered

    def add_block(self, block: BlockCoverage) -> None:
        """add a line block unless the same range is already recorded"""
        if block is None:
            raise ValueError("block is required")
        if block not in self._blocks:
            self._blocks.append(block)

    def __str__(self) -> str:
        return f"{self.full_name} ({self.method_id})"


class ClassStatistics(_AggregateStatistics):
    def __init__(self, name: str):
        self.name = _require_name(name, "class name")
        self._methods: List[MethodStatistics] = []

    @property
    def methods(self) -> List[MethodStatistics]:
        return self._methods

    def _children(self) -> List[MethodStatistics]:
        return self._methods

    def add_method(self, method: MethodStatistics) -> None:
        if method is None:
            raise ValueError("method is required")
        self._methods.append(method)

    def __str__(self) -> str:
        return self.name


class NamespaceStatistics(_AggregateStatistics):
    def __init__(self, name: str):
        self.name = _require_name(name, "namespace name")
        self._classes: List[ClassStatistics] = []

    @property
    def classes(self) -> List[ClassStatistics]:
        return self._classes

    def _children(self) -> List[ClassStatistics]:
        return self._classes

    def get_or_add_class(self, class_name: str) -> ClassStatistics:
        """find a class by exact name, appending a new one if missing"""
        _require_name(class_name, "class name")

        for cls in self._classes:
            if cls.name == class_name:
                return cls

        cls = ClassStatistics(class_name)
        self._classes.append(cls)
        return cls

    def __str__(self) -> str:
        return self.name


class ModuleStatistics(_AggregateStatistics):
    """one instrumented binary"""

    def __init__(
        self,
        name: str,
        image_size: int,
        image_link_time: int,
        signature: Optional[str] = None,
    ):
        self.name = _require_name(name, "module name")
        if image_link_time < 0:
            raise ValueError(
                f"image link time must not be negative, got {image_link_time}"
            )

        self.image_size = image_size
        self.signature = signature
        self.image_link_time = EPOCH + timedelta(seconds=image_link_time)
        self._namespaces: List[NamespaceStatistics] = []

    @property
    def namespaces(self) -> List[NamespaceStatistics]:
        return self._namespaces

    def _children(self) -> List[NamespaceStatistics]:
        return self._namespaces

    def get_or_add_namespace(self, namespace_name: str) -> NamespaceStatistics:
        """find a namespace by exact name, appending a new one if missing"""
        _require_name(namespace_name, "namespace name")

        for ns in self._namespaces:
            if ns.name == namespace_name:
                return ns

        ns = NamespaceStatistics(namespace_name)
        self._namespaces.append(ns)
        return ns

    def __str__(self) -> str:
        return self.name


class CoverageReport(_AggregateStatistics):
    """root of the tree: all modules plus the shared file registry"""

    def __init__(self):
        self._modules: List[ModuleStatistics] = []
        self._files = FileSpecList()

    @property
    def modules(self) -> List[ModuleStatistics]:
        return self._modules

    @property
    def files(self) -> FileSpecList:
        return self._files

    def _children(self) -> List[ModuleStatistics]:
        return self._modules

    def add_module(self, module: ModuleStatistics) -> None:
        if module is None:
            raise ValueError("module is required")
        self._modules.append(module)

    def get_or_add_file(self, file_name: str) -> FileSpec:
        return self._files.get_or_add(file_name)

    def save(self, filepath: str, options=None) -> None:
        """write the report as xml"""
        from .xmlreport import save

        save(self, filepath, options)
