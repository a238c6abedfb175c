"""boundary to the coverage decoder

decoding visual studio .coverage files and resolving their symbols is the job
of an external library. this module defines the records such a decoder hands
over and how a decoder is chosen for an input file. a json dump of the same
records is read natively.
"""

import dataclasses
import json
import os
from abc import ABC, abstractmethod
from importlib.metadata import entry_points
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .model import CoverageReportError, Statistics

DECODER_ENTRY_POINT_GROUP = "vscov2xml.decoders"
PATH_SEPARATOR = ";"

LineKey = Tuple[str, int, int, int, int]


class DecoderError(CoverageReportError):
    """a decoder could not be found or handed over unusable data"""

    pass


class DatasetNotSupportedError(DecoderError):
    """the decoder has no serializer of its own"""

    pass


@dataclasses.dataclass(frozen=True)
class LineRange:
    """source range of one instrumented block as reported by the symbol reader"""

    source_file: str
    start_line: int
    end_line: int
    start_column: int
    end_column: int
    block_index: int  # index into the module coverage buffer
    is_valid: bool = True

    @property
    def key(self) -> LineKey:
        """identity of the range, shared by every block covering it"""
        return (
            self.source_file,
            self.start_line,
            self.end_line,
            self.start_column,
            self.end_column,
        )


@dataclasses.dataclass
class MethodRecord:
    """one method as enumerated by the symbol reader"""

    method_id: int
    name: str
    full_name: str
    class_name: str
    namespace_name: str
    lines: List[LineRange] = dataclasses.field(default_factory=list)
    statistics: Optional[Statistics] = None


@dataclasses.dataclass
class ModuleRecord:
    """one instrumented module, methods may be produced lazily"""

    name: str
    image_size: int
    image_link_time: int
    coverage_buffer: bytes
    methods: Iterable[MethodRecord] = dataclasses.field(default_factory=list)
    signature: Optional[str] = None


class CoverageSource(ABC):
    """an open coverage file, released with close() or a with block"""

    def __init__(
        self,
        coverage_file: str,
        executable_paths: Sequence[str] = (),
        symbol_paths: Sequence[str] = (),
    ):
        self.coverage_file = coverage_file
        self.executable_paths = list(executable_paths)
        self.symbol_paths = list(symbol_paths)

    @abstractmethod
    def modules(self) -> Iterator[ModuleRecord]:
        """yield every module in the coverage file"""

    def write_dataset_xml(self, output_file: str) -> None:
        """write the decoder's own xml representation"""
        raise DatasetNotSupportedError(
            f"{type(self).__name__} does not provide a dataset serializer"
        )

    def close(self) -> None:
        pass

    def __enter__(self) -> "CoverageSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class JsonCoverageSource(CoverageSource):
    """
    reads a json dump of decoder records:

        {"modules": [{"name", "image_size", "image_link_time", "signature"?,
                      "coverage_buffer": "<hex>" | [bytes...],
                      "methods": [{"id", "name", "full_name", "class",
                                   "namespace", "statistics"?,
                                   "lines": [{"file", "start_line",
                                              "end_line", "start_column",
                                              "end_column", "block_index",
                                              "valid"?}]}]}]}
    """

    def __init__(
        self,
        coverage_file: str,
        executable_paths: Sequence[str] = (),
        symbol_paths: Sequence[str] = (),
    ):
        super().__init__(coverage_file, executable_paths, symbol_paths)
        with open(coverage_file, "r", encoding="utf-8") as f:
            try:
                self._document = json.load(f)
            except json.JSONDecodeError as e:
                raise DecoderError(f"malformed coverage dump {coverage_file}: {e}")

        if not isinstance(self._document, dict) or not isinstance(
            self._document.get("modules"), list
        ):
            raise DecoderError(f"coverage dump {coverage_file} has no module list")

    def modules(self) -> Iterator[ModuleRecord]:
        for entry in self._document["modules"]:
            yield self._parse_module(entry)

    def _parse_module(self, entry: Dict[str, Any]) -> ModuleRecord:
        try:
            _require_object(entry, "module")
            return ModuleRecord(
                name=entry["name"],
                image_size=_integer(entry.get("image_size", 0), "image_size"),
                image_link_time=_integer(
                    entry.get("image_link_time", 0), "image_link_time"
                ),
                coverage_buffer=_parse_buffer(entry.get("coverage_buffer", "")),
                methods=[_parse_method(m) for m in entry.get("methods", [])],
                signature=entry.get("signature"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DecoderError(f"malformed module entry in {self.coverage_file}: {e}")


def _require_object(entry, what: str) -> None:
    if not isinstance(entry, dict):
        raise TypeError(f"{what} entry must be an object, got {type(entry).__name__}")


def _integer(value, what: str) -> int:
    # json booleans are ints in python
    if isinstance(value, bool):
        raise TypeError(f"{what} must be an integer, got {value!r}")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise TypeError(f"{what} must be an integer, got {value!r}")
    return value


def _parse_buffer(value) -> bytes:
    """hex string or list of byte values"""
    if isinstance(value, str):
        return bytes.fromhex(value)
    if isinstance(value, list):
        return bytes(_integer(b, "coverage buffer byte") for b in value)
    raise TypeError(
        f"coverage_buffer must be a hex string or a list, got {type(value).__name__}"
    )


def _parse_statistics(stats) -> Statistics:
    _require_object(stats, "statistics")
    return Statistics(**{k: _integer(v, k) for k, v in stats.items()})


def _parse_method(entry: Dict[str, Any]) -> MethodRecord:
    _require_object(entry, "method")
    stats = entry.get("statistics")
    return MethodRecord(
        method_id=_integer(entry["id"], "id"),
        name=entry["name"],
        full_name=entry.get("full_name", entry["name"]),
        class_name=entry["class"],
        namespace_name=entry["namespace"],
        lines=[_parse_line(line) for line in entry.get("lines", [])],
        statistics=_parse_statistics(stats) if stats is not None else None,
    )


def _parse_line(entry: Dict[str, Any]) -> LineRange:
    _require_object(entry, "line")
    valid = entry.get("valid", True)
    if not isinstance(valid, bool):
        raise TypeError(f"valid must be a boolean, got {valid!r}")
    return LineRange(
        source_file=entry["file"],
        start_line=_integer(entry["start_line"], "start_line"),
        end_line=_integer(entry["end_line"], "end_line"),
        start_column=_integer(entry["start_column"], "start_column"),
        end_column=_integer(entry["end_column"], "end_column"),
        block_index=_integer(entry["block_index"], "block_index"),
        is_valid=valid,
    )


def split_search_paths(value: Optional[str]) -> List[str]:
    """split a semicolon-delimited path list, dropping empty entries"""
    if not value:
        return []
    return [p for p in value.split(PATH_SEPARATOR) if p]


def resolve_search_paths(
    coverage_file: str,
    executable_paths: Optional[Sequence[str]] = None,
    symbol_paths: Optional[Sequence[str]] = None,
) -> Tuple[List[str], List[str]]:
    """fall back to the coverage file's directory for empty path lists"""
    default_dir = os.path.dirname(os.path.abspath(coverage_file))
    executables = list(executable_paths) if executable_paths else [default_dir]
    symbols = list(symbol_paths) if symbol_paths else [default_dir]
    return executables, symbols


def _find_decoder(extension: str):
    if extension == "json":
        return JsonCoverageSource

    for ep in entry_points(group=DECODER_ENTRY_POINT_GROUP):
        if ep.name == extension:
            return ep.load()
    return None


def open_source(
    coverage_file: str,
    executable_paths: Optional[Sequence[str]] = None,
    symbol_paths: Optional[Sequence[str]] = None,
) -> CoverageSource:
    """
    Opens a coverage file with the decoder registered for its extension.

    Args:
        coverage_file: Path to the coverage file.
        executable_paths: Directories searched for instrumented binaries.
        symbol_paths: Directories searched for symbol files.

    Returns:
        An open CoverageSource, to be closed by the caller.

    Raises:
        ValueError: If coverage_file is empty.
        DecoderError: If no decoder handles the file type.
        FileNotFoundError: If the file does not exist.
    """
    if not coverage_file:
        raise ValueError("coverage file must be a non-empty path")

    executables, symbols = resolve_search_paths(
        coverage_file, executable_paths, symbol_paths
    )
    extension = os.path.splitext(coverage_file)[1].lstrip(".").lower()

    decoder = _find_decoder(extension)
    if decoder is None:
        raise DecoderError(
            f"no decoder available for '.{extension}' files "
            f"(register one in the '{DECODER_ENTRY_POINT_GROUP}' entry point group)"
        )
    return decoder(coverage_file, executables, symbols)
