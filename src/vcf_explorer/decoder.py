"""
Format decoder module for VCF Explorer.
Turns raw VCF text into a VcfData model in a single line-oriented pass.

The decoder performs no I/O. Per-line problems are collected as warnings
and never abort the whole input; only input that cannot be interpreted as
text raises DecodeError.
"""

import re
import math
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from vcf_explorer.exceptions import DecodeError, DecodeWarning, RecordSkipped, CoercionFallback
from vcf_explorer.model import (
    DEFAULT_FILEFORMAT,
    MISSING,
    REQUIRED_COLUMN_COUNT,
    InfoValue,
    VcfData,
    VcfHeader,
    VcfRecord,
    build_sample,
)

# Configure logging
log = logging.getLogger("vcf-explorer")

# Records parsed between two progress emissions (and cooperative yields)
PROGRESS_INTERVAL = 1000

ProgressCallback = Callable[[float], None]

_REGISTRY_RE = re.compile(r'^##(INFO|FORMAT)=<ID=([^,]+),[^>]*Description="([^"]+)"')
_INT_RE = re.compile(r"^[+-]?[0-9]+$")
_NUMBER_RE = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$")
_ATTRIBUTE_RE = re.compile(r'([^=,]+)=("(?:[^"\\]|\\.)*"|[^,]*)')


@dataclass
class DecodeResult:
    """Outcome of a decode: the model plus every non-fatal issue encountered."""
    
    data: VcfData
    warnings: List[DecodeWarning] = field(default_factory=list)
    
    @property
    def header(self) -> VcfHeader:
        return self.data.header
    
    @property
    def records(self) -> Tuple[VcfRecord, ...]:
        return self.data.records
    
    @property
    def skipped(self) -> int:
        """Number of record lines dropped."""
        return sum(1 for w in self.warnings if isinstance(w, RecordSkipped))


def parse_number(raw: str) -> Optional[Union[int, float]]:
    """
    Parse a decimal integer or a finite real number.
    
    Returns:
        int or float, or None if the string is not a valid number
    """
    text = raw.strip()
    if not text:
        return None
    if _INT_RE.match(text):
        return int(text)
    if not _NUMBER_RE.match(text):
        return None
    value = float(text)
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def parse_info(info: str) -> Dict[str, InfoValue]:
    """
    Parse a VCF INFO column into tagged values.
    
    ``key`` becomes a True flag; ``key=value`` is parsed as a number when
    possible and kept as the raw string otherwise. A lone ``.`` is an empty
    mapping. Numeric-looking strings are always coerced, since the INFO
    ``Type`` attribute is not captured.
    
    Args:
        info: Raw INFO column
        
    Returns:
        Dictionary of INFO key to value
    """
    out: Dict[str, InfoValue] = {}
    if not info or info == MISSING:
        return out
    for pair in info.split(";"):
        if not pair:
            continue
        if "=" not in pair:
            out[pair] = True
            continue
        key, value = pair.split("=", 1)
        number = parse_number(value)
        out[key] = number if number is not None else value
    return out


def parse_structured_value(value: str) -> Dict[str, str]:
    """Parse the inside of a ``<ID=x,key="quoted, value",...>`` header value."""
    body = value.strip()
    if body.startswith("<") and body.endswith(">"):
        body = body[1:-1]
    attributes = {}
    for match in _ATTRIBUTE_RE.finditer(body):
        key, raw = match.group(1).strip(), match.group(2)
        if len(raw) >= 2 and raw.startswith('"') and raw.endswith('"'):
            raw = raw[1:-1].replace('\\"', '"')
        attributes[key] = raw
    return attributes


class _HeaderBuilder:
    """Accumulates header registries while header lines are consumed."""
    
    def __init__(self):
        self.fileformat = DEFAULT_FILEFORMAT
        self.info: Dict[str, str] = {}
        self.format: Dict[str, str] = {}
        self.samples: List[str] = []
        self.contigs: Dict[str, Dict[str, str]] = {}
        self.meta: Dict[str, List[str]] = {}
    
    def consume(self, line: str) -> None:
        if line.startswith("#CHROM"):
            columns = line.split("\t")
            if len(columns) > 9:
                self.samples = columns[9:]
            return
        if not line.startswith("##"):
            log.debug(f"Ignoring unrecognised header line: {line[:60]}")
            return
        if line.startswith("##fileformat="):
            self.fileformat = line[len("##fileformat="):]
        elif line.startswith("##INFO=") or line.startswith("##FORMAT="):
            match = _REGISTRY_RE.match(line)
            if not match:
                log.debug(f"Header line without ID/Description ignored: {line[:60]}")
                return
            registry = self.info if match.group(1) == "INFO" else self.format
            registry[match.group(2)] = match.group(3)
        elif line.startswith("##contig="):
            attributes = parse_structured_value(line[len("##contig="):])
            contig_id = attributes.pop("ID", None)
            if contig_id:
                self.contigs[contig_id] = attributes
            else:
                log.debug(f"Contig line without ID ignored: {line[:60]}")
        elif "=" in line:
            key, value = line[2:].split("=", 1)
            self.meta.setdefault(key, []).append(value)
        else:
            self.meta.setdefault(line[2:], []).append("")
    
    def build(self) -> VcfHeader:
        return VcfHeader(
            fileformat=self.fileformat,
            info=self.info,
            format=self.format,
            samples=tuple(self.samples),
            contigs=self.contigs,
            meta=self.meta,
        )


def _parse_record(fields: List[str], header: VcfHeader, line_number: int,
                  warnings: List[DecodeWarning]) -> VcfRecord:
    """
    Build a record from the tab-split columns of one line.
    
    Raises:
        RecordSkipped: If the line cannot yield a valid record
    """
    chrom = fields[0]
    raw_pos = fields[1] if len(fields) > 1 else None
    if len(fields) < REQUIRED_COLUMN_COUNT:
        raise RecordSkipped(
            f"Invalid VCF record: expected at least {REQUIRED_COLUMN_COUNT} fields, found {len(fields)}",
            line_number, chrom, raw_pos,
        )
    
    if not _INT_RE.match(raw_pos.strip()):
        raise RecordSkipped(f"Invalid position {raw_pos!r}", line_number, chrom, raw_pos)
    pos = int(raw_pos.strip())
    
    raw_qual = fields[5]
    qual = None
    if raw_qual != MISSING:
        parsed = parse_number(raw_qual)
        if parsed is None:
            warnings.append(CoercionFallback(
                f"Unparsable QUAL {raw_qual!r} treated as absent", line_number, chrom, raw_pos
            ))
        else:
            qual = float(parsed)
    
    format_keys = None
    samples = None
    if len(fields) > 8 and fields[8] and header.samples:
        format_keys = tuple(fields[8].split(":"))
        columns = fields[9:]
        expected = len(header.samples)
        if len(columns) != expected:
            warnings.append(CoercionFallback(
                f"Found {len(columns)} sample columns for {expected} declared samples",
                line_number, chrom, raw_pos,
            ))
        samples = tuple(
            build_sample(format_keys, columns[i].split(":") if i < len(columns) else [])
            for i in range(expected)
        )
    
    try:
        return VcfRecord(
            chrom=chrom,
            pos=pos,
            id=None if fields[2] == MISSING else fields[2],
            ref=fields[3],
            alt=() if fields[4] == MISSING else tuple(fields[4].split(",")),
            qual=qual,
            filter=() if fields[6] == MISSING else tuple(fields[6].split(";")),
            info=parse_info(fields[7]),
            format=format_keys,
            samples=samples,
        )
    except ValueError as e:
        raise RecordSkipped(str(e), line_number, chrom, raw_pos)


def _as_text(content: Union[str, bytes]) -> str:
    if isinstance(content, (bytes, bytearray)):
        try:
            content = bytes(content).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError("Input cannot be interpreted as UTF-8 text", details=str(e))
    if not isinstance(content, str):
        raise DecodeError("Input must be text", details=type(content).__name__)
    return content[1:] if content.startswith("\ufeff") else content


def _decode_steps(content: Union[str, bytes], result: DecodeResult) -> Iterator[float]:
    """
    Decode ``content`` into ``result``, yielding progress percentages.
    
    The model is only attached to ``result`` after the last line, so an
    abandoned generator never exposes a half-built header or record list.
    """
    text = _as_text(content)
    yield 0.0
    
    lines = text.split("\n")
    total = len(lines) or 1
    header_builder = _HeaderBuilder()
    warnings: List[DecodeWarning] = []
    records: List[VcfRecord] = []
    header: Optional[VcfHeader] = None
    
    for index, raw_line in enumerate(lines):
        line = raw_line[:-1] if raw_line.endswith("\r") else raw_line
        if header is None:
            if line.startswith("#"):
                header_builder.consume(line)
                continue
            if not line.strip():
                continue
            header = header_builder.build()
            log.debug(f"Header parsed: {len(header.info)} INFO, {len(header.format)} FORMAT, "
                      f"{len(header.samples)} samples")
            yield 50.0
        
        if not line.strip() or line.startswith("#"):
            continue
        
        try:
            records.append(_parse_record(line.split("\t"), header, index + 1, warnings))
        except RecordSkipped as skipped:
            log.warning(f"Skipping malformed record: {skipped}")
            warnings.append(skipped)
            continue
        
        if len(records) % PROGRESS_INTERVAL == 0:
            yield 50.0 + (index / total) * 50.0
    
    if header is None:
        header = header_builder.build()
        yield 50.0
    
    for w in warnings:
        if isinstance(w, CoercionFallback):
            log.debug(f"Coercion fallback: {w}")
    
    skipped = sum(1 for w in warnings if isinstance(w, RecordSkipped))
    log.info(f"Decoded {len(records):,} records ({skipped:,} skipped, {len(header.samples)} samples)")
    
    result.data = VcfData(header=header, records=tuple(records))
    result.warnings = warnings
    yield 100.0


def decode_vcf(content: Union[str, bytes],
               progress_callback: Optional[ProgressCallback] = None) -> DecodeResult:
    """
    Decode VCF text into a typed model.
    
    Args:
        content: Raw VCF text (bytes are decoded as UTF-8)
        progress_callback: Optional callable receiving progress in [0, 100]
        
    Returns:
        DecodeResult with the model and the collected warnings
        
    Raises:
        DecodeError: If the input cannot be interpreted as text
    """
    result = DecodeResult(data=VcfData())
    for percent in _decode_steps(content, result):
        if progress_callback:
            progress_callback(percent)
    return result


async def decode_vcf_async(content: Union[str, bytes],
                           progress_callback: Optional[ProgressCallback] = None) -> DecodeResult:
    """
    Decode VCF text, yielding to the event loop after every progress emission.
    
    Cancelling the awaiting task discards everything decoded so far.
    
    Args:
        content: Raw VCF text (bytes are decoded as UTF-8)
        progress_callback: Optional callable receiving progress in [0, 100]
        
    Returns:
        DecodeResult with the model and the collected warnings
    """
    result = DecodeResult(data=VcfData())
    for percent in _decode_steps(content, result):
        if progress_callback:
            progress_callback(percent)
        await asyncio.sleep(0)
    return result
