"""
Export module for VCF Explorer.
Serializes a record sequence (or a query View) to VCF, CSV or JSON.

Exporters return an in-memory payload plus a suggested filename and media
type; writing it anywhere is left to the caller.
"""

import json
import logging
from datetime import date
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from vcf_explorer.exceptions import UnsupportedFormat
from vcf_explorer.fields import (
    FIXED_FIELD_NAMES,
    INFO_PREFIX,
    SAMPLE_PREFIX,
    field_value,
    format_number,
    info_to_text,
    to_text,
)
from vcf_explorer.model import FIXED_COLUMNS, MISSING, VcfHeader, VcfRecord

# Configure logging
log = logging.getLogger("vcf-explorer")

MEDIA_TYPES = {
    "vcf": "text/plain;charset=utf-8",
    "csv": "text/csv;charset=utf-8",
    "json": "application/json;charset=utf-8",
}

# Whole-object keys the JSON exporter accepts besides catalog field names
JSON_OBJECT_KEYS = ("INFO", "FORMAT", "samples")


@dataclass(frozen=True)
class ExportOptions:
    include_header: bool = True
    columns: Optional[Sequence[str]] = None
    filename: Optional[str] = None


@dataclass(frozen=True)
class ExportPayload:
    content: str
    filename: str
    media_type: str
    
    def to_bytes(self) -> bytes:
        return self.content.encode("utf-8")


def supported_formats() -> List[str]:
    return list(MEDIA_TYPES)


def default_filename(fmt: str) -> str:
    """Suggested download name, e.g. ``vcf_export_2024-05-01.csv``."""
    return f"vcf_export_{date.today().isoformat()}.{fmt}"


# ----------------------------------------------------------------------
# VCF
# ----------------------------------------------------------------------

def _quote(value: str) -> str:
    return '"' + value.replace('"', '\\"') + '"'


def _structured_line(key: str, attributes) -> str:
    parts = []
    for name, value in attributes:
        needs_quotes = any(c in value for c in ',<>="') or " " in value
        parts.append(f"{name}={_quote(value) if needs_quotes else value}")
    return f"##{key}=<{','.join(parts)}>"


def header_lines(header: VcfHeader) -> List[str]:
    """Re-emit the header registries, ending with the ``#CHROM`` column line."""
    lines = [f"##fileformat={header.fileformat}"]
    for key, values in header.meta.items():
        for value in values:
            lines.append(f"##{key}={value}" if value else f"##{key}")
    for contig_id, attributes in header.contigs.items():
        lines.append(_structured_line("contig", [("ID", contig_id)] + list(attributes.items())))
    for key, description in header.info.items():
        lines.append(f"##INFO=<ID={key},Description={_quote(description)}>")
    for key, description in header.format.items():
        lines.append(f"##FORMAT=<ID={key},Description={_quote(description)}>")
    columns = "#" + "\t".join(FIXED_COLUMNS)
    if header.samples:
        columns += "\tFORMAT\t" + "\t".join(header.samples)
    lines.append(columns)
    return lines


def record_line(record: VcfRecord) -> str:
    """Rebuild one VCF data line; absent values are written as ``.``."""
    columns = [
        record.chrom,
        str(record.pos),
        record.id if record.id is not None else MISSING,
        record.ref,
        ",".join(record.alt) if record.alt else MISSING,
        format_number(record.qual) if record.qual is not None else MISSING,
        ";".join(record.filter) if record.filter else MISSING,
        info_to_text(record.info),
    ]
    if record.has_samples:
        columns.append(":".join(record.format))
        for sample in record.samples:
            columns.append(":".join(sample.get(key) or MISSING for key in record.format))
    return "\t".join(columns)


def to_vcf(header: VcfHeader, records: Iterable[VcfRecord], include_header: bool = True) -> str:
    lines = header_lines(header) if include_header else []
    lines.extend(record_line(r) for r in records)
    return "\n".join(lines) + "\n" if lines else ""


# ----------------------------------------------------------------------
# CSV
# ----------------------------------------------------------------------

def tabular_columns(records: Sequence[VcfRecord]) -> List[str]:
    """
    Column order for the flat table.
    
    Fixed columns, then INFO_<key> for every INFO key present in the data
    (first-seen order), then SAMPLE_<index>_<key> for every sample field.
    """
    info_keys: Dict[str, None] = {}
    sample_keys: Dict[str, None] = {}
    for record in records:
        for key in record.info:
            info_keys.setdefault(key)
        if record.has_samples:
            for index in range(len(record.samples)):
                for key in record.format:
                    sample_keys.setdefault(f"{SAMPLE_PREFIX}{index}_{key}")
    return (list(FIXED_FIELD_NAMES)
            + [f"{INFO_PREFIX}{k}" for k in info_keys]
            + list(sample_keys))


def _restrict(available: Sequence[str], allow_list: Optional[Sequence[str]]) -> List[str]:
    if not allow_list:
        return list(available)
    known = set(available)
    unknown = [c for c in allow_list if c not in known]
    if unknown:
        log.warning(f"Ignoring unknown export columns: {', '.join(unknown)}")
    return [c for c in allow_list if c in known]


def _cell(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if name == "FILTER":
        return to_text(value, ";")
    return to_text(value, ",")


def to_csv(records: Sequence[VcfRecord], columns: Optional[Sequence[str]] = None) -> str:
    selected = _restrict(tabular_columns(records), columns)
    rows = [[_cell(field_value(r, name), name) for name in selected] for r in records]
    df = pd.DataFrame(rows, columns=selected, dtype=object)
    return df.to_csv(index=False, lineterminator="\n")


# ----------------------------------------------------------------------
# JSON
# ----------------------------------------------------------------------

def record_to_dict(record: VcfRecord) -> Dict[str, Any]:
    """Structured form of a record, keeping native types."""
    data: Dict[str, Any] = {
        "CHROM": record.chrom,
        "POS": record.pos,
        "ID": record.id,
        "REF": record.ref,
        "ALT": list(record.alt),
        "QUAL": record.qual,
        "FILTER": list(record.filter),
        "INFO": dict(record.info),
    }
    if record.has_samples:
        data["FORMAT"] = list(record.format)
        data["samples"] = [dict(s) for s in record.samples]
    return data


def _project(record: VcfRecord, columns: Sequence[str]) -> Dict[str, Any]:
    full = record_to_dict(record)
    projected = {}
    for name in columns:
        if name in full:
            projected[name] = full[name]
        elif name in JSON_OBJECT_KEYS:
            continue
        else:
            value = field_value(record, name)
            if value is not None:
                projected[name] = list(value) if isinstance(value, tuple) else value
    return projected


def to_json(records: Iterable[VcfRecord], columns: Optional[Sequence[str]] = None) -> str:
    if columns:
        data = [_project(r, columns) for r in records]
    else:
        data = [record_to_dict(r) for r in records]
    return json.dumps(data, indent=2)


def serialize(header: VcfHeader, records: Iterable[VcfRecord], fmt: str,
              options: Optional[ExportOptions] = None) -> ExportPayload:
    """
    Serialize records (or a View) to one of the supported formats.
    
    Args:
        header: Header of the decoded file
        records: Records or a View over them
        fmt: 'vcf', 'csv' or 'json'
        options: Header inclusion, column allow-list and filename
        
    Returns:
        ExportPayload with content, filename and media type
        
    Raises:
        UnsupportedFormat: If ``fmt`` is not a supported format
    """
    options = options or ExportOptions()
    fmt = (fmt or "").lower()
    if fmt not in MEDIA_TYPES:
        raise UnsupportedFormat("Unsupported export format", details=fmt or "<none>")
    
    records = list(records)
    if fmt == "vcf":
        content = to_vcf(header, records, include_header=options.include_header)
    elif fmt == "csv":
        content = to_csv(records, options.columns)
    else:
        content = to_json(records, options.columns)
    
    log.info(f"Exported {len(records):,} records as {fmt.upper()}")
    return ExportPayload(
        content=content,
        filename=options.filename or default_filename(fmt),
        media_type=MEDIA_TYPES[fmt],
    )
