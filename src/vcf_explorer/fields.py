"""
Field access and column catalog for VCF Explorer.

Field names are shared by the query evaluator, the exporters and any
presentation layer:

    CHROM, POS, ID, REF, ALT, QUAL, FILTER   fixed columns
    INFO_<key>                               one INFO value
    SAMPLE_<index>_<format key>              one per-sample value
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from vcf_explorer.model import MISSING, VcfHeader, VcfRecord

INFO_PREFIX = "INFO_"
SAMPLE_PREFIX = "SAMPLE_"

# (field, display name, value kind) for the fixed columns
FIXED_FIELDS = (
    ("CHROM", "Chromosome", "text"),
    ("POS", "Position", "number"),
    ("ID", "ID", "text"),
    ("REF", "Reference", "text"),
    ("ALT", "Alternative", "text"),
    ("QUAL", "Quality", "number"),
    ("FILTER", "Filter", "text"),
)
FIXED_FIELD_NAMES = tuple(name for name, _, _ in FIXED_FIELDS)


@dataclass(frozen=True)
class ColumnSpec:
    field: str
    display_name: str
    kind: str


def format_number(value) -> str:
    """Render a number the way VCF writes it (no trailing ``.0`` on integral values)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_text(value: Any, separator: str = ",") -> str:
    """
    String form of a field value used for searching, text filters and CSV.
    
    None becomes the empty string, sequences are joined with ``separator``.
    """
    if value is None:
        return ""
    if value is True:
        return "true"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, (tuple, list)):
        return separator.join(to_text(v) for v in value)
    return str(value)


def info_to_text(info) -> str:
    """Render an INFO mapping in VCF form (flags as bare keys, ``.`` if empty)."""
    pairs = []
    for key, value in info.items():
        if value is True:
            pairs.append(key)
        else:
            pairs.append(f"{key}={to_text(value)}")
    return ";".join(pairs) if pairs else MISSING


def parse_sample_field(name: str):
    """
    Split ``SAMPLE_<index>_<key>`` into ``(index, key)``.
    
    Returns:
        Tuple of (int, str), or None if ``name`` is not a sample field
    """
    if not name.startswith(SAMPLE_PREFIX):
        return None
    index, sep, key = name[len(SAMPLE_PREFIX):].partition("_")
    if not sep or not index.isdigit() or not key:
        return None
    return int(index), key


def field_value(record: VcfRecord, name: str) -> Any:
    """
    Resolve a field name against a record.
    
    Args:
        record: Record to read from
        name: Field name (fixed, INFO_<key> or SAMPLE_<index>_<key>)
        
    Returns:
        Native value, or None when the field is absent or unknown
    """
    if name == "CHROM":
        return record.chrom
    if name == "POS":
        return record.pos
    if name == "ID":
        return record.id
    if name == "REF":
        return record.ref
    if name == "ALT":
        return record.alt
    if name == "QUAL":
        return record.qual
    if name == "FILTER":
        return record.filter
    if name.startswith(INFO_PREFIX):
        return record.info.get(name[len(INFO_PREFIX):])
    sample_field = parse_sample_field(name)
    if sample_field is not None and record.samples is not None:
        index, key = sample_field
        if index < len(record.samples):
            return record.samples[index].get(key)
    return None


def searchable_text(record: VcfRecord) -> List[str]:
    """String forms of every field of ``record`` (for free-text search)."""
    texts = [
        record.chrom,
        str(record.pos),
        record.id or "",
        record.ref,
        to_text(record.alt, ","),
        to_text(record.qual),
        to_text(record.filter, ";"),
    ]
    if record.info:
        texts.append(info_to_text(record.info))
    if record.format is not None:
        texts.append(":".join(record.format))
    for sample in record.samples or ():
        texts.extend(sample.values())
    return texts


def _infer_kind(values: Iterable[Any]) -> str:
    observed = [v for v in values if v is not None]
    if not observed:
        return "text"
    if all(v is True for v in observed):
        return "flag"
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in observed):
        return "number"
    return "text"


def column_catalog(header: VcfHeader, records: Optional[Iterable[VcfRecord]] = None) -> List[ColumnSpec]:
    """
    Derive the column catalog for a decoded file.
    
    Args:
        header: Decoded header (INFO registry drives the INFO columns)
        records: Optional records used to infer INFO value kinds
        
    Returns:
        List of ColumnSpec: the fixed columns then one entry per INFO key
    """
    columns = [ColumnSpec(name, display, kind) for name, display, kind in FIXED_FIELDS]
    records = list(records) if records is not None else None
    for key in header.info:
        kind = "text"
        if records:
            kind = _infer_kind(r.info.get(key) for r in records)
        columns.append(ColumnSpec(f"{INFO_PREFIX}{key}", key, kind))
    return columns
