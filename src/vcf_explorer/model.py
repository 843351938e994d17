"""
Record model for VCF Explorer.

Typed, immutable representation of a VCF header and its variant records.
Sequences are stored as tuples and mappings as read-only proxies, so a
decoded model can be shared between concurrent queries without locking.
To change data, build a new instance.
"""

import re
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

# Tagged INFO value: True for a flag, a number, or a raw string
InfoValue = Union[bool, int, float, str]

FIXED_COLUMNS = ("CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO")
REQUIRED_COLUMN_COUNT = len(FIXED_COLUMNS)

# Literal used by VCF for "value absent"
MISSING = "."

DEFAULT_FILEFORMAT = "VCFv4.2"

_ALLELE_RE = re.compile(r"^[A-Za-z*.\-]+$")


def _freeze_mapping(value) -> Mapping:
    if isinstance(value, MappingProxyType):
        return value
    return MappingProxyType(dict(value or {}))


def _thaw(value):
    """Convert read-only proxies back to plain containers (for pickling)."""
    if isinstance(value, MappingProxyType):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return tuple(_thaw(v) for v in value)
    return value


class _Frozen:
    """Pickle support for dataclasses holding mapping proxies."""

    def __reduce__(self):
        return (self.__class__, tuple(_thaw(getattr(self, f.name)) for f in fields(self)))


@dataclass(frozen=True)
class VcfHeader(_Frozen):
    """
    Header registries of a VCF file.
    
    ``samples`` order is significant: it is the positional join key for the
    per-sample values of every record.
    """

    fileformat: str = DEFAULT_FILEFORMAT
    info: Mapping[str, str] = field(default_factory=dict)
    format: Mapping[str, str] = field(default_factory=dict)
    samples: Tuple[str, ...] = ()
    contigs: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    meta: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "info", _freeze_mapping(self.info))
        object.__setattr__(self, "format", _freeze_mapping(self.format))
        object.__setattr__(self, "samples", tuple(self.samples))
        object.__setattr__(self, "contigs", MappingProxyType(
            {k: _freeze_mapping(v) for k, v in dict(self.contigs or {}).items()}
        ))
        object.__setattr__(self, "meta", MappingProxyType(
            {k: tuple(v) for k, v in dict(self.meta or {}).items()}
        ))

    @property
    def sample_count(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class VcfRecord(_Frozen):
    """
    A single variant record.
    
    Absent states are kept distinct from empty ones: ``id=None`` is "no
    identifier", ``qual=None`` is "no quality" (not zero), ``alt=()`` is "no
    alternate allele" and ``filter=()`` is "filters not evaluated" (as
    opposed to ``("PASS",)``).
    
    Raises:
        ValueError: If a structural invariant does not hold
    """

    chrom: str
    pos: int
    ref: str
    id: Optional[str] = None
    alt: Tuple[str, ...] = ()
    qual: Optional[float] = None
    filter: Tuple[str, ...] = ()
    info: Mapping[str, InfoValue] = field(default_factory=dict)
    format: Optional[Tuple[str, ...]] = None
    samples: Optional[Tuple[Mapping[str, str], ...]] = None

    def __post_init__(self):
        if not self.chrom:
            raise ValueError("CHROM must be a non-empty string")
        if isinstance(self.pos, bool) or not isinstance(self.pos, int) or self.pos < 1:
            raise ValueError(f"POS must be an integer >= 1, got {self.pos!r}")
        if not self.ref or not _ALLELE_RE.match(self.ref):
            raise ValueError(f"REF must be a non-empty allele string, got {self.ref!r}")

        object.__setattr__(self, "alt", tuple(self.alt))
        object.__setattr__(self, "filter", tuple(self.filter))
        object.__setattr__(self, "info", _freeze_mapping(self.info))

        if self.format is not None:
            object.__setattr__(self, "format", tuple(self.format))
        if self.samples is not None:
            if self.format is None:
                raise ValueError("Per-sample values require FORMAT field names")
            frozen = tuple(_freeze_mapping(s) for s in self.samples)
            for index, sample in enumerate(frozen):
                if set(sample) != set(self.format):
                    raise ValueError(
                        f"Sample {index} does not have exactly one value per FORMAT field"
                    )
            object.__setattr__(self, "samples", frozen)

    @property
    def has_samples(self) -> bool:
        return self.format is not None and self.samples is not None


@dataclass(frozen=True)
class VcfData:
    """A decoded VCF: header plus the ordered record sequence."""

    header: VcfHeader = field(default_factory=VcfHeader)
    records: Tuple[VcfRecord, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "records", tuple(self.records))

    def __len__(self):
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records


def build_sample(format_keys: Sequence[str], values: Sequence[str]) -> Dict[str, str]:
    """
    Zip per-sample values against FORMAT keys.
    
    Missing or empty trailing values are padded with the ``.`` sentinel
    rather than omitted.
    
    Args:
        format_keys: FORMAT field names in order
        values: Raw colon-split values for one sample
        
    Returns:
        Mapping with exactly one entry per FORMAT key
    """
    sample = {}
    for i, key in enumerate(format_keys):
        value = values[i] if i < len(values) else ""
        sample[key] = value if value != "" else MISSING
    return sample
