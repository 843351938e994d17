"""
Query evaluator module for VCF Explorer.

``evaluate`` is a pure function of (header, records, query): it applies the
free-text search, then the per-field filters (AND-combined), then a stable
multi-key sort, and returns a View of record references. Inputs are never
mutated, so concurrent evaluations over one decoded model need no locking.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple

from vcf_explorer.decoder import parse_number
from vcf_explorer.exceptions import QueryError
from vcf_explorer.fields import field_value, searchable_text, to_text
from vcf_explorer.model import VcfHeader, VcfRecord

# Configure logging
log = logging.getLogger("vcf-explorer")


class FilterKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"


NUMERIC_OPERATORS = {
    "gt": lambda a, b: a > b,
    "lt": lambda a, b: a < b,
    "gte": lambda a, b: a >= b,
    "lte": lambda a, b: a <= b,
    "eq": lambda a, b: a == b,
}
OPERATOR_ALIASES = {"equals": "eq"}
SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class FieldFilter:
    """
    Filter descriptor for one field.
    
    Args:
        kind: text, number or select
        value: Operand; None, "" or an empty collection makes the filter inert
        operator: Comparison for number filters (gt, lt, gte, lte, eq)
    """
    
    kind: FilterKind
    value: Any = None
    operator: Optional[str] = None
    
    def __post_init__(self):
        try:
            object.__setattr__(self, "kind", FilterKind(self.kind))
        except ValueError:
            raise QueryError("Unknown filter kind", details=str(self.kind))
        if self.kind is FilterKind.NUMBER:
            operator = OPERATOR_ALIASES.get(self.operator, self.operator) or "eq"
            if operator not in NUMERIC_OPERATORS:
                raise QueryError("Unknown numeric operator", details=str(self.operator))
            object.__setattr__(self, "operator", operator)
    
    @property
    def is_inert(self) -> bool:
        if self.value is None:
            return True
        if isinstance(self.value, str):
            return self.value == ""
        if isinstance(self.value, (list, tuple, set, frozenset)):
            return len(self.value) == 0
        return False


@dataclass(frozen=True)
class SortKey:
    field: str
    direction: str = "asc"
    priority: int = 0
    
    def __post_init__(self):
        if self.direction not in SORT_DIRECTIONS:
            raise QueryError("Sort direction must be 'asc' or 'desc'", details=str(self.direction))


@dataclass(frozen=True)
class QuerySpec:
    """Free-text term, per-field filters and sort keys."""
    
    search: str = ""
    filters: Mapping[str, FieldFilter] = field(default_factory=dict)
    sort: Tuple[SortKey, ...] = ()
    
    def __post_init__(self):
        object.__setattr__(self, "sort", tuple(self.sort))
        object.__setattr__(self, "filters", dict(self.filters))


class View:
    """
    Ordered references into a record sequence.
    
    Holds indices only; iterating yields the original record objects.
    A view is stale as soon as the query or the model changes.
    """
    
    def __init__(self, records: Sequence[VcfRecord], indices: Sequence[int]):
        self._records = records
        self.indices: Tuple[int, ...] = tuple(indices)
    
    def __len__(self):
        return len(self.indices)
    
    def __iter__(self) -> Iterator[VcfRecord]:
        for i in self.indices:
            yield self._records[i]
    
    def __getitem__(self, position: int) -> VcfRecord:
        return self._records[self.indices[position]]
    
    def __repr__(self):
        return f"View({len(self.indices)} of {len(self._records)} records)"
    
    @property
    def source(self) -> Sequence[VcfRecord]:
        return self._records
    
    def records(self) -> List[VcfRecord]:
        return list(self)


def matches_search(record: VcfRecord, term: str) -> bool:
    """Case-insensitive substring match against every field's string form."""
    needle = term.lower()
    return any(needle in text.lower() for text in searchable_text(record))


def _to_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        number = parse_number(value)
        return float(number) if number is not None else None
    return None


def _same_value(a, b) -> bool:
    # Flags never equal numbers (True == 1 in Python)
    if isinstance(a, bool) or isinstance(b, bool):
        return a is b or to_text(a) == to_text(b)
    return a == b or to_text(a) == to_text(b)


def matches_filter(value: Any, flt: FieldFilter) -> bool:
    """
    Apply one filter to a resolved field value.
    
    Non-numeric values under a number filter fail the predicate rather than
    raising.
    """
    if flt.is_inert:
        return True
    
    if flt.kind is FilterKind.TEXT:
        return str(flt.value).lower() in to_text(value).lower()
    
    if flt.kind is FilterKind.NUMBER:
        number = _to_number(value)
        operand = _to_number(flt.value)
        if number is None or operand is None or number != number or operand != operand:
            return False
        return NUMERIC_OPERATORS[flt.operator](number, operand)
    
    candidates = value if isinstance(value, tuple) else (value,)
    if isinstance(flt.value, (list, tuple, set, frozenset)):
        return any(_same_value(c, option) for c in candidates for option in flt.value)
    return any(_same_value(c, flt.value) for c in candidates)


def sort_rank(value) -> Tuple[int, float, str]:
    """
    Total-order rank of a present value: numbers first, numerically, then
    everything else by its string form.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, float(value), "")
    return (1, 0.0, to_text(value))


def sort_indices(records: Sequence[VcfRecord], indices: Sequence[int],
                 keys: Sequence[SortKey]) -> List[int]:
    """
    Stable multi-key sort of ``indices`` (lowest priority number first).
    
    One stable pass per key, from the least significant key to the most
    significant. Records missing the key's value go last in either direction
    and keep their relative order.
    
    Returns:
        New list of indices; neither input is modified
    """
    ordered = list(indices)
    for key in reversed(sorted(keys, key=lambda k: k.priority)):
        values = {i: field_value(records[i], key.field) for i in ordered}
        present = [i for i in ordered if values[i] is not None]
        missing = [i for i in ordered if values[i] is None]
        present.sort(key=lambda i: sort_rank(values[i]), reverse=key.direction == "desc")
        ordered = present + missing
    return ordered


def evaluate(header: VcfHeader, records: Sequence[VcfRecord], query: Optional[QuerySpec] = None) -> View:
    """
    Produce the ordered view for a query.
    
    Args:
        header: Header of the decoded file
        records: Source records (never mutated)
        query: Search term, field filters and sort keys
        
    Returns:
        View over ``records``
    """
    query = query or QuerySpec()
    indices = range(len(records))
    
    if query.search:
        indices = [i for i in indices if matches_search(records[i], query.search)]
    
    for name, flt in query.filters.items():
        if flt.is_inert:
            continue
        indices = [i for i in indices if matches_filter(field_value(records[i], name), flt)]
    
    ordered = sort_indices(records, indices, query.sort)
    log.debug(f"Query kept {len(ordered):,} of {len(records):,} records")
    return View(records, ordered)
