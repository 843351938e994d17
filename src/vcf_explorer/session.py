"""
Session module for VCF Explorer.
Holds one loaded model together with the current query and its derived view.

The session is the host-side owner of state: it tracks load status and
progress, keeps the previous model when a load fails, and recomputes the
view only when the model or the query changed.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

from vcf_explorer.decoder import decode_vcf
from vcf_explorer.exceptions import DecodeWarning, describe_error
from vcf_explorer.export import ExportOptions, ExportPayload, serialize
from vcf_explorer.fields import ColumnSpec, column_catalog
from vcf_explorer.model import VcfData
from vcf_explorer.query import FieldFilter, QuerySpec, SortKey, View, evaluate
from vcf_explorer.sources import DEFAULT_TIMEOUT, read_source

# Configure logging
log = logging.getLogger("vcf-explorer")

STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_ERROR = "error"


class ExplorerSession:
    """Loaded VCF data, the active query and the cached view over it."""
    
    def __init__(self, progress_callback: Optional[Callable[[float], None]] = None):
        """
        Initialize an empty session.
        
        Args:
            progress_callback: Optional callable notified of decode progress
        """
        self.status = STATUS_IDLE
        self.progress = 0.0
        self.error: Optional[str] = None
        self.data = VcfData()
        self.warnings: List[DecodeWarning] = []
        self._query = QuerySpec()
        self._view: Optional[View] = None
        self._progress_callback = progress_callback
    
    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    
    def _on_progress(self, percent: float) -> None:
        self.progress = percent
        if self._progress_callback:
            self._progress_callback(percent)
    
    def _fail(self, exc: Exception) -> bool:
        self.status = STATUS_ERROR
        self.progress = 0.0
        self.error = describe_error(exc)
        log.error(self.error)
        return False
    
    def _accept(self, data: VcfData, warnings: Sequence[DecodeWarning]) -> None:
        self.data = data
        self.warnings = list(warnings)
        self._view = None
        self.status = STATUS_READY
        self.error = None
        self.progress = 100.0
    
    def load_text(self, text: Union[str, bytes]) -> bool:
        """
        Decode VCF text and make it the session's model.
        
        Args:
            text: Raw VCF text
            
        Returns:
            True on success; on failure the previous model is kept and
            ``error`` holds the message
        """
        self.status = STATUS_LOADING
        self.progress = 0.0
        self.error = None
        try:
            result = decode_vcf(text, progress_callback=self._on_progress)
        except Exception as e:
            return self._fail(e)
        self._accept(result.data, result.warnings)
        return True
    
    def load_source(self, location: Union[str, Path], timeout: float = DEFAULT_TIMEOUT) -> bool:
        """
        Acquire and decode a local file or URL.
        
        Args:
            location: Path or http(s) URL
            timeout: Network timeout in seconds
            
        Returns:
            True on success, False on failure (see ``error``)
        """
        self.status = STATUS_LOADING
        self.progress = 0.0
        self.error = None
        try:
            text = read_source(location, timeout=timeout)
        except Exception as e:
            return self._fail(e)
        return self.load_text(text)
    
    def load_data(self, data: VcfData, warnings: Sequence[DecodeWarning] = ()) -> None:
        """Adopt an already decoded model, e.g. one restored from the cache."""
        self._accept(data, warnings)
    
    def clear(self) -> None:
        """Drop the model and reset the query."""
        self.data = VcfData()
        self.warnings = []
        self._query = QuerySpec()
        self._view = None
        self.status = STATUS_IDLE
        self.progress = 0.0
        self.error = None
    
    # ------------------------------------------------------------------
    # Query state
    # ------------------------------------------------------------------
    
    @property
    def query(self) -> QuerySpec:
        return self._query
    
    @query.setter
    def query(self, value: QuerySpec) -> None:
        if value != self._query:
            self._query = value
            self._view = None
    
    def set_search(self, term: str) -> None:
        self.query = replace(self._query, search=term or "")
    
    def set_filter(self, field: str, flt: FieldFilter) -> None:
        filters = dict(self._query.filters)
        filters[field] = flt
        self.query = replace(self._query, filters=filters)
    
    def clear_filter(self, field: str) -> None:
        if field in self._query.filters:
            filters = {k: v for k, v in self._query.filters.items() if k != field}
            self.query = replace(self._query, filters=filters)
    
    def set_sort(self, keys: Sequence[SortKey]) -> None:
        self.query = replace(self._query, sort=tuple(keys))
    
    def reset_filters(self) -> None:
        """Clear the search term and every filter; sort keys are kept."""
        self.query = replace(self._query, search="", filters={})
    
    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    
    @property
    def view(self) -> View:
        if self._view is None:
            self._view = evaluate(self.data.header, self.data.records, self._query)
        return self._view
    
    def columns(self) -> List[ColumnSpec]:
        return column_catalog(self.data.header, self.data.records)
    
    def export(self, fmt: str, options: Optional[ExportOptions] = None) -> ExportPayload:
        """
        Serialize the current view.
        
        Raises:
            UnsupportedFormat: If ``fmt`` is not a supported format
        """
        return serialize(self.data.header, self.view, fmt, options)
