"""
Exceptions module for VCF Explorer.
Defines the error taxonomy shared by the decoder, the query evaluator,
the exporters and the host-side acquisition layer.
"""

import time
import functools
import logging

log = logging.getLogger("vcf-explorer")


class VcfExplorerError(Exception):
    """Base exception class for all VCF Explorer errors."""
    
    def __init__(self, message="An error occurred in VCF Explorer", details=None):
        self.message = message
        self.details = details
        super().__init__(self.message)
    
    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class DecodeError(VcfExplorerError):
    """Fatal, whole-input error: the input cannot be interpreted as VCF text."""
    
    def __init__(self, message="Error decoding VCF input", details=None):
        super().__init__(message, details)


class AcquisitionError(DecodeError):
    """The raw input could not be acquired (file, network, decompression)."""
    
    def __init__(self, message="Error acquiring VCF input", details=None):
        super().__init__(message, details)


class UnsupportedFormat(VcfExplorerError):
    """Exception raised for an export format outside the supported set."""
    
    def __init__(self, message="Unsupported export format", details=None):
        super().__init__(message, details)


class QueryError(VcfExplorerError):
    """Exception raised for an invalid query specification."""
    
    def __init__(self, message="Invalid query specification", details=None):
        super().__init__(message, details)


class CacheError(VcfExplorerError):
    """Exception raised for errors related to caching."""
    
    def __init__(self, message="Error with cache operations", details=None):
        super().__init__(message, details)


class DecodeWarning(UserWarning):
    """
    Non-fatal decode issue. Instances are collected by the decoder, never raised.
    
    Args:
        message: Human-readable description
        line_number: 1-based line number in the input, if known
        chrom: Chromosome of the offending line, if known
        pos: Raw position column of the offending line, if known
    """
    
    def __init__(self, message, line_number=None, chrom=None, pos=None):
        self.message = message
        self.line_number = line_number
        self.chrom = chrom
        self.pos = pos
        super().__init__(message, line_number, chrom, pos)
    
    @property
    def context(self):
        parts = []
        if self.line_number is not None:
            parts.append(f"line {self.line_number}")
        if self.chrom:
            parts.append(f"{self.chrom}:{self.pos if self.pos is not None else '?'}")
        return ", ".join(parts)
    
    def __str__(self):
        if self.context:
            return f"{self.message} ({self.context})"
        return self.message


class RecordSkipped(DecodeWarning):
    """A record line was dropped (too few columns, bad position, bad allele)."""


class CoercionFallback(DecodeWarning):
    """A field value degraded to absent, string or the missing sentinel."""


def describe_error(exc):
    """
    Build the single user-visible message for a failure.
    
    Args:
        exc: Exception raised while loading, decoding or exporting
        
    Returns:
        Human-readable message distinguishing acquisition, decode and export failures
    """
    if isinstance(exc, AcquisitionError):
        return f"Failed to load VCF: {exc}"
    if isinstance(exc, DecodeError):
        return f"Failed to parse VCF file: {exc}"
    if isinstance(exc, UnsupportedFormat):
        return f"Unsupported export format: {exc.details or exc.message}"
    if isinstance(exc, VcfExplorerError):
        return str(exc)
    return f"Unexpected error: {exc}"


# Utility function for retrying operations
def retry_operation(max_attempts=3, retry_delay=1, retry_exceptions=(AcquisitionError, ConnectionError)):
    """
    Decorator for retrying operations that might fail transiently.
    
    Args:
        max_attempts: Maximum number of attempts
        retry_delay: Delay between attempts in seconds
        retry_exceptions: Tuple of exceptions to catch and retry
        
    Returns:
        Decorator function
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempts = 0
            while attempts < max_attempts:
                try:
                    return func(*args, **kwargs)
                except retry_exceptions as e:
                    attempts += 1
                    if attempts == max_attempts:
                        log.error(f"Operation failed after {max_attempts} attempts: {e}")
                        raise
                    log.warning(f"Operation failed, retrying ({attempts}/{max_attempts}): {e}")
                    time.sleep(retry_delay)
        return wrapper
    return decorator
