"""
Acquisition module for VCF Explorer.
Resolves a local path or an http(s) URL to raw VCF text for the decoder.

Everything here is host-side plumbing: the decoder never reads files or
talks to the network. All failures surface as AcquisitionError.
"""

import gzip
import zlib
import logging
from pathlib import Path
from typing import Union
from urllib.parse import urlparse

import requests

from vcf_explorer.exceptions import AcquisitionError, DecodeError, retry_operation

# Configure logging
log = logging.getLogger("vcf-explorer")

VALID_EXTENSIONS = (".vcf", ".vcf.gz")
VALID_PROTOCOLS = ("http", "https")
GZIP_MAGIC = b"\x1f\x8b"
DEFAULT_TIMEOUT = 60
TRANSIENT_ERRORS = (requests.exceptions.Timeout, requests.exceptions.ConnectionError)


def is_url(location: Union[str, Path]) -> bool:
    return urlparse(str(location)).scheme in VALID_PROTOCOLS


def validate_location(location: Union[str, Path]) -> bool:
    """
    Check that a path or URL names a VCF file (.vcf or .vcf.gz).
    
    URLs must use http or https.
    """
    text = str(location)
    if is_url(text):
        path = urlparse(text).path.lower()
        return any(path.endswith(ext) for ext in VALID_EXTENSIONS)
    if urlparse(text).scheme and len(urlparse(text).scheme) > 1:
        return False
    return any(text.lower().endswith(ext) for ext in VALID_EXTENSIONS)


def _decompress(raw: bytes, source: str) -> bytes:
    try:
        return gzip.decompress(raw)
    except (OSError, EOFError, zlib.error) as e:
        raise AcquisitionError(f"Failed to decompress {source}", details=str(e))


def _to_text(raw: bytes, source: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"{source} cannot be interpreted as UTF-8 text", details=str(e))


def read_file(path: Union[str, Path]) -> str:
    """
    Read a local VCF file, decompressing gzip content.
    
    Args:
        path: Path to a .vcf or .vcf.gz file
        
    Returns:
        File content as text
    """
    path = Path(path)
    log.info(f"Reading VCF file: {path}")
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise AcquisitionError(f"Cannot read {path}", details=str(e))
    if path.suffix == ".gz" or raw[:2] == GZIP_MAGIC:
        raw = _decompress(raw, str(path))
    return _to_text(raw, str(path))


@retry_operation(max_attempts=3, retry_delay=1, retry_exceptions=TRANSIENT_ERRORS)
def _download(url: str, timeout: float) -> requests.Response:
    response = requests.get(
        url,
        headers={"Accept": "text/plain, application/octet-stream, */*"},
        timeout=timeout,
    )
    response.raise_for_status()
    return response


def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """
    Fetch raw bytes from an http(s) URL, decompressing gzip content.
    
    Only timeouts and connection failures are retried.
    
    Args:
        url: Location of the VCF file
        timeout: Request timeout in seconds
        
    Returns:
        Raw (uncompressed) response body
    """
    log.info(f"Fetching VCF from URL: {url}")
    try:
        response = _download(url, timeout)
    except requests.exceptions.Timeout as e:
        raise AcquisitionError(f"Timed out after {timeout}s fetching {url}", details=str(e))
    except requests.exceptions.HTTPError as e:
        raise AcquisitionError(f"HTTP error fetching {url}", details=str(e))
    except requests.exceptions.RequestException as e:
        raise AcquisitionError(
            "Network error: unable to fetch the file, check the URL and your connection",
            details=str(e),
        )
    
    raw = response.content
    content_type = response.headers.get("content-type", "")
    if url.lower().endswith(".gz") or "gzip" in content_type or raw[:2] == GZIP_MAGIC:
        raw = _decompress(raw, url)
    return raw


def read_source(location: Union[str, Path], timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Acquire the raw text behind a path or URL.
    
    Args:
        location: Local path or http(s) URL
        timeout: Network timeout in seconds (URLs only)
        
    Returns:
        VCF text ready for the decoder
        
    Raises:
        AcquisitionError: If the input cannot be read, fetched or decompressed
        DecodeError: If the bytes are not UTF-8 text
    """
    if is_url(location):
        return _to_text(fetch_url(str(location), timeout=timeout), str(location))
    return read_file(location)
