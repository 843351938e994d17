"""
Caching module for VCF Explorer.
Stores decoded models on disk so repeated runs over the same input skip decoding.
"""

import os
import pickle
import hashlib
import logging
from pathlib import Path
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union

from vcf_explorer.exceptions import CacheError
from vcf_explorer.sources import is_url

# Configure logging
log = logging.getLogger("vcf-explorer")

CACHE_SUFFIX = ".cache"


class DecodeCache:
    """Disk cache for decode results, keyed on the input's identity."""
    
    def __init__(self, cache_dir: Union[str, Path] = "./cache", max_age_hours: float = 24,
                 enabled: bool = True):
        """
        Initialize the cache manager.
        
        Args:
            cache_dir: Directory to store cache files
            max_age_hours: Maximum age of cache files in hours before invalidation
            enabled: Whether caching is enabled
        """
        self.cache_dir = Path(cache_dir)
        self.max_age = timedelta(hours=max_age_hours)
        self.enabled = enabled
        
        if self.enabled:
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise CacheError(f"Cannot create cache directory {self.cache_dir}", details=str(e))
            log.info(f"Cache initialized at {self.cache_dir} (max age: {max_age_hours} hours)")
    
    def _entries(self, pattern: str = f"*{CACHE_SUFFIX}"):
        if not self.enabled or not self.cache_dir.exists():
            return []
        return list(self.cache_dir.glob(pattern))
    
    def _is_expired(self, cache_file: Path, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now()
        try:
            mtime = datetime.fromtimestamp(cache_file.stat().st_mtime)
        except OSError:
            return True
        return now - mtime > self.max_age
    
    def count_entries(self) -> int:
        """Count the number of cache entries."""
        return len(self._entries())
    
    def get_total_size(self) -> float:
        """
        Get the total size of all cache entries in MB.
        
        Returns:
            float: Total size in MB
        """
        total_bytes = sum(f.stat().st_size for f in self._entries())
        return total_bytes / (1024 * 1024)
    
    def count_expired_entries(self) -> int:
        now = datetime.now()
        return sum(1 for f in self._entries() if self._is_expired(f, now))
    
    @staticmethod
    def _location_digest(location: Union[str, Path]) -> str:
        """Short digest identifying the input regardless of its current content."""
        text = str(location) if is_url(location) else os.path.abspath(location)
        return hashlib.md5(text.encode()).hexdigest()[:12]
    
    def _get_cache_key(self, location: Union[str, Path], kind: str, params: Any = None) -> str:
        """
        Generate a unique cache key based on input parameters.
        
        Local files are identified by absolute path, size and modification
        time; URLs by the URL string alone.
        
        Args:
            location: Path or URL of the VCF input
            kind: Kind of cached result (e.g. 'decoded')
            params: Additional parameters that affect the result
        
        Returns:
            String cache key
        """
        if is_url(location):
            key_parts = [str(location), kind]
        else:
            try:
                file_stat = os.stat(location)
                file_size, file_mtime = file_stat.st_size, file_stat.st_mtime
            except OSError:
                file_size, file_mtime = 0, 0
            key_parts = [os.path.abspath(location), str(file_size), str(file_mtime), kind]
        
        if params:
            if isinstance(params, dict):
                key_parts.extend(f"{k}:{v}" for k, v in sorted(params.items()))
            else:
                key_parts.append(str(params))
        
        return hashlib.md5("|".join(key_parts).encode()).hexdigest()
    
    def _get_cache_path(self, location: Union[str, Path], kind: str, params: Any = None) -> Path:
        cache_key = self._get_cache_key(location, kind, params)
        return self.cache_dir / f"{kind}_{self._location_digest(location)}_{cache_key}{CACHE_SUFFIX}"
    
    def get(self, location: Union[str, Path], kind: str, params: Any = None) -> Any:
        """
        Retrieve a cached result if available and valid.
        
        Args:
            location: Path or URL of the VCF input
            kind: Kind of cached result
            params: Additional parameters
        
        Returns:
            Cached data if available, None otherwise
        """
        if not self.enabled:
            return None
        
        cache_path = self._get_cache_path(location, kind, params)
        if not cache_path.exists():
            return None
        
        if self._is_expired(cache_path):
            log.info(f"Cache expired for {kind} on {location}")
            return None
        
        try:
            with open(cache_path, "rb") as f:
                data = pickle.load(f)
        except (OSError, pickle.PickleError, EOFError, AttributeError, ImportError) as e:
            log.warning(f"Error reading cache entry {cache_path.name}: {e}")
            return None
        log.info(f"Cache hit for {kind} (entry: {cache_path.stem[-8:]})")
        return data
    
    def set(self, data: Any, location: Union[str, Path], kind: str, params: Any = None) -> bool:
        """
        Store a result in the cache.
        
        Args:
            data: Data to cache
            location: Path or URL of the VCF input
            kind: Kind of cached result
            params: Additional parameters
        
        Returns:
            True if successful, False otherwise
        """
        if not self.enabled:
            return False
        
        cache_path = self._get_cache_path(location, kind, params)
        try:
            with open(cache_path, "wb") as f:
                pickle.dump(data, f)
        except (OSError, pickle.PickleError) as e:
            log.warning(f"Error writing to cache: {e}")
            return False
        log.info(f"Cached {kind} result for {location}")
        return True
    
    def invalidate(self, location: Optional[Union[str, Path]] = None, kind: Optional[str] = None) -> int:
        """
        Invalidate cache entries.
        
        Args:
            location: Path or URL (if None, entries for every input)
            kind: Kind of result (if None, entries of every kind)
        
        Returns:
            Number of cache entries invalidated
        """
        kind_part = kind if kind is not None else "*"
        location_part = self._location_digest(location) if location is not None else "*"
        
        count = 0
        for cache_file in self._entries(f"{kind_part}_{location_part}_*{CACHE_SUFFIX}"):
            cache_file.unlink()
            count += 1
        
        if count:
            log.info(f"Invalidated {count} cache entries")
        return count
    
    def clean_expired(self) -> int:
        """
        Remove all expired cache entries.
        
        Returns:
            Number of expired entries removed
        """
        now = datetime.now()
        count = 0
        for cache_file in self._entries():
            if self._is_expired(cache_file, now):
                cache_file.unlink()
                count += 1
        
        if count > 0:
            log.info(f"Cleaned {count} expired cache entries")
        return count
    
    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.
        
        Returns:
            Dictionary with cache statistics
        """
        if not self.enabled:
            return {"enabled": False}
        
        stats = {
            "enabled": True,
            "cache_dir": str(self.cache_dir),
            "max_age_hours": self.max_age.total_seconds() / 3600,
            "total_entries": 0,
            "total_size_mb": 0.0,
            "expired_entries": 0,
            "kinds": {},
        }
        
        now = datetime.now()
        for cache_file in self._entries():
            stats["total_entries"] += 1
            stats["total_size_mb"] += cache_file.stat().st_size / (1024 * 1024)
            if self._is_expired(cache_file, now):
                stats["expired_entries"] += 1
            kind = cache_file.stem.split("_", 1)[0]
            stats["kinds"][kind] = stats["kinds"].get(kind, 0) + 1
        
        stats["total_size_mb"] = round(stats["total_size_mb"], 2)
        return stats
