"""
MIT License

Copyright (c) 2025 Pan Yu

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.

Author: Pan Yu
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Dict, List, NamedTuple, Optional

from .lookup_table import LookupTable

_MB = 1024 * 1024


class _CacheEntry(NamedTuple):
  lut: LookupTable
  last_access: float


class CacheManager:
  """
  Thread-safe LRU cache of built lookup tables.
  
  Keys are strings whose first '_'-separated field identifies the camera, so one
  manager can be shared by several rectifiers. With a memory limit, the least recently
  used tables are dropped to make room for new ones.
  """
  
  def __init__(self, max_memory_mb: Optional[float] = None):
    """
    Parameters:
    - max_memory_mb: Optional maximum memory usage in MB. If None, no limit is enforced.
    """
    self._entries: 'OrderedDict[str, _CacheEntry]' = OrderedDict()
    self._max_bytes = None if max_memory_mb is None else max_memory_mb * _MB
    self._max_memory_mb = max_memory_mb
    self._stored_bytes = 0
    self._lock = threading.RLock()
    self._stats = {'accesses': 0, 'hits': 0, 'evictions': 0}
  
  def get(self, cache_key: str) -> Optional[LookupTable]:
    """Cached table for cache_key, marking it most recently used; None on a miss."""
    with self._lock:
      self._stats['accesses'] += 1
      entry = self._entries.get(cache_key)
      if entry is None:
        return None
      self._entries[cache_key] = entry._replace(last_access=time.time())
      self._entries.move_to_end(cache_key)
      self._stats['hits'] += 1
      return entry.lut
  
  def _drop(self, cache_key: str) -> LookupTable:
    entry = self._entries.pop(cache_key)
    self._stored_bytes -= entry.lut.nbytes
    return entry.lut
  
  def _make_room(self, needed_bytes: int) -> bool:
    # Oldest entries sit at the front of the OrderedDict
    while self._entries and self._stored_bytes + needed_bytes > self._max_bytes:
      lru_key = next(iter(self._entries))
      freed = self._drop(lru_key).nbytes
      self._stats['evictions'] += 1
      print(f"LRU evicted: {lru_key} (freed {freed / _MB:.1f} MB)")
    return self._stored_bytes + needed_bytes <= self._max_bytes
  
  def put(self, cache_key: str, lut: LookupTable) -> bool:
    """
    Store a copy of lut under cache_key.
    
    Returns:
    - True if stored, False if the table alone exceeds the memory limit
    """
    with self._lock:
      if cache_key in self._entries:
        self._drop(cache_key)
      
      if self._max_bytes is not None and not self._make_room(lut.nbytes):
        print(f"Warning: Cannot add cache entry - exceeds memory limit even after eviction "
              f"({self._max_memory_mb:.1f} MB)")
        return False
      
      self._entries[cache_key] = _CacheEntry(lut.copy(), time.time())
      self._stored_bytes += lut.nbytes
      return True
  
  def remove(self, cache_key: str) -> bool:
    """Drop one entry; returns whether it was present."""
    with self._lock:
      if cache_key not in self._entries:
        return False
      self._drop(cache_key)
      return True
  
  def clear(self) -> None:
    with self._lock:
      self._entries.clear()
      self._stored_bytes = 0
  
  def __contains__(self, cache_key: str) -> bool:
    with self._lock:
      return cache_key in self._entries
  
  def __len__(self):
    with self._lock:
      return len(self._entries)
  
  def get_info(self) -> Dict[str, Any]:
    """Entry count, memory usage and access statistics."""
    with self._lock:
      access_times = [entry.last_access for entry in self._entries.values()]
      return {
        'total_cached_tables': len(self._entries),
        'memory_usage_bytes': self._stored_bytes,
        'memory_usage_mb': self._stored_bytes / _MB,
        'max_memory_mb': self._max_memory_mb,
        'memory_limit_enabled': self._max_bytes is not None,
        'total_accesses': self._stats['accesses'],
        'total_hits': self._stats['hits'],
        'total_evictions': self._stats['evictions'],
        'cache_age_span_seconds': max(access_times) - min(access_times) if len(access_times) > 1 else 0,
      }
  
  def print_status(self) -> None:
    info = self.get_info()
    print(f"Cache status: {info['total_cached_tables']} lookup tables, "
          f"{info['memory_usage_mb']:.1f} MB, "
          f"{info['total_hits']}/{info['total_accesses']} hits")
    if info['memory_limit_enabled']:
      usage_percent = 100.0 * self._stored_bytes / self._max_bytes
      print(f"Cache memory usage: {usage_percent:.1f}% of {info['max_memory_mb']:.1f} MB limit")
  
  def get_cache_keys(self, prefix: Optional[str] = None) -> List[str]:
    """Keys from least to most recently used, optionally only those starting with prefix."""
    with self._lock:
      return [key for key in self._entries if prefix is None or key.startswith(prefix)]
  
  def get_memory_usage_by_camera(self) -> Dict[str, float]:
    """Memory usage in MB per camera id (the key field before the first '_')."""
    with self._lock:
      usage: Dict[str, float] = {}
      for key, entry in self._entries.items():
        camera_id = key.split('_', 1)[0]
        usage[camera_id] = usage.get(camera_id, 0.0) + entry.lut.nbytes / _MB
      return usage
