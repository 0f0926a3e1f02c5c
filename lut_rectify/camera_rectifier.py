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

import math
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .bounds import min_max_rotated_col, min_max_rotated_row
from .cache_manager import CacheManager
from .camera_models import CameraInterface, make_camera
from .camera_params import CameraParams
from .lookup_table import LookupTable
from .lut_builder import build_lookup_table, compose_rotation_intrinsics, linear_intrinsics
from .range import Range
from .rectify import rectify_image


class CameraRectifier:
  """
  Rectification processor for one source camera with lookup table caching.
  
  A lookup table is built once per (output size, target intrinsics, rotation) and kept in
  a CacheManager, so rectifying a stream of frames with the same geometry only costs the
  resampling pass.
  """
  
  def __init__(self, camera: CameraInterface, camera_id: Optional[str] = None,
               use_vectorized: bool = True, cache_manager: Optional[CacheManager] = None):
    """
    Initialize CameraRectifier with a source camera model.
    
    Parameters:
    - camera: source camera model
    - camera_id: label used as cache key prefix; defaults to the camera class name
    - use_vectorized: if True, build tables with the vectorized builder
    - cache_manager: Optional shared cache manager. If None, creates a new one.
    """
    if camera is None:
      raise ValueError("Camera model is None")
    self.camera = camera
    self.camera_id = (camera_id or type(camera).__name__).replace('_', '-')
    self.use_vectorized = use_vectorized
    self.cache_manager = cache_manager if cache_manager is not None else CacheManager()
  
  @classmethod
  def from_params(cls, camera_params: CameraParams, **kwargs) -> 'CameraRectifier':
    """Create a rectifier for the camera described by a CameraParams object."""
    kwargs.setdefault('camera_id', str(camera_params.camera_id) if camera_params.camera_id is not None else None)
    return cls(make_camera(camera_params), **kwargs)
  
  def _resolve(self, output_width: Optional[int], output_height: Optional[int],
               rotation: Optional[np.ndarray], K_new: Optional[np.ndarray]) -> Tuple[int, int, np.ndarray, np.ndarray]:
    output_width = self.camera.width if output_width is None else int(output_width)
    output_height = self.camera.height if output_height is None else int(output_height)
    if output_width <= 0 or output_height <= 0:
      raise ValueError(f"Invalid output dimensions: {output_width}x{output_height}")
    rotation = np.eye(3) if rotation is None else np.asarray(rotation, dtype=np.float64)
    if K_new is None:
      K_new = linear_intrinsics(self.camera, output_width, output_height)
    return output_width, output_height, rotation, np.asarray(K_new, dtype=np.float64)
  
  def _generate_cache_key(self, output_width: int, output_height: int,
                          rotation: np.ndarray, K_new: np.ndarray) -> str:
    """Generate a unique cache key for the table parameters."""
    rotation_key = ",".join(f"{v:.6f}" for v in rotation.ravel())
    intrinsics_key = f"fx{K_new[0, 0]:.3f}_fy{K_new[1, 1]:.3f}_cx{K_new[0, 2]:.3f}_cy{K_new[1, 2]:.3f}"
    return f"{self.camera_id}_{output_width}x{output_height}_R[{rotation_key}]_{intrinsics_key}"
  
  def get_lookup_table(self, output_width: Optional[int] = None, output_height: Optional[int] = None,
                       rotation: Optional[np.ndarray] = None, K_new: Optional[np.ndarray] = None) -> LookupTable:
    """
    Get the lookup table for the given target camera, with caching.
    
    Parameters:
    - output_width, output_height: output image size (defaults to the source size)
    - rotation: rectifying rotation, old from new (defaults to identity)
    - K_new: target linear intrinsics (defaults to the source camera's linear intrinsics,
      re-centred on the output size)
    
    Returns:
    - built LookupTable
    """
    output_width, output_height, rotation, K_new = self._resolve(output_width, output_height, rotation, K_new)
    cache_key = self._generate_cache_key(output_width, output_height, rotation, K_new)
    
    lut = self.cache_manager.get(cache_key)
    if lut is not None:
      print(f"Using cached lookup table: {cache_key}")
      return lut
    
    lut = LookupTable(output_width, output_height)
    build_lookup_table(self.camera, compose_rotation_intrinsics(rotation, K_new), lut,
                       use_vectorized=self.use_vectorized)
    
    if self.cache_manager.put(cache_key, lut):
      print(f"Cached lookup table: {cache_key}")
    
    return lut
  
  def rectify(self, image: np.ndarray, output_width: Optional[int] = None, output_height: Optional[int] = None,
              rotation: Optional[np.ndarray] = None, K_new: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Rectify a grayscale image captured by the source camera.
    
    Returns:
    - rectified image shaped (output_height, output_width)
    """
    if image is None:
      raise ValueError("Input image is None")
    img_height, img_width = image.shape[:2]
    if img_width != self.camera.width or img_height != self.camera.height:
      raise ValueError(f"Input image size {img_width}x{img_height} does not match camera "
                       f"{self.camera.width}x{self.camera.height}")
    
    lut = self.get_lookup_table(output_width, output_height, rotation, K_new)
    return rectify_image(lut, image)
  
  def valid_region(self, rotation: Optional[np.ndarray] = None) -> Tuple[Range, Range]:
    """
    Column and row ranges of the rotated target whose pixels see into the source image.
    
    rotation has the same meaning as in get_lookup_table and rectify: it maps rays of
    the rectified camera into the source camera (old from new). The bound finders
    rotate source rays into the target frame, so they receive its inverse.
    """
    rotation = np.eye(3) if rotation is None else np.asarray(rotation, dtype=np.float64)
    new_from_old = rotation.T
    return min_max_rotated_col(self.camera, new_from_old), min_max_rotated_row(self.camera, new_from_old)
  
  def valid_crop(self, rotation: Optional[np.ndarray] = None) -> Tuple[int, int, np.ndarray]:
    """
    Output size and intrinsics of the largest axis-aligned crop of the rotated target
    that stays inside the source field of view.
    
    The crop keeps the source camera's linear focal lengths; the principal point is moved
    by the crop origin.
    
    Returns:
    - (output_width, output_height, K_new), ready for get_lookup_table / rectify
    """
    col_range, row_range = self.valid_region(rotation)
    print(f"Valid columns: {col_range}, valid rows: {row_range}")
    bounds = (col_range.minr, col_range.maxr, row_range.minr, row_range.maxr)
    if col_range.is_empty() or row_range.is_empty() or not all(math.isfinite(b) for b in bounds):
      raise ValueError("Rotation leaves no valid region inside the source field of view")
    
    col_start, row_start = math.ceil(col_range.minr), math.ceil(row_range.minr)
    output_width = math.floor(col_range.maxr) - col_start + 1
    output_height = math.floor(row_range.maxr) - row_start + 1
    if output_width <= 0 or output_height <= 0:
      raise ValueError("Rotation leaves no valid region inside the source field of view")
    
    K_new = linear_intrinsics(self.camera)
    K_new[0, 2] -= col_start
    K_new[1, 2] -= row_start
    return output_width, output_height, K_new
  
  def clear_cache(self):
    """Clear all cached lookup tables."""
    self.cache_manager.clear()
    print("Lookup table cache cleared")
  
  def get_cache_info(self) -> Dict[str, Any]:
    """Cache statistics, see CacheManager.get_info."""
    return self.cache_manager.get_info()
  
  def remove_cached_table(self, output_width: Optional[int] = None, output_height: Optional[int] = None,
                          rotation: Optional[np.ndarray] = None, K_new: Optional[np.ndarray] = None) -> bool:
    """Remove a specific lookup table from cache."""
    output_width, output_height, rotation, K_new = self._resolve(output_width, output_height, rotation, K_new)
    cache_key = self._generate_cache_key(output_width, output_height, rotation, K_new)
    if self.cache_manager.remove(cache_key):
      print(f"Removed cached lookup table: {cache_key}")
      return True
    print(f"Lookup table not in cache: {cache_key}")
    return False
