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

from typing import NamedTuple, Optional, Tuple

import numpy as np


# Storage layout of one descriptor. The resampler reads idx0, idx0+1, idx1 and idx1+1
# without any bounds test, so the builder only ever stores indices for which the
# whole 2x2 neighbourhood lies inside the source image.
LUT_POINT_DTYPE = np.dtype([
  ('idx0', np.int32),   # top-left sample in the source image
  ('idx1', np.int32),   # idx0 + source width (one row below)
  ('w00', np.float32),  # top-left weight
  ('w01', np.float32),  # top-right weight
  ('w10', np.float32),  # bottom-left weight
  ('w11', np.float32),  # bottom-right weight
])


class BilinearLutPoint(NamedTuple):
  """Resampling descriptor of a single output pixel."""
  idx0: int = 0
  idx1: int = 0
  w00: float = 0.0
  w01: float = 0.0
  w10: float = 0.0
  w11: float = 0.0


class LookupTable:
  """
  Dense row-major table of bilinear resampling descriptors, one per output pixel.
  
  The table stores its width; the height is derived from the number of descriptors.
  Once built against a source camera it also remembers the source image size.
  """
  
  def __init__(self, width: int = 0, height: int = 0):
    """
    Initialize the table, allocating width*height zeroed descriptors.
    
    Parameters:
    - width, height: output image dimensions; (0, 0) creates an unallocated table
    """
    if width < 0 or height < 0:
      raise ValueError(f"Invalid lookup table dimensions: {width}x{height}")
    
    self._width = int(width)
    self.points = np.zeros(int(width) * int(height), dtype=LUT_POINT_DTYPE)
    self.source_width: Optional[int] = None
    self.source_height: Optional[int] = None
  
  @property
  def width(self) -> int:
    return self._width
  
  @property
  def height(self) -> int:
    if self._width == 0:
      return 0
    return self.points.size // self._width
  
  @property
  def size(self) -> int:
    return self.points.size
  
  @property
  def nbytes(self) -> int:
    return self.points.nbytes
  
  def __len__(self):
    return self.points.size
  
  def is_allocated(self) -> bool:
    return self.points.size > 0
  
  def _flat_index(self, row: int, col: int) -> int:
    if not (0 <= row < self.height and 0 <= col < self._width):
      raise IndexError(f"Pixel (row={row}, col={col}) outside {self._width}x{self.height} lookup table")
    return row * self._width + col
  
  def set_point(self, row: int, col: int, point: BilinearLutPoint) -> None:
    """
    Overwrite the descriptor of output pixel (row, col).
    
    Raises:
    ValueError if the table was never allocated, IndexError if (row, col) is outside it.
    """
    if not self.is_allocated():
      raise ValueError("Cannot set a point in an unallocated lookup table")
    self.points[self._flat_index(row, col)] = tuple(point)
  
  def get_point(self, row: int, col: int) -> BilinearLutPoint:
    if not self.is_allocated():
      raise ValueError("Cannot read a point from an unallocated lookup table")
    return BilinearLutPoint(*self.points[self._flat_index(row, col)].item())
  
  def row_slice(self, row_start: int, row_end: int) -> np.ndarray:
    """Writable view of the descriptors of rows [row_start, row_end)."""
    return self.points[row_start * self._width:row_end * self._width]
  
  def required_source_size(self) -> int:
    """Minimum number of source pixels the stored indices read from."""
    if not self.is_allocated():
      return 0
    return int(self.points['idx1'].max()) + 2
  
  def to_remap_maps(self) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reconstruct continuous source coordinates for cv2.remap.
    
    The fractional offsets are recovered from the weights: w01 + w11 = ax and
    w10 + w11 = ay.
    
    Returns:
    - map_x, map_y: float32 arrays shaped (height, width)
    """
    if self.source_width is None:
      raise ValueError("Lookup table has not been built against a source camera")
    
    idx0 = self.points['idx0'].astype(np.int64)
    map_x = (idx0 % self.source_width) + self.points['w01'] + self.points['w11']
    map_y = (idx0 // self.source_width) + self.points['w10'] + self.points['w11']
    shape = (self.height, self._width)
    return map_x.astype(np.float32).reshape(shape), map_y.astype(np.float32).reshape(shape)
  
  def copy(self) -> 'LookupTable':
    """Deep copy with independent descriptor storage."""
    other = LookupTable()
    other._width = self._width
    other.points = self.points.copy()
    other.source_width = self.source_width
    other.source_height = self.source_height
    return other
  
  def __copy__(self):
    return self.copy()
  
  def __deepcopy__(self, memo):
    return self.copy()
  
  def __repr__(self):
    return f"LookupTable({self._width}x{self.height}, source={self.source_width}x{self.source_height})"
