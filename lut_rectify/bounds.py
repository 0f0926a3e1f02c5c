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

import numpy as np

from .camera_models import CameraInterface
from .range import Range


def _check_inputs(camera: CameraInterface, rotation) -> np.ndarray:
  if camera is None:
    raise ValueError("Camera model is None")
  rotation = np.asarray(rotation, dtype=np.float64)
  if rotation.shape != (3, 3):
    raise ValueError(f"Rotation must be a 3x3 matrix, got shape {rotation.shape}")
  return rotation


def _rotate_and_reproject(camera: CameraInterface, rotation: np.ndarray, pixels: np.ndarray) -> np.ndarray:
  # Row-vector rays, so R @ ray becomes ray @ R.T
  rays = camera.unproject(pixels) @ rotation.T
  return camera.project(rays)


def min_max_rotated_col(camera: CameraInterface, rotation) -> Range:
  """
  Column range that stays inside the camera's field of view on every row after rotation.
  
  The leftmost and rightmost pixel of each row are unprojected, rotated and projected
  back through the same camera; the range keeps the largest left edge and the smallest
  right edge.
  
  Parameters:
  - camera: camera model
  - rotation: 3x3 rotation applied to the camera's rays
  
  Returns:
  - Range of valid column coordinates
  """
  rotation = _check_inputs(camera, rotation)
  
  rows = np.arange(camera.height, dtype=np.float64)
  left = np.stack([np.zeros_like(rows), rows], axis=-1)
  right = np.stack([np.full_like(rows, camera.width - 1), rows], axis=-1)
  
  left_cols = _rotate_and_reproject(camera, rotation, left)[:, 0]
  right_cols = _rotate_and_reproject(camera, rotation, right)[:, 0]
  
  col_range = Range.open()
  for left_col, right_col in zip(left_cols, right_cols):
    col_range.exclude_less_than(float(left_col))
    col_range.exclude_greater_than(float(right_col))
  return col_range


def min_max_rotated_row(camera: CameraInterface, rotation) -> Range:
  """
  Row range that stays inside the camera's field of view on every column after rotation.
  
  Same computation as min_max_rotated_col using the top and bottom pixel of each column.
  """
  rotation = _check_inputs(camera, rotation)
  
  cols = np.arange(camera.width, dtype=np.float64)
  top = np.stack([cols, np.zeros_like(cols)], axis=-1)
  bottom = np.stack([cols, np.full_like(cols, camera.height - 1)], axis=-1)
  
  top_rows = _rotate_and_reproject(camera, rotation, top)[:, 1]
  bottom_rows = _rotate_and_reproject(camera, rotation, bottom)[:, 1]
  
  row_range = Range.open()
  for top_row, bottom_row in zip(top_rows, bottom_rows):
    row_range.exclude_less_than(float(top_row))
    row_range.exclude_greater_than(float(bottom_row))
  return row_range
