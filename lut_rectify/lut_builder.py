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
import multiprocessing
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np

from .camera_models import CameraInterface
from .lookup_table import LUT_POINT_DTYPE, BilinearLutPoint, LookupTable


def rotation_from_ypr(yaw: float, pitch: float, roll: float) -> np.ndarray:
  """
  Build a rotation matrix from yaw, pitch and roll offsets in degrees.
  
  Yaw turns around the Y axis, pitch around the X axis and roll around the Z axis;
  the combined rotation applies roll first: R = R_yaw @ R_pitch @ R_roll.
  """
  yaw_rad = np.radians(yaw)
  pitch_rad = np.radians(pitch)
  roll_rad = np.radians(roll)
  
  R_yaw = np.array([
    [np.cos(yaw_rad), 0, np.sin(yaw_rad)],
    [0, 1, 0],
    [-np.sin(yaw_rad), 0, np.cos(yaw_rad)]
  ])
  
  R_pitch = np.array([
    [1, 0, 0],
    [0, np.cos(pitch_rad), np.sin(pitch_rad)],
    [0, -np.sin(pitch_rad), np.cos(pitch_rad)]
  ])
  
  R_roll = np.array([
    [np.cos(roll_rad), -np.sin(roll_rad), 0],
    [np.sin(roll_rad), np.cos(roll_rad), 0],
    [0, 0, 1]
  ])
  
  return R_yaw @ R_pitch @ R_roll


def linear_intrinsics(camera: CameraInterface, output_width: Optional[int] = None,
                      output_height: Optional[int] = None) -> np.ndarray:
  """
  Linear intrinsics K of the camera, with the principal point shifted to keep it at the
  same place relative to the centre of an output image of a different size.
  """
  K = camera.get_camera_matrix()
  if output_width is not None:
    K[0, 2] += (output_width - camera.width) / 2.0
  if output_height is not None:
    K[1, 2] += (output_height - camera.height) / 2.0
  return K


def intrinsics_from_fov(output_width: int, output_height: int, fov_horizontal: float,
                        virtual_fy: Optional[float] = None) -> np.ndarray:
  """Linear intrinsics of a virtual camera with the given horizontal field of view in degrees."""
  if not (0 < fov_horizontal < 180):
    raise ValueError(f"Horizontal field of view must be in (0, 180) degrees, got {fov_horizontal}")
  virtual_fx = (output_width / 2.0) / np.tan(np.radians(fov_horizontal) / 2.0)
  if virtual_fy is None:
    virtual_fy = virtual_fx  # Assume square pixels
  return np.array([
    [virtual_fx, 0, (output_width - 1) / 2.0],
    [0, virtual_fy, (output_height - 1) / 2.0],
    [0, 0, 1]
  ], dtype=np.float64)


def compose_rotation_intrinsics(rotation: np.ndarray, K_new: np.ndarray) -> np.ndarray:
  """
  Fold the rectifying rotation and the inverse target intrinsics into one matrix.
  
  Multiplying a homogeneous output pixel by the result gives a ray in the source
  camera frame.
  """
  rotation = np.asarray(rotation, dtype=np.float64)
  K_new = np.asarray(K_new, dtype=np.float64)
  if rotation.shape != (3, 3) or K_new.shape != (3, 3):
    raise ValueError("Rotation and intrinsics must both be 3x3 matrices")
  return rotation @ np.linalg.inv(K_new)


def _pixel_rays(R_onKinv: np.ndarray, u, v) -> np.ndarray:
  # Written out element-wise so that single pixels and whole rows give identical rays
  return np.stack([
    R_onKinv[0, 0] * u + R_onKinv[0, 1] * v + R_onKinv[0, 2],
    R_onKinv[1, 0] * u + R_onKinv[1, 1] * v + R_onKinv[1, 2],
    R_onKinv[2, 0] * u + R_onKinv[2, 1] * v + R_onKinv[2, 2],
  ], axis=-1)


def _lut_point(x: float, y: float, source_width: int, source_height: int) -> BilinearLutPoint:
  """
  Descriptor for one continuous source coordinate.
  
  Non-finite coordinates go to the top-left pixel. Finite ones are clamped onto the
  image, so samples outside it replicate the nearest edge or corner pixel. The
  top-left sample is capped at (width-2, height-2) so its 2x2 neighbourhood is
  always readable; the last row and column are then reached with a weight of 1.
  """
  if not (math.isfinite(x) and math.isfinite(y)):
    x, y = 0.0, 0.0
  x = min(max(x, 0.0), source_width - 1.0)
  y = min(max(y, 0.0), source_height - 1.0)
  xt = min(math.floor(x), source_width - 2)
  yt = min(math.floor(y), source_height - 2)
  ax = x - xt
  ay = y - yt
  idx0 = yt * source_width + xt
  return BilinearLutPoint(
    idx0=idx0,
    idx1=idx0 + source_width,
    w00=(1 - ax) * (1 - ay),
    w01=ax * (1 - ay),
    w10=(1 - ax) * ay,
    w11=ax * ay
  )


def _lut_points(x: np.ndarray, y: np.ndarray, source_width: int, source_height: int) -> np.ndarray:
  """Vectorized counterpart of _lut_point, returning a LUT_POINT_DTYPE array."""
  finite = np.isfinite(x) & np.isfinite(y)
  x = np.clip(np.where(finite, x, 0.0), 0.0, source_width - 1.0)
  y = np.clip(np.where(finite, y, 0.0), 0.0, source_height - 1.0)
  xt = np.minimum(np.floor(x), source_width - 2)
  yt = np.minimum(np.floor(y), source_height - 2)
  ax = x - xt
  ay = y - yt
  
  points = np.empty(x.shape, dtype=LUT_POINT_DTYPE)
  idx0 = yt.astype(np.int64) * source_width + xt.astype(np.int64)
  points['idx0'] = idx0
  points['idx1'] = idx0 + source_width
  points['w00'] = (1 - ax) * (1 - ay)
  points['w01'] = ax * (1 - ay)
  points['w10'] = (1 - ax) * ay
  points['w11'] = ax * ay
  return points


def _build_reference(camera: CameraInterface, R_onKinv: np.ndarray, lut: LookupTable) -> None:
  """
  Reference implementation: fill the table one pixel at a time.
  
  Slow, but follows the per-pixel algorithm literally; kept for debugging and to
  check the vectorized implementation.
  """
  source_width, source_height = camera.width, camera.height
  for row in range(lut.height):
    for col in range(lut.width):
      ray = _pixel_rays(R_onKinv, np.float64(col), np.float64(row))
      x, y = camera.project(ray)
      lut.set_point(row, col, _lut_point(float(x), float(y), source_width, source_height))


def _process_row_chunk(camera: CameraInterface, R_onKinv: np.ndarray,
                       row_start: int, row_end: int, output_width: int) -> np.ndarray:
  """
  Compute the descriptors of rows [row_start, row_end) of the output image.
  
  Returns:
  - flat LUT_POINT_DTYPE array of (row_end - row_start) * output_width descriptors
  """
  u_coords, v_coords = np.meshgrid(
    np.arange(output_width, dtype=np.float64),
    np.arange(row_start, row_end, dtype=np.float64)
  )
  
  rays = _pixel_rays(R_onKinv, u_coords, v_coords)
  source_coords = camera.project(rays)
  
  return _lut_points(source_coords[..., 0].ravel(), source_coords[..., 1].ravel(),
                     camera.width, camera.height)


def _build_vectorized(camera: CameraInterface, R_onKinv: np.ndarray, lut: LookupTable) -> None:
  """
  Parallel vectorized implementation: fill the table in independent row chunks.
  
  Each chunk writes a disjoint row slice of the table, so chunks run on a thread pool
  with no synchronization beyond the final join.
  """
  output_width, output_height = lut.width, lut.height
  
  # For small images, use single-threaded processing to avoid overhead
  if output_height < 128 or output_width < 128:
    print("Using single-threaded processing for small image")
    lut.row_slice(0, output_height)[:] = _process_row_chunk(camera, R_onKinv, 0, output_height, output_width)
    return
  
  num_cores = min(multiprocessing.cpu_count(), 8)  # Cap at 8 threads to avoid overhead
  min_chunk_size = 32  # Minimum rows per chunk for cache efficiency
  chunk_size = max(min_chunk_size, output_height // (num_cores * 2))  # 2x cores for better load balancing
  print(f"Using {num_cores} threads with chunk size {chunk_size} rows")
  
  with ThreadPoolExecutor(max_workers=num_cores) as executor:
    futures = []
    row_ranges = []
    
    for row_start in range(0, output_height, chunk_size):
      row_end = min(row_start + chunk_size, output_height)
      row_ranges.append((row_start, row_end))
      futures.append(executor.submit(_process_row_chunk, camera, R_onKinv,
                                     row_start, row_end, output_width))
    
    for future, (row_start, row_end) in zip(futures, row_ranges):
      lut.row_slice(row_start, row_end)[:] = future.result()


def build_lookup_table(camera: CameraInterface, R_onKinv: Optional[np.ndarray], lut: LookupTable,
                       use_vectorized: bool = True) -> LookupTable:
  """
  Fill a lookup table that remaps images of 'camera' to a linear, possibly rotated camera.
  
  For every output pixel (col, row) the homogeneous vector (col, row, 1) is multiplied by
  R_onKinv to get a ray in the source camera frame, the ray is projected through the
  source camera, and the resulting coordinate is stored as two source indices and four
  bilinear weights.
  
  Parameters:
  - camera: source camera model
  - R_onKinv: rotation (old from new) times the inverse of the target intrinsics; None
    keeps the source orientation and the source camera's own linear intrinsics
  - lut: table already sized to the output resolution; filled in place
  - use_vectorized: if True, use the parallel vectorized implementation; if False, use the
    per-pixel reference implementation
  
  Returns:
  - lut, for convenience
  """
  if camera is None:
    raise ValueError("Source camera model is None")
  if camera.width < 2 or camera.height < 2:
    raise ValueError(f"Source image must be at least 2x2, got {camera.width}x{camera.height}")
  if lut is None or not lut.is_allocated():
    raise ValueError("Lookup table must be allocated before it is built")
  
  if R_onKinv is None:
    R_onKinv = np.linalg.inv(linear_intrinsics(camera))
  R_onKinv = np.asarray(R_onKinv, dtype=np.float64)
  if R_onKinv.shape != (3, 3):
    raise ValueError(f"R_onKinv must be a 3x3 matrix, got shape {R_onKinv.shape}")
  
  print(f"Building {lut.width}x{lut.height} lookup table from {camera.width}x{camera.height} "
        f"{type(camera).__name__}")
  
  start_time = time.time()
  
  if use_vectorized:
    _build_vectorized(camera, R_onKinv, lut)
  else:
    _build_reference(camera, R_onKinv, lut)
  
  lut.source_width = camera.width
  lut.source_height = camera.height
  
  build_time = time.time() - start_time
  kind = "Vectorized" if use_vectorized else "Reference"
  print(f"\033[33m{kind} lookup table build time: {build_time:.4f} seconds\033[0m")
  
  return lut
