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

import time

import cv2
import numpy as np

from .lookup_table import LookupTable


def _as_pixel_array(buffer, writable: bool = False) -> np.ndarray:
  """Flat uint8 view of a numpy array or raw byte buffer."""
  if isinstance(buffer, (bytes, bytearray, memoryview)):
    array = np.frombuffer(buffer, dtype=np.uint8)
  else:
    array = np.asarray(buffer)
    if array.dtype != np.uint8:
      raise ValueError(f"Image buffers must hold one byte per pixel, got dtype {array.dtype}")
    if writable and not array.flags.c_contiguous:
      raise ValueError("Output image buffer must be contiguous")
  if writable and not array.flags.writeable:
    raise ValueError("Output image buffer is read-only")
  return array.reshape(-1)


def rectify(lut: LookupTable, input_image, output_image, width: int, height: int) -> None:
  """
  Resample input_image into output_image using a built lookup table.
  
  Every output pixel is the weighted sum of the four source samples at idx0, idx0+1,
  idx1 and idx1+1, rounded to the nearest integer. The whole table is processed with
  array gathers and multiply-adds; there is no per-pixel branching.
  
  Parameters:
  - lut: lookup table of exactly width x height descriptors
  - input_image: single-byte-per-pixel source buffer (numpy uint8 array or bytes)
  - output_image: writable buffer of width*height bytes, overwritten in place
  - width, height: output image dimensions
  
  Raises:
  ValueError on a table/buffer size mismatch.
  """
  if lut is None or not lut.is_allocated():
    raise ValueError("Lookup table is empty")
  if lut.width != width or lut.height != height:
    raise ValueError(f"Lookup table is {lut.width}x{lut.height} but output image is {width}x{height}")
  
  src = _as_pixel_array(input_image)
  dst = _as_pixel_array(output_image, writable=True)
  
  if dst.size != width * height:
    raise ValueError(f"Output buffer holds {dst.size} pixels, expected {width * height}")
  if src.size < lut.required_source_size():
    raise ValueError(f"Input buffer holds {src.size} pixels, lookup table reads up to "
                     f"{lut.required_source_size()}")
  
  points = lut.points
  idx0 = points['idx0']
  idx1 = points['idx1']
  
  value = (points['w00'] * src[idx0] +
           points['w01'] * src[idx0 + 1] +
           points['w10'] * src[idx1] +
           points['w11'] * src[idx1 + 1])
  
  dst[:] = np.clip(np.floor(value + 0.5), 0, 255).astype(np.uint8)


def rectify_image(lut: LookupTable, image: np.ndarray) -> np.ndarray:
  """
  Rectify a grayscale image with a lookup table.
  
  Parameters:
  - image: 2D uint8 array matching the source size the table was built for
  
  Returns:
  - rectified image shaped (lut.height, lut.width)
  """
  if image is None:
    raise ValueError("Input image is None")
  if image.ndim != 2:
    raise ValueError(f"Expected a single-channel image, got shape {image.shape}")
  if lut.source_width is not None and image.shape != (lut.source_height, lut.source_width):
    raise ValueError(f"Input image size {image.shape[1]}x{image.shape[0]} does not match lookup table "
                     f"source size {lut.source_width}x{lut.source_height}")
  
  print(f"Applying lookup table to create {lut.width}x{lut.height} image")
  
  start_time = time.time()
  
  result = np.empty((lut.height, lut.width), dtype=np.uint8)
  rectify(lut, image, result, lut.width, lut.height)
  
  rectify_time = time.time() - start_time
  print(f"\033[33mLookup table rectify processing time: {rectify_time:.4f} seconds\033[0m")
  
  return result


def remap_with_opencv(lut: LookupTable, image: np.ndarray, border_mode: int = cv2.BORDER_REPLICATE) -> np.ndarray:
  """
  Apply the geometry of a lookup table with OpenCV's remap.
  
  Works for any number of channels. With the default border mode the result matches
  rectify() up to OpenCV's fixed-point interpolation error.
  
  Parameters:
  - lut: built lookup table
  - image: source image matching the table's source size
  - border_mode: OpenCV border mode for samples outside the image
  
  Returns:
  - remapped image shaped (lut.height, lut.width[, channels])
  """
  if image is None:
    raise ValueError("Input image is None")
  if image.shape[:2] != (lut.source_height, lut.source_width):
    raise ValueError(f"Input image size {image.shape[1]}x{image.shape[0]} does not match lookup table "
                     f"source size {lut.source_width}x{lut.source_height}")
  
  map_x, map_y = lut.to_remap_maps()
  
  print(f"Applying lookup table using OpenCV remap to create {lut.width}x{lut.height} image")
  
  start_time = time.time()
  
  result = cv2.remap(image, map_x, map_y, cv2.INTER_LINEAR, borderMode=border_mode)
  
  remap_time = time.time() - start_time
  print(f"\033[33mOpenCV remap processing time: {remap_time:.4f} seconds\033[0m")
  
  return result
