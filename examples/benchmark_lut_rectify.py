"""
Benchmark script comparing lookup table build implementations and rectification speed.

This script times the per-pixel reference builder against the parallel vectorized builder
for several output sizes, then measures how fast a built table rectifies frames.
"""

import sys
import os
import time
import numpy as np

# Add the parent directory to the path so we can import our modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lut_rectify.camera_models import make_camera
from lut_rectify.camera_params import parse_camera_params
from lut_rectify.lookup_table import LookupTable
from lut_rectify.lut_builder import build_lookup_table, compose_rotation_intrinsics, linear_intrinsics, rotation_from_ypr
from lut_rectify.rectify import rectify

CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                           "config", "camera_intrinsics.yaml")

def benchmark_lut_performance():
  """Benchmark lookup table building and rectification."""
  
  print("=" * 60)
  print("LOOKUP TABLE RECTIFICATION BENCHMARK")
  print("=" * 60)
  
  try:
    camera_params = parse_camera_params(CONFIG_PATH)
    print(f"✓ Loaded camera parameters: {camera_params.width}x{camera_params.height}")
  except Exception as e:
    print(f"✗ Error loading camera parameters: {e}")
    return
  
  camera = make_camera(camera_params)
  rotation = rotation_from_ypr(15.0, 10.0, 5.0)
  
  test_sizes = [
    (128, 128, "Tiny", True),
    (512, 512, "Small", False),
    (1024, 1024, "Medium", False),
    (2048, 1024, "Large", False)
  ]
  
  print("\n" + "=" * 60)
  print("LOOKUP TABLE BUILD BENCHMARKS")
  print("=" * 60)
  
  for width, height, size_name, run_reference in test_sizes:
    print(f"\n{size_name} output size: {width}x{height}")
    print("-" * 40)
    
    R_onKinv = compose_rotation_intrinsics(rotation, linear_intrinsics(camera, width, height))
    
    # The reference builder is only practical for tiny outputs
    if run_reference:
      start_time = time.time()
      build_lookup_table(camera, R_onKinv, LookupTable(width, height), use_vectorized=False)
      reference_time = time.time() - start_time
      print(f"✓ Reference build time: {reference_time:.4f} seconds")
    
    start_time = time.time()
    lut = build_lookup_table(camera, R_onKinv, LookupTable(width, height), use_vectorized=True)
    total_time = time.time() - start_time
    
    total_pixels = width * height
    pixels_per_second = total_pixels / total_time if total_time > 0 else 0
    
    print(f"✓ Vectorized build time: {total_time:.4f} seconds")
    print(f"✓ Performance: {pixels_per_second:,.0f} pixels/second")
    print(f"✓ Table memory: {lut.nbytes / 1024 / 1024:.1f} MB")
  
  print("\n" + "=" * 60)
  print("RECTIFICATION BENCHMARK")
  print("=" * 60)
  
  width, height = camera.width, camera.height
  lut = build_lookup_table(camera, None, LookupTable(width, height))
  frame = np.random.default_rng(0).integers(0, 256, size=(camera.height, camera.width), dtype=np.uint8)
  output = np.empty((height, width), dtype=np.uint8)
  
  num_frames = 20
  start_time = time.time()
  for _ in range(num_frames):
    rectify(lut, frame, output, width, height)
  total_time = time.time() - start_time
  
  print(f"✓ Rectified {num_frames} frames of {width}x{height} in {total_time:.4f} seconds")
  print(f"✓ Throughput: {num_frames / total_time:.1f} frames/second")
  print("=" * 60)

if __name__ == "__main__":
  benchmark_lut_performance()
