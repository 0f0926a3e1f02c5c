#!/usr/bin/env python3
"""
Tests for the lookup table builder.

This script verifies:
1. Exact descriptors for simple linear geometries
2. Weight normalization and index validity for distorted, rotated cameras
3. Edge replication and non-finite projections
4. Agreement between the reference and the vectorized builders
5. Parameter validation
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
import pytest
from lut_rectify.camera_models import KannalaBrandtCamera, LinearCamera, Poly3Camera
from lut_rectify.lookup_table import BilinearLutPoint, LookupTable
from lut_rectify.lut_builder import (
  build_lookup_table,
  compose_rotation_intrinsics,
  intrinsics_from_fov,
  linear_intrinsics,
  rotation_from_ypr,
)
from lut_rectify.lut_builder import _process_row_chunk
from lut_rectify.rectify import rectify_image

def unit_camera(width=4, height=4):
  """Linear camera whose intrinsics are the identity matrix."""
  return LinearCamera(width, height, 1.0, 1.0, 0.0, 0.0)

def fisheye_camera(width=64, height=48):
  return KannalaBrandtCamera(width, height, 21.0, 21.0, (width - 1) / 2.0, (height - 1) / 2.0,
                             0.0312, -0.0105, 0.0021, -0.0004)

def assert_valid_indices(lut, source_width, source_height):
  """Every descriptor's 2x2 neighbourhood must lie inside the source image."""
  idx0 = lut.points['idx0'].astype(np.int64)
  idx1 = lut.points['idx1'].astype(np.int64)
  assert np.all(idx0 >= 0)
  assert np.all(idx1 == idx0 + source_width)
  assert np.all(idx1 + 1 < source_width * source_height)
  # idx0 + 1 stays on the same row
  assert np.all(idx0 % source_width <= source_width - 2)

def test_identity_descriptors():
  """An identity geometry maps every output pixel onto itself."""
  print("=" * 60)
  print("TEST: Identity descriptors")
  print("=" * 60)
  
  lut = build_lookup_table(unit_camera(), np.eye(3), LookupTable(4, 4))
  assert len(lut) == 16
  assert lut.source_width == 4 and lut.source_height == 4
  
  assert lut.get_point(1, 2) == BilinearLutPoint(6, 10, 1.0, 0.0, 0.0, 0.0)
  # The last column and row are reached through the capped top-left sample
  assert lut.get_point(0, 3) == BilinearLutPoint(2, 6, 0.0, 1.0, 0.0, 0.0)
  assert lut.get_point(3, 0) == BilinearLutPoint(8, 12, 0.0, 0.0, 1.0, 0.0)
  assert lut.get_point(3, 3) == BilinearLutPoint(10, 14, 0.0, 0.0, 0.0, 1.0)

def test_fractional_weights():
  """Weights are the bilinear products of the fractional offsets."""
  shift = np.array([
    [1.0, 0.0, 0.25],
    [0.0, 1.0, 0.5],
    [0.0, 0.0, 1.0]
  ])
  lut = build_lookup_table(unit_camera(), shift, LookupTable(4, 4))
  
  assert lut.get_point(1, 1) == BilinearLutPoint(5, 9, 0.375, 0.125, 0.375, 0.125)
  assert lut.get_point(0, 2) == BilinearLutPoint(2, 6, 0.375, 0.125, 0.375, 0.125)

def test_weights_sum_to_one():
  """Weights of every descriptor are non-negative and sum to one."""
  camera = fisheye_camera()
  R_onKinv = compose_rotation_intrinsics(rotation_from_ypr(20, -10, 5), intrinsics_from_fov(80, 60, 100))
  lut = build_lookup_table(camera, R_onKinv, LookupTable(80, 60))
  
  weights = np.stack([lut.points[name] for name in ('w00', 'w01', 'w10', 'w11')])
  assert np.all(weights >= 0)
  np.testing.assert_allclose(weights.sum(axis=0), 1.0, atol=1e-6)

def test_indices_valid_outside_field_of_view():
  """Pixels looking outside the source image still get readable indices."""
  camera = fisheye_camera()
  # Wide target rotated far away, so many rays miss the source image
  R_onKinv = compose_rotation_intrinsics(rotation_from_ypr(120, 30, 0), intrinsics_from_fov(80, 60, 150))
  lut = build_lookup_table(camera, R_onKinv, LookupTable(80, 60))
  assert_valid_indices(lut, camera.width, camera.height)
  
  linear = LinearCamera(32, 24, 20.0, 20.0, 15.5, 11.5)
  # Rays behind a pinhole camera project to mirrored, far away coordinates
  R_onKinv = compose_rotation_intrinsics(rotation_from_ypr(170, 0, 0), intrinsics_from_fov(40, 30, 90))
  lut = build_lookup_table(linear, R_onKinv, LookupTable(40, 30))
  assert_valid_indices(lut, linear.width, linear.height)

def test_clamps_to_nearest_edge():
  """Samples right of the image replicate the last source column."""
  shift = np.array([
    [1.0, 0.0, 10.0],
    [0.0, 1.0, 0.0],
    [0.0, 0.0, 1.0]
  ])
  lut = build_lookup_table(unit_camera(), shift, LookupTable(4, 4))
  assert_valid_indices(lut, 4, 4)
  
  image = (np.arange(16) * 17).astype(np.uint8).reshape(4, 4)
  result = rectify_image(lut, image)
  for col in range(4):
    np.testing.assert_array_equal(result[:, col], image[:, 3])

def test_non_finite_projection_goes_to_top_left():
  """Rays on the image plane have no projection and sample the top-left pixel."""
  degenerate = np.array([
    [1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0],
    [0.0, 0.0, 0.0]
  ])
  lut = build_lookup_table(unit_camera(), degenerate, LookupTable(4, 4), use_vectorized=False)
  assert np.all(lut.points['idx0'] == 0)
  assert np.all(lut.points['w00'] == 1.0)
  
  vectorized = build_lookup_table(unit_camera(), degenerate, LookupTable(4, 4))
  assert np.array_equal(vectorized.points, lut.points)

def test_backward_looking_fisheye_centre_goes_to_top_left():
  """The pixel looking straight behind a fisheye camera samples the top-left pixel."""
  camera = fisheye_camera()
  R_onKinv = compose_rotation_intrinsics(rotation_from_ypr(180, 0, 0), intrinsics_from_fov(5, 5, 10))
  lut = build_lookup_table(camera, R_onKinv, LookupTable(5, 5))
  assert lut.get_point(2, 2) == BilinearLutPoint(0, camera.width, 1.0, 0.0, 0.0, 0.0)
  assert_valid_indices(lut, camera.width, camera.height)

def test_reference_matches_vectorized():
  """Both builders produce the same table."""
  print("=" * 60)
  print("TEST: Reference vs vectorized builder")
  print("=" * 60)
  
  rotation = rotation_from_ypr(15, 5, -3)
  
  for camera in (LinearCamera(40, 30, 30.0, 30.0, 19.5, 14.5),
                 Poly3Camera(40, 30, 30.0, 30.0, 19.5, 14.5, -0.2, 0.05, -0.01)):
    R_onKinv = compose_rotation_intrinsics(rotation, linear_intrinsics(camera, 36, 28))
    reference = build_lookup_table(camera, R_onKinv, LookupTable(36, 28), use_vectorized=False)
    vectorized = build_lookup_table(camera, R_onKinv, LookupTable(36, 28), use_vectorized=True)
    assert np.array_equal(reference.points['idx0'], vectorized.points['idx0'])
    assert np.array_equal(reference.points['idx1'], vectorized.points['idx1'])
    for name in ('w00', 'w01', 'w10', 'w11'):
      np.testing.assert_allclose(reference.points[name], vectorized.points[name], atol=1e-6)
  
  camera = fisheye_camera()
  R_onKinv = compose_rotation_intrinsics(rotation, intrinsics_from_fov(36, 28, 120))
  reference = build_lookup_table(camera, R_onKinv, LookupTable(36, 28), use_vectorized=False)
  vectorized = build_lookup_table(camera, R_onKinv, LookupTable(36, 28), use_vectorized=True)
  for ref_map, vec_map in zip(reference.to_remap_maps(), vectorized.to_remap_maps()):
    np.testing.assert_allclose(ref_map, vec_map, atol=1e-3)

def test_threaded_build_matches_single_chunk():
  """Splitting a large table into row chunks does not change it."""
  camera = Poly3Camera(320, 240, 200.0, 200.0, 159.5, 119.5, -0.1, 0.01, 0.0)
  R_onKinv = compose_rotation_intrinsics(rotation_from_ypr(5, 5, 5), linear_intrinsics(camera, 256, 160))
  
  lut = build_lookup_table(camera, R_onKinv, LookupTable(256, 160))
  expected = _process_row_chunk(camera, R_onKinv, 0, 160, 256)
  assert np.array_equal(lut.points, expected)

def test_none_uses_source_intrinsics():
  """Without a matrix the table undistorts onto the camera's own linear intrinsics."""
  camera = LinearCamera(12, 9, 100.0, 100.0, 5.5, 4.0)
  lut = build_lookup_table(camera, None, LookupTable(12, 9))
  
  rng = np.random.default_rng(7)
  image = rng.integers(0, 256, size=(9, 12), dtype=np.uint8)
  np.testing.assert_array_equal(rectify_image(lut, image), image)
  
  explicit = build_lookup_table(camera, np.linalg.inv(linear_intrinsics(camera)), LookupTable(12, 9))
  assert np.array_equal(explicit.points, lut.points)

def test_invalid_parameters():
  with pytest.raises(ValueError):
    build_lookup_table(None, np.eye(3), LookupTable(4, 4))
  with pytest.raises(ValueError):
    build_lookup_table(unit_camera(), np.eye(3), LookupTable())
  with pytest.raises(ValueError):
    build_lookup_table(unit_camera(), np.eye(2), LookupTable(4, 4))
  with pytest.raises(ValueError):
    build_lookup_table(LinearCamera(1, 5, 1.0, 1.0, 0.0, 0.0), np.eye(3), LookupTable(4, 4))
  with pytest.raises(ValueError):
    intrinsics_from_fov(100, 100, 180)

def test_rotation_from_ypr():
  """Pure rotations: orthonormal, and identity for zero angles."""
  np.testing.assert_allclose(rotation_from_ypr(0, 0, 0), np.eye(3))
  R = rotation_from_ypr(30, -20, 10)
  np.testing.assert_allclose(R @ R.T, np.eye(3), atol=1e-12)
  assert np.linalg.det(R) == pytest.approx(1.0)
  
  # A yaw of 90 degrees turns the optical axis onto +X
  np.testing.assert_allclose(rotation_from_ypr(90, 0, 0) @ np.array([0, 0, 1.0]), [1, 0, 0], atol=1e-12)

def test_linear_intrinsics_recentres():
  camera = LinearCamera(100, 80, 50.0, 60.0, 49.5, 39.5)
  K = linear_intrinsics(camera, 120, 60)
  assert K[0, 0] == 50.0 and K[1, 1] == 60.0
  assert K[0, 2] == pytest.approx(59.5)
  assert K[1, 2] == pytest.approx(29.5)

def main():
  """Run all lookup table builder tests."""
  tests = [
    test_identity_descriptors,
    test_fractional_weights,
    test_weights_sum_to_one,
    test_indices_valid_outside_field_of_view,
    test_clamps_to_nearest_edge,
    test_non_finite_projection_goes_to_top_left,
    test_backward_looking_fisheye_centre_goes_to_top_left,
    test_reference_matches_vectorized,
    test_threaded_build_matches_single_chunk,
    test_none_uses_source_intrinsics,
    test_invalid_parameters,
    test_rotation_from_ypr,
    test_linear_intrinsics_recentres,
  ]
  try:
    for test in tests:
      test()
      print(f"✓ {test.__name__}")
  except Exception as e:
    print(f"\n❌ TEST FAILED: {e}")
    import traceback
    traceback.print_exc()
    return 1
  
  print("\n✅ ALL LOOKUP TABLE BUILDER TESTS PASSED!")
  return 0

if __name__ == "__main__":
  exit(main())
