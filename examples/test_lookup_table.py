#!/usr/bin/env python3
"""
Tests for the LookupTable data structure.

This script verifies:
1. Allocation and derived dimensions
2. Point access and its failure modes
3. Independent copies
4. Reconstruction of OpenCV remap coordinates
"""

import sys
import os
import copy
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
import pytest
from lut_rectify.camera_models import LinearCamera
from lut_rectify.lookup_table import BilinearLutPoint, LookupTable
from lut_rectify.lut_builder import build_lookup_table

def test_allocation_and_dimensions():
  """A table of width x height holds width*height zeroed descriptors."""
  print("=" * 60)
  print("TEST: Allocation and dimensions")
  print("=" * 60)
  
  lut = LookupTable(7, 5)
  assert lut.width == 7
  assert lut.height == 5
  assert len(lut) == 35
  assert lut.is_allocated()
  assert np.all(lut.points['idx0'] == 0)
  assert np.all(lut.points['w00'] == 0)
  
  empty = LookupTable()
  assert not empty.is_allocated()
  assert empty.width == 0
  assert empty.height == 0
  
  with pytest.raises(ValueError):
    LookupTable(-1, 3)

def test_set_and_get_point():
  """set_point overwrites exactly one row-major descriptor."""
  lut = LookupTable(4, 3)
  point = BilinearLutPoint(idx0=5, idx1=12, w00=0.25, w01=0.25, w10=0.25, w11=0.25)
  lut.set_point(2, 1, point)
  
  assert lut.get_point(2, 1) == point
  assert lut.points[2 * 4 + 1]['idx1'] == 12
  # Every other descriptor is untouched
  assert np.count_nonzero(lut.points['idx0']) == 1

def test_set_point_requires_allocation():
  """Writing into a table that was never allocated is a programming error."""
  lut = LookupTable()
  with pytest.raises(ValueError):
    lut.set_point(0, 0, BilinearLutPoint())
  with pytest.raises(ValueError):
    lut.get_point(0, 0)

def test_set_point_out_of_table():
  lut = LookupTable(3, 2)
  with pytest.raises(IndexError):
    lut.set_point(2, 0, BilinearLutPoint())
  with pytest.raises(IndexError):
    lut.set_point(0, 3, BilinearLutPoint())

def test_copy_is_independent():
  """Copies own their descriptor storage."""
  lut = LookupTable(3, 3)
  lut.set_point(1, 1, BilinearLutPoint(1, 4, 1.0, 0.0, 0.0, 0.0))
  lut.source_width, lut.source_height = 3, 3
  
  for duplicate in (lut.copy(), copy.copy(lut), copy.deepcopy(lut)):
    assert duplicate.width == 3 and duplicate.height == 3
    assert duplicate.source_width == 3
    assert np.array_equal(duplicate.points, lut.points)
    duplicate.set_point(1, 1, BilinearLutPoint())
    assert lut.get_point(1, 1).idx0 == 1

def test_required_source_size():
  lut = LookupTable(2, 1)
  lut.set_point(0, 0, BilinearLutPoint(0, 4, 1.0, 0.0, 0.0, 0.0))
  lut.set_point(0, 1, BilinearLutPoint(3, 7, 1.0, 0.0, 0.0, 0.0))
  # The resampler reads up to idx1 + 1 = 8
  assert lut.required_source_size() == 9
  assert LookupTable().required_source_size() == 0

def test_to_remap_maps():
  """The remap coordinates of an identity table are the pixel grid itself."""
  camera = LinearCamera(6, 4, 1.0, 1.0, 0.0, 0.0)
  lut = build_lookup_table(camera, np.eye(3), LookupTable(6, 4))
  
  map_x, map_y = lut.to_remap_maps()
  cols, rows = np.meshgrid(np.arange(6), np.arange(4))
  assert map_x.dtype == np.float32 and map_x.shape == (4, 6)
  np.testing.assert_allclose(map_x, cols, atol=1e-6)
  np.testing.assert_allclose(map_y, rows, atol=1e-6)
  
  with pytest.raises(ValueError):
    LookupTable(2, 2).to_remap_maps()

def main():
  """Run all lookup table tests."""
  tests = [
    test_allocation_and_dimensions,
    test_set_and_get_point,
    test_set_point_requires_allocation,
    test_set_point_out_of_table,
    test_copy_is_independent,
    test_required_source_size,
    test_to_remap_maps,
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
  
  print("\n✅ ALL LOOKUP TABLE TESTS PASSED!")
  return 0

if __name__ == "__main__":
  exit(main())
