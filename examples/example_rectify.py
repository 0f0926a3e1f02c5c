import cv2
import numpy as np
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from lut_rectify.camera_params import parse_camera_params
from lut_rectify.camera_rectifier import CameraRectifier
from lut_rectify.lut_builder import intrinsics_from_fov, rotation_from_ypr

def make_test_pattern(width, height, square=40):
  """Checkerboard with a radial gradient, used when no input image is available."""
  rows, cols = np.mgrid[0:height, 0:width]
  checker = ((rows // square + cols // square) % 2) * 160
  radius = np.hypot(cols - width / 2.0, rows - height / 2.0)
  gradient = 95 * (1 - radius / radius.max())
  return (checker + gradient).astype(np.uint8)

def create_rectified_views():
  """
  Demonstrate rectifying one camera image to several linear target cameras using CameraRectifier.
  """
  camera_params = parse_camera_params("config/camera_intrinsics.yaml")
  
  image = cv2.imread("data/fisheye_img.png", cv2.IMREAD_GRAYSCALE)
  if image is None:
    print("data/fisheye_img.png not found, using a synthetic test pattern")
    image = make_test_pattern(camera_params.width, camera_params.height)
  
  os.makedirs("output/rectified", exist_ok=True)
  rectifier = CameraRectifier.from_params(camera_params, use_vectorized=True)
  
  print("\n1. Relinearizing the camera without rotation...")
  linear_view = rectifier.rectify(image)
  cv2.imwrite("output/rectified/linear.png", linear_view)
  print("Saved: output/rectified/linear.png")
  
  print("\n2. Creating a 90° view looking to the side...")
  side_rotation = rotation_from_ypr(35, 0, 0)
  side_view = rectifier.rectify(image, 800, 600, side_rotation, intrinsics_from_fov(800, 600, 90))
  cv2.imwrite("output/rectified/side_90.png", side_view)
  print("Saved: output/rectified/side_90.png")
  
  print("\n3. Cropping a rolled view to the valid field of view...")
  roll_rotation = rotation_from_ypr(0, 0, 10)
  crop_width, crop_height, K_crop = rectifier.valid_crop(roll_rotation)
  cropped_view = rectifier.rectify(image, crop_width, crop_height, roll_rotation, K_crop)
  cv2.imwrite("output/rectified/roll_cropped.png", cropped_view)
  print(f"Saved: output/rectified/roll_cropped.png ({crop_width}x{crop_height})")
  
  print("\n4. Testing cache functionality - repeating the side view...")
  side_view_cached = rectifier.rectify(image, 800, 600, side_rotation, intrinsics_from_fov(800, 600, 90))
  if np.array_equal(side_view, side_view_cached):
    print("✓ Cache working correctly - identical results from cached lookup table")
  else:
    print("✗ Cache issue - results differ")
  
  cache_info = rectifier.get_cache_info()
  print(f"\nCache statistics:")
  print(f"  Cached lookup tables: {cache_info['total_cached_tables']}")
  print(f"  Memory usage: {cache_info['memory_usage_mb']:.2f} MB")

if __name__ == "__main__":
  create_rectified_views()
  
  print("\n" + "="*60)
  print("LOOKUP TABLE RECTIFICATION DEMONSTRATION COMPLETE")
  print("="*60)
