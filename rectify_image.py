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

import argparse
import os

import cv2
import numpy as np

from lut_rectify.camera_params import parse_camera_params
from lut_rectify.camera_rectifier import CameraRectifier
from lut_rectify.lut_builder import intrinsics_from_fov, linear_intrinsics, rotation_from_ypr
from lut_rectify.rectify import remap_with_opencv


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
    prog="rectify_image",
    description="Rectify a grayscale image to a linear, optionally rotated camera using a lookup table."
  )
  parser.add_argument("input", help="Input image captured by the calibrated camera")
  parser.add_argument("--camera", default="config/camera_intrinsics.yaml", help="Camera parameters YAML file")
  parser.add_argument("--output", default=None, help="Output path (defaults to <input>_rectified.png)")
  parser.add_argument("--width", type=int, default=None, help="Output width (defaults to the camera width)")
  parser.add_argument("--height", type=int, default=None, help="Output height (defaults to the camera height)")
  parser.add_argument("--fov", type=float, default=None,
                      help="Horizontal field of view of the target camera in degrees "
                           "(defaults to the source camera's focal length)")
  parser.add_argument("--yaw", type=float, default=0.0, help="Yaw offset in degrees")
  parser.add_argument("--pitch", type=float, default=0.0, help="Pitch offset in degrees")
  parser.add_argument("--roll", type=float, default=0.0, help="Roll offset in degrees")
  parser.add_argument("--crop-to-valid", action="store_true",
                      help="Crop the output to the rotated field-of-view bounds of the source camera")
  parser.add_argument("--reference", action="store_true",
                      help="Build the lookup table with the per-pixel reference implementation")
  parser.add_argument("--compare-opencv", action="store_true",
                      help="Also write the OpenCV remap result and report the difference")
  return parser


def main(argv=None) -> int:
  args = build_parser().parse_args(argv)
  
  camera_params = parse_camera_params(args.camera)
  print(f"Loaded camera parameters: {camera_params}")
  
  image = cv2.imread(args.input, cv2.IMREAD_GRAYSCALE)
  if image is None:
    raise ValueError(f"Could not load image: {args.input}")
  print(f"Loaded image: {image.shape}")
  
  rectifier = CameraRectifier.from_params(camera_params, use_vectorized=not args.reference)
  camera = rectifier.camera
  rotation = rotation_from_ypr(args.yaw, args.pitch, args.roll)
  
  output_width = args.width if args.width is not None else camera.width
  output_height = args.height if args.height is not None else camera.height
  
  if args.crop_to_valid:
    output_width, output_height, K_new = rectifier.valid_crop(rotation)
  elif args.fov is not None:
    K_new = intrinsics_from_fov(output_width, output_height, args.fov)
  else:
    K_new = linear_intrinsics(camera, output_width, output_height)
  
  print(f"Target camera matrix:\n{K_new}")
  
  rectified = rectifier.rectify(image, output_width, output_height, rotation, K_new)
  
  output_path = args.output
  if output_path is None:
    base_name = os.path.splitext(args.input)[0]
    output_path = f"{base_name}_rectified.png"
  cv2.imwrite(output_path, rectified)
  print(f"Rectified image saved to: {output_path}")
  
  if args.compare_opencv:
    lut = rectifier.get_lookup_table(output_width, output_height, rotation, K_new)
    remapped = remap_with_opencv(lut, image)
    opencv_path = f"{os.path.splitext(output_path)[0]}_opencv.png"
    cv2.imwrite(opencv_path, remapped)
    diff = np.abs(rectified.astype(np.int16) - remapped.astype(np.int16))
    print(f"OpenCV remap saved to: {opencv_path}")
    print(f"Max difference to OpenCV remap: {diff.max()}, mean: {diff.mean():.3f}")
  
  return 0


if __name__ == "__main__":
  raise SystemExit(main())
