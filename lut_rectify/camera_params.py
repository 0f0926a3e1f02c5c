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
import yaml


# Number of distortion coefficients expected by each supported camera model
MODEL_DISTORTION_SIZES = {
  'PINHOLE': 0,
  'LINEAR': 0,
  'POLY3': 3,
  'FISHEYE': 4,
  'KANNALA_BRANDT': 4,
}


class CameraParams:
  """
  Camera parameters class for the source camera of a rectification.
  
  This class holds the camera intrinsic parameters and the distortion coefficients
  of one of the supported models (PINHOLE/LINEAR, POLY3, FISHEYE/KANNALA_BRANDT).
  """
  
  def __init__(self, camera_id=None, model='PINHOLE', width=None, height=None,
               fx=None, fy=None, cx=None, cy=None, distortion=None):
    """
    Initialize camera parameters.
    
    Parameters:
    - camera_id: unique identifier for the camera
    - model: camera model type (e.g., 'FISHEYE')
    - width: image width in pixels
    - height: image height in pixels
    - fx, fy: focal lengths in pixels
    - cx, cy: principal point coordinates in pixels
    - distortion: sequence of distortion coefficients for the model
    """
    self.camera_id = camera_id
    self.model = model.upper() if model is not None else None
    self.width = width
    self.height = height
    self.fx = fx
    self.fy = fy
    self.cx = cx
    self.cy = cy
    self.distortion = [float(k) for k in distortion] if distortion is not None else []
  
  def to_dict(self):
    """
    Convert camera parameters to dictionary format.
    
    Returns:
    Dictionary containing all camera parameters.
    """
    return {
      'camera_id': self.camera_id,
      'model': self.model,
      'width': self.width,
      'height': self.height,
      'fx': self.fx,
      'fy': self.fy,
      'cx': self.cx,
      'cy': self.cy,
      'distortion': list(self.distortion)
    }
  
  def get_camera_matrix(self):
    """
    Get camera matrix K.
    
    Returns:
    3x3 numpy array representing the camera intrinsic matrix.
    """
    return np.array([
      [self.fx, 0, self.cx],
      [0, self.fy, self.cy],
      [0, 0, 1]
    ], dtype=np.float64)
  
  def get_distortion_coefficients(self):
    """Get the distortion coefficients as a float64 array."""
    return np.array(self.distortion, dtype=np.float64)
  
  def get_image_size(self):
    """
    Get image dimensions as tuple.
    
    Returns:
    Tuple (width, height) of image dimensions.
    """
    return (self.width, self.height)
  
  def validate(self):
    """
    Validate camera parameters for reasonable ranges.
    
    Raises:
    ValueError if any parameter is invalid or out of reasonable range.
    """
    if self.model not in MODEL_DISTORTION_SIZES:
      raise ValueError(f"Unsupported camera model: {self.model}")
    
    if self.width is None or self.height is None or self.width < 2 or self.height < 2:
      raise ValueError(f"Invalid image dimensions: {self.width}x{self.height}")
    
    if self.fx is None or self.fy is None or self.fx <= 0 or self.fy <= 0:
      raise ValueError(f"Invalid focal lengths: fx={self.fx}, fy={self.fy}")
    
    if self.cx is None or self.cy is None:
      raise ValueError("Principal point is missing")
    
    if not (0 <= self.cx <= self.width) or not (0 <= self.cy <= self.height):
      raise ValueError(f"Principal point outside image bounds: cx={self.cx}, cy={self.cy}")
    
    expected = MODEL_DISTORTION_SIZES[self.model]
    if len(self.distortion) != expected:
      raise ValueError(f"{self.model} model expects {expected} distortion coefficients, "
                       f"got {len(self.distortion)}")
    
    # Typical distortion coefficients are small values
    if any(abs(k) > 10.0 for k in self.distortion):
      raise ValueError(f"Distortion coefficients seem unreasonable: {self.distortion}")
  
  def __str__(self):
    """String representation of camera parameters."""
    coeffs = ", ".join(f"{k:.6f}" for k in self.distortion)
    return (f"CameraParams(id={self.camera_id}, model={self.model}, "
            f"size={self.width}x{self.height}, "
            f"fx={self.fx:.1f}, fy={self.fy:.1f}, "
            f"cx={self.cx:.1f}, cy={self.cy:.1f}, "
            f"distortion=[{coeffs}])")
  
  def __repr__(self):
    """Detailed representation of camera parameters."""
    return self.__str__()


def parse_camera_params(filename):
  """
  Parse camera parameters from YAML file and return CameraParams object.
  
  Expected YAML format with OpenCV intrinsics structure:
  image_width, image_height, camera_name, distortion_model,
  camera_matrix.data (9 values, row-major) and distortion_coefficients.data.
  
  Parameters:
  - filename: path to YAML camera parameters file
  
  Returns:
  CameraParams object with loaded parameters.
  
  Raises:
  ValueError if file format is invalid or parameters are missing.
  FileNotFoundError if camera file doesn't exist.
  """
  try:
    with open(filename, 'r') as f:
      data = yaml.safe_load(f)
  except FileNotFoundError:
    raise FileNotFoundError(f"Camera parameters file not found: {filename}")
  except yaml.YAMLError as e:
    raise ValueError(f"Invalid YAML format in file '{filename}': {e}") from e
  
  if not isinstance(data, dict):
    raise ValueError(f"Camera parameters file '{filename}' does not contain a mapping")
  
  try:
    width = data['image_width']
    height = data['image_height']
    camera_name = data.get('camera_name', 'unknown')
    model = str(data.get('distortion_model', 'pinhole')).upper()
    
    camera_matrix_data = data['camera_matrix']['data']
    if len(camera_matrix_data) != 9:
      raise ValueError("Camera matrix must have 9 elements")
    
    # Camera matrix is stored row-wise: [fx, 0, cx, 0, fy, cy, 0, 0, 1]
    fx = float(camera_matrix_data[0])
    cx = float(camera_matrix_data[2])
    fy = float(camera_matrix_data[4])
    cy = float(camera_matrix_data[5])
    
    # A pinhole camera may omit the distortion block entirely
    distortion_block = data.get('distortion_coefficients') or {}
    distortion_data = distortion_block.get('data') or []
    
    camera_params = CameraParams(
      camera_id=camera_name,
      model=model,
      width=int(width),
      height=int(height),
      fx=fx,
      fy=fy,
      cx=cx,
      cy=cy,
      distortion=distortion_data
    )
    
    camera_params.validate()
    
    return camera_params
    
  except KeyError as e:
    raise ValueError(f"Missing required parameter in YAML file: {e}") from e
  except (TypeError, ValueError) as e:
    raise ValueError(f"Invalid parameter format in YAML file: {e}") from e


def parse_camera_params_dict(filename):
  """
  Parse camera parameters from file and return dictionary format.
  
  Parameters:
  - filename: path to camera parameters file
  
  Returns:
  Dictionary containing camera parameters.
  """
  camera_params = parse_camera_params(filename)
  return camera_params.to_dict()
