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

from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np

from .camera_params import CameraParams


class CameraInterface(ABC):
  """
  Projection/unprojection capability of a calibrated camera.
  
  Implementations map 3D rays in the camera frame to continuous pixel coordinates
  (project) and pixel coordinates back to rays (unproject). Both operations accept a
  single vector or any batch shaped (..., 3) / (..., 2). Returned rays are not
  necessarily unit length.
  """
  
  def __init__(self, width: int, height: int, fx: float, fy: float, cx: float, cy: float):
    self._width = int(width)
    self._height = int(height)
    self.fx = float(fx)
    self.fy = float(fy)
    self.cx = float(cx)
    self.cy = float(cy)
  
  @property
  def width(self) -> int:
    return self._width
  
  @property
  def height(self) -> int:
    return self._height
  
  def get_image_size(self) -> Tuple[int, int]:
    """Return (width, height) of the camera image."""
    return (self._width, self._height)
  
  def get_camera_matrix(self) -> np.ndarray:
    """Linear part of the camera intrinsics as a 3x3 matrix."""
    return np.array([
      [self.fx, 0, self.cx],
      [0, self.fy, self.cy],
      [0, 0, 1]
    ], dtype=np.float64)
  
  def _normalize_pixels(self, pixels: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    pixels = np.asarray(pixels, dtype=np.float64)
    return (pixels[..., 0] - self.cx) / self.fx, (pixels[..., 1] - self.cy) / self.fy
  
  def _to_pixels(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    return np.stack([self.fx * x + self.cx, self.fy * y + self.cy], axis=-1)
  
  @abstractmethod
  def project(self, rays: np.ndarray) -> np.ndarray:
    """Project rays (..., 3) to pixel coordinates (..., 2)."""
  
  @abstractmethod
  def unproject(self, pixels: np.ndarray) -> np.ndarray:
    """Unproject pixel coordinates (..., 2) to rays (..., 3)."""
  
  def __repr__(self):
    return (f"{type(self).__name__}(size={self._width}x{self._height}, "
            f"fx={self.fx:.1f}, fy={self.fy:.1f}, cx={self.cx:.1f}, cy={self.cy:.1f})")


class LinearCamera(CameraInterface):
  """Ideal pinhole camera without distortion."""
  
  def project(self, rays: np.ndarray) -> np.ndarray:
    rays = np.asarray(rays, dtype=np.float64)
    with np.errstate(divide='ignore', invalid='ignore'):
      x = rays[..., 0] / rays[..., 2]
      y = rays[..., 1] / rays[..., 2]
    return self._to_pixels(x, y)
  
  def unproject(self, pixels: np.ndarray) -> np.ndarray:
    x, y = self._normalize_pixels(pixels)
    return np.stack([x, y, np.ones_like(x)], axis=-1)


class Poly3Camera(CameraInterface):
  """
  Pinhole camera with 3-term radial polynomial distortion.
  
  Distortion on normalized coordinates: r_d = r * (1 + k1*r^2 + k2*r^4 + k3*r^6).
  """
  
  def __init__(self, width: int, height: int, fx: float, fy: float, cx: float, cy: float,
               k1: float = 0.0, k2: float = 0.0, k3: float = 0.0, max_iterations: int = 20):
    super().__init__(width, height, fx, fy, cx, cy)
    self.k1 = float(k1)
    self.k2 = float(k2)
    self.k3 = float(k3)
    self.max_iterations = max_iterations
  
  def _distortion_factor(self, r2: np.ndarray) -> np.ndarray:
    # Horner's method
    return 1 + r2 * (self.k1 + r2 * (self.k2 + r2 * self.k3))
  
  def project(self, rays: np.ndarray) -> np.ndarray:
    rays = np.asarray(rays, dtype=np.float64)
    with np.errstate(divide='ignore', invalid='ignore'):
      x = rays[..., 0] / rays[..., 2]
      y = rays[..., 1] / rays[..., 2]
      factor = self._distortion_factor(x * x + y * y)
    return self._to_pixels(x * factor, y * factor)
  
  def unproject(self, pixels: np.ndarray) -> np.ndarray:
    xd, yd = self._normalize_pixels(pixels)
    rd = np.hypot(xd, yd)
    
    # Newton's method on r * factor(r^2) - rd = 0
    r = rd.copy()
    for _ in range(self.max_iterations):
      r2 = r * r
      f = r * self._distortion_factor(r2) - rd
      f_prime = 1 + r2 * (3 * self.k1 + r2 * (5 * self.k2 + r2 * 7 * self.k3))
      safe_prime = np.where(f_prime != 0, f_prime, 1.0)
      r = np.where(f_prime != 0, r - f / safe_prime, r)
    
    scale = np.where(rd > 1e-12, r / np.where(rd > 1e-12, rd, 1.0), 1.0)
    return np.stack([xd * scale, yd * scale, np.ones_like(xd)], axis=-1)


class KannalaBrandtCamera(CameraInterface):
  """
  Fisheye camera following the OpenCV (Kannala-Brandt) model.
  
  theta_d = theta * (1 + k1*theta^2 + k2*theta^4 + k3*theta^6 + k4*theta^8), where theta
  is the angle between the ray and the optical axis. Rays with theta above 90 degrees
  (behind the image plane) still project to finite coordinates.
  """
  
  def __init__(self, width: int, height: int, fx: float, fy: float, cx: float, cy: float,
               k1: float = 0.0, k2: float = 0.0, k3: float = 0.0, k4: float = 0.0,
               max_iterations: int = 10):
    super().__init__(width, height, fx, fy, cx, cy)
    self.k1 = float(k1)
    self.k2 = float(k2)
    self.k3 = float(k3)
    self.k4 = float(k4)
    self.max_iterations = max_iterations
  
  def _distort_theta(self, theta: np.ndarray) -> np.ndarray:
    theta2 = theta * theta
    return theta * (1 + theta2 * (self.k1 + theta2 * (self.k2 + theta2 * (self.k3 + theta2 * self.k4))))
  
  def project(self, rays: np.ndarray) -> np.ndarray:
    rays = np.asarray(rays, dtype=np.float64)
    X = rays[..., 0]
    Y = rays[..., 1]
    Z = rays[..., 2]
    a = np.hypot(X, Y)
    theta = np.arctan2(a, Z)
    theta_d = self._distort_theta(theta)
    
    # Near the optical axis theta_d / a tends to 1 / Z. Straight behind the camera the
    # direction in the image is undefined, so the projection is NaN.
    with np.errstate(divide='ignore', invalid='ignore'):
      on_axis_scale = np.where(Z > 0, 1.0 / Z, np.nan)
      scale = np.where(a > 1e-12, theta_d / np.where(a > 1e-12, a, 1.0), on_axis_scale)
      pixels = self._to_pixels(X * scale, Y * scale)
    return pixels
  
  def unproject(self, pixels: np.ndarray) -> np.ndarray:
    xn, yn = self._normalize_pixels(pixels)
    theta_d = np.hypot(xn, yn)
    k1, k2, k3, k4 = self.k1, self.k2, self.k3, self.k4
    
    # Iteratively solve for theta using Newton's method
    theta = theta_d.copy()
    for _ in range(self.max_iterations):
      theta2 = theta * theta
      f = self._distort_theta(theta) - theta_d
      f_prime = 1 + theta2 * (3 * k1 + theta2 * (5 * k2 + theta2 * (7 * k3 + theta2 * 9 * k4)))
      safe_prime = np.where(f_prime != 0, f_prime, 1.0)
      theta = np.where(f_prime != 0, theta - f / safe_prime, theta)
    theta = np.clip(theta, 0.0, np.pi)
    
    sin_theta = np.sin(theta)
    scale = np.where(theta_d > 1e-12, sin_theta / np.where(theta_d > 1e-12, theta_d, 1.0), 0.0)
    return np.stack([xn * scale, yn * scale, np.cos(theta)], axis=-1)


def make_camera(camera_params: CameraParams) -> CameraInterface:
  """
  Create the camera model described by a CameraParams object.
  
  Parameters:
  - camera_params: validated CameraParams
  
  Returns:
  - CameraInterface implementation matching camera_params.model
  """
  camera_params.validate()
  args = (camera_params.width, camera_params.height,
          camera_params.fx, camera_params.fy, camera_params.cx, camera_params.cy)
  
  model = camera_params.model
  if model in ('PINHOLE', 'LINEAR'):
    return LinearCamera(*args)
  if model == 'POLY3':
    return Poly3Camera(*args, *camera_params.distortion)
  if model in ('FISHEYE', 'KANNALA_BRANDT'):
    return KannalaBrandtCamera(*args, *camera_params.distortion)
  raise ValueError(f"Unsupported camera model: {model}")
