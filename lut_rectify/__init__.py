"""
Lookup-table image rectification

This package contains the building blocks for rectifying images of a calibrated camera:
- Camera parameter handling and camera models (pinhole, polynomial, fisheye)
- Bilinear lookup tables and the builder that fills them
- Branch-free resampling of single-channel images through a lookup table
- Field-of-view bounds of a camera after a rectifying rotation
"""

from .bounds import min_max_rotated_col, min_max_rotated_row
from .cache_manager import CacheManager
from .camera_models import CameraInterface, KannalaBrandtCamera, LinearCamera, Poly3Camera, make_camera
from .camera_params import CameraParams, parse_camera_params, parse_camera_params_dict
from .camera_rectifier import CameraRectifier
from .lookup_table import LUT_POINT_DTYPE, BilinearLutPoint, LookupTable
from .lut_builder import (
  build_lookup_table,
  compose_rotation_intrinsics,
  intrinsics_from_fov,
  linear_intrinsics,
  rotation_from_ypr,
)
from .range import Range
from .rectify import rectify, rectify_image, remap_with_opencv

__all__ = [
    'CameraParams',
    'parse_camera_params',
    'parse_camera_params_dict',
    'CameraInterface',
    'LinearCamera',
    'Poly3Camera',
    'KannalaBrandtCamera',
    'make_camera',
    'Range',
    'BilinearLutPoint',
    'LookupTable',
    'LUT_POINT_DTYPE',
    'build_lookup_table',
    'compose_rotation_intrinsics',
    'intrinsics_from_fov',
    'linear_intrinsics',
    'rotation_from_ypr',
    'rectify',
    'rectify_image',
    'remap_with_opencv',
    'min_max_rotated_col',
    'min_max_rotated_row',
    'CacheManager',
    'CameraRectifier',
]
