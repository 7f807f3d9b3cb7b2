"""Separable-kernel image resampling (resamplr) package."""

from .api import Resizer, crop, resize
from .config import ResizeConfig, load_config
from .image import (
    Gray16Image,
    GrayImage,
    Rectangle,
    RGBA64Image,
    RGBAImage,
    SubsampleRatio,
    YCbCrImage,
)
from .kernels import Interpolation

__all__ = [
    "Resizer",
    "resize",
    "crop",
    "ResizeConfig",
    "load_config",
    "Interpolation",
    "Rectangle",
    "RGBAImage",
    "RGBA64Image",
    "GrayImage",
    "Gray16Image",
    "YCbCrImage",
    "SubsampleRatio",
]
