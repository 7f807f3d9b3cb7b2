from __future__ import annotations

import math
from typing import Any, Dict

import numpy as np

from .image import RGBA64Image


def _unit(img: Any) -> np.ndarray:
    pix = img.pix if isinstance(img, RGBA64Image) else np.asarray(img)
    return pix.astype(np.float64) / 65535.0


def mse(a: Any, b: Any) -> float:
    return float(np.mean((_unit(a) - _unit(b)) ** 2))


def psnr(a: Any, b: Any) -> float:
    m = mse(a, b)
    if m <= 1e-12:
        return 99.0
    return 20.0 * math.log10(1.0 / math.sqrt(m))


def compare_images(a: Any, b: Any) -> Dict[str, float]:
    """Error metrics between two 16-bit rasters, values scaled to [0, 1]."""
    ua = _unit(a)
    ub = _unit(b)
    if ua.shape != ub.shape:
        raise ValueError(f"Shape mismatch: {ua.shape} vs {ub.shape}")
    return {
        "mse": mse(a, b),
        "psnr": psnr(a, b),
        "max_abs": float(np.max(np.abs(ua - ub))) if ua.size else 0.0,
    }
