from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np

# Target dimension meaning "keep the source aspect ratio"
AUTO = 0


@dataclass(frozen=True)
class GeometryPlan:
    """Scale factors (old / new), grid alignment and output size."""

    scale_x: float
    scale_y: float
    align_x: float
    align_y: float
    width: int
    height: int

    def source_coords(
        self,
    ) -> Tuple[np.ndarray[Any, Any], np.ndarray[Any, Any]]:
        """Source positions (us, vs) of every output column and row.

        Positions are relative to the source's top-left pixel.
        """
        us = self.scale_x * (
            np.arange(self.width, dtype=np.float64) + self.align_x
        )
        vs = self.scale_y * (
            np.arange(self.height, dtype=np.float64) + self.align_y
        )
        return us, vs


def _check_dim(name: str, v: int) -> int:
    if v < 0:
        raise ValueError(
            f"{name} must be >= 0 (0 keeps aspect ratio), got {v}"
        )
    return int(v)


def calc_factors(
    width: int, height: int, old_width: float, old_height: float
) -> Tuple[float, float]:
    """Scale factors for a target size; 0 derives one axis from the other."""
    if width == AUTO:
        if height == AUTO:
            return 1.0, 1.0
        scale_y = old_height / float(height)
        return scale_y, scale_y
    scale_x = old_width / float(width)
    if height == AUTO:
        return scale_x, scale_x
    return scale_x, old_height / float(height)


def _derived(old: int, scale: float) -> int:
    # Round half up, never collapse a non-empty axis
    return max(1, int(math.floor(old / scale + 0.5)))


def _align(old: int, new: int, scale: float) -> float:
    # Centers the output grid: first and last samples sit symmetrically
    return 0.5 * ((old - 1) / scale - (new - 1))


def plan(
    old_width: int, old_height: int, width: int, height: int
) -> GeometryPlan:
    width = _check_dim("width", width)
    height = _check_dim("height", height)
    if old_width <= 0 or old_height <= 0:
        return GeometryPlan(1.0, 1.0, 0.0, 0.0, 0, 0)
    scale_x, scale_y = calc_factors(width, height, old_width, old_height)
    new_w = width if width != AUTO else _derived(old_width, scale_x)
    new_h = height if height != AUTO else _derived(old_height, scale_y)
    return GeometryPlan(
        scale_x=scale_x,
        scale_y=scale_y,
        align_x=_align(old_width, new_w, scale_x),
        align_y=_align(old_height, new_h, scale_y),
        width=new_w,
        height=new_h,
    )
