"""Clamped 16-bit sample access to source rasters.

Each adapter reads a block of source pixels given column and row index
vectors. Indices are clamped into the image (border replication) before
any storage access, and every layout is widened to 16 bits per channel
(8-bit v becomes v << 8 | v). Known layouts index their arrays directly;
anything else goes through the per-pixel Raster.at() fallback.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import cv2
import numpy as np

from .image import (
    Gray16Image,
    GrayImage,
    Raster,
    RGBA64Image,
    RGBAImage,
    YCbCrImage,
)
from .utils import as_image

Array = np.ndarray[Any, Any]

_OPAQUE = np.float32(0xFFFF)


class PixelSource(ABC):
    """Border-replicating sample reader over a non-empty image."""

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(
                f"PixelSource needs a non-empty image, got {width}x{height}"
            )
        self.width = int(width)
        self.height = int(height)

    def sample(
        self, xs: Any, ys: Any
    ) -> np.ndarray[Any, Any]:
        """Samples at every (ys[i], xs[j]) as float32 (len(ys), len(xs), 4).

        xs and ys are 0-based relative to the image bounds and may lie
        outside it.
        """
        xc = np.clip(np.asarray(xs, dtype=np.intp), 0, self.width - 1)
        yc = np.clip(np.asarray(ys, dtype=np.intp), 0, self.height - 1)
        return self._gather(xc.ravel(), yc.ravel())

    def sample_raw(self, x: int, y: int) -> np.ndarray[Any, Any]:
        return self.sample([x], [y])[0, 0]

    @abstractmethod
    def _gather(
        self, xs: np.ndarray[Any, Any], ys: np.ndarray[Any, Any]
    ) -> np.ndarray[Any, Any]:
        """Read in-range indices; xs and ys are already clamped."""
        ...


class RGBASource(PixelSource):
    def __init__(self, img: RGBAImage) -> None:
        super().__init__(img.width, img.height)
        self.pix = img.pix

    def _gather(self, xs: Array, ys: Array) -> Array:
        return self.pix[np.ix_(ys, xs)].astype(np.float32) * np.float32(0x101)


class RGBA64Source(PixelSource):
    def __init__(self, img: RGBA64Image) -> None:
        super().__init__(img.width, img.height)
        self.pix = img.pix

    def _gather(self, xs: Array, ys: Array) -> Array:
        return self.pix[np.ix_(ys, xs)].astype(np.float32)


class _GraySource(PixelSource):
    widen = np.float32(1)

    def __init__(self, img: Any) -> None:
        super().__init__(img.width, img.height)
        self.pix = img.pix

    def _gather(self, xs: Array, ys: Array) -> Array:
        g = self.pix[np.ix_(ys, xs)].astype(np.float32) * self.widen
        out = np.empty(g.shape + (4,), dtype=np.float32)
        out[..., 0] = g
        out[..., 1] = g
        out[..., 2] = g
        out[..., 3] = _OPAQUE
        return out


class GraySource(_GraySource):
    widen = np.float32(0x101)


class Gray16Source(_GraySource):
    widen = np.float32(1)


class YCbCrSource(PixelSource):
    """Planar Y'CbCr; chroma is located per clamped pixel, then converted."""

    def __init__(self, img: YCbCrImage) -> None:
        super().__init__(img.width, img.height)
        self.img = img

    def _gather(self, xs: Array, ys: Array) -> Array:
        img = self.img
        ax = xs + img.origin[0]
        ay = ys + img.origin[1]
        yrow, ycol = img.y_offset(ax, ay)
        crow, ccol = img.c_offset(ax, ay)
        ycrcb = np.empty((len(ys), len(xs), 3), dtype=np.uint8)
        ycrcb[..., 0] = img.y[np.ix_(yrow, ycol)]
        ycrcb[..., 1] = img.cr[np.ix_(crow, ccol)]
        ycrcb[..., 2] = img.cb[np.ix_(crow, ccol)]
        rgb = cv2.cvtColor(ycrcb, cv2.COLOR_YCrCb2RGB)
        out = np.empty((len(ys), len(xs), 4), dtype=np.float32)
        out[..., :3] = rgb.astype(np.float32) * np.float32(0x101)
        out[..., 3] = _OPAQUE
        return out


class GenericSource(PixelSource):
    """Slow path for any Raster: one at() call per distinct pixel."""

    def __init__(self, img: Raster) -> None:
        b = img.bounds
        super().__init__(b.dx, b.dy)
        self.img = img
        self.min_x = b.min_x
        self.min_y = b.min_y

    def _gather(self, xs: Array, ys: Array) -> Array:
        out = np.empty((len(ys), len(xs), 4), dtype=np.float32)
        for i, y in enumerate(ys):
            for j, x in enumerate(xs):
                out[i, j] = self.img.at(
                    int(x) + self.min_x, int(y) + self.min_y
                )
        return out


def source_for(img: Any) -> PixelSource:
    """Pick the sampling path for img once, by type."""
    img = as_image(img)
    if isinstance(img, RGBAImage):
        return RGBASource(img)
    if isinstance(img, RGBA64Image):
        return RGBA64Source(img)
    if isinstance(img, GrayImage):
        return GraySource(img)
    if isinstance(img, Gray16Image):
        return Gray16Source(img)
    if isinstance(img, YCbCrImage):
        return YCbCrSource(img)
    return GenericSource(img)
