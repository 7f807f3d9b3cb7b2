from __future__ import annotations

import logging
import math
from typing import Any, Optional

from .config import ResizeConfig
from .converter import PixelSource, source_for
from .dispatch import run_bands
from .filters import FilterInstance
from .geometry import plan
from .image import Rectangle, RGBA64Image
from .kernels import Interpolation
from .utils import as_image

log = logging.getLogger(__name__)


class Resizer:
    """Resize helper bound to one source image.

    The sampling path for the source is chosen once and reused by every
    call.

    Usage:
        rs = Resizer(image, ResizeConfig(workers=4))
        small = rs.resize(320, 0, Interpolation.LANCZOS3)
    """

    def __init__(
        self, image: Any, config: Optional[ResizeConfig] = None
    ) -> None:
        self.config = config if config is not None else ResizeConfig()
        self.image = as_image(image)
        self.bounds: Rectangle = self.image.bounds
        self._source: Optional[PixelSource] = None
        if not self.bounds.empty:
            self._source = source_for(self.image)

    def resize(
        self,
        width: int,
        height: int,
        interp: Optional[Interpolation] = None,
    ) -> RGBA64Image:
        """Resample to width x height; 0 on one axis keeps the aspect ratio.

        Both 0 returns a same-size copy. Returns a 16-bit premultiplied
        RGBA image anchored at (0, 0).
        """
        cfg = self.config
        interp = interp if interp is not None else cfg.interpolation
        geo = plan(self.bounds.dx, self.bounds.dy, width, height)
        out = RGBA64Image.new(Rectangle.of_size(geo.width, geo.height))
        if self._source is None or geo.width == 0 or geo.height == 0:
            return out

        kernel = interp.kernel(cfg.lut_size)
        us, vs = geo.source_coords()
        workers = cfg.resolved_workers()
        source = self._source
        log.debug(
            "Resize %dx%d -> %dx%d with %s (scale %.4f, %.4f), %d workers",
            self.bounds.dx,
            self.bounds.dy,
            geo.width,
            geo.height,
            interp.name,
            geo.scale_x,
            geo.scale_y,
            workers,
        )

        def make_filter() -> FilterInstance:
            return FilterInstance(
                kernel,
                source,
                geo.scale_x,
                geo.scale_y,
                gamma_correct=cfg.gamma_correct,
                block_rows=cfg.block_rows,
            )

        run_bands(
            out.pix,
            us,
            vs,
            make_filter,
            workers,
            show_progress=cfg.show_progress,
        )
        return out

    def crop(
        self,
        width: int,
        height: int,
        interp: Optional[Interpolation] = None,
    ) -> RGBA64Image:
        """Scale to cover width x height, then cut out the centered window."""
        if width <= 0 or height <= 0:
            raise ValueError(
                f"crop needs positive width and height, got {width}x{height}"
            )
        old_w, old_h = self.bounds.dx, self.bounds.dy
        if self._source is None:
            return RGBA64Image.new(Rectangle.of_size(0, 0))
        rx = old_w / float(width)
        ry = old_h / float(height)
        if rx < ry:
            w = width
            h = max(height, int(math.floor(old_h / rx + 0.5)))
        else:
            w = max(width, int(math.floor(old_w / ry + 0.5)))
            h = height
        buf = self.resize(w, h, interp)
        x0 = (w - width) // 2
        y0 = (h - height) // 2
        return RGBA64Image(buf.pix[y0:y0 + height, x0:x0 + width].copy())


def resize(
    width: int,
    height: int,
    image: Any,
    interp: Optional[Interpolation] = None,
    *,
    config: Optional[ResizeConfig] = None,
) -> RGBA64Image:
    """Stateless convenience API: resize image to width x height.

    interp defaults to config.interpolation (Lanczos3 without a config).
    For many sizes of the same source, prefer Resizer.
    """
    return Resizer(image, config).resize(width, height, interp)


def crop(
    width: int,
    height: int,
    image: Any,
    interp: Optional[Interpolation] = None,
    *,
    config: Optional[ResizeConfig] = None,
) -> RGBA64Image:
    return Resizer(image, config).crop(width, height, interp)
