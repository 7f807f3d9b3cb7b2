from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol, Tuple, runtime_checkable

import cv2
import numpy as np

Color64 = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Rectangle:
    """Half-open pixel rectangle [min_x, max_x) x [min_y, max_y)."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @classmethod
    def of_size(cls, width: int, height: int) -> "Rectangle":
        return cls(0, 0, int(width), int(height))

    @property
    def dx(self) -> int:
        return max(0, self.max_x - self.min_x)

    @property
    def dy(self) -> int:
        return max(0, self.max_y - self.min_y)

    @property
    def empty(self) -> bool:
        return self.dx == 0 or self.dy == 0

    def contains(self, x: int, y: int) -> bool:
        return self.min_x <= x < self.max_x and self.min_y <= y < self.max_y


@runtime_checkable
class Raster(Protocol):
    """Minimal read interface accepted by the generic sampling path.

    at() returns 16-bit premultiplied (r, g, b, a) for absolute
    coordinates inside bounds.
    """

    @property
    def bounds(self) -> Rectangle: ...

    def at(self, x: int, y: int) -> Color64: ...


@dataclass
class _PackedImage(ABC):
    """Interleaved image stored as an (H, W[, C]) array starting at origin."""

    pix: np.ndarray[Any, Any]
    origin: Tuple[int, int] = (0, 0)

    fmt: ClassVar[str] = ""
    dtype: ClassVar[Any] = np.uint8
    channels: ClassVar[int] = 1

    def __post_init__(self) -> None:
        pix = np.asarray(self.pix)
        ndim = 2 if self.channels == 1 else 3
        if pix.ndim != ndim or (ndim == 3 and pix.shape[2] != self.channels):
            raise ValueError(
                f"{type(self).__name__} expects shape "
                f"{'(H,W)' if ndim == 2 else f'(H,W,{self.channels})'}, "
                f"got {pix.shape}"
            )
        if pix.dtype != self.dtype:
            raise ValueError(
                f"{type(self).__name__} expects dtype "
                f"{np.dtype(self.dtype)}, got {pix.dtype}"
            )
        self.pix = pix
        self.origin = (int(self.origin[0]), int(self.origin[1]))

    @classmethod
    def new(cls, rect: Rectangle) -> Any:
        shape: Tuple[int, ...] = (rect.dy, rect.dx)
        if cls.channels > 1:
            shape = shape + (cls.channels,)
        return cls(np.zeros(shape, dtype=cls.dtype), (rect.min_x, rect.min_y))

    @property
    def width(self) -> int:
        return int(self.pix.shape[1])

    @property
    def height(self) -> int:
        return int(self.pix.shape[0])

    @property
    def bounds(self) -> Rectangle:
        x0, y0 = self.origin
        return Rectangle(x0, y0, x0 + self.width, y0 + self.height)

    def _value(self, x: int, y: int) -> np.ndarray[Any, Any]:
        return self.pix[y - self.origin[1], x - self.origin[0]]

    def at(self, x: int, y: int) -> Color64:
        if not self.bounds.contains(x, y):
            return (0, 0, 0, 0)
        return self._color(self._value(x, y))

    @abstractmethod
    def _color(self, v: np.ndarray[Any, Any]) -> Color64:
        """Widen one stored value to 16-bit premultiplied RGBA."""
        ...


@dataclass
class RGBAImage(_PackedImage):
    """8-bit RGBA, premultiplied alpha."""

    fmt: ClassVar[str] = "rgba"
    dtype: ClassVar[Any] = np.uint8
    channels: ClassVar[int] = 4

    def _color(self, v: np.ndarray[Any, Any]) -> Color64:
        r, g, b, a = (int(c) * 0x101 for c in v)
        return (r, g, b, a)


@dataclass
class RGBA64Image(_PackedImage):
    """16-bit RGBA, premultiplied alpha."""

    fmt: ClassVar[str] = "rgba64"
    dtype: ClassVar[Any] = np.uint16
    channels: ClassVar[int] = 4

    def _color(self, v: np.ndarray[Any, Any]) -> Color64:
        r, g, b, a = (int(c) for c in v)
        return (r, g, b, a)


@dataclass
class GrayImage(_PackedImage):
    fmt: ClassVar[str] = "gray"
    dtype: ClassVar[Any] = np.uint8
    channels: ClassVar[int] = 1

    def _color(self, v: np.ndarray[Any, Any]) -> Color64:
        g = int(v) * 0x101
        return (g, g, g, 0xFFFF)


@dataclass
class Gray16Image(_PackedImage):
    fmt: ClassVar[str] = "gray16"
    dtype: ClassVar[Any] = np.uint16
    channels: ClassVar[int] = 1

    def _color(self, v: np.ndarray[Any, Any]) -> Color64:
        g = int(v)
        return (g, g, g, 0xFFFF)


class SubsampleRatio(enum.Enum):
    R444 = "4:4:4"
    R422 = "4:2:2"
    R420 = "4:2:0"
    R440 = "4:4:0"

    @property
    def halves_x(self) -> bool:
        return self in (SubsampleRatio.R422, SubsampleRatio.R420)

    @property
    def halves_y(self) -> bool:
        return self in (SubsampleRatio.R420, SubsampleRatio.R440)

    def chroma_shape(self, rect: Rectangle) -> Tuple[int, int]:
        """(rows, cols) of the Cb/Cr planes for an image covering rect."""
        cw = rect.dx
        ch = rect.dy
        if self.halves_x:
            cw = (rect.max_x + 1) // 2 - rect.min_x // 2
        if self.halves_y:
            ch = (rect.max_y + 1) // 2 - rect.min_y // 2
        if rect.empty:
            return (0, 0)
        return (ch, cw)


@dataclass
class YCbCrImage:
    """Planar 8-bit Y'CbCr with optionally subsampled chroma.

    y has one entry per pixel; cb and cr have the shape given by
    ratio.chroma_shape(rect). Offsets take absolute pixel coordinates.
    """

    y: np.ndarray[Any, Any]
    cb: np.ndarray[Any, Any]
    cr: np.ndarray[Any, Any]
    ratio: SubsampleRatio = SubsampleRatio.R444
    origin: Tuple[int, int] = (0, 0)

    fmt: ClassVar[str] = "ycbcr"

    def __post_init__(self) -> None:
        self.y = np.asarray(self.y)
        self.cb = np.asarray(self.cb)
        self.cr = np.asarray(self.cr)
        self.origin = (int(self.origin[0]), int(self.origin[1]))
        for name, plane in (("y", self.y), ("cb", self.cb), ("cr", self.cr)):
            if plane.ndim != 2 or plane.dtype != np.uint8:
                raise ValueError(
                    f"YCbCrImage plane {name} must be 2D uint8, "
                    f"got {plane.dtype} {plane.shape}"
                )
        expected = self.ratio.chroma_shape(self.bounds)
        if self.cb.shape != expected or self.cr.shape != expected:
            raise ValueError(
                f"chroma planes must have shape {expected} for "
                f"{self.ratio.value}, got {self.cb.shape} and {self.cr.shape}"
            )

    @classmethod
    def new(
        cls, rect: Rectangle, ratio: SubsampleRatio = SubsampleRatio.R444
    ) -> "YCbCrImage":
        cshape = ratio.chroma_shape(rect)
        return cls(
            y=np.zeros((rect.dy, rect.dx), dtype=np.uint8),
            cb=np.zeros(cshape, dtype=np.uint8),
            cr=np.zeros(cshape, dtype=np.uint8),
            ratio=ratio,
            origin=(rect.min_x, rect.min_y),
        )

    @classmethod
    def from_rgb(
        cls,
        rgb: np.ndarray[Any, Any],
        ratio: SubsampleRatio = SubsampleRatio.R444,
        origin: Tuple[int, int] = (0, 0),
    ) -> "YCbCrImage":
        """Encode an (H,W,3) uint8 RGB array, averaging chroma per block."""
        if rgb.ndim != 3 or rgb.shape[2] != 3 or rgb.dtype != np.uint8:
            raise ValueError("from_rgb expects (H,W,3) uint8")
        h, w = rgb.shape[:2]
        rect = Rectangle(origin[0], origin[1], origin[0] + w, origin[1] + h)
        img = cls.new(rect, ratio)
        if rect.empty:
            return img
        ycrcb = cv2.cvtColor(np.ascontiguousarray(rgb), cv2.COLOR_RGB2YCrCb)
        img.y[...] = ycrcb[:, :, 0]
        xs = np.arange(rect.min_x, rect.max_x)
        ys = np.arange(rect.min_y, rect.max_y)
        crow, ccol = img.c_offset(xs[None, :], ys[:, None])
        crow = np.broadcast_to(crow, (h, w))
        ccol = np.broadcast_to(ccol, (h, w))
        for plane, ch in ((img.cr, 1), (img.cb, 2)):
            acc = np.zeros(plane.shape, dtype=np.float64)
            cnt = np.zeros(plane.shape, dtype=np.float64)
            np.add.at(acc, (crow, ccol), ycrcb[:, :, ch].astype(np.float64))
            np.add.at(cnt, (crow, ccol), 1.0)
            plane[...] = np.rint(acc / np.maximum(cnt, 1.0)).astype(np.uint8)
        return img

    @property
    def bounds(self) -> Rectangle:
        x0, y0 = self.origin
        return Rectangle(
            x0, y0, x0 + int(self.y.shape[1]), y0 + int(self.y.shape[0])
        )

    @property
    def width(self) -> int:
        return int(self.y.shape[1])

    @property
    def height(self) -> int:
        return int(self.y.shape[0])

    def y_offset(self, x: Any, y: Any) -> Tuple[Any, Any]:
        """(row, col) into the luma plane."""
        return (y - self.origin[1], x - self.origin[0])

    def c_offset(self, x: Any, y: Any) -> Tuple[Any, Any]:
        """(row, col) into the chroma planes."""
        x0, y0 = self.origin
        if self.ratio.halves_x:
            col = x // 2 - x0 // 2
        else:
            col = x - x0
        if self.ratio.halves_y:
            row = y // 2 - y0 // 2
        else:
            row = y - y0
        return (row, col)

    def at(self, x: int, y: int) -> Color64:
        if not self.bounds.contains(x, y):
            return (0, 0, 0, 0)
        yi = self.y_offset(x, y)
        ci = self.c_offset(x, y)
        ycrcb = np.array(
            [[[self.y[yi], self.cr[ci], self.cb[ci]]]], dtype=np.uint8
        )
        r, g, b = (int(c) * 0x101 for c in
                   cv2.cvtColor(ycrcb, cv2.COLOR_YCrCb2RGB)[0, 0])
        return (r, g, b, 0xFFFF)

    def to_ycc(self) -> np.ndarray[Any, Any]:
        """Interleaved full-resolution (H,W,3) Y, Cb, Cr array."""
        b = self.bounds
        out = np.empty((b.dy, b.dx, 3), dtype=np.uint8)
        if b.empty:
            return out
        xs = np.arange(b.min_x, b.max_x)
        ys = np.arange(b.min_y, b.max_y)
        crow, ccol = self.c_offset(xs[None, :], ys[:, None])
        out[:, :, 0] = self.y
        out[:, :, 1] = self.cb[crow, ccol]
        out[:, :, 2] = self.cr[crow, ccol]
        return out
