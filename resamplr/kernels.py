from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any, Union

import numpy as np

ArrayLike = Union[float, np.ndarray[Any, Any]]

# Below this magnitude sinc is evaluated from its Taylor series
_SINC_SERIES_LIMIT = 1e-3

DEFAULT_LUT_SIZE = 1024


def sinc(x: ArrayLike) -> ArrayLike:
    """Normalized sinc, sin(pi x) / (pi x), with sinc(0) == 1.

    Accepts scalars or arrays; scalars come back as float.
    """
    arr = np.asarray(x, dtype=np.float64)
    px = np.pi * arr
    small = np.abs(arr) < _SINC_SERIES_LIMIT
    safe = np.where(small, 1.0, px)
    px2 = px * px
    series = 1.0 - px2 / 6.0 + px2 * px2 / 120.0
    out = np.where(small, series, np.sin(safe) / safe)
    if out.ndim == 0:
        return float(out)
    return out


@dataclass(frozen=True)
class Kernel:
    """Continuous, symmetric reconstruction kernel.

    kind selects the formula ("nearest", "linear", "cubic", "lanczos");
    b and c are the spline parameters of the cubic family. Evaluation is
    vectorized and returns float64 weights, zero outside [-radius, radius].
    """

    kind: str
    radius: float
    b: float = 0.0
    c: float = 0.0

    def __call__(self, x: ArrayLike) -> np.ndarray[Any, Any]:
        x = np.asarray(x, dtype=np.float64)
        ax = np.abs(x)
        if self.kind == "nearest":
            return np.where((x >= -0.5) & (x < 0.5), 1.0, 0.0)
        if self.kind == "linear":
            return np.maximum(0.0, 1.0 - ax)
        if self.kind == "cubic":
            return _cubic(ax, self.b, self.c)
        if self.kind == "lanczos":
            a = self.radius
            w = np.asarray(sinc(x)) * np.asarray(sinc(x / a))
            return np.where(ax < a, w, 0.0)
        raise ValueError(f"Unknown kernel kind: {self.kind}")

    def support(self, factor: float = 1.0) -> int:
        """Even number of taps covering the kernel stretched by factor."""
        return 2 * int(math.ceil(self.radius * max(1.0, float(factor))))


def _cubic(
    ax: np.ndarray[Any, Any], b: float, c: float
) -> np.ndarray[Any, Any]:
    # Mitchell-Netravali piecewise cubic on |x|
    ax2 = ax * ax
    ax3 = ax2 * ax
    inner = (
        (12.0 - 9.0 * b - 6.0 * c) * ax3
        + (-18.0 + 12.0 * b + 6.0 * c) * ax2
        + (6.0 - 2.0 * b)
    ) / 6.0
    outer = (
        (-b - 6.0 * c) * ax3
        + (6.0 * b + 30.0 * c) * ax2
        + (-12.0 * b - 48.0 * c) * ax
        + (8.0 * b + 24.0 * c)
    ) / 6.0
    return np.where(ax < 1.0, inner, np.where(ax < 2.0, outer, 0.0))


def nearest() -> Kernel:
    return Kernel("nearest", 1.0)


def linear() -> Kernel:
    return Kernel("linear", 1.0)


def cubic(b: float, c: float) -> Kernel:
    return Kernel("cubic", 2.0, b=float(b), c=float(c))


def lanczos(a: int) -> Kernel:
    if a <= 0:
        raise ValueError(f"a must be > 0, got {a}")
    return Kernel("lanczos", float(a))


class LutKernel:
    """Kernel evaluated from a precomputed table of its positive half.

    The table holds table_size + 1 samples over [0, radius]; lookups
    interpolate linearly between neighbouring entries and return 0 past
    the last one.
    """

    def __init__(
        self, base: Kernel, table_size: int = DEFAULT_LUT_SIZE
    ) -> None:
        if table_size < 1:
            raise ValueError(f"table_size must be >= 1, got {table_size}")
        self.base = base
        self.radius = base.radius
        self.table_size = int(table_size)
        self._step = self.table_size / float(base.radius)
        xs = np.linspace(0.0, base.radius, self.table_size + 1)
        self.table = np.asarray(base(xs), dtype=np.float64)

    def __call__(self, x: ArrayLike) -> np.ndarray[Any, Any]:
        pos = np.abs(np.asarray(x, dtype=np.float64)) * self._step
        idx = np.floor(pos).astype(np.intp)
        inside = idx < self.table_size
        idx = np.minimum(idx, self.table_size - 1)
        frac = pos - idx
        w = self.table[idx] * (1.0 - frac) + self.table[idx + 1] * frac
        return np.where(inside, w, 0.0)

    def support(self, factor: float = 1.0) -> int:
        return self.base.support(factor)

    def __repr__(self) -> str:
        return f"LutKernel({self.base!r}, table_size={self.table_size})"


AnyKernel = Union[Kernel, LutKernel]


class Interpolation(enum.Enum):
    NEAREST_NEIGHBOR = "nearest"
    BILINEAR = "bilinear"
    BICUBIC = "bicubic"
    MITCHELL_NETRAVALI = "mitchell"
    LANCZOS2 = "lanczos2"
    LANCZOS2_LUT = "lanczos2_lut"
    LANCZOS3 = "lanczos3"
    LANCZOS3_LUT = "lanczos3_lut"

    def kernel(self, lut_size: int = DEFAULT_LUT_SIZE) -> AnyKernel:
        """Resolve to a kernel; LUT variants build their table here."""
        if self is Interpolation.NEAREST_NEIGHBOR:
            return nearest()
        if self is Interpolation.BILINEAR:
            return linear()
        if self is Interpolation.BICUBIC:
            return cubic(0.0, 0.5)
        if self is Interpolation.MITCHELL_NETRAVALI:
            return cubic(1.0 / 3.0, 1.0 / 3.0)
        if self is Interpolation.LANCZOS2:
            return lanczos(2)
        if self is Interpolation.LANCZOS3:
            return lanczos(3)
        if self is Interpolation.LANCZOS2_LUT:
            return LutKernel(lanczos(2), lut_size)
        return LutKernel(lanczos(3), lut_size)

    @classmethod
    def from_name(cls, name: str) -> "Interpolation":
        key = str(name).strip().lower().replace("-", "_")
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown interpolation: {name}")
