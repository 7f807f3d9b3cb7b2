from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

import numpy as np

from .converter import PixelSource
from .kernels import AnyKernel
from .utils import float_to_uint16, from_linear, to_linear

Array = np.ndarray[Any, Any]

# Added before truncation so float32 error cannot drop exact values a unit
_PACK_SLACK = np.float32(0.01)

# Source pixels read and linearized at once by convolve_rows
_CHUNK_PIXELS = 1 << 16


class FilterInstance:
    """Separable convolution of one source against one kernel.

    The kernel is stretched by factor = max(1, scale) per axis so that
    downsampling low-pass filters the source. Each output value is the
    weight-normalized sum over an even window of taps starting at
    floor(u) - support / 2 + 1, first along rows, then along columns.

    Holds per-call caches; create one per worker thread.
    """

    def __init__(
        self,
        kernel: AnyKernel,
        source: PixelSource,
        scale_x: float,
        scale_y: float,
        *,
        gamma_correct: bool = False,
        block_rows: int = 32,
    ) -> None:
        self.kernel = kernel
        self.source = source
        self.factor_x = max(1.0, float(scale_x))
        self.factor_y = max(1.0, float(scale_y))
        self.support_x = kernel.support(self.factor_x)
        self.support_y = kernel.support(self.factor_y)
        self.gamma_correct = gamma_correct
        self.block_rows = max(1, int(block_rows))
        self._columns_key: Optional[Array] = None
        self._columns: Optional[Tuple[Array, Array, Array]] = None

    def _weights(
        self, coords: Any, support: int, factor: float
    ) -> Tuple[Array, Array]:
        """Tap indices (N, support) and normalized float32 weights."""
        coords = np.asarray(coords, dtype=np.float64).ravel()
        start = np.floor(coords).astype(np.intp) - support // 2 + 1
        taps = start[:, None] + np.arange(support, dtype=np.intp)[None, :]
        w = np.asarray(self.kernel((coords[:, None] - taps) / factor))
        total = w.sum(axis=1, keepdims=True)
        total = np.where(np.abs(total) < 1e-12, 1.0, total)
        return taps, (w / total).astype(np.float32)

    def _bind_columns(self, us: Array) -> Tuple[Array, Array, Array]:
        # Column taps are shared by every row of a band
        if self._columns is not None and self._columns_key is us:
            return self._columns
        taps, wx = self._weights(us, self.support_x, self.factor_x)
        xs, inv = np.unique(taps.ravel(), return_inverse=True)
        self._columns = (xs, inv.reshape(taps.shape), wx)
        self._columns_key = us
        return self._columns

    def _read(self, xs: Array, ys: Array) -> Array:
        samples = self.source.sample(xs, ys)
        if self.gamma_correct:
            samples = to_linear(samples)
        return samples

    def _pack(self, acc: Array) -> Array:
        if self.gamma_correct:
            acc = from_linear(acc)
        return float_to_uint16(acc + _PACK_SLACK)

    def _horizontal(self, samples: Array, x_idx: Array, wx: Array) -> Array:
        # One tap at a time, so the temporary stays (rows, W, 4)
        acc = np.zeros(
            (samples.shape[0], x_idx.shape[0], 4), dtype=np.float32
        )
        for s in range(x_idx.shape[1]):
            acc += samples[:, x_idx[:, s]] * wx[None, :, s, None]
        return acc

    def interpolate(self, u: float, v: float) -> Array:
        """Value at source position (u, v) as clamped uint16 RGBA (4,)."""
        xt, wx = self._weights([u], self.support_x, self.factor_x)
        yt, wy = self._weights([v], self.support_y, self.factor_y)
        samples = self._read(xt[0], yt[0])
        rows = np.einsum("ysc,s->yc", samples, wx[0])
        acc = np.einsum("yc,y->c", rows, wy[0])
        return self._pack(acc)

    def convolve_rows(self, us: Sequence[float], vs: Sequence[float]) -> Array:
        """Evaluate the grid us x vs as uint16 (len(vs), len(us), 4).

        Output rows are processed in blocks; every distinct source pixel
        of a block is read (and linearized) once. Source rows are read
        in chunks of about _CHUNK_PIXELS pixels and reduced horizontally
        right away, so only (source rows, len(us), 4) survives per block.
        """
        us = np.asarray(us, dtype=np.float64)
        vs = np.asarray(vs, dtype=np.float64)
        xs, x_inv, wx = self._bind_columns(us)
        out = np.empty((len(vs), len(us), 4), dtype=np.uint16)
        step = max(1, _CHUNK_PIXELS // max(1, len(xs)))
        for b0 in range(0, len(vs), self.block_rows):
            b1 = min(len(vs), b0 + self.block_rows)
            yt, wy = self._weights(vs[b0:b1], self.support_y, self.factor_y)
            ys, y_inv = np.unique(yt.ravel(), return_inverse=True)
            y_inv = y_inv.reshape(yt.shape)
            # Horizontal pass on every source row the block needs
            rows = np.empty((len(ys), len(us), 4), dtype=np.float32)
            for r0 in range(0, len(ys), step):
                samples = self._read(xs, ys[r0:r0 + step])
                rows[r0:r0 + step] = self._horizontal(samples, x_inv, wx)
            # Vertical pass
            acc = np.zeros((b1 - b0, len(us), 4), dtype=np.float32)
            for s in range(yt.shape[1]):
                acc += rows[y_inv[:, s]] * wy[:, s, None, None]
            out[b0:b1] = self._pack(acc)
        return out
