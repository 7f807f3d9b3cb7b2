from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Iterable, List, Tuple

import numpy as np
from tqdm import tqdm

from .filters import FilterInstance

log = logging.getLogger(__name__)

Band = Tuple[int, int]


def split_rows(height: int, workers: int) -> List[Band]:
    """Split [0, height) into min(workers, height) contiguous bands.

    Band sizes differ by at most one row; the longer ones come last.
    """
    if height <= 0:
        return []
    n = max(1, min(int(workers), int(height)))
    return [(i * height // n, (i + 1) * height // n) for i in range(n)]


def run_bands(
    out: np.ndarray[Any, Any],
    us: np.ndarray[Any, Any],
    vs: np.ndarray[Any, Any],
    make_filter: Callable[[], FilterInstance],
    workers: int,
    show_progress: bool = False,
) -> np.ndarray[Any, Any]:
    """Fill out (len(vs), len(us), 4) band by band, one thread per band.

    Every worker builds its own FilterInstance and writes only its rows.
    Returns once all bands are written; a failing band re-raises here.
    """
    bands = split_rows(len(vs), workers)

    def _render_band(band: Band) -> Band:
        y0, y1 = band
        filt = make_filter()
        out[y0:y1] = filt.convolve_rows(us, vs[y0:y1])
        return band

    if len(bands) <= 1:
        for band in bands:
            _render_band(band)
        return out

    log.debug("Dispatching %d row bands", len(bands))
    with ThreadPoolExecutor(max_workers=len(bands)) as ex:
        futs = [ex.submit(_render_band, b) for b in bands]
        done: Iterable[Any] = as_completed(futs)
        if show_progress:
            done = tqdm(done, total=len(futs), desc="bands", unit="band")
        for fut in done:
            y0, y1 = fut.result()
            log.debug("Band rows %d..%d done", y0, y1)
    return out
