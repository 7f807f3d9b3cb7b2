from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .kernels import DEFAULT_LUT_SIZE, Interpolation


@dataclass(frozen=True)
class ResizeConfig:
    # None means one worker per detected CPU
    workers: Optional[int] = None
    gamma_correct: bool = True
    interpolation: Interpolation = Interpolation.LANCZOS3
    lut_size: int = DEFAULT_LUT_SIZE
    # Output rows evaluated per convolution block inside a worker
    block_rows: int = 32
    show_progress: bool = False
    log_level: str = "INFO"

    def resolved_workers(self) -> int:
        if self.workers is None:
            return max(1, os.cpu_count() or 1)
        return max(1, int(self.workers))


def _as_int_or_none(v: Any) -> Optional[int]:
    if v is None:
        return None
    if isinstance(v, str) and v.lower() == "auto":
        return None
    return int(v)


def config_from_dict(data: Dict[str, Any]) -> ResizeConfig:
    d = data.get("resize", data) or {}
    return ResizeConfig(
        workers=_as_int_or_none(d.get("workers", "auto")),
        gamma_correct=bool(d.get("gamma_correct", True)),
        interpolation=Interpolation.from_name(
            d.get("interpolation", Interpolation.LANCZOS3.value)
        ),
        lut_size=int(d.get("lut_size", DEFAULT_LUT_SIZE)),
        block_rows=int(d.get("block_rows", 32)),
        show_progress=bool(d.get("show_progress", False)),
        log_level=str(d.get("log_level", "INFO")),
    )


def load_config(path: Path) -> ResizeConfig:
    with path.open("r") as f:
        data: Dict[str, Any] = yaml.safe_load(f) or {}
    return config_from_dict(data)
