from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from time import perf_counter
from typing import List, Optional

from resamplr.api import Resizer
from resamplr.config import ResizeConfig, load_config
from resamplr.kernels import Interpolation
from resamplr.logging_utils import setup_logging
from resamplr.utils import load_image, save_image


def build_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Resize or crop an image with a separable kernel."
    )
    p.add_argument("input", type=Path, help="Source image")
    p.add_argument("output", type=Path, help="Destination image (RGBA)")
    p.add_argument(
        "--width", type=int, default=0, help="Target width (0 = auto)"
    )
    p.add_argument(
        "--height", type=int, default=0, help="Target height (0 = auto)"
    )
    p.add_argument(
        "--interp",
        choices=[m.value for m in Interpolation],
        default=None,
        help="Interpolation (default: from config, else lanczos3)",
    )
    p.add_argument(
        "--config", type=Path, default=None, help="Path to YAML config"
    )
    p.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Parallel threads for row bands (default: CPU cores)",
    )
    p.add_argument(
        "--crop",
        action="store_true",
        help="Cover width x height and cut out the centered window",
    )
    p.add_argument(
        "--no-gamma",
        action="store_true",
        help="Filter sRGB values directly instead of linear light",
    )
    p.add_argument("--progress", action="store_true", help="Show tqdm bar")
    p.add_argument("--log-level", default=None)
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = build_args(argv)
    cfg = load_config(args.config) if args.config else ResizeConfig()
    # Command line flags win over the config file
    if args.workers is not None:
        cfg = replace(cfg, workers=args.workers)
    if args.no_gamma:
        cfg = replace(cfg, gamma_correct=False)
    if args.progress:
        cfg = replace(cfg, show_progress=True)
    if args.interp:
        cfg = replace(cfg, interpolation=Interpolation(args.interp))
    setup_logging(args.log_level or cfg.log_level)
    log = logging.getLogger("resamplr.cli")

    image = load_image(args.input)
    rs = Resizer(image, cfg)
    t0 = perf_counter()
    if args.crop:
        out = rs.crop(args.width, args.height)
    else:
        out = rs.resize(args.width, args.height)
    log.info(
        "%s %dx%d -> %dx%d (%s) in %.3fs",
        "Cropped" if args.crop else "Resized",
        rs.bounds.dx,
        rs.bounds.dy,
        out.width,
        out.height,
        cfg.interpolation.value,
        perf_counter() - t0,
    )
    save_image(out, args.output)
    print(f"Image written: {args.output}")


if __name__ == "__main__":
    main()
