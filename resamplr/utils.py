from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image

from .image import (
    Gray16Image,
    GrayImage,
    Raster,
    RGBA64Image,
    RGBAImage,
    SubsampleRatio,
    YCbCrImage,
)

_TYPED = (RGBAImage, RGBA64Image, GrayImage, Gray16Image, YCbCrImage)


# Clamp, then truncate toward zero
def float_to_uint8(x: Any) -> Any:
    return np.clip(x, 0, 0xFF).astype(np.uint8)


def float_to_uint16(x: Any) -> Any:
    return np.clip(x, 0, 0xFFFF).astype(np.uint16)


# sRGB transfer curve, values in [0, 1]
def srgb_to_linear(c: np.ndarray[Any, Any]) -> np.ndarray[Any, Any]:
    c = np.asarray(c, dtype=np.float32)
    return np.where(
        c <= 0.04045,
        c / 12.92,
        np.power((c + 0.055) / 1.055, 2.4, dtype=np.float32),
    ).astype(np.float32)


def linear_to_srgb(c: np.ndarray[Any, Any]) -> np.ndarray[Any, Any]:
    c = np.asarray(c, dtype=np.float32)
    return np.where(
        c <= 0.0031308,
        c * 12.92,
        1.055 * np.power(np.maximum(c, 0.0), 1.0 / 2.4, dtype=np.float32)
        - 0.055,
    ).astype(np.float32)


def to_linear(samples: np.ndarray[Any, Any]) -> np.ndarray[Any, Any]:
    """Premultiplied 16-bit sRGB (..., 4) -> straight-alpha linear [0, 1].

    Fully transparent samples map to all zeros.
    """
    c = np.asarray(samples, dtype=np.float32) / np.float32(0xFFFF)
    a = c[..., 3:4]
    visible = a > 0.0
    rgb = np.where(visible, c[..., :3] / np.where(visible, a, 1.0), 0.0)
    rgb = srgb_to_linear(np.clip(rgb, 0.0, 1.0))
    return np.concatenate([rgb, a], axis=-1).astype(np.float32)


def from_linear(samples: np.ndarray[Any, Any]) -> np.ndarray[Any, Any]:
    """Inverse of to_linear, back to the premultiplied 16-bit range."""
    c = np.asarray(samples, dtype=np.float32)
    a = np.clip(c[..., 3:4], 0.0, 1.0)
    rgb = linear_to_srgb(np.clip(c[..., :3], 0.0, 1.0)) * a
    out = np.concatenate([rgb, a], axis=-1) * np.float32(0xFFFF)
    return out.astype(np.float32)


def premultiply(rgba: np.ndarray[Any, Any]) -> np.ndarray[Any, Any]:
    """Straight 8-bit RGBA -> premultiplied 8-bit RGBA."""
    rgba = rgba.astype(np.uint32)
    a = rgba[:, :, 3:4]
    rgb = (rgba[:, :, :3] * a + 127) // 255
    return np.concatenate([rgb, a], axis=2).astype(np.uint8)


def from_pil(img: Image.Image) -> Any:
    mode = img.mode
    if mode == "L":
        return GrayImage(np.asarray(img, dtype=np.uint8).copy())
    if mode in ("I;16", "I;16L", "I;16B"):
        arr = np.asarray(img).astype(np.uint16)
        return Gray16Image(arr)
    if mode == "YCbCr":
        arr = np.asarray(img, dtype=np.uint8)
        return YCbCrImage(
            y=arr[:, :, 0].copy(),
            cb=arr[:, :, 1].copy(),
            cr=arr[:, :, 2].copy(),
            ratio=SubsampleRatio.R444,
        )
    if mode != "RGBA":
        img = img.convert("RGBA")
    return RGBAImage(premultiply(np.asarray(img, dtype=np.uint8)))


def from_numpy(arr: np.ndarray[Any, Any]) -> Any:
    if arr.dtype not in (np.uint8, np.uint16):
        raise ValueError(f"Unsupported array dtype: {arr.dtype}")
    wide = arr.dtype == np.uint16
    if arr.ndim == 2:
        return Gray16Image(arr) if wide else GrayImage(arr)
    if arr.ndim == 3 and arr.shape[2] in (3, 4):
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 0xFFFF if wide else 0xFF,
                            dtype=arr.dtype)
            arr = np.concatenate([arr, alpha], axis=2)
        return RGBA64Image(arr) if wide else RGBAImage(arr)
    raise ValueError(
        f"Unsupported array shape {arr.shape}; expected (H,W), (H,W,3) "
        "or (H,W,4)"
    )


def as_image(obj: Any) -> Any:
    """Wrap Pillow images and numpy arrays; pass rasters through."""
    if isinstance(obj, _TYPED):
        return obj
    if isinstance(obj, Image.Image):
        return from_pil(obj)
    if isinstance(obj, np.ndarray):
        return from_numpy(obj)
    if isinstance(obj, Raster):
        return obj
    raise ValueError(f"Unsupported image type: {type(obj).__name__}")


def to_pil(img: RGBA64Image) -> Image.Image:
    """Un-premultiply a 16-bit result into an 8-bit Pillow RGBA image."""
    pix = img.pix.astype(np.float64)
    a = pix[:, :, 3:4]
    rgb = np.where(a > 0, pix[:, :, :3] * 0xFFFF / np.where(a > 0, a, 1), 0)
    straight = np.concatenate([rgb, a], axis=2) / 257.0
    return Image.fromarray(float_to_uint8(np.rint(straight)))


def load_image(path: Path) -> Any:
    with Image.open(path) as img:
        img.load()
        return from_pil(img)


def save_image(img: RGBA64Image, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    to_pil(img).save(path)
