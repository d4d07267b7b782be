"""
Image inspection helpers for extracted frames.

Alpha presence is decided by channel count only; pixel values are not inspected.
"""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np

MIN_ALPHA_CHANNELS = 4


def read_image(path: Path) -> np.ndarray | None:
    """Load an image with all channels, or None when unreadable."""
    return cv2.imread(str(path), cv2.IMREAD_UNCHANGED)


def has_alpha_channel(path: Path) -> bool:
    """Return True if the image has gray+alpha or RGBA channels."""
    img = read_image(path)
    if img is None or img.ndim == 2:
        return False
    ch = img.shape[2]
    return ch == 2 or ch >= MIN_ALPHA_CHANNELS


def image_dimensions(path: Path) -> tuple[int, int]:
    """Return (width, height) of an image or (0, 0) on failure."""
    img = read_image(path)
    if img is None:
        return 0, 0
    h, w = img.shape[:2]
    return w, h
