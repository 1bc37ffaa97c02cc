"""Image operations needed by the extractor: FAST corners, blur, resize, padding."""

from __future__ import annotations

import math

import numpy as np

from orbfeatures.keypoints import KeyPoint

FAST_KEYPOINT_SIZE = 7.0

# Bresenham circle of radius 3 as (dx, dy), walked in order around the centre.
_CIRCLE = (
    (0, 3), (1, 3), (2, 2), (3, 1), (3, 0), (3, -1), (2, -2), (1, -3),
    (0, -3), (-1, -3), (-2, -2), (-3, -1), (-3, 0), (-3, 1), (-2, 2), (-1, 3),
)
_ARC = 9


def _as_gray(image: np.ndarray) -> np.ndarray:
    array = np.asarray(image)
    if array.ndim != 2:
        raise ValueError("image must be a single-channel 2-D array")
    return array


def _best_arc(diffs: np.ndarray) -> np.ndarray:
    """Largest, over all contiguous arcs of nine circle pixels, of the arc minimum."""
    extended = np.concatenate([diffs, diffs[: _ARC - 1]], axis=0)
    best = extended[:_ARC].min(axis=0)
    for start in range(1, len(_CIRCLE)):
        best = np.maximum(best, extended[start : start + _ARC].min(axis=0))
    return best


def fast(image: np.ndarray, threshold: int, nonmax_suppression: bool = True) -> list[KeyPoint]:
    """Detect FAST-9/16 corners.

    A pixel is a corner when nine contiguous pixels of its radius-3 circle
    are all brighter than it by more than ``threshold``, or all darker by more
    than ``threshold``. The response is the largest threshold for which the
    pixel would still be a corner. With non-maximum suppression a corner is
    kept only when its response exceeds all eight neighbours'. Keypoints are
    returned in row-major order.
    """
    img = _as_gray(image).astype(np.int16)
    height, width = img.shape
    if height < 7 or width < 7:
        return []
    t = min(max(int(threshold), 0), 255)

    centre = img[3 : height - 3, 3 : width - 3]
    diffs = np.stack(
        [img[3 + dy : height - 3 + dy, 3 + dx : width - 3 + dx] - centre for dx, dy in _CIRCLE]
    )
    best = np.maximum(_best_arc(diffs), _best_arc(-diffs)).astype(np.int32)
    corner = best > t

    scores = np.zeros((height, width), dtype=np.int32)
    scores[3 : height - 3, 3 : width - 3] = np.where(corner, best - 1, 0)
    is_corner = np.zeros((height, width), dtype=bool)
    is_corner[3 : height - 3, 3 : width - 3] = corner

    if nonmax_suppression:
        padded = np.pad(scores, 1)
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                neighbour = padded[1 + dy : 1 + dy + height, 1 + dx : 1 + dx + width]
                is_corner &= scores > neighbour

    rows, cols = np.nonzero(is_corner)
    return [
        KeyPoint(
            x=float(c),
            y=float(r),
            size=FAST_KEYPOINT_SIZE,
            response=float(scores[r, c]),
        )
        for r, c in zip(rows.tolist(), cols.tolist())
    ]


def _gaussian_kernel(ksize: int, sigma: float) -> np.ndarray:
    if sigma <= 0:
        sigma = 0.3 * ((ksize - 1) * 0.5 - 1) + 0.8
    offsets = np.arange(ksize, dtype=np.float64) - (ksize - 1) / 2.0
    kernel = np.exp(-(offsets**2) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def gaussian_blur(image: np.ndarray, ksize: int = 7, sigma: float = 2.0) -> np.ndarray:
    """Blur an 8-bit image with a square Gaussian kernel.

    Borders are handled by reflection without repeating the edge pixel. A
    non-positive ``sigma`` is derived from ``ksize``.
    """
    img = _as_gray(image)
    if ksize < 1 or ksize % 2 == 0:
        raise ValueError("ksize must be a positive odd number")
    kernel = _gaussian_kernel(ksize, sigma)
    pad = ksize // 2
    height, width = img.shape
    padded = pad_reflect101(img, pad).astype(np.float64)

    horizontal = sum(weight * padded[:, i : i + width] for i, weight in enumerate(kernel))
    blurred = sum(weight * horizontal[i : i + height, :] for i, weight in enumerate(kernel))
    return _to_uint8(blurred)


def _linear_coords(src: int, dst: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    scale = src / dst
    pos = (np.arange(dst, dtype=np.float64) + 0.5) * scale - 0.5
    lo = np.floor(pos).astype(np.int64)
    frac = pos - lo
    below = lo < 0
    lo[below] = 0
    frac[below] = 0.0
    above = lo >= src - 1
    lo[above] = src - 1
    frac[above] = 0.0
    hi = np.minimum(lo + 1, src - 1)
    return lo, hi, frac


def resize_linear(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Resize an 8-bit image to ``width`` x ``height`` by bilinear interpolation.

    Pixel centres are aligned, and samples falling outside the source are
    clamped to its edge.
    """
    img = _as_gray(image)
    if width < 1 or height < 1:
        raise ValueError("target size must be positive")
    src_h, src_w = img.shape
    if src_h < 1 or src_w < 1:
        raise ValueError("source image is empty")

    x0, x1, fx = _linear_coords(src_w, width)
    y0, y1, fy = _linear_coords(src_h, height)
    data = img.astype(np.float64)
    top = data[y0][:, x0] * (1.0 - fx) + data[y0][:, x1] * fx
    bottom = data[y1][:, x0] * (1.0 - fx) + data[y1][:, x1] * fx
    result = top * (1.0 - fy)[:, None] + bottom * fy[:, None]
    return _to_uint8(result)


def pad_reflect101(image: np.ndarray, border: int) -> np.ndarray:
    """Add ``border`` pixels on every side by mirroring about the edge pixels."""
    img = _as_gray(image)
    if border < 0:
        raise ValueError("border must not be negative")
    if border == 0:
        return img.copy()
    return np.pad(img, border, mode="reflect")


def scaled_size(width: int, height: int, scale: float) -> tuple[int, int]:
    """Return ``(width, height)`` multiplied by ``scale`` and rounded."""
    return round(float(np.float32(width) * np.float32(scale))), round(
        float(np.float32(height) * np.float32(scale))
    )


def ceil_div(numerator: float, denominator: float) -> int:
    """Return ``ceil(numerator / denominator)`` as an int."""
    return math.ceil(numerator / denominator)