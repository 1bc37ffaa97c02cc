"""Building blocks for matching ORB features: distances, rotation checks, epipolar test."""

from __future__ import annotations

import math
from typing import Sequence, Sized

import numpy as np

from orbfeatures.keypoints import KeyPoint

TH_HIGH = 100
TH_LOW = 50
HISTO_LENGTH = 30
DESCRIPTOR_BYTES = 32

# Chi-square value at 95% for one degree of freedom.
_EPIPOLAR_CHI2 = 3.84


def _as_descriptor(value) -> np.ndarray:
    if isinstance(value, (bytes, bytearray, memoryview)):
        array = np.frombuffer(bytes(value), dtype=np.uint8)
    else:
        array = np.asarray(value)
        if array.dtype != np.uint8:
            if not np.issubdtype(array.dtype, np.integer):
                raise ValueError("descriptor must hold bytes")
            if array.size and (array.min() < 0 or array.max() > 255):
                raise ValueError("descriptor values must fit in a byte")
            array = array.astype(np.uint8)
    array = array.ravel()
    if array.size != DESCRIPTOR_BYTES:
        raise ValueError(f"descriptor must be {DESCRIPTOR_BYTES} bytes long")
    return array


def descriptor_distance(a, b) -> int:
    """Return the Hamming distance between two 32-byte ORB descriptors."""
    da = _as_descriptor(a)
    db = _as_descriptor(b)
    return int(np.unpackbits(np.bitwise_xor(da, db)).sum())


def compute_three_maxima(histogram: Sequence[Sized | int]) -> tuple[int, int, int]:
    """Return the indices of the three most populated bins of ``histogram``.

    Each bin is either a count or a sized collection. Missing indices are
    ``-1``. The second and third are dropped when they hold fewer than a
    tenth of the entries of the first.
    """
    max1 = max2 = max3 = 0
    ind1 = ind2 = ind3 = -1
    for i, entry in enumerate(histogram):
        s = entry if isinstance(entry, int) else len(entry)
        if s > max1:
            max3, max2, max1 = max2, max1, s
            ind3, ind2, ind1 = ind2, ind1, i
        elif s > max2:
            max3, max2 = max2, s
            ind3, ind2 = ind2, i
        elif s > max3:
            max3 = s
            ind3 = i

    if max2 < 0.1 * max1:
        ind2 = ind3 = -1
    elif max3 < 0.1 * max1:
        ind3 = -1
    return ind1, ind2, ind3


class RotationHistogram:
    """Histogram of relative keypoint rotations used to reject inconsistent matches."""

    def __init__(self, length: int = HISTO_LENGTH) -> None:
        if length < 1:
            raise ValueError("length must be at least 1")
        self.length = length
        self.bins: list[list[int]] = [[] for _ in range(length)]

    def add(self, angle1: float, angle2: float, index: int) -> int:
        """Record ``index`` under the rotation ``angle1 - angle2``; return its bin."""
        rot = angle1 - angle2
        if rot < 0.0:
            rot += 360.0
        bin_index = math.floor(rot * (1.0 / self.length) + 0.5)
        if bin_index == self.length:
            bin_index = 0
        if not 0 <= bin_index < self.length:
            raise ValueError("rotation falls outside the histogram")
        self.bins[bin_index].append(index)
        return bin_index

    def dominant_bins(self) -> tuple[int, int, int]:
        """Return the indices of up to three dominant bins, ``-1`` where absent."""
        return compute_three_maxima(self.bins)

    def rejected(self) -> list[int]:
        """Return the indices recorded outside the dominant bins, in bin order."""
        keep = set(self.dominant_bins())
        return [
            index
            for bin_index, entries in enumerate(self.bins)
            if bin_index not in keep
            for index in entries
        ]


def radius_by_viewing_cos(view_cos: float) -> float:
    """Return the search radius factor for a point seen at the given viewing cosine."""
    return 2.5 if view_cos > 0.998 else 4.0


def check_dist_epipolar_line(
    kp1: KeyPoint, kp2: KeyPoint, f12, level_sigma2: Sequence[float]
) -> bool:
    """Return whether ``kp2`` lies close enough to the epipolar line of ``kp1``.

    ``f12`` is the 3x3 fundamental matrix from image 1 to image 2 and
    ``level_sigma2`` holds the squared scale of each pyramid level of image 2.
    """
    f = np.asarray(f12, dtype=np.float64)
    if f.shape != (3, 3):
        raise ValueError("fundamental matrix must be 3x3")
    x1, y1 = kp1.x, kp1.y
    a = x1 * f[0, 0] + y1 * f[1, 0] + f[2, 0]
    b = x1 * f[0, 1] + y1 * f[1, 1] + f[2, 1]
    c = x1 * f[0, 2] + y1 * f[1, 2] + f[2, 2]

    num = a * kp2.x + b * kp2.y + c
    den = a * a + b * b
    if den == 0:
        return False
    dsqr = num * num / den
    return bool(dsqr < _EPIPOLAR_CHI2 * level_sigma2[kp2.octave])