"""Matching of unmapped features between two views under the epipolar constraint."""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np

from orbfeatures.keypoints import KeyPoint
from orbfeatures.matching import (
    TH_LOW,
    RotationHistogram,
    check_dist_epipolar_line,
    descriptor_distance,
)

FeatureVector = Mapping[int, Sequence[int]]

# Keypoints closer than this (squared, in pixels, per unit of scale) to the
# epipole are too ambiguous to triangulate.
_EPIPOLE_MIN_DIST2 = 100.0


def _rows(descriptors, keypoints: Sequence[KeyPoint], name: str) -> np.ndarray:
    rows = np.asarray(descriptors)
    if rows.ndim != 2 or rows.shape[0] != len(keypoints):
        raise ValueError(f"{name} must hold one descriptor row per keypoint")
    return rows


def search_for_triangulation(
    feat_vec1: FeatureVector,
    keys1: Sequence[KeyPoint],
    desc1,
    feat_vec2: FeatureVector,
    keys2: Sequence[KeyPoint],
    desc2,
    f12,
    epipole: tuple[float, float],
    level_sigma2: Sequence[float],
    scale_factors: Sequence[float],
    check_orientation: bool = True,
) -> tuple[int, list[tuple[int, int]]]:
    """Find feature pairs suitable for triangulation.

    Only features that share a vocabulary node are compared. A candidate in
    the second view must be within ``TH_LOW`` descriptor distance, away from
    the ``epipole`` of the first camera in the second image and close to the
    epipolar line given by the fundamental matrix ``f12``. ``level_sigma2``
    and ``scale_factors`` describe the pyramid of the second view.

    Returns the number of matches and the matched ``(index1, index2)`` pairs
    ordered by ``index1``.
    """
    rows1 = _rows(desc1, keys1, "desc1")
    rows2 = _rows(desc2, keys2, "desc2")
    if np.asarray(f12).shape != (3, 3):
        raise ValueError("fundamental matrix must be 3x3")
    ex, ey = epipole

    matches12 = [-1] * len(keys1)
    histogram = RotationHistogram()
    nmatches = 0

    for node in sorted(set(feat_vec1) & set(feat_vec2)):
        indices2 = feat_vec2[node]
        for idx1 in feat_vec1[node]:
            kp1 = keys1[idx1]
            best_dist = TH_LOW
            best_idx2 = -1
            for idx2 in indices2:
                dist = descriptor_distance(rows1[idx1], rows2[idx2])
                if dist > TH_LOW or dist > best_dist:
                    continue
                kp2 = keys2[idx2]
                dx = ex - kp2.x
                dy = ey - kp2.y
                if dx * dx + dy * dy < _EPIPOLE_MIN_DIST2 * scale_factors[kp2.octave]:
                    continue
                if check_dist_epipolar_line(kp1, kp2, f12, level_sigma2):
                    best_idx2 = idx2
                    best_dist = dist

            if best_idx2 < 0:
                continue
            matches12[idx1] = best_idx2
            nmatches += 1
            if check_orientation:
                histogram.add(kp1.angle, keys2[best_idx2].angle, idx1)

    if check_orientation:
        for idx1 in histogram.rejected():
            matches12[idx1] = -1
            nmatches -= 1

    pairs = [(i1, i2) for i1, i2 in enumerate(matches12) if i2 >= 0]
    return nmatches, pairs