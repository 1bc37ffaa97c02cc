"""Descriptor matching between two sets of ORB features."""

from __future__ import annotations

import math
from typing import Mapping, Sequence

import numpy as np

from orbfeatures.keypoints import KeyPoint
from orbfeatures.matching import TH_LOW, RotationHistogram, descriptor_distance

_NO_DISTANCE = 2**31 - 1

FeatureVector = Mapping[int, Sequence[int]]


def features_in_area(
    keypoints: Sequence[KeyPoint],
    x: float,
    y: float,
    radius: float,
    min_level: int = -1,
    max_level: int = -1,
) -> list[int]:
    """Return the indices of keypoints inside the square window around ``(x, y)``.

    A keypoint qualifies when both ``|kp.x - x|`` and ``|kp.y - y|`` are below
    ``radius``. Levels are checked only when ``min_level`` is positive or
    ``max_level`` is non-negative; a negative ``max_level`` leaves the upper
    bound open.
    """
    check_levels = min_level > 0 or max_level >= 0
    found = []
    for index, kp in enumerate(keypoints):
        if check_levels:
            if kp.octave < min_level:
                continue
            if max_level >= 0 and kp.octave > max_level:
                continue
        if abs(kp.x - x) < radius and abs(kp.y - y) < radius:
            found.append(index)
    return found


def _descriptor_rows(descriptors, keypoints: Sequence[KeyPoint], name: str) -> np.ndarray:
    rows = np.asarray(descriptors)
    if rows.ndim != 2 or rows.shape[0] != len(keypoints):
        raise ValueError(f"{name} must hold one descriptor row per keypoint")
    return rows


def _usable_flags(flags: Sequence[bool] | None, count: int, name: str) -> list[bool]:
    if flags is None:
        return [True] * count
    result = [bool(flag) for flag in flags]
    if len(result) != count:
        raise ValueError(f"{name} must hold one flag per keypoint")
    return result


class ORBMatcher:
    """Matches ORB descriptors with a ratio test and an optional rotation check."""

    def __init__(self, nn_ratio: float = 0.6, check_orientation: bool = True) -> None:
        self.nn_ratio = nn_ratio
        self.check_orientation = check_orientation

    def search_for_initialization(
        self,
        keys1: Sequence[KeyPoint],
        desc1,
        keys2: Sequence[KeyPoint],
        desc2,
        prev_matched: Sequence[tuple[float, float]],
        window_size: int = 10,
    ) -> tuple[int, list[int], list[tuple[float, float]]]:
        """Match level-0 keypoints of the first set to the second set.

        Each first-set keypoint is searched for near its entry in
        ``prev_matched``. Returns the number of matches, the index in the
        second set matched to each first-set keypoint (``-1`` when unmatched)
        and ``prev_matched`` updated with the positions of the matches.
        """
        rows1 = _descriptor_rows(desc1, keys1, "desc1")
        rows2 = _descriptor_rows(desc2, keys2, "desc2")
        if len(prev_matched) != len(keys1):
            raise ValueError("prev_matched must hold one position per keypoint of keys1")

        matches12 = [-1] * len(keys1)
        matched_distance = [_NO_DISTANCE] * len(keys2)
        matches21 = [-1] * len(keys2)
        histogram = RotationHistogram()
        nmatches = 0

        for i1, kp1 in enumerate(keys1):
            level1 = kp1.octave
            if level1 > 0:
                continue
            px, py = prev_matched[i1]
            candidates = features_in_area(keys2, px, py, window_size, level1, level1)
            if not candidates:
                continue

            best_dist = best_dist2 = _NO_DISTANCE
            best_idx2 = -1
            for i2 in candidates:
                dist = descriptor_distance(rows1[i1], rows2[i2])
                if matched_distance[i2] <= dist:
                    continue
                if dist < best_dist:
                    best_dist2, best_dist, best_idx2 = best_dist, dist, i2
                elif dist < best_dist2:
                    best_dist2 = dist

            if best_dist > TH_LOW or not best_dist < float(best_dist2) * self.nn_ratio:
                continue

            previous = matches21[best_idx2]
            if previous >= 0:
                matches12[previous] = -1
                nmatches -= 1
            matches12[i1] = best_idx2
            matches21[best_idx2] = i1
            matched_distance[best_idx2] = best_dist
            nmatches += 1

            if self.check_orientation:
                histogram.add(kp1.angle, keys2[best_idx2].angle, i1)

        if self.check_orientation:
            for idx1 in histogram.rejected():
                if matches12[idx1] >= 0:
                    matches12[idx1] = -1
                    nmatches -= 1

        updated = [
            keys2[m].pt if m >= 0 else tuple(prev_matched[i1])
            for i1, m in enumerate(matches12)
        ]
        return nmatches, matches12, updated

    def search_by_bow(
        self,
        feat_vec1: FeatureVector,
        keys1: Sequence[KeyPoint],
        desc1,
        feat_vec2: FeatureVector,
        keys2: Sequence[KeyPoint],
        desc2,
        usable1: Sequence[bool] | None = None,
        usable2: Sequence[bool] | None = None,
    ) -> tuple[int, list[int]]:
        """Match features that share a vocabulary node.

        ``feat_vec1`` and ``feat_vec2`` map node ids to keypoint indices.
        ``usable1`` and ``usable2`` flag the keypoints that may take part
        (all of them when omitted). Returns the number of matches and, for
        each first-set keypoint, the matched second-set index or ``-1``.
        """
        rows1 = _descriptor_rows(desc1, keys1, "desc1")
        rows2 = _descriptor_rows(desc2, keys2, "desc2")
        ok1 = _usable_flags(usable1, len(keys1), "usable1")
        ok2 = _usable_flags(usable2, len(keys2), "usable2")

        matches12 = [-1] * len(keys1)
        matched2 = [False] * len(keys2)
        histogram = RotationHistogram()
        nmatches = 0

        for node in sorted(set(feat_vec1) & set(feat_vec2)):
            indices2 = feat_vec2[node]
            for idx1 in feat_vec1[node]:
                if not ok1[idx1]:
                    continue
                best_dist1 = best_dist2 = 256
                best_idx2 = -1
                for idx2 in indices2:
                    if matched2[idx2] or not ok2[idx2]:
                        continue
                    dist = descriptor_distance(rows1[idx1], rows2[idx2])
                    if dist < best_dist1:
                        best_dist2, best_dist1, best_idx2 = best_dist1, dist, idx2
                    elif dist < best_dist2:
                        best_dist2 = dist

                if best_dist1 >= TH_LOW:
                    continue
                if not float(best_dist1) < self.nn_ratio * float(best_dist2):
                    continue
                matches12[idx1] = best_idx2
                matched2[best_idx2] = True
                if self.check_orientation:
                    histogram.add(keys1[idx1].angle, keys2[best_idx2].angle, idx1)
                nmatches += 1

        if self.check_orientation:
            for idx1 in histogram.rejected():
                matches12[idx1] = -1
                nmatches -= 1

        return nmatches, matches12


def _finite(value: float) -> bool:
    return math.isfinite(value)