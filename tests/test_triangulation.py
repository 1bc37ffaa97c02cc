import numpy as np
import pytest

from orbfeatures.keypoints import KeyPoint
from orbfeatures.triangulation import search_for_triangulation

# Pure horizontal translation: the epipolar line of (x, y) is the row y.
F12 = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, -1.0], [0.0, 1.0, 0.0]])
FAR_EPIPOLE = (1e6, 1e6)
SIGMA2 = [1.0, 1.44, 2.0736]
SCALES = [1.0, 1.2, 1.44]


def _desc(n, flipped_bits=0):
    rows = np.zeros((n, 32), dtype=np.uint8)
    bits = np.zeros(256, dtype=np.uint8)
    bits[:flipped_bits] = 1
    rows[:] = np.packbits(bits)
    return rows


def _run(keys1, desc1, keys2, desc2, fv1=None, fv2=None, epipole=FAR_EPIPOLE, check=True):
    fv1 = fv1 if fv1 is not None else {0: list(range(len(keys1)))}
    fv2 = fv2 if fv2 is not None else {0: list(range(len(keys2)))}
    return search_for_triangulation(
        fv1, keys1, desc1, fv2, keys2, desc2, F12, epipole, SIGMA2, SCALES, check
    )


def test_match_on_epipolar_line():
    keys1 = [KeyPoint(10.0, 20.0, angle=0.0)]
    keys2 = [KeyPoint(50.0, 20.0, angle=0.0)]
    n, pairs = _run(keys1, _desc(1), keys2, _desc(1))
    assert n == 1
    assert pairs == [(0, 0)]


def test_off_epipolar_line_rejected():
    keys1 = [KeyPoint(10.0, 20.0)]
    keys2 = [KeyPoint(50.0, 30.0)]
    n, pairs = _run(keys1, _desc(1), keys2, _desc(1))
    assert n == 0
    assert pairs == []


def test_descriptor_too_far_rejected():
    keys1 = [KeyPoint(10.0, 20.0)]
    keys2 = [KeyPoint(50.0, 20.0)]
    n, pairs = _run(keys1, _desc(1), keys2, _desc(1, flipped_bits=51))
    assert (n, pairs) == (0, [])


def test_distance_at_threshold_accepted():
    keys1 = [KeyPoint(10.0, 20.0)]
    keys2 = [KeyPoint(50.0, 20.0)]
    n, pairs = _run(keys1, _desc(1), keys2, _desc(1, flipped_bits=50))
    assert pairs == [(0, 0)]
    assert n == 1


def test_candidate_near_epipole_rejected():
    keys1 = [KeyPoint(10.0, 20.0)]
    keys2 = [KeyPoint(50.0, 20.0)]
    n, pairs = _run(keys1, _desc(1), keys2, _desc(1), epipole=(52.0, 20.0))
    assert (n, pairs) == (0, [])


def test_different_nodes_do_not_match():
    keys1 = [KeyPoint(10.0, 20.0)]
    keys2 = [KeyPoint(50.0, 20.0)]
    n, pairs = _run(keys1, _desc(1), keys2, _desc(1), fv1={1: [0]}, fv2={2: [0]})
    assert (n, pairs) == (0, [])


def test_closest_descriptor_wins():
    keys1 = [KeyPoint(10.0, 20.0)]
    keys2 = [KeyPoint(50.0, 20.0), KeyPoint(80.0, 20.0)]
    desc2 = np.vstack([_desc(1, flipped_bits=10), _desc(1, flipped_bits=5)])
    n, pairs = _run(keys1, _desc(1), keys2, desc2)
    assert pairs == [(0, 1)]
    assert n == 1


def _rotation_scene():
    count = 12
    keys1 = [KeyPoint(10.0, 10.0 * i, angle=0.0) for i in range(count)]
    keys2 = [KeyPoint(60.0, 10.0 * i, angle=0.0) for i in range(count)]
    keys2[-1] = KeyPoint(60.0, 10.0 * (count - 1), angle=180.0)
    fv = {i: [i] for i in range(count)}
    return keys1, keys2, fv, count


def test_inconsistent_rotation_rejected():
    keys1, keys2, fv, count = _rotation_scene()
    n, pairs = _run(keys1, _desc(count), keys2, _desc(count), fv1=fv, fv2=fv)
    assert n == count - 1
    assert pairs == [(i, i) for i in range(count - 1)]


def test_rotation_check_can_be_disabled():
    keys1, keys2, fv, count = _rotation_scene()
    n, pairs = _run(keys1, _desc(count), keys2, _desc(count), fv1=fv, fv2=fv, check=False)
    assert n == count
    assert len(pairs) == n


def test_bad_fundamental_matrix_shape():
    keys = [KeyPoint(10.0, 20.0)]
    with pytest.raises(ValueError):
        search_for_triangulation(
            {0: [0]}, keys, _desc(1), {0: [0]}, keys, _desc(1),
            np.eye(2), FAR_EPIPOLE, SIGMA2, SCALES, True,
        )


def test_descriptor_count_mismatch():
    keys = [KeyPoint(10.0, 20.0)]
    with pytest.raises(ValueError):
        _run(keys, _desc(2), keys, _desc(1))