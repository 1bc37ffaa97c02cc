import numpy as np
import pytest

from orbfeatures.keypoints import KeyPoint
from orbfeatures.matching import (
    HISTO_LENGTH,
    RotationHistogram,
    check_dist_epipolar_line,
    compute_three_maxima,
    descriptor_distance,
    radius_by_viewing_cos,
)


def _random_descriptor(seed):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=32, dtype=np.uint8)


def test_distance_identical_is_zero():
    d = _random_descriptor(1)
    assert descriptor_distance(d, d.copy()) == 0


def test_distance_all_bits_differ():
    zeros = np.zeros(32, dtype=np.uint8)
    ones = np.full(32, 255, dtype=np.uint8)
    assert descriptor_distance(zeros, ones) == 256


def test_distance_is_symmetric_and_matches_bit_count():
    a = _random_descriptor(2)
    b = _random_descriptor(3)
    expected = sum(bin(int(x) ^ int(y)).count("1") for x, y in zip(a, b))
    assert descriptor_distance(a, b) == descriptor_distance(b, a) == expected


def test_distance_triangle_inequality():
    a, b, c = (_random_descriptor(s) for s in (4, 5, 6))
    assert descriptor_distance(a, c) <= descriptor_distance(a, b) + descriptor_distance(b, c)


def test_distance_accepts_bytes():
    a = _random_descriptor(7)
    assert descriptor_distance(bytes(a), a) == 0


def test_distance_rejects_wrong_length():
    with pytest.raises(ValueError):
        descriptor_distance(np.zeros(16, dtype=np.uint8), np.zeros(16, dtype=np.uint8))


def test_three_maxima_orders_by_size():
    histogram = [[0] * 3, [], [0] * 10, [0] * 5, []]
    assert compute_three_maxima(histogram) == (2, 3, 0)


def test_three_maxima_drops_small_bins():
    histogram = [[0] * 100, [0] * 5, [0] * 20]
    assert compute_three_maxima(histogram) == (0, 2, -1)
    assert compute_three_maxima([[0] * 100, [0] * 5]) == (0, -1, -1)


def test_three_maxima_empty():
    assert compute_three_maxima([[] for _ in range(HISTO_LENGTH)]) == (-1, -1, -1)


def test_three_maxima_accepts_counts():
    assert compute_three_maxima([1, 9, 4, 7]) == (1, 3, 2)


def test_rotation_histogram_bins_and_rejection():
    hist = RotationHistogram()
    for i in range(10):
        assert hist.add(45.0, 45.0, i) == 0
    bin_a = hist.add(100.0, 10.0, 100)
    assert bin_a != 0
    assert hist.dominant_bins()[0] == 0
    assert 100 not in hist.rejected() or hist.dominant_bins()[1] == -1
    # A single outlier against ten inliers falls under the 10% rule.
    assert hist.dominant_bins()[1] == bin_a
    for i in range(20, 30):
        hist.add(45.0, 45.0, i)
    assert hist.rejected() == [100]


def test_rotation_histogram_wraps_negative_rotation():
    hist = RotationHistogram()
    assert hist.add(0.0, 359.0, 1) == hist.add(1.0, 0.0, 2)


def test_rotation_histogram_rejects_bad_length():
    with pytest.raises(ValueError):
        RotationHistogram(0)


def test_radius_by_viewing_cos():
    assert radius_by_viewing_cos(1.0) == 2.5
    assert radius_by_viewing_cos(0.5) == 4.0
    assert radius_by_viewing_cos(0.998) == 4.0


F_LINE = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [1.0, 0.0, -5.0]])


def test_epipolar_point_on_line():
    kp1 = KeyPoint(0.0, 0.0)
    kp2 = KeyPoint(5.0, 40.0)
    assert check_dist_epipolar_line(kp1, kp2, F_LINE, [1.0]) is True


def test_epipolar_point_far_from_line():
    kp1 = KeyPoint(0.0, 0.0)
    kp2 = KeyPoint(10.0, 0.0)
    assert check_dist_epipolar_line(kp1, kp2, F_LINE, [1.0]) is False


def test_epipolar_uses_level_of_second_keypoint():
    kp1 = KeyPoint(0.0, 0.0)
    kp2 = KeyPoint(10.0, 0.0, octave=1)
    assert check_dist_epipolar_line(kp1, kp2, F_LINE, [1.0, 10.0]) is True


def test_epipolar_degenerate_line():
    assert check_dist_epipolar_line(KeyPoint(1.0, 1.0), KeyPoint(1.0, 1.0), np.zeros((3, 3)), [1.0]) is False


def test_epipolar_rejects_bad_matrix():
    with pytest.raises(ValueError):
        check_dist_epipolar_line(KeyPoint(0.0, 0.0), KeyPoint(0.0, 0.0), np.zeros((2, 2)), [1.0])