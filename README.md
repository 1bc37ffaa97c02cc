# orbfeatures

Building blocks for ORB-style feature work on 8-bit grayscale images held in
numpy arrays. It covers FAST corner detection, an even spread of keypoints over
an image by a quadtree split, and the matching of 32-byte binary descriptors:
Hamming distance, a rotation-consistency check, windowed search, search by
vocabulary node and epipolar-constrained search.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install .[test]
pytest
```

## Keypoints

`orbfeatures.keypoints.KeyPoint` is a dataclass with `x`, `y`, `size`,
`angle` (degrees, `-1.0` when unset), `response` and `octave`. `pt` gives
`(x, y)`. `scaled(factor)` and `shifted(dx, dy)` return moved copies.

`retain_best(keypoints, n)` sorts by decreasing response and keeps the `n`
strongest. Keypoints that tie with the `n`-th strongest are kept as well. A
negative `n` keeps everything.

## Image operations

`orbfeatures.imageproc` works on 2-D arrays:

- `fast(image, threshold, nonmax_suppression=True)` detects FAST-9/16
  corners. It returns `KeyPoint`s in row-major order, each with size 7 and a
  response score.
- `gaussian_blur(image, ksize=7, sigma=2.0)` applies a Gaussian blur with
  mirrored borders. `ksize` must be odd.
- `resize_linear(image, width, height)` resizes bilinearly with centre-aligned
  pixels.
- `pad_reflect101(image, border)` mirrors the image about its edge pixels.
- `scaled_size(width, height, scale)` and `ceil_div(numerator, denominator)`
  are small sizing helpers.

```python
import numpy as np
from orbfeatures.imageproc import fast, gaussian_blur

image = np.asarray(my_gray_image, dtype=np.uint8)
corners = fast(image, 20)
smooth = gaussian_blur(image)
```

## Spreading keypoints

`orbfeatures.octree.distribute_oct_tree(keypoints, min_x, max_x, min_y,
max_y, n)` takes keypoints whose coordinates are relative to
`(min_x, min_y)`. It splits the region into quadrants until there are at least
`n` non-empty cells, or until no cell can be split further. It then returns
the strongest keypoint of each cell. `ExtractorNode.divide()` performs a
single four-way split.

```python
from orbfeatures.octree import distribute_oct_tree

spread = distribute_oct_tree(corners, 0, image.shape[1], 0, image.shape[0], 500)
```

## Matching

`orbfeatures.matching` provides the following:

- `descriptor_distance(a, b)` gives the Hamming distance between two 32-byte
  descriptors (bytes or uint8 arrays), a value from 0 to 256.
- `RotationHistogram` records relative rotations with `add(angle1, angle2,
  index)`. `dominant_bins()` returns up to three dominant bins. `rejected()`
  lists the indices that fall outside them.
- `compute_three_maxima(histogram)` gives the three most populated bins. It
  returns `-1` for a bin that is weaker than a tenth of the first.
- `radius_by_viewing_cos(view_cos)` returns 2.5 above a cosine of 0.998 and
  4.0 otherwise.
- `check_dist_epipolar_line(kp1, kp2, f12, level_sigma2)` tests whether
  `kp2` is close to the epipolar line of `kp1`.
- The thresholds `TH_LOW` (50) and `TH_HIGH` (100).

`orbfeatures.search` provides the following:

- `features_in_area(keypoints, x, y, radius, min_level=-1, max_level=-1)`
  returns the indices of the keypoints inside a square window, optionally
  limited to a range of pyramid levels.
- `ORBMatcher(nn_ratio=0.6, check_orientation=True)` offers two searches:
  - `search_for_initialization(keys1, desc1, keys2, desc2, prev_matched,
    window_size=10)` returns `(count, matches12, updated_prev_matched)`.
  - `search_by_bow(feat_vec1, keys1, desc1, feat_vec2, keys2, desc2,
    usable1=None, usable2=None)` returns `(count, matches12)`. Each feature
    vector is a mapping from node id to keypoint indices.

In both searches, `matches12[i]` is the index matched in the second set, or
`-1` when keypoint `i` has no match.

`orbfeatures.triangulation.search_for_triangulation(...)` pairs features of
two views that share a vocabulary node. It requires each pair to pass a
descriptor threshold, to lie away from the epipole and to lie near the
epipolar line of the fundamental matrix. It returns the count and a list of
`(index1, index2)` pairs.

```python
from orbfeatures.matching import descriptor_distance
from orbfeatures.search import ORBMatcher

d = descriptor_distance(desc1[0], desc2[0])
count, matches12 = ORBMatcher(0.75).search_by_bow(fv1, keys1, desc1, fv2, keys2, desc2)
```

## What it does not do

The package has no complete extractor. It does not build a scale pyramid. It
does not compute keypoint orientations or BRIEF descriptors, and it carries no
sampling pattern for them. Descriptors must come from elsewhere as 32-byte rows.
It has no command-line tool.