"""Keypoint record and response-based filtering."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable


@dataclass(slots=True)
class KeyPoint:
    """A detected image feature.

    ``angle`` is in degrees, ``octave`` is the pyramid level the point was
    detected on and ``size`` is the diameter of its neighbourhood.
    """

    x: float
    y: float
    size: float = 0.0
    angle: float = -1.0
    response: float = 0.0
    octave: int = 0

    @property
    def pt(self) -> tuple[float, float]:
        return (self.x, self.y)

    def scaled(self, factor: float) -> KeyPoint:
        """Return a copy whose position is multiplied by ``factor``."""
        return replace(self, x=self.x * factor, y=self.y * factor)

    def shifted(self, dx: float, dy: float) -> KeyPoint:
        """Return a copy moved by ``(dx, dy)``."""
        return replace(self, x=self.x + dx, y=self.y + dy)


def retain_best(keypoints: Iterable[KeyPoint], n: int) -> list[KeyPoint]:
    """Keep the ``n`` strongest keypoints by response.

    Keypoints whose response ties with the ``n``-th strongest are kept too,
    so the result may hold more than ``n`` entries. A negative ``n`` keeps
    everything. The result is ordered by decreasing response.
    """
    ranked = sorted(keypoints, key=lambda kp: kp.response, reverse=True)
    if n < 0 or len(ranked) <= n:
        return ranked
    if n == 0:
        return []
    threshold = ranked[n - 1].response
    return [kp for kp in ranked if kp.response >= threshold]