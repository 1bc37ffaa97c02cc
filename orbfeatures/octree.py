"""Quadtree spreading of keypoints over an image region."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from orbfeatures.keypoints import KeyPoint

Point = tuple[int, int]


@dataclass(eq=False)
class ExtractorNode:
    """A rectangular cell of the quadtree and the keypoints that fall in it.

    Corners are upper-left, upper-right, bottom-left and bottom-right.
    ``no_more`` marks a node that holds a single keypoint and is not split.
    """

    ul: Point
    ur: Point
    bl: Point
    br: Point
    keys: list[KeyPoint] = field(default_factory=list)
    no_more: bool = False

    def divide(self) -> tuple[ExtractorNode, ExtractorNode, ExtractorNode, ExtractorNode]:
        """Split into four quadrants and share the keypoints between them.

        Returns the upper-left, upper-right, bottom-left and bottom-right
        children, in that order. Empty children are returned as well.
        """
        half_x = math.ceil((self.ur[0] - self.ul[0]) / 2)
        half_y = math.ceil((self.br[1] - self.ul[1]) / 2)
        ux, uy = self.ul

        n1 = ExtractorNode(
            ul=self.ul,
            ur=(ux + half_x, uy),
            bl=(ux, uy + half_y),
            br=(ux + half_x, uy + half_y),
        )
        n2 = ExtractorNode(ul=n1.ur, ur=self.ur, bl=n1.br, br=(self.ur[0], uy + half_y))
        n3 = ExtractorNode(ul=n1.bl, ur=n1.br, bl=self.bl, br=(n1.br[0], self.bl[1]))
        n4 = ExtractorNode(ul=n3.ur, ur=n2.br, bl=n3.br, br=self.br)

        split_x, split_y = n1.ur[0], n1.br[1]
        for kp in self.keys:
            if kp.x < split_x:
                (n1 if kp.y < split_y else n3).keys.append(kp)
            elif kp.y < split_y:
                n2.keys.append(kp)
            else:
                n4.keys.append(kp)

        children = (n1, n2, n3, n4)
        for child in children:
            child.no_more = len(child.keys) == 1
        return children


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _refine(nodes: deque[ExtractorNode], expandable: list[ExtractorNode], n: int) -> None:
    """Split the most populated nodes first until ``n`` nodes exist or nothing changes."""
    while True:
        prev_size = len(nodes)
        candidates = sorted(expandable, key=lambda node: len(node.keys))
        expandable = []
        for node in reversed(candidates):
            for child in node.divide():
                if child.keys:
                    nodes.appendleft(child)
                    if len(child.keys) > 1:
                        expandable.append(child)
            nodes.remove(node)
            if len(nodes) >= n:
                break
        if len(nodes) >= n or len(nodes) == prev_size:
            return


def distribute_oct_tree(
    keypoints: Iterable[KeyPoint],
    min_x: int,
    max_x: int,
    min_y: int,
    max_y: int,
    n: int,
) -> list[KeyPoint]:
    """Spread keypoints evenly over a region and keep about ``n`` of them.

    Keypoint coordinates are relative to ``(min_x, min_y)``. The region is
    split recursively into quadrants until there are at least ``n`` non-empty
    cells or no cell can be split further; the strongest keypoint of each cell
    is returned.
    """
    keys = list(keypoints)
    width = max_x - min_x
    height = max_y - min_y
    if width <= 0 or height <= 0:
        raise ValueError("region must have a positive width and height")

    n_ini = max(1, _round_half_away(width / height))
    h_x = width / n_ini

    initial = [
        ExtractorNode(
            ul=(int(h_x * i), 0),
            ur=(int(h_x * (i + 1)), 0),
            bl=(int(h_x * i), height),
            br=(int(h_x * (i + 1)), height),
        )
        for i in range(n_ini)
    ]
    for kp in keys:
        index = min(max(int(kp.x / h_x), 0), n_ini - 1)
        initial[index].keys.append(kp)

    nodes: deque[ExtractorNode] = deque()
    for node in initial:
        if node.keys:
            node.no_more = len(node.keys) == 1
            nodes.append(node)

    while True:
        prev_size = len(nodes)
        added: list[ExtractorNode] = []
        kept: list[ExtractorNode] = []
        expandable: list[ExtractorNode] = []
        for node in nodes:
            if node.no_more:
                kept.append(node)
                continue
            for child in node.divide():
                if child.keys:
                    added.append(child)
                    if len(child.keys) > 1:
                        expandable.append(child)
        # New children go to the front, most recent first.
        nodes = deque(reversed(added))
        nodes.extend(kept)

        if len(nodes) >= n or len(nodes) == prev_size:
            break
        if len(nodes) + 3 * len(expandable) > n:
            _refine(nodes, expandable, n)
            break

    return [max(node.keys, key=lambda kp: kp.response) for node in nodes]