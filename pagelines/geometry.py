"""Plane geometry on integer pixel coordinates.

Points are ``(x, y)`` tuples. Rectangles, line clipping, point-in-polygon
tests and line rasterisation follow the usual raster-image conventions:
a rectangle covers ``x <= px < x + width`` and ``y <= py < y + height``.
"""

from __future__ import annotations

import math
import re
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

Point = tuple[int, int]
Number = float | int

_SEPARATOR = re.compile(" +")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_FLT_MAX = 3.4028234663852886e38


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle given by its top-left corner and size."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        """First column past the rectangle."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """First row past the rectangle."""
        return self.y + self.height

    def contains(self, point: tuple[Number, Number]) -> bool:
        """Whether ``point`` lies inside the rectangle."""
        px, py = point
        return self.x <= px < self.right and self.y <= py < self.bottom


def _leading_int(token: str) -> int:
    match = _LEADING_INT.match(token)
    return int(match.group(1)) if match else 0


def parse_points(text: str) -> list[Point]:
    """Parse ``"x,y x,y ..."`` into a list of integer points.

    Raises ValueError for a token that is not an ``x,y`` pair.
    """
    points: list[Point] = []
    for token in _SEPARATOR.split(text):
        fields = [field for field in token.split(",") if field != ""]
        if len(fields) < 2:
            raise ValueError(f"malformed point {token!r} in {text!r}")
        points.append((_leading_int(fields[0]), _leading_int(fields[1])))
    return points


def _format(pairs: Iterable[tuple[Number, Number]]) -> str:
    text = " ".join(f"{first},{second}" for first, second in pairs)
    if not text:
        raise ValueError("cannot format an empty list of points")
    return text


def format_points(points: Sequence[tuple[Number, Number]]) -> str:
    """Write points as ``"x,y x,y ..."``."""
    return _format((x, y) for x, y in points)


def format_points_swapped(points: Sequence[tuple[Number, Number]]) -> str:
    """Write points with their coordinates swapped, as ``"y,x y,x ..."``."""
    return _format((y, x) for x, y in points)


def bounding_rect(points: Iterable[tuple[Number, Number]]) -> Rect:
    """The smallest rectangle holding every pixel the points fall on.

    An empty point set gives an empty rectangle at the origin.
    """
    points = list(points)
    if not points:
        return Rect(0, 0, 0, 0)
    xs = [math.floor(x) for x, _ in points]
    ys = [math.floor(y) for _, y in points]
    left, top = min(xs), min(ys)
    return Rect(left, top, max(xs) - left + 1, max(ys) - top + 1)


def _outcode(x: int, y: int, right: int, bottom: int) -> int:
    return (x < 0) + (x > right) * 2 + (y < 0) * 4 + (y > bottom) * 8


def clip_line(rect: Rect, p1: Point, p2: Point) -> tuple[Point, Point, bool]:
    """Clip the segment ``p1``-``p2`` against ``rect``.

    Returns the possibly moved end points and whether the clipped segment
    lies inside the rectangle. A segment wholly outside keeps its points.
    """
    if rect.width <= 0 or rect.height <= 0:
        return p1, p2, False
    right, bottom = rect.width - 1, rect.height - 1
    x1, y1 = p1[0] - rect.x, p1[1] - rect.y
    x2, y2 = p2[0] - rect.x, p2[1] - rect.y
    c1 = _outcode(x1, y1, right, bottom)
    c2 = _outcode(x2, y2, right, bottom)

    if (c1 & c2) == 0 and (c1 | c2) != 0:
        if c1 & 12:
            a = 0 if c1 < 8 else bottom
            x1 += int((a - y1) * (x2 - x1) / (y2 - y1))
            y1 = a
            c1 = (x1 < 0) + (x1 > right) * 2
        if c2 & 12:
            a = 0 if c2 < 8 else bottom
            x2 += int((a - y2) * (x2 - x1) / (y2 - y1))
            y2 = a
            c2 = (x2 < 0) + (x2 > right) * 2
        if (c1 & c2) == 0 and (c1 | c2) != 0:
            if c1:
                a = 0 if c1 == 1 else right
                y1 += int((a - x1) * (y2 - y1) / (x2 - x1))
                x1 = a
                c1 = 0
            if c2:
                a = 0 if c2 == 1 else right
                y2 += int((a - x2) * (y2 - y1) / (x2 - x1))
                x2 = a
                c2 = 0

    start = (x1 + rect.x, y1 + rect.y)
    end = (x2 + rect.x, y2 + rect.y)
    return start, end, (c1 | c2) == 0


def _edges(polygon: Sequence[tuple[Number, Number]]):
    previous = polygon[-1]
    for vertex in polygon:
        yield previous, vertex
        previous = vertex


def _skips_crossing(v0, v, px, py) -> bool:
    return (
        (v0[1] <= py and v[1] <= py)
        or (v0[1] > py and v[1] > py)
        or (v0[0] < px and v[0] < px)
    )


def point_polygon_test(
    polygon: Sequence[tuple[Number, Number]],
    point: tuple[Number, Number],
    measure_dist: bool,
) -> float:
    """Locate ``point`` relative to a closed polygon.

    Without ``measure_dist`` the result is 1.0 inside, -1.0 outside and
    0.0 on an edge. With it, the result is the distance to the nearest
    edge, positive inside and negative outside.
    """
    if not polygon:
        return -sys.float_info.max if measure_dist else -1.0
    px, py = float(point[0]), float(point[1])
    counter = 0

    if not measure_dist:
        for v0, v in _edges(polygon):
            if _skips_crossing(v0, v, px, py):
                if py == v[1] and (
                    px == v[0]
                    or (
                        py == v0[1]
                        and (v0[0] <= px <= v[0] or v[0] <= px <= v0[0])
                    )
                ):
                    return 0.0
                continue
            dist = (py - v0[1]) * (v[0] - v0[0]) - (px - v0[0]) * (v[1] - v0[1])
            if dist == 0:
                return 0.0
            if v[1] < v0[1]:
                dist = -dist
            counter += dist > 0
        return -1.0 if counter % 2 == 0 else 1.0

    min_num, min_denom = _FLT_MAX, 1.0
    for v0, v in _edges(polygon):
        dx, dy = v[0] - v0[0], v[1] - v0[1]
        dx1, dy1 = px - v0[0], py - v0[1]
        dx2, dy2 = px - v[0], py - v[1]
        denom = 1.0
        if dx1 * dx + dy1 * dy <= 0:
            num = dx1 * dx1 + dy1 * dy1
        elif dx2 * dx + dy2 * dy >= 0:
            num = dx2 * dx2 + dy2 * dy2
        else:
            num = (dy1 * dx - dx1 * dy) ** 2
            denom = dx * dx + dy * dy
        if num * min_denom < min_num * denom:
            min_num, min_denom = num, denom
            if min_num == 0:
                break
        if _skips_crossing(v0, v, px, py):
            continue
        crossing = dy1 * dx - dx1 * dy
        if dy < 0:
            crossing = -crossing
        counter += crossing > 0

    result = math.sqrt(min_num / min_denom)
    return -result if counter % 2 == 0 else result


def line_points(p1: Point, p2: Point) -> list[Point]:
    """The 8-connected pixels of the segment from ``p1`` to ``p2``, in order."""
    x, y = p1
    dx, dy = p2[0] - x, p2[1] - y
    step_x = -1 if dx < 0 else 1
    step_y = -1 if dy < 0 else 1
    dx, dy = abs(dx), abs(dy)

    if dy > dx:
        major, minor = dy, dx
        major_step, minor_step = (0, step_y), (step_x, 0)
    else:
        major, minor = dx, dy
        major_step, minor_step = (step_x, 0), (0, step_y)

    err = major - 2 * minor
    points: list[Point] = []
    for _ in range(major + 1):
        points.append((x, y))
        x += major_step[0]
        y += major_step[1]
        if err < 0:
            x += minor_step[0]
            y += minor_step[1]
            err += 2 * major
        err -= 2 * minor
    return points