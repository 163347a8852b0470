"""Reading figures of points from a points file.

The file announces the number of figures with a ``<count> Text`` or
``<count> Num`` line. Each figure then starts with a line holding its
number of points, followed by ``x y z`` point lines. Lines starting with
``#`` are comments.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from itertools import chain
from os import PathLike

logger = logging.getLogger(__name__)

_SEPARATOR = re.compile(" +")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(
    r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)
_WHITESPACE = " \t\n\r\f\v"

Point = tuple[float, float]
Figure = list[Point]


def _leading_int(token: str) -> int:
    match = _LEADING_INT.match(token)
    return int(match.group(1)) if match else 0


def _leading_float(token: str) -> float:
    match = _LEADING_FLOAT.match(token)
    return float(match.group(1)) if match else 0.0


def _is_comment(text: str) -> bool:
    return text.startswith("#")


def _is_figure_count_line(fields: list[str]) -> bool:
    return len(fields) == 2 and fields[1] in ("Text", "Num")


def _is_point_count_line(fields: list[str]) -> bool:
    return len(fields) == 1 and not _is_comment(fields[0])


def _is_point_line(fields: list[str]) -> bool:
    return len(fields) == 3


def parse_points_file(lines: Iterable[str]) -> list[Figure]:
    """Parse the lines of a points file into a list of figures."""
    figures: list[Figure] = []
    current: Figure = []
    remaining_figures = -1
    remaining_points = 0

    for raw in lines:
        line = raw.strip(_WHITESPACE)
        if _is_comment(line):
            continue
        fields = _SEPARATOR.split(line)
        if remaining_figures > 0:
            if _is_point_count_line(fields) and remaining_points == 0:
                remaining_points = _leading_int(fields[0])
                if current or figures:
                    figures.append(current)
                    remaining_figures -= 1
                current = []
            elif _is_point_line(fields):
                current.append(
                    (_leading_float(fields[0]), _leading_float(fields[1]))
                )
                remaining_points -= 1
        elif _is_figure_count_line(fields):
            remaining_figures = _leading_int(fields[0])

    if current:
        figures.append(current)
    logger.info("Loaded %d figures", len(figures))
    for index, figure in enumerate(figures):
        logger.info("Figure %d has %d points", index, len(figure))
    return figures


class PointsFile:
    """The figures held in a points file."""

    def __init__(self, file_name: str | PathLike[str]) -> None:
        self.file_name = file_name
        with open(file_name, encoding="utf-8") as handle:
            self.points = parse_points_file(handle)

    def __len__(self) -> int:
        return len(self.points)

    def as_polygons(self, points_per_polygon: int) -> list[Figure]:
        """Regroup all points, in order, into polygons of equal size.

        Raises ValueError when the points do not split evenly.
        """
        if points_per_polygon <= 0:
            raise ValueError("points_per_polygon must be positive")
        all_points = list(chain.from_iterable(self.points))
        if len(all_points) % points_per_polygon:
            raise ValueError(
                f"{len(all_points)} points cannot form polygons of "
                f"{points_per_polygon} vertices"
            )
        return [
            all_points[start:start + points_per_polygon]
            for start in range(0, len(all_points), points_per_polygon)
        ]