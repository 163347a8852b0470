"""Line limit files and the search zones derived from them.

A line limit file holds one text line per row, written as two integers
separated by spaces: the top and the bottom coordinate of the line.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable
from os import PathLike

logger = logging.getLogger(__name__)

_SEPARATOR = re.compile(" +")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

LineLimit = tuple[int, int]
SearchZone = tuple[int, ...]


def _leading_int(token: str) -> int:
    """Read the integer at the start of ``token``; 0 when there is none."""
    match = _LEADING_INT.match(token)
    return int(match.group(1)) if match else 0


def _half(value: int) -> int:
    """Integer half of ``value``, truncated toward zero."""
    return int(value / 2)


def read_line_limits(lines: Iterable[str]) -> list[LineLimit]:
    """Parse ``start end`` rows into a list of ``(start, end)`` pairs.

    Raises ValueError for a row that does not hold exactly two fields.
    """
    limits: list[LineLimit] = []
    for number, raw in enumerate(lines, start=1):
        fields = _SEPARATOR.split(raw.rstrip("\n"))
        if len(fields) != 2:
            raise ValueError(
                f"line {number}: expected two values, found {len(fields)}"
            )
        limits.append((_leading_int(fields[0]), _leading_int(fields[1])))
    return limits


def _averages(line_limits: list[LineLimit]) -> tuple[float, float]:
    """Mean line height and mean gap between consecutive lines.

    A mean with nothing to average over is NaN.
    """
    count = len(line_limits)
    line_total = sum(end - start for start, end in line_limits)
    gap_total = sum(
        start - previous_end
        for (_, previous_end), (start, _) in zip(line_limits, line_limits[1:])
    )
    average_line = line_total / count if count else math.nan
    average_gap = gap_total / (count - 1) if count > 1 else math.nan
    return average_line, average_gap


def _ratio(numerator: int, denominator: int) -> float:
    if denominator:
        return numerator / denominator
    if numerator == 0:
        return math.nan
    return math.copysign(math.inf, numerator)


def compute_search_zones(
    line_limits: list[LineLimit],
    average_line_size: float,
    average_interline_size: float,
    page_start: int,
    page_end: int,
) -> list[SearchZone]:
    """Derive the search zones that surround each line of the page.

    Every line yields a ``(top, middle, bottom)`` zone; a final
    ``(top, bottom)`` zone covers the space below the last line.
    """
    if not line_limits:
        raise ValueError("no line limits to derive search zones from")

    zones: list[SearchZone] = []
    region_start = page_start
    region_end = page_start
    last_line_size = 0
    for index, (start, end) in enumerate(line_limits):
        line_size = end - start
        logger.debug("Line >> %d - %d", start, end)
        region_end = end
        if index:
            top = int(
                region_start
                + _half(last_line_size)
                + abs(last_line_size - average_line_size)
            )
        else:
            top = region_start
        zone = (top, region_end - _half(line_size), region_end)
        logger.debug("Region >> %d - %d", zone[0], zone[1])
        zones.append(zone)
        region_start = start
        last_line_size = line_size

    if _ratio(page_end - region_start, page_end) > 0.1:
        bottom = int(region_end + 1.5 * average_interline_size)
    else:
        bottom = page_end
    final_zone = (region_start + 10, bottom)
    logger.debug("Region >> %d - %d", final_zone[0], final_zone[1])
    zones.append(final_zone)
    return zones


class LineRegionList:
    """The line limits of a page read from a file, with their search zones."""

    def __init__(
        self, file_name: str | PathLike[str], page_start: int, page_end: int
    ) -> None:
        self.file_name = file_name
        self.page_start = page_start
        self.page_end = page_end
        logger.info("Loading line limits from %s", file_name)
        with open(file_name, encoding="utf-8") as handle:
            self.line_limits = read_line_limits(handle)
        self.average_line_size, self.average_interline_size = _averages(
            self.line_limits
        )
        logger.info("Average line size is %s", self.average_line_size)
        logger.info("Average interline size is %s", self.average_interline_size)
        self.search_zones = compute_search_zones(
            self.line_limits,
            self.average_line_size,
            self.average_interline_size,
            page_start,
            page_end,
        )