"""Deriving line contours and baselines for the lines of a page document.

These functions edit a loaded :class:`~pagelines.page_file.PageFile` in
place: they clip baselines to their regions, build line contours around
baselines, and add baselines computed from line limit files.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from os import PathLike

from .geometry import Rect, bounding_rect, clip_line, format_points, point_polygon_test
from .line_region_list import LineRegionList
from .page_file import PageFile, PageFormatError

logger = logging.getLogger(__name__)

Point = tuple[int, int]


def _set_points(namespace: str, node: ET.Element, child: str, text: str) -> None:
    """Replace the ``points`` attribute of a child element, if it has one."""
    element = node.find(namespace + child)
    if element is not None and "points" in element.attrib:
        element.set("points", text)


def _reset_contours(page: PageFile) -> None:
    page.contours.clear()
    page.contours.append([[]])


def _clip_ends(rect: Rect, baseline: Sequence[Point], last: int) -> list[Point]:
    """Copy of ``baseline`` with its first point and the point at ``last`` clipped."""
    clipped = list(baseline)
    start, end, _ = clip_line(rect, clipped[0], clipped[last])
    clipped[0] = start
    clipped[last] = end
    return clipped


def _require_segment(baseline: Sequence[Point]) -> None:
    if len(baseline) < 2:
        raise PageFormatError("a baseline needs at least two points to be clipped")


def _lowest(baseline: Sequence[Point]) -> int:
    return max(y for _, y in baseline)


def _clamped_contour(
    region: Sequence[Point], baseline: Sequence[Point], ascendant: int, descendant: int
) -> list[Point]:
    """A closed contour around ``baseline``, pulled back inside ``region``."""
    top: list[Point] = []
    bottom: list[Point] = []
    for x, y in baseline:
        up = y + ascendant
        distance = int(point_polygon_test(region, (x, up), True))
        top.append((x, up - distance if distance < 0 else up))
        down = y + descendant
        distance = int(point_polygon_test(region, (x, down), True))
        bottom.append((x, down + distance if distance < 0 else down))
    return top[::-1] + bottom


def _plain_contour(baseline: Sequence[Point], ascendant: int, descendant: int) -> list[Point]:
    top = [(x, y + ascendant) for x, y in baseline]
    bottom = [(x, y + descendant) for x, y in baseline]
    return top[::-1] + bottom


def _replace_transcription(namespace: str, node: ET.Element, text: str) -> None:
    equiv = node.find(namespace + "TextEquiv")
    if equiv is None:
        return
    old = equiv.find(namespace + "Unicode")
    if old is not None:
        equiv.remove(old)
    ET.SubElement(equiv, namespace + "Unicode").text = text


def clip_baselines(page: PageFile) -> None:
    """Clip the first segment of every baseline to its region's bounding box."""
    _reset_contours(page)
    logger.debug("Clipping lines")
    regions = page.text_regions()
    for j, baselines in enumerate(page.baselines):
        rect = bounding_rect(regions[j])
        for i, baseline in enumerate(baselines):
            _require_segment(baseline)
            clipped = _clip_ends(rect, baseline, 1)
            _set_points(page.namespace, page.line_nodes[j][i], "Baseline", format_points(clipped))


def generate_fixed_contour_from_baseline(
    page: PageFile, descendant_offset: int, ascendant_offset: int
) -> None:
    """Give every line a contour at fixed pixel offsets around its baseline.

    The line transcription is rewritten as well.
    """
    _reset_contours(page)
    namespace = page.namespace
    regions = page.text_regions()
    for j, order in enumerate(page.baseline_order):
        rect = bounding_rect(regions[j])
        for i in range(len(order)):
            baseline = page.baselines[j][i]
            clipped = _clip_ends(rect, baseline, len(baseline) - 1)
            node = page.line_nodes[j][i]
            _replace_transcription(namespace, node, page.textline_text[j][i])
            _set_points(namespace, node, "Baseline", format_points(clipped))
            contour = _clamped_contour(regions[j], clipped, ascendant_offset, descendant_offset)
            _set_points(namespace, node, "Coords", format_points(contour))
        logger.debug("Lines in region %d done", j)


def generate_contour_from_baseline(
    page: PageFile, descendant_offset: int, ascendant_offset: int
) -> None:
    """Give every line a contour sized as percentages of the interline spaces.

    The ascendant offset is a percentage of the space above the baseline,
    the descendant offset of the space down to the next baseline.
    """
    _reset_contours(page)
    namespace = page.namespace
    regions = page.text_regions()
    for j, order in enumerate(page.baseline_order):
        rect = bounding_rect(regions[j])
        last = rect.y
        for i, (_, h) in enumerate(order):
            baseline = page.baselines[j][h]
            bottom = _lowest(baseline)
            if i + 1 < len(order):
                next_bottom = _lowest(page.baselines[j][order[i + 1][1]])
            else:
                next_bottom = rect.bottom
            interline_space = float(bottom - last)
            next_interline_space = float(next_bottom - bottom)
            ascendant = int((interline_space / 100.0) * ascendant_offset)
            descendant = int((next_interline_space / 100.0) * descendant_offset)

            clipped = _clip_ends(rect, baseline, len(baseline) - 1)
            node = page.line_nodes[j][i]
            _set_points(namespace, node, "Baseline", format_points(clipped))
            contour = _clamped_contour(regions[j], clipped, ascendant, descendant)
            _set_points(namespace, node, "Coords", format_points(contour))
            last = bottom
        logger.debug("Lines in region %d done", j)


def generate_line_contour_from_baseline(
    page: PageFile, line_id: str, descendant_offset: int, ascendant_offset: int
) -> None:
    """Clip every baseline and build a contour for the line named ``line_id``.

    Both offsets are percentages of the space above the baseline.
    """
    _reset_contours(page)
    namespace = page.namespace
    regions = page.text_regions()
    for j, baselines in enumerate(page.baselines):
        rect = bounding_rect(regions[j])
        last = rect.y
        for i, baseline in enumerate(baselines):
            _require_segment(baseline)
            bottom = _lowest(baseline)
            interline_space = float(bottom - last)
            ascendant = int((interline_space / 100.0) * ascendant_offset)
            descendant = int((interline_space / 100.0) * descendant_offset)

            clipped = _clip_ends(rect, baseline, 1)
            node = page.line_nodes[j][i]
            _set_points(namespace, node, "Baseline", format_points(clipped))
            if node.get("id", "") == line_id:
                contour = _plain_contour(clipped, ascendant, descendant)
                _set_points(namespace, node, "Coords", format_points(contour))
            last = bottom


def load_line_limits(page: PageFile, region: int, line_limits: Sequence[Sequence[int]]) -> None:
    """Add a page-wide horizontal baseline at the bottom of every line limit."""
    if page.image is None:
        raise ValueError("a page image must be loaded before line limits")
    width = page.image.shape[1] - 1
    size = len(page.paragraph_order)
    if not 0 <= region < size:
        raise IndexError(f"region {region} out of range for {size} regions")
    del page.baselines[size:]
    page.baselines.extend([] for _ in range(size - len(page.baselines)))
    for limit in line_limits:
        page.baselines[region].append([(0, limit[1]), (width, limit[1])])
    logger.debug("Region %d holds %d baselines", region, len(page.baselines[region]))


def load_line_limits_file(page: PageFile, region: int, file_name: str | PathLike[str]) -> None:
    """Read a line limit file and add its baselines to the first region.

    The ``region`` argument is accepted for symmetry; the baselines always
    go to the first region.
    """
    if page.image is None:
        raise ValueError("a page image must be loaded before line limits")
    line_list = LineRegionList(file_name, 0, page.image.shape[0])
    logger.debug("Loading baseline file")
    load_line_limits(page, 0, line_list.line_limits)


def _append_line(
    namespace: str, region: ET.Element, line_id: str, baseline: Sequence[Point], correction: int
) -> None:
    line = ET.SubElement(region, namespace + "TextLine", {"id": line_id})
    ET.SubElement(line, namespace + "Coords", {"points": ""})
    points = format_points([(x, y + correction) for x, y in baseline])
    ET.SubElement(line, namespace + "Baseline", {"points": points})


def add_loaded_baselines(page: PageFile, correction_factor: int) -> None:
    """Append the loaded baselines as new text lines of their regions.

    Every y coordinate is shifted by ``correction_factor``.
    """
    if not page.baselines or page.page is None:
        return
    namespace = page.namespace
    line_count = 0
    regions = page.page.findall(namespace + "TextRegion")
    for region, baselines in zip(regions, page.baselines):
        for baseline in baselines:
            _append_line(namespace, region, f"l{line_count}", baseline, correction_factor)
            line_count += 1


def add_loaded_baselines_to_region(page: PageFile, region_id: str, correction_factor: int) -> None:
    """Append the first region's loaded baselines to the region named ``region_id``."""
    if not page.baselines or page.page is None:
        return
    namespace = page.namespace
    line_count = 0
    for region in page.page.findall(namespace + "TextRegion"):
        if region.get("id", "") != region_id:
            continue
        for baseline in page.baselines[0]:
            _append_line(namespace, region, f"l{line_count}", baseline, correction_factor)
            line_count += 1