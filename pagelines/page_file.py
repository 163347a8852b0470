"""Reading and editing PAGE layout documents.

A page document lists text regions, each holding text lines with a
contour (``Coords``), a baseline (``Baseline``) and a transcription
(``TextEquiv/Unicode``). Point lists are written as ``"x,y x,y ..."``.
"""

from __future__ import annotations

import logging
import re
import sys
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from os import PathLike

import numpy as np

from .geometry import Rect, bounding_rect, format_points_swapped, parse_points

logger = logging.getLogger(__name__)

Point = tuple[int, int]
IndexPair = tuple[float, int]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_REGION_LABELS = {
    "paragraph": 1,
    "heading": 2,
    "header": 2,
    "floating": 3,
    "marginalia": 4,
    "signature-mark": 5,
    "page-number": 6,
    "catch-word": 7,
}


class PageFormatError(ValueError):
    """Raised when a page document holds something that cannot be used."""


def region_label_code(label: str) -> int:
    """The numeric code of a region type."""
    try:
        return _REGION_LABELS[label]
    except KeyError:
        raise PageFormatError(f"unrecognised region label {label!r}") from None


def _namespace_of(tag: str) -> str:
    return tag[: tag.index("}") + 1] if tag.startswith("{") else ""


def _leading_int(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


class PageFile:
    """A page document with its regions, lines and reading order."""

    def __init__(self, file_name: str | PathLike[str], mode: str = "baselines") -> None:
        self.file_name = file_name
        logger.debug("Loading page file %s", file_name)
        try:
            self.doc = ET.parse(file_name)
        except ET.ParseError as error:
            raise PageFormatError(f"{file_name}: {error}") from error
        root = self.doc.getroot()
        self.namespace = _namespace_of(root.tag)
        self.page = root.find(self._tag("Page")) if root.tag == self._tag("PcGts") else None

        self.image: np.ndarray | None = None
        self.mean_grey: tuple[float, ...] = ()
        self.text: list[str] = []
        self.textline_text: list[list[str]] = []
        self.baselines: list[list[list[Point]]] = []
        self.baseline_order: list[list[IndexPair]] = []
        self.contours: list[list[list[Point]]] = []
        self.paragraph_order: list[list[IndexPair]] = []
        self.region_order: list[IndexPair] = []
        self.horizontal_max: list[list[int]] = []
        self.bounding_rectangles: list[list[Rect]] = []
        self.region_nodes: list[ET.Element] = []
        self.line_nodes: list[list[ET.Element]] = []

        if mode == "baselines":
            self._load_baselines()
        else:
            self._load_contours()
        self._calculate_reading_order()

    # XML helpers -------------------------------------------------------

    def _tag(self, name: str) -> str:
        return self.namespace + name

    def _children(self, element: ET.Element | None, name: str) -> list[ET.Element]:
        return [] if element is None else element.findall(self._tag(name))

    def _regions(self) -> list[ET.Element]:
        return self._children(self.page, "TextRegion")

    def _points_attribute(self, node: ET.Element, child: str) -> str:
        element = node.find(self._tag(child))
        return "" if element is None else element.get("points", "")

    def _unicode_text(self, line: ET.Element) -> str:
        equiv = line.find(self._tag("TextEquiv"))
        if equiv is None:
            return ""
        unicode = equiv.find(self._tag("Unicode"))
        return "" if unicode is None else unicode.text or ""

    @staticmethod
    def _parse(text: str) -> list[Point]:
        try:
            return parse_points(text)
        except ValueError as error:
            raise PageFormatError(str(error)) from error

    # Loading -----------------------------------------------------------

    def _load_baselines(self) -> None:
        for region in self._regions():
            if region.get("type", "") == "floating":
                continue
            baselines: list[list[Point]] = []
            texts: list[str] = []
            order: list[IndexPair] = []
            nodes: list[ET.Element] = []
            self.baselines.append(baselines)
            self.textline_text.append(texts)
            self.baseline_order.append(order)
            self.line_nodes.append(nodes)
            for line in self._children(region, "TextLine"):
                point_string = self._points_attribute(line, "Baseline")
                transcription = self._unicode_text(line)
                logger.info("At line %s %s", line.get("id", ""), transcription)
                if point_string == "":
                    continue
                points = self._parse(point_string)
                max_y = max([-1.0, *(float(y) for _, y in points)])
                texts.append(transcription)
                baselines.append(points)
                order.append((max_y, len(order)))
                nodes.append(line)

    def _load_contours(self) -> None:
        for region in self._regions():
            self.region_nodes.append(region)
            contours: list[list[Point]] = []
            nodes: list[ET.Element] = []
            order: list[IndexPair] = []
            maxes: list[int] = []
            rects: list[Rect] = []
            self.contours.append(contours)
            self.line_nodes.append(nodes)
            self.paragraph_order.append(order)
            self.horizontal_max.append(maxes)
            for line in self._children(region, "TextLine"):
                points = self._parse(self._points_attribute(line, "Coords"))
                mean_y = sum(y for _, y in points) / len(points)
                max_x = max([-1, *(x for x, _ in points)])
                nodes.append(line)
                order.append((mean_y, len(contours)))
                maxes.append(max_x)
                rects.append(bounding_rect(points))
                contours.append(points)
            self.bounding_rectangles.append(rects)

    def _sort_baseline_order(self) -> None:
        for order in self.baseline_order:
            order.sort()

    def _calculate_reading_order(self) -> None:
        for order in self.paragraph_order:
            order.sort()
        self._sort_baseline_order()
        self.region_order.extend(
            (order[-1][0], index) for index, order in enumerate(self.baseline_order) if order
        )
        self.region_order.sort()
        self.region_order.extend(
            (order[-1][0], index) for index, order in enumerate(self.paragraph_order) if order
        )
        self.region_order.sort()

    # Queries -----------------------------------------------------------

    def text_regions(self) -> list[list[Point]]:
        """Contours of every region that is not floating."""
        return [
            self._parse(self._points_attribute(region, "Coords"))
            for region in self._regions()
            if region.get("type", "") != "floating"
        ]

    def all_regions(self) -> list[list[Point]]:
        """Contours of every region."""
        return [self._parse(self._points_attribute(region, "Coords")) for region in self._regions()]

    def all_region_labels(self) -> list[int]:
        """Numeric type codes of every region."""
        return [region_label_code(region.get("type", "")) for region in self._regions()]

    def all_line_contours(self) -> list[list[list[Point]]]:
        """Contours of every loaded line, grouped by region."""
        return [
            [self._parse(self._points_attribute(node, "Coords")) for node in nodes]
            for nodes in self.line_nodes
        ]

    def sorted_baselines(self) -> list[list[list[Point]]]:
        """Baselines in reading order, grouped by region."""
        return [
            [self.baselines[k][index] for _, index in self.baseline_order[k]]
            for _, k in self.region_order
        ]

    def sorted_contours(self) -> list[list[list[Point]]]:
        """Line geometry in reading order; built from the baselines."""
        return self.sorted_baselines()

    def sorted_regions(self) -> list[list[Point]]:
        """Region contours in reading order."""
        regions = self.all_regions()
        result = []
        for _, k in self.region_order:
            if k >= len(regions):
                raise PageFormatError("region order refers to a region that does not exist")
            result.append(list(regions[k]))
        return result

    def load_external_contours(self, contours: Sequence[Sequence[Sequence[Point]]]) -> None:
        """Store line contours given in reading order, with swapped coordinates."""
        for j, (_, region) in enumerate(self.region_order):
            for i, (_, line) in enumerate(self.baseline_order[region]):
                contour = contours[j][i]
                coords = self.line_nodes[region][line].find(self._tag("Coords"))
                logger.info("Loading contour [%d][%d] into [%d][%d]", j, i, region, line)
                if contour and coords is not None and "points" in coords.attrib:
                    coords.set("points", format_points_swapped(contour))

    def mode_interline_space(self) -> int:
        """The median distance between consecutive baselines in reading order."""
        self._sort_baseline_order()
        spaces: list[int] = []
        last = -1
        for _, k in self.region_order:
            for first, _ in self.baseline_order[k]:
                current = int(first)
                if last != -1:
                    spaces.append(current - last)
                last = current
        if not spaces:
            raise PageFormatError("fewer than two baselines to measure")
        spaces.sort()
        return spaces[len(spaces) // 2]

    def page_image_dimensions(self) -> tuple[int, int]:
        """The page image size as ``(height, width)``."""
        if self.page is None:
            return 0, 0
        width = _leading_int(self.page.get("imageWidth", ""))
        height = _leading_int(self.page.get("imageHeight", ""))
        return height, width

    # Editing -----------------------------------------------------------

    def load_image(self, image) -> None:
        """Keep a copy of the page image and its mean grey level per channel."""
        self.image = np.array(image, copy=True)
        if self.image.ndim == 3:
            self.mean_grey = tuple(float(value) for value in self.image.mean(axis=(0, 1)))
        else:
            self.mean_grey = (float(self.image.mean()),)
        logger.debug("Mean grey %s", self.mean_grey)

    def load_transcription_file(self, file_name: str | PathLike[str]) -> None:
        """Append every line of a transcription file to the loaded text."""
        try:
            with open(file_name, encoding="utf-8", newline="") as handle:
                self.text.extend(line.rstrip("\n") for line in handle)
        except OSError as error:
            logger.warning("Transcription file could not be read: %s", error)

    def add_text(self, lines: Sequence[str]) -> None:
        """Attach a transcription to each line, in reading order."""
        line_count = 0
        for i in range(len(self.line_nodes)):
            if i >= len(self.region_order):
                continue
            k = self.region_order[i][1]
            if k >= len(self.bounding_rectangles):
                continue
            for j in range(len(self.line_nodes[k])):
                h = self.paragraph_order[k][j][1]
                if line_count >= len(lines):
                    raise PageFormatError("fewer transcription lines than text lines")
                equiv = ET.SubElement(self.line_nodes[k][h], self._tag("TextEquiv"))
                plain = ET.SubElement(equiv, self._tag("PlainText"))
                unicode = ET.SubElement(plain, self._tag("Unicode"))
                unicode.text = lines[line_count]
                line_count += 1

    def add_loaded_transcription_text(self) -> None:
        """Attach the loaded transcription file to the lines."""
        self.add_text(self.text)

    def save_xml(self, file_name: str | PathLike[str] | None = "") -> None:
        """Write the document to ``file_name``, or to standard output when empty."""
        ET.indent(self.doc, space="\t")
        default_namespace = self.namespace[1:-1] or None
        if not file_name:
            self.doc.write(
                sys.stdout,
                encoding="unicode",
                xml_declaration=True,
                default_namespace=default_namespace,
            )
            sys.stdout.write("\n")
        else:
            self.doc.write(
                file_name,
                encoding="utf-8",
                xml_declaration=True,
                default_namespace=default_namespace,
            )