"""Images, listings and label maps produced from a loaded page document.

These functions read a :class:`~pagelines.page_file.PageFile` and write
what it describes: cut-out line images with an alpha mask, the line
bounding boxes, the older line-segmentation listing, a per-pixel map of
region types and an annotated overview picture.
"""

from __future__ import annotations

import logging
import random
import sys
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from os import PathLike
from pathlib import Path
from typing import TextIO

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .geometry import Rect
from .page_file import PageFile

logger = logging.getLogger(__name__)

Point = tuple[int, int]

_BASELINE_SUBTRACT = 40
_LINE_SUBTRACT = 30
_LINE_ADD = 0
_NO_REGION_LABEL = 255


def _require_image(page: PageFile) -> np.ndarray:
    if page.image is None:
        raise ValueError("a page image must be loaded first")
    return page.image


def _rgb(image: np.ndarray) -> np.ndarray:
    """The image as an ``(rows, cols, 3)`` array of bytes."""
    array = np.asarray(image)
    if array.ndim == 2:
        array = np.stack([array] * 3, axis=-1)
    elif array.ndim == 3 and array.shape[2] == 1:
        array = np.concatenate([array] * 3, axis=-1)
    elif array.ndim != 3 or array.shape[2] < 3:
        raise ValueError("image must be grey or have at least three channels")
    return array[..., :3].astype(np.uint8)


def _fill_mask(rows: int, cols: int, contour: Sequence[Point]) -> np.ndarray:
    """A byte mask that is 255 on and inside ``contour``."""
    mask = Image.new("L", (cols, rows), 0)
    draw = ImageDraw.Draw(mask)
    points = [(int(x), int(y)) for x, y in contour]
    if len(points) == 1:
        draw.point(points, fill=255)
    elif points:
        draw.polygon(points, fill=255, outline=255)
    return np.asarray(mask, dtype=np.uint8)


def _crop(array: np.ndarray, rect: Rect) -> np.ndarray:
    rows, cols = array.shape[:2]
    if rect.x < 0 or rect.y < 0 or rect.right > cols or rect.bottom > rows:
        raise ValueError(f"rectangle {rect} lies outside a {cols}x{rows} image")
    return array[rect.y:rect.bottom, rect.x:rect.right].copy()


def _transcription(page: PageFile, line: ET.Element) -> str:
    equiv = line.find(page.namespace + "TextEquiv")
    if equiv is None:
        return ""
    unicode = equiv.find(page.namespace + "Unicode")
    return "" if unicode is None else unicode.text or ""


def _page_attribute(page: PageFile, name: str) -> str:
    return "" if page.page is None else page.page.get(name, "")


def line_images_with_alpha(page: PageFile) -> list[list[np.ndarray]]:
    """Cut every line contour out of the page image as an RGBA picture.

    The alpha channel is opaque inside the contour; each picture covers
    the bounding rectangle of its line.
    """
    rgb = _rgb(_require_image(page))
    rows, cols = rgb.shape[:2]
    images: list[list[np.ndarray]] = []
    for region, contours in enumerate(page.contours):
        region_images: list[np.ndarray] = []
        for index, contour in enumerate(contours):
            mask = _fill_mask(rows, cols, contour)
            transparent = np.dstack([rgb, mask])
            region_images.append(_crop(transparent, page.bounding_rectangles[region][index]))
        images.append(region_images)
    return images


def _save_line_images(
    page: PageFile, line_images: list[list[np.ndarray]], base_name: str
) -> list[Path]:
    written: list[Path] = []
    for i in range(len(line_images)):
        if i >= len(page.region_order):
            continue
        k = page.region_order[i][1]
        region_id = page.region_nodes[k].get("id", "")
        for j in range(len(line_images[k])):
            h = page.paragraph_order[k][j][1]
            if j != h:
                logger.error("Out of place line %d for %d", j, h)
            line = page.line_nodes[k][h]
            stem = f"{base_name}_{i + 1:02d}_{j + 1:02d}_{region_id}_{line.get('id', '')}"
            png_path = Path(stem + ".png")
            png_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("File: %s", png_path)
            Image.fromarray(line_images[k][h]).save(png_path)
            Path(stem + ".txt").write_text(_transcription(page, line), encoding="utf-8")
            written.append(png_path)
    return written


def extract_line_images(page: PageFile, output_dir: str | PathLike[str] = "") -> list[Path]:
    """Write each line as a PNG with an alpha mask, plus its transcription.

    Files are named after the page file, the reading position of region
    and line, and their identifiers. Returns the PNG paths written.
    """
    file_name = str(page.file_name)
    dot = file_name.rfind(".")
    base_name = file_name[:dot] if dot != -1 else file_name
    line_images = line_images_with_alpha(page)
    out_path = base_name
    output_dir = str(output_dir) if output_dir else ""
    if output_dir:
        Path(output_dir).mkdir(exist_ok=True)
        logger.debug("output_dir = %s", output_dir)
        out_path = f"{output_dir}/{base_name}"
    return _save_line_images(page, line_images, out_path)


def print_file_info(page: PageFile, stream: TextIO | None = None) -> None:
    """Print the page image details and each line's bounding box in reading order."""
    out = sys.stdout if stream is None else stream
    print(f"#Name:   {_page_attribute(page, 'imageFilename')}", file=out)
    print(f"#Width:  {_page_attribute(page, 'imageWidth')}", file=out)
    print(f"#Height: {_page_attribute(page, 'imageHeight')}", file=out)
    for i in range(len(page.bounding_rectangles)):
        if i >= len(page.region_order):
            continue
        k = page.region_order[i][1]
        if k >= len(page.bounding_rectangles):
            continue
        region_id = page.region_nodes[k].get("id", "")
        for j in range(len(page.bounding_rectangles[k])):
            h = page.paragraph_order[k][j][1]
            rect = page.bounding_rectangles[k][h]
            line_id = page.line_nodes[k][h].get("id", "")
            print(f"{rect.x} {rect.y} {rect.width} {rect.height} {region_id} {line_id}", file=out)


def print_old_format(page: PageFile, stream: TextIO | None = None) -> None:
    """Print the baselines as the older ``Line n: top bottom KIND`` listing."""
    out = sys.stdout if stream is None else stream
    print(f"# File {_page_attribute(page, 'imageFilename')}", file=out)
    rows, cols = page.image.shape[:2] if page.image is not None else (0, 0)
    print(f"# Resl {rows} {cols}", file=out)
    line_count = 0
    last = 0
    for j, (_, k) in enumerate(page.region_order):
        order = page.baseline_order[k]
        if j == 0:
            line_count += 1
            top = int(order[0][0] - _BASELINE_SUBTRACT)
            print(f"Line {line_count}: {last} {top} BS", file=out)
            last = top
        for first, _ in order:
            line_count += 1
            print(f"Line {line_count}: {last} {int(first - _LINE_SUBTRACT)} IL", file=out)
            line_count += 1
            print(f"Line {line_count}: {last} {int(first + _LINE_ADD)} NL", file=out)
            last = int(first) + _LINE_ADD


def _edges(polygon: Sequence[Point]):
    previous = polygon[-1]
    for vertex in polygon:
        yield previous, vertex
        previous = vertex


def _strictly_inside(polygon: Sequence[Point], rows: int, cols: int) -> np.ndarray:
    """Pixels (as column, row points) lying strictly inside ``polygon``."""
    if not polygon:
        return np.zeros((rows, cols), dtype=bool)
    py, px = np.mgrid[0:rows, 0:cols].astype(np.float64)
    counter = np.zeros((rows, cols), dtype=np.int64)
    on_edge = np.zeros((rows, cols), dtype=bool)
    for (x0, y0), (x1, y1) in _edges(polygon):
        x0, y0, x1, y1 = float(x0), float(y0), float(x1), float(y1)
        skip = ((y0 <= py) & (y1 <= py)) | ((y0 > py) & (y1 > py)) | ((x0 < px) & (x1 < px))
        along = ((x0 <= px) & (px <= x1)) | ((x1 <= px) & (px <= x0))
        on_edge |= skip & (py == y1) & ((px == x1) | ((py == y0) & along))
        active = ~skip
        dist = (py - y0) * (x1 - x0) - (px - x0) * (y1 - y0)
        on_edge |= active & (dist == 0)
        if y1 < y0:
            dist = -dist
        counter += active & (dist > 0)
    return ~on_edge & (counter % 2 == 1)


def calculate_region_format(page: PageFile) -> np.ndarray:
    """Label every pixel with the type code of the first region holding it.

    Pixels outside every region are labelled 255.
    """
    rows, cols = _require_image(page).shape[:2]
    regions = page.all_regions()
    labels = page.all_region_labels()
    label_image = np.full((rows, cols), _NO_REGION_LABEL, dtype=np.uint8)
    assigned = np.zeros((rows, cols), dtype=bool)
    for region, label in zip(regions, labels):
        inside = _strictly_inside(region, rows, cols) & ~assigned
        label_image[inside] = label
        assigned |= inside
    return label_image


def save_to_region_format(page: PageFile, file_name: str | PathLike[str]) -> np.ndarray:
    """Write the region label image to ``file_name`` and return it."""
    label_image = calculate_region_format(page)
    logger.debug("Saving region label image to %s", file_name)
    Image.fromarray(label_image).save(file_name)
    return label_image


def display_contours_and_boxes(
    page: PageFile, output_path: str | PathLike[str] = "global.png"
) -> np.ndarray:
    """Draw line contours, boxes and loaded text beside the page image.

    The picture is half as wide again as the page, white on the right,
    and is written to ``output_path``. Returns the picture.
    """
    rgb = _rgb(_require_image(page))
    rows, cols = rgb.shape[:2]
    drawing = Image.new("RGB", (int(1.5 * cols), rows), (255, 255, 255))
    drawing.paste(Image.fromarray(rgb), (0, 0))
    draw = ImageDraw.Draw(drawing)
    font = ImageFont.load_default()
    rng = random.Random(12345)

    line_count = 0
    for i in range(len(page.line_nodes)):
        color = (rng.randint(0, 254), rng.randint(0, 254), rng.randint(0, 254))
        if i >= len(page.region_order):
            continue
        k = page.region_order[i][1]
        if k >= len(page.bounding_rectangles):
            continue
        for j in range(len(page.line_nodes[k])):
            mean_y, h = page.paragraph_order[k][j]
            contour = [(int(x), int(y)) for x, y in page.contours[k][h]]
            if contour:
                draw.line(contour + [contour[0]], fill=color, width=2)
            rect = page.bounding_rectangles[k][h]
            draw.rectangle(
                [rect.x, rect.y, rect.right - 1, rect.bottom - 1], outline=(0, 0, 0), width=2
            )
            text = page.text[line_count] if line_count < len(page.text) else ""
            if text:
                position = (page.horizontal_max[k][h], int(mean_y))
                draw.text(position, text, fill=(255, 0, 0), font=font)
            line_count += 1

    drawing.save(output_path)
    return np.asarray(drawing)