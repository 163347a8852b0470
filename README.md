# pagelines

Tools for the text lines of scanned document pages described in PAGE XML.

## Modules

- `pagelines.page_file`
  - `PageFile(file_name, mode="baselines")` loads a PAGE document. With
    `mode="baselines"` it reads the baselines and transcriptions of every
    region that is not `floating`. With any other mode it reads the line
    contours of every region.
  - Lines and regions are sorted into reading order. `sorted_baselines()`,
    `sorted_contours()` and `sorted_regions()` return them in that order.
  - `text_regions()`, `all_regions()`, `all_region_labels()` and
    `all_line_contours()` give the raw geometry. `region_label_code()` maps a
    region type such as `paragraph` or `marginalia` to its numeric code.
  - `mode_interline_space()` gives the median distance between consecutive
    baselines.
  - `page_image_dimensions()` returns `(height, width)`.
  - `load_image()`, `load_transcription_file()`, `add_text()`,
    `add_loaded_transcription_text()` and `load_external_contours()` edit
    the document.
  - `save_xml()` writes the document to a file, or to standard output when
    no name is given.
  - Unusable documents raise `PageFormatError`.
- `pagelines.page_contours` edits a loaded `PageFile` in place:
  - `clip_baselines` clips baselines to their region's bounding box.
  - `generate_fixed_contour_from_baseline` builds line contours at fixed
    pixel offsets around each baseline.
  - `generate_contour_from_baseline` builds them at percentages of the
    interline spaces.
  - `generate_line_contour_from_baseline` builds the contour of a single
    line.
  - `load_line_limits` and `load_line_limits_file` turn line limits into
    page-wide baselines.
  - `add_loaded_baselines` and `add_loaded_baselines_to_region` append those
    baselines to the document as new text lines.
- `pagelines.page_output` writes what a loaded page describes:
  - `line_images_with_alpha` and `extract_line_images` produce RGBA line
    cut-outs. `extract_line_images` writes them as PNG files, each with a
    `.txt` transcription beside it.
  - `print_file_info` and `print_old_format` print listings.
  - `calculate_region_format` and `save_to_region_format` build a per-pixel
    region type map. Pixels outside every region are labelled 255.
  - `display_contours_and_boxes` draws an annotated overview picture.
- `pagelines.line_region_list`
  - `LineRegionList` reads a file of `start end` line limits and computes
    the search zones around each line.
  - `read_line_limits` and `compute_search_zones` do the same work on data
    already in memory.
- `pagelines.points_file`
  - `PointsFile` and `parse_points_file` read figures of points.
  - `PointsFile.as_polygons` regroups all the points into polygons of equal
    size.
- `pagelines.geometry` provides the shared geometry:
  - `Rect`, `parse_points`, `format_points`, `format_points_swapped` and
    `bounding_rect`.
  - `clip_line` for clipping segments.
  - `point_polygon_test` for point-in-polygon tests.
  - `line_points` for 8-connected line rasterisation.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from pagelines.page_file import PageFile
from pagelines.page_contours import generate_contour_from_baseline

page = PageFile("page.xml", "baselines")
generate_contour_from_baseline(page, 20, 80)
page.save_xml("page_with_contours.xml")
```

```python
import numpy as np
from pagelines.page_file import PageFile
from pagelines.page_output import save_to_region_format

page = PageFile("page.xml", "contours")
page.load_image(np.full((1200, 900), 255, dtype=np.uint8))
save_to_region_format(page, "regions.png")
```

## What it does not do

- There is no command-line program; everything is used from Python.
- The package does not find text lines in an image by itself. It does no
  projection histograms or binarisation. It works from the lines, baselines
  and contours already present in a PAGE document, or from a line-limits
  file you supply.