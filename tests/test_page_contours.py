import numpy as np
import pytest

from pagelines.geometry import Rect, parse_points, point_polygon_test
from pagelines.page_contours import (
    add_loaded_baselines,
    add_loaded_baselines_to_region,
    clip_baselines,
    generate_contour_from_baseline,
    generate_fixed_contour_from_baseline,
    generate_line_contour_from_baseline,
    load_line_limits,
    load_line_limits_file,
)
from pagelines.page_file import PageFile, PageFormatError

NS = "urn:example:page"
REGION = [(10, 10), (200, 10), (200, 100), (10, 100)]

BASELINE_PAGE = f"""<?xml version="1.0" encoding="UTF-8"?>
<PcGts xmlns="{NS}">
  <Page imageFilename="page.png" imageWidth="300" imageHeight="120">
    <TextRegion id="r1" type="paragraph">
      <Coords points="10,10 200,10 200,100 10,100"/>
      <TextLine id="l1">
        <Coords points="1,1 2,2"/>
        <Baseline points="0,40 300,40"/>
        <TextEquiv><Unicode>first</Unicode></TextEquiv>
      </TextLine>
      <TextLine id="l2">
        <Coords points="3,3 4,4"/>
        <Baseline points="20,80 180,80"/>
        <TextEquiv><Unicode>second</Unicode></TextEquiv>
      </TextLine>
    </TextRegion>
  </Page>
</PcGts>
"""

SINGLE_POINT_PAGE = f"""<?xml version="1.0" encoding="UTF-8"?>
<PcGts xmlns="{NS}">
  <Page imageFilename="page.png" imageWidth="300" imageHeight="120">
    <TextRegion id="r1" type="paragraph">
      <Coords points="10,10 200,10 200,100 10,100"/>
      <TextLine id="l1">
        <Coords points="1,1 2,2"/>
        <Baseline points="50,50"/>
      </TextLine>
    </TextRegion>
  </Page>
</PcGts>
"""

CONTOUR_PAGE = f"""<?xml version="1.0" encoding="UTF-8"?>
<PcGts xmlns="{NS}">
  <Page imageFilename="page.png" imageWidth="300" imageHeight="120">
    <TextRegion id="r1" type="paragraph">
      <Coords points="5,5 150,5 150,50 5,50"/>
      <TextLine id="a1">
        <Coords points="10,10 100,10 100,30 10,30"/>
      </TextLine>
    </TextRegion>
    <TextRegion id="r2" type="paragraph">
      <Coords points="5,55 150,55 150,110 5,110"/>
      <TextLine id="b1">
        <Coords points="10,60 100,60 100,90 10,90"/>
      </TextLine>
    </TextRegion>
  </Page>
</PcGts>
"""


def _write(tmp_path, text, name="page.xml"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def _line(page, line_id):
    for line in page.doc.getroot().iter(f"{{{NS}}}TextLine"):
        if line.get("id") == line_id:
            return line
    raise KeyError(line_id)


def _points(page, line_id, child):
    return _line(page, line_id).find(f"{{{NS}}}{child}").get("points")


def _region_lines(page, region_id):
    for region in page.doc.getroot().iter(f"{{{NS}}}TextRegion"):
        if region.get("id") == region_id:
            return region.findall(f"{{{NS}}}TextLine")
    raise KeyError(region_id)


@pytest.fixture
def baseline_page(tmp_path):
    return PageFile(_write(tmp_path, BASELINE_PAGE))


@pytest.fixture
def contour_page(tmp_path):
    page = PageFile(_write(tmp_path, CONTOUR_PAGE), "contours")
    page.load_image(np.zeros((120, 300), dtype=np.uint8))
    return page


def test_clip_baselines_keeps_points_inside_region(baseline_page):
    clip_baselines(baseline_page)
    rect = Rect(10, 10, 191, 91)
    clipped = parse_points(_points(baseline_page, "l1", "Baseline"))
    assert all(rect.contains(point) for point in clipped)
    assert [y for _, y in clipped] == [40, 40]
    assert parse_points(_points(baseline_page, "l2", "Baseline")) == [(20, 80), (180, 80)]


def test_clip_baselines_leaves_loaded_baselines_untouched(baseline_page):
    clip_baselines(baseline_page)
    assert baseline_page.baselines[0][0] == [(0, 40), (300, 40)]


def test_clip_baselines_rejects_single_point(tmp_path):
    page = PageFile(_write(tmp_path, SINGLE_POINT_PAGE))
    with pytest.raises(PageFormatError):
        clip_baselines(page)


def test_fixed_contour_surrounds_baseline(baseline_page):
    generate_fixed_contour_from_baseline(baseline_page, 5, -10)
    baseline = parse_points(_points(baseline_page, "l2", "Baseline"))
    contour = parse_points(_points(baseline_page, "l2", "Coords"))
    assert len(contour) == 2 * len(baseline)
    top, bottom = contour[: len(baseline)], contour[len(baseline):]
    assert top == [(x, y - 10) for x, y in reversed(baseline)]
    assert bottom == [(x, y + 5) for x, y in baseline]


def test_fixed_contour_is_pulled_back_inside_region(baseline_page):
    generate_fixed_contour_from_baseline(baseline_page, 100, 0)
    for line_id in ("l1", "l2"):
        contour = parse_points(_points(baseline_page, line_id, "Coords"))
        assert all(point_polygon_test(REGION, point, False) >= 0 for point in contour)
        assert [y for _, y in contour[2:]] == [100, 100]


def test_fixed_contour_rewrites_single_transcription(baseline_page):
    generate_fixed_contour_from_baseline(baseline_page, 5, -10)
    equiv = _line(baseline_page, "l1").find(f"{{{NS}}}TextEquiv")
    unicodes = equiv.findall(f"{{{NS}}}Unicode")
    assert [element.text for element in unicodes] == ["first"]


def test_contour_from_baseline_with_zero_offsets_follows_baseline(baseline_page):
    generate_contour_from_baseline(baseline_page, 0, 0)
    baseline = parse_points(_points(baseline_page, "l2", "Baseline"))
    contour = parse_points(_points(baseline_page, "l2", "Coords"))
    assert contour == list(reversed(baseline)) + baseline


def test_contour_from_baseline_percentages_stay_in_region(baseline_page):
    generate_contour_from_baseline(baseline_page, 50, -50)
    for line_id in ("l1", "l2"):
        baseline = parse_points(_points(baseline_page, line_id, "Baseline"))
        contour = parse_points(_points(baseline_page, line_id, "Coords"))
        base_y = baseline[0][1]
        top, bottom = contour[: len(baseline)], contour[len(baseline):]
        assert all(y < base_y for _, y in top)
        assert all(y > base_y for _, y in bottom)
        assert all(point_polygon_test(REGION, point, False) >= 0 for point in contour)


def test_line_contour_only_changes_named_line(baseline_page):
    generate_line_contour_from_baseline(baseline_page, "l2", 0, 0)
    assert _points(baseline_page, "l1", "Coords") == "1,1 2,2"
    baseline = [(20, 80), (180, 80)]
    assert parse_points(_points(baseline_page, "l2", "Coords")) == list(reversed(baseline)) + baseline
    clipped = parse_points(_points(baseline_page, "l1", "Baseline"))
    assert all(Rect(10, 10, 191, 91).contains(point) for point in clipped)


def test_line_contour_rejects_single_point(tmp_path):
    page = PageFile(_write(tmp_path, SINGLE_POINT_PAGE))
    with pytest.raises(PageFormatError):
        generate_line_contour_from_baseline(page, "l1", 0, 0)


def test_load_line_limits_adds_full_width_baselines(contour_page):
    width = contour_page.image.shape[1]
    load_line_limits(contour_page, 0, [(10, 40), (50, 80)])
    assert contour_page.baselines[0] == [[(0, 40), (width - 1, 40)], [(0, 80), (width - 1, 80)]]
    assert len(contour_page.baselines) == len(contour_page.paragraph_order)
    assert contour_page.baselines[1] == []


def test_load_line_limits_needs_image(tmp_path):
    page = PageFile(_write(tmp_path, CONTOUR_PAGE), "contours")
    with pytest.raises(ValueError):
        load_line_limits(page, 0, [(10, 40)])


def test_load_line_limits_rejects_unknown_region(contour_page):
    with pytest.raises(IndexError):
        load_line_limits(contour_page, 5, [(10, 40)])


def test_load_line_limits_file_goes_to_first_region(tmp_path, contour_page):
    limits = _write(tmp_path, "10 40\n50 80\n", "limits.txt")
    width = contour_page.image.shape[1]
    load_line_limits_file(contour_page, 1, limits)
    assert contour_page.baselines[0] == [[(0, 40), (width - 1, 40)], [(0, 80), (width - 1, 80)]]
    assert contour_page.baselines[1] == []


def test_add_loaded_baselines_appends_lines(contour_page):
    width = contour_page.image.shape[1]
    load_line_limits(contour_page, 0, [(10, 40), (50, 80)])
    add_loaded_baselines(contour_page, 3)
    lines = _region_lines(contour_page, "r1")
    assert [line.get("id") for line in lines] == ["a1", "l0", "l1"]
    new = lines[1]
    assert parse_points(new.find(f"{{{NS}}}Baseline").get("points")) == [(0, 43), (width - 1, 43)]
    assert new.find(f"{{{NS}}}Coords").get("points") == ""
    assert len(_region_lines(contour_page, "r2")) == 1


def test_add_loaded_baselines_without_baselines_adds_nothing(contour_page):
    add_loaded_baselines(contour_page, 3)
    assert [line.get("id") for line in _region_lines(contour_page, "r1")] == ["a1"]
    assert [line.get("id") for line in _region_lines(contour_page, "r2")] == ["b1"]


def test_add_loaded_baselines_to_region_targets_named_region(contour_page):
    load_line_limits(contour_page, 0, [(10, 40)])
    add_loaded_baselines_to_region(contour_page, "r2", 0)
    assert [line.get("id") for line in _region_lines(contour_page, "r1")] == ["a1"]
    lines = _region_lines(contour_page, "r2")
    assert [line.get("id") for line in lines] == ["b1", "l0"]
    assert parse_points(lines[1].find(f"{{{NS}}}Baseline").get("points")) == contour_page.baselines[0][0]