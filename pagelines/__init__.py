"""Text line tools for PAGE-format document pages."""

__version__ = "0.1.0"

__all__ = [
    "geometry",
    "line_region_list",
    "page_contours",
    "page_file",
    "page_output",
    "points_file",
]