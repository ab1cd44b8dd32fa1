import pytest
from reportlab.pdfbase import pdfmetrics

from Overlayer.RasterStamp import create_white_png
from Overlayer.WatermarkConfig import WatermarkPosition
from Overlayer.WatermarkParams import parse_image_watermark, parse_text_watermark
from Overlayer.WatermarkRenderer import WatermarkRenderer


def renderer_for(params, text="Paid"):
    return WatermarkRenderer(parse_text_watermark(text, params))


def test_bottom_left_anchor_applies_offset():
    r = renderer_for("pos:bl, offset:12.5 7")
    assert r._calculate_position(100, 20, 0, 0, 612, 792) == (12.5, 7.0)


def test_page_origin_is_added():
    r = renderer_for("pos:bl, offset:10 10")
    assert r._calculate_position(100, 20, 5, 50, 612, 792) == (15.0, 60.0)


@pytest.mark.parametrize("pos, expected", [
    ("tl", (0.0, 772.0)),
    ("tc", (256.0, 772.0)),
    ("tr", (512.0, 772.0)),
    ("l", (0.0, 386.0)),
    ("c", (256.0, 386.0)),
    ("r", (512.0, 386.0)),
    ("bc", (256.0, 0.0)),
    ("br", (512.0, 0.0)),
])
def test_anchors(pos, expected):
    r = renderer_for(f"pos:{pos}")
    assert r.config.position == WatermarkPosition(pos)
    assert r._calculate_position(100, 20, 0, 0, 612, 792) == expected


def test_relative_text_spans_scale_of_page_width():
    r = renderer_for("scale:0.5", text="Hello")
    size = r._font_size(["Hello"], 600)
    assert pdfmetrics.stringWidth("Hello", "Helvetica", size) == pytest.approx(300)


def test_absolute_text_scales_points():
    r = renderer_for("points:20, scale:1.5 abs")
    assert r._font_size(["Hello"], 600) == pytest.approx(30)


def test_watermark_pages_are_cached_per_page_box():
    r = renderer_for("pos:bl")
    first = r.get_watermark(0, 0, 612, 792)
    assert r.get_watermark(0, 0, 612.001, 792) is first
    assert r.get_watermark(0, 0, 595, 842) is not first


def test_text_watermark_page_contains_text():
    page = renderer_for("pos:bl, offset:10 10, scale:0.5", text="STAMPED").get_watermark(0, 0, 612, 792)
    assert b"STAMPED" in page.get_contents().get_data()


def test_image_watermark_page_draws_image(tmp_path):
    png = tmp_path / "white.png"
    png.write_bytes(create_white_png(40, 20))
    wm = parse_image_watermark(png, "pos:bl, offset:1 2, scale:1 abs, rot:0, mode:0")

    page = WatermarkRenderer(wm).get_watermark(0, 0, 612, 792)

    xobjects = page["/Resources"]["/XObject"]
    assert len(xobjects) == 1
    assert b" Do" in page.get_contents().get_data()


def _multiply(m1, m2):
    a1, b1, c1, d1, e1, f1 = m1
    a2, b2, c2, d2, e2, f2 = m2
    return (
        a1 * a2 + b1 * c2,
        a1 * b2 + b1 * d2,
        c1 * a2 + d1 * c2,
        c1 * b2 + d1 * d2,
        e1 * a2 + f1 * c2 + e2,
        e1 * b2 + f1 * d2 + f2,
    )


def image_placements(page):
    """Returns the current transformation matrix at every `Do` in the page."""
    ctm = (1, 0, 0, 1, 0, 0)
    stack, placed = [], []
    for operands, operator in page.get_contents().operations:
        if operator == b"q":
            stack.append(ctm)
        elif operator == b"Q":
            ctm = stack.pop()
        elif operator == b"cm":
            ctm = _multiply([float(v) for v in operands], ctm)
        elif operator == b"Do":
            placed.append(ctm)
    return placed


@pytest.fixture
def white_png(tmp_path):
    png = tmp_path / "white.png"
    png.write_bytes(create_white_png(40, 20))
    return png


def test_absolute_image_is_scaled_pixels_at_offset(white_png):
    wm = parse_image_watermark(white_png, "pos:bl, offset:12.500000 7.000000, scale:2.000000 abs, rot:0, mode:0")

    (ctm,) = image_placements(WatermarkRenderer(wm).get_watermark(0, 0, 612, 792))

    a, b, c, d, e, f = ctm
    assert (a, d) == pytest.approx((80, 40))
    assert (b, c) == pytest.approx((0, 0))
    assert (e, f) == pytest.approx((12.5, 7))


def test_relative_image_spans_page_width_keeping_aspect(white_png):
    wm = parse_image_watermark(white_png, "pos:bl, scale:0.5 rel")

    (ctm,) = image_placements(WatermarkRenderer(wm).get_watermark(0, 0, 600, 800))

    a, b, c, d, e, f = ctm
    assert (a, d) == pytest.approx((300, 150))
    assert (e, f) == pytest.approx((0, 0))
