import pytest

from Overlayer.OverlayConfig import OverlayItem, load_overlays, parse_overlays
from Overlayer.WatermarkConfig import ParseError, ReadError


def test_load_overlays_reads_all_fields(write_json):
    path = write_json([
        {"text": "Paid", "x": 12.5, "y": 7, "width": 40, "height": 20, "scale": 2},
        {"text": "Second", "x": 1, "y": 2},
    ])

    overlays = load_overlays(path)

    assert overlays == [
        OverlayItem(text="Paid", x=12.5, y=7.0, width=40.0, height=20.0, scale=2.0),
        OverlayItem(text="Second", x=1.0, y=2.0),
    ]


def test_missing_fields_default_to_zero_and_empty_text():
    (item,) = parse_overlays('[{"comment": "ignored"}]')

    assert item == OverlayItem()
    assert item.text == ""
    assert not item.has_rect


def test_null_fields_are_treated_as_missing():
    (item,) = parse_overlays('[{"text": null, "x": null, "scale": 1}]')
    assert item.text == ""
    assert item.x == 0.0
    assert item.scale == 1.0


def test_negative_values_pass_through():
    (item,) = parse_overlays('[{"text": "t", "width": -5, "height": 10}]')
    assert item.width == -5.0
    assert not item.has_rect


def test_null_document_is_empty_list():
    assert parse_overlays("null") == []


@pytest.mark.parametrize("data", [
    "not json",
    '{"text": "an object, not an array"}',
    '["a string"]',
    '[{"text": 5}]',
    '[{"x": "12"}]',
    '[{"width": true}]',
    '[{"x": NaN}]',
    '[{"text": "t", "x": 1' + "0" * 400 + ', "scale": 1}]',
    '[{"text": "t", "y": 1e400, "scale": 1}]',
])
def test_malformed_input_raises_parse_error(data):
    with pytest.raises(ParseError):
        parse_overlays(data)


def test_parse_error_names_the_overlay_index():
    with pytest.raises(ParseError, match="overlay 1"):
        parse_overlays('[{"text": "ok"}, {"y": [1]}]')


def test_missing_file_raises_read_error(tmp_path):
    with pytest.raises(ReadError):
        load_overlays(tmp_path / "nope.json")


def test_has_rect_requires_both_dimensions():
    assert OverlayItem(width=40, height=20).has_rect
    assert not OverlayItem(width=40, height=0).has_rect
    assert not OverlayItem(width=0, height=20).has_rect


def test_describe_echoes_fields():
    item = OverlayItem(text="Paid", x=12.5, y=7, width=40, height=20, scale=2)
    assert item.describe() == "text='Paid' at (12.50, 7.00), rect=40.00x20.00, scale=2.00"


def test_out_of_range_number_names_overlay_and_field():
    with pytest.raises(ParseError, match="overlay 1: field 'width'"):
        parse_overlays('[{"text": "ok"}, {"width": 1e400}]')
