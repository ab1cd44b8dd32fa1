"""
Watermark parameter strings.

A parameter string is a comma separated list of `key:value` tokens, e.g.

    pos:bl, offset:12.500000 7.000000, scale:2.000000 abs, rot:0, mode:0

Keys may be shortened to any unambiguous prefix. The builders below emit
the exact strings the overlay driver has always used; the parsers turn a
string into a WatermarkConfig.
"""

from pathlib import Path
from typing import Callable, Dict, Tuple, Union

from reportlab.pdfbase import pdfmetrics

from Overlayer.OverlayConfig import OverlayItem
from Overlayer.WatermarkConfig import (
    RGB,
    ParseError,
    RenderMode,
    WatermarkConfig,
    WatermarkPosition,
    WatermarkType,
)

# Text is stamped at a quarter of the rectangle scale. Undocumented ratio,
# kept for compatibility with existing overlay files.
TEXT_SCALE_DIVISOR = 4

MIN_SCALE = 0.01

RECT_PARAMS = "pos:bl, offset:%f %f, scale:%f abs, rot:0, mode:0"
TEXT_PARAMS = "pos:bl, offset:%f %f, rot:0, scale:%f, fillc:#000000, mode:0"

# ==========================================
# Builders
# ==========================================

def rect_params(item: OverlayItem) -> str:
    """Parameters for the white backing rectangle, absolute scale."""
    return RECT_PARAMS % (item.x, item.y, item.scale)


def text_params(item: OverlayItem) -> str:
    """Parameters for the text layer, relative scale."""
    return TEXT_PARAMS % (item.x, item.y, item.scale / TEXT_SCALE_DIVISOR)


# ==========================================
# Value parsers
# ==========================================

def _float(s: str, what: str) -> float:
    try:
        return float(s)
    except ValueError:
        raise ParseError(f"{what} must be a float value: {s!r}") from None


def _parse_position(s: str) -> WatermarkPosition:
    try:
        return WatermarkPosition(s)
    except ValueError:
        choices = ", ".join(p.value for p in WatermarkPosition)
        raise ParseError(f"unknown position anchor: {s!r} (one of {choices})") from None


def _parse_offset(s: str) -> Tuple[float, float]:
    parts = s.split()
    if len(parts) != 2:
        raise ParseError(f"offset needs exactly 2 values 'dx dy', got {s!r}")
    return _float(parts[0], "offset dx"), _float(parts[1], "offset dy")


def _parse_scale(s: str) -> Tuple[float, bool]:
    parts = s.split()
    if not 1 <= len(parts) <= 2:
        raise ParseError(f"scale must be '<factor> [abs|rel]', got {s!r}")

    factor = _float(parts[0], "scale factor")
    is_abs = False
    if len(parts) == 2:
        mode = parts[1]
        if mode not in ("a", "abs", "r", "rel"):
            raise ParseError(f"scale mode must be abs or rel, got {mode!r}")
        is_abs = mode in ("a", "abs")

    if is_abs:
        if not factor >= MIN_SCALE:
            raise ParseError(f"invalid absolute scale factor {factor:.2f}: must be >= {MIN_SCALE}")
    elif not MIN_SCALE <= factor <= 1:
        raise ParseError(f"invalid relative scale factor {factor:.2f}: {MIN_SCALE} <= i <= 1.0")
    return factor, is_abs


def _parse_rotation(s: str) -> float:
    rot = _float(s, "rotation")
    if not -180 <= rot <= 180:
        raise ParseError(f"rotation must be between -180 and 180 degrees, got {rot}")
    return rot


def _parse_color(s: str) -> RGB:
    if s.startswith("#"):
        hex_color = s[1:]
        if len(hex_color) != 6:
            raise ParseError(f"color must be #RRGGBB, got {s!r}")
        try:
            r, g, b = (int(hex_color[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
        except ValueError:
            raise ParseError(f"color must be #RRGGBB, got {s!r}") from None
        return r, g, b

    parts = s.split()
    if len(parts) != 3:
        raise ParseError(f"color must be #RRGGBB or 'r g b', got {s!r}")
    rgb = tuple(_float(p, "color component") for p in parts)
    if not all(0.0 <= c <= 1.0 for c in rgb):
        raise ParseError(f"color components must be between 0.0 and 1.0, got {s!r}")
    return rgb


def _parse_opacity(s: str) -> float:
    op = _float(s, "opacity")
    if not 0.0 <= op <= 1.0:
        raise ParseError(f"opacity must be between 0.0 and 1.0, got {op}")
    return op


def _parse_render_mode(s: str) -> RenderMode:
    try:
        return RenderMode(int(s))
    except ValueError:
        raise ParseError(f"render mode must be 0 (fill), 1 (stroke) or 2 (fill & stroke), got {s!r}") from None


def _parse_font_name(s: str) -> str:
    if s not in pdfmetrics.standardFonts and s not in pdfmetrics.getRegisteredFontNames():
        raise ParseError(f"unsupported font: {s!r}")
    return s


def _parse_points(s: str) -> int:
    try:
        points = int(s)
    except ValueError:
        raise ParseError(f"points must be an integer, got {s!r}") from None
    if points <= 0:
        raise ParseError(f"points must be positive, got {points}")
    return points


# key -> (WatermarkConfig field(s), value parser)
_PARAMS: Dict[str, Tuple[str, Callable]] = {
    "fontname": ("font_name", _parse_font_name),
    "points": ("font_size", _parse_points),
    "position": ("position", _parse_position),
    "offset": ("offset", _parse_offset),
    "scalefactor": ("scale", _parse_scale),
    "rotation": ("rotation", _parse_rotation),
    "fillcolor": ("fill_color", _parse_color),
    "strokecolor": ("stroke_color", _parse_color),
    "opacity": ("opacity", _parse_opacity),
    "rendermode": ("render_mode", _parse_render_mode),
}

_ALIASES = {"mode": "rendermode"}


def _resolve_key(key: str) -> str:
    names = list(_PARAMS) + list(_ALIASES)
    if key in names:
        return _ALIASES.get(key, key)

    matches = {_ALIASES.get(n, n) for n in names if key and n.startswith(key)}
    if not matches:
        raise ParseError(f"unknown parameter: {key!r}")
    if len(matches) > 1:
        raise ParseError(f"ambiguous parameter: {key!r} ({', '.join(sorted(matches))})")
    return matches.pop()


def parse_params(params: str) -> dict:
    """Parses a parameter string into WatermarkConfig keyword arguments."""
    kwargs = {}
    for token in params.split(","):
        token = token.strip()
        if not token:
            continue
        key, sep, value = token.partition(":")
        if not sep:
            raise ParseError(f"invalid parameter token {token!r}, expected key:value")

        field_name, parse = _PARAMS[_resolve_key(key.strip().lower())]
        parsed = parse(value.strip())
        if field_name == "scale":
            kwargs["scale"], kwargs["scale_abs"] = parsed
        else:
            kwargs[field_name] = parsed
    return kwargs


# ==========================================
# Watermark parsers
# ==========================================

def parse_text_watermark(text: str, params: str, on_top: bool = True) -> WatermarkConfig:
    """Builds a text WatermarkConfig from a parameter string."""
    return WatermarkConfig(
        watermark_type=WatermarkType.TEXT,
        text=text,
        on_top=on_top,
        **parse_params(params),
    )


def parse_image_watermark(image_path: Union[str, Path], params: str, on_top: bool = True) -> WatermarkConfig:
    """Builds an image WatermarkConfig from a parameter string."""
    return WatermarkConfig(
        watermark_type=WatermarkType.IMAGE,
        image_path=image_path,
        on_top=on_top,
        **parse_params(params),
    )
