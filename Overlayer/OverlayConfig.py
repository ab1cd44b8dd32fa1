import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from Overlayer.WatermarkConfig import ParseError, ReadError

# ==========================================
# Overlay Descriptors
# ==========================================

NUMERIC_FIELDS = ("x", "y", "width", "height", "scale")


@dataclass(frozen=True)
class OverlayItem:
    """
    One "stamp here" instruction.

    x, y are offsets in points from the bottom-left page origin.
    width, height size the opaque backing rectangle in raster pixels
    (one pixel is one point at scale 1). Zero means no rectangle.
    """
    text: str = ""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    scale: float = 0.0

    @property
    def has_rect(self) -> bool:
        return self.width > 0 and self.height > 0

    def describe(self) -> str:
        return (f"text={self.text!r} at ({self.x:.2f}, {self.y:.2f}), "
                f"rect={self.width:.2f}x{self.height:.2f}, scale={self.scale:.2f}")


@dataclass
class RunConfig:
    """Settings for one run, built once by the CLI and handed to the pipeline."""
    json_path: Union[str, Path]
    pdf_path: Union[str, Path]
    out_path: Union[str, Path] = "out.pdf"
    pages: Optional[str] = None        # None -> all pages
    password: Optional[str] = None
    show_progress: bool = True


# ==========================================
# Loader
# ==========================================

def _number(value, index: int, name: str) -> float:
    if value is None:
        return 0.0
    # bool is an int subclass but not a JSON number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"overlay {index}: field '{name}' must be a number, got {value!r}")
    try:
        number = float(value)
    except OverflowError:
        raise ParseError(f"overlay {index}: field '{name}' is out of range") from None
    if not math.isfinite(number):
        raise ParseError(f"overlay {index}: field '{name}' is out of range, got {number}")
    return number


def _overlay_from_dict(obj, index: int) -> OverlayItem:
    if not isinstance(obj, dict):
        raise ParseError(f"overlay {index}: expected an object, got {type(obj).__name__}")

    text = obj.get("text")
    if text is None:
        text = ""
    elif not isinstance(text, str):
        raise ParseError(f"overlay {index}: field 'text' must be a string, got {text!r}")

    values = {name: _number(obj.get(name), index, name) for name in NUMERIC_FIELDS}
    return OverlayItem(text=text, **values)


def parse_overlays(data: Union[str, bytes]) -> List[OverlayItem]:
    """
    Decodes a JSON array of overlay objects.

    Extra fields are ignored, missing numbers default to 0 and a missing
    text defaults to "". Values are otherwise passed through unchecked.
    """
    try:
        raw = json.loads(data, parse_constant=_reject_constant)
    except (ValueError, TypeError) as e:
        raise ParseError(f"JSON parse error: {e}") from e

    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ParseError(f"JSON parse error: expected an array of overlays, got {type(raw).__name__}")

    return [_overlay_from_dict(obj, i) for i, obj in enumerate(raw)]


def _reject_constant(name: str):
    # NaN / Infinity are not JSON
    raise ValueError(f"invalid JSON constant {name}")


def load_overlays(path: Union[str, Path]) -> List[OverlayItem]:
    """Reads and decodes the overlay descriptor file."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ReadError(f"Could not read JSON file: {e}") from e
    return parse_overlays(data)

