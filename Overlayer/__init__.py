"""Stamp text and white rectangles onto existing PDFs from a JSON overlay list."""

__version__ = "1.0.0"

from Overlayer.OverlayConfig import OverlayItem, RunConfig, load_overlays, parse_overlays
from Overlayer.PDFProcessor import add_watermarks, apply_overlay, apply_overlays
from Overlayer.WatermarkConfig import (
    ApplyError,
    EncodeError,
    OverlayError,
    ParseError,
    ReadError,
    UsageError,
    WriteError,
)
