#!/usr/bin/env python3
"""
PDF Overlay Stamper - Part 1: Configuration & Infrastructure

This module holds the shared building blocks used by every stage of the
overlay pipeline.

Architecture:
1. Configuration: Data classes and Enums describing a single watermark pass.
2. Parameters: Parsing of the `key:value` watermark parameter strings.
3. Rendering: ReportLab generation of watermark stamps (in-memory).
4. Processing: pypdf integration to merge stamps into the PDF buffer.
5. CLI: Command-line interface for standalone usage.

Dependencies:
- reportlab
- pypdf
- Pillow
- tqdm
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

# ==========================================
# Custom Exceptions
# ==========================================

class OverlayError(Exception):
    """Base exception for all overlay operations."""
    pass

class UsageError(OverlayError):
    """Raised when required command-line flags are missing."""
    pass

class ReadError(OverlayError):
    """Raised when an input file cannot be opened or read."""
    pass

class ParseError(OverlayError):
    """Raised for malformed overlay JSON, parameter strings or page selections."""
    pass

class EncodeError(OverlayError):
    """Raised when the raster stamp cannot be encoded."""
    pass

class ApplyError(OverlayError):
    """Raised when applying a watermark to the PDF buffer fails."""
    pass

class WriteError(OverlayError):
    """Raised when the output PDF cannot be written."""
    pass

# ==========================================
# Enumerations & Constants
# ==========================================

class WatermarkType(Enum):
    """Defines the mode of watermarking."""
    TEXT = "text"
    IMAGE = "image"

class WatermarkPosition(Enum):
    """
    Defines anchor points for watermark placement.

    Values are the short anchor names used in parameter strings.
    """
    TOP_LEFT = "tl"
    TOP_CENTER = "tc"
    TOP_RIGHT = "tr"
    LEFT = "l"
    CENTER = "c"
    RIGHT = "r"
    BOTTOM_LEFT = "bl"
    BOTTOM_CENTER = "bc"
    BOTTOM_RIGHT = "br"

class RenderMode(Enum):
    """PDF text rendering modes supported for text watermarks."""
    FILL = 0
    STROKE = 1
    FILL_STROKE = 2

RGB = Tuple[float, float, float]

DEFAULT_COLOR: RGB = (0.5, 0.5, 0.5)

# ==========================================
# Configuration Data Class
# ==========================================

@dataclass
class WatermarkConfig:
    """
    Parsed form of one watermark parameter string.

    Scale semantics:
    - scale_abs=True: image pixels (or font points) are multiplied by `scale`.
    - scale_abs=False: the watermark is sized to `scale` of the page width.

    This class handles validation of inputs immediately upon instantiation.
    """

    # --- Core Settings ---
    watermark_type: WatermarkType

    # --- Geometry & Appearance ---
    position: WatermarkPosition = WatermarkPosition.CENTER
    offset: Tuple[float, float] = (0.0, 0.0)   # Points, +x right, +y up
    scale: float = 0.5
    scale_abs: bool = False
    rotation: float = 0.0          # Degrees (counter-clockwise)
    opacity: float = 1.0           # 0.0 (transparent) to 1.0 (solid)
    on_top: bool = True            # Stamp over page content, else underneath

    # --- Text Specific Settings ---
    text: Optional[str] = None
    font_name: str = "Helvetica"
    font_size: int = 24
    fill_color: RGB = DEFAULT_COLOR
    stroke_color: RGB = DEFAULT_COLOR
    render_mode: RenderMode = RenderMode.FILL

    # --- Image Specific Settings ---
    image_path: Optional[Union[str, Path]] = None

    def __post_init__(self):
        """Validates configuration after initialization."""
        self._validate_opacity()
        self._validate_content()
        self._validate_paths()

    def _validate_opacity(self):
        """Ensures opacity is within 0.0 to 1.0 range."""
        if not (0.0 <= self.opacity <= 1.0):
            raise ParseError(f"Opacity must be between 0.0 and 1.0, got {self.opacity}")

    def _validate_content(self):
        """Ensures the correct content is provided for the selected type."""
        if self.watermark_type == WatermarkType.TEXT:
            if not self.text:
                raise ParseError("Watermark type is TEXT, but 'text' content is missing.")

        elif self.watermark_type == WatermarkType.IMAGE:
            if not self.image_path:
                raise ParseError("Watermark type is IMAGE, but 'image_path' is missing.")

    def _validate_paths(self):
        """Checks if referenced files exist."""
        if self.watermark_type == WatermarkType.IMAGE:
            path_obj = Path(self.image_path)
            if not path_obj.exists() or not path_obj.is_file():
                raise ParseError(f"Image file not found at: {self.image_path}")
            self.image_path = path_obj  # Standardize to Path object
