import io
from typing import List, Optional, Sequence, Set, Union

# Check for required libraries at import time
try:
    from pypdf import PdfReader, PdfWriter, PageObject, PasswordType
    from tqdm import tqdm
except ImportError as e:
    raise ImportError(f"Missing required dependency: {e}. Please install 'pypdf' and 'tqdm'.")

from Overlayer.OverlayConfig import OverlayItem
from Overlayer.RasterStamp import create_white_png, temporary_png
from Overlayer.WatermarkConfig import (
    ApplyError,
    EncodeError,
    OverlayError,
    ParseError,
    WatermarkConfig,
)
from Overlayer.WatermarkParams import (
    parse_image_watermark,
    parse_text_watermark,
    rect_params,
    text_params,
)
from Overlayer.WatermarkRenderer import WatermarkRenderer

PageSelection = Union[str, List[int], None]

# ==========================================
# Watermark Application
# ==========================================

def add_watermarks(pdf_bytes: bytes, config: WatermarkConfig, pages: PageSelection = None,
                   password: Optional[str] = None) -> bytes:
    """
    Applies one watermark to every selected page and returns the new PDF.

    The input buffer is never modified.
    """
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        _decrypt(reader, password)

        total_pages = len(reader.pages)
        target_indices = parse_page_selection(pages, total_pages)

        renderer = WatermarkRenderer(config)
        writer = PdfWriter()
        for i, page in enumerate(reader.pages):
            if i in target_indices:
                _apply_watermark_to_page(page, renderer, config.on_top)
            writer.add_page(page)

        if reader.metadata:
            writer.add_metadata(reader.metadata)

        out = io.BytesIO()
        writer.write(out)
        return out.getvalue()

    except Exception as e:
        if isinstance(e, OverlayError):
            raise e
        raise ApplyError(f"Failed to apply watermark: {e}") from e


def _decrypt(reader: PdfReader, password: Optional[str]):
    """Unlocks encrypted input, trying the empty password when none is given."""
    if not reader.is_encrypted:
        return
    if reader.decrypt(password or "") == PasswordType.NOT_DECRYPTED:
        raise ApplyError("PDF is encrypted. Please provide a valid password.")


def _apply_watermark_to_page(page: PageObject, renderer: WatermarkRenderer, on_top: bool):
    """Merges the generated watermark onto a single PDF page."""
    box = page.mediabox
    watermark_page = renderer.get_watermark(
        float(box.left), float(box.bottom), float(box.width), float(box.height)
    )
    page.merge_page(watermark_page, over=on_top)


def parse_page_selection(selection: PageSelection, total_pages: int) -> Set[int]:
    """
    Parses user input into a set of unique 0-based page indices.

    Supports:
    - None -> All pages
    - [0, 2] -> Pages 0 and 2 (0-based)
    - "1, 3-5" -> Pages 1, 3, 4, 5 as printed (1-based)

    Pages past the end of the document are dropped.
    """
    if selection is None:
        return set(range(total_pages))

    indices = set()

    if isinstance(selection, list):
        for idx in selection:
            if 0 <= idx < total_pages:
                indices.add(idx)
        return indices

    for part in selection.split(','):
        part = part.strip()
        if not part:
            continue
        try:
            if '-' in part:
                start, end = (int(p) for p in part.split('-', 1))
            else:
                start = end = int(part)
        except ValueError:
            raise ParseError(f"invalid page selection: {part!r}") from None
        if start < 1 or end < start:
            raise ParseError(f"invalid page range: {part!r}")
        indices.update(i - 1 for i in range(start, min(end, total_pages) + 1))

    return indices


# ==========================================
# Overlay Driver
# ==========================================

def _pixel_size(item: OverlayItem, index: int):
    try:
        return int(item.width), int(item.height)
    except (ValueError, OverflowError) as e:
        raise EncodeError(f"Failed to create white PNG for overlay {index}: {e}") from e


def _apply(pdf_bytes: bytes, config: WatermarkConfig, index: int, what: str,
           pages: PageSelection, password: Optional[str]) -> bytes:
    try:
        return add_watermarks(pdf_bytes, config, pages=pages, password=password)
    except ApplyError as e:
        raise ApplyError(f"Failed adding {what} for overlay {index}: {e}") from e


def apply_overlay(pdf_bytes: bytes, item: OverlayItem, index: int, pages: PageSelection = None,
                  password: Optional[str] = None) -> bytes:
    """
    Stamps one overlay: the white backing rectangle (when sized), then the text.

    Returns the new PDF buffer.
    """
    current = pdf_bytes

    # Pass 1: white rectangle
    if item.has_rect:
        w, h = _pixel_size(item, index)
        try:
            png = create_white_png(w, h)
        except EncodeError as e:
            raise EncodeError(f"Failed to create white PNG for overlay {index}: {e}") from e

        try:
            with temporary_png(png) as png_path:
                try:
                    wm_rect = parse_image_watermark(png_path, rect_params(item))
                except ParseError as e:
                    raise ParseError(f"Failed to parse image watermark details for overlay {index}: {e}") from e
                current = _apply(current, wm_rect, index, "white rectangle", pages, password)
        except EncodeError as e:
            raise EncodeError(f"Failed to save white PNG for overlay {index}: {e}") from e

    # Pass 2: text
    try:
        wm_text = parse_text_watermark(item.text, text_params(item))
    except ParseError as e:
        raise ParseError(f"Error creating text watermark for overlay {index}: {e}") from e
    return _apply(current, wm_text, index, "text", pages, password)


def apply_overlays(pdf_bytes: bytes, items: Sequence[OverlayItem], pages: PageSelection = None,
                   password: Optional[str] = None, show_progress: bool = True) -> bytes:
    """
    Folds every overlay into the PDF buffer in order.

    Later overlays stack on top of earlier ones. An empty list returns
    the input unchanged.
    """
    current = pdf_bytes
    for i, item in enumerate(tqdm(items, desc="Overlays", unit="overlay", disable=not show_progress)):
        tqdm.write(f"Processing overlay {i}: {item.describe()}")
        current = apply_overlay(current, item, i, pages=pages, password=password)
    return current
