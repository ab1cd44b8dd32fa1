import io
from typing import Dict, Tuple

# Check for required libraries at import time
try:
    from reportlab.lib.utils import ImageReader
    from reportlab.pdfbase import pdfmetrics
    from reportlab.pdfgen import canvas
    from pypdf import PdfReader, PageObject
except ImportError as e:
    raise ImportError(f"Missing required dependency: {e}. Please install 'reportlab' and 'pypdf'.")

from Overlayer.WatermarkConfig import WatermarkConfig, WatermarkPosition, WatermarkType

PageBox = Tuple[float, float, float, float]  # left, bottom, width, height

# ==========================================
# Watermark Renderer
# ==========================================

class WatermarkRenderer:
    """
    Handles the generation of watermark PDF pages using ReportLab.

    This class is responsible for:
    1. Creating an in-memory PDF stream for the watermark.
    2. Calculating geometry (anchor, offset, scale, rotation).
    3. Drawing text or images onto the canvas.
    4. Caching generated pages to optimize performance for uniform page sizes.
    """

    def __init__(self, config: WatermarkConfig):
        self.config = config
        # Cache key: page box, Value: pypdf.PageObject
        self._cache: Dict[PageBox, PageObject] = {}

    def get_watermark(self, left: float, bottom: float, page_width: float, page_height: float) -> PageObject:
        """
        Retrieves a watermark PageObject for the specified page box.
        Returns a cached object if available, otherwise renders a new one.
        """
        # Round dimensions to avoid cache misses on negligible float differences
        key = (round(left, 2), round(bottom, 2), round(page_width, 2), round(page_height, 2))

        if key not in self._cache:
            self._cache[key] = self._render_watermark_page(left, bottom, page_width, page_height)

        return self._cache[key]

    def _render_watermark_page(self, left: float, bottom: float, width: float, height: float) -> PageObject:
        """Internal method to draw the watermark on a fresh PDF page."""
        packet = io.BytesIO()

        # Canvas spans the page's origin too, so boxes not starting at (0, 0) line up
        c = canvas.Canvas(packet, pagesize=(left + width, bottom + height))

        if self.config.opacity < 1.0:
            c.setFillAlpha(self.config.opacity)
            c.setStrokeAlpha(self.config.opacity)

        if self.config.watermark_type == WatermarkType.TEXT:
            self._draw_text(c, left, bottom, width, height)
        elif self.config.watermark_type == WatermarkType.IMAGE:
            self._draw_image(c, left, bottom, width, height)

        c.save()
        packet.seek(0)

        # Create a pypdf PageObject from the generated stream
        reader = PdfReader(packet)
        return reader.pages[0]

    def _font_size(self, lines, page_w: float) -> float:
        cfg = self.config
        if cfg.scale_abs:
            return cfg.font_size * cfg.scale

        # Relative: widest line spans `scale` of the page width
        unit_w = max(pdfmetrics.stringWidth(line, cfg.font_name, 1) for line in lines)
        if unit_w <= 0:
            return cfg.font_size * cfg.scale
        return page_w * cfg.scale / unit_w

    def _draw_text(self, c: canvas.Canvas, left: float, bottom: float, page_w: float, page_h: float):
        """Draws text watermark with rotation and positioning."""
        cfg = self.config
        lines = cfg.text.split("\n")
        font_size = self._font_size(lines, page_w)

        text_w = max(c.stringWidth(line, cfg.font_name, font_size) for line in lines)
        text_h = font_size * len(lines)

        x, y = self._calculate_position(text_w, text_h, left, bottom, page_w, page_h)

        # Baseline of the first line so the descenders of the last one sit on the box bottom
        descent = pdfmetrics.getDescent(cfg.font_name, font_size)
        first_baseline = text_h - font_size - descent

        c.saveState()
        c.translate(x + text_w / 2, y + text_h / 2)  # Move to center of text
        c.rotate(cfg.rotation)
        c.setFillColorRGB(*cfg.fill_color)
        c.setStrokeColorRGB(*cfg.stroke_color)

        t = c.beginText(-text_w / 2, -text_h / 2 + first_baseline)
        t.setFont(cfg.font_name, font_size, leading=font_size)
        t.setTextRenderMode(cfg.render_mode.value)
        for line in lines:
            t.textLine(line)
        c.drawText(t)
        c.restoreState()

    def _draw_image(self, c: canvas.Canvas, left: float, bottom: float, page_w: float, page_h: float):
        """Draws image watermark with scaling and positioning."""
        img_path = str(self.config.image_path)

        # Use ImageReader to get dimensions without loading full image into canvas yet
        utils_img = ImageReader(img_path)
        img_orig_w, img_orig_h = utils_img.getSize()

        if self.config.scale_abs:
            # One pixel is one point at scale 1
            target_w = img_orig_w * self.config.scale
            target_h = img_orig_h * self.config.scale
        else:
            target_w = page_w * self.config.scale
            target_h = target_w * img_orig_h / img_orig_w

        x, y = self._calculate_position(target_w, target_h, left, bottom, page_w, page_h)

        c.saveState()
        c.translate(x + target_w / 2, y + target_h / 2)
        c.rotate(self.config.rotation)
        c.drawImage(
            img_path,
            -target_w / 2,
            -target_h / 2,
            width=target_w,
            height=target_h,
            mask='auto',
        )
        c.restoreState()

    def _calculate_position(self, item_w: float, item_h: float, left: float, bottom: float,
                            page_w: float, page_h: float) -> Tuple[float, float]:
        """
        Calculates the bottom-left (x, y) coordinates for the item
        based on the configured anchor and offset.
        """
        pos = self.config.position
        dx, dy = self.config.offset

        if pos in (WatermarkPosition.TOP_LEFT, WatermarkPosition.LEFT, WatermarkPosition.BOTTOM_LEFT):
            x = 0.0
        elif pos in (WatermarkPosition.TOP_RIGHT, WatermarkPosition.RIGHT, WatermarkPosition.BOTTOM_RIGHT):
            x = page_w - item_w
        else:
            x = (page_w - item_w) / 2

        if pos in (WatermarkPosition.BOTTOM_LEFT, WatermarkPosition.BOTTOM_CENTER, WatermarkPosition.BOTTOM_RIGHT):
            y = 0.0
        elif pos in (WatermarkPosition.TOP_LEFT, WatermarkPosition.TOP_CENTER, WatermarkPosition.TOP_RIGHT):
            y = page_h - item_h
        else:
            y = (page_h - item_h) / 2

        return left + x + dx, bottom + y + dy
