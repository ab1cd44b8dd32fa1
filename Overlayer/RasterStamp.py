import io
import os
import tempfile
from contextlib import contextmanager
from typing import Iterator, Tuple

from PIL import Image

from Overlayer.WatermarkConfig import EncodeError

# ==========================================
# Raster Stamp Generator
# ==========================================

WHITE: Tuple[int, int, int] = (255, 255, 255)
TEMP_PREFIX = "white_"


def create_white_png(width: int, height: int) -> bytes:
    """Returns PNG bytes for a width x height opaque white image."""
    if width <= 0 or height <= 0:
        raise EncodeError(f"invalid image size: {width}x{height}")

    buf = io.BytesIO()
    try:
        img = Image.new("RGB", (width, height), WHITE)
        img.save(buf, format="PNG")
    except (ValueError, OSError, MemoryError) as e:
        raise EncodeError(f"PNG encode error: {e}") from e
    return buf.getvalue()


@contextmanager
def temporary_png(data: bytes, prefix: str = TEMP_PREFIX) -> Iterator[str]:
    """
    Persists PNG bytes to the temp dir for the duration of the block.

    Watermark rendering needs a path, not raw bytes. The file is removed
    on every exit path.
    """
    try:
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=".png")
    except OSError as e:
        raise EncodeError(f"failed creating temp file: {e}") from e

    try:
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError as e:
            raise EncodeError(f"failed writing to temp file: {e}") from e
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
