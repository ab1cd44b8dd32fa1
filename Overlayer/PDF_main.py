import argparse
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

from Overlayer.OverlayConfig import RunConfig, load_overlays
from Overlayer.PDFProcessor import apply_overlays
from Overlayer.WatermarkConfig import OverlayError, ReadError, UsageError, WriteError

USAGE = "Usage: pdf-overlay -json=overlays.json -pdf=original.pdf -out=modified.pdf"

OUTPUT_MODE = 0o644

# ==========================================
# CLI & Execution
# ==========================================

def read_pdf(path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ReadError(f"Could not read PDF file: {e}") from e


def write_pdf(path, data: bytes):
    """
    Writes the final PDF in one step.

    The bytes go to a temp file next to the target which then replaces
    it, so a failed write never leaves a partial output behind.
    """
    out_path = Path(path)
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".overlay_", suffix=".pdf", dir=out_path.parent)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_path, OUTPUT_MODE)
        os.replace(tmp_path, out_path)
    except OSError as e:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise WriteError(f"Could not write output PDF: {e}") from e


def run_overlay_service(config: RunConfig) -> bytes:
    """
    High-level entry point: reads the inputs, stamps every overlay and
    writes the result. Returns the final PDF bytes.
    """
    # 1. Overlay descriptors
    overlays = load_overlays(config.json_path)

    # 2. Source PDF, fully in memory
    original_pdf = read_pdf(config.pdf_path)

    # 3. Stamp
    result = apply_overlays(
        original_pdf,
        overlays,
        pages=config.pages,
        password=config.password,
        show_progress=config.show_progress,
    )

    # 4. Save
    write_pdf(config.out_path, result)
    print(f"Done! Overlays applied. Result saved to {str(config.out_path)!r}")
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-overlay",
        description="Stamp text and white rectangles onto a PDF from a JSON overlay list",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )

    # Files
    parser.add_argument("-json", "--json", dest="json_path", default="",
                        help="Path to JSON file describing rectangle+text overlays")
    parser.add_argument("-pdf", "--pdf", dest="pdf_path", default="", help="Path to the original PDF")
    parser.add_argument("-out", "--out", dest="out_path", default="out.pdf", help="Path to the output PDF file")

    # Scope
    parser.add_argument("-pages", "--pages", default=None,
                        help="Pages to stamp, 1-based (e.g., '1, 3-5'). Default: all pages")
    parser.add_argument("-password", "--password", default=None, help="Password for encrypted PDFs")
    parser.add_argument("-quiet", "--quiet", action="store_true", help="Hide the progress bar")
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    if not args.json_path or not args.pdf_path:
        raise UsageError(USAGE)
    return RunConfig(
        json_path=args.json_path,
        pdf_path=args.pdf_path,
        out_path=args.out_path,
        pages=args.pages,
        password=args.password,
        show_progress=not args.quiet,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
    except UsageError as e:
        print(e)
        return 1

    try:
        run_overlay_service(config)
    except OverlayError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"An unexpected error occurred: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
