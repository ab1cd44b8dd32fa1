import json

import pytest
from reportlab.pdfgen import canvas


@pytest.fixture
def create_pdf(tmp_path):
    def _create(pages=1, name="source.pdf"):
        path = tmp_path / name
        c = canvas.Canvas(str(path), pagesize=(612, 792))
        for i in range(pages):
            c.drawString(100, 100, f"Original Content {i + 1}")
            c.showPage()
        c.save()
        return path
    return _create


@pytest.fixture
def pdf_path(create_pdf):
    return create_pdf()


@pytest.fixture
def write_json(tmp_path):
    def _write(overlays, name="overlays.json"):
        path = tmp_path / name
        path.write_text(json.dumps(overlays))
        return path
    return _write
