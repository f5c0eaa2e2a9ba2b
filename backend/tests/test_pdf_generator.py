# backend/tests/test_pdf_generator.py
from __future__ import annotations

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4

from app.services.pdf_generator import PDFGenerator


def test_generates_pdf_bytes():
    pdf = PDFGenerator(margin=28)
    pages = [Image.new("RGB", (600, 800), "white"), Image.new("RGB", (600, 300), "white")]

    data = pdf.generate(pages, title="Relatório de Vistoria")

    assert data.startswith(b"%PDF")
    assert len(data) > 500


def test_page_height_matches_content_aspect():
    pdf = PDFGenerator(margin=28)
    width, height = A4

    assert pdf.page_height_px(1240) == int(1240 * (height - 56) / (width - 56))


def test_slices_are_drawn_at_full_content_width():
    pdf = PDFGenerator(margin=20)
    page = Image.new("RGB", (1000, pdf.page_height_px(1000) // 2))

    width, height = pdf._fit(page)

    assert width == pytest.approx(pdf.content_width)
    assert height == pytest.approx(pdf.content_height / 2, rel=0.01)


def test_oversize_slices_are_scaled_to_fit():
    pdf = PDFGenerator(margin=20)
    page = Image.new("RGB", (1000, pdf.page_height_px(1000) * 2))

    width, height = pdf._fit(page)

    assert height == pytest.approx(pdf.content_height)
    assert width == pytest.approx(pdf.content_width / 2, rel=0.01)
