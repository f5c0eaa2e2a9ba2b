# backend/tests/test_report_renderer.py
from __future__ import annotations

import asyncio
import io

import httpx
from PIL import Image, ImageFont

from app.models.enums import RegionKind
from app.schemas.analysis import MarkerCoordinates
from app.services.report_assembler import assemble_comparison_report, assemble_single_report
from app.services.report_renderer import (
    MARGIN,
    PLACEHOLDER_FILL,
    PhotoFetcher,
    PhotoOp,
    ReportRenderer,
    wrap_text,
)

from factories import obj, property_record, snapshot

WIDTH = 800


def _renderer():
    return ReportRenderer(width=WIDTH, font_path="")


def _hex_to_rgb(value):
    value = value.lstrip("#")
    return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))


def _single_document():
    snap = snapshot(
        "entry",
        {
            "Sala": [obj("sofá", material="tecido", color="cinza"), obj("tv")],
            "Cozinha": [obj("geladeira")],
        },
        urls={"Sala": "https://cdn.test/sala.jpg", "Cozinha": "https://cdn.test/cozinha.jpg"},
    )
    return assemble_single_report(snap, property_record())


def test_wrap_text_respects_width():
    font = ImageFont.load_default(size=16)
    text = "O presente relatório tem como objetivo registrar o estado de conservação do imóvel " * 3

    lines = wrap_text(text, font, 200)

    assert len(lines) > 3
    assert all(font.getlength(line) <= 200 for line in lines)
    assert " ".join(lines).split() == text.split()


def test_wrap_text_breaks_long_words_and_keeps_newlines():
    font = ImageFont.load_default(size=16)

    lines = wrap_text("a" * 200 + "\nfim", font, 100)

    assert all(font.getlength(line) <= 100 for line in lines)
    assert lines[-1] == "fim"


def test_measure_protects_every_photo_block_and_room():
    plan = _renderer().measure(_single_document())

    kinds = [r.kind for r in plan.regions]
    assert kinds.count(RegionKind.PHOTO_BLOCK) == 2
    assert kinds.count(RegionKind.ROOM_SECTION) == 2
    assert kinds.count(RegionKind.ROOM_CONTAINER) == 2
    assert RegionKind.HEADER in kinds and RegionKind.SUMMARY in kinds

    for a, b in zip(plan.blocks, plan.blocks[1:]):
        assert a.bottom <= b.top
    assert plan.height >= plan.blocks[-1].bottom
    assert plan.width == WIDTH


def test_room_container_spans_heading_and_first_block():
    plan = _renderer().measure(_single_document())

    headings = [b for b in plan.blocks if b.kind == "room_heading"]
    photos = [b for b in plan.blocks if b.kind == "photo_block"]
    containers = [r for r in plan.regions if r.kind == RegionKind.ROOM_CONTAINER]

    assert (containers[0].top, containers[0].bottom) == (headings[0].top, photos[0].bottom)


def test_photo_block_carries_numbered_markers():
    plan = _renderer().measure(_single_document())

    first_photo = next(b for b in plan.blocks if b.kind == "photo_block")
    photo_op = next(op for op in first_photo.ops if isinstance(op, PhotoOp))

    assert photo_op.url == "https://cdn.test/sala.jpg"
    assert [m.number for m in photo_op.markers] == [1, 2]


def test_comparison_layout_protects_rows():
    entry = snapshot("entry", {"Sala": [obj("sofá"), obj("tv")]})
    exit = snapshot("exit", {"Sala": [obj("sofá", "damaged"), obj("abajur")]})
    document = assemble_comparison_report(entry, exit, property_record())

    plan = _renderer().measure(document)

    kinds = [r.kind for r in plan.regions]
    # missing tv, new abajur, changed sofá
    assert kinds.count(RegionKind.ITEM_ROW) == 3
    assert kinds.count(RegionKind.BUCKET_CONTAINER) == 3
    assert kinds.count(RegionKind.PHOTO_BLOCK) == 1


def test_missing_photo_renders_placeholder():
    renderer = _renderer()
    document = _single_document()

    rendered = renderer.render(document, photos={})

    assert rendered.image.size == (WIDTH, rendered.plan.height)
    block = next(b for b in rendered.plan.blocks if b.kind == "photo_block")
    assert rendered.image.getpixel((MARGIN + 3, block.top + 3)) == _hex_to_rgb(PLACEHOLDER_FILL)


def test_markers_are_drawn_on_photos():
    renderer = _renderer()
    snap = snapshot(
        "entry",
        {"Sala": [obj("quadro", marker_coordinates=MarkerCoordinates(x=50, y=50))]},
        urls={"Sala": "https://cdn.test/sala.jpg"},
    )
    document = assemble_single_report(snap, property_record())
    photo = Image.new("RGB", (400, 300), (0, 0, 255))

    rendered = renderer.render(document, photos={"https://cdn.test/sala.jpg": photo})

    block = next(b for b in rendered.plan.blocks if b.kind == "photo_block")
    op = next(o for o in block.ops if isinstance(o, PhotoOp))
    cx = op.x + op.width // 2
    cy = block.top + op.y + op.height // 2
    assert rendered.image.getpixel((cx + 9, cy)) == _hex_to_rgb("#dc2626")
    assert rendered.image.getpixel((cx + 40, cy)) == (0, 0, 255)


def _png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (10, 10), "red").save(buffer, format="PNG")
    return buffer.getvalue()


def test_fetcher_skips_photos_that_cannot_be_loaded():
    def handler(request):
        if request.url.path == "/ok.png":
            return httpx.Response(200, content=_png_bytes())
        if request.url.path == "/broken.png":
            return httpx.Response(200, content=b"not an image")
        return httpx.Response(404)

    fetcher = PhotoFetcher(timeout=5, transport=httpx.MockTransport(handler))
    urls = ["https://cdn.test/ok.png", "https://cdn.test/broken.png", "https://cdn.test/gone.png"]

    images = asyncio.run(fetcher.fetch_all(urls))

    assert list(images) == ["https://cdn.test/ok.png"]
    assert images["https://cdn.test/ok.png"].size == (10, 10)
