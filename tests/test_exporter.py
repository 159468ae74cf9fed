"""Tests for rasterizing the report and wrapping it in a PDF."""

import pytest
from PIL import Image

from fibonacci_face import config, exporter
from fibonacci_face.errors import ExportFailed, ExportUnavailable
from fibonacci_face.exporter import ReportExporter, ReportRegion, build_pdf, page_orientation
from fibonacci_face.models import AnalysisResult, ImageUnit
from fibonacci_face.renderer import build_report_view
from fibonacci_face.utils.drawing_utils import create_report_image, render_annotated_image
from conftest import SAMPLE_RESULT, image_bytes, run


@pytest.fixture
def region():
    result = AnalysisResult.model_validate(SAMPLE_RESULT)
    photo = ImageUnit(payload=image_bytes(size=(320, 240)), mime_type="image/jpeg")
    return ReportRegion(build_report_view(result), photo, result.overlay_lines, background="#ffffff")


def test_export_produces_a_pdf(region):
    report = run(ReportExporter(settle_delay=0, scale=1).export(region))

    assert report.content.startswith(b"%PDF")
    assert report.filename == "Fibonacci-Face-Analysis.pdf"
    assert report.media_type == "application/pdf"
    assert report.orientation == "portrait"
    assert report.page_size_mm[0] == 210


def test_export_forces_background_and_details_then_restores(region, monkeypatch):
    seen = {}

    def fake_create(view, annotated=None, background=None, scale=1):
        seen["details_visible"] = view.details_visible
        seen["background"] = background
        return Image.new("RGB", (600, 900), background)

    monkeypatch.setattr(exporter, "create_report_image", fake_create)

    run(ReportExporter(settle_delay=0).export(region))

    assert seen == {"details_visible": True, "background": config.REPORT_CONFIG['background']}
    assert region.background == "#ffffff"
    assert region.details_visible is False


def test_failed_export_restores_styling(region, monkeypatch):
    def broken_pdf(bitmap):
        raise RuntimeError("disk full")

    monkeypatch.setattr(exporter, "build_pdf", broken_pdf)

    with pytest.raises(ExportFailed) as exc:
        run(ReportExporter(settle_delay=0).export(region))

    assert str(exc.value) == config.MESSAGES['export_failed']
    assert region.background == "#ffffff"
    assert region.details_visible is False


def test_undecodable_photo_fails_the_export(region):
    region.image = ImageUnit(payload=b"not an image at all", mime_type="image/jpeg")

    with pytest.raises(ExportFailed):
        run(ReportExporter(settle_delay=0).export(region))

    assert region.background == "#ffffff"
    assert region.details_visible is False


def test_region_without_photo_exports_scores_only(region):
    region.image = None
    assert region.annotated_image() is None

    report = run(ReportExporter(settle_delay=0, scale=1).export(region))

    assert report.content.startswith(b"%PDF")


def test_export_without_pdf_library(region, monkeypatch):
    monkeypatch.setattr(exporter, "canvas", None)

    assert not ReportExporter.available()
    with pytest.raises(ExportUnavailable):
        run(ReportExporter(settle_delay=0).export(region))


def test_pdf_page_follows_bitmap_aspect_ratio():
    content, orientation, page_size = build_pdf(Image.new("RGB", (1200, 600), "white"))

    assert content.startswith(b"%PDF")
    assert orientation == "landscape"
    assert page_size == (210, 105)


def test_page_orientation():
    assert page_orientation(600, 900) == "portrait"
    assert page_orientation(600, 600) == "portrait"
    assert page_orientation(900, 600) == "landscape"


def test_report_image_grows_with_detail_panel():
    view = build_report_view(AnalysisResult.model_validate(SAMPLE_RESULT))

    collapsed = create_report_image(view)
    expanded = create_report_image(view.model_copy(update={'details_visible': True}))

    assert collapsed.width == config.REPORT_CONFIG['width']
    assert expanded.height > collapsed.height


def test_annotated_image_is_drawn_at_requested_width():
    result = AnalysisResult.model_validate(SAMPLE_RESULT)
    photo = Image.new("RGB", (800, 600), (0, 0, 0))

    annotated = render_annotated_image(photo, result.overlay_lines, width=400)

    assert annotated.size == (400, 300)
    # The first dash starts at the first line's origin (40, 60)
    near_origin = [annotated.getpixel((x, y)) for x in range(36, 49) for y in range(56, 67)]
    assert any(pixel != (0, 0, 0) for pixel in near_origin)
    assert annotated.getpixel((5, 295)) == (0, 0, 0)
