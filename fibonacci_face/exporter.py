"""Turns the rendered report into a downloadable single-page PDF."""
import io
import asyncio
import logging

from pydantic import BaseModel

from . import config
from .errors import ExportFailed, ExportUnavailable
from .image_source import open_image
from .utils.drawing_utils import create_report_image, render_annotated_image

logger = logging.getLogger(__name__)

try:
    from reportlab.lib.pagesizes import landscape, portrait
    from reportlab.lib.units import mm
    from reportlab.lib.utils import ImageReader
    from reportlab.pdfgen import canvas
except ImportError as e:
    logger.warning("reportlab unavailable, PDF export disabled: %s", e)
    canvas = None


class ExportedReport(BaseModel):
    filename: str
    content: bytes
    orientation: str
    page_size_mm: tuple

    @property
    def media_type(self):
        return "application/pdf"


class ReportRegion:
    """
    The on-screen report area that gets exported: the view, the photo with
    its overlay lines, and the display styling.
    """

    def __init__(self, view, image=None, overlay_lines=(), background=None):
        self.view = view
        self.image = image
        self.overlay_lines = list(overlay_lines)
        self.background = background

    def annotated_image(self):
        if self.image is None:
            return None
        return render_annotated_image(open_image(self.image), self.overlay_lines)

    @property
    def details_visible(self):
        return self.view.details_visible

    @details_visible.setter
    def details_visible(self, visible):
        self.view = self.view.model_copy(update={'details_visible': visible})


def page_orientation(width, height):
    return "portrait" if height >= width else "landscape"


def build_pdf(bitmap):
    """Embed one bitmap in a PDF page 210 mm wide with the bitmap's aspect ratio."""
    width, height = bitmap.size
    page_w = config.REPORT_CONFIG['page_width_mm'] * mm
    page_h = height * page_w / width
    orientation = page_orientation(width, height)
    pagesize = portrait((page_w, page_h)) if orientation == "portrait" else landscape((page_w, page_h))

    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=pagesize)
    pdf.drawImage(ImageReader(bitmap), 0, 0, width=pagesize[0], height=pagesize[1])
    pdf.showPage()
    pdf.save()
    return buf.getvalue(), orientation, (round(pagesize[0] / mm, 2), round(pagesize[1] / mm, 2))


class ReportExporter:

    def __init__(self, settle_delay=None, scale=None, background=None):
        self.settle_delay = config.REPORT_CONFIG['settle_delay'] if settle_delay is None else settle_delay
        self.scale = scale or config.REPORT_CONFIG['scale']
        self.background = background or config.REPORT_CONFIG['background']

    @staticmethod
    def available():
        return canvas is not None

    async def export(self, region):
        """
        Rasterize `region` and wrap it in a PDF.

        The region's background is forced to the report colour and its detail
        panel opened for the capture; both are restored afterwards, whether or
        not the export succeeds.
        """
        if not self.available():
            raise ExportUnavailable(config.MESSAGES['export_unavailable'])

        original_bg, original_details = region.background, region.details_visible
        region.background = self.background
        region.details_visible = True
        try:
            # Let pending visual transitions settle before capturing
            await asyncio.sleep(self.settle_delay)
            try:
                bitmap = create_report_image(region.view, region.annotated_image(), region.background, self.scale)
                content, orientation, page_size = build_pdf(bitmap)
            except Exception as e:
                logger.exception("Error generating PDF")
                raise ExportFailed(config.MESSAGES['export_failed']) from e
        finally:
            region.background = original_bg
            region.details_visible = original_details

        logger.info("Exported report: %d bytes, %s page", len(content), orientation)
        return ExportedReport(filename=config.REPORT_CONFIG['filename'], content=content,
                              orientation=orientation, page_size_mm=page_size)
