"""Maps an AnalysisResult onto the elements of the report view."""
from typing import List, Optional, Tuple

from pydantic import BaseModel

from . import config
from .utils.metrics_utils import band_color, deviation_band, fit_to_container, scale_overlay_lines


class FeatureBar(BaseModel):
    feature: str
    score: int
    label: str
    start: int
    target: int
    animate: bool
    delay: float


class DetailRow(BaseModel):
    ratio_name: str
    value: str
    deviation: int
    deviation_text: str
    band: str
    color: Tuple[int, int, int, int]


class PixelLine(BaseModel):
    x1: float
    y1: float
    x2: float
    y2: float
    label: Optional[str] = None


class ImageGeometry(BaseModel):
    natural_width: int
    natural_height: int
    width: float
    height: float


class ReportView(BaseModel):
    overall_score: int
    overall_score_text: str
    feedback: str
    feature_bars: List[FeatureBar]
    detail_rows: List[DetailRow]
    image: Optional[ImageGeometry] = None
    overlay_lines: List[PixelLine] = []
    details_visible: bool = False
    details_toggle_text: str = "Show Detailed Analysis"


class ProgressTracker:
    """
    Remembers the value each progress bar last showed.

    A bar animates from 0 the first time it is displayed and from its previous
    value when the value changes; re-rendering an unchanged value is static.
    """

    def __init__(self):
        self._shown = {}

    def bar(self, key, score):
        previous = self._shown.get(key)
        self._shown[key] = score
        if previous is None:
            return 0, True
        return previous, previous != score

    def clear(self):
        self._shown.clear()


def detail_row(score):
    band = deviation_band(score.deviation)
    return DetailRow(
        ratio_name=score.ratio_name, value=score.value, deviation=score.deviation,
        deviation_text=f"{score.deviation}%", band=band, color=band_color(band),
    )


def overlay_geometry(lines, natural_size, container_width):
    """Displayed image size and the overlay lines in its pixel space."""
    width, height = fit_to_container(natural_size, container_width)
    geometry = ImageGeometry(natural_width=natural_size[0], natural_height=natural_size[1], width=width, height=height)
    return geometry, [PixelLine(**line) for line in scale_overlay_lines(lines, width, height)]


def build_report_view(result, natural_size=None, container_width=None, details_visible=False, tracker=None, cycle=0):
    """
    Build the report view for one result.

    Overlay geometry is only computed when both the image's natural size and
    the container width are known, and is recomputed on every call.
    """
    tracker = tracker or ProgressTracker()
    bars = []
    for index, item in enumerate(result.feature_scores):
        start, animate = tracker.bar((cycle, index, item.feature), item.score)
        bars.append(FeatureBar(
            feature=item.feature, score=item.score, label=f"{item.score}%",
            start=start, target=item.score, animate=animate,
            delay=config.UI_CONFIG['progress']['start_delay'] if animate else 0.0,
        ))

    geometry, lines = None, []
    if natural_size and container_width:
        geometry, lines = overlay_geometry(result.overlay_lines, natural_size, container_width)

    return ReportView(
        overall_score=result.overall_score,
        overall_score_text=f"{result.overall_score}%",
        feedback=result.feedback,
        feature_bars=bars,
        detail_rows=[detail_row(s) for s in result.detailed_scores],
        image=geometry,
        overlay_lines=lines,
        details_visible=details_visible,
        details_toggle_text=f"{'Hide' if details_visible else 'Show'} Detailed Analysis",
    )


def loading_message(elapsed_seconds):
    """Progress caption shown while an analysis is running; rotates every few seconds."""
    step = int(max(0.0, elapsed_seconds) // config.LOADING_MESSAGE_INTERVAL)
    return config.LOADING_MESSAGES[step % len(config.LOADING_MESSAGES)]
